"""
infrastructure.persistence.entity_store - SQLite knowledge graph store.

Implements EntityStorePort. Owns the only writable connection to the
entities/relationships tables.

Write discipline:
    - every write is validated first; invalid input returns False and
      nothing is written
    - writes run inside begin/commit with rollback on exception
    - integrity violations (duplicate id, dangling foreign key) return False
    - any other sqlite3.Error is re-raised as EntityStoreError carrying the
      operation name and query text
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Mapping, Optional, Sequence, Union

from domain.entities import (
    Direction,
    Entity,
    EntityType,
    METADATA_KEY,
    Relationship,
    RelationshipPolicy,
    SCHEMA_VERSION,
)
from domain.exceptions import EntityStoreError, ReferentialIntegrityError, ValidationError
from infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)

SLOW_QUERY_THRESHOLD = 2.0  # seconds

Document = Union[str, Mapping[str, Any]]

_ENTITY_COLUMNS = "id, user_id, type, primary_name, data, created_at, updated_at"

_INSERT_ENTITY = (
    "INSERT INTO entities (id, user_id, type, primary_name, data, created_at, updated_at) "
    "VALUES (?, ?, ?, ?, ?, ?, ?)"
)
_SELECT_ENTITY = f"SELECT {_ENTITY_COLUMNS} FROM entities WHERE id = ?"
_UPDATE_ENTITY = "UPDATE entities SET data = ?, updated_at = ? WHERE id = ?"
_SELECT_BY_TYPE = (
    f"SELECT {_ENTITY_COLUMNS} FROM entities "
    "WHERE user_id = ? AND type = ? ORDER BY created_at DESC"
)
_INSERT_RELATIONSHIP = (
    "INSERT INTO relationships "
    "(id, user_id, source_entity_id, target_entity_id, type, strength, metadata, created_at) "
    "VALUES (?, ?, ?, ?, ?, ?, ?, ?)"
)
_SELECT_DUPLICATE_RELATIONSHIP = (
    "SELECT id FROM relationships "
    "WHERE source_entity_id = ? AND target_entity_id = ? AND type = ? LIMIT 1"
)
_RELATIONSHIP_BASE = """SELECT r.id, r.user_id, r.source_entity_id, r.target_entity_id,
           r.type, r.strength, r.metadata, r.created_at,
           s.primary_name AS source_name, s.type AS source_type,
           t.primary_name AS target_name, t.type AS target_type
    FROM relationships r
    JOIN entities s ON r.source_entity_id = s.id
    JOIN entities t ON r.target_entity_id = t.id"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _is_uuid(value: str) -> bool:
    try:
        parsed = uuid.UUID(value)
    except (ValueError, AttributeError, TypeError):
        return False
    # uuid.UUID strips braces, urn prefixes and hyphens; only the canonical form is stored
    return str(parsed) == value.lower()


def _parse_document(data: Document) -> dict[str, Any]:
    """Return the document as a dict, or raise ValidationError."""
    if isinstance(data, Mapping):
        return dict(data)
    if isinstance(data, str):
        try:
            parsed = json.loads(data) if data.strip() else {}
        except json.JSONDecodeError as e:
            raise ValidationError(f"Data is not valid JSON: {e.msg}") from e
        if not isinstance(parsed, dict):
            raise ValidationError("Data must be a JSON object")
        return parsed
    raise ValidationError(f"Unsupported data type: {type(data).__name__}")


class SQLiteEntityStore:
    """Async SQLite implementation of EntityStorePort.

    One instance per process. Transactions are serialized by the shared
    AsyncSQLiteConnection, so concurrent requests queue on writes instead of
    interleaving inside one transaction.
    """

    def __init__(
        self,
        connection: AsyncSQLiteConnection,
        relationship_policy: RelationshipPolicy = RelationshipPolicy.APPEND,
    ):
        self._conn = connection
        self._relationship_policy = RelationshipPolicy(relationship_policy)

        # Query text keyed by query shape; sqlite3 keeps the prepared
        # statements themselves in its per-connection statement cache.
        self._query_cache: dict[tuple, str] = {}
        self._metrics = self._empty_metrics()

    @staticmethod
    def _empty_metrics() -> dict[str, float]:
        return {
            "total_queries": 0,
            "failed_queries": 0,
            "slow_queries": 0,
            "total_execution_time": 0.0,
            "cache_hits": 0,
            "cache_misses": 0,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Tear down the store. An open transaction is rolled back."""
        await self._conn.close()

    async def __aenter__(self) -> SQLiteEntityStore:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def begin_transaction(self) -> None:
        await self._conn.begin()

    async def commit(self) -> None:
        await self._conn.commit()

    async def rollback(self) -> bool:
        return await self._conn.rollback()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        async with self._conn.transaction():
            yield

    @property
    def in_transaction(self) -> bool:
        return self._conn.in_transaction

    @asynccontextmanager
    async def _write_scope(self) -> AsyncIterator[Any]:
        """Join the caller's open transaction, or run in a new one."""
        if self._conn.owns_transaction():
            async with self._conn.acquire() as conn:
                yield conn
        else:
            async with self._conn.transaction() as conn:
                yield conn

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------

    async def save_new_entity(
        self,
        entity_id: str,
        user_id: str,
        entity_type: str,
        name: str,
        data: Document,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        """Validate, augment with system metadata and insert a new entity.

        Returns:
            True when the entity was written, False when validation failed
            or the id already exists.

        Raises:
            EntityStoreError: On any other storage driver failure.
        """
        try:
            payload = self._validate_entity(entity_id, user_id, entity_type, name, data)
        except ValidationError as e:
            logger.warning("Rejected entity %s: %s", entity_id, e)
            return False

        document = json.dumps(self._enhance(payload, metadata), ensure_ascii=False)
        now = _now()
        start = time.perf_counter()
        try:
            async with self._write_scope() as conn:
                await conn.execute(
                    _INSERT_ENTITY,
                    (entity_id, user_id, entity_type, name.strip(), document, now, now),
                )
        except sqlite3.IntegrityError as e:
            self._record_query(start, success=False)
            logger.warning("Failed to save entity %s: %s", entity_id, e)
            return False
        except sqlite3.Error as e:
            self._record_query(start, success=False)
            raise EntityStoreError("save_new_entity", _INSERT_ENTITY, e) from e

        self._record_query(start, success=True)
        self._log_entity_operation("CREATE", entity_id, user_id, entity_type)
        return True

    async def update_entity(self, entity_id: str, data: Document) -> bool:
        """Replace an entity's caller data, keeping its system metadata.

        Returns False for an unknown id or a document that does not parse.
        """
        try:
            payload = _parse_document(data)
        except ValidationError as e:
            logger.warning("Rejected update for entity %s: %s", entity_id, e)
            return False

        start = time.perf_counter()
        try:
            async with self._write_scope() as conn:
                rows = await conn.execute_fetchall(_SELECT_ENTITY, (entity_id,))
                if not rows:
                    logger.warning("Cannot update entity %s: not found", entity_id)
                    self._record_query(start, success=False)
                    return False

                stored = json.loads(rows[0]["data"] or "{}")
                system = dict(stored.get(METADATA_KEY) or {})
                system["updated_timestamp"] = int(time.time())
                payload[METADATA_KEY] = system

                await conn.execute(
                    _UPDATE_ENTITY,
                    (json.dumps(payload, ensure_ascii=False), _now(), entity_id),
                )
        except sqlite3.IntegrityError as e:
            self._record_query(start, success=False)
            logger.warning("Failed to update entity %s: %s", entity_id, e)
            return False
        except sqlite3.Error as e:
            self._record_query(start, success=False)
            raise EntityStoreError("update_entity", _UPDATE_ENTITY, e) from e

        self._record_query(start, success=True)
        self._log_entity_operation("UPDATE", entity_id, rows[0]["user_id"], rows[0]["type"])
        return True

    async def find_entity(self, entity_id: str) -> Optional[Entity]:
        rows = await self._fetchall("find_entity", _SELECT_ENTITY, (entity_id,))
        return self._row_to_entity(rows[0]) if rows else None

    async def find_entities_by_type(self, user_id: str, entity_type: str) -> list[Entity]:
        rows = await self._fetchall(
            "find_entities_by_type", _SELECT_BY_TYPE, (user_id, entity_type),
        )
        return [self._row_to_entity(r) for r in rows]

    async def search_entities(
        self,
        user_id: str,
        term: str,
        entity_type: Optional[str] = None,
        limit: int = 10,
    ) -> list[Entity]:
        """Substring search over primary_name and the JSON document."""
        query = self._cached_query(
            ("search", entity_type is not None),
            lambda: (
                f"SELECT {_ENTITY_COLUMNS} FROM entities "
                "WHERE user_id = ? AND (primary_name LIKE ? OR data LIKE ?)"
                + (" AND type = ?" if entity_type is not None else "")
                + " ORDER BY created_at DESC LIMIT ?"
            ),
        )
        pattern = f"%{term}%"
        params: list[Any] = [user_id, pattern, pattern]
        if entity_type is not None:
            params.append(entity_type)
        params.append(max(1, int(limit)))

        rows = await self._fetchall("search_entities", query, params)
        return [self._row_to_entity(r) for r in rows]

    # ------------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------------

    async def create_relationship(
        self,
        relationship_id: str,
        user_id: str,
        source_id: str,
        target_id: str,
        relationship_type: str,
        strength: float = 1.0,
        metadata: Optional[Document] = None,
    ) -> bool:
        """Create a directed edge after confirming both endpoints exist.

        Returns False (nothing written) when an endpoint is missing, the
        input is invalid, or the storage layer rejects the row.
        """
        logger.debug(
            "Creating relationship '%s' from %s to %s",
            relationship_type, source_id, target_id,
        )
        if not relationship_id or not str(user_id).strip() or not str(relationship_type).strip():
            logger.warning("Rejected relationship %s: missing id, user_id or type", relationship_id)
            return False
        try:
            strength = float(strength)
        except (TypeError, ValueError):
            logger.warning("Rejected relationship %s: strength is not a number", relationship_id)
            return False
        if not 0.0 <= strength <= 1.0:
            logger.warning(
                "Rejected relationship %s: strength %.3f outside 0.0-1.0",
                relationship_id, strength,
            )
            return False

        metadata_json: Optional[str] = None
        if metadata is not None:
            try:
                metadata_json = json.dumps(_parse_document(metadata), ensure_ascii=False)
            except ValidationError as e:
                logger.warning("Rejected relationship %s: metadata %s", relationship_id, e)
                return False

        try:
            await self._check_endpoints(source_id, target_id)
        except ReferentialIntegrityError as e:
            logger.warning("Cannot create relationship %s: %s", relationship_id, e)
            return False

        start = time.perf_counter()
        try:
            async with self._write_scope() as conn:
                if self._relationship_policy is RelationshipPolicy.DEDUPE:
                    existing = await conn.execute_fetchall(
                        _SELECT_DUPLICATE_RELATIONSHIP,
                        (source_id, target_id, relationship_type),
                    )
                    if existing:
                        logger.info(
                            "Relationship '%s' %s -> %s already exists as %s; not duplicated",
                            relationship_type, source_id, target_id, existing[0]["id"],
                        )
                        self._record_query(start, success=True)
                        return True

                await conn.execute(
                    _INSERT_RELATIONSHIP,
                    (relationship_id, user_id, source_id, target_id,
                     relationship_type, strength, metadata_json, _now()),
                )
        except sqlite3.IntegrityError as e:
            self._record_query(start, success=False)
            logger.warning("Failed to create relationship %s: %s", relationship_id, e)
            return False
        except sqlite3.Error as e:
            self._record_query(start, success=False)
            raise EntityStoreError("create_relationship", _INSERT_RELATIONSHIP, e) from e

        self._record_query(start, success=True)
        logger.info(
            "Created relationship '%s' with ID %s", relationship_type, relationship_id,
        )
        return True

    async def find_relationships(
        self,
        entity_id: str,
        relationship_type: Optional[str] = None,
        direction: Union[str, Direction] = Direction.BOTH,
    ) -> list[Relationship]:
        """Relationships touching an entity, with endpoint names resolved.

        Raises:
            ValueError: If direction is not outgoing, incoming or both.
        """
        direction = Direction(direction)
        has_type = relationship_type is not None
        query = self._cached_query(
            ("relationships", direction, has_type),
            lambda: self._build_relationship_query(direction, has_type),
        )

        params: list[Any] = [entity_id]
        if direction is Direction.BOTH:
            params.append(entity_id)
        if has_type:
            params.append(relationship_type)

        rows = await self._fetchall("find_relationships", query, params)
        return [self._row_to_relationship(r) for r in rows]

    async def find_related_entities(
        self,
        entity_id: str,
        relationship_type: Optional[str] = None,
        entity_type: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """Targets of outgoing edges, each with the edge type/strength/metadata."""
        query = self._cached_query(
            ("related", relationship_type is not None, entity_type is not None),
            lambda: (
                "SELECT e.id, e.user_id, e.type, e.primary_name, e.data, e.created_at, "
                "e.updated_at, r.type AS relationship_type, r.strength, "
                "r.metadata AS relationship_metadata "
                "FROM entities e JOIN relationships r ON e.id = r.target_entity_id "
                "WHERE r.source_entity_id = ?"
                + (" AND r.type = ?" if relationship_type is not None else "")
                + (" AND e.type = ?" if entity_type is not None else "")
            ),
        )
        params: list[Any] = [entity_id]
        if relationship_type is not None:
            params.append(relationship_type)
        if entity_type is not None:
            params.append(entity_type)

        rows = await self._fetchall("find_related_entities", query, params)
        related = []
        for row in rows:
            item = self._row_to_entity(row).to_dict()
            item["relationship_type"] = row["relationship_type"]
            item["strength"] = row["strength"]
            item["relationship_metadata"] = (
                json.loads(row["relationship_metadata"])
                if row["relationship_metadata"] else None
            )
            related.append(item)
        return related

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def performance_metrics(self) -> dict[str, float]:
        metrics = dict(self._metrics)
        total = metrics["total_queries"]
        if total:
            metrics["avg_execution_time"] = metrics["total_execution_time"] / total
            metrics["success_rate"] = (total - metrics["failed_queries"]) / total * 100
            metrics["slow_query_percentage"] = metrics["slow_queries"] / total * 100
        else:
            metrics["avg_execution_time"] = 0.0
            metrics["success_rate"] = 100.0
            metrics["slow_query_percentage"] = 0.0
        return metrics

    async def connection_health(self) -> dict[str, Any]:
        health: dict[str, Any] = {
            "status": "healthy",
            "connection_active": False,
            "issues": [],
            **self._conn.stats(),
        }
        try:
            await self._conn.get()
            health["connection_active"] = await self._conn.is_alive()
        except EntityStoreError as e:
            health["issues"].append(str(e))
        except Exception as e:
            health["issues"].append(f"Health check failed: {e}")

        if not health["connection_active"]:
            health["status"] = "unhealthy"
            health["issues"].append("Database connection check failed")

        metrics = self.performance_metrics()
        if health["status"] == "healthy" and metrics["success_rate"] < 95:
            health["status"] = "degraded"
            health["issues"].append(f"Low success rate: {metrics['success_rate']:.1f}%")
        return health

    def clear_statement_cache(self) -> None:
        self._query_cache.clear()
        self._metrics["cache_hits"] = 0
        self._metrics["cache_misses"] = 0

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_entity(
        entity_id: str,
        user_id: str,
        entity_type: str,
        name: str,
        data: Document,
    ) -> dict[str, Any]:
        if not isinstance(entity_id, str) or not _is_uuid(entity_id):
            raise ValidationError(f"Invalid UUID format for entity ID: {entity_id}")
        if entity_type not in EntityType.values():
            raise ValidationError(f"Invalid entity type: {entity_type}")
        payload = _parse_document(data)
        if not str(name or "").strip() or not str(user_id or "").strip():
            raise ValidationError("Missing required fields (name, user_id)")
        return payload

    @staticmethod
    def _enhance(
        payload: dict[str, Any], metadata: Optional[Mapping[str, Any]],
    ) -> dict[str, Any]:
        """Inject system metadata; caller-provided _metadata may override defaults."""
        enhanced = dict(payload)
        system: dict[str, Any] = {
            "created_timestamp": int(time.time()),
            "version": SCHEMA_VERSION,
            "source": "ai_assistant",
            "confidence_score": 1.0,
        }
        caller_meta = payload.get(METADATA_KEY)
        if isinstance(caller_meta, Mapping):
            system.update(caller_meta)
        if metadata:
            system.update(metadata)
        enhanced[METADATA_KEY] = system
        return enhanced

    async def _check_endpoints(self, source_id: str, target_id: str) -> None:
        """Raise ReferentialIntegrityError naming the first missing endpoint."""
        for side, entity_id in (("source", source_id), ("target", target_id)):
            if await self.find_entity(entity_id) is None:
                raise ReferentialIntegrityError(
                    f"{side} entity {entity_id} does not exist",
                    context={"side": side, "entity_id": entity_id},
                )

    def _cached_query(self, key: tuple, build: Callable[[], str]) -> str:
        query = self._query_cache.get(key)
        if query is not None:
            self._metrics["cache_hits"] += 1
            return query
        self._metrics["cache_misses"] += 1
        query = build()
        self._query_cache[key] = query
        return query

    @staticmethod
    def _build_relationship_query(direction: Direction, has_type: bool) -> str:
        if direction is Direction.OUTGOING:
            where = "r.source_entity_id = ?"
        elif direction is Direction.INCOMING:
            where = "r.target_entity_id = ?"
        else:
            where = "(r.source_entity_id = ? OR r.target_entity_id = ?)"
        if has_type:
            where += " AND r.type = ?"
        return f"{_RELATIONSHIP_BASE}\n    WHERE {where}\n    ORDER BY r.created_at, r.rowid"

    async def _fetchall(self, operation: str, query: str, params: Sequence[Any]) -> list:
        start = time.perf_counter()
        try:
            async with self._conn.acquire() as conn:
                rows = await conn.execute_fetchall(query, tuple(params))
        except sqlite3.Error as e:
            self._record_query(start, success=False)
            raise EntityStoreError(operation, query, e) from e
        self._record_query(start, success=True)
        return list(rows)

    def _record_query(self, start: float, success: bool) -> None:
        elapsed = time.perf_counter() - start
        self._metrics["total_queries"] += 1
        self._metrics["total_execution_time"] += elapsed
        if not success:
            self._metrics["failed_queries"] += 1
        elif elapsed > SLOW_QUERY_THRESHOLD:
            self._metrics["slow_queries"] += 1
            logger.warning("Slow query detected, execution time %.2fs", elapsed)

    @staticmethod
    def _log_entity_operation(operation: str, entity_id: str, user_id: str, entity_type: str) -> None:
        logger.info(
            "ENTITY_OPERATION %s",
            json.dumps({
                "timestamp": int(time.time()),
                "operation": operation,
                "entity_id": entity_id,
                "user_id": user_id,
                "entity_type": entity_type,
            }),
        )

    @staticmethod
    def _row_to_entity(row) -> Entity:
        return Entity(
            id=row["id"],
            user_id=row["user_id"],
            type=row["type"],
            primary_name=row["primary_name"] or "",
            data=json.loads(row["data"] or "{}"),
            created_at=row["created_at"] or "",
            updated_at=row["updated_at"] or "",
        )

    @staticmethod
    def _row_to_relationship(row) -> Relationship:
        return Relationship(
            id=row["id"],
            user_id=row["user_id"],
            source_entity_id=row["source_entity_id"],
            target_entity_id=row["target_entity_id"],
            type=row["type"],
            strength=row["strength"],
            metadata=json.loads(row["metadata"]) if row["metadata"] else None,
            created_at=row["created_at"] or "",
            source_name=row["source_name"] or "",
            source_type=row["source_type"] or "",
            target_name=row["target_name"] or "",
            target_type=row["target_type"] or "",
        )
