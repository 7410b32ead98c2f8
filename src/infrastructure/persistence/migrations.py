"""
infrastructure.persistence.migrations - Knowledge graph schema creation.

Called once at startup by the factory. Safe to call multiple times
(uses IF NOT EXISTS).
"""

from __future__ import annotations

import logging

from infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)

_TABLES = [
    """CREATE TABLE IF NOT EXISTS entities (
        id TEXT NOT NULL PRIMARY KEY,
        user_id TEXT NOT NULL,
        type TEXT NOT NULL,
        primary_name TEXT,
        data TEXT NOT NULL CHECK (json_valid(data)),
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )""",
    """CREATE TABLE IF NOT EXISTS relationships (
        id TEXT NOT NULL PRIMARY KEY,
        user_id TEXT NOT NULL,
        source_entity_id TEXT NOT NULL,
        target_entity_id TEXT NOT NULL,
        type TEXT NOT NULL,
        strength REAL NOT NULL DEFAULT 1.0,
        metadata TEXT CHECK (metadata IS NULL OR json_valid(metadata)),
        created_at TEXT NOT NULL,
        FOREIGN KEY (source_entity_id) REFERENCES entities(id) ON DELETE CASCADE,
        FOREIGN KEY (target_entity_id) REFERENCES entities(id) ON DELETE CASCADE
    )""",
]

_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_entities_user_id ON entities(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_entities_type ON entities(type)",
    "CREATE INDEX IF NOT EXISTS idx_entities_primary_name ON entities(primary_name)",
    "CREATE INDEX IF NOT EXISTS idx_relationships_user_id ON relationships(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_relationships_source ON relationships(source_entity_id)",
    "CREATE INDEX IF NOT EXISTS idx_relationships_target ON relationships(target_entity_id)",
]


async def run_migrations(connection: AsyncSQLiteConnection) -> None:
    """Create the entities/relationships tables and their indexes."""
    async with connection.transaction() as conn:
        for ddl in _TABLES + _INDEXES:
            await conn.execute(ddl)
    logger.info("Knowledge graph tables created (or already exist).")
