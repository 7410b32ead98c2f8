import json
import sqlite3

import pytest

from conftest import _open_store, new_id
from domain.exceptions import EntityStoreError, StoreConnectionError, TransactionError
from infrastructure.persistence.connection import AsyncSQLiteConnection
from infrastructure.persistence.entity_store import SQLiteEntityStore
from infrastructure.persistence.migrations import run_migrations


# --- Entities ---

@pytest.mark.asyncio
async def test_save_entity_injects_system_metadata(store):
    entity_id = new_id()
    assert await store.save_new_entity(entity_id, "u1", "person", "Alice", {"city": "Oslo"})

    entity = await store.find_entity(entity_id)
    assert entity.primary_name == "Alice"
    assert entity.data["city"] == "Oslo"
    meta = entity.data["_metadata"]
    assert meta["version"] == 1
    assert meta["source"] == "ai_assistant"
    assert meta["confidence_score"] == 1.0
    assert isinstance(meta["created_timestamp"], int)


@pytest.mark.asyncio
async def test_save_entity_accepts_json_string(store):
    entity_id = new_id()
    assert await store.save_new_entity(entity_id, "u1", "note", "Groceries", json.dumps({"items": 3}))
    entity = await store.find_entity(entity_id)
    assert entity.data["items"] == 3


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "entity_id, entity_type, name, data",
    [
        ("not-a-uuid", "person", "Alice", {}),
        ("12345678123456781234567812345678----", "person", "Alice", {}),
        ("{12345678-1234-5678-1234-567812345678}", "person", "Alice", {}),
        (None, "spaceship", "Alice", {}),
        (None, "person", "   ", {}),
        (None, "person", "Alice", "{not json"),
        (None, "person", "Alice", "[1, 2, 3]"),
    ],
    ids=[
        "bad-uuid", "misplaced-hyphens", "braced-uuid",
        "bad-type", "empty-name", "invalid-json", "json-not-object",
    ],
)
async def test_invalid_entity_is_rejected_without_write(store, entity_id, entity_type, name, data):
    entity_id = entity_id or new_id()
    assert await store.save_new_entity(entity_id, "u1", entity_type, name, data) is False
    assert await store.find_entity(entity_id) is None


@pytest.mark.asyncio
async def test_duplicate_entity_id_returns_false(store):
    entity_id = new_id()
    assert await store.save_new_entity(entity_id, "u1", "person", "Alice", {})
    assert await store.save_new_entity(entity_id, "u1", "person", "Bob", {}) is False
    assert (await store.find_entity(entity_id)).primary_name == "Alice"


@pytest.mark.asyncio
async def test_update_entity_preserves_metadata(store):
    entity_id = new_id()
    await store.save_new_entity(entity_id, "u1", "task", "Report", {"status": "pending"})
    created = (await store.find_entity(entity_id)).data["_metadata"]["created_timestamp"]

    assert await store.update_entity(entity_id, {"status": "done"})

    entity = await store.find_entity(entity_id)
    assert entity.data["status"] == "done"
    assert entity.data["_metadata"]["created_timestamp"] == created
    assert "updated_timestamp" in entity.data["_metadata"]


@pytest.mark.asyncio
async def test_update_unknown_entity_returns_false(store):
    assert await store.update_entity(new_id(), {"x": 1}) is False


@pytest.mark.asyncio
async def test_find_by_type_and_search(store, person):
    await person("Alice Smith")
    await person("Bob Jones")
    await store.save_new_entity(new_id(), "u1", "note", "Alice's birthday", {"content": "June"})

    people = await store.find_entities_by_type("u1", "person")
    assert {p.primary_name for p in people} == {"Alice Smith", "Bob Jones"}

    found = await store.search_entities("u1", "Alice", entity_type="person")
    assert [e.primary_name for e in found] == ["Alice Smith"]
    assert len(await store.search_entities("u1", "Alice")) == 2
    assert await store.search_entities("someone-else", "Alice") == []


# --- Relationships ---

@pytest.mark.asyncio
async def test_relationship_to_missing_target_is_rejected(store, person):
    source = await person("Alice")
    missing = new_id()

    assert await store.create_relationship(new_id(), "u1", source, missing, "knows") is False
    assert await store.find_relationships(source) == []


@pytest.mark.asyncio
async def test_relationship_directions_resolve_endpoint_names(store, person):
    alice = await person("Alice")
    bob = await person("Bob")
    rel_id = new_id()
    assert await store.create_relationship(rel_id, "u1", alice, bob, "friend", 0.8, {"since": 2019})

    outgoing = await store.find_relationships(alice, direction="outgoing")
    assert len(outgoing) == 1
    rel = outgoing[0]
    assert rel.id == rel_id
    assert (rel.source_name, rel.target_name) == ("Alice", "Bob")
    assert (rel.source_type, rel.target_type) == ("person", "person")
    assert rel.strength == pytest.approx(0.8)
    assert rel.metadata == {"since": 2019}

    assert await store.find_relationships(alice, direction="incoming") == []
    assert len(await store.find_relationships(bob, direction="incoming")) == 1
    assert len(await store.find_relationships(bob)) == 1
    assert await store.find_relationships(alice, relationship_type="colleague") == []


@pytest.mark.asyncio
@pytest.mark.parametrize("strength", [-0.1, 1.5])
async def test_relationship_strength_out_of_range(store, person, strength):
    alice, bob = await person("Alice"), await person("Bob")
    assert await store.create_relationship(new_id(), "u1", alice, bob, "knows", strength) is False


@pytest.mark.asyncio
async def test_unknown_direction_raises_value_error(store, person):
    alice = await person("Alice")
    with pytest.raises(ValueError):
        await store.find_relationships(alice, direction="sideways")


@pytest.mark.asyncio
async def test_append_policy_keeps_duplicate_edges(store, person):
    alice, bob = await person("Alice"), await person("Bob")
    assert await store.create_relationship(new_id(), "u1", alice, bob, "knows")
    assert await store.create_relationship(new_id(), "u1", alice, bob, "knows")
    assert len(await store.find_relationships(alice)) == 2


@pytest.mark.asyncio
async def test_dedupe_policy_skips_duplicate_edges(dedupe_store):
    alice, bob = new_id(), new_id()
    await dedupe_store.save_new_entity(alice, "u1", "person", "Alice", {})
    await dedupe_store.save_new_entity(bob, "u1", "person", "Bob", {})

    assert await dedupe_store.create_relationship(new_id(), "u1", alice, bob, "knows")
    assert await dedupe_store.create_relationship(new_id(), "u1", alice, bob, "knows")
    assert len(await dedupe_store.find_relationships(alice)) == 1


@pytest.mark.asyncio
async def test_find_related_entities(store, person):
    alice, bob = await person("Alice"), await person("Bob")
    project = new_id()
    await store.save_new_entity(project, "u1", "project", "Apollo", {})
    await store.create_relationship(new_id(), "u1", alice, bob, "friend")
    await store.create_relationship(new_id(), "u1", alice, project, "assigned_to")

    related = await store.find_related_entities(alice, entity_type="project")
    assert [r["primary_name"] for r in related] == ["Apollo"]
    assert related[0]["relationship_type"] == "assigned_to"
    assert len(await store.find_related_entities(alice)) == 2


# --- Transactions ---

@pytest.mark.asyncio
async def test_nested_transaction_is_rejected(store):
    await store.begin_transaction()
    with pytest.raises(TransactionError):
        await store.begin_transaction()
    assert await store.rollback()


@pytest.mark.asyncio
async def test_rollback_discards_writes_in_open_transaction(store):
    entity_id = new_id()
    await store.begin_transaction()
    assert await store.save_new_entity(entity_id, "u1", "person", "Ghost", {})
    assert await store.rollback()
    assert await store.find_entity(entity_id) is None


@pytest.mark.asyncio
async def test_transaction_context_commits_multi_step_write(store):
    alice, bob = new_id(), new_id()
    async with store.transaction():
        await store.save_new_entity(alice, "u1", "person", "Alice", {})
        await store.save_new_entity(bob, "u1", "person", "Bob", {})
    assert not store.in_transaction
    assert await store.find_entity(alice) is not None
    assert await store.find_entity(bob) is not None


@pytest.mark.asyncio
async def test_close_rolls_back_open_transaction(db_path):
    store = await _open_store(db_path)
    entity_id = new_id()
    await store.begin_transaction()
    await store.save_new_entity(entity_id, "u1", "person", "Uncommitted", {})
    await store.close()

    reopened = await _open_store(db_path)
    try:
        assert await reopened.find_entity(entity_id) is None
    finally:
        await reopened.close()


@pytest.mark.asyncio
async def test_commit_without_transaction_raises(store):
    with pytest.raises(TransactionError):
        await store.commit()


@pytest.mark.asyncio
async def test_locked_commit_raises_domain_error_and_rolls_back(db_path):
    connection = AsyncSQLiteConnection(str(db_path), max_retries=1, retry_backoff=0, busy_timeout=0.1)
    await run_migrations(connection)
    store = SQLiteEntityStore(connection)

    # a second connection holding a SHARED lock blocks the writer's COMMIT
    reader = sqlite3.connect(str(db_path), isolation_level=None)
    entity_id = new_id()
    try:
        reader.execute("BEGIN")
        reader.execute("SELECT COUNT(*) FROM entities").fetchall()

        await store.begin_transaction()
        assert await store.save_new_entity(entity_id, "u1", "person", "Blocked", {})
        with pytest.raises(EntityStoreError) as excinfo:
            await store.commit()
        assert excinfo.value.operation == "commit"
        assert excinfo.value.query == "COMMIT"
        assert not store.in_transaction
    finally:
        reader.execute("ROLLBACK")
        reader.close()

    try:
        assert await store.find_entity(entity_id) is None
        # the transaction lock was released
        async with store.transaction():
            assert await store.save_new_entity(new_id(), "u1", "person", "After", {})
    finally:
        await store.close()


# --- Errors and diagnostics ---

@pytest.mark.asyncio
async def test_driver_error_is_wrapped_with_operation(tmp_path):
    # no migrations: the entities table does not exist
    store = SQLiteEntityStore(AsyncSQLiteConnection(str(tmp_path / "empty.db")))
    try:
        with pytest.raises(EntityStoreError) as excinfo:
            await store.find_entity(new_id())
        assert excinfo.value.operation == "find_entity"
        assert "FROM entities" in excinfo.value.query
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_query_shape_cache_and_clear(store, person):
    alice = await person("Alice")
    await store.find_relationships(alice)
    await store.find_relationships(alice)
    assert store.performance_metrics()["cache_hits"] >= 1

    store.clear_statement_cache()
    metrics = store.performance_metrics()
    assert metrics["cache_hits"] == 0
    assert metrics["cache_misses"] == 0


@pytest.mark.asyncio
async def test_connection_health_and_metrics(store, person):
    await person("Alice")
    health = await store.connection_health()
    assert health["status"] == "healthy"
    assert health["connection_active"] is True

    metrics = store.performance_metrics()
    assert metrics["total_queries"] >= 1
    assert metrics["success_rate"] == 100.0


# --- Connection lifecycle ---

@pytest.mark.asyncio
async def test_unopenable_path_exhausts_retries(tmp_path):
    connection = AsyncSQLiteConnection(str(tmp_path / "missing" / "x.db"), max_retries=2, retry_backoff=0)
    with pytest.raises(StoreConnectionError) as excinfo:
        await connection.get()
    assert excinfo.value.context["attempts"] == 2
    assert connection.stats()["connect_attempts"] == 2
    assert connection.stats()["connected"] is False


@pytest.mark.asyncio
async def test_dead_connection_is_replaced_transparently(db_path):
    connection = AsyncSQLiteConnection(str(db_path), max_retries=1, retry_backoff=0)
    await run_migrations(connection)
    store = SQLiteEntityStore(connection)
    try:
        raw = await connection.get()
        await raw.close()
        assert await connection.is_alive() is False

        entity_id = new_id()
        assert await store.save_new_entity(entity_id, "u1", "person", "Alice", {})
        assert (await store.find_entity(entity_id)).primary_name == "Alice"
        assert connection.stats()["reconnects"] == 1
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_connection_lost_inside_transaction_raises(db_path):
    connection = AsyncSQLiteConnection(str(db_path), max_retries=1, retry_backoff=0)
    await run_migrations(connection)
    await connection.begin()
    raw = await connection.get()
    await raw.close()

    with pytest.raises(StoreConnectionError):
        await connection.get()
    assert connection.stats()["reconnects"] == 0

    # the transaction died with its connection
    assert await connection.rollback() is True
    assert not connection.in_transaction
    await connection.close()
