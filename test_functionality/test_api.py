import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from adapters.rest.app import app
from adapters.rest.dependencies import set_factory
from conftest import LUNCH_PLAN, StaticTriage
from domain.exceptions import EntityStoreError, StoreConnectionError
from factory import ServiceFactory
from infrastructure.config import Settings

ADMIN_TOKEN = "s3cret"


@pytest_asyncio.fixture
async def factory(tmp_path):
    config = Settings(
        project_root=tmp_path,
        db_path=str(tmp_path / "api.db"),
        admin_token=ADMIN_TOKEN,
        max_query_length=50,
    )
    triage = StaticTriage(LUNCH_PLAN)
    factory = ServiceFactory(config, triage=triage)
    await factory.initialize()
    # ASGITransport does not run the lifespan; wire the factory directly
    set_factory(factory)
    yield factory
    set_factory(None)
    await factory.close()


@pytest_asyncio.fixture
async def client(factory):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def assert_error(response, status_code, code):
    assert response.status_code == status_code
    body = response.json()
    assert body["status"] == "error"
    assert body["success"] is False
    assert body["code"] == code
    assert body["message"]


# --- Health ---

@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "version": "1.0.0"}


# --- Processing ---

@pytest.mark.asyncio
async def test_process_uses_triage(client, factory):
    response = await client.post("/api/process", json={"query": "I spent $25 on lunch", "user_id": "alice"})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert [r["task_id"] for r in body["execution_results"]] == ["t1", "t2"]
    assert body["execution_results"][0]["result"]["persisted"] is True
    assert body["execution_results"][1]["result"]["status"] == "agent_not_found"
    assert factory._triage.queries == ["I spent $25 on lunch"]


@pytest.mark.asyncio
async def test_process_with_caller_plan_skips_triage(client, factory):
    plan = {"tasks": [{"target_agent": "PlannerAgent", "intent": "CREATE",
                       "parameters": {"task_title": "Dentist", "due_date": "Friday"}}]}
    response = await client.post("/api/process", json={"query": "dentist friday", "plan": plan})

    assert response.status_code == 200
    result = response.json()["execution_results"][0]["result"]
    assert result["message"] == "PlannerAgent: Successfully scheduled task 'Dentist' for Friday."
    assert factory._triage.queries == []


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{}, {"query": ""}, {"query": "   "}, {"query": 42}])
async def test_process_requires_query(client, payload):
    response = await client.post("/api/process", json=payload)
    assert_error(response, 400, "missing_query")


@pytest.mark.asyncio
async def test_process_rejects_long_query(client):
    response = await client.post("/api/process", json={"query": "x" * 51})
    assert_error(response, 400, "query_too_long")


@pytest.mark.asyncio
async def test_process_rejects_unusable_plan(client):
    response = await client.post("/api/process", json={"query": "hi", "plan": {"steps": []}})
    assert_error(response, 400, "invalid_plan")


@pytest.mark.asyncio
async def test_process_rejects_malformed_body(client):
    response = await client.post(
        "/api/process", content="not json", headers={"Content-Type": "application/json"},
    )
    assert_error(response, 400, "invalid_request")


# --- Entities ---

@pytest.mark.asyncio
async def test_entity_lookup_after_processing(client):
    processed = await client.post("/api/process", json={"query": "lunch", "user_id": "alice"})
    entity_id = processed.json()["execution_results"][0]["result"]["entity_id"]

    response = await client.get(f"/api/entities/{entity_id}")
    assert response.status_code == 200
    entity = response.json()
    assert entity["type"] == "transaction"
    assert entity["user_id"] == "alice"

    relationships = await client.get(f"/api/entities/{entity_id}/relationships")
    assert relationships.status_code == 200
    assert relationships.json() == []


@pytest.mark.asyncio
async def test_unknown_entity_is_404(client):
    response = await client.get("/api/entities/00000000-0000-0000-0000-000000000000")
    assert_error(response, 404, "entity_not_found")


@pytest.mark.asyncio
async def test_invalid_direction_is_400(client):
    response = await client.get(
        "/api/entities/00000000-0000-0000-0000-000000000000/relationships",
        params={"direction": "sideways"},
    )
    assert_error(response, 400, "invalid_direction")


# --- Tools and administration ---

@pytest.mark.asyncio
async def test_tools_health(client):
    await client.post("/api/process", json={"query": "lunch"})
    response = await client.get("/api/tools/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["tools"]["database"]["successful_calls"] == 1
    assert body["cached_instances"] == ["database"]


@pytest.mark.asyncio
async def test_admin_requires_token(client):
    response = await client.post(
        "/api/admin/permissions", json={"agent_name": "FinanceAgent", "tool_names": []},
    )
    assert_error(response, 403, "admin_token_required")


@pytest.mark.asyncio
async def test_admin_revokes_database_access(client):
    headers = {"X-Admin-Token": ADMIN_TOKEN}
    response = await client.post(
        "/api/admin/permissions",
        json={"agent_name": "FinanceAgent", "tool_names": ["notes"]},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json() == {"agent_name": "FinanceAgent", "tools": ["notes"]}

    processed = await client.post("/api/process", json={"query": "lunch"})
    result = processed.json()["execution_results"][0]["result"]
    assert result["persisted"] is False
    assert "Not saved" in result["message"]

    audit = await client.get("/api/admin/permissions/audit", headers=headers)
    body = audit.json()
    assert body["audit_log"][0]["agent"] == "FinanceAgent"
    assert body["security_events"][0]["tool"] == "database"


@pytest.mark.asyncio
async def test_admin_tool_reset_and_store_health(client):
    headers = {"X-Admin-Token": ADMIN_TOKEN}
    await client.post("/api/process", json={"query": "lunch"})

    reset = await client.post("/api/admin/tools/database/reset", headers=headers)
    assert reset.json() == {"tool": "database", "reset": True}

    health = await client.get("/api/admin/store/health", headers=headers)
    assert health.status_code == 200
    assert health.json()["connection"]["status"] == "healthy"


# --- Store failures ---

@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        EntityStoreError("find_entity", "SELECT * FROM entities WHERE id = ?"),
        StoreConnectionError("Could not connect"),
    ],
    ids=["driver-error", "connection-lost"],
)
async def test_store_failure_is_503(client, factory, monkeypatch, error):
    async def failing_find(entity_id):
        raise error

    monkeypatch.setattr(factory.store, "find_entity", failing_find)
    response = await client.get("/api/entities/00000000-0000-0000-0000-000000000000")
    assert_error(response, 503, "store_unavailable")
