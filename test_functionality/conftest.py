import uuid

import pytest
import pytest_asyncio
from pydantic import BaseModel

from agent.agents.finance import FinanceAgent
from agent.agents.generalist import GeneralistAgent
from agent.agents.health import HealthAgent
from agent.agents.learning import LearningAgent
from agent.agents.memory import MemoryAgent
from agent.agents.planner import PlannerAgent
from agent.agents.relationship import RelationshipAgent
from agent.agents.social import SocialAgent
from agent.agents.spiritual import SpiritualAgent
from agent.registry import AgentRegistry
from agent.tools.base import BaseTool, ToolResult
from agent.tools.calendar import CalendarTool
from agent.tools.contacts import ContactsTool
from agent.tools.database import DatabaseTool
from agent.tools.fitness import FitnessTool
from agent.tools.meditation import MeditationTool
from agent.tools.notes import NotesTool
from agent.tools.permissions import PermissionConfig
from agent.tools.registry import ToolRegistry
from application.orchestrator import Orchestrator
from domain.entities import RelationshipPolicy
from domain.models import ExecutionPlan
from infrastructure.persistence.connection import AsyncSQLiteConnection
from infrastructure.persistence.entity_store import SQLiteEntityStore
from infrastructure.persistence.migrations import run_migrations


def new_id() -> str:
    return str(uuid.uuid4())


# --- Store ---

async def _open_store(path, policy=RelationshipPolicy.APPEND) -> SQLiteEntityStore:
    connection = AsyncSQLiteConnection(str(path), max_retries=1, retry_backoff=0)
    await run_migrations(connection)
    return SQLiteEntityStore(connection, relationship_policy=policy)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "botmojo_test.db"


@pytest_asyncio.fixture
async def store(db_path):
    store = await _open_store(db_path)
    yield store
    await store.close()


@pytest_asyncio.fixture
async def dedupe_store(tmp_path):
    store = await _open_store(tmp_path / "dedupe.db", RelationshipPolicy.DEDUPE)
    yield store
    await store.close()


@pytest_asyncio.fixture
async def person(store):
    """Factory fixture: await person("Alice") -> entity id."""
    async def _create(name: str) -> str:
        entity_id = new_id()
        assert await store.save_new_entity(entity_id, "u1", "person", name, {"name": name})
        return entity_id
    return _create


# --- Tools ---

class EchoInput(BaseModel):
    text: str = ""
    user_id: str = ""


class EchoTool(BaseTool):
    """Returns its parameters; keeps the last call for assertions."""
    name = "echo"
    description = "Echo parameters back."

    def __init__(self):
        self.last_params = None

    def get_schema(self):
        return EchoInput

    async def execute(self, **kwargs) -> ToolResult:
        self.last_params = kwargs
        return ToolResult(success=True, data=kwargs)


class FailingTool(EchoTool):
    name = "failing"

    async def execute(self, **kwargs) -> ToolResult:
        raise RuntimeError("backend exploded")


@pytest.fixture
def tool_registry(store):
    registry = ToolRegistry(PermissionConfig.default())
    registry.register_tool("database", lambda: DatabaseTool(store))
    registry.register_tool("notes", lambda: NotesTool(store))
    registry.register_tool("contacts", lambda: ContactsTool(store))
    registry.register_tool("calendar", lambda: CalendarTool(store))
    registry.register_tool("fitness", lambda: FitnessTool(store))
    registry.register_tool("meditation", lambda: MeditationTool(store))
    return registry


@pytest.fixture
def agent_registry(tool_registry):
    registry = AgentRegistry()
    for cls in (
        FinanceAgent, PlannerAgent, HealthAgent, MemoryAgent,
        RelationshipAgent, LearningAgent, SocialAgent, SpiritualAgent, GeneralistAgent,
    ):
        registry.register(cls.name, lambda cls=cls: cls(tool_registry))
    return registry


@pytest.fixture
def orchestrator(agent_registry, tool_registry):
    return Orchestrator(agent_registry, tool_registry)


# --- Triage ---

class StaticTriage:
    """Triage planner that always returns the same plan."""

    def __init__(self, plan: dict):
        self.plan_dict = plan
        self.queries = []

    async def plan(self, query: str) -> ExecutionPlan:
        self.queries.append(query)
        return ExecutionPlan.from_dict(self.plan_dict)


LUNCH_PLAN = {
    "tasks": [
        {
            "task_id": "t1",
            "target_agent": "FinanceAgent",
            "intent": "CREATE",
            "parameters": {"amount": 25, "description": "lunch"},
            "tools": [],
            "original_query_part": "I spent $25 on lunch",
        },
        {
            "task_id": "t2",
            "target_agent": "UnknownAgent",
            "intent": "CREATE",
            "parameters": {},
        },
    ],
}
