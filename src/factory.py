"""
factory - Composition root for the BotMojo assistant core.

ALL dependency wiring happens here. No other module constructs its own
dependencies. The REST adapter and tests call this factory to get fully
configured services.

Usage:
    from factory import ServiceFactory
    from infrastructure.config import Settings

    config = Settings.from_env()
    factory = ServiceFactory(config)
    await factory.initialize()  # one-time startup

    service = factory.create_assistant_service()
    response = await service.process(query, RequestContext(user_id="alice"))

    await factory.close()       # shutdown
"""

from __future__ import annotations

import logging
from typing import Optional

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
from agent.tools.calendar import CalendarTool
from agent.tools.contacts import ContactsTool
from agent.tools.database import DatabaseTool
from agent.tools.fitness import FitnessTool
from agent.tools.meditation import MeditationTool
from agent.tools.notes import NotesTool
from agent.tools.permissions import PermissionConfig
from agent.tools.registry import ToolRegistry
from agent.tools.search import SearchTool
from agent.tools.weather import WeatherTool
from application.orchestrator import Orchestrator
from application.presenter import Presenter
from application.services.assistant import AssistantService
from domain.entities import RelationshipPolicy
from domain.ports import TriagePlannerPort
from infrastructure.config import Settings
from infrastructure.llm.triage_planner import LangChainTriagePlanner
from infrastructure.persistence.connection import AsyncSQLiteConnection
from infrastructure.persistence.entity_store import SQLiteEntityStore
from infrastructure.persistence.migrations import run_migrations

logger = logging.getLogger(__name__)

AGENT_CLASSES = (
    FinanceAgent,
    PlannerAgent,
    HealthAgent,
    MemoryAgent,
    RelationshipAgent,
    LearningAgent,
    SocialAgent,
    SpiritualAgent,
    GeneralistAgent,
)


class ServiceFactory:
    """Composition root. Wires all dependencies together.

    One EntityStore, ToolRegistry and AgentRegistry per factory (per process).
    Call initialize() once at startup and close() at shutdown.
    """

    def __init__(
        self,
        config: Settings,
        triage: Optional[TriagePlannerPort] = None,
        permissions: Optional[PermissionConfig] = None,
    ):
        self._config = config
        self._connection = AsyncSQLiteConnection(
            config.db_path,
            max_retries=config.db_max_retries,
            retry_backoff=config.db_retry_backoff,
            statement_cache_size=config.db_statement_cache_size,
            busy_timeout=config.db_busy_timeout,
        )
        self._store = SQLiteEntityStore(
            self._connection,
            relationship_policy=RelationshipPolicy(config.relationship_policy),
        )
        self._tools = ToolRegistry(
            permissions or PermissionConfig.default(),
            error_log_size=config.tool_error_log_size,
            security_log_size=config.security_event_log_size,
            degraded_rate=config.health_degraded_rate,
            unhealthy_rate=config.health_unhealthy_rate,
            min_calls=config.health_min_calls,
        )
        self._agents = AgentRegistry()
        self._triage = triage
        self._initialized = False

    async def initialize(self) -> None:
        """One-time startup: run migrations, register tools and agents.

        Must be called before creating services.
        """
        logger.info("Initializing ServiceFactory...")

        await run_migrations(self._connection)
        logger.info("Database migrations complete")

        self._register_tools()
        self._register_agents()

        if self._triage is None:
            self._triage = LangChainTriagePlanner.from_settings(self._config)
            logger.info(
                "Triage planner using %s (%s)",
                self._config.llm_provider, self._config.active_llm_model,
            )

        self._initialized = True
        logger.info("ServiceFactory ready")

    async def close(self) -> None:
        await self._store.close()
        logger.info("ServiceFactory closed")

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def store(self) -> SQLiteEntityStore:
        return self._store

    @property
    def tools(self) -> ToolRegistry:
        return self._tools

    @property
    def agents(self) -> AgentRegistry:
        return self._agents

    @property
    def config(self) -> Settings:
        return self._config

    # ------------------------------------------------------------------
    # Service creation
    # ------------------------------------------------------------------

    def create_orchestrator(self) -> Orchestrator:
        self._ensure_initialized()
        return Orchestrator(self._agents, self._tools, Presenter())

    def create_assistant_service(self) -> AssistantService:
        """Create an AssistantService with all dependencies wired."""
        self._ensure_initialized()
        return AssistantService(
            orchestrator=self.create_orchestrator(),
            triage=self._triage,
            max_query_length=self._config.max_query_length,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _register_tools(self) -> None:
        store, config = self._store, self._config
        self._tools.register_tool("database", lambda: DatabaseTool(store))
        self._tools.register_tool("notes", lambda: NotesTool(store))
        self._tools.register_tool("contacts", lambda: ContactsTool(store))
        self._tools.register_tool("calendar", lambda: CalendarTool(store))
        self._tools.register_tool("fitness", lambda: FitnessTool(store))
        self._tools.register_tool("meditation", lambda: MeditationTool(store))
        self._tools.register_tool(
            "weather",
            lambda: WeatherTool(config.openweather_api_key, timeout=config.http_timeout),
        )
        self._tools.register_tool(
            "search",
            lambda: SearchTool(
                config.google_search_api_key,
                config.google_search_cx,
                timeout=config.http_timeout,
            ),
        )

    def _register_agents(self) -> None:
        for agent_cls in AGENT_CLASSES:
            self._agents.register(agent_cls.name, lambda cls=agent_cls: cls(self._tools))

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError(
                "ServiceFactory not initialized. Call await factory.initialize() first."
            )
