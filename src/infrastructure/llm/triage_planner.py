"""
infrastructure.llm.triage_planner - LLM-backed triage step.

Implements TriagePlannerPort using LangChain: a chat prompt describing the
available agents and tools, the provider LLM from build_llm, and
JsonOutputParser (which also accepts ```json fenced answers).

An answer that is not valid JSON, or not a usable plan, falls back to a
single GeneralistAgent task. A provider failure raises TriageError.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Union

from langchain_core.exceptions import OutputParserException
from langchain_core.language_models import BaseChatModel, BaseLLM
from langchain_core.output_parsers import JsonOutputParser
from langchain_core.prompts import ChatPromptTemplate

from domain.exceptions import PlanValidationError, TriageError
from domain.models import DEFAULT_USER_MESSAGE, FALLBACK_AGENT, ExecutionPlan
from infrastructure.config import Settings
from infrastructure.llm.llm_builder import build_llm

logger = logging.getLogger(__name__)

_SYSTEM_INSTRUCTIONS = """You are the triage step of a personal assistant.
Split the user's message into independent tasks and route each one to an agent.

AGENTS (target_agent -> intents):
- FinanceAgent: CREATE (log an expense; parameters: amount, description, category), RETRIEVE
- PlannerAgent: CREATE (schedule a task; parameters: task_title, due_date, priority), RETRIEVE
- HealthAgent: CREATE (record health data; parameters: metrics), ANALYZE
- MemoryAgent: CREATE, UPDATE, RETRIEVE, CREATE_RELATIONSHIP, RETRIEVE_RELATIONSHIPS
  (parameters: name, type, attributes, relationships, entity_id, source_id, target_id, relationship_type)
- RelationshipAgent: CREATE (remember a person; parameters: person_name, relationship), RETRIEVE
- LearningAgent: CREATE (learning plan; parameters: subject, skill_level, learning_goal), RETRIEVE
- SocialAgent: CREATE (social event; parameters: event_name, event_type, date, relationship_focus), RETRIEVE
- SpiritualAgent: CREATE (reflection or practice; parameters: reflection, practice_type, tradition,
  philosophical_question), RETRIEVE
- GeneralistAgent: anything else (intent ANSWER)

TOOLS (tool_name -> tool_parameters):
- weather: location
- search: query
- calendar: operation (create | lookup), title, date, time, event_type, location
- notes: request_type (get_notes | save_note | search_notes), topic, query, title, content
- contacts: request_type (get_contacts | find_contact), name
- fitness: request_type (summarize | record_activity | get_activities), daily_steps, activity_type, duration
- meditation: request_type (get_sessions | record_session | suggestions), meditation_type, duration, level

OUTPUT FORMAT: a single JSON object, nothing else:
{{
  "tasks": [
    {{
      "task_id": "task_1",
      "target_agent": "FinanceAgent",
      "intent": "CREATE",
      "parameters": {{"amount": 25, "description": "lunch"}},
      "tools": [{{"tool_name": "notes", "tool_parameters": {{"request_type": "get_notes", "topic": "budget"}}}}],
      "original_query_part": "I spent $25 on lunch"
    }}
  ],
  "suggested_response": "Got it, I've logged your lunch."
}}

RULES:
1. Only use the agents and tools listed above.
2. Copy numbers and names exactly as the user wrote them.
3. "tools" may be an empty list."""


def fallback_plan(query: str) -> ExecutionPlan:
    """One GeneralistAgent task carrying the whole query."""
    return ExecutionPlan.from_dict({
        "tasks": [{
            "task_id": "task_1",
            "target_agent": FALLBACK_AGENT,
            "intent": "ANSWER",
            "parameters": {},
            "tools": [],
            "original_query_part": query,
        }],
        "suggested_response": DEFAULT_USER_MESSAGE,
    })


class LangChainTriagePlanner:
    """Implements TriagePlannerPort with any LangChain chat model or LLM."""

    def __init__(self, llm: Union[BaseChatModel, BaseLLM]):
        self._llm = llm
        self._parser = JsonOutputParser()
        self._chain = self._build_chain()

    @classmethod
    def from_settings(cls, config: Settings) -> LangChainTriagePlanner:
        return cls(build_llm(
            provider=config.llm_provider,
            model=config.active_llm_model,
            temperature=0,
            json_mode=True,
            ollama_base_url=config.ollama_base_url,
            openai_api_key=config.openai_api_key,
            groq_api_key=config.groq_api_key,
        ))

    def _build_chain(self):
        prompt = ChatPromptTemplate.from_messages([
            ("system", _SYSTEM_INSTRUCTIONS),
            ("user", "{query}"),
        ])
        return prompt | self._llm | self._parser

    async def plan(self, query: str) -> ExecutionPlan:
        """Turn a raw query into an ExecutionPlan.

        Runs the sync LangChain chain in a thread pool to avoid blocking.

        Raises:
            TriageError: If the LLM provider call itself fails.
        """
        loop = asyncio.get_running_loop()
        try:
            raw: Any = await loop.run_in_executor(
                None, self._chain.invoke, {"query": query},
            )
        except OutputParserException as e:
            logger.warning("Triage answer was not valid JSON, using fallback plan: %s", e)
            return fallback_plan(query)
        except Exception as e:
            logger.error("Triage LLM call failed: %s", e)
            raise TriageError(f"Triage failed: {e}") from e

        try:
            plan = ExecutionPlan.from_dict(raw)
        except PlanValidationError as e:
            logger.warning("Triage answer was not a usable plan, using fallback plan: %s", e)
            return fallback_plan(query)

        if not plan.tasks:
            logger.info("Triage produced no tasks, using fallback plan")
            return fallback_plan(query)
        return plan
