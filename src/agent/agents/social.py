"""
agent.agents.social - Social events and relationship guidance.

Events are stored as `event` entities. Each component carries how far ahead
the event type is usually planned, the relationship category it concerns,
communication tips for that category and the user's upcoming events taken
from a calendar lookup.
"""

from __future__ import annotations

from typing import Any, Optional

from agent.base import BaseAgent
from domain.entities import EntityType
from domain.models import AgentTask

DEFAULT_PLANNING_DAYS = 7

# event type -> days of planning lead time
PLANNING_DAYS: dict[str, int] = {
    "birthday": 14,
    "anniversary": 21,
    "graduation": 30,
    "promotion": 7,
    "dinner_party": 7,
    "bbq": 5,
    "game_night": 3,
    "holiday_party": 21,
    "team_lunch": 3,
    "networking_event": 14,
    "conference": 60,
    "workshop": 21,
    "sports": 3,
    "travel": 60,
    "outdoor_activities": 7,
}

# relationship word -> category
RELATIONSHIP_CATEGORIES: dict[str, str] = {
    "family": "family", "mother": "family", "father": "family", "sister": "family",
    "brother": "family", "parents": "family", "cousin": "family", "in_laws": "family",
    "colleague": "professional", "colleagues": "professional", "team": "professional",
    "boss": "professional", "client": "professional", "clients": "professional",
    "friend": "social", "friends": "social", "neighbor": "social", "neighbors": "social",
    "spouse": "romantic", "partner": "romantic", "wife": "romantic", "husband": "romantic",
    "girlfriend": "romantic", "boyfriend": "romantic",
}

COMMUNICATION_TIPS: dict[str, tuple[str, ...]] = {
    "family": (
        "Share plans early so everyone can make time",
        "Acknowledge traditions that matter to the family",
    ),
    "professional": (
        "Keep the invitation clear and brief",
        "Follow up with a timely thank-you",
    ),
    "social": (
        "Ask about their interests and listen actively",
        "Check in regularly, not only around events",
    ),
    "romantic": (
        "Plan around what your partner enjoys most",
        "Express appreciation openly",
    ),
}
GENERAL_TIPS = ("Listen actively and ask open questions", "Be consistent and reliable")


def _normalize(event_type: str) -> str:
    return event_type.strip().lower().replace(" ", "_").replace("-", "_")


def _category(focus: str) -> Optional[str]:
    return RELATIONSHIP_CATEGORIES.get(_normalize(focus)) if focus else None


class SocialAgent(BaseAgent):
    name = "SocialAgent"
    entity_type = EntityType.EVENT.value
    component_keys = (
        "event_name",
        "event_type",
        "date",
        "relationship_focus",
        "relationship_category",
        "planning_lead_days",
        "event_recommendations",
        "communication_tips",
        "upcoming_events",
    )
    handlers = {"CREATE": "_create", "RETRIEVE": "_retrieve"}

    def _upcoming(self, task: AgentTask) -> list[dict[str, Any]]:
        calendar = self._tool_data(task, "calendar")
        if isinstance(calendar, dict) and isinstance(calendar.get("events"), list):
            return calendar["events"]
        return []

    def _extract(self, task: AgentTask) -> dict[str, Any]:
        params = task.parameters
        event_type = _normalize(str(params.get("event_type") or "gathering"))
        focus = str(params.get("relationship_focus") or "").strip()
        category = _category(focus)
        lead_days = PLANNING_DAYS.get(event_type, DEFAULT_PLANNING_DAYS)

        name = str(params.get("event_name") or params.get("name") or "").strip()
        if not name:
            name = task.original_query_part.strip() or event_type.replace("_", " ").title()

        return self._component(
            {
                "event_name": name,
                "event_type": event_type,
                "date": params.get("date"),
                "relationship_focus": focus or None,
                "relationship_category": category,
                "planning_lead_days": lead_days,
                "event_recommendations": f"Start planning about {lead_days} days ahead.",
                "communication_tips": list(COMMUNICATION_TIPS.get(category, GENERAL_TIPS)),
                "upcoming_events": self._upcoming(task),
            },
            {
                "event_name": 1.0 if params.get("event_name") or params.get("name") else 0.5,
                "event_type": 1.0 if event_type in PLANNING_DAYS else 0.3,
                "relationship_category": 0.8 if category else 0.0,
            },
        )

    async def _create(self, task: AgentTask) -> dict[str, Any]:
        component = self._extract(task)
        stored = await self._persist(task, component["event_name"], component)
        return self._result(task, "planned_social", component=component, **stored)

    async def _retrieve(self, task: AgentTask) -> dict[str, Any]:
        upcoming = self._upcoming(task)
        if upcoming:
            return self._result(
                task, "retrieved",
                entity_type=self.entity_type, records=upcoming, count=len(upcoming),
            )
        return await self._list_entities(task)
