"""
agent.tools.meditation - Meditation sessions tracked as `habit` entities.

Sessions are stored with practice "meditation" so they can be told apart
from other habits. Stats (total minutes, streak, favorite practice) are
computed from the stored sessions on every read.
"""

from __future__ import annotations

import uuid
from collections import Counter
from datetime import date as Date, datetime, timedelta, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from agent.tools.base import BaseTool, ToolResult
from domain.entities import METADATA_KEY, Entity, EntityType
from domain.ports import EntityStorePort

PRACTICE = "meditation"

SUGGESTIONS: dict[str, tuple[str, ...]] = {
    "beginner": (
        "Body Scan Meditation - 5 minutes",
        "Mindful Breathing - 10 minutes",
        "Loving-Kindness Practice - 7 minutes",
    ),
    "intermediate": (
        "Open Awareness Meditation - 15 minutes",
        "Walking Meditation - 20 minutes",
        "Visualization Practice - 12 minutes",
    ),
    "advanced": (
        "Silent Meditation - 30 minutes",
        "Self-Inquiry Practice - 25 minutes",
        "Tonglen Meditation - 20 minutes",
    ),
}


class MeditationInput(BaseModel):
    """Input schema for the meditation tool."""
    request_type: Literal["get_sessions", "record_session", "suggestions"] = "get_sessions"
    user_id: str = "default_user"
    meditation_type: str = "mindfulness"
    duration: int = Field(default=10, ge=1, le=600, description="Minutes.")
    session_date: Optional[Date] = Field(default=None, description="Defaults to today (UTC).")
    notes: str = ""
    level: Literal["beginner", "intermediate", "advanced"] = "beginner"
    limit: int = Field(default=20, ge=1, le=100)


def _today() -> Date:
    return datetime.now(timezone.utc).date()


def _streak(days: set[Date], today: Date) -> int:
    """Consecutive days with a session, ending today or yesterday."""
    day = today if today in days else today - timedelta(days=1)
    streak = 0
    while day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def _session(entity: Entity) -> dict[str, Any]:
    session = {k: v for k, v in entity.data.items() if k != METADATA_KEY}
    session["session_id"] = entity.id
    return session


class MeditationTool(BaseTool):
    """Record meditation sessions, report stats and suggest practices."""

    name = "meditation"
    description = "Record a meditation session, list sessions with stats, or suggest practices by level."

    def __init__(self, store: EntityStorePort):
        self._store = store

    def get_schema(self) -> type[BaseModel]:
        return MeditationInput

    async def execute(
        self,
        request_type: str = "get_sessions",
        user_id: str = "default_user",
        meditation_type: str = "mindfulness",
        duration: int = 10,
        session_date: Optional[Date] = None,
        notes: str = "",
        level: str = "beginner",
        limit: int = 20,
        **kwargs,
    ) -> ToolResult:
        if request_type == "suggestions":
            return ToolResult(success=True, data={"level": level, "suggestions": list(SUGGESTIONS[level])})
        if request_type == "record_session":
            return await self._record(user_id, meditation_type, duration, session_date or _today(), notes)
        return await self._sessions(user_id, limit)

    async def _record(
        self, user_id: str, meditation_type: str, duration: int, session_date: Date, notes: str,
    ) -> ToolResult:
        session = {
            "practice": PRACTICE,
            "meditation_type": meditation_type,
            "duration": duration,
            "date": session_date.isoformat(),
            "notes": notes,
        }
        session_id = str(uuid.uuid4())
        name = f"{meditation_type} meditation {session['date']}"
        saved = await self._store.save_new_entity(
            session_id, user_id, EntityType.HABIT.value, name, session,
        )
        if not saved:
            return ToolResult(success=False, error=f"Could not record {meditation_type} session")
        return ToolResult(success=True, data={**session, "session_id": session_id, "status": "logged"})

    async def _sessions(self, user_id: str, limit: int) -> ToolResult:
        habits = await self._store.find_entities_by_type(user_id, EntityType.HABIT.value)
        sessions = [_session(h) for h in habits if h.data.get("practice") == PRACTICE]

        days = set()
        for s in sessions:
            try:
                days.add(Date.fromisoformat(str(s.get("date"))))
            except ValueError:
                continue
        practices = Counter(s.get("meditation_type") for s in sessions if s.get("meditation_type"))

        return ToolResult(success=True, data={
            "sessions": sessions[:limit],
            "session_count": len(sessions),
            "total_minutes": sum(int(s.get("duration") or 0) for s in sessions),
            "streak": _streak(days, _today()),
            "favorite_practice": practices.most_common(1)[0][0] if practices else None,
        })
