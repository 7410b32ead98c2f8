"""
agent.tools.fitness - Activity records and summaries of supplied fitness data.

No wearable integration. `summarize` works only on the series the caller
passes in; `record_activity` stores the activity as a `health_record` entity
and `get_activities` reads those records back.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

from agent.tools.base import BaseTool, ToolResult
from domain.entities import METADATA_KEY, EntityType
from domain.ports import EntityStorePort

ACTIVITY_KIND = "activity"


class FitnessInput(BaseModel):
    """Input schema for the fitness tool."""
    request_type: Literal["summarize", "record_activity", "get_activities"] = "summarize"
    user_id: str = "default_user"
    daily_steps: dict[str, int] = Field(default_factory=dict, description="date -> steps")
    exercise_minutes: dict[str, float] = Field(default_factory=dict, description="date -> minutes")
    sleep_hours: dict[str, float] = Field(default_factory=dict, description="date -> hours")
    activity_type: str = "walking"
    duration: float = Field(default=30, ge=0)
    intensity: str = "moderate"
    limit: int = Field(default=20, ge=1, le=100)


def _average(values: dict) -> float:
    return round(sum(values.values()) / len(values), 2) if values else 0.0


class FitnessTool(BaseTool):
    """Summarize steps/exercise/sleep series, or record and list activities."""

    name = "fitness"
    description = "Summarize step, exercise and sleep data, or record and list activities."

    def __init__(self, store: EntityStorePort):
        self._store = store

    def get_schema(self) -> type[BaseModel]:
        return FitnessInput

    async def execute(
        self,
        request_type: str = "summarize",
        user_id: str = "default_user",
        daily_steps: dict = None,
        exercise_minutes: dict = None,
        sleep_hours: dict = None,
        activity_type: str = "walking",
        duration: float = 30,
        intensity: str = "moderate",
        limit: int = 20,
        **kwargs,
    ) -> ToolResult:
        if request_type == "record_activity":
            return await self._record(user_id, activity_type, duration, intensity)
        if request_type == "get_activities":
            return await self._activities(user_id, limit)

        daily_steps = daily_steps or {}
        exercise_minutes = exercise_minutes or {}
        sleep_hours = sleep_hours or {}
        return ToolResult(success=True, data={
            "days": len(set(daily_steps) | set(exercise_minutes) | set(sleep_hours)),
            "total_steps": sum(daily_steps.values()),
            "average_steps": _average(daily_steps),
            "average_exercise_minutes": _average(exercise_minutes),
            "average_sleep_hours": _average(sleep_hours),
        })

    async def _record(
        self, user_id: str, activity_type: str, duration: float, intensity: str,
    ) -> ToolResult:
        activity = {
            "kind": ACTIVITY_KIND,
            "activity_type": activity_type,
            "duration_minutes": duration,
            "intensity": intensity,
            "recorded_at": datetime.now(timezone.utc).isoformat(),
        }
        activity_id = str(uuid.uuid4())
        name = f"{activity_type} ({duration:g} min)"
        saved = await self._store.save_new_entity(
            activity_id, user_id, EntityType.HEALTH_RECORD.value, name, activity,
        )
        if not saved:
            return ToolResult(success=False, error=f"Could not record activity: {activity_type}")
        return ToolResult(success=True, data={**activity, "activity_id": activity_id})

    async def _activities(self, user_id: str, limit: int) -> ToolResult:
        records = await self._store.find_entities_by_type(user_id, EntityType.HEALTH_RECORD.value)
        activities = [
            {**{k: v for k, v in r.data.items() if k != METADATA_KEY}, "activity_id": r.id}
            for r in records
            if r.data.get("kind") == ACTIVITY_KIND
        ]
        return ToolResult(success=True, data={
            "activities": activities[:limit],
            "count": len(activities),
            "total_minutes": sum(float(a.get("duration_minutes") or 0) for a in activities),
        })
