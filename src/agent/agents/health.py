"""
agent.agents.health - Health records and activity analysis.

Recommendations are general guidance, never medical advice; every component
carries the disclaimer.
"""

from __future__ import annotations

from typing import Any, Optional

from agent.base import BaseAgent
from domain.entities import EntityType
from domain.models import AgentTask

DISCLAIMER = "This information is not a substitute for professional medical advice."
STEP_GOAL = 8000

_BASE_RECOMMENDATIONS = (
    "Stay hydrated",
    "Aim for 7-8 hours of sleep",
    "Consider regular exercise",
)


def _steps_analysis(fitness: Optional[dict]) -> Optional[dict[str, Any]]:
    if not fitness or not fitness.get("days"):
        return None
    average = round(float(fitness.get("average_steps") or 0))
    return {
        "average_steps": average,
        "meets_goal": average >= STEP_GOAL,
        "advice": (
            "Great job staying active!" if average >= STEP_GOAL
            else f"Consider aiming for {STEP_GOAL:,}+ steps daily for better health."
        ),
    }


def _weather_tip(weather: Optional[dict]) -> Optional[str]:
    if not weather or weather.get("temperature") is None:
        return None
    temperature = float(weather["temperature"])
    condition = str(weather.get("condition", "")).lower()
    hot, cold = (85, 40) if weather.get("units") == "imperial" else (29, 4)

    if condition in ("clear", "sunny") and temperature > hot:
        return "It's hot outside! Remember to stay hydrated and use sun protection."
    if condition in ("rain", "drizzle", "thunderstorm", "rainy"):
        return "Rainy day - good for indoor exercises. Consider yoga or home workouts."
    if temperature < cold:
        return "It's cold today - dress in layers and warm up properly before exercising."
    return "Weather conditions are favorable for outdoor activities today."


class HealthAgent(BaseAgent):
    name = "HealthAgent"
    entity_type = EntityType.HEALTH_RECORD.value
    component_keys = (
        "health_metrics",
        "steps_analysis",
        "weather_recommendation",
        "recommendations",
        "disclaimer",
    )
    handlers = {"CREATE": "_create", "ANALYZE": "_analyze"}

    def _extract(self, task: AgentTask) -> dict[str, Any]:
        metrics = task.parameters.get("metrics") or {}
        steps = _steps_analysis(self._tool_data(task, "fitness"))
        tip = _weather_tip(self._tool_data(task, "weather"))

        recommendations = list(_BASE_RECOMMENDATIONS)
        if steps and not steps["meets_goal"]:
            recommendations.append(steps["advice"])
        if tip:
            recommendations.append(tip)

        return self._component(
            {
                "health_metrics": metrics,
                "steps_analysis": steps,
                "weather_recommendation": tip,
                "recommendations": recommendations,
                "disclaimer": DISCLAIMER,
            },
            {
                "health_metrics": 1.0 if metrics else 0.0,
                "steps_analysis": 0.9 if steps else 0.0,
                "weather_recommendation": 0.7 if tip else 0.0,
            },
        )

    def _record_name(self, task: AgentTask) -> str:
        return (
            str(task.parameters.get("name") or "").strip()
            or task.original_query_part.strip()
            or "Health record"
        )

    async def _create(self, task: AgentTask) -> dict[str, Any]:
        component = self._extract(task)
        stored = await self._persist(task, self._record_name(task), component)
        return self._result(
            task, "recorded_health",
            topic=task.original_query_part, component=component, **stored,
        )

    async def _analyze(self, task: AgentTask) -> dict[str, Any]:
        component = self._extract(task)
        stored = await self._persist(task, self._record_name(task), component)
        return self._result(
            task, "analyzed_health",
            topic=task.original_query_part, component=component, **stored,
        )
