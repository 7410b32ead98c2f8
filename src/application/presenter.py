"""
application.presenter - Render the user-facing line for each task result.

Agents return structured data only. The Presenter adds a `message` key
derived from the result's status/action and component fields.
"""

from __future__ import annotations

from typing import Any, Callable

Template = Callable[[str, dict[str, Any]], str]


def _amount(value: Any) -> str:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return str(value)
    return str(int(number)) if number.is_integer() else f"{number:.2f}"


def _component(result: dict[str, Any]) -> dict[str, Any]:
    return result.get("component") or {}


def _remembered(agent: str, r: dict[str, Any]) -> str:
    c = _component(r)
    message = f"{agent}: Remembered {c.get('entity_type')} '{c.get('name')}'."
    linked = r.get("relationships") or []
    if linked:
        message += f" Linked to {', '.join(link['target_name'] for link in linked)}."
    return message


def _added_contact(agent: str, r: dict[str, Any]) -> str:
    c = _component(r)
    role = f" as your {c['relationship']}" if c.get("relationship") else ""
    return f"{agent}: Added {c.get('name')}{role}."


_ACTIONS: dict[str, Template] = {
    "logged_expense": lambda a, r: (
        f"{a}: Successfully logged expense of ${_amount(_component(r).get('amount'))} "
        f"for '{_component(r).get('description')}'."
    ),
    "scheduled_task": lambda a, r: (
        f"{a}: Successfully scheduled task '{_component(r).get('title')}' "
        f"for {_component(r).get('due_date')}."
    ),
    "recorded_health": lambda a, r: f"{a}: Recorded health information about '{r.get('topic')}'.",
    "analyzed_health": lambda a, r: f"{a}: Processed health request about '{r.get('topic')}'.",
    "remembered": _remembered,
    "updated": lambda a, r: f"{a}: Updated entity {r.get('entity_id')}.",
    "retrieved": lambda a, r: f"{a}: Found {r.get('count', 0)} record(s).",
    "linked": lambda a, r: f"{a}: Created '{r.get('relationship_type')}' relationship between entities.",
    "retrieved_relationships": lambda a, r: (
        f"{a}: Found {r.get('count', 0)} relationship(s) for entity {r.get('entity_id')}."
    ),
    "added_contact": _added_contact,
    "planned_learning": lambda a, r: f"{a}: Created a learning plan for {_component(r).get('subject')}.",
    "planned_social": lambda a, r: (
        f"{a}: Noted {_component(r).get('event_name')}. "
        f"Start planning about {_component(r).get('planning_lead_days')} days ahead."
    ),
    "reflected": lambda a, r: (
        f"{a}: Saved your reflection. Suggested practice: {_component(r).get('practice_suggestion')}."
    ),
    "answered": lambda a, r: f"{a}: Answering question about '{_component(r).get('query')}'.",
}

_STATUSES: dict[str, Template] = {
    "agent_not_found": lambda a, r: f"Agent '{r.get('agent', a)}' not found.",
    "unsupported_intent": lambda a, r: f"{a} can't handle intent '{r.get('intent')}'.",
    "invalid_parameters": lambda a, r: f"{a}: Missing {', '.join(r.get('missing', []))}.",
    "not_found": lambda a, r: f"{a}: No entity found with ID {r.get('entity_id')}.",
    "unavailable": lambda a, r: f"{a}: The {r.get('tool')} tool is not available.",
    "error": lambda a, r: f"{a}: Task failed: {r.get('error')}",
}


class Presenter:
    """Add a human-readable `message` to an agent result."""

    def render(self, agent_name: str, result: dict[str, Any]) -> dict[str, Any]:
        rendered = dict(result)
        rendered["message"] = self._message(agent_name, rendered)
        return rendered

    def _message(self, agent_name: str, result: dict[str, Any]) -> str:
        status = result.get("status", "success")
        template = _STATUSES.get(status)
        if template is None:
            template = _ACTIONS.get(result.get("action", ""))
        if template is None:
            return f"{agent_name}: Done."

        message = template(agent_name, result)
        if result.get("persisted") is False:
            if result.get("persistence"):
                message += " (Not saved: database access denied.)"
            else:
                message += " (Not saved.)"
        return message
