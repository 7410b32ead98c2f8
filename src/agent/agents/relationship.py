"""
agent.agents.relationship - People the user knows.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from agent.base import BaseAgent
from domain.entities import EntityType
from domain.models import AgentTask

_ROLES = (
    "friend|brother|sister|father|mother|colleague|boss|employee|neighbor|"
    "roommate|partner|spouse|husband|wife|child|son|daughter|cousin|mentor"
)
_IS_MY_RE = re.compile(rf"\b([A-Z][a-z]+(?: [A-Z][a-z]+)?) is my ({_ROLES})\b")
_MY_ROLE_RE = re.compile(rf"\bmy ({_ROLES}) ([A-Z][a-z]+(?: [A-Z][a-z]+)?)\b")
_WORKS_AT_RE = re.compile(r"\b(?:works|worked) (?:at|for) ([A-Z][\w&]*(?: [A-Z][\w&]*)*)")

_ROLE_CATEGORY = {
    "colleague": "colleague", "boss": "colleague", "employee": "colleague", "mentor": "colleague",
    "friend": "friend", "neighbor": "friend", "roommate": "friend",
}


def _category(role: Optional[str]) -> Optional[str]:
    if not role:
        return None
    return _ROLE_CATEGORY.get(role.lower(), "family")


class RelationshipAgent(BaseAgent):
    name = "RelationshipAgent"
    entity_type = EntityType.PERSON.value
    component_keys = ("name", "relationship", "relationship_category", "organization", "contact")
    handlers = {"CREATE": "_create", "RETRIEVE": "_retrieve"}

    def _extract(self, task: AgentTask) -> dict[str, Any]:
        params = task.parameters
        text = task.original_query_part
        confidence: dict[str, float] = {}

        name = str(params.get("person_name") or params.get("name") or "").strip()
        role = params.get("relationship")
        if name:
            confidence["name"] = 1.0
        if role:
            confidence["relationship"] = 1.0

        if not (name and role):
            match = _IS_MY_RE.search(text)
            found_name, found_role = (match.group(1), match.group(2)) if match else (None, None)
            if not match:
                match = _MY_ROLE_RE.search(text)
                if match:
                    found_role, found_name = match.group(1), match.group(2)
            if not name and found_name:
                name, confidence["name"] = found_name, 0.7
            if not role and found_role:
                role, confidence["relationship"] = found_role.lower(), 0.7

        organization = params.get("organization")
        if not organization:
            match = _WORKS_AT_RE.search(text)
            organization = match.group(1) if match else None
            if organization:
                confidence["organization"] = 0.6

        contact = {k: params[k] for k in ("phone", "email", "birthday") if params.get(k)}
        return self._component(
            {
                "name": name or "Unknown Contact",
                "relationship": role,
                "relationship_category": _category(role),
                "organization": organization,
                "contact": contact,
            },
            confidence,
        )

    async def _create(self, task: AgentTask) -> dict[str, Any]:
        component = self._extract(task)
        stored = await self._persist(task, component["name"], component)
        return self._result(task, "added_contact", component=component, **stored)

    async def _retrieve(self, task: AgentTask) -> dict[str, Any]:
        contacts = self._tool_data(task, "contacts")
        if contacts is not None:
            return self._result(
                task, "retrieved",
                entity_type=self.entity_type, records=contacts, count=len(contacts),
            )
        return await self._list_entities(task)
