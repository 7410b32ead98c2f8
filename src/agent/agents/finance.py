"""
agent.agents.finance - Expense logging and lookup.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from agent.base import BaseAgent
from domain.entities import EntityType
from domain.models import AgentTask

_AMOUNT_RE = re.compile(r"\$\s*(\d+(?:\.\d{1,2})?)|(\d+(?:\.\d{1,2})?)\s*(?:dollars|usd|bucks)", re.I)

_CATEGORY_KEYWORDS = {
    "food": ("lunch", "dinner", "breakfast", "coffee", "groceries", "restaurant", "snack"),
    "transport": ("uber", "taxi", "bus", "train", "gas", "fuel", "parking"),
    "housing": ("rent", "mortgage", "electricity", "water bill", "internet"),
    "entertainment": ("movie", "concert", "netflix", "game", "tickets"),
    "health": ("pharmacy", "doctor", "gym", "medicine"),
    "shopping": ("clothes", "shoes", "amazon", "gift"),
}


def _parse_amount(value: Any) -> Optional[float]:
    try:
        return float(str(value).replace(",", "").lstrip("$"))
    except (TypeError, ValueError):
        return None


def _categorize(text: str) -> Optional[str]:
    lowered = text.lower()
    for category, words in _CATEGORY_KEYWORDS.items():
        if any(word in lowered for word in words):
            return category
    return None


class FinanceAgent(BaseAgent):
    name = "FinanceAgent"
    entity_type = EntityType.TRANSACTION.value
    component_keys = ("amount", "currency", "description", "category", "transaction_type", "date")
    handlers = {"CREATE": "_create", "RETRIEVE": "_retrieve"}

    def _extract(self, task: AgentTask) -> dict[str, Any]:
        params = task.parameters
        text = task.original_query_part
        confidence: dict[str, float] = {}

        amount = _parse_amount(params.get("amount"))
        if amount is not None:
            confidence["amount"] = 1.0
        else:
            match = _AMOUNT_RE.search(text)
            amount = float(match.group(1) or match.group(2)) if match else 0.0
            confidence["amount"] = 0.7 if match else 0.0

        description = str(params.get("description") or "").strip() or "Unspecified"

        category = params.get("category")
        if category:
            confidence["category"] = 1.0
        else:
            category = _categorize(f"{description} {text}")
            confidence["category"] = 0.6 if category else 0.0

        return self._component(
            {
                "amount": amount,
                "currency": params.get("currency", "USD"),
                "description": description,
                "category": category or "other",
                "transaction_type": params.get("transaction_type", "expense"),
                "date": params.get("date"),
            },
            confidence,
        )

    async def _create(self, task: AgentTask) -> dict[str, Any]:
        component = self._extract(task)
        stored = await self._persist(task, component["description"], component)
        return self._result(task, "logged_expense", component=component, **stored)

    async def _retrieve(self, task: AgentTask) -> dict[str, Any]:
        result = await self._list_entities(task)
        if result["status"] == "success":
            result["total_amount"] = round(
                sum(float(r["data"].get("amount") or 0) for r in result["records"]), 2,
            )
        return result
