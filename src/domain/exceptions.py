"""
domain.exceptions - Custom exception hierarchy for the BotMojo assistant core.

All domain-level errors inherit from DomainError so callers can catch
broad or specific exceptions as needed.
"""

from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Base exception for all domain-level errors."""

    def __init__(self, message: str = "", context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.context: dict[str, Any] = dict(context or {})


class ValidationError(DomainError):
    """Raised when entity data is malformed (bad UUID, type, JSON, empty fields)."""


class AccessDeniedError(DomainError):
    """Raised by callers that choose to escalate a tool permission denial.

    The ToolRegistry itself never raises this; it returns a ToolDenied marker.
    """


class StoreConnectionError(DomainError):
    """Raised when the entity store cannot (re)connect after all retries."""


class ReferentialIntegrityError(DomainError):
    """Raised when a relationship endpoint does not reference an existing entity."""


class TransactionError(DomainError):
    """Raised on transaction misuse (nested begin, commit without begin)."""


class EntityStoreError(DomainError):
    """Raised when a storage driver call fails.

    Carries the failing operation and the query text so the raw driver
    exception never escapes the store boundary.
    """

    def __init__(self, operation: str, query: str = "", cause: Optional[BaseException] = None):
        detail = f": {cause}" if cause is not None else ""
        super().__init__(
            f"Entity store operation '{operation}' failed{detail}",
            context={"operation": operation, "query": query},
        )
        self.operation = operation
        self.query = query


class ToolError(DomainError):
    """Raised when a tool cannot be instantiated or fails irrecoverably."""


class UnknownAgentError(DomainError):
    """Raised when a plan task targets an agent that is not registered."""

    def __init__(self, agent_name: str):
        super().__init__(f"Agent '{agent_name}' not found", context={"agent": agent_name})
        self.agent_name = agent_name


class UnknownIntentError(DomainError):
    """Raised when an agent is asked to handle an intent it does not support."""

    def __init__(self, agent_name: str, intent: str):
        super().__init__(
            f"{agent_name} can't handle intent '{intent}'",
            context={"agent": agent_name, "intent": intent},
        )
        self.agent_name = agent_name
        self.intent = intent


class PlanValidationError(DomainError):
    """Raised when a triage plan is structurally unusable (not an object, no task list)."""


class InvalidRequestError(DomainError):
    """Raised when an inbound request is malformed (missing or oversized query)."""


class TriageError(DomainError):
    """Raised when the triage planner cannot reach its LLM provider."""
