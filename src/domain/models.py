"""
domain.models - Value objects for the orchestration pipeline.

These are immutable data containers with no business logic and no
dependencies on infrastructure (no LangChain, no SQLite, no FastAPI).

    - ExecutionPlan / ExecutionTask / ToolRequest  (triage plan input)
    - AgentTask                                    (what an agent receives)
    - ToolDenied                                   (permission/availability marker)
    - TaskResult / FinalResponse                   (orchestrator output)
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from domain.exceptions import PlanValidationError

# Capability used when a task names no agent at all
FALLBACK_AGENT = "GeneralistAgent"
DEFAULT_USER_MESSAGE = "Okay, I'll take care of that."


# ---------------------------------------------------------------------------
# Triage plan
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ToolRequest:
    """A single tool invocation requested by a plan task."""
    tool_name: str
    tool_parameters: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Optional[ToolRequest]:
        """Return None for entries without a usable tool name."""
        name = raw.get("tool_name") or raw.get("name") or ""
        if not isinstance(name, str) or not name.strip():
            return None
        params = raw.get("tool_parameters") or raw.get("parameters") or {}
        if not isinstance(params, Mapping):
            params = {}
        return cls(tool_name=name.strip(), tool_parameters=dict(params))


@dataclass(frozen=True)
class ExecutionTask:
    """One unit of work in a triage plan. Consumed once by the Orchestrator."""
    task_id: str
    target_agent: str
    intent: str = ""
    parameters: dict[str, Any] = field(default_factory=dict)
    requested_tools: tuple[ToolRequest, ...] = ()
    original_query_part: str = ""

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any], position: int) -> ExecutionTask:
        """Build a task, filling in what a semantically incomplete plan left out."""
        task_id = raw.get("task_id")
        if task_id is None or str(task_id).strip() == "":
            task_id = f"task_{position + 1}"

        agent = raw.get("target_agent")
        if not isinstance(agent, str) or not agent.strip():
            agent = FALLBACK_AGENT

        params = raw.get("parameters")
        if not isinstance(params, Mapping):
            params = {}

        tools_raw = raw.get("tools", raw.get("requested_tools", []))
        tools: list[ToolRequest] = []
        if isinstance(tools_raw, list):
            for entry in tools_raw:
                if isinstance(entry, Mapping):
                    request = ToolRequest.from_dict(entry)
                    if request is not None:
                        tools.append(request)

        return cls(
            task_id=str(task_id),
            target_agent=agent.strip(),
            intent=str(raw.get("intent") or "").strip().upper(),
            parameters=dict(params),
            requested_tools=tuple(tools),
            original_query_part=str(raw.get("original_query_part") or ""),
        )


@dataclass(frozen=True)
class ExecutionPlan:
    """Structured output of the triage step.

    raw keeps the plan exactly as received so it can be echoed back.
    """
    tasks: tuple[ExecutionTask, ...] = ()
    suggested_response: str = ""
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Any) -> ExecutionPlan:
        """Parse a plan dict.

        Raises:
            PlanValidationError: If the plan is not an object or its tasks are not a list.
        """
        if not isinstance(raw, Mapping):
            raise PlanValidationError(
                "Execution plan must be a JSON object",
                context={"plan_type": type(raw).__name__},
            )
        tasks_raw = raw.get("tasks")
        if not isinstance(tasks_raw, list):
            raise PlanValidationError(
                "Execution plan is missing a 'tasks' list",
                context={"keys": sorted(raw.keys())},
            )

        tasks = tuple(
            ExecutionTask.from_dict(entry, position)
            for position, entry in enumerate(tasks_raw)
            if isinstance(entry, Mapping)
        )
        suggested = raw.get("suggested_response") or raw.get("response") or ""
        return cls(tasks=tasks, suggested_response=str(suggested), raw=dict(raw))


# ---------------------------------------------------------------------------
# Agent input
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AgentTask:
    """What an Agent receives: the plan task plus tool results and caller identity."""
    intent: str
    parameters: dict[str, Any] = field(default_factory=dict)
    tool_results: dict[str, Any] = field(default_factory=dict)
    original_query_part: str = ""
    user_id: str = "default_user"
    task_id: str = ""


# ---------------------------------------------------------------------------
# Tool access marker
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ToolDenied:
    """Returned instead of a tool instance when access is refused.

    Falsy, so callers can write `if tool:`.
    reason: "permission_denied" or "not_registered".
    """
    tool_name: str
    agent_name: str
    reason: str = "permission_denied"

    def __bool__(self) -> bool:
        return False

    def to_marker(self) -> dict[str, Any]:
        """Marker merged into a task's tool_results."""
        return {
            "status": "unavailable",
            "tool": self.tool_name,
            "reason": self.reason,
        }


# ---------------------------------------------------------------------------
# Orchestrator output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TaskResult:
    """Result of one plan task, in plan order."""
    task_id: str
    executed_by: str
    result: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "executed_by": self.executed_by,
            "result": self.result,
        }


@dataclass(frozen=True)
class FinalResponse:
    """Assembled response for one request."""
    ai_message_to_user: str
    triage_plan: dict[str, Any]
    execution_results: tuple[TaskResult, ...] = ()
    status: str = "success"
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "ai_message_to_user": self.ai_message_to_user,
            "triage_plan": self.triage_plan,
            "execution_results": [r.to_dict() for r in self.execution_results],
            "timestamp": self.timestamp,
        }
