"""
agent.tools.registry - Permission-gated tool registration, access and invocation.

Every capability access goes through the registry:
    - get_tool() checks the grant matrix and returns a shared instance
      (created lazily on first successful grant) or a falsy ToolDenied
    - invoke() validates parameters, runs the tool and records metrics
    - configure_permissions() is the only way to change grants, and is audited
"""

from __future__ import annotations

import logging
import time
from collections import deque
from typing import Any, Callable, Iterable, Optional, Union

from pydantic import ValidationError as SchemaValidationError

from agent.tools.base import BaseTool, ToolResult
from agent.tools.metrics import PermissionChange, SecurityEvent, ToolMetrics
from agent.tools.permissions import PermissionConfig
from domain.exceptions import ToolError
from domain.models import ToolDenied

logger = logging.getLogger(__name__)

ToolFactory = Callable[[], BaseTool]


class ToolRegistry:
    """Grant matrix + lazy singleton factory + usage metrics for all tools."""

    def __init__(
        self,
        permissions: Optional[PermissionConfig] = None,
        error_log_size: int = 20,
        security_log_size: int = 100,
        degraded_rate: float = 0.8,
        unhealthy_rate: float = 0.9,
        min_calls: int = 10,
    ):
        permissions = permissions or PermissionConfig.default()
        self._grants: dict[str, frozenset[str]] = dict(permissions.grants)

        self._factories: dict[str, ToolFactory] = {}
        self._instances: dict[str, BaseTool] = {}
        self._metrics: dict[str, ToolMetrics] = {}

        self._error_log_size = error_log_size
        self._security_events: deque[SecurityEvent] = deque(maxlen=security_log_size)
        self._audit: list[PermissionChange] = []

        self._degraded_rate = degraded_rate
        self._unhealthy_rate = unhealthy_rate
        self._min_calls = min_calls

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_tool(self, name: str, factory: ToolFactory) -> None:
        """Register a factory. Re-registering evicts any cached instance."""
        self._factories[name] = factory
        self._instances.pop(name, None)
        self._metrics.setdefault(name, ToolMetrics(name, self._error_log_size))
        logger.debug("Registered tool: %s", name)

    def names(self) -> list[str]:
        return list(self._factories)

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def has_access(self, agent_name: str, tool_name: str) -> bool:
        return tool_name in self._grants.get(agent_name, frozenset())

    def available_tools(self, agent_name: str) -> list[str]:
        """Registered tools the agent is granted, in registration order."""
        granted = self._grants.get(agent_name, frozenset())
        return [name for name in self._factories if name in granted]

    def get_tool(self, tool_name: str, agent_name: str) -> Union[BaseTool, ToolDenied]:
        """Return the shared tool instance, or a falsy ToolDenied.

        Raises:
            ToolError: If the tool's factory fails to build it.
        """
        if tool_name not in self._factories:
            return self._deny(tool_name, agent_name, "not_registered")
        if not self.has_access(agent_name, tool_name):
            return self._deny(tool_name, agent_name, "permission_denied")

        tool = self._instances.get(tool_name)
        if tool is not None:
            return tool

        try:
            tool = self._factories[tool_name]()
        except Exception as e:
            self._metrics[tool_name].record_failure(0.0, f"factory failed: {e}")
            logger.error("Failed to create tool '%s': %s", tool_name, e)
            raise ToolError(
                f"Tool '{tool_name}' could not be created: {e}",
                context={"tool": tool_name, "agent": agent_name},
            ) from e

        self._instances[tool_name] = tool
        logger.info("Created tool instance '%s' (first request by %s)", tool_name, agent_name)
        return tool

    def _deny(self, tool_name: str, agent_name: str, reason: str) -> ToolDenied:
        self._security_events.append(SecurityEvent(agent_name, tool_name, reason))
        logger.warning(
            "Tool access denied: agent=%s tool=%s reason=%s",
            agent_name, tool_name, reason,
        )
        return ToolDenied(tool_name=tool_name, agent_name=agent_name, reason=reason)

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------

    async def invoke(
        self,
        tool_name: str,
        agent_name: str,
        params: Optional[dict[str, Any]] = None,
    ) -> Union[ToolResult, ToolDenied]:
        """Resolve the tool for the agent and run it with params.

        A tool exception or invalid parameters become ToolResult(success=False).
        """
        tool = self.get_tool(tool_name, agent_name)
        if not tool:
            return tool

        metrics = self._metrics[tool_name]
        start = time.perf_counter()
        try:
            args = tool.get_schema().model_validate(params or {})
            result = await tool.execute(**args.model_dump())
        except SchemaValidationError as e:
            result = ToolResult(success=False, error=f"Invalid parameters: {e.error_count()} error(s)")
            logger.warning("Invalid parameters for tool '%s': %s", tool_name, e)
        except Exception as e:
            result = ToolResult(success=False, error=str(e))
            logger.exception("Tool '%s' raised during execution", tool_name)

        latency_ms = (time.perf_counter() - start) * 1000
        if result.success:
            metrics.record_success(latency_ms)
        else:
            metrics.record_failure(latency_ms, result.error or "unknown error")
        return result

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def configure_permissions(
        self,
        agent_name: str,
        tool_names: Iterable[str],
        replace: bool = True,
    ) -> frozenset[str]:
        """Replace (or extend) an agent's grants. Returns the new grant set."""
        previous = self._grants.get(agent_name, frozenset())
        requested = frozenset(tool_names)
        current = requested if replace else previous | requested
        self._grants[agent_name] = current

        self._audit.append(PermissionChange(agent_name, previous, current, replace))
        logger.info(
            "Permissions for %s changed: %s -> %s",
            agent_name, sorted(previous), sorted(current),
        )
        return current

    def reset_tool(self, tool_name: str) -> bool:
        """Evict a cached instance. Metrics are kept. False if nothing was cached."""
        evicted = self._instances.pop(tool_name, None) is not None
        if evicted:
            logger.info("Tool instance '%s' reset", tool_name)
        return evicted

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def metrics_snapshot(self) -> dict[str, dict[str, Any]]:
        return {name: m.snapshot() for name, m in self._metrics.items()}

    def security_events(self) -> list[dict[str, Any]]:
        return [e.to_dict() for e in self._security_events]

    def audit_log(self) -> list[dict[str, Any]]:
        return [c.to_dict() for c in self._audit]

    def health(self) -> dict[str, Any]:
        """Classify overall tool health from call success rates."""
        issues: list[str] = []
        status = "healthy"

        total = sum(m.total_calls for m in self._metrics.values())
        succeeded = sum(m.successful_calls for m in self._metrics.values())
        aggregate_rate = succeeded / total if total else 1.0

        for name, m in self._metrics.items():
            if m.total_calls > self._min_calls and m.success_rate < self._degraded_rate:
                status = "degraded"
                issues.append(f"Tool '{name}' success rate {m.success_rate:.0%}")

        if total > self._min_calls and aggregate_rate < self._unhealthy_rate:
            status = "unhealthy"
            issues.append(f"Overall success rate {aggregate_rate:.0%}")

        return {
            "status": status,
            "total_calls": total,
            "success_rate": round(aggregate_rate, 4),
            "cached_instances": sorted(self._instances),
            "issues": issues,
            "tools": self.metrics_snapshot(),
        }
