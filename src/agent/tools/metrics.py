"""
agent.tools.metrics - Usage and security records kept by the ToolRegistry.

Process-lifetime only; nothing here is persisted.
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class ToolMetrics:
    """Per-tool call counters with a bounded ring of recent errors."""
    tool_name: str
    error_log_size: int = 20
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    avg_latency_ms: float = 0.0
    last_used: Optional[float] = None
    errors: deque = field(init=False)

    def __post_init__(self):
        self.errors = deque(maxlen=self.error_log_size)

    @property
    def success_rate(self) -> float:
        if self.total_calls == 0:
            return 1.0
        return self.successful_calls / self.total_calls

    def record_success(self, latency_ms: float) -> None:
        self._record_call(latency_ms)
        self.successful_calls += 1

    def record_failure(self, latency_ms: float, error: str) -> None:
        self._record_call(latency_ms)
        self.failed_calls += 1
        self.errors.append({"timestamp": self.last_used, "error": error})

    def _record_call(self, latency_ms: float) -> None:
        self.total_calls += 1
        # running average over every call, failed ones included
        self.avg_latency_ms += (latency_ms - self.avg_latency_ms) / self.total_calls
        self.last_used = time.time()

    def snapshot(self) -> dict[str, Any]:
        return {
            "total_calls": self.total_calls,
            "successful_calls": self.successful_calls,
            "failed_calls": self.failed_calls,
            "success_rate": round(self.success_rate, 4),
            "avg_latency_ms": round(self.avg_latency_ms, 3),
            "last_used": self.last_used,
            "recent_errors": list(self.errors),
        }


@dataclass(frozen=True)
class SecurityEvent:
    """One refused tool request."""
    agent: str
    tool: str
    reason: str = "permission_denied"
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "agent": self.agent,
            "tool": self.tool,
            "reason": self.reason,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class PermissionChange:
    """Audit record for one configure_permissions call."""
    agent: str
    previous: frozenset
    current: frozenset
    replace: bool
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "agent": self.agent,
            "previous": sorted(self.previous),
            "current": sorted(self.current),
            "replace": self.replace,
            "timestamp": self.timestamp,
        }
