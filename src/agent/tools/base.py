"""
agent.tools.base - Base tool interface and result container.

All capability providers inherit from BaseTool and return ToolResult.
Tools are shared by every agent, so they keep no per-caller state.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel


@dataclass
class ToolResult:
    """Result returned by a tool execution.

    success:  False when the tool ran but could not do what was asked.
    data:     Structured payload handed to the agent.
    error:    Human-readable failure reason when success is False.
    """
    success: bool
    data: Any = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "status": "success" if self.success else "error",
            "data": self.data,
        }
        if self.error:
            result["error"] = self.error
        return result


class BaseTool(ABC):
    """Abstract base for all tools."""

    name: str
    description: str

    @abstractmethod
    async def execute(self, **kwargs) -> ToolResult:
        """Execute the tool with arguments already validated against get_schema()."""
        ...

    @abstractmethod
    def get_schema(self) -> type[BaseModel]:
        """Return the Pydantic schema for this tool's input arguments."""
        ...
