"""Pydantic models for REST API request/response validation."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


# --- Processing ---

class ProcessBody(BaseModel):
    # Validated by AssistantService so a missing/empty query gets the
    # standard error object rather than a schema error.
    query: Optional[Any] = None
    user_id: Optional[str] = None
    plan: Optional[dict[str, Any]] = Field(
        default=None,
        description="Execution plan to run instead of calling triage.",
    )


class TaskResultOut(BaseModel):
    task_id: str
    executed_by: str
    result: dict[str, Any]


class ProcessOut(BaseModel):
    status: str
    ai_message_to_user: str
    triage_plan: dict[str, Any]
    execution_results: list[TaskResultOut]
    timestamp: float


class ErrorOut(BaseModel):
    status: str = "error"
    message: str
    code: str
    success: bool = False


# --- Administration ---

class PermissionsBody(BaseModel):
    agent_name: str = Field(..., min_length=1)
    tool_names: list[str]
    replace: bool = True


class PermissionsOut(BaseModel):
    agent_name: str
    tools: list[str]


# --- Knowledge graph ---

class EntityOut(BaseModel):
    id: str
    user_id: str
    type: str
    primary_name: str
    data: dict[str, Any]
    created_at: str
    updated_at: str


class RelationshipOut(BaseModel):
    id: str
    user_id: str
    source_entity_id: str
    target_entity_id: str
    type: str
    strength: float
    metadata: Optional[dict[str, Any]] = None
    created_at: str
    source_name: str = ""
    source_type: str = ""
    target_name: str = ""
    target_type: str = ""
