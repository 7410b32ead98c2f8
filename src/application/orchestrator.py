"""
application.orchestrator - Walk an execution plan and dispatch its tasks.

Fail-soft per task: an unknown agent, a denied tool or an exception inside
one task becomes that task's result and never stops the remaining tasks.
Tasks run strictly in plan order, one at a time.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from agent.registry import AgentRegistry
from agent.tools.registry import ToolRegistry
from application.context import RequestContext
from application.presenter import Presenter
from domain.exceptions import UnknownAgentError
from domain.models import (
    DEFAULT_USER_MESSAGE,
    AgentTask,
    ExecutionPlan,
    ExecutionTask,
    FinalResponse,
    TaskResult,
)

logger = logging.getLogger(__name__)


class Orchestrator:
    """Resolve each task to an agent, gather its tools, run it, collect results."""

    def __init__(
        self,
        agents: AgentRegistry,
        tools: ToolRegistry,
        presenter: Optional[Presenter] = None,
    ):
        self._agents = agents
        self._tools = tools
        self._presenter = presenter or Presenter()

    async def run(
        self,
        plan: ExecutionPlan,
        raw_input: str = "",
        ctx: Optional[RequestContext] = None,
    ) -> FinalResponse:
        ctx = ctx or RequestContext()
        logger.info(
            "[%s] Running plan with %d task(s) for user %s",
            ctx.request_id, len(plan.tasks), ctx.user_id,
        )

        results = []
        for task in plan.tasks:
            result = await self._run_task(task, raw_input, ctx)
            results.append(TaskResult(task.task_id, task.target_agent, result))

        return FinalResponse(
            ai_message_to_user=plan.suggested_response or DEFAULT_USER_MESSAGE,
            triage_plan=plan.raw,
            execution_results=tuple(results),
        )

    async def _run_task(
        self,
        task: ExecutionTask,
        raw_input: str,
        ctx: RequestContext,
    ) -> dict[str, Any]:
        agent_name = task.target_agent
        try:
            agent = self._agents.resolve(agent_name)
        except UnknownAgentError as e:
            logger.warning("[%s] %s (task %s)", ctx.request_id, e, task.task_id)
            return self._presenter.render(
                agent_name, {"status": "agent_not_found", "agent": agent_name},
            )
        except Exception as e:
            logger.exception(
                "[%s] Could not build %s for task %s", ctx.request_id, agent_name, task.task_id,
            )
            return self._presenter.render(
                agent_name, {"status": "error", "agent": agent_name, "error": str(e)},
            )

        try:
            tool_results = await self._gather_tools(task, agent_name, ctx)
            agent_task = AgentTask(
                intent=task.intent,
                parameters=task.parameters,
                tool_results=tool_results,
                original_query_part=task.original_query_part or raw_input,
                user_id=ctx.user_id,
                task_id=task.task_id,
            )
            result = await agent.execute(agent_task)
        except Exception as e:
            logger.exception(
                "[%s] Task %s failed in %s", ctx.request_id, task.task_id, agent_name,
            )
            result = {"status": "error", "agent": agent_name, "error": str(e)}

        if not isinstance(result, dict):
            result = {"status": "success", "agent": agent_name, "output": result}
        return self._presenter.render(agent_name, result)

    async def _gather_tools(
        self,
        task: ExecutionTask,
        agent_name: str,
        ctx: RequestContext,
    ) -> dict[str, Any]:
        tool_results: dict[str, Any] = {}
        for request in task.requested_tools:
            params = dict(request.tool_parameters)
            params.setdefault("user_id", ctx.user_id)

            outcome = await self._tools.invoke(request.tool_name, agent_name, params)
            if not outcome:
                tool_results[request.tool_name] = outcome.to_marker()
            else:
                tool_results[request.tool_name] = outcome.to_dict()
        return tool_results
