"""
application.services.assistant - Entry point for one natural-language request.

Flow:
    1. Validate the inbound request (query present, within the length limit)
    2. Obtain a plan: the caller's plan if supplied, otherwise from triage
    3. Hand the plan to the Orchestrator

Only step 1 and a structurally broken caller plan raise; everything after
the Orchestrator starts is fail-soft.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from application.context import RequestContext
from application.orchestrator import Orchestrator
from domain.exceptions import InvalidRequestError
from domain.models import ExecutionPlan, FinalResponse
from domain.ports import TriagePlannerPort

logger = logging.getLogger(__name__)


class AssistantService:
    """Validate, plan, orchestrate. Stateless per call."""

    def __init__(
        self,
        orchestrator: Orchestrator,
        triage: TriagePlannerPort,
        max_query_length: int = 2000,
    ):
        self._orchestrator = orchestrator
        self._triage = triage
        self._max_query_length = max_query_length

    def validate_query(self, query: Any) -> str:
        """Return the stripped query.

        Raises:
            InvalidRequestError: If the query is missing, empty or too long.
        """
        if not isinstance(query, str) or not query.strip():
            raise InvalidRequestError(
                "Query is required",
                context={"code": "missing_query"},
            )
        query = query.strip()
        if len(query) > self._max_query_length:
            raise InvalidRequestError(
                f"Query is too long (maximum {self._max_query_length} characters)",
                context={"code": "query_too_long", "length": len(query)},
            )
        return query

    async def process(
        self,
        query: Any,
        ctx: RequestContext,
        plan: Optional[dict[str, Any]] = None,
    ) -> FinalResponse:
        """Run one request end to end.

        Raises:
            InvalidRequestError: For a malformed query.
            PlanValidationError: For a caller-supplied plan that is not usable.
        """
        query = self.validate_query(query)

        if plan is not None:
            execution_plan = ExecutionPlan.from_dict(plan)
            logger.info("[%s] Using caller-supplied plan", ctx.request_id)
        else:
            execution_plan = await self._triage.plan(query)
            logger.info(
                "[%s] Triage produced %d task(s)", ctx.request_id, len(execution_plan.tasks),
            )

        return await self._orchestrator.run(execution_plan, query, ctx)
