import pytest

from agent.base import BaseAgent
from application.context import RequestContext
from application.orchestrator import Orchestrator
from conftest import LUNCH_PLAN, EchoTool
from domain.models import DEFAULT_USER_MESSAGE, ExecutionPlan


class ExplodingAgent(BaseAgent):
    name = "ExplodingAgent"
    handlers = {"CREATE": "_create"}

    async def _create(self, task):
        raise RuntimeError("kaboom")


def _plan(*tasks, **extra) -> ExecutionPlan:
    return ExecutionPlan.from_dict({"tasks": list(tasks), **extra})


@pytest.mark.asyncio
async def test_lunch_expense_and_unknown_agent(orchestrator, store):
    plan = ExecutionPlan.from_dict(LUNCH_PLAN)
    response = await orchestrator.run(plan, "I spent $25 on lunch", RequestContext(user_id="u1"))

    assert response.status == "success"
    assert response.ai_message_to_user == DEFAULT_USER_MESSAGE
    assert response.triage_plan == LUNCH_PLAN
    assert [r.task_id for r in response.execution_results] == ["t1", "t2"]

    expense = response.execution_results[0]
    assert expense.executed_by == "FinanceAgent"
    assert expense.result["status"] == "success"
    assert expense.result["persisted"] is True
    assert expense.result["message"] == "FinanceAgent: Successfully logged expense of $25 for 'lunch'."
    assert expense.result["component"]["category"] == "food"

    saved = await store.find_entity(expense.result["entity_id"])
    assert saved.type == "transaction"
    assert saved.user_id == "u1"
    assert saved.data["amount"] == 25.0

    missing = response.execution_results[1]
    assert missing.result["status"] == "agent_not_found"
    assert missing.result["message"] == "Agent 'UnknownAgent' not found."


@pytest.mark.asyncio
async def test_suggested_response_is_used(orchestrator):
    plan = _plan(suggested_response="Noted!")
    response = await orchestrator.run(plan)
    assert response.ai_message_to_user == "Noted!"
    assert response.execution_results == ()


@pytest.mark.asyncio
async def test_task_without_agent_goes_to_generalist(orchestrator):
    plan = _plan({"intent": "ANSWER", "original_query_part": "what's up?"})
    response = await orchestrator.run(plan)

    result = response.execution_results[0]
    assert result.task_id == "task_1"
    assert result.executed_by == "GeneralistAgent"
    assert result.result["action"] == "answered"


@pytest.mark.asyncio
async def test_denied_tool_becomes_unavailable_marker(orchestrator, tool_registry):
    # GeneralistAgent is not granted contacts
    plan = _plan({
        "target_agent": "GeneralistAgent",
        "intent": "ANSWER",
        "tools": [{"tool_name": "contacts", "tool_parameters": {"operation": "get_contacts"}}],
    })
    response = await orchestrator.run(plan)

    result = response.execution_results[0].result
    assert result["status"] == "success"
    assert result["component"]["unavailable_tools"] == ["contacts"]
    assert tool_registry.security_events()[-1]["tool"] == "contacts"


@pytest.mark.asyncio
async def test_tool_params_carry_request_user(orchestrator, tool_registry):
    echo = EchoTool()
    tool_registry.register_tool("echo", lambda: echo)
    tool_registry.configure_permissions("GeneralistAgent", ["echo"], replace=False)

    plan = _plan({
        "target_agent": "GeneralistAgent",
        "tools": [{"tool_name": "echo", "tool_parameters": {"text": "ping"}}],
    })
    response = await orchestrator.run(plan, ctx=RequestContext(user_id="alice"))

    assert echo.last_params == {"text": "ping", "user_id": "alice"}
    tool_data = response.execution_results[0].result["component"]["tool_data"]
    assert tool_data["echo"]["status"] == "success"


@pytest.mark.asyncio
async def test_failing_agent_does_not_stop_later_tasks(agent_registry, tool_registry):
    agent_registry.register("ExplodingAgent", lambda: ExplodingAgent(tool_registry))
    orchestrator = Orchestrator(agent_registry, tool_registry)

    plan = _plan(
        {"task_id": "a", "target_agent": "ExplodingAgent", "intent": "CREATE"},
        {"task_id": "b", "target_agent": "FinanceAgent", "intent": "CREATE",
         "parameters": {"amount": 12, "description": "coffee"}},
    )
    response = await orchestrator.run(plan)

    first, second = response.execution_results
    assert first.result["status"] == "error"
    assert "kaboom" in first.result["error"]
    assert second.result["status"] == "success"
    assert response.status == "success"


@pytest.mark.asyncio
async def test_agent_that_cannot_be_built_fails_only_its_task(agent_registry, tool_registry, store):
    def broken_factory():
        raise RuntimeError("agent construction failed")

    agent_registry.register("BrokenAgent", broken_factory)
    orchestrator = Orchestrator(agent_registry, tool_registry)

    plan = _plan(
        {"task_id": "a", "target_agent": "BrokenAgent", "intent": "CREATE"},
        {"task_id": "b", "target_agent": "FinanceAgent", "intent": "CREATE",
         "parameters": {"amount": 8, "description": "tea"}},
    )
    response = await orchestrator.run(plan, "tea", RequestContext(user_id="u1"))

    broken, finance = response.execution_results
    assert broken.result["status"] == "error"
    assert "agent construction failed" in broken.result["error"]
    assert finance.result["status"] == "success"
    assert len(await store.find_entities_by_type("u1", "transaction")) == 1


@pytest.mark.asyncio
async def test_unsupported_intent_is_reported(orchestrator):
    plan = _plan({"target_agent": "FinanceAgent", "intent": "delete"})
    response = await orchestrator.run(plan)

    result = response.execution_results[0].result
    assert result["status"] == "unsupported_intent"
    assert result["message"] == "FinanceAgent can't handle intent 'DELETE'."


@pytest.mark.asyncio
async def test_revoked_database_access_reports_not_saved(orchestrator, tool_registry, store):
    tool_registry.configure_permissions("FinanceAgent", ["calendar", "notes"])
    plan = _plan({
        "target_agent": "FinanceAgent",
        "intent": "CREATE",
        "parameters": {"amount": 9.5, "description": "snack"},
    })
    response = await orchestrator.run(plan, ctx=RequestContext(user_id="u1"))

    result = response.execution_results[0].result
    assert result["status"] == "success"
    assert result["persisted"] is False
    assert result["persistence"]["status"] == "unavailable"
    assert result["message"].endswith("(Not saved: database access denied.)")
    assert await store.find_entities_by_type("u1", "transaction") == []


@pytest.mark.asyncio
async def test_social_and_spiritual_tasks_use_their_tools(orchestrator, store):
    plan = _plan(
        {"task_id": "cal", "target_agent": "PlannerAgent", "intent": "CREATE",
         "parameters": {"task_title": "Book venue"},
         "tools": [{"tool_name": "calendar", "tool_parameters": {"title": "Venue visit", "date": "2026-11-10"}}]},
        {"task_id": "party", "target_agent": "SocialAgent", "intent": "CREATE",
         "parameters": {"event_name": "Dana's graduation", "event_type": "graduation"},
         "tools": [{"tool_name": "calendar", "tool_parameters": {"operation": "lookup"}}]},
        {"task_id": "calm", "target_agent": "SpiritualAgent", "intent": "CREATE",
         "parameters": {"practice_type": "meditation"},
         "tools": [{"tool_name": "meditation", "tool_parameters": {"request_type": "suggestions"}}]},
    )
    response = await orchestrator.run(plan, "plan things", RequestContext(user_id="u1"))
    planner, social, spiritual = (r.result for r in response.execution_results)

    assert planner["component"]["calendar_event_id"]
    assert social["component"]["planning_lead_days"] == 30
    assert [e["title"] for e in social["component"]["upcoming_events"]] == ["Venue visit"]
    assert social["message"] == "SocialAgent: Noted Dana's graduation. Start planning about 30 days ahead."
    assert spiritual["component"]["practice_suggestion"] == "Body Scan Meditation - 5 minutes"
    assert spiritual["message"].startswith("SpiritualAgent: Saved your reflection.")

    events = await store.find_entities_by_type("u1", "event")
    assert {e.primary_name for e in events} == {"Venue visit", "Dana's graduation"}
