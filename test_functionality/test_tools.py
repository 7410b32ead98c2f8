from datetime import datetime, timedelta, timezone

import pytest
import requests

from agent.tools import search as search_module
from agent.tools import weather as weather_module
from agent.tools.calendar import CalendarTool
from agent.tools.contacts import ContactsTool
from agent.tools.database import DatabaseTool
from agent.tools.fitness import FitnessTool
from agent.tools.meditation import MeditationTool
from agent.tools.notes import NotesTool
from agent.tools.search import SearchTool
from agent.tools.weather import WeatherTool
from conftest import new_id


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self._payload = payload or {}
        self.status_code = status_code
        self.ok = status_code < 400
        self.text = str(payload)

    def json(self):
        return self._payload


# --- Store-backed tools ---

@pytest.mark.asyncio
async def test_database_tool_generates_ids(store):
    tool = DatabaseTool(store)
    saved = await tool.execute(
        operation="save_entity", user_id="u1", entity_id=None,
        entity_type="event", name="Concert", data={"venue": "Opera"},
    )
    assert saved.success
    entity_id = saved.data["entity_id"]
    assert (await store.find_entity(entity_id)).primary_name == "Concert"


@pytest.mark.asyncio
async def test_database_tool_reports_rejected_save(store):
    result = await DatabaseTool(store).execute(
        operation="save_entity", user_id="u1", entity_id=None,
        entity_type="unicorn", name="x", data={},
    )
    assert result.success is False
    assert result.error == "Entity was not saved"


@pytest.mark.asyncio
async def test_notes_save_list_and_search(store):
    tool = NotesTool(store)
    await tool.execute(request_type="save_note", user_id="u1", title="Verbs", content="ser/estar", topic="Spanish")
    await tool.execute(request_type="save_note", user_id="u1", title="Chords", content="C G Am F", tags=["guitar"])

    spanish = await tool.execute(request_type="get_notes", user_id="u1", topic="spanish")
    assert [n["primary_name"] for n in spanish.data] == ["Verbs"]

    tagged = await tool.execute(request_type="get_notes", user_id="u1", topic="guitar")
    assert [n["primary_name"] for n in tagged.data] == ["Chords"]

    found = await tool.execute(request_type="search_notes", user_id="u1", query="estar")
    assert len(found.data) == 1


@pytest.mark.asyncio
async def test_contacts_filters_and_lookup(store):
    for name, role in (("Sarah", "sister"), ("Tom", "friend"), ("Tina", "friend")):
        await store.save_new_entity(new_id(), "u1", "person", name, {"name": name, "relationship": role})

    tool = ContactsTool(store)
    friends = await tool.execute(request_type="get_contacts", user_id="u1", filters={"relationship": "friend"})
    assert {c["primary_name"] for c in friends.data} == {"Tom", "Tina"}

    found = await tool.execute(request_type="find_contact", user_id="u1", name="Sarah")
    assert [c["primary_name"] for c in found.data] == ["Sarah"]

    missing_name = await tool.execute(request_type="find_contact", user_id="u1", name=" ")
    assert missing_name.success is False


# --- Calendar, fitness and meditation ---

@pytest.mark.asyncio
async def test_calendar_create_persists_event(store):
    result = await CalendarTool(store).execute(
        operation="create", user_id="u1", title="Dentist", date="2026-11-06", time="09:30",
    )
    event = result.data
    assert result.success
    assert event["operation"] == "created"
    assert event["time"] == "09:30"
    assert "location" not in event

    saved = await store.find_entity(event["event_id"])
    assert saved.type == "event"
    assert saved.primary_name == "Dentist"
    assert saved.data["date"] == "2026-11-06"


@pytest.mark.asyncio
async def test_calendar_lookup_returns_stored_events_only(store):
    tool = CalendarTool(store)
    empty = await tool.execute(operation="lookup", user_id="u1", date="2026-11-06")
    assert empty.data["events"] == []

    await tool.execute(user_id="u1", title="Dentist", date="2026-11-06")
    await tool.execute(user_id="u1", title="Sam's birthday", date="2026-11-20", event_type="birthday")
    await tool.execute(user_id="u2", title="Dentist", date="2026-11-06")

    by_date = await tool.execute(operation="lookup", user_id="u1", date="2026-11-06")
    assert [e["title"] for e in by_date.data["events"]] == ["Dentist"]
    assert by_date.data["events"][0]["event_id"]
    assert "_metadata" not in by_date.data["events"][0]

    birthdays = await tool.execute(operation="lookup", user_id="u1", event_type="birthday")
    assert [e["title"] for e in birthdays.data["events"]] == ["Sam's birthday"]

    everything = await tool.execute(operation="lookup", user_id="u1")
    assert everything.data["count"] == 2


@pytest.mark.asyncio
async def test_fitness_summary(store):
    result = await FitnessTool(store).execute(
        daily_steps={"mon": 6000, "tue": 10000},
        sleep_hours={"mon": 7.0, "tue": 8.0, "wed": 6.0},
    )
    assert result.data["days"] == 3
    assert result.data["total_steps"] == 16000
    assert result.data["average_steps"] == 8000
    assert result.data["average_sleep_hours"] == 7.0
    assert result.data["average_exercise_minutes"] == 0.0


@pytest.mark.asyncio
async def test_fitness_records_and_lists_activities(store):
    tool = FitnessTool(store)
    recorded = await tool.execute(
        request_type="record_activity", user_id="u1", activity_type="running", duration=25, intensity="high",
    )
    assert recorded.success
    saved = await store.find_entity(recorded.data["activity_id"])
    assert saved.type == "health_record"
    assert saved.primary_name == "running (25 min)"

    await tool.execute(request_type="record_activity", user_id="u1", activity_type="yoga", duration=15)
    await store.save_new_entity(new_id(), "u1", "health_record", "Blood pressure", {"systolic": 120})

    listed = await tool.execute(request_type="get_activities", user_id="u1")
    assert listed.data["count"] == 2
    assert listed.data["total_minutes"] == 40
    assert {a["activity_type"] for a in listed.data["activities"]} == {"running", "yoga"}


@pytest.mark.asyncio
async def test_meditation_sessions_and_streak(store):
    tool = MeditationTool(store)
    today = datetime.now(timezone.utc).date()
    for days_ago, kind, minutes in ((0, "mindfulness", 15), (1, "mindfulness", 20), (3, "breath-focus", 10)):
        logged = await tool.execute(
            request_type="record_session", user_id="u1", meditation_type=kind,
            duration=minutes, session_date=today - timedelta(days=days_ago),
        )
        assert logged.data["status"] == "logged"

    # other habits are not sessions
    await store.save_new_entity(new_id(), "u1", "habit", "Morning run", {"practice": "running"})

    stats = (await tool.execute(request_type="get_sessions", user_id="u1")).data
    assert stats["session_count"] == 3
    assert stats["total_minutes"] == 45
    assert stats["streak"] == 2
    assert stats["favorite_practice"] == "mindfulness"


@pytest.mark.asyncio
async def test_meditation_suggestions_by_level(store):
    result = await MeditationTool(store).execute(request_type="suggestions", level="advanced")
    assert result.data["suggestions"][0] == "Silent Meditation - 30 minutes"
    assert len(result.data["suggestions"]) == 3


# --- HTTP-backed tools ---

@pytest.mark.asyncio
async def test_weather_without_key_fails_softly():
    result = await WeatherTool(api_key="").execute(location="Oslo")
    assert result.success is False
    assert "not configured" in result.error


@pytest.mark.asyncio
async def test_weather_parses_openweather_payload(monkeypatch):
    calls = []

    def fake_get(url, params=None, timeout=None):
        calls.append((params, timeout))
        return FakeResponse({
            "name": "Oslo",
            "main": {"temp": 3.5, "feels_like": 1.0, "humidity": 80},
            "weather": [{"main": "Snow", "description": "light snow"}],
        })

    monkeypatch.setattr(weather_module.requests, "get", fake_get)
    result = await WeatherTool(api_key="k", timeout=2.0).execute(location="Oslo")

    assert result.success
    assert result.data["temperature"] == 3.5
    assert result.data["condition"] == "Snow"
    assert calls[0][0]["q"] == "Oslo"
    assert calls[0][1] == 2.0


@pytest.mark.asyncio
async def test_weather_timeout_becomes_failed_result(monkeypatch):
    def fake_get(url, params=None, timeout=None):
        raise requests.exceptions.Timeout()

    monkeypatch.setattr(weather_module.requests, "get", fake_get)
    result = await WeatherTool(api_key="k", timeout=1.5).execute(location="Oslo")
    assert result.success is False
    assert "timed out after 1.5s" in result.error


@pytest.mark.asyncio
async def test_search_maps_items(monkeypatch):
    payload = {"items": [{"title": "Python", "snippet": "A language", "link": "https://python.org"}]}
    monkeypatch.setattr(search_module.requests, "get", lambda url, params=None, timeout=None: FakeResponse(payload))

    result = await SearchTool(api_key="k", cx="c").execute(query="python")
    assert result.data == {
        "query": "python",
        "results": [{"title": "Python", "snippet": "A language", "url": "https://python.org"}],
    }


@pytest.mark.asyncio
async def test_search_http_error_becomes_failed_result(monkeypatch):
    monkeypatch.setattr(
        search_module.requests, "get",
        lambda url, params=None, timeout=None: FakeResponse({"error": "quota"}, status_code=429),
    )
    result = await SearchTool(api_key="k", cx="c").execute(query="python")
    assert result.success is False
    assert "HTTP 429" in result.error
