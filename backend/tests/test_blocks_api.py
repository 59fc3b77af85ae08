from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from anchor.db.deps import get_db
from anchor.db.models.daily_progress import DailyProgress
from anchor.db.models.schedule_action_log import ScheduleActionLog
from anchor.db.models.time_block import TimeBlock
from anchor.main import app
from anchor.services.calendar.factory import get_calendar_provider
from anchor.services.calendar.memory import InMemoryCalendarProvider


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    TimeBlock.__table__.create(bind=engine)
    DailyProgress.__table__.create(bind=engine)
    ScheduleActionLog.__table__.create(bind=engine)
    calendar = InMemoryCalendarProvider()

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_calendar_provider] = lambda: calendar
    with TestClient(app) as test_client:
        yield test_client, TestingSessionLocal, calendar
    app.dependency_overrides.clear()


def _create(client: TestClient, title: str, start: str, end: str, **extra):
    return client.post(
        "/blocks",
        json={"title": title, "start_time": f"2024-01-01T{start}:00Z", "end_time": f"2024-01-01T{end}:00Z", **extra},
    )


def test_create_block_returns_saved_block(client) -> None:
    test_client, SessionLocal, _ = client

    response = _create(test_client, "Focus", "09:00", "10:30", notes="Write the report", category="work")

    assert response.status_code == 201
    body = response.json()
    assert body["changed"] is True
    assert body["warnings"] == []
    assert body["request_id"]
    block = body["block"]
    assert block["title"] == "Focus"
    assert block["status"] == "not_started"
    assert block["scheduled_day"] == "2024-01-01"
    assert block["duration_minutes"] == 90
    assert block["calendar"] == {"state": "unlinked", "event_id": None, "calendar_id": None, "last_modified": None}

    session = SessionLocal()
    try:
        assert session.query(TimeBlock).count() == 1
    finally:
        session.close()


def test_overlapping_block_returns_conflict(client) -> None:
    test_client, _, _ = client
    _create(test_client, "Focus", "09:00", "10:30")

    response = _create(test_client, "Call", "10:00", "10:15")

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert [conflict["title"] for conflict in detail["conflicts"]] == ["Focus"]
    assert detail["conflicts"][0]["start_time"].startswith("2024-01-01T09:00")
    assert "'Focus' (09:00-10:30)" in detail["message"]


def test_invalid_block_returns_every_error(client) -> None:
    test_client, _, _ = client

    response = _create(test_client, " ", "10:00", "09:00")

    assert response.status_code == 422
    errors = response.json()["detail"]["errors"]
    assert "Title cannot be empty" in errors
    assert "End time must be after start time" in errors


def test_list_blocks_for_a_day_in_start_order(client) -> None:
    test_client, _, _ = client
    _create(test_client, "Afternoon", "14:00", "15:00")
    _create(test_client, "Morning", "09:00", "10:00")

    response = test_client.get("/blocks", params={"day": "2024-01-01"})

    assert response.status_code == 200
    assert [block["title"] for block in response.json()["blocks"]] == ["Morning", "Afternoon"]
    assert test_client.get("/blocks", params={"day": "2024-01-02"}).json()["blocks"] == []


def test_conflict_check_is_read_only(client) -> None:
    test_client, SessionLocal, _ = client
    created = _create(test_client, "Focus", "09:00", "10:00").json()["block"]

    overlapping = test_client.get(
        "/blocks/conflicts",
        params={"start": "2024-01-01T09:30:00Z", "end": "2024-01-01T10:30:00Z"},
    )
    excluded = test_client.get(
        "/blocks/conflicts",
        params={"start": "2024-01-01T09:30:00Z", "end": "2024-01-01T10:30:00Z", "exclude_id": created["id"]},
    )

    assert overlapping.json()["has_conflict"] is True
    assert overlapping.json()["conflicts"][0]["title"] == "Focus"
    assert excluded.json()["has_conflict"] is False


def test_patch_updates_fields_and_links_calendar(client) -> None:
    test_client, _, calendar = client
    block_id = _create(test_client, "Focus", "09:00", "10:00").json()["block"]["id"]

    response = test_client.patch(
        f"/blocks/{block_id}",
        json={"title": "Deep Focus", "link_to_calendar": True, "calendar_id": "work"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["block"]["title"] == "Deep Focus"
    assert body["calendar_status"] == "linked"
    linkage = body["block"]["calendar"]
    assert linkage["state"] == "linked"
    assert linkage["calendar_id"] == "work"
    assert calendar.get_event(linkage["event_id"]).title == "Deep Focus"


def test_patch_can_clear_optional_notes(client) -> None:
    test_client, _, _ = client
    block_id = _create(test_client, "Focus", "09:00", "10:00", notes="draft").json()["block"]["id"]

    response = test_client.patch(f"/blocks/{block_id}", json={"notes": None})

    assert response.status_code == 200
    assert response.json()["block"]["notes"] is None


def test_calendar_failure_is_reported_as_warning(client) -> None:
    test_client, _, calendar = client
    calendar.fail_operations.add("create")

    response = _create(test_client, "Focus", "09:00", "10:00", link_to_calendar=True, calendar_id="work")

    assert response.status_code == 201
    assert response.json()["warnings"] == ["Saved, but couldn't add to Calendar."]
    assert response.json()["block"]["calendar"]["state"] == "unlinked"


def test_unknown_block_returns_404(client) -> None:
    test_client, _, _ = client

    assert test_client.patch(f"/blocks/{uuid4()}", json={"title": "Nope"}).status_code == 404
    assert test_client.delete(f"/blocks/{uuid4()}").status_code == 404
    assert test_client.post(f"/blocks/{uuid4()}/status", json={"status": "completed"}).status_code == 404


def test_delete_block(client) -> None:
    test_client, _, _ = client
    block_id = _create(test_client, "Focus", "09:00", "10:00").json()["block"]["id"]

    response = test_client.delete(f"/blocks/{block_id}")

    assert response.status_code == 200
    assert response.json()["block"] is None
    assert test_client.get("/blocks", params={"day": "2024-01-01"}).json()["blocks"] == []


def test_status_changes_follow_the_state_machine(client) -> None:
    test_client, _, _ = client
    block_id = _create(test_client, "Focus", "09:00", "10:00").json()["block"]["id"]

    completed = test_client.post(f"/blocks/{block_id}/status", json={"status": "completed"})
    back = test_client.post(f"/blocks/{block_id}/status", json={"status": "not_started"})

    assert completed.status_code == 200
    assert completed.json()["changed"] is True
    assert completed.json()["block"]["status"] == "completed"
    assert back.json()["changed"] is False
    assert "reset" in back.json()["reason"]
    assert back.json()["block"]["status"] == "completed"


def test_unknown_status_is_rejected(client) -> None:
    test_client, _, _ = client
    block_id = _create(test_client, "Focus", "09:00", "10:00").json()["block"]["id"]

    response = test_client.post(f"/blocks/{block_id}/status", json={"status": "paused"})

    assert response.status_code == 422
