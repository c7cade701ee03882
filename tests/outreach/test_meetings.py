import tempfile
from datetime import datetime
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from leadgen.core.config import CalendarConfig, Settings
from leadgen.core.db import (
    get_contact_by_id,
    get_meetings_for_contact,
    init_db,
    insert_company,
    insert_contact,
    insert_reply,
    update_contact_status,
)
from leadgen.outreach.meetings import (
    build_event,
    candidate_slots,
    create_meeting,
    find_next_available_slot,
    suggest_meeting,
)

TUESDAY_10AM = datetime(2024, 6, 4, 10, 0)
FRIDAY_3PM = datetime(2024, 6, 7, 15, 0)


def _replied(db_path: Path) -> int:
    company_id = insert_company(db_path, "Acme Corp")
    contact_id = insert_contact(db_path, company_id, "cfo@acme.com", "Dana", "Lee", "CFO", None, 95, "hunter", "ready")
    update_contact_status(db_path, contact_id, "replied")
    return contact_id


def test_candidate_slots_skip_weekend_and_start_tomorrow():
    slots = candidate_slots(FRIDAY_3PM, Settings())

    assert len(slots) == 5 * 4
    assert slots[0] == datetime(2024, 6, 10, 9, 0)
    assert slots[-1] == datetime(2024, 6, 14, 16, 0)
    assert all(slot.weekday() < 5 for slot in slots)


@pytest.mark.asyncio
async def test_next_available_slot_skips_busy_and_failing_slots():
    responses = [False, Exception("rate limited"), True]

    async def fake_free(calendar_id, start, end, timezone, connected_account_id=None):
        result = responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    with patch("leadgen.outreach.meetings.is_time_slot_free", side_effect=fake_free):
        slot = await find_next_available_slot(Settings(), TUESDAY_10AM)

    # Wed 9:00 busy, 11:00 errored, 14:00 free
    assert slot == datetime(2024, 6, 5, 14, 0)


@pytest.mark.asyncio
async def test_next_available_slot_none_when_calendar_full():
    with patch("leadgen.outreach.meetings.is_time_slot_free", new_callable=AsyncMock) as mock_free:
        mock_free.return_value = False
        slot = await find_next_available_slot(Settings(), TUESDAY_10AM)

    assert slot is None
    assert mock_free.await_count == 20


@pytest.mark.asyncio
async def test_create_meeting_books_first_free_slot():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        init_db(db_path)
        contact_id = _replied(db_path)

        with patch("leadgen.outreach.meetings.is_time_slot_free", new_callable=AsyncMock) as mock_free, \
                patch("leadgen.outreach.meetings.create_event", new_callable=AsyncMock) as mock_create:
            mock_free.return_value = True
            mock_create.return_value = {"event_id": "evt_1", "meet_link": "https://meet.google.com/abc"}
            result = await create_meeting(contact_id, Settings(), db_path, now=TUESDAY_10AM)

        assert result["event_id"] == "evt_1"
        assert result["meeting_time"] == datetime(2024, 6, 5, 9, 0)

        event = mock_create.await_args.args[1]
        assert event["attendees"] == ["cfo@acme.com"]
        assert event["create_meeting_room"] is True

        assert get_contact_by_id(db_path, contact_id)["status"] == "meeting_scheduled"
        meetings = get_meetings_for_contact(db_path, contact_id)
        assert len(meetings) == 1
        assert meetings[0]["meet_link"] == "https://meet.google.com/abc"


@pytest.mark.asyncio
async def test_create_meeting_uses_preferred_time():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        init_db(db_path)
        contact_id = _replied(db_path)
        preferred = datetime(2024, 6, 6, 11, 0)

        with patch("leadgen.outreach.meetings.is_time_slot_free", new_callable=AsyncMock) as mock_free, \
                patch("leadgen.outreach.meetings.create_event", new_callable=AsyncMock) as mock_create:
            mock_create.return_value = {"event_id": "evt_2", "meet_link": None}
            result = await create_meeting(contact_id, Settings(), db_path, preferred_times=[preferred])

        mock_free.assert_not_called()
        assert result["meeting_time"] == preferred


@pytest.mark.asyncio
async def test_create_meeting_refuses_already_scheduled_contact():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        init_db(db_path)
        contact_id = _replied(db_path)
        update_contact_status(db_path, contact_id, "meeting_scheduled")

        with patch("leadgen.outreach.meetings.create_event", new_callable=AsyncMock) as mock_create:
            result = await create_meeting(
                contact_id, Settings(), db_path, preferred_times=[datetime(2024, 6, 6, 11, 0)]
            )

        assert result is None
        mock_create.assert_not_called()


@pytest.mark.asyncio
async def test_create_meeting_failure_leaves_contact_replied():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        init_db(db_path)
        contact_id = _replied(db_path)

        with patch("leadgen.outreach.meetings.create_event", new_callable=AsyncMock) as mock_create:
            mock_create.side_effect = Exception("calendar unavailable")
            result = await create_meeting(
                contact_id, Settings(), db_path, preferred_times=[datetime(2024, 6, 6, 11, 0)]
            )

        assert result is None
        assert get_contact_by_id(db_path, contact_id)["status"] == "replied"
        assert get_meetings_for_contact(db_path, contact_id) == []


@pytest.mark.asyncio
async def test_suggest_meeting_without_auto_book_only_reports_slot():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        init_db(db_path)
        contact_id = _replied(db_path)
        settings = Settings(calendar=CalendarConfig(auto_book=False))

        with patch("leadgen.outreach.meetings.is_time_slot_free", new_callable=AsyncMock) as mock_free, \
                patch("leadgen.outreach.meetings.create_event", new_callable=AsyncMock) as mock_create:
            mock_free.return_value = True
            result = await suggest_meeting(contact_id, settings, db_path, now=TUESDAY_10AM)

        mock_create.assert_not_called()
        assert result["meeting_id"] is None
        assert result["meeting_time"] == datetime(2024, 6, 5, 9, 0)
        assert get_contact_by_id(db_path, contact_id)["status"] == "replied"


def test_build_event_uses_configured_duration_and_timezone():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        init_db(db_path)
        contact_id = _replied(db_path)
        settings = Settings(calendar=CalendarConfig(duration_minutes=45, timezone="Europe/London"))

        event = build_event(get_contact_by_id(db_path, contact_id), datetime(2024, 6, 5, 9, 0), settings)

        assert event["event_duration_hour"] == 0
        assert event["event_duration_minutes"] == 45
        assert event["timezone"] == "Europe/London"
        assert "Dana Lee" in event["description"]
        assert "Acme Corp" in event["summary"]


@pytest.mark.asyncio
async def test_create_meeting_refuses_unsubscribed_contact():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        init_db(db_path)
        contact_id = _replied(db_path)
        insert_reply(db_path, contact_id, "in_1", "Re", "cfo@acme.com", "stop", "unsubscribe")

        with patch("leadgen.outreach.meetings.create_event", new_callable=AsyncMock) as mock_create:
            result = await create_meeting(
                contact_id, Settings(), db_path, preferred_times=[datetime(2024, 6, 6, 11, 0)]
            )

        assert result is None
        mock_create.assert_not_called()
        assert get_contact_by_id(db_path, contact_id)["status"] == "replied"
