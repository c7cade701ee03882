import asyncio
import tempfile
from datetime import datetime
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from leadgen.core.config import SendingConfig, Settings
from leadgen.core.db import (
    count_emails_to_contact,
    get_connection,
    get_contact_by_id,
    init_db,
    insert_company,
    insert_contact,
    insert_reply,
    record_email_sent,
)
from leadgen.core.errors import ProviderError
from leadgen.outreach.sender import send_daily_batch, send_email

TUESDAY_10AM = datetime(2024, 6, 4, 10, 0)
SATURDAY_10AM = datetime(2024, 6, 8, 10, 0)


def _settings(**sending) -> Settings:
    return Settings(sending=SendingConfig(delay_seconds=0, **sending))


def _ready(db_path: Path, email: str, confidence: int) -> int:
    company = insert_company(db_path, "Acme Corp")
    return insert_contact(db_path, company, email, "Sam", "Ray", "Controller", None, confidence, "hunter", "ready")


def _sent_rows(db_path: Path) -> list:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM emails_sent ORDER BY id").fetchall()
    conn.close()
    return rows


@pytest.mark.asyncio
async def test_send_email_records_and_marks_contacted():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        init_db(db_path)
        contact_id = _ready(db_path, "sam@acme.com", 90)

        with patch("leadgen.outreach.sender.send_new_email", new_callable=AsyncMock) as mock_send:
            mock_send.return_value = {"thread_id": "thread_1", "message_id": "msg_1"}
            outcome = await send_email(contact_id, _settings(), db_path, Path(tmpdir))

        assert outcome == "sent"
        assert mock_send.await_args.kwargs["to"] == "sam@acme.com"
        assert "unsubscribe" in mock_send.await_args.kwargs["body"]

        contact = get_contact_by_id(db_path, contact_id)
        assert contact["status"] == "contacted"
        assert contact["gmail_message_id"] == "msg_1"
        assert contact["last_contact_date"] is not None

        rows = _sent_rows(db_path)
        assert len(rows) == 1
        assert rows[0]["thread_id"] == "thread_1"


@pytest.mark.asyncio
async def test_send_email_provider_error_marks_failed():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        init_db(db_path)
        contact_id = _ready(db_path, "sam@acme.com", 90)

        with patch("leadgen.outreach.sender.send_new_email", new_callable=AsyncMock) as mock_send:
            mock_send.side_effect = ProviderError("GMAIL_SEND_EMAIL", "quota")
            outcome = await send_email(contact_id, _settings(), db_path, Path(tmpdir))

        assert outcome == "failed"
        assert get_contact_by_id(db_path, contact_id)["status"] == "failed"
        assert _sent_rows(db_path) == []


@pytest.mark.asyncio
async def test_send_email_timeout_leaves_contact_ready():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        init_db(db_path)
        contact_id = _ready(db_path, "sam@acme.com", 90)

        with patch("leadgen.outreach.sender.send_new_email", new_callable=AsyncMock) as mock_send:
            mock_send.side_effect = asyncio.TimeoutError()
            outcome = await send_email(contact_id, _settings(), db_path, Path(tmpdir))

        assert outcome == "skipped"
        assert get_contact_by_id(db_path, contact_id)["status"] == "ready"


@pytest.mark.asyncio
async def test_send_email_rejected_after_unsubscribe():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        init_db(db_path)
        contact_id = _ready(db_path, "sam@acme.com", 90)
        insert_reply(db_path, contact_id, "in_1", "Re", "sam@acme.com", "unsubscribe", "unsubscribe")

        with patch("leadgen.outreach.sender.send_new_email", new_callable=AsyncMock) as mock_send:
            outcome = await send_email(contact_id, _settings(), db_path, Path(tmpdir))

        assert outcome == "blocked"
        mock_send.assert_not_called()
        assert count_emails_to_contact(db_path, contact_id) == 0


@pytest.mark.asyncio
async def test_batch_sends_highest_confidence_first_within_quota():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        init_db(db_path)
        low = _ready(db_path, "low@acme.com", 75)
        tie_first = _ready(db_path, "tie1@acme.com", 90)
        tie_second = _ready(db_path, "tie2@acme.com", 90)
        best = _ready(db_path, "best@acme.com", 99)
        _ready(db_path, "weak@acme.com", 50)  # below min_confidence

        with patch("leadgen.outreach.sender.send_new_email", new_callable=AsyncMock) as mock_send:
            mock_send.side_effect = [
                {"thread_id": f"t{i}", "message_id": f"m{i}"} for i in range(3)
            ]
            results = await send_daily_batch(
                _settings(daily_limit=3), db_path, Path(tmpdir), now=TUESDAY_10AM
            )

        sent_to = [call.kwargs["to"] for call in mock_send.await_args_list]
        assert sent_to == ["best@acme.com", "tie1@acme.com", "tie2@acme.com"]
        assert results["sent"] == 3
        assert results["remaining"] == 0
        assert get_contact_by_id(db_path, low)["status"] == "ready"
        assert get_contact_by_id(db_path, best)["status"] == "contacted"
        assert get_contact_by_id(db_path, tie_first)["status"] == "contacted"
        assert get_contact_by_id(db_path, tie_second)["status"] == "contacted"


@pytest.mark.asyncio
async def test_batch_continues_after_single_failure():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        init_db(db_path)
        first = _ready(db_path, "first@acme.com", 95)
        second = _ready(db_path, "second@acme.com", 90)

        with patch("leadgen.outreach.sender.send_new_email", new_callable=AsyncMock) as mock_send:
            mock_send.side_effect = [
                Exception("500 from provider"),
                {"thread_id": "t2", "message_id": "m2"},
            ]
            results = await send_daily_batch(_settings(), db_path, Path(tmpdir), now=TUESDAY_10AM)

        assert results["failed"] == 1
        assert results["sent"] == 1
        assert get_contact_by_id(db_path, first)["status"] == "failed"
        assert get_contact_by_id(db_path, second)["status"] == "contacted"


@pytest.mark.asyncio
async def test_batch_outside_business_hours_sends_nothing():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        init_db(db_path)
        _ready(db_path, "sam@acme.com", 90)

        with patch("leadgen.outreach.sender.send_new_email", new_callable=AsyncMock) as mock_send:
            results = await send_daily_batch(_settings(), db_path, Path(tmpdir), now=SATURDAY_10AM)

        mock_send.assert_not_called()
        assert results["sent"] == 0
        assert results["reason"] == "outside_business_hours"


@pytest.mark.asyncio
async def test_batch_respects_exhausted_quota():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        init_db(db_path)
        contact_id = _ready(db_path, "old@acme.com", 90)
        for i in range(10):
            record_email_sent(db_path, contact_id, "s", "b", f"m{i}", "t", sent_at=TUESDAY_10AM.replace(hour=9))
        _ready(db_path, "new@acme.com", 90)

        with patch("leadgen.outreach.sender.send_new_email", new_callable=AsyncMock) as mock_send:
            results = await send_daily_batch(
                _settings(daily_limit=10), db_path, Path(tmpdir), now=TUESDAY_10AM
            )

        mock_send.assert_not_called()
        assert results["remaining"] == 0
        assert results["reason"] == "daily_limit_reached"


@pytest.mark.asyncio
async def test_batch_can_be_stopped_between_contacts():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        init_db(db_path)
        _ready(db_path, "a@acme.com", 95)
        _ready(db_path, "b@acme.com", 90)

        calls = []

        def stop_after_first():
            return len(calls) >= 1

        async def fake_send(**kwargs):
            calls.append(kwargs["to"])
            return {"thread_id": "t", "message_id": f"m{len(calls)}"}

        with patch("leadgen.outreach.sender.send_new_email", side_effect=fake_send):
            results = await send_daily_batch(
                _settings(), db_path, Path(tmpdir), now=TUESDAY_10AM, should_stop=stop_after_first
            )

        assert calls == ["a@acme.com"]
        assert results["sent"] == 1
        assert results["reason"] == "stopped"


@pytest.mark.asyncio
async def test_batch_waits_between_sends_but_not_before_first():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        init_db(db_path)
        for i, confidence in enumerate((95, 90, 85)):
            _ready(db_path, f"c{i}@acme.com", confidence)

        events = []

        async def fake_send(**kwargs):
            events.append("send")
            return {"thread_id": "t", "message_id": f"m{len(events)}"}

        async def fake_sleep(seconds):
            events.append("sleep")

        settings = Settings(sending=SendingConfig(delay_seconds=5))

        with patch("leadgen.outreach.sender.send_new_email", side_effect=fake_send), \
                patch("leadgen.outreach.sender.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            mock_sleep.side_effect = fake_sleep
            results = await send_daily_batch(settings, db_path, Path(tmpdir), now=TUESDAY_10AM)

        assert results["sent"] == 3
        assert mock_sleep.await_count == 2
        assert all(call.args == (5,) for call in mock_sleep.await_args_list)
        assert events == ["send", "sleep", "send", "sleep", "send"]


@pytest.mark.asyncio
async def test_batch_reports_timeout_as_possibly_unrecorded():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        init_db(db_path)
        contact_id = _ready(db_path, "slow@acme.com", 90)

        with patch("leadgen.outreach.sender.send_new_email", new_callable=AsyncMock) as mock_send, \
                patch("leadgen.outreach.sender.log") as mock_log:
            mock_send.side_effect = asyncio.TimeoutError()
            results = await send_daily_batch(_settings(), db_path, Path(tmpdir), now=TUESDAY_10AM)

        assert results["skipped"] == 1
        assert results["errors"] == ["slow@acme.com: timed out, send may be unrecorded"]
        events = [call.args[0] for call in mock_log.warning.call_args_list]
        assert "send_timeout_possibly_unrecorded" in events
        assert get_contact_by_id(db_path, contact_id)["status"] == "ready"
