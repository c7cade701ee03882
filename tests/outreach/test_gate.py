import tempfile
from datetime import datetime, timedelta
from pathlib import Path

from leadgen.core.config import BusinessHoursConfig, SendingConfig
from leadgen.core.db import init_db, insert_contact, record_email_sent
from leadgen.outreach.gate import check_send_gate, is_business_hours, remaining_quota

# 2024-06-04 is a Tuesday, 2024-06-08 a Saturday
TUESDAY_10AM = datetime(2024, 6, 4, 10, 0)
SATURDAY_10AM = datetime(2024, 6, 8, 10, 0)


def _send_n(db_path: Path, n: int, sent_at: datetime) -> None:
    contact_id = insert_contact(db_path, None, f"bulk{sent_at:%j%H}@example.com", "Bulk", None, None, None, 90, "hunter", "ready")
    for i in range(n):
        record_email_sent(db_path, contact_id, "subj", "body", f"msg_{sent_at:%j}_{i}", "t", sent_at=sent_at)


def test_business_hours_rejects_weekend():
    assert is_business_hours(SATURDAY_10AM, BusinessHoursConfig()) is False


def test_business_hours_accepts_weekday_inside_window():
    assert is_business_hours(TUESDAY_10AM, BusinessHoursConfig()) is True


def test_business_hours_window_is_half_open():
    hours = BusinessHoursConfig(start_hour=9, end_hour=17)
    assert is_business_hours(TUESDAY_10AM.replace(hour=9), hours) is True
    assert is_business_hours(TUESDAY_10AM.replace(hour=8, minute=59), hours) is False
    assert is_business_hours(TUESDAY_10AM.replace(hour=16, minute=59), hours) is True
    assert is_business_hours(TUESDAY_10AM.replace(hour=17), hours) is False


def test_remaining_quota_counts_only_today():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        init_db(db_path)

        _send_n(db_path, 3, TUESDAY_10AM - timedelta(days=1))
        _send_n(db_path, 4, TUESDAY_10AM.replace(hour=9))

        remaining, sent_today = remaining_quota(db_path, 10, TUESDAY_10AM)

        assert sent_today == 4
        assert remaining == 6


def test_gate_blocks_when_daily_limit_reached():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        init_db(db_path)
        _send_n(db_path, 10, TUESDAY_10AM.replace(hour=9))

        decision = check_send_gate(SendingConfig(daily_limit=10), db_path, TUESDAY_10AM)

        assert decision.allowed is False
        assert decision.remaining == 0
        assert decision.reason == "daily_limit_reached"

        # Hours override does not lift the quota
        decision = check_send_gate(SendingConfig(daily_limit=10), db_path, TUESDAY_10AM, ignore_hours=True)
        assert decision.allowed is False
        assert decision.remaining == 0


def test_gate_blocks_outside_business_hours():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        init_db(db_path)

        decision = check_send_gate(SendingConfig(daily_limit=10), db_path, SATURDAY_10AM)

        assert decision.allowed is False
        assert decision.remaining == 10
        assert decision.reason == "outside_business_hours"


def test_gate_allows_inside_window_with_quota():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        init_db(db_path)
        _send_n(db_path, 2, TUESDAY_10AM.replace(hour=9))

        decision = check_send_gate(SendingConfig(daily_limit=10), db_path, TUESDAY_10AM)

        assert decision.allowed is True
        assert decision.remaining == 8
        assert decision.sent_today == 2
