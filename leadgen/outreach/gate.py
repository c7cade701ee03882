"""Send gating: business-hours window and daily quota."""

from datetime import datetime
from pathlib import Path
from typing import Optional

import structlog
from pydantic import BaseModel

from leadgen.core.config import BusinessHoursConfig, SendingConfig
from leadgen.core.db import DEFAULT_DB_PATH, count_sent_today

log = structlog.get_logger()


class GateDecision(BaseModel):
    allowed: bool
    remaining: int
    sent_today: int
    reason: Optional[str] = None


def is_business_hours(now: datetime, hours: BusinessHoursConfig) -> bool:
    """True if `now` falls on a configured weekday within [start_hour, end_hour)."""
    if now.weekday() not in hours.weekdays:
        return False
    return hours.start_hour <= now.hour < hours.end_hour


def remaining_quota(
    db_path: Path,
    daily_limit: int,
    now: Optional[datetime] = None
) -> tuple[int, int]:
    """Return (remaining, sent_today) for the calendar date of `now`."""
    now = now or datetime.now()
    sent_today = count_sent_today(db_path, now.date())
    return max(0, daily_limit - sent_today), sent_today


def check_send_gate(
    sending: SendingConfig,
    db_path: Path = DEFAULT_DB_PATH,
    now: Optional[datetime] = None,
    ignore_hours: bool = False,
) -> GateDecision:
    """Decide whether sending is permitted right now and how many sends remain."""
    now = now or datetime.now()
    remaining, sent_today = remaining_quota(db_path, sending.daily_limit, now)

    if remaining <= 0:
        log.info("daily_limit_reached", sent=sent_today, limit=sending.daily_limit)
        return GateDecision(
            allowed=False, remaining=0, sent_today=sent_today, reason="daily_limit_reached"
        )

    if not ignore_hours and not is_business_hours(now, sending.business_hours):
        log.info("outside_business_hours", now=now.isoformat())
        return GateDecision(
            allowed=False, remaining=remaining, sent_today=sent_today,
            reason="outside_business_hours",
        )

    return GateDecision(allowed=True, remaining=remaining, sent_today=sent_today)
