"""Meeting slot search and booking."""

import asyncio
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

import structlog

from leadgen.clients.calendar import create_event, is_time_slot_free
from leadgen.core.config import Settings
from leadgen.core.db import DEFAULT_DB_PATH, get_contact_by_id, has_unsubscribed, record_meeting
from leadgen.outreach.status import MANUAL_BOOKING_FROM, ContactStatus

log = structlog.get_logger()


def candidate_slots(now: datetime, settings: Settings) -> list[datetime]:
    """Slot start times over the next N business days, starting tomorrow."""
    cal = settings.calendar
    weekdays = settings.sending.business_hours.weekdays

    slots = []
    day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    business_days = 0
    while business_days < cal.search_business_days:
        day += timedelta(days=1)
        if day.weekday() not in weekdays:
            continue
        business_days += 1
        slots.extend(day.replace(hour=hour) for hour in cal.slot_hours)
    return slots


async def find_next_available_slot(
    settings: Settings,
    now: Optional[datetime] = None,
) -> Optional[datetime]:
    """First candidate slot with no busy block on the calendar, or None."""
    cal = settings.calendar
    timeout = settings.sending.request_timeout_seconds
    duration = timedelta(minutes=cal.duration_minutes)

    for slot in candidate_slots(now or datetime.now(), settings):
        try:
            free = await asyncio.wait_for(
                is_time_slot_free(
                    cal.calendar_id, slot, slot + duration, cal.timezone,
                    settings.gmail.connected_account_id or None,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            log.warning("freebusy_timeout", slot=slot.isoformat())
            continue
        except Exception as e:
            log.error("freebusy_check_failed", slot=slot.isoformat(), error=str(e))
            continue

        if free:
            return slot

    log.info("no_free_slot_found", business_days=cal.search_business_days)
    return None


def build_event(contact, meeting_time: datetime, settings: Settings) -> dict:
    """Calendar event arguments for an intro call with `contact`."""
    full_name = " ".join(p for p in (contact["first_name"], contact["last_name"]) if p)
    company = contact["company_name"] or "your team"
    sender_company = settings.gmail.company_name or "Intro call"

    return {
        "summary": f"{sender_company} - {company}",
        "description": (
            f"Introduction call with {full_name} from {company}\n\n"
            "Agenda:\n"
            f"• Quick intro to {sender_company}\n"
            "• Your current Oracle PBCS/Hyperion setup\n"
            "• Challenges you're facing\n"
            "• How we might help\n\n"
            f"Contact: {contact['email']}"
        ),
        "start_datetime": meeting_time.isoformat(),
        "event_duration_hour": settings.calendar.duration_minutes // 60,
        "event_duration_minutes": settings.calendar.duration_minutes % 60,
        "timezone": settings.calendar.timezone,
        "attendees": [contact["email"]],
        "create_meeting_room": True,
    }


async def create_meeting(
    contact_id: int,
    settings: Settings,
    db_path: Path = DEFAULT_DB_PATH,
    preferred_times: Optional[list[datetime]] = None,
    now: Optional[datetime] = None,
) -> Optional[dict]:
    """Book a meeting with a contact.

    Uses the first preferred time when given, otherwise the next free slot.
    Returns dict with meeting_id, event_id, meet_link and meeting_time, or None.
    """
    contact = get_contact_by_id(db_path, contact_id)
    if not contact:
        log.warning("contact_not_found", contact_id=contact_id)
        return None

    if ContactStatus(contact["status"]) not in MANUAL_BOOKING_FROM:
        log.warning("meeting_already_scheduled", contact_id=contact_id)
        return None

    # The event invite is an email too
    if contact["do_not_contact"] or has_unsubscribed(db_path, contact_id):
        log.warning("meeting_blocked_unsubscribed", contact_id=contact_id)
        return None

    if preferred_times:
        meeting_time = preferred_times[0]
    else:
        meeting_time = await find_next_available_slot(settings, now)

    if not meeting_time:
        log.warning("no_meeting_slot", contact_id=contact_id)
        return None

    event = build_event(contact, meeting_time, settings)

    try:
        result = await asyncio.wait_for(
            create_event(
                settings.calendar.calendar_id, event,
                settings.gmail.connected_account_id or None,
            ),
            timeout=settings.sending.request_timeout_seconds,
        )
    except asyncio.TimeoutError:
        log.warning("create_event_timeout", contact_id=contact_id)
        return None
    except Exception as e:
        log.error("create_event_failed", contact_id=contact_id, error=str(e))
        return None

    meeting_id = record_meeting(
        db_path, contact_id,
        calendar_event_id=result["event_id"],
        meeting_time=meeting_time,
        duration_minutes=settings.calendar.duration_minutes,
        meet_link=result.get("meet_link"),
    )

    log.info("meeting_scheduled", contact_id=contact_id, email=contact["email"],
             meeting_time=meeting_time.isoformat())

    return {
        "meeting_id": meeting_id,
        "event_id": result["event_id"],
        "meet_link": result.get("meet_link"),
        "meeting_time": meeting_time,
    }


async def suggest_meeting(
    contact_id: int,
    settings: Settings,
    db_path: Path = DEFAULT_DB_PATH,
    now: Optional[datetime] = None,
) -> Optional[dict]:
    """Follow up on an interested reply with a meeting slot.

    Books the slot when calendar.auto_book is set; otherwise only reports it.
    """
    if settings.calendar.auto_book:
        return await create_meeting(contact_id, settings, db_path, now=now)

    slot = await find_next_available_slot(settings, now)
    if slot:
        log.info("meeting_slot_suggested", contact_id=contact_id, slot=slot.isoformat())
        return {"meeting_id": None, "event_id": None, "meet_link": None, "meeting_time": slot}
    return None
