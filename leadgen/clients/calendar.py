"""Google Calendar free/busy lookup and event creation via Composio."""

from datetime import datetime
from typing import Optional

import structlog

from leadgen.clients.composio import execute_tool

log = structlog.get_logger()


async def is_time_slot_free(
    calendar_id: str,
    start: datetime,
    end: datetime,
    timezone: str,
    connected_account_id: Optional[str] = None,
) -> bool:
    """True if the calendar has no busy block overlapping [start, end)."""
    data = await execute_tool(
        "GOOGLECALENDAR_FIND_FREE_SLOTS",
        {
            "time_min": start.isoformat(),
            "time_max": end.isoformat(),
            "timezone": timezone,
            "items": [calendar_id],
        },
        connected_account_id,
    )

    calendars = data.get("calendars") or data.get("response_data", {}).get("calendars", {})
    busy = calendars.get(calendar_id, {}).get("busy", [])
    return len(busy) == 0


async def create_event(
    calendar_id: str,
    event: dict,
    connected_account_id: Optional[str] = None,
) -> dict:
    """Insert an event, notify attendees and request a Meet link.

    Returns dict with event_id and meet_link.
    """
    log.info("creating_calendar_event", summary=event.get("summary"))

    data = await execute_tool(
        "GOOGLECALENDAR_CREATE_EVENT",
        {
            "calendar_id": calendar_id,
            "send_updates": "all",
            "conference_data_version": 1,
            **event,
        },
        connected_account_id,
    )

    data = data.get("response_data", data)
    entry_points = (data.get("conferenceData") or {}).get("entryPoints") or []
    return {
        "event_id": data.get("id"),
        "meet_link": data.get("hangoutLink") or (entry_points[0].get("uri") if entry_points else None),
    }
