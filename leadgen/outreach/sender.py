"""Rate-limited outreach batch sending."""

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

import structlog

from leadgen.clients.gmail import send_new_email
from leadgen.core.config import DEFAULT_CONFIG_PATH, Settings
from leadgen.core.db import (
    DEFAULT_DB_PATH,
    get_contact_by_id,
    get_contacts_ready_for_outreach,
    record_email_sent,
    update_contact_status,
)
from leadgen.core.errors import SendBlocked
from leadgen.outreach.composer import generate_email
from leadgen.outreach.gate import check_send_gate
from leadgen.outreach.lifecycle import ensure_can_send
from leadgen.outreach.status import ContactStatus

log = structlog.get_logger()

SENT = "sent"
FAILED = "failed"
SKIPPED = "skipped"
BLOCKED = "blocked"


async def send_email(
    contact_id: int,
    settings: Settings,
    db_path: Path = DEFAULT_DB_PATH,
    config_path: Path = DEFAULT_CONFIG_PATH,
) -> str:
    """Send the outreach email to one contact.

    Returns one of "sent", "failed" (provider error, contact marked failed),
    "skipped" (timeout, contact stays ready) or "blocked" (lifecycle guard).
    """
    contact = get_contact_by_id(db_path, contact_id)
    if not contact:
        log.warning("contact_not_found", contact_id=contact_id)
        return BLOCKED

    try:
        ensure_can_send(db_path, contact)
    except SendBlocked as e:
        log.warning("send_blocked", contact_id=contact_id, reason=e.reason)
        return BLOCKED

    subject, body = generate_email(contact, settings, config_path)
    log.info("sending_email", email=contact["email"], confidence=contact["confidence"])

    try:
        result = await asyncio.wait_for(
            send_new_email(
                to=contact["email"],
                subject=subject,
                body=body,
                connected_account_id=settings.gmail.connected_account_id or None,
            ),
            timeout=settings.sending.request_timeout_seconds,
        )
    except asyncio.TimeoutError:
        # The executor call outlives the cancelled coroutine, so the email may
        # still go out without an emails_sent row. The contact stays ready.
        log.warning("send_timeout_possibly_unrecorded", email=contact["email"],
                    contact_id=contact_id, subject=subject)
        return SKIPPED
    except Exception as e:
        log.error("send_failed", email=contact["email"], error=str(e))
        update_contact_status(db_path, contact_id, ContactStatus.FAILED.value)
        return FAILED

    record_email_sent(
        db_path, contact_id,
        subject=subject, body=body,
        message_id=result["message_id"],
        thread_id=result["thread_id"],
    )

    log.info("email_sent", email=contact["email"], message_id=result["message_id"])
    return SENT


async def send_daily_batch(
    settings: Settings,
    db_path: Path = DEFAULT_DB_PATH,
    config_path: Path = DEFAULT_CONFIG_PATH,
    now: Optional[datetime] = None,
    ignore_hours: bool = False,
    should_stop: Optional[Callable[[], bool]] = None,
) -> dict:
    """Send to as many ready contacts as the gate allows, best leads first.

    Returns summary dict.
    """
    gate = check_send_gate(settings.sending, db_path, now, ignore_hours=ignore_hours)

    results = {
        "sent": 0,
        "failed": 0,
        "skipped": 0,
        "blocked": 0,
        "candidates": 0,
        "sent_today": gate.sent_today,
        "remaining": gate.remaining,
        "reason": gate.reason,
        "errors": [],
    }

    if not gate.allowed:
        return results

    contacts = get_contacts_ready_for_outreach(
        db_path, settings.sending.min_confidence, gate.remaining
    )
    results["candidates"] = len(contacts)
    log.info("send_batch_started", candidates=len(contacts), remaining=gate.remaining)

    for index, contact in enumerate(contacts):
        if should_stop and should_stop():
            log.info("send_batch_stopped", processed=index)
            results["reason"] = "stopped"
            break

        if index > 0:
            await asyncio.sleep(settings.sending.delay_seconds)

        outcome = await send_email(contact["id"], settings, db_path, config_path)
        results[outcome] += 1

        if outcome == SENT:
            results["sent_today"] += 1
            results["remaining"] -= 1
        elif outcome == FAILED:
            results["errors"].append(f"{contact['email']}: {outcome}")
        elif outcome == SKIPPED:
            results["errors"].append(f"{contact['email']}: timed out, send may be unrecorded")

    log.info("send_batch_complete", sent=results["sent"], failed=results["failed"],
             skipped=results["skipped"], sent_today=results["sent_today"])
    return results
