"""Contact lifecycle: reply handling and the outbound send guard.

A reply is always stored (with its intent) before any status change, alert or
meeting booking is attempted. `apply_reply_actions` only reads the stored
intent, so `replay_reply_actions` can redo the side effects after a crash.
"""

from pathlib import Path
from typing import Optional

import structlog
from pydantic import BaseModel

from leadgen.clients.gmail import InboundMessage
from leadgen.core.config import Settings
from leadgen.core.db import (
    DEFAULT_DB_PATH,
    get_contact_by_id,
    get_reply_by_id,
    has_unsubscribed,
    insert_reply,
    set_do_not_contact,
    update_contact_status,
)
from leadgen.core.errors import SendBlocked
from leadgen.outreach.classifier import MEETING_INTENTS, Intent, classify_intent
from leadgen.outreach.meetings import suggest_meeting
from leadgen.outreach.status import UNSUBSCRIBE_FROM, ContactStatus, can_transition
from leadgen.services.notifier import SlackNotifier

log = structlog.get_logger()


class ReplyOutcome(BaseModel):
    reply_id: int
    contact_id: int
    intent: Intent
    status: ContactStatus
    suppressed: bool = False
    meeting: Optional[dict] = None


def ensure_can_send(db_path: Path, contact) -> None:
    """Raise SendBlocked unless the contact may receive an automated email."""
    if contact["do_not_contact"] or has_unsubscribed(db_path, contact["id"]):
        raise SendBlocked(contact["id"], "unsubscribed")

    if contact["status"] != ContactStatus.READY.value:
        raise SendBlocked(contact["id"], f"status is {contact['status']}")


def _mark_replied(db_path: Path, contact_id: int, current: str, intent: Intent) -> str:
    if intent is Intent.UNSUBSCRIBE:
        set_do_not_contact(db_path, contact_id)
        if ContactStatus(current) in UNSUBSCRIBE_FROM:
            update_contact_status(db_path, contact_id, ContactStatus.REPLIED.value)
            return ContactStatus.REPLIED.value
        return current

    if can_transition(current, ContactStatus.REPLIED.value):
        update_contact_status(db_path, contact_id, ContactStatus.REPLIED.value)
        return ContactStatus.REPLIED.value

    if current != ContactStatus.REPLIED.value:
        log.warning("reply_status_unchanged", contact_id=contact_id, status=current)
    return current


async def apply_reply_actions(
    reply_id: int,
    settings: Settings,
    db_path: Path = DEFAULT_DB_PATH,
) -> Optional[ReplyOutcome]:
    """Drive the contact's status from a stored reply's intent."""
    reply = get_reply_by_id(db_path, reply_id)
    if not reply:
        log.warning("reply_not_found", reply_id=reply_id)
        return None

    contact_id = reply["contact_id"]
    contact = get_contact_by_id(db_path, contact_id)
    if not contact:
        log.warning("contact_not_found", contact_id=contact_id)
        return None

    intent = Intent(reply["intent"])
    status = _mark_replied(db_path, contact_id, contact["status"], intent)

    suppressed = (
        intent is Intent.UNSUBSCRIBE
        or bool(contact["do_not_contact"])
        or has_unsubscribed(db_path, contact_id)
    )
    outcome = ReplyOutcome(
        reply_id=reply_id,
        contact_id=contact_id,
        intent=intent,
        status=ContactStatus(status),
        suppressed=suppressed,
    )

    # An unsubscribed contact never gets a meeting invite, whatever they reply later
    if intent in MEETING_INTENTS and suppressed:
        log.info("meeting_skipped_suppressed", contact_id=contact_id, intent=intent.value)
    elif intent in MEETING_INTENTS and status == ContactStatus.REPLIED.value:
        meeting = await suggest_meeting(contact_id, settings, db_path)
        outcome.meeting = meeting
        if meeting and meeting.get("meeting_id"):
            outcome.status = ContactStatus.MEETING_SCHEDULED

    log.info("reply_actions_applied", contact_id=contact_id, intent=intent.value,
             status=outcome.status.value)
    return outcome


async def process_reply(
    contact_id: int,
    message: InboundMessage,
    settings: Settings,
    db_path: Path = DEFAULT_DB_PATH,
    notifier: Optional[SlackNotifier] = None,
) -> Optional[ReplyOutcome]:
    """Classify and store an inbound reply, then apply its side effects.

    Returns None when the contact is unknown or the message was already stored.
    """
    if not get_contact_by_id(db_path, contact_id):
        log.warning("contact_not_found", contact_id=contact_id)
        return None

    intent = classify_intent(message.body_text)

    reply_id = insert_reply(
        db_path, contact_id,
        gmail_message_id=message.id,
        subject=message.subject,
        from_address=message.from_address,
        body=message.body_text,
        intent=intent.value,
    )
    if reply_id is None:
        log.info("reply_already_processed", message_id=message.id)
        return None

    log.info("reply_received", contact_id=contact_id, intent=intent.value)

    notifier = notifier or SlackNotifier(settings.alerts.slack_webhook_url or None)
    await notifier.send_reply_alert(
        message.from_address, message.subject, message.body_text, intent.value
    )

    return await apply_reply_actions(reply_id, settings, db_path)


async def replay_reply_actions(
    reply_id: int,
    settings: Settings,
    db_path: Path = DEFAULT_DB_PATH,
) -> Optional[ReplyOutcome]:
    """Re-run side effects for a stored reply (no reclassification, no alert)."""
    return await apply_reply_actions(reply_id, settings, db_path)
