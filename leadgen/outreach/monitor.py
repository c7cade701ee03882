"""Mailbox polling for replies to sent outreach."""

import asyncio
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

import structlog

from leadgen.clients.gmail import get_message, get_thread_messages, parse_message
from leadgen.core.config import Settings
from leadgen.core.db import DEFAULT_DB_PATH, get_sent_emails_since, is_reply_processed
from leadgen.outreach.lifecycle import ReplyOutcome, process_reply
from leadgen.services.notifier import SlackNotifier

log = structlog.get_logger()


def _is_from_sender(from_address: str, sender_email: str) -> bool:
    return bool(sender_email) and sender_email.lower() in from_address.lower()


async def _resolve_thread_id(sent, settings: Settings) -> Optional[str]:
    if sent["thread_id"]:
        return sent["thread_id"]

    message = await asyncio.wait_for(
        get_message(sent["gmail_message_id"], settings.gmail.connected_account_id or None),
        timeout=settings.sending.request_timeout_seconds,
    )
    return message.get("threadId")


async def check_thread_for_replies(
    thread_id: str,
    contact_id: int,
    settings: Settings,
    db_path: Path = DEFAULT_DB_PATH,
    notifier: Optional[SlackNotifier] = None,
) -> list[ReplyOutcome]:
    """Process every unseen message in a thread that did not come from us."""
    messages = await asyncio.wait_for(
        get_thread_messages(thread_id, settings.gmail.connected_account_id or None),
        timeout=settings.sending.request_timeout_seconds,
    )

    outcomes = []
    # The first message is our original email
    for raw in messages[1:]:
        message = parse_message(raw)
        if not message.id or is_reply_processed(db_path, message.id):
            continue
        if _is_from_sender(message.from_address, settings.gmail.sender_email):
            continue

        outcome = await process_reply(contact_id, message, settings, db_path, notifier)
        if outcome:
            outcomes.append(outcome)

    return outcomes


async def check_for_replies(
    settings: Settings,
    db_path: Path = DEFAULT_DB_PATH,
    notifier: Optional[SlackNotifier] = None,
    now: Optional[datetime] = None,
) -> list[ReplyOutcome]:
    """Check threads of recently sent emails for replies.

    Returns outcomes for newly processed replies.
    """
    since = (now or datetime.now()) - timedelta(days=settings.gmail.reply_lookback_days)
    sent_emails = get_sent_emails_since(db_path, since)
    log.info("checking_replies", threads=len(sent_emails))

    notifier = notifier or SlackNotifier(settings.alerts.slack_webhook_url or None)
    outcomes = []
    seen_threads = set()

    for sent in sent_emails:
        try:
            thread_id = await _resolve_thread_id(sent, settings)
            if not thread_id or thread_id in seen_threads:
                continue
            seen_threads.add(thread_id)

            outcomes.extend(await check_thread_for_replies(
                thread_id, sent["contact_id"], settings, db_path, notifier
            ))

        except asyncio.TimeoutError:
            log.warning("reply_check_timeout", message_id=sent["gmail_message_id"])
        except Exception as e:
            log.error("reply_check_failed", message_id=sent["gmail_message_id"], error=str(e))

    log.info("reply_check_complete", new_replies=len(outcomes))
    return outcomes
