"""Gmail sending and thread reading via Composio."""

import base64
from typing import Optional

import structlog
from pydantic import BaseModel

from leadgen.clients.composio import execute_tool

log = structlog.get_logger()


class InboundMessage(BaseModel):
    """A message pulled from a Gmail thread."""
    id: str
    thread_id: Optional[str] = None
    from_address: str = ""
    subject: str = ""
    body_text: str = ""


async def send_new_email(
    to: str,
    subject: str,
    body: str,
    connected_account_id: Optional[str] = None
) -> dict:
    """Send a new email (not a reply).

    Returns dict with thread_id and message_id.
    """
    log.info("sending_new_email", to=to, subject=subject)

    data = await execute_tool(
        "GMAIL_SEND_EMAIL",
        {
            "recipient_email": to,
            "subject": subject,
            "body": body,
        },
        connected_account_id,
    )

    return {
        "thread_id": data.get("threadId"),
        "message_id": data.get("id"),
    }


async def get_message(message_id: str, connected_account_id: Optional[str] = None) -> dict:
    """Fetch a single message by id."""
    return await execute_tool(
        "GMAIL_FETCH_MESSAGE_BY_MESSAGE_ID",
        {"message_id": message_id, "format": "full"},
        connected_account_id,
    )


async def get_thread_messages(
    thread_id: str,
    connected_account_id: Optional[str] = None
) -> list[dict]:
    """Get all messages in a thread, oldest first."""
    log.info("fetching_thread", thread_id=thread_id)

    data = await execute_tool(
        "GMAIL_FETCH_MESSAGE_BY_THREAD_ID",
        {"thread_id": thread_id},
        connected_account_id,
    )

    # Handle different response formats
    if isinstance(data, list):
        return data
    return data.get("messages", data.get("items", []))


def _header(headers: list[dict], name: str) -> str:
    for header in headers:
        if header.get("name", "").lower() == name.lower():
            return header.get("value", "")
    return ""


def _decode(data: str) -> str:
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")


def _plain_text_body(payload: dict) -> str:
    parts = payload.get("parts") or []
    for part in parts:
        if part.get("mimeType") == "text/plain" and part.get("body", {}).get("data"):
            return _decode(part["body"]["data"])
    data = payload.get("body", {}).get("data")
    return _decode(data) if data else ""


def parse_message(raw: dict) -> InboundMessage:
    """Normalize a Composio message (flattened or raw Gmail API shape)."""
    message_id = raw.get("messageId") or raw.get("id") or ""
    thread_id = raw.get("threadId")

    if "messageText" in raw or "sender" in raw:
        return InboundMessage(
            id=message_id,
            thread_id=thread_id,
            from_address=raw.get("sender") or "",
            subject=raw.get("subject") or "",
            body_text=raw.get("messageText") or "",
        )

    payload = raw.get("payload") or {}
    headers = payload.get("headers") or []
    return InboundMessage(
        id=message_id,
        thread_id=thread_id,
        from_address=_header(headers, "From"),
        subject=_header(headers, "Subject"),
        body_text=_plain_text_body(payload),
    )
