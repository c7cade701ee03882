"""Slack alerts for replies and send batches."""

import os
from typing import Optional

import httpx
import structlog

log = structlog.get_logger()

PREVIEW_CHARS = 200


class SlackNotifier:
    """Posts pipeline alerts to a Slack incoming webhook."""

    def __init__(self, webhook_url: Optional[str] = None):
        self.webhook_url = webhook_url or os.getenv("SLACK_WEBHOOK_URL")

    async def _post(self, blocks: list[dict]) -> bool:
        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.post(self.webhook_url, json={"blocks": blocks})
                response.raise_for_status()
                return True

        except Exception as e:
            log.error("slack_send_error", error=str(e))
            return False

    async def send_reply_alert(
        self,
        from_address: str,
        subject: str,
        body: str,
        intent: str,
    ) -> bool:
        """Announce a newly classified reply.

        Without a webhook the alert is only logged.

        Returns:
            True if posted to Slack
        """
        preview = body[:PREVIEW_CHARS] + ("..." if len(body) > PREVIEW_CHARS else "")

        if not self.webhook_url:
            log.info("reply_alert", sender=from_address, subject=subject,
                     intent=intent, preview=preview)
            return False

        blocks = [
            {
                "type": "header",
                "text": {"type": "plain_text", "text": "📧 New Reply Received"},
            },
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*From:*\n{from_address}"},
                    {"type": "mrkdwn", "text": f"*Intent:*\n{intent}"},
                    {"type": "mrkdwn", "text": f"*Subject:*\n{subject}"},
                ],
            },
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"*Preview:*\n{preview}"},
            },
        ]

        sent = await self._post(blocks)
        if sent:
            log.info("slack_reply_alert_sent", intent=intent)
        return sent

    async def send_batch_summary(
        self,
        sent: int,
        failed: int,
        sent_today: int,
        daily_limit: int,
        errors: Optional[list[str]] = None,
    ) -> bool:
        """Send end-of-batch summary to Slack.

        Returns:
            True if sent successfully
        """
        if not self.webhook_url:
            log.warning("slack_webhook_not_configured")
            return False

        status_emoji = "✅" if not failed else "⚠️"

        blocks = [
            {
                "type": "header",
                "text": {"type": "plain_text", "text": f"{status_emoji} Outreach Batch Complete"},
            },
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*Sent:*\n{sent}"},
                    {"type": "mrkdwn", "text": f"*Failed:*\n{failed}"},
                    {"type": "mrkdwn", "text": f"*Daily total:*\n{sent_today}/{daily_limit}"},
                ],
            },
        ]

        if errors:
            error_text = "\n".join(f"• {e}" for e in errors[:5])
            blocks.append({
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"*Issues:*\n{error_text}"},
            })

        posted = await self._post(blocks)
        if posted:
            log.info("slack_summary_sent", sent=sent, failed=failed)
        return posted
