"""Long-running mode: scheduled send batches and reply checks."""

import asyncio
from pathlib import Path

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from leadgen.core.config import DEFAULT_CONFIG_PATH, Settings
from leadgen.core.db import DEFAULT_DB_PATH
from leadgen.outreach.monitor import check_for_replies
from leadgen.outreach.sender import send_daily_batch
from leadgen.services.notifier import SlackNotifier

log = structlog.get_logger()


async def send_job(settings: Settings, db_path: Path, config_path: Path) -> None:
    log.info("scheduled_send_batch")
    try:
        results = await send_daily_batch(settings, db_path, config_path)
    except Exception as e:
        log.error("scheduled_send_batch_failed", error=str(e))
        return

    if results["sent"] or results["failed"]:
        notifier = SlackNotifier(settings.alerts.slack_webhook_url or None)
        await notifier.send_batch_summary(
            sent=results["sent"],
            failed=results["failed"],
            sent_today=results["sent_today"],
            daily_limit=settings.sending.daily_limit,
            errors=results["errors"],
        )


async def reply_job(settings: Settings, db_path: Path) -> None:
    log.info("scheduled_reply_check")
    try:
        await check_for_replies(settings, db_path)
    except Exception as e:
        log.error("scheduled_reply_check_failed", error=str(e))


def build_scheduler(
    settings: Settings,
    db_path: Path = DEFAULT_DB_PATH,
    config_path: Path = DEFAULT_CONFIG_PATH,
) -> AsyncIOScheduler:
    """Scheduler with the send-batch cron job and the reply-check interval job."""
    scheduler = AsyncIOScheduler()

    scheduler.add_job(
        send_job,
        CronTrigger.from_crontab(settings.daemon.send_cron),
        args=[settings, db_path, config_path],
        id="send_batch",
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        reply_job,
        IntervalTrigger(minutes=settings.daemon.reply_check_minutes),
        args=[settings, db_path],
        id="reply_check",
        max_instances=1,
        coalesce=True,
    )
    return scheduler


async def run_daemon(
    settings: Settings,
    db_path: Path = DEFAULT_DB_PATH,
    config_path: Path = DEFAULT_CONFIG_PATH,
) -> None:
    """Start the scheduler and block until cancelled."""
    scheduler = build_scheduler(settings, db_path, config_path)
    scheduler.start()
    log.info("daemon_started", send_cron=settings.daemon.send_cron,
             reply_check_minutes=settings.daemon.reply_check_minutes)

    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown(wait=False)
        log.info("daemon_stopped")
