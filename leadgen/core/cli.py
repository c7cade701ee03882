"""Command-line interface for the lead generation pipeline."""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
import structlog

from leadgen.core.config import DEFAULT_CONFIG_PATH, Settings, load_settings, require_any_env, require_env
from leadgen.core.db import DEFAULT_DB_PATH, get_contact_by_email, get_pipeline_stats, init_db
from leadgen.core.errors import ConfigError
from leadgen.outreach.classifier import classify_intent

log = structlog.get_logger()


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Console output by default, JSON lines when a log file is configured."""
    processors = [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        processors.append(structlog.processors.JSONRenderer())
        # Held open for the life of the process; structlog writes to it until exit
        factory = structlog.WriteLoggerFactory(file=open(log_file, "a"))
    else:
        processors.append(structlog.dev.ConsoleRenderer())
        factory = structlog.PrintLoggerFactory()

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        logger_factory=factory,
    )


def _require(check) -> None:
    try:
        check()
    except ConfigError as e:
        raise click.ClickException(str(e))


def _require_sender(settings: Settings) -> None:
    if not settings.gmail.sender_email:
        raise ConfigError(
            "SENDER_EMAIL is not set (env or gmail.sender_email in settings.yaml); "
            "it is needed to tell replies apart from our own messages."
        )


@click.group()
@click.option("--db", "db_path", type=click.Path(), default=str(DEFAULT_DB_PATH),
              help="Database path")
@click.option("--config", "config_path", type=click.Path(), default=str(DEFAULT_CONFIG_PATH),
              help="Config directory path")
@click.pass_context
def cli(ctx, db_path: str, config_path: str):
    """Lead generation pipeline: scrape, enrich, send, monitor, book."""
    settings = load_settings(Path(config_path))
    configure_logging(settings.logging.level, settings.logging.log_file)

    db = Path(db_path)
    init_db(db)

    ctx.obj = {"db": db, "config": Path(config_path), "settings": settings}


@cli.command()
@click.pass_obj
def init(obj):
    """Create the database."""
    click.echo(f"Database ready at {obj['db']}")


@cli.command()
@click.option("--keyword", "keywords", multiple=True, help="Override search keywords")
@click.option("--location", "locations", multiple=True, help="Override search locations")
@click.pass_obj
def scrape(obj, keywords: tuple, locations: tuple):
    """Scrape job postings and store companies."""
    from leadgen.discovery.scraper import scrape_all

    result = asyncio.run(scrape_all(
        obj["settings"], obj["db"],
        keywords=list(keywords) or None,
        locations=list(locations) or None,
    ))
    click.echo(f"Searches run: {result['searches']}")
    click.echo(f"New jobs saved: {result['jobs_saved']}")


@cli.command()
@click.option("--limit", type=int, default=None, help="Max companies to enrich")
@click.pass_obj
def enrich(obj, limit: Optional[int]):
    """Enrich companies with Hunter.io and Apollo.io contacts."""
    _require(lambda: require_any_env("HUNTER_API_KEY", "APOLLO_API_KEY"))
    from leadgen.discovery.enricher import enrich_all

    result = asyncio.run(enrich_all(obj["settings"], obj["db"], limit=limit))
    click.echo(f"Companies enriched: {result['companies']}")
    click.echo(f"Contacts added: {result['contacts_added']}")
    if result["errors"]:
        click.echo(f"Errors: {result['errors']}")


@cli.command()
@click.option("--ignore-hours", is_flag=True, help="Send outside the business-hours window")
@click.pass_obj
def send(obj, ignore_hours: bool):
    """Send one outreach batch."""
    _require(lambda: require_env("COMPOSIO_API_KEY"))
    from leadgen.outreach.sender import send_daily_batch

    settings = obj["settings"]
    result = asyncio.run(send_daily_batch(
        settings, obj["db"], obj["config"], ignore_hours=ignore_hours
    ))

    if result["reason"] == "outside_business_hours":
        click.echo("Outside business hours, nothing sent.")
    elif result["reason"] == "daily_limit_reached" and not result["sent"]:
        click.echo("Daily limit reached. Run again tomorrow.")

    click.echo(f"Emails sent: {result['sent']}")
    if result["failed"]:
        click.echo(f"Failed: {result['failed']}")
    if result["skipped"]:
        click.echo(f"Skipped (timeout): {result['skipped']}")
    click.echo(f"Daily total: {result['sent_today']}/{settings.sending.daily_limit}")


@cli.command()
@click.pass_obj
def monitor(obj):
    """Check sent threads for replies."""
    settings = obj["settings"]
    _require(lambda: require_env("COMPOSIO_API_KEY"))
    _require(lambda: _require_sender(settings))
    from leadgen.outreach.monitor import check_for_replies

    outcomes = asyncio.run(check_for_replies(settings, obj["db"]))

    if not outcomes:
        click.echo("No new replies.")
    for outcome in outcomes:
        line = f"  contact {outcome.contact_id}: {outcome.intent.value} -> {outcome.status.value}"
        if outcome.meeting and outcome.meeting.get("meeting_time"):
            line += f" (meeting {outcome.meeting['meeting_time']:%Y-%m-%d %H:%M})"
        click.echo(line)


@cli.command()
@click.argument("contact_id", type=int)
@click.option("--time", "meeting_time", type=click.DateTime(), default=None,
              help="Preferred meeting time (otherwise next free slot)")
@click.pass_obj
def book(obj, contact_id: int, meeting_time: Optional[datetime]):
    """Book a meeting with a contact."""
    _require(lambda: require_env("COMPOSIO_API_KEY"))
    from leadgen.outreach.meetings import create_meeting

    result = asyncio.run(create_meeting(
        contact_id, obj["settings"], obj["db"],
        preferred_times=[meeting_time] if meeting_time else None,
    ))
    if not result:
        raise click.ClickException(f"Could not book a meeting for contact {contact_id}")

    click.echo(f"Meeting booked for {result['meeting_time']:%Y-%m-%d %H:%M}")
    if result.get("meet_link"):
        click.echo(f"  Meet link: {result['meet_link']}")


@cli.command()
@click.argument("reply_id", type=int)
@click.pass_obj
def replay(obj, reply_id: int):
    """Re-apply the lifecycle actions of a stored reply."""
    from leadgen.outreach.lifecycle import replay_reply_actions

    outcome = asyncio.run(replay_reply_actions(reply_id, obj["settings"], obj["db"]))
    if not outcome:
        raise click.ClickException(f"Reply {reply_id} not found")
    click.echo(f"contact {outcome.contact_id}: {outcome.intent.value} -> {outcome.status.value}")


@cli.command()
@click.argument("text")
def classify(text: str):
    """Print the intent a reply body would be classified as."""
    click.echo(classify_intent(text).value)


@cli.command()
@click.option("--contact", "contact_email", type=str, default=None,
              help="Show a single contact by email")
@click.pass_obj
def status(obj, contact_email: Optional[str]):
    """Show pipeline status."""
    db = obj["db"]
    settings = obj["settings"]

    if contact_email:
        contact = get_contact_by_email(db, contact_email)
        if not contact:
            click.echo(f"Contact not found: {contact_email}")
            return

        click.echo(f"\nContact: {contact['email']}")
        click.echo(f"  Name: {contact['first_name'] or ''} {contact['last_name'] or ''}")
        click.echo(f"  Company: {contact['company_name'] or 'N/A'}")
        click.echo(f"  Status: {contact['status']}")
        click.echo(f"  Confidence: {contact['confidence']} ({contact['source']})")
        if contact["do_not_contact"]:
            click.echo("  Do not contact: yes")
        if contact["last_contact_date"]:
            click.echo(f"  Last contacted: {contact['last_contact_date']}")
        return

    stats = get_pipeline_stats(db)
    contacts = stats["contacts"]

    click.echo("\nPipeline Status")
    click.echo("───────────────")
    click.echo(f"Companies:             {stats['companies']}")
    click.echo(f"Jobs:                  {stats['jobs']}")
    click.echo(f"New contacts:          {contacts.get('new', 0)}")
    click.echo(f"Ready:                 {contacts.get('ready', 0)}")
    click.echo(f"Contacted:             {contacts.get('contacted', 0)}")
    click.echo(f"Replied:               {contacts.get('replied', 0)}")
    click.echo(f"Meetings scheduled:    {contacts.get('meeting_scheduled', 0)}")
    click.echo(f"Failed:                {contacts.get('failed', 0)}")
    click.echo(f"Do not contact:        {stats['do_not_contact']}")
    if stats["replies"]:
        click.echo("Replies by intent:")
        for intent, count in sorted(stats["replies"].items()):
            click.echo(f"  - {intent}: {count}")
    click.echo("───────────────")
    click.echo(f"Daily sends: {stats['sent_today']}/{settings.sending.daily_limit}")


@cli.command()
@click.pass_obj
def daemon(obj):
    """Run scheduled send batches and reply checks until interrupted."""
    settings = obj["settings"]
    _require(lambda: require_env("COMPOSIO_API_KEY"))
    _require(lambda: _require_sender(settings))
    from leadgen.daemon import run_daemon

    click.echo("Daemon running. Press Ctrl+C to stop.")
    try:
        asyncio.run(run_daemon(settings, obj["db"], obj["config"]))
    except KeyboardInterrupt:
        click.echo("Stopped.")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
