"""Configuration loading and models."""

import os
import re
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel

from leadgen.core.errors import ConfigError


class BusinessHoursConfig(BaseModel):
    start_hour: int = 9
    end_hour: int = 17
    weekdays: list[int] = [0, 1, 2, 3, 4]  # Monday=0


class SendingConfig(BaseModel):
    daily_limit: int = 10
    min_confidence: int = 70
    delay_seconds: float = 5
    request_timeout_seconds: float = 30
    business_hours: BusinessHoursConfig = BusinessHoursConfig()


class EnrichmentConfig(BaseModel):
    confidence_threshold: int = 80
    target_titles: list[str] = [
        "Finance Director",
        "FP&A Manager",
        "Financial Analyst",
        "Controller",
        "CFO",
        "VP Finance",
    ]
    companies_per_run: int = 50
    delay_seconds: float = 1


class ScraperConfig(BaseModel):
    keywords: list[str] = [
        "Oracle PBCS",
        "Oracle EPBCS",
        "Oracle Hyperion",
        "Oracle NSPB",
        "Hyperion Planning",
    ]
    locations: list[str] = ["United States", "Remote"]
    max_results_per_search: int = 10
    delay_seconds: float = 5


class GmailConfig(BaseModel):
    sender_email: str = ""
    sender_name: str = ""
    company_name: str = ""
    company_address: str = ""
    privacy_policy_link: str = ""
    connected_account_id: str = ""  # Composio connected account ID
    reply_lookback_days: int = 7


class CalendarConfig(BaseModel):
    calendar_id: str = "primary"
    timezone: str = "America/Chicago"
    duration_minutes: int = 30
    slot_hours: list[int] = [9, 11, 14, 16]
    search_business_days: int = 5
    auto_book: bool = True


class DaemonConfig(BaseModel):
    send_cron: str = "0 9 * * 1-5"
    reply_check_minutes: int = 30


class AlertsConfig(BaseModel):
    slack_webhook_url: str = ""


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_file: Optional[str] = None


class Settings(BaseModel):
    sending: SendingConfig = SendingConfig()
    enrichment: EnrichmentConfig = EnrichmentConfig()
    scraper: ScraperConfig = ScraperConfig()
    gmail: GmailConfig = GmailConfig()
    calendar: CalendarConfig = CalendarConfig()
    daemon: DaemonConfig = DaemonConfig()
    alerts: AlertsConfig = AlertsConfig()
    logging: LoggingConfig = LoggingConfig()


DEFAULT_CONFIG_PATH = Path("config")


def _split_env_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _apply_env_overrides(settings: Settings) -> None:
    """Apply environment variables on top of the YAML settings.

    Limits and calendar options always take the env value when set; identity
    fields (sender, account ids, webhook) only fill blanks left by the YAML.
    """
    env = os.environ

    if env.get("MAX_DAILY_EMAILS"):
        settings.sending.daily_limit = int(env["MAX_DAILY_EMAILS"])
    if env.get("MIN_LEAD_SCORE"):
        settings.sending.min_confidence = int(env["MIN_LEAD_SCORE"])
    if env.get("HUNTER_CONFIDENCE_THRESHOLD"):
        settings.enrichment.confidence_threshold = int(env["HUNTER_CONFIDENCE_THRESHOLD"])

    if env.get("SEARCH_KEYWORDS"):
        settings.scraper.keywords = _split_env_list(env["SEARCH_KEYWORDS"])
    if env.get("SEARCH_LOCATIONS"):
        settings.scraper.locations = _split_env_list(env["SEARCH_LOCATIONS"])

    gmail = settings.gmail
    gmail.sender_email = gmail.sender_email or env.get("SENDER_EMAIL", "")
    gmail.sender_name = gmail.sender_name or env.get("SENDER_NAME", "")
    gmail.company_name = gmail.company_name or env.get("COMPANY_NAME", "")
    gmail.company_address = gmail.company_address or env.get("COMPANY_ADDRESS", "")
    gmail.privacy_policy_link = gmail.privacy_policy_link or env.get("PRIVACY_POLICY_LINK", "")
    gmail.connected_account_id = (
        gmail.connected_account_id or env.get("COMPOSIO_CONNECTED_ACCOUNT_ID", "")
    )

    if env.get("CALENDAR_ID"):
        settings.calendar.calendar_id = env["CALENDAR_ID"]
    if env.get("TIMEZONE"):
        settings.calendar.timezone = env["TIMEZONE"]
    if env.get("MEETING_DURATION_MINUTES"):
        settings.calendar.duration_minutes = int(env["MEETING_DURATION_MINUTES"])

    settings.alerts.slack_webhook_url = (
        settings.alerts.slack_webhook_url or env.get("SLACK_WEBHOOK_URL", "")
    )

    if env.get("LOG_LEVEL"):
        settings.logging.level = env["LOG_LEVEL"]


def load_settings(config_path: Path = DEFAULT_CONFIG_PATH) -> Settings:
    """Load settings from YAML file, then apply environment overrides."""
    settings_file = config_path / "settings.yaml"

    if settings_file.exists():
        with open(settings_file) as f:
            data = yaml.safe_load(f) or {}
        settings = Settings(**data)
    else:
        settings = Settings()

    _apply_env_overrides(settings)
    return settings


def require_env(*names: str) -> None:
    """Raise ConfigError listing every variable in `names` that is unset."""
    missing = [name for name in names if not os.environ.get(name)]
    if missing:
        raise ConfigError(
            f"Missing required environment variable(s): {', '.join(missing)}. "
            "Set them in your shell or in a .env file."
        )


def require_any_env(*names: str) -> None:
    """Raise ConfigError unless at least one of `names` is set."""
    if not any(os.environ.get(name) for name in names):
        raise ConfigError(
            f"Set at least one of: {', '.join(names)} (shell or .env file)."
        )


def render_template(template: str, variables: dict) -> str:
    """Render a template with {{variable}} substitution."""
    result = template
    for key, value in variables.items():
        result = result.replace(f"{{{{{key}}}}}", str(value) if value else "")
    return result


class EmailTemplate(BaseModel):
    """Outreach email template."""
    name: str
    subject: str
    body: str


DEFAULT_TEMPLATE = EmailTemplate(
    name="email_1",
    subject="Quick question about {{company_name}}'s Oracle PBCS implementation",
    body="""Hi {{first_name}},

I noticed {{company_name}} is looking for {{title}} expertise with Oracle PBCS/Hyperion planning systems.

I'm reaching out from {{sender_company}} - we help finance teams automate their Oracle PBCS workflows and streamline FP&A reporting.

Would you be open to a brief 15-minute call to see if there's a fit?

Best regards,
{{sender_name}}
{{sender_company}}
{{company_address}}""",
)


def load_templates(config_path: Path = DEFAULT_CONFIG_PATH) -> list[EmailTemplate]:
    """Load and parse templates.md into list of EmailTemplate objects."""
    templates_file = config_path / "templates.md"

    if not templates_file.exists():
        return []

    content = templates_file.read_text()

    # Split on frontmatter delimiters (---)
    sections = re.split(r'^---\s*$', content, flags=re.MULTILINE)

    templates = []
    # Process pairs of (frontmatter, body)
    i = 1
    while i < len(sections) - 1:
        frontmatter = sections[i].strip()
        body = sections[i + 1].strip()
        i += 2

        if not frontmatter:
            continue

        meta = yaml.safe_load(frontmatter)
        if not isinstance(meta, dict) or "template" not in meta:
            continue

        lines = body.split('\n')
        subject = ""
        body_start = 0
        for idx, line in enumerate(lines):
            if line.startswith('subject:'):
                subject = line.replace('subject:', '').strip()
                body_start = idx + 1
                break

        templates.append(EmailTemplate(
            name=meta["template"],
            subject=subject,
            body='\n'.join(lines[body_start:]).strip(),
        ))

    return templates


def get_template_by_name(config_path: Path, name: str) -> EmailTemplate:
    """Get a template by name, falling back to the built-in outreach template."""
    for t in load_templates(config_path):
        if t.name == name:
            return t
    if name == DEFAULT_TEMPLATE.name:
        return DEFAULT_TEMPLATE
    raise ValueError(f"Template '{name}' not found in templates.md")
