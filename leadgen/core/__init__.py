"""Core infrastructure: CLI, config, database, errors."""

from leadgen.core.config import (
    Settings,
    SendingConfig,
    BusinessHoursConfig,
    EnrichmentConfig,
    ScraperConfig,
    GmailConfig,
    CalendarConfig,
    load_settings,
    require_env,
    render_template,
)
from leadgen.core.db import (
    init_db,
    get_contact_by_email,
    get_contact_by_id,
    insert_contact,
    update_contact_status,
    record_email_sent,
    count_sent_today,
    insert_reply,
    get_pipeline_stats,
)
from leadgen.core.errors import ConfigError, ProviderError, SendBlocked
