"""Outreach email rendering from templates."""

from pathlib import Path

from leadgen.core.config import DEFAULT_CONFIG_PATH, Settings, get_template_by_name, render_template

UNSUBSCRIBE_FOOTER = """
---
If you'd prefer not to hear from me, just reply "unsubscribe" and I'll remove you from my list."""


def build_variables(contact, settings: Settings) -> dict:
    """Template variables for a contact row."""
    gmail = settings.gmail
    return {
        "first_name": contact["first_name"] or "there",
        "last_name": contact["last_name"],
        "company_name": contact["company_name"] or "your company",
        "title": contact["title"],
        "sender_name": gmail.sender_name,
        "sender_company": gmail.company_name,
        "company_address": gmail.company_address,
        "privacy_policy_link": gmail.privacy_policy_link,
    }


def generate_email(
    contact,
    settings: Settings,
    config_path: Path = DEFAULT_CONFIG_PATH,
    template_name: str = "email_1",
) -> tuple[str, str]:
    """Render subject and body for a first-touch email.

    Every body ends with the unsubscribe footer.
    """
    template = get_template_by_name(config_path, template_name)
    variables = build_variables(contact, settings)

    subject = render_template(template.subject, variables).strip()
    body = render_template(template.body, variables).rstrip() + "\n" + UNSUBSCRIBE_FOOTER

    if settings.gmail.privacy_policy_link:
        body += f"\nView our privacy policy: {settings.gmail.privacy_policy_link}"

    return subject, body
