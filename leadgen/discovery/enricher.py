"""Company and contact enrichment via Hunter.io and Apollo.io."""

import asyncio
from pathlib import Path
from typing import Optional

import structlog

from leadgen.clients import apollo, hunter
from leadgen.core.config import Settings
from leadgen.core.db import (
    DEFAULT_DB_PATH,
    get_companies_to_enrich,
    get_contact_by_email,
    insert_contact,
    update_company_apollo_data,
    update_company_hunter_data,
    update_company_status,
)
from leadgen.outreach.status import ContactStatus

log = structlog.get_logger()


def save_contact(
    db_path: Path,
    company_id: int,
    record: dict,
    confidence_threshold: int,
) -> Optional[int]:
    """Insert a contact unless its email is already known.

    Contacts at or above the confidence threshold start as 'ready'.
    """
    email = record.get("email")
    if not email:
        return None

    if get_contact_by_email(db_path, email):
        log.debug("contact_exists", email=email)
        return None

    confidence = record.get("confidence") or 0
    status = ContactStatus.READY if confidence >= confidence_threshold else ContactStatus.NEW

    contact_id = insert_contact(
        db_path,
        company_id=company_id,
        email=email,
        first_name=record.get("first_name"),
        last_name=record.get("last_name"),
        title=record.get("title"),
        linkedin=record.get("linkedin"),
        confidence=confidence,
        source=record.get("source", "unknown"),
        status=status.value,
    )

    if contact_id is None:
        log.warning("contact_duplicate", email=email)
        return None

    log.info("contact_added", email=email, confidence=confidence, status=status.value)
    return contact_id


async def find_hunter_contacts(db_path: Path, company, domain: str, settings: Settings) -> int:
    """Look up one contact per target title at the company's domain."""
    added = 0
    titles = settings.enrichment.target_titles

    for index, title in enumerate(titles):
        record = await hunter.find_email(domain, company["name"], title)
        if record and save_contact(
            db_path, company["id"], record, settings.enrichment.confidence_threshold
        ):
            added += 1

        if index < len(titles) - 1:
            await asyncio.sleep(settings.enrichment.delay_seconds / 2)

    return added


async def find_apollo_contacts(db_path: Path, company, organization_id: str, settings: Settings) -> int:
    """Save Apollo people at the organization that come with an email."""
    people = await apollo.search_people(organization_id, settings.enrichment.target_titles)

    added = 0
    for person in people:
        record = apollo.person_to_contact(person)
        if record and save_contact(
            db_path, company["id"], record, settings.enrichment.confidence_threshold
        ):
            added += 1
    return added


async def enrich_company(company, settings: Settings, db_path: Path = DEFAULT_DB_PATH) -> int:
    """Enrich one company from both providers. Returns contacts added."""
    log.info("enriching_company", company=company["name"])
    added = 0

    hunter_data = await hunter.domain_search(company["name"])
    if hunter_data:
        update_company_hunter_data(db_path, company["id"], hunter_data["domain"], hunter_data)
        added += await find_hunter_contacts(db_path, company, hunter_data["domain"], settings)

    apollo_data = await apollo.search_organization(company["name"])
    if apollo_data:
        update_company_apollo_data(db_path, company["id"], apollo_data)
        if apollo_data.get("id"):
            added += await find_apollo_contacts(db_path, company, apollo_data["id"], settings)

    update_company_status(db_path, company["id"], "enriched")
    log.info("company_enriched", company=company["name"], contacts_added=added)
    return added


async def enrich_all(
    settings: Settings,
    db_path: Path = DEFAULT_DB_PATH,
    limit: Optional[int] = None,
) -> dict:
    """Enrich companies that are new or missing a domain.

    Returns summary dict.
    """
    companies = get_companies_to_enrich(db_path, limit or settings.enrichment.companies_per_run)
    log.info("enrichment_started", companies=len(companies))

    results = {"companies": 0, "contacts_added": 0, "errors": 0}

    for index, company in enumerate(companies):
        if index > 0:
            await asyncio.sleep(settings.enrichment.delay_seconds)

        try:
            results["contacts_added"] += await enrich_company(company, settings, db_path)
            results["companies"] += 1
        except Exception as e:
            log.error("enrich_company_failed", company=company["name"], error=str(e))
            results["errors"] += 1

    log.info("enrichment_complete", **results)
    return results
