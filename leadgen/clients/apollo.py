"""Apollo.io API client for organization and people search."""

import os
from typing import Optional

import httpx
import structlog

APOLLO_API_KEY = os.getenv("APOLLO_API_KEY", "")
BASE_URL = "https://api.apollo.io/api/v1"

log = structlog.get_logger()

HEADERS = {
    "Content-Type": "application/json",
    "Cache-Control": "no-cache",
}


async def search_organization(company_name: str, timeout: float = 60.0) -> Optional[dict]:
    """Find the best matching organization for a company name.

    Returns a summary dict (id, name, website, linkedin, industry, size) or None.
    """
    if not APOLLO_API_KEY:
        log.warning("apollo_api_key_not_set")
        return None

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(
                f"{BASE_URL}/mixed_companies/search",
                headers={**HEADERS, "X-Api-Key": APOLLO_API_KEY},
                json={"q_organization_name": company_name, "per_page": 1},
            )
            response.raise_for_status()
            data = response.json()

    except Exception as e:
        log.error("apollo_org_search_error", error=str(e), company=company_name)
        return None

    organizations = data.get("organizations") or []
    if not organizations:
        log.info("apollo_org_not_found", company=company_name)
        return None

    org = organizations[0]
    return {
        "id": org.get("id"),
        "name": org.get("name"),
        "website": org.get("website_url"),
        "linkedin": org.get("linkedin_url"),
        "industry": org.get("industry"),
        "size": org.get("estimated_num_employees"),
    }


async def search_people(
    organization_id: str,
    job_titles: list[str],
    limit: int = 10,
    timeout: float = 60.0,
) -> list[dict]:
    """Search for people at an Apollo organization by job titles.

    Returns:
        List of raw person dicts. Only some carry an email.
    """
    if not APOLLO_API_KEY:
        log.warning("apollo_api_key_not_set")
        return []

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(
                f"{BASE_URL}/mixed_people/search",
                headers={**HEADERS, "X-Api-Key": APOLLO_API_KEY},
                json={
                    "organization_ids": [organization_id],
                    "person_titles": job_titles,
                    "per_page": limit,
                },
            )
            response.raise_for_status()
            data = response.json()

            people = data.get("people", [])
            log.info("apollo_search_complete", organization_id=organization_id, count=len(people))
            return people

    except Exception as e:
        log.error("apollo_search_error", error=str(e), organization_id=organization_id)
        return []


def person_to_contact(person: dict) -> Optional[dict]:
    """Map an Apollo person to a contact record, or None without an email."""
    email = person.get("email")
    if not email:
        return None

    return {
        "first_name": person.get("first_name"),
        "last_name": person.get("last_name"),
        "email": email.strip().lower(),
        "title": person.get("title"),
        "linkedin": person.get("linkedin_url"),
        # Apollo has no score; verified emails are treated as certain
        "confidence": 100 if person.get("email_verified") or person.get("email_status") == "verified" else 70,
        "source": "apollo",
    }
