"""Hunter.io API client for domain search and email finding."""

import os
from typing import Optional

import httpx
import structlog

HUNTER_API_KEY = os.getenv("HUNTER_API_KEY", "")
BASE_URL = "https://api.hunter.io/v2"

log = structlog.get_logger()


async def domain_search(company_name: str, timeout: float = 30.0) -> Optional[dict]:
    """Resolve a company's email domain.

    Returns dict with domain, pattern and emails, or None.
    """
    if not HUNTER_API_KEY:
        log.warning("hunter_api_key_not_set")
        return None

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.get(
                f"{BASE_URL}/domain-search",
                params={"company": company_name, "api_key": HUNTER_API_KEY},
            )
            response.raise_for_status()
            data = response.json().get("data")

    except Exception as e:
        log.error("hunter_domain_search_error", error=str(e), company=company_name)
        return None

    if not data or not data.get("domain"):
        return None

    return {
        "domain": data["domain"],
        "pattern": data.get("pattern"),
        "emails": data.get("emails") or [],
    }


async def find_email(
    domain: str,
    company_name: str,
    position: str,
    timeout: float = 30.0,
) -> Optional[dict]:
    """Find the email of the person holding `position` at `domain`.

    Returns a contact record with a Hunter confidence score, or None.
    """
    if not HUNTER_API_KEY:
        return None

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.get(
                f"{BASE_URL}/email-finder",
                params={
                    "domain": domain,
                    "company": company_name,
                    "position": position,
                    "api_key": HUNTER_API_KEY,
                },
            )
            response.raise_for_status()
            data = response.json().get("data")

    except Exception as e:
        log.error("hunter_email_finder_error", error=str(e), domain=domain, position=position)
        return None

    if not data or not data.get("email"):
        return None

    return {
        "first_name": data.get("first_name"),
        "last_name": data.get("last_name"),
        "email": data["email"].strip().lower(),
        "title": data.get("position") or position,
        "linkedin": data.get("linkedin_url"),
        "confidence": data.get("score") or 0,
        "source": "hunter",
    }
