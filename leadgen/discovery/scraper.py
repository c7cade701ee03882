"""Job posting scraper (Google Jobs search results)."""

import asyncio
from pathlib import Path
from typing import Optional

import httpx
import structlog
from bs4 import BeautifulSoup

from leadgen.core.config import Settings
from leadgen.core.db import (
    DEFAULT_DB_PATH,
    get_company_by_name,
    insert_company,
    insert_job,
    job_exists,
)

log = structlog.get_logger()

SEARCH_URL = "https://www.google.com/search"
SOURCE = "google_jobs"

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


def _text(node) -> Optional[str]:
    if node is None:
        return None
    text = node.get_text(" ", strip=True)
    return text or None


def parse_job_listings(html: str, keyword: str, limit: int = 10) -> list[dict]:
    """Extract job cards from a search results page.

    Cards without both a title and a company are dropped.
    """
    soup = BeautifulSoup(html, "html.parser")
    jobs = []

    for card in soup.select("div[data-ved]"):
        if len(jobs) >= limit:
            break

        title = _text(card.select_one("h2, [role='heading']"))
        company = _text(card.select_one("[data-brand], .vNEEBe, div[class*='company']"))
        if not title or not company:
            continue

        jobs.append({
            "title": title,
            "company": company,
            "location": _text(card.select_one("[class*='location'], .Qk80Jf")) or "Unknown",
            "posted_date": _text(card.select_one("span[class*='date'], span[class*='posted']")) or "Unknown",
            "source": SOURCE,
            "keyword": keyword,
        })

    return jobs


async def fetch_search_page(keyword: str, location: str, timeout: float = 30.0) -> str:
    """Fetch the Google Jobs results page for a keyword/location pair."""
    async with httpx.AsyncClient(timeout=timeout, headers=DEFAULT_HEADERS,
                                 follow_redirects=True) as client:
        response = await client.get(
            SEARCH_URL,
            params={"q": f"{keyword} jobs {location}", "ibp": "htl;jobs"},
        )
        response.raise_for_status()
        return response.text


def save_job(db_path: Path, job: dict) -> bool:
    """Store a job and its company. Returns False if the job was already known."""
    company = get_company_by_name(db_path, job["company"])
    if company:
        company_id = company["id"]
    else:
        company_id = insert_company(db_path, job["company"], job["location"])
        log.info("company_added", company=job["company"])

    if job_exists(db_path, company_id, job["title"], job["posted_date"]):
        log.debug("job_exists", title=job["title"], company=job["company"])
        return False

    insert_job(
        db_path, company_id,
        title=job["title"],
        location=job["location"],
        posted_date=job["posted_date"],
        source=job["source"],
        keyword=job["keyword"],
    )
    log.info("job_saved", title=job["title"], company=job["company"])
    return True


async def scrape_search(
    keyword: str,
    location: str,
    settings: Settings,
    db_path: Path = DEFAULT_DB_PATH,
) -> int:
    """Scrape one keyword/location pair. Returns number of new jobs saved."""
    log.info("scraping", keyword=keyword, location=location)

    try:
        html = await fetch_search_page(keyword, location, settings.sending.request_timeout_seconds)
    except Exception as e:
        log.error("scrape_failed", keyword=keyword, location=location, error=str(e))
        return 0

    jobs = parse_job_listings(html, keyword, settings.scraper.max_results_per_search)
    if not jobs:
        log.warning("no_job_listings", keyword=keyword, location=location)
        return 0

    log.info("jobs_found", keyword=keyword, count=len(jobs))
    return sum(1 for job in jobs if save_job(db_path, job))


async def scrape_all(
    settings: Settings,
    db_path: Path = DEFAULT_DB_PATH,
    keywords: Optional[list[str]] = None,
    locations: Optional[list[str]] = None,
) -> dict:
    """Scrape every keyword × location combination.

    Returns summary dict.
    """
    keywords = keywords or settings.scraper.keywords
    locations = locations or settings.scraper.locations

    results = {"searches": 0, "jobs_saved": 0}
    first = True

    for keyword in keywords:
        for location in locations:
            if not first:
                await asyncio.sleep(settings.scraper.delay_seconds)
            first = False

            results["jobs_saved"] += await scrape_search(keyword, location, settings, db_path)
            results["searches"] += 1

    log.info("scrape_complete", **results)
    return results
