"""Lead discovery: job scraping and contact enrichment."""

from leadgen.discovery.scraper import scrape_all
from leadgen.discovery.enricher import enrich_all
