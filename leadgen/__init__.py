"""Lead generation pipeline: job scraping, enrichment, outreach and reply handling."""

__version__ = "0.1.0"
