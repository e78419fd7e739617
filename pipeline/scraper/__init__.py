"""Scraper package: remote browser sessions & evidence mining."""

from pipeline.scraper.browser import BrowserSession, PlaywrightConnector
from pipeline.scraper.evidence import extract_text_evidence
from pipeline.scraper.scrape import Scraper

__all__ = ["Scraper", "BrowserSession", "PlaywrightConnector", "extract_text_evidence"]
