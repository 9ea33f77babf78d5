"""Archived review scraper.

For each tracked app the scraper opens the first reviews page, reveals the
archived reviews, jumps to the last page (where archived reviews are
listed), expands every archived block and hands the rendered page to the
record extractor.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .dates import utc_today
from .driver import PageDriver
from .extractors import RecordExtractor
from .logging_config import get_logger
from .models import AppSnapshot, Snapshot
from .parser_utils import Document, page_numbers_from_links, with_query_params

logger = get_logger("scraper")

SHOW_ARCHIVED_TEXT = re.compile(r"show\s+archived\s+reviews", re.IGNORECASE)
SHOW_ARCHIVED_BUTTON = (
    '[data-archived-reviews-target="buttonContainer"] '
    'button[data-element="show_archived_reviews_button"]'
)
EXPAND_ARCHIVED_BUTTONS = (
    '[data-archived-reviews-target="buttonContainer"] button, '
    'button[data-element="show_archived_reviews_button"]'
)


def last_page_number(document: Document) -> int:
    """Highest ``page`` number linked from the pagination, 1 when unpaginated."""
    numbers = page_numbers_from_links(document)
    return max(numbers) if numbers else 1


@dataclass
class ScrapeTimings:
    reveal_timeout_ms: int = 8000
    settle_ms: int = 1500
    expand_ms: int = 1000


class ArchivedReviewScraper:
    """Collect archived reviews for a list of apps into a :class:`Snapshot`."""

    def __init__(
        self,
        driver: PageDriver,
        extractor: Optional[RecordExtractor] = None,
        timings: Optional[ScrapeTimings] = None,
    ) -> None:
        self.driver = driver
        self.extractor = extractor or RecordExtractor()
        self.timings = timings or ScrapeTimings()

    def scrape(self, reviews_urls: Iterable[str], *, snapshot_date: Optional[str] = None) -> Snapshot:
        """Scrape every app; a failing app is recorded with its error and the run goes on."""
        snapshot = Snapshot(snapshot_date=snapshot_date or utc_today().isoformat())
        for url in reviews_urls:
            logger.info(f"Scraping archived reviews: {url}")
            try:
                app = self.scrape_app(url)
            except Exception as exc:
                logger.error(f"Failed to scrape {url}: {exc}")
                app = AppSnapshot(app_reviews_url=url, error=str(exc) or type(exc).__name__)
            else:
                logger.info(f"  {app.app_slug}: {len(app.archived_reviews)} archived reviews (last page {app.last_page})")
            snapshot.apps.append(app)
        return snapshot

    def scrape_app(self, reviews_url: str) -> AppSnapshot:
        first_page_url = with_query_params(reviews_url, page=1)
        self.driver.goto(first_page_url)
        self._reveal_archived()
        self.driver.scroll_to_bottom()
        self.driver.wait(self.timings.settle_ms)

        last_page = last_page_number(self.driver.content())
        if last_page > 1:
            self.driver.goto(with_query_params(reviews_url, page=last_page))
            self._reveal_archived()

        expanded = self.driver.click_all(EXPAND_ARCHIVED_BUTTONS, SHOW_ARCHIVED_TEXT)
        if expanded:
            self.driver.wait(self.timings.expand_ms)
        logger.debug(f"Expanded {expanded} archived blocks on page {last_page}")

        records = self.extractor.extract_merged(self.driver.content())
        return AppSnapshot(
            app_reviews_url=reviews_url,
            archived_reviews=records,
            first_page_url=first_page_url,
            last_page=last_page,
        )

    def _reveal_archived(self) -> None:
        if self.driver.wait_for(SHOW_ARCHIVED_BUTTON, self.timings.reveal_timeout_ms):
            self.driver.click_all(SHOW_ARCHIVED_BUTTON, SHOW_ARCHIVED_TEXT, limit=1)
            self.driver.wait(self.timings.settle_ms)


@dataclass
class LastArchivedDate:
    slug: str
    count: int
    last_date: Optional[str] = None
    error: Optional[str] = None


def last_archived_dates(snapshot: Snapshot) -> List[LastArchivedDate]:
    """Most recent archived review date per app (ISO when known, else the raw text)."""
    results: List[LastArchivedDate] = []
    for app in snapshot.apps:
        if app.failed:
            results.append(LastArchivedDate(slug=app.app_slug, count=0, error=app.error))
            continue
        iso_dates = [record.date_iso for record in app.archived_reviews if record.date_iso]
        if iso_dates:
            last = max(iso_dates)
        else:
            last = next((record.date_text for record in app.archived_reviews if record.date_text), None)
        results.append(LastArchivedDate(slug=app.app_slug, count=len(app.archived_reviews), last_date=last))
    return results
