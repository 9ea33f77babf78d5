"""Weekly new-review counts and current ratings per app."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from .driver import PageDriver
from .extractors import RecordExtractor
from .logging_config import get_logger
from .models import ReviewRecord, WeekWindow, WeeklyReport, WeeklyReportEntry
from .pagination import DEFAULT_MAX_PAGES, PaginationController
from .parser_utils import Document, LISTING_HOST, app_slug_from_url, parse_html, parse_overall_rating, with_query_params

logger = get_logger("weekly_report")

REVIEW_CARD_SELECTOR = '[data-merchant-review], div[id^="review-"]'
NEXT_PAGE_SELECTOR = 'a[href*="page="]'


def has_next_page(document: Document) -> bool:
    return parse_html(document).select_one(NEXT_PAGE_SELECTOR) is not None


def app_main_url(slug: str) -> str:
    return f"https://{LISTING_HOST}/{slug}"


class WeeklyReportBuilder:
    """Count reviews posted in a week by paging newest-first through each app."""

    def __init__(
        self,
        driver: PageDriver,
        extractor: Optional[RecordExtractor] = None,
        *,
        max_pages: int = DEFAULT_MAX_PAGES,
        page_wait_ms: int = 1500,
        card_timeout_ms: int = 15000,
    ) -> None:
        self.driver = driver
        self.extractor = extractor or RecordExtractor()
        self.max_pages = max_pages
        self.page_wait_ms = page_wait_ms
        self.card_timeout_ms = card_timeout_ms

    def count_new_reviews(self, reviews_url: str, window: WeekWindow) -> int:
        controller = PaginationController(window=window, max_pages=self.max_pages)

        def fetch_page(page: int) -> Tuple[List[ReviewRecord], bool]:
            self.driver.goto(with_query_params(reviews_url, sort_by="newest", page=page))
            self.driver.wait_for(REVIEW_CARD_SELECTOR, self.card_timeout_ms)
            self.driver.scroll_to_bottom()
            self.driver.wait(self.page_wait_ms)
            html = self.driver.content()
            records = self.extractor.extract_merged(html, year_hint=window.end.year)
            return records, has_next_page(html)

        return controller.crawl(fetch_page)

    def current_rating(self, slug: str) -> Optional[float]:
        """Overall rating from the page already loaded, else from the app's main page."""
        rating = parse_overall_rating(self.driver.content())
        if rating is not None:
            return rating
        self.driver.goto(app_main_url(slug))
        self.driver.wait(self.page_wait_ms)
        return parse_overall_rating(self.driver.content())

    def build_entry(self, reviews_url: str, window: WeekWindow) -> WeeklyReportEntry:
        slug = app_slug_from_url(reviews_url)
        entry = WeeklyReportEntry(slug=slug, app_reviews_url=reviews_url)
        try:
            entry.new_reviews = self.count_new_reviews(reviews_url, window)
        except Exception as exc:
            logger.error(f"Failed to count new reviews for {slug}: {exc}")
            entry.error = str(exc) or type(exc).__name__
            return entry
        try:
            entry.current_rating = self.current_rating(slug)
        except Exception as exc:
            logger.warning(f"Could not read current rating for {slug}: {exc}")
        return entry

    def build(
        self,
        reviews_urls: Iterable[str],
        window: WeekWindow,
        *,
        generated_at: Optional[datetime] = None,
    ) -> WeeklyReport:
        generated = generated_at or datetime.now(timezone.utc)
        report = WeeklyReport(
            week_start=window.start.isoformat(),
            week_end=window.end.isoformat(),
            generated_at=generated.isoformat().replace("+00:00", "Z"),
        )
        for url in reviews_urls:
            logger.info(f"Weekly report: {url} ({window.label})")
            entry = self.build_entry(url, window)
            logger.info(f"  {entry.slug}: {entry.new_reviews} new, rating {entry.current_rating}")
            report.apps.append(entry)
        return report


def carry_previous_ratings(report: WeeklyReport, previous: Optional[WeeklyReport]) -> WeeklyReport:
    """Copy each app's rating from the prior week's report into ``previous_rating``."""
    if previous is None:
        return report
    for entry in report.apps:
        prior = previous.entry_for(entry.slug)
        if prior is not None and prior.current_rating is not None:
            entry.previous_rating = prior.current_rating
    return report
