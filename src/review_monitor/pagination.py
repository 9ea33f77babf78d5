"""Page-by-page stopping decisions for newest-first review crawls."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from .aggregation import aggregate, oldest_record_date
from .logging_config import get_logger
from .models import ReviewRecord, WeekWindow

logger = get_logger("pagination")

DEFAULT_MAX_PAGES = 20

STOP_PASSED_WINDOW = "passed_window"
STOP_LAST_PAGE = "last_page"
STOP_MAX_PAGES = "max_pages"

PageFetcher = Callable[[int], Tuple[Sequence[ReviewRecord], bool]]


@dataclass
class PageObservation:
    page: int
    records: int
    in_window: int
    oldest_date: Optional[str] = None


@dataclass
class PaginationController:
    """Owns the running in-window count for one app's crawl.

    The crawl stops once a page adds nothing to the window and its oldest
    resolvable date is already before the window start. This assumes pages
    are ordered newest first.
    """

    window: WeekWindow
    max_pages: int = DEFAULT_MAX_PAGES
    total_in_window: int = 0
    pages: List[PageObservation] = field(default_factory=list)
    stop_reason: Optional[str] = None

    def __post_init__(self) -> None:
        if self.max_pages < 1:
            raise ValueError("max_pages must be at least 1")

    @property
    def stopped(self) -> bool:
        return self.stop_reason is not None

    def observe(self, page: int, records: Sequence[ReviewRecord], *, has_next_page: bool = True) -> bool:
        """Record one page's merged records; return True when another page should be fetched."""
        result = aggregate(records, self.window)
        oldest = oldest_record_date(records, year_hint=self.window.end.year)
        self.total_in_window += result.in_range_count
        self.pages.append(
            PageObservation(page=page, records=len(records), in_window=result.in_range_count, oldest_date=oldest)
        )

        if result.in_range_count == 0 and oldest is not None and oldest < self.window.start.isoformat():
            self.stop_reason = STOP_PASSED_WINDOW
        elif not has_next_page:
            self.stop_reason = STOP_LAST_PAGE
        elif page >= self.max_pages:
            self.stop_reason = STOP_MAX_PAGES

        logger.debug(
            f"Page {page}: {len(records)} records, {result.in_range_count} in window, "
            f"oldest {oldest or 'unknown'}"
        )
        return not self.stopped

    def crawl(self, fetch_page: PageFetcher) -> int:
        """Drive ``fetch_page(n) -> (records, has_next_page)`` until a stop condition.

        Returns:
            Total in-window record count across the fetched pages
        """
        page = len(self.pages) + 1
        while not self.stopped:
            records, has_next_page = fetch_page(page)
            self.observe(page, records, has_next_page=has_next_page)
            page += 1
        logger.info(
            f"Crawl stopped after {len(self.pages)} page(s) ({self.stop_reason}): "
            f"{self.total_in_window} in window {self.window.label}"
        )
        return self.total_in_window
