"""Window aggregation, identity diffing and snapshot summaries."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from .dates import DateLike, DateSignal, resolve, to_date, utc_today, week_window
from .logging_config import get_logger
from .models import AppSnapshot, IdentityKey, ReviewRecord, Snapshot, WeekWindow

logger = get_logger("aggregation")

STAR_KEYS = ("1", "2", "3", "4", "5")
UNKNOWN_KEY = "unknown"


def round_star(rating: Optional[float]) -> Optional[int]:
    """Nearest whole star, halves rounding up; None outside [1, 5]."""
    if rating is None:
        return None
    try:
        value = float(rating)
    except (TypeError, ValueError):
        return None
    if math.isnan(value) or value < 1 or value > 5:
        return None
    return int(math.floor(value + 0.5))


def round_one_decimal(value: float) -> float:
    return math.floor(value * 10 + 0.5) / 10


def average_stars(stars: Iterable[Optional[int]]) -> Optional[float]:
    known = [star for star in stars if star is not None]
    if not known:
        return None
    return round_one_decimal(sum(known) / len(known))


def star_histogram(stars: Iterable[Optional[int]]) -> Dict[str, int]:
    histogram = {key: 0 for key in STAR_KEYS}
    histogram[UNKNOWN_KEY] = 0
    for star in stars:
        histogram[str(star) if star is not None else UNKNOWN_KEY] += 1
    return histogram


def record_date(record: ReviewRecord, year_hint: Optional[int] = None) -> Optional[str]:
    """Canonical date for a record: ``date_iso`` first, then ``date_text``."""
    return resolve(
        [DateSignal.attribute(record.date_iso), DateSignal.text(record.date_text)],
        year_hint=year_hint,
    )


def oldest_record_date(records: Iterable[ReviewRecord], year_hint: Optional[int] = None) -> Optional[str]:
    dates = [found for found in (record_date(record, year_hint) for record in records) if found]
    return min(dates) if dates else None


@dataclass
class WindowAggregate:
    """In-range statistics for one set of records over one date range."""

    start: date
    end: date
    in_range_count: int = 0
    rating_histogram: Dict[str, int] = field(default_factory=lambda: star_histogram([]))
    average_rating: Optional[float] = None
    per_record_ratings: List[Optional[int]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rangeStart": self.start.isoformat(),
            "rangeEnd": self.end.isoformat(),
            "inRange": self.in_range_count,
            "ratingHistogram": dict(self.rating_histogram),
            "averageRating": self.average_rating,
            "inRangeRatings": list(self.per_record_ratings),
        }


def aggregate_range(records: Iterable[ReviewRecord], start: DateLike, end: DateLike) -> WindowAggregate:
    """Aggregate the records dated within ``[start, end]`` inclusive.

    Dates without a year are placed in ``end``'s year. Records with no
    resolvable date are left out of the count; records with no known rating
    are counted but left out of the average.
    """
    first, last = to_date(start), to_date(end)
    lower, upper = first.isoformat(), last.isoformat()
    ratings: List[Optional[int]] = []
    for record in records:
        found = record_date(record, year_hint=last.year)
        if found is None or not (lower <= found <= upper):
            continue
        ratings.append(round_star(record.rating))
    return WindowAggregate(
        start=first,
        end=last,
        in_range_count=len(ratings),
        rating_histogram=star_histogram(ratings),
        average_rating=average_stars(ratings),
        per_record_ratings=ratings,
    )


def aggregate(records: Iterable[ReviewRecord], window: WeekWindow) -> WindowAggregate:
    """Aggregate records over a Monday-Sunday window."""
    return aggregate_range(records, window.start, window.end)


@dataclass
class IdentityDiff:
    """Identity-set comparison between a before and an after record set."""

    new: Set[IdentityKey] = field(default_factory=set)
    removed: Set[IdentityKey] = field(default_factory=set)
    common: Set[IdentityKey] = field(default_factory=set)

    @property
    def changed(self) -> bool:
        return bool(self.new or self.removed)


def identity_set(records: Iterable[ReviewRecord]) -> Set[IdentityKey]:
    """Identity keys of the records; records without one are not part of the set."""
    return {key for key in (record.identity_key() for record in records) if key is not None}


def diff_identities(before: Iterable[ReviewRecord], after: Iterable[ReviewRecord]) -> IdentityDiff:
    before_keys = identity_set(before)
    after_keys = identity_set(after)
    return IdentityDiff(
        new=after_keys - before_keys,
        removed=before_keys - after_keys,
        common=before_keys & after_keys,
    )


def identity_label(key: IdentityKey, limit: int = 60) -> str:
    """Short human label for an identity key: the id, else the text or date."""
    date_text, text, review_id = key
    if review_id:
        return review_id
    label = text or date_text or ""
    if len(label) > limit:
        return label[: limit - 3] + "..."
    return label


@dataclass
class AppDiff:
    app_reviews_url: str
    slug: str
    diff: IdentityDiff = field(default_factory=IdentityDiff)
    before_total: int = 0
    after_total: int = 0
    error: Optional[str] = None


def diff_snapshots(before: Snapshot, after: Snapshot) -> List[AppDiff]:
    """Per-app identity diff, matched on the app reviews URL.

    A failed app in ``before`` counts as having no identities; a failed app in
    ``after`` is reported with its error and no diff.
    """
    before_apps = {app.app_reviews_url: app for app in before.apps}
    after_apps = {app.app_reviews_url: app for app in after.apps}
    diffs: List[AppDiff] = []

    for url in sorted(set(before_apps) | set(after_apps)):
        previous = before_apps.get(url)
        current = after_apps.get(url)
        previous_records = previous.archived_reviews if previous and not previous.failed else []
        slug = (current or previous).app_slug
        if current is not None and current.failed:
            diffs.append(AppDiff(app_reviews_url=url, slug=slug, error=current.error))
            continue
        current_records = current.archived_reviews if current else []
        diffs.append(
            AppDiff(
                app_reviews_url=url,
                slug=slug,
                diff=diff_identities(previous_records, current_records),
                before_total=len(identity_set(previous_records)),
                after_total=len(identity_set(current_records)),
            )
        )
    return diffs


@dataclass
class AppSummary:
    """Per-app slice of a snapshot summary."""

    slug: str
    app_reviews_url: str
    total_archived: int = 0
    in_range: int = 0
    average_rating: Optional[float] = None
    in_range_ratings: List[Optional[int]] = field(default_factory=list)
    stars: Dict[str, int] = field(default_factory=lambda: star_histogram([]))
    last_date_iso: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"slug": self.slug, "appReviewsUrl": self.app_reviews_url}
        if self.error is not None:
            data["error"] = self.error
            return data
        data.update(
            {
                "totalArchived": self.total_archived,
                "inRange": self.in_range,
                "averageRating": self.average_rating,
                "inRangeRatings": list(self.in_range_ratings),
                "stars": dict(self.stars),
                "lastDateISO": self.last_date_iso,
            }
        )
        return data


@dataclass
class SnapshotSummary:
    """Aggregation query result for one snapshot over one date range."""

    snapshot_date: Optional[str]
    range_start: str
    range_end: str
    apps: List[AppSummary] = field(default_factory=list)
    previous_week: Optional["SnapshotSummary"] = None

    @property
    def total_archived(self) -> int:
        return sum(app.total_archived for app in self.apps if app.error is None)

    @property
    def total_in_range(self) -> int:
        return sum(app.in_range for app in self.apps if app.error is None)

    @property
    def failed_apps(self) -> List[str]:
        return [app.slug for app in self.apps if app.error is not None]

    @property
    def stars(self) -> Dict[str, int]:
        totals = star_histogram([])
        for app in self.apps:
            if app.error is None:
                for key, count in app.stars.items():
                    totals[key] += count
        return totals

    def app(self, slug: str) -> Optional[AppSummary]:
        return next((app for app in self.apps if app.slug == slug), None)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "snapshotDate": self.snapshot_date,
            "rangeStart": self.range_start,
            "rangeEnd": self.range_end,
            "totalArchived": self.total_archived,
            "totalInRange": self.total_in_range,
            "stars": self.stars,
            "apps": [app.to_dict() for app in self.apps],
        }
        if self.previous_week is not None:
            data["weekOverWeek"] = {
                "previous": self.previous_week.to_dict(),
                "inRangeDelta": self.total_in_range - self.previous_week.total_in_range,
            }
        return data


def summarize_app(app: AppSnapshot, start: date, end: date) -> AppSummary:
    if app.failed:
        return AppSummary(slug=app.app_slug, app_reviews_url=app.app_reviews_url, error=app.error)
    records = app.archived_reviews
    window = aggregate_range(records, start, end)
    all_stars = [round_star(record.rating) for record in records]
    dates = [found for found in (record_date(record) for record in records) if found]
    return AppSummary(
        slug=app.app_slug,
        app_reviews_url=app.app_reviews_url,
        total_archived=len(records),
        in_range=window.in_range_count,
        average_rating=window.average_rating,
        in_range_ratings=window.per_record_ratings,
        stars=star_histogram(all_stars),
        last_date_iso=max(dates) if dates else None,
    )


def summary_range(
    snapshot: Snapshot,
    range_start: Optional[DateLike] = None,
    range_end: Optional[DateLike] = None,
) -> Tuple[date, date]:
    """Explicit range when both ends are given, else the Monday-Sunday week
    of the range end, the snapshot date or today (in that order)."""
    if range_start is not None and range_end is not None:
        start, end = to_date(range_start), to_date(range_end)
        if start > end:
            raise ValueError(f"Range start {start} is after range end {end}")
        return start, end
    reference = range_end or range_start or snapshot.snapshot_date or utc_today()
    window = week_window(reference)
    return window.start, window.end


def summarize_snapshot(
    snapshot: Snapshot,
    range_start: Optional[DateLike] = None,
    range_end: Optional[DateLike] = None,
    *,
    week_over_week: bool = False,
) -> SnapshotSummary:
    """Summarize a snapshot over a date range for the presentation layer.

    Apps that failed during the crawl are listed with their error and left
    out of every total.

    Args:
        snapshot: Snapshot document to summarize
        range_start: Optional explicit inclusive start date
        range_end: Optional explicit inclusive end date
        week_over_week: Also summarize the seven days before the range

    Returns:
        SnapshotSummary with per-app and total counts
    """
    start, end = summary_range(snapshot, range_start, range_end)
    summary = SnapshotSummary(
        snapshot_date=snapshot.snapshot_date,
        range_start=start.isoformat(),
        range_end=end.isoformat(),
        apps=[summarize_app(app, start, end) for app in snapshot.apps],
    )
    failed = summary.failed_apps
    if failed:
        logger.debug(f"Excluding failed apps from totals: {', '.join(failed)}")
    if week_over_week:
        summary.previous_week = summarize_snapshot(
            snapshot, start - timedelta(days=7), end - timedelta(days=7)
        )
    return summary
