"""Data models for the review monitor.

The persisted JSON documents keep the camelCase keys used by the snapshot
files (``snapshotDate``, ``appReviewsUrl``, ``archivedReviews`` ...), while the
Python attributes are snake_case. Every model round-trips through
``to_dict``/``from_dict``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

from .parser_utils import app_slug_from_url

IdentityKey = Tuple[Optional[str], Optional[str], Optional[str]]


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value)
    return value if value.strip() else None


def _optional_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass
class ReviewRecord:
    """One review entry extracted from a listing page.

    Every field is optional; a record must carry at least one of ``id``,
    ``rating``, ``text``, ``date_text`` or ``date_iso`` to be kept.
    """

    id: Optional[str] = None
    rating: Optional[float] = None
    rating_label: Optional[str] = None
    text: Optional[str] = None
    date_text: Optional[str] = None
    date_iso: Optional[str] = None

    def has_signal(self) -> bool:
        """Return True when the record carries anything worth keeping."""
        return bool(
            _blank_to_none(self.id)
            or self.rating is not None
            or _blank_to_none(self.text)
            or _blank_to_none(self.date_text)
            or _blank_to_none(self.date_iso)
        )

    def identity_key(self) -> Optional[IdentityKey]:
        """Composite ``(date_text, text, id)`` key, or None when all are empty."""
        parts = (
            _blank_to_none(self.date_text),
            _blank_to_none(self.text),
            _blank_to_none(self.id),
        )
        if all(part is None for part in parts):
            return None
        return parts

    def content_key(self) -> Optional[Tuple[str, str]]:
        """``(date_text, text)`` when both are present, else None."""
        date_text = _blank_to_none(self.date_text)
        text = _blank_to_none(self.text)
        if date_text is None or text is None:
            return None
        return date_text, text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "rating": self.rating,
            "ratingLabel": self.rating_label,
            "text": self.text,
            "dateText": self.date_text,
            "dateISO": self.date_iso,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReviewRecord":
        raw_id = data.get("id")
        return cls(
            id=str(raw_id) if raw_id not in (None, "") else None,
            rating=_optional_float(data.get("rating")),
            rating_label=data.get("ratingLabel"),
            text=data.get("text"),
            date_text=data.get("dateText"),
            date_iso=data.get("dateISO"),
        )


@dataclass
class AppSnapshot:
    """Archived reviews captured for one app during one crawl run."""

    app_reviews_url: str
    archived_reviews: List[ReviewRecord] = field(default_factory=list)
    error: Optional[str] = None
    first_page_url: Optional[str] = None
    last_page: Optional[int] = None

    @property
    def app_slug(self) -> str:
        return app_slug_from_url(self.app_reviews_url)

    @property
    def failed(self) -> bool:
        return self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"appReviewsUrl": self.app_reviews_url}
        if self.error is not None:
            data["error"] = self.error
            return data
        if self.first_page_url is not None:
            data["firstPageUrl"] = self.first_page_url
        if self.last_page is not None:
            data["lastPage"] = self.last_page
        data["archivedReviews"] = [record.to_dict() for record in self.archived_reviews]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppSnapshot":
        reviews = data.get("archivedReviews") or []
        return cls(
            app_reviews_url=data.get("appReviewsUrl") or "",
            archived_reviews=[ReviewRecord.from_dict(item) for item in reviews if isinstance(item, dict)],
            error=data.get("error"),
            first_page_url=data.get("firstPageUrl"),
            last_page=data.get("lastPage"),
        )


@dataclass
class Snapshot:
    """Dated capture of every tracked app's archived reviews."""

    snapshot_date: Optional[str]
    apps: List[AppSnapshot] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "snapshotDate": self.snapshot_date,
            "apps": [app.to_dict() for app in self.apps],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Snapshot":
        apps = data.get("apps") or []
        return cls(
            snapshot_date=data.get("snapshotDate"),
            apps=[AppSnapshot.from_dict(app) for app in apps if isinstance(app, dict)],
        )


@dataclass(frozen=True)
class WeekWindow:
    """Inclusive Monday..Sunday date range."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end.weekday() != 6:
            raise ValueError(f"Week window must end on a Sunday, got {self.end.isoformat()}")
        if self.start != self.end - timedelta(days=6):
            raise ValueError(f"Week window must start six days before {self.end.isoformat()}")

    @classmethod
    def ending(cls, sunday: date) -> "WeekWindow":
        return cls(start=sunday - timedelta(days=6), end=sunday)

    def contains(self, iso_date: Optional[str]) -> bool:
        if not iso_date:
            return False
        return self.start.isoformat() <= iso_date <= self.end.isoformat()

    def shift(self, weeks: int) -> "WeekWindow":
        return WeekWindow.ending(self.end + timedelta(weeks=weeks))

    @property
    def label(self) -> str:
        return f"{self.start.isoformat()} - {self.end.isoformat()}"


@dataclass
class WeeklyReportEntry:
    """New-review count and point-in-time rating for one app."""

    slug: str
    app_reviews_url: str = ""
    new_reviews: int = 0
    current_rating: Optional[float] = None
    previous_rating: Optional[float] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "slug": self.slug,
            "appReviewsUrl": self.app_reviews_url,
            "newReviews": self.new_reviews,
            "currentRating": self.current_rating,
        }
        if self.previous_rating is not None:
            data["previousRating"] = self.previous_rating
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WeeklyReportEntry":
        new_reviews = data.get("newReviews")
        return cls(
            slug=data.get("slug") or app_slug_from_url(data.get("appReviewsUrl") or ""),
            app_reviews_url=data.get("appReviewsUrl") or "",
            new_reviews=int(new_reviews) if isinstance(new_reviews, (int, float)) else 0,
            current_rating=_optional_float(data.get("currentRating")),
            previous_rating=_optional_float(data.get("previousRating")),
            error=data.get("error"),
        )


@dataclass
class WeeklyReport:
    """Persisted weekly report document."""

    week_start: str
    week_end: str
    generated_at: str
    apps: List[WeeklyReportEntry] = field(default_factory=list)

    def entry_for(self, slug: str) -> Optional[WeeklyReportEntry]:
        for entry in self.apps:
            if entry.slug == slug:
                return entry
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "weekStart": self.week_start,
            "weekEnd": self.week_end,
            "generatedAt": self.generated_at,
            "apps": [entry.to_dict() for entry in self.apps],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WeeklyReport":
        apps = data.get("apps") or []
        return cls(
            week_start=data.get("weekStart") or "",
            week_end=data.get("weekEnd") or "",
            generated_at=data.get("generatedAt") or "",
            apps=[WeeklyReportEntry.from_dict(app) for app in apps if isinstance(app, dict)],
        )
