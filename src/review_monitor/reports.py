"""Text reports and the weekly chat post, rendered with Jinja2 templates.

The builder assembles plain dictionaries from snapshots and weekly reports;
the templates under ``templates/review_monitor`` only lay them out.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from jinja2 import Environment, FileSystemLoader

from .aggregation import STAR_KEYS, diff_snapshots, identity_label, summarize_snapshot
from .config import AppCatalog
from .dates import DateLike, format_window_label, utc_today, week_window
from .logging_config import get_logger
from .models import Snapshot, WeekWindow, WeeklyReport
from .scraper import last_archived_dates
from .storage import SnapshotFormatError, SnapshotStore, load_snapshot

logger = get_logger("reports")

MAX_LISTED_IDENTITIES = 20
MAX_LISTED_STARS = 6
LABEL_WIDTH = 20
UNKNOWN_STAR = "-"


def format_number(value: Optional[float]) -> str:
    """``4.0`` -> ``4``, ``4.5`` -> ``4.5``."""
    if value is None:
        return "N/A"
    return f"{value:g}"


def format_rating(value: Optional[float]) -> str:
    return f"{value:.1f}" if value is not None else "N/A"


def format_archived_ratings(stars: Sequence[Optional[int]], average: Optional[float]) -> str:
    """Star list for a handful of reviews, a distribution for more.

    ``[5, None, 4]`` -> `` (5:star:, -, 4:star:)``;
    eight reviews -> `` (1:star:, 2x4:star:, 5x5:star:)``.
    """
    known = [star for star in stars if star is not None]
    if not known:
        return f" ({format_number(average)} stars avg)" if average is not None else ""
    if len(stars) <= MAX_LISTED_STARS:
        listed = [f"{star}:star:" if star is not None else UNKNOWN_STAR for star in stars]
        return f" ({', '.join(listed)})"
    parts = []
    for key in STAR_KEYS:
        count = known.count(int(key))
        if count == 1:
            parts.append(f"{key}:star:")
        elif count > 1:
            parts.append(f"{count}x{key}:star:")
    return f" ({', '.join(parts)})"


class ReportBuilder:
    """Builds report data from stored snapshots and weekly reports."""

    def __init__(
        self,
        catalog: Optional[AppCatalog] = None,
        store: Optional[SnapshotStore] = None,
        template_dir: Optional[Union[str, Path]] = None,
    ) -> None:
        self.catalog = catalog or AppCatalog()
        self.store = store

        if template_dir is None:
            project_root = Path(__file__).parent.parent.parent
            template_dir = project_root / "templates" / "review_monitor"
        else:
            template_dir = Path(template_dir)

        self.template_dir = template_dir
        self.jinja_env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def _render(self, template_name: str, data: Dict[str, Any]) -> str:
        return self.jinja_env.get_template(template_name).render(**data).rstrip("\n")

    def build_chat_post_data(
        self,
        week_end: Optional[DateLike] = None,
        *,
        snapshot: Optional[Snapshot] = None,
        report: Optional[WeeklyReport] = None,
        previous_report: Optional[WeeklyReport] = None,
    ) -> Dict[str, Any]:
        """Collect everything the weekly chat post shows.

        Missing inputs are looked up in the store: the newest snapshot, the
        weekly report for the week and the one for the week before.

        Args:
            week_end: Any date in or after the week to report (defaults to today)
            snapshot: Snapshot supplying the archived-this-week counts
            report: Weekly report supplying new-review counts and ratings
            previous_report: Prior week's report supplying ``(from X)`` ratings

        Returns:
            Dictionary consumed by ``weekly_post.txt``
        """
        window = week_window(week_end or utc_today())
        if self.store is not None:
            if snapshot is None:
                snapshot = self._latest_snapshot()
            if report is None:
                report = self.store.find_report(window.end)
            if previous_report is None:
                previous_report = self.store.find_report(window.end - timedelta(days=7))

        tiers = []
        ratings: List[float] = []
        total_new = 0
        for group in self.catalog.tiers():
            rows = []
            for app in group:
                entry = report.entry_for(app.slug) if report else None
                previous = previous_report.entry_for(app.slug) if previous_report else None
                new_reviews = entry.new_reviews if entry else 0
                current = entry.current_rating if entry else None
                before = entry.previous_rating if entry and entry.previous_rating is not None else None
                if before is None and previous is not None:
                    before = previous.current_rating
                total_new += new_reviews
                if current is not None:
                    ratings.append(current)
                rows.append(
                    {
                        "label": app.label,
                        "padding": " " * max(0, LABEL_WIDTH - len(app.label)),
                        "new_reviews": new_reviews,
                        "rating": format_rating(current),
                        "from_rating": f" (from {format_rating(before)})" if before is not None else "",
                    }
                )
            tiers.append({"tier": group[0].tier, "label": f"TIER {group[0].tier}", "rows": rows})

        overall = f"{sum(ratings) / len(ratings):.2f}" if ratings else "N/A"
        archived_rows, archived_total = self._archived_rows(snapshot, window)

        return {
            "date_range_label": format_window_label(window),
            "week_start": window.start.isoformat(),
            "week_end": window.end.isoformat(),
            "tiers": tiers,
            "total_new_reviews": total_new,
            "overall_average": overall,
            "has_archived_data": snapshot is not None,
            "archived_rows": archived_rows,
            "archived_total": archived_total,
        }

    def _latest_snapshot(self) -> Optional[Snapshot]:
        path = self.store.latest_snapshot_path() if self.store else None
        if path is None:
            return None
        try:
            return load_snapshot(path)
        except SnapshotFormatError as exc:
            logger.warning(f"Latest snapshot unreadable, chat post has no archived data: {exc}")
            return None

    def _archived_rows(self, snapshot: Optional[Snapshot], window: WeekWindow):
        if snapshot is None:
            return [], 0
        summary = summarize_snapshot(snapshot, window.start, window.end)
        slugs: List[str] = [app.slug for app in summary.apps]
        for group in self.catalog.tiers():
            slugs.extend(app.slug for app in group if app.slug not in slugs)

        rows = []
        for slug in slugs:
            app_summary = summary.app(slug)
            if app_summary is None or app_summary.error is not None or app_summary.in_range == 0:
                continue
            rows.append(
                {
                    "label": self.catalog.lookup(slug).label,
                    "count": app_summary.in_range,
                    "ratings": format_archived_ratings(app_summary.in_range_ratings, app_summary.average_rating),
                }
            )
        return rows, summary.total_in_range

    def render_chat_post(self, data: Dict[str, Any]) -> str:
        return self._render("weekly_post.txt", data)

    def build_count_data(self, snapshot: Snapshot, reference: Optional[DateLike] = None) -> Dict[str, Any]:
        """Per-app archived counts for the Monday-Sunday week of ``reference``."""
        window = week_window(reference or snapshot.snapshot_date or utc_today())
        summary = summarize_snapshot(snapshot, window.start, window.end)
        rows = [
            {
                "slug": app.slug,
                "name": self.catalog.lookup(app.slug).display_name,
                "count": app.in_range,
                "error": app.error,
            }
            for app in summary.apps
        ]
        return {
            "week_start": window.start.isoformat(),
            "week_end": window.end.isoformat(),
            "rows": rows,
            "total": summary.total_in_range,
        }

    def render_count_report(self, snapshot: Snapshot, reference: Optional[DateLike] = None) -> str:
        return self._render("archived_by_week.txt", self.build_count_data(snapshot, reference))

    def build_diff_data(
        self,
        before: Snapshot,
        after: Snapshot,
        *,
        before_name: str = "before",
        after_name: str = "after",
        label: Optional[str] = None,
    ) -> Dict[str, Any]:
        rows = []
        for app_diff in diff_snapshots(before, after):
            new = sorted(identity_label(key) for key in app_diff.diff.new)
            removed = sorted(identity_label(key) for key in app_diff.diff.removed)
            rows.append(
                {
                    "slug": app_diff.slug,
                    "name": self.catalog.lookup(app_diff.slug).display_name,
                    "error": app_diff.error,
                    "before_total": app_diff.before_total,
                    "after_total": app_diff.after_total,
                    "new_count": len(new),
                    "new": new[:MAX_LISTED_IDENTITIES],
                    "new_more": max(0, len(new) - MAX_LISTED_IDENTITIES),
                    "removed_count": len(removed),
                    "removed": removed[:MAX_LISTED_IDENTITIES],
                    "removed_more": max(0, len(removed) - MAX_LISTED_IDENTITIES),
                }
            )
        return {
            "label": label,
            "before_name": before_name,
            "after_name": after_name,
            "before_date": before.snapshot_date,
            "after_date": after.snapshot_date,
            "rows": rows,
            "any_new": any(row["new_count"] for row in rows),
            "total_new": sum(row["new_count"] for row in rows),
        }

    def render_diff_report(self, before: Snapshot, after: Snapshot, **kwargs: Any) -> str:
        return self._render("archived_diff.txt", self.build_diff_data(before, after, **kwargs))

    def render_last_dates(self, snapshot: Snapshot) -> str:
        rows = [
            {
                "name": self.catalog.lookup(item.slug).display_name,
                "count": item.count,
                "last_date": item.last_date,
                "error": item.error,
            }
            for item in last_archived_dates(snapshot)
        ]
        return self._render("last_archived_dates.txt", {"snapshot_date": snapshot.snapshot_date, "rows": rows})

    def build_trend(self, *, week_over_week: bool = False) -> List[Dict[str, Any]]:
        """One summary point per readable stored snapshot, newest first."""
        if self.store is None:
            return []
        points = []
        for info, snapshot in self.store.iter_snapshots():
            summary = summarize_snapshot(snapshot, week_over_week=week_over_week)
            point = info.to_dict()
            point.update(summary.to_dict())
            points.append(point)
        return points
