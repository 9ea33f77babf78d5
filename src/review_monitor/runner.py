"""Review monitor command-line runner.

Subcommands:

* ``snapshot``: scrape archived reviews for every tracked app and save
  ``archived-<date>.json``
* ``weekly-report``: count new reviews in the last completed week and save
  ``weekly-report-<weekEnd>.json``
* ``count``: archived reviews per app for one week of a snapshot
* ``diff``: new and removed archived reviews between two snapshots
* ``chat-post``: render the weekly chat post
* ``summary`` / ``trend``: JSON summaries for one snapshot or all of them

Exit codes: 0 success, 2 when some apps failed, 1 on a fatal error.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, TextIO

from .aggregation import summarize_snapshot
from .config import MonitorConfig
from .dates import DateLike, last_completed_week_end, to_date
from .driver import PageDriver, create_driver
from .logging_config import get_logger, setup_logging
from .models import Snapshot, WeekWindow
from .reports import ReportBuilder
from .scraper import ArchivedReviewScraper
from .storage import SnapshotStore, load_report, load_snapshot
from .weekly_report import WeeklyReportBuilder, carry_previous_ratings

DriverFactory = Callable[[], PageDriver]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class RunSummary:
    """Summary of one runner command."""

    command: str
    started_at: str
    completed_at: str = ""
    total_apps: int = 0
    failed_apps: List[str] = field(default_factory=list)
    output_path: Optional[str] = None
    errors: List[str] = field(default_factory=list)

    def exit_code(self) -> int:
        """Return appropriate exit code based on run status."""
        if self.errors:
            return 1
        if self.failed_apps:
            return 2
        return 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "command": self.command,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "total_apps": self.total_apps,
            "failed_apps": self.failed_apps,
            "output_path": self.output_path,
            "errors": self.errors,
            "exit_code": self.exit_code(),
        }


def emit(text: str, stream: Optional[TextIO] = None) -> None:
    """Write output immediately so it survives a later fatal error."""
    stream = stream or sys.stdout
    stream.write(text if text.endswith("\n") else text + "\n")
    stream.flush()


class ReviewMonitorRunner:
    """Wires configuration, drivers, crawlers and the store together."""

    def __init__(
        self,
        config: Optional[MonitorConfig] = None,
        *,
        store: Optional[SnapshotStore] = None,
        driver_factory: Optional[DriverFactory] = None,
        logger: Optional[logging.Logger] = None,
        stream: Optional[TextIO] = None,
    ) -> None:
        self.config = config or MonitorConfig()
        self.store = store or SnapshotStore(self.config.snapshots_dir)
        self.driver_factory = driver_factory
        self.logger = logger or get_logger("runner")
        self.stream = stream
        self.reports = ReportBuilder(catalog=self.config.catalog, store=self.store)

    def _open_driver(self, kind: Optional[str] = None) -> PageDriver:
        if self.driver_factory is not None:
            return self.driver_factory()
        return create_driver(
            kind or self.config.driver,
            headless=self.config.headless,
            navigation_timeout_ms=self.config.navigation_timeout_ms,
            click_wait_ms=self.config.click_wait_ms,
        )

    def _urls(self, test: bool) -> List[str]:
        urls = self.config.catalog.reviews_urls()
        if not urls:
            self.logger.warning(f"No apps configured in {self.config.config_path}")
        return urls[:1] if test else urls

    def run_snapshot(
        self,
        *,
        test: bool = False,
        out: Optional[Path] = None,
        overwrite: bool = False,
        driver_kind: Optional[str] = None,
        print_json: bool = True,
    ) -> RunSummary:
        """Scrape archived reviews, print the snapshot, then save it."""
        summary = RunSummary(command="snapshot", started_at=_now())
        urls = self._urls(test)
        summary.total_apps = len(urls)

        driver = self._open_driver(driver_kind)
        try:
            snapshot = ArchivedReviewScraper(driver).scrape(urls)
        finally:
            driver.close()

        summary.failed_apps = [app.app_slug for app in snapshot.apps if app.failed]
        if print_json:
            emit(json.dumps(snapshot.to_dict(), indent=2, ensure_ascii=False), self.stream)
        self.logger.info("\n" + self.reports.render_last_dates(snapshot))

        try:
            path = self.store.save_snapshot(snapshot, out, overwrite=overwrite)
            summary.output_path = str(path)
        except (OSError, ValueError) as exc:
            self.logger.error(f"Could not save snapshot: {exc}")
            summary.errors.append(str(exc))

        summary.completed_at = _now()
        return summary

    def run_weekly_report(
        self,
        *,
        week_end: Optional[DateLike] = None,
        test: bool = False,
        out: Optional[Path] = None,
        driver_kind: Optional[str] = None,
        print_json: bool = True,
    ) -> RunSummary:
        """Count new reviews for the week ending ``week_end`` (default: last completed week)."""
        summary = RunSummary(command="weekly-report", started_at=_now())
        end = to_date(week_end) if week_end is not None else last_completed_week_end()
        window = WeekWindow.ending(end)
        urls = self._urls(test)
        summary.total_apps = len(urls)

        driver = self._open_driver(driver_kind)
        try:
            builder = WeeklyReportBuilder(
                driver,
                max_pages=self.config.max_pages,
                page_wait_ms=self.config.page_wait_ms,
            )
            report = builder.build(urls, window)
        finally:
            driver.close()
        carry_previous_ratings(report, self.store.find_report(window.end - timedelta(days=7)))

        summary.failed_apps = [entry.slug for entry in report.apps if entry.error]
        if print_json:
            emit(json.dumps(report.to_dict(), indent=2, ensure_ascii=False), self.stream)

        try:
            summary.output_path = str(self.store.save_report(report, out))
        except OSError as exc:
            self.logger.error(f"Could not save weekly report: {exc}")
            summary.errors.append(str(exc))

        summary.completed_at = _now()
        return summary

    def resolve_snapshot(self, path: Optional[Path]) -> Snapshot:
        if path is None:
            path = self.store.latest_snapshot_path()
            if path is None:
                raise FileNotFoundError(f"No snapshots found in {self.store.directory}")
        return load_snapshot(path)

    def chat_post(
        self,
        *,
        week_end: Optional[DateLike] = None,
        snapshot_path: Optional[Path] = None,
        report_path: Optional[Path] = None,
        previous_report_path: Optional[Path] = None,
    ) -> str:
        data = self.reports.build_chat_post_data(
            week_end,
            snapshot=load_snapshot(snapshot_path) if snapshot_path else None,
            report=load_report(report_path) if report_path else None,
            previous_report=load_report(previous_report_path) if previous_report_path else None,
        )
        return self.reports.render_chat_post(data)


def _date_arg(value: str) -> str:
    try:
        return to_date(value).isoformat()
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid date {value!r}, expected YYYY-MM-DD") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Review monitor - archived review snapshots, weekly counts and reports"
    )
    parser.add_argument("--config", type=Path, help="Path to apps YAML config (default: config/apps.yaml)")
    parser.add_argument("--snapshots-dir", type=Path, help="Directory holding snapshot and report files")
    parser.add_argument("--log-file", type=Path, help="Write logs to file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    snapshot = subparsers.add_parser("snapshot", help="Scrape archived reviews for all apps")
    snapshot.add_argument("--out", type=Path, help="Write the snapshot here instead of the store")
    snapshot.add_argument("--test", action="store_true", help="Only scrape the first configured app")
    snapshot.add_argument("--overwrite", action="store_true", help="Replace an existing snapshot file")
    snapshot.add_argument("--driver", choices=["playwright", "static"], help="Page driver to use")
    snapshot.add_argument("--quiet", action="store_true", help="Do not print the snapshot JSON")

    weekly = subparsers.add_parser("weekly-report", help="Count new reviews for a week")
    weekly.add_argument("--week-end", type=_date_arg, help="Sunday ending the week (default: last completed week)")
    weekly.add_argument("--out", type=Path, help="Write the report here instead of the store")
    weekly.add_argument("--test", action="store_true", help="Only crawl the first configured app")
    weekly.add_argument("--driver", choices=["playwright", "static"], help="Page driver to use")
    weekly.add_argument("--quiet", action="store_true", help="Do not print the report JSON")

    count = subparsers.add_parser("count", help="Archived reviews per app for one week")
    count.add_argument("snapshot", nargs="?", type=Path, help="Snapshot file (default: latest)")
    count.add_argument("--ref-date", type=_date_arg, help="Any date; its Monday-Sunday week is counted")

    diff = subparsers.add_parser("diff", help="Compare two snapshots")
    diff.add_argument("before", type=Path)
    diff.add_argument("after", type=Path)
    diff.add_argument("label", nargs="?", help="Label shown in the report header")

    post = subparsers.add_parser("chat-post", help="Render the weekly chat post")
    post.add_argument("--week-end", type=_date_arg, help="Any date in the week to report (default: today)")
    post.add_argument("--snapshot", type=Path, help="Snapshot for archived counts (default: latest)")
    post.add_argument("--report", type=Path, help="Weekly report (default: from the store)")
    post.add_argument("--previous-report", type=Path, help="Previous weekly report (default: from the store)")
    post.add_argument("--out", type=Path, help="Also write the post to this file")

    summary = subparsers.add_parser("summary", help="JSON summary for one snapshot")
    summary.add_argument("snapshot", nargs="?", type=Path, help="Snapshot file (default: latest)")
    summary.add_argument("--range-start", type=_date_arg)
    summary.add_argument("--range-end", type=_date_arg)
    summary.add_argument("--week-over-week", action="store_true", help="Include the previous week")

    trend = subparsers.add_parser("trend", help="JSON summary for every stored snapshot")
    trend.add_argument("--week-over-week", action="store_true", help="Include the previous week per snapshot")

    return parser


def main(argv: Optional[Sequence[str]] = None, *, driver_factory: Optional[DriverFactory] = None) -> int:
    """CLI entry point for the review monitor."""
    args = build_parser().parse_args(argv)
    logger = setup_logging(verbose=args.verbose, log_file=args.log_file)

    try:
        config = MonitorConfig(args.config)
        store = SnapshotStore(args.snapshots_dir or config.snapshots_dir)
        runner = ReviewMonitorRunner(config, store=store, driver_factory=driver_factory, logger=logger)

        if args.command == "snapshot":
            result = runner.run_snapshot(
                test=args.test,
                out=args.out,
                overwrite=args.overwrite,
                driver_kind=args.driver,
                print_json=not args.quiet,
            )
        elif args.command == "weekly-report":
            result = runner.run_weekly_report(
                week_end=args.week_end,
                test=args.test,
                out=args.out,
                driver_kind=args.driver,
                print_json=not args.quiet,
            )
        else:
            result = None
            if args.command == "count":
                emit(runner.reports.render_count_report(runner.resolve_snapshot(args.snapshot), args.ref_date))
            elif args.command == "diff":
                emit(
                    runner.reports.render_diff_report(
                        load_snapshot(args.before),
                        load_snapshot(args.after),
                        before_name=args.before.name,
                        after_name=args.after.name,
                        label=args.label,
                    )
                )
            elif args.command == "chat-post":
                text = runner.chat_post(
                    week_end=args.week_end,
                    snapshot_path=args.snapshot,
                    report_path=args.report,
                    previous_report_path=args.previous_report,
                )
                emit(text)
                if args.out:
                    args.out.parent.mkdir(parents=True, exist_ok=True)
                    args.out.write_text(text + "\n", encoding="utf-8")
                    logger.info(f"Wrote chat post: {args.out}")
            elif args.command == "summary":
                summary = summarize_snapshot(
                    runner.resolve_snapshot(args.snapshot),
                    args.range_start,
                    args.range_end,
                    week_over_week=args.week_over_week,
                )
                emit(json.dumps(summary.to_dict(), indent=2))
            elif args.command == "trend":
                emit(json.dumps(runner.reports.build_trend(week_over_week=args.week_over_week), indent=2))

        if result is None:
            return 0

        logger.info(f"{result.command}: {result.total_apps - len(result.failed_apps)}/{result.total_apps} apps ok")
        if result.failed_apps:
            logger.warning(f"Failed apps: {', '.join(result.failed_apps)}")
        if result.output_path:
            logger.info(f"Output: {result.output_path}")
        return result.exit_code()

    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
