"""Review monitor package namespace."""

from importlib import import_module
from typing import Any

__all__ = [
    "RecordExtractor",
    "merge_strategy_results",
    "aggregate",
    "summarize_snapshot",
    "diff_snapshots",
    "PaginationController",
    "ArchivedReviewScraper",
    "WeeklyReportBuilder",
    "SnapshotStore",
    "ReportBuilder",
    "MonitorConfig",
]


def __getattr__(name: str) -> Any:
    if name == "RecordExtractor":
        module = import_module(".extractors", __name__)
        return getattr(module, name)
    elif name == "merge_strategy_results":
        module = import_module(".merge", __name__)
        return getattr(module, name)
    elif name in ("aggregate", "summarize_snapshot", "diff_snapshots"):
        module = import_module(".aggregation", __name__)
        return getattr(module, name)
    elif name == "PaginationController":
        module = import_module(".pagination", __name__)
        return getattr(module, name)
    elif name == "ArchivedReviewScraper":
        module = import_module(".scraper", __name__)
        return getattr(module, name)
    elif name == "WeeklyReportBuilder":
        module = import_module(".weekly_report", __name__)
        return getattr(module, name)
    elif name == "SnapshotStore":
        module = import_module(".storage", __name__)
        return getattr(module, name)
    elif name == "ReportBuilder":
        module = import_module(".reports", __name__)
        return getattr(module, name)
    elif name == "MonitorConfig":
        module = import_module(".config", __name__)
        return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:
    return sorted(__all__)
