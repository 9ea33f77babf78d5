"""Date-keyed JSON store for snapshots and weekly reports."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from .dates import DateLike, to_date
from .logging_config import get_logger
from .models import Snapshot, WeeklyReport

logger = get_logger("storage")

SNAPSHOT_PATTERN = re.compile(r"^archived-(\d{4}-\d{2}-\d{2})\.json$")
REPORT_PATTERN = re.compile(r"^weekly-report-(\d{4}-\d{2}-\d{2})\.json$")

PathLike = Union[str, Path]


class SnapshotFormatError(ValueError):
    """A persisted document could not be read as the expected shape."""

    def __init__(self, path: PathLike, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = Path(path)
        self.reason = reason


@dataclass
class SnapshotFileInfo:
    filename: str
    path: Path
    modified: datetime
    snapshot_date: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "mtime": self.modified.isoformat(),
            "snapshotDate": self.snapshot_date,
        }


def _read_json_object(path: Path) -> Dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SnapshotFormatError(path, f"invalid JSON ({exc.msg} at line {exc.lineno})") from exc
    except UnicodeDecodeError as exc:
        raise SnapshotFormatError(path, "not UTF-8 text") from exc
    if not isinstance(data, dict):
        raise SnapshotFormatError(path, f"expected a JSON object, got {type(data).__name__}")
    return data


def _write_json(path: Path, payload: Dict[str, Any], *, overwrite: bool) -> Path:
    if path.exists() and not overwrite:
        raise FileExistsError(f"Refusing to overwrite existing file: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return path


def load_snapshot(path: PathLike) -> Snapshot:
    path = Path(path)
    data = _read_json_object(path)
    if not isinstance(data.get("apps"), list):
        raise SnapshotFormatError(path, "missing 'apps' list")
    return Snapshot.from_dict(data)


def load_report(path: PathLike) -> WeeklyReport:
    path = Path(path)
    data = _read_json_object(path)
    if not isinstance(data.get("apps"), list):
        raise SnapshotFormatError(path, "missing 'apps' list")
    return WeeklyReport.from_dict(data)


class SnapshotStore:
    """Snapshots live in ``archived-YYYY-MM-DD.json``, weekly reports in
    ``weekly-report-YYYY-MM-DD.json`` (keyed by the week's Sunday)."""

    def __init__(self, directory: PathLike) -> None:
        self.directory = Path(directory)

    def snapshot_path(self, snapshot_date: DateLike) -> Path:
        return self.directory / f"archived-{to_date(snapshot_date).isoformat()}.json"

    def report_path(self, week_end: DateLike) -> Path:
        return self.directory / f"weekly-report-{to_date(week_end).isoformat()}.json"

    def save_snapshot(
        self, snapshot: Snapshot, path: Optional[PathLike] = None, *, overwrite: bool = False
    ) -> Path:
        """Write a snapshot; existing files are left alone unless ``overwrite`` is set."""
        if path is None:
            if not snapshot.snapshot_date:
                raise ValueError("Snapshot has no snapshot_date to derive a file name from")
            path = self.snapshot_path(snapshot.snapshot_date)
        target = _write_json(Path(path), snapshot.to_dict(), overwrite=overwrite)
        logger.info(f"Saved snapshot to {target}")
        return target

    def save_report(
        self, report: WeeklyReport, path: Optional[PathLike] = None, *, overwrite: bool = True
    ) -> Path:
        target = _write_json(Path(path) if path else self.report_path(report.week_end), report.to_dict(), overwrite=overwrite)
        logger.info(f"Saved weekly report to {target}")
        return target

    def load_snapshot(self, snapshot_date: DateLike) -> Snapshot:
        return load_snapshot(self.snapshot_path(snapshot_date))

    def find_report(self, week_end: DateLike) -> Optional[WeeklyReport]:
        """Weekly report for the week ending ``week_end``; None if missing or unreadable."""
        path = self.report_path(week_end)
        if not path.exists():
            return None
        try:
            return load_report(path)
        except SnapshotFormatError as exc:
            logger.warning(f"Skipping unreadable weekly report: {exc}")
            return None

    def list_snapshots(self) -> List[SnapshotFileInfo]:
        """Snapshot files, newest modification first.

        Unreadable files stay in the listing with no ``snapshot_date``.
        """
        if not self.directory.is_dir():
            return []
        infos: List[SnapshotFileInfo] = []
        for path in self.directory.iterdir():
            if not path.is_file() or not SNAPSHOT_PATTERN.match(path.name):
                continue
            info = SnapshotFileInfo(
                filename=path.name,
                path=path,
                modified=datetime.fromtimestamp(path.stat().st_mtime),
            )
            try:
                info.snapshot_date = _read_json_object(path).get("snapshotDate")
            except SnapshotFormatError as exc:
                logger.warning(f"Unreadable snapshot in listing: {exc}")
            infos.append(info)
        infos.sort(key=lambda item: (item.modified, item.filename), reverse=True)
        return infos

    def latest_snapshot_path(self) -> Optional[Path]:
        """Newest snapshot by the date in its file name."""
        if not self.directory.is_dir():
            return None
        dated = [
            (match.group(1), path)
            for path in self.directory.iterdir()
            for match in [SNAPSHOT_PATTERN.match(path.name)]
            if match and path.is_file()
        ]
        if not dated:
            return None
        return max(dated)[1]

    def iter_snapshots(self) -> Iterator[Tuple[SnapshotFileInfo, Snapshot]]:
        """Readable snapshots, newest first; malformed files are logged and skipped."""
        for info in self.list_snapshots():
            try:
                snapshot = load_snapshot(info.path)
            except SnapshotFormatError as exc:
                logger.warning(f"Skipping malformed snapshot: {exc}")
                continue
            yield info, snapshot
