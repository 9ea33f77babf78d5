"""Date resolution and Monday-Sunday week arithmetic.

Review dates show up in several shapes on a listing page: a machine-readable
``datetime`` attribute, a "January 27, 2025" or "27 January 2025" label, a
label without a year ("Jan 30"), or a bare ``2025-01-27`` somewhere in the
card text. :func:`resolve` turns an ordered list of such signals into one
canonical ``YYYY-MM-DD`` string, trying the strongest signal shape first.

All arithmetic uses ``datetime.date`` values, which carry no timezone, so a
weekday can never drift across a DST or UTC-offset boundary.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional, Sequence, Union

from dateutil import parser as date_parser

from .models import WeekWindow

SIGNAL_ATTRIBUTE = "attribute"
SIGNAL_TEXT = "text"

DateLike = Union[str, date, datetime]

MONTHS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

MONTH_NAMES = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]

_MONTH = (
    r"(?P<month>Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|June?|July?|Aug(?:ust)?"
    r"|Sep(?:t(?:ember)?)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)(?![a-z])\.?"
)

MONTH_DAY_YEAR = re.compile(r"\b" + _MONTH + r"\s+(?P<day>\d{1,2}),?\s+(?P<year>\d{4})\b", re.IGNORECASE)
DAY_MONTH_YEAR = re.compile(r"\b(?P<day>\d{1,2})\s+" + _MONTH + r"\s*,?\s*(?P<year>\d{4})\b", re.IGNORECASE)
# Year-less forms match capitalised month names only; "may 2" in prose is not a date.
MONTH_DAY = re.compile(r"\b" + _MONTH + r"\s+(?P<day>\d{1,2})(?!\w)(?!\s*,?\s*\d{4})")
DAY_MONTH = re.compile(r"\b(?P<day>\d{1,2})\s+" + _MONTH + r"(?!\.?\s*,?\s*\d{4})")
ISO_DATE = re.compile(r"\b(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})\b")
ISO_PREFIX = re.compile(r"^\s*(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})")

REPLY_MARKER = re.compile(r"\breplied\s+", re.IGNORECASE)


@dataclass(frozen=True)
class DateSignal:
    """One candidate date source for a record."""

    value: Optional[str]
    kind: str = SIGNAL_TEXT
    is_reply: bool = False

    @classmethod
    def attribute(cls, value: Optional[str], *, is_reply: bool = False) -> "DateSignal":
        return cls(value=value, kind=SIGNAL_ATTRIBUTE, is_reply=is_reply)

    @classmethod
    def text(cls, value: Optional[str], *, is_reply: bool = False) -> "DateSignal":
        return cls(value=value, kind=SIGNAL_TEXT, is_reply=is_reply)

    @property
    def usable(self) -> bool:
        """False for empty signals and for anything marked as a reply timestamp."""
        if not self.value or not self.value.strip():
            return False
        if self.is_reply:
            return False
        return not is_reply_text(self.value)


def is_reply_text(value: Optional[str]) -> bool:
    """True when the text reads like a merchant reply timestamp ("Replied Jan 3")."""
    return bool(value and REPLY_MARKER.search(value))


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _month_number(token: str) -> int:
    return MONTHS[token[:3].lower()]


def _from_attribute(signal: DateSignal, year_hint: Optional[int]) -> Optional[date]:
    if signal.kind != SIGNAL_ATTRIBUTE:
        return None
    value = signal.value.strip()
    match = ISO_PREFIX.match(value)
    if match:
        return _safe_date(int(match.group("year")), int(match.group("month")), int(match.group("day")))
    try:
        return date_parser.isoparse(value).date()
    except (ValueError, OverflowError):
        return None


def _explicit_year(signal: DateSignal, year_hint: Optional[int]) -> Optional[date]:
    for pattern in (MONTH_DAY_YEAR, DAY_MONTH_YEAR):
        for match in pattern.finditer(signal.value):
            found = _safe_date(
                int(match.group("year")),
                _month_number(match.group("month")),
                int(match.group("day")),
            )
            if found:
                return found
    return None


def _inferred_year(signal: DateSignal, year_hint: Optional[int]) -> Optional[date]:
    if year_hint is None:
        return None
    for pattern in (MONTH_DAY, DAY_MONTH):
        for match in pattern.finditer(signal.value):
            found = _safe_date(year_hint, _month_number(match.group("month")), int(match.group("day")))
            if found:
                return found
    return None


def _bare_iso(signal: DateSignal, year_hint: Optional[int]) -> Optional[date]:
    for match in ISO_DATE.finditer(signal.value):
        found = _safe_date(int(match.group("year")), int(match.group("month")), int(match.group("day")))
        if found:
            return found
    return None


_TIERS: Sequence[Callable[[DateSignal, Optional[int]], Optional[date]]] = (
    _from_attribute,
    _explicit_year,
    _inferred_year,
    _bare_iso,
)


def resolve(signals: Iterable[Optional[DateSignal]], year_hint: Optional[int] = None) -> Optional[str]:
    """Resolve ordered date signals into a canonical ``YYYY-MM-DD`` string.

    Tiers are tried in priority order and each tier scans every signal before
    the next tier starts:

    1. structured attribute values (``datetime="2025-01-27T09:00:00Z"``)
    2. "Month Day, Year" / "Day Month Year" with an explicit year
    3. the same shapes without a year, dated in ``year_hint``
    4. a bare ``YYYY-MM-DD`` anywhere in the text

    Reply timestamps never take part.

    Args:
        signals: Candidate signals, strongest source first
        year_hint: Year assumed for dates that omit one; tier 3 is skipped
            when this is None

    Returns:
        ISO date string, or None when nothing parses to a real calendar date
    """
    candidates: List[DateSignal] = [signal for signal in signals if signal is not None and signal.usable]
    for tier in _TIERS:
        for signal in candidates:
            found = tier(signal, year_hint)
            if found is not None:
                return found.isoformat()
    return None


def resolve_text(value: Optional[str], year_hint: Optional[int] = None) -> Optional[str]:
    """Shortcut for resolving a single free-text signal."""
    return resolve([DateSignal.text(value)], year_hint=year_hint)


def find_date_text(value: Optional[str]) -> Optional[str]:
    """Return the first date-looking substring of ``value`` (raw, as written)."""
    if not value or is_reply_text(value):
        return None
    for pattern in (MONTH_DAY_YEAR, DAY_MONTH_YEAR, MONTH_DAY, DAY_MONTH, ISO_DATE):
        match = pattern.search(value)
        if match:
            return match.group(0).strip()
    return None


def to_date(value: DateLike) -> date:
    """Coerce ``YYYY-MM-DD`` strings, dates and datetimes to a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def week_window(reference: DateLike) -> WeekWindow:
    """Monday-Sunday week whose Sunday is on or before ``reference``.

    A Sunday reference is its own week end; any other day maps back to the
    most recent Sunday (Tuesday 2025-02-04 -> 2025-01-27 .. 2025-02-02).
    """
    ref = to_date(reference)
    sunday = ref - timedelta(days=(ref.weekday() + 1) % 7)
    return WeekWindow.ending(sunday)


def last_completed_week_end(today: Optional[DateLike] = None) -> date:
    """Sunday closing the last fully completed week (a Sunday steps back a week)."""
    ref = to_date(today) if today is not None else utc_today()
    offset = 7 if ref.weekday() == 6 else ref.weekday() + 1
    return ref - timedelta(days=offset)


def format_long_date(value: DateLike) -> str:
    """``2025-01-26`` -> ``January 26, 2025``."""
    day = to_date(value)
    return f"{MONTH_NAMES[day.month - 1]} {day.day}, {day.year}"


def format_window_label(window: WeekWindow) -> str:
    return f"{format_long_date(window.start)} - {format_long_date(window.end)}"
