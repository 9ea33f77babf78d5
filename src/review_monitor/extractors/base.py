"""Base class, registry and DOM helpers for review extraction strategies."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Type

from bs4 import NavigableString, Tag

from ..dates import DateSignal, is_reply_text, resolve
from ..models import ReviewRecord
from ..parser_utils import Document, clean_text, element_text, parse_html, parse_rating_label

STRATEGY_REGISTRY: Dict[str, Type["ExtractionStrategy"]] = {}

RATING_SELECTORS: Sequence[str] = (
    '[aria-label*="out of 5 stars" i]',
    '[aria-label*="out of 5" i]',
    '[role="img"][aria-label*="star" i]',
)

ID_ATTRIBUTES: Sequence[str] = ("data-review-id", "data-app-review-id", "data-id")

DATE_MARKER_SELECTOR = ".tw-text-body-xs.tw-text-fg-tertiary"
REPLY_BLOCK_ATTRIBUTE = "data-merchant-review-reply"
REPLY_BLOCK_SELECTOR = f"[{REPLY_BLOCK_ATTRIBUTE}]"
ARCHIVED_BUTTON_CONTAINER = '[data-archived-reviews-target="buttonContainer"]'

REVIEW_BODY_SELECTORS: Sequence[str] = (
    '[data-component="ReviewComment"]',
    ".ui-review__body",
    ".review-content",
    ".review__content",
    "p",
)


def register_strategy(name: str, priority: int) -> Any:
    """Decorator to register an extraction strategy under ``name``.

    Lower ``priority`` values win when strategy results are merged.
    """

    def decorator(cls: Type["ExtractionStrategy"]) -> Type["ExtractionStrategy"]:
        cls.name = name
        cls.priority = priority
        STRATEGY_REGISTRY[name] = cls
        return cls

    return decorator


class ExtractionStrategy(ABC):
    """One heuristic for locating review records in a rendered page.

    Strategies only query inside the record boundary they identified, so a
    strategy keeps working when unrelated parts of the page change.
    """

    name: str = ""
    priority: int = 100

    def extract(self, document: Document, *, year_hint: Optional[int] = None) -> List[ReviewRecord]:
        """Return the records this strategy recognises; ``[]`` when its pattern is absent."""
        soup = parse_html(document)
        return [record for record in self._extract(soup, year_hint) if record.has_signal()]

    @abstractmethod
    def _extract(self, soup: Tag, year_hint: Optional[int]) -> Iterable[ReviewRecord]:
        """Yield candidate records from the parsed document."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, priority={self.priority})"


def closest(element: Optional[Tag], selector: str) -> Optional[Tag]:
    """Nearest ancestor matching ``selector``, the element itself included."""
    if element is None:
        return None
    return element.css.closest(selector)


def first_attribute(element: Optional[Tag], names: Sequence[str]) -> Optional[str]:
    """First non-empty attribute among ``names``."""
    if element is None:
        return None
    for name in names:
        value = element.get(name)
        if isinstance(value, list):
            value = " ".join(value)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def inside_reply(element: Tag) -> bool:
    """True when the element sits inside a merchant reply block."""
    if element.has_attr(REPLY_BLOCK_ATTRIBUTE):
        return True
    return element.find_parent(attrs={REPLY_BLOCK_ATTRIBUTE: True}) is not None


def select_first(scope: Tag, selectors: Sequence[str], *, exclude: Optional[Tag] = None) -> Optional[Tag]:
    """Try each selector in turn and return the first hit that is not ``exclude``."""
    for selector in selectors:
        for candidate in scope.select(selector):
            if candidate is not exclude:
                return candidate
    return None


def select_outside_replies(scope: Tag, selector: str) -> List[Tag]:
    """Matches for ``selector`` under ``scope`` that are not part of a reply."""
    return [element for element in scope.select(selector) if not inside_reply(element)]


def text_outside_replies(scope: Tag) -> Optional[str]:
    """Text content of ``scope`` with merchant reply blocks left out."""
    parts: List[str] = []
    for string in scope.find_all(string=True):
        if not isinstance(string, NavigableString):
            continue
        parent = string.parent
        if parent is not None and parent.name in ("script", "style"):
            continue
        if parent is not None and inside_reply(parent):
            continue
        parts.append(str(string))
    return clean_text(" ".join(parts))


def read_rating(scope: Optional[Tag]) -> Tuple[Optional[float], Optional[str]]:
    """Return ``(rating, aria_label)`` from the first star widget under ``scope``."""
    if scope is None:
        return None, None
    node = select_first(scope, RATING_SELECTORS)
    if node is None:
        return None, None
    label = clean_text(node.get("aria-label"))
    if not label:
        return None, None
    return parse_rating_label(label), label


def date_of(element: Optional[Tag]) -> Tuple[Optional[str], Optional[str]]:
    """``(datetime attribute, visible text)`` for a date element."""
    if element is None:
        return None, None
    return first_attribute(element, ("datetime",)), element_text(element)


def build_record(
    *,
    review_id: Optional[str],
    rating: Optional[float],
    rating_label: Optional[str],
    text: Optional[str],
    date_text: Optional[str],
    signals: Sequence[Optional[DateSignal]],
    year_hint: Optional[int],
    fallback_signals: Sequence[Optional[DateSignal]] = (),
) -> ReviewRecord:
    """Assemble a record, resolving ``date_iso`` from the given signals.

    ``fallback_signals`` are consulted only when ``signals`` resolve to
    nothing, so a date in free text never outranks a dedicated date element.
    """
    if date_text and is_reply_text(date_text):
        date_text = None
    date_iso = resolve(signals, year_hint=year_hint)
    if date_iso is None and fallback_signals:
        date_iso = resolve(fallback_signals, year_hint=year_hint)
    return ReviewRecord(
        id=review_id,
        rating=rating,
        rating_label=rating_label,
        text=text,
        date_text=date_text,
        date_iso=date_iso,
    )


def tag_children(element: Tag) -> List[Tag]:
    return [child for child in element.children if isinstance(child, Tag)]


_ID_PREFIX = re.compile(r"^review-")


def strip_review_prefix(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return _ID_PREFIX.sub("", value) or None
