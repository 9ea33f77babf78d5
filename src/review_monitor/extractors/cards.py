"""Per-card strategy anchored on the archived-reviews button containers.

Every review card on the archived listing carries a "show archived reviews"
button container. Starting from those, the strategy walks up to the card and
emits one record per date marker found inside it, because a single card can
group several archived reviews.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Set

from bs4 import Tag

from ..dates import DateSignal, is_reply_text
from ..logging_config import get_logger
from ..models import ReviewRecord
from ..parser_utils import element_text
from .base import (
    ARCHIVED_BUTTON_CONTAINER,
    DATE_MARKER_SELECTOR,
    ID_ATTRIBUTES,
    ExtractionStrategy,
    build_record,
    closest,
    first_attribute,
    read_rating,
    register_strategy,
    select_outside_replies,
)

CARD_SELECTOR = (
    'article, li, [data-review-id], [data-app-review-id], [data-merchant-review], '
    '[role="listitem"], div[id^="review-"], [class*="review"]'
)
CARD_ID_ATTRIBUTES = ID_ATTRIBUTES + ("data-merchant-review",)
CARD_BODY_SELECTOR = (
    '[data-component="ReviewComment"], .ui-review__body, .review-content, '
    '.review__content, [data-truncate-content-copy] p, p'
)


@register_strategy("card", priority=30)
class ButtonCardStrategy(ExtractionStrategy):
    """Extract records from cards that hold an archived-reviews button."""

    def __init__(self) -> None:
        self.logger = get_logger("extractors.cards")

    def _extract(self, soup: Tag, year_hint: Optional[int]) -> Iterable[ReviewRecord]:
        records: List[ReviewRecord] = []
        visited: Set[int] = set()

        for button_container in soup.select(ARCHIVED_BUTTON_CONTAINER):
            card = self._card_for(button_container)
            if card is None or id(card) in visited:
                continue
            visited.add(id(card))
            records.extend(self._read_card(card, year_hint))

        self.logger.debug(f"Card strategy found {len(records)} records")
        return records

    def _card_for(self, button_container: Tag) -> Optional[Tag]:
        start = button_container.parent
        card = closest(start, CARD_SELECTOR)
        if card is not None:
            return card
        classed = closest(start, "div[class]")
        if classed is not None and classed.parent is not None:
            return classed.parent
        return start

    def _read_card(self, card: Tag, year_hint: Optional[int]) -> List[ReviewRecord]:
        markers = [
            marker for marker in select_outside_replies(card, DATE_MARKER_SELECTOR)
            if element_text(marker) and not is_reply_text(element_text(marker))
        ]
        if not markers:
            return [self._record(card, card, None, year_hint)]

        records = []
        for marker in markers:
            block = closest(marker.parent, CARD_SELECTOR) or marker.parent or card
            records.append(self._record(block, card, marker, year_hint))
        return records

    def _record(
        self, block: Tag, card: Tag, marker: Optional[Tag], year_hint: Optional[int]
    ) -> ReviewRecord:
        rating, rating_label = read_rating(block)
        if rating_label is None:
            rating, rating_label = read_rating(card)

        text = None
        for element in select_outside_replies(block, CARD_BODY_SELECTOR):
            if element is marker:
                continue
            text = element_text(element)
            if text:
                break

        date_text = element_text(marker)
        return build_record(
            review_id=first_attribute(block, CARD_ID_ATTRIBUTES) or first_attribute(card, CARD_ID_ATTRIBUTES),
            rating=rating,
            rating_label=rating_label,
            text=text,
            date_text=date_text,
            signals=[DateSignal.text(date_text)],
            year_hint=year_hint,
        )
