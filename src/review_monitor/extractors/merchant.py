"""Merchant-review card strategy.

Reads the ``[data-merchant-review]`` cards used on the public listing (and
``div[id^="review-"]`` blocks when the attribute is missing). Merchant reply
blocks inside a card are ignored for both text and date, so a reply
timestamp can never stand in for the review's own date.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from bs4 import Tag

from ..dates import DateSignal, find_date_text, is_reply_text
from ..logging_config import get_logger
from ..models import ReviewRecord
from ..parser_utils import element_text
from .base import (
    RATING_SELECTORS,
    ExtractionStrategy,
    build_record,
    closest,
    date_of,
    first_attribute,
    read_rating,
    register_strategy,
    select_first,
    select_outside_replies,
    strip_review_prefix,
    text_outside_replies,
)

MERCHANT_CARD_SELECTOR = "[data-merchant-review]"
FALLBACK_CARD_SELECTOR = 'div[id^="review-"]'
MERCHANT_ID_ATTRIBUTES = ("data-review-content-id", "data-review-id", "data-app-review-id")
MERCHANT_BODY_SELECTOR = (
    '[data-truncate-content-copy] p, [data-component="ReviewComment"], '
    ".ui-review__body, .review-content, .review__content, p"
)
DATE_ELEMENT_SELECTOR = (
    ".tw-text-body-xs.tw-text-fg-tertiary, "
    '[class*="text-body-xs"][class*="fg-tertiary"], '
    '[class*="fg-tertiary"], time[datetime], time'
)


def review_cards(soup: Tag) -> List[Tag]:
    """Merchant review cards, falling back to ``review-<id>`` blocks."""
    cards = soup.select(MERCHANT_CARD_SELECTOR)
    if not cards:
        cards = soup.select(FALLBACK_CARD_SELECTOR)
    return cards


@register_strategy("merchant", priority=20)
class MerchantReviewStrategy(ExtractionStrategy):
    """Extract one record per merchant review card."""

    def __init__(self) -> None:
        self.logger = get_logger("extractors.merchant")

    def _extract(self, soup: Tag, year_hint: Optional[int]) -> Iterable[ReviewRecord]:
        records = [self.read_card(card, year_hint) for card in review_cards(soup)]
        self.logger.debug(f"Merchant strategy found {len(records)} records")
        return records

    def read_card(self, card: Tag, year_hint: Optional[int] = None) -> ReviewRecord:
        rating, rating_label = read_rating(card)
        date_elements = self._date_elements(card)
        main_text = text_outside_replies(card)

        signals: List[DateSignal] = []
        for element in date_elements:
            date_attr, text = date_of(element)
            signals.append(DateSignal.attribute(date_attr))
            signals.append(DateSignal.text(text))

        date_text = next(
            (element_text(el) for el in date_elements if find_date_text(element_text(el))),
            None,
        )
        if date_text is None:
            date_text = find_date_text(main_text)

        return build_record(
            review_id=self._review_id(card),
            rating=rating,
            rating_label=rating_label,
            text=self._body_text(card),
            date_text=date_text,
            signals=signals,
            year_hint=year_hint,
            fallback_signals=[DateSignal.text(main_text)],
        )

    def _review_id(self, card: Tag) -> Optional[str]:
        review_id = first_attribute(card, MERCHANT_ID_ATTRIBUTES)
        if review_id:
            return review_id
        anchor = closest(card, '[id^="review-"]')
        return strip_review_prefix(first_attribute(anchor, ("id",)))

    def _date_elements(self, card: Tag) -> List[Tag]:
        """Date-looking elements outside replies; the one beside the stars first."""
        candidates = [
            el for el in select_outside_replies(card, DATE_ELEMENT_SELECTOR)
            if not is_reply_text(element_text(el))
        ]
        star = select_first(card, RATING_SELECTORS)
        row = star.parent if star is not None else None
        if row is None:
            return candidates
        in_row = [el for el in candidates if any(parent is row for parent in el.parents)]
        in_row_ids = {id(el) for el in in_row}
        return in_row + [el for el in candidates if id(el) not in in_row_ids]

    def _body_text(self, card: Tag) -> Optional[str]:
        for element in select_outside_replies(card, MERCHANT_BODY_SELECTOR):
            text = element_text(element)
            if text:
                return text
        return None
