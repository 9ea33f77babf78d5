"""Archived-reviews container strategy.

Looks for the dedicated ``#archived-reviews-container`` element and reads one
record per review block inside it. Blocks are found three ways, in order:
through their ``<time>`` elements, through id-carrying blocks not reached by
the first pass, and finally (only when both found nothing) the container's
direct children.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Set

from bs4 import Tag

from ..dates import DateSignal, find_date_text, ISO_DATE, MONTH_DAY_YEAR
from ..logging_config import get_logger
from ..models import ReviewRecord
from ..parser_utils import element_text
from .base import (
    DATE_MARKER_SELECTOR,
    ID_ATTRIBUTES,
    REVIEW_BODY_SELECTORS,
    ExtractionStrategy,
    build_record,
    closest,
    date_of,
    first_attribute,
    inside_reply,
    read_rating,
    register_strategy,
    select_first,
    tag_children,
    text_outside_replies,
)

CONTAINER_SELECTOR = "#archived-reviews-container"
ID_BLOCK_SELECTOR = "[data-id], [data-review-id], [data-app-review-id]"
LIST_ITEM_SELECTOR = 'li, article, [role="listitem"]'
LOOSE_DATE_SELECTOR = (
    '[data-date], [data-archived-date], .date, .review-date, .archived-date, [class*="date"]'
)


@register_strategy("container", priority=10)
class ContainerStrategy(ExtractionStrategy):
    """Extract records from the archived-reviews container."""

    def __init__(self) -> None:
        self.logger = get_logger("extractors.container")

    def _extract(self, soup: Tag, year_hint: Optional[int]) -> Iterable[ReviewRecord]:
        container = soup.select_one(CONTAINER_SELECTOR)
        if container is None:
            return []

        records: List[ReviewRecord] = []
        seen_ids: Set[str] = set()
        seen_blocks: Set[int] = set()

        for time_el in container.select("time"):
            if inside_reply(time_el):
                continue
            card = self._card_for(time_el, container)
            if card is None or id(card) in seen_blocks:
                continue
            seen_blocks.add(id(card))
            record = self._read_card(card, year_hint, time_el=time_el)
            if record.has_signal():
                records.append(record)
                if record.id:
                    seen_ids.add(record.id)

        for block in container.select(ID_BLOCK_SELECTOR):
            block_id = first_attribute(block, ID_ATTRIBUTES)
            if block_id and block_id in seen_ids:
                continue
            if id(block) in seen_blocks:
                continue
            seen_blocks.add(id(block))
            record = self._read_card(block, year_hint)
            if record.has_signal():
                records.append(record)
                if record.id:
                    seen_ids.add(record.id)

        if not records:
            for child in tag_children(container):
                record = self._read_card(child, year_hint)
                if record.has_signal():
                    records.append(record)

        self.logger.debug(f"Container strategy found {len(records)} records")
        return records

    def _card_for(self, time_el: Tag, container: Tag) -> Optional[Tag]:
        card = closest(time_el, ID_BLOCK_SELECTOR) or closest(time_el, LIST_ITEM_SELECTOR)
        if card is not None:
            return card
        parent = time_el.parent
        if parent is None or parent is container:
            return parent
        grandparent = parent.parent
        if grandparent is not None and grandparent is not container:
            return grandparent
        return parent

    def _read_card(
        self, card: Tag, year_hint: Optional[int], *, time_el: Optional[Tag] = None
    ) -> ReviewRecord:
        rating, rating_label = read_rating(card)
        body = select_first(card, REVIEW_BODY_SELECTORS)
        date_attr, date_text = self._read_date(card, time_el)
        return build_record(
            review_id=first_attribute(card, ID_ATTRIBUTES),
            rating=rating,
            rating_label=rating_label,
            text=element_text(body),
            date_text=date_text,
            signals=[DateSignal.attribute(date_attr), DateSignal.text(date_text)],
            year_hint=year_hint,
        )

    def _read_date(self, card: Tag, time_el: Optional[Tag]):
        """Return ``(attribute, text)`` for the card's date, strongest source first."""
        if time_el is None:
            time_el = next((el for el in card.select("time") if not inside_reply(el)), None)
        date_attr, date_text = date_of(time_el)

        if not date_attr:
            stamped = next((el for el in card.select("[datetime]") if not inside_reply(el)), None)
            if stamped is not None:
                date_attr = first_attribute(stamped, ("datetime",))
                date_text = date_text or element_text(stamped)

        if not date_attr and not date_text:
            marker = next(
                (el for el in card.select(DATE_MARKER_SELECTOR) if not inside_reply(el)), None
            )
            date_text = element_text(marker)

        if not date_attr and not date_text:
            loose = next((el for el in card.select(LOOSE_DATE_SELECTOR) if not inside_reply(el)), None)
            if loose is not None:
                date_attr = first_attribute(loose, ("datetime", "data-date", "data-archived-date"))
                date_text = element_text(loose)

        if not date_attr and not date_text:
            card_text = text_outside_replies(card) or ""
            iso = ISO_DATE.search(card_text)
            if iso:
                date_attr = iso.group(0)
            elif MONTH_DAY_YEAR.search(card_text):
                date_text = find_date_text(card_text)

        return date_attr, date_text
