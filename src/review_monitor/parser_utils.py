"""Parsing utilities shared by the extraction strategies and crawlers."""

from __future__ import annotations

import re
from typing import List, Optional, Sequence, Union
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from bs4 import BeautifulSoup, Tag

Document = Union[str, bytes, BeautifulSoup, Tag]

LISTING_HOST = "apps.shopify.com"

_SLUG_PATTERN = re.compile(r"apps\.shopify\.com/([^/?#]+)")
_WHITESPACE = re.compile(r"\s+")
_RATING_LABEL = re.compile(r"([0-9.]+)\s+out of", re.IGNORECASE)

OVERALL_RATING_PATTERNS: Sequence[re.Pattern] = (
    re.compile(r"\bOverall\s+rating\s*(\d\.\d)", re.IGNORECASE),
    re.compile(r"\bRating[:\s]*(\d\.\d)", re.IGNORECASE),
    re.compile(r"\b(\d\.\d)\s*out of\s*5", re.IGNORECASE),
    re.compile(r"\b(\d\.\d)\s*/\s*5", re.IGNORECASE),
    re.compile(r"(\d\.\d)\s*stars?", re.IGNORECASE),
)


def parse_html(document: Document) -> Union[BeautifulSoup, Tag]:
    """Return a queryable tree for raw markup; trees are passed through."""
    if isinstance(document, (BeautifulSoup, Tag)):
        return document
    return BeautifulSoup(document or "", "html.parser")


def clean_text(value: Optional[str]) -> Optional[str]:
    """Collapse whitespace (including non-breaking spaces) and strip.

    Returns None for empty results so callers can treat blank text as absent.
    """
    if value is None:
        return None
    collapsed = _WHITESPACE.sub(" ", value).strip()
    return collapsed or None


def element_text(element: Optional[Tag]) -> Optional[str]:
    """Whitespace-normalized text content of an element."""
    if element is None:
        return None
    return clean_text(element.get_text(" "))


def app_slug_from_url(url: Optional[str]) -> str:
    """Extract ``<slug>`` from ``https://apps.shopify.com/<slug>/reviews``."""
    if not url:
        return ""
    match = _SLUG_PATTERN.search(str(url))
    return match.group(1) if match else ""


def parse_rating_label(label: Optional[str]) -> Optional[float]:
    """Parse ``"4.5 out of 5 stars"`` into 4.5.

    Values outside [0, 5] are rejected. No rounding happens here.
    """
    if not label:
        return None
    match = _RATING_LABEL.search(label)
    if not match:
        return None
    try:
        value = float(match.group(1))
    except ValueError:
        return None
    if value < 0 or value > 5:
        return None
    return value


def parse_overall_rating(document: Document) -> Optional[float]:
    """Read an app's overall rating (e.g. ``Overall rating 4.5``) from a page."""
    soup = parse_html(document)
    body = soup.find("body") or soup
    text = element_text(body) or ""

    for pattern in OVERALL_RATING_PATTERNS:
        match = pattern.search(text)
        if match:
            value = float(match.group(1))
            if 1 <= value <= 5:
                return round(value, 1)

    node = soup.select_one('[aria-label*="out of 5" i], [aria-label*="rating" i], [title*="rating" i]')
    if node is not None:
        label = node.get("aria-label") or node.get("title") or ""
        match = re.search(r"(\d\.\d)", label)
        if match:
            return float(match.group(1))
    return None


def page_numbers_from_links(document: Document) -> List[int]:
    """Collect ``page`` query values from pagination anchors."""
    soup = parse_html(document)
    numbers: List[int] = []
    for anchor in soup.select('a[href*="reviews?page="], a[href*="?page="], a[href*="&page="]'):
        href = anchor.get("href") or ""
        values = parse_qs(urlparse(href).query).get("page")
        if not values:
            continue
        try:
            numbers.append(int(values[0]))
        except ValueError:
            continue
    return numbers


def with_query_params(url: str, **params: object) -> str:
    """Return ``url`` with the given query parameters set (replacing existing ones)."""
    parsed = urlparse(url)
    query = {key: values[-1] for key, values in parse_qs(parsed.query, keep_blank_values=True).items()}
    for key, value in params.items():
        query[key] = str(value)
    return urlunparse(parsed._replace(query=urlencode(query)))
