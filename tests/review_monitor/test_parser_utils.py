import pytest

from src.review_monitor.parser_utils import (
    app_slug_from_url,
    clean_text,
    page_numbers_from_links,
    parse_overall_rating,
    parse_rating_label,
    with_query_params,
)


def test_clean_text_collapses_whitespace():
    assert clean_text("  Great  app\n\n fast ") == "Great app fast"
    assert clean_text("   ") is None
    assert clean_text(None) is None


@pytest.mark.parametrize(
    "label, expected",
    [
        ("4.5 out of 5 stars", 4.5),
        ("5 out of 5 stars", 5.0),
        ("7 out of 5 stars", None),
        ("five stars", None),
        (None, None),
    ],
)
def test_parse_rating_label(label, expected):
    assert parse_rating_label(label) == expected


def test_app_slug_from_url():
    assert app_slug_from_url("https://apps.shopify.com/kiwi-sizing/reviews?page=2") == "kiwi-sizing"
    assert app_slug_from_url("https://apps.shopify.com/zendrop") == "zendrop"
    assert app_slug_from_url("https://example.com/other") == ""
    assert app_slug_from_url(None) == ""


@pytest.mark.parametrize(
    "html, expected",
    [
        ("<body><p>Overall rating 4.7</p></body>", 4.7),
        ("<body><div>Rated 4.3 out of 5</div></body>", 4.3),
        ('<body><div aria-label="4.8 out of 5 stars"></div></body>', 4.8),
        ("<body><p>No rating here</p></body>", None),
    ],
)
def test_parse_overall_rating(html, expected):
    assert parse_overall_rating(html) == expected


def test_page_numbers_from_links(load_fixture):
    assert page_numbers_from_links(load_fixture("archived_container.html")) == [1, 2, 7]
    assert page_numbers_from_links('<a href="/x/reviews?page=last">end</a>') == []


def test_with_query_params_replaces_existing_values():
    url = with_query_params("https://apps.shopify.com/x/reviews?page=3&sort_by=newest", page=4)
    assert url == "https://apps.shopify.com/x/reviews?page=4&sort_by=newest"
    assert with_query_params("https://apps.shopify.com/x/reviews", page=1) == "https://apps.shopify.com/x/reviews?page=1"
