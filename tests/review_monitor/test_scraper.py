"""Tests for the archived review scraper."""

from src.review_monitor.models import AppSnapshot, ReviewRecord, Snapshot
from src.review_monitor.scraper import (
    EXPAND_ARCHIVED_BUTTONS,
    SHOW_ARCHIVED_BUTTON,
    ArchivedReviewScraper,
    last_archived_dates,
    last_page_number,
)

BOXUP = "https://apps.shopify.com/boxup-product-builder/reviews"
ZENDROP = "https://apps.shopify.com/zendrop/reviews"


def test_last_page_number(load_fixture):
    assert last_page_number(load_fixture("archived_container.html")) == 7
    assert last_page_number("<p>no pagination</p>") == 1


def test_scrape_app_jumps_to_last_page(load_fixture, fake_driver_factory):
    driver = fake_driver_factory({BOXUP: load_fixture("archived_container.html")})
    app = ArchivedReviewScraper(driver).scrape_app(BOXUP)

    assert driver.visited == [f"{BOXUP}?page=1", f"{BOXUP}?page=7"]
    assert app.last_page == 7
    assert app.first_page_url == f"{BOXUP}?page=1"
    assert [record.id for record in app.archived_reviews] == ["101", "102", "103"]
    assert driver.clicks == [SHOW_ARCHIVED_BUTTON, SHOW_ARCHIVED_BUTTON, EXPAND_ARCHIVED_BUTTONS]


def test_scrape_app_single_page_stays_put(load_fixture, fake_driver_factory):
    driver = fake_driver_factory({BOXUP: load_fixture("archived_cards.html")})
    app = ArchivedReviewScraper(driver).scrape_app(BOXUP)

    assert driver.visited == [f"{BOXUP}?page=1"]
    assert app.last_page == 1
    assert [record.id for record in app.archived_reviews] == ["301", "302"]


def test_scrape_records_failed_app_and_continues(load_fixture, fake_driver_factory):
    """One app failing must not lose the others."""
    driver = fake_driver_factory(
        {BOXUP: load_fixture("archived_container.html")},
        failing=["https://apps.shopify.com/zendrop"],
    )
    snapshot = ArchivedReviewScraper(driver).scrape([ZENDROP, BOXUP], snapshot_date="2025-02-03")

    assert snapshot.snapshot_date == "2025-02-03"
    assert [app.app_slug for app in snapshot.apps] == ["zendrop", "boxup-product-builder"]
    assert snapshot.apps[0].failed
    assert "navigation failed" in snapshot.apps[0].error
    assert snapshot.apps[0].to_dict() == {"appReviewsUrl": ZENDROP, "error": snapshot.apps[0].error}
    assert len(snapshot.apps[1].archived_reviews) == 3


def test_last_archived_dates():
    snapshot = Snapshot(
        snapshot_date="2025-02-03",
        apps=[
            AppSnapshot(BOXUP, [ReviewRecord(date_iso="2025-01-02"), ReviewRecord(date_iso="2025-01-30")]),
            AppSnapshot("https://apps.shopify.com/kiwi-sizing/reviews", [ReviewRecord(date_text="Jan 5")]),
            AppSnapshot(ZENDROP, error="Timeout"),
        ],
    )
    results = {item.slug: item for item in last_archived_dates(snapshot)}

    assert results["boxup-product-builder"].last_date == "2025-01-30"
    assert results["boxup-product-builder"].count == 2
    assert results["kiwi-sizing"].last_date == "Jan 5"
    assert results["zendrop"].error == "Timeout"
