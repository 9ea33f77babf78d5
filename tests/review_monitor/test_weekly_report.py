"""Tests for weekly new-review counts and ratings."""

from datetime import date, datetime, timezone

from src.review_monitor.models import WeekWindow, WeeklyReport, WeeklyReportEntry
from src.review_monitor.weekly_report import (
    WeeklyReportBuilder,
    app_main_url,
    carry_previous_ratings,
    has_next_page,
)

BOXUP = "https://apps.shopify.com/boxup-product-builder/reviews"
MAIN = "https://apps.shopify.com/boxup-product-builder"
WINDOW = WeekWindow.ending(date(2025, 2, 2))


def _pages(load_fixture):
    return {
        f"{BOXUP}?sort_by=newest&page=1": load_fixture("merchant_reviews.html"),
        f"{BOXUP}?sort_by=newest&page=2": load_fixture("older_reviews.html"),
        MAIN: "<html><body><p>Overall rating 4.6</p></body></html>",
    }


def test_has_next_page(load_fixture):
    assert has_next_page(load_fixture("merchant_reviews.html"))
    assert not has_next_page("<p>end</p>")


def test_app_main_url():
    assert app_main_url("boxup-product-builder") == MAIN


def test_count_new_reviews_pages_until_window_passed(load_fixture, fake_driver_factory):
    driver = fake_driver_factory(_pages(load_fixture))
    builder = WeeklyReportBuilder(driver)

    assert builder.count_new_reviews(BOXUP, WINDOW) == 2
    assert driver.visited == [f"{BOXUP}?sort_by=newest&page=1", f"{BOXUP}?sort_by=newest&page=2"]


def test_current_rating_from_loaded_page(load_fixture, fake_driver_factory):
    driver = fake_driver_factory(_pages(load_fixture))
    driver.goto(f"{BOXUP}?sort_by=newest&page=1")

    assert WeeklyReportBuilder(driver).current_rating("boxup-product-builder") == 4.7
    assert driver.visited == [f"{BOXUP}?sort_by=newest&page=1"]


def test_current_rating_falls_back_to_main_page(fake_driver_factory):
    driver = fake_driver_factory({MAIN: "<html><body><p>Overall rating 4.2</p></body></html>"})

    assert WeeklyReportBuilder(driver).current_rating("boxup-product-builder") == 4.2
    assert driver.visited == [MAIN]


def test_build_report(load_fixture, fake_driver_factory):
    driver = fake_driver_factory(_pages(load_fixture), failing=["https://apps.shopify.com/zendrop"])
    report = WeeklyReportBuilder(driver).build(
        [BOXUP, "https://apps.shopify.com/zendrop/reviews"],
        WINDOW,
        generated_at=datetime(2025, 2, 3, 9, 0, tzinfo=timezone.utc),
    )

    assert report.week_start == "2025-01-27"
    assert report.week_end == "2025-02-02"
    assert report.generated_at == "2025-02-03T09:00:00Z"

    boxup = report.entry_for("boxup-product-builder")
    assert boxup.new_reviews == 2
    assert boxup.current_rating == 4.6
    assert boxup.error is None

    zendrop = report.entry_for("zendrop")
    assert zendrop.new_reviews == 0
    assert zendrop.current_rating is None
    assert "navigation failed" in zendrop.error


def test_carry_previous_ratings():
    report = WeeklyReport(
        week_start="2025-01-27",
        week_end="2025-02-02",
        generated_at="2025-02-03T09:00:00Z",
        apps=[WeeklyReportEntry(slug="a", current_rating=4.8), WeeklyReportEntry(slug="b", current_rating=4.1)],
    )
    previous = WeeklyReport(
        week_start="2025-01-20",
        week_end="2025-01-26",
        generated_at="2025-01-27T09:00:00Z",
        apps=[WeeklyReportEntry(slug="a", current_rating=4.7)],
    )

    carry_previous_ratings(report, previous)
    assert report.entry_for("a").previous_rating == 4.7
    assert report.entry_for("b").previous_rating is None
    assert carry_previous_ratings(report, None) is report
