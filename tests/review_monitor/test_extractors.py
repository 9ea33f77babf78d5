"""Tests for the review extraction strategies."""

import pytest

from src.review_monitor.extractors import (
    STRATEGY_REGISTRY,
    ButtonCardStrategy,
    ContainerStrategy,
    ExtractionStrategy,
    MerchantReviewStrategy,
    RecordExtractor,
    default_strategies,
)


def test_registry_priority_order():
    """Built-in strategies should run container, merchant, then card."""
    assert [strategy.name for strategy in default_strategies()] == ["container", "merchant", "card"]
    assert set(STRATEGY_REGISTRY) >= {"container", "merchant", "card"}


def test_container_strategy_reads_all_blocks(load_fixture):
    records = ContainerStrategy().extract(load_fixture("archived_container.html"))

    assert [record.id for record in records] == ["101", "102", "103"]
    first = records[0]
    assert first.rating == 5.0
    assert first.rating_label == "5 out of 5 stars"
    assert first.text == "Great app, support was fast."
    assert first.date_text == "January 27, 2025"
    assert first.date_iso == "2025-01-27"


def test_container_strategy_keeps_fractional_rating(load_fixture):
    """Ratings are not rounded during extraction."""
    records = ContainerStrategy().extract(load_fixture("archived_container.html"))
    assert records[1].rating == pytest.approx(4.6)


def test_container_strategy_falls_back_to_loose_date(load_fixture):
    records = ContainerStrategy().extract(load_fixture("archived_container.html"))
    third = records[2]
    assert third.date_text == "December 12, 2024"
    assert third.date_iso == "2024-12-12"
    assert third.text == "Setup took too long."


def test_container_strategy_uses_children_without_time_or_ids():
    html = """
    <div id="archived-reviews-container">
      <div><div aria-label="3 out of 5 stars"></div><p>Plain block one, 2025-01-05</p></div>
      <div><p>Plain block two</p></div>
    </div>
    """
    records = ContainerStrategy().extract(html)
    assert len(records) == 2
    assert records[0].rating == 3.0
    assert records[0].date_iso == "2025-01-05"
    assert records[1].text == "Plain block two"


def test_container_strategy_absent_pattern_returns_empty(load_fixture):
    assert ContainerStrategy().extract(load_fixture("merchant_reviews.html")) == []


def test_container_strategy_ignores_reply_text_in_card_fallback():
    html = """
    <div id="archived-reviews-container">
      <div data-review-id="c1">
        <div aria-label="4 out of 5 stars"></div>
        <p>Works as described.</p>
        <div data-merchant-review-reply>Replied 2025-02-01 thanks for the feedback</div>
      </div>
    </div>
    """
    records = ContainerStrategy().extract(html, year_hint=2025)
    assert len(records) == 1
    assert records[0].text == "Works as described."
    assert records[0].date_iso is None
    assert records[0].date_text is None


def test_container_strategy_yearless_marker_beats_dated_body():
    html = """
    <div id="archived-reviews-container">
      <div data-review-id="c2">
        <div aria-label="5 out of 5 stars"></div>
        <span class="tw-text-body-xs tw-text-fg-tertiary">Jan 28</span>
        <p>Been a customer since March 5, 2023 and still happy.</p>
      </div>
    </div>
    """
    records = ContainerStrategy().extract(html, year_hint=2025)
    assert records[0].date_text == "Jan 28"
    assert records[0].date_iso == "2025-01-28"


def test_merchant_strategy_reads_cards(load_fixture):
    records = MerchantReviewStrategy().extract(load_fixture("merchant_reviews.html"), year_hint=2025)

    assert [record.id for record in records] == ["2001", "2002", "2003"]
    assert records[0].text == "Fantastic bundles, easy to set up."
    assert records[0].date_text == "January 31, 2025"
    assert records[0].date_iso == "2025-01-31"
    assert records[1].date_text == "Jan 28"
    assert records[1].date_iso == "2025-01-28"
    assert records[2].rating == 1.0


def test_merchant_strategy_ignores_reply_dates(load_fixture):
    """A merchant reply timestamp must not become the review date."""
    records = MerchantReviewStrategy().extract(load_fixture("merchant_reviews.html"), year_hint=2025)
    third = records[2]
    assert third.date_iso == "2025-01-20"
    assert third.text == "Broke our theme."


def test_merchant_strategy_reply_only_card_has_no_date():
    html = """
    <div data-merchant-review data-review-content-id="9">
      <div aria-label="4 out of 5 stars"></div>
      <p>Nice.</p>
      <div data-merchant-review-reply>
        <div class="tw-text-body-xs tw-text-fg-tertiary">Replied January 29, 2025</div>
      </div>
    </div>
    """
    records = MerchantReviewStrategy().extract(html, year_hint=2025)
    assert len(records) == 1
    assert records[0].date_iso is None
    assert records[0].date_text is None


def test_merchant_strategy_without_year_hint_leaves_yearless_date_unresolved(load_fixture):
    records = MerchantReviewStrategy().extract(load_fixture("merchant_reviews.html"))
    assert records[1].date_text == "Jan 28"
    assert records[1].date_iso is None


MERCHANT_CARD_WITH_DATED_BODY = """
<div data-merchant-review data-review-content-id="40">
  <div class="tw-flex">
    <div aria-label="5 out of 5 stars"></div>
    <div class="tw-text-body-xs tw-text-fg-tertiary">Jan 28</div>
  </div>
  <p>Been a customer since March 5, 2023 and it keeps getting better.</p>
</div>
"""


def test_merchant_strategy_yearless_date_element_beats_dated_body():
    """A full date quoted in the review body does not replace the card's own date."""
    records = MerchantReviewStrategy().extract(MERCHANT_CARD_WITH_DATED_BODY, year_hint=2025)
    assert records[0].date_text == "Jan 28"
    assert records[0].date_iso == "2025-01-28"


def test_merchant_strategy_falls_back_to_body_date():
    html = """
    <div data-merchant-review data-review-content-id="41">
      <div aria-label="4 out of 5 stars"></div>
      <p>Posted January 14, 2025: solid app.</p>
    </div>
    """
    records = MerchantReviewStrategy().extract(html, year_hint=2025)
    assert records[0].date_iso == "2025-01-14"


def test_merchant_strategy_lowercase_month_word_is_not_a_date():
    html = """
    <div data-merchant-review data-review-content-id="42">
      <div aria-label="5 out of 5 stars"></div>
      <p>You may 2x your sales with this app.</p>
    </div>
    """
    records = MerchantReviewStrategy().extract(html, year_hint=2025)
    assert records[0].date_iso is None
    assert records[0].date_text is None


def test_card_strategy_reads_button_cards(load_fixture):
    records = ButtonCardStrategy().extract(load_fixture("archived_cards.html"))

    assert [record.id for record in records] == ["301", "302"]
    assert records[0].rating == 4.0
    assert records[0].text == "Good value for money."
    assert records[0].date_iso == "2025-02-01"
    assert records[1].date_text == "January 15, 2025"


def test_card_strategy_one_record_per_date_marker():
    html = """
    <div class="archived-group">
      <div class="review-item" data-review-id="a">
        <div aria-label="5 out of 5 stars"></div>
        <span class="tw-text-body-xs tw-text-fg-tertiary">January 2, 2025</span>
        <p>First archived review.</p>
      </div>
      <div class="review-item" data-review-id="b">
        <div aria-label="2 out of 5 stars"></div>
        <span class="tw-text-body-xs tw-text-fg-tertiary">January 3, 2025</span>
        <p>Second archived review.</p>
      </div>
      <div data-archived-reviews-target="buttonContainer"><button>Show archived reviews</button></div>
    </div>
    """
    records = ButtonCardStrategy().extract(html)
    assert [(record.id, record.rating, record.date_iso) for record in records] == [
        ("a", 5.0, "2025-01-02"),
        ("b", 2.0, "2025-01-03"),
    ]




def test_card_strategy_skips_reply_markers():
    html = """
    <div class="archived-group">
      <div class="review-item" data-review-id="r">
        <div aria-label="3 out of 5 stars"></div>
        <p>Average experience.</p>
        <div data-merchant-review-reply>
          <span class="tw-text-body-xs tw-text-fg-tertiary">Replied January 30, 2025</span>
        </div>
      </div>
      <div data-archived-reviews-target="buttonContainer"><button>Show archived reviews</button></div>
    </div>
    """
    records = ButtonCardStrategy().extract(html, year_hint=2025)
    assert len(records) == 1
    assert records[0].text == "Average experience."
    assert records[0].date_iso is None


def test_card_strategy_yearless_marker_beats_dated_body():
    html = """
    <div class="archived-group">
      <div class="review-item" data-review-id="y">
        <div aria-label="4 out of 5 stars"></div>
        <span class="tw-text-body-xs tw-text-fg-tertiary">Jan 28</span>
        <p>Been a customer since March 5, 2023.</p>
      </div>
      <div data-archived-reviews-target="buttonContainer"><button>Show archived reviews</button></div>
    </div>
    """
    records = ButtonCardStrategy().extract(html, year_hint=2025)
    assert [(record.id, record.date_iso) for record in records] == [("y", "2025-01-28")]
def test_rating_outside_range_is_rejected():
    html = """
    <div id="archived-reviews-container">
      <div data-review-id="x"><div aria-label="7 out of 5 stars"></div><p>Odd widget</p></div>
    </div>
    """
    records = ContainerStrategy().extract(html)
    assert records[0].rating is None
    assert records[0].rating_label == "7 out of 5 stars"


def test_blocks_without_signal_are_discarded():
    html = '<div id="archived-reviews-container"><div></div><div>   </div></div>'
    assert ContainerStrategy().extract(html) == []


def test_extractor_merges_duplicates_across_strategies(load_fixture):
    """Same review seen by two strategies keeps the higher-priority id."""
    records = RecordExtractor().extract_merged(load_fixture("combined_strategies.html"))

    assert [record.id for record in records] == ["A-1", "m-2"]


def test_extractor_reports_per_strategy_results(load_fixture):
    results = RecordExtractor().extract(load_fixture("combined_strategies.html"))
    counts = {result.name: len(result.records) for result in results}
    assert counts == {"container": 1, "merchant": 2, "card": 0}
    assert all(result.success for result in results)


def test_extractor_survives_failing_strategy(load_fixture):
    class BrokenStrategy(ExtractionStrategy):
        name = "broken"
        priority = 1

        def _extract(self, soup, year_hint):
            raise RuntimeError("markup changed")

    extractor = RecordExtractor([BrokenStrategy(), MerchantReviewStrategy()])
    results = extractor.extract(load_fixture("merchant_reviews.html"))
    assert results[0].error == "markup changed"
    assert len(results[1].records) == 3

    merged = extractor.extract_merged(load_fixture("merchant_reviews.html"))
    assert len(merged) == 3


def test_extraction_is_repeatable(load_fixture):
    html = load_fixture("archived_container.html")
    extractor = RecordExtractor()
    assert extractor.extract_merged(html) == extractor.extract_merged(html)
