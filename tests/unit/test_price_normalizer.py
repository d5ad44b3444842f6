"""
Unit tests for price parsing, candidate collection and conflict resolution.
"""
from decimal import Decimal

import pytest
from bs4 import BeautifulSoup

from wishfill.models import PriceSource, Visibility
from wishfill.services.price_normalizer import (
    collect_candidates,
    detect_currency,
    format_price,
    make_candidate,
    matches_vat_band,
    normalize_price,
    parse_amount,
    resolve_price,
)


def candidate(raw, source=PriceSource.DOM, visibility=Visibility.VISIBLE, currency=None):
    return make_candidate(raw, source=source, visibility=visibility, currency_hint=currency)


class TestParseAmount:
    """Tests for reading amounts in European and US notation."""

    @pytest.mark.parametrize("raw, expected", [
        ("19,99 €", Decimal("19.99")),
        ("1.234,56€", Decimal("1234.56")),
        ("$1,234.56", Decimal("1234.56")),
        ("1.299", Decimal("1299")),
        ("29.99", Decimal("29.99")),
        (49, Decimal("49")),
    ])
    def test_parses_common_notations(self, raw, expected):
        """Should parse both decimal conventions and thousands grouping."""
        assert parse_amount(raw) == expected

    def test_returns_none_without_digits(self):
        """Should return None for text without a number."""
        assert parse_amount("Agotado") is None
        assert parse_amount(None) is None


class TestNormalizePrice:
    """Tests for canonical price formatting."""

    def test_formats_with_comma_and_euro_sign(self):
        """Should produce the canonical 'NN,NN€' form."""
        assert normalize_price("29.99", "EUR") == "29,99€"
        assert normalize_price("1.499 €") == "1499,00€"

    def test_is_idempotent(self):
        """Should leave an already canonical price unchanged."""
        for raw in ("19,99€", "1.234,5 €", "$12.00", "0,99 EUR"):
            once = normalize_price(raw)
            assert normalize_price(once) == once

    def test_converts_dollars_to_euros(self):
        """Should convert a USD price with the approximate rate."""
        assert normalize_price("$100.00") == "92,00€"

    def test_rejects_zero_and_garbage(self):
        """Should return an empty string for non-positive or missing amounts."""
        assert normalize_price("0,00 €") == ""
        assert normalize_price("") == ""
        assert normalize_price(None) == ""

    def test_format_price_rounds_half_up(self):
        """Should round to two decimals."""
        assert format_price(Decimal("10.005")) == "10,01€"


class TestDetectCurrency:
    """Tests for currency detection."""

    def test_hint_wins_over_text(self):
        """Should prefer an explicit priceCurrency hint."""
        assert detect_currency("19.99 €", hint="USD") == "USD"

    def test_reads_symbols_and_codes(self):
        """Should recognise symbols and ISO codes in the text."""
        assert detect_currency("£10") == "GBP"
        assert detect_currency("10 USD") == "USD"
        assert detect_currency("10,00 EUR") == "EUR"

    def test_falls_back_to_default(self):
        """Should use the default when the text has no marker."""
        assert detect_currency("10.00", default="USD") == "USD"


class TestResolvePrice:
    """Tests for choosing one price among conflicting candidates."""

    def test_visible_price_with_vat_margin_beats_structured(self):
        """Should prefer a displayed price about 21% above the JSON price."""
        candidates = [
            candidate("100,00€", PriceSource.JSONLD, Visibility.OFFSCREEN),
            candidate("121,00€"),
        ]
        assert resolve_price(candidates) == "121,00€"

    def test_structured_price_wins_without_vat_margin(self):
        """Should keep the structured price when the margin is not VAT-like."""
        candidates = [
            candidate("100,00€", PriceSource.JSONLD, Visibility.OFFSCREEN),
            candidate("105,00€"),
        ]
        assert resolve_price(candidates) == "100,00€"

    def test_highest_vat_match_is_chosen(self):
        """Should take the highest displayed price among several VAT matches."""
        candidates = [
            candidate("100,00€", PriceSource.JSONLD, Visibility.OFFSCREEN),
            candidate("118,00€"),
            candidate("121,00€"),
        ]
        assert resolve_price(candidates) == "121,00€"

    def test_offscreen_tie_broken_by_page_frequency(self):
        """Should pick the offscreen price that appears verbatim most often."""
        candidates = [
            candidate("10,00 €", PriceSource.OFFSCREEN, Visibility.OFFSCREEN),
            candidate("12,00 €", PriceSource.OFFSCREEN, Visibility.OFFSCREEN),
        ]
        page_text = "Antes 10,00 € ahora 12,00 € - precio final 12,00 €"
        assert resolve_price(candidates, page_text) == "12,00€"

    def test_most_frequent_offscreen_price_wins(self):
        """Should prefer the offscreen amount seen most often."""
        candidates = [
            candidate("15,00 €", PriceSource.OFFSCREEN, Visibility.OFFSCREEN),
            candidate("12,00 €", PriceSource.OFFSCREEN, Visibility.OFFSCREEN),
            candidate("12,00 €", PriceSource.OFFSCREEN, Visibility.OFFSCREEN),
        ]
        assert resolve_price(candidates) == "12,00€"

    def test_usd_only_candidates_are_converted(self):
        """Should convert when no candidate is in euros."""
        assert resolve_price([candidate("$50.00")]) == "46,00€"

    def test_euro_candidates_preferred_over_foreign(self):
        """Should ignore foreign currencies when a euro price exists."""
        assert resolve_price([candidate("$50.00"), candidate("40,00 €")]) == "40,00€"

    def test_empty_candidates(self):
        """Should return an empty string when there is nothing to choose."""
        assert resolve_price([]) == ""
        assert resolve_price([None]) == ""


class TestVatBands:
    """Tests for the VAT margin heuristic."""

    @pytest.mark.parametrize("margin", ["0.21", "0.10", "0.32", "0.185"])
    def test_band_membership(self, margin):
        """Should accept the known bands and the catch-all above 15%, reject 10%."""
        expected = margin != "0.10"
        assert matches_vat_band(Decimal(margin)) is expected


class TestCollectCandidates:
    """Tests for reading candidates from HTML."""

    def test_jsonld_and_visible_vat_price(self):
        """Should resolve a VAT-exclusive JSON-LD price to the displayed one."""
        html = """
        <html><head><script type="application/ld+json">
        {"@type": "Product", "name": "Monitor", "offers": {"price": "100.00", "priceCurrency": "EUR"}}
        </script></head>
        <body><span class="price">121,00 €</span></body></html>
        """
        soup = BeautifulSoup(html, "html.parser")
        assert resolve_price(collect_candidates(soup, html), soup.get_text(" ")) == "121,00€"

    def test_split_visible_price_is_joined(self):
        """Should read a price split across inline elements."""
        html = '<div class="product-price">19<span>,</span>99<sup>€</sup></div>'
        soup = BeautifulSoup(html, "html.parser")
        candidates = collect_candidates(soup, html)
        assert [c.amount for c in candidates] == [Decimal("19.99")]

    def test_offscreen_text_not_counted_as_visible(self):
        """Should not read screen-reader text a second time as a visible price."""
        html = '<span class="price"><span class="sr-only">15,00 €</span>Precio</span>'
        soup = BeautifulSoup(html, "html.parser")
        candidates = collect_candidates(soup, html)
        assert [c.source for c in candidates] == [PriceSource.OFFSCREEN]

    def test_meta_price_uses_currency_tag(self):
        """Should honour product:price:currency for meta prices."""
        html = """
        <meta property="product:price:amount" content="20.00">
        <meta property="product:price:currency" content="USD">
        """
        soup = BeautifulSoup(html, "html.parser")
        candidates = collect_candidates(soup, html)
        assert candidates[0].currency == "USD"
        assert resolve_price(candidates) == "18,40€"
