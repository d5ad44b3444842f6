"""
Unit tests for the curated known-product table.
"""
import pytest

from wishfill.services.known_products import KNOWN_PRODUCTS, lookup


class TestKnownProducts:
    """Tests for the curated product table."""

    def test_lookup_is_case_insensitive(self):
        """Should find an entry regardless of id case."""
        product = lookup("b0cjktwtvt")
        assert product is KNOWN_PRODUCTS["B0CJKTWTVT"]
        assert product.title.startswith("Amazon Fire TV Stick 4K")

    def test_lookup_misses(self):
        """Should return None for unknown or missing ids."""
        assert lookup("B000000000") is None
        assert lookup(None) is None

    def test_entries_have_title_and_image(self):
        """Should carry a title and an absolute image for every entry."""
        assert len(KNOWN_PRODUCTS) >= 15
        for asin, product in KNOWN_PRODUCTS.items():
            assert product.id == asin
            assert product.title
            assert product.image_url.startswith("https://")

    def test_table_is_read_only(self):
        """Should not allow mutation at runtime."""
        with pytest.raises(TypeError):
            KNOWN_PRODUCTS["NEW"] = None
