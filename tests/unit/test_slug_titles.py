"""
Unit tests for titles derived from product URL slugs.
"""
import pytest

from wishfill.services.slug_titles import derive_title_from_url


class TestSlugTitles:
    """Tests for deterministic titles derived from URLs."""

    @pytest.mark.parametrize("url, expected", [
        ("https://www.nike.com/es/t/air-max-90-zapatillas/DH8010-100", "Nike Air Max 90 Zapatillas"),
        ("https://www.zara.com/es/es/camisa-lino-p01234567.html", "Camisa Lino"),
        ("https://www.decathlon.es/es/p/mochila-senderismo-nh100/_/R-p-324555", "Mochila Senderismo Nh100"),
        ("https://www.carrefour.es/freidora-de-aire-cosori/R-522441422/p", "Freidora De Aire Cosori"),
        ("https://www.pccomponentes.com/logitech-mx-master-3s", "Logitech Mx Master 3s"),
        ("https://www.amazon.es/Cafetera-Italiana-Bialetti/dp/B000GHBLAA", "Cafetera Italiana Bialetti"),
        ("https://tienda.es/hogar/cojin-terciopelo-verde.html", "Cojin Terciopelo Verde"),
    ])
    def test_derives_titles(self, url, expected):
        """Should build a title from the store's slug convention."""
        assert derive_title_from_url(url) == expected

    @pytest.mark.parametrize("url", [
        "https://tienda.es/productos/12345",
        "https://www.amazon.es/dp/B0CJKTWTVT",
        "https://www.nike.com/es/",
        "",
    ])
    def test_no_title_without_readable_slug(self, url):
        """Should return None when the path has no readable product name."""
        assert derive_title_from_url(url) is None
