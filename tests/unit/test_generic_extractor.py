"""
Unit tests for the generic (no site table) extractor.
"""
import httpx
import pytest

from conftest import html_response, make_fetcher
from wishfill.extractors.generic import GenericExtractor


def extractor():
    fetcher, _ = make_fetcher(lambda request: html_response(""))
    return GenericExtractor(fetcher)


class TestExtractFromHtml:
    """Tests for GenericExtractor.extract_from_html."""

    def test_structured_data_page(self, sample_product_html):
        """Should take every field from JSON-LD and the visible price."""
        result = extractor().extract_from_html(sample_product_html, "https://tienda-ejemplo.es/p/lampara-nordica")

        assert result.title == "Lámpara de mesa nórdica"
        assert result.image_url == "https://tienda-ejemplo.es/img/lampara.jpg"
        assert result.price == "29,99€"
        assert result.description.startswith("Lámpara de mesa de madera natural")

    def test_related_products_are_ignored(self):
        """Should not pick the image or price of a related product."""
        html = """
        <html><body>
            <h1>Silla de oficina ergonómica</h1>
            <div class="hero"><img src="/img/silla.jpg" width="600" height="600"></div>
            <span class="price">149,00 €</span>
            <section class="related-products">
                <img src="/img/otra-silla.jpg" width="1000" height="1000">
                <span class="price">59,00 €</span>
            </section>
        </body></html>
        """
        result = extractor().extract_from_html(html, "https://muebles.example/silla-ergonomica")

        assert result.title == "Silla de oficina ergonómica"
        assert result.image_url == "https://muebles.example/img/silla.jpg"
        assert result.price == "149,00€"

    def test_largest_image_skips_logos(self):
        """Should skip logo images even when they are bigger."""
        html = """
        <h1>Cafetera italiana de acero</h1>
        <img src="/static/logo-grande.png" width="1200" height="400">
        <img src="/img/cafetera.jpg" width="500" height="500">
        <img src="/img/thumb.jpg" width="80" height="80">
        """
        result = extractor().extract_from_html(html, "https://hogar.example/cafetera")

        assert result.image_url == "https://hogar.example/img/cafetera.jpg"

    def test_title_tag_fallback(self):
        """Should fall back to <title> when no heading matches."""
        html = "<html><head><title>Funda nórdica de algodón</title></head><body><p>Hola</p></body></html>"
        result = extractor().extract_from_html(html, "https://textil.example/funda")

        assert result.title == "Funda nórdica de algodón"
        assert result.source == "title_tag"

    def test_empty_html(self):
        """Should return an empty result for blank pages."""
        assert extractor().extract_from_html("   ").is_empty


class TestGenericFetch:
    """Tests for GenericExtractor.extract over the mock transport."""

    @pytest.mark.asyncio
    async def test_stops_at_first_successful_user_agent(self, sample_product_html):
        """Should try the next User-Agent after a refusal and stop at the first 200."""
        responses = [httpx.Response(403), html_response(sample_product_html)]
        fetcher, transport = make_fetcher(lambda request: responses.pop(0))

        result = await GenericExtractor(fetcher).extract("https://tienda-ejemplo.es/p/lampara-nordica")

        assert len(transport.requests) == 2
        first, second = (r.headers["User-Agent"] for r in transport.requests)
        assert first != second
        assert result.title == "Lámpara de mesa nórdica"

    @pytest.mark.asyncio
    async def test_every_attempt_refused(self):
        """Should return an empty result when no User-Agent gets through."""
        fetcher, transport = make_fetcher(lambda request: httpx.Response(403))

        result = await GenericExtractor(fetcher).extract("https://tienda-ejemplo.es/p/lampara-nordica")

        assert result.is_empty
        assert len(transport.requests) == len(fetcher.user_agents)

    @pytest.mark.asyncio
    async def test_redirect_to_private_host_is_refused(self):
        """Should not follow a redirect onto an internal address."""
        def handler(request):
            if request.url.host == "tienda-ejemplo.es":
                return httpx.Response(302, headers={"Location": "http://[::ffff:10.0.0.5]/admin"})
            return html_response("<html><title>Panel interno</title></html>")

        fetcher, transport = make_fetcher(handler)

        result = await GenericExtractor(fetcher).extract("https://tienda-ejemplo.es/p/lampara-nordica")

        assert result.is_empty
        assert {r.url.host for r in transport.requests} == {"tienda-ejemplo.es"}
