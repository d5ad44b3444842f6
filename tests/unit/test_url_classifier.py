"""
Unit tests for URL classification and product id extraction.
"""
import httpx
import pytest

from conftest import html_response, make_fetcher
from wishfill.services.url_classifier import UrlClassifier, domain_tag_for, extract_product_id


def ok_handler(request):
    return html_response("<html><body>ok</body></html>")


class TestDomainTags:
    """Tests for host to extractor tag mapping."""

    @pytest.mark.parametrize("host, tag", [
        ("www.amazon.es", "amazon"),
        ("amazon.co.uk", "amazon"),
        ("www.nike.com", "nike"),
        ("www.pccomponentes.com", "pccomponentes"),
        ("es.aliexpress.com", "aliexpress"),
        ("www.ebay.es", "ebay"),
        ("www.ikea.com", "generic"),
        (None, "generic"),
    ])
    def test_domain_tag_for(self, host, tag):
        """Should map known storefront hosts and default to generic."""
        assert domain_tag_for(host) == tag


class TestProductIds:
    """Tests for product id extraction."""

    @pytest.mark.parametrize("url, tag, expected", [
        ("https://www.amazon.es/Echo-Dot/dp/b09b8x9rgm/ref=sr_1_1", "amazon", "B09B8X9RGM"),
        ("https://www.amazon.es/gp/product/B0BCGVCY9V?th=1", "amazon", "B0BCGVCY9V"),
        ("https://www.nike.com/es/t/air-max-90-zapatillas/dh8010-100", "nike", "DH8010-100"),
        ("https://www.zara.com/es/es/camisa-lino-p01234567.html", "zara", "01234567"),
        ("https://es.aliexpress.com/item/1005006123456789.html", "aliexpress", "1005006123456789"),
        ("https://www.ebay.es/itm/125678901234", "ebay", "125678901234"),
    ])
    def test_first_matching_pattern_wins(self, url, tag, expected):
        """Should extract and case-normalize the canonical id."""
        assert extract_product_id(url, tag) == expected

    def test_no_id_for_listing_pages(self):
        """Should return None when no pattern matches."""
        assert extract_product_id("https://www.amazon.es/s?k=cafetera", "amazon") is None


class TestUrlClassifier:
    """Tests for the async classifier."""

    @pytest.mark.asyncio
    async def test_classifies_amazon_url(self):
        """Should strip tracking parameters and read the ASIN."""
        fetcher, transport = make_fetcher(ok_handler)
        classifier = UrlClassifier(fetcher)

        result = await classifier.classify("  https://www.amazon.es/dp/B0CJKTWTVT?utm_source=ig  ")

        assert result.ok
        assert result.domain_tag == "amazon"
        assert result.product_id == "B0CJKTWTVT"
        assert result.normalized_url == "https://www.amazon.es/dp/B0CJKTWTVT"
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_generic_url_has_no_id(self):
        """Should tag unknown hosts as generic without a product id."""
        fetcher, _ = make_fetcher(ok_handler)
        result = await UrlClassifier(fetcher).classify("tienda-ejemplo.es/p/lampara")

        assert result.ok
        assert result.domain_tag == "generic"
        assert result.product_id is None
        assert result.normalized_url == "https://tienda-ejemplo.es/p/lampara"

    @pytest.mark.asyncio
    async def test_short_link_is_expanded(self):
        """Should follow the redirect of a short-link host."""
        def handler(request):
            if request.url.host == "amzn.eu":
                return httpx.Response(301, headers={"Location": "https://www.amazon.es/dp/B0BBN3WZ66?ref=x"})
            return html_response("<html>producto</html>")

        fetcher, transport = make_fetcher(handler)
        result = await UrlClassifier(fetcher).classify("https://amzn.eu/d/abc123")

        assert result.domain_tag == "amazon"
        assert result.product_id == "B0BBN3WZ66"
        assert [r.url.host for r in transport.requests] == ["amzn.eu", "www.amazon.es"]

    @pytest.mark.asyncio
    async def test_failed_expansion_keeps_short_link(self):
        """Should keep the original URL when the redirect request fails."""
        def handler(request):
            raise httpx.ConnectError("boom", request=request)

        fetcher, _ = make_fetcher(handler)
        result = await UrlClassifier(fetcher).classify("https://amzn.to/xyz")

        assert result.ok
        assert result.normalized_url == "https://amzn.to/xyz"
        assert result.domain_tag == "amazon"
        assert result.product_id is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["not-a-url", "", "   ", None, "ftp://files.example.com/x"])
    async def test_invalid_input_fails_softly(self, raw):
        """Should return ok=False with a reason instead of raising."""
        fetcher, _ = make_fetcher(ok_handler)
        result = await UrlClassifier(fetcher).classify(raw)

        assert not result.ok
        assert result.error

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", [
        "http://localhost:8080/admin",
        "http://169.254.169.254/latest/meta-data/",
        "http://[::ffff:127.0.0.1]/",
        "http://[fd00::1]/",
        "http://127.1/",
    ])
    async def test_private_hosts_refused(self, raw):
        """Should refuse loopback, link-local and private addresses."""
        fetcher, transport = make_fetcher(ok_handler)
        result = await UrlClassifier(fetcher).classify(raw)

        assert not result.ok
        assert "private" in result.error
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_short_link_to_private_host_not_followed(self):
        """Should not send the redirect hop that targets a metadata address."""
        def handler(request):
            return httpx.Response(302, headers={"Location": "http://169.254.169.254/latest/meta-data/"})

        fetcher, transport = make_fetcher(handler)
        result = await UrlClassifier(fetcher).classify("https://amzn.to/abc")

        assert result.normalized_url == "https://amzn.to/abc"
        assert [r.url.host for r in transport.requests] == ["amzn.to"]

    def test_static_classification_never_fetches(self):
        """Should classify without expanding short links."""
        fetcher, transport = make_fetcher(ok_handler)
        result = UrlClassifier(fetcher).classify_static("https://amzn.to/xyz")

        assert result.ok
        assert result.normalized_url == "https://amzn.to/xyz"
        assert transport.requests == []
