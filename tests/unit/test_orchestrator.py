"""
Unit tests for the extraction pipeline.

Real classifier, registry and extractors run over ``httpx.MockTransport``;
the browser and vision stages are replaced by small fakes.
"""
import asyncio
import time

import httpx
import pytest

from conftest import FakeLauncher, FakeOpenAI, FakePage, html_response, make_fetcher
from wishfill.extractors import headless as headless_module
from wishfill.extractors.generic import GenericExtractor
from wishfill.extractors.headless import BrowserSession, HeadlessExtractor
from wishfill.extractors.registry import SiteRegistry
from wishfill.models import ExtractorResult
from wishfill.services.orchestrator import MetadataOrchestrator, PhaseBudgets
from wishfill.services.url_classifier import UrlClassifier
from wishfill.services.validator import MESSAGE_BOTH_INVALID, DataValidator
from wishfill.services.vision import VisionFallback

KNOWN_URL = "https://www.amazon.es/Fire-TV-Stick/dp/B0CJKTWTVT?ref=nav"
GENERIC_URL = "https://tienda-ejemplo.es/p/lampara-nordica"
NO_SLUG_URL = "https://tienda-ejemplo.es/p/12345"


class FakeHeadless:
    """Headless stage returning a canned result."""

    def __init__(self, result=None, hang=False, error=None, screenshot_data=None):
        self.result = result or ExtractorResult()
        self.hang = hang
        self.error = error
        self.screenshot_data = screenshot_data
        self.calls = []
        self.screenshots = []
        self.deadlines = []

    async def extract(self, url, domain_tag=None, product_id=None, deadline=None):
        self.calls.append(url)
        self.deadlines.append(deadline)
        if self.hang:
            await asyncio.Event().wait()
        if self.error is not None:
            raise self.error
        return self.result

    async def screenshot(self, url):
        self.screenshots.append(url)
        if self.hang:
            await asyncio.Event().wait()
        return self.screenshot_data


class FakeVision:
    def __init__(self, result):
        self.result = result
        self.calls = []

    async def extract(self, url, domain_tag=None, screenshot_provider=None):
        self.calls.append(url)
        return self.result


def build(handler, **kwargs):
    fetcher, transport = make_fetcher(handler)
    kwargs.setdefault("validator", DataValidator(enabled=False))
    kwargs.setdefault("budgets", PhaseBudgets())
    kwargs.setdefault("known_live_price", False)
    orchestrator = MetadataOrchestrator(
        classifier=UrlClassifier(fetcher),
        registry=SiteRegistry(fetcher),
        generic=GenericExtractor(fetcher),
        **kwargs,
    )
    return orchestrator, transport


def page(html):
    return lambda request: html_response(html)


class TestKnownProducts:
    """Tests for the curated Amazon short-circuit."""

    @pytest.mark.asyncio
    async def test_known_asin_makes_no_requests(self):
        """Should answer from the curated table without touching the network."""
        headless = FakeHeadless()
        orchestrator, transport = build(page("<html></html>"), headless=headless)

        metadata = await orchestrator.extract(KNOWN_URL)

        assert metadata.title.startswith("Amazon Fire TV Stick 4K")
        assert metadata.image_url.startswith("https://m.media-amazon.com/images/I/61FqKNVCixL")
        assert metadata.price == ""
        assert metadata.is_title_valid and metadata.is_image_valid
        assert transport.requests == []
        assert headless.calls == []

    @pytest.mark.asyncio
    async def test_known_asin_skips_model_validation(self):
        """Should trust curated titles."""
        client = FakeOpenAI(reply={"isTitleValid": False, "isImageValid": False})
        orchestrator, _ = build(
            page("<html></html>"),
            validator=DataValidator(client, enabled=True, timeout=1),
        )

        metadata = await orchestrator.extract(KNOWN_URL)

        assert metadata.is_title_valid
        assert client.completions.calls == []

    @pytest.mark.asyncio
    async def test_live_price_for_known_asin(self):
        """Should keep the curated title and add the live page price when enabled."""
        html = """
        <span id="productTitle">Otro título de la página</span>
        <div id="corePrice_feature_div"><span class="a-offscreen">69,99 €</span></div>
        """
        orchestrator, transport = build(page(html), known_live_price=True)

        metadata = await orchestrator.extract(KNOWN_URL)

        assert metadata.title.startswith("Amazon Fire TV Stick 4K")
        assert metadata.price == "69,99€"
        assert str(transport.requests[0].url) == "https://www.amazon.es/dp/B0CJKTWTVT"


class TestPipeline:
    """Tests for the lightweight, headless and vision phases."""

    @pytest.mark.asyncio
    async def test_jsonld_generic_page(self, sample_product_html):
        """Should resolve a generic page from JSON-LD without the browser."""
        headless = FakeHeadless()
        orchestrator, _ = build(page(sample_product_html), headless=headless)

        metadata = await orchestrator.extract(GENERIC_URL)

        assert metadata.title == "Lámpara de mesa nórdica"
        assert metadata.price == "29,99€"
        assert metadata.is_title_valid and metadata.is_image_valid
        assert metadata.validation_message == ""
        assert headless.calls == []

    @pytest.mark.asyncio
    async def test_site_extractor_used_for_known_store(self):
        """Should route registered storefronts to their site extractor."""
        html = """
        <meta property="og:title" content="Camisa de lino - ZARA España">
        <meta property="og:image" content="https://static.zara.net/photos/camisa.jpg?ts=1">
        <span class="money-amount__main">35,95 EUR</span>
        """
        orchestrator, _ = build(page(html))

        metadata = await orchestrator.extract("https://www.zara.com/es/es/camisa-lino-p01234567.html")

        assert metadata.title == "Camisa de lino"
        assert metadata.image_url == "https://static.zara.net/photos/camisa.jpg"
        assert metadata.price == "35,95€"

    @pytest.mark.asyncio
    async def test_headless_fills_missing_title(self):
        """Should run the browser when the title is missing and keep the lightweight image."""
        html = """
        <meta property="og:image" content="https://tienda-ejemplo.es/img/silla.jpg">
        <span class="price">149,00 €</span>
        """
        headless = FakeHeadless(ExtractorResult(
            title="Silla de oficina ergonómica",
            image_url="https://tienda-ejemplo.es/img/otra.jpg",
            source="headless",
        ))
        orchestrator, _ = build(page(html), headless=headless)

        metadata = await orchestrator.extract(NO_SLUG_URL)

        assert headless.calls == [NO_SLUG_URL]
        assert metadata.title == "Silla de oficina ergonómica"
        assert metadata.image_url == "https://tienda-ejemplo.es/img/silla.jpg"
        assert metadata.price == "149,00€"

    @pytest.mark.asyncio
    async def test_headless_result_survives_slow_mirror(self, monkeypatch):
        """Should keep the first rendered page when a regional mirror would outlast the phase."""
        monkeypatch.setattr(headless_module, "MIN_MIRROR_BUDGET_S", 0.1)
        es_url = "https://www.amazon.es/dp/B0TEST1234"
        dom = {"title": "Echo Dot (5.ª generación)", "image": "https://m.media-amazon.com/images/I/61FqKNVCixL.jpg"}
        launcher = FakeLauncher(lambda: FakePage({es_url: (dom, "")}, delays={"https://www.amazon.com/dp/B0TEST1234": 60}))
        headless = HeadlessExtractor(BrowserSession(launcher=launcher, idle_timeout=300), max_mirrors=2)
        budgets = PhaseBudgets(classify=1, lightweight=1, headless=0.6, vision=1, validate=1)
        orchestrator, _ = build(lambda request: httpx.Response(503), headless=headless, budgets=budgets)

        metadata = await orchestrator.extract(es_url)

        assert metadata.title == "Echo Dot (5.ª generación)"
        await headless.session.close()

    @pytest.mark.asyncio
    async def test_headless_gets_phase_deadline(self):
        """Should hand the headless stage a deadline matching its budget."""
        headless = FakeHeadless(ExtractorResult(title="Silla de oficina ergonómica"))
        orchestrator, _ = build(page("<html></html>"), headless=headless, budgets=PhaseBudgets(headless=12))

        await orchestrator.extract(NO_SLUG_URL)

        assert 11 < headless.deadlines[0].remaining() <= 12

    @pytest.mark.asyncio
    async def test_vision_skipped_when_title_present(self):
        """Should not call vision once a title is known."""
        html = "<h1>Silla de oficina ergonómica</h1>"
        vision = FakeVision(ExtractorResult(title="Otra cosa"))
        orchestrator, _ = build(page(html), headless=FakeHeadless(), vision=vision)

        metadata = await orchestrator.extract(NO_SLUG_URL)

        assert metadata.title == "Silla de oficina ergonómica"
        assert vision.calls == []

    @pytest.mark.asyncio
    async def test_vision_never_supplies_image(self):
        """Should take the vision title and price but drop any image."""
        vision = FakeVision(ExtractorResult(
            title="Silla de oficina ergonómica",
            price="149,00€",
            image_url="https://tienda-ejemplo.es/img/de-vision.jpg",
            source="vision",
        ))
        orchestrator, _ = build(page("<html></html>"), headless=FakeHeadless(), vision=vision)

        metadata = await orchestrator.extract(NO_SLUG_URL)

        assert metadata.title == "Silla de oficina ergonómica"
        assert metadata.price == "149,00€"
        assert metadata.image_url == ""
        assert metadata.is_image_valid is False

    @pytest.mark.asyncio
    async def test_failing_phase_is_contained(self):
        """Should keep the lightweight result when the browser raises."""
        html = "<h1>Silla de oficina ergonómica</h1>"
        headless = FakeHeadless(error=RuntimeError("browser crashed"))
        orchestrator, _ = build(page(html), headless=headless)

        metadata = await orchestrator.extract(NO_SLUG_URL)

        assert headless.calls == [NO_SLUG_URL]
        assert metadata.title == "Silla de oficina ergonómica"


class TestFailureShapes:
    """Tests for inputs and hosts that cannot be read."""

    @pytest.mark.asyncio
    async def test_invalid_input_returns_empty_shape(self):
        """Should return the blank shape with a message for a non-URL."""
        orchestrator, transport = build(page(""))

        metadata = await orchestrator.extract("not-a-url")

        assert metadata.title == ""
        assert metadata.image_url == ""
        assert metadata.price == ""
        assert metadata.is_title_valid is False
        assert "check the link" in metadata.validation_message
        assert transport.requests == []
        assert set(metadata.to_dict()) == {
            "title", "description", "imageUrl", "price",
            "isTitleValid", "isImageValid", "validationMessage",
        }

    @pytest.mark.asyncio
    async def test_every_phase_times_out(self):
        """Should return blanks within the summed phase budgets when everything hangs."""
        async def hang(request):
            await asyncio.Event().wait()

        budgets = PhaseBudgets(classify=0.05, lightweight=0.1, headless=0.1, vision=0.1, validate=0.1)
        headless = FakeHeadless(hang=True)
        vision = VisionFallback(FakeOpenAI(hang=True), enabled=True, timeout=5)
        orchestrator, _ = build(hang, headless=headless, vision=vision, budgets=budgets)

        started = time.monotonic()
        metadata = await orchestrator.extract(NO_SLUG_URL)
        elapsed = time.monotonic() - started

        assert metadata.title == ""
        assert metadata.image_url == ""
        assert metadata.price == ""
        assert metadata.is_title_valid is False
        assert metadata.validation_message == MESSAGE_BOTH_INVALID
        assert headless.calls == [NO_SLUG_URL]
        assert elapsed < budgets.ceiling + 0.5

    @pytest.mark.asyncio
    async def test_url_title_is_never_valid(self):
        """Should reject a URL title even when the model would accept it."""
        client = FakeOpenAI(reply={"isTitleValid": True, "isImageValid": True, "message": ""})
        headless = FakeHeadless(ExtractorResult(
            title="http://example.com",
            image_url="https://tienda-ejemplo.es/img/silla.jpg",
        ))
        orchestrator, _ = build(
            page("<html></html>"),
            headless=headless,
            validator=DataValidator(client, enabled=True, timeout=1),
        )

        metadata = await orchestrator.extract(NO_SLUG_URL)

        assert metadata.title == "http://example.com"
        assert metadata.is_title_valid is False
        assert client.completions.calls == []


class TestPhaseBudgets:
    def test_ceiling_is_sum_of_phases(self):
        budgets = PhaseBudgets(classify=1, lightweight=2, headless=3, vision=4, validate=5)
        assert budgets.ceiling == 15
