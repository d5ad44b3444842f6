"""
Pytest configuration and fixtures for Wishfill tests.

Nothing here touches the network: HTTP goes through ``httpx.MockTransport``,
and the browser and the model client are small fakes.
"""
import asyncio
import json
import sys
from pathlib import Path
from types import SimpleNamespace

# Add src to path for imports
project_root = Path(__file__).parent.parent
src_path = project_root / "src"
sys.path.insert(0, str(src_path))

import httpx
import pytest

from wishfill.services.fetcher import HttpFetcher


# =============================================================================
# Clock
# =============================================================================

class FakeClock:
    """Clock whose sleeps are recorded and advance time instantly."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps = []

    def monotonic(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += max(seconds, 0.0)
        await asyncio.sleep(0)


# =============================================================================
# HTTP
# =============================================================================

class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler):
        self.requests = []

        def recording_handler(request):
            self.requests.append(request)
            return handler(request)

        super().__init__(recording_handler)


def html_response(html: str, status: int = 200) -> httpx.Response:
    return httpx.Response(status, text=html, headers={"Content-Type": "text/html; charset=utf-8"})


def make_fetcher(handler, clock=None):
    """HttpFetcher over a recording mock transport; returns (fetcher, transport)."""
    transport = RecordingTransport(handler)
    client = httpx.AsyncClient(transport=transport, follow_redirects=True)
    return HttpFetcher(client, clock=clock or FakeClock()), transport


# =============================================================================
# Browser
# =============================================================================

class FakePage:
    """
    Stand-in for a Playwright page.

    ``responses`` maps a URL to ``(dom, html)``; ``dom`` is what the
    evaluation script would return for that URL. ``redirects`` maps a URL
    to where navigation ends up and ``delays`` to seconds spent in ``goto``.
    """

    def __init__(
        self,
        responses=None,
        default=None,
        goto_error=None,
        screenshot_bytes=b"fake-jpeg",
        redirects=None,
        delays=None,
    ):
        self.responses = responses or {}
        self.default = default or ({}, "")
        self.goto_error = goto_error
        self.screenshot_bytes = screenshot_bytes
        self.redirects = redirects or {}
        self.delays = delays or {}
        self.url = ""
        self.visited = []
        self.goto_calls = []
        self.scripts = []
        self.routes = []

    async def route(self, pattern, handler):
        self.routes.append((pattern, handler))

    async def add_init_script(self, script):
        self.scripts.append(script)

    async def goto(self, url, wait_until=None, timeout=None):
        self.visited.append(url)
        self.goto_calls.append({"url": url, "wait_until": wait_until, "timeout": timeout})
        if self.delays.get(url):
            await asyncio.sleep(self.delays[url])
        self.url = self.redirects.get(url, url)
        if self.goto_error is not None:
            raise self.goto_error

    async def query_selector(self, selector):
        return None

    async def evaluate(self, script, arg=None):
        if arg is None:
            return None
        return self.responses.get(self.url, self.default)[0]

    async def wait_for_timeout(self, ms):
        await asyncio.sleep(0)

    async def content(self):
        return self.responses.get(self.url, self.default)[1]

    async def screenshot(self, **kwargs):
        return self.screenshot_bytes


class FakeContext:
    def __init__(self, page):
        self.page = page
        self.closed = False

    async def new_page(self):
        return self.page

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, page_factory):
        self.page_factory = page_factory
        self.contexts = []
        self.closed = False

    async def new_context(self, **kwargs):
        context = FakeContext(self.page_factory())
        context.options = kwargs
        self.contexts.append(context)
        return context

    async def close(self):
        self.closed = True


class FakeLauncher:
    """Launcher that counts launches; each launch yields to the loop first."""

    def __init__(self, page_factory=None):
        self.page_factory = page_factory or FakePage
        self.browsers = []

    @property
    def calls(self) -> int:
        return len(self.browsers)

    async def __call__(self):
        await asyncio.sleep(0)
        browser = FakeBrowser(self.page_factory)
        self.browsers.append(browser)
        return browser


# =============================================================================
# Model
# =============================================================================

class FakeCompletions:
    def __init__(self, reply=None, error=None, hang=False):
        self.reply = reply if reply is not None else {}
        self.error = error
        self.hang = hang
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.hang:
            await asyncio.Event().wait()
        if self.error is not None:
            raise self.error
        content = self.reply if isinstance(self.reply, str) else json.dumps(self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeOpenAI:
    """Mimics ``client.chat.completions.create`` of ``AsyncOpenAI``."""

    def __init__(self, reply=None, error=None, hang=False):
        self.completions = FakeCompletions(reply, error, hang)
        self.chat = SimpleNamespace(completions=self.completions)

    async def close(self):
        pass


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sample_product_html():
    """Generic product page with JSON-LD, Open Graph and a related-products block."""
    return """
    <!DOCTYPE html>
    <html>
    <head>
        <title>Lámpara de mesa nórdica | Tienda Ejemplo</title>
        <meta property="og:title" content="Lámpara de mesa nórdica">
        <meta property="og:image" content="https://tienda-ejemplo.es/img/lampara-og.jpg">
        <script type="application/ld+json">
        {
            "@context": "https://schema.org",
            "@type": "Product",
            "name": "Lámpara de mesa nórdica",
            "image": ["https://tienda-ejemplo.es/img/lampara.jpg"],
            "description": "Lámpara de mesa de madera natural con pantalla de lino, ideal para salón.",
            "offers": {"@type": "Offer", "price": "29.99", "priceCurrency": "EUR"}
        }
        </script>
    </head>
    <body>
        <h1>Lámpara de mesa nórdica</h1>
        <div class="product-gallery"><img src="/img/lampara.jpg" width="800" height="800"></div>
        <span class="price">29,99 €</span>
        <section class="related-products">
            <h2>Productos relacionados</h2>
            <div class="product-card"><img src="/img/otra.jpg" width="900" height="900"><span class="price">9,99 €</span></div>
        </section>
    </body>
    </html>
    """
