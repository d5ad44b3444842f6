"""
Headless-browser extraction for pages that need JavaScript.

One Chromium process is shared by every request. It is launched lazily,
each extraction gets its own isolated browser context, and a supervisor
task closes the process after it has been idle for a while.
"""
from __future__ import annotations

import asyncio
import base64
import random
from contextlib import asynccontextmanager
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from ..config import Config
from ..logger import get_logger
from ..models import ExtractorResult, PriceSource, Visibility
from ..services.deadline import Deadline, SystemClock, run_with_timeout
from ..services.fetcher import BASE_HEADERS, USER_AGENTS
from ..services.price_normalizer import collect_candidates, make_candidate, resolve_price
from ..utils.validators import is_blocked_host
from .base import clean_description_candidate, clean_image_candidate, clean_title_candidate
from .patterns import (
    IMAGE_SELECTORS,
    OFFSCREEN_PRICE_SELECTORS,
    POPUP_SELECTORS,
    PRICE_SELECTORS,
    REGIONAL_MIRRORS,
    TITLE_SELECTORS,
)
from .registry import SiteRegistry
from .structured import extract_jsonld, extract_meta_tags

logger = get_logger(__name__)


LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]

DEFAULT_VIEWPORT = {"width": 1366, "height": 900}
SCREENSHOT_VIEWPORT = {"width": 1280, "height": 900}
SCREENSHOT_QUALITY = 60

# Seconds kept after navigation for popups, scrolling and reading the DOM
READ_RESERVE_S = 2.0
MIN_NAVIGATION_S = 1.0
# A regional mirror is only tried with at least this much time left
MIN_MIRROR_BUDGET_S = 4.0
DEADLINE_MARGIN_S = 0.25

# Hides the most common automation fingerprints
STEALTH_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'languages', { get: () => ['es-ES', 'es', 'en'] });
Object.defineProperty(navigator, 'plugins', {
    get: () => [
        { name: 'Chrome PDF Plugin', filename: 'internal-pdf-viewer' },
        { name: 'Chrome PDF Viewer', filename: 'mhjfbmdgcfjbbpaeojofohoefgiehjai' },
        { name: 'Native Client', filename: 'internal-nacl-plugin' },
    ],
});
window.chrome = window.chrome || { runtime: {} };
"""

# Reads the first non-empty value per field plus the largest rendered image
EVALUATE_SCRIPT = """
({ title, image, price }) => {
    const read = (el, attrs) => {
        for (const attr of attrs) {
            const value = el.getAttribute(attr);
            if (value) return value;
        }
        if (el.tagName === 'IMG') return el.currentSrc || el.src || null;
        if (el.tagName === 'META') return el.getAttribute('content');
        return (el.innerText || el.textContent || '').trim() || null;
    };
    const first = (pairs) => {
        for (const [selector, attrs] of pairs) {
            let elements;
            try { elements = document.querySelectorAll(selector); } catch (e) { continue; }
            for (const el of elements) {
                const value = read(el, attrs);
                if (value) return value;
            }
        }
        return null;
    };
    let largestImage = null;
    let largestArea = 0;
    for (const img of document.images) {
        const width = img.naturalWidth || img.width;
        const height = img.naturalHeight || img.height;
        const src = img.currentSrc || img.src;
        if (!src || width <= 100 || height <= 100) continue;
        if (/logo|icon|sprite|pixel|badge/i.test(src)) continue;
        if (width * height > largestArea) {
            largestImage = src;
            largestArea = width * height;
        }
    }
    return { title: first(title), image: first(image), price: first(price), largestImage };
}
"""

SCROLL_SCRIPT = "window.scrollTo(0, Math.floor(document.body.scrollHeight / 2))"


class BrowserState(str, Enum):
    CLOSED = "closed"
    LAUNCHING = "launching"
    IDLE = "idle"
    IN_USE = "in_use"


class LaunchedBrowser:
    """A Playwright driver plus the browser it started; closing stops both."""

    def __init__(self, playwright, browser):
        self.playwright = playwright
        self.browser = browser

    async def new_context(self, **kwargs):
        return await self.browser.new_context(**kwargs)

    async def close(self) -> None:
        try:
            await self.browser.close()
        finally:
            await self.playwright.stop()


class PlaywrightLauncher:
    """Default launcher: headless Chromium through Playwright."""

    def __init__(self, executable_path: Optional[str] = None, headless: bool = True):
        self.executable_path = executable_path
        self.headless = headless

    async def __call__(self) -> LaunchedBrowser:
        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(
                headless=self.headless,
                executable_path=self.executable_path or None,
                args=LAUNCH_ARGS,
            )
        except Exception:
            await playwright.stop()
            raise
        logger.info("BROWSER launched (executable=%s)", self.executable_path or "bundled")
        return LaunchedBrowser(playwright, browser)


class BrowserSession:
    """
    Lazily launched, shared headless browser.

    Args:
        launcher: Async callable returning an object with ``new_context()``
            and ``close()``; tests inject a fake one
        idle_timeout: Seconds without users after which the browser closes
        clock: Clock used by the idle supervisor
    """

    def __init__(
        self,
        launcher: Optional[Callable[[], Awaitable[object]]] = None,
        idle_timeout: Optional[float] = None,
        clock: Optional[SystemClock] = None,
    ) -> None:
        self._launcher = launcher or PlaywrightLauncher(Config.BROWSER_EXECUTABLE_PATH)
        self.idle_timeout = idle_timeout if idle_timeout is not None else Config.BROWSER_IDLE_TIMEOUT_S
        self.clock = clock or SystemClock()

        self.state = BrowserState.CLOSED
        self.launch_count = 0
        self._browser = None
        self._in_use = 0
        self._last_used = 0.0
        self._supervisor: Optional[asyncio.Task] = None
        self._launch_lock = asyncio.Lock()
        self._idle_lock = asyncio.Lock()

    @property
    def in_use(self) -> int:
        return self._in_use

    @property
    def is_open(self) -> bool:
        return self._browser is not None

    async def _ensure_browser(self):
        if self._browser is not None:
            return self._browser

        async with self._launch_lock:
            if self._browser is None:  # Double-check after acquiring lock
                self.state = BrowserState.LAUNCHING
                try:
                    self._browser = await self._launcher()
                except Exception:
                    self.state = BrowserState.CLOSED
                    raise
                self.launch_count += 1
                self.state = BrowserState.IDLE
                self._last_used = self.clock.monotonic()
                self._supervisor = asyncio.create_task(self._supervise())
        return self._browser

    @asynccontextmanager
    async def page(
        self,
        user_agent: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        viewport: Optional[Dict[str, int]] = None,
    ) -> AsyncIterator[object]:
        """
        Open an isolated context and page for one extraction.

        The context is closed on every exit path, including cancellation
        by a phase timeout.
        """
        browser = await self._ensure_browser()
        self._in_use += 1
        self.state = BrowserState.IN_USE
        context = None
        try:
            context = await browser.new_context(
                user_agent=user_agent or USER_AGENTS[0],
                extra_http_headers=headers or {},
                viewport=viewport or DEFAULT_VIEWPORT,
                locale="es-ES",
            )
            page = await context.new_page()
            yield page
        finally:
            if context is not None:
                try:
                    await context.close()
                except Exception as e:
                    logger.debug("BROWSER context close failed: %s", e)
            self._in_use -= 1
            self._last_used = self.clock.monotonic()
            if self._in_use == 0 and self._browser is not None:
                self.state = BrowserState.IDLE

    async def _supervise(self) -> None:
        interval = max(self.idle_timeout / 4, 0.01)
        while self._browser is not None:
            await self.clock.sleep(interval)
            async with self._idle_lock:
                if self._browser is None:
                    return
                idle_for = self.clock.monotonic() - self._last_used
                if self._in_use == 0 and idle_for >= self.idle_timeout:
                    logger.info("BROWSER idle for %.0fs, closing", idle_for)
                    await self._shutdown_browser()
                    return

    async def _shutdown_browser(self) -> None:
        browser, self._browser = self._browser, None
        self.state = BrowserState.CLOSED
        if browser is None:
            return
        try:
            await browser.close()
        except Exception as e:
            logger.warning("BROWSER close failed: %s", e)

    async def close(self) -> None:
        """Close the browser now; the next ``page()`` relaunches it."""
        supervisor, self._supervisor = self._supervisor, None
        if supervisor is not None and supervisor is not asyncio.current_task():
            supervisor.cancel()
            await asyncio.gather(supervisor, return_exceptions=True)
        async with self._idle_lock:
            await self._shutdown_browser()


class HeadlessExtractor:
    """
    Render a product page in the shared browser and read it.

    Args:
        session: Shared ``BrowserSession``
        registry: Site registry; supplies per-site selectors and filters
        navigation_timeout: Seconds to wait for ``networkidle``
        max_mirrors: Regional mirror URLs to try when the result is incomplete
        screenshot_timeout: Seconds to wait for ``domcontentloaded`` before a
            screenshot is taken of whatever has rendered
    """

    def __init__(
        self,
        session: BrowserSession,
        registry: Optional[SiteRegistry] = None,
        navigation_timeout: Optional[float] = None,
        max_mirrors: Optional[int] = None,
        screenshot_timeout: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.session = session
        self.registry = registry
        self.navigation_timeout = (
            navigation_timeout if navigation_timeout is not None else Config.NAVIGATION_TIMEOUT_S
        )
        self.max_mirrors = max_mirrors if max_mirrors is not None else Config.HEADLESS_MAX_MIRRORS
        self.screenshot_timeout = (
            screenshot_timeout if screenshot_timeout is not None else Config.SCREENSHOT_NAVIGATION_TIMEOUT_S
        )
        self._rng = rng or random.Random()

    async def extract(
        self,
        url: str,
        domain_tag: Optional[str] = None,
        product_id: Optional[str] = None,
        deadline: Optional[Deadline] = None,
    ) -> ExtractorResult:
        """
        Render ``url`` and, while the result is incomplete, its regional mirrors.

        With a ``deadline`` every navigation is capped to the time left and
        each mirror attempt ends before the deadline does, so whatever the
        first page produced is always returned.
        """
        result = await self._extract_once(url, domain_tag, self._navigation_timeout(deadline))
        if result.is_complete:
            return result

        for mirror in self.mirror_urls(url, domain_tag, product_id)[: self.max_mirrors]:
            if deadline is not None and deadline.remaining() < MIN_MIRROR_BUDGET_S:
                logger.info("HEADLESS %.1fs left, skipping regional mirrors", deadline.remaining())
                break

            logger.info("HEADLESS trying regional mirror %s", mirror)
            attempt = self._extract_once(mirror, domain_tag, self._navigation_timeout(deadline))
            if deadline is not None:
                attempt = run_with_timeout(
                    attempt,
                    deadline.remaining() - DEADLINE_MARGIN_S,
                    ExtractorResult(),
                    label=f"mirror {mirror}",
                )
            result = result.merge(await attempt)
            if result.is_complete:
                break
        return result

    def _navigation_timeout(self, deadline: Optional[Deadline]) -> float:
        if deadline is None:
            return self.navigation_timeout
        return max(min(self.navigation_timeout, deadline.remaining() - READ_RESERVE_S), MIN_NAVIGATION_S)

    def mirror_urls(self, url: str, domain_tag: Optional[str], product_id: Optional[str]) -> List[str]:
        """Alternate regional URLs for the same product id."""
        if not product_id or domain_tag not in REGIONAL_MIRRORS:
            return []
        domains, template = REGIONAL_MIRRORS[domain_tag]
        host = (urlparse(url).hostname or "").lower().removeprefix("www.")
        return [
            template.format(domain=domain, product_id=product_id)
            for domain in domains
            if domain != host
        ]

    def _headers(self) -> Dict[str, str]:
        headers = {k: v for k, v in BASE_HEADERS.items() if k != "Upgrade-Insecure-Requests"}
        headers["Referer"] = "https://www.google.com/"
        return headers

    async def _extract_once(
        self,
        url: str,
        domain_tag: Optional[str],
        navigation_timeout: Optional[float] = None,
    ) -> ExtractorResult:
        user_agent = self._rng.choice(USER_AGENTS)
        try:
            async with self.session.page(user_agent=user_agent, headers=self._headers()) as page:
                await page.route("**/*", self._guard_request)
                await page.add_init_script(STEALTH_SCRIPT)
                await self._navigate(page, url, navigation_timeout or self.navigation_timeout)
                if is_blocked_host(page.url or url):
                    logger.warning("HEADLESS %s ended on private host %s", url, page.url)
                    return ExtractorResult()
                await self._dismiss_popups(page)
                await self._scroll(page)
                dom = await page.evaluate(EVALUATE_SCRIPT, self._selectors(domain_tag)) or {}
                html = await page.content()
                final_url = page.url or url
        except PlaywrightError as e:
            logger.warning("HEADLESS failed for %s: %s", url, e)
            return ExtractorResult()

        return self.build_result(dom, html, final_url, domain_tag)

    async def _guard_request(self, route) -> None:
        # Covers redirects and subresources as well as the page itself
        if is_blocked_host(route.request.url):
            logger.warning("HEADLESS blocked request to private host %s", route.request.url)
            await route.abort()
        else:
            await route.continue_()

    async def _navigate(self, page, url: str, timeout: float, wait_until: str = "networkidle") -> None:
        try:
            await page.goto(url, wait_until=wait_until, timeout=timeout * 1000)
        except PlaywrightTimeoutError:
            logger.info("HEADLESS navigation timeout (%.1fs) for %s, reading partial DOM", timeout, url)

    async def _dismiss_popups(self, page) -> None:
        for selector in POPUP_SELECTORS:
            try:
                element = await page.query_selector(selector)
                if element is not None:
                    await element.click(timeout=1000)
                    logger.debug("HEADLESS dismissed popup %s", selector)
            except PlaywrightError as e:
                logger.debug("HEADLESS popup %s not clickable: %s", selector, e)

    async def _scroll(self, page) -> None:
        try:
            await page.evaluate(SCROLL_SCRIPT)
            await page.wait_for_timeout(500)
        except PlaywrightError as e:
            logger.debug("HEADLESS scroll failed: %s", e)

    def _selectors(self, domain_tag: Optional[str]) -> Dict[str, list]:
        site = self.registry.get(domain_tag) if self.registry else None
        title = [[s, []] for s in TITLE_SELECTORS]
        image = [[s, list(attrs)] for s, attrs in IMAGE_SELECTORS]
        price = [[s, []] for s in PRICE_SELECTORS]
        if site is not None:
            title = [[s, list(a)] for s, a in site.css_selectors("title")] + title
            image = [[s, list(a)] for s, a in site.css_selectors("image")] + image
            price = [[s, list(a)] for s, a in site.css_selectors("price")] + price
        return {"title": title, "image": image, "price": price}

    def build_result(
        self,
        dom: Dict[str, Optional[str]],
        html: str,
        url: str,
        domain_tag: Optional[str] = None,
    ) -> ExtractorResult:
        """Combine the evaluated DOM values with the rendered HTML's structured data."""
        site = self.registry.get(domain_tag) if self.registry else None
        accept_title = site.accept_title if site else clean_title_candidate
        soup = BeautifulSoup(html or "", "html.parser")

        title = accept_title(dom.get("title"), url)
        image = clean_image_candidate(dom.get("image"), url) or clean_image_candidate(dom.get("largestImage"), url)

        default_currency = site.default_currency if site else "EUR"
        candidates = collect_candidates(
            soup,
            html or "",
            extra_patterns=site.price_patterns if site else (),
            offscreen_selectors=site.offscreen_price_selectors if site else OFFSCREEN_PRICE_SELECTORS,
            visible_selectors=site.price_selectors if site else PRICE_SELECTORS,
            default_currency=default_currency,
        )
        rendered_price = make_candidate(
            dom.get("price"),
            source=PriceSource.DOM,
            visibility=Visibility.VISIBLE,
            default_currency=default_currency,
        )
        if rendered_price is not None:
            candidates.append(rendered_price)
        price = resolve_price(candidates, soup.get_text(" "))

        structured = extract_jsonld(soup, url).merge(extract_meta_tags(soup, url))
        result = ExtractorResult(
            title=title,
            image_url=image,
            price=price or None,
            source="headless",
        ).merge(ExtractorResult(
            title=accept_title(structured.title, url),
            image_url=clean_image_candidate(structured.image_url, url),
            price=structured.price,
            description=clean_description_candidate(structured.description),
            source="headless_structured",
        ))
        logger.info(
            "HEADLESS %s title=%s image=%s price=%s",
            url, bool(result.title), bool(result.image_url), result.price or "-",
        )
        return result

    async def screenshot(self, url: str) -> Optional[str]:
        """
        Base64 JPEG of the first viewport, or None on failure.

        Waits only for ``domcontentloaded`` under ``screenshot_timeout`` so
        the capture leaves most of the vision budget to the model call.
        """
        try:
            async with self.session.page(
                user_agent=self._rng.choice(USER_AGENTS),
                headers=self._headers(),
                viewport=SCREENSHOT_VIEWPORT,
            ) as page:
                await page.route("**/*", self._guard_request)
                await page.add_init_script(STEALTH_SCRIPT)
                await self._navigate(page, url, self.screenshot_timeout, wait_until="domcontentloaded")
                if is_blocked_host(page.url or url):
                    logger.warning("HEADLESS %s ended on private host %s", url, page.url)
                    return None
                await self._dismiss_popups(page)
                data = await page.screenshot(type="jpeg", quality=SCREENSHOT_QUALITY, full_page=False)
        except PlaywrightError as e:
            logger.warning("HEADLESS screenshot failed for %s: %s", url, e)
            return None
        return base64.b64encode(data).decode("ascii")
