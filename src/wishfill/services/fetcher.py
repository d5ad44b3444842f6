"""
Async HTTP fetching for storefront pages.

Wraps a shared ``httpx.AsyncClient`` with the browser-like headers, User-Agent
rotation, retry/backoff and bot-challenge detection used by the lightweight
extractors. Every method that callers use directly returns ``None`` on
failure instead of raising.
"""
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import httpx

from ..errors import BlockedBySite, NetworkError
from ..logger import get_logger
from ..utils.validators import is_blocked_host
from .deadline import Deadline, SystemClock

logger = get_logger(__name__)


USER_AGENTS = [
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_4 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.4 Mobile/15E148 Safari/604.1",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:124.0) Gecko/20100101 Firefox/124.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36 Edg/123.0.0.0",
]

REFERRERS = [
    "https://www.google.com/",
    "https://www.bing.com/",
    "https://www.google.es/",
    "https://duckduckgo.com/",
]

BASE_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "es-ES,es;q=0.9,en;q=0.8",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "Upgrade-Insecure-Requests": "1",
}

MAX_REDIRECTS = 10

CHALLENGE_PHRASES_SHORT = [
    "access denied",
    "checking your browser",
    "just a moment",
    "please enable javascript to continue",
    "robot check",
    "enter the characters you see below",
]


@dataclass(slots=True)
class FetchResult:
    """Successful page fetch."""

    url: str
    final_url: str
    status: int
    html: str
    user_agent: str = ""


def looks_like_bot_challenge(html: str) -> bool:
    """
    Check if HTML appears to be a bot/CAPTCHA challenge page.
    Be conservative - only flag obvious challenge pages.
    """
    h = (html or "").lower()

    if len(h) < 3000 and any(phrase in h for phrase in CHALLENGE_PHRASES_SHORT):
        return True

    specific_challenges = [
        "checking your browser before accessing" in h,
        ("verify you are human" in h and len(h) < 10000),
        ("please complete the captcha" in h and len(h) < 10000),
        ("cloudflare" in h and "ray id" in h and len(h) < 15000),
        ("/errors/validatecaptcha" in h and len(h) < 20000),
    ]
    return any(specific_challenges)


def backoff_delay(attempt: int, base_delay: float) -> float:
    """Delay before retry number ``attempt`` (0-based): base, 2*base, 4*base..."""
    return base_delay * (2 ** attempt)


class HttpFetcher:
    """
    Shared async page fetcher.

    Args:
        client: Pre-built ``httpx.AsyncClient`` (tests pass one with a
            ``MockTransport``); a pooled client is created lazily otherwise
        clock: Clock used for backoff sleeps and deadlines
        user_agents: Pool of User-Agent strings to rotate through
        referrers: Pool of referrer URLs to rotate through
        rng: Random source for the starting offset into the pools
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        clock: Optional[SystemClock] = None,
        user_agents: Sequence[str] = USER_AGENTS,
        referrers: Sequence[str] = REFERRERS,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._client = client
        self._owns_client = client is None
        self.clock = clock or SystemClock()
        self.user_agents: List[str] = list(user_agents)
        self.referrers: List[str] = list(referrers)
        self._rng = rng or random.Random()

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                follow_redirects=True,
                limits=httpx.Limits(max_connections=50, max_keepalive_connections=10),
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def build_headers(
        self,
        user_agent: str,
        referer: Optional[str] = None,
        extra: Optional[Dict[str, str]] = None,
    ) -> Dict[str, str]:
        headers = dict(BASE_HEADERS)
        headers["User-Agent"] = user_agent
        if referer:
            headers["Referer"] = referer
        if extra:
            headers.update(extra)
        return headers

    async def _get(self, url: str, headers: Dict[str, str], timeout: float) -> httpx.Response:
        """
        GET ``url`` following redirects one hop at a time.

        Every hop is checked before it is sent, so a public URL cannot
        bounce the request onto a loopback or private address.
        """
        request_url = url
        for _ in range(MAX_REDIRECTS + 1):
            if is_blocked_host(request_url):
                raise BlockedBySite(url, reason=f"redirect to private host {request_url}")
            response = await self.client.get(
                request_url,
                headers=headers,
                timeout=httpx.Timeout(timeout),
                follow_redirects=False,
            )
            if response.next_request is None:
                return response
            request_url = str(response.next_request.url)
        raise httpx.TooManyRedirects("Exceeded maximum allowed redirects.", request=response.request)

    async def fetch(
        self,
        url: str,
        *,
        timeout: float,
        user_agent: Optional[str] = None,
        referer: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> FetchResult:
        """
        Fetch one page once.

        Raises:
            NetworkError: timeout or transport failure
            BlockedBySite: non-2xx status, a bot-challenge page or a redirect
                to a private host
        """
        user_agent = user_agent or self.user_agents[0]
        request_headers = self.build_headers(user_agent, referer, headers)

        try:
            response = await self._get(url, request_headers, timeout)
        except httpx.TimeoutException as e:
            raise NetworkError(url, f"timeout after {timeout:.1f}s") from e
        except httpx.HTTPError as e:
            raise NetworkError(url, f"{type(e).__name__}: {e}") from e

        if not 200 <= response.status_code < 300:
            raise BlockedBySite(url, status=response.status_code)

        html = response.text
        if looks_like_bot_challenge(html):
            raise BlockedBySite(url, status=response.status_code, reason="bot challenge")

        return FetchResult(
            url=url,
            final_url=str(response.url),
            status=response.status_code,
            html=html,
            user_agent=user_agent,
        )

    async def fetch_with_retries(
        self,
        url: str,
        *,
        attempts: int = 3,
        base_delay: float = 0.5,
        budget: float = 4.5,
        use_referrers: bool = True,
        headers: Optional[Dict[str, str]] = None,
    ) -> Optional[FetchResult]:
        """
        Fetch with exponential backoff, rotating User-Agent and referrer.

        The whole call (attempts plus sleeps) stays within ``budget``
        seconds. Returns ``None`` when every attempt failed.
        """
        deadline = Deadline.after(budget, self.clock)
        offset = self._rng.randrange(len(self.user_agents))

        for attempt in range(attempts):
            if deadline.expired:
                break

            user_agent = self.user_agents[(offset + attempt) % len(self.user_agents)]
            referer = None
            if use_referrers and self.referrers:
                referer = self.referrers[(offset + attempt) % len(self.referrers)]

            try:
                result = await self.fetch(
                    url,
                    timeout=deadline.remaining(),
                    user_agent=user_agent,
                    referer=referer,
                    headers=headers,
                )
                logger.debug("FETCH ok attempt=%d status=%d url=%s", attempt + 1, result.status, url)
                return result
            except (NetworkError, BlockedBySite) as e:
                logger.debug("FETCH attempt=%d failed: %s", attempt + 1, e)

            if attempt + 1 < attempts:
                delay = backoff_delay(attempt, base_delay)
                if delay >= deadline.remaining():
                    break
                await self.clock.sleep(delay)

        logger.info("FETCH giving up on %s after %d attempt(s)", url, attempts)
        return None

    async def fetch_first_success(
        self,
        url: str,
        *,
        per_attempt_timeout: float = 2.0,
        deadline: Optional[Deadline] = None,
    ) -> Optional[FetchResult]:
        """
        Try each User-Agent in order and stop at the first 2xx response.
        """
        for index, user_agent in enumerate(self.user_agents):
            timeout = deadline.cap(per_attempt_timeout) if deadline else per_attempt_timeout
            if timeout <= 0:
                break
            try:
                result = await self.fetch(url, timeout=timeout, user_agent=user_agent)
                logger.debug("FETCH ua=%d succeeded for %s", index, url)
                return result
            except (NetworkError, BlockedBySite) as e:
                logger.debug("FETCH ua=%d failed: %s", index, e)

        return None

    async def resolve_redirects(self, url: str, *, timeout: float = 2.5) -> str:
        """
        Follow redirects (short links) and return the final URL.

        Falls back to the input URL on any failure.
        """
        try:
            response = await self._get(url, self.build_headers(self.user_agents[0]), timeout)
            final_url = str(response.url)
            logger.debug("REDIRECT %s -> %s", url, final_url)
            return final_url or url
        except httpx.HTTPError as e:
            logger.warning("REDIRECT failed for %s: %s", url, NetworkError(url, str(e)))
            return url
        except BlockedBySite as e:
            logger.warning("REDIRECT refused for %s: %s", url, e)
            return url
