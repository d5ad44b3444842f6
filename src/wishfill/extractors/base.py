"""
Base class for site-specific extractors.

A site extractor is mostly data: ordered pattern tables per field. The base
class fetches the page (with retries and header rotation) and runs the
tables against the HTML; subclasses only override the hooks they need.
"""
from __future__ import annotations

from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup

from ..config import Config
from ..logger import get_logger
from ..models import ExtractorResult
from ..services.fetcher import HttpFetcher
from ..services.price_normalizer import collect_candidates, resolve_price
from ..utils.images import looks_like_placeholder_image, normalize_image_url
from ..utils.text_cleaning import (
    clean_store_title,
    clean_text,
    decode_js_string,
    title_looks_like_url,
    truncate_text,
)
from .patterns import (
    OFFSCREEN_PRICE_SELECTORS,
    PLACEHOLDER_TITLES,
    PRICE_SELECTORS,
    FieldPattern,
    first_match,
)
from .structured import DESCRIPTION_MAX_CHARS, extract_jsonld, extract_meta_tags

logger = get_logger(__name__)


def clean_title_candidate(
    raw: Optional[str],
    url: Optional[str] = None,
    *,
    min_length: int = 3,
    placeholders: FrozenSet[str] = frozenset(),
) -> Optional[str]:
    """Cleaned title, or None when ``raw`` is empty, a placeholder or a URL."""
    if not raw:
        return None
    title = clean_store_title(clean_text(decode_js_string(raw)), url)
    if len(title) < min_length:
        return None
    lowered = title.lower()
    if lowered in PLACEHOLDER_TITLES or lowered in placeholders:
        return None
    if title_looks_like_url(title):
        return None
    return title


def clean_image_candidate(raw: Optional[str], url: Optional[str] = None) -> Optional[str]:
    """Absolute original-asset image URL, or None for placeholders."""
    if not raw:
        return None
    image = normalize_image_url(decode_js_string(raw), url)
    if not image or looks_like_placeholder_image(image):
        return None
    return image


def clean_description_candidate(raw: Optional[str]) -> Optional[str]:
    text = clean_text(decode_js_string(raw or ""))
    if len(text) < 20:
        return None
    return truncate_text(text, DESCRIPTION_MAX_CHARS)


class SiteExtractor:
    """
    Pattern-table extractor for one storefront.

    Subclasses set ``tag`` and the pattern tables; patterns are tried in
    order and the first value passing the plausibility filter wins. The
    shared JSON-LD and Open Graph readers run after the site tables.
    """

    tag: str = ""

    title_patterns: Tuple[FieldPattern, ...] = ()
    image_patterns: Tuple[FieldPattern, ...] = ()
    price_patterns: Tuple[FieldPattern, ...] = ()
    description_patterns: Tuple[FieldPattern, ...] = ()

    price_selectors: Sequence[str] = PRICE_SELECTORS
    offscreen_price_selectors: Sequence[str] = OFFSCREEN_PRICE_SELECTORS

    default_currency: str = "EUR"
    placeholder_titles: FrozenSet[str] = frozenset()
    min_title_length: int = 3
    use_referrers: bool = True
    extra_headers: Dict[str, str] = {}

    def __init__(
        self,
        fetcher: HttpFetcher,
        *,
        attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
        budget: Optional[float] = None,
    ) -> None:
        self.fetcher = fetcher
        self.attempts = attempts if attempts is not None else Config.SITE_FETCH_ATTEMPTS
        self.base_delay = base_delay if base_delay is not None else Config.SITE_BACKOFF_BASE_S
        self.budget = budget if budget is not None else Config.SITE_BUDGET_S

    def __repr__(self) -> str:
        return f"{type(self).__name__}(tag={self.tag!r})"

    # ------------------------------------------------------------------
    # Fetch + parse
    # ------------------------------------------------------------------

    def target_url(self, url: str, product_id: Optional[str] = None) -> str:
        """URL to fetch; subclasses may canonicalize (e.g. strip query noise)."""
        return url

    async def extract(self, url: str, product_id: Optional[str] = None) -> ExtractorResult:
        """
        Fetch and parse a product page.

        Failed fetches and pages without matches are not errors: they
        produce an empty result (or the site's deterministic fallback).
        """
        target = self.target_url(url, product_id)
        fetched = await self.fetcher.fetch_with_retries(
            target,
            attempts=self.attempts,
            base_delay=self.base_delay,
            budget=self.budget,
            use_referrers=self.use_referrers,
            headers=self.extra_headers or None,
        )
        if fetched is None:
            logger.info("SITE %s fetch failed for %s", self.tag, target)
            return self.fallback(url, product_id)

        try:
            result = self.parse(fetched.html, fetched.final_url or target, product_id)
        except Exception as e:
            logger.warning("SITE %s parse failed for %s: %s", self.tag, target, e)
            result = ExtractorResult()

        return result.merge(self.fallback(url, product_id))

    def parse(self, html: str, url: str, product_id: Optional[str] = None) -> ExtractorResult:
        """Run the pattern tables over ``html``. Pure; no I/O."""
        soup = BeautifulSoup(html or "", "html.parser")

        title = first_match(self.title_patterns, html, soup, lambda raw: self.accept_title(raw, url))
        image = first_match(self.image_patterns, html, soup, lambda raw: self.accept_image(raw, url))
        description = first_match(self.description_patterns, html, soup, self.accept_description)

        candidates = collect_candidates(
            soup,
            html,
            extra_patterns=self.price_patterns,
            offscreen_selectors=self.offscreen_price_selectors,
            visible_selectors=self.price_selectors,
            default_currency=self.default_currency,
        )
        price = resolve_price(candidates, soup.get_text(" "))

        result = ExtractorResult(
            title=title,
            image_url=image,
            price=price or None,
            description=description,
            source=self.tag,
        )
        logger.debug(
            "SITE %s title=%s image=%s price=%s",
            self.tag, bool(title), bool(image), price or "-",
        )

        if result.is_complete and result.description:
            return result
        return result.merge(self._shared_fields(soup, url))

    def _shared_fields(self, soup: BeautifulSoup, url: str) -> ExtractorResult:
        shared = extract_jsonld(soup, url).merge(extract_meta_tags(soup, url))
        return ExtractorResult(
            title=self.accept_title(shared.title, url) if shared.title else None,
            image_url=self.accept_image(shared.image_url, url) if shared.image_url else None,
            price=shared.price,
            description=shared.description,
            source=shared.source,
        )

    def fallback(self, url: str, product_id: Optional[str] = None) -> ExtractorResult:
        """Values derivable without the page (none by default)."""
        return ExtractorResult()

    # ------------------------------------------------------------------
    # Plausibility filters
    # ------------------------------------------------------------------

    def accept_title(self, raw: Optional[str], url: Optional[str] = None) -> Optional[str]:
        return clean_title_candidate(
            raw, url, min_length=self.min_title_length, placeholders=self.placeholder_titles,
        )

    def accept_image(self, raw: Optional[str], url: Optional[str] = None) -> Optional[str]:
        return clean_image_candidate(raw, url)

    def accept_description(self, raw: Optional[str]) -> Optional[str]:
        return clean_description_candidate(raw)

    # ------------------------------------------------------------------
    # Selector export for the headless extractor
    # ------------------------------------------------------------------

    def css_selectors(self, field: str) -> List[Tuple[str, Tuple[str, ...]]]:
        """CSS selectors (with attributes) from one of the pattern tables."""
        patterns = getattr(self, f"{field}_patterns", ())
        return [(p.query, p.attrs) for p in patterns if p.kind == "css"]
