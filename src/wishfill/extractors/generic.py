"""
Lightweight extractor for storefronts without a dedicated pattern table.

Works from the raw HTML only: JSON-LD first, then Open Graph / Twitter
meta tags, then DOM heuristics over the page with related-product
sections removed.
"""
from __future__ import annotations

import re
from typing import Optional

from bs4 import BeautifulSoup

from ..config import Config
from ..logger import get_logger
from ..models import ExtractorResult
from ..services.deadline import Deadline
from ..services.fetcher import HttpFetcher
from ..services.price_normalizer import collect_candidates, resolve_price
from .base import clean_description_candidate, clean_image_candidate, clean_title_candidate
from .patterns import IMAGE_SELECTORS, PRICE_SELECTORS, TITLE_SELECTORS
from .structured import extract_jsonld, extract_meta_tags, page_title

logger = get_logger(__name__)


class GenericExtractor:
    """
    Extract title, image, price and description from any product page.

    Features:
    - Tolerant JSON-LD reading (``@graph`` and ``mainEntity`` traversal)
    - Main product detection (filters out related/recommended products)
    - Largest-image fallback that skips logos, icons and tracking pixels
    """

    # Patterns that indicate sections to EXCLUDE (related/recommended products)
    EXCLUDE_SECTION_PATTERNS = [
        'related', 'similar', 'recommend', 'also-bought', 'also-viewed', 'you-may-like',
        'customers-also', 'frequently-bought', 'alternatives', 'other-products',
        'more-products', 'product-list', 'product-grid', 'product-carousel', 'product-slider',
        'cross-sell', 'upsell', 'suggestions', 'trending', 'best-seller', 'new-arrival',
        'featured-products', 'shop-more', 'browse-more', 'explore-more', 'recently-viewed',
        'viewed-products', 'relacionados', 'similares', 'recomendados',
    ]

    # Text patterns that indicate multi-product sections (in headings)
    EXCLUDE_HEADING_PATTERNS = [
        'related products', 'similar products', 'you may also like', 'customers also bought',
        'frequently bought together', 'compare similar', 'other customers', 'more from',
        'shop similar', 'recommended for you', 'people also viewed', 'similar items',
        'complete the look', 'goes well with', 'pair it with', 'recently viewed',
        'productos relacionados', 'productos similares', 'también te puede gustar',
        'te puede interesar', 'los clientes también compraron', 'completa el look',
    ]

    # Images whose URL or class contains one of these are never the product shot
    IMAGE_SKIP_MARKERS = (
        'logo', 'icon', 'sprite', 'pixel', 'badge', 'avatar', 'banner', 'flag',
        'payment', 'rating', 'star', 'spinner', 'placeholder',
    )
    MIN_IMAGE_SIDE = 100

    def __init__(
        self,
        fetcher: HttpFetcher,
        *,
        attempt_timeout: Optional[float] = None,
        budget: Optional[float] = None,
    ) -> None:
        self.fetcher = fetcher
        self.attempt_timeout = (
            attempt_timeout if attempt_timeout is not None else Config.GENERIC_ATTEMPT_TIMEOUT_S
        )
        self.budget = budget if budget is not None else Config.LIGHTWEIGHT_TIMEOUT_S

    async def extract(self, url: str, budget: Optional[float] = None) -> ExtractorResult:
        """
        Fetch ``url`` with the User-Agent pool and parse it.

        Returns an empty result when no attempt succeeds before the budget
        runs out.
        """
        deadline = Deadline.after(budget if budget is not None else self.budget, self.fetcher.clock)
        fetched = await self.fetcher.fetch_first_success(
            url,
            per_attempt_timeout=self.attempt_timeout,
            deadline=deadline,
        )
        if fetched is None:
            logger.info("GENERIC no usable response for %s", url)
            return ExtractorResult()

        try:
            return self.extract_from_html(fetched.html, fetched.final_url or url)
        except Exception as e:
            logger.warning("GENERIC parse failed for %s: %s", url, e)
            return ExtractorResult()

    def extract_from_html(self, html: str, url: Optional[str] = None) -> ExtractorResult:
        """
        Extract product data from HTML text (no fetching).

        Args:
            html: Raw HTML content as string
            url: Page URL, used to resolve relative image URLs

        Returns:
            Partial result; fields no strategy could fill are None
        """
        if not html or not html.strip():
            return ExtractorResult()

        soup = BeautifulSoup(html, "html.parser")

        result = ExtractorResult()
        for method_name, step in (
            ("jsonld", lambda: extract_jsonld(soup, url)),
            ("meta", lambda: extract_meta_tags(soup, url)),
        ):
            try:
                result = result.merge(self._filtered(step(), url))
            except Exception as e:
                logger.warning("EXTRACT %s failed: %s", method_name, e)

        # DOM heuristics run on a copy without related-product sections
        main = BeautifulSoup(html, "html.parser")
        self._remove_related_product_sections(main)

        price = resolve_price(collect_candidates(main, html), main.get_text(" "))
        if price:
            result = ExtractorResult(
                title=result.title,
                description=result.description,
                image_url=result.image_url,
                price=price,
                source=result.source,
            )

        if result.is_complete:
            logger.debug("EXTRACT complete from structured data")
            return result

        dom = ExtractorResult(
            title=self._dom_title(main, url),
            image_url=self._dom_image(main, url) or self._largest_image(main, url),
            price=None,
            source="dom",
        )
        result = result.merge(dom)

        if not result.title:
            result = result.merge(ExtractorResult(
                title=clean_title_candidate(page_title(soup), url),
                source="title_tag",
            ))

        logger.debug(
            "EXTRACT generic title=%s image=%s price=%s",
            bool(result.title), bool(result.image_url), result.price or "-",
        )
        return result

    def _filtered(self, partial: ExtractorResult, url: Optional[str]) -> ExtractorResult:
        return ExtractorResult(
            title=clean_title_candidate(partial.title, url),
            image_url=clean_image_candidate(partial.image_url, url),
            price=partial.price,
            description=clean_description_candidate(partial.description),
            source=partial.source,
        )

    def _remove_related_product_sections(self, soup: BeautifulSoup) -> None:
        """Remove sections that contain related/recommended products to avoid extracting wrong content."""
        removed_count = 0

        # Find and remove elements with excluded class/id patterns
        for element in soup.find_all(['div', 'section', 'aside', 'ul', 'ol']):
            if element.decomposed:
                continue
            classes = ' '.join(element.get('class', []) or []).lower()
            element_id = (element.get('id') or '').lower()
            combined = f"{classes} {element_id}"

            for pattern in self.EXCLUDE_SECTION_PATTERNS:
                if pattern in combined:
                    element.decompose()
                    removed_count += 1
                    break

        # Find and remove sections with excluded heading text
        for heading in soup.find_all(['h2', 'h3', 'h4', 'h5', 'h6']):
            if heading.decomposed:
                continue
            heading_text = heading.get_text(' ', strip=True).lower()

            for pattern in self.EXCLUDE_HEADING_PATTERNS:
                if pattern in heading_text:
                    parent = heading.find_parent(['section', 'aside'])
                    if parent and not parent.find('h1'):
                        parent.decompose()
                    else:
                        heading.decompose()
                    removed_count += 1
                    break

        # Product grids/carousels: three or more product cards, away from the h1
        for container in soup.find_all(['div', 'section', 'ul']):
            if container.decomposed or container.find('h1'):
                continue
            product_cards = container.find_all(
                lambda tag: tag.name in ['div', 'li', 'article'] and
                any(p in ' '.join(tag.get('class', []) or []).lower()
                    for p in ['product-card', 'product-item', 'product-tile', 'card', 'tile'])
            )
            if len(product_cards) >= 3:
                container_classes = ' '.join(container.get('class', []) or []).lower()
                if 'main' not in container_classes and 'primary' not in container_classes:
                    container.decompose()
                    removed_count += 1

        if removed_count > 0:
            logger.debug("FILTER Removed %d related/recommended product sections", removed_count)

    def _dom_title(self, soup: BeautifulSoup, url: Optional[str]) -> Optional[str]:
        for selector in TITLE_SELECTORS:
            for element in soup.select(selector):
                title = clean_title_candidate(element.get_text(" ", strip=True), url, min_length=5)
                if title:
                    return title
        return None

    def _dom_image(self, soup: BeautifulSoup, url: Optional[str]) -> Optional[str]:
        for selector, attrs in IMAGE_SELECTORS:
            for element in soup.select(selector):
                for attr in attrs:
                    image = clean_image_candidate(element.get(attr), url)
                    if image:
                        return image
        return None

    def _largest_image(self, soup: BeautifulSoup, url: Optional[str]) -> Optional[str]:
        """Largest ``<img>`` by declared area; both sides must exceed MIN_IMAGE_SIDE."""
        best, best_area = None, 0
        for img in soup.find_all('img'):
            src = img.get('data-src') or img.get('src') or ''
            marker_text = f"{src} {' '.join(img.get('class', []) or [])} {img.get('alt') or ''}".lower()
            if any(marker in marker_text for marker in self.IMAGE_SKIP_MARKERS):
                continue

            width = _dimension(img.get('width'))
            height = _dimension(img.get('height'))
            if width <= self.MIN_IMAGE_SIDE or height <= self.MIN_IMAGE_SIDE:
                continue

            image = clean_image_candidate(src, url)
            if image and width * height > best_area:
                best, best_area = image, width * height
        return best


def _dimension(value) -> int:
    match = re.match(r'\s*(\d+)', str(value or ''))
    return int(match.group(1)) if match else 0
