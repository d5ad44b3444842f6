"""
Ordered pattern tables shared by the extractors.

Everything here is plain data plus two small matching helpers, so the
tables can be unit-tested without any network access. Order matters: the
first entry that produces a plausible value wins.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Sequence, Tuple

from bs4 import BeautifulSoup


# =============================================================================
# Field patterns
# =============================================================================

@dataclass(frozen=True, slots=True)
class FieldPattern:
    """
    One way of reading a field from a page.

    kind:
        "regex" - first capture group of a regex over the raw HTML
        "css"   - CSS selector; read ``attrs`` in order, else the element text
        "meta"  - <meta> tag by property/name/itemprop; reads ``content``
    """

    kind: str
    query: str
    attrs: Tuple[str, ...] = ()
    flags: int = re.I | re.S

    def find_all(self, html: str, soup: Optional[BeautifulSoup]) -> Iterator[str]:
        if self.kind == "regex":
            for match in re.finditer(self.query, html or "", self.flags):
                groups = match.groups()
                if len(groups) > 1:
                    # e.g. whole and fraction parts of a price
                    value = ",".join(g for g in groups if g)
                else:
                    value = groups[0] if groups else match.group(0)
                if value:
                    yield value
            return

        if soup is None:
            return

        if self.kind == "meta":
            for key in ("property", "name", "itemprop"):
                for tag in soup.find_all("meta", attrs={key: self.query}):
                    content = tag.get("content")
                    if content:
                        yield content
            return

        for element in soup.select(self.query):
            if self.attrs:
                for attr in self.attrs:
                    value = element.get(attr)
                    if isinstance(value, list):
                        value = " ".join(value)
                    if value:
                        yield value
                        break
            else:
                text = element.get_text(" ", strip=True)
                if text:
                    yield text


def regex(query: str, flags: int = re.I | re.S) -> FieldPattern:
    return FieldPattern("regex", query, flags=flags)


def css(query: str, *attrs: str) -> FieldPattern:
    return FieldPattern("css", query, attrs=tuple(attrs))


def meta(name: str) -> FieldPattern:
    return FieldPattern("meta", name)


def first_match(
    patterns: Sequence[FieldPattern],
    html: str,
    soup: Optional[BeautifulSoup],
    accept: Callable[[str], Optional[str]],
) -> Optional[str]:
    """
    Return the first value that ``accept`` turns into something non-empty.

    ``accept`` both cleans and filters: it returns the cleaned value, or
    ``None`` to reject the candidate.
    """
    for pattern in patterns:
        for raw in pattern.find_all(html, soup):
            value = accept(raw)
            if value:
                return value
    return None


# =============================================================================
# Domains and product ids
# =============================================================================

SHORT_LINK_PATTERNS = [
    re.compile(r'(^|\.)amzn\.(to|eu)$', re.I),
    re.compile(r'(^|\.)a\.co$', re.I),
]

# (domain tag, host pattern); first match wins
DOMAIN_PATTERNS = [
    ("amazon", re.compile(r'(^|\.)(amazon\.[a-z.]+|amzn\.(to|eu)|a\.co)$', re.I)),
    ("nike", re.compile(r'(^|\.)nike\.com$', re.I)),
    ("zara", re.compile(r'(^|\.)zara\.com$', re.I)),
    ("pccomponentes", re.compile(r'(^|\.)pccomponentes\.(com|pt|it|fr)$', re.I)),
    ("decathlon", re.compile(r'(^|\.)decathlon\.[a-z.]+$', re.I)),
    ("carrefour", re.compile(r'(^|\.)carrefour\.(es|fr|it)$', re.I)),
    ("miravia", re.compile(r'(^|\.)miravia\.es$', re.I)),
    ("aliexpress", re.compile(r'(^|\.)aliexpress\.(com|us|es|ru)$', re.I)),
    ("ebay", re.compile(r'(^|\.)ebay\.[a-z.]+$', re.I)),
    ("walmart", re.compile(r'(^|\.)walmart\.(com|ca)$', re.I)),
]

GENERIC_TAG = "generic"


@dataclass(frozen=True, slots=True)
class IdPattern:
    """Product id regex; ``upper`` controls case normalization of the match."""

    pattern: re.Pattern
    upper: bool = True

    def match(self, url: str) -> Optional[str]:
        found = self.pattern.search(url)
        if not found:
            return None
        value = found.group(1)
        return value.upper() if self.upper else value


def _ids(*patterns: str, upper: bool = True) -> Tuple[IdPattern, ...]:
    return tuple(IdPattern(re.compile(p, re.I), upper=upper) for p in patterns)


PRODUCT_ID_PATTERNS = {
    "amazon": _ids(
        r'/dp/([A-Z0-9]{10})(?:[/?#]|$)',
        r'/gp/product/([A-Z0-9]{10})(?:[/?#]|$)',
        r'/product/([A-Z0-9]{10})(?:[/?#]|$)',
        r'/(B[0-9A-Z]{9})(?:[/?#]|$)',
        r'[/?&]ASIN=([A-Z0-9]{10})',
    ),
    "nike": _ids(r'/t/[^/]+/([A-Z0-9]{6}-\d{3})(?:[/?#]|$)'),
    "zara": _ids(r'-p(\d{6,})\.html', upper=False),
    "pccomponentes": _ids(r'pccomponentes\.[a-z]+/([a-z0-9][a-z0-9-]{3,})/?(?:[?#]|$)', upper=False),
    "decathlon": _ids(r'/_/R-p-([A-Z0-9-]+)'),
    "carrefour": _ids(r'/(R-[A-Z0-9-]+)/p(?:[/?#]|$)'),
    "miravia": _ids(r'/p/[^?#]*?i(\d{6,})\.html', r'[?&]itemId=(\d{6,})', upper=False),
    "aliexpress": _ids(
        r'/item/(?:[^/?#]*?)(\d{8,20})\.html',
        r'/(\d{8,20})\.html',
        r'[?&]productId=(\d{8,20})',
        upper=False,
    ),
    "ebay": _ids(r'/itm/(?:[^/?#]+/)?(\d{9,15})(?:[/?#]|$)', upper=False),
    "walmart": _ids(r'/ip/(?:[^/?#]+/)?(\d{5,})(?:[/?#]|$)', upper=False),
}

# Country storefronts that share product ids
REGIONAL_MIRRORS = {
    "amazon": (
        ("amazon.es", "amazon.com", "amazon.co.uk", "amazon.de", "amazon.fr", "amazon.it"),
        "https://www.{domain}/dp/{product_id}",
    ),
}


# =============================================================================
# Shared selector lists (generic DOM heuristics + headless evaluation)
# =============================================================================

TITLE_SELECTORS = [
    'h1[itemprop="name"]',
    '[data-testid="product-title"]',
    'h1.product-title',
    'h1.product-name',
    'h1.product__title',
    '.product-title',
    '.product-name',
    '.product__title',
    '.pdp-title',
    '[itemprop="name"]',
    'h1',
]

IMAGE_SELECTORS = [
    ('[itemprop="image"]', ('content', 'src', 'href')),
    ('[data-zoom-image]', ('data-zoom-image',)),
    ('.product-image img', ('data-src', 'src')),
    ('.product__media img', ('data-src', 'src')),
    ('.product-gallery img', ('data-src', 'src')),
    ('.gallery img', ('data-src', 'src')),
    ('.pdp-image img', ('data-src', 'src')),
    ('img.product-img', ('data-src', 'src')),
    ('#main-image', ('data-src', 'src')),
    ('.main-image img', ('data-src', 'src')),
]

PRICE_SELECTORS = [
    '[itemprop="price"]',
    '.product-price',
    '.current-price',
    '.offer-price',
    '.product-meta-price',
    '.price-value',
    '[data-price]',
    '[data-product-price]',
    '.product__price',
    '.pdp-price',
    '.js-product-price',
    '.now-price',
    '.price',
]

OFFSCREEN_PRICE_SELECTORS = [
    '.a-offscreen',
    '.sr-only',
    '.visually-hidden',
    '.screen-reader-text',
    '[class*="offscreen"]',
]

# Price text with an explicit currency marker; group 1 is the amount
PRICE_PATTERNS = [
    re.compile(r'(\d{1,3}(?:[.\s]\d{3})*(?:,\d{2})?|\d+(?:[.,]\d{2})?)\s*(?:€|EUR)', re.I),
    re.compile(r'(?:€|EUR)\s*(\d{1,3}(?:[.,\s]\d{3})*(?:[.,]\d{2})?|\d+(?:[.,]\d{2})?)', re.I),
    re.compile(r'(?:US\$|\$|USD)\s*(\d{1,3}(?:,\d{3})*(?:\.\d{2})?|\d+(?:\.\d{2})?)', re.I),
    re.compile(r'(\d+(?:[.,]\d{2})?)\s*(?:\$|USD)', re.I),
    re.compile(r'(?:£|GBP)\s*(\d{1,3}(?:,\d{3})*(?:\.\d{2})?|\d+(?:\.\d{2})?)', re.I),
]

POPUP_SELECTORS = [
    '#onetrust-accept-btn-handler',
    '#sp-cc-accept',
    'button#didomi-notice-agree-button',
    '[data-testid="close-button"]',
    'button[aria-label="close"]',
    'button[aria-label="Close"]',
    'button[aria-label="Cerrar"]',
    '.cookie-banner .accept',
    '[class*="cookie"] [class*="accept"]',
    '.modal .close',
    '.popup .close',
    '.newsletter-popup .close',
]

# Shown in place of real titles by many storefronts
PLACEHOLDER_TITLES = {
    "producto",
    "producto amazon",
    "amazon.com",
    "amazon.es",
    "amazon",
    "product",
    "artículo",
    "articulo",
    "page not found",
    "página no encontrada",
    "pagina no encontrada",
    "error 404",
    "404",
    "access denied",
    "robot check",
    "just a moment...",
    "tienda online",
}
