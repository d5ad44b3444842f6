"""
Structured metadata readers: JSON-LD, Open Graph / Twitter meta tags.

Shared by the site extractors, the generic extractor and the headless
extractor (which runs these over the rendered HTML).
"""
from __future__ import annotations

import json
import re
from typing import Iterator, List, Optional

from bs4 import BeautifulSoup
from pydantic import ValidationError

from ..errors import ParseError
from ..logger import get_logger
from ..models import ExtractorResult
from ..schemas.jsonld import PAGE_TYPES, JsonLdProduct
from ..services.price_normalizer import normalize_price
from ..utils.images import normalize_image_url
from ..utils.text_cleaning import clean_text, truncate_text

logger = get_logger(__name__)

DESCRIPTION_MAX_CHARS = 500

_TRAILING_COMMA = re.compile(r',\s*([}\]])')


def parse_jsonld_blocks(soup: BeautifulSoup) -> List[object]:
    """
    Decode every ``application/ld+json`` script on the page.

    Malformed blocks are skipped individually; a single bad block never
    hides the others.
    """
    blocks = []
    for script in soup.find_all('script', attrs={'type': re.compile(r'ld\+json', re.I)}):
        raw = (script.string or script.get_text() or '').strip()
        if not raw:
            continue
        try:
            blocks.append(_decode_jsonld(raw))
        except ParseError as e:
            logger.debug("JSON-LD block skipped: %s", e)
    return blocks


def _decode_jsonld(raw: str) -> object:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass
    # Common breakage: trailing commas and raw newlines inside strings
    repaired = _TRAILING_COMMA.sub(r'\1', raw.replace('\n', ' ').replace('\r', ' '))
    try:
        return json.loads(repaired)
    except json.JSONDecodeError as e:
        raise ParseError(f"invalid JSON-LD: {e}") from e


def iterate_jsonld(data) -> Iterator[dict]:
    """Recursively iterate through JSON-LD data structures (incl. @graph)."""
    if isinstance(data, dict):
        yield data
        graph = data.get('@graph')
        if isinstance(graph, list):
            for item in graph:
                yield from iterate_jsonld(item)
        main_entity = data.get('mainEntity')
        if isinstance(main_entity, (dict, list)):
            yield from iterate_jsonld(main_entity)
    elif isinstance(data, list):
        for item in data:
            yield from iterate_jsonld(item)


def _node_types(node: dict) -> List[str]:
    raw = node.get('@type', [])
    types = raw if isinstance(raw, list) else [raw]
    return [str(t).lower().rsplit('/', 1)[-1] for t in types if t]


def find_jsonld_product(soup: BeautifulSoup) -> Optional[JsonLdProduct]:
    """
    Return the first Product node on the page, else the first ItemPage
    that carries offers itself.
    """
    page_fallback = None
    for block in parse_jsonld_blocks(soup):
        for node in iterate_jsonld(block):
            types = _node_types(node)
            if not types:
                continue
            try:
                product = JsonLdProduct.model_validate(node)
            except ValidationError as e:
                logger.debug("JSON-LD node rejected: %s", e.errors()[:1])
                continue
            if product.is_product:
                return product
            if page_fallback is None and any(t in PAGE_TYPES for t in types) and product.offers:
                page_fallback = product
    return page_fallback


def extract_jsonld(soup: BeautifulSoup, page_url: Optional[str] = None) -> ExtractorResult:
    """Title, image, price and description from JSON-LD."""
    product = find_jsonld_product(soup)
    if product is None:
        return ExtractorResult()

    price, currency = product.first_price()
    image = ""
    for candidate in product.images:
        image = normalize_image_url(candidate, page_url)
        if image:
            break

    description = clean_text(product.description or "")
    return ExtractorResult(
        title=clean_text(product.name or "") or None,
        image_url=image or None,
        price=normalize_price(price, currency) if price else None,
        description=truncate_text(description, DESCRIPTION_MAX_CHARS) if description else None,
        source="jsonld",
    )


def _meta_content(soup: BeautifulSoup, *names: str) -> Optional[str]:
    for name in names:
        for key in ('property', 'name', 'itemprop'):
            tag = soup.find('meta', attrs={key: name})
            if tag and tag.get('content') and tag['content'].strip():
                return tag['content'].strip()
    return None


def extract_meta_tags(soup: BeautifulSoup, page_url: Optional[str] = None) -> ExtractorResult:
    """Title, image, price and description from Open Graph / Twitter tags."""
    title = _meta_content(soup, 'og:title', 'twitter:title')
    image = _meta_content(
        soup, 'og:image:secure_url', 'og:image', 'og:image:url', 'twitter:image', 'twitter:image:src',
    )
    price = _meta_content(soup, 'product:price:amount', 'og:price:amount')
    currency = _meta_content(soup, 'product:price:currency', 'og:price:currency')
    description = _meta_content(soup, 'og:description', 'twitter:description', 'description')

    description = clean_text(description or "")
    return ExtractorResult(
        title=clean_text(title or "") or None,
        image_url=normalize_image_url(image, page_url) or None,
        price=normalize_price(price, currency) if price else None,
        description=truncate_text(description, DESCRIPTION_MAX_CHARS) if description else None,
        source="meta",
    )


def page_title(soup: BeautifulSoup) -> Optional[str]:
    tag = soup.find('title')
    if tag:
        text = clean_text(tag.get_text())
        return text or None
    return None
