"""
Deterministic titles derived from product URL slugs.

Most storefronts put a readable product name in the path. When a page
cannot be read, that slug is a better title than anything a model guesses
from a screenshot.
"""
import re
from typing import Callable, Dict, List, Optional
from urllib.parse import unquote, urlparse

from ..logger import get_logger
from ..utils.text_cleaning import slug_to_title, title_looks_like_url
from .url_classifier import domain_tag_for

logger = get_logger(__name__)

MIN_WORDS = 2

_PAGE_EXTENSION = re.compile(r'\.(html?|php|aspx?)$', re.I)
_TRAILING_ID = re.compile(r'[-_]p?\d{5,}$', re.I)
_ID_ONLY = re.compile(r'^[A-Z0-9-]{6,}$')


def _segments(url: str) -> List[str]:
    path = unquote(urlparse(url).path or "")
    return [s for s in path.split("/") if s]


def _strip_slug(slug: str) -> str:
    slug = _PAGE_EXTENSION.sub("", slug)
    return _TRAILING_ID.sub("", slug)


def _nike(segments: List[str]) -> Optional[str]:
    # /t/<slug>/<style-code>
    if "t" in segments:
        index = segments.index("t")
        if index + 1 < len(segments):
            title = slug_to_title(segments[index + 1])
            if title and not title.lower().startswith("nike"):
                title = "Nike " + title
            return title
    return None


def _zara(segments: List[str]) -> Optional[str]:
    # /es/es/<slug>-p01234567.html
    for segment in reversed(segments):
        if re.search(r'-p\d{6,}\.html$', segment, re.I):
            return slug_to_title(re.sub(r'-p\d{6,}\.html$', '', segment, flags=re.I))
    return None


def _pccomponentes(segments: List[str]) -> Optional[str]:
    return slug_to_title(segments[0]) if len(segments) == 1 else None


def _decathlon(segments: List[str]) -> Optional[str]:
    # /es/p/<slug>/_/R-p-12345
    if "p" in segments:
        index = segments.index("p")
        if index + 1 < len(segments) and segments[index + 1] != "_":
            return slug_to_title(_strip_slug(segments[index + 1]))
    return None


def _carrefour(segments: List[str]) -> Optional[str]:
    # /<slug>/R-123456789/p
    for index, segment in enumerate(segments):
        if segment.upper().startswith("R-") and index > 0:
            return slug_to_title(segments[index - 1])
    return None


def _amazon(segments: List[str]) -> Optional[str]:
    # /<slug>/dp/<ASIN>
    if "dp" in segments:
        index = segments.index("dp")
        if index > 0:
            return slug_to_title(segments[index - 1])
    return None


def _generic(segments: List[str]) -> Optional[str]:
    for segment in reversed(segments):
        if _ID_ONLY.match(segment) or segment.isdigit():
            continue
        slug = _strip_slug(segment)
        if "-" in slug or "_" in slug:
            return slug_to_title(slug)
    return None


SLUG_RULES: Dict[str, Callable[[List[str]], Optional[str]]] = {
    "nike": _nike,
    "zara": _zara,
    "pccomponentes": _pccomponentes,
    "decathlon": _decathlon,
    "carrefour": _carrefour,
    "amazon": _amazon,
}


def _plausible(title: Optional[str]) -> bool:
    if not title:
        return False
    words = [w for w in title.split() if not w.isdigit()]
    return len(words) >= MIN_WORDS and not title_looks_like_url(title)


def derive_title_from_url(url: str, domain_tag: Optional[str] = None) -> Optional[str]:
    """
    Build a title from the URL path.

    Args:
        url: Product URL
        domain_tag: Store tag; detected from the host when omitted

    Returns:
        Title-cased phrase of at least two words, or None

    Examples:
        >>> derive_title_from_url("https://www.nike.com/es/t/air-max-90-zapatillas/DH8010-100")
        'Nike Air Max 90 Zapatillas'
        >>> derive_title_from_url("https://tienda.es/productos/12345") is None
        True
    """
    if not url:
        return None

    try:
        segments = _segments(url)
    except ValueError:
        return None
    if not segments:
        return None

    tag = domain_tag or domain_tag_for(urlparse(url).hostname)
    rule = SLUG_RULES.get(tag or "")
    title = rule(segments) if rule else None
    if not _plausible(title):
        title = _generic(segments)

    if _plausible(title):
        logger.debug("SLUG title for %s: %s", url, title)
        return title
    return None
