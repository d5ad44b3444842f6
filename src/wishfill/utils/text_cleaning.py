"""
Text cleaning and normalization utilities.
"""
import re
from html import unescape
from typing import Optional
from urllib.parse import urlparse


def normalize_whitespace(text: str) -> str:
    """
    Normalize whitespace in text.

    Args:
        text: Text to normalize

    Returns:
        Text with normalized whitespace

    Examples:
        >>> normalize_whitespace("hello    world\\n\\ntest")
        'hello world test'
    """
    if not text:
        return ""

    return re.sub(r'\s+', ' ', text).strip()


def strip_html_tags(text: str) -> str:
    """
    Remove HTML tags from text.

    Examples:
        >>> strip_html_tags("<p>Hello <strong>world</strong></p>")
        'Hello world'
    """
    if not text:
        return ""

    text = re.sub(r'<[^>]+>', '', text)
    return unescape(text)


def clean_text(
    text: str,
    strip_html: bool = True,
    normalize_ws: bool = True,
    remove_urls: bool = False,
) -> str:
    """
    Clean and normalize text.

    Args:
        text: Text to clean
        strip_html: Remove HTML tags
        normalize_ws: Normalize whitespace
        remove_urls: Remove URLs from text

    Returns:
        Cleaned text

    Examples:
        >>> clean_text("<p>Hello  world</p>")
        'Hello world'
    """
    if not text:
        return ""

    if strip_html:
        text = strip_html_tags(text)
    else:
        text = unescape(text)

    if remove_urls:
        text = re.sub(r'https?://\S+', '', text)
        text = re.sub(r'www\.\S+', '', text)

    if normalize_ws:
        text = normalize_whitespace(text)

    return text


def truncate_text(text: str, max_length: int, suffix: str = "...") -> str:
    """
    Truncate text to maximum length.

    Examples:
        >>> truncate_text("Hello world", 8)
        'Hello...'
    """
    if not text or len(text) <= max_length:
        return text

    return text[:max_length - len(suffix)] + suffix


def decode_js_string(text: str) -> str:
    """
    Decode escapes left in strings scraped from inline JavaScript/JSON.

    Examples:
        >>> decode_js_string('Zapatillas \\\\u0026 m\\\\u00e1s')
        'Zapatillas & más'
    """
    if not text:
        return ""

    text = re.sub(r'\\u([0-9a-fA-F]{4})', lambda m: chr(int(m.group(1), 16)), text)
    text = text.replace('\\/', '/').replace('\\"', '"')
    return unescape(text)


# =============================================================================
# Store title cleaning
# =============================================================================

# Titles that are only a domain or a generic store phrase
URL_LIKE_TITLE_PATTERNS = [
    re.compile(r'^https?://', re.I),
    re.compile(r'^www\.', re.I),
    re.compile(r'^\s*\w+\.\w{2,}\s*$', re.I),
    re.compile(r'^es\.\w+\.com$', re.I),
    re.compile(r'^m\.\w+\.(com|es|net)$', re.I),
    re.compile(r'\.(com|es|net|org|shop)$', re.I),
    re.compile(r'\.(store|online|web)$', re.I),
    re.compile(r'^tienda\s+online$', re.I),
    re.compile(r'^shop\s+online$', re.I),
    re.compile(r'^official\s+store$', re.I),
    re.compile(r'^tienda\s+oficial$', re.I),
]

_TLD = r'(com|es|net|org|shop|co\.uk|de|fr|it|mx)'

# Applied in order; each removes one kind of store decoration
STORE_DECORATION_PATTERNS = [
    re.compile(r'^Amazon\.[a-z.]+\s*:\s*', re.I),
    re.compile(r'\s*:\s*Amazon\.[a-z.]+(\s*:.*)?$', re.I),
    re.compile(r'^(Comprar en|Buy from|Shop at|Kaufen bei)\s+', re.I),
    re.compile(r'^comprar\s+online\s*[-:]\s*', re.I),
    re.compile(r'^(tienda|shop)\s+online\s*[-:]\s*', re.I),
    re.compile(r'^online\s+shop\s*[-:]\s*', re.I),
    re.compile(r'^[a-zA-Z0-9.]+\.' + _TLD + r'\s*[-–—|:]\s*', re.I),
    re.compile(r'\s*[-–—|:]\s*[a-zA-Z0-9.]+\.' + _TLD + r'\s*$', re.I),
    re.compile(r'\s+en\s+[a-zA-Z0-9.]+\.' + _TLD + r'\s*$', re.I),
    re.compile(r'\s*\(\s*[a-zA-Z0-9.]+\.' + _TLD + r'\s*\)\s*$', re.I),
    re.compile(r'\s*[-–—|]\s*\w+\s+(Web|Store|Shop|Tienda)\s*$', re.I),
    re.compile(r'\s*[-–—|]?\s*(Comprar Online|Buy Now|Buy Online|al mejor precio|Best Price)\s*$', re.I),
]

# Brand suffixes, keyed by a host fragment. "*" applies to every host.
STORE_SUFFIXES = {
    "zara.": [r'ZARA(\s+\w+)?'],
    "bershka.": [r'Bershka(\s+\w+)?'],
    "pullandbear.": [r'Pull\s*&\s*Bear(\s+\w+)?'],
    "massimodutti.": [r'Massimo\s*Dutti(\s+\w+)?'],
    "stradivarius.": [r'Stradivarius(\s+\w+)?'],
    "oysho.": [r'Oysho(\s+\w+)?'],
    "elcorteingles.": [r'El\s*Corte\s*Ingl[ée]s', r'ECI'],
    "miravia.": [r'(es\.)?Miravia(\.es|\.com)?'],
    "decathlon.": [r'Decathlon(\.[a-z.]+)?'],
    "mediamarkt.": [r'Media\s*Markt'],
    "pccomponentes.": [r'PC\s*Componentes'],
    "aliexpress.": [r'AliExpress(\s+\w+)?'],
    "*": [
        r'Nike(\.com)?(\s+E[SU])?', r'Carrefour(\.es)?', r'IKEA', r'Leroy\s*Merlin',
        r'Mercadona', r'Adidas', r'Amazon', r'Walmart(\.com)?', r'eBay',
    ],
}


def title_looks_like_url(title: str) -> bool:
    """
    Check whether a title is really a URL, a domain or a store slogan.

    Examples:
        >>> title_looks_like_url("amazon.com")
        True
        >>> title_looks_like_url("Reloj Tommy Hilfiger")
        False
    """
    if not title:
        return False
    stripped = title.strip()
    return any(pattern.search(stripped) for pattern in URL_LIKE_TITLE_PATTERNS)


def _host_of(url: Optional[str]) -> str:
    if not url:
        return ""
    try:
        return (urlparse(url).hostname or "").lower().removeprefix("www.")
    except ValueError:
        return ""


def clean_store_title(title: str, url: Optional[str] = None) -> str:
    """
    Remove store names, domains and shopping slogans around a product title.

    Returns an empty string when nothing product-like is left.

    Examples:
        >>> clean_store_title("Camiseta básica - ZARA España", "https://www.zara.com/es/x-p1.html")
        'Camiseta básica'
        >>> clean_store_title("Amazon.es: Echo Dot (5.ª generación)")
        'Echo Dot (5.ª generación)'
        >>> clean_store_title("amazon.com")
        ''
    """
    if not title:
        return ""

    cleaned = normalize_whitespace(unescape(title))
    if len(cleaned) < 10 and title_looks_like_url(cleaned):
        return ""

    host = _host_of(url)
    if host:
        cleaned = re.sub(r'\s*[-|:]?\s*' + re.escape(host) + r'\s*$', '', cleaned, flags=re.I)

    for pattern in STORE_DECORATION_PATTERNS:
        cleaned = pattern.sub('', cleaned)

    for fragment, suffixes in STORE_SUFFIXES.items():
        if fragment != "*" and fragment not in host:
            continue
        for suffix in suffixes:
            cleaned = re.sub(r'\s*[-–—|:]\s*' + suffix + r'\s*$', '', cleaned, flags=re.I)

    cleaned = re.sub(r'https?://\S+|www\.\S+', '', cleaned)
    cleaned = normalize_whitespace(cleaned)
    cleaned = re.sub(r'^[-–—:,|.\s]+', '', cleaned)
    cleaned = re.sub(r'[-–—:,|\s]+$', '', cleaned).strip()

    if not cleaned or title_looks_like_url(cleaned):
        return ""
    return cleaned


def slug_to_title(slug: str) -> str:
    """
    Turn a URL slug into a title-cased phrase.

    Examples:
        >>> slug_to_title("air-max-90-zapatillas")
        'Air Max 90 Zapatillas'
        >>> slug_to_title("mochila-senderismo.html")
        'Mochila Senderismo'
    """
    if not slug:
        return ""

    slug = re.sub(r'\.(html?|php|aspx?)$', '', slug, flags=re.I)
    words = [w for w in re.split(r'[-_+\s]+', slug) if w]
    return " ".join(w[:1].upper() + w[1:] for w in words)
