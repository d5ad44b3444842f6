"""
Image URL normalization.

CDN image URLs usually carry resize or format modifiers. The rules below
strip them so the stored URL points at the original asset.
"""
import re
from typing import Callable, List, Optional, Tuple
from urllib.parse import urljoin, urlparse, urlunparse, parse_qsl, urlencode


# Query parameters that only control resizing / re-encoding
RESIZE_QUERY_PARAMS = {
    "w", "h", "width", "height", "sw", "sh", "sm", "sfrm", "q", "quality",
    "format", "fmt", "fit", "crop", "auto", "dpr", "imwidth", "imheight",
    "odnheight", "odnwidth", "odnbg", "ts", "f", "resize", "size", "im",
}

_AMAZON_MODIFIER = re.compile(r'\._[^/]*?_(?=\.[a-z]{3,4}$)', re.I)
_ALICDN_MODIFIER = re.compile(r'(\.(?:jpe?g|png|webp))_[^/]*$', re.I)
_EBAY_SIZE = re.compile(r'/s-l\d+\.', re.I)
_NIKE_TRANSFORM = re.compile(r'^(t_[^/]+|[a-z]_[^/]*(,[a-z]+_[^/]*)*)$', re.I)


def _strip_query(parts, drop_all: bool = False):
    if not parts.query:
        return parts
    if drop_all:
        return parts._replace(query="")
    kept = [
        (k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True)
        if k.lower() not in RESIZE_QUERY_PARAMS
    ]
    return parts._replace(query=urlencode(kept, doseq=True))


def _amazon(parts):
    return _strip_query(parts._replace(path=_AMAZON_MODIFIER.sub('', parts.path)), drop_all=True)


def _alicdn(parts):
    return _strip_query(parts._replace(path=_ALICDN_MODIFIER.sub(r'\1', parts.path)), drop_all=True)


def _ebay(parts):
    return _strip_query(parts._replace(path=_EBAY_SIZE.sub('/s-l1600.', parts.path)), drop_all=True)


def _nike(parts):
    # /a/images/t_PDP_1728_v1/f_auto,q_auto:eco/<id>/<name>.png
    segments = parts.path.split("/")
    if len(segments) > 3 and segments[1] == "a" and segments[2] == "images":
        kept = segments[:3] + [s for s in segments[3:-2] if not _NIKE_TRANSFORM.match(s)] + segments[-2:]
        return parts._replace(path="/".join(kept), query="")
    return parts._replace(query="")


def _drop_query(parts):
    return _strip_query(parts, drop_all=True)


# (host pattern, rewrite) pairs; first match wins
CDN_RULES: List[Tuple[re.Pattern, Callable]] = [
    (re.compile(r'(^|\.)(media-amazon\.com|ssl-images-amazon\.com|images-amazon\.com)$'), _amazon),
    (re.compile(r'(^|\.)(alicdn\.com|aliexpress-media\.com|slatic\.net)$'), _alicdn),
    (re.compile(r'(^|\.)ebayimg\.com$'), _ebay),
    (re.compile(r'(^|\.)static\.nike\.com$'), _nike),
    (re.compile(r'(^|\.)(mediadecathlon\.com|walmartimages\.com|pccomponentes\.com|static\.zara\.net|carrefour\.es)$'), _drop_query),
]


PLACEHOLDER_IMAGE_MARKERS = (
    "placeholder", "no-image", "noimage", "no_image", "spinner", "loading.gif",
    "blank.gif", "transparent.gif", "pixel.gif", "1x1", "spacer", "sprite",
    "/logo", "logo.", "favicon", "grey-pixel",
)


def looks_like_placeholder_image(url: Optional[str]) -> bool:
    """
    Check for spinners, tracking pixels, logos and similar non-product images.

    Examples:
        >>> looks_like_placeholder_image("https://shop.es/img/no-image.png")
        True
        >>> looks_like_placeholder_image("https://m.media-amazon.com/images/I/61FqKNVCixL.jpg")
        False
    """
    if not url:
        return True
    lowered = url.lower()
    if lowered.startswith("data:") or lowered.endswith(".svg"):
        return True
    return any(marker in lowered for marker in PLACEHOLDER_IMAGE_MARKERS)


def is_absolute_http_url(url: Optional[str]) -> bool:
    if not url:
        return False
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def normalize_image_url(image_url: Optional[str], page_url: Optional[str] = None) -> str:
    """
    Resolve an image URL against its page and strip CDN resize modifiers.

    Args:
        image_url: Raw image URL (may be relative or protocol-relative)
        page_url: URL of the page the image was found on

    Returns:
        Absolute original-asset URL, or "" if the input is unusable

    Examples:
        >>> normalize_image_url("https://m.media-amazon.com/images/I/61FqKNVCixL._AC_SL1500_.jpg")
        'https://m.media-amazon.com/images/I/61FqKNVCixL.jpg'
        >>> normalize_image_url("//ae01.alicdn.com/kf/Sabc.jpg_640x640q75.jpg_.webp")
        'https://ae01.alicdn.com/kf/Sabc.jpg'
    """
    if not image_url:
        return ""

    url = image_url.strip().replace("\\/", "/")
    if not url or url.startswith("data:"):
        return ""

    if url.startswith("//"):
        url = "https:" + url
    elif page_url and not is_absolute_http_url(url):
        url = urljoin(page_url, url)

    if not is_absolute_http_url(url):
        return ""

    parts = urlparse(url)
    host = (parts.hostname or "").lower()
    for host_pattern, rewrite in CDN_RULES:
        if host_pattern.search(host):
            parts = rewrite(parts)
            break
    else:
        parts = _strip_query(parts)

    return urlunparse(parts)
