"""
AliExpress product pages.

The product data sits in ``window.runParams``; titles come decorated with
shipping and discount noise.
"""
import re
from typing import Optional

from ..base import SiteExtractor
from ..patterns import css, meta, regex

TITLE_NOISE = [
    re.compile(r'\s*[-|]\s*AliExpress(\s+\w+)?\s*$', re.I),
    re.compile(r'\b(free\s+shipping|env[íi]o\s+gratis)\b', re.I),
    re.compile(r'\b\d{1,2}\s*%\s*(off|dto\.?|descuento)\b', re.I),
    re.compile(r'\b(hot\s+sale|new\s+arrival|2\d{3}\s+new)\b', re.I),
]


class AliExpressExtractor(SiteExtractor):
    tag = "aliexpress"

    title_patterns = (
        css(".product-title-text"),
        css('h1[data-pl="product-title"]'),
        regex(r'"subject"\s*:\s*"([^"]+)"'),
        css(".product-title"),
        meta("og:title"),
    )
    image_patterns = (
        regex(r'"imagePathList"\s*:\s*\[\s*"([^"]+)"'),
        regex(r'"imageUrl"\s*:\s*"([^"]+)"'),
        css(".magnifier-image", "src"),
        css("img.magnifier", "src", "data-src"),
        meta("og:image"),
        regex(r'(https://ae01\.alicdn\.com/kf/[^"\']+?\.(?:jpg|png))'),
    )
    price_patterns = (
        regex(r'"formatedActivityPrice"\s*:\s*"([^"]+)"'),
        regex(r'"formatedPrice"\s*:\s*"([^"]+)"'),
        css(".product-price-value"),
        css('[class*="price--current"]'),
    )
    description_patterns = (
        meta("og:description"),
    )

    def accept_title(self, raw: Optional[str], url: Optional[str] = None) -> Optional[str]:
        if not raw:
            return None
        for pattern in TITLE_NOISE:
            raw = pattern.sub(" ", raw)
        title = super().accept_title(raw, url)
        if title and "aliexpress" in title.lower() and len(title) < 15:
            return None
        return title
