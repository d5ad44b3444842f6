"""eBay item pages."""
import re
from typing import Optional
from urllib.parse import urlparse

from ..base import SiteExtractor
from ..patterns import css, meta

_DETAILS_PREFIX = re.compile(r'^\s*(Details about|Detalles de)\s+', re.I)


class EbayExtractor(SiteExtractor):
    tag = "ebay"

    title_patterns = (
        css("h1.x-item-title__mainTitle"),
        css("#itemTitle"),
        meta("og:title"),
    )
    image_patterns = (
        css("#icImg", "src"),
        css(".ux-image-carousel-item img", "data-zoom-src", "src"),
        meta("og:image"),
    )
    price_patterns = (
        css(".x-price-primary"),
        css("#prcIsum"),
        css("#mm-saleDscPrc"),
    )
    description_patterns = (
        meta("og:description"),
    )

    def target_url(self, url: str, product_id: Optional[str] = None) -> str:
        if not product_id:
            return url
        host = urlparse(url).hostname or "www.ebay.es"
        return f"https://{host}/itm/{product_id}"

    def accept_title(self, raw: Optional[str], url: Optional[str] = None) -> Optional[str]:
        if not raw:
            return None
        return super().accept_title(_DETAILS_PREFIX.sub("", raw), url)
