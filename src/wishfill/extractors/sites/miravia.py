"""Miravia product pages."""
from typing import Optional

from ..base import SiteExtractor
from ..patterns import css, meta, regex


class MiraviaExtractor(SiteExtractor):
    tag = "miravia"

    title_patterns = (
        css("h1.product-name"),
        css("h1.product-title"),
        css(".ProductName"),
        css(".product-detail-name"),
        meta("og:title"),
        meta("twitter:title"),
        css("title"),
    )
    image_patterns = (
        css(".product-image img", "src", "data-src"),
        css(".product-gallery__image", "src", "data-src"),
        css("#productGallery img", "src", "data-src"),
        css(".product-image-main img", "src", "data-src"),
        meta("og:image"),
        meta("twitter:image"),
        css("img.main-product-image", "src", "data-src"),
    )
    price_patterns = (
        css(".pdp-price"),
        css(".product-price"),
        regex(r'"salePrice"\s*:\s*\{[^}]*"text"\s*:\s*"([^"]+)"'),
    )
    description_patterns = (
        meta("og:description"),
    )

    def accept_title(self, raw: Optional[str], url: Optional[str] = None) -> Optional[str]:
        title = super().accept_title(raw.split("|")[0] if raw else raw, url)
        # "Miravia", "es.miravia.es" and similar
        if title and "miravia" in title.lower() and len(title) < 15:
            return None
        return title
