"""
Amazon product pages.

Amazon serves the real price in ``.a-offscreen`` spans next to the
rendered whole/fraction parts, and hides the hi-res gallery in an inline
``colorImages`` JSON blob.
"""
from typing import Optional
from urllib.parse import urlparse

from ...models import ExtractorResult
from ..base import SiteExtractor
from ..patterns import OFFSCREEN_PRICE_SELECTORS, css, meta, regex

LEGACY_IMAGE_URL = "https://images-na.ssl-images-amazon.com/images/P/{asin}.01.L.jpg"


class AmazonExtractor(SiteExtractor):
    tag = "amazon"

    title_patterns = (
        css("#productTitle"),
        css("h1#title"),
        regex(r'"productTitle"\s*:\s*"([^"]+)"'),
        meta("og:title"),
        css("title"),
    )
    image_patterns = (
        regex(r'"hiRes"\s*:\s*"(https://[^"]+)"'),
        regex(r'\\?"large\\?"\s*:\s*\\?"(https://[^"\\]+)'),
        css("#landingImage", "data-old-hires", "src"),
        css("img[data-old-hires]", "data-old-hires"),
        regex(r'data-a-dynamic-image=["\']\{(?:&quot;|")(https://[^"&]+)'),
        css("#imgBlkFront", "src"),
        regex(r'"(https://m\.media-amazon\.com/images/I/[^"]+?\.jpg)"'),
        meta("og:image"),
    )
    price_patterns = (
        regex(
            r'class="a-price-whole">\s*([\d.,]+?)[.,]?\s*'
            r'(?:<span class="a-price-decimal">[.,]</span>)?\s*</span>\s*'
            r'<span class="a-price-fraction">(\d{2})</span>'
        ),
        css("#priceblock_ourprice"),
        css("#priceblock_dealprice"),
        css("#price_inside_buybox"),
    )
    description_patterns = (
        css("#feature-bullets ul"),
        css("#productDescription"),
        meta("description"),
    )

    price_selectors = (
        "#corePrice_feature_div .a-price",
        "#corePriceDisplay_desktop_feature_div .a-price",
        "#apex_desktop .a-price",
        "#priceblock_ourprice",
        "#priceblock_dealprice",
    )
    offscreen_price_selectors = (
        "#corePrice_feature_div .a-offscreen",
        "#corePriceDisplay_desktop_feature_div .a-offscreen",
        "#apex_desktop .a-offscreen",
        *OFFSCREEN_PRICE_SELECTORS,
    )

    placeholder_titles = frozenset({"amazon.es", "amazon.com", "amazon.co.uk", "amazon.de"})

    def target_url(self, url: str, product_id: Optional[str] = None) -> str:
        if not product_id:
            return url
        host = urlparse(url).hostname or "www.amazon.es"
        return f"https://{host}/dp/{product_id}"

    def fallback(self, url: str, product_id: Optional[str] = None) -> ExtractorResult:
        if not product_id:
            return ExtractorResult()
        return ExtractorResult(
            image_url=LEGACY_IMAGE_URL.format(asin=product_id),
            source="amazon_fallback",
        )
