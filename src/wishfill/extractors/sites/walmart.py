"""Walmart product pages. Prices are in USD."""
from ..base import SiteExtractor
from ..patterns import css, meta, regex


class WalmartExtractor(SiteExtractor):
    tag = "walmart"
    default_currency = "USD"

    title_patterns = (
        css('h1[itemprop="name"]'),
        css("#main-title"),
        meta("og:title"),
    )
    image_patterns = (
        regex(r'(https://i5\.walmartimages\.com/(?:asr|seo)/[^"\'\s?]+?\.(?:jpe?g|png|webp))'),
        meta("og:image"),
    )
    price_patterns = (
        regex(r'"priceString"\s*:\s*"([^"]+)"'),
        css('[itemprop="price"]'),
    )
    description_patterns = (
        meta("og:description"),
        meta("description"),
    )
