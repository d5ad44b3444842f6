"""Decathlon product pages."""
from ..base import SiteExtractor
from ..patterns import css, meta, regex


class DecathlonExtractor(SiteExtractor):
    tag = "decathlon"

    title_patterns = (
        css("h1.product-name"),
        css('h1[data-testid="product-title"]'),
        css(".product-title"),
        meta("og:title"),
    )
    image_patterns = (
        meta("og:image"),
        regex(r'(https://contents\.mediadecathlon\.com/[^"\'\s]+?\.(?:jpe?g|png|webp|avif))'),
    )
    price_patterns = (
        css(".prc__active-price"),
        css(".price-base__current-price"),
        css('[data-testid="price"]'),
    )
    description_patterns = (
        css(".product-description"),
        meta("og:description"),
    )

    placeholder_titles = frozenset({"decathlon", "decathlon españa"})
