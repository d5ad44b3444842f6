"""Zara product pages (Open Graph and JSON-LD carry most fields)."""
from ..base import SiteExtractor
from ..patterns import css, meta


class ZaraExtractor(SiteExtractor):
    tag = "zara"

    title_patterns = (
        css("h1.product-detail-info__header-name"),
        css(".product-detail-info__name"),
        meta("og:title"),
        css("title"),
    )
    image_patterns = (
        meta("og:image"),
        css("picture.media-image img", "src", "data-src"),
        css(".media-image__image", "src"),
    )
    price_patterns = (
        css(".money-amount__main"),
        css(".price-current__amount"),
    )
    description_patterns = (
        css(".expandable-text__inner-content"),
        meta("og:description"),
    )

    placeholder_titles = frozenset({"zara", "zara españa", "zara spain"})
