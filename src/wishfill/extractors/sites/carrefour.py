"""Carrefour product pages."""
from ..base import SiteExtractor
from ..patterns import css, meta, regex


class CarrefourExtractor(SiteExtractor):
    tag = "carrefour"

    title_patterns = (
        css(".product-header__name"),
        css("h1.pdp-title"),
        meta("og:title"),
    )
    image_patterns = (
        css(".main-image img", "data-src", "src"),
        regex(r'(https://static\.carrefour\.es/[^"\'\s]+?\.(?:jpe?g|png|webp))'),
        meta("og:image"),
    )
    price_patterns = (
        css(".buybox__price"),
        css(".product-header__price"),
        css(".buybox__price--current"),
    )
    description_patterns = (
        css(".product-details__description"),
        meta("og:description"),
    )

    placeholder_titles = frozenset({"carrefour", "carrefour.es", "supermercado online"})
