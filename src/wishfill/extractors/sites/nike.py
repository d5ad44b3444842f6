"""
Nike product pages.

Prices live in the ``__NEXT_DATA__`` JSON as ``currentPrice``/``fullPrice``;
the storefront often blocks plain HTTP clients, so the slug title is kept
as a fallback.
"""
from typing import Optional

from ...models import ExtractorResult
from ...services.slug_titles import derive_title_from_url
from ..base import SiteExtractor
from ..patterns import css, meta, regex


class NikeExtractor(SiteExtractor):
    tag = "nike"

    title_patterns = (
        css("h1#pdp_product_title"),
        css('[data-testid="product_title"]'),
        css('[data-test="product-title"]'),
        meta("og:title"),
    )
    image_patterns = (
        regex(r'(https://static\.nike\.com/a/images/[^"\'\s]+?\.(?:png|jpe?g|webp))'),
        meta("og:image"),
    )
    price_patterns = (
        regex(r'"currentPrice"\s*:\s*"?(\d+(?:\.\d+)?)'),
        regex(r'"fullPrice"\s*:\s*"?(\d+(?:\.\d+)?)'),
        css('[data-testid="currentPrice-container"]'),
        css('[data-test="product-price"]'),
    )
    description_patterns = (
        css('[data-testid="product-description"]'),
        meta("og:description"),
    )

    placeholder_titles = frozenset({"nike", "nike.com", "nike es"})

    def fallback(self, url: str, product_id: Optional[str] = None) -> ExtractorResult:
        title = derive_title_from_url(url, self.tag)
        if not title:
            return ExtractorResult()
        return ExtractorResult(title=title, source="slug")
