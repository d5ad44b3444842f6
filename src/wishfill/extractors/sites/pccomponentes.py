"""PCComponentes product pages."""
from ..base import SiteExtractor
from ..patterns import css, meta, regex


class PcComponentesExtractor(SiteExtractor):
    tag = "pccomponentes"

    title_patterns = (
        css("#pdp-title"),
        css("h1.h4"),
        meta("og:title"),
    )
    image_patterns = (
        css('#pdp-section-images img[src*="img.pccomponentes.com"]', "src"),
        regex(r'(https://img\.pccomponentes\.com/articles/[^"\'\s]+?\.(?:jpe?g|png|webp))'),
        meta("og:image"),
    )
    price_patterns = (
        css("#pdp-price-current-integer"),
        css("#precio-main", "data-price"),
        regex(r'"price"\s*:\s*"?(\d+(?:\.\d{1,2})?)"?\s*,\s*"priceCurrency"\s*:\s*"EUR"'),
    )
    description_patterns = (
        meta("og:description"),
        meta("description"),
    )

    placeholder_titles = frozenset({"pccomponentes", "pc componentes"})
