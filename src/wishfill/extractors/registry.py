"""
Domain tag -> site extractor lookup.

Built once at startup; every extractor shares the application's fetcher.
"""
from typing import Dict, Optional, Tuple, Type

from ..logger import get_logger
from ..services.fetcher import HttpFetcher
from .base import SiteExtractor
from .sites import (
    AliExpressExtractor,
    AmazonExtractor,
    CarrefourExtractor,
    DecathlonExtractor,
    EbayExtractor,
    MiraviaExtractor,
    NikeExtractor,
    PcComponentesExtractor,
    WalmartExtractor,
    ZaraExtractor,
)

logger = get_logger(__name__)

SITE_EXTRACTORS: Tuple[Type[SiteExtractor], ...] = (
    AmazonExtractor,
    NikeExtractor,
    ZaraExtractor,
    PcComponentesExtractor,
    DecathlonExtractor,
    CarrefourExtractor,
    MiraviaExtractor,
    AliExpressExtractor,
    EbayExtractor,
    WalmartExtractor,
)


class SiteRegistry:
    """Holds one extractor instance per supported storefront."""

    def __init__(self, fetcher: HttpFetcher, extractors=SITE_EXTRACTORS, **extractor_options):
        self._extractors: Dict[str, SiteExtractor] = {}
        for extractor_class in extractors:
            self._extractors[extractor_class.tag] = extractor_class(fetcher, **extractor_options)
        logger.debug("Site registry ready: %s", ", ".join(self._extractors))

    def get(self, tag: Optional[str]) -> Optional[SiteExtractor]:
        if not tag:
            return None
        return self._extractors.get(tag)

    def __contains__(self, tag: str) -> bool:
        return tag in self._extractors

    @property
    def tags(self) -> Tuple[str, ...]:
        return tuple(self._extractors)
