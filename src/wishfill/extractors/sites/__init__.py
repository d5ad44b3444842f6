"""Storefront-specific extractors, one module per site."""
from .aliexpress import AliExpressExtractor
from .amazon import AmazonExtractor
from .carrefour import CarrefourExtractor
from .decathlon import DecathlonExtractor
from .ebay import EbayExtractor
from .miravia import MiraviaExtractor
from .nike import NikeExtractor
from .pccomponentes import PcComponentesExtractor
from .walmart import WalmartExtractor
from .zara import ZaraExtractor

__all__ = [
    "AliExpressExtractor",
    "AmazonExtractor",
    "CarrefourExtractor",
    "DecathlonExtractor",
    "EbayExtractor",
    "MiraviaExtractor",
    "NikeExtractor",
    "PcComponentesExtractor",
    "WalmartExtractor",
    "ZaraExtractor",
]
