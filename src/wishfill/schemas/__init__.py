"""
Pydantic schemas for structured data parsed from pages and models.
"""

from .jsonld import JsonLdOffer, JsonLdPriceSpecification, JsonLdProduct
from .model_outputs import ValidationResponse, VisionResponse

__all__ = [
    'JsonLdOffer',
    'JsonLdPriceSpecification',
    'JsonLdProduct',
    'ValidationResponse',
    'VisionResponse',
]
