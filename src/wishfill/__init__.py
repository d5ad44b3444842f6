"""
Wishfill - product metadata extraction for wishlists.

Turns a pasted store URL into a title, image, price and description,
trying static patterns first, then a headless browser, then a vision model.
"""

__version__ = "1.0.0"
__author__ = "Wishfill"

from .models import ExtractorResult, ProductMetadata

__all__ = [
    "ExtractorResult",
    "ProductMetadata",
]
