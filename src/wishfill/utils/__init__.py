"""
Utility modules for Wishfill.
"""
from .validators import is_valid_url, validate_url
from .text_cleaning import clean_text, normalize_whitespace, strip_html_tags

__all__ = [
    "is_valid_url",
    "validate_url",
    "clean_text",
    "normalize_whitespace",
    "strip_html_tags",
]
