"""
HTTP surface for Wishfill.
"""
from .app import create_app

__all__ = ["create_app"]
