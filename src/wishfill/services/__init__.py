"""
Extraction services.

Provides the components the orchestrator composes:
- URL classification and the known-product cache
- HTTP fetching with retries, price normalization
- Vision fallback, validation and the phase orchestrator
"""
