"""
Product page extractors.

- base / sites: pattern-table extractors for known storefronts
- generic: JSON-LD, meta tag and DOM heuristics for any other shop
- headless: Playwright-rendered extraction for pages that need JavaScript
"""
