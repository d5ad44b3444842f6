"""
URL normalization and classification.

Turns whatever the user pasted into a clean URL, a storefront tag and,
when the URL carries one, the site's product id.
"""
from typing import Optional
from urllib.parse import urlparse

from ..config import Config
from ..errors import ClassificationFailure
from ..extractors.patterns import (
    DOMAIN_PATTERNS,
    GENERIC_TAG,
    PRODUCT_ID_PATTERNS,
    SHORT_LINK_PATTERNS,
)
from ..logger import get_logger
from ..models import UrlClassification
from ..utils.validators import is_blocked_host, validate_url
from .fetcher import HttpFetcher

logger = get_logger(__name__)


def domain_tag_for(host: Optional[str]) -> str:
    """Registry tag for ``host``; ``"generic"`` when no storefront matches."""
    host = (host or "").lower()
    for tag, pattern in DOMAIN_PATTERNS:
        if pattern.search(host):
            return tag
    return GENERIC_TAG


def is_short_link(host: Optional[str]) -> bool:
    host = (host or "").lower()
    return any(pattern.search(host) for pattern in SHORT_LINK_PATTERNS)


def extract_product_id(url: str, domain_tag: str) -> Optional[str]:
    """
    Run the ordered id patterns for ``domain_tag``; first match wins.

    Examples:
        >>> extract_product_id("https://www.amazon.es/dp/b0cjktwtvt?th=1", "amazon")
        'B0CJKTWTVT'
        >>> extract_product_id("https://www.zara.com/es/es/camisa-p01234567.html", "zara")
        '01234567'
    """
    for pattern in PRODUCT_ID_PATTERNS.get(domain_tag, ()):
        product_id = pattern.match(url)
        if product_id:
            return product_id
    return None


class UrlClassifier:
    """
    Classify raw user input.

    Args:
        fetcher: Used only to expand short links
        short_link_timeout: Bound on the redirect-following request
    """

    def __init__(self, fetcher: HttpFetcher, short_link_timeout: Optional[float] = None):
        self.fetcher = fetcher
        self.short_link_timeout = (
            short_link_timeout if short_link_timeout is not None else Config.SHORT_LINK_TIMEOUT_S
        )

    def _parse(self, raw_url) -> str:
        if not isinstance(raw_url, str) or not raw_url.strip():
            raise ClassificationFailure("No URL was provided")

        normalized = validate_url(raw_url)
        if normalized is None:
            candidate = raw_url.strip()
            if "://" not in candidate:
                candidate = "https://" + candidate
            if is_blocked_host(candidate):
                raise ClassificationFailure("URL points at a private or local address")
            raise ClassificationFailure(f"Not a valid product URL: {raw_url.strip()[:200]}")
        return normalized

    def classify_static(self, raw_url) -> UrlClassification:
        """
        Classification without any network access.

        Short links are kept as-is; used when expansion is not possible in
        the time left.
        """
        try:
            url = self._parse(raw_url)
        except ClassificationFailure as e:
            logger.info("CLASSIFY rejected input: %s", e)
            return UrlClassification(
                normalized_url=raw_url.strip() if isinstance(raw_url, str) else "",
                ok=False,
                error=str(e),
            )
        return self._tagged(url)

    async def classify(self, raw_url) -> UrlClassification:
        """
        Normalize and classify ``raw_url``. Never raises.

        A URL that cannot be used comes back with ``ok=False`` and the
        reason in ``error``.
        """
        classification = self.classify_static(raw_url)
        if not classification.ok:
            return classification

        url = classification.normalized_url
        if is_short_link(urlparse(url).hostname):
            expanded = await self.fetcher.resolve_redirects(url, timeout=self.short_link_timeout)
            expanded = validate_url(expanded) or url
            if expanded != url:
                logger.info("CLASSIFY expanded short link %s -> %s", url, expanded)
                classification = self._tagged(expanded)
        return classification

    def _tagged(self, url: str) -> UrlClassification:
        domain_tag = domain_tag_for(urlparse(url).hostname)
        product_id = extract_product_id(url, domain_tag) if domain_tag != GENERIC_TAG else None

        logger.info("CLASSIFY %s tag=%s id=%s", url, domain_tag, product_id or "-")
        return UrlClassification(
            normalized_url=url,
            product_id=product_id,
            domain_tag=domain_tag,
        )
