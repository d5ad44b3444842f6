"""
Extraction pipeline.

Runs the phases in order, each under its own budget:

    START -> CLASSIFY -> LIGHTWEIGHT -> [HEADLESS] -> [VISION] -> MERGE -> VALIDATE -> DONE

A phase that times out or fails contributes an empty partial result; the
pipeline itself never raises. The worst-case latency is the sum of the
phase budgets. There is no global deadline.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

from ..config import Config
from ..extractors.generic import GenericExtractor
from ..extractors.headless import HeadlessExtractor
from ..extractors.registry import SiteRegistry
from ..logger import get_logger
from ..models import ExtractorResult, KnownProduct, ProductMetadata, UrlClassification
from .deadline import Deadline, run_with_timeout
from .known_products import lookup
from .url_classifier import UrlClassifier
from .validator import DataValidator, ValidationOutcome
from .vision import VisionFallback

logger = get_logger(__name__)

T = TypeVar("T")


class Phase(str, Enum):
    START = "start"
    CLASSIFY = "classify"
    LIGHTWEIGHT = "lightweight"
    HEADLESS = "headless"
    VISION = "vision"
    MERGE = "merge"
    VALIDATE = "validate"
    DONE = "done"


@dataclass(frozen=True, slots=True)
class PhaseBudgets:
    """Seconds allowed per phase."""

    classify: float = 3.0
    lightweight: float = 6.0
    headless: float = 40.0
    vision: float = 10.0
    validate: float = 6.0

    @classmethod
    def from_config(cls) -> PhaseBudgets:
        return cls(
            classify=Config.CLASSIFY_TIMEOUT_S,
            lightweight=Config.LIGHTWEIGHT_TIMEOUT_S,
            headless=Config.HEADLESS_TIMEOUT_S,
            vision=Config.VISION_PHASE_TIMEOUT_S,
            validate=Config.VALIDATION_TIMEOUT_S,
        )

    @property
    def ceiling(self) -> float:
        """Worst-case latency of one request."""
        return self.classify + self.lightweight + self.headless + self.vision + self.validate


class MetadataOrchestrator:
    """
    Sequence the extractors for one URL and merge what they find.

    Args:
        classifier: URL normalizer
        registry: Site-specific extractors by domain tag
        generic: Extractor for storefronts without a site extractor
        headless: Browser extractor; the phase is skipped when None
        vision: Screenshot/slug fallback; the phase is skipped when None
        validator: Title/image validator
        budgets: Per-phase timeouts
        known_lookup: Product id -> curated metadata
        known_live_price: Fetch a live price for curated products
    """

    def __init__(
        self,
        classifier: UrlClassifier,
        registry: SiteRegistry,
        generic: GenericExtractor,
        headless: Optional[HeadlessExtractor] = None,
        vision: Optional[VisionFallback] = None,
        validator: Optional[DataValidator] = None,
        budgets: Optional[PhaseBudgets] = None,
        known_lookup: Callable[[Optional[str]], Optional[KnownProduct]] = lookup,
        known_live_price: Optional[bool] = None,
    ) -> None:
        self.classifier = classifier
        self.registry = registry
        self.generic = generic
        self.headless = headless
        self.vision = vision
        self.validator = validator or DataValidator(enabled=False)
        self.budgets = budgets or PhaseBudgets.from_config()
        self.known_lookup = known_lookup
        self.known_live_price = (
            Config.KNOWN_PRODUCT_LIVE_PRICE if known_live_price is None else known_live_price
        )

    async def extract(self, raw_url) -> ProductMetadata:
        """
        Extract product metadata for ``raw_url``.

        Always returns a ``ProductMetadata``; when nothing could be read the
        fields are empty and ``validation_message`` says so.
        """
        try:
            return await self._extract(raw_url)
        except Exception as e:
            logger.error("EXTRACT pipeline failed for %r: %s", raw_url, e, exc_info=True)
            return ProductMetadata.empty()

    async def _extract(self, raw_url) -> ProductMetadata:
        logger.info("PHASE %s url=%r", Phase.START.value, raw_url)

        classification = await self._run_phase(
            Phase.CLASSIFY,
            lambda: self.classifier.classify(raw_url),
            self.budgets.classify,
            default=None,
        )
        if classification is None:
            # Short-link expansion ran out of time; classify what we have
            classification = self.classifier.classify_static(raw_url)
        if not classification.ok:
            logger.info("EXTRACT unusable URL: %s", classification.error)
            return ProductMetadata.empty(_unusable_url_message(classification))

        known = None
        if classification.domain_tag == "amazon":
            known = self.known_lookup(classification.product_id)

        if known is not None:
            result = await self._known_phase(known, classification)
        else:
            result = await self._run_phase(
                Phase.LIGHTWEIGHT,
                lambda: self._lightweight(classification),
                self.budgets.lightweight,
            )
            result = await self._fallback_phases(result, classification)

        logger.info("PHASE %s source=%s", Phase.MERGE.value, result.source or "-")

        outcome = await self._run_phase(
            Phase.VALIDATE,
            lambda: self.validator.validate(result.title, result.image_url, trusted=known is not None),
            self.budgets.validate,
            default=None,
        )
        if outcome is None:
            outcome = self.validator.check_rules(result.title, result.image_url)

        metadata = _build_metadata(result, outcome)
        logger.info(
            "PHASE %s title=%s image=%s price=%s",
            Phase.DONE.value, bool(metadata.title), bool(metadata.image_url), metadata.price or "-",
        )
        return metadata

    async def _known_phase(self, known: KnownProduct, classification: UrlClassification) -> ExtractorResult:
        """Curated title and image; network only for an opted-in live price."""
        result = known.to_result()
        if not self.known_live_price:
            return result

        site = self.registry.get(classification.domain_tag)
        if site is None:
            return result
        live = await self._run_phase(
            Phase.LIGHTWEIGHT,
            lambda: site.extract(classification.normalized_url, classification.product_id),
            self.budgets.lightweight,
        )
        return result.merge(ExtractorResult(price=live.price))

    async def _lightweight(self, classification: UrlClassification) -> ExtractorResult:
        site = self.registry.get(classification.domain_tag)
        if site is not None:
            return await site.extract(classification.normalized_url, classification.product_id)
        return await self.generic.extract(classification.normalized_url)

    async def _fallback_phases(
        self,
        result: ExtractorResult,
        classification: UrlClassification,
    ) -> ExtractorResult:
        url = classification.normalized_url

        if self.headless is not None and (not result.title or not result.image_url):
            rendered = await self._run_phase(
                Phase.HEADLESS,
                lambda: self.headless.extract(
                    url,
                    classification.domain_tag,
                    classification.product_id,
                    deadline=Deadline.after(self.budgets.headless),
                ),
                self.budgets.headless,
            )
            result = result.merge(rendered)

        if self.vision is not None and not result.title:
            screenshot_provider = self.headless.screenshot if self.headless is not None else None
            seen = await self._run_phase(
                Phase.VISION,
                lambda: self.vision.extract(url, classification.domain_tag, screenshot_provider),
                self.budgets.vision,
            )
            # The model never supplies the image
            result = result.merge(ExtractorResult(
                title=seen.title,
                price=seen.price,
                description=seen.description,
                source=seen.source,
            ))

        return result

    async def _run_phase(
        self,
        phase: Phase,
        start: Callable[[], Awaitable[T]],
        budget: float,
        default: Optional[T] = ...,
    ) -> T:
        """
        Run one phase under ``budget`` seconds.

        Timeouts and unexpected errors both produce ``default`` (an empty
        ``ExtractorResult`` unless given).
        """
        if default is ...:
            default = ExtractorResult()

        logger.info("PHASE %s started (budget %.1fs)", phase.value, budget)
        try:
            return await run_with_timeout(start(), budget, default, label=f"phase {phase.value}")
        except Exception as e:
            logger.warning("PHASE %s failed: %s", phase.value, e, exc_info=True)
            return default


def _unusable_url_message(classification: UrlClassification) -> str:
    reason = classification.error or "The URL could not be read"
    return f"{reason}. Please check the link or fill in the product details manually."


def _build_metadata(result: ExtractorResult, outcome: ValidationOutcome) -> ProductMetadata:
    return ProductMetadata(
        title=result.title or "",
        description=result.description or "",
        image_url=result.image_url or "",
        price=result.price or "",
        is_title_valid=outcome.is_title_valid,
        is_image_valid=outcome.is_image_valid,
        validation_message=outcome.message,
    )
