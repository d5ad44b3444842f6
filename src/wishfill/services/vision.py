"""
Last-resort title/price recovery.

A deterministic slug title is preferred; only when the URL has none is a
screenshot of the page sent to a vision model. The model never supplies
the image.
"""
from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError

from ..config import Config
from ..errors import ModelError
from ..extractors.base import clean_title_candidate
from ..logger import get_logger
from ..models import ExtractorResult, PriceSource, Visibility
from ..schemas.model_outputs import VisionResponse
from .model_client import build_openai_client, complete_json
from .price_normalizer import make_candidate, resolve_price
from .slug_titles import derive_title_from_url

logger = get_logger(__name__)

ScreenshotProvider = Callable[[str], Awaitable[Optional[str]]]

VISION_PROMPT = (
    "This is a screenshot of an online store product page. "
    "Return a JSON object with these keys:\n"
    "- title: the product name exactly as shown, without the store name\n"
    "- price: the main displayed price including its currency symbol, or an empty string\n"
    "- confidence: a number between 0 and 1\n"
    "Use empty strings and confidence 0 if the page shows no product."
)


class VisionFallback:
    """
    Read a product title and price from a page screenshot.

    Args:
        client: ``AsyncOpenAI``-compatible client (built from config if omitted)
        model: Vision model name
        min_confidence: Replies below this confidence are discarded
        timeout: Hard limit on the model call, in seconds
    """

    def __init__(
        self,
        client: Any = None,
        *,
        model: Optional[str] = None,
        min_confidence: Optional[float] = None,
        timeout: Optional[float] = None,
        enabled: Optional[bool] = None,
    ) -> None:
        self.enabled = Config.VISION_ENABLED if enabled is None else enabled
        self.client = client if client is not None else (build_openai_client() if self.enabled else None)
        self.model = model or Config.VISION_MODEL
        self.min_confidence = (
            min_confidence if min_confidence is not None else Config.VISION_MIN_CONFIDENCE
        )
        self.timeout = timeout if timeout is not None else Config.VISION_TIMEOUT_S

    def is_available(self) -> bool:
        return self.enabled and self.client is not None

    async def extract(
        self,
        url: str,
        domain_tag: Optional[str] = None,
        screenshot_provider: Optional[ScreenshotProvider] = None,
    ) -> ExtractorResult:
        """Slug title if the URL has one, else the model's reading of a screenshot."""
        slug_title = derive_title_from_url(url, domain_tag)
        if slug_title:
            logger.info("VISION using slug title for %s", url)
            return ExtractorResult(title=slug_title, source="slug")

        if not self.is_available() or screenshot_provider is None:
            return ExtractorResult()

        screenshot = await screenshot_provider(url)
        if not screenshot:
            logger.info("VISION no screenshot for %s", url)
            return ExtractorResult()

        try:
            reply = await self._ask_model(screenshot)
        except ModelError as e:
            logger.warning("VISION model failed for %s: %s", url, e)
            return ExtractorResult()

        if reply.confidence < self.min_confidence:
            logger.info("VISION discarded reply with confidence %.2f", reply.confidence)
            return ExtractorResult()

        candidate = make_candidate(reply.price, source=PriceSource.VISION, visibility=Visibility.VISIBLE)
        price = resolve_price([candidate]) if candidate else ""
        return ExtractorResult(
            title=clean_title_candidate(reply.title, url),
            price=price or None,
            source="vision",
        )

    async def _ask_model(self, screenshot_b64: str) -> VisionResponse:
        messages = [{
            "role": "user",
            "content": [
                {"type": "text", "text": VISION_PROMPT},
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:image/jpeg;base64,{screenshot_b64}", "detail": "low"},
                },
            ],
        }]
        data = await complete_json(
            self.client,
            model=self.model,
            messages=messages,
            timeout=self.timeout,
            temperature=0.0,
            max_tokens=300,
        )
        try:
            return VisionResponse.model_validate(data)
        except ValidationError as e:
            raise ModelError(f"Unexpected vision reply: {e.errors()[:1]}") from e
