"""
Title and image plausibility checks.

Stage (a) is a set of deterministic rules. Stage (b) asks a model for a
permissive second opinion and only runs when the rules accept. A rule
rejection can never be overturned by the model.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import ValidationError

from ..config import Config
from ..errors import ModelError
from ..extractors.patterns import PLACEHOLDER_TITLES
from ..logger import get_logger
from ..schemas.model_outputs import ValidationResponse
from ..utils.images import is_absolute_http_url, looks_like_placeholder_image
from ..utils.text_cleaning import title_looks_like_url
from .model_client import build_openai_client, complete_json

logger = get_logger(__name__)

# Store and brand names that are not a product title on their own
BARE_STORE_NAMES = {
    "amazon", "nike", "zara", "pccomponentes", "decathlon", "carrefour", "miravia",
    "aliexpress", "ebay", "walmart", "ikea", "mediamarkt", "el corte inglés",
    "el corte ingles", "adidas", "shein", "temu",
}

_TWO_LETTERS = re.compile(r'^[A-Za-z]\s?[A-Za-z]$')
_LITERAL_URL = re.compile(r'https?://|www\.', re.I)

VALIDATION_PROMPT = (
    "You validate product metadata with an extremely permissive policy. "
    "Assume the data is valid by default.\n\n"
    "Titles are VALID even when they are short, mention the store, contain "
    "typos, are in any language or are incomplete.\n"
    "Mark a title INVALID only if it is purely an error message (e.g. 'Error 404'), "
    "a full URL, random characters, or just the word 'Product'.\n"
    "The image is valid unless it is obviously an error icon.\n\n"
    "Reply with JSON: {\"isTitleValid\": bool, \"isImageValid\": bool, "
    "\"message\": string (empty when valid)}. When in doubt, accept."
)

MESSAGE_OK = ""
MESSAGE_TITLE_INVALID = "The product title could not be extracted reliably. Please enter it manually."
MESSAGE_IMAGE_INVALID = "No valid product image was found. Please add one manually."
MESSAGE_BOTH_INVALID = "We could not read this product. Please fill in the details manually."


def check_title_rules(title: Optional[str]) -> Optional[str]:
    """
    Deterministic title rules.

    Returns:
        Rejection reason, or None when the title is acceptable

    Examples:
        >>> check_title_rules("Amazon.com")
        'title is a bare domain or store name'
        >>> check_title_rules("Reloj Tommy Hilfiger") is None
        True
    """
    if not title or not title.strip():
        return "title is empty"

    stripped = title.strip()
    lowered = stripped.lower()

    if len(stripped) <= 2 or _TWO_LETTERS.match(stripped):
        return "title is too short"
    if lowered in BARE_STORE_NAMES or title_looks_like_url(stripped):
        return "title is a bare domain or store name"
    if lowered in PLACEHOLDER_TITLES:
        return "title is a placeholder"
    if _LITERAL_URL.search(stripped):
        return "title contains a URL"
    return None


def check_image_rules(image_url: Optional[str]) -> Optional[str]:
    """Deterministic image rules; returns a rejection reason or None."""
    if not image_url:
        return "image is missing"
    if image_url.strip().lower().startswith("data:"):
        return "image is an inline data URI"
    if not is_absolute_http_url(image_url):
        return "image URL is not absolute http(s)"
    if looks_like_placeholder_image(image_url):
        return "image looks like a placeholder, logo or tracking pixel"
    return None


@dataclass(slots=True)
class ValidationOutcome:
    """Final validity flags plus a message for the user."""

    is_title_valid: bool
    is_image_valid: bool
    message: str = ""

    def to_dict(self) -> dict:
        return {
            "isTitleValid": self.is_title_valid,
            "isImageValid": self.is_image_valid,
            "message": self.message,
        }


def _message_for(title_ok: bool, image_ok: bool, model_message: str = "") -> str:
    if title_ok and image_ok:
        return MESSAGE_OK
    if not title_ok and not image_ok:
        return MESSAGE_BOTH_INVALID
    if model_message:
        return model_message
    return MESSAGE_TITLE_INVALID if not title_ok else MESSAGE_IMAGE_INVALID


class DataValidator:
    """
    Two-stage title/image validator.

    Args:
        client: ``AsyncOpenAI``-compatible client (built from config if omitted)
        model: Validation model name
        timeout: Hard limit on the model call, in seconds
        enabled: Whether stage (b) may run at all
    """

    def __init__(
        self,
        client: Any = None,
        *,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        enabled: Optional[bool] = None,
    ) -> None:
        self.enabled = Config.MODEL_VALIDATION_ENABLED if enabled is None else enabled
        self.client = client if client is not None else (build_openai_client() if self.enabled else None)
        self.model = model or Config.VALIDATION_MODEL
        self.timeout = timeout if timeout is not None else Config.VALIDATION_TIMEOUT_S

    def is_available(self) -> bool:
        return self.enabled and self.client is not None

    def check_rules(self, title: Optional[str], image_url: Optional[str]) -> ValidationOutcome:
        """Rules-only outcome, used when the model stage cannot run in time."""
        title_ok = check_title_rules(title) is None
        image_ok = check_image_rules(image_url) is None
        return ValidationOutcome(title_ok, image_ok, _message_for(title_ok, image_ok))

    async def validate(
        self,
        title: Optional[str],
        image_url: Optional[str],
        *,
        trusted: bool = False,
    ) -> ValidationOutcome:
        """
        Validate extracted metadata.

        Args:
            title: Extracted title
            image_url: Extracted image URL
            trusted: Skip the model stage (curated data)
        """
        title_reason = check_title_rules(title)
        image_reason = check_image_rules(image_url)
        title_ok = title_reason is None
        image_ok = image_reason is None
        if title_reason:
            logger.info("VALIDATE title rejected: %s", title_reason)
        if image_reason:
            logger.info("VALIDATE image rejected: %s", image_reason)

        model_message = ""
        if title_ok and not trusted and self.is_available():
            try:
                verdict = await self._ask_model(title, image_url)
            except ModelError as e:
                # A failed model call never blocks the user
                logger.warning("VALIDATE model unavailable, accepting: %s", e)
            else:
                title_ok = title_ok and verdict.is_title_valid
                image_ok = image_ok and verdict.is_image_valid
                model_message = verdict.message

        return ValidationOutcome(
            is_title_valid=title_ok,
            is_image_valid=image_ok,
            message=_message_for(title_ok, image_ok, model_message),
        )

    async def _ask_model(self, title: Optional[str], image_url: Optional[str]) -> ValidationResponse:
        messages = [
            {"role": "system", "content": VALIDATION_PROMPT},
            {
                "role": "user",
                "content": (
                    "Validate this product data:\n\n"
                    f"Title: {title or 'not provided'}\n\n"
                    f"Image URL: {image_url or 'not provided'}"
                ),
            },
        ]
        data = await complete_json(
            self.client,
            model=self.model,
            messages=messages,
            timeout=self.timeout,
            max_tokens=200,
        )
        try:
            return ValidationResponse.model_validate(data)
        except ValidationError as e:
            raise ModelError(f"Unexpected validation reply: {e.errors()[:1]}") from e
