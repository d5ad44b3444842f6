"""
Data models for Wishfill product metadata extraction.
"""
from __future__ import annotations

from dataclasses import dataclass, fields, replace
from decimal import Decimal
from enum import Enum
from typing import Optional, List


EMPTY_RESULT_MESSAGE = (
    "We couldn't read this product automatically. "
    "Please complete the title, image and price manually."
)


@dataclass(slots=True)
class ProductMetadata:
    """
    Final metadata returned to the wishlist form.

    Attributes:
        title: Product title
        description: Short product description
        image_url: Absolute URL of the main product image
        price: Canonical price string (e.g. "19,99€") or empty
        is_title_valid: Set by the validator
        is_image_valid: Set by the validator
        validation_message: Human-readable validation summary
    """

    title: str = ""
    description: str = ""
    image_url: str = ""
    price: str = ""
    is_title_valid: bool = False
    is_image_valid: bool = False
    validation_message: str = ""

    def __post_init__(self):
        for name in ("title", "description", "image_url", "price", "validation_message"):
            if getattr(self, name) is None:
                setattr(self, name, "")

    @classmethod
    def empty(cls, message: str = EMPTY_RESULT_MESSAGE) -> ProductMetadata:
        """Create the blank shape shown when nothing could be extracted."""
        return cls(validation_message=message)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "title": self.title,
            "description": self.description,
            "imageUrl": self.image_url,
            "price": self.price,
            "isTitleValid": self.is_title_valid,
            "isImageValid": self.is_image_valid,
            "validationMessage": self.validation_message,
        }


@dataclass(frozen=True, slots=True)
class ExtractorResult:
    """
    Partial result produced by a single extraction strategy.

    Results are immutable; combine them with ``merge``.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    price: Optional[str] = None
    is_title_valid: Optional[bool] = None
    is_image_valid: Optional[bool] = None
    source: Optional[str] = None

    def merge(self, other: Optional[ExtractorResult]) -> ExtractorResult:
        """
        Fill the empty fields of this result from ``other``.

        Values already present on ``self`` win.
        """
        if other is None:
            return self

        updates = {}
        for f in fields(self):
            if f.name == "source":
                continue
            current = getattr(self, f.name)
            incoming = getattr(other, f.name)
            if _is_blank(current) and not _is_blank(incoming):
                updates[f.name] = incoming

        if not updates:
            return self
        if self.source and other.source and other.source not in self.source:
            updates["source"] = f"{self.source}+{other.source}"
        elif not self.source:
            updates["source"] = other.source
        return replace(self, **updates)

    def missing_fields(self) -> List[str]:
        """Names of the core fields that are still empty."""
        return [
            name
            for name in ("title", "image_url", "price")
            if _is_blank(getattr(self, name))
        ]

    @property
    def is_empty(self) -> bool:
        return all(
            _is_blank(getattr(self, name))
            for name in ("title", "description", "image_url", "price")
        )

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields()

    def to_dict(self) -> dict:
        """Convert to dictionary for debugging output."""
        return {
            "title": self.title,
            "description": self.description,
            "image_url": self.image_url,
            "price": self.price,
            "source": self.source,
        }


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


class Visibility(str, Enum):
    VISIBLE = "visible"
    OFFSCREEN = "offscreen"


class PriceSource(str, Enum):
    JSONLD = "jsonld"
    EMBEDDED_JSON = "embedded_json"
    META = "meta"
    DOM = "dom"
    OFFSCREEN = "offscreen"
    PATTERN = "pattern"
    VISION = "vision"


STRUCTURED_PRICE_SOURCES = frozenset({PriceSource.JSONLD, PriceSource.EMBEDDED_JSON})


@dataclass(slots=True)
class CandidatePrice:
    """
    One raw price observation found on a page.

    Attributes:
        raw_text: Text the price was read from
        amount: Parsed numeric value
        currency: ISO currency code
        visibility: Whether the price is displayed or screen-reader only
        source: Where the price was found
    """

    raw_text: str
    amount: Decimal
    currency: str = "EUR"
    visibility: Visibility = Visibility.VISIBLE
    source: PriceSource = PriceSource.DOM

    @property
    def is_structured(self) -> bool:
        return self.source in STRUCTURED_PRICE_SOURCES


@dataclass(frozen=True, slots=True)
class KnownProduct:
    """Curated metadata for a product id."""

    id: str
    title: str
    image_url: str

    def to_result(self) -> ExtractorResult:
        return ExtractorResult(
            title=self.title,
            image_url=self.image_url,
            source="known_product",
        )


@dataclass(frozen=True, slots=True)
class UrlClassification:
    """
    Output of the URL normalizer.

    Attributes:
        normalized_url: Cleaned URL (short links expanded, tracking removed)
        product_id: Canonical site product id, when one was recognized
        domain_tag: Registry tag for the host, "generic" when unknown
        ok: False when the URL could not be used at all
        error: Reason for a failed classification
    """

    normalized_url: str = ""
    product_id: Optional[str] = None
    domain_tag: str = "generic"
    ok: bool = True
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "normalized_url": self.normalized_url,
            "product_id": self.product_id,
            "domain_tag": self.domain_tag,
            "ok": self.ok,
            "error": self.error,
        }
