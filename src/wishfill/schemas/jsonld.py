"""
Tolerant pydantic schemas for schema.org JSON-LD product data.

Real pages put almost anything into these blocks: numbers as strings,
single objects where lists are expected, images as strings, lists or
ImageObject dicts. Every field is optional and the ``mode="before"``
validators coerce the common shapes instead of rejecting them.
"""
from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


PRODUCT_TYPES = {"product", "productgroup", "individualproduct", "productmodel"}
PAGE_TYPES = {"itempage", "webpage", "productpage"}


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _as_text(value: Any) -> Optional[str]:
    """Coerce scalars (and {"@value": ...} / {"name": ...} dicts) to text."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return repr(value) if isinstance(value, float) else str(value)
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, dict):
        for key in ("@value", "name", "value", "price"):
            if key in value:
                return _as_text(value[key])
    if isinstance(value, list) and value:
        return _as_text(value[0])
    return None


class JsonLdPriceSpecification(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    price: Optional[str] = None
    price_currency: Optional[str] = Field(default=None, alias="priceCurrency")

    @field_validator("price", "price_currency", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return _as_text(v)


class JsonLdOffer(BaseModel):
    """An ``Offer`` or ``AggregateOffer`` node."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    price: Optional[str] = None
    low_price: Optional[str] = Field(default=None, alias="lowPrice")
    high_price: Optional[str] = Field(default=None, alias="highPrice")
    price_currency: Optional[str] = Field(default=None, alias="priceCurrency")
    price_specification: List[JsonLdPriceSpecification] = Field(
        default_factory=list, alias="priceSpecification"
    )
    offers: List["JsonLdOffer"] = Field(default_factory=list)

    @field_validator("price", "low_price", "high_price", "price_currency", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return _as_text(v)

    @field_validator("price_specification", "offers", mode="before")
    @classmethod
    def coerce_list(cls, v):
        return [item for item in _as_list(v) if isinstance(item, dict)]

    def best_price(self) -> tuple[Optional[str], Optional[str]]:
        """Return ``(price, currency)`` using the first populated field."""
        currency = self.price_currency
        if self.price:
            return self.price, currency
        if self.low_price:
            return self.low_price, currency
        for spec in self.price_specification:
            if spec.price:
                return spec.price, spec.price_currency or currency
        for nested in self.offers:
            price, nested_currency = nested.best_price()
            if price:
                return price, nested_currency or currency
        return None, currency


class JsonLdProduct(BaseModel):
    """A schema.org ``Product`` node (fields we use only)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    types: List[str] = Field(default_factory=list, alias="@type")
    name: Optional[str] = None
    description: Optional[str] = None
    sku: Optional[str] = None
    images: List[str] = Field(default_factory=list, alias="image")
    offers: List[JsonLdOffer] = Field(default_factory=list)

    @field_validator("types", mode="before")
    @classmethod
    def coerce_types(cls, v):
        return [str(t) for t in _as_list(v) if t]

    @field_validator("name", "description", "sku", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return _as_text(v)

    @field_validator("images", mode="before")
    @classmethod
    def coerce_images(cls, v):
        urls = []
        for item in _as_list(v):
            if isinstance(item, str):
                urls.append(item)
            elif isinstance(item, dict):
                url = item.get("url") or item.get("contentUrl") or item.get("@id")
                if isinstance(url, str):
                    urls.append(url)
                elif isinstance(url, list) and url and isinstance(url[0], str):
                    urls.append(url[0])
        return [u.strip() for u in urls if u and u.strip()]

    @field_validator("offers", mode="before")
    @classmethod
    def coerce_offers(cls, v):
        return [item for item in _as_list(v) if isinstance(item, dict)]

    @property
    def is_product(self) -> bool:
        return any(t.lower().rsplit("/", 1)[-1] in PRODUCT_TYPES for t in self.types)

    def first_price(self) -> tuple[Optional[str], Optional[str]]:
        for offer in self.offers:
            price, currency = offer.best_price()
            if price:
                return price, currency
        return None, None


JsonLdOffer.model_rebuild()
