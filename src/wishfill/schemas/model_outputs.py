"""
Schemas for structured model responses (vision fallback and title validation).
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class VisionResponse(BaseModel):
    """Title/price read from a page screenshot."""

    model_config = ConfigDict(extra="ignore")

    title: str = Field(default="", description="Product title as shown on the page")
    price: str = Field(default="", description="Displayed price including currency")
    confidence: float = Field(default=0.0, description="Model confidence between 0 and 1")

    @field_validator("title", "price", mode="before")
    @classmethod
    def coerce_text(cls, v):
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v):
        try:
            value = float(v)
        except (TypeError, ValueError):
            return 0.0
        return min(max(value, 0.0), 1.0)


class ValidationResponse(BaseModel):
    """Plausibility judgement for extracted title and image."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    is_title_valid: bool = Field(default=True, alias="isTitleValid")
    is_image_valid: bool = Field(default=True, alias="isImageValid")
    message: str = Field(default="")

    @field_validator("message", mode="before")
    @classmethod
    def coerce_message(cls, v):
        return "" if v is None else str(v).strip()
