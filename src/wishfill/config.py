"""
Configuration management for Wishfill.
"""
import os
from typing import Optional
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration."""

    # Model access (vision fallback + title validation)
    OPENAI_API_KEY: Optional[str] = os.getenv("OPENAI_API_KEY")
    VISION_MODEL: str = os.getenv("VISION_MODEL", "gpt-4o")
    VALIDATION_MODEL: str = os.getenv("VALIDATION_MODEL", "gpt-4o")
    VISION_ENABLED: bool = _env_bool("VISION_ENABLED", "true")
    MODEL_VALIDATION_ENABLED: bool = _env_bool("MODEL_VALIDATION_ENABLED", "true")
    VISION_MIN_CONFIDENCE: float = float(os.getenv("VISION_MIN_CONFIDENCE", "0.3"))

    # Headless browser
    HEADLESS_ENABLED: bool = _env_bool("HEADLESS_ENABLED", "true")
    BROWSER_EXECUTABLE_PATH: Optional[str] = os.getenv("BROWSER_EXECUTABLE_PATH") or None
    BROWSER_IDLE_TIMEOUT_S: float = float(os.getenv("BROWSER_IDLE_TIMEOUT_S", "300"))
    NAVIGATION_TIMEOUT_S: float = float(os.getenv("NAVIGATION_TIMEOUT_S", "30"))
    SCREENSHOT_NAVIGATION_TIMEOUT_S: float = float(os.getenv("SCREENSHOT_NAVIGATION_TIMEOUT_S", "1.5"))
    HEADLESS_MAX_MIRRORS: int = int(os.getenv("HEADLESS_MAX_MIRRORS", "2"))

    # Phase budgets (seconds). Worst case latency is their sum.
    CLASSIFY_TIMEOUT_S: float = float(os.getenv("CLASSIFY_TIMEOUT_S", "3"))
    LIGHTWEIGHT_TIMEOUT_S: float = float(os.getenv("LIGHTWEIGHT_TIMEOUT_S", "6"))
    HEADLESS_TIMEOUT_S: float = float(os.getenv("HEADLESS_TIMEOUT_S", "40"))
    VISION_TIMEOUT_S: float = float(os.getenv("VISION_TIMEOUT_S", "8"))
    VISION_PHASE_TIMEOUT_S: float = float(os.getenv("VISION_PHASE_TIMEOUT_S", "10"))
    VALIDATION_TIMEOUT_S: float = float(os.getenv("VALIDATION_TIMEOUT_S", "6"))

    # Lightweight fetching
    SITE_FETCH_ATTEMPTS: int = int(os.getenv("SITE_FETCH_ATTEMPTS", "3"))
    SITE_BACKOFF_BASE_S: float = float(os.getenv("SITE_BACKOFF_BASE_S", "0.5"))
    SITE_BUDGET_S: float = float(os.getenv("SITE_BUDGET_S", "4.5"))
    GENERIC_ATTEMPT_TIMEOUT_S: float = float(os.getenv("GENERIC_ATTEMPT_TIMEOUT_S", "2.0"))
    SHORT_LINK_TIMEOUT_S: float = float(os.getenv("SHORT_LINK_TIMEOUT_S", "2.5"))

    # Known products carry curated title/image only; price needs a live fetch
    KNOWN_PRODUCT_LIVE_PRICE: bool = _env_bool("KNOWN_PRODUCT_LIVE_PRICE", "false")

    # Flask settings
    FLASK_ENV: str = os.getenv("FLASK_ENV", "development")
    FLASK_DEBUG: bool = _env_bool("FLASK_DEBUG", "True")
    FLASK_HOST: str = os.getenv("FLASK_HOST", "0.0.0.0")
    FLASK_PORT: int = int(os.getenv("FLASK_PORT", "5000"))
    SECRET_KEY: str = os.getenv("SECRET_KEY", "wishfill-dev-secret")
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @classmethod
    def validate(cls) -> list[str]:
        """
        Validate configuration.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not cls.OPENAI_API_KEY:
            errors.append(
                "OPENAI_API_KEY not set (vision fallback and model validation disabled)"
            )

        if cls.BROWSER_EXECUTABLE_PATH and not Path(cls.BROWSER_EXECUTABLE_PATH).exists():
            errors.append(f"Browser executable not found: {cls.BROWSER_EXECUTABLE_PATH}")

        if not 0.0 <= cls.VISION_MIN_CONFIDENCE <= 1.0:
            errors.append(
                f"Invalid VISION_MIN_CONFIDENCE: {cls.VISION_MIN_CONFIDENCE}. Must be between 0 and 1"
            )

        if cls.SITE_FETCH_ATTEMPTS < 1:
            errors.append("SITE_FETCH_ATTEMPTS must be at least 1")

        if cls.SCREENSHOT_NAVIGATION_TIMEOUT_S + cls.VISION_TIMEOUT_S > cls.VISION_PHASE_TIMEOUT_S:
            errors.append(
                "SCREENSHOT_NAVIGATION_TIMEOUT_S plus VISION_TIMEOUT_S exceeds VISION_PHASE_TIMEOUT_S"
            )

        return errors

    @classmethod
    def is_valid(cls) -> bool:
        """Check if configuration is valid."""
        return len(cls.validate()) == 0

    @classmethod
    def get_cors_origins(cls) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        origins = [o.strip() for o in cls.CORS_ORIGINS.split(",") if o.strip()]
        return origins or ["*"]

    @classmethod
    def get_summary(cls) -> dict:
        """Get configuration summary (safe for logging)."""
        return {
            "flask_env": cls.FLASK_ENV,
            "flask_debug": cls.FLASK_DEBUG,
            "openai_configured": cls.OPENAI_API_KEY is not None,
            "vision_enabled": cls.VISION_ENABLED,
            "model_validation_enabled": cls.MODEL_VALIDATION_ENABLED,
            "headless_enabled": cls.HEADLESS_ENABLED,
            "browser_executable": cls.BROWSER_EXECUTABLE_PATH or "bundled",
            "phase_budgets_s": {
                "classify": cls.CLASSIFY_TIMEOUT_S,
                "lightweight": cls.LIGHTWEIGHT_TIMEOUT_S,
                "headless": cls.HEADLESS_TIMEOUT_S,
                "vision": cls.VISION_PHASE_TIMEOUT_S,
                "validate": cls.VALIDATION_TIMEOUT_S,
            },
            "log_level": cls.LOG_LEVEL,
        }
