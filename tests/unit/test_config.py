"""
Unit tests for configuration helpers.
"""
from wishfill.config import Config, _env_bool


class TestEnvBool:
    """Tests for boolean environment parsing."""

    def test_truthy_values(self, monkeypatch):
        """Should accept the usual spellings of true."""
        for value in ("1", "true", "True", " yes ", "ON"):
            monkeypatch.setenv("WISHFILL_FLAG", value)
            assert _env_bool("WISHFILL_FLAG", "false") is True

    def test_falsy_and_default(self, monkeypatch):
        """Should treat anything else as false and fall back to the default."""
        monkeypatch.setenv("WISHFILL_FLAG", "nope")
        assert _env_bool("WISHFILL_FLAG", "true") is False

        monkeypatch.delenv("WISHFILL_FLAG", raising=False)
        assert _env_bool("WISHFILL_FLAG", "true") is True


class TestConfig:
    """Tests for Config validation and summaries."""

    def test_missing_api_key_is_reported(self, monkeypatch):
        """Should warn when no model key is configured."""
        monkeypatch.setattr(Config, "OPENAI_API_KEY", None)

        errors = Config.validate()

        assert any("OPENAI_API_KEY" in e for e in errors)
        assert not Config.is_valid()

    def test_invalid_confidence(self, monkeypatch):
        """Should reject a confidence threshold outside 0..1."""
        monkeypatch.setattr(Config, "OPENAI_API_KEY", "sk-test")
        monkeypatch.setattr(Config, "VISION_MIN_CONFIDENCE", 1.5)

        assert any("VISION_MIN_CONFIDENCE" in e for e in Config.validate())

    def test_valid_configuration(self, monkeypatch):
        monkeypatch.setattr(Config, "OPENAI_API_KEY", "sk-test")
        monkeypatch.setattr(Config, "BROWSER_EXECUTABLE_PATH", None)
        monkeypatch.setattr(Config, "VISION_MIN_CONFIDENCE", 0.3)
        monkeypatch.setattr(Config, "SITE_FETCH_ATTEMPTS", 3)
        monkeypatch.setattr(Config, "SCREENSHOT_NAVIGATION_TIMEOUT_S", 1.5)
        monkeypatch.setattr(Config, "VISION_TIMEOUT_S", 8.0)
        monkeypatch.setattr(Config, "VISION_PHASE_TIMEOUT_S", 10.0)

        assert Config.is_valid()

    def test_screenshot_must_fit_vision_phase(self, monkeypatch):
        """Should reject a screenshot wait that leaves the model call no room."""
        monkeypatch.setattr(Config, "SCREENSHOT_NAVIGATION_TIMEOUT_S", 30.0)
        monkeypatch.setattr(Config, "VISION_TIMEOUT_S", 8.0)
        monkeypatch.setattr(Config, "VISION_PHASE_TIMEOUT_S", 10.0)

        assert any("SCREENSHOT_NAVIGATION_TIMEOUT_S" in e for e in Config.validate())

    def test_only_runtime_settings(self):
        """Should not carry filesystem layout constants."""
        assert not hasattr(Config, "PROJECT_ROOT")
        assert not hasattr(Config, "SRC_DIR")

    def test_cors_origins(self, monkeypatch):
        """Should split comma-separated origins and default to '*'."""
        monkeypatch.setattr(Config, "CORS_ORIGINS", "https://wishlist.example, https://admin.example")
        assert Config.get_cors_origins() == ["https://wishlist.example", "https://admin.example"]

        monkeypatch.setattr(Config, "CORS_ORIGINS", " , ")
        assert Config.get_cors_origins() == ["*"]

    def test_summary_hides_secrets(self, monkeypatch):
        """Should report whether a key is set without including it."""
        monkeypatch.setattr(Config, "OPENAI_API_KEY", "sk-very-secret")

        summary = Config.get_summary()

        assert summary["openai_configured"] is True
        assert "sk-very-secret" not in str(summary)
        assert set(summary["phase_budgets_s"]) == {"classify", "lightweight", "headless", "vision", "validate"}
