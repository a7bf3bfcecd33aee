"""Tests for the config module."""

from projectflow.config import Settings, _parse_cors_origins


class TestParseCorsOrigins:
    """Test CORS origins parsing."""

    def test_parse_cors_origins_with_value(self, monkeypatch):
        """Test parsing CORS origins from environment variable."""
        monkeypatch.setenv("CORS_ALLOW_ORIGINS", "http://localhost:3000,http://localhost:8080")
        result = _parse_cors_origins()
        assert result == ["http://localhost:3000", "http://localhost:8080"]

    def test_parse_cors_origins_without_value(self, monkeypatch):
        """Test default CORS origins when not set."""
        monkeypatch.delenv("CORS_ALLOW_ORIGINS", raising=False)
        assert _parse_cors_origins() == ["*"]

    def test_parse_cors_origins_empty_string(self, monkeypatch):
        """Test parsing empty CORS origins defaults to wildcard."""
        monkeypatch.setenv("CORS_ALLOW_ORIGINS", "")
        assert _parse_cors_origins() == ["*"]


class TestSettings:
    """Test Settings configuration."""

    def test_settings_explicit_values(self):
        """Test Settings with explicit parameters."""
        settings = Settings(
            host="0.0.0.0",
            port=9000,
            debug=True,
            log_level="DEBUG",
            max_formula_length=500,
            max_formula_depth=8,
            max_rows_per_request=10,
            formula_chaining=True,
        )

        assert settings.host == "0.0.0.0"
        assert settings.port == 9000
        assert settings.debug is True
        assert settings.log_level == "DEBUG"
        assert settings.max_formula_length == 500
        assert settings.max_formula_depth == 8
        assert settings.max_rows_per_request == 10
        assert settings.formula_chaining is True

    def test_settings_types_are_coerced(self):
        """Test that string values are validated into their field types."""
        settings = Settings(port="8080", formula_chaining="true")

        assert settings.port == 8080
        assert settings.formula_chaining is True

    def test_settings_cors_origins(self):
        """Test CORS origins are stored as given."""
        settings = Settings(cors_allow_origins=["http://localhost:3000", "http://example.com"])
        assert settings.cors_allow_origins == ["http://localhost:3000", "http://example.com"]

    def test_settings_limits_are_positive(self):
        """Test default limits allow ordinary formulas."""
        settings = Settings()
        assert settings.max_formula_length > 100
        assert settings.max_formula_depth > 8
        assert settings.max_rows_per_request > 0
