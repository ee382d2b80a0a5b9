"""
Tests for Engine Settings and Logging Setup
"""

import pytest


class TestSettings:
    def test_defaults(self, monkeypatch):
        from forecast_engine.config import Settings

        for name in ("ENVIRONMENT", "NONLINEAR_HIDDEN_LAYERS", "MONTE_CARLO_SIMULATIONS", "WEIGHT_LEARNING_RATE"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings()

        assert settings.environment == "development"
        assert settings.hidden_layers == [64, 32]
        assert settings.default_simulations == 1000
        assert settings.weight_learning_rate == 0.1
        assert not settings.is_production

    def test_env_overrides(self, monkeypatch):
        from forecast_engine.config import Settings

        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("NONLINEAR_HIDDEN_LAYERS", "128, 64,16")
        monkeypatch.setenv("MONTE_CARLO_WORKERS", "4")
        monkeypatch.setenv("EXTERNAL_DATA_URL", "https://data.test")
        settings = Settings()

        assert settings.is_production
        assert settings.hidden_layers == [128, 64, 16]
        assert settings.simulation_workers == 4
        assert settings.external_data_url == "https://data.test"

    @pytest.mark.parametrize("name,value", [
        ("ENVIRONMENT", "qa"),
        ("NONLINEAR_ACTIVATION", "softmax"),
        ("WEIGHT_LEARNING_RATE", "0"),
        ("WEIGHT_LEARNING_RATE", "1.5"),
    ])
    def test_invalid_values(self, monkeypatch, name, value):
        from pydantic import ValidationError
        from forecast_engine.config import Settings

        monkeypatch.setenv(name, value)

        with pytest.raises(ValidationError):
            Settings()

    def test_get_settings_is_shared(self):
        from forecast_engine.config import get_settings

        assert get_settings() is get_settings()


class TestConfigureLogging:
    def test_development_renderer(self, monkeypatch):
        import structlog
        from forecast_engine.config import Settings
        from forecast_engine.logging_config import configure_logging

        monkeypatch.setenv("ENVIRONMENT", "development")
        try:
            configure_logging(Settings())
            processors = structlog.get_config()["processors"]
            assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
        finally:
            structlog.reset_defaults()

    def test_production_renderer(self, monkeypatch):
        import structlog
        from forecast_engine.config import Settings
        from forecast_engine.logging_config import configure_logging

        monkeypatch.setenv("ENVIRONMENT", "production")
        try:
            configure_logging(Settings())
            processors = structlog.get_config()["processors"]
            assert isinstance(processors[-1], structlog.processors.JSONRenderer)
        finally:
            structlog.reset_defaults()
