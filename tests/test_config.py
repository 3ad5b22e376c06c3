import sys
import os

import pytest
from pydantic import ValidationError

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import config


@pytest.fixture(autouse=True)
def clear_settings_cache():
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()


class TestSettings:
    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        for name in ("PAYMENTS_LOG_LEVEL", "PAYMENTS_NUM_WORKERS", "PAYMENTS_OUTPUT_PRECISION"):
            monkeypatch.delenv(name, raising=False)

        settings = config.get_settings()
        assert settings.log_level == "WARNING"
        assert settings.num_workers == 1
        assert settings.output_precision == 4

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("PAYMENTS_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("PAYMENTS_NUM_WORKERS", "6")

        settings = config.get_settings()
        assert settings.log_level == "DEBUG"
        assert settings.num_workers == 6

    def test_settings_are_cached(self):
        assert config.get_settings() is config.get_settings()

    def test_rejects_zero_workers(self):
        with pytest.raises(ValidationError):
            config.Settings(num_workers=0)

    def test_log_level_is_normalized(self):
        assert config.Settings(log_level=" debug ").log_level == "DEBUG"

    def test_rejects_unknown_log_level(self, monkeypatch):
        monkeypatch.setenv("PAYMENTS_LOG_LEVEL", "LOUD")
        with pytest.raises(ValidationError):
            config.get_settings()

    def test_largest_output_precision_accepted(self):
        assert config.Settings(output_precision=28).output_precision == 28
        with pytest.raises(ValidationError):
            config.Settings(output_precision=29)
