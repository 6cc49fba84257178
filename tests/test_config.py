"""Tests for settings loading and validation."""

import pytest

from restcache.config import Settings
from restcache.domain.models import CacheConfig


class TestSettings:
    """Test defaults and environment parsing."""

    def test_defaults(self, settings):
        assert settings.cache_disable is False
        assert settings.cache_default_timeout == 300
        assert settings.cache_store_backend == "memory"
        assert settings.cache_rest_prefix == "/wp-json"
        assert settings.cache_methods == ["GET"]
        assert settings.cache_show_key_header is True
        assert settings.cache_single_flight is False

    def test_reads_environment(self, make_settings, monkeypatch):
        monkeypatch.setenv("REST_API_CACHE_DISABLE", "true")
        monkeypatch.setenv("REST_API_CACHE_DEFAULT_TIMEOUT", "60")
        monkeypatch.setenv("REST_API_CACHE_METHODS", "get, head")

        settings = Settings(_env_file=None)

        assert settings.cache_disable is True
        assert settings.cache_default_timeout == 60
        assert settings.cache_methods == ["GET", "HEAD"]

    def test_redact_fields_comma_separated(self, make_settings):
        settings = make_settings(redact_log_fields="authorization, x-api-key")
        assert settings.redact_log_fields == ["authorization", "x-api-key"]

    def test_cache_config_snapshot(self, make_settings):
        settings = make_settings(cache_default_timeout=120)
        assert settings.cache_config() == CacheConfig(
            disabled=False, default_timeout_seconds=120
        )

    def test_cache_config_reflects_runtime_changes(self, settings):
        settings.cache_disable = True
        assert settings.cache_config().disabled is True


class TestSettingsValidation:
    """Test startup validation exits on inconsistent settings."""

    @pytest.mark.parametrize(
        "overrides",
        [
            {"cache_default_timeout": -1},
            {"cache_max_entries": 0},
            {"cache_store_timeout_seconds": 0},
            {"cache_store_backend": "redis"},
            {"cache_rest_prefix": "wp-json"},
            {"cache_timezone": "Mars/Olympus_Mons"},
        ],
    )
    def test_invalid_settings_exit(self, make_settings, overrides):
        with pytest.raises(SystemExit) as exc_info:
            make_settings(**overrides)
        assert exc_info.value.code == 1

    def test_redis_backend_with_url(self, make_settings):
        settings = make_settings(
            cache_store_backend="redis", cache_redis_url="redis://localhost:6379/0"
        )
        assert settings.cache_store_backend == "redis"

    def test_zero_timeout_is_allowed(self, make_settings):
        assert make_settings(cache_default_timeout=0).cache_default_timeout == 0
