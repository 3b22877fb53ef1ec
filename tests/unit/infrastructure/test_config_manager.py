"""
ConfigManager (AppConfig) 단위 테스트
"""

from datetime import timedelta

import pytest

from src.domain.exceptions import ConfigurationError
from src.infrastructure.config import config_manager
from src.infrastructure.config.config_manager import AppConfig

ENV_KEYS = [
    "SEARCH_API_KEY",
    "SEARCH_API_BASE_URL",
    "CATALOG_API_ACCESS_TOKEN",
    "CATALOG_API_BASE_URL",
    "PRICING_ENABLED",
    "MARKETPLACE",
    "CALL_BUDGET_MAX",
    "PROVIDER_TIMEOUT_SECONDS",
    "ENRICHMENT_BATCH_SIZE",
    "ENRICHMENT_MAX_CONCURRENCY",
    "SNAPSHOT_TTL_HOURS",
    "ASIN_CACHE_TTL_HOURS",
    "CACHE_SCHEMA_VERSION",
    "CACHE_MAX_SIZE",
    "LOG_LEVEL",
    "ADMIN_API_KEY",
    "PORT",
    "HSTS_ENABLED",
    "ALLOWED_HOSTS",
    "ALLOWED_ORIGINS",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """환경변수 초기화 + 존재하지 않는 .env 경로"""
    for key in ENV_KEYS:
        # setenv 후 delenv: .env 로 주입된 값도 테스트 종료 시 원복
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    config_manager.reset_config()
    yield tmp_path / "missing.env"
    config_manager.reset_config()


# =============================================================================
# 기본값 테스트
# =============================================================================


class TestAppConfigDefaults:
    """AppConfig 기본값 테스트"""

    def test_default_values(self):
        config = AppConfig()
        assert config.search_api_key is None
        assert config.marketplace == "US"
        assert config.call_budget_max == 7
        assert config.provider_timeout_seconds == 10.0
        assert config.cache_schema_version == "v4"
        assert config.pricing_enabled is True
        assert config.port == 8001

    def test_ttl_properties(self):
        config = AppConfig(snapshot_ttl_hours=24, asin_cache_ttl_hours=48)
        assert config.snapshot_ttl == timedelta(hours=24)
        assert config.asin_cache_ttl == timedelta(hours=48)


# =============================================================================
# from_env 테스트
# =============================================================================


class TestAppConfigFromEnv:
    """AppConfig.from_env 테스트"""

    def test_loads_credentials_and_overrides(self, clean_env, monkeypatch):
        monkeypatch.setenv("SEARCH_API_KEY", "search-key")
        monkeypatch.setenv("CATALOG_API_ACCESS_TOKEN", "catalog-token")
        monkeypatch.setenv("MARKETPLACE", "uk")
        monkeypatch.setenv("CALL_BUDGET_MAX", "5")
        monkeypatch.setenv("PROVIDER_TIMEOUT_SECONDS", "2.5")
        monkeypatch.setenv("PRICING_ENABLED", "false")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        config = AppConfig.from_env(clean_env)

        assert config.search_api_key == "search-key"
        assert config.catalog_api_access_token == "catalog-token"
        assert config.marketplace == "UK"
        assert config.call_budget_max == 5
        assert config.provider_timeout_seconds == 2.5
        assert config.pricing_enabled is False
        assert config.log_level == "DEBUG"

    def test_reads_env_file_without_overriding_environment(self, clean_env, monkeypatch, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("SEARCH_API_KEY=from-file\nCACHE_SCHEMA_VERSION=v9\n")
        monkeypatch.setenv("CACHE_SCHEMA_VERSION", "v4")

        config = AppConfig.from_env(env_file)

        assert config.search_api_key == "from-file"
        assert config.cache_schema_version == "v4"

    def test_invalid_integer_raises(self, clean_env, monkeypatch):
        monkeypatch.setenv("CALL_BUDGET_MAX", "seven")
        with pytest.raises(ConfigurationError) as exc_info:
            AppConfig.from_env(clean_env)
        assert exc_info.value.config_key == "CALL_BUDGET_MAX"

    def test_http_security_settings(self, clean_env, monkeypatch):
        monkeypatch.setenv("HSTS_ENABLED", "TRUE")
        monkeypatch.setenv("ALLOWED_HOSTS", "api.example.com, localhost")
        monkeypatch.setenv("ALLOWED_ORIGINS", "https://app.example.com")

        config = AppConfig.from_env(clean_env)

        assert config.hsts_enabled is True
        assert config.allowed_hosts == ["api.example.com", "localhost"]
        assert config.allowed_origins == ["https://app.example.com"]

    def test_http_security_defaults(self, clean_env):
        config = AppConfig.from_env(clean_env)
        assert config.hsts_enabled is False
        assert config.allowed_hosts == ["*"]
        assert "http://localhost:8001" in config.allowed_origins


# =============================================================================
# validate 테스트
# =============================================================================


class TestAppConfigValidate:
    """AppConfig.validate 테스트"""

    def test_valid_config(self):
        config = AppConfig(search_api_key="a", catalog_api_access_token="b", admin_api_key="c")
        assert config.validate() == []

    def test_missing_credentials_are_errors(self):
        errors = AppConfig().validate()
        assert any("SEARCH_API_KEY" in e for e in errors)
        assert any("CATALOG_API_ACCESS_TOKEN" in e for e in errors)

    def test_range_errors(self):
        config = AppConfig(
            search_api_key="a",
            catalog_api_access_token="b",
            marketplace="XX",
            call_budget_max=0,
            enrichment_batch_size=50,
        )
        errors = config.validate()
        assert len(errors) == 3

    def test_from_env_validated_fail_fast(self, clean_env):
        with pytest.raises(ConfigurationError):
            AppConfig.from_env_validated(fail_fast=True, env_file=clean_env)

    def test_from_env_validated_lenient(self, clean_env):
        config = AppConfig.from_env_validated(fail_fast=False, env_file=clean_env)
        assert config.search_api_key is None


class TestConfigSingleton:
    def test_get_config_cached(self, clean_env, monkeypatch):
        monkeypatch.setenv("SEARCH_API_KEY", "a")
        monkeypatch.setenv("CATALOG_API_ACCESS_TOKEN", "b")
        assert config_manager.get_config() is config_manager.get_config()

    def test_to_dict_hides_secrets(self):
        data = AppConfig(search_api_key="secret", catalog_api_access_token="token").to_dict()
        assert "secret" not in data.values()
        assert data["search_api_key_set"] is True
        assert data["catalog_api_access_token_set"] is True
