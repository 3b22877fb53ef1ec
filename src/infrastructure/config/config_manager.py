"""
Centralized Configuration Manager
=================================
모든 설정을 중앙에서 관리합니다.

주요 기능:
- .env 및 환경변수에서 설정 로드 (python-dotenv)
- 시작 시 설정 검증 (validate)
- 프로바이더 자격 증명 누락은 치명적 오류 (from_env_validated)
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from src.domain.exceptions import ConfigurationError
from src.shared import constants

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}", config_key=name) from e


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}", config_key=name) from e


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class AppConfig:
    """
    애플리케이션 설정

    환경변수(.env 포함)에서 로드합니다.
    """

    # Primary search provider
    search_api_key: str | None = None
    search_api_base_url: str = "https://api.rainforestapi.com/request"

    # Secondary catalog/pricing provider (토큰 교환은 외부에서 수행)
    catalog_api_access_token: str | None = None
    catalog_api_base_url: str = "https://sellingpartnerapi-na.amazon.com"
    pricing_enabled: bool = True

    # Marketplace
    marketplace: str = constants.DEFAULT_MARKETPLACE

    # Budget / concurrency
    call_budget_max: int = constants.DEFAULT_CALL_BUDGET
    provider_timeout_seconds: float = constants.DEFAULT_PROVIDER_TIMEOUT_SECONDS
    enrichment_batch_size: int = constants.ENRICHMENT_BATCH_SIZE
    enrichment_max_concurrency: int = constants.ENRICHMENT_MAX_CONCURRENCY

    # Cache
    snapshot_ttl_hours: int = constants.SNAPSHOT_TTL_HOURS
    asin_cache_ttl_hours: int = constants.ASIN_CACHE_TTL_HOURS
    cache_schema_version: str = constants.CACHE_SCHEMA_VERSION
    cache_max_size: int = 5000

    # Logging / server
    log_level: str = "INFO"
    admin_api_key: str | None = None
    host: str = "0.0.0.0"
    port: int = 8001

    # HTTP 보안
    hsts_enabled: bool = False
    allowed_hosts: list[str] = field(default_factory=lambda: ["*"])
    allowed_origins: list[str] = field(
        default_factory=lambda: ["http://localhost:8001", "http://127.0.0.1:8001"]
    )

    @classmethod
    def from_env(cls, env_file: Path | None = None) -> "AppConfig":
        """환경변수에서 설정 로드 (.env 는 기존 환경변수를 덮어쓰지 않음)"""
        load_dotenv(env_file, override=False)
        config = cls()

        config.search_api_key = os.environ.get("SEARCH_API_KEY")
        config.search_api_base_url = os.environ.get("SEARCH_API_BASE_URL", config.search_api_base_url)
        config.catalog_api_access_token = os.environ.get("CATALOG_API_ACCESS_TOKEN")
        config.catalog_api_base_url = os.environ.get("CATALOG_API_BASE_URL", config.catalog_api_base_url)
        config.pricing_enabled = os.environ.get("PRICING_ENABLED", "true").lower() != "false"
        config.marketplace = os.environ.get("MARKETPLACE", config.marketplace).upper()

        config.call_budget_max = _env_int("CALL_BUDGET_MAX", config.call_budget_max)
        config.provider_timeout_seconds = _env_float("PROVIDER_TIMEOUT_SECONDS", config.provider_timeout_seconds)
        config.enrichment_batch_size = _env_int("ENRICHMENT_BATCH_SIZE", config.enrichment_batch_size)
        config.enrichment_max_concurrency = _env_int(
            "ENRICHMENT_MAX_CONCURRENCY", config.enrichment_max_concurrency
        )

        config.snapshot_ttl_hours = _env_int("SNAPSHOT_TTL_HOURS", config.snapshot_ttl_hours)
        config.asin_cache_ttl_hours = _env_int("ASIN_CACHE_TTL_HOURS", config.asin_cache_ttl_hours)
        config.cache_schema_version = os.environ.get("CACHE_SCHEMA_VERSION", config.cache_schema_version)
        config.cache_max_size = _env_int("CACHE_MAX_SIZE", config.cache_max_size)

        config.log_level = os.environ.get("LOG_LEVEL", config.log_level).upper()
        config.admin_api_key = os.environ.get("ADMIN_API_KEY")
        config.port = _env_int("PORT", config.port)
        config.hsts_enabled = os.environ.get("HSTS_ENABLED", "false").lower() == "true"
        config.allowed_hosts = _env_list("ALLOWED_HOSTS", config.allowed_hosts)
        config.allowed_origins = _env_list("ALLOWED_ORIGINS", config.allowed_origins)

        return config

    @property
    def snapshot_ttl(self) -> timedelta:
        return timedelta(hours=self.snapshot_ttl_hours)

    @property
    def asin_cache_ttl(self) -> timedelta:
        return timedelta(hours=self.asin_cache_ttl_hours)

    def validate(self) -> list[str]:
        """설정 검증

        필수/선택 설정의 유효성을 검사하고, 오류 목록을 반환합니다.
        빈 리스트 반환 시 모든 검증 통과.

        Returns:
            오류 메시지 목록 (빈 리스트 = 정상)
        """
        errors: list[str] = []
        warnings: list[str] = []

        # === 필수 검증 (프로바이더 자격 증명) ===
        if not self.search_api_key:
            errors.append("SEARCH_API_KEY가 설정되지 않았습니다")
        if not self.catalog_api_access_token:
            errors.append("CATALOG_API_ACCESS_TOKEN이 설정되지 않았습니다")

        # === 범위 검증 ===
        if self.marketplace not in constants.MARKETPLACES:
            errors.append(f"MARKETPLACE 미지원: {self.marketplace}")
        if self.call_budget_max < 1:
            errors.append(f"CALL_BUDGET_MAX 는 1 이상이어야 합니다 (현재 {self.call_budget_max})")
        if self.provider_timeout_seconds <= 0:
            errors.append(f"PROVIDER_TIMEOUT_SECONDS 는 양수여야 합니다 (현재 {self.provider_timeout_seconds})")
        if not 1 <= self.enrichment_batch_size <= 20:
            errors.append(f"ENRICHMENT_BATCH_SIZE 범위 오류: 1-20 필요, 현재 {self.enrichment_batch_size}")
        if self.snapshot_ttl_hours < 1:
            errors.append(f"SNAPSHOT_TTL_HOURS 는 1 이상이어야 합니다 (현재 {self.snapshot_ttl_hours})")
        if self.port < 1 or self.port > 65535:
            errors.append(f"PORT 범위 오류: 1-65535 필요, 현재 {self.port}")

        # === 경고 ===
        if not 5 <= self.enrichment_max_concurrency <= 8:
            warnings.append(
                f"ENRICHMENT_MAX_CONCURRENCY={self.enrichment_max_concurrency} (권장 범위 5-8)"
            )
        if not self.admin_api_key:
            warnings.append("ADMIN_API_KEY 미설정: 캐시 관리 API 가 비활성화됩니다")

        for w in warnings:
            logger.warning(f"[Config Warning] {w}")

        return errors

    @classmethod
    def from_env_validated(cls, fail_fast: bool = True, env_file: Path | None = None) -> "AppConfig":
        """환경변수에서 설정 로드 + 검증

        Args:
            fail_fast: True면 필수 설정 누락 시 ConfigurationError 발생.
                       False면 오류를 로깅하고 config 반환.

        Returns:
            검증된 AppConfig 인스턴스

        Raises:
            ConfigurationError: fail_fast=True이고 필수 설정 누락 시
        """
        config = cls.from_env(env_file)
        errors = config.validate()

        if errors:
            error_msg = "설정 검증 실패:\n" + "\n".join(f"  - {e}" for e in errors)
            if fail_fast:
                raise ConfigurationError(error_msg)
            logger.error(error_msg)

        return config

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리 변환 (자격 증명 제외)"""
        return {
            "search_api_base_url": self.search_api_base_url,
            "catalog_api_base_url": self.catalog_api_base_url,
            "search_api_key_set": bool(self.search_api_key),
            "catalog_api_access_token_set": bool(self.catalog_api_access_token),
            "pricing_enabled": self.pricing_enabled,
            "marketplace": self.marketplace,
            "call_budget_max": self.call_budget_max,
            "provider_timeout_seconds": self.provider_timeout_seconds,
            "enrichment_batch_size": self.enrichment_batch_size,
            "enrichment_max_concurrency": self.enrichment_max_concurrency,
            "snapshot_ttl_hours": self.snapshot_ttl_hours,
            "asin_cache_ttl_hours": self.asin_cache_ttl_hours,
            "cache_schema_version": self.cache_schema_version,
            "log_level": self.log_level,
            "hsts_enabled": self.hsts_enabled,
            "allowed_hosts": list(self.allowed_hosts),
            "allowed_origins": list(self.allowed_origins),
        }


# =============================================================================
# Singleton
# =============================================================================

_config: AppConfig | None = None


def get_config() -> AppConfig:
    """전역 AppConfig 반환 (최초 호출 시 검증 포함 로드)"""
    global _config
    if _config is None:
        _config = AppConfig.from_env_validated(fail_fast=True)
    return _config


def reset_config() -> None:
    """전역 설정 초기화 (테스트용)"""
    global _config
    _config = None
