"""
커스텀 예외 타입 테스트

테스트 대상: src/domain/exceptions.py
"""

import pytest

from src.domain.exceptions import (
    BudgetExhaustedError,
    ConfigurationError,
    EstimationError,
    MalformedResponseError,
    MarketSnapshotError,
    NoListingsExtractedError,
    ProviderError,
    ProviderPermissionDeniedError,
    ProviderUnavailableError,
)


class TestExceptionHierarchy:
    """예외 계층 구조"""

    @pytest.mark.parametrize(
        "exc_type",
        [
            ProviderError,
            BudgetExhaustedError,
            ConfigurationError,
            NoListingsExtractedError,
            EstimationError,
        ],
    )
    def test_all_derive_from_base(self, exc_type):
        assert issubclass(exc_type, MarketSnapshotError)

    @pytest.mark.parametrize(
        "exc_type", [ProviderUnavailableError, ProviderPermissionDeniedError, MalformedResponseError]
    )
    def test_provider_subclasses(self, exc_type):
        assert issubclass(exc_type, ProviderError)

    def test_estimation_error_is_not_no_listings(self):
        """추정 실패는 no-data 로 분류되지 않음"""
        assert not issubclass(EstimationError, NoListingsExtractedError)
        assert not issubclass(NoListingsExtractedError, EstimationError)


class TestExceptionAttributes:
    def test_provider_error_attributes(self):
        error = ProviderUnavailableError("down", provider="catalog", status_code=503, url="https://x")
        assert str(error) == "down"
        assert error.provider == "catalog"
        assert error.status_code == 503
        assert error.url == "https://x"

    def test_malformed_response_asin(self):
        error = MalformedResponseError("bad item", provider="catalog", asin="B0ABC12345")
        assert error.asin == "B0ABC12345"

    def test_budget_exhausted_attributes(self):
        error = BudgetExhaustedError("no budget", count=7, max_calls=7)
        assert (error.count, error.max_calls) == (7, 7)

    def test_other_attributes(self):
        assert ConfigurationError("missing", config_key="SEARCH_API_KEY").config_key == "SEARCH_API_KEY"
        assert NoListingsExtractedError("none", raw_result_count=12).raw_result_count == 12
        assert EstimationError("failed", stage="calibration").stage == "calibration"
