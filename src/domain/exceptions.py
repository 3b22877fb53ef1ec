"""
Market Snapshot 커스텀 예외 타입

이 모듈은 집계 파이프라인 전체에서 사용되는 구체적인 예외 타입을 정의합니다.
외부 프로바이더 실패를 분류하여 호출부가 "건너뛰기 / 기능 비활성화 / 중단" 중
무엇을 할지 결정할 수 있게 합니다.

분류:
- ProviderUnavailableError: 네트워크 오류 / 5xx → 호출 건너뛰고 필드 강등
- ProviderPermissionDeniedError: 403 → 요청 전체에서 해당 기능 비활성화
- MalformedResponseError: 해석 불가 응답 → 해당 항목 건너뛰기 (기본값 생성 금지)
- BudgetExhaustedError: 호출 예산 소진 → 이후 호출 중단, 부분 데이터로 진행
- ConfigurationError: 자격 증명 누락 → 시작 시 치명적
- NoListingsExtractedError: 비어있지 않은 응답에서 리스팅 0건 → 치명적
- EstimationError: 수요/매출 추정 단계 실패 (no-data 와 구분)

사용 예:
    from src.domain.exceptions import ProviderUnavailableError

    try:
        payload = await client.get_catalog_items(batch, budget, marketplace)
    except ProviderUnavailableError as e:
        logger.warning(f"Catalog batch skipped: {e.provider} status={e.status_code}")
"""

from typing import Optional


class MarketSnapshotError(Exception):
    """
    Base exception for all market snapshot pipeline errors.

    모든 커스텀 예외의 기본 클래스입니다.
    """

    pass


class ProviderError(MarketSnapshotError):
    """
    External provider errors (search or catalog/pricing).

    Attributes:
        provider: 프로바이더 이름 ("search", "catalog", "pricing")
        status_code: HTTP 상태 코드 (해당시)
        url: 요청 URL (키 제외)
    """

    def __init__(
        self,
        message: str,
        provider: str = "unknown",
        status_code: Optional[int] = None,
        url: Optional[str] = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        self.url = url


class ProviderUnavailableError(ProviderError):
    """
    Network error, timeout or 5xx from a provider.

    호출을 건너뛰고 영향받는 필드를 unavailable/low-confidence 로 강등합니다.
    """

    pass


class ProviderPermissionDeniedError(ProviderError):
    """
    Provider refused access (e.g. 403 on secondary pricing).

    요청 전체에서 해당 기능을 비활성화하며 재시도하지 않습니다.
    """

    pass


class MalformedResponseError(ProviderError):
    """
    Provider returned a response that cannot be interpreted.

    Attributes:
        asin: 문제가 된 ASIN (항목 단위 실패인 경우)
    """

    def __init__(
        self,
        message: str,
        provider: str = "unknown",
        status_code: Optional[int] = None,
        url: Optional[str] = None,
        asin: Optional[str] = None,
    ):
        super().__init__(message, provider=provider, status_code=status_code, url=url)
        self.asin = asin


class BudgetExhaustedError(MarketSnapshotError):
    """
    API call budget has no remaining calls.

    Attributes:
        count: 사용한 호출 수
        max_calls: 최대 호출 수
    """

    def __init__(self, message: str, count: int = 0, max_calls: int = 0):
        super().__init__(message)
        self.count = count
        self.max_calls = max_calls


class ConfigurationError(MarketSnapshotError):
    """
    Configuration errors (missing credentials, invalid values).

    Attributes:
        config_key: 문제가 된 설정 키
    """

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message)
        self.config_key = config_key


class NoListingsExtractedError(MarketSnapshotError):
    """
    Provider returned rows but no listing could be extracted.

    Attributes:
        raw_result_count: 프로바이더가 반환한 원본 행 수
    """

    def __init__(self, message: str, raw_result_count: int = 0):
        super().__init__(message)
        self.raw_result_count = raw_result_count


class EstimationError(MarketSnapshotError):
    """
    Demand/revenue estimation failure after listings were extracted.

    Attributes:
        stage: 실패한 단계 ("demand", "calibration" 등)
    """

    def __init__(self, message: str, stage: str = "demand"):
        super().__init__(message)
        self.stage = stage


__all__ = [
    "MarketSnapshotError",
    "ProviderError",
    "ProviderUnavailableError",
    "ProviderPermissionDeniedError",
    "MalformedResponseError",
    "BudgetExhaustedError",
    "ConfigurationError",
    "NoListingsExtractedError",
    "EstimationError",
]
