"""
API Call Budget
===============
집계 요청 1건에서 발생하는 모든 외부 호출이 공유하는 호출 예산.

전역 상태 대신 요청마다 ApiCallBudget 인스턴스를 만들어
호출 그래프 전체에 참조로 전달합니다.

규칙:
- 호출 직전에 try_acquire() 로 확인 후 증가 (check-then-increment)
- count >= max 이면 이후 호출은 건너뜀 (대기열/재시도 없음)
- 동시성 경쟁은 허용 (비용 상한은 best-effort)

Usage:
    budget = ApiCallBudget(max_calls=7)

    if not budget.try_acquire("catalog"):
        logger.warning("Budget exhausted, skipping catalog batch")
        return None
    response = await client.get(...)
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from src.domain.exceptions import BudgetExhaustedError

logger = logging.getLogger(__name__)


@dataclass
class ApiCallBudget:
    """
    요청 단위 호출 예산

    Attributes:
        max_calls: 최대 호출 수
        count: 사용한 호출 수
        skipped: 예산 소진으로 건너뛴 호출 수
        calls_by_label: 호출 라벨별 사용 수 (search, catalog, pricing)
    """

    max_calls: int = 7
    count: int = 0
    skipped: int = 0
    calls_by_label: dict[str, int] = field(default_factory=dict)

    @property
    def remaining(self) -> int:
        return max(0, self.max_calls - self.count)

    @property
    def exhausted(self) -> bool:
        return self.count >= self.max_calls

    def try_acquire(self, label: str = "call") -> bool:
        """
        호출 1회 예산 확보

        Args:
            label: 호출 종류 (통계용)

        Returns:
            확보 성공 여부 (False 면 호출하지 말 것)
        """
        if self.count >= self.max_calls:
            self.skipped += 1
            logger.debug(f"Budget exhausted ({self.count}/{self.max_calls}), skipped {label}")
            return False
        self.count += 1
        self.calls_by_label[label] = self.calls_by_label.get(label, 0) + 1
        return True

    def acquire(self, label: str = "call") -> None:
        """
        호출 1회 예산 확보 (실패 시 예외)

        Raises:
            BudgetExhaustedError: 예산 소진 시
        """
        if not self.try_acquire(label):
            raise BudgetExhaustedError(
                f"API call budget exhausted before {label} call",
                count=self.count,
                max_calls=self.max_calls,
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "max": self.max_calls,
            "remaining": self.remaining,
            "skipped": self.skipped,
            "calls_by_label": dict(self.calls_by_label),
        }
