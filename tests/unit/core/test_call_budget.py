"""
ApiCallBudget 단위 테스트
"""

import pytest

from src.core.call_budget import ApiCallBudget
from src.domain.exceptions import BudgetExhaustedError


class TestApiCallBudget:
    """호출 예산 확인/증가"""

    def test_try_acquire_increments_until_max(self):
        """max 까지 확보 후 실패"""
        budget = ApiCallBudget(max_calls=2)
        assert budget.try_acquire("search") is True
        assert budget.try_acquire("catalog") is True
        assert budget.try_acquire("catalog") is False
        assert budget.count == 2
        assert budget.skipped == 1
        assert budget.calls_by_label == {"search": 1, "catalog": 1}

    def test_exhausted_budget_never_exceeds_max(self):
        """소진 후 count 는 max 를 넘지 않음"""
        budget = ApiCallBudget(max_calls=7, count=7)
        for _ in range(3):
            assert budget.try_acquire() is False
        assert budget.count == 7
        assert budget.exhausted is True
        assert budget.remaining == 0

    def test_acquire_raises_when_exhausted(self):
        """acquire 는 소진 시 BudgetExhaustedError"""
        budget = ApiCallBudget(max_calls=1)
        budget.acquire("search")
        with pytest.raises(BudgetExhaustedError) as exc_info:
            budget.acquire("catalog")
        assert exc_info.value.count == 1
        assert exc_info.value.max_calls == 1

    def test_to_dict(self):
        budget = ApiCallBudget(max_calls=3)
        budget.try_acquire("search")
        assert budget.to_dict() == {
            "count": 1,
            "max": 3,
            "remaining": 2,
            "skipped": 0,
            "calls_by_label": {"search": 1},
        }

    def test_budgets_are_independent(self):
        """요청마다 별도 인스턴스 (공유 전역 상태 없음)"""
        first = ApiCallBudget(max_calls=1)
        second = ApiCallBudget(max_calls=1)
        first.try_acquire()
        assert second.count == 0
        assert second.calls_by_label == {}
