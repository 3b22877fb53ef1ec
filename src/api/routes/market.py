"""
Market Snapshot Routes
======================
키워드 시장 스냅샷 조회 엔드포인트 (/api/market/snapshot)

응답은 MarketSnapshot 그대로이며, 소비자는 CPI/수요 필드를 재계산하지 않습니다.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from src.api.dependencies import get_app_config, get_workflow, limiter
from src.application.workflows.market_snapshot_workflow import MarketSnapshotWorkflow
from src.domain.entities.market import SellerContext, SellerStage
from src.domain.exceptions import (
    ConfigurationError,
    EstimationError,
    NoListingsExtractedError,
    ProviderError,
    ProviderUnavailableError,
)
from src.infrastructure.config.config_manager import AppConfig
from src.shared.constants import MARKETPLACES

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/market", tags=["Market"])


@router.get("/snapshot")
@limiter.limit("30/minute")
async def get_market_snapshot(
    request: Request,
    keyword: str = Query(..., min_length=1, max_length=200, description="검색 키워드"),
    marketplace: str | None = Query(default=None, max_length=4, description="마켓 코드 (기본값: MARKETPLACE 설정)"),
    stage: SellerStage = Query(default=SellerStage.NEW, description="판매자 단계"),
    experience_months: int = Query(default=0, ge=0, le=600, description="판매 경력 (개월)"),
    workflow: MarketSnapshotWorkflow = Depends(get_workflow),
    config: AppConfig = Depends(get_app_config),
):
    """
    키워드 시장 스냅샷 조회

    - 캐시 HIT: 저장된 스냅샷 (판매자 단계가 다르면 CPI 보정만 교체)
    - 캐시 STALE: 이전 스냅샷 즉시 반환 + 백그라운드 갱신
    - 캐시 MISS: 전체 계산 (동일 키 동시 요청은 1회만 계산)
    """
    marketplace = (marketplace or config.marketplace).upper()
    if marketplace not in MARKETPLACES:
        raise HTTPException(status_code=400, detail=f"Unsupported marketplace: {marketplace}")

    seller_context = SellerContext(stage=stage, experience_months=experience_months)
    try:
        snapshot = await workflow.aggregate(keyword, marketplace, seller_context)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except NoListingsExtractedError as e:
        logger.warning(f"No listings extracted for '{keyword}': {e}")
        raise HTTPException(
            status_code=422,
            detail={"error": "no_listings_extracted", "raw_result_count": e.raw_result_count},
        ) from e
    except EstimationError as e:
        logger.error(f"Estimation failed for '{keyword}' at {e.stage}: {e}")
        raise HTTPException(
            status_code=500,
            detail={"error": "estimation_failed", "stage": e.stage},
        ) from e
    except ProviderUnavailableError as e:
        raise HTTPException(
            status_code=503,
            detail={"error": "provider_unavailable", "provider": e.provider},
        ) from e
    except ProviderError as e:
        raise HTTPException(
            status_code=502,
            detail={"error": "provider_error", "provider": e.provider, "status_code": e.status_code},
        ) from e
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        raise HTTPException(status_code=503, detail={"error": "not_configured"}) from e

    return snapshot.model_dump(mode="json")
