"""
Market Snapshot Service
메인 진입점

키워드 1건의 시장 스냅샷을 계산해 JSON 으로 출력하거나, API 서버를 실행합니다.
"""

import argparse
import asyncio
import json
import sys

from dotenv import load_dotenv

from src.domain.entities.market import SellerContext, SellerStage
from src.domain.exceptions import MarketSnapshotError
from src.infrastructure.container import Container
from src.monitoring.logger import setup_logging

# 환경 변수 로드
load_dotenv()


async def run_snapshot(
    keyword: str,
    marketplace: str,
    stage: str,
    experience_months: int,
) -> dict:
    """
    스냅샷 1회 계산

    Args:
        keyword: 검색 키워드
        marketplace: 마켓 코드
        stage: 판매자 단계
        experience_months: 판매 경력 (개월)

    Returns:
        직렬화된 MarketSnapshot
    """
    workflow = Container.get_workflow()
    seller_context = SellerContext(stage=SellerStage(stage), experience_months=experience_months)
    try:
        snapshot = await workflow.aggregate(keyword, marketplace, seller_context)
        return snapshot.model_dump(mode="json")
    finally:
        await Container.shutdown()


def run_server(host: str, port: int) -> None:
    """API 서버 실행"""
    import uvicorn

    from src.api.app_factory import create_app

    uvicorn.run(create_app(), host=host, port=port)


def main():
    """메인 함수"""
    parser = argparse.ArgumentParser(
        description="Market Snapshot Service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Compute one snapshot and print it
  python main.py "electric kettle"

  # Different marketplace / seller stage
  python main.py "yoga mat" --marketplace UK --stage established

  # Start the API server
  python main.py --serve
        """,
    )
    parser.add_argument("keyword", nargs="?", help="Keyword to analyse")
    parser.add_argument("--marketplace", help="Marketplace code (default: MARKETPLACE setting)")
    parser.add_argument(
        "--stage",
        choices=[s.value for s in SellerStage],
        default=SellerStage.NEW.value,
        help="Seller stage (default: new)",
    )
    parser.add_argument("--experience-months", type=int, default=0, help="Seller experience in months")
    parser.add_argument("--serve", action="store_true", help="Start the API server")
    parser.add_argument("--summary", action="store_true", help="Print headline metrics only")

    args = parser.parse_args()

    config = Container.get_config()
    setup_logging(config.log_level)

    if args.serve:
        run_server(config.host, config.port)
        return

    if not args.keyword:
        parser.error("keyword is required unless --serve is given")

    try:
        result = asyncio.run(
            run_snapshot(args.keyword, args.marketplace or config.marketplace, args.stage, args.experience_months)
        )
    except MarketSnapshotError as e:
        print(f"Snapshot failed: {type(e).__name__}: {e}", file=sys.stderr)
        sys.exit(1)

    if args.summary:
        result = {
            "keyword": result["keyword"],
            "marketplace": result["marketplace"],
            "total_listings": result["total_listings"],
            "cpi": {"score": result["cpi"]["score"], "label": result["cpi"]["label"]},
            "search_volume": (result.get("search_volume") or {}).get("display"),
            "demand_units": result["demand"]["total_units"],
            "fulfillment_mix": {k: result["fulfillment_mix"][k] for k in ("fba", "fbm", "amazon", "unknown")},
            "overall_confidence": result["overall_confidence"],
            "warnings": result["warnings"],
        }
    print(json.dumps(result, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
