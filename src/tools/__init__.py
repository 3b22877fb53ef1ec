"""
Market snapshot tool modules - organized into sub-packages

Sub-packages:
- scrapers: 검색 프로바이더 호출과 원본 행 수집
- enrichment: 보조 카탈로그/가격 프로바이더 보강
- storage: ASIN 단위 캐시
- utilities: 정규화 (중복 제거, 브랜드, 배송 주체, 카테고리)
- calculators: 순수 계산 (BSR 곡선, 수요, CPI, 검색량, 보정, 불변식, 집계)
"""
