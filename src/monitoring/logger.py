"""
Pipeline Logger
집계 파이프라인 로깅 설정 및 필터
"""

import logging
import re
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any


class SensitiveDataFilter(logging.Filter):
    """
    프로바이더 자격 증명 및 민감 정보를 마스킹하는 로깅 필터

    마스킹 대상:
    - 검색 프로바이더 api_key 쿼리 파라미터
    - 카탈로그 프로바이더 액세스 토큰 (Atza|...)
    - 일반 API 키/토큰/비밀번호 패턴
    """

    PATTERNS = [
        # api_key=... in provider URLs
        (r"(?i)([?&]api_key=)[^&\s\"']+", r"\1****"),
        # LWA access / refresh tokens
        (r"Atz[ar]\|[a-zA-Z0-9_\-\.\|]{10,}", "Atza|****"),
        # x-amz-access-token header values
        (r"(?i)(x-amz-access-token[\"']?\s*[:=]\s*[\"']?)[^\s\"',}]+", r"\1****"),
        # Generic API key/token/secret patterns
        (
            r'(?i)(api[_-]?key|token|secret|password)["\']?\s*[:=]\s*["\']?([a-zA-Z0-9_\-]{16,})["\']?',
            r"\1=****",
        ),
        # Bearer tokens
        (r"Bearer\s+[a-zA-Z0-9_\-\.]{20,}", "Bearer ****"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        """
        로그 레코드의 메시지에서 민감 정보 마스킹

        Returns:
            True (항상 로그 통과, 메시지만 수정)
        """
        if record.msg:
            record.msg = self._mask_text(str(record.msg))

        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._mask_value(v) for k, v in record.args.items()}
            elif isinstance(record.args, tuple):
                record.args = tuple(self._mask_value(arg) for arg in record.args)

        return True

    def _mask_text(self, text: str) -> str:
        for pattern, replacement in self.PATTERNS:
            text = re.sub(pattern, replacement, text)
        return text

    def _mask_value(self, value: Any) -> Any:
        """개별 값 마스킹"""
        if isinstance(value, str):
            return self._mask_text(value)
        if isinstance(value, dict):
            return {k: self._mask_value(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return type(value)(self._mask_value(item) for item in value)
        return value


class ErrorDeduplicationFilter(logging.Filter):
    """
    동일 경고/에러 메시지 중복 제거 필터

    배치별 프로바이더 실패처럼 같은 경고가 짧은 시간 내 반복될 때 로그 폭주를 방지합니다.
    window_seconds 이내에 max_count 를 넘는 동일 메시지는 억제하고 요약만 남깁니다.

    Usage:
        dedup_filter = ErrorDeduplicationFilter(window_seconds=60, max_count=3)
        handler.addFilter(dedup_filter)
    """

    def __init__(self, window_seconds: int = 60, max_count: int = 3, name: str = ""):
        super().__init__(name)
        self.window_seconds = window_seconds
        self.max_count = max_count
        # {message_key: {"count": int, "first_seen": float, "suppressed": int}}
        self._seen: dict[str, dict[str, Any]] = {}

    def _message_key(self, record: logging.LogRecord) -> str:
        """숫자/ASIN 을 정규화하여 유사 메시지 그룹화"""
        msg = str(record.msg)
        normalized = re.sub(r"\b[A-Z0-9]{10}\b", "<ASIN>", msg)
        normalized = re.sub(r"\d+(\.\d+)?", "<NUM>", normalized)
        return f"{record.levelno}:{normalized[:200]}"

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Returns:
            True: 로그 통과
            False: 로그 억제
        """
        # DEBUG/INFO는 필터링하지 않음
        if record.levelno < logging.WARNING:
            return True

        now = time.time()
        key = self._message_key(record)
        self._cleanup(now)

        entry = self._seen.get(key)
        if entry is None:
            self._seen[key] = {"count": 1, "first_seen": now, "suppressed": 0}
            return True

        entry["count"] += 1
        if entry["count"] <= self.max_count:
            return True

        entry["suppressed"] += 1
        if entry["suppressed"] == 1 or entry["suppressed"] % 10 == 0:
            record.msg = f"[Dedup] {entry['suppressed']}건 동일 로그 억제됨 (원본: {str(record.msg)[:100]})"
            return True
        return False

    def _cleanup(self, now: float) -> None:
        """만료된 항목 정리"""
        expired = [k for k, e in self._seen.items() if now - e["first_seen"] > self.window_seconds]
        for key in expired:
            entry = self._seen.pop(key)
            if entry["suppressed"] > 0:
                logging.getLogger(__name__).info(
                    f"[Dedup Summary] {entry['suppressed']}건 동일 로그가 "
                    f"{self.window_seconds}초 내 억제되었습니다"
                )

    def get_stats(self) -> dict[str, Any]:
        return {
            "tracked_messages": len(self._seen),
            "total_suppressed": sum(e["suppressed"] for e in self._seen.values()),
            "window_seconds": self.window_seconds,
            "max_count": self.max_count,
        }


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logging(
    level: str = "INFO",
    log_dir: str | Path | None = None,
    logger_name: str = "src",
) -> logging.Logger:
    """
    파이프라인 로거 설정

    콘솔(및 선택적으로 일별 파일) 핸들러에 마스킹/중복 제거 필터를 적용합니다.
    여러 번 호출해도 핸들러가 중복되지 않습니다.

    Args:
        level: 로그 레벨 (DEBUG / INFO / WARNING ...)
        log_dir: 파일 로그 디렉토리 (None 이면 콘솔만)
        logger_name: 설정할 상위 로거 이름

    Returns:
        설정된 로거
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers = []

    sensitive_filter = SensitiveDataFilter()
    dedup_filter = ErrorDeduplicationFilter(window_seconds=60, max_count=3)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    console_handler.addFilter(sensitive_filter)
    console_handler.addFilter(dedup_filter)
    logger.addHandler(console_handler)

    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        today = datetime.now().strftime("%Y-%m-%d")
        file_handler = logging.FileHandler(log_path / f"{logger_name}_{today}.log", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.addFilter(sensitive_filter)
        file_handler.addFilter(dedup_filter)
        logger.addHandler(file_handler)

    return logger
