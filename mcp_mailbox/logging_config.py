"""
mcp_mailbox 패키지 로거 설정

모듈 로거(logging.getLogger(__name__))는 모두 패키지 로거로 전파되므로
레벨과 출력 핸들러는 패키지 로거 한 곳에서 관리
"""

import logging
import sys
from typing import Optional

PACKAGE_LOGGER_NAME = "mcp_mailbox"
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: str, format_string: Optional[str] = None) -> logging.Logger:
    """
    패키지 로거 레벨 설정 (stderr 핸들러는 최초 1회만 추가)

    Args:
        level: 로그 레벨 이름 (GraphConfig.log_level, 알 수 없으면 INFO)
        format_string: 로그 포맷 (기본 DEFAULT_LOG_FORMAT)

    Returns:
        패키지 로거
    """
    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    logger.setLevel(getattr(logging, (level or "INFO").upper(), logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(format_string or DEFAULT_LOG_FORMAT))
        logger.addHandler(handler)

    return logger
