"""
Graph configuration management module.
Graph API 엔드포인트, 토큰 파일 경로, 조회 개수 제한 등 런타임 설정을 담당합니다.
"""

import os
import sys
import logging
from typing import Optional
from dotenv import load_dotenv

# .env 파일에서 환경변수 로드 (프로젝트 루트 기준)
# Use utf-8-sig encoding to handle Windows BOM (Byte Order Mark)
_env_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env")
_env_loaded = load_dotenv(_env_path, encoding="utf-8-sig")
if not _env_loaded:
    print(f"[WARN] .env file not found at: {_env_path}", file=sys.stderr)

logger = logging.getLogger(__name__)

DEFAULT_GRAPH_API_ENDPOINT = "https://graph.microsoft.com/v1.0"
DEFAULT_TOKEN_FILENAME = ".outlook-mcp-keys.json"
DEFAULT_CALENDAR_TIME_ZONE = "Central European Standard Time"


def _default_token_path() -> str:
    home_dir = os.getenv("HOME") or os.getenv("USERPROFILE") or os.path.expanduser("~") or "/tmp"
    return os.path.join(home_dir, DEFAULT_TOKEN_FILENAME)


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"[WARN] Invalid integer for {name}: {raw!r}, using {default}")
        return default


class GraphConfig:
    """Graph API 런타임 설정 클래스"""

    def __init__(
        self,
        graph_api_endpoint: Optional[str] = None,
        token_path: Optional[str] = None,
        user_email: Optional[str] = None,
        request_timeout: Optional[int] = None,
        default_count: Optional[int] = None,
        max_result_count: Optional[int] = None,
        log_level: Optional[str] = None,
        calendar_time_zone: Optional[str] = None,
    ):
        """
        설정 초기화

        우선순위: 1. 매개변수 2. 환경변수 3. 기본값

        Args:
            graph_api_endpoint: Graph API 기본 URL
            token_path: 액세스 토큰 JSON 파일 경로
            user_email: 토큰 조회에 사용할 사용자 ("me"면 단일 사용자)
            request_timeout: 요청 타임아웃 (초)
            default_count: 메일 조회 기본 개수
            max_result_count: 메일 조회 최대 개수
            log_level: 로그 레벨
            calendar_time_zone: 일정 생성/수정 시 사용할 Windows 표준 시간대 이름
        """
        endpoint = graph_api_endpoint or os.getenv("GRAPH_API_ENDPOINT", DEFAULT_GRAPH_API_ENDPOINT)
        self.graph_api_endpoint = endpoint.rstrip("/")
        self.token_path = token_path or os.getenv("OUTLOOK_TOKEN_PATH") or _default_token_path()
        self.user_email = user_email or os.getenv("OUTLOOK_USER_EMAIL", "me")
        self.request_timeout = request_timeout or _int_from_env("GRAPH_REQUEST_TIMEOUT", 30)
        self.default_count = default_count or _int_from_env("OUTLOOK_DEFAULT_COUNT", 10)
        self.max_result_count = max_result_count or _int_from_env("OUTLOOK_MAX_RESULT_COUNT", 50)
        self.log_level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
        self.calendar_time_zone = calendar_time_zone or os.getenv(
            "OUTLOOK_CALENDAR_TIMEZONE", DEFAULT_CALENDAR_TIME_ZONE
        )

    def clamp_count(self, count: Optional[int]) -> int:
        """
        요청 개수를 1..max_result_count 범위로 보정

        Args:
            count: 요청 개수 (None이면 default_count)

        Returns:
            보정된 개수
        """
        if not count:
            count = self.default_count
        return max(1, min(int(count), self.max_result_count))

    def __repr__(self) -> str:
        return (
            f"GraphConfig(endpoint={self.graph_api_endpoint!r}, token_path={self.token_path!r}, "
            f"user_email={self.user_email!r}, timeout={self.request_timeout})"
        )


_config: Optional[GraphConfig] = None


def get_graph_config() -> GraphConfig:
    """모듈 단위 기본 설정 인스턴스 반환 (최초 호출 시 생성)"""
    global _config
    if _config is None:
        _config = GraphConfig()
    return _config
