"""
Token Store
JSON 토큰 파일에서 액세스 토큰을 읽어 Graph 호출에 제공

파일 형식 (단일 사용자):
    {"access_token": "...", "refresh_token": "...", "expires_at": 1735689600000}

파일 형식 (다중 사용자, 이메일 키):
    {"user@example.com": {"access_token": "...", "expires_at": ...}}

expires_at은 epoch milliseconds. 토큰 발급/갱신(OAuth)은 이 모듈의 범위가 아님.
"""

import json
import logging
import os
import time
from typing import Optional, Dict, Any

from .graph_config import GraphConfig, get_graph_config

logger = logging.getLogger(__name__)


class TokenStore:
    """파일 기반 토큰 제공자 - TokenProviderProtocol 구현"""

    def __init__(self, token_path: Optional[str] = None, config: Optional[GraphConfig] = None):
        """
        토큰 저장소 초기화

        Args:
            token_path: 토큰 파일 경로 (None이면 설정값 사용)
            config: GraphConfig 인스턴스 (None이면 기본 설정)
        """
        config = config or get_graph_config()
        self.token_path = token_path or config.token_path
        self._cached: Dict[str, Dict[str, Any]] = {}

    def _read_file(self) -> Optional[Dict[str, Any]]:
        if not os.path.exists(self.token_path):
            logger.warning(f"Token file not found: {self.token_path}")
            return None
        try:
            with open(self.token_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read token file {self.token_path}: {e}")
            return None

    @staticmethod
    def is_token_expired(expires_at: Optional[float]) -> bool:
        """
        토큰 만료 여부 확인

        Args:
            expires_at: 만료 시각 (epoch ms), None이면 만료되지 않은 것으로 간주

        Returns:
            만료 여부
        """
        if not expires_at:
            return False
        return time.time() * 1000 > float(expires_at)

    def get_token(self, user_email: str = "me") -> Optional[Dict[str, Any]]:
        """
        사용자의 토큰 정보 조회

        Args:
            user_email: 사용자 이메일 ("me"면 단일 사용자 형식)

        Returns:
            토큰 정보 딕셔너리 또는 None
        """
        data = self._read_file()
        if not data:
            return None

        if "access_token" in data:
            token_info = data
        else:
            token_info = data.get(user_email) or data.get(user_email.lower())

        if not isinstance(token_info, dict) or not token_info.get("access_token"):
            logger.warning(f"No token found for {user_email}")
            return None

        return token_info

    async def validate_and_refresh_token(self, user_email: str = "me") -> Optional[str]:
        """
        유효한 액세스 토큰 반환

        만료된 토큰은 None을 반환 (재인증 필요)

        Args:
            user_email: 사용자 이메일

        Returns:
            유효한 액세스 토큰 또는 None
        """
        cached = self._cached.get(user_email)
        if cached and not self.is_token_expired(cached.get("expires_at")):
            return cached["access_token"]

        self._cached.pop(user_email, None)
        token_info = self.get_token(user_email)
        if not token_info:
            return None

        if self.is_token_expired(token_info.get("expires_at")):
            logger.error(f"Token expired for {user_email}, re-authentication required")
            return None

        self._cached[user_email] = token_info
        return token_info["access_token"]

    async def close(self) -> None:
        """리소스 정리"""
        self._cached.clear()
