"""
Mailbox Service Base - 서비스 공통 초기화/종료 및 오류 결과 변환

서비스 메서드는 사용자에게 보여줄 오류를 raise하지 않고 결과 dict로 반환:
    {"success": False, "error": <code>, "message": <설명>}
"""

import logging
from typing import Any, Dict, Optional, TYPE_CHECKING

from session.graph_config import GraphConfig, get_graph_config
from .folder_resolver import FolderResolver, FolderNotFoundError
from .graph_api_client import GraphApiClient, GraphApiError, GraphAuthError
from .logging_config import configure_logging

if TYPE_CHECKING:
    from core.protocols import GraphApiProtocol

logger = logging.getLogger(__name__)

# 오류 코드
ERROR_AUTH_REQUIRED = "auth_required"
ERROR_FOLDER_NOT_FOUND = "folder_not_found"
ERROR_INVALID_ARGUMENT = "invalid_argument"
ERROR_GRAPH_API = "graph_api_error"
ERROR_NOT_FOUND = "not_found"

AUTH_REQUIRED_MESSAGE = "Authentication required. Please authenticate first."


def error_result(code: str, message: str, **extra: Any) -> Dict[str, Any]:
    """실패 결과 dict 생성"""
    result = {"success": False, "error": code, "message": message}
    result.update(extra)
    return result


class MailboxServiceBase:
    """
    메일함 서비스 공통 기반

    - graph_client를 주입하지 않으면 initialize()에서 GraphApiClient 생성 (close()에서 정리)
    - 주입된 클라이언트는 호출 측이 수명 관리
    """

    service_name = "MailboxService"

    def __init__(
        self,
        graph_client: Optional["GraphApiProtocol"] = None,
        config: Optional[GraphConfig] = None,
    ):
        self.config = config or get_graph_config()
        self._client = graph_client
        self._owns_client = graph_client is None
        self._resolver: Optional[FolderResolver] = None
        self._initialized = False

    async def initialize(self) -> bool:
        """서비스 초기화"""
        if self._initialized:
            return True

        configure_logging(self.config.log_level)

        if self._client is None:
            client = GraphApiClient(config=self.config)
            if not await client.initialize():
                return False
            self._client = client

        self._resolver = FolderResolver(self._client)
        self._initialized = True
        return True

    def _ensure_initialized(self):
        """초기화 확인"""
        if not self._initialized or not self._client:
            raise RuntimeError(f"{self.service_name} not initialized. Call initialize() first.")

    async def close(self):
        """리소스 정리"""
        if self._client and self._owns_client:
            await self._client.close()
            self._client = None
        self._resolver = None
        self._initialized = False

    def _error_from_exception(self, error: Exception, action: str) -> Dict[str, Any]:
        """
        예외를 실패 결과 dict로 변환

        Args:
            error: GraphAuthError, FolderNotFoundError 또는 GraphApiError
            action: 메시지에 들어갈 작업 설명 (예: "searching emails")
        """
        if isinstance(error, GraphAuthError):
            return error_result(ERROR_AUTH_REQUIRED, AUTH_REQUIRED_MESSAGE)
        if isinstance(error, FolderNotFoundError):
            return error_result(ERROR_FOLDER_NOT_FOUND, str(error))
        if isinstance(error, GraphApiError):
            logger.error(f"{self.service_name} failed {action}: {error}")
            return error_result(ERROR_GRAPH_API, f"Error {action}: {error}", status=error.status)
        raise error
