"""
Graph API Client
Microsoft Graph REST 호출 및 페이지네이션 처리

역할:
    - 인증 처리 (TokenProviderProtocol 활용)
    - 경로 + OData 파라미터로 Graph API 호출
    - @odata.nextLink 페이지네이션
    - 폴더 목록 조회 (최대 100개)

에러:
    - GraphAuthError: 토큰 없음/만료 또는 HTTP 401
    - GraphApiError: 그 외 2xx가 아닌 응답, 네트워크 오류
"""

import asyncio
import json
import logging
from typing import Dict, Any, List, Optional, TYPE_CHECKING
from urllib.parse import quote

import aiohttp

if TYPE_CHECKING:
    from core.protocols import TokenProviderProtocol

from session.graph_config import GraphConfig, get_graph_config
from .mailbox_types import FOLDER_SELECT_FIELDS

logger = logging.getLogger(__name__)

FOLDER_LIST_LIMIT = 100


class GraphApiError(Exception):
    """Graph API 호출 실패 (status가 None이면 네트워크 오류)"""

    def __init__(self, message: str, status: Optional[int] = None, details: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.details = details

    @property
    def kind(self) -> str:
        """실패 유형 분류 (진단용)"""
        if self.status is None:
            return "network"
        if self.status == 400:
            return "bad_request"
        if self.status == 429:
            return "throttled"
        if self.status >= 500:
            return "server"
        return "api"


class GraphAuthError(GraphApiError):
    """인증 필요 - 다른 전략으로 재시도해도 해결되지 않음"""

    def __init__(self, message: str = "Authentication required", status: Optional[int] = None):
        super().__init__(message, status=status)

    @property
    def kind(self) -> str:
        return "unauthorized"


class GraphApiClient:
    """Graph API 클라이언트 - GraphApiProtocol 구현"""

    def __init__(
        self,
        token_provider: Optional["TokenProviderProtocol"] = None,
        user_email: Optional[str] = None,
        config: Optional[GraphConfig] = None,
    ):
        """
        클라이언트 초기화

        Args:
            token_provider: 토큰 제공자 (None이면 기본 TokenStore 사용)
            user_email: 토큰 조회용 사용자 (None이면 설정값)
            config: GraphConfig (None이면 기본 설정)
        """
        self.config = config or get_graph_config()
        if token_provider is None:
            from session.token_store import TokenStore
            token_provider = TokenStore(config=self.config)
        self.token_provider = token_provider
        self.user_email = user_email or self.config.user_email
        self._session: Optional[aiohttp.ClientSession] = None
        self._initialized = False

    async def initialize(self) -> bool:
        """클라이언트 초기화"""
        if self._initialized:
            return True

        self._session = aiohttp.ClientSession()
        self._initialized = True
        logger.info("GraphApiClient initialized")
        return True

    async def close(self):
        """리소스 정리"""
        if self._session:
            await self._session.close()
            self._session = None
        self._initialized = False

    async def _get_access_token(self) -> str:
        """
        유효한 액세스 토큰 조회

        Returns:
            액세스 토큰

        Raises:
            GraphAuthError: 토큰이 없거나 만료된 경우
        """
        access_token = await self.token_provider.validate_and_refresh_token(self.user_email)
        if not access_token:
            raise GraphAuthError("Authentication required")
        return access_token

    def build_url(self, path: str) -> str:
        """
        상대 경로를 전체 URL로 변환 (nextLink 같은 전체 URL은 그대로)

        Args:
            path: "me/messages" 형식의 경로 또는 전체 URL

        Returns:
            전체 URL
        """
        if path.startswith("http://") or path.startswith("https://"):
            return path
        encoded = "/".join(quote(segment, safe="") for segment in path.strip("/").split("/"))
        return f"{self.config.graph_api_endpoint}/{encoded}"

    @staticmethod
    def _stringify_params(params: Optional[Dict[str, Any]]) -> Optional[Dict[str, str]]:
        if not params:
            return None
        result = {}
        for key, value in params.items():
            if value is None:
                continue
            if isinstance(value, bool):
                result[key] = str(value).lower()
            else:
                result[key] = str(value)
        return result

    async def call(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        Graph API 요청 수행

        Args:
            method: HTTP 메서드 (GET, POST, PATCH, DELETE)
            path: API 경로 또는 전체 URL
            body: JSON 본문 (POST/PATCH/PUT)
            params: OData 쿼리 파라미터
            headers: 추가 헤더 (예: ConsistencyLevel)

        Returns:
            JSON 응답 (본문이 없으면 빈 dict)

        Raises:
            GraphAuthError: 인증 실패
            GraphApiError: 그 외 실패
        """
        if not self._initialized:
            await self.initialize()

        access_token = await self._get_access_token()

        request_headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }
        if headers:
            request_headers.update(headers)

        url = self.build_url(path)
        method = method.upper()
        json_body = body if body is not None and method in ("POST", "PATCH", "PUT") else None

        try:
            async with self._session.request(
                method,
                url,
                params=self._stringify_params(params),
                json=json_body,
                headers=request_headers,
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout),
            ) as response:
                text = await response.text()

                if 200 <= response.status < 300:
                    if not text:
                        return {}
                    try:
                        return json.loads(text)
                    except json.JSONDecodeError as e:
                        raise GraphApiError(
                            "Error parsing API response", status=response.status, details=text[:200]
                        ) from e

                if response.status == 401:
                    raise GraphAuthError("UNAUTHORIZED", status=401)

                logger.debug(f"Graph API {method} {url} failed: {response.status} - {text[:200]}")
                raise GraphApiError(
                    f"API call failed with status {response.status}: {text[:500]}",
                    status=response.status,
                    details=text,
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise GraphApiError(f"Network error during API call: {e}") from e

    async def call_paginated(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        max_count: int = 0,
        headers: Optional[Dict[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        """
        @odata.nextLink를 따라가며 항목 수집

        Args:
            path: API 경로
            params: 첫 페이지 쿼리 파라미터 (nextLink에는 이미 포함됨)
            max_count: 최대 항목 수 (0이면 전체)
            headers: 추가 헤더 (모든 페이지에 적용)

        Returns:
            수집된 항목 (max_count로 잘라냄)
        """
        items: List[Dict[str, Any]] = []
        current_path = path
        current_params = params
        pages = 0

        while True:
            data = await self.call("GET", current_path, params=current_params, headers=headers)
            pages += 1
            page_items = data.get("value")
            if isinstance(page_items, list):
                items.extend(page_items)

            if max_count > 0 and len(items) >= max_count:
                break

            next_link = data.get("@odata.nextLink")
            if not next_link:
                break
            current_path = next_link
            current_params = None

        if max_count > 0:
            items = items[:max_count]

        logger.debug(f"Fetched {len(items)} item(s) from {path} in {pages} page(s)")
        return items

    async def list_folders(
        self,
        parent_id: Optional[str] = None,
        select: Optional[str] = FOLDER_SELECT_FIELDS,
        filter_query: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        메일 폴더 목록 조회 (최대 100개, 페이지네이션 없음)

        Args:
            parent_id: 상위 폴더 ID (None이면 최상위 폴더)
            select: $select 필드
            filter_query: $filter (예: displayName eq 'Invoices')

        Returns:
            Graph mailFolder dict 목록
        """
        path = f"me/mailFolders/{parent_id}/childFolders" if parent_id else "me/mailFolders"
        params: Dict[str, Any] = {"$top": FOLDER_LIST_LIMIT}
        if select:
            params["$select"] = select
        if filter_query:
            params["$filter"] = filter_query

        data = await self.call("GET", path, params=params)
        return data.get("value") or []
