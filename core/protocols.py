"""
Core Protocols - 모듈 간 의존성 추상화를 위한 Protocol 정의

현재 정의:
    - TokenProviderProtocol: mcp_mailbox가 토큰 저장 방식을 직접 알지 않아도 되게 함
    - GraphApiProtocol: FolderResolver / ProgressiveSearchPlanner가 HTTP 구현에 의존하지 않게 함

사용 예시:
    # 테스트용 Mock 주입
    mock_client = MockGraphClient()
    planner = ProgressiveSearchPlanner(mock_client)

    # 기본 사용
    client = GraphApiClient()  # 내부에서 TokenStore 사용
"""

from typing import Protocol, Optional, Dict, Any, List, runtime_checkable


@runtime_checkable
class TokenProviderProtocol(Protocol):
    """
    토큰 제공자 프로토콜

    유효한 액세스 토큰을 돌려주는 인터페이스.
    session.TokenStore가 이 Protocol을 구현합니다.
    """

    async def validate_and_refresh_token(self, user_email: str) -> Optional[str]:
        """
        유효한 액세스 토큰 반환

        Args:
            user_email: 사용자 이메일 (단일 사용자 저장소는 "me")

        Returns:
            유효한 액세스 토큰 또는 None
        """
        ...

    async def close(self) -> None:
        """리소스 정리"""
        ...


@runtime_checkable
class GraphApiProtocol(Protocol):
    """
    Graph API 호출 프로토콜

    GraphApiClient가 이 Protocol을 구현합니다.
    인증 실패는 GraphAuthError, 그 외 2xx가 아닌 응답은 GraphApiError로 raise.
    """

    async def call(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """단일 Graph API 호출"""
        ...

    async def call_paginated(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        max_count: int = 0,
        headers: Optional[Dict[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        """@odata.nextLink를 따라가며 max_count개까지 수집"""
        ...

    async def list_folders(
        self,
        parent_id: Optional[str] = None,
        select: Optional[str] = None,
        filter_query: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """메일 폴더 목록 조회 (parent_id가 None이면 최상위)"""
        ...
