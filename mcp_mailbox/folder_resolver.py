"""
Folder Resolver - 폴더 이름을 messages 엔드포인트로 변환

해석 순서 (먼저 찾은 단계에서 종료):
    1. 빈 값 -> inbox
    2. 잘 알려진 별칭 (inbox, drafts, sent, deleted, junk, archive) -> 원격 호출 없음
    3. displayName 정확히 일치 ($filter)
    4. 최상위 폴더 대소문자 무시 비교
    5. 최상위 + 1단계 하위 폴더 대소문자 무시 비교
    6. FolderNotFoundError

캐시 없음: 매 호출마다 다시 조회
"""

import asyncio
import logging
from typing import List, Optional, TYPE_CHECKING

from .graph_api_client import GraphApiError, GraphAuthError
from .graph_query_params import escape_odata_string
from .mailbox_types import WELL_KNOWN_FOLDERS, FOLDER_SELECT_FIELDS, MailFolder

if TYPE_CHECKING:
    from core.protocols import GraphApiProtocol

logger = logging.getLogger(__name__)


class FolderNotFoundError(LookupError):
    """이름으로 폴더를 찾지 못함 (사용자가 수정 가능한 오류)"""

    def __init__(self, folder_name: str):
        self.folder_name = folder_name
        super().__init__(
            f'Folder "{folder_name}" not found. Use list-folders to see available folders.'
        )


def folder_messages_path(folder_id: str) -> str:
    return f"me/mailFolders/{folder_id}/messages"


class FolderResolver:
    """폴더 이름/별칭 -> Graph messages 엔드포인트"""

    def __init__(self, graph_client: "GraphApiProtocol"):
        self.graph_client = graph_client

    async def resolve_folder_path(self, folder_name: Optional[str]) -> str:
        """
        폴더 이름을 messages 엔드포인트로 변환

        Args:
            folder_name: 폴더 표시 이름 또는 별칭 (None/빈 값이면 inbox)

        Returns:
            "me/mailFolders/inbox/messages" 또는 "me/mailFolders/{id}/messages"

        Raises:
            FolderNotFoundError: 어느 단계에서도 찾지 못한 경우
            GraphAuthError: 인증 실패 (흡수하지 않음)
        """
        if not folder_name:
            return WELL_KNOWN_FOLDERS["inbox"]

        alias_path = WELL_KNOWN_FOLDERS.get(folder_name.lower())
        if alias_path:
            return alias_path

        folder_id = await self.find_folder_id(folder_name)
        if folder_id:
            return folder_messages_path(folder_id)

        raise FolderNotFoundError(folder_name)

    async def find_folder_id(self, folder_name: str) -> Optional[str]:
        """
        표시 이름으로 폴더 ID 조회 (별칭 처리 없음)

        Args:
            folder_name: 폴더 표시 이름

        Returns:
            폴더 ID 또는 None
        """
        lower_name = folder_name.lower()

        # 정확히 일치
        try:
            folders = await self.graph_client.list_folders(
                select=None,
                filter_query=f"displayName eq '{escape_odata_string(folder_name)}'",
            )
            if folders:
                return folders[0].get("id")
        except GraphAuthError:
            raise
        except GraphApiError as e:
            logger.debug(f"Exact folder lookup failed for {folder_name!r}: {e}")

        # 최상위 폴더, 대소문자 무시
        try:
            folders = await self.graph_client.list_folders(select=None)
            for folder in folders:
                if (folder.get("displayName") or "").lower() == lower_name:
                    return folder.get("id")
        except GraphAuthError:
            raise
        except GraphApiError as e:
            logger.debug(f"Top-level folder scan failed for {folder_name!r}: {e}")

        # 하위 폴더 포함
        for folder in await self.list_all_folders():
            if folder.display_name.lower() == lower_name:
                return folder.id

        logger.info(f"Folder not found: {folder_name!r}")
        return None

    async def list_all_folders(self, select: str = FOLDER_SELECT_FIELDS) -> List[MailFolder]:
        """
        최상위 폴더와 1단계 하위 폴더 조회

        하위 폴더 조회는 동시에 수행하며, 실패한 폴더는 하위 항목 없이 처리

        Args:
            select: $select 필드

        Returns:
            최상위 폴더 (is_top_level=True) 다음에 하위 폴더 (parent_folder_name 설정)
        """
        try:
            top_level_data = await self.graph_client.list_folders(select=select)
        except GraphAuthError:
            raise
        except GraphApiError as e:
            logger.warning(f"Failed to list mail folders: {e}")
            return []

        top_level = [MailFolder.from_dict(item) for item in top_level_data]
        for folder in top_level:
            folder.is_top_level = True

        parents = [folder for folder in top_level if folder.child_folder_count > 0]
        # 모든 하위 조회가 끝난 뒤 첫 번째 예외(인증 오류)를 다시 발생
        child_groups = await asyncio.gather(
            *(self._list_child_folders(parent, select) for parent in parents),
            return_exceptions=True,
        )
        for group in child_groups:
            if isinstance(group, BaseException):
                raise group

        children = [child for group in child_groups for child in group]
        return top_level + children

    async def _list_child_folders(self, parent: MailFolder, select: str) -> List[MailFolder]:
        try:
            data = await self.graph_client.list_folders(parent_id=parent.id, select=select)
        except GraphAuthError:
            raise
        except GraphApiError as e:
            logger.debug(f"Failed to list child folders of {parent.display_name!r}: {e}")
            return []

        children = [MailFolder.from_dict(item) for item in data]
        for child in children:
            child.parent_folder_name = parent.display_name
        return children
