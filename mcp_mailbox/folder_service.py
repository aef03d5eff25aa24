"""
Folder Service - 메일 폴더 목록/생성 및 메일 이동
"""

import logging
from typing import Any, Dict, List, Optional

from .graph_api_client import GraphApiError, GraphAuthError
from .mail_formatter import format_folder_list, format_folder_hierarchy, format_move_result
from .mailbox_types import FOLDER_SELECT_FIELDS, FOLDER_BASIC_FIELDS
from .service_base import (
    MailboxServiceBase,
    error_result,
    ERROR_INVALID_ARGUMENT,
    ERROR_FOLDER_NOT_FOUND,
    ERROR_GRAPH_API,
)

logger = logging.getLogger(__name__)


def split_ids(email_ids: Optional[str]) -> List[str]:
    """쉼표로 구분된 ID 문자열 -> ID 목록 (빈 항목 제외)"""
    if not email_ids:
        return []
    return [item.strip() for item in email_ids.split(",") if item.strip()]


class FolderService(MailboxServiceBase):
    """폴더 서비스"""

    service_name = "FolderService"

    async def list_folders(self, include_item_counts: bool = False, include_children: bool = False) -> Dict[str, Any]:
        """
        폴더 목록 (최상위 + 1단계 하위)

        Args:
            include_item_counts: 전체/읽지 않은 메일 수 표시
            include_children: 들여쓰기 계층 형식으로 표시

        Returns:
            {"success", "message", "folders"}
        """
        self._ensure_initialized()
        select = FOLDER_SELECT_FIELDS if include_item_counts else FOLDER_BASIC_FIELDS

        try:
            folders = await self._resolver.list_all_folders(select=select)
        except GraphApiError as e:
            return self._error_from_exception(e, "listing folders")

        if include_children:
            message = format_folder_hierarchy(folders, include_item_counts)
        else:
            message = format_folder_list(folders, include_item_counts)

        return {
            "success": True,
            "message": message,
            "folders": [folder.to_dict() for folder in folders],
        }

    async def create_folder(self, name: str, parent_folder: Optional[str] = None) -> Dict[str, Any]:
        """
        폴더 생성

        Args:
            name: 새 폴더 이름
            parent_folder: 상위 폴더 이름 (None이면 최상위)

        Returns:
            {"success", "message", "folder"}
        """
        self._ensure_initialized()
        if not name:
            return error_result(ERROR_INVALID_ARGUMENT, "Folder name is required.")

        try:
            if await self._resolver.find_folder_id(name):
                return error_result(ERROR_INVALID_ARGUMENT, f'A folder named "{name}" already exists.')

            path = "me/mailFolders"
            if parent_folder:
                parent_id = await self._resolver.find_folder_id(parent_folder)
                if not parent_id:
                    return error_result(
                        ERROR_FOLDER_NOT_FOUND,
                        f'Parent folder "{parent_folder}" not found. Please specify a valid parent folder '
                        f"or leave it blank to create at the root level.",
                    )
                path = f"me/mailFolders/{parent_id}/childFolders"

            created = await self._client.call("POST", path, body={"displayName": name})
        except GraphApiError as e:
            return self._error_from_exception(e, "creating folder")

        if not created or not created.get("id"):
            return error_result(ERROR_GRAPH_API, "Failed to create folder. The server didn't return a folder ID.")

        location = f'inside "{parent_folder}"' if parent_folder else "at the root level"
        logger.info(f"Created folder {name!r} {location}")
        return {
            "success": True,
            "message": f'Successfully created folder "{name}" {location}.',
            "folder": created,
        }

    async def move_emails(self, email_ids: str, target_folder: str) -> Dict[str, Any]:
        """
        메일 이동 (ID별로 순차 처리, 실패는 모아서 보고)

        Args:
            email_ids: 쉼표로 구분된 메일 ID
            target_folder: 대상 폴더 이름

        Returns:
            {"success", "message", "moved", "errors"}
            success는 한 건 이상 이동했을 때 True
        """
        self._ensure_initialized()
        if not email_ids:
            return error_result(
                ERROR_INVALID_ARGUMENT,
                "Email IDs are required. Please provide a comma-separated list of email IDs to move.",
            )
        if not target_folder:
            return error_result(ERROR_INVALID_ARGUMENT, "Target folder name is required.")

        ids = split_ids(email_ids)
        if not ids:
            return error_result(ERROR_INVALID_ARGUMENT, "No valid email IDs provided.")

        try:
            target_id = await self._resolver.find_folder_id(target_folder)
        except GraphApiError as e:
            return self._error_from_exception(e, "moving emails")
        if not target_id:
            return error_result(
                ERROR_FOLDER_NOT_FOUND,
                f'Target folder "{target_folder}" not found. Please specify a valid folder name.',
            )

        moved: List[str] = []
        failures: List[Dict[str, str]] = []
        for email_id in ids:
            try:
                await self._client.call("POST", f"me/messages/{email_id}/move", body={"destinationId": target_id})
                moved.append(email_id)
            except GraphAuthError as e:
                return self._error_from_exception(e, "moving emails")
            except GraphApiError as e:
                logger.warning(f"Failed to move email {email_id}: {e}")
                failures.append({"id": email_id, "error": str(e)})

        result = {
            "success": bool(moved),
            "message": format_move_result(target_folder, moved, failures),
            "moved": moved,
            "errors": failures,
        }
        if not moved:
            result["error"] = ERROR_GRAPH_API
        return result
