"""
Mail Service - 메일 조회/검색/읽기/발송 서비스
FolderResolver + ProgressiveSearchPlanner + GraphApiClient Facade
"""

import logging
from typing import Any, Dict, List, Optional

from .folder_resolver import FolderNotFoundError
from .graph_api_client import GraphApiError, GraphAuthError
from .graph_query_params import build_base_params, ORDER_BY_RECEIVED_DESC
from .mail_formatter import (
    format_email_list,
    format_search_results,
    format_email_detail,
    format_send_summary,
)
from .mailbox_types import SearchTerms, FilterTerms, EMAIL_DETAIL_FIELDS
from .progressive_search import ProgressiveSearchPlanner
from .service_base import (
    MailboxServiceBase,
    error_result,
    ERROR_INVALID_ARGUMENT,
    ERROR_NOT_FOUND,
)

logger = logging.getLogger(__name__)

VALID_IMPORTANCE = ("normal", "high", "low")
INVALID_MESSAGE_ID_TEXT = "doesn't belong to the targeted mailbox"
INVALID_MESSAGE_ID_MESSAGE = (
    "The email ID seems invalid or doesn't belong to your mailbox. Please try with a different email ID."
)


def parse_recipients(addresses: Optional[str]) -> List[Dict[str, Any]]:
    """쉼표로 구분된 주소 -> Graph recipient 목록"""
    if not addresses:
        return []
    return [
        {"emailAddress": {"address": address.strip()}}
        for address in addresses.split(",")
        if address.strip()
    ]


class MailService(MailboxServiceBase):
    """메일 서비스"""

    service_name = "MailService"

    def _planner(self) -> ProgressiveSearchPlanner:
        return ProgressiveSearchPlanner(self._client)

    def _invalid_message_id(self, error: GraphApiError) -> bool:
        return error.status == 404 or INVALID_MESSAGE_ID_TEXT in str(error)

    async def list_emails(self, folder: Optional[str] = None, count: Optional[int] = None) -> Dict[str, Any]:
        """
        폴더의 최근 메일 목록

        Args:
            folder: 폴더 이름 또는 별칭 (기본 inbox)
            count: 조회 개수 (기본 10, 최대 50)

        Returns:
            {"success", "message", "folder", "emails"}
        """
        self._ensure_initialized()
        folder = folder or "inbox"
        max_count = self.config.clamp_count(count)

        try:
            endpoint = await self._resolver.resolve_folder_path(folder)
            emails = await self._client.call_paginated(
                endpoint,
                params=build_base_params(max_count, order_by=ORDER_BY_RECEIVED_DESC),
                max_count=max_count,
            )
        except (GraphApiError, FolderNotFoundError) as e:
            return self._error_from_exception(e, "listing emails")

        return {
            "success": True,
            "message": format_email_list(emails, folder),
            "folder": folder,
            "emails": emails,
        }

    async def search_emails(
        self,
        query: Optional[str] = None,
        folder: Optional[str] = None,
        from_address: Optional[str] = None,
        to: Optional[str] = None,
        subject: Optional[str] = None,
        has_attachments: Optional[bool] = None,
        unread_only: Optional[bool] = None,
        count: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        단계적 메일 검색

        Args:
            query: 자유 텍스트
            folder: 검색 폴더 (기본 inbox)
            from_address: 발신자 주소 또는 이름
            to: 수신자 주소 또는 이름
            subject: 제목
            has_attachments: 첨부파일 있는 메일만
            unread_only: 읽지 않은 메일만
            count: 최대 결과 수 (기본 10, 최대 50)

        Returns:
            {"success", "message", "folder", "emails", "strategies", "attempts", "failed"}
        """
        self._ensure_initialized()
        folder = folder or "inbox"
        max_count = self.config.clamp_count(count)

        search_terms = SearchTerms(query=query, from_address=from_address, to=to, subject=subject)
        filter_terms = FilterTerms(has_attachments=has_attachments, unread_only=unread_only)

        try:
            endpoint = await self._resolver.resolve_folder_path(folder)
            result = await self._planner().search(endpoint, search_terms, filter_terms, max_count)
        except (GraphApiError, FolderNotFoundError) as e:
            return self._error_from_exception(e, "searching emails")

        return {
            "success": True,
            "message": format_search_results(result),
            "folder": folder,
            "emails": result.items,
            "strategies": result.attempt_log.strategies,
            "attempts": [attempt.to_dict() for attempt in result.attempt_log.attempts],
            "failed": result.failed,
        }

    async def read_email(self, message_id: str) -> Dict[str, Any]:
        """
        메일 상세 조회

        Args:
            message_id: 메일 ID

        Returns:
            {"success", "message", "email"}
        """
        self._ensure_initialized()
        if not message_id:
            return error_result(ERROR_INVALID_ARGUMENT, "Email ID is required.")

        try:
            email = await self._client.call(
                "GET", f"me/messages/{message_id}", params={"$select": EMAIL_DETAIL_FIELDS}
            )
        except GraphApiError as e:
            if not isinstance(e, GraphAuthError) and self._invalid_message_id(e):
                return error_result(ERROR_NOT_FOUND, INVALID_MESSAGE_ID_MESSAGE)
            return self._error_from_exception(e, "reading email")

        if not email:
            return error_result(ERROR_NOT_FOUND, f"Email with ID {message_id} not found.")

        return {
            "success": True,
            "message": format_email_detail(email),
            "email": email,
        }

    async def mark_as_read(self, message_id: str, is_read: bool = True) -> Dict[str, Any]:
        """
        읽음/안읽음 표시

        Args:
            message_id: 메일 ID
            is_read: True면 읽음, False면 안읽음

        Returns:
            {"success", "message", "id", "is_read"}
        """
        self._ensure_initialized()
        if not message_id:
            return error_result(ERROR_INVALID_ARGUMENT, "Email ID is required.")

        try:
            await self._client.call("PATCH", f"me/messages/{message_id}", body={"isRead": is_read})
        except GraphApiError as e:
            if not isinstance(e, GraphAuthError) and self._invalid_message_id(e):
                return error_result(ERROR_NOT_FOUND, INVALID_MESSAGE_ID_MESSAGE)
            return self._error_from_exception(e, "marking email")

        status = "read" if is_read else "unread"
        return {
            "success": True,
            "message": f"Email successfully marked as {status}.",
            "id": message_id,
            "is_read": is_read,
        }

    async def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        cc: Optional[str] = None,
        bcc: Optional[str] = None,
        importance: Optional[str] = None,
        save_to_sent_items: bool = True,
    ) -> Dict[str, Any]:
        """
        메일 발송

        Args:
            to: 쉼표로 구분된 수신자
            subject: 제목
            body: 본문 ("<html"을 포함하면 HTML로 발송)
            cc: 쉼표로 구분된 참조
            bcc: 쉼표로 구분된 숨은 참조
            importance: normal, high, low (기본 normal)
            save_to_sent_items: 보낸 편지함 저장 여부

        Returns:
            {"success", "message", "recipients"}
        """
        self._ensure_initialized()
        if not to:
            return error_result(ERROR_INVALID_ARGUMENT, "Recipient (to) is required.")
        if not subject:
            return error_result(ERROR_INVALID_ARGUMENT, "Subject is required.")
        if not body:
            return error_result(ERROR_INVALID_ARGUMENT, "Body content is required.")

        importance = importance or "normal"
        if importance not in VALID_IMPORTANCE:
            return error_result(
                ERROR_INVALID_ARGUMENT,
                f"Invalid importance '{importance}'. Use one of: {', '.join(VALID_IMPORTANCE)}.",
            )

        to_recipients = parse_recipients(to)
        cc_recipients = parse_recipients(cc)
        bcc_recipients = parse_recipients(bcc)
        if not to_recipients:
            return error_result(ERROR_INVALID_ARGUMENT, "Recipient (to) is required.")

        message: Dict[str, Any] = {
            "subject": subject,
            "body": {
                "contentType": "html" if "<html" in body else "text",
                "content": body,
            },
            "toRecipients": to_recipients,
            "importance": importance,
        }
        if cc_recipients:
            message["ccRecipients"] = cc_recipients
        if bcc_recipients:
            message["bccRecipients"] = bcc_recipients

        payload = {"message": message, "saveToSentItems": save_to_sent_items is not False}

        try:
            await self._client.call("POST", "me/sendMail", body=payload)
        except GraphApiError as e:
            return self._error_from_exception(e, "sending email")

        logger.info(f"Email sent to {len(to_recipients)} recipient(s): {subject!r}")
        return {
            "success": True,
            "message": format_send_summary(
                subject, len(to_recipients), len(cc_recipients), len(bcc_recipients), len(body)
            ),
            "recipients": {
                "to": len(to_recipients),
                "cc": len(cc_recipients),
                "bcc": len(bcc_recipients),
            },
        }
