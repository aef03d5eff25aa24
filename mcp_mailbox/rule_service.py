"""
Rule Service - 받은 편지함 규칙 목록/생성/순서 변경
"""

import logging
from typing import Any, Dict, List, Optional

from .graph_api_client import GraphApiError, GraphAuthError
from .mail_formatter import format_rules_list, sort_rules
from .mailbox_types import InboxRule
from .service_base import (
    MailboxServiceBase,
    error_result,
    ERROR_INVALID_ARGUMENT,
    ERROR_FOLDER_NOT_FOUND,
    ERROR_GRAPH_API,
    ERROR_NOT_FOUND,
)

logger = logging.getLogger(__name__)

RULES_PATH = "me/mailFolders/inbox/messageRules"
DEFAULT_RULE_SEQUENCE = 100


class RuleService(MailboxServiceBase):
    """받은 편지함 규칙 서비스"""

    service_name = "RuleService"

    async def _get_rules(self) -> List[InboxRule]:
        data = await self._client.call("GET", RULES_PATH)
        return [InboxRule.from_dict(item) for item in data.get("value") or []]

    async def _next_sequence(self) -> int:
        """기존 규칙의 최대 sequence + 1 (최소 100, 조회 실패 시 100)"""
        try:
            rules = await self._get_rules()
        except GraphAuthError:
            raise
        except GraphApiError as e:
            logger.warning(f"Failed to read existing rules, using default sequence: {e}")
            return DEFAULT_RULE_SEQUENCE

        if not rules:
            return DEFAULT_RULE_SEQUENCE
        highest = max(rule.sequence or 0 for rule in rules)
        return max(highest + 1, DEFAULT_RULE_SEQUENCE)

    async def list_rules(self, include_details: bool = False) -> Dict[str, Any]:
        """
        규칙 목록 (실행 순서대로)

        Args:
            include_details: 조건/동작 표시

        Returns:
            {"success", "message", "rules"}
        """
        self._ensure_initialized()
        try:
            rules = await self._get_rules()
        except GraphApiError as e:
            return self._error_from_exception(e, "listing rules")

        return {
            "success": True,
            "message": format_rules_list(rules, include_details),
            "rules": [rule.to_dict() for rule in sort_rules(rules)],
        }

    async def create_rule(
        self,
        name: str,
        from_addresses: Optional[str] = None,
        contains_subject: Optional[str] = None,
        has_attachments: Optional[bool] = None,
        move_to_folder: Optional[str] = None,
        mark_as_read: Optional[bool] = None,
        is_enabled: bool = True,
        sequence: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        규칙 생성

        조건(from_addresses, contains_subject, has_attachments)과
        동작(move_to_folder, mark_as_read)이 각각 하나 이상 필요

        Args:
            name: 규칙 이름
            from_addresses: 쉼표로 구분된 발신자 주소
            contains_subject: 제목에 포함될 텍스트
            has_attachments: 첨부파일 있는 메일에만 적용
            move_to_folder: 이동할 폴더 이름
            mark_as_read: 읽음 표시
            is_enabled: 생성 후 활성화 여부
            sequence: 실행 순서 (1 이상, 없으면 자동)

        Returns:
            {"success", "message", "rule"}
        """
        self._ensure_initialized()
        if not name:
            return error_result(ERROR_INVALID_ARGUMENT, "Rule name is required.")
        if sequence is not None and sequence < 1:
            return error_result(ERROR_INVALID_ARGUMENT, "Sequence must be a positive number greater than zero.")

        has_condition = bool(from_addresses or contains_subject or has_attachments is True)
        has_action = bool(move_to_folder or mark_as_read is True)
        if not has_condition:
            return error_result(
                ERROR_INVALID_ARGUMENT,
                "At least one condition is required. Specify fromAddresses, containsSubject, or hasAttachments.",
            )
        if not has_action:
            return error_result(
                ERROR_INVALID_ARGUMENT,
                "At least one action is required. Specify moveToFolder or markAsRead.",
            )

        conditions: Dict[str, Any] = {}
        addresses = [item.strip() for item in (from_addresses or "").split(",") if item.strip()]
        if addresses:
            conditions["fromAddresses"] = [
                {"emailAddress": {"name": "", "address": address}} for address in addresses
            ]
        if contains_subject:
            conditions["subjectContains"] = [contains_subject]
        if has_attachments is True:
            conditions["hasAttachment"] = True

        try:
            rule_sequence = sequence if sequence else await self._next_sequence()
            rule_sequence = max(1, int(rule_sequence))

            actions: Dict[str, Any] = {}
            if move_to_folder:
                folder_id = await self._resolver.find_folder_id(move_to_folder)
                if not folder_id:
                    return error_result(
                        ERROR_FOLDER_NOT_FOUND,
                        f'Target folder "{move_to_folder}" not found. Please specify a valid folder name.',
                    )
                actions["moveToFolder"] = folder_id
            if mark_as_read is True:
                actions["markAsRead"] = True

            payload = {
                "displayName": name,
                "isEnabled": is_enabled is not False,
                "sequence": rule_sequence,
                "conditions": conditions,
                "actions": actions,
            }
            created = await self._client.call("POST", RULES_PATH, body=payload)
        except GraphApiError as e:
            return self._error_from_exception(e, "creating rule")

        if not created or not created.get("id"):
            return error_result(ERROR_GRAPH_API, "Failed to create rule. The server didn't return a rule ID.")

        message = f'Successfully created rule "{name}" with sequence {rule_sequence}.'
        if not sequence:
            message += (
                "\n\nTip: You can specify a 'sequence' parameter when creating rules to control "
                "their execution order. Lower sequence numbers run first."
            )

        return {
            "success": True,
            "message": message,
            "rule": InboxRule.from_dict(created).to_dict(),
        }

    async def edit_rule_sequence(self, rule_name: str, sequence: int) -> Dict[str, Any]:
        """
        규칙 실행 순서 변경 (이름 정확히 일치)

        Args:
            rule_name: 규칙 이름
            sequence: 새 sequence (1 이상)

        Returns:
            {"success", "message", "rule_id", "sequence"}
        """
        self._ensure_initialized()
        if not rule_name:
            return error_result(
                ERROR_INVALID_ARGUMENT,
                "Rule name is required. Please specify the exact name of an existing rule.",
            )
        if not sequence or sequence < 1:
            return error_result(
                ERROR_INVALID_ARGUMENT,
                "A positive sequence number is required. Lower numbers run first (higher priority).",
            )

        try:
            rules = await self._get_rules()
            rule = next((item for item in rules if item.display_name == rule_name), None)
            if rule is None:
                return error_result(ERROR_NOT_FOUND, f'Rule with name "{rule_name}" not found.')

            await self._client.call("PATCH", f"{RULES_PATH}/{rule.id}", body={"sequence": sequence})
        except GraphApiError as e:
            return self._error_from_exception(e, "updating rule sequence")

        return {
            "success": True,
            "message": f'Successfully updated the sequence of rule "{rule_name}" to {sequence}.',
            "rule_id": rule.id,
            "sequence": sequence,
        }
