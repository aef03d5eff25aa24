"""
Mail Formatter - 서비스 결과를 사람이 읽을 수 있는 텍스트로 변환

모든 함수는 부수효과 없는 순수 함수
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from .mailbox_types import (
    SearchResult,
    MailFolder,
    InboxRule,
    CalendarEvent,
    OutlookCategory,
    WELL_KNOWN_FOLDER_NAMES,
)

MAX_LISTED_ERRORS = 3
UNSEQUENCED_RULE_ORDER = 9999

_HTML_TAG_PATTERN = re.compile(r"<[^>]*>")
# Graph는 소수 초를 7자리로 반환 (fromisoformat은 최대 6자리)
_LONG_FRACTION_PATTERN = re.compile(r"(\.\d{6})\d+")


def strip_html(content: str) -> str:
    """HTML 태그 제거"""
    return _HTML_TAG_PATTERN.sub("", content or "")


def format_datetime(value: Optional[str]) -> str:
    """Graph ISO 8601 시각을 'YYYY-MM-DD HH:MM'으로 변환 (해석 실패 시 원본)"""
    if not value:
        return "Unknown date"
    try:
        parsed = datetime.fromisoformat(_LONG_FRACTION_PATTERN.sub(r"\1", value.replace("Z", "+00:00")))
    except ValueError:
        return value
    return parsed.strftime("%Y-%m-%d %H:%M")


def format_address(recipient: Optional[Dict[str, Any]]) -> str:
    """{"emailAddress": {...}} -> 'Name (address)'"""
    email_address = (recipient or {}).get("emailAddress") or {}
    name = email_address.get("name") or "Unknown"
    address = email_address.get("address") or "unknown"
    return f"{name} ({address})"


def format_recipients(recipients: Optional[List[Dict[str, Any]]]) -> str:
    if not recipients:
        return "None"
    return ", ".join(format_address(recipient) for recipient in recipients)


def format_email_lines(emails: List[Dict[str, Any]]) -> str:
    """메일 목록 본문 (번호, 읽음 여부, 발신자, 제목, ID)"""
    entries = []
    for index, email in enumerate(emails, start=1):
        read_status = "" if email.get("isRead") else "[UNREAD] "
        date = format_datetime(email.get("receivedDateTime"))
        entries.append(
            f"{index}. {read_status}{date} - From: {format_address(email.get('from'))}\n"
            f"Subject: {email.get('subject') or '(no subject)'}\n"
            f"ID: {email.get('id')}"
        )
    return "\n\n".join(entries)


def format_email_list(emails: List[Dict[str, Any]], folder: str) -> str:
    if not emails:
        return f"No emails found in {folder}."
    return f"Found {len(emails)} emails in {folder}:\n\n{format_email_lines(emails)}"


def format_search_results(result: SearchResult) -> str:
    """
    단계적 검색 결과 요약

    Args:
        result: ProgressiveSearchPlanner.search 결과

    Returns:
        결과 목록 + 마지막으로 사용한 전략 안내
    """
    if not result.items:
        if result.failed:
            return (
                "No emails found matching your search criteria. The search may have failed - "
                "try a simpler query or use list-emails to browse the folder."
            )
        return "No emails found matching your search criteria."

    strategy_info = ""
    last_strategy = result.attempt_log.last_strategy
    if last_strategy:
        strategy_info = f"\n(Search used {last_strategy} strategy)"

    return (
        f"Found {len(result.items)} emails matching your search criteria:{strategy_info}\n\n"
        f"{format_email_lines(result.items)}"
    )


def format_email_detail(email: Dict[str, Any]) -> str:
    """메일 상세 (HTML 본문은 태그 제거)"""
    body = email.get("body")
    if body:
        content = body.get("content") or ""
        body_text = strip_html(content) if body.get("contentType") == "html" else content
    else:
        body_text = email.get("bodyPreview") or "No content"

    lines = [
        f"From: {format_address(email.get('from')) if email.get('from') else 'Unknown'}",
        f"To: {format_recipients(email.get('toRecipients'))}",
    ]
    if email.get("ccRecipients"):
        lines.append(f"CC: {format_recipients(email.get('ccRecipients'))}")
    if email.get("bccRecipients"):
        lines.append(f"BCC: {format_recipients(email.get('bccRecipients'))}")
    lines.extend([
        f"Subject: {email.get('subject') or '(no subject)'}",
        f"Date: {format_datetime(email.get('receivedDateTime'))}",
        f"Importance: {email.get('importance') or 'normal'}",
        f"Has Attachments: {'Yes' if email.get('hasAttachments') else 'No'}",
    ])

    return "\n".join(lines) + f"\n\n{body_text}"


def format_send_summary(subject: str, to_count: int, cc_count: int, bcc_count: int, body_length: int) -> str:
    recipients = f"{to_count}"
    if cc_count:
        recipients += f" + {cc_count} CC"
    if bcc_count:
        recipients += f" + {bcc_count} BCC"
    return (
        "Email sent successfully!\n\n"
        f"Subject: {subject}\n"
        f"Recipients: {recipients}\n"
        f"Message Length: {body_length} characters"
    )


def _item_counts(folder: MailFolder) -> str:
    text = f" - {folder.total_item_count or 0} items"
    if folder.unread_item_count:
        text += f" ({folder.unread_item_count} unread)"
    return text


def sort_folders(folders: List[MailFolder]) -> List[MailFolder]:
    """잘 알려진 폴더를 고정 순서로 먼저, 나머지는 이름순"""
    def sort_key(folder: MailFolder):
        if folder.display_name in WELL_KNOWN_FOLDER_NAMES:
            return (0, WELL_KNOWN_FOLDER_NAMES.index(folder.display_name), "")
        return (1, 0, folder.display_name.lower())

    return sorted(folders, key=sort_key)


def format_folder_list(folders: List[MailFolder], include_item_counts: bool = False) -> str:
    if not folders:
        return "No folders found."

    lines = []
    for folder in sort_folders(folders):
        line = folder.display_name
        if folder.parent_folder_name:
            line += f" (in {folder.parent_folder_name})"
        if include_item_counts:
            line += _item_counts(folder)
        lines.append(line)

    return f"Found {len(folders)} folders:\n\n" + "\n".join(lines)


def format_folder_hierarchy(folders: List[MailFolder], include_item_counts: bool = False) -> str:
    """
    들여쓰기 계층 형식 폴더 목록

    상위 폴더를 찾을 수 없는 하위 폴더는 루트로 표시
    """
    if not folders:
        return "No folders found."

    by_id = {folder.id: folder for folder in folders}
    children: Dict[str, List[str]] = {folder.id: [] for folder in folders}
    roots: List[str] = [folder.id for folder in folders if folder.is_top_level]

    for folder in folders:
        if folder.is_top_level or not folder.parent_folder_id:
            continue
        if folder.parent_folder_id in children:
            children[folder.parent_folder_id].append(folder.id)
        else:
            roots.append(folder.id)

    def render(folder_id: str, level: int) -> List[str]:
        folder = by_id[folder_id]
        line = "  " * level + folder.display_name
        if include_item_counts:
            line += _item_counts(folder)
        lines = [line]
        for child_id in children[folder_id]:
            lines.extend(render(child_id, level + 1))
        return lines

    rendered: List[str] = []
    for root_id in roots:
        rendered.extend(render(root_id, 0))

    return "Folder Hierarchy:\n\n" + "\n".join(rendered)


def format_move_result(target_folder: str, moved: List[str], failures: List[Dict[str, str]]) -> str:
    """
    메일 이동 결과 요약 (오류는 최대 3건까지 표시)

    Args:
        target_folder: 대상 폴더 이름
        moved: 이동된 메일 ID
        failures: [{"id": ..., "error": ...}]
    """
    parts = []
    if moved:
        parts.append(f'Successfully moved {len(moved)} email(s) to "{target_folder}".')

    if failures:
        failure_text = f"Failed to move {len(failures)} email(s). Errors:"
        for index, failure in enumerate(failures[:MAX_LISTED_ERRORS], start=1):
            failure_text += f"\n- Email {index}: {failure['error']}"
        if len(failures) > MAX_LISTED_ERRORS:
            failure_text += f"\n...and {len(failures) - MAX_LISTED_ERRORS} more."
        parts.append(failure_text)

    return "\n\n".join(parts)


def sort_rules(rules: List[InboxRule]) -> List[InboxRule]:
    """실행 순서 (sequence 없는 규칙은 마지막)"""
    return sorted(rules, key=lambda rule: rule.sequence or UNSEQUENCED_RULE_ORDER)


def format_rule_conditions(rule: InboxRule) -> str:
    conditions = rule.conditions or {}
    parts = []

    from_addresses = conditions.get("fromAddresses") or []
    if from_addresses:
        senders = ", ".join((item.get("emailAddress") or {}).get("address", "") for item in from_addresses)
        parts.append(f"From: {senders}")
    if conditions.get("subjectContains"):
        parts.append(f'Subject contains: "{", ".join(conditions["subjectContains"])}"')
    if conditions.get("bodyContains"):
        parts.append(f'Body contains: "{", ".join(conditions["bodyContains"])}"')
    if conditions.get("hasAttachment") is True:
        parts.append("Has attachment")
    if conditions.get("importance"):
        parts.append(f"Importance: {conditions['importance']}")

    return "; ".join(parts)


def format_rule_actions(rule: InboxRule) -> str:
    actions = rule.actions or {}
    parts = []

    if actions.get("moveToFolder"):
        parts.append(f"Move to folder: {actions['moveToFolder']}")
    if actions.get("copyToFolder"):
        parts.append(f"Copy to folder: {actions['copyToFolder']}")
    if actions.get("markAsRead") is True:
        parts.append("Mark as read")
    if actions.get("markImportance"):
        parts.append(f"Mark importance: {actions['markImportance']}")
    forward_to = actions.get("forwardTo") or []
    if forward_to:
        recipients = ", ".join((item.get("emailAddress") or {}).get("address", "") for item in forward_to)
        parts.append(f"Forward to: {recipients}")
    if actions.get("delete") is True:
        parts.append("Delete")

    return "; ".join(parts)


def format_rules_list(rules: List[InboxRule], include_details: bool = False) -> str:
    if not rules:
        return (
            "No inbox rules found.\n\n"
            "Tip: You can create rules using the 'create-rule' tool. Rules are processed in order "
            "of their sequence number (lower numbers are processed first)."
        )

    entries = []
    for index, rule in enumerate(sort_rules(rules), start=1):
        disabled = "" if rule.is_enabled else " (Disabled)"
        entry = f"{index}. {rule.display_name}{disabled} - Sequence: {rule.sequence or 'N/A'}"
        if include_details:
            conditions = format_rule_conditions(rule)
            if conditions:
                entry += f"\n   Conditions: {conditions}"
            actions = format_rule_actions(rule)
            if actions:
                entry += f"\n   Actions: {actions}"
        entries.append(entry)

    header = f"Found {len(rules)} inbox rules (sorted by execution order):\n\n"
    if include_details:
        return (
            header + "\n\n".join(entries)
            + "\n\nRules are processed in order of their sequence number. "
            "You can change rule order using the 'edit-rule-sequence' tool."
        )
    return (
        header + "\n".join(entries)
        + "\n\nTip: Use 'list-rules with includeDetails=true' to see more information about each rule."
    )


def _join_or_none(values: List[str]) -> str:
    return ", ".join(values) if values else "None"


def format_event_list(events: List[CalendarEvent]) -> str:
    """일정 목록 (번호, 제목, 장소, 시작/종료, 카테고리, 요약, ID)"""
    if not events:
        return "No calendar events found."

    entries = []
    for index, event in enumerate(events, start=1):
        entries.append(
            f"{index}. {event.subject} - Location: {event.location or 'No location'}\n"
            f"Start: {format_datetime(event.start)}\n"
            f"End: {format_datetime(event.end)}\n"
            f"Categories: {_join_or_none(event.categories)}\n"
            f"Summary: {event.body_preview or 'No summary'}\n"
            f"ID: {event.id}"
        )
    return f"Found {len(events)} events:\n\n" + "\n\n".join(entries)


def format_event_update(event: CalendarEvent) -> str:
    return (
        "Event updated successfully!\n\n"
        f"Subject: {event.subject}\n"
        f"Start: {format_datetime(event.start)}\n"
        f"End: {format_datetime(event.end)}\n"
        f"Location: {event.location or 'No location'}\n"
        f"Categories: {_join_or_none(event.categories)}\n"
        f"ID: {event.id}"
    )


def format_category_list(categories: List[OutlookCategory]) -> str:
    if not categories:
        return "No categories found."

    entries = [
        f"{index}. {category.display_name} ({category.color_name})\n   ID: {category.id}"
        for index, category in enumerate(categories, start=1)
    ]
    return f"Found {len(categories)} categories:\n\n" + "\n\n".join(entries)


def format_category_created(category: OutlookCategory) -> str:
    return (
        "Category created successfully!\n\n"
        f"Name: {category.display_name}\n"
        f"Color: {category.color_name}\n"
        f"ID: {category.id}"
    )
