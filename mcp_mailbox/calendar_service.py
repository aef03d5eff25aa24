"""
Calendar Service - 일정 조회/생성/수정/응답 및 카테고리 관리
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Union

from .graph_api_client import GraphApiError, GraphAuthError
from .mail_formatter import (
    format_event_list,
    format_event_update,
    format_category_list,
    format_category_created,
)
from .mailbox_types import (
    CalendarEvent,
    OutlookCategory,
    CALENDAR_SELECT_FIELDS,
    CATEGORY_COLOR_NAMES,
    PRESET_COLORS,
)
from .service_base import (
    MailboxServiceBase,
    error_result,
    ERROR_INVALID_ARGUMENT,
    ERROR_NOT_FOUND,
)

logger = logging.getLogger(__name__)

CALENDAR_VIEW_PATH = "me/calendarView"
EVENTS_PATH = "me/events"
CATEGORIES_PATH = "me/outlook/masterCategories"

# 종료일이 없으면 시작일부터 30일
DEFAULT_EVENT_WINDOW = timedelta(days=30)

UPDATABLE_EVENT_FIELDS = "subject, start, end, location, body, attendees, categories"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_event_date(value: str) -> datetime:
    """
    ISO 8601 날짜/시각 문자열 해석 (시간대가 없으면 UTC로 간주)

    Raises:
        ValueError: 해석할 수 없는 값
    """
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_graph_datetime(value: datetime) -> str:
    """calendarView 쿼리용 UTC 시각 (예: 2025-01-01T00:00:00Z)"""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def build_attendees(attendees: Optional[Union[str, List[str]]]) -> List[Dict[str, Any]]:
    """주소 목록 (또는 쉼표 구분 문자열) -> 필수 참석자 목록"""
    if isinstance(attendees, str):
        attendees = attendees.split(",")
    return [
        {"emailAddress": {"address": address.strip()}, "type": "required"}
        for address in attendees or []
        if address and address.strip()
    ]


def normalize_category_color(color: Optional[str]) -> Optional[str]:
    """
    프리셋 키(preset0) 또는 색상 이름(Red)을 프리셋 키로 변환

    Returns:
        프리셋 키, 알 수 없는 색상이면 None
    """
    if not color:
        return "none"
    value = color.strip().lower()
    for preset, name in CATEGORY_COLOR_NAMES.items():
        if value in (preset.lower(), name.lower()):
            return preset
    return None


class CalendarService(MailboxServiceBase):
    """일정 및 카테고리 서비스"""

    service_name = "CalendarService"

    def _date_time(self, value: str) -> Dict[str, str]:
        return {"dateTime": value, "timeZone": self.config.calendar_time_zone}

    def _event_error(self, error: GraphApiError, event_id: str, action: str) -> Dict[str, Any]:
        if not isinstance(error, GraphAuthError) and error.status == 404:
            return error_result(ERROR_NOT_FOUND, f"Event with ID {event_id} not found.")
        return self._error_from_exception(error, action)

    async def list_events(
        self,
        count: Optional[int] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        기간 내 일정 목록

        종료일이 과거면 최근 일정부터(내림차순), 그 외에는 다가오는 일정부터(오름차순)

        Args:
            count: 조회 개수 (기본 10, 최대 50)
            start_date: 시작일 ISO 8601 (기본 현재 시각)
            end_date: 종료일 ISO 8601 (기본 시작일 + 30일)

        Returns:
            {"success", "message", "events", "start_date_time", "end_date_time"}
        """
        self._ensure_initialized()
        max_count = self.config.clamp_count(count)
        now = _utcnow()

        try:
            start = parse_event_date(start_date) if start_date else now
            end = parse_event_date(end_date) if end_date else None
        except ValueError:
            return error_result(
                ERROR_INVALID_ARGUMENT,
                "Invalid date. Use ISO 8601 format (e.g., '2025-01-01' or '2025-01-01T09:00:00Z').",
            )

        if end is not None and end <= start:
            return error_result(ERROR_INVALID_ARGUMENT, "End date must be after start date.")

        order_direction = "desc" if end is not None and end < now else "asc"
        query_start = to_graph_datetime(start)
        query_end = to_graph_datetime(end or start + DEFAULT_EVENT_WINDOW)

        params = {
            "startDateTime": query_start,
            "endDateTime": query_end,
            "$top": max_count,
            "$orderby": f"start/dateTime {order_direction}",
            "$select": CALENDAR_SELECT_FIELDS,
        }
        try:
            data = await self._client.call("GET", CALENDAR_VIEW_PATH, params=params)
        except GraphApiError as e:
            return self._error_from_exception(e, "listing events")

        events = [CalendarEvent.from_dict(item) for item in data.get("value") or []]
        logger.info(f"Listed {len(events)} events between {query_start} and {query_end}")

        return {
            "success": True,
            "message": format_event_list(events),
            "events": [event.to_dict() for event in events],
            "start_date_time": query_start,
            "end_date_time": query_end,
        }

    async def create_event(
        self,
        subject: str,
        start: str,
        end: str,
        attendees: Optional[Union[str, List[str]]] = None,
        body: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        일정 생성 (start/end는 설정된 시간대 기준)

        Args:
            subject: 제목
            start: 시작 시각 ISO 8601
            end: 종료 시각 ISO 8601
            attendees: 참석자 주소 목록 또는 쉼표 구분 문자열
            body: 본문 (HTML)

        Returns:
            {"success", "message", "event"}
        """
        self._ensure_initialized()
        if not subject or not start or not end:
            return error_result(
                ERROR_INVALID_ARGUMENT,
                "Subject, start, and end times are required to create an event.",
            )

        payload: Dict[str, Any] = {
            "subject": subject,
            "start": self._date_time(start),
            "end": self._date_time(end),
        }
        attendee_list = build_attendees(attendees)
        if attendee_list:
            payload["attendees"] = attendee_list
        if body:
            payload["body"] = {"contentType": "html", "content": body}

        try:
            created = await self._client.call("POST", EVENTS_PATH, body=payload)
        except GraphApiError as e:
            return self._error_from_exception(e, "creating event")

        return {
            "success": True,
            "message": f"Event '{subject}' has been successfully created.",
            "event": CalendarEvent.from_dict(created).to_dict() if created else None,
        }

    async def update_event(
        self,
        event_id: str,
        subject: Optional[str] = None,
        start: Optional[str] = None,
        end: Optional[str] = None,
        location: Optional[str] = None,
        body: Optional[str] = None,
        attendees: Optional[Union[str, List[str]]] = None,
        categories: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """
        일정 수정 (None이 아닌 필드만 변경)

        Args:
            event_id: 일정 ID
            subject: 새 제목
            start: 새 시작 시각
            end: 새 종료 시각
            location: 새 장소
            body: 새 본문 (텍스트)
            attendees: 새 참석자 목록 (기존 목록을 대체)
            categories: 새 카테고리 이름 목록 (빈 목록이면 모두 제거)

        Returns:
            {"success", "message", "event"}
        """
        self._ensure_initialized()
        if not event_id:
            return error_result(ERROR_INVALID_ARGUMENT, "Event ID is required.")

        update: Dict[str, Any] = {}
        if subject is not None:
            update["subject"] = subject
        if start is not None:
            update["start"] = self._date_time(start)
        if end is not None:
            update["end"] = self._date_time(end)
        if location is not None:
            update["location"] = {"displayName": location}
        if body is not None:
            update["body"] = {"contentType": "text", "content": body}
        if attendees is not None:
            update["attendees"] = build_attendees(attendees)
        if categories is not None:
            update["categories"] = list(categories)

        if not update:
            return error_result(
                ERROR_INVALID_ARGUMENT,
                f"No fields to update. Provide at least one of: {UPDATABLE_EVENT_FIELDS}.",
            )

        try:
            updated = await self._client.call("PATCH", f"{EVENTS_PATH}/{event_id}", body=update)
        except GraphApiError as e:
            return self._event_error(e, event_id, "updating event")

        event = CalendarEvent.from_dict(updated or {"id": event_id})
        return {
            "success": True,
            "message": format_event_update(event),
            "event": event.to_dict(),
        }

    async def _respond_to_event(
        self, event_id: str, action: str, comment: Optional[str], past_tense: str, gerund: str
    ) -> Dict[str, Any]:
        """decline / cancel 공통 처리 (POST me/events/{id}/{action})"""
        self._ensure_initialized()
        if not event_id:
            return error_result(ERROR_INVALID_ARGUMENT, f"Event ID is required to {action} an event.")

        body = {"comment": comment or f"{past_tense.capitalize()} via API"}
        try:
            await self._client.call("POST", f"{EVENTS_PATH}/{event_id}/{action}", body=body)
        except GraphApiError as e:
            return self._event_error(e, event_id, f"{gerund} event")

        return {
            "success": True,
            "message": f"Event with ID {event_id} has been successfully {past_tense}.",
            "event_id": event_id,
        }

    async def decline_event(self, event_id: str, comment: Optional[str] = None) -> Dict[str, Any]:
        """
        초대받은 일정 거절

        Args:
            event_id: 일정 ID
            comment: 주최자에게 보낼 메시지 (기본 "Declined via API")
        """
        return await self._respond_to_event(event_id, "decline", comment, "declined", "declining")

    async def cancel_event(self, event_id: str, comment: Optional[str] = None) -> Dict[str, Any]:
        """
        주최한 일정 취소 (참석자에게 취소 알림 발송)

        Args:
            event_id: 일정 ID
            comment: 참석자에게 보낼 메시지 (기본 "Cancelled via API")
        """
        return await self._respond_to_event(event_id, "cancel", comment, "cancelled", "cancelling")

    async def delete_event(self, event_id: str) -> Dict[str, Any]:
        """일정 삭제"""
        self._ensure_initialized()
        if not event_id:
            return error_result(ERROR_INVALID_ARGUMENT, "Event ID is required to delete an event.")

        try:
            await self._client.call("DELETE", f"{EVENTS_PATH}/{event_id}")
        except GraphApiError as e:
            return self._event_error(e, event_id, "deleting event")

        return {
            "success": True,
            "message": f"Event with ID {event_id} has been successfully deleted.",
            "event_id": event_id,
        }

    async def list_categories(self) -> Dict[str, Any]:
        """
        마스터 카테고리 목록

        Returns:
            {"success", "message", "categories"}
        """
        self._ensure_initialized()
        try:
            data = await self._client.call("GET", CATEGORIES_PATH)
        except GraphApiError as e:
            return self._error_from_exception(e, "listing categories")

        categories = [OutlookCategory.from_dict(item) for item in data.get("value") or []]
        return {
            "success": True,
            "message": format_category_list(categories),
            "categories": [category.to_dict() for category in categories],
        }

    async def create_category(self, name: str, color: Optional[str] = None) -> Dict[str, Any]:
        """
        카테고리 생성

        Args:
            name: 카테고리 이름
            color: 프리셋 키(none, preset0-preset24) 또는 색상 이름(Red, Blue ...), 기본 none

        Returns:
            {"success", "message", "category"}
        """
        self._ensure_initialized()
        if not name:
            return error_result(ERROR_INVALID_ARGUMENT, "Category name is required.")

        preset = normalize_category_color(color)
        if preset is None:
            return error_result(
                ERROR_INVALID_ARGUMENT,
                f"Invalid color. Valid colors are: {', '.join(PRESET_COLORS)}",
            )

        try:
            created = await self._client.call(
                "POST", CATEGORIES_PATH, body={"displayName": name, "color": preset}
            )
        except GraphApiError as e:
            return self._error_from_exception(e, "creating category")

        category = OutlookCategory.from_dict(created or {"displayName": name, "color": preset})
        return {
            "success": True,
            "message": format_category_created(category),
            "category": category.to_dict(),
        }

    async def delete_category(self, category_id: str) -> Dict[str, Any]:
        """
        카테고리 삭제

        Args:
            category_id: 카테고리 ID (list_categories 결과의 id)
        """
        self._ensure_initialized()
        if not category_id:
            return error_result(
                ERROR_INVALID_ARGUMENT,
                "Category ID is required. Use list-categories to find the ID.",
            )

        try:
            await self._client.call("DELETE", f"{CATEGORIES_PATH}/{category_id}")
        except GraphApiError as e:
            if not isinstance(e, GraphAuthError) and e.status == 404:
                return error_result(ERROR_NOT_FOUND, f"Category with ID {category_id} not found.")
            return self._error_from_exception(e, "deleting category")

        return {
            "success": True,
            "message": "Category deleted successfully.",
            "category_id": category_id,
        }
