"""
Outlook 메일함 검색/폴더/규칙을 위한 타입 정의
입력 파라미터는 Pydantic 모델, Graph 응답은 dataclass로 표현
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field, ConfigDict, field_validator


# Graph 조회 시 사용하는 $select 필드 목록
EMAIL_SELECT_FIELDS = (
    "id,subject,from,toRecipients,ccRecipients,receivedDateTime,bodyPreview,hasAttachments,importance,isRead"
)
EMAIL_DETAIL_FIELDS = (
    "id,subject,from,toRecipients,ccRecipients,bccRecipients,receivedDateTime,bodyPreview,body,"
    "hasAttachments,importance,isRead,internetMessageHeaders"
)
FOLDER_SELECT_FIELDS = "id,displayName,parentFolderId,childFolderCount,totalItemCount,unreadItemCount"
FOLDER_BASIC_FIELDS = "id,displayName,parentFolderId,childFolderCount"

# 별칭 -> messages 엔드포인트 (원격 호출 없이 바로 사용)
WELL_KNOWN_FOLDERS: Dict[str, str] = {
    "inbox": "me/mailFolders/inbox/messages",
    "drafts": "me/mailFolders/drafts/messages",
    "sent": "me/mailFolders/sentItems/messages",
    "deleted": "me/mailFolders/deletedItems/messages",
    "junk": "me/mailFolders/junkemail/messages",
    "archive": "me/mailFolders/archive/messages",
}

# 폴더 목록 출력 시 상단 고정 순서
WELL_KNOWN_FOLDER_NAMES = ["Inbox", "Drafts", "Sent Items", "Deleted Items", "Junk Email", "Archive"]

CALENDAR_SELECT_FIELDS = (
    "id,subject,bodyPreview,start,end,location,organizer,attendees,isAllDay,isCancelled,categories"
)

# Outlook 카테고리 색상 프리셋 -> 표시 이름
CATEGORY_COLOR_NAMES: Dict[str, str] = {
    "none": "No color",
    "preset0": "Red",
    "preset1": "Orange",
    "preset2": "Brown",
    "preset3": "Yellow",
    "preset4": "Green",
    "preset5": "Teal",
    "preset6": "Olive",
    "preset7": "Blue",
    "preset8": "Purple",
    "preset9": "Cranberry",
    "preset10": "Steel",
    "preset11": "DarkSteel",
    "preset12": "Gray",
    "preset13": "DarkGray",
    "preset14": "Black",
    "preset15": "DarkRed",
    "preset16": "DarkOrange",
    "preset17": "DarkBrown",
    "preset18": "DarkYellow",
    "preset19": "DarkGreen",
    "preset20": "DarkTeal",
    "preset21": "DarkOlive",
    "preset22": "DarkBlue",
    "preset23": "DarkPurple",
    "preset24": "DarkCranberry",
}
PRESET_COLORS = list(CATEGORY_COLOR_NAMES)


class SearchTerms(BaseModel):
    """메일 검색어 (텍스트 조건) - 한 번의 검색 동안 변경 불가"""

    model_config = ConfigDict(extra='ignore', frozen=True, populate_by_name=True)

    query: Optional[str] = Field(
        None,
        description="메일 전체에서 찾을 자유 텍스트",
        examples=["quarterly report"]
    )
    from_address: Optional[str] = Field(
        None,
        alias="from",
        description="발신자 이메일 주소 또는 이름",
        examples=["boss@example.com", "Kim"]
    )
    to: Optional[str] = Field(
        None,
        description="수신자 이메일 주소 또는 이름"
    )
    subject: Optional[str] = Field(
        None,
        description="제목 문자열"
    )

    @field_validator("query", "from_address", "to", "subject", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        """빈 문자열은 값이 없는 것으로 처리"""
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def has_text_terms(self) -> bool:
        """텍스트 조건이 하나라도 있는지 여부"""
        return any([self.query, self.from_address, self.to, self.subject])


class FilterTerms(BaseModel):
    """메일 불리언 필터 - True일 때만 조건이 적용됨"""

    model_config = ConfigDict(extra='ignore', frozen=True, populate_by_name=True)

    has_attachments: Optional[bool] = Field(
        None,
        alias="hasAttachments",
        description="첨부파일 있는 메일만"
    )
    unread_only: Optional[bool] = Field(
        None,
        alias="unreadOnly",
        description="읽지 않은 메일만"
    )

    def has_any(self) -> bool:
        """적용할 불리언 조건이 있는지 여부"""
        return self.has_attachments is True or self.unread_only is True


class AttemptOutcome(str, Enum):
    """전략 시도 결과"""
    OK = "ok"          # 1건 이상
    EMPTY = "empty"    # 0건
    ERROR = "error"    # 호출 실패 (흡수됨)


@dataclass
class StrategyAttempt:
    """단일 검색 전략 시도 기록"""
    strategy: str
    outcome: AttemptOutcome
    item_count: int = 0
    error_kind: Optional[str] = None
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "strategy": self.strategy,
            "outcome": self.outcome.value,
            "item_count": self.item_count,
        }
        if self.error_kind:
            data["error_kind"] = self.error_kind
            data["error_message"] = self.error_message
        return data


@dataclass
class SearchAttemptLog:
    """검색 한 번의 전략 시도 이력 (요청 단위, 저장하지 않음)"""
    attempts: List[StrategyAttempt] = field(default_factory=list)
    failed: bool = False

    @property
    def strategies(self) -> List[str]:
        """시도한 전략 태그 (시도 순서)"""
        return [attempt.strategy for attempt in self.attempts]

    @property
    def last_strategy(self) -> Optional[str]:
        return self.attempts[-1].strategy if self.attempts else None

    def record(self, attempt: StrategyAttempt) -> None:
        self.attempts.append(attempt)


@dataclass
class SearchResult:
    """단계적 검색 결과"""
    items: List[Dict[str, Any]] = field(default_factory=list)
    attempt_log: SearchAttemptLog = field(default_factory=SearchAttemptLog)

    @property
    def failed(self) -> bool:
        return self.attempt_log.failed


@dataclass
class MailFolder:
    """메일 폴더 정보 (parent_folder_id가 None이면 최상위)"""
    id: str
    display_name: str
    parent_folder_id: Optional[str] = None
    child_folder_count: int = 0
    total_item_count: Optional[int] = None
    unread_item_count: Optional[int] = None
    is_top_level: bool = False
    parent_folder_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MailFolder":
        return cls(
            id=data.get("id", ""),
            display_name=data.get("displayName") or "",
            parent_folder_id=data.get("parentFolderId"),
            child_folder_count=data.get("childFolderCount") or 0,
            total_item_count=data.get("totalItemCount"),
            unread_item_count=data.get("unreadItemCount"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "parent_folder_id": self.parent_folder_id,
            "child_folder_count": self.child_folder_count,
            "total_item_count": self.total_item_count,
            "unread_item_count": self.unread_item_count,
            "is_top_level": self.is_top_level,
            "parent_folder_name": self.parent_folder_name,
        }


@dataclass
class InboxRule:
    """받은 편지함 규칙"""
    id: str
    display_name: str
    sequence: Optional[int] = None
    is_enabled: bool = True
    conditions: Dict[str, Any] = field(default_factory=dict)
    actions: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InboxRule":
        return cls(
            id=data.get("id", ""),
            display_name=data.get("displayName") or "",
            sequence=data.get("sequence"),
            is_enabled=data.get("isEnabled", True),
            conditions=data.get("conditions") or {},
            actions=data.get("actions") or {},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "sequence": self.sequence,
            "is_enabled": self.is_enabled,
            "conditions": self.conditions,
            "actions": self.actions,
        }


@dataclass
class CalendarEvent:
    """일정 정보 (start/end는 Graph dateTimeTimeZone 값 그대로)"""
    id: str
    subject: str
    start: Optional[str] = None
    end: Optional[str] = None
    time_zone: Optional[str] = None
    location: Optional[str] = None
    body_preview: str = ""
    organizer: Optional[str] = None
    attendees: List[str] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    is_all_day: bool = False
    is_cancelled: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CalendarEvent":
        start = data.get("start") or {}
        end = data.get("end") or {}
        organizer = (data.get("organizer") or {}).get("emailAddress") or {}
        attendees = [
            (attendee.get("emailAddress") or {}).get("address")
            for attendee in data.get("attendees") or []
        ]
        return cls(
            id=data.get("id", ""),
            subject=data.get("subject") or "",
            start=start.get("dateTime"),
            end=end.get("dateTime"),
            time_zone=start.get("timeZone"),
            location=(data.get("location") or {}).get("displayName") or None,
            body_preview=data.get("bodyPreview") or "",
            organizer=organizer.get("address"),
            attendees=[address for address in attendees if address],
            categories=list(data.get("categories") or []),
            is_all_day=bool(data.get("isAllDay")),
            is_cancelled=bool(data.get("isCancelled")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "subject": self.subject,
            "start": self.start,
            "end": self.end,
            "time_zone": self.time_zone,
            "location": self.location,
            "body_preview": self.body_preview,
            "organizer": self.organizer,
            "attendees": self.attendees,
            "categories": self.categories,
            "is_all_day": self.is_all_day,
            "is_cancelled": self.is_cancelled,
        }


@dataclass
class OutlookCategory:
    """마스터 카테고리"""
    id: str
    display_name: str
    color: str = "none"

    @property
    def color_name(self) -> str:
        return CATEGORY_COLOR_NAMES.get(self.color, self.color)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OutlookCategory":
        return cls(
            id=data.get("id", ""),
            display_name=data.get("displayName") or "",
            color=data.get("color") or "none",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "color": self.color,
            "color_name": self.color_name,
        }
