"""
MCP Mailbox Module
Microsoft Graph API를 사용한 Outlook 메일 검색/폴더/규칙/일정 서비스
"""

from .mail_service import MailService
from .folder_service import FolderService
from .rule_service import RuleService
from .calendar_service import CalendarService
from .graph_api_client import GraphApiClient, GraphApiError, GraphAuthError
from .folder_resolver import FolderResolver, FolderNotFoundError
from .progressive_search import (
    SearchStrategy,
    DEFAULT_SEARCH_STRATEGIES,
    ProgressiveSearchPlanner,
    progressive_search,
)
from .mailbox_types import (
    SearchTerms,
    FilterTerms,
    AttemptOutcome,
    StrategyAttempt,
    SearchAttemptLog,
    SearchResult,
    MailFolder,
    InboxRule,
    CalendarEvent,
    OutlookCategory,
)

__all__ = [
    # Services
    "MailService",
    "FolderService",
    "RuleService",
    "CalendarService",
    # Client
    "GraphApiClient",
    "GraphApiError",
    "GraphAuthError",
    # Search core
    "FolderResolver",
    "FolderNotFoundError",
    "SearchStrategy",
    "DEFAULT_SEARCH_STRATEGIES",
    "ProgressiveSearchPlanner",
    "progressive_search",
    # Types
    "SearchTerms",
    "FilterTerms",
    "AttemptOutcome",
    "StrategyAttempt",
    "SearchAttemptLog",
    "SearchResult",
    "MailFolder",
    "InboxRule",
    "CalendarEvent",
    "OutlookCategory",
]

__version__ = "1.0.0"
