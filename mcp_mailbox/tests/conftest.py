"""
메일함 검색/폴더/규칙 테스트 공통 Fixtures

테스트 시나리오:
    1. OData 파라미터 생성 및 불리언 필터 병합
    2. 단계적 검색 전략 순서, 조기 종료, 오류 흡수
    3. 폴더 이름 해석 (별칭, 정확 일치, 하위 폴더)
    4. Graph 클라이언트 HTTP 처리 (aiohttp mock)
    5. 서비스 결과 dict 및 오류 코드
    6. 일정 조회 기간/정렬, 카테고리 색상
"""

import os
import sys
import json
import time
import pytest
from unittest.mock import AsyncMock, MagicMock

# 프로젝트 경로 추가
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from session.graph_config import GraphConfig


def make_message(message_id, subject="Test subject", sender="sender@example.com", is_read=False):
    """Graph message dict 생성"""
    return {
        "id": message_id,
        "subject": subject,
        "from": {"emailAddress": {"name": "Test Sender", "address": sender}},
        "toRecipients": [{"emailAddress": {"name": "Me", "address": "me@example.com"}}],
        "receivedDateTime": "2025-01-09T10:30:00Z",
        "bodyPreview": "preview",
        "hasAttachments": False,
        "importance": "normal",
        "isRead": is_read,
    }


def make_folder(folder_id, name, child_count=0, parent_id="root", total=0, unread=0):
    """Graph mailFolder dict 생성"""
    return {
        "id": folder_id,
        "displayName": name,
        "parentFolderId": parent_id,
        "childFolderCount": child_count,
        "totalItemCount": total,
        "unreadItemCount": unread,
    }


def make_event(event_id, subject="Weekly sync", start="2025-03-10T09:00:00.0000000",
               end="2025-03-10T10:00:00.0000000", location="Room 1", categories=None):
    """Graph event dict 생성"""
    return {
        "id": event_id,
        "subject": subject,
        "bodyPreview": f"{subject} agenda",
        "start": {"dateTime": start, "timeZone": "UTC"},
        "end": {"dateTime": end, "timeZone": "UTC"},
        "location": {"displayName": location},
        "organizer": {"emailAddress": {"name": "Kim", "address": "kim@example.com"}},
        "attendees": [{"emailAddress": {"address": "lee@example.com"}, "type": "required"}],
        "categories": categories or [],
        "isAllDay": False,
        "isCancelled": False,
    }


@pytest.fixture
def graph_config(tmp_path):
    """테스트용 GraphConfig (임시 토큰 경로)"""
    return GraphConfig(
        graph_api_endpoint="https://graph.example.com/v1.0/",
        token_path=str(tmp_path / "tokens.json"),
        user_email="me",
        request_timeout=5,
        default_count=10,
        max_result_count=50,
        log_level="DEBUG",
        calendar_time_zone="Korea Standard Time",
    )


@pytest.fixture
def token_file(graph_config):
    """유효한 단일 사용자 토큰 파일"""
    with open(graph_config.token_path, "w", encoding="utf-8") as f:
        json.dump({
            "access_token": "test-access-token",
            "refresh_token": "test-refresh-token",
            "expires_at": (time.time() + 3600) * 1000,
        }, f)
    return graph_config.token_path


@pytest.fixture
def mock_token_provider():
    """항상 유효한 토큰을 반환하는 토큰 제공자"""
    provider = MagicMock()
    provider.validate_and_refresh_token = AsyncMock(return_value="test-access-token")
    provider.close = AsyncMock()
    return provider


@pytest.fixture
def mock_graph_client():
    """GraphApiProtocol Mock (call, call_paginated, list_folders)"""
    client = MagicMock()
    client.call = AsyncMock(return_value={})
    client.call_paginated = AsyncMock(return_value=[])
    client.list_folders = AsyncMock(return_value=[])
    client.close = AsyncMock()
    return client


@pytest.fixture
def sample_messages():
    """테스트용 메일 목록"""
    return [
        make_message("msg-1", subject="Quarterly report", is_read=False),
        make_message("msg-2", subject="Quarterly report follow-up", is_read=True),
        make_message("msg-3", subject="Lunch", sender="friend@example.com", is_read=True),
    ]


@pytest.fixture
def sample_folders():
    """최상위 폴더 (Finance 아래에 Invoices 하위 폴더)"""
    return [
        make_folder("inbox-id", "Inbox", total=12, unread=3),
        make_folder("finance-id", "Finance", child_count=1, total=4),
        make_folder("sent-id", "Sent Items", total=20),
        make_folder("archive-id", "Archive"),
    ]


@pytest.fixture
def invoices_folder():
    return make_folder("invoices-id", "Invoices", parent_id="finance-id", total=7, unread=2)


def make_response(status=200, body=None, text=None):
    """aiohttp 응답 Mock (async with session.request(...) as response)"""
    response = MagicMock()
    response.status = status
    if text is None:
        text = json.dumps(body) if body is not None else ""
    response.text = AsyncMock(return_value=text)
    return response


def make_session(*responses):
    """응답을 순서대로 돌려주는 aiohttp ClientSession Mock"""
    session = MagicMock()
    contexts = []
    for response in responses:
        context = MagicMock()
        context.__aenter__ = AsyncMock(return_value=response)
        context.__aexit__ = AsyncMock(return_value=False)
        contexts.append(context)
    session.request = MagicMock(side_effect=contexts)
    session.close = AsyncMock()
    return session
