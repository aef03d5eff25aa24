"""
Calendar Service Tests
일정 조회 기간/정렬, 생성/수정 payload, 거절/취소/삭제, 카테고리 색상
"""

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from unittest.mock import patch

from conftest import make_event
from mcp_mailbox.calendar_service import (
    CalendarService,
    CALENDAR_VIEW_PATH,
    CATEGORIES_PATH,
    normalize_category_color,
)
from mcp_mailbox.graph_api_client import GraphApiError, GraphAuthError
from mcp_mailbox.mailbox_types import CALENDAR_SELECT_FIELDS, CalendarEvent

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def service(mock_graph_client, graph_config):
    calendar_service = CalendarService(graph_client=mock_graph_client, config=graph_config)
    await calendar_service.initialize()
    return calendar_service


class TestListEvents:
    """CalendarService.list_events"""

    @pytest.mark.asyncio
    async def test_default_window_is_next_30_days(self, service, mock_graph_client):
        mock_graph_client.call.return_value = {"value": [make_event("e1")]}

        with patch("mcp_mailbox.calendar_service._utcnow", return_value=NOW):
            result = await service.list_events()

        assert result["success"] is True
        assert result["events"][0]["id"] == "e1"
        mock_graph_client.call.assert_awaited_once_with("GET", CALENDAR_VIEW_PATH, params={
            "startDateTime": "2025-03-01T12:00:00Z",
            "endDateTime": "2025-03-31T12:00:00Z",
            "$top": 10,
            "$orderby": "start/dateTime asc",
            "$select": CALENDAR_SELECT_FIELDS,
        })
        assert "Found 1 events:" in result["message"]
        assert "1. Weekly sync - Location: Room 1" in result["message"]
        assert "Start: 2025-03-10 09:00" in result["message"]
        assert "Categories: None" in result["message"]

    @pytest.mark.asyncio
    async def test_past_range_sorted_newest_first(self, service, mock_graph_client):
        mock_graph_client.call.return_value = {"value": []}

        with patch("mcp_mailbox.calendar_service._utcnow", return_value=NOW):
            result = await service.list_events(count=500, start_date="2025-01-01", end_date="2025-01-31")

        params = mock_graph_client.call.call_args.kwargs["params"]
        assert params["startDateTime"] == "2025-01-01T00:00:00Z"
        assert params["endDateTime"] == "2025-01-31T00:00:00Z"
        assert params["$orderby"] == "start/dateTime desc"
        assert params["$top"] == 50
        assert result["message"] == "No calendar events found."

    @pytest.mark.asyncio
    async def test_future_end_date_sorted_ascending(self, service, mock_graph_client):
        mock_graph_client.call.return_value = {"value": []}

        with patch("mcp_mailbox.calendar_service._utcnow", return_value=NOW):
            await service.list_events(start_date="2025-02-20T08:00:00+09:00", end_date="2025-04-01")

        params = mock_graph_client.call.call_args.kwargs["params"]
        assert params["startDateTime"] == "2025-02-19T23:00:00Z"
        assert params["$orderby"] == "start/dateTime asc"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("start_date,end_date", [
        ("next monday", None),
        ("2025-02-01", "2025-01-01"),
    ])
    async def test_invalid_range(self, service, mock_graph_client, start_date, end_date):
        result = await service.list_events(start_date=start_date, end_date=end_date)

        assert result["success"] is False
        assert result["error"] == "invalid_argument"
        mock_graph_client.call.assert_not_called()

    @pytest.mark.asyncio
    async def test_auth_error(self, service, mock_graph_client):
        mock_graph_client.call.side_effect = GraphAuthError()

        result = await service.list_events()

        assert result["error"] == "auth_required"


class TestEventChanges:
    """일정 생성/수정/거절/취소/삭제"""

    @pytest.mark.asyncio
    async def test_create_event_payload(self, service, mock_graph_client):
        mock_graph_client.call.return_value = make_event("new-event", subject="Review")

        result = await service.create_event(
            "Review", "2025-03-10T09:00:00", "2025-03-10T10:00:00",
            attendees="lee@example.com, park@example.com", body="<p>Agenda</p>",
        )

        assert result["success"] is True
        assert result["message"] == "Event 'Review' has been successfully created."
        assert result["event"]["id"] == "new-event"
        method, path = mock_graph_client.call.call_args.args
        assert (method, path) == ("POST", "me/events")
        assert mock_graph_client.call.call_args.kwargs["body"] == {
            "subject": "Review",
            "start": {"dateTime": "2025-03-10T09:00:00", "timeZone": "Korea Standard Time"},
            "end": {"dateTime": "2025-03-10T10:00:00", "timeZone": "Korea Standard Time"},
            "attendees": [
                {"emailAddress": {"address": "lee@example.com"}, "type": "required"},
                {"emailAddress": {"address": "park@example.com"}, "type": "required"},
            ],
            "body": {"contentType": "html", "content": "<p>Agenda</p>"},
        }

    @pytest.mark.asyncio
    async def test_create_event_requires_times(self, service, mock_graph_client):
        result = await service.create_event("Review", "2025-03-10T09:00:00", "")

        assert result["error"] == "invalid_argument"
        mock_graph_client.call.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_event_only_given_fields(self, service, mock_graph_client):
        mock_graph_client.call.return_value = make_event(
            "e1", subject="Moved", location="Room 2", categories=["Work", "Travel"]
        )

        result = await service.update_event("e1", subject="Moved", location="Room 2", categories=["Work", "Travel"])

        assert result["success"] is True
        mock_graph_client.call.assert_awaited_once_with("PATCH", "me/events/e1", body={
            "subject": "Moved",
            "location": {"displayName": "Room 2"},
            "categories": ["Work", "Travel"],
        })
        assert result["message"].startswith("Event updated successfully!")
        assert "Location: Room 2" in result["message"]
        assert "Categories: Work, Travel" in result["message"]

    @pytest.mark.asyncio
    async def test_update_event_clears_categories(self, service, mock_graph_client):
        mock_graph_client.call.return_value = make_event("e1")

        await service.update_event("e1", categories=[])

        assert mock_graph_client.call.call_args.kwargs["body"] == {"categories": []}

    @pytest.mark.asyncio
    async def test_update_event_without_fields(self, service, mock_graph_client):
        result = await service.update_event("e1")

        assert result["error"] == "invalid_argument"
        assert "No fields to update" in result["message"]
        mock_graph_client.call.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_missing_event(self, service, mock_graph_client):
        mock_graph_client.call.side_effect = GraphApiError("ErrorItemNotFound", status=404)

        result = await service.update_event("gone", subject="x")

        assert result["error"] == "not_found"
        assert result["message"] == "Event with ID gone not found."

    @pytest.mark.asyncio
    async def test_decline_default_comment(self, service, mock_graph_client):
        result = await service.decline_event("e1")

        assert result["success"] is True
        assert result["message"] == "Event with ID e1 has been successfully declined."
        mock_graph_client.call.assert_awaited_once_with(
            "POST", "me/events/e1/decline", body={"comment": "Declined via API"}
        )

    @pytest.mark.asyncio
    async def test_cancel_with_comment(self, service, mock_graph_client):
        result = await service.cancel_event("e1", comment="Moved to next week")

        assert result["message"] == "Event with ID e1 has been successfully cancelled."
        mock_graph_client.call.assert_awaited_once_with(
            "POST", "me/events/e1/cancel", body={"comment": "Moved to next week"}
        )

    @pytest.mark.asyncio
    async def test_cancel_api_error(self, service, mock_graph_client):
        mock_graph_client.call.side_effect = GraphApiError("Only the organizer can cancel", status=400)

        result = await service.cancel_event("e1")

        assert result["error"] == "graph_api_error"
        assert result["status"] == 400
        assert result["message"].startswith("Error cancelling event:")

    @pytest.mark.asyncio
    async def test_delete_event(self, service, mock_graph_client):
        result = await service.delete_event("e1")

        assert result["success"] is True
        mock_graph_client.call.assert_awaited_once_with("DELETE", "me/events/e1")

    @pytest.mark.asyncio
    async def test_event_id_required(self, service, mock_graph_client):
        assert (await service.decline_event(""))["message"] == "Event ID is required to decline an event."
        assert (await service.delete_event(""))["error"] == "invalid_argument"
        mock_graph_client.call.assert_not_called()


class TestCategories:
    """마스터 카테고리"""

    @pytest.mark.asyncio
    async def test_list_categories(self, service, mock_graph_client):
        mock_graph_client.call.return_value = {"value": [
            {"id": "c1", "displayName": "Work", "color": "preset7"},
            {"id": "c2", "displayName": "Legacy", "color": "preset99"},
        ]}

        result = await service.list_categories()

        mock_graph_client.call.assert_awaited_once_with("GET", CATEGORIES_PATH)
        assert result["message"] == (
            "Found 2 categories:\n\n"
            "1. Work (Blue)\n   ID: c1\n\n"
            "2. Legacy (preset99)\n   ID: c2"
        )
        assert result["categories"][0]["color_name"] == "Blue"

    @pytest.mark.asyncio
    async def test_list_categories_empty(self, service, mock_graph_client):
        mock_graph_client.call.return_value = {"value": []}

        assert (await service.list_categories())["message"] == "No categories found."

    @pytest.mark.asyncio
    async def test_create_category_by_color_name(self, service, mock_graph_client):
        mock_graph_client.call.return_value = {"id": "c3", "displayName": "Urgent", "color": "preset0"}

        result = await service.create_category("Urgent", color="red")

        mock_graph_client.call.assert_awaited_once_with(
            "POST", CATEGORIES_PATH, body={"displayName": "Urgent", "color": "preset0"}
        )
        assert result["message"] == "Category created successfully!\n\nName: Urgent\nColor: Red\nID: c3"

    @pytest.mark.asyncio
    async def test_create_category_invalid_color(self, service, mock_graph_client):
        result = await service.create_category("Urgent", color="magenta")

        assert result["error"] == "invalid_argument"
        assert result["message"].startswith("Invalid color. Valid colors are: none, preset0, preset1")
        mock_graph_client.call.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_category(self, service, mock_graph_client):
        result = await service.delete_category("c1")

        assert result["message"] == "Category deleted successfully."
        mock_graph_client.call.assert_awaited_once_with("DELETE", f"{CATEGORIES_PATH}/c1")

    @pytest.mark.asyncio
    async def test_delete_category_requires_id(self, service, mock_graph_client):
        result = await service.delete_category("")

        assert result["message"] == "Category ID is required. Use list-categories to find the ID."

    @pytest.mark.parametrize("color,expected", [
        (None, "none"),
        ("preset24", "preset24"),
        ("PRESET3", "preset3"),
        ("DarkBlue", "preset22"),
        ("magenta", None),
    ])
    def test_normalize_category_color(self, color, expected):
        assert normalize_category_color(color) == expected


class TestCalendarEvent:

    def test_from_dict(self):
        event = CalendarEvent.from_dict(make_event("e1", location=""))

        assert event.start == "2025-03-10T09:00:00.0000000"
        assert event.time_zone == "UTC"
        assert event.location is None
        assert event.organizer == "kim@example.com"
        assert event.attendees == ["lee@example.com"]
