"""
Token Store Tests
토큰 파일 형식, 만료 처리
"""

import json
import time
import pytest

from core.protocols import TokenProviderProtocol
from session.token_store import TokenStore


def _write(path, data):
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f)


class TestTokenStore:
    """TokenStore 테스트"""

    def test_implements_protocol(self, graph_config):
        assert isinstance(TokenStore(config=graph_config), TokenProviderProtocol)

    @pytest.mark.asyncio
    async def test_single_user_token(self, graph_config, token_file):
        store = TokenStore(config=graph_config)

        assert await store.validate_and_refresh_token("me") == "test-access-token"

    @pytest.mark.asyncio
    async def test_multi_user_token(self, graph_config):
        _write(graph_config.token_path, {
            "user@example.com": {"access_token": "user-token", "expires_at": (time.time() + 600) * 1000},
        })
        store = TokenStore(config=graph_config)

        assert await store.validate_and_refresh_token("user@example.com") == "user-token"
        assert await store.validate_and_refresh_token("other@example.com") is None

    @pytest.mark.asyncio
    async def test_expired_token_returns_none(self, graph_config):
        _write(graph_config.token_path, {
            "access_token": "old-token",
            "expires_at": (time.time() - 60) * 1000,
        })
        store = TokenStore(config=graph_config)

        assert await store.validate_and_refresh_token() is None

    @pytest.mark.asyncio
    async def test_missing_file_returns_none(self, graph_config):
        store = TokenStore(config=graph_config)

        assert await store.validate_and_refresh_token() is None

    @pytest.mark.asyncio
    async def test_corrupt_file_returns_none(self, graph_config):
        with open(graph_config.token_path, "w", encoding="utf-8") as f:
            f.write("{not json")
        store = TokenStore(config=graph_config)

        assert await store.validate_and_refresh_token() is None

    def test_is_token_expired(self):
        assert TokenStore.is_token_expired(None) is False
        assert TokenStore.is_token_expired((time.time() - 1) * 1000) is True
        assert TokenStore.is_token_expired((time.time() + 60) * 1000) is False


class TestGraphConfig:
    """GraphConfig 설정 우선순위"""

    def test_env_values(self, monkeypatch):
        from session.graph_config import GraphConfig

        monkeypatch.setenv("GRAPH_API_ENDPOINT", "https://graph.example.org/beta/")
        monkeypatch.setenv("OUTLOOK_MAX_RESULT_COUNT", "25")
        monkeypatch.setenv("GRAPH_REQUEST_TIMEOUT", "not-a-number")

        config = GraphConfig()

        assert config.graph_api_endpoint == "https://graph.example.org/beta"
        assert config.max_result_count == 25
        assert config.request_timeout == 30

    def test_calendar_time_zone(self, monkeypatch):
        from session.graph_config import GraphConfig, DEFAULT_CALENDAR_TIME_ZONE

        monkeypatch.delenv("OUTLOOK_CALENDAR_TIMEZONE", raising=False)
        assert GraphConfig().calendar_time_zone == DEFAULT_CALENDAR_TIME_ZONE

        monkeypatch.setenv("OUTLOOK_CALENDAR_TIMEZONE", "Korea Standard Time")
        assert GraphConfig().calendar_time_zone == "Korea Standard Time"
        assert GraphConfig(calendar_time_zone="UTC").calendar_time_zone == "UTC"

    @pytest.mark.parametrize("count,expected", [(None, 10), (0, 10), (5, 5), (500, 50), (-3, 1)])
    def test_clamp_count(self, graph_config, count, expected):
        assert graph_config.clamp_count(count) == expected
