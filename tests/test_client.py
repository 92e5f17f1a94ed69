"""Tests for deckhand.core.client."""

from __future__ import annotations

import json

import httpx
import pytest

from deckhand.core.client import AgentAPIClient, APIError


def _client(handler, secret_key: str | None = None) -> AgentAPIClient:
    return AgentAPIClient(secret_key=secret_key, transport=httpx.MockTransport(handler))


def _recorder(status_code: int = 200, body=None):
    """Handler returning a fixed response and recording requests."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if body is None:
            return httpx.Response(status_code)
        return httpx.Response(status_code, json=body)

    return handler, seen


@pytest.mark.asyncio
async def test_start_agent_payload():
    """start_agent posts working_dir and recipe."""
    handler, seen = _recorder(200, {"session_id": "s1", "metadata": {}, "messages": []})
    async with _client(handler) as client:
        data = await client.start_agent("/work", recipe={"title": "R"})
    assert data["session_id"] == "s1"
    assert seen[0].method == "POST"
    assert seen[0].url.path == "/agent/start"
    assert json.loads(seen[0].content) == {"working_dir": "/work", "recipe": {"title": "R"}}


@pytest.mark.asyncio
async def test_start_agent_without_recipe():
    """No recipe key when none given."""
    handler, seen = _recorder(200, {"session_id": "s1"})
    async with _client(handler) as client:
        await client.start_agent("/work")
    assert json.loads(seen[0].content) == {"working_dir": "/work"}


@pytest.mark.asyncio
async def test_secret_key_header():
    """X-Secret-Key is sent when set."""
    handler, seen = _recorder(200, {})
    async with _client(handler, secret_key="k-123") as client:
        await client.read_all_config()
    assert seen[0].headers["X-Secret-Key"] == "k-123"


@pytest.mark.asyncio
async def test_no_secret_key_header():
    handler, seen = _recorder(200, {})
    async with _client(handler) as client:
        await client.read_all_config()
    assert "X-Secret-Key" not in seen[0].headers


@pytest.mark.asyncio
async def test_error_handling():
    """APIError raised on 4xx/5xx with detail and code."""
    handler, _ = _recorder(
        500, {"message": "Failed to create provider", "code": "provider_creation_failed"}
    )
    async with _client(handler) as client:
        with pytest.raises(APIError) as exc_info:
            await client.start_agent("/work")
    assert exc_info.value.status_code == 500
    assert exc_info.value.detail == "Failed to create provider"
    assert exc_info.value.code == "provider_creation_failed"


@pytest.mark.asyncio
async def test_error_plain_text():
    """Non-JSON error bodies become the detail, code stays None."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, text="config is corrupt")

    async with _client(handler) as client:
        with pytest.raises(APIError) as exc_info:
            await client.validate_config()
    assert exc_info.value.detail == "config is corrupt"
    assert exc_info.value.code is None


@pytest.mark.asyncio
async def test_read_config_missing_key():
    """404 from /config/read means the key is unset."""
    handler, seen = _recorder(404, {"detail": "not found"})
    async with _client(handler) as client:
        assert await client.read_config("DECKHAND_PROVIDER") is None
    assert json.loads(seen[0].content) == {"key": "DECKHAND_PROVIDER", "is_secret": False}


@pytest.mark.asyncio
async def test_read_config_other_error_propagates():
    handler, _ = _recorder(500, {"detail": "boom"})
    async with _client(handler) as client:
        with pytest.raises(APIError):
            await client.read_config("DECKHAND_PROVIDER")


@pytest.mark.asyncio
async def test_empty_body_returns_none():
    handler, seen = _recorder(200)
    async with _client(handler) as client:
        assert await client.init_config() is None
    assert seen[0].url.path == "/config/init"


@pytest.mark.asyncio
async def test_session_ops():
    """Session list, history, rename, delete hit the right routes."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/sessions":
            return httpx.Response(200, json={"sessions": [{"id": "s1"}]})
        if request.method == "GET":
            return httpx.Response(200, json={"sessionId": "s1", "messages": []})
        return httpx.Response(200)

    async with _client(handler) as client:
        assert await client.list_sessions() == [{"id": "s1"}]
        assert (await client.session_history("s1"))["sessionId"] == "s1"
        await client.update_session_metadata("s1", "renamed")
        await client.delete_session("s1")

    assert [(r.method, r.url.path) for r in seen] == [
        ("GET", "/sessions"),
        ("GET", "/sessions/s1"),
        ("PUT", "/sessions/s1/metadata"),
        ("DELETE", "/sessions/s1/delete"),
    ]
    assert json.loads(seen[2].content) == {"description": "renamed"}


@pytest.mark.asyncio
async def test_list_sessions_bad_format():
    handler, _ = _recorder(200, {"unexpected": True})
    async with _client(handler) as client:
        with pytest.raises(ValueError):
            await client.list_sessions()


@pytest.mark.asyncio
async def test_get_extensions_unwraps():
    handler, _ = _recorder(200, {"extensions": [{"name": "developer", "enabled": True}]})
    async with _client(handler) as client:
        assert await client.get_extensions() == [{"name": "developer", "enabled": True}]


def test_from_config():
    """from_config picks up server url, secret and timeout."""
    from deckhand.core.config import Config

    cfg = Config(server={"url": "http://agent:9/", "secret_key": "sk", "timeout": 5})
    client = AgentAPIClient.from_config(cfg)
    assert client._base_url == "http://agent:9"
    assert client._build_headers() == {"X-Secret-Key": "sk"}
