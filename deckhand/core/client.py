"""AgentAPIClient — async httpx wrapper for the remote agent service."""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger


class APIError(Exception):
    """Raised when the agent service returns a non-2xx response.

    ``code`` carries the structured error code when the service sends one
    (``{"code": "...", "message": "..."}``); it is ``None`` for plain-text errors.
    """

    def __init__(self, status_code: int, detail: str, code: str | None = None):
        self.status_code = status_code
        self.detail = detail
        self.code = code
        super().__init__(f"HTTP {status_code}: {detail}")


class AgentAPIClient:
    """Asynchronous HTTP client for the agent service REST API."""

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:3000",
        secret_key: str | None = None,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._secret_key = secret_key
        self._http = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: Any) -> AgentAPIClient:
        """Build a client from ``Config.server``."""
        return cls(
            base_url=config.server.url,
            secret_key=config.server.secret_key or None,
            timeout=config.server.timeout,
        )

    # ── Internal ─────────────────────────────────────────────

    def _build_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self._secret_key:
            headers["X-Secret-Key"] = self._secret_key
        return headers

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send request with auth header, raise APIError on failure."""
        headers = self._build_headers()
        headers.update(kwargs.pop("headers", {}))
        resp = await self._http.request(method, path, headers=headers, **kwargs)
        if resp.status_code >= 400:
            detail, code = _error_detail(resp)
            logger.debug(f"{method} {path} failed ({resp.status_code}): {detail[:200]}")
            raise APIError(resp.status_code, detail, code=code)
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return resp.text

    # ── Agent ────────────────────────────────────────────────

    async def start_agent(self, working_dir: str, recipe: dict | None = None) -> dict:
        """POST /agent/start."""
        payload: dict[str, Any] = {"working_dir": working_dir}
        if recipe is not None:
            payload["recipe"] = recipe
        return await self._request("POST", "/agent/start", json=payload)

    async def resume_agent(self, session_id: str) -> dict:
        """POST /agent/resume."""
        return await self._request("POST", "/agent/resume", json={"session_id": session_id})

    async def update_provider(self, session_id: str, provider: str, model: str) -> None:
        """POST /agent/update_provider."""
        await self._request(
            "POST",
            "/agent/update_provider",
            json={"session_id": session_id, "provider": provider, "model": model},
        )

    async def add_extension(self, session_id: str, extension: dict) -> dict | None:
        """POST /extensions/add."""
        return await self._request(
            "POST", "/extensions/add", json={"session_id": session_id, **extension}
        )

    async def add_sub_recipes(self, session_id: str, sub_recipes: list[dict]) -> dict | None:
        """POST /agent/add_sub_recipes."""
        return await self._request(
            "POST",
            "/agent/add_sub_recipes",
            json={"session_id": session_id, "sub_recipes": sub_recipes},
        )

    # ── Config ───────────────────────────────────────────────

    async def init_config(self) -> None:
        """POST /config/init."""
        await self._request("POST", "/config/init")

    async def read_all_config(self) -> dict:
        """GET /config."""
        return await self._request("GET", "/config")

    async def read_config(self, key: str, is_secret: bool = False) -> Any:
        """POST /config/read. Returns None when the key is not set."""
        try:
            return await self._request(
                "POST", "/config/read", json={"key": key, "is_secret": is_secret}
            )
        except APIError as e:
            if e.status_code == 404:
                return None
            raise

    async def validate_config(self) -> Any:
        """GET /config/validate."""
        return await self._request("GET", "/config/validate")

    async def recover_config(self) -> Any:
        """POST /config/recover."""
        return await self._request("POST", "/config/recover")

    async def backup_config(self) -> Any:
        """POST /config/backup."""
        return await self._request("POST", "/config/backup")

    async def get_extensions(self) -> list[dict]:
        """GET /config/extensions."""
        data = await self._request("GET", "/config/extensions")
        return (data or {}).get("extensions", [])

    async def get_pricing(self) -> list[dict]:
        """POST /config/pricing."""
        data = await self._request("POST", "/config/pricing", json={"configured_only": True})
        return (data or {}).get("pricing", [])

    # ── Sessions ─────────────────────────────────────────────

    async def list_sessions(self) -> list[dict]:
        """GET /sessions."""
        data = await self._request("GET", "/sessions")
        if not isinstance(data, dict) or "sessions" not in data:
            raise ValueError("Unexpected response format from /sessions")
        return data["sessions"]

    async def session_history(self, session_id: str) -> dict:
        """GET /sessions/{session_id}."""
        return await self._request("GET", f"/sessions/{session_id}")

    async def update_session_metadata(self, session_id: str, description: str) -> None:
        """PUT /sessions/{session_id}/metadata."""
        await self._request(
            "PUT", f"/sessions/{session_id}/metadata", json={"description": description}
        )

    async def delete_session(self, session_id: str) -> None:
        """DELETE /sessions/{session_id}/delete."""
        await self._request("DELETE", f"/sessions/{session_id}/delete")

    # ── Cleanup ──────────────────────────────────────────────

    async def aclose(self) -> None:
        """Close underlying httpx client."""
        await self._http.aclose()

    async def __aenter__(self) -> AgentAPIClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()


def _error_detail(resp: httpx.Response) -> tuple[str, str | None]:
    """Extract (detail, code) from an error response body."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text, None
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message") or resp.text
        return str(detail), body.get("code")
    return resp.text, None
