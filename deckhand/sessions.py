"""Session browsing helpers over the agent service session API."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from loguru import logger
from pydantic import BaseModel, Field

from deckhand.agent.state import SessionMetadata

if TYPE_CHECKING:
    from deckhand.core.client import AgentAPIClient

MAX_DESCRIPTION_LENGTH = 200


class Session(BaseModel):
    """One entry of the session list."""

    id: str
    path: str = ""
    modified: str = ""
    metadata: SessionMetadata = Field(default_factory=SessionMetadata)


class SessionDetails(BaseModel):
    session_id: str
    metadata: SessionMetadata
    messages: list[dict[str, Any]] = Field(default_factory=list)


def ensure_working_dir(metadata: dict[str, Any] | None) -> SessionMetadata:
    """Fill missing metadata fields; working_dir falls back to $HOME."""
    meta = SessionMetadata.model_validate(metadata or {})
    if not meta.working_dir:
        meta.working_dir = os.environ.get("HOME", "")
    return meta


def _modified_key(session: Session) -> datetime:
    try:
        modified = session.modified.replace(" UTC", "+00:00")
        if modified.endswith("Z"):
            modified = modified[:-1] + "+00:00"
        parsed = datetime.fromisoformat(modified)
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


async def fetch_sessions(client: AgentAPIClient) -> list[Session]:
    """Non-empty sessions, most recently modified first."""
    raw = await client.list_sessions()
    sessions = [
        Session(
            id=info["id"],
            path=info.get("path", ""),
            modified=info.get("modified", ""),
            metadata=ensure_working_dir(info.get("metadata")),
        )
        for info in raw
        if info.get("metadata") and info["metadata"].get("message_count", 0) > 0
    ]
    sessions.sort(key=_modified_key, reverse=True)
    return sessions


async def fetch_session_details(client: AgentAPIClient, session_id: str) -> SessionDetails:
    data = await client.session_history(session_id)
    return SessionDetails(
        session_id=data.get("sessionId") or data.get("session_id") or session_id,
        metadata=ensure_working_dir(data.get("metadata")),
        messages=data.get("messages", []),
    )


async def update_session_metadata(client: AgentAPIClient, session_id: str, description: str) -> None:
    """Rename a session. Descriptions are capped at 200 characters."""
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValueError(f"Description exceeds {MAX_DESCRIPTION_LENGTH} characters")
    await client.update_session_metadata(session_id, description)


async def delete_session(client: AgentAPIClient, session_id: str) -> None:
    try:
        await client.delete_session(session_id)
    except Exception as e:
        logger.error(f"Error deleting session {session_id}: {e}")
        raise
