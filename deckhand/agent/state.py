"""Agent lifecycle types — states, session snapshots, init context, errors."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field


class AgentState(str, Enum):
    """Lifecycle state of the agent owned by an ``AgentLifecycle``."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    NO_PROVIDER = "no_provider"
    INITIALIZED = "initialized"
    ERROR = "error"


# ── Remote payloads ──────────────────────────────────────────


class Recipe(BaseModel):
    """Recipe attached to a session. Unknown fields are kept as-is."""

    model_config = ConfigDict(extra="allow")

    title: str = ""
    description: str = ""
    instructions: str | None = None
    prompt: str | None = None
    extensions: list[dict[str, Any]] = Field(default_factory=list)
    sub_recipes: list[dict[str, Any]] = Field(default_factory=list)


class SessionMetadata(BaseModel):
    """Session metadata as returned by the agent service."""

    model_config = ConfigDict(extra="allow")

    description: str = ""
    working_dir: str = ""
    message_count: int = 0
    total_tokens: int | None = None
    accumulated_input_tokens: int | None = None
    accumulated_output_tokens: int | None = None
    accumulated_total_tokens: int | None = None
    recipe: Recipe | None = None


class SessionSnapshot(BaseModel):
    """Response of start/resume: the session and its conversation so far."""

    session_id: str
    metadata: SessionMetadata = Field(default_factory=SessionMetadata)
    messages: list[dict[str, Any]] = Field(default_factory=list)


class ChatSnapshot(BaseModel):
    """What a caller of ``load_current_chat`` receives."""

    session_id: str
    title: str = ""
    message_history_index: int = 0
    messages: list[dict[str, Any]] = Field(default_factory=list)
    recipe: Recipe | None = None

    @classmethod
    def from_session(cls, snapshot: SessionSnapshot) -> ChatSnapshot:
        meta = snapshot.metadata
        title = (meta.recipe.title if meta.recipe else "") or meta.description
        return cls(
            session_id=snapshot.session_id,
            title=title,
            messages=list(snapshot.messages),
            recipe=meta.recipe,
        )


# ── Per-call context ─────────────────────────────────────────


def _noop_message(_: str | None) -> None:
    return None


@dataclass(frozen=True)
class InitializationContext:
    """Immutable inputs for one ``load_current_chat`` call.

    ``set_waiting_message`` receives phase labels and is always reset to
    ``None`` when the call finishes. ``set_extensions_loading`` is toggled
    around extension loading when provided.
    """

    recipe: Recipe | None = None
    resume_session_id: str | None = None
    set_waiting_message: Callable[[str | None], None] = _noop_message
    set_extensions_loading: Callable[[bool], None] | None = None


# ── Errors ───────────────────────────────────────────────────


class NoProviderOrModelError(Exception):
    """No provider or model configured. Expected and user-actionable."""

    def __init__(self, provider: str | None = None, model: str | None = None):
        self.provider = provider
        self.model = model
        super().__init__("No provider or model configured")


class MissingSessionInfoError(Exception):
    """The agent service answered start/resume without session info."""

    def __init__(self) -> None:
        super().__init__("Failed to get session info")
