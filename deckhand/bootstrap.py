"""AppBootstrap — process-entry variant of the agent lifecycle.

Launch intents are checked in fixed priority order:

    1. resume session id   → lifecycle resume
    2. recipe              → lifecycle start with recipe, toasts, go to /pair
    3. bare view           → static route table only, no agent work
    4. default             → cost cache + config in parallel, then lifecycle
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Protocol
from urllib.parse import parse_qs

from loguru import logger

from deckhand.agent.lifecycle import AgentLifecycle
from deckhand.agent.state import ChatSnapshot, InitializationContext, Recipe

ROUTES: dict[str, str] = {
    "chat": "/",
    "pair": "/pair",
    "settings": "/settings",
    "sessions": "/sessions",
    "schedules": "/schedules",
    "recipes": "/recipes",
    "permission": "/permission",
    "ConfigureProviders": "/configure-providers",
    "sharedSession": "/shared-session",
    "recipeEditor": "/recipe-editor",
    "welcome": "/welcome",
}

_ROOT_ROUTES = frozenset({"", "/", "#", "#/"})


class Notifier(Protocol):
    """Toast-style user notifications."""

    def loading(self, title: str, msg: str) -> str: ...

    def success(self, title: str, msg: str) -> None: ...

    def dismiss(self, toast_id: str) -> None: ...


class Navigator(Protocol):
    """Where the UI currently is and how to move it."""

    current: str

    def navigate(self, route: str, state: dict[str, Any] | None = None) -> None: ...


class BootstrapBranch(str, Enum):
    RESUME = "resume"
    RECIPE = "recipe"
    VIEW = "view"
    DEFAULT = "default"


@dataclass(frozen=True)
class LaunchContext:
    """Deep-link intents the process was started with."""

    resume_session_id: str | None = None
    recipe: Recipe | None = None
    view: str | None = None

    @classmethod
    def from_query(cls, query: str, recipe: Recipe | dict | None = None) -> LaunchContext:
        """Build from a ``view=...&resumeSessionId=...`` query string."""
        params = parse_qs(query.lstrip("?"))
        if isinstance(recipe, dict):
            recipe = Recipe.model_validate(recipe)
        return cls(
            resume_session_id=(params.get("resumeSessionId") or [None])[0],
            recipe=recipe,
            view=(params.get("view") or [None])[0],
        )


@dataclass
class BootstrapResult:
    branch: BootstrapBranch
    chat: ChatSnapshot | None = None
    route: str | None = None


def _ignore(_: Any) -> None:
    return None


class AppBootstrap:
    """Dispatch a launch context to the right initialization path."""

    def __init__(
        self,
        lifecycle: AgentLifecycle,
        notifier: Notifier | None = None,
        navigator: Navigator | None = None,
        set_waiting_message: Callable[[str | None], None] = _ignore,
        set_extensions_loading: Callable[[bool], None] | None = None,
    ):
        self.lifecycle = lifecycle
        self.notifier = notifier
        self.navigator = navigator
        self._base_context = InitializationContext(
            set_waiting_message=set_waiting_message,
            set_extensions_loading=set_extensions_loading,
        )

    async def run(self, launch: LaunchContext) -> BootstrapResult:
        logger.info("Initializing app")

        if launch.resume_session_id:
            return await self._resume(launch.resume_session_id)
        if launch.recipe is not None:
            return await self._recipe(launch.recipe)
        if launch.view:
            return self._view(launch.view)
        return await self._default()

    # ── Branches ─────────────────────────────────────────────

    async def _resume(self, session_id: str) -> BootstrapResult:
        logger.info(f"[resume] Session resume detected: {session_id}")
        context = replace(self._base_context, resume_session_id=session_id)
        try:
            chat = await self.lifecycle.load_current_chat(context)
        except Exception as e:
            logger.error(f"[resume] Failed to resume session {session_id}: {e}")
            raise
        return BootstrapResult(BootstrapBranch.RESUME, chat=chat)

    async def _recipe(self, recipe: Recipe) -> BootstrapResult:
        logger.info(f"Recipe deeplink detected: '{recipe.title}'")
        toast_id = None
        if self.notifier:
            toast_id = self.notifier.loading(
                f"Loading recipe: {recipe.title}", "Setting up environment..."
            )
        try:
            chat = await self.lifecycle.load_current_chat(replace(self._base_context, recipe=recipe))
        finally:
            if self.notifier and toast_id is not None:
                self.notifier.dismiss(toast_id)

        if self.notifier:
            self.notifier.success("Recipe loaded", "Recipe is ready to use")

        chat = chat.model_copy(
            update={"recipe": recipe, "title": recipe.title or "Recipe Chat"}
        )
        route = ROUTES["pair"]
        if self.navigator:
            self.navigator.navigate(route, {"recipe": recipe, "reset_chat": True})
        return BootstrapResult(BootstrapBranch.RECIPE, chat=chat, route=route)

    def _view(self, view: str) -> BootstrapResult:
        route = ROUTES.get(view)
        if route is None:
            logger.warning(f"Unknown view '{view}', ignoring")
            return BootstrapResult(BootstrapBranch.VIEW)
        if self.navigator:
            self.navigator.navigate(route)
        return BootstrapResult(BootstrapBranch.VIEW, route=route)

    async def _default(self) -> BootstrapResult:
        await asyncio.gather(
            self._prime_cost_tracking(),
            self.lifecycle.recovery.ensure_valid_config(),
        )
        chat = await self.lifecycle.load_current_chat(self._base_context)

        route = None
        if self.navigator and self.navigator.current in _ROOT_ROUTES:
            route = ROUTES["chat"]
            self.navigator.navigate(route)
        return BootstrapResult(BootstrapBranch.DEFAULT, chat=chat, route=route)

    async def _prime_cost_tracking(self) -> None:
        tracker = self.lifecycle.cost_tracker
        if tracker is None:
            logger.info("Cost tracking disabled, skipping cost database initialization")
            return
        try:
            await tracker.initialize()
        except Exception as e:
            logger.error(f"Failed to initialize cost database: {e}")
