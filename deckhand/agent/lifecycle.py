"""AgentLifecycle — owns agent state and session identity for one client.

State machine::

    UNINITIALIZED ──load_current_chat──▶ INITIALIZING ──▶ INITIALIZED
          ▲                                   │──────▶ NO_PROVIDER
          └────────── reset_chat (any) ───────┘──────▶ ERROR

Cold path (once per gate attempt):
    1. resolve provider/model          → NO_PROVIDER if either is empty
    2. resume or start remote session
    3. record session id
    4. config recovery cascade
    5. load extensions                 (fatal on failure)
       attach recipe sub-recipes       (best effort, new sessions only)
    6. prime cost tracking             (best effort)
    7. INITIALIZED

``reset_chat`` bumps a generation counter; a cold path started under an older
generation still returns to its callers but does not commit state.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Callable

from loguru import logger

from deckhand.agent.costs import CostTracker
from deckhand.agent.extensions import ExtensionLoadResult, initialize_system
from deckhand.agent.gate import InitGate
from deckhand.agent.recovery import ConfigRecoveryPipeline, RecoveryReport
from deckhand.agent.state import (
    AgentState,
    ChatSnapshot,
    InitializationContext,
    MissingSessionInfoError,
    NoProviderOrModelError,
    SessionSnapshot,
)
from deckhand.core.client import APIError
from deckhand.core.local_state import LocalState
from deckhand.recipes import add_sub_recipes_to_agent

if TYPE_CHECKING:
    from deckhand.core.client import AgentAPIClient
    from deckhand.core.config.schema import Config

PROVIDER_CREATION_CODE = "provider_creation_failed"
_PROVIDER_CREATION_TEXT = "Failed to create provider"

StateListener = Callable[[AgentState], None]


def is_provider_creation_failure(exc: BaseException) -> bool:
    """True when a start/resume failure means the provider could not be built.

    Prefers the structured ``APIError.code``; falls back to matching the
    rendered error text for services that only send a message.
    """
    if isinstance(exc, APIError) and exc.code is not None:
        return exc.code == PROVIDER_CREATION_CODE
    return _PROVIDER_CREATION_TEXT in str(exc)


def parse_session(data: Any) -> SessionSnapshot:
    if not data:
        raise MissingSessionInfoError()
    return SessionSnapshot.model_validate(data)


class AgentLifecycle:
    """Agent session orchestrator for a single UI/CLI owner."""

    def __init__(
        self,
        client: AgentAPIClient,
        config: Config,
        local_state: LocalState | None = None,
        recovery: ConfigRecoveryPipeline | None = None,
        cost_tracker: CostTracker | None = None,
    ):
        self.client = client
        self.config = config
        self.recovery = recovery or ConfigRecoveryPipeline(
            client,
            local_state or LocalState(config.state_path),
            migration_threshold=config.recovery.migration_threshold,
        )
        if cost_tracker is None and config.features.cost_tracking:
            cost_tracker = CostTracker(client, config.pricing_cache_path)
        self.cost_tracker = cost_tracker

        self._state = AgentState.UNINITIALIZED
        self._session_id: str | None = None
        self._generation = 0
        self._gate: InitGate[ChatSnapshot] = InitGate("agent")
        self._listeners: list[StateListener] = []

        self.last_error: BaseException | None = None
        self.last_recovery: RecoveryReport | None = None
        self.last_extensions: ExtensionLoadResult | None = None
        self.active_model: tuple[str, str] | None = None

    # ── Read-only views ─────────────────────────────────────

    @property
    def agent_state(self) -> AgentState:
        return self._state

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def initializing(self) -> bool:
        return self._gate.in_flight

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener(state)`` on every transition. Returns an unsubscribe."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ── Internal state ──────────────────────────────────────

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _set_state(self, state: AgentState, generation: int | None = None) -> bool:
        """Commit ``state`` unless it belongs to a reset generation."""
        if generation is not None and not self._is_current(generation):
            logger.info(
                f"Discarding stale transition to {state.value} "
                f"(generation {generation}, current {self._generation})"
            )
            return False
        if state is self._state:
            return True
        logger.debug(f"Agent state {self._state.value} -> {state.value}")
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error(f"Agent state listener failed: {e}")
        return True

    # ── Public API ──────────────────────────────────────────

    def reset_chat(self) -> None:
        """Forget the session and go back to UNINITIALIZED, from any state.

        An in-flight attempt keeps running but can no longer commit.
        """
        self._generation += 1
        self._gate.detach()
        self._session_id = None
        self.last_error = None
        self.last_recovery = None
        self.last_extensions = None
        self.active_model = None
        self._set_state(AgentState.UNINITIALIZED)

    async def load_current_chat(self, context: InitializationContext) -> ChatSnapshot:
        """Return the current chat, initializing the agent if needed.

        Concurrent callers share one initialization attempt.
        """
        if self._state is AgentState.INITIALIZED and self._session_id:
            return await self._refresh_current()
        # a cancelled caller must not cancel the attempt other callers share
        return await asyncio.shield(self._gate.acquire_or_join(lambda: self._cold_start(context)))

    async def resolve_provider(self) -> tuple[str | None, str | None]:
        """Session config override first, then configured defaults.

        Defaults apply only when the remote key is absent.
        """
        agent_cfg = self.config.agent
        provider = await self.client.read_config(agent_cfg.provider_key, is_secret=False)
        model = await self.client.read_config(agent_cfg.model_key, is_secret=False)
        # an explicit empty remote value is kept and ends in NO_PROVIDER
        if provider is None:
            provider = agent_cfg.default_provider or None
        if model is None:
            model = agent_cfg.default_model or None
        return provider, model

    # ── Paths ───────────────────────────────────────────────

    async def _refresh_current(self) -> ChatSnapshot:
        """Fast path: re-fetch the live session, no config or extension work."""
        data = await self.client.resume_agent(self._session_id)
        return ChatSnapshot.from_session(parse_session(data))

    async def _start_or_resume(self, context: InitializationContext) -> SessionSnapshot:
        if context.resume_session_id:
            logger.info(f"Resuming agent session {context.resume_session_id}")
            data = await self.client.resume_agent(context.resume_session_id)
        else:
            recipe = context.recipe.model_dump(exclude_none=True) if context.recipe else None
            logger.info(
                "Starting new agent session"
                + (f" with recipe '{context.recipe.title}'" if context.recipe else "")
            )
            data = await self.client.start_agent(str(self.config.working_dir_path), recipe=recipe)
        return parse_session(data)

    async def _init_cost_tracking(self) -> None:
        if self.cost_tracker is None:
            return
        try:
            await self.cost_tracker.initialize()
        except Exception as e:
            logger.error(f"Failed to initialize cost database: {e}")

    async def _cold_start(self, context: InitializationContext) -> ChatSnapshot:
        generation = self._generation
        show = context.set_waiting_message

        self._set_state(AgentState.INITIALIZING, generation)
        show("Agent is initializing")
        try:
            provider, model = await self.resolve_provider()
            if not provider or not model:
                raise NoProviderOrModelError(provider, model)

            snapshot = await self._start_or_resume(context)
            if self._is_current(generation):
                self._session_id = snapshot.session_id

            show("Agent is loading config")
            report = await self.recovery.ensure_valid_config()
            if self._is_current(generation):
                self.last_recovery = report

            show("Extensions are loading")
            extensions = await initialize_system(
                self.client,
                snapshot.session_id,
                provider,
                model,
                set_extensions_loading=context.set_extensions_loading,
                recipe=context.recipe,
            )
            if self._is_current(generation):
                self.last_extensions = extensions

            if context.recipe and context.recipe.sub_recipes and not context.resume_session_id:
                await add_sub_recipes_to_agent(
                    self.client, snapshot.session_id, context.recipe.sub_recipes
                )

            await self._init_cost_tracking()

            chat = ChatSnapshot.from_session(snapshot)
            if self._set_state(AgentState.INITIALIZED, generation):
                self.last_error = None
                self.active_model = (provider, model)
                logger.info(f"Agent initialized: session {snapshot.session_id} ({provider}/{model})")
            return chat
        except Exception as e:
            if isinstance(e, NoProviderOrModelError) or is_provider_creation_failure(e):
                logger.warning(f"Agent has no usable provider: {e}")
                committed = self._set_state(AgentState.NO_PROVIDER, generation)
            else:
                logger.error(f"Agent initialization failed: {e}")
                committed = self._set_state(AgentState.ERROR, generation)
            if committed:
                self.last_error = e
            raise
        finally:
            show(None)
