"""Agent session lifecycle: state machine, init gate, config recovery."""

from deckhand.agent.gate import InitGate
from deckhand.agent.lifecycle import AgentLifecycle, is_provider_creation_failure
from deckhand.agent.recovery import ConfigRecoveryPipeline, RecoveryReport
from deckhand.agent.state import (
    AgentState,
    ChatSnapshot,
    InitializationContext,
    NoProviderOrModelError,
    Recipe,
    SessionSnapshot,
)

__all__ = [
    "AgentLifecycle",
    "AgentState",
    "ChatSnapshot",
    "ConfigRecoveryPipeline",
    "InitGate",
    "InitializationContext",
    "NoProviderOrModelError",
    "Recipe",
    "RecoveryReport",
    "SessionSnapshot",
    "is_provider_creation_failure",
]
