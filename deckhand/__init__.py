"""deckhand — client-side agent session lifecycle orchestrator."""

__version__ = "0.4.0"
