"""Configuration module."""

from deckhand.core.config.loader import load_config
from deckhand.core.config.schema import Config

__all__ = ["Config", "load_config"]
