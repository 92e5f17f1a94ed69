"""deckhand configuration schema — YAML + Pydantic + env override."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# ════════════════════════════════════════════════════════════
# SUB-CONFIGS (nested BaseModel)
# ════════════════════════════════════════════════════════════


class ServerConfig(BaseModel):
    """Remote agent service (server.*)."""

    url: str = "http://127.0.0.1:3000"
    secret_key: str = ""
    timeout: float = 60.0


class AgentConfig(BaseModel):
    """Agent session defaults (agent.*)."""

    working_dir: str = "."
    default_provider: str = ""
    default_model: str = ""
    provider_key: str = "DECKHAND_PROVIDER"
    model_key: str = "DECKHAND_MODEL"


class FeaturesConfig(BaseModel):
    """Feature flags."""

    cost_tracking: bool = True


class RecoveryConfig(BaseModel):
    """Config recovery cascade settings."""

    migration_threshold: int = 3  # marker below this → backup + reinit


class StateConfig(BaseModel):
    """Local persisted state (marker file)."""

    path: str = "~/.deckhand/state.json"
    pricing_cache: str = "~/.deckhand/pricing.json"


# ════════════════════════════════════════════════════════════
# ROOT CONFIG (BaseSettings — env + .env support)
# ════════════════════════════════════════════════════════════


class Config(BaseSettings):
    """
    Root configuration.

    Priority: env vars > .env > YAML (init kwargs) > defaults

    Env override examples:
        DECKHAND_SERVER__URL=http://127.0.0.1:3001
        DECKHAND_SERVER__SECRET_KEY=...
        DECKHAND_AGENT__DEFAULT_PROVIDER=anthropic
        DECKHAND_FEATURES__COST_TRACKING=false
    """

    model_config = SettingsConfigDict(
        env_prefix="DECKHAND_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    features: FeaturesConfig = Field(default_factory=FeaturesConfig)
    recovery: RecoveryConfig = Field(default_factory=RecoveryConfig)
    state: StateConfig = Field(default_factory=StateConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # YAML arrives as init kwargs; env and .env must win over it.
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    # ── Computed properties ─────────────────────────────────

    @property
    def working_dir_path(self) -> Path:
        return Path(self.agent.working_dir).expanduser().resolve()

    @property
    def state_path(self) -> Path:
        return Path(self.state.path).expanduser()

    @property
    def pricing_cache_path(self) -> Path:
        return Path(self.state.pricing_cache).expanduser()
