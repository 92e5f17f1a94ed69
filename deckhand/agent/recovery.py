"""ConfigRecoveryPipeline — cascade from normalize to bare reinitialize.

Steps, each tried only if everything before it failed:

    1. init_config + strict read_all_config
    2. migrate: backup_config + init_config (only when the local
       config-version marker is missing or below the threshold; best effort)
    3. validate_config + read_all_config
    4. recover_config + read_all_config
    5. init_config, no verification (terminal, never raises)

Each step is more destructive than the last. The pipeline prefers a degraded
configuration over blocking the user, so ``ensure_valid_config`` does not raise.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable

from loguru import logger

if TYPE_CHECKING:
    from deckhand.core.client import AgentAPIClient
    from deckhand.core.local_state import LocalState


@dataclass
class RecoveryStrategy:
    """One named recovery step. ``run`` raises when the step did not help."""

    name: str
    run: Callable[[], Awaitable[None]]


@dataclass
class RecoveryReport:
    """Outcome of one ``ensure_valid_config`` call."""

    resolved_by: str
    migrated: bool = False
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def degraded(self) -> bool:
        """True when only the unverified reinitialize was left."""
        return self.resolved_by == "reinitialize"


class ConfigRecoveryPipeline:
    """Bring the remote configuration store to a readable state."""

    def __init__(
        self,
        client: AgentAPIClient,
        state: LocalState,
        migration_threshold: int = 3,
    ):
        self.client = client
        self.state = state
        self.migration_threshold = migration_threshold

    # ── Steps ────────────────────────────────────────────────

    async def _normalize(self) -> None:
        await self.client.init_config()
        await self.client.read_all_config()

    async def _validate(self) -> None:
        await self.client.validate_config()
        await self.client.read_all_config()

    async def _recover(self) -> None:
        await self.client.recover_config()
        await self.client.read_all_config()

    def strategies(self) -> list[RecoveryStrategy]:
        """Verified strategies, in cascade order. Migration and the terminal
        reinitialize are handled by ``ensure_valid_config`` itself."""
        return [
            RecoveryStrategy("validate", self._validate),
            RecoveryStrategy("recover", self._recover),
        ]

    def should_migrate(self) -> bool:
        version = self.state.config_version()
        return version is None or version < self.migration_threshold

    async def migrate(self) -> bool:
        """Back up then reinitialize the config. Returns True on success."""
        logger.info("Performing config migration (backup + reinit)")
        try:
            await self.client.backup_config()
            await self.client.init_config()
        except Exception as e:
            logger.error(f"Config migration failed: {e}")
            return False
        return True

    # ── Entry point ──────────────────────────────────────────

    async def ensure_valid_config(self) -> RecoveryReport:
        """Run the cascade. Never raises."""
        errors: dict[str, str] = {}

        try:
            await self._normalize()
            return RecoveryReport(resolved_by="normalize")
        except Exception as e:
            logger.warning(f"Initial config read failed, attempting recovery: {e}")
            errors["normalize"] = str(e)

        migrated = False
        if self.should_migrate():
            migrated = await self.migrate()

        for strategy in self.strategies():
            try:
                await strategy.run()
            except Exception as e:
                logger.info(f"Config strategy '{strategy.name}' failed: {e}")
                errors[strategy.name] = str(e)
                continue
            logger.info(f"Config restored by '{strategy.name}'")
            return RecoveryReport(resolved_by=strategy.name, migrated=migrated, errors=errors)

        logger.warning("Config recovery failed, reinitializing...")
        try:
            await self.client.init_config()
        except Exception as e:
            logger.error(f"Config reinitialize failed, continuing with current config: {e}")
            errors["reinitialize"] = str(e)
        return RecoveryReport(resolved_by="reinitialize", migrated=migrated, errors=errors)
