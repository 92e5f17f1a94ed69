"""Cost tracking — local model pricing cache primed from the agent service."""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

if TYPE_CHECKING:
    from deckhand.core.client import AgentAPIClient

_MAX_AGE_S = 24 * 60 * 60


class CostTracker:
    """Keeps ``pricing.json`` with per-model token prices.

    ``initialize`` is called best-effort by the lifecycle; it raises on
    failure and leaves swallowing to the caller.
    """

    def __init__(self, client: AgentAPIClient, cache_path: str | Path, max_age_s: int = _MAX_AGE_S):
        self.client = client
        self.cache_path = Path(cache_path).expanduser()
        self.max_age_s = max_age_s

    def _load(self) -> dict[str, Any]:
        if not self.cache_path.exists():
            return {}
        try:
            return json.loads(self.cache_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}

    def is_fresh(self) -> bool:
        fetched_at = self._load().get("fetched_at", 0)
        return time.time() - float(fetched_at) < self.max_age_s

    async def initialize(self) -> int:
        """Refresh the cache when stale. Returns the number of cached models."""
        if self.is_fresh():
            models = self._load().get("models", {})
            logger.debug(f"Pricing cache fresh ({len(models)} models)")
            return len(models)

        pricing = await self.client.get_pricing()
        models = {
            f"{p['provider']}/{p['model']}": {
                "input_token_cost": p.get("input_token_cost"),
                "output_token_cost": p.get("output_token_cost"),
                "currency": p.get("currency", "$"),
            }
            for p in pricing
            if p.get("provider") and p.get("model")
        }
        self.cache_path.parent.mkdir(parents=True, exist_ok=True)
        self.cache_path.write_text(
            json.dumps({"fetched_at": time.time(), "models": models}, indent=2),
            encoding="utf-8",
        )
        logger.info(f"Pricing cache refreshed: {len(models)} models")
        return len(models)

    def get_model_cost(self, provider: str, model: str) -> dict[str, Any] | None:
        return self._load().get("models", {}).get(f"{provider}/{model}")
