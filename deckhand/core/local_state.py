"""Local persisted state — ~/.deckhand/state.json.

Holds small client-side markers that must survive restarts, most notably
``config_version`` which decides whether config migration is attempted.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

_DEFAULT_FILE = Path.home() / ".deckhand" / "state.json"

CONFIG_VERSION_KEY = "config_version"


class LocalState:
    """JSON-file key/value store (chmod 0600)."""

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path).expanduser() if path else _DEFAULT_FILE

    def load(self) -> dict[str, Any]:
        """Load saved state. Unreadable or corrupt files read as empty."""
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def save(self, data: dict[str, Any]) -> None:
        """Save state to disk (chmod 0600)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.chmod(self.path, 0o600)

    def get(self, key: str, default: Any = None) -> Any:
        return self.load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self.load()
        data[key] = value
        self.save(data)

    def clear(self) -> None:
        """Remove state file."""
        if self.path.exists():
            self.path.unlink()

    # ── Config version marker ───────────────────────────────

    def config_version(self) -> int | None:
        """Return the persisted config version, None if absent or not numeric."""
        raw = self.get(CONFIG_VERSION_KEY)
        if raw is None:
            return None
        try:
            return int(raw)
        except (TypeError, ValueError):
            return None

    def set_config_version(self, version: int) -> None:
        self.set(CONFIG_VERSION_KEY, str(version))
