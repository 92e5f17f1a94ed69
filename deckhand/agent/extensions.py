"""Extension loading for a freshly started or resumed agent session."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from loguru import logger

if TYPE_CHECKING:
    from deckhand.agent.state import Recipe
    from deckhand.core.client import AgentAPIClient


@dataclass
class ExtensionLoadResult:
    loaded: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)


def _extension_config(entry: dict[str, Any]) -> dict[str, Any]:
    """Strip the client-side ``enabled`` flag from a stored extension entry."""
    return {k: v for k, v in entry.items() if k != "enabled"}


async def initialize_system(
    client: AgentAPIClient,
    session_id: str,
    provider: str,
    model: str,
    set_extensions_loading: Callable[[bool], None] | None = None,
    recipe: Recipe | None = None,
) -> ExtensionLoadResult:
    """Point the session at provider/model and load its extensions.

    Provider update and the extension listing are fatal on failure. A single
    extension failing to load is logged and reported in the result so the
    session stays usable with the rest.

    A recipe that names its own extensions replaces the user's enabled set.
    """
    await client.update_provider(session_id, provider, model)

    if recipe is not None and recipe.extensions:
        entries = list(recipe.extensions)
    else:
        entries = [e for e in await client.get_extensions() if e.get("enabled")]

    result = ExtensionLoadResult()
    if not entries:
        return result

    if set_extensions_loading:
        set_extensions_loading(True)
    try:
        for entry in entries:
            name = entry.get("name", "<unnamed>")
            try:
                await client.add_extension(session_id, _extension_config(entry))
            except Exception as e:
                logger.error(f"Failed to load extension '{name}': {e}")
                result.failed[name] = str(e)
                continue
            result.loaded.append(name)
    finally:
        if set_extensions_loading:
            set_extensions_loading(False)

    logger.info(
        f"Extensions loaded for session {session_id}: "
        f"{len(result.loaded)} ok, {len(result.failed)} failed"
    )
    return result
