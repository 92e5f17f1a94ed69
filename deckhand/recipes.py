"""Recipe helpers that act on a live agent session."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from loguru import logger

from deckhand.core.client import APIError

if TYPE_CHECKING:
    from deckhand.core.client import AgentAPIClient


async def add_sub_recipes_to_agent(
    client: AgentAPIClient, session_id: str, sub_recipes: list[dict[str, Any]]
) -> bool:
    """Attach sub-recipes to the session's agent. Failure is logged, not raised."""
    if not sub_recipes:
        return True
    try:
        await client.add_sub_recipes(session_id, sub_recipes)
    except APIError as e:
        logger.warning(f"Failed to add sub recipes: {e.detail}")
        return False
    logger.info(f"Added {len(sub_recipes)} sub recipes to session {session_id}")
    return True
