# pantrychef/services/saved_service.py
"""
Saved/unsaved toggle for a (user, recipe) pair.

The caller passes the state it last observed and we perform the transition
that state implies, without re-reading. Safety under double clicks comes from
the unique constraint on saved_recipes(user_id, recipe_id):
  - insert hitting the constraint  -> already saved, treated as success
  - delete matching no rows        -> already unsaved, treated as success
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from pantrychef.config.supabase import supabase_client
from pantrychef.db.client import describe_error, is_unique_violation, run_blocking
from pantrychef.services.errors import (
    StoreUnavailableError,
    ToggleError,
    UnauthenticatedError,
)

logger = logging.getLogger(__name__)


class SavedRecipeService:

    def __init__(self, client: Any = None):
        self.client = client if client is not None else getattr(supabase_client, "client", None)
        if self.client is None:
            logger.warning("Supabase client not available. Saved-recipe toggles will fail.")

    async def save(self, user_id: str, recipe_id: str) -> None:
        try:
            await run_blocking(
                self.client.table("saved_recipes")
                .insert({"user_id": user_id, "recipe_id": recipe_id})
                .execute
            )
        except Exception as exc:
            if is_unique_violation(exc):
                logger.info(
                    "Recipe %s already saved by user=%s; nothing to do", recipe_id, user_id
                )
                return
            raise

    async def unsave(self, user_id: str, recipe_id: str) -> None:
        await run_blocking(
            self.client.table("saved_recipes")
            .delete()
            .eq("user_id", user_id)
            .eq("recipe_id", recipe_id)
            .execute
        )

    async def toggle_saved(
        self, user_id: Optional[str], recipe_id: str, currently_saved: bool
    ) -> bool:
        """
        Flip the saved state and return the new one.

        Any aggregate fetched before this call has a stale `is_saved`; refetch it.

        Raises:
            UnauthenticatedError: no user.
            StoreUnavailableError: no Supabase client configured.
            ToggleError: the store rejected the change; saved state is unchanged.
        """
        if not user_id:
            raise UnauthenticatedError("Please sign in to save recipes")
        if self.client is None:
            raise StoreUnavailableError("Recipe storage is not configured")

        user_id, recipe_id = str(user_id), str(recipe_id)
        try:
            if currently_saved:
                await self.unsave(user_id, recipe_id)
            else:
                await self.save(user_id, recipe_id)
        except Exception as exc:
            logger.exception(
                "Saved toggle failed user=%s recipe=%s: %s", user_id, recipe_id, exc
            )
            raise ToggleError(
                f"Failed to update saved status: {describe_error(exc)}"
            ) from exc

        new_state = not currently_saved
        logger.info("Recipe %s saved=%s for user=%s", recipe_id, new_state, user_id)
        return new_state
