# pantrychef/services/recipe_reader.py
"""
Rebuild a RecipeAggregate for one viewer.

Queries, in order:
  1. recipe + embedded ingredients, recipe_steps, recipe_tags
  2. author display name from profiles (failure tolerated)
  3. saved_recipes membership, only when a viewer is given

Nothing is cached; every fetch reads current store state.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from pantrychef.config.supabase import supabase_client
from pantrychef.db.client import (
    describe_error,
    is_invalid_identifier,
    rows_from_response,
    run_blocking,
)
from pantrychef.models.schemas import RecipeAggregate
from pantrychef.services.errors import RecipeNotFound, StoreUnavailableError

logger = logging.getLogger(__name__)

AGGREGATE_SELECT = "*, ingredients(*), recipe_steps(*), recipe_tags(tag)"


class RecipeReader:

    def __init__(self, client: Any = None):
        self.client = client if client is not None else getattr(supabase_client, "client", None)
        if self.client is None:
            logger.warning("Supabase client not available. Recipe reads will fail.")

    async def _recipe_row(self, recipe_id: str) -> Optional[Dict[str, Any]]:
        try:
            resp = await run_blocking(
                self.client.table("recipes")
                .select(AGGREGATE_SELECT)
                .eq("id", recipe_id)
                .limit(1)
                .execute
            )
        except Exception as exc:
            if is_invalid_identifier(exc):
                return None
            logger.exception("Recipe query failed id=%s: %s", recipe_id, exc)
            raise StoreUnavailableError(
                f"Failed to load recipe: {describe_error(exc)}"
            ) from exc
        rows = rows_from_response(resp)
        return rows[0] if rows else None

    async def _author_name(self, owner_id: Optional[str]) -> Optional[str]:
        if not owner_id:
            return None
        try:
            resp = await run_blocking(
                self.client.table("profiles")
                .select("display_name")
                .eq("id", owner_id)
                .limit(1)
                .execute
            )
        except Exception as exc:
            logger.warning("Profile lookup failed for user=%s: %s", owner_id, exc)
            return None
        rows = rows_from_response(resp)
        return rows[0].get("display_name") if rows else None

    async def is_saved(self, recipe_id: str, viewer_id: Optional[str]) -> bool:
        if not viewer_id:
            return False
        resp = await run_blocking(
            self.client.table("saved_recipes")
            .select("id")
            .eq("recipe_id", recipe_id)
            .eq("user_id", viewer_id)
            .limit(1)
            .execute
        )
        return bool(rows_from_response(resp))

    async def fetch(self, recipe_id: str, viewer_id: Optional[str] = None) -> RecipeAggregate:
        """
        Return the aggregate for `recipe_id` as seen by `viewer_id`.

        Steps come back sorted by step_number and ingredients by order_index;
        ties keep store order. Without a viewer `is_saved` is always False.

        Raises:
            RecipeNotFound: no such recipe (including ids the store cannot parse).
            StoreUnavailableError: no client, or the recipe query itself failed.
        """
        if self.client is None:
            raise StoreUnavailableError("Recipe storage is not configured")

        row = await self._recipe_row(str(recipe_id))
        if row is None:
            logger.info("Recipe not found id=%s", recipe_id)
            raise RecipeNotFound(str(recipe_id))

        author_name = await self._author_name(row.get("user_id"))

        is_saved = False
        if viewer_id:
            try:
                is_saved = await self.is_saved(str(recipe_id), str(viewer_id))
            except Exception as exc:
                logger.exception(
                    "Saved check failed recipe=%s viewer=%s: %s", recipe_id, viewer_id, exc
                )
                raise StoreUnavailableError(
                    f"Failed to load saved state: {describe_error(exc)}"
                ) from exc

        return RecipeAggregate.from_row(row, author_name=author_name, is_saved=is_saved)
