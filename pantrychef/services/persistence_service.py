# pantrychef/services/persistence_service.py
"""
Commit a RecipeCandidate as rows in recipes, ingredients, recipe_steps and recipe_tags.

PostgREST gives us no multi-statement transaction, so the writes run as a
small saga:

    1. recipes       -> mints the recipe id
    2. ingredients   -> order_index = position in the candidate (0-based)
    3. recipe_steps  -> step_number = position + 1
    4. recipe_tags   -> one row per tag (skipped when there are none)

A stage only runs when the previous one succeeded. If stage 2, 3 or 4 fails
the rows written for the minted id are deleted again (compensating delete)
before CommitError is raised, so a failed commit never leaves a recipe behind.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from pantrychef.config.supabase import supabase_client
from pantrychef.db.client import describe_error, rows_from_response, run_blocking
from pantrychef.models.schemas import RecipeCandidate
from pantrychef.services.errors import (
    CommitError,
    StoreUnavailableError,
    UnauthenticatedError,
)

logger = logging.getLogger(__name__)

# deletion order for compensation: children first, recipe last
CHILD_TABLES = ("recipe_tags", "recipe_steps", "ingredients")


def recipe_row(
    candidate: RecipeCandidate,
    owner_id: str,
    is_generated: bool,
    image_url: Optional[str],
) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "user_id": owner_id,
        "title": candidate.title,
        "description": candidate.description,
        "cook_time": candidate.cook_time,
        "servings": candidate.servings,
        "difficulty": candidate.difficulty,
        "is_ai_generated": is_generated,
        "nutrition_info": (
            candidate.nutrition_info.model_dump(exclude_none=True)
            if candidate.nutrition_info
            else None
        ),
    }
    if image_url:
        row["image_url"] = image_url
    return row


def ingredient_rows(candidate: RecipeCandidate, recipe_id: str) -> List[Dict[str, Any]]:
    return [
        {
            "recipe_id": recipe_id,
            "name": ing.name,
            "quantity": ing.quantity,
            "unit": ing.unit,
            "order_index": index,
        }
        for index, ing in enumerate(candidate.ingredients)
    ]


def step_rows(candidate: RecipeCandidate, recipe_id: str) -> List[Dict[str, Any]]:
    return [
        {"recipe_id": recipe_id, "step_number": index + 1, "instruction": step}
        for index, step in enumerate(candidate.steps)
    ]


def tag_rows(candidate: RecipeCandidate, recipe_id: str) -> List[Dict[str, Any]]:
    return [{"recipe_id": recipe_id, "tag": tag} for tag in candidate.tags]


class RecipePersistence:

    def __init__(self, client: Any = None):
        self.client = client if client is not None else getattr(supabase_client, "client", None)
        if self.client is None:
            logger.warning("Supabase client not available. Recipe commits will fail.")

    async def _insert(self, table: str, payload: Any) -> List[Dict[str, Any]]:
        resp = await run_blocking(self.client.table(table).insert(payload).execute)
        return rows_from_response(resp)

    async def commit(
        self,
        candidate: RecipeCandidate,
        owner_id: Optional[str],
        *,
        is_generated: bool = True,
        image_url: Optional[str] = None,
    ) -> str:
        """
        Persist `candidate` for `owner_id` and return the new recipe id.

        The write sequence is shielded from cancellation of the caller: if the
        request that started it goes away, the stages (and any compensation)
        still run to the end and only the result is discarded.

        Raises:
            UnauthenticatedError: no owner; nothing is written.
            StoreUnavailableError: no Supabase client configured.
            CommitError: a stage failed (compensation already attempted).
        """
        if not owner_id:
            raise UnauthenticatedError("Please sign in to save recipes")
        if self.client is None:
            raise StoreUnavailableError("Recipe storage is not configured")

        task = asyncio.ensure_future(
            self._commit(candidate, str(owner_id), is_generated, image_url)
        )
        task.add_done_callback(_log_orphaned_result)
        return await asyncio.shield(task)

    async def _commit(
        self,
        candidate: RecipeCandidate,
        owner_id: str,
        is_generated: bool,
        image_url: Optional[str],
    ) -> str:
        # Stage 1: recipe row
        try:
            rows = await self._insert(
                "recipes", recipe_row(candidate, owner_id, is_generated, image_url)
            )
        except Exception as exc:
            logger.exception("Recipe insert failed for owner=%s: %s", owner_id, exc)
            raise CommitError(
                "recipe", f"Failed to save recipe: {describe_error(exc)}"
            ) from exc

        if not rows or not rows[0].get("id"):
            raise CommitError("recipe", "Failed to save recipe: no id returned")
        recipe_id = str(rows[0]["id"])
        logger.info("Recipe row created id=%s owner=%s", recipe_id, owner_id)

        # Stages 2-4: children, each tagged with the minted id
        stages = (
            ("ingredients", ingredient_rows(candidate, recipe_id)),
            ("recipe_steps", step_rows(candidate, recipe_id)),
            ("recipe_tags", tag_rows(candidate, recipe_id)),
        )
        for table, payload in stages:
            if not payload:
                continue
            try:
                await self._insert(table, payload)
            except Exception as exc:
                logger.exception(
                    "Insert into %s failed for recipe=%s: %s", table, recipe_id, exc
                )
                compensated = await self._compensate(recipe_id)
                raise CommitError(
                    table,
                    f"Failed to save recipe: {describe_error(exc)}",
                    recipe_id=recipe_id,
                    compensated=compensated,
                ) from exc

        logger.info(
            "Recipe committed id=%s (%d ingredients, %d steps, %d tags)",
            recipe_id,
            len(candidate.ingredients),
            len(candidate.steps),
            len(candidate.tags),
        )
        return recipe_id

    async def _compensate(self, recipe_id: str) -> bool:
        """Delete everything written for `recipe_id`. Returns True when the recipe row is gone."""
        for table in CHILD_TABLES:
            try:
                await run_blocking(
                    self.client.table(table).delete().eq("recipe_id", recipe_id).execute
                )
            except Exception as exc:
                # the recipe delete below cascades to children anyway
                logger.warning(
                    "Compensation: could not clear %s for recipe=%s: %s", table, recipe_id, exc
                )

        try:
            await run_blocking(
                self.client.table("recipes").delete().eq("id", recipe_id).execute
            )
        except Exception as exc:
            logger.error(
                "Compensation FAILED: recipe=%s left without its children: %s",
                recipe_id,
                exc,
            )
            return False

        logger.info("Compensation: removed partially written recipe=%s", recipe_id)
        return True


def _log_orphaned_result(task: "asyncio.Future[str]") -> None:
    # Reads the outcome so a commit whose caller was cancelled does not warn
    # about a never-retrieved exception.
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("Commit task finished with %s", exc.__class__.__name__)
