# pantrychef/services/browse_service.py
"""
Recipe listings: browse/search, recent recipes, a user's own and saved recipes.

Every listing is a RecipeSummaryQuery. Building one does not touch the store;
each `async for` (or `.all()`) runs the query again against current state.
"""
from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional

from pantrychef.config.supabase import supabase_client
from pantrychef.db.client import describe_error, rows_from_response, run_blocking
from pantrychef.models.schemas import RecipeSummary
from pantrychef.services.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

SUMMARY_SELECT = (
    "id, title, description, image_url, cook_time, servings, difficulty, "
    "created_at, recipe_tags(tag)"
)
RECENT_LIMIT = 6


def escape_like(text: str) -> str:
    """
    Escape LIKE metacharacters so `%`, `_` and `\\` in `text` match literally.

    PostgREST rewrites every `*` in a like pattern to `%` and offers no escape
    for it, so `*` stays a wildcard.
    """
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class RecipeSummaryQuery:
    """Lazy, finite, restartable sequence of recipe summaries."""

    def __init__(self, run: Callable[[], Awaitable[List[RecipeSummary]]], label: str):
        self._run = run
        self.label = label

    async def all(self) -> List[RecipeSummary]:
        return await self._run()

    async def _iterate(self) -> AsyncIterator[RecipeSummary]:
        for summary in await self._run():
            yield summary

    def __aiter__(self) -> AsyncIterator[RecipeSummary]:
        return self._iterate()

    def __repr__(self) -> str:
        return f"<RecipeSummaryQuery {self.label}>"


class BrowseService:

    def __init__(self, client: Any = None):
        self.client = client if client is not None else getattr(supabase_client, "client", None)
        if self.client is None:
            logger.warning("Supabase client not available. Recipe listings will fail.")

    async def _execute(self, builder_factory: Callable[[], Any], label: str) -> List[RecipeSummary]:
        if self.client is None:
            raise StoreUnavailableError("Recipe storage is not configured")
        try:
            resp = await run_blocking(builder_factory().execute)
        except Exception as exc:
            logger.exception("Recipe listing %s failed: %s", label, exc)
            raise StoreUnavailableError(
                f"Failed to load recipes: {describe_error(exc)}"
            ) from exc
        rows = rows_from_response(resp)
        logger.debug("Recipe listing %s returned %d rows", label, len(rows))
        return [RecipeSummary.from_row(r) for r in rows]

    def _summaries(self):
        return self.client.table("recipes").select(SUMMARY_SELECT)

    def browse(self, title_filter: Optional[str] = None) -> RecipeSummaryQuery:
        """
        All recipes, newest first. A non-empty `title_filter` keeps recipes whose
        title contains it, case-insensitively. `*` in the filter matches any run
        of characters.
        """
        needle = (title_filter or "").strip()

        def build():
            qb = self._summaries()
            if needle:
                qb = qb.ilike("title", f"%{escape_like(needle)}%")
            return qb.order("created_at", desc=True)

        label = f"browse(q={needle!r})"
        return RecipeSummaryQuery(lambda: self._execute(build, label), label)

    def recent(self, limit: int = RECENT_LIMIT) -> RecipeSummaryQuery:
        label = f"recent(limit={limit})"
        return RecipeSummaryQuery(
            lambda: self._execute(
                lambda: self._summaries().order("created_at", desc=True).limit(limit), label
            ),
            label,
        )

    def owned_by(self, user_id: str) -> RecipeSummaryQuery:
        label = f"owned_by({user_id})"
        return RecipeSummaryQuery(
            lambda: self._execute(
                lambda: self._summaries()
                .eq("user_id", str(user_id))
                .order("created_at", desc=True),
                label,
            ),
            label,
        )

    def saved_by(self, user_id: str) -> RecipeSummaryQuery:
        """Recipes `user_id` has saved, newest recipe first."""
        label = f"saved_by({user_id})"

        async def run() -> List[RecipeSummary]:
            if self.client is None:
                raise StoreUnavailableError("Recipe storage is not configured")
            try:
                resp = await run_blocking(
                    self.client.table("saved_recipes")
                    .select("recipe_id")
                    .eq("user_id", str(user_id))
                    .execute
                )
            except Exception as exc:
                logger.exception("Saved listing for user=%s failed: %s", user_id, exc)
                raise StoreUnavailableError(
                    f"Failed to load saved recipes: {describe_error(exc)}"
                ) from exc
            recipe_ids = [str(r["recipe_id"]) for r in rows_from_response(resp)]
            if not recipe_ids:
                return []
            return await self._execute(
                lambda: self._summaries()
                .in_("id", recipe_ids)
                .order("created_at", desc=True),
                label,
            )

        return RecipeSummaryQuery(run, label)
