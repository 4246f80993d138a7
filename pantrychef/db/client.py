# pantrychef/db/client.py
"""
Helpers shared by the recipe services for talking to Supabase.

Keep this file focused on running blocking supabase-py calls off the event
loop and on normalizing what the SDK hands back:

    from pantrychef.db.client import run_blocking, rows_from_response

    resp = await run_blocking(client.table("recipes").select("*").execute)
    rows = rows_from_response(resp)
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from postgrest.exceptions import APIError

logger = logging.getLogger(__name__)

# Postgres SQLSTATE codes surfaced by PostgREST
UNIQUE_VIOLATION = "23505"
INVALID_TEXT_REPRESENTATION = "22P02"


# We run blocking SDK calls inside this thread helper to keep the event loop responsive.
async def run_blocking(fn: Callable, *args, **kwargs) -> Any:
    return await asyncio.to_thread(lambda: fn(*args, **kwargs))


def rows_from_response(resp: Any) -> List[Dict[str, Any]]:
    """
    Turn a Supabase SDK response (object with .data, or dict with "data") into a list of rows.
    `None` (maybe_single with no match in some SDK versions) becomes [].
    """
    if resp is None:
        return []
    if hasattr(resp, "data"):
        data = getattr(resp, "data")
    elif isinstance(resp, dict):
        data = resp.get("data")
    else:
        logger.warning("Unexpected supabase response type: %s", type(resp).__name__)
        return []
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    return list(data)


def error_code(exc: BaseException) -> Optional[str]:
    if isinstance(exc, APIError):
        return exc.code
    return None


def is_unique_violation(exc: BaseException) -> bool:
    return error_code(exc) == UNIQUE_VIOLATION


def is_invalid_identifier(exc: BaseException) -> bool:
    """True when Postgres rejected a value for an id column (e.g. a malformed uuid)."""
    return error_code(exc) == INVALID_TEXT_REPRESENTATION


def describe_error(exc: BaseException) -> str:
    """Single-line, human-readable rendering of a store error."""
    if isinstance(exc, APIError):
        return exc.message or str(exc)
    return str(exc) or exc.__class__.__name__
