# pantrychef/services/identity.py
"""
Current-user lookup. Resolves a Supabase access token to a user id, or None.

This is consulted, never mutated: sessions and tokens are owned by Supabase
auth and the client application.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from pantrychef.config.supabase import supabase_client
from pantrychef.db.client import run_blocking

logger = logging.getLogger(__name__)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class IdentityProvider:

    def __init__(self, client: Any = None):
        self.client = client if client is not None else getattr(supabase_client, "client", None)

    async def current_user_id(self, access_token: Optional[str]) -> Optional[str]:
        """Return the id of the user owning `access_token`; None when anonymous or invalid."""
        if not access_token or self.client is None:
            return None
        try:
            resp = await run_blocking(self.client.auth.get_user, access_token)
        except Exception as exc:
            logger.info("Access token rejected by Supabase auth: %s", exc)
            return None
        user = getattr(resp, "user", None)
        user_id = getattr(user, "id", None)
        return str(user_id) if user_id else None
