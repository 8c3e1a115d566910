# crm_core/sync/users.py
"""Profile of the signed-in user as the backend sees it."""
from __future__ import annotations

from .context import SyncContext
from .query import QueryResult, use_query
from . import keys


def use_user(ctx: SyncContext, wait: bool = True) -> QueryResult:
    """``GET /auth/me``, polled on the user refresh interval."""
    return use_query(
        ctx,
        ctx.key(keys.USER),
        ctx.client.users.get_current_user,
        ctx.user_options,
        wait=wait,
    )
