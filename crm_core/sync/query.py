# crm_core/sync/query.py
"""
Stale-while-revalidate reads.

``use_query`` is the single read path every hook goes through:

- no key: the read is disabled, nothing is fetched or cached;
- cached and not invalidated: the cached value is returned at once and a
  background revalidation is requested (subject to dedupe);
- nothing cached, or invalidated: with ``wait=True`` the caller blocks for
  the fetch, otherwise the fetch runs in the background.

Fetch failures never raise out of a read; they are reported on
``QueryResult.error`` next to whatever stale data is still cached.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from crm_core.cache import CacheKey, QueryOptions
from crm_core.errors import CRMError
from crm_core.logging import get_logger

from .context import SyncContext

logger = get_logger(__name__)


def _noop() -> Any:
    return None


@dataclass
class QueryResult:
    data: Any = None
    is_loading: bool = False
    error: Optional[CRMError] = None
    refresh: Callable[[], Any] = field(default=_noop, repr=False)
    key: Optional[CacheKey] = None


def use_query(
    ctx: SyncContext,
    key: Optional[CacheKey],
    fetcher: Callable[[], Any],
    options: Optional[QueryOptions] = None,
    wait: bool = True,
    default: Any = None,
) -> QueryResult:
    if not key:
        return QueryResult(data=default, is_loading=ctx.auth.is_resolving)

    options = options or ctx.default_options
    store = ctx.store
    ctx.scheduler.register(key, fetcher, options)

    entry = store.entry(key)
    if entry is not None and entry.has_data and not entry.invalidated:
        store.revalidate(key, fetcher, options.dedupe_interval)
    elif wait:
        try:
            store.fetch(key, fetcher, options.dedupe_interval)
        except CRMError as e:
            logger.debug(f"Read of {key} failed: {e.message}")
    else:
        store.revalidate(key, fetcher, options.dedupe_interval)

    def refresh() -> Any:
        """Refetch now, bypassing dedupe; returns the freshest cached value."""
        try:
            return store.fetch(key, fetcher, force=True)
        except CRMError as e:
            logger.debug(f"Refresh of {key} failed: {e.message}")
            return store.get(key, default)

    entry = store.entry(key)
    if entry is None:
        return QueryResult(data=default, is_loading=ctx.auth.is_resolving, refresh=refresh, key=key)

    return QueryResult(
        data=entry.data if entry.has_data else default,
        is_loading=ctx.auth.is_resolving or entry.is_fetching,
        error=entry.error,
        refresh=refresh,
        key=key,
    )
