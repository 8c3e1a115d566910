# =============================================================================
# crm_core/sync/context.py
# Wiring of client, auth session, cache and background revalidation
# =============================================================================
"""
SyncContext - one object owning everything a read hook or mutation needs.

Build order matters: the auth session exists first, the API client takes
its ``get_id_token`` as token provider, and only then is the session given
the user API it signs up through.
"""

from __future__ import annotations
from typing import Hashable, Optional

import requests

from crm_core.api import CRMClient
from crm_core.auth import AuthSession, AuthUser, FirebaseIdentityProvider
from crm_core.cache import (
    CacheKey,
    CacheStore,
    ConnectionMonitor,
    QueryOptions,
    RevalidationScheduler,
    cache_key,
)
from crm_core.config import Settings, get_settings
from crm_core.logging import get_logger

from .loading import LoadingTracker

logger = get_logger(__name__)


class SyncContext:
    """
    Usage:
        ctx = SyncContext()
        ctx.auth.sign_in("ada@example.com", "secret")
        ctx.start()
        customers = use_customers(ctx).data
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[CRMClient] = None,
        auth: Optional[AuthSession] = None,
        store: Optional[CacheStore] = None,
        session: Optional[requests.Session] = None,
    ):
        self.settings = settings or get_settings()

        if auth is None:
            provider = FirebaseIdentityProvider(
                self.settings.firebase_api_key,
                timeout=self.settings.request_timeout,
                session=session,
            )
            auth = AuthSession(provider)
        self.auth = auth

        self.client = client or CRMClient.from_settings(
            token_provider=self.auth.get_id_token,
            settings=self.settings,
            session=session,
        )
        if self.auth.users_api is None:
            self.auth.users_api = self.client.users

        self.store = store or CacheStore()
        self.scheduler = RevalidationScheduler(self.store)
        self.monitor = ConnectionMonitor(
            self.client.health.check,
            check_interval_online=self.settings.health_check_interval,
        )
        self.monitor.register_callback(self.scheduler.on_connection_change)
        self.loading = LoadingTracker()

        self.auth.register_callback(self._on_identity_change)

    # ------------------------------------------------------------------
    # Query policies
    # ------------------------------------------------------------------

    @property
    def default_options(self) -> QueryOptions:
        return QueryOptions(dedupe_interval=self.settings.dedupe_interval)

    @property
    def search_options(self) -> QueryOptions:
        return QueryOptions(
            dedupe_interval=self.settings.search_dedupe_interval,
            revalidate_on_reconnect=False,
        )

    @property
    def customers_options(self) -> QueryOptions:
        return QueryOptions(
            dedupe_interval=self.settings.dedupe_interval,
            refresh_interval=self.settings.customers_refresh_interval,
        )

    @property
    def user_options(self) -> QueryOptions:
        return QueryOptions(
            dedupe_interval=self.settings.dedupe_interval,
            refresh_interval=self.settings.user_refresh_interval,
        )

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def key(self, resource: str, *scope: Hashable) -> Optional[CacheKey]:
        """Cache key for a read, or None while nobody is signed in."""
        if not self.auth.is_authenticated:
            return None
        return cache_key(resource, *scope)

    def _on_identity_change(self, user: Optional[AuthUser]) -> None:
        # Data of one identity must never be served to the next
        self.scheduler.clear()
        self.store.clear()
        logger.info("Identity changed, cache cleared")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start polling and connection monitoring."""
        self.scheduler.start()
        self.monitor.start_monitoring()

    def shutdown(self) -> None:
        self.scheduler.stop()
        self.monitor.stop_monitoring()
        self.store.shutdown(wait=False)
        self.client.close()

