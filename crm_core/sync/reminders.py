# =============================================================================
# crm_core/sync/reminders.py
# Global reminder reads, analytics and reminder actions
# =============================================================================

from __future__ import annotations
import dataclasses
from contextlib import ExitStack
from datetime import datetime
from typing import Callable, List, Optional

from crm_core.api.models import Reminder, ReminderPatch, ReminderStatus, utcnow
from crm_core.cache import CacheKey
from crm_core.errors import CRMError
from crm_core.logging import get_logger
from crm_core.views.reminders import (
    ReminderBuckets,
    ReminderRow,
    bucket_reminders,
    reminder_stats,
    to_reminder_rows,
)

from . import keys
from .context import SyncContext
from .query import QueryResult, use_query
from .results import MutationResult

logger = get_logger(__name__)


class RemindersView:
    """
    The global reminder list with derived buckets.

    Buckets are recomputed on every access, so a reminder turns overdue as
    soon as its due date passes without any refetch.
    """

    def __init__(self, result: QueryResult):
        self.result = result

    @property
    def reminders(self) -> List[Reminder]:
        return self.result.data or []

    @property
    def is_loading(self) -> bool:
        return self.result.is_loading

    @property
    def error(self) -> Optional[CRMError]:
        return self.result.error

    def refresh(self):
        return self.result.refresh()

    def buckets(self, now: Optional[datetime] = None) -> ReminderBuckets:
        return bucket_reminders(self.reminders, now)

    @property
    def all_reminders(self) -> List[Reminder]:
        return self.buckets().all

    @property
    def active(self) -> List[Reminder]:
        return self.buckets().active

    @property
    def completed(self) -> List[Reminder]:
        return self.buckets().completed

    @property
    def overdue(self) -> List[Reminder]:
        return self.buckets().overdue

    @property
    def upcoming(self) -> List[Reminder]:
        return self.buckets().upcoming

    @property
    def rows(self) -> List[ReminderRow]:
        return to_reminder_rows(self.all_reminders)


def reminders_key(ctx: SyncContext, status: Optional[str] = None, include: Optional[str] = None) -> Optional[CacheKey]:
    status_value = ReminderStatus(status).value if status else ReminderStatus.ALL.value
    return ctx.key(keys.REMINDERS, status_value, include or "")


def use_all_reminders(
    ctx: SyncContext,
    status: Optional[str] = None,
    include: Optional[str] = "customer",
    wait: bool = True,
) -> RemindersView:
    """Reminders across every customer, optionally filtered server-side."""
    result = use_query(
        ctx,
        reminders_key(ctx, status, include),
        lambda: ctx.client.reminders.get_all(status=status, include=include),
        ctx.default_options,
        wait=wait,
        default=[],
    )
    return RemindersView(result)


def use_reminder_stats(ctx: SyncContext, wait: bool = True) -> QueryResult:
    """
    Reminder counts with the completion rate as a percentage.

    ``data`` is a ReminderStats, all zeros until analytics load.
    """
    result = use_query(
        ctx,
        ctx.key(keys.REMINDER_ANALYTICS),
        ctx.client.reminders.get_analytics,
        ctx.default_options,
        wait=wait,
    )
    return dataclasses.replace(result, data=reminder_stats(result.data))


def _replace_reminder(reminder_id: str, **changes) -> Callable[[List[Reminder]], List[Reminder]]:
    def patch(rows: List[Reminder]) -> List[Reminder]:
        return [
            dataclasses.replace(r, **changes) if r.id == reminder_id else r
            for r in rows
        ]
    return patch


def _drop_reminder(reminder_id: str) -> Callable[[List[Reminder]], List[Reminder]]:
    def patch(rows: List[Reminder]) -> List[Reminder]:
        return [r for r in rows if r.id != reminder_id]
    return patch


class ReminderActions:
    """
    Complete, reopen and delete reminders from the global views.

    Reminders are always owned by a customer, so every action goes to the
    customer-scoped endpoint. Cached lists are patched optimistically and
    rolled back on failure; on success the customer's reminders, every
    global reminder list and the analytics are invalidated.

    Usage:
        actions = ReminderActions(ctx)
        result = actions.complete(row.customer_id, row.id)
    """

    def __init__(self, ctx: SyncContext):
        self.ctx = ctx

    def _affected_keys(self, customer_id: str) -> List[CacheKey]:
        store = self.ctx.store
        customer_key = self.ctx.key(keys.CUSTOMER, customer_id, "reminders")
        affected = [k for k in store.keys() if keys.is_reminder_list(k)]
        if customer_key is not None:
            affected.append(customer_key)
        return [k for k in affected if store.has(k)]

    def _run(
        self,
        action: str,
        customer_id: str,
        reminder_id: str,
        patch: Callable[[List[Reminder]], List[Reminder]],
        call: Callable[[], object],
    ) -> MutationResult:
        self.ctx.auth.require_user()
        store = self.ctx.store

        with self.ctx.loading.track(reminder_id, action):
            try:
                with ExitStack() as stack:
                    for key in self._affected_keys(customer_id):
                        stack.enter_context(store.optimistic(key, patch))
                    value = call()
            except CRMError as e:
                logger.warning(f"Failed to {action} reminder {reminder_id}: {e.message}")
                return MutationResult.from_exception(e, entity="reminder")

        store.invalidate(self.ctx.key(keys.CUSTOMER, customer_id, "reminders"))
        store.invalidate_matching(
            lambda k: keys.is_reminder_list(k) or k[0] == keys.REMINDER_ANALYTICS
        )
        return MutationResult.ok("reminder", value)

    def complete(self, customer_id: str, reminder_id: str) -> MutationResult:
        completed_at = utcnow()
        return self._run(
            "complete", customer_id, reminder_id,
            _replace_reminder(reminder_id, date_completed=completed_at),
            lambda: self.ctx.client.reminders.update_reminder(
                customer_id, reminder_id, ReminderPatch.complete(completed_at)
            ),
        )

    def reopen(self, customer_id: str, reminder_id: str) -> MutationResult:
        return self._run(
            "reopen", customer_id, reminder_id,
            _replace_reminder(reminder_id, date_completed=None),
            lambda: self.ctx.client.reminders.update_reminder(
                customer_id, reminder_id, ReminderPatch.reopen()
            ),
        )

    def delete(self, customer_id: str, reminder_id: str) -> MutationResult:
        return self._run(
            "delete", customer_id, reminder_id,
            _drop_reminder(reminder_id),
            lambda: self.ctx.client.customers.delete_reminder(customer_id, reminder_id),
        )

    def is_busy(self, reminder_id: str, action: Optional[str] = None) -> bool:
        return self.ctx.loading.is_loading(reminder_id, action)
