# =============================================================================
# crm_core/sync/customers.py
# Customer reads and mutations over the shared cache
# =============================================================================
"""
Customer data hooks.

Reads:
    use_customers(ctx)                  every customer, polled
    use_customer(ctx, id)               one customer
    use_customer_search(ctx, query)     server search with a cached fallback
    use_customer_notes/phones/addresses/reminders(ctx, id)

Writes:
    CustomerMutations(ctx).create(...) / .delete(id)
    the collection objects returned by the use_customer_* hooks
"""

from __future__ import annotations
from contextlib import nullcontext
from datetime import datetime
from typing import Any, Callable, List, Optional

from crm_core.api.models import (
    NOTE_MAX_LENGTH,
    AddressInput,
    Customer,
    CustomerCreate,
    NoteInput,
    PhoneInput,
    ReminderInput,
    parse_timestamp,
    utcnow,
)
from crm_core.cache import CacheKey
from crm_core.errors import (
    APIError,
    CRMError,
    NetworkError,
    ResponseParseError,
    ValidationError,
)
from crm_core.logging import LogContext, get_logger
from crm_core.views.customers import filter_customers
from crm_core.views.formatting import validate_address

from . import keys
from .context import SyncContext
from .query import QueryResult, use_query
from .results import MutationResult

logger = get_logger(__name__)

# Failures of the search request itself; anything else propagates
SEARCH_FALLBACK_ERRORS = (NetworkError, ResponseParseError, APIError)


# =============================================================================
# VALIDATION
# =============================================================================

def validate_note(text: str) -> str:
    """Return the trimmed note, or raise ValidationError."""
    note = (text or "").strip()
    if not note:
        raise ValidationError("Note cannot be empty", field="note")
    if len(note) > NOTE_MAX_LENGTH:
        raise ValidationError(
            f"Note must be {NOTE_MAX_LENGTH} characters or fewer",
            field="note",
        )
    return note


def validate_reminder(data: ReminderInput, now: Optional[datetime] = None) -> ReminderInput:
    """
    Return the reminder with a trimmed description, or raise ValidationError
    when the description or due date is missing or the due date has passed.
    """
    description = (data.description or "").strip()
    if not description or data.due_date is None:
        raise ValidationError("Description and due date are required", field="reminder")
    due = parse_timestamp(data.due_date)
    if due < (now or utcnow()):
        raise ValidationError("Due date must be in the future", field="dueDate")
    return ReminderInput(description, due, data.priority)


def check_address(data: AddressInput) -> AddressInput:
    valid, errors = validate_address(data)
    if not valid:
        raise ValidationError(", ".join(errors), field="address", errors=errors)
    return data


# =============================================================================
# READS
# =============================================================================

def customers_key(ctx: SyncContext) -> Optional[CacheKey]:
    return ctx.key(keys.CUSTOMERS)


def use_customers(ctx: SyncContext, wait: bool = True) -> QueryResult:
    """Every customer; polled on the customers refresh interval."""
    return use_query(
        ctx,
        customers_key(ctx),
        ctx.client.customers.get_all,
        ctx.customers_options,
        wait=wait,
        default=[],
    )


def use_customer(ctx: SyncContext, customer_id: Optional[str], wait: bool = True) -> QueryResult:
    """One customer, or ``data=None`` when the id is unknown."""
    key = ctx.key(keys.CUSTOMER, customer_id) if customer_id else None
    return use_query(
        ctx,
        key,
        lambda: ctx.client.customers.get_one(customer_id),
        ctx.default_options,
        wait=wait,
    )


def use_customer_search(ctx: SyncContext, query: Optional[str], wait: bool = True) -> QueryResult:
    """
    Search customers on the server.

    Only when the search request fails is the cached customer list filtered
    locally instead; an empty server result is returned as is.
    """
    q = (query or "").strip()
    key = ctx.key(keys.CUSTOMER_SEARCH, q) if q else None

    def fetch() -> List[Customer]:
        try:
            return ctx.client.customers.search(q)
        except SEARCH_FALLBACK_ERRORS as e:
            cached = ctx.store.get(customers_key(ctx))
            if cached is None:
                raise
            logger.warning(f"Customer search failed ({e.message}), filtering cached list")
            return filter_customers(cached, q)

    return use_query(ctx, key, fetch, ctx.search_options, wait=wait, default=[])


# =============================================================================
# CUSTOMER MUTATIONS
# =============================================================================

class CustomerMutations:
    """
    Usage:
        result = CustomerMutations(ctx).create(CustomerCreate("Ada", "Lovelace", "ada@example.com"))
        if not result:
            notify_failure(result.message)
    """

    def __init__(self, ctx: SyncContext):
        self.ctx = ctx

    def create(self, data: CustomerCreate) -> MutationResult:
        """Create a customer and append it to the cached list once the server confirms."""
        self.ctx.auth.require_user()
        store = self.ctx.store
        key = customers_key(self.ctx)

        with self.ctx.loading.track(keys.CUSTOMERS, "create"):
            try:
                customer = self.ctx.client.customers.create(data)
            except CRMError as e:
                logger.warning(f"Failed to create customer: {e.message}")
                return MutationResult.from_exception(e, entity="customer")

        if key is not None and store.has(key):
            store.mutate(key, lambda rows: [*rows, customer], default=[])
        store.invalidate_matching(keys.is_search)
        logger.info(f"Created customer {customer.id}")
        return MutationResult.ok("customer", customer)

    def delete(self, customer_id: str) -> MutationResult:
        """
        Remove a customer from the cached list immediately, then delete it on
        the server. The list is restored if the server rejects the delete.
        """
        self.ctx.auth.require_user()
        store = self.ctx.store
        key = customers_key(self.ctx)

        if key is not None and store.has(key):
            update = store.optimistic(
                key, lambda rows: [c for c in rows if c.id != customer_id]
            )
        else:
            update = nullcontext()

        with self.ctx.loading.track(customer_id, "delete"):
            try:
                with update, LogContext(logger, f"Deleting customer {customer_id}"):
                    self.ctx.client.customers.delete(customer_id)
            except CRMError as e:
                logger.warning(f"Failed to delete customer {customer_id}: {e.message}")
                return MutationResult.from_exception(e, entity="customer")

        # Children are removed server-side; drop every read that could show them
        for scoped in store.invalidate_matching(lambda k: keys.is_customer_scoped(k, customer_id)):
            self.ctx.scheduler.unregister(scoped)
        store.invalidate_matching(
            lambda k: (
                keys.is_search(k)
                or keys.is_reminder_list(k)
                or k[0] == keys.REMINDER_ANALYTICS
            )
        )
        logger.info(f"Deleted customer {customer_id}")
        return MutationResult.ok("customer")


# =============================================================================
# NESTED COLLECTIONS
# =============================================================================

class CustomerCollection:
    """
    A customer's nested collection plus its mutations.

    Subclasses name the collection and wire fetch/create/update/delete to
    the API. Every successful mutation refetches the collection before it
    returns.
    """

    resource: str = ""
    entity: str = ""

    def __init__(self, ctx: SyncContext, customer_id: Optional[str], wait: bool = True):
        self.ctx = ctx
        self.customer_id = customer_id
        self.key = ctx.key(keys.CUSTOMER, customer_id, self.resource) if customer_id else None
        self._result = use_query(
            ctx, self.key, self._fetch, ctx.default_options, wait=wait, default=[]
        )

    def _fetch(self) -> list:
        raise NotImplementedError

    @property
    def items(self) -> list:
        return self._result.data

    @property
    def is_loading(self) -> bool:
        return self._result.is_loading

    @property
    def error(self) -> Optional[CRMError]:
        return self._result.error

    def refresh(self) -> list:
        return self._result.refresh()

    def is_busy(self, item_id: str, action: Optional[str] = None) -> bool:
        return self.ctx.loading.is_loading(item_id, action)

    def _mutate(
        self,
        action: str,
        item_id: Optional[str],
        call: Callable[[], Any],
    ) -> MutationResult:
        self.ctx.auth.require_user()
        if not self.customer_id:
            return MutationResult.fail(ValidationError("No customer selected"), entity=self.entity)

        with self.ctx.loading.track(item_id or self.customer_id, action):
            try:
                value = call()
            except CRMError as e:
                logger.warning(f"Failed to {action} {self.entity}: {e.message}")
                return MutationResult.from_exception(e, entity=self.entity)

        self._after_change()
        return MutationResult.ok(self.entity, value)

    def _after_change(self) -> None:
        store = self.ctx.store
        store.invalidate(self.key)
        store.invalidate(self.ctx.key(keys.CUSTOMER, self.customer_id))
        self.refresh()


class CustomerNotes(CustomerCollection):
    resource = "notes"
    entity = "note"

    def _fetch(self):
        return self.ctx.client.customers.get_notes(self.customer_id)

    def add(self, note: str) -> MutationResult:
        def call():
            return self.ctx.client.customers.add_note(self.customer_id, NoteInput(validate_note(note)))
        return self._mutate("add", None, call)

    def update(self, note_id: str, note: str) -> MutationResult:
        def call():
            return self.ctx.client.customers.update_note(
                self.customer_id, note_id, NoteInput(validate_note(note))
            )
        return self._mutate("update", note_id, call)

    def delete(self, note_id: str) -> MutationResult:
        return self._mutate(
            "delete", note_id,
            lambda: self.ctx.client.customers.delete_note(self.customer_id, note_id),
        )


class CustomerPhones(CustomerCollection):
    resource = "phones"
    entity = "phone"

    def _fetch(self):
        return self.ctx.client.customers.get_phones(self.customer_id)

    def add(self, data: PhoneInput) -> MutationResult:
        return self._mutate(
            "add", None,
            lambda: self.ctx.client.customers.add_phone(self.customer_id, data),
        )

    def update(self, phone_id: str, data: PhoneInput) -> MutationResult:
        return self._mutate(
            "update", phone_id,
            lambda: self.ctx.client.customers.update_phone(self.customer_id, phone_id, data),
        )

    def delete(self, phone_id: str) -> MutationResult:
        return self._mutate(
            "delete", phone_id,
            lambda: self.ctx.client.customers.delete_phone(self.customer_id, phone_id),
        )


class CustomerAddresses(CustomerCollection):
    resource = "addresses"
    entity = "address"

    def _fetch(self):
        return self.ctx.client.customers.get_addresses(self.customer_id)

    def add(self, data: AddressInput) -> MutationResult:
        return self._mutate(
            "add", None,
            lambda: self.ctx.client.customers.add_address(self.customer_id, check_address(data)),
        )

    def update(self, address_id: str, data: AddressInput) -> MutationResult:
        return self._mutate(
            "update", address_id,
            lambda: self.ctx.client.customers.update_address(
                self.customer_id, address_id, check_address(data)
            ),
        )

    def delete(self, address_id: str) -> MutationResult:
        return self._mutate(
            "delete", address_id,
            lambda: self.ctx.client.customers.delete_address(self.customer_id, address_id),
        )


class CustomerReminders(CustomerCollection):
    resource = "reminders"
    entity = "reminder"

    def _fetch(self):
        return self.ctx.client.customers.get_reminders(self.customer_id)

    def _after_change(self) -> None:
        # Global reminder lists and analytics include this customer's reminders
        self.ctx.store.invalidate_matching(
            lambda k: keys.is_reminder_list(k) or k[0] == keys.REMINDER_ANALYTICS
        )
        super()._after_change()

    def add(self, data: ReminderInput) -> MutationResult:
        return self._mutate(
            "add", None,
            lambda: self.ctx.client.customers.add_reminder(self.customer_id, validate_reminder(data)),
        )

    def complete(self, reminder_id: str) -> MutationResult:
        return self._mutate(
            "complete", reminder_id,
            lambda: self.ctx.client.customers.complete_reminder(self.customer_id, reminder_id),
        )

    def reopen(self, reminder_id: str) -> MutationResult:
        return self._mutate(
            "reopen", reminder_id,
            lambda: self.ctx.client.customers.reopen_reminder(self.customer_id, reminder_id),
        )

    def delete(self, reminder_id: str) -> MutationResult:
        return self._mutate(
            "delete", reminder_id,
            lambda: self.ctx.client.customers.delete_reminder(self.customer_id, reminder_id),
        )


def use_customer_notes(ctx: SyncContext, customer_id: Optional[str], wait: bool = True) -> CustomerNotes:
    return CustomerNotes(ctx, customer_id, wait=wait)


def use_customer_phones(ctx: SyncContext, customer_id: Optional[str], wait: bool = True) -> CustomerPhones:
    return CustomerPhones(ctx, customer_id, wait=wait)


def use_customer_addresses(ctx: SyncContext, customer_id: Optional[str], wait: bool = True) -> CustomerAddresses:
    return CustomerAddresses(ctx, customer_id, wait=wait)


def use_customer_reminders(ctx: SyncContext, customer_id: Optional[str], wait: bool = True) -> CustomerReminders:
    return CustomerReminders(ctx, customer_id, wait=wait)
