"""
Data synchronization layer.

Read hooks return cached data immediately and keep it fresh in the
background; mutation helpers reconcile the cache before they return.
"""

from .context import SyncContext
from .loading import LoadingTracker
from .query import QueryResult, use_query
from .results import MutationResult
from .customers import (
    CustomerMutations,
    CustomerCollection,
    CustomerNotes,
    CustomerPhones,
    CustomerAddresses,
    CustomerReminders,
    use_customers,
    use_customer,
    use_customer_search,
    use_customer_notes,
    use_customer_phones,
    use_customer_addresses,
    use_customer_reminders,
    validate_note,
    validate_reminder,
)
from .reminders import (
    ReminderActions,
    RemindersView,
    use_all_reminders,
    use_reminder_stats,
)
from .users import use_user

__all__ = [
    # Wiring
    "SyncContext",
    "LoadingTracker",
    "QueryResult",
    "use_query",
    "MutationResult",
    # Customers
    "CustomerMutations",
    "CustomerCollection",
    "CustomerNotes",
    "CustomerPhones",
    "CustomerAddresses",
    "CustomerReminders",
    "use_customers",
    "use_customer",
    "use_customer_search",
    "use_customer_notes",
    "use_customer_phones",
    "use_customer_addresses",
    "use_customer_reminders",
    "validate_note",
    "validate_reminder",
    # Reminders
    "ReminderActions",
    "RemindersView",
    "use_all_reminders",
    "use_reminder_stats",
    # Users
    "use_user",
]
