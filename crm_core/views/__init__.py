"""
Derived view models.
Pure transforms from cached records to what the pages display.
"""

from .customers import sort_customers, filter_customers, matches_query, SORT_FIELDS
from .reminders import (
    ReminderBuckets,
    ReminderCategories,
    ReminderRow,
    ReminderStats,
    UNKNOWN_CUSTOMER,
    bucket_reminders,
    categorize_reminders,
    completion_percentage,
    filter_reminders,
    reminder_sort_key,
    reminder_stats,
    sort_reminders,
    to_reminder_rows,
)
from .formatting import (
    address_type_icon,
    capitalize,
    due_label,
    format_address,
    format_date,
    format_datetime,
    format_error_message,
    get_initials,
    is_valid_email,
    maps_query,
    maps_url,
    priority_badge,
    relative_time,
    truncate_text,
    validate_address,
)

__all__ = [
    # Customers
    "sort_customers",
    "filter_customers",
    "matches_query",
    "SORT_FIELDS",
    # Reminders
    "ReminderBuckets",
    "ReminderCategories",
    "ReminderRow",
    "ReminderStats",
    "UNKNOWN_CUSTOMER",
    "bucket_reminders",
    "categorize_reminders",
    "completion_percentage",
    "filter_reminders",
    "reminder_sort_key",
    "reminder_stats",
    "sort_reminders",
    "to_reminder_rows",
    # Formatting
    "address_type_icon",
    "capitalize",
    "due_label",
    "format_address",
    "format_date",
    "format_datetime",
    "format_error_message",
    "get_initials",
    "is_valid_email",
    "maps_query",
    "maps_url",
    "priority_badge",
    "relative_time",
    "truncate_text",
    "validate_address",
]
