# crm_core/sync/keys.py
"""
Cache key layout.

    ("customers",)                          every customer
    ("customer", id)                        one customer
    ("customer", id, "notes"|"phones"|...)  a customer's nested collection
    ("customer-search", query)              server-side search results
    ("reminders", status, include)          global reminder list
    ("reminder-analytics",)                 reminder counts and rate
    ("user",)                               the signed-in user's profile
"""

CUSTOMERS = "customers"
CUSTOMER = "customer"
CUSTOMER_SEARCH = "customer-search"
REMINDERS = "reminders"
REMINDER_ANALYTICS = "reminder-analytics"
USER = "user"


def is_customer_scoped(key, customer_id: str) -> bool:
    return len(key) >= 2 and key[0] == CUSTOMER and key[1] == customer_id


def is_search(key) -> bool:
    return key[0] == CUSTOMER_SEARCH


def is_reminder_list(key) -> bool:
    return key[0] == REMINDERS
