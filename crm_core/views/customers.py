# crm_core/views/customers.py
"""Ordering and client-side filtering of customer lists."""
from __future__ import annotations

import locale
from datetime import datetime, timezone
from typing import Iterable, List

from crm_core.api.models import Customer

SORT_FIELDS = ("name", "email", "joined")

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _text_key(value: str) -> str:
    return locale.strxfrm((value or "").casefold())


def sort_customers(customers: Iterable[Customer], by: str = "name", ascending: bool = True) -> List[Customer]:
    """
    Sort by full name, email or join date.

    Text compares locale-aware and case-insensitively; customers without a
    creation timestamp sort as oldest.
    """
    if by not in SORT_FIELDS:
        raise ValueError(f"Unknown sort field: {by!r} (expected one of {SORT_FIELDS})")

    if by == "name":
        key = lambda c: _text_key(c.full_name)
    elif by == "email":
        key = lambda c: _text_key(c.email)
    else:
        key = lambda c: c.created_at or _EPOCH
    return sorted(customers, key=key, reverse=not ascending)


def matches_query(customer: Customer, query: str) -> bool:
    q = query.strip().casefold()
    if not q:
        return False
    candidates = [customer.first_name, customer.last_name, customer.full_name, customer.email]
    candidates.extend(p.phone_number for p in customer.phones)
    return any(q in (value or "").casefold() for value in candidates)


def filter_customers(customers: Iterable[Customer], query: str) -> List[Customer]:
    """Case-insensitive substring match on name, email or any phone number."""
    return [c for c in customers if matches_query(c, query)]
