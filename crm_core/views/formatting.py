# =============================================================================
# crm_core/views/formatting.py
# Display Helpers for Records
# =============================================================================
"""
Small presentation helpers shared by the pages: dates, addresses, names and
error messages. All functions are pure.
"""

from __future__ import annotations
import re
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional, Tuple, Union
from urllib.parse import quote

from crm_core.api.models import Address, AddressInput, parse_timestamp, utcnow
from crm_core.errors import APIError, CRMError

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

AddressLike = Union[Address, AddressInput]
DateLike = Union[str, datetime]

ADDRESS_TYPE_ICONS = {
    "home": "🏠",
    "work": "💼",
    "billing": "💳",
    "shipping": "📦",
}

# Streamlit markdown colour names
PRIORITY_COLORS = {
    "low": "green",
    "medium": "orange",
    "high": "red",
}


# =============================================================================
# DATES
# =============================================================================

def _as_datetime(value: DateLike) -> datetime:
    parsed = parse_timestamp(value)
    if parsed is None:
        raise ValueError("A date is required")
    return parsed


def format_date(value: DateLike) -> str:
    """e.g. ``Mar 5, 2024``"""
    d = _as_datetime(value)
    return f"{d:%b} {d.day}, {d.year}"


def format_datetime(value: DateLike) -> str:
    """e.g. ``Mar 5, 2024, 09:30 AM``"""
    d = _as_datetime(value)
    return f"{format_date(d)}, {d:%I:%M %p}"


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'s' if count > 1 else ''} ago"


def relative_time(value: DateLike, now: Optional[datetime] = None) -> str:
    """
    Human-readable age of a timestamp ("just now", "3 hours ago", ...).

    Months are 30 days and years 365 days.
    """
    now = now or utcnow()
    seconds = int((now - _as_datetime(value)).total_seconds())

    if seconds < 60:
        return "just now"
    minutes = seconds // 60
    if minutes < 60:
        return _plural(minutes, "minute")
    hours = minutes // 60
    if hours < 24:
        return _plural(hours, "hour")
    days = hours // 24
    if days < 7:
        return _plural(days, "day")
    weeks = days // 7
    if weeks < 4:
        return _plural(weeks, "week")
    months = days // 30
    if months < 12:
        return _plural(months, "month")
    return _plural(days // 365, "year")


def due_label(due: datetime, now: Optional[datetime] = None) -> str:
    """Short due-date description for reminder cards."""
    now = now or utcnow()
    if due.tzinfo is None:
        due = due.replace(tzinfo=timezone.utc)
    days = (due.date() - now.date()).days
    if days == 0:
        return "Due today"
    if days == 1:
        return "Due tomorrow"
    if days == -1:
        return "Due yesterday"
    if days < 0:
        return f"{-days} days overdue"
    return f"Due in {days} days"


# =============================================================================
# ADDRESSES
# =============================================================================

def format_address(address: AddressLike) -> str:
    """
    Multi-line postal rendering.

    The city line carries the state/province, falling back to the region,
    then the postal code.
    """
    lines: List[str] = []
    if address.address_line1:
        lines.append(address.address_line1)
    if address.address_line2:
        lines.append(address.address_line2)

    city_line = address.city or ""
    if address.state_province:
        city_line += f", {address.state_province}"
    elif address.region:
        city_line += f", {address.region}"
    if address.postal_code:
        city_line += f" {address.postal_code}"
    lines.append(city_line)

    if address.country:
        lines.append(address.country)
    return "\n".join(lines)


def maps_query(address: AddressLike) -> str:
    """URL-encoded single-line address for a maps search link."""
    parts = [address.address_line1]
    if address.address_line2:
        parts.append(address.address_line2)
    parts.append(address.city)
    if address.state_province:
        parts.append(address.state_province)
    elif address.region:
        parts.append(address.region)
    if address.postal_code:
        parts.append(address.postal_code)
    parts.append(address.country)
    return quote(", ".join(p for p in parts if p), safe="")


def maps_url(address: AddressLike) -> str:
    return f"https://www.google.com/maps/search/?api=1&query={maps_query(address)}"


def address_type_icon(address_type: Any) -> str:
    value = getattr(address_type, "value", address_type)
    value = str(value or "").lower()
    if value == "business":
        value = "work"
    return ADDRESS_TYPE_ICONS.get(value, "📍")


def validate_address(address: AddressLike) -> Tuple[bool, List[str]]:
    """Street, city and country are required."""
    errors = []
    if not (address.address_line1 or "").strip():
        errors.append("Street address is required")
    if not (address.city or "").strip():
        errors.append("City is required")
    if not (address.country or "").strip():
        errors.append("Country is required")
    return len(errors) == 0, errors


# =============================================================================
# TEXT
# =============================================================================

def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email or ""))


def get_initials(first_name: str, last_name: str) -> str:
    return f"{first_name[:1]}{last_name[:1]}".upper()


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def capitalize(text: str) -> str:
    return text[:1].upper() + text[1:].lower()


def priority_badge(priority: Any) -> str:
    """Coloured markdown label, e.g. ``:red[High]``."""
    value = str(getattr(priority, "value", priority) or "").lower()
    color = PRIORITY_COLORS.get(value, "gray")
    return f":{color}[{capitalize(value) or 'Unknown'}]"


def _field_error_text(err: Any) -> str:
    if isinstance(err, dict):
        return str(err.get("message") or err)
    return str(err)


def format_error_message(error: BaseException) -> str:
    """Field errors joined with commas when present, otherwise the message."""
    field_errors: Iterable[Any] = ()
    if isinstance(error, APIError):
        field_errors = error.field_errors
    if field_errors:
        return ", ".join(_field_error_text(e) for e in field_errors)
    if isinstance(error, CRMError):
        return error.message
    return str(error)
