# =============================================================================
# crm_core/views/tables.py
# DataFrames for the dashboard tables and charts
# =============================================================================

from __future__ import annotations
from datetime import datetime
from typing import Iterable, Optional

import pandas as pd

from crm_core.api.models import Customer, Reminder, utcnow

from .reminders import ReminderStats, bucket_reminders, to_reminder_rows

CUSTOMER_COLUMNS = ["id", "Name", "Email", "Phones", "Addresses", "Joined"]
REMINDER_COLUMNS = ["id", "customer_id", "Title", "Customer", "Priority", "Due", "Status"]


def customers_frame(customers: Iterable[Customer]) -> pd.DataFrame:
    """One row per customer, in the order given."""
    records = [
        {
            "id": c.id,
            "Name": c.full_name,
            "Email": c.email,
            "Phones": len(c.phones),
            "Addresses": len(c.addresses),
            "Joined": c.created_at,
        }
        for c in customers
    ]
    df = pd.DataFrame.from_records(records, columns=CUSTOMER_COLUMNS)
    df["Joined"] = pd.to_datetime(df["Joined"], utc=True)
    return df


def _status(reminder: Reminder, now: datetime) -> str:
    if reminder.completed:
        return "Completed"
    if reminder.is_overdue(now):
        return "Overdue"
    return "Upcoming"


def reminders_frame(reminders: Iterable[Reminder], now: Optional[datetime] = None) -> pd.DataFrame:
    """One row per reminder, in the order given, with a status computed at ``now``."""
    now = now or utcnow()
    records = [
        {
            "id": row.id,
            "customer_id": row.customer_id,
            "Title": row.title,
            "Customer": row.customer_name,
            "Priority": row.reminder.priority.value.capitalize(),
            "Due": row.reminder.due_date,
            "Status": _status(row.reminder, now),
        }
        for row in to_reminder_rows(reminders)
    ]
    df = pd.DataFrame.from_records(records, columns=REMINDER_COLUMNS)
    df["Due"] = pd.to_datetime(df["Due"], utc=True)
    return df


def status_breakdown(stats: ReminderStats) -> pd.DataFrame:
    """Counts per status for the dashboard chart."""
    upcoming = max(stats.active - stats.overdue, 0)
    return pd.DataFrame(
        {
            "Status": ["Upcoming", "Overdue", "Completed"],
            "Count": [upcoming, stats.overdue, stats.completed],
        }
    )


def due_timeline(reminders: Iterable[Reminder], now: Optional[datetime] = None) -> pd.DataFrame:
    """
    Active reminders counted per due day, split into overdue and upcoming.

    Returns an empty frame with the ``Day``/``Bucket``/``Count`` columns when
    nothing is active.
    """
    buckets = bucket_reminders(reminders, now)
    records = [{"Day": r.due_date.date(), "Bucket": "Overdue"} for r in buckets.overdue]
    records += [{"Day": r.due_date.date(), "Bucket": "Upcoming"} for r in buckets.upcoming]
    if not records:
        return pd.DataFrame(columns=["Day", "Bucket", "Count"])
    df = pd.DataFrame.from_records(records)
    return (
        df.groupby(["Day", "Bucket"])
        .size()
        .reset_index(name="Count")
        .sort_values("Day")
        .reset_index(drop=True)
    )
