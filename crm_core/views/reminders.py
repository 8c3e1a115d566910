# =============================================================================
# crm_core/views/reminders.py
# Derived reminder state: ordering, buckets and display rows
# =============================================================================
"""
Pure transforms over reminder lists.

Nothing here is cached on its own; callers recompute from the cached
reminder list on every read so that "overdue" always reflects the current
time.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Union

from crm_core.api.models import (
    Reminder,
    ReminderAnalytics,
    ReminderPriority,
    utcnow,
)

UNKNOWN_CUSTOMER = "Unknown Customer"


def _priority_rank(reminder: Reminder) -> int:
    priority = reminder.priority
    if isinstance(priority, ReminderPriority):
        return priority.rank
    return ReminderPriority.parse(priority).rank


def reminder_sort_key(reminder: Reminder):
    """Incomplete first, then highest priority, then earliest due date; undated last."""
    due = reminder.due_date
    return (reminder.completed, -_priority_rank(reminder), due is None, due.timestamp() if due else 0.0)


def sort_reminders(reminders: Iterable[Reminder]) -> List[Reminder]:
    return sorted(reminders, key=reminder_sort_key)


@dataclass
class ReminderBuckets:
    all: List[Reminder] = field(default_factory=list)
    active: List[Reminder] = field(default_factory=list)
    completed: List[Reminder] = field(default_factory=list)
    overdue: List[Reminder] = field(default_factory=list)
    upcoming: List[Reminder] = field(default_factory=list)


def bucket_reminders(reminders: Iterable[Reminder], now: Optional[datetime] = None) -> ReminderBuckets:
    """
    Split reminders into display buckets.

    Every bucket keeps the order of ``sort_reminders``. Overdue and upcoming
    partition the active bucket on ``now``.
    """
    now = now or utcnow()
    ordered = sort_reminders(reminders)
    active = [r for r in ordered if not r.completed]
    return ReminderBuckets(
        all=ordered,
        active=active,
        completed=[r for r in ordered if r.completed],
        overdue=[r for r in active if r.is_overdue(now)],
        upcoming=[r for r in active if not r.is_overdue(now)],
    )


@dataclass
class ReminderCategories:
    """Active reminders grouped by calendar day, plus recent completions"""
    overdue: List[Reminder] = field(default_factory=list)
    due_today: List[Reminder] = field(default_factory=list)
    due_tomorrow: List[Reminder] = field(default_factory=list)
    this_week: List[Reminder] = field(default_factory=list)
    later: List[Reminder] = field(default_factory=list)
    recently_completed: List[Reminder] = field(default_factory=list)


RECENTLY_COMPLETED_WINDOW = timedelta(hours=48)


def categorize_reminders(reminders: Iterable[Reminder], now: Optional[datetime] = None) -> ReminderCategories:
    """
    Group reminders the way the reminders page lists them.

    Day boundaries are midnights in the timezone of ``now``. Overdue means
    due before today, so something due this morning is still "today".
    "This week" starts the day after tomorrow and ends seven days after
    today. Completed reminders only appear when they were completed within
    the last 48 hours.
    """
    now = now or utcnow()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    tomorrow = today + timedelta(days=1)
    day_after = today + timedelta(days=2)
    next_week = today + timedelta(days=7)
    completed_since = now - RECENTLY_COMPLETED_WINDOW

    categories = ReminderCategories()
    for reminder in sort_reminders(reminders):
        if reminder.completed:
            if reminder.date_completed >= completed_since:
                categories.recently_completed.append(reminder)
            continue

        due = reminder.due_date
        if due is None or due >= next_week:
            categories.later.append(reminder)
        elif due < today:
            categories.overdue.append(reminder)
        elif due < tomorrow:
            categories.due_today.append(reminder)
        elif due < day_after:
            categories.due_tomorrow.append(reminder)
        else:
            categories.this_week.append(reminder)
    return categories


@dataclass
class ReminderRow:
    """A reminder flattened with its owning customer's identity"""
    reminder: Reminder
    completed: bool
    customer_id: str
    customer_name: str
    customer_email: str
    title: str

    @property
    def id(self) -> str:
        return self.reminder.id

    @classmethod
    def from_reminder(cls, reminder: Reminder) -> ReminderRow:
        customer = reminder.customer
        return cls(
            reminder=reminder,
            completed=reminder.completed,
            customer_id=reminder.owner_id or "",
            customer_name=customer.full_name if customer else UNKNOWN_CUSTOMER,
            customer_email=customer.email if customer else "",
            title=reminder.description,
        )


def to_reminder_rows(reminders: Iterable[Reminder]) -> List[ReminderRow]:
    return [ReminderRow.from_reminder(r) for r in reminders]


ALL = "all"


def filter_reminders(
    rows: Iterable[ReminderRow],
    query: str = "",
    priority: Union[ReminderPriority, str, None] = None,
    customer_id: Optional[str] = None,
) -> List[ReminderRow]:
    """
    Rows matching every given filter.

    ``query`` matches the description or customer name, case-insensitively.
    ``priority`` and ``customer_id`` of None, "" or "all" match everything.
    """
    needle = (query or "").strip().casefold()
    wanted_priority = None if priority in (None, "", ALL) else ReminderPriority.parse(priority)
    wanted_customer = None if customer_id in (None, "", ALL) else customer_id

    def keep(row: ReminderRow) -> bool:
        if needle and needle not in row.title.casefold() and needle not in row.customer_name.casefold():
            return False
        if wanted_priority is not None and ReminderPriority.parse(row.reminder.priority) is not wanted_priority:
            return False
        return wanted_customer is None or row.customer_id == wanted_customer

    return [row for row in rows if keep(row)]


@dataclass
class ReminderStats:
    total: int = 0
    active: int = 0
    overdue: int = 0
    completed: int = 0
    completion_rate: float = 0.0  # percentage, 0-100


def completion_percentage(analytics: Optional[ReminderAnalytics]) -> float:
    if analytics is None:
        return 0.0
    return analytics.completion_rate * 100


def reminder_stats(analytics: Optional[ReminderAnalytics]) -> ReminderStats:
    """Analytics as shown on the dashboard; zeros until loaded."""
    if analytics is None:
        return ReminderStats()
    counts = analytics.counts
    return ReminderStats(
        total=counts.total,
        active=counts.active,
        overdue=counts.overdue,
        completed=counts.completed,
        completion_rate=completion_percentage(analytics),
    )
