"""
Global Reminder API Client
Cross-customer reminder listing, analytics and partial updates
"""
from __future__ import annotations
from typing import List, Optional, Union

from .base_client import BaseAPIClient, quote_id
from .models import Reminder, ReminderAnalytics, ReminderPatch, ReminderStatus


class ReminderAPI(BaseAPIClient):
    """Client for ``/reminders`` and ``/reminders/analytics``"""

    def get_all(
        self,
        status: Optional[Union[ReminderStatus, str]] = None,
        include: Optional[str] = None,
    ) -> List[Reminder]:
        """
        List reminders across all customers.

        Args:
            status: active / overdue / completed; "all" or None sends no filter
            include: "customer" to join the owning customer's identity
        """
        params = {}
        if status is not None:
            status = ReminderStatus(status)
            if status is not ReminderStatus.ALL:
                params["status"] = status.value
        if include:
            params["include"] = include

        payload = self._make_request("reminders", params=params or None)
        return [Reminder.from_dict(item) for item in payload or []]

    def get_analytics(self) -> ReminderAnalytics:
        payload = self._make_request("reminders/analytics")
        return ReminderAnalytics.from_dict(payload or {})

    def update_reminder(
        self,
        customer_id: str,
        reminder_id: str,
        patch: ReminderPatch,
    ) -> Reminder:
        """Partial update; reminders are always owned by a customer."""
        payload = self._make_request(
            f"customers/{quote_id(customer_id)}/reminders/{quote_id(reminder_id)}",
            method="PATCH",
            data=patch.to_dict(),
        )
        return Reminder.from_dict(payload, customer_id=customer_id)
