"""
Customer API Client
Customers and their nested phones, addresses, notes and reminders
"""
from __future__ import annotations
from typing import List, Optional, Union

from .base_client import BaseAPIClient, quote_id
from .models import (
    Address,
    AddressInput,
    Customer,
    CustomerCreate,
    Note,
    NoteInput,
    Phone,
    PhoneInput,
    Reminder,
    ReminderInput,
    ReminderPatch,
)


class CustomerAPI(BaseAPIClient):
    """
    Client for ``/customers`` and everything scoped under a customer id.

    Endpoints:
        GET|POST    /customers
        GET         /customers/search?query=
        DELETE      /customers/{id}
        GET|POST    /customers/{id}/{phones|addresses|notes|reminders}
        PUT|DELETE  /customers/{id}/{phones|addresses|notes}/{childId}
        PATCH|DELETE /customers/{id}/reminders/{reminderId}
    """

    @staticmethod
    def _scoped(customer_id: str, *parts: str) -> str:
        return "/".join(["customers", quote_id(customer_id), *(quote_id(p) for p in parts)])

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------

    def get_all(self) -> List[Customer]:
        payload = self._make_request("customers")
        return [Customer.from_dict(item) for item in payload or []]

    def create(self, data: CustomerCreate) -> Customer:
        payload = self._make_request("customers", method="POST", data=data.to_dict())
        return Customer.from_dict(payload)

    def search(self, query: str) -> List[Customer]:
        """Server-side substring match across name, email and phone."""
        payload = self._make_request("customers/search", params={"query": query})
        return [Customer.from_dict(item) for item in payload or []]

    def delete(self, customer_id: str) -> None:
        self._make_request(self._scoped(customer_id), method="DELETE")

    # ------------------------------------------------------------------
    # Phones
    # ------------------------------------------------------------------

    def get_phones(self, customer_id: str) -> List[Phone]:
        payload = self._make_request(self._scoped(customer_id, "phones"))
        return [Phone.from_dict(item) for item in payload or []]

    def add_phone(self, customer_id: str, data: PhoneInput) -> Phone:
        payload = self._make_request(
            self._scoped(customer_id, "phones"), method="POST", data=data.to_dict()
        )
        return Phone.from_dict(payload)

    def update_phone(self, customer_id: str, phone_id: str, data: PhoneInput) -> Phone:
        payload = self._make_request(
            self._scoped(customer_id, "phones", phone_id), method="PUT", data=data.to_dict()
        )
        return Phone.from_dict(payload)

    def delete_phone(self, customer_id: str, phone_id: str) -> None:
        self._make_request(self._scoped(customer_id, "phones", phone_id), method="DELETE")

    # ------------------------------------------------------------------
    # Addresses
    # ------------------------------------------------------------------

    def get_addresses(self, customer_id: str) -> List[Address]:
        payload = self._make_request(self._scoped(customer_id, "addresses"))
        return [Address.from_dict(item) for item in payload or []]

    def add_address(self, customer_id: str, data: AddressInput) -> Address:
        payload = self._make_request(
            self._scoped(customer_id, "addresses"), method="POST", data=data.to_dict()
        )
        return Address.from_dict(payload)

    def update_address(self, customer_id: str, address_id: str, data: AddressInput) -> Address:
        payload = self._make_request(
            self._scoped(customer_id, "addresses", address_id), method="PUT", data=data.to_dict()
        )
        return Address.from_dict(payload)

    def delete_address(self, customer_id: str, address_id: str) -> None:
        self._make_request(self._scoped(customer_id, "addresses", address_id), method="DELETE")

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    def get_notes(self, customer_id: str) -> List[Note]:
        payload = self._make_request(self._scoped(customer_id, "notes"))
        return [Note.from_dict(item) for item in payload or []]

    def add_note(self, customer_id: str, data: Union[NoteInput, str]) -> Note:
        if isinstance(data, str):
            data = NoteInput(note=data)
        payload = self._make_request(
            self._scoped(customer_id, "notes"), method="POST", data=data.to_dict()
        )
        return Note.from_dict(payload)

    def update_note(self, customer_id: str, note_id: str, data: Union[NoteInput, str]) -> Note:
        if isinstance(data, str):
            data = NoteInput(note=data)
        payload = self._make_request(
            self._scoped(customer_id, "notes", note_id), method="PUT", data=data.to_dict()
        )
        return Note.from_dict(payload)

    def delete_note(self, customer_id: str, note_id: str) -> None:
        self._make_request(self._scoped(customer_id, "notes", note_id), method="DELETE")

    # ------------------------------------------------------------------
    # Reminders
    # ------------------------------------------------------------------

    def get_reminders(self, customer_id: str) -> List[Reminder]:
        payload = self._make_request(self._scoped(customer_id, "reminders"))
        return [Reminder.from_dict(item, customer_id=customer_id) for item in payload or []]

    def add_reminder(self, customer_id: str, data: ReminderInput) -> Reminder:
        payload = self._make_request(
            self._scoped(customer_id, "reminders"), method="POST", data=data.to_dict()
        )
        return Reminder.from_dict(payload, customer_id=customer_id)

    def patch_reminder(
        self,
        customer_id: str,
        reminder_id: str,
        patch: ReminderPatch,
    ) -> Reminder:
        payload = self._make_request(
            self._scoped(customer_id, "reminders", reminder_id),
            method="PATCH",
            data=patch.to_dict(),
        )
        return Reminder.from_dict(payload, customer_id=customer_id)

    def complete_reminder(self, customer_id: str, reminder_id: str) -> Reminder:
        return self.patch_reminder(customer_id, reminder_id, ReminderPatch.complete())

    def reopen_reminder(self, customer_id: str, reminder_id: str) -> Reminder:
        return self.patch_reminder(customer_id, reminder_id, ReminderPatch.reopen())

    def delete_reminder(self, customer_id: str, reminder_id: str) -> None:
        self._make_request(self._scoped(customer_id, "reminders", reminder_id), method="DELETE")

    def get_one(self, customer_id: str) -> Optional[Customer]:
        """
        Single customer lookup.

        The backend exposes no ``GET /customers/{id}``, so this scans the
        full list.
        """
        for customer in self.get_all():
            if customer.id == customer_id:
                return customer
        return None
