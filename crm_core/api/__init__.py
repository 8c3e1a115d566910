"""
Backend API Module
Typed clients for the CRM REST API
"""

from .base_client import BaseAPIClient, APIConfig, handle_response
from .client import CRMClient
from .customer_client import CustomerAPI
from .reminder_client import ReminderAPI
from .user_client import UserAPI, HealthAPI
from .models import (
    Customer,
    Phone,
    Address,
    Note,
    Reminder,
    ReminderCustomer,
    ReminderAnalytics,
    ReminderCounts,
    User,
    PhoneDesignation,
    AddressType,
    ReminderPriority,
    ReminderStatus,
    CustomerCreate,
    PhoneInput,
    AddressInput,
    NoteInput,
    ReminderInput,
    ReminderPatch,
    NOTE_MAX_LENGTH,
)

__all__ = [
    # Clients
    "BaseAPIClient",
    "APIConfig",
    "handle_response",
    "CRMClient",
    "CustomerAPI",
    "ReminderAPI",
    "UserAPI",
    "HealthAPI",

    # Records
    "Customer",
    "Phone",
    "Address",
    "Note",
    "Reminder",
    "ReminderCustomer",
    "ReminderAnalytics",
    "ReminderCounts",
    "User",

    # Enumerations
    "PhoneDesignation",
    "AddressType",
    "ReminderPriority",
    "ReminderStatus",

    # Request payloads
    "CustomerCreate",
    "PhoneInput",
    "AddressInput",
    "NoteInput",
    "ReminderInput",
    "ReminderPatch",
    "NOTE_MAX_LENGTH",
]
