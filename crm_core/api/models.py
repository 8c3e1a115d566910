# =============================================================================
# crm_core/api/models.py
# Typed records exchanged with the CRM backend
# =============================================================================
"""
Dataclasses for the backend's JSON payloads.

The backend speaks camelCase; every record has a ``from_dict`` that accepts
the wire shape and a ``to_dict`` that produces it. Timestamps are parsed into
timezone-aware UTC datetimes.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

NOTE_MAX_LENGTH = 1000


# =============================================================================
# TIMESTAMP HELPERS
# =============================================================================

def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Render a datetime the way the backend stores it (UTC, millisecond precision)."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMERATIONS
# =============================================================================

class PhoneDesignation(str, Enum):
    MOBILE = "mobile"
    HOME = "home"
    WORK = "work"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> PhoneDesignation:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.OTHER


class AddressType(str, Enum):
    HOME = "home"
    WORK = "work"
    BILLING = "billing"
    SHIPPING = "shipping"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> AddressType:
        if isinstance(value, cls):
            return value
        if str(value).lower() == "business":
            return cls.WORK
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.OTHER


class ReminderPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return {"low": 1, "medium": 2, "high": 3}[self.value]

    @classmethod
    def parse(cls, value: Any) -> ReminderPriority:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.MEDIUM


class ReminderStatus(str, Enum):
    """Server-side filter for the global reminder list"""
    ACTIVE = "active"
    OVERDUE = "overdue"
    COMPLETED = "completed"
    ALL = "all"


# =============================================================================
# ENTITIES
# =============================================================================

@dataclass
class Phone:
    id: str
    phone_number: str
    designation: PhoneDesignation = PhoneDesignation.MOBILE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Phone:
        return cls(
            id=str(data["id"]),
            phone_number=data.get("phoneNumber", ""),
            designation=PhoneDesignation.parse(data.get("designation", "mobile")),
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "phoneNumber": self.phone_number,
            "designation": self.designation.value,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }


@dataclass
class Address:
    id: str
    address_line1: str
    city: str
    country: str
    address_type: AddressType = AddressType.HOME
    address_line2: Optional[str] = None
    state_province: Optional[str] = None
    region: Optional[str] = None
    district: Optional[str] = None
    postal_code: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Address:
        return cls(
            id=str(data["id"]),
            address_line1=data.get("addressLine1") or data.get("street") or "",
            address_line2=data.get("addressLine2") or None,
            city=data.get("city", ""),
            state_province=data.get("stateProvince") or data.get("state") or None,
            region=data.get("region") or None,
            district=data.get("district") or None,
            postal_code=data.get("postalCode") or None,
            country=data.get("country", ""),
            address_type=AddressType.parse(data.get("addressType") or data.get("type") or "home"),
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "street": self.address_line1,
            "addressLine2": self.address_line2,
            "city": self.city,
            "state": self.state_province,
            "region": self.region,
            "district": self.district,
            "postalCode": self.postal_code,
            "country": self.country,
            "addressType": self.address_type.value,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }


@dataclass
class Note:
    id: str
    note: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Note:
        return cls(
            id=str(data["id"]),
            note=data.get("note", ""),
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "note": self.note,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }


@dataclass
class ReminderCustomer:
    """Customer identity joined onto globally fetched reminders"""
    id: str
    first_name: str
    last_name: str
    email: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ReminderCustomer:
        return cls(
            id=str(data["id"]),
            first_name=data.get("firstName", ""),
            last_name=data.get("lastName", ""),
            email=data.get("email", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
        }


@dataclass
class Reminder:
    id: str
    description: str
    due_date: Optional[datetime]
    priority: ReminderPriority = ReminderPriority.MEDIUM
    date_completed: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    customer: Optional[ReminderCustomer] = None
    # Owning customer when known from the request scope rather than a join
    customer_id: Optional[str] = None

    @property
    def completed(self) -> bool:
        return self.date_completed is not None

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        """Active and due strictly before ``now``; evaluated on every call."""
        if self.completed:
            return False
        return self.due_date is not None and self.due_date < (now or utcnow())

    @property
    def owner_id(self) -> Optional[str]:
        if self.customer is not None:
            return self.customer.id
        return self.customer_id

    @classmethod
    def from_dict(cls, data: Dict[str, Any], customer_id: Optional[str] = None) -> Reminder:
        customer = data.get("customer")
        return cls(
            id=str(data["id"]),
            description=data.get("description", ""),
            due_date=parse_timestamp(data["dueDate"]),
            priority=ReminderPriority.parse(data.get("priority", "medium")),
            date_completed=parse_timestamp(data.get("dateCompleted")),
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
            customer=ReminderCustomer.from_dict(customer) if customer else None,
            customer_id=customer_id or data.get("customerId"),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "id": self.id,
            "description": self.description,
            "dueDate": format_timestamp(self.due_date),
            "priority": self.priority.value,
            "dateCompleted": format_timestamp(self.date_completed),
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }
        if self.customer is not None:
            payload["customer"] = self.customer.to_dict()
        return payload


@dataclass
class Customer:
    id: str
    first_name: str
    last_name: str
    email: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    phones: List[Phone] = field(default_factory=list)
    addresses: List[Address] = field(default_factory=list)
    notes: List[Note] = field(default_factory=list)
    reminders: Optional[List[Reminder]] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Customer:
        customer_id = str(data["id"])
        reminders = data.get("reminders")
        return cls(
            id=customer_id,
            first_name=data.get("firstName", ""),
            last_name=data.get("lastName", ""),
            email=data.get("email", ""),
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
            phones=[Phone.from_dict(p) for p in data.get("phones") or []],
            addresses=[Address.from_dict(a) for a in data.get("addresses") or []],
            notes=[Note.from_dict(n) for n in data.get("notes") or []],
            reminders=(
                [Reminder.from_dict(r, customer_id=customer_id) for r in reminders]
                if reminders is not None else None
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
            "phones": [p.to_dict() for p in self.phones],
            "addresses": [a.to_dict() for a in self.addresses],
            "notes": [n.to_dict() for n in self.notes],
        }
        if self.reminders is not None:
            payload["reminders"] = [r.to_dict() for r in self.reminders]
        return payload


@dataclass
class ReminderCounts:
    total: int = 0
    active: int = 0
    overdue: int = 0
    completed: int = 0


@dataclass
class ReminderAnalytics:
    counts: ReminderCounts = field(default_factory=ReminderCounts)
    completion_rate: float = 0.0  # 0-1 fraction as reported by the server

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ReminderAnalytics:
        counts = data.get("counts") or {}
        return cls(
            counts=ReminderCounts(
                total=int(counts.get("total", 0)),
                active=int(counts.get("active", 0)),
                overdue=int(counts.get("overdue", 0)),
                completed=int(counts.get("completed", 0)),
            ),
            completion_rate=float(data.get("completionRate", 0.0)),
        )


@dataclass
class User:
    id: str
    email: str
    display_name: str = ""
    email_verified: bool = False
    photo_url: Optional[str] = None
    disabled: bool = False
    last_sign_in_time: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> User:
        return cls(
            id=str(data["id"]),
            email=data.get("email", ""),
            display_name=data.get("displayName") or "",
            email_verified=bool(data.get("emailVerified", False)),
            photo_url=data.get("photoURL"),
            disabled=bool(data.get("disabled", False)),
            last_sign_in_time=_lenient_timestamp(data.get("lastSignInTime")),
            created_at=_lenient_timestamp(data.get("createdAt")),
            updated_at=_lenient_timestamp(data.get("updatedAt")),
        )


def _lenient_timestamp(value: Any) -> Optional[datetime]:
    # Identity-provider metadata sometimes arrives as RFC 1123 strings
    try:
        return parse_timestamp(value)
    except (TypeError, ValueError):
        return None


# =============================================================================
# REQUEST PAYLOADS
# =============================================================================

@dataclass
class PhoneInput:
    phone_number: str
    designation: PhoneDesignation = PhoneDesignation.MOBILE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phoneNumber": self.phone_number.strip(),
            "designation": PhoneDesignation.parse(self.designation).value,
        }


@dataclass
class AddressInput:
    address_line1: str
    city: str
    country: str
    address_type: AddressType = AddressType.HOME
    address_line2: Optional[str] = None
    state_province: Optional[str] = None
    region: Optional[str] = None
    district: Optional[str] = None
    postal_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "street": self.address_line1,
            "addressLine2": self.address_line2,
            "city": self.city,
            "state": self.state_province,
            "region": self.region,
            "district": self.district,
            "postalCode": self.postal_code,
            "country": self.country,
            "addressType": AddressType.parse(self.address_type).value,
        }
        return {k: v for k, v in payload.items() if v is not None}


@dataclass
class CustomerCreate:
    first_name: str
    last_name: str
    email: str
    phones: List[PhoneInput] = field(default_factory=list)
    addresses: List[AddressInput] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "firstName": self.first_name.strip(),
            "lastName": self.last_name.strip(),
            "email": self.email.strip(),
        }
        if self.phones:
            payload["phones"] = [p.to_dict() for p in self.phones]
        if self.addresses:
            payload["addresses"] = [a.to_dict() for a in self.addresses]
        return payload


@dataclass
class NoteInput:
    note: str

    def to_dict(self) -> Dict[str, Any]:
        return {"note": self.note}


@dataclass
class ReminderInput:
    description: str
    due_date: Optional[datetime]
    priority: ReminderPriority = ReminderPriority.MEDIUM

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "dueDate": format_timestamp(self.due_date),
            "priority": ReminderPriority.parse(self.priority).value,
        }


_UNSET: Any = object()


class ReminderPatch:
    """
    Partial reminder update.

    Only fields passed explicitly are serialized, so ``date_completed=None``
    sends ``{"dateCompleted": null}`` while omitting it sends nothing.
    """

    def __init__(
        self,
        description: Any = _UNSET,
        due_date: Any = _UNSET,
        priority: Any = _UNSET,
        date_completed: Any = _UNSET,
    ):
        self.description = description
        self.due_date = due_date
        self.priority = priority
        self.date_completed = date_completed

    @classmethod
    def complete(cls, at: Optional[datetime] = None) -> ReminderPatch:
        return cls(date_completed=at or utcnow())

    @classmethod
    def reopen(cls) -> ReminderPatch:
        return cls(date_completed=None)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        if self.description is not _UNSET:
            payload["description"] = self.description
        if self.due_date is not _UNSET:
            payload["dueDate"] = format_timestamp(self.due_date)
        if self.priority is not _UNSET:
            payload["priority"] = ReminderPriority.parse(self.priority).value
        if self.date_completed is not _UNSET:
            payload["dateCompleted"] = format_timestamp(self.date_completed)
        return payload

    def __repr__(self) -> str:
        return f"ReminderPatch({self.to_dict()!r})"
