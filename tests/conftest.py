# =============================================================================
# tests/conftest.py
# Pytest Configuration and Fixtures
# =============================================================================

import itertools
import json
import re
from concurrent.futures import wait
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock
from urllib.parse import urlparse

import pytest
import requests

API_BASE = "http://api.test"
NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def iso(value: datetime) -> str:
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================

@pytest.fixture
def now():
    """Fixed reference time for overdue/upcoming checks"""
    return NOW


@pytest.fixture
def customer_payload():
    """One customer in the backend's wire format"""
    return {
        "id": "c1",
        "firstName": "Ada",
        "lastName": "Lovelace",
        "email": "ada@example.com",
        "createdAt": "2024-01-15T10:00:00.000Z",
        "updatedAt": "2024-01-15T10:00:00.000Z",
        "phones": [
            {"id": "p1", "phoneNumber": "+15551234567", "designation": "mobile"},
        ],
        "addresses": [
            {
                "id": "a1",
                "street": "12 Analytical Way",
                "city": "London",
                "state": "Greater London",
                "postalCode": "N1 9GU",
                "country": "United Kingdom",
                "addressType": "home",
            },
        ],
        "notes": [{"id": "n1", "note": "Prefers email"}],
    }


@pytest.fixture
def sample_customers():
    """A handful of Customer records"""
    from crm_core.api.models import Customer, Phone

    def make(cid, first, last, email, joined, phone=None):
        return Customer(
            id=cid,
            first_name=first,
            last_name=last,
            email=email,
            created_at=datetime(2024, 1, joined, tzinfo=timezone.utc),
            phones=[Phone(id=f"p-{cid}", phone_number=phone)] if phone else [],
        )

    return [
        make("c1", "Grace", "Hopper", "grace@navy.mil", 3, "+15550001111"),
        make("c2", "ada", "Lovelace", "ada@example.com", 1),
        make("c3", "Alan", "Turing", "alan@bletchley.uk", 2, "+447700900123"),
    ]


@pytest.fixture
def make_reminder(now):
    """Factory for Reminder records relative to ``now``"""
    from crm_core.api.models import Reminder, ReminderCustomer, ReminderPriority

    counter = itertools.count(1)

    def _make(
        due_in_days: float = 1,
        priority: str = "medium",
        completed: bool = False,
        customer_id: Optional[str] = "c1",
        description: Optional[str] = None,
    ) -> Reminder:
        rid = f"r{next(counter)}"
        customer = (
            ReminderCustomer(id=customer_id, first_name="Ada", last_name="Lovelace", email="ada@example.com")
            if customer_id else None
        )
        return Reminder(
            id=rid,
            description=description or f"Reminder {rid}",
            due_date=now + timedelta(days=due_in_days),
            priority=ReminderPriority(priority),
            date_completed=now - timedelta(hours=1) if completed else None,
            customer=customer,
        )

    return _make


# =============================================================================
# HTTP FIXTURES
# =============================================================================

def make_response(
    status: int = 200,
    body: Any = None,
    raw: Optional[str] = None,
    reason: str = "OK",
    url: str = f"{API_BASE}/test",
) -> requests.Response:
    """Build a real requests.Response without touching the network"""
    response = requests.Response()
    response.status_code = status
    response.reason = reason
    response.url = url
    if raw is not None:
        response._content = raw.encode()
    elif body is not None:
        response._content = json.dumps(body).encode()
        response.headers["Content-Type"] = "application/json"
    else:
        response._content = b""
    return response


@pytest.fixture
def response_factory():
    return make_response


@dataclass
class RecordedCall:
    method: str
    path: str
    params: Optional[Dict[str, Any]]
    body: Any
    headers: Dict[str, str]


@dataclass
class FakeBackend:
    """
    In-memory stand-in for the CRM REST API.

    Plugs into a real ``requests.Session`` by replacing its ``request``
    method, so the clients run their full request/response path.
    """
    customers: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    reminders: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    calls: List[RecordedCall] = field(default_factory=list)
    offline: bool = False
    now: datetime = NOW

    def __post_init__(self):
        self._ids = itertools.count(100)
        self._failures: List[tuple] = []
        self.session = requests.Session()
        self.session.request = self.handle

    # -- test controls -------------------------------------------------

    def fail_next(self, method: str, path_pattern: str, outcome) -> None:
        """Answer the next matching request with ``outcome`` (a Response or an exception)."""
        self._failures.append((method.upper(), re.compile(path_pattern), outcome))

    def count(self, method: str, path: str) -> int:
        return sum(1 for c in self.calls if c.method == method and c.path == path)

    def add_customer(self, first: str, last: str, email: str, phones=()) -> Dict[str, Any]:
        cid = f"c{next(self._ids)}"
        self.customers[cid] = {
            "id": cid,
            "firstName": first,
            "lastName": last,
            "email": email,
            "createdAt": iso(self.now),
            "updatedAt": iso(self.now),
            "phones": [
                {"id": f"p{next(self._ids)}", "phoneNumber": p, "designation": "mobile"}
                for p in phones
            ],
            "addresses": [],
            "notes": [],
        }
        return self.customers[cid]

    def add_reminder(self, customer_id: str, description: str, due: datetime,
                     priority: str = "medium", completed: Optional[datetime] = None) -> Dict[str, Any]:
        rid = f"r{next(self._ids)}"
        self.reminders[rid] = {
            "id": rid,
            "customerId": customer_id,
            "description": description,
            "dueDate": iso(due),
            "priority": priority,
            "dateCompleted": iso(completed) if completed else None,
            "createdAt": iso(self.now),
            "updatedAt": iso(self.now),
        }
        return self.reminders[rid]

    # -- request handling ----------------------------------------------

    def handle(self, method, url, params=None, json=None, headers=None, timeout=None, **kwargs):
        path = urlparse(url).path.strip("/")
        method = method.upper()
        self.calls.append(RecordedCall(method, path, params, json, dict(headers or {})))

        if self.offline:
            raise requests.ConnectionError("backend unreachable")

        for i, (m, pattern, outcome) in enumerate(self._failures):
            if m == method and pattern.fullmatch(path):
                del self._failures[i]
                if isinstance(outcome, BaseException):
                    raise outcome
                return outcome

        public = path in ("health", "auth/signup")
        if not public and not (headers or {}).get("Authorization", "").startswith("Bearer "):
            return make_response(401, {"error": "Unauthorized"}, reason="Unauthorized", url=url)

        status, body = self.route(method, path.split("/"), params or {}, json or {})
        if status == 204:
            return make_response(204, url=url, reason="No Content")
        return make_response(status, body, url=url, reason="OK" if status < 400 else "Error")

    def _reminders_of(self, customer_id: str) -> List[Dict[str, Any]]:
        return [r for r in self.reminders.values() if r["customerId"] == customer_id]

    def _with_customer(self, reminder: Dict[str, Any]) -> Dict[str, Any]:
        owner = self.customers.get(reminder["customerId"])
        joined = dict(reminder)
        if owner:
            joined["customer"] = {k: owner[k] for k in ("id", "firstName", "lastName", "email")}
        return joined

    def _status_of(self, reminder: Dict[str, Any]) -> str:
        if reminder["dateCompleted"]:
            return "completed"
        due = datetime.fromisoformat(reminder["dueDate"].replace("Z", "+00:00"))
        return "overdue" if due < self.now else "active"

    def route(self, method, parts, params, body):
        not_found = (404, {"error": "Not found"})

        if parts == ["health"]:
            return 200, {"status": "ok"}
        if parts == ["auth", "me"]:
            return 200, {"id": "user-1", "email": "owner@example.com", "displayName": "Owner"}

        if parts == ["reminders"]:
            rows = list(self.reminders.values())
            status = params.get("status")
            if status == "active":
                rows = [r for r in rows if not r["dateCompleted"]]
            elif status in ("overdue", "completed"):
                rows = [r for r in rows if self._status_of(r) == status]
            if params.get("include") == "customer":
                rows = [self._with_customer(r) for r in rows]
            return 200, rows
        if parts == ["reminders", "analytics"]:
            rows = list(self.reminders.values())
            completed = sum(1 for r in rows if r["dateCompleted"])
            overdue = sum(1 for r in rows if self._status_of(r) == "overdue")
            return 200, {
                "counts": {
                    "total": len(rows),
                    "active": len(rows) - completed,
                    "overdue": overdue,
                    "completed": completed,
                },
                "completionRate": completed / len(rows) if rows else 0,
            }

        if parts[0] != "customers":
            return not_found

        if len(parts) == 1:
            if method == "GET":
                return 200, list(self.customers.values())
            created = self.add_customer(body["firstName"], body["lastName"], body["email"])
            return 201, created

        if parts[1] == "search":
            q = params.get("query", "").lower()
            return 200, [
                c for c in self.customers.values()
                if q in f"{c['firstName']} {c['lastName']}".lower() or q in c["email"].lower()
            ]

        customer = self.customers.get(parts[1])
        if customer is None:
            return not_found

        if len(parts) == 2 and method == "DELETE":
            del self.customers[parts[1]]
            for rid in [r["id"] for r in self._reminders_of(parts[1])]:
                del self.reminders[rid]
            return 204, None

        collection = parts[2]
        if collection == "reminders":
            if len(parts) == 3:
                if method == "GET":
                    return 200, self._reminders_of(parts[1])
                due = datetime.fromisoformat(body["dueDate"].replace("Z", "+00:00"))
                return 201, self.add_reminder(parts[1], body["description"], due, body.get("priority", "medium"))
            reminder = self.reminders.get(parts[3])
            if reminder is None or reminder["customerId"] != parts[1]:
                return not_found
            if method == "DELETE":
                del self.reminders[parts[3]]
                return 204, None
            reminder.update(body)
            return 200, reminder

        items = customer[collection]
        if len(parts) == 3:
            if method == "GET":
                return 200, items
            item = dict(body, id=f"{collection[0]}{next(self._ids)}", createdAt=iso(self.now))
            items.append(item)
            return 201, item
        for i, item in enumerate(items):
            if item["id"] == parts[3]:
                if method == "DELETE":
                    del items[i]
                    return 204, None
                items[i] = dict(item, **body)
                return 200, items[i]
        return not_found


@pytest.fixture
def backend():
    """Fresh in-memory backend"""
    return FakeBackend()


# =============================================================================
# AUTH & CONTEXT FIXTURES
# =============================================================================

@pytest.fixture
def token_bundle():
    from crm_core.auth import TokenBundle

    return TokenBundle(
        uid="user-1",
        id_token="token-1",
        refresh_token="refresh-1",
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        email="owner@example.com",
        display_name="Owner",
    )


@pytest.fixture
def mock_provider(token_bundle):
    """Identity provider that accepts every sign-in"""
    from crm_core.auth import FirebaseIdentityProvider

    provider = MagicMock(spec=FirebaseIdentityProvider)
    provider.sign_in_with_password.return_value = token_bundle
    provider.sign_in_with_custom_token.return_value = token_bundle
    provider.refresh.return_value = token_bundle
    return provider


@pytest.fixture
def settings():
    from crm_core.config import Settings

    return Settings(api_base_url=API_BASE, firebase_api_key="test-key")


@pytest.fixture
def ctx(settings, backend, mock_provider):
    """SyncContext wired to the fake backend; nobody signed in yet"""
    from crm_core.auth import AuthSession
    from crm_core.sync import SyncContext

    context = SyncContext(
        settings=settings,
        auth=AuthSession(mock_provider),
        session=backend.session,
    )
    yield context
    context.store.shutdown(wait=True)


@pytest.fixture
def signed_in_ctx(ctx):
    """SyncContext with a signed-in user"""
    result = ctx.auth.sign_in("owner@example.com", "secret")
    assert result.success
    return ctx


def drain(ctx) -> None:
    """Wait for every in-flight cache fetch to finish"""
    futures = []
    for key in ctx.store.keys():
        entry = ctx.store.entry(key)
        if entry is not None and entry.future is not None:
            futures.append(entry.future)
    wait(futures, timeout=5)


@pytest.fixture
def settle():
    return drain


# =============================================================================
# MOCK FIXTURES
# =============================================================================

@pytest.fixture
def mock_streamlit():
    """Mock Streamlit for testing"""
    import sys

    mock_st = MagicMock()
    mock_st.session_state = {}

    original_st = sys.modules.get('streamlit')
    sys.modules['streamlit'] = mock_st

    yield mock_st

    if original_st:
        sys.modules['streamlit'] = original_st
    else:
        del sys.modules['streamlit']
