# =============================================================================
# tests/unit/test_api_client.py
# Unit Tests for the backend API clients
# =============================================================================

from unittest.mock import MagicMock

import pytest
import requests

API_BASE = "http://api.test"


def make_client(session, token="token-1"):
    from crm_core.api import APIConfig, CRMClient

    config = APIConfig(api_name="test", base_url=API_BASE, timeout=5)
    return CRMClient(config, token_provider=lambda: token, session=session)


@pytest.fixture
def session(response_factory):
    """requests.Session whose request() is a MagicMock"""
    s = requests.Session()
    s.request = MagicMock(return_value=response_factory(200, []))
    return s


class TestHandleResponse:
    """Test response normalization"""

    def test_error_body_message(self, response_factory):
        from crm_core.api import handle_response
        from crm_core.errors import APIError

        response = response_factory(409, {"error": "Email already exists"}, reason="Conflict")

        with pytest.raises(APIError) as exc:
            handle_response(response)

        assert exc.value.message == "Email already exists"
        assert exc.value.status_code == 409

    def test_field_errors_kept(self, response_factory):
        from crm_core.api import handle_response
        from crm_core.errors import APIError

        body = {"error": "Validation failed", "errors": [{"message": "email is invalid"}]}

        with pytest.raises(APIError) as exc:
            handle_response(response_factory(400, body, reason="Bad Request"))

        assert exc.value.field_errors == [{"message": "email is invalid"}]

    def test_fallback_message_without_json(self, response_factory):
        from crm_core.api import handle_response
        from crm_core.errors import APIError

        with pytest.raises(APIError) as exc:
            handle_response(response_factory(502, raw="<html>bad gateway</html>", reason="Bad Gateway"))

        assert exc.value.message == "HTTP 502: Bad Gateway"

    def test_no_content(self, response_factory):
        from crm_core.api import handle_response

        assert handle_response(response_factory(204, reason="No Content")) is None

    def test_malformed_success_body(self, response_factory):
        from crm_core.api import handle_response
        from crm_core.errors import ResponseParseError

        with pytest.raises(ResponseParseError):
            handle_response(response_factory(200, raw="{not json"))


class TestBaseClient:
    """Test request plumbing"""

    def test_bearer_token_sent(self, session):
        client = make_client(session)
        client.customers.get_all()

        kwargs = session.request.call_args.kwargs
        assert kwargs["headers"]["Authorization"] == "Bearer token-1"
        assert kwargs["url"] == f"{API_BASE}/customers"
        assert session.headers["Content-Type"] == "application/json"

    def test_missing_token_fails_before_network(self, session):
        from crm_core.errors import AuthenticationRequiredError

        client = make_client(session, token=None)

        with pytest.raises(AuthenticationRequiredError):
            client.customers.get_all()
        session.request.assert_not_called()

    def test_transport_failure_is_network_error(self, session):
        from crm_core.errors import NetworkError

        session.request.side_effect = requests.ConnectionError("refused")
        client = make_client(session)

        with pytest.raises(NetworkError):
            client.reminders.get_analytics()

    def test_health_is_unauthenticated(self, session, response_factory):
        session.request.return_value = response_factory(200, {"status": "ok"})
        client = make_client(session, token=None)

        assert client.health.check() == {"status": "ok"}


class TestCustomerAPI:
    """Test customer endpoints"""

    def test_search_sends_query_param(self, session):
        make_client(session).customers.search("ada")

        kwargs = session.request.call_args.kwargs
        assert kwargs["url"] == f"{API_BASE}/customers/search"
        assert kwargs["params"] == {"query": "ada"}

    def test_ids_are_path_escaped(self, session, response_factory):
        session.request.return_value = response_factory(204)
        make_client(session).customers.delete_note("c/1", "n 2")

        kwargs = session.request.call_args.kwargs
        assert kwargs["method"] == "DELETE"
        assert kwargs["url"] == f"{API_BASE}/customers/c%2F1/notes/n%202"

    def test_reopen_patches_null(self, session, response_factory):
        session.request.return_value = response_factory(200, {
            "id": "r1", "description": "Call", "dueDate": "2024-06-02T00:00:00Z", "dateCompleted": None,
        })
        reminder = make_client(session).customers.reopen_reminder("c1", "r1")

        kwargs = session.request.call_args.kwargs
        assert kwargs["method"] == "PATCH"
        assert kwargs["json"] == {"dateCompleted": None}
        assert reminder.customer_id == "c1"
        assert not reminder.completed

    def test_get_one_scans_list(self, session, response_factory, customer_payload):
        session.request.return_value = response_factory(200, [customer_payload])
        client = make_client(session)

        assert client.customers.get_one("c1").email == "ada@example.com"
        assert client.customers.get_one("missing") is None


class TestReminderAPI:
    """Test global reminder endpoints"""

    def test_status_all_sends_no_filter(self, session):
        make_client(session).reminders.get_all(status="all", include="customer")

        assert session.request.call_args.kwargs["params"] == {"include": "customer"}

    def test_status_filter(self, session):
        make_client(session).reminders.get_all(status="overdue")

        assert session.request.call_args.kwargs["params"] == {"status": "overdue"}

    def test_invalid_status_rejected(self, session):
        with pytest.raises(ValueError):
            make_client(session).reminders.get_all(status="someday")


class TestUserAPI:
    def test_signup_returns_token_without_auth(self, session, response_factory):
        session.request.return_value = response_factory(201, {"token": "custom-token"})
        client = make_client(session, token=None)

        assert client.users.sign_up("a@b.co", "secret1", "A B") == "custom-token"
        assert "Authorization" not in session.request.call_args.kwargs["headers"]

    def test_signup_without_token_fails(self, session, response_factory):
        from crm_core.errors import APIError

        session.request.return_value = response_factory(201, {})

        with pytest.raises(APIError):
            make_client(session).users.sign_up("a@b.co", "secret1", "A B")
