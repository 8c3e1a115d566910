# =============================================================================
# tests/unit/test_auth_session.py
# Unit Tests for AuthSession and the Firebase identity provider
# =============================================================================

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
import requests


@pytest.fixture
def auth(mock_provider):
    from crm_core.auth import AuthSession

    return AuthSession(mock_provider)


class TestSignIn:
    """Test sign-in and sign-out"""

    def test_sign_in_sets_user(self, auth):
        result = auth.sign_in("owner@example.com", "secret")

        assert result.success
        assert auth.is_authenticated
        assert auth.current_user.uid == "user-1"
        assert not auth.is_resolving

    def test_provider_rejection(self, auth, mock_provider):
        from crm_core.errors import IdentityProviderError

        mock_provider.sign_in_with_password.side_effect = IdentityProviderError("Incorrect password")

        result = auth.sign_in("owner@example.com", "wrong")

        assert not result.success
        assert result.error == "Incorrect password"
        assert auth.current_user is None
        assert not auth.is_resolving

    def test_callbacks_fire_on_identity_change(self, auth):
        seen = []
        auth.register_callback(lambda user: seen.append(user.uid if user else None))

        auth.sign_in("owner@example.com", "secret")
        auth.sign_in("owner@example.com", "secret")  # same user, no change
        auth.sign_out()
        auth.sign_out()  # already signed out

        assert seen == ["user-1", None]

    def test_failing_callback_does_not_break_sign_in(self, auth):
        auth.register_callback(MagicMock(side_effect=RuntimeError("boom")))

        assert auth.sign_in("owner@example.com", "secret").success

    def test_require_user(self, auth):
        from crm_core.errors import AuthenticationRequiredError

        with pytest.raises(AuthenticationRequiredError):
            auth.require_user()

        auth.sign_in("owner@example.com", "secret")
        assert auth.require_user().email == "owner@example.com"


class TestIdTokens:
    """Test token issuance and refresh"""

    def test_no_token_when_signed_out(self, auth):
        assert auth.get_id_token() is None

    def test_valid_token_is_reused(self, auth, mock_provider):
        auth.sign_in("owner@example.com", "secret")

        assert auth.get_id_token() == "token-1"
        mock_provider.refresh.assert_not_called()

    def test_token_near_expiry_is_refreshed(self, auth, mock_provider, token_bundle):
        from crm_core.auth import TokenBundle

        auth.sign_in("owner@example.com", "secret")
        auth.current_user.expires_at = datetime.now(timezone.utc) + timedelta(seconds=30)
        mock_provider.refresh.return_value = TokenBundle(
            uid="",
            id_token="token-2",
            refresh_token="refresh-2",
            expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        )

        assert auth.get_id_token() == "token-2"
        mock_provider.refresh.assert_called_once_with("refresh-1")
        # Profile fields survive a refresh that does not return them
        assert auth.current_user.email == "owner@example.com"
        assert auth.current_user.uid == "user-1"

    def test_force_refresh(self, auth, mock_provider):
        auth.sign_in("owner@example.com", "secret")
        auth.get_id_token(force_refresh=True)

        mock_provider.refresh.assert_called_once()

    def test_refresh_failure_returns_none(self, auth, mock_provider):
        from crm_core.errors import IdentityProviderError

        auth.sign_in("owner@example.com", "secret")
        mock_provider.refresh.side_effect = IdentityProviderError("expired")

        assert auth.get_id_token(force_refresh=True) is None
        assert not auth.is_resolving


class TestSignUp:
    """Test account creation"""

    def test_problems(self):
        from crm_core.auth import SignUpData

        assert SignUpData("", "secret1", "Ada").problems() == ["Please fill in all fields"]
        assert SignUpData("a@b.co", "abc", "Ada").problems() == ["Password must be at least 6 characters"]
        assert SignUpData("a@b.co", "secret1", "Ada").problems() == []

    def test_unavailable_without_users_api(self, auth):
        from crm_core.auth import SignUpData

        result = auth.sign_up(SignUpData("a@b.co", "secret1", "Ada"))

        assert not result.success
        assert result.error == "Signup is not available"

    def test_sign_up_then_sign_in_with_custom_token(self, auth, mock_provider):
        from crm_core.auth import SignUpData

        auth.users_api = MagicMock()
        auth.users_api.sign_up.return_value = "custom-token"

        result = auth.sign_up(SignUpData("a@b.co", "secret1", "Ada"))

        assert result.success
        auth.users_api.sign_up.assert_called_once_with("a@b.co", "secret1", "Ada")
        mock_provider.sign_in_with_custom_token.assert_called_once_with("custom-token")

    def test_backend_rejection(self, auth):
        from crm_core.auth import SignUpData
        from crm_core.errors import APIError

        auth.users_api = MagicMock()
        auth.users_api.sign_up.side_effect = APIError("Email already exists", status_code=409)

        result = auth.sign_up(SignUpData("a@b.co", "secret1", "Ada"))

        assert result.error == "Email already exists"
        assert not auth.is_authenticated

    def test_invalid_form_never_reaches_backend(self, auth):
        from crm_core.auth import SignUpData

        auth.users_api = MagicMock()
        result = auth.sign_up(SignUpData("a@b.co", "123", "Ada"))

        assert not result.success
        auth.users_api.sign_up.assert_not_called()


class TestFirebaseIdentityProvider:
    """Test the REST calls against a mocked session"""

    @pytest.fixture
    def session(self):
        s = requests.Session()
        s.post = MagicMock()
        return s

    def test_password_sign_in(self, session, response_factory):
        from crm_core.auth import FirebaseIdentityProvider

        session.post.return_value = response_factory(200, {
            "localId": "u1",
            "idToken": "id",
            "refreshToken": "rt",
            "expiresIn": "3600",
            "email": "a@b.co",
            "displayName": "Ada",
        })
        provider = FirebaseIdentityProvider("key", session=session)

        bundle = provider.sign_in_with_password("a@b.co", "secret")

        assert bundle.uid == "u1"
        assert bundle.expires_at > datetime.now(timezone.utc) + timedelta(minutes=59)
        assert session.post.call_args.kwargs["params"] == {"key": "key"}

    def test_error_code_is_translated(self, session, response_factory):
        from crm_core.auth import FirebaseIdentityProvider
        from crm_core.errors import IdentityProviderError

        session.post.return_value = response_factory(400, {
            "error": {"message": "TOO_MANY_ATTEMPTS_TRY_LATER : Access disabled"},
        }, reason="Bad Request")
        provider = FirebaseIdentityProvider("key", session=session)

        with pytest.raises(IdentityProviderError) as exc:
            provider.sign_in_with_password("a@b.co", "secret")

        assert exc.value.provider_code == "TOO_MANY_ATTEMPTS_TRY_LATER"
        assert exc.value.message == "Too many attempts, try again later"

    def test_missing_api_key(self, session):
        from crm_core.auth import FirebaseIdentityProvider
        from crm_core.errors import IdentityProviderError

        with pytest.raises(IdentityProviderError) as exc:
            FirebaseIdentityProvider(None, session=session).refresh("rt")

        assert not exc.value.recoverable
        session.post.assert_not_called()

    def test_unreachable(self, session):
        from crm_core.auth import FirebaseIdentityProvider
        from crm_core.errors import NetworkError

        session.post.side_effect = requests.ConnectionError("dns")

        with pytest.raises(NetworkError):
            FirebaseIdentityProvider("key", session=session).refresh("rt")

    def test_custom_token_looks_up_profile(self, session, response_factory):
        from crm_core.auth import FirebaseIdentityProvider

        session.post.side_effect = [
            response_factory(200, {"idToken": "id", "refreshToken": "rt", "expiresIn": "3600"}),
            response_factory(200, {"users": [{"localId": "u9", "email": "new@b.co", "displayName": "New"}]}),
        ]

        bundle = FirebaseIdentityProvider("key", session=session).sign_in_with_custom_token("ct")

        assert (bundle.uid, bundle.email, bundle.display_name) == ("u9", "new@b.co", "New")
