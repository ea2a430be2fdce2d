import pytest
import requests
from unittest.mock import MagicMock, patch

from infrastructure.backend.errors import AuthProviderError
from infrastructure.backend.supabase_auth import SupabaseAuthProvider
from use_cases.session_models import AuthUser, Session

TOKEN_BODY = {
    "access_token": "eyJ.access.token",
    "refresh_token": "refresh-1",
    "expires_in": 3600,
    "user": {"id": "user-1", "email": "fighter@example.com"},
}


def _resp(status_code, body=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = body if body is not None else {}
    resp.content = b"{}" if body is not None else b""
    resp.text = str(body)
    return resp


@pytest.fixture
def provider():
    return SupabaseAuthProvider("https://demo.supabase.co/", "anon-key", timeout=5)


@patch("requests.post")
def test_request_otp_posts_email(mock_post, provider):
    mock_post.return_value = _resp(200, {})

    provider.request_otp("fighter@example.com")

    args, kwargs = mock_post.call_args
    assert args[0] == "https://demo.supabase.co/auth/v1/otp"
    assert kwargs["json"] == {"email": "fighter@example.com", "create_user": True}
    assert kwargs["headers"]["apikey"] == "anon-key"
    assert kwargs["timeout"] == 5


@patch("requests.post")
def test_verify_otp_sets_session_and_notifies(mock_post, provider):
    mock_post.return_value = _resp(200, TOKEN_BODY)
    events = []
    provider.subscribe(events.append)

    session = provider.verify_otp("fighter@example.com", "123456")

    assert session.user_id == "user-1"
    assert provider.get_current_session() == session
    assert provider.current_access_token() == "eyJ.access.token"
    assert [e.type for e in events] == ["SIGNED_IN"]
    assert mock_post.call_args.kwargs["json"]["type"] == "email"


@patch("requests.post")
def test_verify_otp_failure_raises_without_event(mock_post, provider):
    mock_post.return_value = _resp(403, {"code": 403, "error_code": "otp_expired", "msg": "Token has expired or is invalid"})
    events = []
    provider.subscribe(events.append)

    with pytest.raises(AuthProviderError) as excinfo:
        provider.verify_otp("fighter@example.com", "000000")

    assert excinfo.value.code == "otp_expired"
    assert excinfo.value.status == 403
    assert events == []
    assert provider.get_current_session() is None


@patch("requests.post")
def test_network_error_is_wrapped(mock_post, provider):
    mock_post.side_effect = requests.ConnectionError("Connection Refused")

    with pytest.raises(AuthProviderError) as excinfo:
        provider.request_otp("fighter@example.com")

    assert excinfo.value.status is None


@patch("requests.post")
def test_unsubscribe_stops_notifications(mock_post, provider):
    mock_post.return_value = _resp(200, TOKEN_BODY)
    events = []
    unsubscribe = provider.subscribe(events.append)
    unsubscribe()

    provider.verify_otp("fighter@example.com", "123456")

    assert events == []


@patch("requests.post")
def test_sign_out_clears_session_even_when_remote_fails(mock_post, provider):
    provider.restore_session(Session("a", "r", AuthUser("user-1", "f@example.com")))
    mock_post.side_effect = requests.Timeout("slow")
    events = []
    provider.subscribe(events.append)

    provider.sign_out()

    assert provider.get_current_session() is None
    assert [e.type for e in events] == ["SIGNED_OUT"]


@patch("requests.post")
def test_expired_session_is_refreshed(mock_post, provider):
    provider.restore_session(Session("old", "refresh-0", AuthUser("user-1", "f@example.com"), expires_at=1))
    mock_post.return_value = _resp(200, TOKEN_BODY)
    events = []
    provider.subscribe(events.append)

    session = provider.get_current_session()

    assert session.access_token == "eyJ.access.token"
    assert mock_post.call_args.kwargs["params"] == {"grant_type": "refresh_token"}
    assert mock_post.call_args.kwargs["json"] == {"refresh_token": "refresh-0"}
    assert [e.type for e in events] == ["TOKEN_REFRESHED"]


@patch("requests.post")
def test_failed_refresh_signs_out_locally(mock_post, provider):
    provider.restore_session(Session("old", "refresh-0", AuthUser("user-1", "f@example.com"), expires_at=1))
    mock_post.return_value = _resp(400, {"error": "invalid_grant", "error_description": "Invalid Refresh Token"})
    events = []
    provider.subscribe(events.append)

    assert provider.get_current_session() is None
    assert [e.type for e in events] == ["SIGNED_OUT"]


@patch("requests.post")
def test_exchange_code_for_session(mock_post, provider):
    mock_post.return_value = _resp(200, TOKEN_BODY)
    events = []
    provider.subscribe(events.append)

    session = provider.exchange_code_for_session("auth-code-1", "verifier-1")

    args, kwargs = mock_post.call_args
    assert args[0] == "https://demo.supabase.co/auth/v1/token"
    assert kwargs["params"] == {"grant_type": "pkce"}
    assert kwargs["json"] == {"auth_code": "auth-code-1", "code_verifier": "verifier-1"}
    assert session.user.email == "fighter@example.com"
    assert [e.type for e in events] == ["SIGNED_IN"]
    assert provider.get_current_session() == session


@patch("requests.post")
def test_exchange_code_rejected(mock_post, provider):
    mock_post.return_value = _resp(404, {"error_code": "flow_state_not_found", "msg": "invalid flow state, no valid flow state found"})
    events = []
    provider.subscribe(events.append)

    with pytest.raises(AuthProviderError):
        provider.exchange_code_for_session("auth-code-1", "wrong-verifier")

    assert events == []
    assert provider.get_current_session() is None


def test_unsupported_social_provider(provider):
    with pytest.raises(AuthProviderError):
        provider.social_authorize_url("myspace")


def test_social_authorize_url(provider):
    url = provider.social_authorize_url("apple", redirect_to="https://app.example.com/callback")
    assert url.startswith("https://demo.supabase.co/auth/v1/authorize?")
    assert "provider=apple" in url
    assert "redirect_to=https%3A%2F%2Fapp.example.com%2Fcallback" in url


def test_social_authorize_url_with_code_challenge(provider):
    url = provider.social_authorize_url("google", code_challenge="challenge-1")
    assert "code_challenge=challenge-1" in url
    assert "code_challenge_method=s256" in url
