import logging
import threading
from typing import Callable, Dict, List, Optional
from urllib.parse import urlencode

import requests

from infrastructure.backend.errors import AuthProviderError
from use_cases.session_models import AuthEvent, AuthEventType, Session

log = logging.getLogger(__name__)

SOCIAL_PROVIDERS = ("google", "apple", "facebook")

AuthListener = Callable[[AuthEvent], None]


class SupabaseAuthProvider:
    """
    GoTrue REST client holding the current session in memory.
    Listeners registered with subscribe() are called synchronously, in
    registration order, on every session change.
    """

    def __init__(self, base_url: str, anon_key: str, timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.timeout = timeout
        self._session: Optional[Session] = None
        self._listeners: List[AuthListener] = []
        self._lock = threading.Lock()

    # --- change channel ---

    def subscribe(self, callback: AuthListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    def _emit(self, event_type: AuthEventType, session: Optional[Session]):
        log.info(f"Auth state changed: {event_type} {session.user.email if session else ''}")
        with self._lock:
            listeners = list(self._listeners)
        event = AuthEvent(type=event_type, session=session)
        for listener in listeners:
            listener(event)

    def _set_session(self, event_type: AuthEventType, session: Optional[Session]):
        self._session = session
        self._emit(event_type, session)

    # --- http ---

    def _headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        return {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {access_token or self.anon_key}",
            "Content-Type": "application/json",
        }

    def _post(self, path: str, payload: Optional[dict] = None, params: Optional[dict] = None,
              access_token: Optional[str] = None):
        try:
            resp = requests.post(
                f"{self.base_url}/auth/v1/{path}",
                headers=self._headers(access_token),
                params=params,
                json=payload or {},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            log.error(f"❌ Network error calling auth/{path}: {e}")
            raise AuthProviderError(f"Network error: {e}") from e

        if resp.status_code in (200, 201, 204):
            return resp.json() if resp.content else {}

        try:
            body = resp.json()
        except ValueError:
            body = {}
        message = (
            body.get("msg")
            or body.get("error_description")
            or body.get("message")
            or resp.text
            or f"HTTP {resp.status_code}"
        )
        code = body.get("error_code") or body.get("error")
        log.error(f"❌ auth/{path} failed: {resp.status_code} {message}")
        raise AuthProviderError(message, code=code, status=resp.status_code)

    # --- operations ---

    def request_otp(self, email: str) -> None:
        self._post("otp", {"email": email, "create_user": True})

    def resend_otp(self, email: str) -> None:
        self._post("resend", {"email": email, "type": "signup"})

    def verify_otp(self, email: str, code: str) -> Session:
        body = self._post("verify", {"email": email, "token": code, "type": "email"})
        if not body.get("access_token"):
            raise AuthProviderError("Token has expired or is invalid", code="otp_expired")
        session = Session.from_payload(body)
        self._set_session("SIGNED_IN", session)
        return session

    def social_authorize_url(self, provider: str, redirect_to: Optional[str] = None,
                             scopes: Optional[str] = None, code_challenge: Optional[str] = None) -> str:
        """
        Browser URL that starts the OAuth flow. With a PKCE `code_challenge`
        the provider redirects back to `redirect_to` with `?code=...`.
        """
        if provider not in SOCIAL_PROVIDERS:
            raise AuthProviderError(f"Unsupported provider: {provider}", code="unsupported_provider")
        params = {"provider": provider}
        if redirect_to:
            params["redirect_to"] = redirect_to
        if scopes:
            params["scopes"] = scopes
        if code_challenge:
            params["code_challenge"] = code_challenge
            params["code_challenge_method"] = "s256"
        return f"{self.base_url}/auth/v1/authorize?{urlencode(params)}"

    def exchange_code_for_session(self, auth_code: str, code_verifier: str) -> Session:
        body = self._post(
            "token",
            {"auth_code": auth_code, "code_verifier": code_verifier},
            params={"grant_type": "pkce"},
        )
        if not body.get("access_token"):
            raise AuthProviderError("Sign-in link is invalid or has expired", code="flow_state_not_found")
        session = Session.from_payload(body)
        self._set_session("SIGNED_IN", session)
        return session

    def refresh_session(self) -> Optional[Session]:
        current = self._session
        if current is None or not current.refresh_token:
            return None
        body = self._post("token", {"refresh_token": current.refresh_token}, params={"grant_type": "refresh_token"})
        session = Session.from_payload(body)
        self._set_session("TOKEN_REFRESHED", session)
        return session

    def get_current_session(self) -> Optional[Session]:
        """Return the live session, refreshing it once if it has expired."""
        session = self._session
        if session is None or not session.is_expired():
            return session
        try:
            return self.refresh_session()
        except AuthProviderError as e:
            log.warning(f"Session refresh failed, signing out locally: {e}")
            self._set_session("SIGNED_OUT", None)
            return None

    def current_access_token(self) -> Optional[str]:
        return self._session.access_token if self._session else None

    def restore_session(self, session: Session) -> None:
        """Adopt a session persisted by the host (e.g. across a page reload) without a network call."""
        self._set_session("INITIAL_SESSION", session)

    def sign_out(self) -> None:
        session = self._session
        try:
            if session is not None:
                self._post("logout", params={"scope": "local"}, access_token=session.access_token)
        except AuthProviderError as e:
            log.warning(f"Remote sign-out failed, clearing local session anyway: {e}")
        finally:
            self._set_session("SIGNED_OUT", None)
