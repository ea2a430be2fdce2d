import base64
import hashlib
import logging
import os
import re
import secrets
import time
from urllib.parse import urlencode

import streamlit as st
from streamlit.errors import StreamlitAPIException

from infrastructure.backend.errors import AuthProviderError, BackendError
from use_cases.results import OperationResult

log = logging.getLogger(__name__)

OTP_LENGTH = 6
INVALID_CODE_MESSAGE = "Invalid or expired code"
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred. Please try again."

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

AUTH_ERROR_MESSAGES = {
    "Invalid login credentials": "Invalid email or password. Please try again.",
    "Email not confirmed": "Please verify your email before signing in.",
    "User already registered": "An account with this email already exists. Please sign in.",
    "Email rate limit exceeded": "Too many attempts. Please wait a moment and try again.",
    "Invalid OTP": INVALID_CODE_MESSAGE,
    "OTP expired": INVALID_CODE_MESSAGE,
    "Token has expired or is invalid": INVALID_CODE_MESSAGE,
}


def get_secret(key, default=None):
    try:
        value = st.secrets.get(key)
    except (FileNotFoundError, StreamlitAPIException):
        value = None
    return value or os.getenv(key) or default


def get_auth_error_message(error: BackendError) -> str:
    message = error.message or ""
    if message in AUTH_ERROR_MESSAGES:
        return AUTH_ERROR_MESSAGES[message]
    if error.code == "otp_expired":
        return INVALID_CODE_MESSAGE
    if "For security purposes, you can only request this after" in message:
        return "Try again later"
    if error.status is None:
        return "Network error. Check your connection and try again."
    return message or UNEXPECTED_ERROR_MESSAGE


def normalize_email(email) -> str:
    return (email or "").strip().lower()


def request_code(provider, email) -> OperationResult:
    """Send a one-time code. Works the same for new and returning users."""
    email = normalize_email(email)
    if not EMAIL_RE.match(email):
        return OperationResult.failure("VALIDATION", "Please enter a valid email address.")
    try:
        provider.request_otp(email)
    except AuthProviderError as e:
        log.error(f"Error sending OTP: {e}")
        return OperationResult.failure("REMOTE", get_auth_error_message(e))
    return OperationResult.success(email, message=f"We sent a {OTP_LENGTH}-digit code to {email}.")


def resend_code(provider, email) -> OperationResult:
    email = normalize_email(email)
    try:
        provider.resend_otp(email)
    except AuthProviderError as e:
        log.error(f"Error resending OTP: {e}")
        return OperationResult.failure("REMOTE", "Failed to resend code. Please try again.")
    return OperationResult.success(email, message="A new code is on its way.")


def _ensure_profile(profiles, session) -> None:
    # A missing profile must not block sign-in: onboarding upserts it later.
    try:
        profiles.ensure_profile(session.user_id, session.user.email)
    except BackendError as e:
        log.error(f"Error creating profile for {session.user_id}: {e}")


def verify_code(provider, profiles, email, code) -> OperationResult:
    """
    Exchange the emailed code for a session. On success the provider emits
    SIGNED_IN, which is what moves the gate; a failure leaves the gate alone.
    """
    email = normalize_email(email)
    code = (code or "").strip()
    if len(code) != OTP_LENGTH or not code.isdigit():
        return OperationResult.failure("VALIDATION", f"Enter the {OTP_LENGTH}-digit code from your email.")
    try:
        session = provider.verify_otp(email, code)
    except AuthProviderError as e:
        log.error(f"Error verifying OTP: {e}")
        if e.status is None:
            return OperationResult.failure("REMOTE", get_auth_error_message(e))
        return OperationResult.failure("REMOTE", INVALID_CODE_MESSAGE)
    _ensure_profile(profiles, session)
    return OperationResult.success(session)


OAUTH_FLOW_TTL = 600
SOCIAL_SIGN_IN_EXPIRED_MESSAGE = "This sign-in link has expired. Please try again."


@st.cache_resource
def get_pending_oauth_flows():
    # flow id -> (code_verifier, created_at); shared across browser sessions,
    # since the provider redirect lands in a fresh one
    return {}


def _encode_b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("utf-8").rstrip("=")


def _code_challenge(verifier: str) -> str:
    return _encode_b64(hashlib.sha256(verifier.encode("utf-8")).digest())


def _with_query(url: str, **params) -> str:
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode(params)}"


def start_social_sign_in(provider, name, redirect_url) -> OperationResult:
    """
    Begin a PKCE OAuth sign-in. The verifier stays on the server under a
    one-time flow id that travels in the redirect URL; the browser only sees
    its SHA-256 challenge.
    """
    if not redirect_url:
        return OperationResult.failure("VALIDATION", "Social sign-in is not configured.")
    flows = get_pending_oauth_flows()
    now = time.time()
    for flow_id, (_, created_at) in list(flows.items()):
        if now - created_at > OAUTH_FLOW_TTL:
            flows.pop(flow_id, None)

    verifier = secrets.token_urlsafe(64)
    flow_id = secrets.token_urlsafe(16)
    try:
        url = provider.social_authorize_url(
            name,
            redirect_to=_with_query(redirect_url, flow=flow_id),
            code_challenge=_code_challenge(verifier),
        )
    except AuthProviderError as e:
        log.error(f"{name} auth error: {e}")
        return OperationResult.failure("VALIDATION", get_auth_error_message(e))
    flows[flow_id] = (verifier, now)
    return OperationResult.success(url)


def complete_social_sign_in(provider, profiles, auth_code, flow_id) -> OperationResult:
    """Exchange the code from the provider redirect for a session (emits SIGNED_IN)."""
    entry = get_pending_oauth_flows().pop(flow_id or "", None)
    if entry is None or time.time() - entry[1] > OAUTH_FLOW_TTL:
        log.warning("OAuth callback with unknown or expired flow id")
        return OperationResult.failure("VALIDATION", SOCIAL_SIGN_IN_EXPIRED_MESSAGE)
    try:
        session = provider.exchange_code_for_session(auth_code, entry[0])
    except AuthProviderError as e:
        log.error(f"OAuth code exchange failed: {e}")
        if e.status is None:
            return OperationResult.failure("REMOTE", get_auth_error_message(e))
        return OperationResult.failure("REMOTE", "Social sign-in failed. Please try again.")
    _ensure_profile(profiles, session)
    return OperationResult.success(session)


def sign_out(provider) -> OperationResult:
    provider.sign_out()
    return OperationResult.success()
