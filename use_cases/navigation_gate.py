"""Top-level navigation decision: which tree the user sees."""

from typing import Literal, Optional

from use_cases.session_models import SessionSnapshot

Flow = Literal["AUTH", "APP"]
AuthRoute = Literal["LOADING", "WELCOME", "VERIFY", "ONBOARDING"]


def select_flow(is_authenticated: bool, has_completed_onboarding: bool) -> Flow:
    """APP only for a signed-in user whose profile finished onboarding; AUTH otherwise."""
    if is_authenticated and has_completed_onboarding:
        return "APP"
    return "AUTH"


def resolve_flow(snapshot: SessionSnapshot) -> Flow:
    return select_flow(snapshot.is_authenticated, snapshot.has_completed_onboarding)


def select_auth_route(snapshot: SessionSnapshot, pending_email: Optional[str] = None) -> AuthRoute:
    """Pick the screen inside the auth tree."""
    if not snapshot.initialized:
        return "LOADING"
    if snapshot.is_authenticated:
        return "ONBOARDING"
    if pending_email:
        return "VERIFY"
    return "WELCOME"
