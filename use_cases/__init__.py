"""Application layer contracts for orchestrating high-level flows."""

from .bootstrap import AppServices, BackendSettings, StartupResult, StartupStatus, run_startup
from .navigation_gate import AuthRoute, Flow, resolve_flow, select_auth_route, select_flow
from .onboarding_flow import OnboardingStep, OnboardingWizard
from .results import ErrorKind, OperationResult
from .session_models import AuthEvent, AuthUser, Role, Session, SessionSnapshot
from .session_store import SessionStore

__all__ = [
    "AppServices",
    "AuthEvent",
    "AuthRoute",
    "AuthUser",
    "BackendSettings",
    "ErrorKind",
    "Flow",
    "OnboardingStep",
    "OnboardingWizard",
    "OperationResult",
    "Role",
    "Session",
    "SessionSnapshot",
    "SessionStore",
    "StartupResult",
    "StartupStatus",
    "resolve_flow",
    "run_startup",
    "select_auth_route",
    "select_flow",
]
