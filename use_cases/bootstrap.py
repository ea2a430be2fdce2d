"""Startup orchestration: settings, backend adapters and the session store."""

from dataclasses import dataclass
from typing import Literal, Optional, Tuple

import auth
from infrastructure.backend.supabase_auth import SupabaseAuthProvider
from infrastructure.backend.supabase_store import SupabaseTableStore
from infrastructure.repositories.profile_repository import SupabaseProfileRepository
from use_cases.session_store import SessionStore

StartupStatus = Literal["CONTINUE", "STOP"]

DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class BackendSettings:
    url: str
    anon_key: str
    timeout: float = DEFAULT_TIMEOUT
    redirect_url: Optional[str] = None


@dataclass(frozen=True)
class AppServices:
    """Everything a client session needs, built once and passed explicitly."""

    settings: BackendSettings
    auth_provider: SupabaseAuthProvider
    profiles: SupabaseProfileRepository
    session_store: SessionStore


@dataclass(frozen=True)
class StartupResult:
    """Result contract for startup/bootstrap orchestration."""

    status: StartupStatus
    planned_steps: Tuple[str, ...]
    services: Optional[AppServices] = None
    reason: str = ""


def load_backend_settings() -> Optional[BackendSettings]:
    url = auth.get_secret("SUPABASE_URL")
    anon_key = auth.get_secret("SUPABASE_ANON_KEY")
    if not url or not anon_key:
        return None
    try:
        timeout = float(auth.get_secret("SUPABASE_TIMEOUT", DEFAULT_TIMEOUT))
    except ValueError:
        timeout = DEFAULT_TIMEOUT
    return BackendSettings(
        url=url,
        anon_key=anon_key,
        timeout=timeout,
        redirect_url=auth.get_secret("AUTH_REDIRECT_URL"),
    )


def build_services(settings: BackendSettings) -> AppServices:
    auth_provider = SupabaseAuthProvider(settings.url, settings.anon_key, timeout=settings.timeout)
    store = SupabaseTableStore(
        settings.url,
        settings.anon_key,
        access_token_getter=auth_provider.current_access_token,
        timeout=settings.timeout,
    )
    profiles = SupabaseProfileRepository(store)
    session_store = SessionStore(auth_provider, profiles)
    return AppServices(settings, auth_provider, profiles, session_store)


def run_startup(settings: Optional[BackendSettings] = None) -> StartupResult:
    """Build the adapters, register the auth listener and load the initial session."""
    executed_steps = []

    settings = settings or load_backend_settings()
    if settings is None:
        return StartupResult(status="STOP", planned_steps=(), reason="backend_not_configured")
    executed_steps.append("load_backend_settings")

    services = build_services(settings)
    executed_steps.append("build_services")

    # Listener first, so an event fired while loading is not missed.
    services.session_store.start()
    executed_steps.append("subscribe_session_events")

    services.session_store.initialize()
    executed_steps.append("initialize_session")

    return StartupResult(status="CONTINUE", planned_steps=tuple(executed_steps), services=services)
