"""
Session state holder.

One SessionStore is built per client session at startup and handed to the
gate and the onboarding wizard. It mirrors the auth provider's session and
the profile's onboarding flag, and is the only shared mutable state in the
app.

Every sync (initial load, auth event, manual refresh, optimistic flip) takes
a new generation number. A completion check only lands if its generation is
still the latest when it returns, so a slow response for an older session
can never overwrite a newer one.
"""

import logging
import threading
from dataclasses import replace
from typing import Callable, List, Optional

from infrastructure.backend.errors import BackendError
from use_cases.session_models import AuthEvent, Session, SessionSnapshot

log = logging.getLogger(__name__)

PROFILE_SYNC_ERROR = "We couldn't load your profile. Check your connection and try again."
SESSION_SYNC_ERROR = "We couldn't restore your session. Please sign in again."

Observer = Callable[[SessionSnapshot], None]


class SessionStore:
    def __init__(self, auth_provider, profiles):
        self._auth = auth_provider
        self._profiles = profiles
        self._lock = threading.Lock()
        self._state = SessionSnapshot()
        self._generation = 0
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._observers: List[Observer] = []

    # --- lifecycle ---

    def start(self) -> None:
        """Register the single auth-change listener. Calling twice is a no-op."""
        if self._unsubscribe is None:
            self._unsubscribe = self._auth.subscribe(self._on_auth_event)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._observers.clear()

    def initialize(self) -> SessionSnapshot:
        """Load the current session and onboarding flag. The gate waits for this."""
        generation = self._next_generation()
        try:
            session = self._auth.get_current_session()
        except BackendError as e:
            log.error(f"Error getting session: {e}")
            self._apply(generation, SessionSnapshot(initialized=True, sync_error=SESSION_SYNC_ERROR))
            return self.snapshot()
        self._sync(generation, session)
        return self.snapshot()

    def refresh(self) -> SessionSnapshot:
        """User-initiated re-sync, e.g. the retry button after a failed profile load."""
        return self.initialize()

    # --- reads ---

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return self._state

    @property
    def is_authenticated(self) -> bool:
        return self.snapshot().is_authenticated

    @property
    def has_completed_onboarding(self) -> bool:
        return self.snapshot().has_completed_onboarding

    @property
    def current_user_id(self) -> Optional[str]:
        user = self.snapshot().user
        return user.id if user else None

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe():
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    # --- writes ---

    def mark_onboarding_complete(self) -> SessionSnapshot:
        """Optimistic flip after the remote write succeeded; no re-fetch."""
        with self._lock:
            if not self._state.is_authenticated:
                log.warning("mark_onboarding_complete called without an authenticated session")
                return self._state
            self._generation += 1
            self._state = replace(
                self._state,
                has_completed_onboarding=True,
                sync_error=None,
                generation=self._generation,
            )
            snapshot = self._state
        self._notify(snapshot)
        return snapshot

    # --- internals ---

    def _next_generation(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def _on_auth_event(self, event: AuthEvent) -> None:
        generation = self._next_generation()
        log.info(f"Session event {event.type} (generation {generation})")
        self._sync(generation, event.session)

    def _sync(self, generation: int, session: Optional[Session]) -> None:
        if session is None:
            self._apply(generation, SessionSnapshot(initialized=True, generation=generation))
            return

        # Completion never reverts, so only the same user's confirmed flag carries over.
        current = self.snapshot()
        same_user = current.user is not None and current.user.id == session.user_id
        known_completed = same_user and current.has_completed_onboarding
        self._apply(generation, SessionSnapshot(
            is_authenticated=True,
            user=session.user,
            session=session,
            has_completed_onboarding=known_completed,
            initialized=current.initialized,
            generation=generation,
        ))

        sync_error = None
        try:
            completed = self._profiles.is_onboarding_completed(session.user_id)
        except BackendError as e:
            log.error(f"Error checking onboarding status for {session.user_id}: {e}")
            completed = known_completed
            sync_error = PROFILE_SYNC_ERROR

        self._apply(generation, SessionSnapshot(
            is_authenticated=True,
            user=session.user,
            session=session,
            has_completed_onboarding=completed,
            initialized=True,
            sync_error=sync_error,
            generation=generation,
        ))

    def _apply(self, generation: int, snapshot: SessionSnapshot) -> bool:
        with self._lock:
            if generation != self._generation:
                log.info(f"Discarding stale session sync (generation {generation}, current {self._generation})")
                return False
            self._state = replace(snapshot, generation=generation)
            applied = self._state
        self._notify(applied)
        return True

    def _notify(self, snapshot: SessionSnapshot) -> None:
        for observer in list(self._observers):
            observer(snapshot)
