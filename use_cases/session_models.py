"""Session DTOs shared across application layers."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional

Role = Literal["fan", "fighter", "organizer"]
ROLES: tuple = ("fan", "fighter", "organizer")

AuthEventType = Literal["INITIAL_SESSION", "SIGNED_IN", "SIGNED_OUT", "TOKEN_REFRESHED", "USER_UPDATED"]


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str


@dataclass(frozen=True)
class Session:
    access_token: str
    refresh_token: str
    user: AuthUser
    expires_at: Optional[int] = None

    @property
    def user_id(self) -> str:
        return self.user.id

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        reference = now or datetime.now(timezone.utc)
        return reference.timestamp() >= self.expires_at

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Session":
        """Build a session from a GoTrue token/verify response body."""
        user = payload.get("user") or {}
        expires_at = payload.get("expires_at")
        if expires_at is None and payload.get("expires_in") is not None:
            expires_at = int(datetime.now(timezone.utc).timestamp()) + int(payload["expires_in"])
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token", ""),
            user=AuthUser(id=user["id"], email=user.get("email") or ""),
            expires_at=expires_at,
        )


@dataclass(frozen=True)
class AuthEvent:
    type: AuthEventType
    session: Optional[Session] = None


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of the session store handed to the gate and the views."""

    is_authenticated: bool = False
    user: Optional[AuthUser] = None
    session: Optional[Session] = None
    has_completed_onboarding: bool = False
    initialized: bool = False
    sync_error: Optional[str] = None
    generation: int = 0


def is_valid_role(value: str) -> bool:
    return value in ROLES
