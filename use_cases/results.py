"""Result contract returned by use-case operations to the views."""

from dataclasses import dataclass
from typing import Any, Literal, Optional

ErrorKind = Literal["NOT_FOUND", "VALIDATION", "REMOTE", "DUPLICATE"]

GENERIC_REMOTE_MESSAGE = "Something went wrong. Please try again."


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a user action. Retries are manual: the view re-invokes the action."""

    ok: bool
    message: str = ""
    error_kind: Optional[ErrorKind] = None
    value: Any = None

    @classmethod
    def success(cls, value: Any = None, message: str = "") -> "OperationResult":
        return cls(ok=True, message=message, value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "OperationResult":
        return cls(ok=False, message=message or GENERIC_REMOTE_MESSAGE, error_kind=kind)
