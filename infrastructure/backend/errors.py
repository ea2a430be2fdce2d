from typing import Optional

# PostgREST: single-object request matched zero rows
NO_ROWS_CODE = "PGRST116"
# Postgres unique_violation
DUPLICATE_KEY_CODE = "23505"


class BackendError(Exception):
    def __init__(self, message: str, code: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status


class DuplicateKeyError(BackendError):
    pass


class AuthProviderError(BackendError):
    pass
