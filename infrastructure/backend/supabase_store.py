import logging
from typing import Any, Callable, Dict, List, Optional, Union

import requests

from infrastructure.backend.errors import (
    DUPLICATE_KEY_CODE,
    NO_ROWS_CODE,
    BackendError,
    DuplicateKeyError,
)

log = logging.getLogger(__name__)

Record = Dict[str, Any]
Filters = Dict[str, Any]


def _encode_filters(filters: Optional[Filters]) -> Dict[str, str]:
    params = {}
    for column, value in (filters or {}).items():
        if value is None:
            params[column] = "is.null"
        elif isinstance(value, bool):
            params[column] = f"eq.{str(value).lower()}"
        else:
            params[column] = f"eq.{value}"
    return params


class SupabaseTableStore:
    """Thin PostgREST client. Every call is a single HTTP request, nothing is cached."""

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        access_token_getter: Optional[Callable[[], Optional[str]]] = None,
        timeout: float = 10,
    ):
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.access_token_getter = access_token_getter
        self.timeout = timeout

    def _headers(self, prefer: Optional[str] = None, single: bool = False) -> Dict[str, str]:
        token = self.access_token_getter() if self.access_token_getter else None
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {token or self.anon_key}",
            "Content-Type": "application/json",
        }
        if single:
            headers["Accept"] = "application/vnd.pgrst.object+json"
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    def _raise_for_error(self, resp, table: str, action: str):
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        code = body.get("code")
        message = body.get("message") or resp.text or f"HTTP {resp.status_code}"
        if code == DUPLICATE_KEY_CODE:
            log.info(f"Duplicate key on {action} {table}: {message}")
            raise DuplicateKeyError(message, code=code, status=resp.status_code)
        log.error(f"❌ {action} {table} failed: {resp.status_code} {message}")
        raise BackendError(message, code=code, status=resp.status_code)

    def _send(self, method: str, table: str, action: str, **kwargs):
        try:
            return requests.request(method, self._url(table), timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            log.error(f"❌ Network error on {action} {table}: {e}")
            raise BackendError(f"Network error: {e}") from e

    def get_record(self, table: str, filters: Filters, columns: str = "*") -> Optional[Record]:
        """Return the single matching row, or None when nothing matches."""
        params = _encode_filters(filters)
        params["select"] = columns
        resp = self._send("GET", table, "select", headers=self._headers(single=True), params=params)
        if resp.status_code == 200:
            return resp.json()
        if resp.status_code == 406:
            try:
                code = resp.json().get("code")
            except ValueError:
                code = None
            if code == NO_ROWS_CODE:
                return None
        self._raise_for_error(resp, table, "select")

    def select(self, table: str, filters: Optional[Filters] = None, columns: str = "*") -> List[Record]:
        params = _encode_filters(filters)
        params["select"] = columns
        resp = self._send("GET", table, "select", headers=self._headers(), params=params)
        if resp.status_code == 200:
            return resp.json()
        self._raise_for_error(resp, table, "select")

    def insert(self, table: str, record: Union[Record, List[Record]]) -> List[Record]:
        resp = self._send(
            "POST", table, "insert",
            headers=self._headers(prefer="return=representation"),
            json=record,
        )
        if resp.status_code in (200, 201):
            return resp.json()
        self._raise_for_error(resp, table, "insert")

    def upsert(self, table: str, record: Union[Record, List[Record]], on_conflict: Optional[str] = None) -> List[Record]:
        params = {"on_conflict": on_conflict} if on_conflict else None
        resp = self._send(
            "POST", table, "upsert",
            headers=self._headers(prefer="resolution=merge-duplicates,return=representation"),
            params=params,
            json=record,
        )
        if resp.status_code in (200, 201):
            return resp.json()
        self._raise_for_error(resp, table, "upsert")

    def update(self, table: str, filters: Filters, patch: Record) -> List[Record]:
        if not filters:
            raise ValueError("update requires at least one filter")
        resp = self._send(
            "PATCH", table, "update",
            headers=self._headers(prefer="return=representation"),
            params=_encode_filters(filters),
            json=patch,
        )
        if resp.status_code == 200:
            return resp.json()
        self._raise_for_error(resp, table, "update")

    def delete(self, table: str, filters: Filters) -> None:
        if not filters:
            raise ValueError("delete requires at least one filter")
        resp = self._send("DELETE", table, "delete", headers=self._headers(), params=_encode_filters(filters))
        if resp.status_code in (200, 204):
            return None
        self._raise_for_error(resp, table, "delete")
