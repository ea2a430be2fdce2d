import pytest
import streamlit as st

import auth
from infrastructure.backend.errors import AuthProviderError, DuplicateKeyError
from use_cases.session_models import AuthEvent, AuthUser, Session


def make_session(user_id="user-1", email="fighter@example.com"):
    return Session(
        access_token=f"access-{user_id}",
        refresh_token=f"refresh-{user_id}",
        user=AuthUser(id=user_id, email=email),
        expires_at=None,
    )


class FakeAuthProvider:
    """In-memory stand-in for SupabaseAuthProvider with the same change channel."""

    def __init__(self, session=None):
        self.session = session
        self.listeners = []
        self.verify_error = None
        self.session_error = None
        self.exchange_error = None
        self.exchanges = []

    def subscribe(self, callback):
        self.listeners.append(callback)

        def unsubscribe():
            if callback in self.listeners:
                self.listeners.remove(callback)

        return unsubscribe

    def emit(self, event):
        for listener in list(self.listeners):
            listener(event)

    def get_current_session(self):
        if self.session_error is not None:
            raise self.session_error
        return self.session

    def current_access_token(self):
        return self.session.access_token if self.session else None

    def request_otp(self, email):
        pass

    def resend_otp(self, email):
        pass

    def verify_otp(self, email, code):
        if self.verify_error is not None:
            raise self.verify_error
        self.session = make_session(email=email)
        self.emit(AuthEvent(type="SIGNED_IN", session=self.session))
        return self.session

    def exchange_code_for_session(self, auth_code, code_verifier):
        self.exchanges.append((auth_code, code_verifier))
        if self.exchange_error is not None:
            raise self.exchange_error
        self.session = make_session()
        self.emit(AuthEvent(type="SIGNED_IN", session=self.session))
        return self.session

    def sign_out(self):
        self.session = None
        self.emit(AuthEvent(type="SIGNED_OUT", session=None))


class FakeTableStore:
    """Dict-backed table store enforcing the unique keys the real schema declares."""

    UNIQUE_KEYS = {
        "profiles": ("id",),
        "fighter_sports": ("user_id", "sport"),
        "contact_information": ("user_id",),
        "managed_fighters": ("organizer_id", "fighter_id"),
    }

    def __init__(self):
        self.tables = {}

    def _rows(self, table):
        return self.tables.setdefault(table, [])

    @staticmethod
    def _matches(row, filters):
        return all(row.get(k) == v for k, v in (filters or {}).items())

    def get_record(self, table, filters, columns="*"):
        rows = [r for r in self._rows(table) if self._matches(r, filters)]
        return dict(rows[0]) if rows else None

    def select(self, table, filters=None, columns="*"):
        return [dict(r) for r in self._rows(table) if self._matches(r, filters)]

    def insert(self, table, record):
        records = record if isinstance(record, list) else [record]
        key = self.UNIQUE_KEYS.get(table)
        for rec in records:
            if key and any(all(r.get(k) == rec.get(k) for k in key) for r in self._rows(table)):
                raise DuplicateKeyError("duplicate key value violates unique constraint", code="23505", status=409)
            self._rows(table).append(dict(rec))
        return [dict(r) for r in records]

    def upsert(self, table, record, on_conflict=None):
        records = record if isinstance(record, list) else [record]
        key = tuple(on_conflict.split(",")) if on_conflict else self.UNIQUE_KEYS.get(table, ())
        for rec in records:
            existing = [r for r in self._rows(table) if key and all(r.get(k) == rec.get(k) for k in key)]
            if existing:
                existing[0].update(rec)
            else:
                self._rows(table).append(dict(rec))
        return [dict(r) for r in records]

    def update(self, table, filters, patch):
        updated = []
        for row in self._rows(table):
            if self._matches(row, filters):
                row.update(patch)
                updated.append(dict(row))
        return updated

    def delete(self, table, filters):
        self.tables[table] = [r for r in self._rows(table) if not self._matches(r, filters)]


@pytest.fixture
def auth_provider():
    return FakeAuthProvider()


@pytest.fixture
def table_store():
    return FakeTableStore()


@pytest.fixture
def otp_rejected():
    return AuthProviderError("Token has expired or is invalid", code="otp_expired", status=403)


@pytest.fixture(autouse=True)
def clean_session_state():
    st.session_state.clear()
    auth.get_pending_oauth_flows().clear()
    yield
    st.session_state.clear()
