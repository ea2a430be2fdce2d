import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from infrastructure.backend.errors import BackendError, DuplicateKeyError
from infrastructure.backend.supabase_store import SupabaseTableStore

log = logging.getLogger(__name__)

PROFILES = "profiles"
FAN_PROFILES = "fan_profiles"
FIGHTER_PROFILES = "fighter_profiles"
ORGANIZER_PROFILES = "organizer_profiles"
SPORTS_OF_INTEREST = "fighter_sports"
SPORTS_RECORDS = "sports_records"
FIGHTER_MATCHES = "fighter_matches"
CONTACT_INFO = "contact_information"
MANAGED_FIGHTERS = "managed_fighters"
SOCIAL_LINKS = "social_links"

MAX_PARALLEL_WRITES = 4


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class BatchWriteError(BackendError):
    """One or more writes of a batch failed. `errors` keeps every individual failure."""

    def __init__(self, message: str, errors: List[BackendError]):
        super().__init__(message)
        self.errors = errors


class SupabaseProfileRepository:
    def __init__(self, store: SupabaseTableStore):
        self.store = store

    # --- profiles ---

    def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self.store.get_record(PROFILES, {"id": user_id})

    def get_profile_with_records(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self.store.get_record(PROFILES, {"id": user_id}, columns="*,sports_records(*)")

    def is_onboarding_completed(self, user_id: str) -> bool:
        row = self.store.get_record(PROFILES, {"id": user_id}, columns="onboarding_completed")
        if row is None:
            return False
        return bool(row.get("onboarding_completed"))

    def ensure_profile(self, user_id: str, email: str) -> Dict[str, Any]:
        """Create the first-login profile row if none exists yet."""
        existing = self.get_profile(user_id)
        if existing is not None:
            return existing
        record = {"id": user_id, "email": email, "role": "fan", "onboarding_completed": False}
        try:
            rows = self.store.insert(PROFILES, record)
        except DuplicateKeyError:
            # created concurrently by a database trigger
            return self.get_profile(user_id) or record
        log.info(f"Created profile for user {user_id}")
        return rows[0] if rows else record

    def upsert_basic_profile(self, user_id: str, record: Dict[str, Any]) -> None:
        self.store.upsert(PROFILES, {"id": user_id, **record, "updated_at": _now_iso()}, on_conflict="id")

    def set_role(self, user_id: str, role: str) -> None:
        self.store.update(PROFILES, {"id": user_id}, {"role": role, "updated_at": _now_iso()})

    def complete_onboarding(self, user_id: str) -> None:
        rows = self.store.update(PROFILES, {"id": user_id}, {"onboarding_completed": True, "updated_at": _now_iso()})
        if not rows:
            raise BackendError(f"Profile with ID {user_id} not found. Please complete your profile first.")

    # --- role specific ---

    def save_fan_profile(self, user_id: str, record: Dict[str, Any]) -> None:
        self.store.upsert(FAN_PROFILES, {"user_id": user_id, **record}, on_conflict="user_id")

    def save_fighter_profile(self, user_id: str, record: Dict[str, Any]) -> None:
        self.store.upsert(FIGHTER_PROFILES, {"user_id": user_id, **record}, on_conflict="user_id")

    def save_organizer_profile(self, user_id: str, record: Dict[str, Any]) -> None:
        self.store.upsert(ORGANIZER_PROFILES, {"user_id": user_id, **record}, on_conflict="user_id")

    # --- sports of interest ---

    def get_sports_of_interest(self, user_id: str) -> List[str]:
        return [row["sport"] for row in self.store.select(SPORTS_OF_INTEREST, {"user_id": user_id})]

    def add_sport_of_interest(self, user_id: str, sport: str) -> None:
        """Idempotent: adding a sport the profile already has is a no-op."""
        try:
            self.store.insert(SPORTS_OF_INTEREST, {"user_id": user_id, "sport": sport})
        except DuplicateKeyError:
            log.debug(f"Sport {sport!r} already registered for {user_id}")

    def remove_sport_of_interest(self, user_id: str, sport: str) -> None:
        self.store.delete(SPORTS_OF_INTEREST, {"user_id": user_id, "sport": sport})

    def replace_sports_of_interest(self, user_id: str, sports: Iterable[str]) -> None:
        self.store.delete(SPORTS_OF_INTEREST, {"user_id": user_id})
        for sport in sports:
            self.add_sport_of_interest(user_id, sport)

    # --- contact / social ---

    def replace_contact_info(self, user_id: str, record: Dict[str, Any]) -> None:
        """One contact per profile: drop whatever is there, then insert."""
        self.store.delete(CONTACT_INFO, {"user_id": user_id})
        try:
            self.store.insert(CONTACT_INFO, {"user_id": user_id, **record})
        except DuplicateKeyError:
            log.debug(f"Contact info for {user_id} already present")

    def add_social_links(self, user_id: str, links: Iterable[Dict[str, str]]) -> None:
        rows = [{"profile_id": user_id, **link} for link in links]
        if rows:
            self.store.insert(SOCIAL_LINKS, rows)

    # --- matches / records ---

    def add_matches(self, user_id: str, matches: List[Dict[str, Any]]) -> None:
        """
        Insert every match concurrently. Completion order is not defined;
        if any insert fails a single BatchWriteError is raised once all have finished.
        """
        if not matches:
            return

        def insert_one(match):
            self.store.insert(FIGHTER_MATCHES, {"user_id": user_id, **match})

        errors: List[BackendError] = []
        with ThreadPoolExecutor(max_workers=min(MAX_PARALLEL_WRITES, len(matches))) as pool:
            futures = [pool.submit(insert_one, match) for match in matches]
            for future in futures:
                try:
                    future.result()
                except BackendError as e:
                    errors.append(e)

        if errors:
            log.error(f"❌ {len(errors)} of {len(matches)} match inserts failed for {user_id}")
            raise BatchWriteError(f"Failed to save {len(errors)} of {len(matches)} matches.", errors)

    def replace_matches(self, user_id: str, matches: List[Dict[str, Any]]) -> None:
        """Drop the user's match history, then insert `matches`. Safe to repeat."""
        self.store.delete(FIGHTER_MATCHES, {"user_id": user_id})
        self.add_matches(user_id, matches)

    def save_sports_records(self, user_id: str, records: Dict[str, Dict[str, int]]) -> None:
        rows = [
            {"profile_id": user_id, "sport_name": sport, **counts, "updated_at": _now_iso()}
            for sport, counts in records.items()
        ]
        if rows:
            self.store.upsert(SPORTS_RECORDS, rows, on_conflict="profile_id,sport_name")

    # --- organizer ---

    def replace_managed_fighters(self, organizer_id: str, fighter_ids: Iterable[str]) -> None:
        self.store.delete(MANAGED_FIGHTERS, {"organizer_id": organizer_id})
        rows = [{"organizer_id": organizer_id, "fighter_id": fid} for fid in fighter_ids]
        if rows:
            self.store.insert(MANAGED_FIGHTERS, rows)
