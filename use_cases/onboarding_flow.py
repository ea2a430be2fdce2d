"""
Onboarding wizard orchestration (application layer).

BASIC_PROFILE -> ROLE -> FAN | FIGHTER | ORGANIZER -> DONE

Each action returns an OperationResult. A failed action never moves the
wizard: the user stays on the same step and can retry. The profile's
`onboarding_completed` flag is written last, so a half-finished onboarding
is still reported as incomplete.
"""

import logging
from typing import Callable, Dict, List, Literal, Optional

from infrastructure.backend.errors import BackendError
from services import sports_record_service
from use_cases.onboarding_models import (
    BasicProfileInput,
    ContactInfoInput,
    FanPreferencesInput,
    FighterProfileInput,
    MatchRecordInput,
    OnboardingValidationError,
    OrganizerProfileInput,
    RoleSelectionInput,
)
from use_cases.results import OperationResult

log = logging.getLogger(__name__)

OnboardingStep = Literal["BASIC_PROFILE", "ROLE", "FAN", "FIGHTER", "ORGANIZER", "DONE"]

ROLE_STEPS: Dict[str, OnboardingStep] = {
    "fan": "FAN",
    "fighter": "FIGHTER",
    "organizer": "ORGANIZER",
}

STEP_PROGRESS: Dict[str, int] = {
    "BASIC_PROFILE": 25,
    "ROLE": 50,
    "FAN": 100,
    "FIGHTER": 100,
    "ORGANIZER": 100,
    "DONE": 100,
}

NOT_AUTHENTICATED_MESSAGE = "User not authenticated. Please sign in again."
SAVE_FAILED_MESSAGE = "Failed to save profile. Please try again."


class OnboardingWizard:
    def __init__(self, session_store, profiles):
        self.session_store = session_store
        self.profiles = profiles
        self.step: OnboardingStep = "BASIC_PROFILE"
        self.role: Optional[str] = None
        # fighter draft
        self.sports: List[str] = []
        self.contact: Optional[ContactInfoInput] = None
        self.matches: List[MatchRecordInput] = []
        self.sports_records: Dict[str, Dict[str, int]] = {}

    @property
    def progress(self) -> int:
        return STEP_PROGRESS[self.step]

    def resume_from_profile(self, profile: Optional[dict]) -> OnboardingStep:
        """Skip the basic-profile step when a previous visit already saved it."""
        if profile and profile.get("first_name") and self.step == "BASIC_PROFILE":
            self.step = "ROLE"
        return self.step

    def _run(self, action: str, work: Callable[[str], object]) -> OperationResult:
        user_id = self.session_store.current_user_id
        if user_id is None:
            return OperationResult.failure("NOT_FOUND", NOT_AUTHENTICATED_MESSAGE)
        try:
            value = work(user_id)
        except OnboardingValidationError as e:
            return OperationResult.failure("VALIDATION", e.message)
        except BackendError as e:
            log.error(f"Error during onboarding step {action}: {e}")
            return OperationResult.failure("REMOTE", SAVE_FAILED_MESSAGE)
        return OperationResult.success(value)

    # --- step 1 ---

    def submit_basic_profile(self, data: BasicProfileInput) -> OperationResult:
        def work(user_id):
            self.profiles.upsert_basic_profile(user_id, data.to_record())
            self.profiles.add_social_links(
                user_id, [{"platform": link.platform, "url": link.url} for link in data.social_links]
            )
            self.step = "ROLE"

        return self._run("basic_profile", work)

    # --- step 2 ---

    def select_role(self, selection: RoleSelectionInput) -> OperationResult:
        def work(user_id):
            self.profiles.set_role(user_id, selection.role)
            self.role = selection.role
            self.step = ROLE_STEPS[selection.role]

        return self._run("role", work)

    # --- fan ---

    def complete_fan(self, prefs: FanPreferencesInput) -> OperationResult:
        def work(user_id):
            self.profiles.save_fan_profile(user_id, prefs.to_record())
            self._finish(user_id)

        return self._run("fan", work)

    # --- fighter ---

    def add_sport(self, sport: str) -> OperationResult:
        name = (sport or "").strip()
        if not name:
            return OperationResult.failure("VALIDATION", "Sport is required.")
        if name not in self.sports:
            self.sports.append(name)
        return OperationResult.success(list(self.sports))

    def remove_sport(self, sport: str) -> OperationResult:
        if sport in self.sports:
            self.sports.remove(sport)
        return OperationResult.success(list(self.sports))

    def save_contact(self, contact: ContactInfoInput) -> OperationResult:
        def work(user_id):
            self.profiles.replace_contact_info(user_id, contact.to_record())
            self.contact = contact

        return self._run("contact", work)

    def add_match(self, match: MatchRecordInput) -> OperationResult:
        self.matches.append(match)
        sports_record_service.apply_result(self.sports_records, match.sport, match.result)
        return OperationResult.success(dict(self.sports_records))

    def complete_fighter(self, weight_division, weight_range, height, gym, division=None) -> OperationResult:
        def work(user_id):
            data = FighterProfileInput(
                sports=tuple(self.sports),
                weight_division=weight_division,
                weight_range=weight_range,
                height=height,
                gym=gym,
                contact=self.contact,
                division=division,
            )
            self.profiles.save_fighter_profile(user_id, data.to_record())
            self.profiles.replace_sports_of_interest(user_id, data.sports)
            self.profiles.replace_matches(user_id, [m.to_record() for m in self.matches])
            self.profiles.save_sports_records(user_id, self.sports_records)
            self._finish(user_id)

        return self._run("fighter", work)

    # --- organizer ---

    def complete_organizer(self, data: OrganizerProfileInput) -> OperationResult:
        def work(user_id):
            self.profiles.save_organizer_profile(user_id, data.to_record())
            if data.contact is not None:
                self.profiles.replace_contact_info(user_id, data.contact.to_record())
                self.contact = data.contact
            self.profiles.replace_managed_fighters(user_id, data.managed_fighter_ids)
            self._finish(user_id)

        return self._run("organizer", work)

    # --- completion ---

    def _finish(self, user_id: str) -> None:
        self.profiles.complete_onboarding(user_id)
        self.step = "DONE"
        self.session_store.mark_onboarding_complete()
        log.info(f"Onboarding completed for {user_id} as {self.role}")
