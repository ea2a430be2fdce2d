import pytest
from unittest.mock import MagicMock

from conftest import FakeAuthProvider, make_session
from infrastructure.backend.errors import BackendError
from infrastructure.repositories.profile_repository import BatchWriteError, SupabaseProfileRepository
from use_cases.navigation_gate import resolve_flow
from use_cases.onboarding_flow import NOT_AUTHENTICATED_MESSAGE, SAVE_FAILED_MESSAGE, OnboardingWizard
from use_cases.onboarding_models import (
    BasicProfileInput,
    ContactInfoInput,
    FanPreferencesInput,
    MatchRecordInput,
    OrganizerProfileInput,
    RoleSelectionInput,
)
from use_cases.session_store import SessionStore

USER_ID = "user-1"

FIGHTER_FORM = {
    "weight_division": "63.5",
    "weight_range": "2.0",
    "height": "230",
    "gym": "Keddles Gym",
}


@pytest.fixture
def repo(table_store):
    table_store.insert("profiles", {"id": USER_ID, "email": "fighter@example.com", "onboarding_completed": False})
    return SupabaseProfileRepository(table_store)


@pytest.fixture
def store(repo):
    store = SessionStore(FakeAuthProvider(session=make_session(USER_ID)), repo)
    store.initialize()
    return store


@pytest.fixture
def spy(repo):
    return MagicMock(wraps=repo)


@pytest.fixture
def wizard(store, spy):
    return OnboardingWizard(store, spy)


def _fighter_ready(wizard):
    wizard.step = "FIGHTER"
    wizard.role = "fighter"
    wizard.add_sport("Muay Thai")
    assert wizard.save_contact(ContactInfoInput(full_name="John Doe", phone="+4512345678")).ok


def test_happy_path_fighter_onboarding(wizard, store, table_store):
    _fighter_ready(wizard)
    wizard.add_match(MatchRecordInput(sport="Muay Thai", result="Won", opponent_name="Sam"))

    result = wizard.complete_fighter(**FIGHTER_FORM)

    assert result.ok, result.message
    records = {
        row["sport_name"]: {k: row[k] for k in ("wins", "losses", "draws")}
        for row in table_store.select("sports_records")
    }
    assert records == {"Muay Thai": {"wins": 1, "losses": 0, "draws": 0}}
    assert table_store.get_record("profiles", {"id": USER_ID})["onboarding_completed"] is True
    fighter = table_store.get_record("fighter_profiles", {"user_id": USER_ID})
    assert fighter["weight_division"] == 63.5
    assert fighter["height"] == 230
    assert [r["sport"] for r in table_store.select("fighter_sports")] == ["Muay Thai"]
    assert len(table_store.select("fighter_matches")) == 1
    assert store.has_completed_onboarding is True
    assert resolve_flow(store.snapshot()) == "APP"
    assert wizard.step == "DONE"


@pytest.mark.parametrize(
    "drop, overrides, message",
    [
        ("sports", {}, "Add at least one sport you compete in."),
        (None, {"weight_division": "heavy"}, "Weight division must be a number."),
        (None, {"weight_range": "a bit"}, "Weight range must be a number."),
        ("contact", {}, "Add a contact person."),
    ],
)
def test_complete_fighter_rejected_without_writes(wizard, spy, drop, overrides, message):
    _fighter_ready(wizard)
    if drop == "sports":
        wizard.remove_sport("Muay Thai")
    elif drop == "contact":
        wizard.contact = None
    spy.reset_mock()

    result = wizard.complete_fighter(**{**FIGHTER_FORM, **overrides})

    assert result.ok is False
    assert result.error_kind == "VALIDATION"
    assert result.message == message
    assert spy.method_calls == []
    assert wizard.step == "FIGHTER"


def test_remote_failure_keeps_wizard_on_step(wizard, spy, store):
    _fighter_ready(wizard)
    spy.save_fighter_profile.side_effect = BackendError("timeout")

    result = wizard.complete_fighter(**FIGHTER_FORM)

    assert result.error_kind == "REMOTE"
    assert result.message == SAVE_FAILED_MESSAGE
    assert wizard.step == "FIGHTER"
    assert store.has_completed_onboarding is False
    spy.complete_onboarding.assert_not_called()


def test_failed_match_batch_blocks_completion(wizard, spy, store):
    _fighter_ready(wizard)
    wizard.add_match(MatchRecordInput(sport="Muay Thai", result="Lost"))
    spy.replace_matches.side_effect = BatchWriteError("Failed to save 1 of 1 matches.", [BackendError("boom")])

    result = wizard.complete_fighter(**FIGHTER_FORM)

    assert result.error_kind == "REMOTE"
    spy.complete_onboarding.assert_not_called()
    assert store.has_completed_onboarding is False


def test_actions_require_signed_in_user(spy):
    store = SessionStore(FakeAuthProvider(), spy)
    store.initialize()
    wizard = OnboardingWizard(store, spy)

    result = wizard.select_role(RoleSelectionInput(role="fan"))

    assert result.error_kind == "NOT_FOUND"
    assert result.message == NOT_AUTHENTICATED_MESSAGE
    spy.set_role.assert_not_called()


def test_basic_profile_then_role_branches(wizard, table_store):
    result = wizard.submit_basic_profile(
        BasicProfileInput(first_name="Jane", last_name="Doe", gender="female")
    )
    assert result.ok
    assert wizard.step == "ROLE"
    assert wizard.progress == 50
    assert table_store.get_record("profiles", {"id": USER_ID})["first_name"] == "Jane"

    assert wizard.select_role(RoleSelectionInput(role="organizer")).ok
    assert wizard.step == "ORGANIZER"
    assert table_store.get_record("profiles", {"id": USER_ID})["role"] == "organizer"


def test_fan_completion(wizard, store, table_store):
    wizard.select_role(RoleSelectionInput(role="fan"))

    result = wizard.complete_fan(FanPreferencesInput(allow_notifications=True))

    assert result.ok
    assert table_store.get_record("fan_profiles", {"user_id": USER_ID})["allow_notifications"] is True
    assert store.has_completed_onboarding is True


def test_organizer_completion_without_contact(wizard, store, table_store):
    wizard.select_role(RoleSelectionInput(role="organizer"))

    result = wizard.complete_organizer(
        OrganizerProfileInput(job_title="Promoter", organisation="Fight Night", managed_fighter_ids=("f-1", "f-1", "f-2"))
    )

    assert result.ok
    assert table_store.select("contact_information") == []
    assert [r["fighter_id"] for r in table_store.select("managed_fighters")] == ["f-1", "f-2"]
    assert store.has_completed_onboarding is True


def test_match_tally_updates_locally(wizard, spy):
    wizard.add_match(MatchRecordInput(sport="MMA", result="Won"))
    wizard.add_match(MatchRecordInput(sport="MMA", result="Draw"))
    result = wizard.add_match(MatchRecordInput(sport="MMA", result="No Contest"))

    assert result.value == {"MMA": {"wins": 1, "losses": 0, "draws": 1}}
    assert spy.method_calls == []


def test_adding_a_sport_twice_keeps_one(wizard):
    wizard.add_sport("Boxing")
    wizard.add_sport(" Boxing ")
    assert wizard.sports == ["Boxing"]
    assert wizard.add_sport("  ").error_kind == "VALIDATION"


def test_resume_skips_saved_basic_profile(wizard):
    assert wizard.resume_from_profile({"first_name": "Jane"}) == "ROLE"
    assert OnboardingWizard(None, None).resume_from_profile({"first_name": None}) == "BASIC_PROFILE"


def test_retried_completion_does_not_duplicate_matches(wizard, spy, store, table_store):
    _fighter_ready(wizard)
    wizard.add_match(MatchRecordInput(sport="Muay Thai", result="Won"))
    spy.save_sports_records.side_effect = [BackendError("timeout"), None]

    first = wizard.complete_fighter(**FIGHTER_FORM)
    assert first.error_kind == "REMOTE"
    assert len(table_store.select("fighter_matches")) == 1

    second = wizard.complete_fighter(**FIGHTER_FORM)

    assert second.ok, second.message
    assert len(table_store.select("fighter_matches", {"user_id": USER_ID})) == 1
    assert store.has_completed_onboarding is True


def test_non_finite_weight_is_rejected_before_any_write(wizard, spy):
    _fighter_ready(wizard)
    spy.reset_mock()

    result = wizard.complete_fighter(**{**FIGHTER_FORM, "weight_division": "nan", "height": "-5"})

    assert result.error_kind == "VALIDATION"
    assert result.message == "Weight division must be a number."
    assert spy.method_calls == []
