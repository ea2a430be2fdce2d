"""
Per-step onboarding inputs.

Each input validates itself on construction and raises
OnboardingValidationError carrying a single user-facing message for the
first field that fails. Once built, an input is safe to hand to the
repository as-is.
"""

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from use_cases.session_models import ROLES, Role

GENDERS = ("male", "female", "other", "prefer_not_to_say")
DIVISIONS = ("Amateur", "Semi-Pro", "Pro")
SPORTS = ("Muay Thai", "MMA", "Kickboxing", "Boxing")
MATCH_RESULTS = ("Won", "Lost", "Draw", "No Contest")


class OnboardingValidationError(ValueError):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def _required(value: Optional[str], label: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise OnboardingValidationError(f"{label} is required.")
    return cleaned


def _optional(value: Optional[str]) -> Optional[str]:
    cleaned = (value or "").strip()
    return cleaned or None


def parse_float(value: Any, label: str) -> float:
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        raise OnboardingValidationError(f"{label} must be a number.")
    # nan and inf are not valid JSON numbers
    if not math.isfinite(number):
        raise OnboardingValidationError(f"{label} must be a number.")
    return number


def parse_positive_float(value: Any, label: str) -> float:
    number = parse_float(value, label)
    if number <= 0:
        raise OnboardingValidationError(f"{label} must be greater than zero.")
    return number


def parse_int(value: Any, label: str) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise OnboardingValidationError(f"{label} must be a whole number.")


def parse_positive_int(value: Any, label: str) -> int:
    number = parse_int(value, label)
    if number <= 0:
        raise OnboardingValidationError(f"{label} must be greater than zero.")
    return number


@dataclass(frozen=True)
class SocialLinkInput:
    platform: str
    url: str

    def __post_init__(self):
        object.__setattr__(self, "platform", _required(self.platform, "Social platform"))
        url = _required(self.url, "Social link")
        if not url.startswith(("http://", "https://")):
            raise OnboardingValidationError("Social link must start with http:// or https://.")
        object.__setattr__(self, "url", url)


@dataclass(frozen=True)
class BasicProfileInput:
    first_name: str
    last_name: str
    date_of_birth: Optional[str] = None
    gender: Optional[str] = None
    country: Optional[str] = None
    profile_image_url: Optional[str] = None
    social_links: Tuple[SocialLinkInput, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "first_name", _required(self.first_name, "First name"))
        object.__setattr__(self, "last_name", _required(self.last_name, "Last name"))
        dob = _optional(self.date_of_birth)
        if dob is not None:
            try:
                parsed = date.fromisoformat(dob)
            except ValueError:
                raise OnboardingValidationError("Date of birth must be a valid date (YYYY-MM-DD).")
            if parsed > date.today():
                raise OnboardingValidationError("Date of birth cannot be in the future.")
        object.__setattr__(self, "date_of_birth", dob)
        gender = _optional(self.gender)
        if gender is not None and gender not in GENDERS:
            raise OnboardingValidationError("Please select a gender from the list.")
        object.__setattr__(self, "gender", gender)
        object.__setattr__(self, "country", _optional(self.country))
        object.__setattr__(self, "profile_image_url", _optional(self.profile_image_url))
        object.__setattr__(self, "social_links", tuple(self.social_links))

    def to_record(self) -> Dict[str, Any]:
        record = {"first_name": self.first_name, "last_name": self.last_name}
        for key in ("date_of_birth", "gender", "country", "profile_image_url"):
            value = getattr(self, key)
            if value is not None:
                record[key] = value
        return record


@dataclass(frozen=True)
class RoleSelectionInput:
    role: Role

    def __post_init__(self):
        if self.role not in ROLES:
            raise OnboardingValidationError("Please select a role to continue.")


@dataclass(frozen=True)
class FanPreferencesInput:
    allow_notifications: bool = False
    allow_location: bool = False

    def to_record(self) -> Dict[str, Any]:
        return {
            "allow_notifications": bool(self.allow_notifications),
            "allow_location": bool(self.allow_location),
        }


@dataclass(frozen=True)
class ContactInfoInput:
    full_name: str
    phone: str
    email: Optional[str] = None
    organisation: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "full_name", _required(self.full_name, "Contact full name"))
        object.__setattr__(self, "phone", _required(self.phone, "Contact phone"))
        email = _optional(self.email)
        if email is not None and "@" not in email:
            raise OnboardingValidationError("Contact email is not valid.")
        object.__setattr__(self, "email", email)
        object.__setattr__(self, "organisation", _optional(self.organisation))

    def to_record(self) -> Dict[str, Any]:
        return {
            "full_name": self.full_name,
            "phone": self.phone,
            "email": self.email,
            "organisation": self.organisation,
        }


@dataclass(frozen=True)
class MatchRecordInput:
    sport: str
    result: str
    opponent_name: Optional[str] = None
    event_name: Optional[str] = None
    match_date: Optional[str] = None
    division: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "sport", _required(self.sport, "Sport"))
        if self.result not in MATCH_RESULTS:
            raise OnboardingValidationError("Please select the match result.")
        match_date = _optional(self.match_date)
        if match_date is not None:
            try:
                date.fromisoformat(match_date)
            except ValueError:
                raise OnboardingValidationError("Match date must be a valid date (YYYY-MM-DD).")
        object.__setattr__(self, "match_date", match_date)
        division = _optional(self.division)
        if division is not None and division not in DIVISIONS:
            raise OnboardingValidationError("Please select a division from the list.")
        object.__setattr__(self, "division", division)
        object.__setattr__(self, "opponent_name", _optional(self.opponent_name))
        object.__setattr__(self, "event_name", _optional(self.event_name))

    def to_record(self) -> Dict[str, Any]:
        return {
            "sport": self.sport,
            "result": self.result,
            "opponent_name": self.opponent_name,
            "event_name": self.event_name,
            "match_date": self.match_date,
            "division": self.division,
        }


@dataclass(frozen=True)
class FighterProfileInput:
    """
    Everything the fighter screen must hold before "complete" is allowed.
    Numeric fields arrive as raw text from the form and are parsed here.
    """

    sports: Tuple[str, ...]
    weight_division: Any
    weight_range: Any
    height: Any
    gym: Optional[str]
    contact: Optional[ContactInfoInput]
    division: Optional[str] = None

    def __post_init__(self):
        sports = tuple(dict.fromkeys(s.strip() for s in self.sports if s and s.strip()))
        if not sports:
            raise OnboardingValidationError("Add at least one sport you compete in.")
        object.__setattr__(self, "sports", sports)
        object.__setattr__(self, "weight_division", parse_positive_float(self.weight_division, "Weight division"))
        object.__setattr__(self, "weight_range", parse_float(self.weight_range, "Weight range"))
        if self.weight_range < 0:
            raise OnboardingValidationError("Weight range cannot be negative.")
        object.__setattr__(self, "height", parse_positive_int(self.height, "Height"))
        object.__setattr__(self, "gym", _required(self.gym, "Gym"))
        if self.contact is None:
            raise OnboardingValidationError("Add a contact person.")
        division = _optional(self.division)
        if division is not None and division not in DIVISIONS:
            raise OnboardingValidationError("Please select a division from the list.")
        object.__setattr__(self, "division", division)

    def to_record(self) -> Dict[str, Any]:
        record = {
            "weight_division": self.weight_division,
            "weight_range": self.weight_range,
            "height": self.height,
            "gym": self.gym,
        }
        if self.division is not None:
            record["division"] = self.division
        return record


@dataclass(frozen=True)
class OrganizerProfileInput:
    job_title: str
    organisation: str
    contact: Optional[ContactInfoInput] = None
    managed_fighter_ids: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "job_title", _required(self.job_title, "Job title"))
        object.__setattr__(self, "organisation", _required(self.organisation, "Organisation"))
        ids: List[str] = [i.strip() for i in self.managed_fighter_ids if i and i.strip()]
        object.__setattr__(self, "managed_fighter_ids", tuple(dict.fromkeys(ids)))

    def to_record(self) -> Dict[str, Any]:
        return {"job_title": self.job_title, "organisation": self.organisation}
