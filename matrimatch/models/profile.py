"""Partner preference and candidate attribute models for the MatriMatch matching core."""

from typing import Any, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Values meaning "the seeker does not care", compared case-insensitively
NO_PREFERENCE_TOKENS = frozenset({"no preference", "any", "doesn't matter", "open to all"})
NO_PREFERENCE = "no preference"
EXCLUDE_PREFIX = "not "

DEFAULT_AGE_FROM = 21
DEFAULT_AGE_TO = 36
DEFAULT_ALCOHOL = "occasionally"


def is_no_preference(value: Any) -> bool:
    """Return True for None, blank strings and the no-preference tokens."""
    if value is None:
        return True
    if isinstance(value, str):
        stripped = value.strip().lower()
        return not stripped or stripped in NO_PREFERENCE_TOKENS
    return False


def to_string_list(value: Any) -> List[str]:
    """
    Flatten a loosely shaped stored value into a list of trimmed strings.

    Accepts None, scalars, lists and dicts of lists (the shapes older profile
    editors persisted). Empty entries are dropped.
    """
    if value is None:
        return []
    items: Iterable[Any]
    if isinstance(value, dict):
        flattened: List[Any] = []
        for entry in value.values():
            if isinstance(entry, (list, tuple, set)):
                flattened.extend(entry)
            else:
                flattened.append(entry)
        items = flattened
    elif isinstance(value, (list, tuple, set)):
        items = value
    else:
        items = [value]

    return [str(item).strip() for item in items if item is not None and str(item).strip()]


def _age_or_default(value: Any, default: int) -> int:
    """Read a stored age bound, falling back to `default` when it is blank or not a whole number."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        pass
    try:
        as_float = float(value)
    except (TypeError, ValueError):
        return default
    return int(as_float) if as_float.is_integer() else default


class Preference(BaseModel):
    """
    A list-valued partner preference.

    Either no preference (both lists empty) or include values plus exclude
    values. Stored entries of the form "not X" become exclude entries "X".
    """

    include: List[str] = Field(default_factory=list)
    exclude: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def parse(cls, raw: Any) -> "Preference":
        """
        Normalize a stored preference value.

        Args:
            raw (Any): None, a string, a list or a dict of lists.

        Returns:
            Preference: The normalized preference.
        """
        if isinstance(raw, Preference):
            return raw

        include: List[str] = []
        exclude: List[str] = []
        for entry in to_string_list(raw):
            if is_no_preference(entry):
                continue
            if entry.lower().startswith(EXCLUDE_PREFIX):
                excluded = entry[len(EXCLUDE_PREFIX) :].strip()
                if excluded:
                    exclude.append(excluded)
            else:
                include.append(entry)
        return cls(include=include, exclude=exclude)

    @property
    def is_no_preference(self) -> bool:
        return not self.include and not self.exclude


class Expectations(BaseModel):
    """
    Expectations model.

    Partner preferences of a seeker, normalized once when read from storage.
    Absent values fall back to the platform defaults: age 21-36, alcohol
    "occasionally", no community, profession or marital constraint.
    """

    user_id: Optional[str] = None
    age_from: int = DEFAULT_AGE_FROM
    age_to: int = DEFAULT_AGE_TO
    community: Preference = Field(default_factory=Preference)
    profession: Preference = Field(default_factory=Preference)
    education_level: Preference = Field(default_factory=Preference)
    diet: Preference = Field(default_factory=Preference)
    living_in_country: Preference = Field(default_factory=Preference)
    living_in_state: Preference = Field(default_factory=Preference)
    marital_status: Optional[str] = None
    alcohol: str = Field(default=DEFAULT_ALCOHOL, validate_default=True)

    model_config = ConfigDict(from_attributes=True)

    @field_validator(
        "community",
        "profession",
        "education_level",
        "diet",
        "living_in_country",
        "living_in_state",
        mode="before",
    )
    @classmethod
    def parse_preference(cls, v: Any) -> Preference:
        return Preference.parse(v)

    @field_validator("age_from", mode="before")
    @classmethod
    def default_age_from(cls, v: Any) -> int:
        return _age_or_default(v, DEFAULT_AGE_FROM)

    @field_validator("age_to", mode="before")
    @classmethod
    def default_age_to(cls, v: Any) -> int:
        return _age_or_default(v, DEFAULT_AGE_TO)

    @field_validator("marital_status", mode="before")
    @classmethod
    def normalize_marital_status(cls, v: Any) -> Optional[str]:
        """Collapse "No Preference"/"Any" and blanks to None; keep the exact value otherwise."""
        if isinstance(v, (list, tuple)):
            v = v[0] if v else None
        if is_no_preference(v):
            return None
        return str(v).strip()

    @field_validator("alcohol", mode="before")
    @classmethod
    def normalize_alcohol(cls, v: Any) -> str:
        """
        Normalize the alcohol preference.

        Absent values take the default; explicit indifference becomes the
        no-preference sentinel; "occasional" is folded into "occasionally".
        """
        if v is None:
            return DEFAULT_ALCOHOL
        if isinstance(v, bool):
            return "yes" if v else "no"
        value = str(v).strip().lower()
        if not value:
            return DEFAULT_ALCOHOL
        if value in NO_PREFERENCE_TOKENS:
            return NO_PREFERENCE
        if value == "occasional":
            return "occasionally"
        return value

    @model_validator(mode="after")
    def order_age_range(self) -> "Expectations":
        if self.age_from > self.age_to:
            self.age_from, self.age_to = self.age_to, self.age_from
        return self


class PersonalRecord(BaseModel):
    """Personal record of a candidate."""

    user_id: str
    religion: Optional[str] = None
    sub_caste: Optional[str] = None
    residing_country: Optional[str] = None
    state: Optional[str] = None
    married_status: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class EducationRecord(BaseModel):
    user_id: str
    highest_education: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ProfessionRecord(BaseModel):
    user_id: str
    occupation: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class HealthRecord(BaseModel):
    user_id: str
    diet: Optional[str] = None
    is_alcoholic: Optional[bool] = None

    model_config = ConfigDict(from_attributes=True)


class CandidateProfile(BaseModel):
    """
    Candidate profile model.

    The read-only attributes of a candidate that feed the scorer. Any record
    may be missing; the accessors return empty values in that case.
    """

    user_id: str
    personal: Optional[PersonalRecord] = None
    education: Optional[EducationRecord] = None
    profession: Optional[ProfessionRecord] = None
    health: Optional[HealthRecord] = None

    @property
    def communities(self) -> List[str]:
        return to_string_list(self.personal.sub_caste if self.personal else None)

    @property
    def professions(self) -> List[str]:
        return to_string_list(self.profession.occupation if self.profession else None)

    @property
    def diets(self) -> List[str]:
        return to_string_list(self.health.diet if self.health else None)

    @property
    def education_level(self) -> Optional[str]:
        if self.education and self.education.highest_education:
            return self.education.highest_education.strip() or None
        return None

    @property
    def country(self) -> Optional[str]:
        return self.personal.residing_country if self.personal else None

    @property
    def state(self) -> Optional[str]:
        return self.personal.state if self.personal else None

    @property
    def marital_status(self) -> Optional[str]:
        return self.personal.married_status if self.personal else None

    @property
    def alcohol_status(self) -> Optional[str]:
        """Drinking habit as "yes"/"no", or None when the candidate did not say."""
        if self.health is None or self.health.is_alcoholic is None:
            return None
        return "yes" if self.health.is_alcoholic else "no"
