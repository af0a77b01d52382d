"""User model for the MatriMatch matching core."""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Gender(str, Enum):
    """
    Gender enumeration.

    Matching pairs each user with candidates of the opposite gender.
    """

    MALE = "male"
    FEMALE = "female"

    @property
    def opposite(self) -> "Gender":
        return Gender.FEMALE if self is Gender.MALE else Gender.MALE


class ProfileReviewStatus(str, Enum):
    """Moderation state of a user's profile."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


def age_on(date_of_birth: date, today: Optional[date] = None) -> int:
    """Return the age in whole years on `today`."""
    today = today or date.today()
    years = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        years -= 1
    return years


class User(BaseModel):
    """
    User model.

    Read model of an account as the matching core sees it: identity, the
    eligibility flags set by moderation, gender, date of birth and the
    list of users this user has blocked.
    """

    id: str
    first_name: str = ""
    last_name: Optional[str] = None
    gender: Optional[Gender] = None
    date_of_birth: Optional[date] = None
    is_active: bool = True
    is_deleted: bool = False
    is_visible: Optional[bool] = True
    is_profile_approved: bool = False
    profile_review_status: Optional[str] = ProfileReviewStatus.PENDING.value
    blocked_users: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)

    model_config = ConfigDict(from_attributes=True)

    @field_validator("gender", mode="before")
    @classmethod
    def normalize_gender(cls, v: object) -> object:
        """Accept any casing; unknown values become None."""
        if isinstance(v, str):
            lv = v.strip().lower()
            return lv if lv in {g.value for g in Gender} else None
        return v

    @field_validator("blocked_users", mode="before")
    @classmethod
    def normalize_blocked_users(cls, v: object) -> List[str]:
        if not v:
            return []
        return [str(uid) for uid in v]  # type: ignore[union-attr]

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @property
    def age(self) -> Optional[int]:
        """Effective age in whole years, or None when the date of birth is unknown."""
        if self.date_of_birth is None:
            return None
        return age_on(self.date_of_birth)

    def is_match_eligible(self) -> bool:
        """
        Check if the user can take part in matching.

        A user is eligible when active, not deleted, not explicitly hidden,
        and approved by moderation.

        Returns:
            bool: True if user is eligible for matching, False otherwise.
        """
        return (
            self.is_active
            and not self.is_deleted
            and self.is_visible is not False
            and self.is_profile_approved
            and self.profile_review_status == ProfileReviewStatus.APPROVED.value
        )

    def has_blocked(self, other_id: str) -> bool:
        return other_id in self.blocked_users
