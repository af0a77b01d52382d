"""Models package for the MatriMatch matching core."""

from matrimatch.models.match import (
    CachedMatchScore,
    HiddenReason,
    Match,
    MatchPage,
    MatchProcessingResult,
    MatchVisibility,
    Recommendation,
    ScoreDetail,
)
from matrimatch.models.profile import (
    CandidateProfile,
    EducationRecord,
    Expectations,
    HealthRecord,
    PersonalRecord,
    Preference,
    ProfessionRecord,
)
from matrimatch.models.user import Gender, ProfileReviewStatus, User

__all__ = [
    "CachedMatchScore",
    "CandidateProfile",
    "EducationRecord",
    "Expectations",
    "Gender",
    "HealthRecord",
    "HiddenReason",
    "Match",
    "MatchPage",
    "MatchProcessingResult",
    "MatchVisibility",
    "PersonalRecord",
    "Preference",
    "ProfessionRecord",
    "ProfileReviewStatus",
    "Recommendation",
    "ScoreDetail",
    "User",
]
