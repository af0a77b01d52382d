"""Per-attribute compatibility scoring for the MatriMatch matching core.

Every scorer returns an integer between 0 and 100. A candidate that fails a
preference scores 1 instead of 0, so one missing or mismatched attribute
lowers a pair's ranking without wiping it out. 0 is reserved for an
indifferent seeker and a candidate who left the attribute blank.
"""

import math
import re
from typing import List, Optional, Tuple, Union

from matrimatch.models.profile import Preference, is_no_preference

FULL_SCORE = 100
NO_MATCH_SCORE = 1
EMPTY_SCORE = 0
PARTIAL_EDUCATION_SCORE = 70
AGE_DECAY_PER_YEAR = 10

VEGETARIAN_DIETS = frozenset({"vegetarian", "eggetarian", "jain", "swaminarayan"})
NON_VEGETARIAN_DIETS = frozenset({"non-vegetarian", "non vegetarian"})
FLEXIBLE_DIETS = frozenset({"veg & non-veg", "veg and non-veg"})

_EDUCATION_TOKEN_SPLIT = re.compile(r"[\s\-_]+")


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (banker's rounding would shift tie scores)."""
    return int(math.floor(value + 0.5))


def _list_policy(pref: Preference, candidate_values: List[str]) -> Optional[int]:
    """
    Apply the policy shared by the list-valued scorers.

    Returns the score when the policy decides it, or None when the candidate
    has values, none is excluded, and none matches an include entry.
    """
    if pref.is_no_preference:
        return FULL_SCORE if candidate_values else EMPTY_SCORE
    if not candidate_values:
        return NO_MATCH_SCORE

    candidate_lower = {value.lower() for value in candidate_values}
    if any(excluded.lower() in candidate_lower for excluded in pref.exclude):
        return NO_MATCH_SCORE
    if not pref.include or any(included.lower() in candidate_lower for included in pref.include):
        return FULL_SCORE
    return None


def age_score(age_from: int, age_to: int, candidate_age: Optional[float]) -> int:
    """
    Score a candidate's age against the preferred inclusive range.

    Inside the range scores 100; outside, 10 points are lost per year of
    distance to the nearest bound, never going below 1.

    Args:
        age_from (int): Lower bound of the preferred range.
        age_to (int): Upper bound of the preferred range.
        candidate_age (Optional[float]): Effective age, None when unknown.

    Returns:
        int: The age sub-score; 0 when the candidate's age is unknown.
    """
    if candidate_age is None:
        return EMPTY_SCORE
    if age_from <= candidate_age <= age_to:
        return FULL_SCORE

    distance = min(abs(candidate_age - age_from), abs(candidate_age - age_to))
    return max(NO_MATCH_SCORE, round_half_up(FULL_SCORE - distance * AGE_DECAY_PER_YEAR))


def community_score(pref: Preference, candidate_communities: List[str]) -> int:
    result = _list_policy(pref, candidate_communities)
    return NO_MATCH_SCORE if result is None else result


def profession_score(pref: Preference, candidate_professions: List[str]) -> int:
    result = _list_policy(pref, candidate_professions)
    return NO_MATCH_SCORE if result is None else result


def _diet_families(diets: List[str]) -> Tuple[bool, bool, bool]:
    lowered = {diet.lower() for diet in diets}
    return (
        bool(lowered & VEGETARIAN_DIETS),
        bool(lowered & NON_VEGETARIAN_DIETS),
        bool(lowered & FLEXIBLE_DIETS),
    )


def diet_score(pref: Preference, candidate_diets: List[str]) -> int:
    """
    Score a candidate's diet.

    Unmatched diets still score 100 when either side is flexible or both
    belong to the same family (vegetarian or non-vegetarian).
    """
    result = _list_policy(pref, candidate_diets)
    if result is not None:
        return result

    pref_veg, pref_non_veg, pref_flexible = _diet_families(pref.include)
    cand_veg, cand_non_veg, cand_flexible = _diet_families(candidate_diets)

    if pref_flexible or cand_flexible:
        return FULL_SCORE
    if (pref_veg and cand_veg) or (pref_non_veg and cand_non_veg):
        return FULL_SCORE
    return NO_MATCH_SCORE


def education_score(pref: Preference, candidate_education: Optional[str]) -> int:
    """
    Score a candidate's highest education.

    A preference entry matches the whole education string or one of its
    tokens ("Masters-Engineering" matches "masters"); an exclude entry also
    matches as a substring. Valid but unmatched education earns 70.
    """
    if pref.is_no_preference:
        return FULL_SCORE if candidate_education else EMPTY_SCORE
    if not candidate_education:
        return NO_MATCH_SCORE

    education = candidate_education.lower()
    tokens = [token for token in _EDUCATION_TOKEN_SPLIT.split(education) if token]

    for excluded in pref.exclude:
        excluded_lower = excluded.lower()
        if excluded_lower in tokens or excluded_lower in education:
            return NO_MATCH_SCORE

    if not pref.include:
        return FULL_SCORE
    for included in pref.include:
        included_lower = included.lower()
        if included_lower == education or included_lower in tokens:
            return FULL_SCORE
    return PARTIAL_EDUCATION_SCORE


def alcohol_score(seeker_pref: Optional[str], candidate_status: Union[str, bool, None]) -> int:
    """
    Score a candidate's drinking habit.

    Args:
        seeker_pref (Optional[str]): "yes", "no", "occasionally" or a no-preference value.
        candidate_status (Union[str, bool, None]): The candidate's habit; booleans map to "yes"/"no".

    Returns:
        int: 100 for an indifferent seeker when the habit is known (0 if unknown),
        100 for "occasionally" or an exact match, 1 otherwise.
    """
    if isinstance(candidate_status, bool):
        candidate_status = "yes" if candidate_status else "no"

    if is_no_preference(seeker_pref):
        return FULL_SCORE if candidate_status is not None else EMPTY_SCORE
    pref = (seeker_pref or "").strip().lower()
    if pref == "occasionally":
        return FULL_SCORE
    if candidate_status is not None and pref == candidate_status.lower():
        return FULL_SCORE
    return NO_MATCH_SCORE


def location_score(
    countries: Preference,
    states: Preference,
    candidate_country: Optional[str],
    candidate_state: Optional[str],
) -> Tuple[int, List[str]]:
    """
    Score where a candidate lives.

    Country and state are checked independently; either match gives 100 and
    each match contributes its own reason.

    Returns:
        Tuple[int, List[str]]: The location sub-score and the matched reasons.
    """
    score = NO_MATCH_SCORE
    reasons: List[str] = []

    if countries.include and candidate_country:
        if candidate_country.lower() in {c.lower() for c in countries.include}:
            score = FULL_SCORE
            reasons.append("Same country")

    if states.include and candidate_state:
        if candidate_state.lower() in {s.lower() for s in states.include}:
            score = FULL_SCORE
            reasons.append("Same state")

    return score, reasons


def marital_score(pref: Optional[str], candidate_status: Optional[str]) -> int:
    """Exact-equality marital status check; no preference always scores 100."""
    if is_no_preference(pref):
        return FULL_SCORE
    if isinstance(candidate_status, str) and pref == candidate_status:
        return FULL_SCORE
    return NO_MATCH_SCORE
