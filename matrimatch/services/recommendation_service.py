"""Compatibility scoring and real-time recommendations for the MatriMatch matching core."""

from typing import Any, Dict, List, Optional, Tuple

import sentry_sdk
from pydantic import BaseModel

from matrimatch.config import settings
from matrimatch.models.match import Recommendation, ScoreDetail
from matrimatch.models.profile import CandidateProfile, Expectations
from matrimatch.models.user import User
from matrimatch.services import profile_service, scoring
from matrimatch.utils.cache import ScoreCache
from matrimatch.utils.errors import MatchingError
from matrimatch.utils.logging import get_logger

logger = get_logger(__name__)

# Factor weights, summing to 100
WEIGHTS: Dict[str, int] = {
    "age": 20,
    "community": 20,
    "location": 15,
    "marital_status": 15,
    "education": 10,
    "alcohol": 10,
    "profession": 10,
}

AGE_REASON_THRESHOLD = 80
EDUCATION_REASON_THRESHOLD = 80


class PairContext(BaseModel):
    """Everything the scorer reads for one seeker/candidate pair."""

    seeker: User
    expectations: Expectations
    candidate: User
    profile: CandidateProfile


def score_pair(
    seeker: User,
    expectations: Expectations,
    candidate: User,
    profile: CandidateProfile,
) -> ScoreDetail:
    """
    Calculate the compatibility of a candidate for a seeker.

    Each factor is scored 0-100, weighted, summed and divided by 100; the
    result is rounded and clamped to 1-100. Factors that pass their threshold
    contribute a human-readable reason. The function is pure.

    Args:
        seeker (User): The user the score is computed for.
        expectations (Expectations): The seeker's partner preferences.
        candidate (User): The prospective match.
        profile (CandidateProfile): The candidate's scoring attributes.

    Returns:
        ScoreDetail: Score, deduplicated reasons and the per-factor breakdown.

    Raises:
        MatchingError: If score calculation fails due to an unexpected error.
    """
    try:
        reasons: List[str] = []

        age = scoring.age_score(expectations.age_from, expectations.age_to, candidate.age)
        if age >= AGE_REASON_THRESHOLD:
            reasons.append("Age within preferred range")

        community = scoring.community_score(expectations.community, profile.communities)
        if community > scoring.NO_MATCH_SCORE:
            reasons.append("Community preference matched")

        location, location_reasons = scoring.location_score(
            expectations.living_in_country,
            expectations.living_in_state,
            profile.country,
            profile.state,
        )
        reasons.extend(location_reasons)

        marital = scoring.marital_score(expectations.marital_status, profile.marital_status)
        if marital > scoring.NO_MATCH_SCORE:
            reasons.append("Marital status match")

        education = scoring.education_score(expectations.education_level, profile.education_level)
        if education >= EDUCATION_REASON_THRESHOLD:
            reasons.append("Education matches")

        alcohol = scoring.alcohol_score(expectations.alcohol, profile.alcohol_status)
        if alcohol > scoring.NO_MATCH_SCORE:
            reasons.append("Alcohol preference matches")

        profession = scoring.profession_score(expectations.profession, profile.professions)
        if profession > scoring.NO_MATCH_SCORE:
            reasons.append("Profession preference matched")

        breakdown = {
            "age": age,
            "community": community,
            "location": location,
            "marital_status": marital,
            "education": education,
            "alcohol": alcohol,
            "profession": profession,
        }
        weighted_sum = sum(breakdown[factor] * weight for factor, weight in WEIGHTS.items())
        total = max(1, min(100, scoring.round_half_up(weighted_sum / 100)))

        # Informational only, not weighted
        breakdown["diet"] = scoring.diet_score(expectations.diet, profile.diets)

        return ScoreDetail(score=total, reasons=list(dict.fromkeys(reasons)), breakdown=breakdown)
    except Exception as e:
        logger.error(
            "Failed to calculate match score",
            error=str(e),
            seeker_id=seeker.id,
            candidate_id=candidate.id,
        )
        raise MatchingError(
            "Failed to calculate match score",
            details={"error": str(e), "seeker_id": seeker.id, "candidate_id": candidate.id},
        ) from e


def _load_users(seeker_id: str, candidate_id: str) -> Optional[Tuple[User, User]]:
    users = profile_service.get_users([seeker_id, candidate_id])
    seeker = users.get(seeker_id)
    candidate = users.get(candidate_id)
    if seeker is None or candidate is None:
        return None
    return seeker, candidate


def _build_context(seeker: User, candidate: User) -> PairContext:
    return PairContext(
        seeker=seeker,
        expectations=profile_service.get_expectations(seeker.id),
        candidate=candidate,
        profile=profile_service.get_candidate_profile(candidate.id),
    )


def compute_match_score(
    seeker_id: str,
    candidate_id: str,
    cache: Optional[ScoreCache] = None,
    preloaded: Optional[PairContext] = None,
) -> Optional[ScoreDetail]:
    """
    Compute the score of a candidate for a seeker.

    Both users must exist before a cached score is served, so a deleted user
    never keeps a score. On a miss the pair is scored and the result cached.

    Args:
        seeker_id (str): Seeker user ID.
        candidate_id (str): Candidate user ID.
        cache (Optional[ScoreCache]): Score cache; None disables caching.
        preloaded (Optional[PairContext]): Records already read by a batch caller.

    Returns:
        Optional[ScoreDetail]: The score, or None if either user does not exist.
    """
    with sentry_sdk.start_span(op="match.compute_score", name=f"{seeker_id} -> {candidate_id}") as span:
        pair = (preloaded.seeker, preloaded.candidate) if preloaded else _load_users(seeker_id, candidate_id)
        if pair is None:
            logger.debug("Score skipped, user missing", seeker_id=seeker_id, candidate_id=candidate_id)
            span.set_data("status", "not_found")
            return None

        if cache is not None:
            cached = cache.get_match_score(seeker_id, candidate_id)
            if cached is not None:
                span.set_data("source", "cache")
                return cached.score_detail

        context = preloaded or _build_context(*pair)

        detail = score_pair(context.seeker, context.expectations, context.candidate, context.profile)

        if cache is not None:
            cache.set_match_score(seeker_id, candidate_id, detail)

        span.set_data("source", "computed")
        span.set_data("score", detail.score)
        return detail


def summarize_candidate(candidate: User, profile: CandidateProfile) -> Dict[str, Any]:
    """Listing summary of a candidate shown next to a recommendation."""
    personal = profile.personal
    return {
        "full_name": candidate.full_name,
        "is_active": candidate.is_active,
        "age": candidate.age,
        "education": profile.education_level,
        "country": personal.residing_country if personal else None,
        "state": personal.state if personal else None,
        "married_status": personal.married_status if personal else None,
        "religion": personal.religion if personal else None,
        "job_title": profile.profession.occupation if profile.profession else None,
    }


def find_matching_users(
    seeker_id: str,
    min_score: Optional[int] = None,
    cache: Optional[ScoreCache] = None,
) -> List[Recommendation]:
    """
    Score every eligible candidate for a seeker in real time.

    Unlike materialization nothing is persisted; the match cap does not apply.

    Args:
        seeker_id (str): Seeker user ID.
        min_score (Optional[int]): Minimum score to include; defaults to MATCHING_SCORE.
        cache (Optional[ScoreCache]): Score cache; scores are cached with the candidate summary.

    Returns:
        List[Recommendation]: Recommendations sorted by score, best first.
    """
    threshold = settings.MATCHING_SCORE if min_score is None else min_score

    with sentry_sdk.start_span(op="match.find_matching_users", name=seeker_id) as span:
        seeker = profile_service.find_user(seeker_id)
        if seeker is None:
            logger.warning("Seeker not found", seeker_id=seeker_id)
            return []

        candidates = profile_service.find_eligible_candidates(seeker)
        if not candidates:
            span.set_data("count", 0)
            return []

        expectations = profile_service.get_expectations(seeker_id)
        profiles = profile_service.get_candidate_profiles(c.id for c in candidates)

        recommendations: List[Recommendation] = []
        for candidate in candidates:
            profile = profiles[candidate.id]
            cached = cache.get_match_score(seeker_id, candidate.id) if cache is not None else None

            if cached is not None and cached.user_data is not None:
                detail, summary = cached.score_detail, cached.user_data
            else:
                detail = score_pair(seeker, expectations, candidate, profile)
                summary = summarize_candidate(candidate, profile)
                if cache is not None:
                    cache.set_match_score(seeker_id, candidate.id, detail, user_data=summary)

            if detail.score >= threshold:
                recommendations.append(Recommendation(user_id=candidate.id, user=summary, score_detail=detail))

        recommendations.sort(key=lambda r: r.score_detail.score, reverse=True)

        logger.info(
            "Matching users found",
            seeker_id=seeker_id,
            candidates=len(candidates),
            count=len(recommendations),
        )
        span.set_data("count", len(recommendations))
        return recommendations
