"""Read access to the profile records consumed by the matching core."""

from typing import Dict, Iterable, List, Optional, Set

import sentry_sdk
from sqlalchemy import and_, or_, select

from matrimatch.models.profile import (
    CandidateProfile,
    EducationRecord,
    Expectations,
    HealthRecord,
    PersonalRecord,
    ProfessionRecord,
)
from matrimatch.models.user import ProfileReviewStatus, User
from matrimatch.utils.database import (
    ConnectionRequestDB,
    EducationDB,
    ExpectationDB,
    HealthDB,
    PersonalDB,
    ProfessionDB,
    ProfileDB,
    UserDB,
    session_scope,
)
from matrimatch.utils.errors import NotFoundError
from matrimatch.utils.logging import get_logger

logger = get_logger(__name__)

WITHDRAWN_STATUS = "withdrawn"


def find_user(user_id: str) -> Optional[User]:
    """
    Get a user by ID.

    Args:
        user_id (str): User ID.

    Returns:
        Optional[User]: The user, or None when no such user exists.
    """
    with session_scope("find_user") as session:
        row = session.get(UserDB, user_id)
        return User.model_validate(row) if row is not None else None


def get_user(user_id: str) -> User:
    """
    Get a user by ID.

    Raises:
        NotFoundError: If user not found.
    """
    user = find_user(user_id)
    if user is None:
        logger.warning("User not found", user_id=user_id)
        raise NotFoundError(f"User not found: {user_id}", details={"user_id": user_id})
    return user


def get_users(user_ids: Iterable[str]) -> Dict[str, User]:
    """Get multiple users by ID, keyed by ID. Unknown IDs are left out."""
    ids = list(set(user_ids))
    if not ids:
        return {}
    with session_scope("get_users") as session:
        rows = session.scalars(select(UserDB).where(UserDB.id.in_(ids))).all()
        return {row.id: User.model_validate(row) for row in rows}


def get_expectations(user_id: str) -> Expectations:
    """Get a user's partner preferences, falling back to defaults when none are stored."""
    with session_scope("get_expectations") as session:
        row = session.get(ExpectationDB, user_id)
        if row is None:
            return Expectations(user_id=user_id)
        return Expectations.model_validate(row)


def get_candidate_profiles(user_ids: Iterable[str]) -> Dict[str, CandidateProfile]:
    """
    Load the scoring attributes of many candidates at once.

    Args:
        user_ids (Iterable[str]): Candidate IDs.

    Returns:
        Dict[str, CandidateProfile]: One profile per requested ID; missing records stay None.
    """
    ids = list(set(user_ids))
    if not ids:
        return {}

    with sentry_sdk.start_span(op="profile.get_candidates", name="batch") as span:
        span.set_data("count", len(ids))
        with session_scope("get_candidate_profiles") as session:
            personals = {
                row.user_id: PersonalRecord.model_validate(row)
                for row in session.scalars(select(PersonalDB).where(PersonalDB.user_id.in_(ids)))
            }
            educations = {
                row.user_id: EducationRecord.model_validate(row)
                for row in session.scalars(select(EducationDB).where(EducationDB.user_id.in_(ids)))
            }
            professions = {
                row.user_id: ProfessionRecord.model_validate(row)
                for row in session.scalars(select(ProfessionDB).where(ProfessionDB.user_id.in_(ids)))
            }
            healths = {
                row.user_id: HealthRecord.model_validate(row)
                for row in session.scalars(select(HealthDB).where(HealthDB.user_id.in_(ids)))
            }

    return {
        uid: CandidateProfile(
            user_id=uid,
            personal=personals.get(uid),
            education=educations.get(uid),
            profession=professions.get(uid),
            health=healths.get(uid),
        )
        for uid in ids
    }


def get_candidate_profile(user_id: str) -> CandidateProfile:
    return get_candidate_profiles([user_id])[user_id]


def find_eligible_candidates(user: User) -> List[User]:
    """
    Find the candidate pool for a seeker.

    Candidates are eligible users of the opposite gender, excluding the seeker,
    users the seeker blocked and users who blocked the seeker.

    Args:
        user (User): The seeker.

    Returns:
        List[User]: Eligible candidates, oldest account first.
    """
    if user.gender is None:
        logger.debug("Seeker has no gender, no candidates", user_id=user.id)
        return []

    with session_scope("find_eligible_candidates") as session:
        rows = session.scalars(
            select(UserDB)
            .where(
                UserDB.id != user.id,
                UserDB.gender == user.gender.opposite.value,
                UserDB.is_active.is_(True),
                UserDB.is_deleted.is_(False),
                or_(UserDB.is_visible.is_(None), UserDB.is_visible.is_(True)),
                UserDB.is_profile_approved.is_(True),
                UserDB.profile_review_status == ProfileReviewStatus.APPROVED.value,
            )
            .order_by(UserDB.created_at, UserDB.id)
        ).all()
        candidates = [User.model_validate(row) for row in rows]

    # Blocked lists are JSON arrays, filtered here to stay portable across backends
    return [c for c in candidates if not user.has_blocked(c.id) and not c.has_blocked(user.id)]


def get_eligible_user_ids() -> List[str]:
    """IDs of every user passing the eligibility predicate."""
    with session_scope("get_eligible_user_ids") as session:
        rows = session.scalars(
            select(UserDB)
            .where(
                UserDB.is_active.is_(True),
                UserDB.is_deleted.is_(False),
                UserDB.is_profile_approved.is_(True),
                UserDB.profile_review_status == ProfileReviewStatus.APPROVED.value,
            )
            .order_by(UserDB.created_at, UserDB.id)
        ).all()
        return [row.id for row in rows if User.model_validate(row).is_match_eligible()]


def get_requested_user_ids(user_id: str, candidate_ids: Optional[Iterable[str]] = None) -> Set[str]:
    """
    IDs of users sharing a non-withdrawn connection request with `user_id`, in either direction.

    Args:
        user_id (str): The user.
        candidate_ids (Optional[Iterable[str]]): Restrict the lookup to these users.
    """
    sent = [ConnectionRequestDB.sender_id == user_id]
    received = [ConnectionRequestDB.receiver_id == user_id]
    if candidate_ids is not None:
        ids = list(set(candidate_ids))
        if not ids:
            return set()
        sent.append(ConnectionRequestDB.receiver_id.in_(ids))
        received.append(ConnectionRequestDB.sender_id.in_(ids))

    with session_scope("get_requested_user_ids") as session:
        rows = session.scalars(
            select(ConnectionRequestDB).where(
                or_(and_(*sent), and_(*received)),
                ConnectionRequestDB.status != WITHDRAWN_STATUS,
            )
        ).all()
        return {row.receiver_id if row.sender_id == user_id else row.sender_id for row in rows}


def has_active_request(user_id: str, candidate_id: str) -> bool:
    return candidate_id in get_requested_user_ids(user_id, [candidate_id])


def get_favorite_ids(user_id: str) -> Set[str]:
    with session_scope("get_favorite_ids") as session:
        row = session.get(ProfileDB, user_id)
        if row is None or not row.favorite_profiles:
            return set()
        return {str(fid) for fid in row.favorite_profiles}


def is_favorite(user_id: str, candidate_id: str) -> bool:
    return candidate_id in get_favorite_ids(user_id)
