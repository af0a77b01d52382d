"""Match materialization, visibility updates and match queries."""

from contextlib import nullcontext
from datetime import datetime
from typing import ContextManager, Dict, Iterable, List, Optional, Tuple

import sentry_sdk
from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.orm import Session

from matrimatch.config import settings
from matrimatch.models.match import Match, MatchPage, MatchProcessingResult, MatchVisibility, ScoreDetail
from matrimatch.services import profile_service
from matrimatch.services.match_visibility import VisibilityEvent, initial_state, next_state
from matrimatch.services.recommendation_service import PairContext, compute_match_score
from matrimatch.utils.cache import ScoreCache
from matrimatch.utils.database import MatchDB, session_scope, utcnow
from matrimatch.utils.errors import DatabaseError, MatrimatchError
from matrimatch.utils.logging import get_logger, log_error

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 50

# (candidate_id, score, visibility) awaiting persistence
PendingPair = Tuple[str, ScoreDetail, MatchVisibility]


def _lock(user_id: str, cache: Optional[ScoreCache]) -> ContextManager[bool]:
    if cache is None:
        return nullcontext(True)
    return cache.user_lock(user_id, timeout=settings.MATCH_LOCK_TIMEOUT)


def _pair_filter(user_id: str, candidate_id: str):  # type: ignore[no-untyped-def]
    return or_(
        and_(MatchDB.user_id == user_id, MatchDB.candidate_id == candidate_id),
        and_(MatchDB.user_id == candidate_id, MatchDB.candidate_id == user_id),
    )


def count_visible_matches(user_id: str) -> int:
    """Number of matches currently shown to the user."""
    with session_scope("count_visible_matches") as session:
        return session.scalar(
            select(func.count()).select_from(MatchDB).where(MatchDB.user_id == user_id, MatchDB.is_visible.is_(True))
        ) or 0


def get_visible_match_counts(user_ids: Iterable[str]) -> Dict[str, int]:
    """Visible match counts for many users; users without matches are left out."""
    ids = list(set(user_ids))
    if not ids:
        return {}
    with session_scope("get_visible_match_counts") as session:
        rows = session.execute(
            select(MatchDB.user_id, func.count())
            .where(MatchDB.user_id.in_(ids), MatchDB.is_visible.is_(True))
            .group_by(MatchDB.user_id)
        ).all()
        return {user_id: count for user_id, count in rows}


def get_match_count(user_id: str) -> int:
    """Number of match rows owned by the user, hidden ones included."""
    with session_scope("get_match_count") as session:
        return session.scalar(select(func.count()).select_from(MatchDB).where(MatchDB.user_id == user_id)) or 0


def _upsert_pair(
    session: Session,
    user_id: str,
    candidate_id: str,
    score_detail: ScoreDetail,
    visibility: MatchVisibility,
    now: datetime,
) -> None:
    """Write both directions of a pair with the same score and visibility."""
    hidden_reason = visibility.hidden_reason
    for owner, other in ((user_id, candidate_id), (candidate_id, user_id)):
        row = session.scalars(
            select(MatchDB).where(MatchDB.user_id == owner, MatchDB.candidate_id == other)
        ).first()
        if row is None:
            row = MatchDB(user_id=owner, candidate_id=other, created_at=now)
            session.add(row)
        row.score = score_detail.score
        row.reasons = list(score_detail.reasons)
        row.is_visible = visibility.is_visible
        row.hidden_reason = hidden_reason.value if hidden_reason else None
        row.last_calculated_at = now
        row.updated_at = now


def _write_pairs(user_id: str, pairs: List[PendingPair]) -> int:
    """
    Persist pending pairs, returning how many were written.

    The whole batch is tried in one transaction first. If it fails, every pair
    is retried in its own transaction so one bad pair cannot sink the others.
    """
    if not pairs:
        return 0

    now = utcnow()
    try:
        with session_scope("write_match_pairs") as session:
            for candidate_id, score_detail, visibility in pairs:
                _upsert_pair(session, user_id, candidate_id, score_detail, visibility, now)
        return len(pairs)
    except DatabaseError as e:
        logger.error("Batch match write failed, retrying per pair", user_id=user_id, pairs=len(pairs), error=str(e))

    written = 0
    for candidate_id, score_detail, visibility in pairs:
        try:
            with session_scope("write_match_pair") as session:
                _upsert_pair(session, user_id, candidate_id, score_detail, visibility, now)
            written += 1
        except DatabaseError as e:
            logger.error("Failed to write match pair", user_id=user_id, candidate_id=candidate_id, error=str(e))
    return written


def _materialize(user_id: str, cache: Optional[ScoreCache]) -> MatchProcessingResult:
    max_matches = settings.MAX_MATCHES_PER_USER

    user = profile_service.find_user(user_id)
    if user is None:
        logger.warning("User not found, no matches processed", user_id=user_id)
        return MatchProcessingResult()
    if not user.is_match_eligible():
        logger.info("User is not eligible for matching", user_id=user_id)
        return MatchProcessingResult()

    visible_count = count_visible_matches(user_id)
    if visible_count >= max_matches:
        logger.info("User already at match cap", user_id=user_id, visible=visible_count, max_matches=max_matches)
        return MatchProcessingResult(skipped=visible_count)
    remaining_slots = max_matches - visible_count

    candidates = profile_service.find_eligible_candidates(user)
    if not candidates:
        logger.info("No candidates found", user_id=user_id)
        return MatchProcessingResult()

    candidate_ids = [c.id for c in candidates]
    expectations = profile_service.get_expectations(user_id)
    profiles = profile_service.get_candidate_profiles(candidate_ids)
    requested = profile_service.get_requested_user_ids(user_id, candidate_ids)
    favorites = profile_service.get_favorite_ids(user_id)
    candidate_counts = get_visible_match_counts(candidate_ids)

    pending: List[PendingPair] = []
    visible_planned = 0
    skipped = 0

    for candidate in candidates:
        if candidate_counts.get(candidate.id, 0) >= max_matches:
            skipped += 1
            continue

        visibility = initial_state(candidate.id in requested, candidate.id in favorites)
        if visibility.is_visible and visible_planned >= remaining_slots:
            skipped += 1
            continue

        context = PairContext(
            seeker=user,
            expectations=expectations,
            candidate=candidate,
            profile=profiles[candidate.id],
        )
        score_detail = compute_match_score(user_id, candidate.id, cache=cache, preloaded=context)
        if score_detail is None or score_detail.score < settings.MATCHING_SCORE:
            continue

        pending.append((candidate.id, score_detail, visibility))
        if visibility.is_visible:
            visible_planned += 1

    written = _write_pairs(user_id, pending)
    if written:
        logger.info("Match pairs created", user_id=user_id, pairs=written, entries=written * 2)

    if cache is not None:
        cache.invalidate_user_match_scores(user_id)

    return MatchProcessingResult(created=written * 2, skipped=skipped)


def process_new_user_matches(user_id: str, cache: Optional[ScoreCache] = None) -> MatchProcessingResult:
    """
    Materialize the matches of a newly eligible user.

    Scores every eligible opposite-gender candidate and stores both directions
    of each pair scoring at least MATCHING_SCORE. Visible matches are capped at
    MAX_MATCHES_PER_USER on both sides; pairs already linked by a connection
    request or a favorite are stored hidden and do not use up the cap.

    Args:
        user_id (str): The newly eligible user.
        cache (Optional[ScoreCache]): Score cache, also used for the per-user lock.

    Returns:
        MatchProcessingResult: Rows created (two per pair) and candidates skipped.

    Raises:
        DatabaseError: If reading the candidate pool fails.
    """
    with sentry_sdk.start_span(op="match.process_new_user", name=user_id) as span:
        with _lock(user_id, cache) as acquired:
            if not acquired:
                logger.info("Match processing already running for user", user_id=user_id)
                span.set_data("status", "locked")
                return MatchProcessingResult()

            try:
                result = _materialize(user_id, cache)
            except MatrimatchError as e:
                log_error(logger, e, "Match processing failed", {"user_id": user_id})
                raise

        span.set_data("created", result.created)
        span.set_data("skipped", result.skipped)
        return result


def recalculate_user_matches(user_id: str, cache: Optional[ScoreCache] = None) -> MatchProcessingResult:
    """
    Rebuild a user's matches after a profile change.

    Deletes every match row touching the user, drops their cached scores and
    materializes again. Running it twice without other changes yields the
    same match set.
    """
    with sentry_sdk.start_span(op="match.recalculate", name=user_id) as span:
        with _lock(user_id, cache) as acquired:
            if not acquired:
                logger.info("Match processing already running for user", user_id=user_id)
                span.set_data("status", "locked")
                return MatchProcessingResult()

            try:
                with session_scope("delete_user_matches") as session:
                    deleted = session.execute(
                        delete(MatchDB).where(or_(MatchDB.user_id == user_id, MatchDB.candidate_id == user_id))
                    ).rowcount
                logger.info("Deleted user matches for recalculation", user_id=user_id, deleted=deleted)

                if cache is not None:
                    cache.invalidate_user_match_scores(user_id)

                result = _materialize(user_id, cache)
            except MatrimatchError as e:
                log_error(logger, e, "Match recalculation failed", {"user_id": user_id})
                raise

        span.set_data("created", result.created)
        return result


def backfill_matches(cache: Optional[ScoreCache] = None) -> MatchProcessingResult:
    """
    Run materialization for every eligible user.

    A failing user is logged and the backfill moves on.

    Returns:
        MatchProcessingResult: Totals over all users.
    """
    total = MatchProcessingResult()
    user_ids = profile_service.get_eligible_user_ids()
    failed = 0

    with sentry_sdk.start_span(op="match.backfill", name="all") as span:
        for user_id in user_ids:
            try:
                result = process_new_user_matches(user_id, cache=cache)
            except MatrimatchError:
                failed += 1
                continue
            except Exception as e:
                log_error(logger, e, "Unexpected failure during match backfill", {"user_id": user_id})
                failed += 1
                continue
            total.created += result.created
            total.skipped += result.skipped

        logger.info(
            "Match backfill finished",
            users=len(user_ids),
            failed=failed,
            created=total.created,
            skipped=total.skipped,
        )
        span.set_data("users", len(user_ids))
        span.set_data("created", total.created)
    return total


def get_user_matches(user_id: str, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> MatchPage:
    """
    Get a page of the user's visible matches, newest first.

    Args:
        user_id (str): Match list owner.
        page (int): 1-based page number; values below 1 mean the first page.
        limit (int): Page size, clamped to 1-50.

    Returns:
        MatchPage: The matches plus paging totals.
    """
    page = max(1, page)
    limit = max(1, min(MAX_PAGE_SIZE, limit))

    with session_scope("get_user_matches") as session:
        visible = and_(MatchDB.user_id == user_id, MatchDB.is_visible.is_(True))
        total = session.scalar(select(func.count()).select_from(MatchDB).where(visible)) or 0
        rows = session.scalars(
            select(MatchDB)
            .where(visible)
            .order_by(MatchDB.created_at.desc(), MatchDB.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()
        matches = [Match.model_validate(row) for row in rows]

    return MatchPage(matches=matches, total=total, page=page, limit=limit)


def get_pair(user_id: str, candidate_id: str) -> List[Match]:
    """Both stored directions of a pair, the user's own first."""
    with session_scope("get_pair") as session:
        rows = session.scalars(select(MatchDB).where(_pair_filter(user_id, candidate_id))).all()
        matches = [Match.model_validate(row) for row in rows]
    return sorted(matches, key=lambda m: m.user_id != user_id)


def _apply_visibility(user_id: str, candidate_id: str, event: VisibilityEvent) -> Optional[MatchVisibility]:
    """
    Move an existing pair to the state `event` leads to.

    Both directions change in one transaction. Pairs that were never
    materialized are left alone. Failures are logged and never raised so the
    social action that triggered the change still succeeds.
    """
    with sentry_sdk.start_span(op="match.visibility", name=event.value) as span:
        try:
            has_request = (
                profile_service.has_active_request(user_id, candidate_id)
                if event == VisibilityEvent.UNFAVORITED
                else False
            )
            favorite = (
                profile_service.is_favorite(user_id, candidate_id)
                if event == VisibilityEvent.REQUEST_WITHDRAWN
                else False
            )
            state = next_state(event, has_request, favorite)
            hidden_reason = state.hidden_reason

            with session_scope("update_match_visibility") as session:
                rows = session.scalars(select(MatchDB).where(_pair_filter(user_id, candidate_id))).all()
                if not rows:
                    logger.debug(
                        "No match pair to update", user_id=user_id, candidate_id=candidate_id, event=event.value
                    )
                    span.set_data("status", "no_match")
                    return None

                now = utcnow()
                for row in rows:
                    row.is_visible = state.is_visible
                    row.hidden_reason = hidden_reason.value if hidden_reason else None
                    row.updated_at = now

            logger.info(
                "Match visibility updated",
                user_id=user_id,
                candidate_id=candidate_id,
                event=event.value,
                state=state.value,
            )
            span.set_data("state", state.value)
            return state
        except Exception as e:
            logger.error(
                "Failed to update match visibility, pair may be inconsistent",
                user_id=user_id,
                candidate_id=candidate_id,
                event=event.value,
                error=str(e),
            )
            span.set_status("internal_error")
            return None


def hide_match_for_request(user_id: str, candidate_id: str) -> Optional[MatchVisibility]:
    """Hide a pair once a connection request is sent."""
    return _apply_visibility(user_id, candidate_id, VisibilityEvent.REQUEST_SENT)


def show_match_for_withdraw(user_id: str, candidate_id: str) -> Optional[MatchVisibility]:
    """Show a pair again after a request is withdrawn, unless the candidate is a favorite."""
    return _apply_visibility(user_id, candidate_id, VisibilityEvent.REQUEST_WITHDRAWN)


def hide_match_for_favorite(user_id: str, candidate_id: str) -> Optional[MatchVisibility]:
    return _apply_visibility(user_id, candidate_id, VisibilityEvent.FAVORITED)


def show_match_for_unfavorite(user_id: str, candidate_id: str) -> Optional[MatchVisibility]:
    """Show a pair again after unfavoriting, unless an active request still links it."""
    return _apply_visibility(user_id, candidate_id, VisibilityEvent.UNFAVORITED)
