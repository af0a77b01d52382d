"""Services package for the MatriMatch matching core."""

from matrimatch.services.match_service import (
    backfill_matches,
    get_match_count,
    get_user_matches,
    hide_match_for_favorite,
    hide_match_for_request,
    process_new_user_matches,
    recalculate_user_matches,
    show_match_for_unfavorite,
    show_match_for_withdraw,
)
from matrimatch.services.recommendation_service import compute_match_score, find_matching_users, score_pair

__all__ = [
    "backfill_matches",
    "compute_match_score",
    "find_matching_users",
    "get_match_count",
    "get_user_matches",
    "hide_match_for_favorite",
    "hide_match_for_request",
    "process_new_user_matches",
    "recalculate_user_matches",
    "score_pair",
    "show_match_for_unfavorite",
    "show_match_for_withdraw",
]
