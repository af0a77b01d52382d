"""Visibility transitions of a match pair driven by social actions."""

from enum import Enum

from matrimatch.models.match import MatchVisibility


class VisibilityEvent(str, Enum):
    """Social actions that change whether a match pair is shown."""

    REQUEST_SENT = "request_sent"
    REQUEST_WITHDRAWN = "request_withdrawn"
    FAVORITED = "favorited"
    UNFAVORITED = "unfavorited"


def initial_state(has_active_request: bool, is_favorite: bool) -> MatchVisibility:
    """
    Visibility of a freshly materialized pair.

    A pending request hides the pair before a favorite does.
    """
    if has_active_request:
        return MatchVisibility.HIDDEN_REQUEST
    if is_favorite:
        return MatchVisibility.HIDDEN_FAVORITE
    return MatchVisibility.VISIBLE


def next_state(event: VisibilityEvent, has_active_request: bool, is_favorite: bool) -> MatchVisibility:
    """
    Compute the state a pair moves to when `event` happens.

    The result depends only on the event and the relationship that remains
    after it, never on the current state, so replaying an event is harmless.

    Args:
        event (VisibilityEvent): The social action.
        has_active_request (bool): Whether a non-withdrawn request still links the pair.
        is_favorite (bool): Whether the candidate is still in the user's favorites.

    Returns:
        MatchVisibility: The new state of both directions of the pair.
    """
    if event == VisibilityEvent.REQUEST_SENT:
        return MatchVisibility.HIDDEN_REQUEST
    if event == VisibilityEvent.FAVORITED:
        return MatchVisibility.HIDDEN_FAVORITE
    if event == VisibilityEvent.REQUEST_WITHDRAWN:
        return MatchVisibility.HIDDEN_FAVORITE if is_favorite else MatchVisibility.VISIBLE
    if event == VisibilityEvent.UNFAVORITED:
        return MatchVisibility.HIDDEN_REQUEST if has_active_request else MatchVisibility.VISIBLE
    raise ValueError(f"Unknown visibility event: {event}")
