"""Match models for the MatriMatch matching core."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class HiddenReason(str, Enum):
    """
    Why a persisted match is hidden from its owner's match list.

    A pending connection request or a favorite already surfaces the candidate
    elsewhere, so the match list does not repeat it.
    """

    REQUEST = "request"
    FAVORITE = "favorite"


class MatchVisibility(str, Enum):
    """Visibility state of a match pair."""

    VISIBLE = "visible"
    HIDDEN_REQUEST = "hidden:request"
    HIDDEN_FAVORITE = "hidden:favorite"

    @property
    def is_visible(self) -> bool:
        return self is MatchVisibility.VISIBLE

    @property
    def hidden_reason(self) -> Optional[HiddenReason]:
        if self is MatchVisibility.HIDDEN_REQUEST:
            return HiddenReason.REQUEST
        if self is MatchVisibility.HIDDEN_FAVORITE:
            return HiddenReason.FAVORITE
        return None

    @classmethod
    def from_flags(cls, is_visible: bool, hidden_reason: Optional[str]) -> "MatchVisibility":
        if is_visible:
            return cls.VISIBLE
        if hidden_reason == HiddenReason.FAVORITE.value:
            return cls.HIDDEN_FAVORITE
        return cls.HIDDEN_REQUEST


class ScoreDetail(BaseModel):
    """
    Aggregated compatibility score between a seeker and a candidate.

    `breakdown` holds the per-factor sub-scores (0-100) used to build the
    score, including the unweighted diet factor.
    """

    score: int = Field(ge=1, le=100)
    reasons: List[str] = Field(default_factory=list)
    breakdown: Dict[str, int] = Field(default_factory=dict)


class CachedMatchScore(BaseModel):
    """Cache entry for a seeker/candidate pair."""

    score_detail: ScoreDetail = Field(alias="scoreDetail")
    user_data: Optional[Dict[str, Any]] = Field(default=None, alias="userData")

    model_config = ConfigDict(populate_by_name=True)


class Match(BaseModel):
    """
    Match model.

    One direction of a materialized match pair: the owner (`user_id`) sees
    `candidate_id` in their match list while `is_visible` is True.
    """

    id: Optional[int] = None
    user_id: str
    candidate_id: str
    score: int = Field(ge=1, le=100)
    reasons: List[str] = Field(default_factory=list)
    is_visible: bool = True
    hidden_reason: Optional[HiddenReason] = None
    last_calculated_at: datetime = Field(default_factory=datetime.now)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    model_config = ConfigDict(from_attributes=True)

    @property
    def visibility(self) -> MatchVisibility:
        return MatchVisibility.from_flags(self.is_visible, self.hidden_reason.value if self.hidden_reason else None)


class MatchPage(BaseModel):
    """A page of a user's visible matches, newest first."""

    matches: List[Match] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 20

    @property
    def total_pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0

    @property
    def has_more(self) -> bool:
        return self.page * self.limit < self.total


class MatchProcessingResult(BaseModel):
    """Outcome of a materialization run. `created` counts match rows, two per pair."""

    created: int = 0
    skipped: int = 0


class Recommendation(BaseModel):
    """A real-time recommendation: a candidate summary plus its score."""

    user_id: str
    user: Dict[str, Any] = Field(default_factory=dict)
    score_detail: ScoreDetail
