"""pytest configuration and fixtures."""

from datetime import date, datetime, timedelta
from typing import Any, Iterable, Optional
from unittest.mock import MagicMock

import pytest
from sqlalchemy import update

from matrimatch.config import settings
from matrimatch.utils.cache import ScoreCache
from matrimatch.utils.database import (
    ConnectionRequestDB,
    Database,
    EducationDB,
    ExpectationDB,
    HealthDB,
    MatchDB,
    PersonalDB,
    ProfessionDB,
    ProfileDB,
    UserDB,
    session_scope,
    utcnow,
)


@pytest.fixture(autouse=True)
def database(monkeypatch):
    """Give every test a fresh in-memory database."""
    monkeypatch.setattr(settings, "DATABASE_URL", "sqlite://")
    monkeypatch.setattr(settings, "MAX_MATCHES_PER_USER", 50)
    monkeypatch.setattr(settings, "MATCHING_SCORE", 70)
    Database.reset()
    Database.create_tables()
    yield
    Database.reset()


@pytest.fixture
def mock_redis():
    """A Redis client double that behaves like an empty keyspace."""
    client = MagicMock()
    client.get.return_value = None
    client.exists.return_value = 0
    client.scan.return_value = (0, [])
    client.lock.return_value.acquire.return_value = True
    return client


@pytest.fixture
def score_cache(mock_redis):
    return ScoreCache(mock_redis, match_score_ttl=3600, user_profile_ttl=86400, profile_view_ttl=86400)


# --- Record factories ---

_created = iter(range(1, 10_000))


def dob_for_age(age: int) -> date:
    """A date of birth giving exactly `age` whole years today."""
    return date(date.today().year - age, 1, 1)


def add_user(
    user_id: str,
    gender: str = "male",
    age: Optional[int] = 28,
    *,
    approved: bool = True,
    records: bool = True,
    **flags: Any,
) -> None:
    """
    Insert an eligible user, with personal, education, profession and health
    records unless `records` is False. Users are created in call order.
    """
    created_at = datetime(2024, 1, 1) + timedelta(minutes=next(_created))
    with session_scope("test_add_user") as session:
        session.add(
            UserDB(
                id=user_id,
                first_name=user_id.title(),
                last_name="Test",
                gender=gender,
                date_of_birth=dob_for_age(age) if age is not None else None,
                is_profile_approved=approved,
                profile_review_status="approved" if approved else "pending",
                created_at=created_at,
                **flags,
            )
        )
        if records:
            session.add(
                PersonalDB(
                    user_id=user_id,
                    religion="Hindu",
                    sub_caste="Patel",
                    residing_country="India",
                    state="Gujarat",
                    married_status="Never Married",
                )
            )
            session.add(EducationDB(user_id=user_id, highest_education="Masters"))
            session.add(ProfessionDB(user_id=user_id, occupation="Engineer"))
            session.add(HealthDB(user_id=user_id, diet="Vegetarian", is_alcoholic=False))


def add_expectations(user_id: str, **fields: Any) -> None:
    with session_scope("test_add_expectations") as session:
        session.add(ExpectationDB(user_id=user_id, **fields))


def add_request(sender_id: str, receiver_id: str, status: str = "pending") -> None:
    with session_scope("test_add_request") as session:
        session.add(
            ConnectionRequestDB(
                id=f"{sender_id}-{receiver_id}",
                sender_id=sender_id,
                receiver_id=receiver_id,
                status=status,
            )
        )


def withdraw_request(sender_id: str, receiver_id: str) -> None:
    with session_scope("test_withdraw_request") as session:
        session.execute(
            update(ConnectionRequestDB)
            .where(ConnectionRequestDB.sender_id == sender_id, ConnectionRequestDB.receiver_id == receiver_id)
            .values(status="withdrawn")
        )


def set_favorites(user_id: str, favorite_ids: Iterable[str]) -> None:
    with session_scope("test_set_favorites") as session:
        row = session.get(ProfileDB, user_id)
        if row is None:
            session.add(ProfileDB(user_id=user_id, favorite_profiles=list(favorite_ids)))
        else:
            row.favorite_profiles = list(favorite_ids)


def add_match_pair(
    user_id: str,
    candidate_id: str,
    score: int = 80,
    is_visible: bool = True,
    hidden_reason: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> None:
    """Insert both directions of a pair directly."""
    created_at = created_at or utcnow()
    with session_scope("test_add_match_pair") as session:
        for owner, other in ((user_id, candidate_id), (candidate_id, user_id)):
            session.add(
                MatchDB(
                    user_id=owner,
                    candidate_id=other,
                    score=score,
                    reasons=["Age within preferred range"],
                    is_visible=is_visible,
                    hidden_reason=hidden_reason,
                    created_at=created_at,
                )
            )


def all_matches() -> list:
    """Every stored match row as a comparable tuple."""
    with session_scope("test_all_matches") as session:
        rows = session.query(MatchDB).order_by(MatchDB.user_id, MatchDB.candidate_id).all()
        return [(r.user_id, r.candidate_id, r.score, tuple(r.reasons), r.is_visible, r.hidden_reason) for r in rows]
