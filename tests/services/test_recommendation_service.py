"""Tests for the match score aggregator and real-time recommendations."""

from unittest.mock import patch

import pytest

from matrimatch.models.match import CachedMatchScore, ScoreDetail
from matrimatch.models.profile import (
    CandidateProfile,
    EducationRecord,
    Expectations,
    HealthRecord,
    PersonalRecord,
    ProfessionRecord,
)
from matrimatch.models.user import User
from matrimatch.services.recommendation_service import (
    WEIGHTS,
    compute_match_score,
    find_matching_users,
    score_pair,
)
from matrimatch.utils.cache import MATCH_SCORE_CACHE_KEY
from tests.conftest import add_expectations, add_user, dob_for_age


@pytest.fixture
def seeker():
    return User(id="s1", first_name="Ravi", gender="male", date_of_birth=dob_for_age(30))


@pytest.fixture
def candidate():
    return User(id="c1", first_name="Asha", last_name="Patel", gender="female", date_of_birth=dob_for_age(28))


@pytest.fixture
def profile():
    return CandidateProfile(
        user_id="c1",
        personal=PersonalRecord(
            user_id="c1",
            religion="Hindu",
            sub_caste="Patel",
            residing_country="India",
            state="Gujarat",
            married_status="Never Married",
        ),
        education=EducationRecord(user_id="c1", highest_education="Masters"),
        profession=ProfessionRecord(user_id="c1", occupation="Engineer"),
        health=HealthRecord(user_id="c1", diet="Vegetarian", is_alcoholic=False),
    )


@pytest.fixture
def strict_expectations():
    return Expectations(
        user_id="s1",
        age_from=25,
        age_to=35,
        community=["Patel"],
        profession=["Engineer"],
        education_level=["Masters"],
        diet=["Vegetarian"],
        living_in_country=["India"],
        living_in_state=["Gujarat"],
        marital_status="Never Married",
        alcohol="no",
    )


def test_weights_sum_to_hundred():
    assert sum(WEIGHTS.values()) == 100


class TestScorePair:
    def test_perfect_match(self, seeker, strict_expectations, candidate, profile):
        detail = score_pair(seeker, strict_expectations, candidate, profile)

        assert detail.score == 100
        assert detail.reasons == [
            "Age within preferred range",
            "Community preference matched",
            "Same country",
            "Same state",
            "Marital status match",
            "Education matches",
            "Alcohol preference matches",
            "Profession preference matched",
        ]
        assert detail.breakdown["diet"] == 100

    def test_default_expectations(self, seeker, candidate, profile):
        # Location has no preference and scores 1; everything else scores 100
        detail = score_pair(seeker, Expectations(user_id="s1"), candidate, profile)

        assert detail.score == 85
        assert "Same country" not in detail.reasons
        assert detail.breakdown["location"] == 1

    def test_rounds_half_up(self, seeker, candidate, profile):
        expectations = Expectations(
            age_from=25,
            age_to=35,
            community=["Patel"],
            education_level=["Masters"],
            living_in_country=["USA"],
            marital_status="Divorced",
            alcohol="yes",
            profession=["Doctor"],
        )
        # 2000 + 2000 + 15 + 15 + 1000 + 10 + 10 = 5050
        detail = score_pair(seeker, expectations, candidate, profile)

        assert detail.score == 51

    def test_score_clamped_to_one(self, seeker):
        bare_candidate = User(id="c2", gender="female")
        expectations = Expectations(marital_status="Married", alcohol="yes", living_in_country=["India"])

        detail = score_pair(seeker, expectations, bare_candidate, CandidateProfile(user_id="c2"))

        assert detail.score == 1
        assert detail.reasons == []

    def test_exclusion_vetoes_community(self, seeker, candidate, profile):
        expectations = Expectations(community=["Shah", "not Patel"])

        detail = score_pair(seeker, expectations, candidate, profile)

        assert detail.breakdown["community"] == 1
        assert "Community preference matched" not in detail.reasons

    def test_deterministic(self, seeker, strict_expectations, candidate, profile):
        first = score_pair(seeker, strict_expectations, candidate, profile)
        second = score_pair(seeker, strict_expectations, candidate, profile)
        assert first == second

    def test_diet_does_not_change_score(self, seeker, candidate, profile):
        veg = score_pair(seeker, Expectations(diet=["Vegetarian"]), candidate, profile)
        non_veg = score_pair(seeker, Expectations(diet=["Non-Vegetarian"]), candidate, profile)

        assert veg.breakdown["diet"] == 100
        assert non_veg.breakdown["diet"] == 1
        assert veg.score == non_veg.score


class TestComputeMatchScore:
    def test_missing_user_returns_none(self):
        add_user("m1")
        assert compute_match_score("m1", "ghost") is None
        assert compute_match_score("ghost", "m1") is None

    def test_scores_stored_users(self):
        add_user("m1")
        add_user("f1", gender="female")

        detail = compute_match_score("m1", "f1")

        assert detail is not None
        assert detail.score == 85

    def test_uses_expectations(self):
        add_user("m1")
        add_user("f1", gender="female")
        add_expectations("m1", age_from=35, age_to=40)

        detail = compute_match_score("m1", "f1")

        # Candidate is 28, seven years below the range: age scores 30
        assert detail.breakdown["age"] == 30
        assert "Age within preferred range" not in detail.reasons

    def test_cache_hit_skips_scoring_reads(self, score_cache, mock_redis):
        add_user("m1")
        add_user("f1", gender="female")
        cached = CachedMatchScore(score_detail=ScoreDetail(score=77, reasons=["Same state"]))
        mock_redis.get.return_value = cached.model_dump_json(by_alias=True)

        with patch("matrimatch.services.recommendation_service._build_context") as mock_build:
            detail = compute_match_score("m1", "f1", cache=score_cache)

        mock_build.assert_not_called()
        mock_redis.get.assert_called_once_with(MATCH_SCORE_CACHE_KEY.format(seeker_id="m1", candidate_id="f1"))
        assert detail.score == 77

    def test_cached_entry_for_deleted_user_is_ignored(self, score_cache, mock_redis):
        add_user("m1")
        cached = CachedMatchScore(score_detail=ScoreDetail(score=90, reasons=[]))
        mock_redis.get.return_value = cached.model_dump_json(by_alias=True)

        assert compute_match_score("ghost1", "ghost2", cache=score_cache) is None
        assert compute_match_score("m1", "ghost2", cache=score_cache) is None
        mock_redis.get.assert_not_called()

    def test_cache_miss_stores_result(self, score_cache, mock_redis):
        add_user("m1")
        add_user("f1", gender="female")

        detail = compute_match_score("m1", "f1", cache=score_cache)

        mock_redis.set.assert_called_once()
        args, kwargs = mock_redis.set.call_args
        assert args[0] == "match_score:m1:f1"
        assert '"scoreDetail"' in args[1]
        assert kwargs["ex"] == 3600
        assert detail.score == 85

    def test_cache_outage_still_scores(self, score_cache, mock_redis):
        add_user("m1")
        add_user("f1", gender="female")
        mock_redis.get.side_effect = ConnectionError("redis down")
        mock_redis.set.side_effect = ConnectionError("redis down")

        detail = compute_match_score("m1", "f1", cache=score_cache)

        assert detail.score == 85


class TestFindMatchingUsers:
    def test_filters_by_score_and_sorts(self):
        add_user("m1")
        add_user("f1", gender="female")
        add_user("f2", gender="female", records=False)
        add_user("m2")

        results = find_matching_users("m1")

        assert [r.user_id for r in results] == ["f1"]
        assert results[0].score_detail.score == 85
        assert results[0].user["full_name"] == "F1 Test"
        assert results[0].user["country"] == "India"
        assert results[0].user["job_title"] == "Engineer"

    def test_min_score_override(self):
        add_user("m1")
        add_user("f2", gender="female", records=False)
        add_user("f1", gender="female")

        results = find_matching_users("m1", min_score=0)

        assert [r.user_id for r in results] == ["f1", "f2"]
        assert results[1].score_detail.score == 45

    def test_threshold_is_inclusive(self):
        add_user("m1")
        add_user("f1", gender="female")

        assert [r.user_id for r in find_matching_users("m1", min_score=85)] == ["f1"]
        assert find_matching_users("m1", min_score=86) == []

    def test_unknown_seeker(self):
        assert find_matching_users("ghost") == []

    def test_caches_with_user_data(self, score_cache, mock_redis):
        add_user("m1")
        add_user("f1", gender="female")

        find_matching_users("m1", cache=score_cache)

        args, _ = mock_redis.set.call_args
        assert '"userData"' in args[1]
