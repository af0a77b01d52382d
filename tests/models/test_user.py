"""Tests for User model."""

from datetime import date

import pytest

from matrimatch.models.user import Gender, ProfileReviewStatus, User, age_on


class TestUserModel:
    """Tests for User model."""

    @pytest.fixture
    def eligible_user(self):
        """Create an approved, active user."""
        return User(
            id="u1",
            first_name="Asha",
            last_name="Patel",
            gender=Gender.FEMALE,
            date_of_birth=date(1995, 6, 15),
            is_profile_approved=True,
            profile_review_status=ProfileReviewStatus.APPROVED.value,
        )

    def test_is_match_eligible(self, eligible_user):
        assert eligible_user.is_match_eligible() is True

    def test_unset_visibility_is_eligible(self, eligible_user):
        eligible_user.is_visible = None
        assert eligible_user.is_match_eligible() is True

    @pytest.mark.parametrize(
        "field, value",
        [
            ("is_active", False),
            ("is_deleted", True),
            ("is_visible", False),
            ("is_profile_approved", False),
            ("profile_review_status", "pending"),
            ("profile_review_status", None),
        ],
    )
    def test_is_match_eligible_flags(self, eligible_user, field, value):
        setattr(eligible_user, field, value)
        assert eligible_user.is_match_eligible() is False

    def test_full_name(self, eligible_user):
        assert eligible_user.full_name == "Asha Patel"
        assert User(id="u2", first_name="Ravi").full_name == "Ravi"

    def test_gender_normalization(self):
        assert User(id="u1", gender="MALE").gender == Gender.MALE
        assert User(id="u1", gender="other").gender is None
        assert Gender.MALE.opposite == Gender.FEMALE
        assert Gender.FEMALE.opposite == Gender.MALE

    def test_blocked_users(self):
        user = User(id="u1", blocked_users=[42, "u3"])
        assert user.blocked_users == ["42", "u3"]
        assert user.has_blocked("u3")
        assert not user.has_blocked("u4")
        assert User(id="u1", blocked_users=None).blocked_users == []

    def test_age_unknown(self):
        assert User(id="u1").age is None


def test_age_on_birthday_boundary():
    dob = date(1990, 6, 15)
    assert age_on(dob, date(2020, 6, 14)) == 29
    assert age_on(dob, date(2020, 6, 15)) == 30
