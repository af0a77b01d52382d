"""create matching tables

Revision ID: 3b7c1e2d9f40
Revises:
Create Date: 2026-10-19 09:12:44.201855

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b7c1e2d9f40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(50), primary_key=True),
        sa.Column("first_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("gender", sa.String(20), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_visible", sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column("is_profile_approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("profile_review_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("blocked_users", sa.JSON(), nullable=True, server_default=sa.text("'[]'")),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_users_gender", "users", ["gender"])

    op.create_table(
        "user_expectations",
        sa.Column("user_id", sa.String(50), sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("age_from", sa.Integer(), nullable=True),
        sa.Column("age_to", sa.Integer(), nullable=True),
        sa.Column("community", sa.JSON(), nullable=True),
        sa.Column("profession", sa.JSON(), nullable=True),
        sa.Column("education_level", sa.JSON(), nullable=True),
        sa.Column("diet", sa.JSON(), nullable=True),
        sa.Column("living_in_country", sa.JSON(), nullable=True),
        sa.Column("living_in_state", sa.JSON(), nullable=True),
        sa.Column("marital_status", sa.String(50), nullable=True),
        sa.Column("alcohol", sa.String(20), nullable=True),
    )

    op.create_table(
        "user_personals",
        sa.Column("user_id", sa.String(50), sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("religion", sa.String(50), nullable=True),
        sa.Column("sub_caste", sa.String(100), nullable=True),
        sa.Column("residing_country", sa.String(100), nullable=True),
        sa.Column("state", sa.String(100), nullable=True),
        sa.Column("married_status", sa.String(50), nullable=True),
    )

    op.create_table(
        "user_educations",
        sa.Column("user_id", sa.String(50), sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("highest_education", sa.String(100), nullable=True),
    )

    op.create_table(
        "user_professions",
        sa.Column("user_id", sa.String(50), sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("occupation", sa.String(100), nullable=True),
    )

    op.create_table(
        "user_health",
        sa.Column("user_id", sa.String(50), sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("diet", sa.String(50), nullable=True),
        sa.Column("is_alcoholic", sa.Boolean(), nullable=True),
    )

    op.create_table(
        "profiles",
        sa.Column("user_id", sa.String(50), sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("favorite_profiles", sa.JSON(), nullable=True, server_default=sa.text("'[]'")),
    )

    op.create_table(
        "connection_requests",
        sa.Column("id", sa.String(50), primary_key=True),
        sa.Column("sender_id", sa.String(50), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("receiver_id", sa.String(50), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_connection_requests_sender_id", "connection_requests", ["sender_id"])
    op.create_index("ix_connection_requests_receiver_id", "connection_requests", ["receiver_id"])

    op.create_table(
        "matches",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(50), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("candidate_id", sa.String(50), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("reasons", sa.JSON(), nullable=True, server_default=sa.text("'[]'")),
        sa.Column("is_visible", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("hidden_reason", sa.String(20), nullable=True),
        sa.Column("last_calculated_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("user_id", "candidate_id", name="uq_matches_user_candidate"),
    )
    op.create_index("ix_matches_user_id", "matches", ["user_id"])
    op.create_index("ix_matches_candidate_id", "matches", ["candidate_id"])
    op.create_index("ix_matches_user_visible_score", "matches", ["user_id", "is_visible", "score"])
    op.create_index("ix_matches_candidate_visible", "matches", ["candidate_id", "is_visible"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_matches_candidate_visible", table_name="matches")
    op.drop_index("ix_matches_user_visible_score", table_name="matches")
    op.drop_index("ix_matches_candidate_id", table_name="matches")
    op.drop_index("ix_matches_user_id", table_name="matches")
    op.drop_table("matches")
    op.drop_index("ix_connection_requests_receiver_id", table_name="connection_requests")
    op.drop_index("ix_connection_requests_sender_id", table_name="connection_requests")
    op.drop_table("connection_requests")
    op.drop_table("profiles")
    op.drop_table("user_health")
    op.drop_table("user_professions")
    op.drop_table("user_educations")
    op.drop_table("user_personals")
    op.drop_table("user_expectations")
    op.drop_index("ix_users_gender", table_name="users")
    op.drop_table("users")
