"""Database connection utilities and table models for the MatriMatch matching core."""

import threading
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Any, Iterator, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from matrimatch.utils.errors import ConfigurationError, DatabaseError
from matrimatch.utils.logging import get_logger

logger = get_logger(__name__)


def utcnow() -> datetime:
    """Get current UTC time (naive) to replace datetime.utcnow()."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


class UserDB(Base):
    """User account and eligibility flags, owned by the account subsystem."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    first_name: Mapped[str] = mapped_column(String(100), default="")
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, index=True)
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)
    is_visible: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True, default=True)
    is_profile_approved: Mapped[bool] = mapped_column(Boolean, default=False)
    profile_review_status: Mapped[str] = mapped_column(String(20), default="pending")
    blocked_users: Mapped[List[str]] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class ExpectationDB(Base):
    """Partner preferences. List-like columns keep whatever shape the profile editor stored."""

    __tablename__ = "user_expectations"

    user_id: Mapped[str] = mapped_column(String(50), ForeignKey("users.id"), primary_key=True)
    age_from: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    age_to: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    community: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    profession: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    education_level: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    diet: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    living_in_country: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    living_in_state: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    marital_status: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    alcohol: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)


class PersonalDB(Base):
    """Personal record of a user."""

    __tablename__ = "user_personals"

    user_id: Mapped[str] = mapped_column(String(50), ForeignKey("users.id"), primary_key=True)
    religion: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    sub_caste: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    residing_country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    married_status: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)


class EducationDB(Base):
    """Education record of a user."""

    __tablename__ = "user_educations"

    user_id: Mapped[str] = mapped_column(String(50), ForeignKey("users.id"), primary_key=True)
    highest_education: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)


class ProfessionDB(Base):
    """Profession record of a user."""

    __tablename__ = "user_professions"

    user_id: Mapped[str] = mapped_column(String(50), ForeignKey("users.id"), primary_key=True)
    occupation: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)


class HealthDB(Base):
    """Health and lifestyle record of a user."""

    __tablename__ = "user_health"

    user_id: Mapped[str] = mapped_column(String(50), ForeignKey("users.id"), primary_key=True)
    diet: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    is_alcoholic: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)


class ProfileDB(Base):
    """Public profile data; only the favorites list is read by the matching core."""

    __tablename__ = "profiles"

    user_id: Mapped[str] = mapped_column(String(50), ForeignKey("users.id"), primary_key=True)
    favorite_profiles: Mapped[List[str]] = mapped_column(JSON, default=list)


class ConnectionRequestDB(Base):
    """Connection request between two users."""

    __tablename__ = "connection_requests"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    sender_id: Mapped[str] = mapped_column(String(50), ForeignKey("users.id"), index=True)
    receiver_id: Mapped[str] = mapped_column(String(50), ForeignKey("users.id"), index=True)
    status: Mapped[str] = mapped_column(String(20), default="pending")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class MatchDB(Base):
    """One direction of a materialized match pair."""

    __tablename__ = "matches"
    __table_args__ = (
        UniqueConstraint("user_id", "candidate_id", name="uq_matches_user_candidate"),
        Index("ix_matches_user_visible_score", "user_id", "is_visible", "score"),
        Index("ix_matches_candidate_visible", "candidate_id", "is_visible"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(50), ForeignKey("users.id"), index=True)
    candidate_id: Mapped[str] = mapped_column(String(50), ForeignKey("users.id"), index=True)
    score: Mapped[int] = mapped_column(Integer)
    reasons: Mapped[List[str]] = mapped_column(JSON, default=list)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True)
    hidden_reason: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    last_calculated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class Database:
    """Singleton database connection manager."""

    _engine = None
    _session_factory = None
    _lock = threading.RLock()

    @classmethod
    def get_engine(cls) -> Any:
        """Get or create the database engine. Safe to call from several job threads."""
        if cls._engine is not None:
            return cls._engine
        with cls._lock:
            if cls._engine is None:
                cls._engine = cls._create_engine()
        return cls._engine

    @staticmethod
    def _create_engine() -> Any:
        from matrimatch.config import get_settings

        settings = get_settings()
        database_url = settings.DATABASE_URL

        if not database_url:
            raise ConfigurationError("DATABASE_URL is not configured")

        # SQLAlchemy 1.4+ requires postgresql:// instead of postgres://
        if database_url.startswith("postgres://"):
            database_url = database_url.replace("postgres://", "postgresql://", 1)

        engine_kwargs: dict[str, Any] = {"echo": False}
        if database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            # In-memory databases live as long as their single connection
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs.update(pool_recycle=300, pool_pre_ping=True)

        try:
            engine = create_engine(database_url, **engine_kwargs)
            logger.info("Database engine created")
            return engine
        except Exception as e:
            safe_url = database_url
            if "@" in safe_url:
                try:
                    part1, part2 = safe_url.rsplit("@", 1)
                    if ":" in part1:
                        scheme_user, _ = part1.rsplit(":", 1)
                        safe_url = f"{scheme_user}:***@{part2}"
                except Exception:
                    safe_url = "REDACTED_MALFORMED_URL"

            logger.error("Failed to create database engine", error=str(e), url=safe_url)
            raise DatabaseError("Failed to connect to database", details={"error": str(e), "url": safe_url}) from e

    @classmethod
    def get_session_factory(cls) -> Any:
        """Get or create the session factory."""
        if cls._session_factory is None:
            with cls._lock:
                if cls._session_factory is None:
                    cls._session_factory = sessionmaker(bind=cls.get_engine(), expire_on_commit=False)
        return cls._session_factory

    @classmethod
    def get_session(cls) -> Session:
        """Get a new database session."""
        return cls.get_session_factory()()  # type: ignore

    @classmethod
    def create_tables(cls) -> None:
        """Create all database tables."""
        engine = cls.get_engine()
        Base.metadata.create_all(engine)
        logger.info("Database tables created")

    @classmethod
    def reset(cls) -> None:
        """Dispose the engine so the next call picks up the current settings."""
        with cls._lock:
            if cls._engine is not None:
                cls._engine.dispose()
            cls._engine = None
            cls._session_factory = None


def get_session() -> Session:
    """Get a database session."""
    return Database.get_session()


@contextmanager
def session_scope(operation: str) -> Iterator[Session]:
    """
    Run a unit of work in one transaction.

    Commits when the block exits cleanly and rolls back otherwise. SQLAlchemy
    errors are re-raised as DatabaseError tagged with `operation`.

    Args:
        operation (str): Short name of the unit of work, used in logs and errors.
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error("Database operation failed", operation=operation, error=str(e))
        raise DatabaseError(f"Database operation failed: {operation}", details={"error": str(e)}) from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_database() -> None:
    """Initialize the database and create tables."""
    Database.create_tables()
