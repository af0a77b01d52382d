import threading
import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from matrimatch.config import settings
from matrimatch.utils.database import Database, UserDB, session_scope
from matrimatch.utils.errors import ConfigurationError, DatabaseError


def test_session_scope_commits():
    with session_scope("insert") as session:
        session.add(UserDB(id="u1", first_name="Ravi"))

    with session_scope("read") as session:
        assert session.get(UserDB, "u1").first_name == "Ravi"


def test_session_scope_rolls_back_on_error():
    with pytest.raises(ValueError):
        with session_scope("insert") as session:
            session.add(UserDB(id="u1", first_name="Ravi"))
            session.flush()
            raise ValueError("abort")

    with session_scope("read") as session:
        assert session.get(UserDB, "u1") is None


def test_session_scope_wraps_database_errors():
    with pytest.raises(DatabaseError) as exc_info:
        with session_scope("broken_query"):
            raise OperationalError("SELECT 1", {}, Exception("disk I/O error"))

    assert "broken_query" in exc_info.value.message
    assert "disk I/O error" in exc_info.value.details["error"]


def test_postgres_url_is_rewritten(monkeypatch):
    monkeypatch.setattr(settings, "DATABASE_URL", "postgres://user:secret@db:5432/matrimatch")
    Database.reset()

    with patch("matrimatch.utils.database.create_engine") as mock_create:
        Database.get_engine()

    url = mock_create.call_args.args[0]
    assert url == "postgresql://user:secret@db:5432/matrimatch"
    assert mock_create.call_args.kwargs["pool_pre_ping"] is True
    Database.reset()


def test_engine_failure_redacts_password(monkeypatch):
    monkeypatch.setattr(settings, "DATABASE_URL", "postgresql://user:secret@db:5432/matrimatch")
    Database.reset()

    with patch("matrimatch.utils.database.create_engine", side_effect=RuntimeError("driver missing")):
        with pytest.raises(DatabaseError) as exc_info:
            Database.get_engine()

    assert "secret" not in exc_info.value.details["url"]
    assert exc_info.value.details["url"] == "postgresql://user:***@db:5432/matrimatch"
    Database.reset()


def test_missing_url_is_a_configuration_error(monkeypatch):
    monkeypatch.setattr(settings, "DATABASE_URL", "")
    Database.reset()

    with pytest.raises(ConfigurationError):
        Database.get_engine()
    Database.reset()


def test_concurrent_first_use_builds_one_engine(monkeypatch):
    monkeypatch.setattr(settings, "DATABASE_URL", "postgresql://user:secret@db:5432/matrimatch")
    Database.reset()
    started = threading.Barrier(8)

    def slow_create(*args, **kwargs):
        time.sleep(0.05)
        return MagicMock()

    def first_use():
        started.wait()
        return Database.get_engine()

    with patch("matrimatch.utils.database.create_engine", side_effect=slow_create) as mock_create:
        with ThreadPoolExecutor(max_workers=8) as pool:
            engines = list(pool.map(lambda _: first_use(), range(8)))

    assert mock_create.call_count == 1
    assert all(engine is engines[0] for engine in engines)
    Database.reset()
