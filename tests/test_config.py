"""Tests for application settings."""

from matrimatch.config import Settings


def test_defaults(monkeypatch):
    for key in ("MAX_MATCHES_PER_USER", "MATCHING_SCORE", "REDIS_URL", "ENVIRONMENT", "DEBUG"):
        monkeypatch.delenv(key, raising=False)

    config = Settings(_env_file=None)

    assert config.MAX_MATCHES_PER_USER == 50
    assert config.MATCHING_SCORE == 70
    assert config.MATCH_SCORE_CACHE_TTL == 3600
    assert config.REDIS_URL is None
    assert config.DEBUG is True


def test_debug_follows_environment(monkeypatch):
    monkeypatch.delenv("DEBUG", raising=False)
    monkeypatch.setenv("ENVIRONMENT", "production")

    assert Settings(_env_file=None).DEBUG is False


def test_explicit_debug(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("DEBUG", "true")

    assert Settings(_env_file=None).DEBUG is True


def test_matching_score_is_clamped(monkeypatch):
    monkeypatch.setenv("MATCHING_SCORE", "150")
    assert Settings(_env_file=None).MATCHING_SCORE == 100

    monkeypatch.setenv("MATCHING_SCORE", "0")
    assert Settings(_env_file=None).MATCHING_SCORE == 1
