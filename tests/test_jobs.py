"""Tests for the background match job runner."""

from unittest.mock import MagicMock, patch

import pytest
import structlog

from matrimatch.jobs import MatchJobRunner
from matrimatch.models.match import MatchProcessingResult, MatchVisibility


@pytest.fixture
def runner():
    cache = MagicMock()
    job_runner = MatchJobRunner(cache=cache, max_workers=1)
    yield job_runner
    job_runner.shutdown(wait=True)


@patch("matrimatch.jobs.match_service")
def test_profile_approved_materializes(mock_service, runner):
    mock_service.process_new_user_matches.return_value = MatchProcessingResult(created=4, skipped=1)

    result = runner.on_profile_approved("m1").result(timeout=5)

    mock_service.process_new_user_matches.assert_called_once_with("m1", cache=runner.cache)
    assert result.created == 4


@patch("matrimatch.jobs.match_service")
def test_profile_updated_recalculates(mock_service, runner):
    runner.on_profile_updated("m1").result(timeout=5)

    mock_service.recalculate_user_matches.assert_called_once_with("m1", cache=runner.cache)


@pytest.mark.parametrize(
    "hook, service_function",
    [
        ("on_request_sent", "hide_match_for_request"),
        ("on_request_withdrawn", "show_match_for_withdraw"),
        ("on_favorite_added", "hide_match_for_favorite"),
        ("on_favorite_removed", "show_match_for_unfavorite"),
    ],
)
@patch("matrimatch.jobs.match_service")
def test_visibility_hooks(mock_service, runner, hook, service_function):
    getattr(mock_service, service_function).return_value = MatchVisibility.HIDDEN_REQUEST

    result = getattr(runner, hook)("m1", "f1").result(timeout=5)

    getattr(mock_service, service_function).assert_called_once_with("m1", "f1")
    assert result == MatchVisibility.HIDDEN_REQUEST


@patch("matrimatch.jobs.match_service")
def test_job_failure_is_isolated(mock_service, runner):
    mock_service.process_new_user_matches.side_effect = RuntimeError("database gone")

    future = runner.on_profile_approved("m1")

    assert future.result(timeout=5) is None
    assert future.exception() is None


def test_shutdown_rejects_new_jobs():
    job_runner = MatchJobRunner(max_workers=1)
    job_runner.shutdown()

    with pytest.raises(RuntimeError):
        job_runner.on_profile_approved("m1")


@patch("matrimatch.jobs.match_service")
def test_job_fields_are_bound_while_running(mock_service, runner):
    seen = {}

    def capture(user_id, candidate_id):
        seen.update(structlog.contextvars.get_contextvars())

    mock_service.hide_match_for_favorite.side_effect = capture

    runner.on_favorite_added("m1", "f1").result(timeout=5)
    leftover = runner._executor.submit(structlog.contextvars.get_contextvars).result(timeout=5)

    assert seen == {"job": "hide_match_for_favorite", "user_ids": ["m1", "f1"]}
    assert leftover == {}
