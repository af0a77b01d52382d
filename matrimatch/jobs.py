"""Background match jobs triggered by profile and social events."""

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

import sentry_sdk

from matrimatch.config import settings
from matrimatch.services import match_service
from matrimatch.utils.cache import ScoreCache
from matrimatch.utils.logging import get_logger, job_context

logger = get_logger(__name__)


class MatchJobRunner:
    """
    Runs materialization and visibility updates off the request path.

    Each hook submits a job and returns its Future at once. A failing job is
    logged and its Future resolves to None, so callers never see the error.
    """

    def __init__(self, cache: Optional[ScoreCache] = None, max_workers: Optional[int] = None) -> None:
        self.cache = cache
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or settings.MATCH_WORKERS,
            thread_name_prefix="match-job",
        )

    def _submit(self, job_name: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> "Future[Any]":
        def run() -> Any:
            with job_context(job=job_name, user_ids=list(args)):
                with sentry_sdk.start_span(op="job.match", name=job_name) as span:
                    try:
                        result = func(*args, **kwargs)
                        logger.debug("Match job finished")
                        return result
                    except Exception as e:
                        logger.error("Match job failed", error=str(e))
                        span.set_status("internal_error")
                        return None

        return self._executor.submit(run)

    def on_profile_approved(self, user_id: str) -> "Future[Any]":
        return self._submit(
            "process_new_user_matches", match_service.process_new_user_matches, user_id, cache=self.cache
        )

    def on_profile_updated(self, user_id: str) -> "Future[Any]":
        return self._submit(
            "recalculate_user_matches", match_service.recalculate_user_matches, user_id, cache=self.cache
        )

    def on_request_sent(self, user_id: str, candidate_id: str) -> "Future[Any]":
        return self._submit("hide_match_for_request", match_service.hide_match_for_request, user_id, candidate_id)

    def on_request_withdrawn(self, user_id: str, candidate_id: str) -> "Future[Any]":
        return self._submit("show_match_for_withdraw", match_service.show_match_for_withdraw, user_id, candidate_id)

    def on_favorite_added(self, user_id: str, candidate_id: str) -> "Future[Any]":
        return self._submit("hide_match_for_favorite", match_service.hide_match_for_favorite, user_id, candidate_id)

    def on_favorite_removed(self, user_id: str, candidate_id: str) -> "Future[Any]":
        return self._submit("show_match_for_unfavorite", match_service.show_match_for_unfavorite, user_id, candidate_id)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting jobs; with `wait`, block until queued jobs finish."""
        self._executor.shutdown(wait=wait)
        logger.info("Match job runner stopped")
