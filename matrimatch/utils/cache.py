"""Redis cache utilities for the MatriMatch matching core."""

import json
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Union

import redis
import sentry_sdk
from pydantic import BaseModel
from redis.exceptions import LockError

from matrimatch.config import settings
from matrimatch.models.match import CachedMatchScore, ScoreDetail
from matrimatch.utils.logging import get_logger

logger = get_logger(__name__)

# Cache keys
MATCH_SCORE_CACHE_KEY = "match_score:{seeker_id}:{candidate_id}"
USER_PROFILE_CACHE_KEY = "user_profile:{user_id}"
PROFILE_VIEW_CACHE_KEY = "profile_view:{viewer_id}:{candidate_id}"
MATCH_LOCK_KEY = "match_lock:{user_id}"

DELETE_BATCH_SIZE = 100


def create_redis_client(url: Optional[str]) -> Optional[redis.Redis]:
    """
    Create a Redis client backed by a connection pool.

    Args:
        url (Optional[str]): Redis URL; None or empty disables caching.

    Returns:
        Optional[redis.Redis]: Redis client instance or None if unavailable.
    """
    if not url:
        logger.warning(
            "No Redis configuration found, caching will be disabled",
            details={"message": "REDIS_URL is not configured"},
        )
        return None

    try:
        pool = redis.ConnectionPool.from_url(
            url,
            max_connections=10,
            decode_responses=True,
        )
        client = redis.Redis(connection_pool=pool)
        logger.info("Redis client initialized")
        return client
    except Exception as e:
        logger.warning("Failed to initialize Redis client, caching will be disabled", error=str(e))
        return None


class ScoreCache:
    """
    Cache service for pairwise match scores and profile snapshots.

    Constructed once at startup and passed to the services that need it.
    Every operation is best-effort: a missing or failing backend behaves as
    a cache miss and never raises into the scoring path.
    """

    def __init__(
        self,
        client: Optional[redis.Redis],
        match_score_ttl: int = 3600,
        user_profile_ttl: int = 86400,
        profile_view_ttl: int = 86400,
    ) -> None:
        self._client = client
        self.match_score_ttl = match_score_ttl
        self.user_profile_ttl = user_profile_ttl
        self.profile_view_ttl = profile_view_ttl

    @classmethod
    def from_settings(cls) -> "ScoreCache":
        """Build the cache from application settings."""
        return cls(
            create_redis_client(settings.REDIS_URL),
            match_score_ttl=settings.MATCH_SCORE_CACHE_TTL,
            user_profile_ttl=settings.USER_PROFILE_CACHE_TTL,
            profile_view_ttl=settings.PROFILE_VIEW_CACHE_TTL,
        )

    @property
    def enabled(self) -> bool:
        return self._client is not None

    # Raw operations

    def set(self, key: str, value: Union[str, Dict[str, Any], BaseModel], expiration: int) -> None:
        """
        Set a value in the cache.

        Serializes Pydantic models and dicts to JSON. Expiration is enforced;
        non-positive values fall back to one hour.
        """
        with sentry_sdk.start_span(op="cache.set", name=key) as span:
            if self._client is None:
                span.set_data("status", "disabled")
                return

            try:
                if isinstance(value, BaseModel):
                    cache_value = value.model_dump_json(by_alias=True)
                elif isinstance(value, dict):
                    cache_value = json.dumps(value, default=str)
                else:
                    cache_value = str(value)

                if expiration <= 0:
                    logger.warning("Cache set without expiration, forcing default 1h", key=key)
                    expiration = 3600

                self._client.set(key, cache_value, ex=expiration)
                logger.debug("Cache set", key=key, expiration=expiration)
                span.set_data("status", "success")
            except Exception as e:
                logger.warning("Failed to set cache, continuing without cache", key=key, error=str(e))
                span.set_status("internal_error")

    def get(self, key: str) -> Optional[str]:
        """Get a string value, or None on miss or backend failure."""
        with sentry_sdk.start_span(op="cache.get", name=key) as span:
            if self._client is None:
                span.set_data("status", "disabled")
                return None

            try:
                value: Optional[str] = self._client.get(key)  # type: ignore
                span.set_data("status", "hit" if value else "miss")
                return value or None
            except Exception as e:
                logger.warning("Failed to get cache", key=key, error=str(e))
                span.set_status("internal_error")
                return None

    def exists(self, key: str) -> bool:
        if self._client is None:
            return False
        try:
            return bool(self._client.exists(key))
        except Exception as e:
            logger.warning("Failed to check cache key", key=key, error=str(e))
            return False

    def delete(self, *keys: str) -> int:
        """Delete keys in batches. Returns the number of keys sent for deletion."""
        if self._client is None or not keys:
            return 0

        count = 0
        try:
            for start in range(0, len(keys), DELETE_BATCH_SIZE):
                batch = keys[start : start + DELETE_BATCH_SIZE]
                self._client.delete(*batch)
                count += len(batch)
        except Exception as e:
            logger.warning("Failed to delete cache keys", count=len(keys), error=str(e))
        return count

    def scan_keys(self, pattern: str) -> List[str]:
        """
        List keys matching a glob pattern.

        Uses SCAN rather than KEYS so large keyspaces do not block Redis.
        """
        if self._client is None:
            return []

        keys: List[str] = []
        try:
            cursor: Any = 0
            while True:
                cursor, batch = self._client.scan(cursor=cursor, match=pattern, count=100)  # type: ignore
                keys.extend(batch)
                if str(cursor) == "0":
                    break
        except Exception as e:
            logger.warning("Failed to scan cache keys", pattern=pattern, error=str(e))
        return keys

    def delete_pattern(self, pattern: str) -> int:
        with sentry_sdk.start_span(op="cache.delete_pattern", name=pattern) as span:
            count = self.delete(*self.scan_keys(pattern))
            span.set_data("deleted_count", count)
            return count

    # Match scores

    def get_match_score(self, seeker_id: str, candidate_id: str) -> Optional[CachedMatchScore]:
        """
        Get the cached score for an ordered seeker/candidate pair.

        Entries written before user data was cached alongside the score hold
        the bare score detail; they are wrapped on read.
        """
        key = MATCH_SCORE_CACHE_KEY.format(seeker_id=seeker_id, candidate_id=candidate_id)
        cached = self.get(key)
        if not cached:
            return None

        try:
            data = json.loads(cached)
            if isinstance(data, dict) and "scoreDetail" in data:
                return CachedMatchScore.model_validate(data)
            return CachedMatchScore(score_detail=ScoreDetail.model_validate(data))
        except Exception as e:
            logger.warning("Failed to parse cached match score", key=key, error=str(e))
            return None

    def set_match_score(
        self,
        seeker_id: str,
        candidate_id: str,
        score_detail: ScoreDetail,
        user_data: Optional[Dict[str, Any]] = None,
    ) -> None:
        key = MATCH_SCORE_CACHE_KEY.format(seeker_id=seeker_id, candidate_id=candidate_id)
        entry = CachedMatchScore(score_detail=score_detail, user_data=user_data)
        self.set(key, entry, expiration=self.match_score_ttl)

    def invalidate_user_match_scores(self, user_id: str) -> int:
        """
        Drop every cached score involving the user, plus their profile snapshot.

        Call after any change to the user's profile attributes.

        Returns:
            int: Number of keys deleted.
        """
        with sentry_sdk.start_span(op="cache.invalidate_user", name=user_id) as span:
            if self._client is None:
                span.set_data("status", "disabled")
                return 0

            match_keys = set(self.scan_keys(MATCH_SCORE_CACHE_KEY.format(seeker_id=user_id, candidate_id="*")))
            match_keys.update(self.scan_keys(MATCH_SCORE_CACHE_KEY.format(seeker_id="*", candidate_id=user_id)))
            all_keys = sorted(match_keys) + [USER_PROFILE_CACHE_KEY.format(user_id=user_id)]

            deleted = self.delete(*all_keys)
            logger.info(
                "Invalidated user cache entries",
                user_id=user_id,
                match_scores=len(match_keys),
                deleted=deleted,
            )
            span.set_data("deleted_count", deleted)
            return deleted

    def clear_all_match_scores(self) -> int:
        deleted = self.delete_pattern(MATCH_SCORE_CACHE_KEY.format(seeker_id="*", candidate_id="*"))
        if deleted:
            logger.warning("Cleared match score cache entries", deleted=deleted)
        return deleted

    # Profile snapshots and views

    def get_user_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        key = USER_PROFILE_CACHE_KEY.format(user_id=user_id)
        cached = self.get(key)
        if not cached:
            return None
        try:
            return json.loads(cached)
        except ValueError:
            logger.warning("Failed to parse cached user profile", key=key)
            return None

    def set_user_profile(self, user_id: str, profile_data: Dict[str, Any]) -> None:
        self.set(USER_PROFILE_CACHE_KEY.format(user_id=user_id), profile_data, expiration=self.user_profile_ttl)

    def has_viewed_recently(self, viewer_id: str, candidate_id: str) -> bool:
        return self.exists(PROFILE_VIEW_CACHE_KEY.format(viewer_id=viewer_id, candidate_id=candidate_id))

    def mark_profile_viewed(self, viewer_id: str, candidate_id: str) -> None:
        key = PROFILE_VIEW_CACHE_KEY.format(viewer_id=viewer_id, candidate_id=candidate_id)
        self.set(key, "1", expiration=self.profile_view_ttl)

    def invalidate_profile_view(self, viewer_id: str, candidate_id: str) -> None:
        self.delete(PROFILE_VIEW_CACHE_KEY.format(viewer_id=viewer_id, candidate_id=candidate_id))

    def get_stats(self) -> Dict[str, int]:
        return {
            "match_scores": len(self.scan_keys("match_score:*")),
            "profile_views": len(self.scan_keys("profile_view:*")),
            "user_profiles": len(self.scan_keys("user_profile:*")),
        }

    # Locking

    @contextmanager
    def user_lock(self, user_id: str, timeout: int) -> Iterator[bool]:
        """
        Hold the per-user materialization lock for the duration of the block.

        Yields True when the caller may proceed: either the lock was acquired
        or there is no usable backend (the run then proceeds unlocked). Yields
        False when another worker holds the lock.
        """
        if self._client is None:
            yield True
            return

        lock = None
        try:
            lock = self._client.lock(MATCH_LOCK_KEY.format(user_id=user_id), timeout=timeout)
            acquired = bool(lock.acquire(blocking=False))
        except Exception as e:
            logger.warning("Failed to acquire match lock, proceeding unlocked", user_id=user_id, error=str(e))
            lock = None
            acquired = True

        try:
            yield acquired
        finally:
            if lock is not None and acquired:
                try:
                    lock.release()
                except (LockError, redis.RedisError) as e:
                    logger.warning("Failed to release match lock", user_id=user_id, error=str(e))
