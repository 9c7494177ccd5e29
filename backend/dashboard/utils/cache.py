"""
Redis-backed cache for project-scoped list reads.

Redis is optional. When it cannot be reached at startup the manager runs
without a client: reads miss, writes and deletes are no-ops, and every list
is loaded from the database.
"""
import json
import logging
from typing import Optional, Any
import redis
from dashboard.config import settings

logger = logging.getLogger(__name__)


def _connect() -> Optional[redis.Redis]:
    if not settings.REDIS_URL:
        return None
    try:
        client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        client.ping()
    except (redis.RedisError, ValueError) as e:
        logger.warning(f"Redis unavailable at {settings.REDIS_URL}, list cache disabled: {e}")
        return None
    logger.info("Redis list cache enabled")
    return client


redis_client = _connect()


class CacheManager:
    """JSON values under string keys with a TTL. Redis errors degrade to a miss."""

    def __init__(self, client: Optional[redis.Redis] = None):
        self.client = client or redis_client

    def get(self, key: str) -> Optional[Any]:
        if not self.client:
            return None
        try:
            raw = self.client.get(key)
            return json.loads(raw) if raw else None
        except (redis.RedisError, ValueError) as e:
            logger.error(f"Cache read failed for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        if not self.client:
            return False
        try:
            self.client.setex(key, ttl or settings.CACHE_TTL_SECONDS, json.dumps(value, default=str))
        except redis.RedisError as e:
            logger.error(f"Cache write failed for {key}: {e}")
            return False
        return True

    def delete(self, key: str) -> bool:
        if not self.client:
            return False
        try:
            self.client.delete(key)
        except redis.RedisError as e:
            logger.error(f"Cache delete failed for {key}: {e}")
            return False
        return True

    def incr(self, key: str) -> Optional[int]:
        if not self.client:
            return None
        try:
            return self.client.incr(key)
        except redis.RedisError as e:
            logger.error(f"Cache increment failed for {key}: {e}")
            return None

    def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern such as "projects:list:*"."""
        if not self.client:
            return 0
        try:
            keys = list(self.client.scan_iter(match=pattern))
            return self.client.delete(*keys) if keys else 0
        except redis.RedisError as e:
            logger.error(f"Cache delete failed for {pattern}: {e}")
            return 0


# Global cache manager instance
cache = CacheManager()


def project_resource_key(project_id: int, resource: str, version: int = 0) -> str:
    """e.g. project:7:messages:v3"""
    return f"project:{project_id}:{resource}:v{version}"


def project_version_key(project_id: int, resource: str) -> str:
    return f"project:{project_id}:{resource}:version"


def projects_list_cache_key(active_only: bool = False) -> str:
    return f"projects:list:{'active' if active_only else 'all'}"
