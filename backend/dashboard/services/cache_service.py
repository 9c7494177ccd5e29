"""
Cache service for project-scoped list reads.
"""
import logging
from typing import Any, Callable, Dict, List
from dashboard.utils.cache import (
    cache,
    project_resource_key,
    project_version_key,
    projects_list_cache_key,
)

logger = logging.getLogger(__name__)


class CacheService:
    """Service for managing cache operations."""

    # Cache TTL constants (in seconds)
    PROJECT_LIST_TTL = 300  # 5 minutes
    RESOURCE_LIST_TTL = 120  # 2 minutes

    @staticmethod
    def get_project_resource(
        project_id: int,
        resource: str,
        loader: Callable[[], List[Dict[str, Any]]],
    ) -> List[Dict[str, Any]]:
        """Get a project's resource list (messages, logs, ...) from cache or loader.

        Lists are stored under the resource's current version. The version is
        read before loading, so a load that overlaps a write lands under a
        version the write has already retired and is never served.
        """
        version = cache.get(project_version_key(project_id, resource)) or 0
        cache_key = project_resource_key(project_id, resource, version)

        cached_rows = cache.get(cache_key)
        if cached_rows is not None:
            logger.debug(f"Cache hit: {cache_key}")
            return cached_rows

        rows = loader()
        cache.set(cache_key, rows, ttl=CacheService.RESOURCE_LIST_TTL)
        return rows

    @staticmethod
    def invalidate_project_resource(project_id: int, resource: str):
        version = cache.incr(project_version_key(project_id, resource))
        logger.debug(f"Cache invalidated: project:{project_id}:{resource} now at v{version}")

    @staticmethod
    def get_projects(active_only: bool, loader: Callable[[], List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
        cache_key = projects_list_cache_key(active_only)
        cached_rows = cache.get(cache_key)
        if cached_rows is not None:
            return cached_rows
        rows = loader()
        cache.set(cache_key, rows, ttl=CacheService.PROJECT_LIST_TTL)
        return rows

    @staticmethod
    def invalidate_project_lists():
        cache.delete_pattern("projects:list:*")


# Global cache service instance
cache_service = CacheService()
