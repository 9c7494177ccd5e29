"""
Client-side read-through cache keyed by (project_id, resource).
"""
import logging
from typing import Any, Awaitable, Callable, Dict, Tuple

logger = logging.getLogger(__name__)

CacheKey = Tuple[int, str]


class ReadThroughCache:
    """In-memory cache of fetched lists. Entries live until invalidated.

    Every invalidation bumps the key's generation. A load that was started
    under an older generation is discarded when it finishes and the key is
    loaded again, so a slow fetch can never replace a newer one.
    """

    def __init__(self):
        self._entries: Dict[CacheKey, Any] = {}
        self._generations: Dict[CacheKey, int] = {}

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def generation(self, key: CacheKey) -> int:
        return self._generations.get(key, 0)

    async def get_or_load(self, key: CacheKey, loader: Callable[[], Awaitable[Any]]) -> Any:
        while True:
            if key in self._entries:
                logger.debug(f"Cache hit: {key}")
                return self._entries[key]

            generation = self.generation(key)
            value = await loader()
            if self.generation(key) == generation:
                self._entries[key] = value
                return value
            logger.debug(f"Discarding load of {key} invalidated while in flight")

    def invalidate(self, key: CacheKey) -> None:
        self._entries.pop(key, None)
        self._generations[key] = self.generation(key) + 1

    def invalidate_project(self, project_id: int) -> None:
        keys = {k for k in list(self._entries) + list(self._generations) if k[0] == project_id}
        for key in keys:
            self.invalidate(key)
