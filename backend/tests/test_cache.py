"""
Tests for caching functionality.
"""
import fnmatch

import pytest

from dashboard.services.cache_service import CacheService
from dashboard.utils import cache as cache_module
from dashboard.utils.cache import CacheManager, project_resource_key, project_version_key


class FakeRedis:
    """The slice of redis.Redis the cache manager uses."""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    def incr(self, key):
        value = int(self.store.get(key, 0)) + 1
        self.store[key] = str(value)
        return value

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed

    def scan_iter(self, match="*"):
        return [key for key in list(self.store) if fnmatch.fnmatch(key, match)]


@pytest.fixture
def fake_redis(monkeypatch):
    client = FakeRedis()
    monkeypatch.setattr(cache_module.cache, "client", client)
    return client


@pytest.mark.unit
class TestCacheManager:
    """Test cache manager functionality."""

    def test_set_and_get(self):
        """Values round-trip through JSON."""
        cache_manager = CacheManager(client=FakeRedis())
        assert cache_manager.set("test_key", {"data": "test_value"}, ttl=60) is True
        assert cache_manager.get("test_key") == {"data": "test_value"}

    def test_delete_pattern(self):
        """Pattern deletes only touch matching keys."""
        cache_manager = CacheManager(client=FakeRedis())
        cache_manager.set("project:1:messages", [1])
        cache_manager.set("project:1:logs", [2])
        cache_manager.set("project:2:logs", [3])

        assert cache_manager.delete_pattern("project:1:*") == 2
        assert cache_manager.get("project:1:messages") is None
        assert cache_manager.get("project:2:logs") == [3]

    def test_incr(self):
        """Counters start at one and read back as integers."""
        cache_manager = CacheManager(client=FakeRedis())
        assert cache_manager.incr("counter") == 1
        assert cache_manager.incr("counter") == 2
        assert cache_manager.get("counter") == 2

    def test_without_redis_every_call_misses(self):
        """Without a client every operation is a miss or a no-op."""
        cache_manager = CacheManager()
        cache_manager.client = None
        assert cache_manager.set("k", 1) is False
        assert cache_manager.get("k") is None
        assert cache_manager.incr("k") is None
        assert cache_manager.delete_pattern("*") == 0


@pytest.mark.unit
class TestCacheService:
    """Test project-scoped list caching."""

    def test_read_through(self, fake_redis):
        """The second read is served from the cache with the list TTL."""
        loads = []

        def loader():
            loads.append(1)
            return [{"id": 1}]

        assert CacheService.get_project_resource(7, "messages", loader) == [{"id": 1}]
        assert CacheService.get_project_resource(7, "messages", loader) == [{"id": 1}]
        assert len(loads) == 1
        assert fake_redis.ttls[project_resource_key(7, "messages")] == CacheService.RESOURCE_LIST_TTL

    def test_invalidate_one_resource(self, fake_redis):
        """Invalidating messages leaves the cached logs alone."""
        CacheService.get_project_resource(7, "messages", lambda: [])
        CacheService.get_project_resource(7, "logs", lambda: [{"id": 1}])
        CacheService.invalidate_project_resource(7, "messages")

        assert fake_redis.store[project_version_key(7, "messages")] == "1"
        assert CacheService.get_project_resource(7, "messages", lambda: [{"id": 2}]) == [{"id": 2}]
        assert CacheService.get_project_resource(7, "logs", lambda: []) == [{"id": 1}]

    def test_load_overlapping_write_is_not_served(self, fake_redis):
        """A list loaded before a write commits never outlives that write's invalidation."""
        rows = [{"id": 1}]

        def load_then_write():
            loaded = list(rows)
            # The write commits and invalidates while this load is still running
            rows.append({"id": 2})
            CacheService.invalidate_project_resource(7, "messages")
            return loaded

        assert CacheService.get_project_resource(7, "messages", load_then_write) == [{"id": 1}]
        assert CacheService.get_project_resource(7, "messages", lambda: list(rows)) == [{"id": 1}, {"id": 2}]

    def test_project_lists_invalidated_together(self, fake_redis):
        """Both project list variants are dropped together."""
        CacheService.get_projects(True, lambda: [])
        CacheService.get_projects(False, lambda: [])
        CacheService.invalidate_project_lists()
        assert fake_redis.store == {}


@pytest.mark.integration
def test_new_message_invalidates_cached_list(client, project, fake_redis):
    """Creating a message through the API makes the next list read include it."""
    assert client.get(f"/api/projects/{project.id}/messages").json() == []
    assert project_resource_key(project.id, "messages") in fake_redis.store

    client.post("/api/messages/create", json={"project_id": project.id, "content": "Hi", "sender": "user"})

    assert [m["content"] for m in client.get(f"/api/projects/{project.id}/messages").json()] == ["Hi"]
