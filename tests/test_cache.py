"""Unit tests for the response cache."""

from unittest.mock import MagicMock

from n8n_manager.gateway import ResponseCache, Tag, Workflow


class TestResponseCache:
    """Tests for ResponseCache."""

    def test_get_returns_copy(self):
        """Test cached values are handed out as deep copies."""
        cache = ResponseCache()
        cache.set(("workflows", "get", "1"), Workflow(id="1", name="Original"))

        copy = cache.get(("workflows", "get", "1"))
        copy.name = "Changed"

        assert cache.get(("workflows", "get", "1")).name == "Original"

    def test_set_returns_value(self):
        """Test set passes the value through for chaining."""
        tag = Tag(id="1", name="prod")

        assert ResponseCache().set(("tags", "get", "1"), tag) is tag

    def test_miss_returns_none(self):
        """Test a missing key is None."""
        assert ResponseCache().get(("workflows", "get", "404")) is None

    def test_disabled_cache_stores_nothing(self):
        """Test a disabled cache never returns a value."""
        cache = ResponseCache(enabled=False)
        cache.set(("workflows", "get", "1"), Workflow(id="1", name="x"))

        assert cache.get(("workflows", "get", "1")) is None
        assert len(cache) == 0

    def test_invalidate_drops_only_named_classes(self):
        """Test invalidation is per resource class."""
        cache = ResponseCache()
        cache.set(("workflows", "get", "1"), Workflow(id="1", name="a"))
        cache.set(("workflows", "list", ()), Workflow(id="2", name="b"))
        cache.set(("tags", "list", ()), Tag(id="1", name="t"))

        removed = cache.invalidate("workflows")

        assert removed == 2
        assert cache.get(("tags", "list", ())) is not None
        assert cache.get(("workflows", "get", "1")) is None

    def test_entries_expire(self):
        """Test entries disappear after the TTL."""
        clock = MagicMock(return_value=1000.0)
        cache = ResponseCache(ttl_seconds=300, timer=clock)
        cache.set(("workflows", "get", "1"), Workflow(id="1", name="a"))

        clock.return_value = 1299.0
        assert cache.get(("workflows", "get", "1")) is not None

        clock.return_value = 1301.0
        assert cache.get(("workflows", "get", "1")) is None

    def test_clear(self):
        """Test clear empties the cache."""
        cache = ResponseCache()
        cache.set(("tags", "get", "1"), Tag(id="1", name="t"))

        cache.clear()

        assert len(cache) == 0

    def test_set_after_invalidation_is_dropped(self):
        """Test a value read before an invalidation of its class is not stored."""
        cache = ResponseCache()
        generation = cache.generation("workflows")

        cache.invalidate("workflows")
        cache.set(("workflows", "get", "1"), Workflow(id="1", name="stale"), generation)

        assert cache.get(("workflows", "get", "1")) is None

    def test_set_with_current_generation_is_stored(self):
        """Test invalidating another class does not block a write."""
        cache = ResponseCache()
        generation = cache.generation("workflows")

        cache.invalidate("tags")
        cache.set(("workflows", "get", "1"), Workflow(id="1", name="fresh"), generation)

        assert cache.get(("workflows", "get", "1")).name == "fresh"
