"""Tests for the caching decorators and the mapping view."""

from cache_aside.cache import CachedArray, CachedCounter, CachedObject
from cache_aside.cache.decorators import cached_array, cached_count, cached_object
from cache_aside.cache.lookup import create_cached_object


def test_cached_array_decorator(redis_client, clock):
    calls = []

    @cached_array("user", ttl=60, client=redis_client, clock=clock)
    def user_cache(ids, force_refresh=False):
        """Load users."""
        calls.append(list(ids))
        return {i: {"id": i} for i in ids if i != 2}

    assert isinstance(user_cache, CachedArray)
    assert user_cache.__name__ == "user_cache"
    assert user_cache.__doc__ == "Load users."
    assert user_cache.fetch([1, 2]) == [{"id": 1}]
    assert user_cache.fetch([1, 2]) == [{"id": 1}]
    assert calls == [[1, 2]]


def test_cached_object_decorator(redis_client, clock):
    @cached_object("model", id_key="modelId", client=redis_client, clock=clock)
    def model_cache(ids, force_refresh=False):
        return {i: {"modelId": i, "name": f"m{i}"} for i in ids}

    assert isinstance(model_cache, CachedObject)
    assert model_cache.fetch([4, 5]) == {
        "4": {"modelId": 4, "name": "m4"},
        "5": {"modelId": 5, "name": "m5"},
    }


def test_cached_object_shares_bust_and_refresh(redis_client, clock, make_lookup):
    lookup = make_lookup({1: {"id": 1, "v": 1}})
    objects = create_cached_object("thing", lookup, client=redis_client, clock=clock)

    objects.fetch([1])
    objects.bust([1])
    assert b'"debounce":true' in redis_client.get("thing:1")

    lookup.rows[1] = {"id": 1, "v": 2}
    objects.refresh([1])
    assert objects.fetch([1]) == {"1": {"id": 1, "v": 2}}
    assert objects.key == "thing"


def test_cached_count_decorator(redis_client):
    @cached_count("followers", ttl=120, client=redis_client)
    def followers(user_id):
        return 10

    assert isinstance(followers, CachedCounter)
    assert followers.increment_by(3) == 11
    assert redis_client.ttl("followers:3") == 120
