# backend/tests/test_notion_cache.py

import pytest

from app.notion.cache import PostCache, build_cache_key
from app.notion.schemas import NotionPost


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _post(post_id: str) -> NotionPost:
    return NotionPost(
        id=post_id,
        title=post_id,
        cover_photo=f"https://img/{post_id}.png",
        url=f"https://notion.so/{post_id}",
    )


def test_build_cache_key_joins_token_and_url():
    assert build_cache_key("tok", "https://notion.so/x") == "tok-https://notion.so/x"


def test_fresh_entry_is_returned():
    clock = FakeClock()
    cache = PostCache(ttl_seconds=300, clock=clock)
    cache.set("k", [_post("a")])

    clock.now += 299
    assert cache.get("k") == [_post("a")]


def test_stale_entry_is_removed_on_read():
    clock = FakeClock()
    cache = PostCache(ttl_seconds=300, clock=clock)
    cache.set("k", [_post("a")])

    clock.now += 300
    assert cache.get("k") is None
    assert "k" not in cache
    assert len(cache) == 0


def test_set_overwrites_single_entry_per_key():
    cache = PostCache(clock=FakeClock())
    cache.set("k", [_post("a")])
    cache.set("k", [_post("b")])

    assert len(cache) == 1
    assert cache.get("k") == [_post("b")]


def test_empty_list_is_a_cache_hit():
    cache = PostCache(clock=FakeClock())
    cache.set("k", [])

    assert cache.get("k") == []


def test_least_recently_used_entry_is_evicted():
    cache = PostCache(max_entries=2, clock=FakeClock())
    cache.set("a", [_post("a")])
    cache.set("b", [_post("b")])

    # a を読むことで b が最も古くなる
    cache.get("a")
    cache.set("c", [_post("c")])

    assert "a" in cache
    assert "b" not in cache
    assert "c" in cache


def test_invalid_limits_are_rejected():
    with pytest.raises(ValueError):
        PostCache(ttl_seconds=0)
    with pytest.raises(ValueError):
        PostCache(max_entries=0)
