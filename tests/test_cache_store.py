import pytest

from lunchtube.models.video import RankedVideo, VideoSource
from lunchtube.services.cache_store import CACHE_KEY, CacheStore
from lunchtube.utils.errors import ApiErrorReason


def ranked(video_id, score=0.05):
    return RankedVideo(
        video_id=video_id,
        title=f"Video {video_id}",
        channel_name="Channel",
        thumbnail_url=None,
        duration_seconds=600,
        formatted_duration="10:00",
        formatted_views="1K",
        score=score,
        source=VideoSource.SUBSCRIPTION,
    )


@pytest.fixture
def cache(local_store, clock):
    return CacheStore(local_store, clock=clock, ttl_seconds=30 * 60)


def test_get_returns_identical_content_before_ttl(cache, clock):
    videos = [ranked("a", 0.07), ranked("b", 0.05)]
    cache.set(videos, api_error=ApiErrorReason.NO_RESULTS, used_fallback=True)
    clock.advance(minutes=29, seconds=59)

    entry = cache.get()
    assert entry is not None
    assert entry.videos == videos
    assert entry.api_error == ApiErrorReason.NO_RESULTS
    assert entry.used_fallback is True


def test_get_misses_at_and_after_ttl(cache, clock):
    cache.set([ranked("a")])
    clock.advance(minutes=30)
    assert cache.get() is None
    clock.advance(minutes=5)
    assert cache.get() is None


def test_get_misses_when_videos_empty(cache):
    cache.set([])
    assert cache.get() is None


def test_get_misses_on_malformed_entry(cache, local_store):
    local_store.set(CACHE_KEY, {"videos": "not-a-list", "timestamp": "later"})
    assert cache.get() is None
    local_store.set(CACHE_KEY, ["old", "format"])
    assert cache.get() is None


def test_shown_ids_accumulate_within_validity(cache, clock):
    cache.set([ranked("a"), ranked("b")])
    clock.advance(minutes=5)
    cache.set([ranked("c")], shown_ids_to_merge={"a", "b"})
    clock.advance(minutes=5)
    cache.set([ranked("d")], shown_ids_to_merge={"x"})

    assert cache.get().shown_ids == {"a", "b", "c", "d", "x"}


def test_shown_ids_reset_after_expiry(cache, clock):
    cache.set([ranked("a")])
    clock.advance(minutes=31)
    cache.set([ranked("b")])
    assert cache.get().shown_ids == {"b"}


def test_stale_generation_write_is_dropped(cache):
    first = cache.begin_generation()
    second = cache.begin_generation()
    assert second > first

    assert cache.set([ranked("newer")], generation=second) is not None
    assert cache.set([ranked("older")], generation=first) is None
    assert [v.video_id for v in cache.get().videos] == ["newer"]


def test_write_without_generation_takes_next(cache):
    reserved = cache.begin_generation()
    entry = cache.set([ranked("a")])
    assert entry.generation > reserved
    assert cache.set([ranked("b")], generation=reserved) is None


def test_clear(cache):
    cache.set([ranked("a")])
    cache.clear()
    assert cache.get() is None


def test_entry_survives_reopening_store(cache, local_store, clock):
    cache.set([ranked("a")], api_error=ApiErrorReason.API_DISABLED)
    reopened = CacheStore(local_store, clock=clock)
    entry = reopened.get()
    assert entry.videos[0].video_id == "a"
    assert entry.api_error == ApiErrorReason.API_DISABLED
