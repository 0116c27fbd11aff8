import random
import threading
import time
from datetime import datetime, timedelta

import pytest

from lunchtube.lunch_processor import LunchProcessor
from lunchtube.models.video import CandidateVideo
from lunchtube.utils.errors import NotAuthenticatedError
from lunchtube.utils.formatting import as_utc
from lunchtube.utils.storage import JsonStore

# Wednesday, inside the default 12:00-13:00 window
NOW = datetime(2026, 10, 14, 12, 30)


class FakeClock:
    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


def published(days_ago, now=NOW):
    return (as_utc(now) - timedelta(days=days_ago)).isoformat().replace("+00:00", "Z")


def make_candidate(
    video_id,
    days_ago=2,
    views=10_000,
    likes=500,
    comments=50,
    duration="PT10M",
    title=None,
    description="",
    now=NOW,
):
    return CandidateVideo(
        video_id=video_id,
        title=title or f"Video {video_id}",
        channel_name=f"Channel for {video_id}",
        thumbnail_url=f"https://img/{video_id}.jpg",
        iso_duration=duration,
        published_at=published(days_ago, now),
        view_count=views,
        like_count=likes,
        comment_count=comments,
        description=description,
    )


class FakeAuthService:
    def __init__(self, authenticated=True, error=None):
        self.authenticated = authenticated
        self.error = error
        self.interactive_calls = 0

    def get_credential(self, interactive=False):
        if interactive:
            self.interactive_calls += 1
            if self.error:
                raise self.error
            self.authenticated = True
        if self.error and not interactive:
            raise self.error
        if not self.authenticated:
            raise NotAuthenticatedError("No YouTube credential available")
        return "fake-credential"


class FakeYouTubeService:
    """In-memory stand-in for the YouTube Data API, recording every call."""

    def __init__(self, channel_count=30, items_per_playlist=4, trending=None, now=NOW):
        self.calls = []
        self._lock = threading.Lock()
        self.channel_ids = [f"ch{i}" for i in range(channel_count)]
        self.uploads = {channel_id: f"pl-{channel_id}" for channel_id in self.channel_ids}
        self.playlist_items = {}
        self.details = {}
        for channel_id in self.channel_ids:
            items = []
            for k in range(items_per_playlist):
                video_id = f"{channel_id}-v{k}"
                items.append({"video_id": video_id, "published_at": published(2 + k, now)})
                self.details[video_id] = make_candidate(
                    video_id,
                    days_ago=2 + k,
                    views=10_000 + k * 1000,
                    likes=300 + (k * 37 + int(channel_id[2:]) * 11) % 200,
                    now=now,
                )
            self.playlist_items[self.uploads[channel_id]] = items
        if trending is None:
            trending = [make_candidate(f"tr{i}", days_ago=1, views=500_000, likes=20_000, now=now) for i in range(20)]
        self.trending = trending

        self.subscriptions_error = None
        self.uploads_error = None
        self.trending_error = None
        self.details_error = None
        self.failing_playlists = set()
        self.slow_playlists = set()

    def _record(self, name):
        with self._lock:
            self.calls.append(name)

    def list_subscriptions(self, credential, max_results=50):
        self._record("list_subscriptions")
        if self.subscriptions_error:
            raise self.subscriptions_error
        return list(self.channel_ids[:max_results])

    def batch_get_upload_collections(self, credential, channel_ids):
        self._record("batch_get_upload_collections")
        if self.uploads_error:
            raise self.uploads_error
        return {c: self.uploads[c] for c in channel_ids if c in self.uploads}

    def list_collection_items(self, credential, collection_id, max_results=4):
        self._record("list_collection_items")
        if collection_id in self.failing_playlists:
            raise RuntimeError(f"playlist {collection_id} unavailable")
        if collection_id in self.slow_playlists:
            time.sleep(0.5)
        return list(self.playlist_items.get(collection_id, []))[:max_results]

    def batch_get_video_details(self, credential, video_ids):
        self._record("batch_get_video_details")
        if self.details_error:
            raise self.details_error
        return [self.details[v] for v in video_ids if v in self.details]

    def list_trending(self, credential, region, max_results=20):
        self._record("list_trending")
        if self.trending_error:
            raise self.trending_error
        return list(self.trending[:max_results])


def make_config(tmp_path):
    return {
        "google_client_id": "client-id",
        "google_client_secret": "client-secret",
        "token_path": str(tmp_path / "token.json"),
        "data_dir": str(tmp_path),
        "sync_store_path": str(tmp_path / "sync.json"),
        "local_store_path": str(tmp_path / "local.json"),
        "trending_region": "US",
        "fetch_timeout_seconds": 5.0,
        "short_threshold_seconds": 90,
        "check_interval_minutes": 5,
        "log_level": "INFO",
        "log_file": str(tmp_path / "lunchtube.log"),
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def local_store(tmp_path):
    return JsonStore(str(tmp_path / "local.json"))


@pytest.fixture
def youtube():
    return FakeYouTubeService()


@pytest.fixture
def auth():
    return FakeAuthService()


@pytest.fixture
def processor(tmp_path, youtube, auth, clock):
    return LunchProcessor(
        config=make_config(tmp_path),
        auth_service=auth,
        youtube_service=youtube,
        clock=clock,
        rng=random.Random(1234),
    )
