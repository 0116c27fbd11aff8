"""Single-slot, TTL-bounded cache of the last ranked result."""

import logging
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from lunchtube.models.state import CacheEntry
from lunchtube.models.video import RankedVideo
from lunchtube.utils.config import CACHE_TTL_SECONDS
from lunchtube.utils.errors import ApiErrorReason
from lunchtube.utils.storage import JsonStore

logger = logging.getLogger(__name__)

CACHE_KEY = "video_cache"
GENERATION_KEY = "cache_generation"


class CacheStore:
    """Repository for the cached result slot in the local store.

    Writes carry a generation number taken when their orchestration began;
    a write older than the stored entry's generation is dropped so that a
    slow orchestration cannot overwrite a newer result.
    """

    def __init__(
        self,
        store: JsonStore,
        clock: Callable[[], datetime] = datetime.now,
        ttl_seconds: float = CACHE_TTL_SECONDS,
    ):
        self.store = store
        self.clock = clock
        self.ttl_seconds = ttl_seconds

    def _now(self) -> float:
        return self.clock().timestamp()

    def _load(self) -> Optional[CacheEntry]:
        raw = self.store.get(CACHE_KEY)
        if not isinstance(raw, dict):
            return None
        try:
            return CacheEntry.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding malformed cache entry: {e}")
            return None

    def get(self) -> Optional[CacheEntry]:
        """Return the cached entry only while it is fresh and non-empty."""
        entry = self._load()
        if entry is None or not entry.is_valid(self._now(), self.ttl_seconds):
            return None
        return entry

    def begin_generation(self) -> int:
        """Reserve the next generation number for an orchestration."""
        with self.store.transaction() as data:
            generation = int(data.get(GENERATION_KEY, 0)) + 1
            data[GENERATION_KEY] = generation
        return generation

    def set(
        self,
        videos: List[RankedVideo],
        api_error: Optional[ApiErrorReason] = None,
        shown_ids_to_merge: Iterable[str] = (),
        used_fallback: bool = False,
        generation: Optional[int] = None,
    ) -> Optional[CacheEntry]:
        """Overwrite the slot. Returns the stored entry, or None if the write was stale."""
        now = self._now()
        with self.store.transaction() as data:
            previous = None
            if isinstance(data.get(CACHE_KEY), dict):
                try:
                    previous = CacheEntry.from_dict(data[CACHE_KEY])
                except (KeyError, TypeError, ValueError):
                    previous = None

            if generation is None:
                generation = int(data.get(GENERATION_KEY, 0)) + 1
                data[GENERATION_KEY] = generation
            elif previous is not None and previous.generation > generation:
                logger.info(
                    f"Dropping stale cache write (generation {generation} < {previous.generation})"
                )
                return None

            shown_ids = set(shown_ids_to_merge)
            if previous is not None and previous.is_valid(now, self.ttl_seconds):
                shown_ids |= previous.shown_ids
            shown_ids |= {video.video_id for video in videos}

            entry = CacheEntry(
                videos=list(videos),
                timestamp=now,
                api_error=api_error,
                used_fallback=used_fallback,
                shown_ids=shown_ids,
                generation=generation,
            )
            data[CACHE_KEY] = entry.to_dict()

        logger.debug(f"Cached {len(videos)} videos (generation {generation})")
        return entry

    def clear(self) -> None:
        self.store.remove(CACHE_KEY)
        logger.info("Video cache cleared")
