"""Ids of videos the user actually opened, bounded to the most recent 500."""

import logging
from typing import Set

from lunchtube.utils.config import WATCHED_HISTORY_LIMIT
from lunchtube.utils.storage import JsonStore

logger = logging.getLogger(__name__)

WATCHED_KEY = "watched_videos"


class WatchedStore:
    def __init__(self, store: JsonStore, limit: int = WATCHED_HISTORY_LIMIT):
        self.store = store
        self.limit = limit

    def ids(self) -> Set[str]:
        watched = self.store.get(WATCHED_KEY, [])
        if not isinstance(watched, list):
            return set()
        return {str(video_id) for video_id in watched}

    def add(self, video_id: str) -> None:
        """Record a watched video, moving repeats to the most-recent end."""
        with self.store.transaction() as data:
            watched = data.get(WATCHED_KEY)
            if not isinstance(watched, list):
                watched = []
            watched = [v for v in watched if v != video_id]
            watched.append(video_id)
            data[WATCHED_KEY] = watched[-self.limit:]
        logger.debug(f"Marked {video_id} as watched")
