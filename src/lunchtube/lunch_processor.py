"""Central coordinator for LunchTube: window gating, fetch, rank, cache and re-roll."""

import asyncio
import logging
import random
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Dict, List, Optional, Set

from lunchtube.models.state import CacheEntry, Settings
from lunchtube.models.video import RankedVideo
from lunchtube.services.auth_service import AuthService
from lunchtube.services.cache_store import CacheStore
from lunchtube.services.fallback import fallback_videos, is_fallback_id
from lunchtube.services.fetch_orchestrator import FetchOrchestrator
from lunchtube.services.ranking import rank_videos
from lunchtube.services.refresh_limiter import RefreshLimiter
from lunchtube.services.watched_store import WatchedStore
from lunchtube.services.youtube_service import YouTubeService
from lunchtube.utils.config import load_config, validate_config
from lunchtube.utils.errors import ApiErrorReason, classify_error
from lunchtube.utils.storage import JsonStore, open_stores
from lunchtube.utils.time_window import is_window_active, minutes_until_start, session_key

logger = logging.getLogger(__name__)

SETTINGS_KEY = "settings"


@dataclass
class WaitingState:
    minutes_until: int
    settings: Settings
    mode: str = "waiting"


@dataclass
class ActiveState:
    videos: List[RankedVideo]
    api_error: Optional[ApiErrorReason]
    used_fallback: bool
    remaining_refreshes: int
    settings: Settings
    mode: str = "active"


@dataclass
class RefreshResult:
    videos: List[RankedVideo]
    api_error: Optional[ApiErrorReason]
    used_fallback: bool
    remaining_refreshes: int
    refresh_limit_reached: bool


@dataclass
class AuthResult:
    success: bool
    error: Optional[str] = None


class LunchProcessor:
    """Serves the lunch-window state and re-roll requests."""

    def __init__(
        self,
        config: Optional[Dict] = None,
        auth_service: Optional[AuthService] = None,
        youtube_service: Optional[YouTubeService] = None,
        sync_store: Optional[JsonStore] = None,
        local_store: Optional[JsonStore] = None,
        clock: Callable[[], datetime] = datetime.now,
        rng: Optional[random.Random] = None,
    ):
        """Initialize LunchTube with configuration."""
        self.config = config or load_config()
        self.clock = clock

        config_errors = validate_config(self.config)
        if config_errors:
            error_msg = "Configuration errors: " + "; ".join(config_errors)
            logger.error(error_msg)
            raise ValueError(error_msg)

        if sync_store is None or local_store is None:
            sync_store, local_store = open_stores(self.config)
        self.sync_store = sync_store
        self.local_store = local_store

        self.auth_service = auth_service or AuthService(
            self.config.get("google_client_id"),
            self.config.get("google_client_secret"),
            self.config.get("token_path", "token.json"),
        )
        self.youtube_service = youtube_service or YouTubeService()
        self.orchestrator = FetchOrchestrator(
            self.youtube_service,
            trending_region=self.config.get("trending_region", "US"),
            rng=rng,
            clock=clock,
            item_timeout=self.config.get("fetch_timeout_seconds", 15.0),
        )
        self.short_threshold_seconds = self.config.get("short_threshold_seconds", 90)

        self.cache = CacheStore(local_store, clock=clock)
        self.watched = WatchedStore(local_store)
        self.limiter = RefreshLimiter(local_store)

        logger.info("LunchTube initialized successfully")

    # Settings

    def load_settings(self) -> Settings:
        raw = self.sync_store.get(SETTINGS_KEY)
        if isinstance(raw, dict):
            try:
                return Settings.from_dict(raw)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Stored settings are invalid, using defaults: {e}")
        return Settings()

    def update_settings(self, settings: Settings) -> None:
        """Persist new settings. Results ranked under the old filters are discarded."""
        self.sync_store.set(SETTINGS_KEY, settings.to_dict())
        self.cache.clear()
        logger.info(
            f"Settings saved: lunch {settings.lunch_start}-{settings.lunch_end}, "
            f"max {settings.max_duration_minutes} min, {settings.video_count} videos"
        )

    def on_install(self) -> None:
        """Seed default settings and drop any cache left by a previous version."""
        if not isinstance(self.sync_store.get(SETTINGS_KEY), dict):
            self.sync_store.set(SETTINGS_KEY, Settings().to_dict())
        self.cache.clear()

    # Request/response surface

    async def get_state(self):
        """Return ``WaitingState`` outside the window, else ``ActiveState``."""
        settings = self.load_settings()
        now = self.clock()

        if not is_window_active(settings, now):
            return WaitingState(minutes_until=minutes_until_start(settings, now), settings=settings)

        entry = self.cache.get()
        if entry is None:
            entry = await self.fetch_and_cache(settings)

        return ActiveState(
            videos=entry.videos,
            api_error=entry.api_error,
            used_fallback=entry.used_fallback,
            remaining_refreshes=self.limiter.peek_remaining(session_key(settings, now)),
            settings=settings,
        )

    async def refresh_videos(self) -> RefreshResult:
        """Re-roll the picks, excluding everything already shown this cache lifetime."""
        settings = self.load_settings()
        key = session_key(settings, self.clock())
        decision = self.limiter.try_consume(key)
        current = self.cache.get()

        if not decision.allowed:
            return RefreshResult(
                videos=current.videos if current else [],
                api_error=current.api_error if current else None,
                used_fallback=current.used_fallback if current else False,
                remaining_refreshes=0,
                refresh_limit_reached=True,
            )

        excluded_ids = set(current.shown_ids) if current else set()
        entry = await self.fetch_and_cache(settings, excluded_ids)
        return RefreshResult(
            videos=entry.videos,
            api_error=entry.api_error,
            used_fallback=entry.used_fallback,
            remaining_refreshes=decision.remaining,
            refresh_limit_reached=False,
        )

    async def authenticate_interactive(self) -> AuthResult:
        """Run the OAuth consent flow."""
        loop = asyncio.get_event_loop()
        try:
            await loop.run_in_executor(None, self.auth_service.get_credential, True)
        except Exception as e:
            logger.error(f"Interactive authentication failed: {e}")
            return AuthResult(success=False, error=str(e))

        # Substitute picks cached while signed out should not outlive the sign-in
        current = self.cache.get()
        if current is not None and current.used_fallback:
            self.cache.clear()
        return AuthResult(success=True)

    def mark_watched(self, video_id: str) -> bool:
        """Record that the user opened a video. Fallback picks are not recorded."""
        if not video_id or is_fallback_id(video_id):
            return False
        self.watched.add(video_id)
        return True

    async def check_window(self) -> bool:
        """Periodic trigger: prefetch when inside the window with nothing cached."""
        settings = self.load_settings()
        if not is_window_active(settings, self.clock()):
            return False
        if self.cache.get() is not None:
            return False
        await self.fetch_and_cache(settings)
        return True

    # Pipeline

    async def fetch_and_cache(
        self, settings: Settings, excluded_ids: Optional[Set[str]] = None
    ) -> CacheEntry:
        """Run one orchestration, rank, degrade if needed and write the cache."""
        excluded_ids = excluded_ids or set()
        generation = self.cache.begin_generation()
        api_error: Optional[ApiErrorReason] = None
        videos: List[RankedVideo] = []

        loop = asyncio.get_event_loop()
        try:
            credential = await loop.run_in_executor(
                None, self.auth_service.get_credential, False
            )
            fetch = await self.orchestrator.fetch_candidates(credential)
            videos = rank_videos(
                fetch.candidates,
                max_duration_seconds=settings.max_duration_seconds,
                count=settings.video_count,
                now=self.clock(),
                watched_ids=self.watched.ids(),
                excluded_ids=excluded_ids,
                trending_ids=fetch.trending_ids,
                short_threshold_seconds=self.short_threshold_seconds,
            )
            if not videos:
                api_error = ApiErrorReason.NO_RESULTS
                logger.info("No candidates survived filtering")
        except Exception as e:
            api_error = classify_error(e)
            logger.warning(f"YouTube unavailable ({api_error.value}), using fallback videos: {e}")

        used_fallback = not videos
        if used_fallback:
            videos = fallback_videos(settings.video_count, excluded_ids)
            current = self.cache.get()
            if not videos and current is not None:
                # Substitute pool exhausted; keep the slot and its shown ids
                logger.info("No unseen fallback videos left, keeping the current picks")
                return replace(current, api_error=api_error)

        entry = self.cache.set(
            videos,
            api_error=api_error,
            shown_ids_to_merge=excluded_ids,
            used_fallback=used_fallback,
            generation=generation,
        )
        if entry is None:
            # A later orchestration already wrote; serve its result
            entry = self.cache.get() or CacheEntry(
                videos=videos,
                timestamp=self.clock().timestamp(),
                api_error=api_error,
                used_fallback=used_fallback,
                shown_ids=set(excluded_ids) | {v.video_id for v in videos},
                generation=generation,
            )
        return entry
