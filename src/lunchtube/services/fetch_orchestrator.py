"""Quota-budgeted candidate fetch from subscriptions and the trending chart."""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Set

from lunchtube.models.video import CandidateVideo
from lunchtube.services.youtube_service import YouTubeService
from lunchtube.utils.config import (
    DETAIL_BATCH_LIMIT,
    FRESHNESS_MAX_DAYS,
    FRESHNESS_MIN_DAYS,
    ITEMS_PER_COLLECTION,
    MAX_SAMPLED_CHANNELS,
    TRENDING_MAX_RESULTS,
)
from lunchtube.utils.formatting import as_utc, parse_published_at

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    """Merged candidate pool of one orchestration."""

    candidates: List[CandidateVideo] = field(default_factory=list)
    trending_ids: Set[str] = field(default_factory=set)
    calls_made: int = 0
    sampled_channels: int = 0
    resolved_collections: int = 0

    @property
    def call_budget(self) -> int:
        """Upper bound on calls for this orchestration's shape."""
        return 4 + self.resolved_collections


class FetchOrchestrator:
    """Runs the fixed-shape call sequence against the metadata service.

    Cost is at most ``4 + resolved_collections`` calls: subscriptions, one
    batched channel lookup, one playlist call per resolved uploads playlist,
    the trending chart and one batched detail lookup.
    """

    def __init__(
        self,
        youtube_service: YouTubeService,
        trending_region: str = "US",
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = datetime.now,
        item_timeout: float = 15.0,
    ):
        self.youtube_service = youtube_service
        self.trending_region = trending_region
        self.rng = rng or random.Random()
        self.clock = clock
        self.item_timeout = item_timeout

    async def fetch_candidates(self, credential) -> FetchResult:
        """Run all stages. Only a subscription-list failure propagates."""
        result = FetchResult()
        loop = asyncio.get_event_loop()

        # Stage 1: failures abort the whole orchestration
        result.calls_made += 1
        channel_ids = await loop.run_in_executor(
            None, self.youtube_service.list_subscriptions, credential
        )
        logger.info(f"Found {len(channel_ids)} subscribed channels")

        # Stage 2
        sampled = self.rng.sample(channel_ids, min(MAX_SAMPLED_CHANNELS, len(channel_ids)))
        result.sampled_channels = len(sampled)

        # Stage 3
        uploads: Dict[str, str] = {}
        if sampled:
            result.calls_made += 1
            try:
                uploads = await loop.run_in_executor(
                    None, self.youtube_service.batch_get_upload_collections, credential, sampled
                )
            except Exception as e:
                logger.warning(f"Could not resolve uploads playlists: {e}")
        collection_ids = [uploads[channel_id] for channel_id in sampled if channel_id in uploads]
        result.resolved_collections = len(collection_ids)

        # Stage 4: fan-out, absorb per-item failures
        cutoff = as_utc(self.clock()) - timedelta(
            days=self.rng.uniform(FRESHNESS_MIN_DAYS, FRESHNESS_MAX_DAYS)
        )
        result.calls_made += len(collection_ids)
        recent_ids = await self._collect_recent_uploads(credential, collection_ids, cutoff)
        logger.info(
            f"Collected {len(recent_ids)} recent uploads from {len(collection_ids)} channels"
        )

        # Stage 5
        result.calls_made += 1
        trending: List[CandidateVideo] = []
        try:
            trending = await loop.run_in_executor(
                None,
                self.youtube_service.list_trending,
                credential,
                self.trending_region,
                TRENDING_MAX_RESULTS,
            )
        except Exception as e:
            logger.warning(f"Trending chart unavailable for {self.trending_region}: {e}")
        result.trending_ids = {video.video_id for video in trending}

        # Stage 6
        unique_ids = list(dict.fromkeys(recent_ids))
        self.rng.shuffle(unique_ids)
        detail_ids = unique_ids[:DETAIL_BATCH_LIMIT]
        subscription_videos: List[CandidateVideo] = []
        if detail_ids:
            result.calls_made += 1
            try:
                subscription_videos = await loop.run_in_executor(
                    None, self.youtube_service.batch_get_video_details, credential, detail_ids
                )
            except Exception as e:
                logger.warning(f"Could not fetch details for subscription uploads: {e}")

        # Stage 7
        result.candidates = self._merge(subscription_videos, trending)

        logger.info(
            f"Candidate pool: {len(result.candidates)} videos "
            f"({len(subscription_videos)} subscription, {len(trending)} trending), "
            f"{result.calls_made} API calls"
        )
        return result

    async def _collect_recent_uploads(
        self, credential, collection_ids: List[str], cutoff: datetime
    ) -> List[str]:
        if not collection_ids:
            return []

        loop = asyncio.get_event_loop()
        tasks = [
            asyncio.wait_for(
                loop.run_in_executor(
                    None,
                    self.youtube_service.list_collection_items,
                    credential,
                    collection_id,
                    ITEMS_PER_COLLECTION,
                ),
                timeout=self.item_timeout,
            )
            for collection_id in collection_ids
        ]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        video_ids = []
        for collection_id, outcome in zip(collection_ids, outcomes):
            if isinstance(outcome, BaseException):
                logger.debug(f"Skipping playlist {collection_id}: {outcome!r}")
                continue
            for item in outcome:
                published = parse_published_at(item.get("published_at"))
                if published is None or published < cutoff:
                    continue
                video_ids.append(item["video_id"])
        return video_ids

    def _merge(
        self, subscription_videos: List[CandidateVideo], trending: List[CandidateVideo]
    ) -> List[CandidateVideo]:
        merged = list(subscription_videos)
        seen = {video.video_id for video in subscription_videos}
        for video in trending:
            if video.video_id not in seen:
                merged.append(video)
                seen.add(video.video_id)
        return merged
