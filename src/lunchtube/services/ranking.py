"""Candidate filtering and engagement ranking."""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Set

from lunchtube.models.video import CandidateVideo, RankedVideo, VideoSource
from lunchtube.utils.formatting import (
    as_utc,
    format_duration,
    format_view_count,
    parse_duration_to_seconds,
    parse_published_at,
)

logger = logging.getLogger(__name__)

DEFAULT_SHORT_THRESHOLD_SECONDS = 90
SHORT_TITLE_MARKERS = ("#shorts", "#short", "shorts")
SHORT_DESCRIPTION_MARKERS = ("#shorts", "#short")
SECONDS_PER_DAY = 86400


def is_short(video: CandidateVideo, threshold_seconds: int = DEFAULT_SHORT_THRESHOLD_SECONDS) -> bool:
    """Whether a video counts as a Short, by length or by its own tagging."""
    duration = parse_duration_to_seconds(video.iso_duration)
    if 0 < duration <= threshold_seconds:
        return True

    title = (video.title or "").lower()
    if any(marker in title for marker in SHORT_TITLE_MARKERS):
        return True

    description = (video.description or "").lower()
    return any(marker in description for marker in SHORT_DESCRIPTION_MARKERS)


def engagement_score(video: CandidateVideo, now: datetime) -> float:
    """``(likes + 2*comments) / views``, divided by the age in days (floored at 1)."""
    ratio = (video.like_count + 2 * video.comment_count) / max(video.view_count, 1)

    age_days = 1.0
    published = parse_published_at(video.published_at)
    if published is not None:
        age_days = (as_utc(now) - published).total_seconds() / SECONDS_PER_DAY
    return ratio / max(1.0, age_days)


def rejection_reason(
    video: CandidateVideo,
    max_duration_seconds: int,
    watched_ids: Set[str],
    excluded_ids: Set[str],
    short_threshold_seconds: int = DEFAULT_SHORT_THRESHOLD_SECONDS,
) -> Optional[str]:
    """Describe why a candidate is ineligible, or None if it passes."""
    duration = parse_duration_to_seconds(video.iso_duration)
    if duration <= 0:
        return "no usable duration"
    if duration > max_duration_seconds:
        return f"duration {duration}s exceeds maximum {max_duration_seconds}s"
    if is_short(video, short_threshold_seconds):
        return "short"
    if video.video_id in watched_ids:
        return "already watched"
    if video.video_id in excluded_ids:
        return "already shown this session"
    return None


def rank_videos(
    candidates: Iterable[CandidateVideo],
    max_duration_seconds: int,
    count: int,
    now: datetime,
    watched_ids: Optional[Set[str]] = None,
    excluded_ids: Optional[Set[str]] = None,
    trending_ids: Optional[Set[str]] = None,
    short_threshold_seconds: int = DEFAULT_SHORT_THRESHOLD_SECONDS,
) -> List[RankedVideo]:
    """Filter the pool, score what remains and return the top ``count``.

    Ties keep pool order. An empty result is returned as-is; the caller
    decides how to degrade.
    """
    watched_ids = watched_ids or set()
    excluded_ids = excluded_ids or set()
    trending_ids = trending_ids or set()

    ranked = []
    filtered_count = 0
    for video in candidates:
        reason = rejection_reason(
            video, max_duration_seconds, watched_ids, excluded_ids, short_threshold_seconds
        )
        if reason:
            filtered_count += 1
            logger.debug(f"Video {video.video_id} filtered: {reason}")
            continue
        ranked.append(_to_ranked(video, now, trending_ids))

    if filtered_count > 0:
        logger.info(f"Filtered out {filtered_count} videos that didn't meet criteria")

    ranked.sort(key=lambda v: v.score, reverse=True)
    return ranked[:count]


def _to_ranked(video: CandidateVideo, now: datetime, trending_ids: Set[str]) -> RankedVideo:
    duration = parse_duration_to_seconds(video.iso_duration)
    return RankedVideo(
        video_id=video.video_id,
        title=video.title,
        channel_name=video.channel_name,
        thumbnail_url=video.thumbnail_url,
        duration_seconds=duration,
        formatted_duration=format_duration(duration),
        formatted_views=format_view_count(video.view_count),
        score=engagement_score(video, now),
        source=VideoSource.TRENDING if video.video_id in trending_ids else VideoSource.SUBSCRIPTION,
        published_at=video.published_at,
    )
