"""Fixed substitute picks served when live results are unavailable."""

import logging
from typing import List, Optional, Set

from lunchtube.models.video import RankedVideo, VideoSource
from lunchtube.utils.formatting import format_duration

logger = logging.getLogger(__name__)

FALLBACK_ID_PREFIX = "fallback-"

# (title, channel, duration seconds, views label, score)
_FALLBACK_POOL = [
    ("Ten-minute guided breathing reset", "Calm Desk", 600, "3.4M", 0.072),
    ("Browser extensions every developer should try", "Build Notes", 710, "720K", 0.067),
    ("Learn the basics of a new language in 15 minutes", "Quick Code", 900, "2.1M", 0.062),
    ("Personal finance habits that actually stick", "Money Sense", 862, "1.8M", 0.058),
    ("How to learn anything faster", "Study Lab", 970, "2.5M", 0.055),
    ("Fast weekday lunch recipes", "Kitchen Express", 615, "560K", 0.051),
    ("A high-energy morning routine", "Peak Hours", 573, "990K", 0.049),
    ("Getting more done at work without burning out", "Focus Plus", 754, "1.2M", 0.045),
    ("Design thinking in practice", "UX Weekly", 1125, "445K", 0.041),
    ("What nutrition science says about lunch", "Health Focus", 500, "890K", 0.038),
]


def fallback_pool() -> List[RankedVideo]:
    """The full substitute pool, best score first."""
    return [
        RankedVideo(
            video_id=f"{FALLBACK_ID_PREFIX}{index}",
            title=title,
            channel_name=channel,
            thumbnail_url=f"https://picsum.photos/seed/lunchtube{index}/320/180",
            duration_seconds=seconds,
            formatted_duration=format_duration(seconds),
            formatted_views=views,
            score=score,
            source=VideoSource.FALLBACK,
        )
        for index, (title, channel, seconds, views, score) in enumerate(_FALLBACK_POOL, start=1)
    ]


def fallback_videos(count: int, excluded_ids: Optional[Set[str]] = None) -> List[RankedVideo]:
    """Substitute picks not yet shown this session, truncated to ``count``."""
    excluded_ids = excluded_ids or set()
    videos = [v for v in fallback_pool() if v.video_id not in excluded_ids][:count]
    logger.info(f"Serving {len(videos)} fallback videos")
    return videos


def is_fallback_id(video_id: str) -> bool:
    return video_id.startswith(FALLBACK_ID_PREFIX)
