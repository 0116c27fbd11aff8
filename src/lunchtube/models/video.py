"""Video-related data models."""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional


class VideoSource(Enum):
    """Where a ranked video came from."""
    SUBSCRIPTION = "subscription"
    TRENDING = "trending"
    FALLBACK = "fallback"


@dataclass
class CandidateVideo:
    """Represents a video detail record returned by the YouTube Data API."""

    video_id: str
    title: str
    channel_name: str
    thumbnail_url: Optional[str]
    iso_duration: str
    published_at: Optional[str]
    view_count: int = 0
    like_count: int = 0
    comment_count: int = 0
    description: Optional[str] = None


@dataclass(frozen=True)
class RankedVideo:
    """Represents a candidate that passed filtering, with its engagement score."""

    video_id: str
    title: str
    channel_name: str
    thumbnail_url: Optional[str]
    duration_seconds: int
    formatted_duration: str
    formatted_views: str
    score: float
    source: VideoSource
    published_at: Optional[str] = None

    @property
    def url(self) -> str:
        return f"https://www.youtube.com/watch?v={self.video_id}"

    def to_dict(self) -> dict:
        data = asdict(self)
        data['source'] = self.source.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'RankedVideo':
        return cls(
            video_id=data['video_id'],
            title=data['title'],
            channel_name=data['channel_name'],
            thumbnail_url=data.get('thumbnail_url'),
            duration_seconds=int(data['duration_seconds']),
            formatted_duration=data['formatted_duration'],
            formatted_views=data['formatted_views'],
            score=float(data['score']),
            source=VideoSource(data['source']),
            published_at=data.get('published_at'),
        )
