"""Settings and persisted session state for LunchTube."""

from dataclasses import dataclass, field
from typing import List, Optional, Set

from lunchtube.models.video import RankedVideo
from lunchtube.utils.errors import ApiErrorReason
from lunchtube.utils.time_window import parse_hhmm


@dataclass(frozen=True)
class Settings:
    """User-configured lunch window and filters."""

    lunch_start: str = '12:00'
    lunch_end: str = '13:00'
    max_duration_minutes: int = 20
    video_count: int = 10

    def __post_init__(self):
        if parse_hhmm(self.lunch_start) >= parse_hhmm(self.lunch_end):
            raise ValueError(
                f"lunch_start must be before lunch_end, got {self.lunch_start}-{self.lunch_end}"
            )
        if self.max_duration_minutes <= 0:
            raise ValueError(f"max_duration_minutes must be positive, got {self.max_duration_minutes}")
        if self.video_count <= 0:
            raise ValueError(f"video_count must be positive, got {self.video_count}")

    @property
    def max_duration_seconds(self) -> int:
        return self.max_duration_minutes * 60

    def to_dict(self) -> dict:
        return {
            'lunch_start': self.lunch_start,
            'lunch_end': self.lunch_end,
            'max_duration_minutes': self.max_duration_minutes,
            'video_count': self.video_count,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Settings':
        return cls(
            lunch_start=data['lunch_start'],
            lunch_end=data['lunch_end'],
            max_duration_minutes=int(data['max_duration_minutes']),
            video_count=int(data['video_count']),
        )


@dataclass
class CacheEntry:
    """The single cached result slot."""

    videos: List[RankedVideo]
    timestamp: float
    api_error: Optional[ApiErrorReason] = None
    used_fallback: bool = False
    shown_ids: Set[str] = field(default_factory=set)
    generation: int = 0

    def is_valid(self, now: float, ttl_seconds: float) -> bool:
        return bool(self.videos) and (now - self.timestamp) < ttl_seconds

    def to_dict(self) -> dict:
        """Convert entry to dictionary for the local store."""
        return {
            'videos': [video.to_dict() for video in self.videos],
            'timestamp': self.timestamp,
            'api_error': self.api_error.value if self.api_error else None,
            'used_fallback': self.used_fallback,
            'shown_ids': sorted(self.shown_ids),
            'generation': self.generation,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'CacheEntry':
        """Create entry from dictionary loaded from the local store."""
        return cls(
            videos=[RankedVideo.from_dict(v) for v in data['videos']],
            timestamp=float(data['timestamp']),
            api_error=ApiErrorReason(data['api_error']) if data.get('api_error') else None,
            used_fallback=bool(data.get('used_fallback', False)),
            shown_ids=set(data.get('shown_ids') or []),
            generation=int(data.get('generation', 0)),
        )


@dataclass
class RefreshSession:
    """Re-roll counter for one (date, lunch start) session."""

    session_key: str
    count: int = 0

    def to_dict(self) -> dict:
        return {'session_key': self.session_key, 'count': self.count}

    @classmethod
    def from_dict(cls, data: dict) -> 'RefreshSession':
        return cls(session_key=str(data['session_key']), count=int(data['count']))
