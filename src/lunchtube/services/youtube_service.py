"""YouTube Data API v3 client covering the five calls the fetch pipeline makes."""

import logging
from typing import Dict, List, Optional

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from lunchtube.models.video import CandidateVideo
from lunchtube.utils.errors import MetadataServiceError, error_from_http

logger = logging.getLogger(__name__)

VIDEO_PARTS = "snippet,contentDetails,statistics"
MAX_IDS_PER_REQUEST = 50


class YouTubeService:
    """Thin wrapper over the YouTube Data API.

    Every method issues exactly one API request. A client resource is built
    per call because the underlying httplib2 transport is not thread-safe and
    the fetch pipeline calls these methods from worker threads.
    """

    def _client(self, credential: Credentials):
        return build("youtube", "v3", credentials=credential, cache_discovery=False)

    def _execute(self, request, operation: str) -> Dict:
        try:
            return request.execute()
        except HttpError as error:
            logger.debug(f"YouTube {operation} failed: {error}")
            raise error_from_http(error, operation)
        except OSError as e:
            raise MetadataServiceError(f"{operation} transport error: {e}")

    def list_subscriptions(self, credential: Credentials, max_results: int = 50) -> List[str]:
        """Return the channel ids the user is subscribed to (one page)."""
        request = self._client(credential).subscriptions().list(
            part="snippet",
            mine=True,
            maxResults=max_results,
            order="relevance",
        )
        response = self._execute(request, "subscriptions.list")

        channel_ids = []
        for item in response.get("items", []):
            channel_id = item.get("snippet", {}).get("resourceId", {}).get("channelId")
            if channel_id:
                channel_ids.append(channel_id)
        return channel_ids

    def batch_get_upload_collections(
        self, credential: Credentials, channel_ids: List[str]
    ) -> Dict[str, str]:
        """Map each channel id to its uploads playlist id."""
        if not channel_ids:
            return {}
        request = self._client(credential).channels().list(
            part="contentDetails",
            id=",".join(channel_ids[:MAX_IDS_PER_REQUEST]),
            maxResults=MAX_IDS_PER_REQUEST,
        )
        response = self._execute(request, "channels.list")

        uploads = {}
        for item in response.get("items", []):
            playlist_id = (
                item.get("contentDetails", {}).get("relatedPlaylists", {}).get("uploads")
            )
            if item.get("id") and playlist_id:
                uploads[item["id"]] = playlist_id
        return uploads

    def list_collection_items(
        self, credential: Credentials, collection_id: str, max_results: int = 4
    ) -> List[Dict[str, Optional[str]]]:
        """Return the newest items of a playlist as ``{video_id, published_at}``."""
        request = self._client(credential).playlistItems().list(
            part="snippet,contentDetails",
            playlistId=collection_id,
            maxResults=max_results,
        )
        response = self._execute(request, "playlistItems.list")

        items = []
        for item in response.get("items", []):
            details = item.get("contentDetails", {})
            snippet = item.get("snippet", {})
            video_id = details.get("videoId") or snippet.get("resourceId", {}).get("videoId")
            if not video_id:
                continue
            items.append({
                "video_id": video_id,
                "published_at": details.get("videoPublishedAt") or snippet.get("publishedAt"),
            })
        return items

    def batch_get_video_details(
        self, credential: Credentials, video_ids: List[str]
    ) -> List[CandidateVideo]:
        """Fetch snippet, duration and statistics for up to 50 videos."""
        if not video_ids:
            return []
        request = self._client(credential).videos().list(
            part=VIDEO_PARTS,
            id=",".join(video_ids[:MAX_IDS_PER_REQUEST]),
            maxResults=MAX_IDS_PER_REQUEST,
        )
        response = self._execute(request, "videos.list")
        return self._parse_video_items(response.get("items", []))

    def list_trending(
        self, credential: Credentials, region: str, max_results: int = 20
    ) -> List[CandidateVideo]:
        """Fetch the most-popular chart for a region, details included."""
        request = self._client(credential).videos().list(
            part=VIDEO_PARTS,
            chart="mostPopular",
            regionCode=region,
            maxResults=max_results,
        )
        response = self._execute(request, "videos.list(chart=mostPopular)")
        return self._parse_video_items(response.get("items", []))

    def _parse_video_items(self, items: List[Dict]) -> List[CandidateVideo]:
        videos = []
        for item in items:
            video = self._parse_video_item(item)
            if video:
                videos.append(video)
        return videos

    def _parse_video_item(self, item: Dict) -> Optional[CandidateVideo]:
        """Parse a videos.list resource into a CandidateVideo."""
        video_id = item.get("id")
        if not video_id or not isinstance(video_id, str):
            return None

        snippet = item.get("snippet", {})
        statistics = item.get("statistics", {})
        thumbnails = snippet.get("thumbnails", {})
        thumbnail = thumbnails.get("medium") or thumbnails.get("default") or {}

        try:
            return CandidateVideo(
                video_id=video_id,
                title=snippet.get("title", "Unknown Title"),
                channel_name=snippet.get("channelTitle", ""),
                thumbnail_url=thumbnail.get("url"),
                iso_duration=item.get("contentDetails", {}).get("duration", "PT0S"),
                published_at=snippet.get("publishedAt"),
                view_count=int(statistics.get("viewCount", 0)),
                like_count=int(statistics.get("likeCount", 0)),
                comment_count=int(statistics.get("commentCount", 0)),
                description=snippet.get("description", ""),
            )
        except (TypeError, ValueError) as e:
            logger.warning(f"Failed to parse video item {video_id}: {e}")
            return None
