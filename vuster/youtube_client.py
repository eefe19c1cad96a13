"""
YouTubeClient - Reads channel catalogs from the YouTube Data API v3.
"""

import asyncio
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

import httpx

from .config import YouTubeConfig
from .video_record import VideoRecord

DURATION_PATTERN = re.compile(r'PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?')


def parse_iso_duration(duration: Optional[str]) -> int:
    """Convert an ISO 8601 duration such as 'PT1M30S' to seconds."""
    if not duration:
        return 0
    match = DURATION_PATTERN.search(duration)
    if not match:
        return 0
    hours, minutes, seconds = (int(part or 0) for part in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


def uploads_playlist_id(channel_id: str) -> str:
    """Every channel's uploads playlist is its id with UC swapped for UU."""
    if channel_id.startswith('UC'):
        return 'UU' + channel_id[2:]
    return channel_id


class YouTubeClient:
    """
    Minimal async REST client for the calls the sync needs.

    Provider errors (quota, network) are logged and mapped to empty
    results so one failing channel does not stop the others.
    """

    def __init__(
        self,
        config: YouTubeConfig,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=config.timeout)

    async def _get(self, resource: str, params: Dict[str, Any]) -> Dict[str, Any]:
        query = {key: value for key, value in params.items() if value is not None}
        query['key'] = self.config.api_key
        response = await self._client.get(f"{self.config.base_url}/{resource}", params=query)
        response.raise_for_status()
        return response.json()

    async def fetch_recent_video_ids(
        self,
        channel_id: str,
        now: Optional[datetime] = None
    ) -> List[str]:
        """
        Ids of uploads published within the lookback window, newest first.

        The uploads playlist is ordered newest first, so paging stops at
        the first item older than the window.
        """
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=self.config.lookback_days)
        playlist_id = uploads_playlist_id(channel_id)
        video_ids = []
        page_token = None

        try:
            while True:
                data = await self._get('playlistItems', {
                    'part': 'snippet',
                    'playlistId': playlist_id,
                    'maxResults': self.config.page_size,
                    'pageToken': page_token,
                })

                items = data.get('items') or []
                keep_paging = bool(items)
                for item in items:
                    snippet = item.get('snippet', {})
                    if parse_timestamp(snippet['publishedAt']) < cutoff:
                        keep_paging = False
                        break
                    video_ids.append(snippet['resourceId']['videoId'])

                page_token = data.get('nextPageToken')
                if not keep_paging or not page_token:
                    break
        except httpx.HTTPError as e:
            self.logger.error(f"[YouTube API] playlistItems.list ({playlist_id}) failed: {e}")
            return []

        return video_ids

    async def fetch_video_details(self, video_ids: Sequence[str]) -> List[VideoRecord]:
        """Look up title, views, duration and thumbnail for each id."""
        if not video_ids:
            return []

        size = self.config.page_size
        chunks = [video_ids[i:i + size] for i in range(0, len(video_ids), size)]
        try:
            pages = await asyncio.gather(*(
                self._get('videos', {
                    'part': 'snippet,contentDetails,statistics',
                    'id': ','.join(chunk),
                })
                for chunk in chunks
            ))
        except httpx.HTTPError as e:
            self.logger.error(f"[YouTube API] videos.list failed: {e}")
            return []

        records = []
        for page in pages:
            for item in page.get('items') or []:
                records.append(self._to_record(item))
        return records

    def _to_record(self, item: Dict[str, Any]) -> VideoRecord:
        snippet = item.get('snippet', {})
        duration = parse_iso_duration(item.get('contentDetails', {}).get('duration'))
        thumbnails = snippet.get('thumbnails') or {}
        thumbnail = thumbnails.get('medium') or thumbnails.get('default') or {}
        try:
            views = int(item.get('statistics', {}).get('viewCount', 0))
        except (TypeError, ValueError):
            views = 0

        is_shorts = 0 < duration <= self.config.shorts_max_seconds
        return VideoRecord(
            video_id=item['id'],
            title=snippet.get('title', ''),
            views=views,
            published_at=parse_timestamp(snippet['publishedAt']),
            is_shorts=is_shorts,
            # Only atlas-eligible records carry a thumbnail address
            thumbnail_url=None if is_shorts else thumbnail.get('url'),
        )

    async def fetch_subscriber_count(self, channel_id: str) -> Optional[int]:
        """
        Subscriber count of a channel.

        Returns:
            The count, 0 if the channel hides it, None if the channel is
            missing or the request failed
        """
        try:
            data = await self._get('channels', {'part': 'statistics', 'id': channel_id})
        except httpx.HTTPError as e:
            self.logger.error(f"[YouTube API] channels.list ({channel_id}) failed: {e}")
            return None

        items = data.get('items') or []
        if not items:
            self.logger.warning(f"[YouTube API] Channel not found: {channel_id}")
            return None

        stats = items[0].get('statistics', {})
        if stats.get('hiddenSubscriberCount'):
            self.logger.info(f"Channel {channel_id} hides its subscriber count")
            return 0
        try:
            return int(stats.get('subscriberCount', 0))
        except (TypeError, ValueError):
            return 0

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> 'YouTubeClient':
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
