"""
VideoRecord - Record for a single video and its atlas status.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


STATUS_PENDING = 'pending'
STATUS_ATLASED = 'atlased'
STATUS_NOT_ELIGIBLE = 'not_eligible'


@dataclass
class VideoRecord:
    """
    Record for a single video in a creator's catalog.

    A record is "pending" (has thumbnail_url, no thumbnail_index),
    "atlased" (has thumbnail_index, no thumbnail_url) or "not eligible"
    (neither, e.g. shorts).

    Attributes:
        video_id: Provider video id, used as the document id
        title: Video title
        views: View count
        published_at: Publish timestamp
        is_shorts: True for short-form content
        thumbnail_url: Transient thumbnail address, present until indexed
        thumbnail_index: Slot index in the current atlas
    """
    video_id: str
    title: str
    views: int
    published_at: datetime
    is_shorts: bool
    thumbnail_url: Optional[str] = None
    thumbnail_index: Optional[int] = None

    @property
    def status(self) -> str:
        if self.thumbnail_index is not None:
            return STATUS_ATLASED
        if self.thumbnail_url and not self.is_shorts:
            return STATUS_PENDING
        return STATUS_NOT_ELIGIBLE

    def to_dict(self) -> Dict[str, Any]:
        """Firestore document body. Optional fields are only written when set."""
        data = {
            'title': self.title,
            'views': self.views,
            'isShorts': self.is_shorts,
            'publishedAt': self.published_at,
        }
        if self.thumbnail_url and not self.is_shorts:
            data['thumbnailUrl'] = self.thumbnail_url
        if self.thumbnail_index is not None:
            data['thumbnailIndex'] = self.thumbnail_index
        return data

    @classmethod
    def from_dict(cls, video_id: str, data: Dict[str, Any]) -> 'VideoRecord':
        return cls(
            video_id=video_id,
            title=data.get('title', ''),
            views=int(data.get('views') or 0),
            published_at=data.get('publishedAt'),
            is_shorts=bool(data.get('isShorts', False)),
            thumbnail_url=data.get('thumbnailUrl'),
            thumbnail_index=data.get('thumbnailIndex'),
        )


@dataclass
class Creator:
    """
    A tracked content creator.

    Attributes:
        creator_id: Document id
        name: Display name
        channel_id: YouTube channel id (UC...)
        soop_id: Live streaming platform id
        subscriber_count: Last known subscriber count
    """
    creator_id: str
    name: Optional[str] = None
    channel_id: Optional[str] = None
    soop_id: Optional[str] = None
    subscriber_count: int = 0

    @classmethod
    def from_dict(cls, creator_id: str, data: Dict[str, Any]) -> 'Creator':
        return cls(
            creator_id=creator_id,
            name=data.get('name'),
            channel_id=data.get('channelId'),
            soop_id=data.get('soopId'),
            subscriber_count=int(data.get('subscriberCount') or 0),
        )


@dataclass(frozen=True)
class AtlasCandidate:
    """
    A video eligible for the atlas during one build run. Not persisted.

    Attributes:
        path: Document path of the video record
        creator_id: Owning creator
        video_id: Video id
        thumbnail_url: Source address to download
        published_at: Publish timestamp, the sort key
    """
    path: str
    creator_id: str
    video_id: str
    thumbnail_url: str
    published_at: datetime


@dataclass
class CatalogMetadata:
    """System-wide sync metadata."""
    updated_at: Optional[datetime] = None
    atlas_url: Optional[str] = None


@dataclass
class LiveStatus:
    """Current broadcast status of one streamer."""
    streamer_id: str
    is_live: bool
    viewers: int
    name: Optional[str] = None
    updated_at: Optional[datetime] = None
