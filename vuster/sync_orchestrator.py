"""
SyncOrchestrator - One full cycle: refresh every creator, then rebuild
the atlas.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

from .catalog_indexer import AtlasCycleResult, CatalogIndexer
from .catalog_store import CatalogStore
from .errors import ConfigurationError
from .video_record import STATUS_PENDING, Creator
from .youtube_client import YouTubeClient

STATUS_COMPLETED = 'completed'
STATUS_NO_CREATORS = 'no_creators'


@dataclass
class SyncResult:
    """
    Outcome of a sync cycle.

    Attributes:
        status: 'completed', or 'no_creators' when there was nothing to sync
        creators: Creators found in the store
        refreshed: Creators whose catalog was replaced
        skipped: Creator ids skipped (no channel id or refresh failed)
        videos_written: Total video records written
        atlas: Result of the atlas step (None if there were no creators)
    """
    status: str = STATUS_COMPLETED
    creators: int = 0
    refreshed: int = 0
    skipped: List[str] = field(default_factory=list)
    videos_written: int = 0
    atlas: Optional[AtlasCycleResult] = None


class SyncOrchestrator:
    """
    Runs the refresh phase for all creators concurrently and then hands
    the same creator set to the CatalogIndexer.

    Cycles must not overlap; nothing here guards against two running at
    once.
    """

    def __init__(
        self,
        store: CatalogStore,
        youtube: YouTubeClient,
        indexer: CatalogIndexer,
        logger: Optional[logging.Logger] = None
    ):
        self.store = store
        self.youtube = youtube
        self.indexer = indexer
        self.logger = logger or logging.getLogger(__name__)

    async def refresh_creator(self, creator: Creator) -> Optional[int]:
        """
        Replace one creator's catalog with their recent uploads.

        Returns:
            Number of videos written, or None if the creator was skipped
        """
        if not creator.channel_id:
            self.logger.warning(f"'{creator.creator_id}' has no channelId, skipping")
            return None

        self.logger.info(f"'{creator.creator_id}' (channel {creator.channel_id}) refreshing...")

        async def recent_videos():
            video_ids = await self.youtube.fetch_recent_video_ids(creator.channel_id)
            if not video_ids:
                self.logger.info(f"'{creator.creator_id}' has no recent videos")
                return []
            return await self.youtube.fetch_video_details(video_ids)

        subscriber_count, videos = await asyncio.gather(
            self.youtube.fetch_subscriber_count(creator.channel_id),
            recent_videos(),
        )

        if subscriber_count is not None:
            await self.store.update_subscriber_count(creator.creator_id, subscriber_count)
        else:
            self.logger.warning(f"'{creator.creator_id}' subscriber count unavailable")

        written = await self.store.replace_videos(creator.creator_id, videos)
        pending = sum(1 for video in videos if video.status == STATUS_PENDING)
        self.logger.info(
            f"'{creator.creator_id}' refreshed: {written} videos ({pending} awaiting the atlas)"
        )
        return written

    def validate_config(self) -> None:
        """
        Check the store and YouTube settings before any I/O.

        Raises:
            ConfigurationError: Listing every problem found
        """
        errors = self.store.config.validate() + self.youtube.config.validate()
        if errors:
            raise ConfigurationError(errors)

    async def _refresh_safely(self, creator: Creator) -> Optional[int]:
        try:
            return await self.refresh_creator(creator)
        except Exception as e:
            self.logger.error(f"'{creator.creator_id}' refresh failed: {e}", exc_info=True)
            return None

    async def run_cycle(self) -> SyncResult:
        """
        Refresh all catalogs, then rebuild the atlas and metadata.

        Raises:
            ConfigurationError: If store or YouTube settings are invalid;
                raised before anything is read
            AtlasPublishError, IndexRewriteError: From the atlas step; the
                metadata document is left unchanged
        """
        self.validate_config()

        start = time.monotonic()
        result = SyncResult()
        self.logger.info("Sync cycle started")

        try:
            creators = await self.store.list_creators()
            result.creators = len(creators)
            if not creators:
                result.status = STATUS_NO_CREATORS
                self.logger.warning(f"No creators under '{self.store.config.creators_path}'")
                return result

            outcomes = await asyncio.gather(*(self._refresh_safely(c) for c in creators))
            for creator, written in zip(creators, outcomes):
                if written is None:
                    result.skipped.append(creator.creator_id)
                else:
                    result.refreshed += 1
                    result.videos_written += written
            self.logger.info(
                f"Refresh phase complete: {result.refreshed}/{result.creators} creators, "
                f"{result.videos_written} videos"
            )

            result.atlas = await self.indexer.run_atlas_cycle([c.creator_id for c in creators])
            if result.atlas.atlas_url:
                self.logger.info(f"Atlas published: {result.atlas.atlas_url}")
            return result
        except Exception as e:
            self.logger.error(f"Sync cycle failed: {e}")
            raise
        finally:
            elapsed = time.monotonic() - start
            self.logger.info(f"Sync cycle finished in {elapsed:.2f}s ({elapsed * 1000:.0f}ms)")
