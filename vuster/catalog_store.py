"""
CatalogStore - Firestore access for creators, video catalogs and metadata.
"""

import asyncio
import logging
from typing import Iterator, List, Optional, Sequence, Tuple

from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from .config import StoreConfig
from .errors import IndexRewriteError
from .video_record import AtlasCandidate, CatalogMetadata, Creator, LiveStatus, VideoRecord

# Firestore write batches accept at most 500 operations
WRITE_BATCH_LIMIT = 500


def chunked(items: Sequence, size: int) -> Iterator[Sequence]:
    """Yield consecutive slices of at most size items."""
    for start in range(0, len(items), size):
        yield items[start:start + size]


class CatalogStore:
    """
    Domain operations over a Firestore AsyncClient.

    Layout:
        {creators_path}/{creator_id}                 creator documents
        {creators_path}/{creator_id}/videos/{id}     video records
        {metadata_path}                              updatedAt, atlasUrl
        {live_status_path}/{streamer_id}             live broadcast status
    """

    def __init__(
        self,
        config: StoreConfig,
        client: Optional[firestore.AsyncClient] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize store.

        Args:
            config: Store configuration
            client: Optional Firestore client; created from config otherwise
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self._db = client or firestore.AsyncClient(project=config.project)

    @property
    def client(self) -> firestore.AsyncClient:
        """Return the underlying Firestore client."""
        return self._db

    def _creators(self):
        return self._db.collection(self.config.creators_path)

    def _videos(self, creator_id: str):
        return self._creators().document(creator_id).collection(self.config.videos_collection)

    # --- Creators -----------------------------------------------------------

    async def list_creators(self) -> List[Creator]:
        """List every tracked creator."""
        snapshots = await self._creators().get()
        return [Creator.from_dict(snap.id, snap.to_dict() or {}) for snap in snapshots]

    async def update_subscriber_count(self, creator_id: str, count: int) -> None:
        await self._creators().document(creator_id).update({'subscriberCount': count})

    # --- Videos -------------------------------------------------------------

    async def replace_videos(self, creator_id: str, videos: Sequence[VideoRecord]) -> int:
        """
        Replace a creator's catalog: delete every stored video, then write
        the new records.

        Returns:
            Number of records written
        """
        videos_ref = self._videos(creator_id)

        deleted = 0
        while True:
            snapshots = await videos_ref.limit(WRITE_BATCH_LIMIT).get()
            if not snapshots:
                break
            batch = self._db.batch()
            for snap in snapshots:
                batch.delete(snap.reference)
            await batch.commit()
            deleted += len(snapshots)

        for chunk in chunked(list(videos), WRITE_BATCH_LIMIT):
            batch = self._db.batch()
            for video in chunk:
                batch.set(videos_ref.document(video.video_id), video.to_dict())
            await batch.commit()

        self.logger.debug(f"'{creator_id}': deleted {deleted}, wrote {len(videos)} videos")
        return len(videos)

    async def list_videos(self, creator_id: str) -> List[VideoRecord]:
        """A creator's videos, newest first."""
        query = self._videos(creator_id).order_by(
            'publishedAt', direction=firestore.Query.DESCENDING
        )
        snapshots = await query.get()
        return [VideoRecord.from_dict(snap.id, snap.to_dict() or {}) for snap in snapshots]

    async def query_atlas_candidates(self, creator_id: str) -> List[AtlasCandidate]:
        """Long-form videos of a creator that still carry a thumbnail URL."""
        query = (
            self._videos(creator_id)
            .where(filter=FieldFilter('isShorts', '==', False))
            .where(filter=FieldFilter('thumbnailUrl', '!=', None))
        )
        snapshots = await query.get()

        candidates = []
        for snap in snapshots:
            data = snap.to_dict() or {}
            url = data.get('thumbnailUrl')
            if not url:
                continue
            candidates.append(AtlasCandidate(
                path=snap.reference.path,
                creator_id=creator_id,
                video_id=snap.id,
                thumbnail_url=url,
                published_at=data.get('publishedAt'),
            ))
        return candidates

    async def write_slot_indices(
        self,
        assignments: Sequence[Tuple[AtlasCandidate, int]],
        batch_size: int = 499
    ) -> int:
        """
        Set thumbnailIndex and delete thumbnailUrl on every assigned record.

        Both fields change in the same write, and each batch commits
        atomically. Batches are committed concurrently.

        Returns:
            Number of records updated

        Raises:
            IndexRewriteError: If any batch fails to commit
        """
        if batch_size >= WRITE_BATCH_LIMIT:
            raise ValueError(f"batch_size must be below {WRITE_BATCH_LIMIT}")

        batches = []
        for chunk in chunked(list(assignments), batch_size):
            batch = self._db.batch()
            for candidate, index in chunk:
                batch.update(self._db.document(candidate.path), {
                    'thumbnailIndex': index,
                    'thumbnailUrl': firestore.DELETE_FIELD,
                })
            batches.append((batch, len(chunk)))

        outcomes = await asyncio.gather(
            *(batch.commit() for batch, _ in batches),
            return_exceptions=True
        )

        committed = 0
        failures = []
        for (_, size), outcome in zip(batches, outcomes):
            if isinstance(outcome, BaseException):
                failures.append(outcome)
            else:
                committed += size

        if failures:
            raise IndexRewriteError(
                f"{len(failures)} of {len(batches)} index batches failed: {failures[0]}",
                committed=committed,
            ) from failures[0]

        return committed

    # --- Metadata -----------------------------------------------------------

    async def read_metadata(self) -> CatalogMetadata:
        snap = await self._db.document(self.config.metadata_path).get()
        if not snap.exists:
            return CatalogMetadata()
        data = snap.to_dict() or {}
        return CatalogMetadata(updated_at=data.get('updatedAt'), atlas_url=data.get('atlasUrl'))

    async def write_metadata(self, atlas_url: Optional[str]) -> None:
        """Stamp updatedAt with server time; replace atlasUrl only when given."""
        update = {'updatedAt': firestore.SERVER_TIMESTAMP}
        if atlas_url:
            update['atlasUrl'] = atlas_url
        await self._db.document(self.config.metadata_path).set(update, merge=True)

    # --- Live status --------------------------------------------------------

    async def list_live_status(self) -> List[LiveStatus]:
        snapshots = await self._db.collection(self.config.live_status_path).get()
        statuses = []
        for snap in snapshots:
            data = snap.to_dict() or {}
            statuses.append(LiveStatus(
                streamer_id=data.get('streamerId', snap.id),
                name=data.get('name'),
                is_live=bool(data.get('isLive', False)),
                viewers=int(data.get('viewers') or 0),
                updated_at=data.get('updatedAt'),
            ))
        return statuses

    async def write_live_status(self, status: LiveStatus) -> None:
        doc = self._db.collection(self.config.live_status_path).document(status.streamer_id)
        await doc.update({
            'isLive': status.is_live,
            'viewers': status.viewers,
            'updatedAt': firestore.SERVER_TIMESTAMP,
        })
