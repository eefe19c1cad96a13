"""
CatalogIndexer - Builds the thumbnail atlas and rewrites slot indices.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .atlas_compositor import AtlasCompositor
from .atlas_publisher import AtlasPublisher
from .atlas_stats import AtlasStats
from .catalog_store import CatalogStore
from .cell_result import CellResult, compact, gather_in_order
from .config import AtlasConfig
from .errors import UnprocessableImageError
from .image_fetcher import ImageFetcher
from .thumbnail_resizer import ThumbnailResizer
from .video_record import AtlasCandidate


@dataclass
class AtlasCycleResult:
    """
    Outcome of one atlas cycle.

    Attributes:
        atlas_url: Public address of the new atlas, None when there was
            nothing to pack
        indexed_count: Records that received a slot index
        stats: Counters for the cycle
    """
    atlas_url: Optional[str]
    indexed_count: int
    stats: AtlasStats = field(default_factory=AtlasStats)


def _publish_key(candidate: AtlasCandidate) -> float:
    if candidate.published_at is None:
        return float('-inf')
    return candidate.published_at.timestamp()


class CatalogIndexer:
    """
    Runs the atlas pipeline over the stored catalogs.

    Order of effects within a cycle: the atlas is uploaded first, then
    slot indices are committed, and only then is the metadata pointer
    moved. A failure in upload or index rewrite leaves the metadata at
    its previous value.
    """

    def __init__(
        self,
        store: CatalogStore,
        fetcher: ImageFetcher,
        publisher: AtlasPublisher,
        config: Optional[AtlasConfig] = None,
        resizer: Optional[ThumbnailResizer] = None,
        compositor: Optional[AtlasCompositor] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize indexer.

        Args:
            store: Catalog store
            fetcher: Thumbnail downloader
            publisher: Atlas uploader
            config: Atlas layout and limits
            resizer: Cell resizer (built from config if omitted)
            compositor: Canvas compositor (built from config if omitted)
            logger: Optional logger instance
        """
        self.config = config or AtlasConfig()
        self.store = store
        self.fetcher = fetcher
        self.publisher = publisher
        self.logger = logger or logging.getLogger(__name__)
        self.resizer = resizer or ThumbnailResizer(
            self.config.cell_width, self.config.cell_height, logger=self.logger
        )
        self.compositor = compositor or AtlasCompositor(self.config, logger=self.logger)

    async def collect_candidates(self, creator_ids: Sequence[str]) -> List[AtlasCandidate]:
        """Query every creator concurrently and flatten the results."""
        per_creator = await asyncio.gather(
            *(self.store.query_atlas_candidates(creator_id) for creator_id in creator_ids)
        )
        return [candidate for candidates in per_creator for candidate in candidates]

    @staticmethod
    def select_candidates(candidates: Sequence[AtlasCandidate], capacity: int) -> List[AtlasCandidate]:
        """Newest first across all creators, cut to capacity."""
        ordered = sorted(candidates, key=_publish_key, reverse=True)
        return ordered[:capacity]

    async def _prepare_cell(self, position: int, candidate: AtlasCandidate) -> CellResult:
        data = await self.fetcher.fetch(candidate.thumbnail_url)
        if data is None:
            return CellResult.skipped(position, candidate, 'fetch_failed')

        try:
            image = await asyncio.to_thread(self.resizer.resize, data)
        except UnprocessableImageError as e:
            self.logger.warning(f"Thumbnail resize failed: {candidate.thumbnail_url} ({e})")
            return CellResult.skipped(position, candidate, 'resize_failed')

        return CellResult.ok(position, candidate, image)

    async def run_atlas_cycle(self, creator_ids: Sequence[str]) -> AtlasCycleResult:
        """
        Build, publish and index a new atlas.

        Args:
            creator_ids: Creators whose catalogs feed the atlas

        Returns:
            AtlasCycleResult; atlas_url is None when no candidate survived

        Raises:
            AtlasPublishError: If the upload fails
            IndexRewriteError: If committing slot indices fails
        """
        stats = AtlasStats(capacity=self.config.capacity)

        self.logger.info("Collecting atlas candidates from all creators...")
        candidates = await self.collect_candidates(creator_ids)
        stats.total_candidates = len(candidates)

        selected = self.select_candidates(candidates, self.config.capacity)
        stats.attempted = len(selected)
        self.logger.info(
            f"Collected {stats.total_candidates} thumbnails "
            f"(processing {stats.attempted}, capacity {stats.capacity})"
        )

        atlas_url = None
        if selected:
            results = await gather_in_order(selected, self._prepare_cell)
            stats.record_results(results)
            survivors = compact(results)

            if stats.skipped:
                self.logger.warning(
                    f"Skipped {stats.skipped} thumbnails: {dict(stats.skip_reasons)}"
                )

            if survivors:
                atlas = await asyncio.to_thread(
                    self.compositor.build, [r.image for r in survivors]
                )
                stats.bytes_published = len(atlas)
                atlas_url = await self.publisher.publish_async(atlas)

                assignments = [(r.candidate, index) for index, r in enumerate(survivors)]
                self.logger.info(f"Writing slot indices for {len(assignments)} videos...")
                stats.indexed = await self.store.write_slot_indices(
                    assignments, batch_size=self.config.batch_size
                )
            else:
                self.logger.warning("Every thumbnail failed; atlas left unchanged")
        else:
            self.logger.info("No videos eligible for the atlas")

        await self.store.write_metadata(atlas_url)

        self.logger.info(
            f"Atlas cycle complete: {stats.composited} composited, "
            f"{stats.skipped} skipped, {stats.excluded_by_capacity} over capacity, "
            f"{stats.indexed} indexed, {stats.fill_ratio:.0%} full "
            f"({stats.elapsed_seconds:.1f}s)"
        )
        return AtlasCycleResult(atlas_url=atlas_url, indexed_count=stats.indexed, stats=stats)
