"""
Creator catalog sync and thumbnail atlas package for vuster

One sync cycle:
    1. Refresh phase: replace every creator's video catalog from YouTube
    2. Atlas phase: pack pending thumbnails into one JPEG atlas, publish it,
       and rewrite each video's thumbnail URL into a slot index
"""

__version__ = "1.0.0"

from .config import AtlasConfig, S3Config, StoreConfig, YouTubeConfig
from .errors import (
    AtlasPublishError,
    ConfigurationError,
    IndexRewriteError,
    UnprocessableImageError,
    VusterError,
)
from .video_record import AtlasCandidate, CatalogMetadata, Creator, LiveStatus, VideoRecord
from .image_fetcher import ImageFetcher
from .thumbnail_resizer import ThumbnailResizer
from .atlas_compositor import AtlasCompositor
from .atlas_publisher import AtlasPublisher
from .cell_result import CellResult
from .atlas_stats import AtlasStats
from .catalog_store import CatalogStore
from .catalog_indexer import AtlasCycleResult, CatalogIndexer
from .youtube_client import YouTubeClient
from .sync_orchestrator import SyncOrchestrator, SyncResult
from .aggregated_list import build_aggregated_list
from .live_status import LiveStatusPoller

__all__ = [
    "AtlasConfig",
    "S3Config",
    "StoreConfig",
    "YouTubeConfig",
    "VusterError",
    "ConfigurationError",
    "UnprocessableImageError",
    "AtlasPublishError",
    "IndexRewriteError",
    "VideoRecord",
    "Creator",
    "AtlasCandidate",
    "CatalogMetadata",
    "LiveStatus",
    "ImageFetcher",
    "ThumbnailResizer",
    "AtlasCompositor",
    "AtlasPublisher",
    "CellResult",
    "AtlasStats",
    "CatalogStore",
    "CatalogIndexer",
    "AtlasCycleResult",
    "YouTubeClient",
    "SyncOrchestrator",
    "SyncResult",
    "build_aggregated_list",
    "LiveStatusPoller",
]
