"""
Configuration dataclasses for object storage, the document store,
the YouTube Data API and the atlas layout.

Each config loads from environment variables via ``from_env()`` and
reports problems via ``validate()``, which returns a list of error
strings (empty when the config is usable).
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class S3Config:
    """
    Object storage settings for publishing the atlas.

    Attributes:
        endpoint: S3-compatible endpoint URL
        bucket: Bucket holding the atlas object
        access_key: Access key id
        secret_key: Secret access key
        region: Region name
        verify_ssl: Verify TLS certificates
        public_base_url: Base URL readers use; defaults to endpoint/bucket
    """
    endpoint: Optional[str] = None
    bucket: Optional[str] = None
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    region: str = 'us-east-1'
    verify_ssl: bool = True
    public_base_url: Optional[str] = None

    @classmethod
    def from_env(cls) -> 'S3Config':
        """Load S3 configuration from environment variables."""
        return cls(
            endpoint=os.getenv('S3_ENDPOINT'),
            bucket=os.getenv('S3_BUCKET'),
            access_key=os.getenv('S3_ACCESS_KEY'),
            secret_key=os.getenv('S3_SECRET_KEY'),
            region=os.getenv('S3_REGION', 'us-east-1'),
            verify_ssl=_env_bool('S3_VERIFY_SSL', True),
            public_base_url=os.getenv('S3_PUBLIC_BASE_URL'),
        )

    def validate(self) -> List[str]:
        """Return a list of configuration errors."""
        errors = []
        if not self.endpoint:
            errors.append("S3_ENDPOINT is not set")
        if not self.bucket:
            errors.append("S3_BUCKET is not set")
        if not self.access_key:
            errors.append("S3_ACCESS_KEY is not set")
        if not self.secret_key:
            errors.append("S3_SECRET_KEY is not set")
        return errors


@dataclass
class StoreConfig:
    """
    Firestore locations.

    Attributes:
        project: Google Cloud project id (None uses the ambient default)
        creators_path: Collection holding one document per creator
        metadata_path: Document holding updatedAt and atlasUrl
        videos_collection: Per-creator subcollection name
        live_status_path: Collection holding live broadcast status
    """
    project: Optional[str] = None
    creators_path: str = 'wakchidong/vuster/data'
    metadata_path: str = 'wakchidong/vuster'
    videos_collection: str = 'videos'
    live_status_path: str = 'wakchidong/data/streamers'

    @classmethod
    def from_env(cls) -> 'StoreConfig':
        """Load store configuration from environment variables."""
        defaults = cls()
        return cls(
            project=os.getenv('FIRESTORE_PROJECT'),
            creators_path=os.getenv('VUSTER_CREATORS_PATH', defaults.creators_path),
            metadata_path=os.getenv('VUSTER_METADATA_PATH', defaults.metadata_path),
            videos_collection=os.getenv('VUSTER_VIDEOS_COLLECTION', defaults.videos_collection),
            live_status_path=os.getenv('VUSTER_LIVE_STATUS_PATH', defaults.live_status_path),
        )

    def validate(self) -> List[str]:
        """Return a list of configuration errors."""
        errors = []
        # Collections live at odd path depths, documents at even ones
        if len(self.creators_path.strip('/').split('/')) % 2 != 1:
            errors.append(f"Creators path is not a collection: {self.creators_path}")
        if len(self.metadata_path.strip('/').split('/')) % 2 != 0:
            errors.append(f"Metadata path is not a document: {self.metadata_path}")
        if len(self.live_status_path.strip('/').split('/')) % 2 != 1:
            errors.append(f"Live status path is not a collection: {self.live_status_path}")
        return errors


@dataclass
class YouTubeConfig:
    """
    YouTube Data API settings.

    Attributes:
        api_key: API key for the Data API v3
        base_url: API root
        lookback_days: Only videos published within this window are synced
        shorts_max_seconds: Videos at most this long count as shorts
        page_size: Items per page and ids per videos.list call
        timeout: Request timeout in seconds
    """
    api_key: Optional[str] = None
    base_url: str = 'https://www.googleapis.com/youtube/v3'
    lookback_days: int = 30
    shorts_max_seconds: int = 180
    page_size: int = 50
    timeout: float = 30.0

    @classmethod
    def from_env(cls) -> 'YouTubeConfig':
        """Load YouTube configuration from environment variables."""
        return cls(
            api_key=os.getenv('YOUTUBE_API_KEY'),
            lookback_days=int(os.getenv('YOUTUBE_LOOKBACK_DAYS', '30')),
            shorts_max_seconds=int(os.getenv('YOUTUBE_SHORTS_MAX_SECONDS', '180')),
        )

    def validate(self) -> List[str]:
        """Return a list of configuration errors."""
        errors = []
        if not self.api_key:
            errors.append("YOUTUBE_API_KEY is not set")
        if not 1 <= self.page_size <= 50:
            errors.append(f"page_size must be between 1 and 50, got {self.page_size}")
        return errors


@dataclass
class AtlasConfig:
    """
    Atlas layout, encoding and pipeline limits.

    Attributes:
        atlas_size: Width and height of the square canvas in pixels
        cell_width: Width of one thumbnail cell
        cell_height: Height of one thumbnail cell
        quality: JPEG quality of the encoded atlas
        background: Fill colour for unused cells
        object_key: Fixed storage key the atlas is written to every cycle
        fetch_timeout: Per-thumbnail download timeout in seconds
        max_concurrency: Maximum simultaneous thumbnail downloads
        batch_size: Records per index-rewrite batch
    """
    atlas_size: int = 2048
    cell_width: int = 128
    cell_height: int = 72
    quality: int = 80
    background: Tuple[int, int, int] = field(default=(0, 0, 0))
    object_key: str = 'vuster-atlas/thumbnails.jpg'
    fetch_timeout: float = 10.0
    max_concurrency: int = 32
    batch_size: int = 499

    # Firestore rejects batches with more than this many writes
    MAX_BATCH_WRITES = 500

    @property
    def cells_per_row(self) -> int:
        return self.atlas_size // self.cell_width

    @property
    def rows(self) -> int:
        return self.atlas_size // self.cell_height

    @property
    def capacity(self) -> int:
        """Number of cells the canvas holds."""
        return self.cells_per_row * self.rows

    def cell_offset(self, index: int) -> Tuple[int, int]:
        """
        Pixel offset of a slot index in row-major order.

        Args:
            index: Zero-based slot index

        Returns:
            Tuple of (x, y) for the cell's top-left corner
        """
        if not 0 <= index < self.capacity:
            raise IndexError(f"Slot {index} outside atlas capacity {self.capacity}")
        row, column = divmod(index, self.cells_per_row)
        return column * self.cell_width, row * self.cell_height

    def validate(self) -> List[str]:
        """Return a list of configuration errors."""
        errors = []
        if self.cell_width <= 0 or self.cell_height <= 0:
            errors.append("Cell dimensions must be positive")
        elif self.capacity == 0:
            errors.append(
                f"Cell {self.cell_width}x{self.cell_height} does not fit "
                f"in a {self.atlas_size}px atlas"
            )
        if not 1 <= self.quality <= 95:
            errors.append(f"JPEG quality must be between 1 and 95, got {self.quality}")
        if not 1 <= self.batch_size < self.MAX_BATCH_WRITES:
            errors.append(
                f"batch_size must be between 1 and {self.MAX_BATCH_WRITES - 1}, "
                f"got {self.batch_size}"
            )
        if self.max_concurrency < 1:
            errors.append("max_concurrency must be at least 1")
        return errors
