"""
Pytest fixtures for vuster tests.
"""

import io
import logging
from datetime import datetime, timedelta, timezone

import pytest

from vuster.errors import IndexRewriteError
from vuster.video_record import AtlasCandidate, CatalogMetadata, Creator, LiveStatus, VideoRecord


BASE_TIME = datetime(2026, 1, 31, 12, 0, 0, tzinfo=timezone.utc)


def make_image_bytes(color, size=(320, 180), fmt='JPEG', mode='RGB'):
    """Encode a solid-colour image."""
    from PIL import Image

    img = Image.new(mode, size, color=color)
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


class FakeCatalogStore:
    """
    In-memory stand-in for CatalogStore with the same async surface.

    Videos are held as the raw document dicts Firestore would store.
    """

    def __init__(self, creators_path='wakchidong/vuster/data'):
        from vuster.config import StoreConfig

        self.config = StoreConfig(creators_path=creators_path)
        self.creators = {}
        self.videos = {}
        self.metadata = {}
        self.live = {}
        self.fail_slot_writes = False
        self.slot_write_calls = []
        self.metadata_writes = 0

    # --- setup helpers ---

    def add_creator(self, creator_id, channel_id=None, name=None, soop_id=None, subscriber_count=0):
        self.creators[creator_id] = Creator(
            creator_id=creator_id,
            name=name or creator_id,
            channel_id=channel_id,
            soop_id=soop_id,
            subscriber_count=subscriber_count,
        )
        self.videos.setdefault(creator_id, {})

    def add_video(self, creator_id, record: VideoRecord):
        self.videos.setdefault(creator_id, {})[record.video_id] = record.to_dict()

    def video(self, creator_id, video_id):
        return self.videos[creator_id][video_id]

    def path(self, creator_id, video_id):
        return f"{self.config.creators_path}/{creator_id}/videos/{video_id}"

    # --- CatalogStore surface ---

    async def list_creators(self):
        return list(self.creators.values())

    async def update_subscriber_count(self, creator_id, count):
        self.creators[creator_id].subscriber_count = count

    async def replace_videos(self, creator_id, videos):
        self.videos[creator_id] = {v.video_id: v.to_dict() for v in videos}
        return len(videos)

    async def list_videos(self, creator_id):
        records = [
            VideoRecord.from_dict(video_id, data)
            for video_id, data in self.videos.get(creator_id, {}).items()
        ]
        return sorted(records, key=lambda r: r.published_at, reverse=True)

    async def query_atlas_candidates(self, creator_id):
        candidates = []
        for video_id, data in self.videos.get(creator_id, {}).items():
            if data.get('isShorts') is False and data.get('thumbnailUrl') is not None:
                candidates.append(AtlasCandidate(
                    path=self.path(creator_id, video_id),
                    creator_id=creator_id,
                    video_id=video_id,
                    thumbnail_url=data['thumbnailUrl'],
                    published_at=data['publishedAt'],
                ))
        return candidates

    async def write_slot_indices(self, assignments, batch_size=499):
        self.slot_write_calls.append((list(assignments), batch_size))
        if self.fail_slot_writes:
            raise IndexRewriteError("injected commit failure")
        for candidate, index in assignments:
            data = self.videos[candidate.creator_id][candidate.video_id]
            data['thumbnailIndex'] = index
            data.pop('thumbnailUrl', None)
        return len(assignments)

    async def read_metadata(self):
        return CatalogMetadata(
            updated_at=self.metadata.get('updatedAt'),
            atlas_url=self.metadata.get('atlasUrl'),
        )

    async def write_metadata(self, atlas_url):
        self.metadata_writes += 1
        self.metadata['updatedAt'] = BASE_TIME
        if atlas_url:
            self.metadata['atlasUrl'] = atlas_url

    async def list_live_status(self):
        return list(self.live.values())

    async def write_live_status(self, status: LiveStatus):
        self.live[status.streamer_id] = status


class FakeFetcher:
    """ImageFetcher stand-in serving bytes from a URL map; unknown URLs fail."""

    def __init__(self, images):
        self.images = dict(images)
        self.requested = []

    async def fetch(self, url):
        self.requested.append(url)
        return self.images.get(url)


@pytest.fixture
def store():
    """Fixture providing an empty in-memory store."""
    return FakeCatalogStore()


@pytest.fixture
def small_atlas_config():
    """2x2 grid of 16x16 cells: capacity 4, two cells per row."""
    from vuster.config import AtlasConfig

    return AtlasConfig(atlas_size=32, cell_width=16, cell_height=16, quality=95)


@pytest.fixture
def s3_config():
    """Fixture providing S3 configuration."""
    from vuster.config import S3Config

    return S3Config(
        endpoint='https://test-endpoint.example.com:9000',
        bucket='test-bucket',
        access_key='test-access-key',
        secret_key='test-secret-key',
        region='us-east-1',
    )


@pytest.fixture
def sample_image_bytes():
    """Fixture providing sample JPEG image bytes."""
    return make_image_bytes('red')


@pytest.fixture
def sample_png_bytes():
    """Fixture providing sample PNG image bytes with transparency."""
    return make_image_bytes((255, 0, 0, 128), size=(100, 100), fmt='PNG', mode='RGBA')


@pytest.fixture
def make_video():
    """Factory for long-form video records published hours before BASE_TIME."""
    def _make(video_id, hours_ago, url=None, is_shorts=False, views=100):
        return VideoRecord(
            video_id=video_id,
            title=f"Video {video_id}",
            views=views,
            published_at=BASE_TIME - timedelta(hours=hours_ago),
            is_shorts=is_shorts,
            thumbnail_url=url if url is not None else f"https://i.ytimg.com/vi/{video_id}/mqdefault.jpg",
        )
    return _make


@pytest.fixture
def logger():
    """Fixture providing a logger."""
    return logging.getLogger('test')


@pytest.fixture
def image_bytes():
    """Factory fixture encoding solid-colour images."""
    return make_image_bytes


@pytest.fixture
def fake_fetcher():
    """Factory fixture building a fetcher from a URL -> bytes map."""
    return FakeFetcher


@pytest.fixture
def mock_boto3_client(mocker):
    """Fixture providing a mocked boto3 S3 client."""
    mock_client = mocker.MagicMock()
    mocker.patch('vuster.atlas_publisher.boto3.client', return_value=mock_client)
    return mock_client
