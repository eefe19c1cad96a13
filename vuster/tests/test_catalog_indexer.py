"""Tests for CatalogIndexer class."""

import io
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from vuster.catalog_indexer import CatalogIndexer
from vuster.errors import AtlasPublishError

ATLAS_URL = 'https://test-endpoint.example.com:9000/test-bucket/vuster-atlas/thumbnails.jpg'

RED = (255, 0, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)
YELLOW = (255, 255, 0)
BLACK = (0, 0, 0)


def assert_color(actual, expected, tolerance=40):
    assert all(abs(a - e) <= tolerance for a, e in zip(actual, expected)), (actual, expected)


def cell_center(config, index):
    x, y = config.cell_offset(index)
    return x + config.cell_width // 2, y + config.cell_height // 2


@pytest.fixture
def publisher():
    """Publisher mock returning a fixed URL."""
    mock = MagicMock()
    mock.publish_async = AsyncMock(return_value=ATLAS_URL)
    return mock


def published_atlas(publisher):
    data = publisher.publish_async.call_args.args[0]
    return Image.open(io.BytesIO(data)).convert('RGB')


class TestCatalogIndexer:
    """Tests for the atlas cycle."""

    @pytest.fixture
    def five_videos(self, store, make_video):
        """v1..v5 newest first, spread over two creators."""
        store.add_creator('alpha')
        store.add_creator('beta')
        videos = {f"v{i}": make_video(f"v{i}", hours_ago=i) for i in range(1, 6)}
        for video_id in ('v1', 'v3', 'v5'):
            store.add_video('alpha', videos[video_id])
        for video_id in ('v2', 'v4'):
            store.add_video('beta', videos[video_id])
        return videos

    @pytest.mark.asyncio
    async def test_failed_fetch_is_compacted(
        self, store, five_videos, publisher, small_atlas_config, image_bytes, fake_fetcher
    ):
        """Capacity 4, v3 fails: v1, v2, v4 fill slots 0-2 and v5 is never tried."""
        urls = {vid: v.thumbnail_url for vid, v in five_videos.items()}
        fetcher = fake_fetcher({
            urls['v1']: image_bytes(RED),
            urls['v2']: image_bytes(GREEN),
            urls['v4']: image_bytes(BLUE),
            urls['v5']: image_bytes(YELLOW),
        })
        indexer = CatalogIndexer(store, fetcher, publisher, config=small_atlas_config)

        result = await indexer.run_atlas_cycle(['alpha', 'beta'])

        assert result.atlas_url == ATLAS_URL
        assert result.indexed_count == 3
        assert store.video('alpha', 'v1')['thumbnailIndex'] == 0
        assert store.video('beta', 'v2')['thumbnailIndex'] == 1
        assert store.video('beta', 'v4')['thumbnailIndex'] == 2
        for creator, video_id in (('alpha', 'v1'), ('beta', 'v2'), ('beta', 'v4')):
            assert 'thumbnailUrl' not in store.video(creator, video_id)

        v3 = store.video('alpha', 'v3')
        assert 'thumbnailIndex' not in v3
        assert v3['thumbnailUrl'] == urls['v3']

        v5 = store.video('alpha', 'v5')
        assert 'thumbnailIndex' not in v5
        assert v5['thumbnailUrl'] == urls['v5']
        assert urls['v5'] not in fetcher.requested

        atlas = published_atlas(publisher)
        assert atlas.size == (32, 32)
        assert_color(atlas.getpixel(cell_center(small_atlas_config, 0)), RED)
        assert_color(atlas.getpixel(cell_center(small_atlas_config, 1)), GREEN)
        assert_color(atlas.getpixel(cell_center(small_atlas_config, 2)), BLUE)
        assert_color(atlas.getpixel(cell_center(small_atlas_config, 3)), BLACK)

    @pytest.mark.asyncio
    async def test_slot_follows_publish_time_not_query_order(
        self, store, publisher, small_atlas_config, make_video, image_bytes, fake_fetcher
    ):
        """Slot order is newest first across creators."""
        store.add_creator('alpha')
        store.add_creator('beta')
        old = make_video('old', hours_ago=10)
        new = make_video('new', hours_ago=1)
        store.add_video('alpha', old)
        store.add_video('beta', new)
        fetcher = fake_fetcher({old.thumbnail_url: image_bytes(RED), new.thumbnail_url: image_bytes(BLUE)})
        indexer = CatalogIndexer(store, fetcher, publisher, config=small_atlas_config)

        await indexer.run_atlas_cycle(['alpha', 'beta'])

        assert store.video('beta', 'new')['thumbnailIndex'] == 0
        assert store.video('alpha', 'old')['thumbnailIndex'] == 1
        atlas = published_atlas(publisher)
        assert_color(atlas.getpixel(cell_center(small_atlas_config, 0)), BLUE)
        assert_color(atlas.getpixel(cell_center(small_atlas_config, 1)), RED)

    @pytest.mark.asyncio
    async def test_capacity_boundary(
        self, store, publisher, small_atlas_config, make_video, image_bytes, fake_fetcher
    ):
        """With 6 candidates and capacity 4, the two oldest stay pending."""
        store.add_creator('alpha')
        images = {}
        for i in range(6):
            video = make_video(f"v{i}", hours_ago=i)
            store.add_video('alpha', video)
            images[video.thumbnail_url] = image_bytes(RED)
        indexer = CatalogIndexer(store, fake_fetcher(images), publisher, config=small_atlas_config)

        result = await indexer.run_atlas_cycle(['alpha'])

        assert result.indexed_count == 4
        assert result.stats.excluded_by_capacity == 2
        for i in range(4):
            assert store.video('alpha', f"v{i}")['thumbnailIndex'] == i
        for i in (4, 5):
            assert 'thumbnailIndex' not in store.video('alpha', f"v{i}")
            assert 'thumbnailUrl' in store.video('alpha', f"v{i}")

    @pytest.mark.asyncio
    async def test_summary_reports_fill_ratio(
        self, store, publisher, small_atlas_config, make_video, image_bytes, fake_fetcher, caplog
    ):
        """The cycle summary states how full the atlas is."""
        store.add_creator('alpha')
        video = make_video('v1', hours_ago=1)
        store.add_video('alpha', video)
        indexer = CatalogIndexer(
            store, fake_fetcher({video.thumbnail_url: image_bytes(RED)}), publisher, config=small_atlas_config
        )

        with caplog.at_level('INFO'):
            result = await indexer.run_atlas_cycle(['alpha'])

        assert result.stats.fill_ratio == 0.25
        assert '25% full' in caplog.text

    @pytest.mark.asyncio
    async def test_shorts_and_indexed_videos_are_not_candidates(
        self, store, publisher, small_atlas_config, make_video, image_bytes, fake_fetcher
    ):
        """Only long-form videos with a thumbnail URL are packed."""
        store.add_creator('alpha')
        short = make_video('short', hours_ago=1, is_shorts=True)
        long = make_video('long', hours_ago=2)
        store.add_video('alpha', short)
        store.add_video('alpha', long)
        fetcher = fake_fetcher({short.thumbnail_url: image_bytes(RED), long.thumbnail_url: image_bytes(GREEN)})
        indexer = CatalogIndexer(store, fetcher, publisher, config=small_atlas_config)

        result = await indexer.run_atlas_cycle(['alpha'])

        assert result.indexed_count == 1
        assert store.video('alpha', 'long')['thumbnailIndex'] == 0
        assert 'thumbnailIndex' not in store.video('alpha', 'short')
        assert fetcher.requested == [long.thumbnail_url]

    @pytest.mark.asyncio
    async def test_undecodable_image_is_skipped(
        self, store, publisher, small_atlas_config, make_video, image_bytes, fake_fetcher
    ):
        """Resize failures are treated like fetch failures."""
        store.add_creator('alpha')
        broken = make_video('broken', hours_ago=1)
        good = make_video('good', hours_ago=2)
        store.add_video('alpha', broken)
        store.add_video('alpha', good)
        fetcher = fake_fetcher({broken.thumbnail_url: b'<html>not an image</html>', good.thumbnail_url: image_bytes(GREEN)})
        indexer = CatalogIndexer(store, fetcher, publisher, config=small_atlas_config)

        result = await indexer.run_atlas_cycle(['alpha'])

        assert result.indexed_count == 1
        assert store.video('alpha', 'good')['thumbnailIndex'] == 0
        assert store.video('alpha', 'broken')['thumbnailUrl'] == broken.thumbnail_url
        assert result.stats.skip_reasons == {'resize_failed': 1}

    @pytest.mark.asyncio
    async def test_no_candidates(self, store, publisher, small_atlas_config, fake_fetcher):
        """Nothing eligible: no upload, metadata timestamp only."""
        store.add_creator('alpha')
        store.metadata['atlasUrl'] = 'https://old/atlas.jpg'
        indexer = CatalogIndexer(store, fake_fetcher({}), publisher, config=small_atlas_config)

        result = await indexer.run_atlas_cycle(['alpha'])

        assert result.atlas_url is None
        assert result.indexed_count == 0
        publisher.publish_async.assert_not_called()
        assert store.metadata_writes == 1
        assert store.metadata['atlasUrl'] == 'https://old/atlas.jpg'

    @pytest.mark.asyncio
    async def test_all_fetches_fail(self, store, publisher, small_atlas_config, make_video, fake_fetcher):
        """When every candidate fails nothing is published or rewritten."""
        store.add_creator('alpha')
        store.add_video('alpha', make_video('v1', hours_ago=1))
        indexer = CatalogIndexer(store, fake_fetcher({}), publisher, config=small_atlas_config)

        result = await indexer.run_atlas_cycle(['alpha'])

        assert result.atlas_url is None
        assert result.stats.skipped == 1
        publisher.publish_async.assert_not_called()
        assert store.slot_write_calls == []
        assert 'thumbnailUrl' in store.video('alpha', 'v1')

    @pytest.mark.asyncio
    async def test_index_rewrite_failure_keeps_metadata(
        self, store, publisher, small_atlas_config, make_video, image_bytes, fake_fetcher
    ):
        """An injected commit failure leaves metadata at its previous value."""
        store.add_creator('alpha')
        video = make_video('v1', hours_ago=1)
        store.add_video('alpha', video)
        store.metadata = {'atlasUrl': 'https://old/atlas.jpg', 'updatedAt': 'previous'}
        store.fail_slot_writes = True
        indexer = CatalogIndexer(
            store, fake_fetcher({video.thumbnail_url: image_bytes(RED)}), publisher, config=small_atlas_config
        )

        with pytest.raises(Exception, match='injected commit failure'):
            await indexer.run_atlas_cycle(['alpha'])

        assert store.metadata == {'atlasUrl': 'https://old/atlas.jpg', 'updatedAt': 'previous'}
        assert store.metadata_writes == 0

    @pytest.mark.asyncio
    async def test_publish_failure_aborts_before_indexing(
        self, store, publisher, small_atlas_config, make_video, image_bytes, fake_fetcher
    ):
        """Upload failure: no slot indices, no metadata write."""
        store.add_creator('alpha')
        video = make_video('v1', hours_ago=1)
        store.add_video('alpha', video)
        publisher.publish_async.side_effect = AtlasPublishError("bucket unavailable")
        indexer = CatalogIndexer(
            store, fake_fetcher({video.thumbnail_url: image_bytes(RED)}), publisher, config=small_atlas_config
        )

        with pytest.raises(AtlasPublishError):
            await indexer.run_atlas_cycle(['alpha'])

        assert store.slot_write_calls == []
        assert store.metadata_writes == 0
        assert store.video('alpha', 'v1')['thumbnailUrl'] == video.thumbnail_url

    @pytest.mark.asyncio
    async def test_batch_size_passed_to_store(
        self, store, publisher, small_atlas_config, make_video, image_bytes, fake_fetcher
    ):
        """The configured batch size reaches the index rewrite."""
        store.add_creator('alpha')
        video = make_video('v1', hours_ago=1)
        store.add_video('alpha', video)
        small_atlas_config.batch_size = 2
        indexer = CatalogIndexer(
            store, fake_fetcher({video.thumbnail_url: image_bytes(RED)}), publisher, config=small_atlas_config
        )

        await indexer.run_atlas_cycle(['alpha'])

        assignments, batch_size = store.slot_write_calls[0]
        assert batch_size == 2
        assert [(c.video_id, i) for c, i in assignments] == [('v1', 0)]

    @pytest.mark.asyncio
    async def test_oversized_image_is_skipped(
        self, store, publisher, small_atlas_config, make_video, image_bytes, fake_fetcher, monkeypatch
    ):
        """An image over the pixel limit is skipped and the rest of the cycle completes."""
        monkeypatch.setattr(Image, 'MAX_IMAGE_PIXELS', 1000)
        store.add_creator('alpha')
        huge = make_video('huge', hours_ago=1)
        good = make_video('good', hours_ago=2)
        store.add_video('alpha', huge)
        store.add_video('alpha', good)
        fetcher = fake_fetcher({
            huge.thumbnail_url: image_bytes(RED, size=(400, 400), fmt='PNG'),
            good.thumbnail_url: image_bytes(GREEN, size=(16, 16), fmt='PNG'),
        })
        indexer = CatalogIndexer(store, fetcher, publisher, config=small_atlas_config)

        result = await indexer.run_atlas_cycle(['alpha'])

        assert result.indexed_count == 1
        assert store.video('alpha', 'good')['thumbnailIndex'] == 0
        assert store.video('alpha', 'huge')['thumbnailUrl'] == huge.thumbnail_url
        assert result.stats.skip_reasons == {'resize_failed': 1}


class TestSelectCandidates:
    """Tests for candidate ordering and truncation."""

    def test_sorts_newest_first_and_truncates(self, make_video):
        """Sort is global and descending; truncation keeps the newest."""
        from vuster.video_record import AtlasCandidate

        candidates = [
            AtlasCandidate(path=f"p/{i}", creator_id='c', video_id=str(i),
                           thumbnail_url=f"u{i}", published_at=make_video(str(i), hours_ago=i).published_at)
            for i in (3, 1, 4, 2)
        ]

        selected = CatalogIndexer.select_candidates(candidates, capacity=3)

        assert [c.video_id for c in selected] == ['1', '2', '3']

    def test_missing_publish_time_sorts_last(self, make_video):
        """Candidates without a timestamp go to the back."""
        from vuster.video_record import AtlasCandidate

        dated = AtlasCandidate(path='p/a', creator_id='c', video_id='a', thumbnail_url='u',
                               published_at=make_video('a', hours_ago=100).published_at)
        undated = AtlasCandidate(path='p/b', creator_id='c', video_id='b', thumbnail_url='u',
                                 published_at=None)

        selected = CatalogIndexer.select_candidates([undated, dated], capacity=2)

        assert [c.video_id for c in selected] == ['a', 'b']
