"""
Aggregated list view served to the front end.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, Optional

from .catalog_store import CatalogStore
from .video_record import Creator


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


async def _creator_entry(store: CatalogStore, creator: Creator) -> Dict[str, Any]:
    videos = await store.list_videos(creator.creator_id)

    shorts, longs = [], []
    for video in videos:
        entry = {'title': video.title, 'views': video.views}
        if video.is_shorts:
            shorts.append(entry)
        else:
            entry['thumbnailIndex'] = video.thumbnail_index
            longs.append(entry)

    return {
        'name': creator.name,
        'soopId': creator.soop_id,
        'subscriberCount': creator.subscriber_count,
        'shorts': shorts,
        'longs': longs,
    }


async def build_aggregated_list(store: CatalogStore) -> Dict[str, Any]:
    """
    Assemble every creator's catalog with the sync metadata.

    Returns:
        Dict with 'updatedAt' (ISO string or None), 'atlasUrl' and 'list',
        one entry per creator with videos split into shorts and longs,
        newest first. Longs carry their atlas slot as 'thumbnailIndex'.
    """
    metadata, creators = await asyncio.gather(store.read_metadata(), store.list_creators())
    entries = await asyncio.gather(*(_creator_entry(store, c) for c in creators))
    return {
        'updatedAt': _isoformat(metadata.updated_at),
        'atlasUrl': metadata.atlas_url,
        'list': list(entries),
    }
