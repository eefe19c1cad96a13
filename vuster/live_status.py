"""
LiveStatusPoller - Tracks whether streamers are broadcasting and how many
viewers they have.
"""

import asyncio
import logging
from typing import Optional

import httpx

from .catalog_store import CatalogStore
from .video_record import LiveStatus

BROADCAST_URL = 'https://api-channel.sooplive.co.kr/v1.1/channel/{streamer_id}/home/section/broad'


class LiveStatusPoller:
    """
    Polls the broadcast endpoint for each streamer and stores the result.
    """

    def __init__(
        self,
        store: CatalogStore,
        client: Optional[httpx.AsyncClient] = None,
        url_template: str = BROADCAST_URL,
        logger: Optional[logging.Logger] = None
    ):
        self.store = store
        self.url_template = url_template
        self.logger = logger or logging.getLogger(__name__)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=10.0)

    async def fetch_status(self, streamer_id: str) -> LiveStatus:
        """
        Current status of one streamer.

        Raises:
            httpx.HTTPError: If the endpoint cannot be reached
        """
        response = await self._client.get(self.url_template.format(streamer_id=streamer_id))
        response.raise_for_status()
        data = response.json() if response.content else None

        viewers = (data or {}).get('currentSumViewer')
        if viewers:
            return LiveStatus(streamer_id=streamer_id, is_live=True, viewers=int(viewers))
        return LiveStatus(streamer_id=streamer_id, is_live=False, viewers=0)

    async def _poll_one(self, streamer_id: str) -> Optional[LiveStatus]:
        try:
            status = await self.fetch_status(streamer_id)
            await self.store.write_live_status(status)
        except Exception as e:
            self.logger.error(f"{streamer_id}: status check failed: {e}")
            return None

        if status.is_live:
            self.logger.info(f"{streamer_id}: live, {status.viewers} viewers")
        else:
            self.logger.info(f"{streamer_id}: offline")
        return status

    async def poll_all(self) -> int:
        """
        Refresh every stored streamer concurrently.

        Returns:
            Number of streamers updated
        """
        streamers = await self.store.list_live_status()
        if not streamers:
            self.logger.info("No streamers registered")
            return 0

        results = await asyncio.gather(*(self._poll_one(s.streamer_id) for s in streamers))
        updated = sum(1 for r in results if r is not None)
        self.logger.info(f"Live status updated for {updated}/{len(streamers)} streamers")
        return updated

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
