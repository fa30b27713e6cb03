"""Periodic refresh of the ranked top-N coin snapshot."""

import asyncio
from typing import List, Optional
from loguru import logger

from ..market_data.base import MarketDataError, MarketDataSource
from ..storage.db import Database, StorageError


class TopCoinsRefresher:
    """Keeps the top-N by volume snapshot current."""

    def __init__(self, database: Database, market_data: MarketDataSource,
                 top_n: int = 100, interval_s: float = 3600.0):
        self.database = database
        self.market_data = market_data
        self.top_n = top_n
        self.interval_s = interval_s

        self.running = False
        self._task: Optional[asyncio.Task] = None

    async def current_ids(self) -> List[str]:
        """Coin ids of the current snapshot, empty before the first refresh."""
        return [coin.id for coin in await self.database.fetch_top_coins()]

    async def refresh(self) -> bool:
        """Fetch the ranking and swap in the new snapshot; keeps the old one on failure."""
        try:
            coins = await self.market_data.fetch_ranked_coins(page=1, per_page=self.top_n)
        except MarketDataError as e:
            logger.error(f"Error fetching top {self.top_n} coins: {e}")
            return False

        if not coins:
            logger.warning("Ranked coin listing was empty, keeping previous snapshot")
            return False

        try:
            count = await self.database.replace_top_coins(coins[:self.top_n])
        except StorageError as e:
            logger.error(f"Error storing top {self.top_n} coins: {e}")
            return False

        logger.info(f"Top coins updated: {count} coins")
        return True

    async def ensure_populated(self) -> bool:
        """Populate the snapshot if it has never been filled."""
        if await self.database.fetch_top_coins():
            logger.info("Top coins snapshot already present")
            return True
        logger.info("Top coins snapshot empty, populating")
        return await self.refresh()

    async def start(self):
        """Start the refresh loop in the background."""
        if self._task and not self._task.done():
            return
        self.running = True
        self._task = asyncio.create_task(self.run())
        logger.info(f"Top coins refresher started (every {self.interval_s}s)")

    async def stop(self):
        """Stop the refresh loop."""
        self.running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Top coins refresher stopped")

    async def run(self):
        """Refresh once per interval, starting after the first interval."""
        self.running = True
        while self.running:
            await asyncio.sleep(self.interval_s)
            try:
                await self.refresh()
            except Exception as e:
                logger.error(f"Error in top coins refresh: {e}")
