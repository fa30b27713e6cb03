"""Periodic arbitrage scan across all subscribed users."""

import asyncio
import time
from typing import Callable, Dict, List, Optional, Tuple
from loguru import logger

from ..market_data.base import MarketDataError, MarketDataSource
from ..storage.db import StorageError
from ..storage.users import UserSettingsStore
from .detector import ArbitrageDetector
from .formatter import format_opportunity
from .types import ArbitrageOpportunity, UserFilters


class AlertGate:
    """Decides whether a detected opportunity is dispatched.

    The base gate lets everything through, so an opportunity that persists
    across ticks is alerted on every tick.
    """

    def should_send(self, user_id: int, coin_id: str, opportunity: ArbitrageOpportunity) -> bool:
        return True


class CooldownAlertGate(AlertGate):
    """Suppresses repeats of the same spread for a user within a cool-down window."""

    def __init__(self, cooldown_s: float, clock: Callable[[], float] = time.monotonic,
                 max_entries: int = 10000):
        self.cooldown_s = cooldown_s
        self.clock = clock
        self.max_entries = max_entries
        self._last_sent: Dict[Tuple[int, str, str, str, str], float] = {}

    def should_send(self, user_id: int, coin_id: str, opportunity: ArbitrageOpportunity) -> bool:
        key = (user_id, coin_id, opportunity.coin_pair, opportunity.buy_market, opportunity.sell_market)
        now = self.clock()
        last = self._last_sent.get(key)
        if last is not None and now - last < self.cooldown_s:
            return False
        self._last_sent[key] = now
        if len(self._last_sent) > self.max_entries:
            self._prune(now)
        return True

    def _prune(self, now: float):
        """Drop entries whose cool-down has expired."""
        self._last_sent = {
            key: sent for key, sent in self._last_sent.items() if now - sent < self.cooldown_s
        }


class ScanScheduler:
    """Runs one arbitrage scan per interval for every non-paused user."""

    def __init__(
        self,
        store: UserSettingsStore,
        market_data: MarketDataSource,
        top_coins,
        notifier,
        interval_s: float = 10.0,
        detector: Optional[ArbitrageDetector] = None,
        gate: Optional[AlertGate] = None,
    ):
        self.store = store
        self.market_data = market_data
        self.top_coins = top_coins
        self.notifier = notifier
        self.interval_s = interval_s
        self.detector = detector or ArbitrageDetector()
        self.gate = gate or AlertGate()

        self.running = False
        self._task: Optional[asyncio.Task] = None

    async def start(self):
        """Start the scan loop in the background."""
        if self._task and not self._task.done():
            return
        self.running = True
        self._task = asyncio.create_task(self.run())
        logger.info(f"Scan scheduler started (every {self.interval_s}s)")

    async def stop(self):
        """Stop the scan loop."""
        self.running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Scan scheduler stopped")

    async def run(self):
        """Scan until stopped; a failing tick never ends the loop."""
        self.running = True
        loop = asyncio.get_running_loop()
        while self.running:
            started = loop.time()
            try:
                await self.scan_once()
            except Exception as e:
                logger.error(f"Error in scan tick: {e}")
            elapsed = loop.time() - started
            await asyncio.sleep(max(0.0, self.interval_s - elapsed))

    async def scan_once(self) -> int:
        """Scan every user once; returns the number of alerts dispatched."""
        top_ids = await self._load_top_ids()

        try:
            users = await self.store.list_users()
        except StorageError as e:
            logger.error(f"Cannot enumerate users: {e}")
            return 0

        sent = 0
        for profile in users:
            if profile.paused:
                continue

            coin_ids = top_ids if profile.use_top_n else profile.watchlist
            filters = self.store.effective_filters(profile)

            for coin_id in coin_ids:
                try:
                    if await self.scan_coin(profile.user_id, coin_id, filters):
                        sent += 1
                except (MarketDataError, StorageError) as e:
                    logger.warning(f"Skipping {coin_id} for user {profile.user_id}: {e}")
                except Exception as e:
                    logger.error(f"Unexpected error scanning {coin_id} for user {profile.user_id}: {e}")

        logger.debug(f"Scan tick finished: {len(users)} users, {sent} alerts")
        return sent

    async def scan_coin(self, user_id: int, coin_id: str, filters: UserFilters) -> bool:
        """Fetch, detect and dispatch for one coin of one user."""
        # The user may have paused since enumeration
        if await self.store.is_paused(user_id):
            return False

        tickers = await self.market_data.fetch_tickers(coin_id)
        opportunity = self.detector.find_opportunity(tickers.quotes, filters)
        if opportunity is None:
            return False

        if not self.gate.should_send(user_id, coin_id, opportunity):
            logger.debug(f"Suppressed repeat alert for {coin_id} to user {user_id}")
            return False

        payload = format_opportunity(tickers.name, opportunity)
        logger.info(f"Opportunity {opportunity.coin_pair} {opportunity.profit_percent:.2f}% for user {user_id}")
        return await self.notifier.send_alert(user_id, payload)

    async def _load_top_ids(self) -> List[str]:
        try:
            return await self.top_coins.current_ids()
        except StorageError as e:
            logger.error(f"Cannot read top coins snapshot: {e}")
            return []
