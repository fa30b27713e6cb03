"""Main entry point for the arbitrage alert bot."""

import asyncio
import signal
import sys
from typing import Optional
import click
from dotenv import load_dotenv
from loguru import logger

from .bot import ArbitrageAlertBot
from .config import Config, LoggingConfig, get_config
from .core.scanner import AlertGate, CooldownAlertGate, ScanScheduler
from .core.top_coins import TopCoinsRefresher
from .market_data.coingecko import CoinGeckoClient
from .storage.db import Database
from .storage.users import UserSettingsStore


class AlertService:
    """Wires the store, market data client, chat bot and periodic tasks together."""

    def __init__(self, config: Config):
        self.config = config
        self.database = Database(config.storage.db_path)
        self.store = UserSettingsStore(self.database, config.thresholds)
        self.market_data = CoinGeckoClient(config.market_data)
        self.top_coins = TopCoinsRefresher(
            self.database,
            self.market_data,
            top_n=config.market_data.top_n,
            interval_s=config.scheduler.top_coins_refresh_s,
        )
        self.bot = ArbitrageAlertBot(config, self.store)
        self.scanner = ScanScheduler(
            self.store,
            self.market_data,
            self.top_coins,
            self.bot.notifier,
            interval_s=config.scheduler.scan_interval_s,
            gate=self._build_gate(),
        )
        self.running = False
        self._stop_event: Optional[asyncio.Event] = None

    def _build_gate(self) -> AlertGate:
        cooldown = self.config.scheduler.alert_cooldown_s
        if cooldown > 0:
            logger.info(f"Repeat alerts suppressed for {cooldown}s")
            return CooldownAlertGate(cooldown)
        return AlertGate()

    async def start(self):
        """Start the service; a store that cannot be opened aborts startup."""
        logger.info("Starting arbitrage alert bot")
        logger.info(f"Scan interval: {self.config.scheduler.scan_interval_s}s")
        logger.info(f"Top coins refresh: {self.config.scheduler.top_coins_refresh_s}s")
        logger.info(
            f"Default thresholds: {self.config.thresholds.min_profit_fraction * 100:g}% profit, "
            f"{self.config.thresholds.min_volume:g} volume, {self.config.thresholds.target_currency}"
        )

        await self.database.connect()
        await self.market_data.connect()
        await self.top_coins.ensure_populated()

        await self.bot.start()
        await self.top_coins.start()
        await self.scanner.start()
        self.running = True
        logger.info("Arbitrage bot is running...")

    async def stop(self):
        """Stop all components; safe after a partial start."""
        logger.info("Stopping arbitrage alert bot")
        self.running = False

        for name, component in (("scanner", self.scanner), ("top coins", self.top_coins), ("bot", self.bot)):
            try:
                await component.stop()
            except Exception as e:
                logger.error(f"Error stopping {name}: {e}")

        await self.market_data.close()
        await self.database.disconnect()

    async def run_forever(self):
        """Run until SIGINT/SIGTERM."""
        self._stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._handle_signal, sig)
            except NotImplementedError:
                # Signal handlers are unavailable on Windows event loops
                pass

        try:
            await self.start()
            await self._stop_event.wait()
        finally:
            await self.stop()

    def _handle_signal(self, signum):
        logger.info(f"Received signal {signum}, shutting down...")
        if self._stop_event:
            self._stop_event.set()


def setup_logging(config: LoggingConfig):
    """Configure loguru sinks."""
    logger.remove()
    if config.serialize:
        logger.add(sys.stderr, level=config.level, serialize=True)
    else:
        logger.add(sys.stderr, level=config.level,
                   format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>")
    if config.file:
        logger.add(config.file, level="DEBUG", rotation="10 MB",
                   format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}")


def load_config(config_path: str) -> Config:
    load_dotenv()
    return get_config(config_path)


@click.group()
def cli():
    """Cross-exchange arbitrage alert bot CLI."""
    pass


@cli.command()
@click.option('--config', 'config_path', type=click.Path(exists=True), default='config.yaml',
              help='Path to config file')
def run(config_path):
    """Run the alert bot."""
    try:
        config = load_config(config_path)
    except Exception as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    setup_logging(config.logging)
    service = AlertService(config)

    try:
        asyncio.run(service.run_forever())
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")
    except Exception as e:
        logger.error(f"Bot failed: {e}")
        sys.exit(1)


@cli.command("refresh-top")
@click.option('--config', 'config_path', type=click.Path(exists=True), default='config.yaml',
              help='Path to config file')
def refresh_top(config_path):
    """Refresh the top coins snapshot once."""
    async def do_refresh() -> bool:
        config = load_config(config_path)
        database = Database(config.storage.db_path)
        async with CoinGeckoClient(config.market_data) as client:
            refresher = TopCoinsRefresher(database, client, top_n=config.market_data.top_n)
            try:
                await database.connect()
                return await refresher.refresh()
            finally:
                await database.disconnect()

    logger.remove()
    logger.add(sys.stderr, level="INFO")
    if not asyncio.run(do_refresh()):
        sys.exit(1)


@cli.command()
@click.option('--config', 'config_path', type=click.Path(exists=True), default='config.yaml',
              help='Path to config file')
def users(config_path):
    """Show stored user statistics."""
    async def show_users():
        config = load_config(config_path)
        database = Database(config.storage.db_path)
        try:
            await database.connect()
            stats = await database.get_stats()
        finally:
            await database.disconnect()

        print(f"""
=== USERS ===
Profiles: {stats['users']}
Paused: {stats['paused']}
Top {config.market_data.top_n} mode: {stats['top_n']}
Cached top coins: {stats['top_coins']}
""")

    logger.remove()
    logger.add(sys.stderr, level="WARNING")
    asyncio.run(show_users())


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
