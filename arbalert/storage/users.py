"""User settings access for the arbitrage alert bot."""

from typing import List, Optional, Tuple
from loguru import logger

from ..config import ThresholdConfig
from ..core.types import UserFilters
from .db import Database
from .models import UserProfile


class UserSettingsStore:
    """Reads and updates single user profiles on top of the database."""

    def __init__(self, database: Database, defaults: ThresholdConfig):
        self.database = database
        self.defaults = defaults

    def new_profile(self, user_id: int) -> UserProfile:
        """Profile with the configured defaults."""
        return UserProfile(
            user_id=user_id,
            min_profit=self.defaults.min_profit_fraction,
            min_volume=self.defaults.min_volume,
            target_currency=self.defaults.target_currency,
        )

    async def get(self, user_id: int) -> Optional[UserProfile]:
        return await self.database.fetch_user(user_id)

    async def get_or_create(self, user_id: int) -> Tuple[UserProfile, bool]:
        """Return the user's profile, creating it with defaults on first contact."""
        profile = await self.database.fetch_user(user_id)
        if profile is not None:
            return profile, False

        created = await self.database.insert_user(self.new_profile(user_id))
        if created:
            logger.info(f"Created profile for user {user_id}")
        return await self.database.fetch_user(user_id), created

    async def list_users(self) -> List[UserProfile]:
        return await self.database.fetch_users()

    async def is_paused(self, user_id: int) -> bool:
        """Current pause flag; unknown users count as not paused."""
        return bool(await self.database.fetch_paused(user_id))

    async def set_min_profit(self, user_id: int, fraction: float):
        await self.database.update_user_field(user_id, "min_profit", fraction)

    async def set_min_volume(self, user_id: int, volume: int):
        await self.database.update_user_field(user_id, "min_volume", volume)

    async def set_target_currency(self, user_id: int, target: str):
        await self.database.update_user_field(user_id, "target_currency", target)

    async def set_paused(self, user_id: int, paused: bool):
        await self.database.update_user_field(user_id, "paused", paused)

    async def set_use_top_n(self, user_id: int, enabled: bool):
        await self.database.update_user_field(user_id, "use_top_n", enabled)

    async def toggle(self, user_id: int, field: str) -> bool:
        """Invert a boolean flag ("paused" or "use_top_n") and return the new value."""
        if field not in ("paused", "use_top_n"):
            raise ValueError(f"Not a toggle field: {field}")
        profile, _ = await self.get_or_create(user_id)
        new_value = not getattr(profile, field)
        await self.database.update_user_field(user_id, field, new_value)
        return new_value

    async def add_to_watchlist(self, user_id: int, coin_id: str) -> bool:
        return await self.database.add_to_set("watchlist", user_id, coin_id)

    async def remove_from_watchlist(self, user_id: int, coin_id: str) -> bool:
        return await self.database.remove_from_set("watchlist", user_id, coin_id)

    async def add_to_blacklist(self, user_id: int, coin_id: str) -> bool:
        return await self.database.add_to_set("blacklist", user_id, coin_id.lower())

    async def remove_from_blacklist(self, user_id: int, coin_id: str) -> bool:
        return await self.database.remove_from_set("blacklist", user_id, coin_id.lower())

    def effective_filters(self, profile: UserProfile) -> UserFilters:
        """Filters for a profile, falling back to configured defaults for unset thresholds."""
        return UserFilters(
            target_currency=profile.target_currency or self.defaults.target_currency,
            min_volume=profile.min_volume if profile.min_volume else self.defaults.min_volume,
            min_profit_fraction=profile.min_profit if profile.min_profit else self.defaults.min_profit_fraction,
            blacklist=frozenset(profile.blacklist),
        )
