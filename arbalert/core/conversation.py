"""Per-user pending-input tracking for settings edits made through chat replies.

A settings button moves the user into one of the ``awaiting_*`` states and
returns a prompt. The next free-text message from that user is consumed by
:meth:`ConversationStateMachine.handle_message`, validated for that state,
applied through the user settings store when valid, and the slot is cleared
whatever the outcome. Pressing another button before replying replaces the
pending state.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional
from loguru import logger

from ..storage.db import StorageError
from ..storage.users import UserSettingsStore


class PendingInput(Enum):
    """What the next free-text message from a user should change."""
    IDLE = "idle"
    TARGET = "awaiting_target"
    WATCHLIST_ADD = "awaiting_watchlist_add"
    WATCHLIST_REMOVE = "awaiting_watchlist_remove"
    BLACKLIST_ADD = "awaiting_blacklist_add"
    BLACKLIST_REMOVE = "awaiting_blacklist_remove"
    MIN_PROFIT = "awaiting_min_profit"
    MIN_VOLUME = "awaiting_min_volume"


PROMPTS = {
    PendingInput.TARGET: "Please enter the target (e.g., USDT, BTC, ETH):",
    PendingInput.WATCHLIST_ADD: "Please send the coin ID you want to add.",
    PendingInput.WATCHLIST_REMOVE: "Please send the coin ID you want to remove.",
    PendingInput.BLACKLIST_ADD: "Please enter the Coin ID you want to blacklist:",
    PendingInput.BLACKLIST_REMOVE: "Please enter the Coin ID you want to remove from the blacklist:",
    PendingInput.MIN_PROFIT: "Please send the minimum potential profit percentage (e.g., 2 for 2%).",
    PendingInput.MIN_VOLUME: "Please send the minimum 24h volume (e.g., 1000).",
}

STORAGE_ERRORS = {
    PendingInput.TARGET: "There was an error saving the target. Please try again.",
    PendingInput.WATCHLIST_ADD: "There was an error adding the coin ID. Please try again.",
    PendingInput.WATCHLIST_REMOVE: "There was an error removing the coin ID. Please try again.",
    PendingInput.BLACKLIST_ADD: "There was an error adding the coin ID to the blacklist. Please try again.",
    PendingInput.BLACKLIST_REMOVE: "There was an error removing the coin ID from the blacklist. Please try again.",
    PendingInput.MIN_PROFIT: "There was an error saving the minimum profit. Please try again.",
    PendingInput.MIN_VOLUME: "There was an error saving the minimum volume. Please try again.",
}


@dataclass
class PendingEntry:
    state: PendingInput
    origin_message_id: Optional[int] = None


@dataclass
class ConversationReply:
    """Outcome of consuming one free-text message."""
    state: PendingInput
    text: str
    accepted: bool
    refresh_settings: bool = False
    origin_message_id: Optional[int] = None


def parse_target(text: str) -> Optional[str]:
    """Trimmed, upper-cased symbol of 1-5 characters."""
    target = (text or "").strip().upper()
    if not 1 <= len(target) <= 5:
        return None
    return target


def parse_coin_id(text: str) -> Optional[str]:
    """Trimmed, non-empty coin id."""
    coin_id = (text or "").strip()
    return coin_id or None


def parse_min_profit(text: str) -> Optional[float]:
    """Positive percentage, returned as a fraction (3 -> 0.03)."""
    try:
        percent = float((text or "").strip())
    except ValueError:
        return None
    if math.isnan(percent) or math.isinf(percent) or percent <= 0:
        return None
    return percent / 100


def parse_min_volume(text: str) -> Optional[int]:
    """Positive integer volume."""
    try:
        volume = int((text or "").strip())
    except ValueError:
        return None
    if volume <= 0:
        return None
    return volume


class ConversationStateMachine:
    """Owns the per-user pending-input slot and applies captured replies."""

    def __init__(self, store: UserSettingsStore):
        self.store = store
        self._pending: Dict[int, PendingEntry] = {}
        self._handlers: Dict[PendingInput, Callable[[int, str], Awaitable[ConversationReply]]] = {
            PendingInput.TARGET: self._apply_target,
            PendingInput.WATCHLIST_ADD: self._apply_watchlist_add,
            PendingInput.WATCHLIST_REMOVE: self._apply_watchlist_remove,
            PendingInput.BLACKLIST_ADD: self._apply_blacklist_add,
            PendingInput.BLACKLIST_REMOVE: self._apply_blacklist_remove,
            PendingInput.MIN_PROFIT: self._apply_min_profit,
            PendingInput.MIN_VOLUME: self._apply_min_volume,
        }

    def begin(self, user_id: int, state: PendingInput, origin_message_id: Optional[int] = None) -> str:
        """Enter an awaiting state, overriding any stale one, and return its prompt."""
        if state is PendingInput.IDLE:
            raise ValueError("Cannot begin the idle state")
        previous = self._pending.get(user_id)
        if previous is not None and previous.state is not state:
            logger.debug(f"User {user_id}: {previous.state.value} replaced by {state.value}")
        self._pending[user_id] = PendingEntry(state, origin_message_id)
        return PROMPTS[state]

    def state_of(self, user_id: int) -> PendingInput:
        entry = self._pending.get(user_id)
        return entry.state if entry else PendingInput.IDLE

    def cancel(self, user_id: int):
        self._pending.pop(user_id, None)

    async def handle_message(self, user_id: int, text: str) -> Optional[ConversationReply]:
        """Consume a free-text message if the user is mid-conversation.

        Returns None when the user is idle so the caller can fall through to
        other message handling.
        """
        # Cleared before any await so a button pressed meanwhile sets a fresh slot
        entry = self._pending.pop(user_id, None)
        if entry is None:
            return None

        try:
            reply = await self._handlers[entry.state](user_id, text)
        except StorageError as e:
            logger.error(f"User {user_id}: failed to apply {entry.state.value}: {e}")
            reply = ConversationReply(entry.state, STORAGE_ERRORS[entry.state], accepted=False)

        reply.origin_message_id = entry.origin_message_id
        return reply

    async def _apply_target(self, user_id: int, text: str) -> ConversationReply:
        target = parse_target(text)
        if target is None:
            return ConversationReply(
                PendingInput.TARGET,
                "Invalid target. Please enter a valid target (e.g., USDT, BTC, ETH).",
                accepted=False,
            )
        await self.store.set_target_currency(user_id, target)
        return ConversationReply(
            PendingInput.TARGET, f"Target set to {target} successfully.", accepted=True, refresh_settings=True
        )

    async def _apply_watchlist_add(self, user_id: int, text: str) -> ConversationReply:
        coin_id = parse_coin_id(text)
        if coin_id is None:
            return ConversationReply(PendingInput.WATCHLIST_ADD, "Please send a non-empty coin ID.", accepted=False)
        if await self.store.add_to_watchlist(user_id, coin_id):
            return ConversationReply(
                PendingInput.WATCHLIST_ADD, f"Coin ID {coin_id} has been added to your whitelist.", accepted=True
            )
        return ConversationReply(
            PendingInput.WATCHLIST_ADD, f"Coin ID {coin_id} is already in your whitelist.", accepted=True
        )

    async def _apply_watchlist_remove(self, user_id: int, text: str) -> ConversationReply:
        coin_id = parse_coin_id(text)
        if coin_id is None:
            return ConversationReply(PendingInput.WATCHLIST_REMOVE, "Please send a non-empty coin ID.", accepted=False)
        if await self.store.remove_from_watchlist(user_id, coin_id):
            return ConversationReply(
                PendingInput.WATCHLIST_REMOVE, f"Coin ID {coin_id} has been removed from your whitelist.", accepted=True
            )
        return ConversationReply(
            PendingInput.WATCHLIST_REMOVE, f"Coin ID {coin_id} is not in your whitelist.", accepted=False
        )

    async def _apply_blacklist_add(self, user_id: int, text: str) -> ConversationReply:
        coin_id = parse_coin_id(text)
        if coin_id is None:
            return ConversationReply(PendingInput.BLACKLIST_ADD, "Please send a non-empty coin ID.", accepted=False)
        coin_id = coin_id.lower()
        if await self.store.add_to_blacklist(user_id, coin_id):
            return ConversationReply(
                PendingInput.BLACKLIST_ADD, f"{coin_id} has been added to your blacklist.", accepted=True
            )
        return ConversationReply(
            PendingInput.BLACKLIST_ADD, f"{coin_id} is already in your blacklist.", accepted=True
        )

    async def _apply_blacklist_remove(self, user_id: int, text: str) -> ConversationReply:
        coin_id = parse_coin_id(text)
        if coin_id is None:
            return ConversationReply(PendingInput.BLACKLIST_REMOVE, "Please send a non-empty coin ID.", accepted=False)
        coin_id = coin_id.lower()
        if await self.store.remove_from_blacklist(user_id, coin_id):
            return ConversationReply(
                PendingInput.BLACKLIST_REMOVE, f"{coin_id} has been removed from your blacklist.", accepted=True
            )
        return ConversationReply(
            PendingInput.BLACKLIST_REMOVE, f"{coin_id} is not in your blacklist.", accepted=False
        )

    async def _apply_min_profit(self, user_id: int, text: str) -> ConversationReply:
        fraction = parse_min_profit(text)
        if fraction is None:
            return ConversationReply(
                PendingInput.MIN_PROFIT, "Please enter a valid profit percentage greater than 0.", accepted=False
            )
        await self.store.set_min_profit(user_id, fraction)
        return ConversationReply(
            PendingInput.MIN_PROFIT,
            f"Minimum profit percentage set to {text.strip()}%.",
            accepted=True,
            refresh_settings=True,
        )

    async def _apply_min_volume(self, user_id: int, text: str) -> ConversationReply:
        volume = parse_min_volume(text)
        if volume is None:
            return ConversationReply(
                PendingInput.MIN_VOLUME, "Please enter a valid volume greater than 0.", accepted=False
            )
        await self.store.set_min_volume(user_id, volume)
        return ConversationReply(
            PendingInput.MIN_VOLUME, f"Minimum 24h volume set to {volume}.", accepted=True, refresh_settings=True
        )
