"""Inline keyboards for the settings menu."""

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from ..core.types import UserFilters
from ..storage.models import UserProfile

ADD_WATCHLIST = "add_coin_id"
REMOVE_WATCHLIST = "remove_coin_id"
ADD_BLACKLIST = "add_blacklist_id"
REMOVE_BLACKLIST = "remove_blacklist_id"
VIEW_WATCHLIST = "view_whitelist"
VIEW_BLACKLIST = "view_blacklist"
SET_MIN_PROFIT = "set_min_profit"
SET_TARGET = "set_target"
SET_MIN_VOLUME = "set_min_volume"
TOGGLE_TOP_N = "toggle_top100"
TOGGLE_PAUSE = "toggle_fetching"


def _number(value: float) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else f"{value:g}"


def settings_keyboard(profile: UserProfile, filters: UserFilters, top_n: int = 100) -> InlineKeyboardMarkup:
    """Settings menu with the user's current values in the button labels."""
    min_profit = _number(round(filters.min_profit_fraction * 100, 6))
    min_volume = _number(filters.min_volume)
    top_n_state = "ON" if profile.use_top_n else "OFF"
    status = "Paused" if profile.paused else "Active"

    keyboard = [
        [
            InlineKeyboardButton("➕Add to Whitelist", callback_data=ADD_WATCHLIST),
            InlineKeyboardButton("➖Remove from Whitelist", callback_data=REMOVE_WATCHLIST),
        ],
        [
            InlineKeyboardButton("➕Add to Blacklist", callback_data=ADD_BLACKLIST),
            InlineKeyboardButton("➖Remove from Blacklist", callback_data=REMOVE_BLACKLIST),
        ],
        [
            InlineKeyboardButton("📄View Whitelisted IDs", callback_data=VIEW_WATCHLIST),
            InlineKeyboardButton("📄View Blacklisted IDs", callback_data=VIEW_BLACKLIST),
        ],
        [
            InlineKeyboardButton(f"💸Set Min Profit: {min_profit}%", callback_data=SET_MIN_PROFIT),
            InlineKeyboardButton(f"🎯Set Target: {filters.target_currency}", callback_data=SET_TARGET),
        ],
        [
            InlineKeyboardButton(f"🔉Set Min Volume: {min_volume}", callback_data=SET_MIN_VOLUME),
        ],
        [
            InlineKeyboardButton(f"📈Top {top_n} Coins (Vol): {top_n_state}", callback_data=TOGGLE_TOP_N),
        ],
        [
            InlineKeyboardButton(f"⏸️{status}", callback_data=TOGGLE_PAUSE),
        ],
    ]
    return InlineKeyboardMarkup(keyboard)
