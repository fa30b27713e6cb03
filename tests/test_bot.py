"""Test the chat handlers, settings keyboard and notifier."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest
from telegram.constants import ParseMode
from telegram.error import TelegramError

from arbalert.alerts import keyboards
from arbalert.alerts.telegram import DELIVERY_FAILURE_NOTICE, TelegramNotifier
from arbalert.bot import MENU_TEXT, ArbitrageAlertBot
from arbalert.config import Config, TelegramConfig
from arbalert.core.formatter import AlertPayload
from arbalert.storage.db import Database
from arbalert.storage.models import UserProfile
from arbalert.storage.users import UserSettingsStore

from .sample_data import make_filters


def make_bot_api():
    bot = Mock()
    bot.send_message = AsyncMock(return_value=Mock(message_id=500))
    bot.edit_message_reply_markup = AsyncMock()
    bot.delete_message = AsyncMock()
    return bot


def command_update(user_id, text=None):
    update = Mock()
    update.effective_chat.id = user_id
    update.effective_message.text = text
    return update


def button_update(user_id, data, message_id=900):
    update = Mock()
    update.callback_query.answer = AsyncMock()
    update.callback_query.data = data
    update.callback_query.message.chat.id = user_id
    update.callback_query.message.message_id = message_id
    return update


def sent_texts(bot_api):
    return [c.kwargs["text"] for c in bot_api.send_message.call_args_list]


def button_labels(markup):
    return [button.text for row in markup.inline_keyboard for button in row]


@pytest.fixture
def store(tmp_path):
    db = Database(str(tmp_path / "bot.sqlite"))
    asyncio.run(db.connect())
    yield UserSettingsStore(db, Config(telegram=TelegramConfig(token="t")).thresholds)
    asyncio.run(db.disconnect())


@pytest.fixture
def bot_api():
    return make_bot_api()


@pytest.fixture
def alert_bot(store, bot_api):
    application = Mock()
    application.bot = bot_api
    return ArbitrageAlertBot(Config(telegram=TelegramConfig(token="t")), store, application=application)


class TestCommands:
    """Test slash commands."""

    def test_start_registers_new_user(self, alert_bot, store, bot_api):
        asyncio.run(alert_bot.cmd_start(command_update(1), None))

        texts = sent_texts(bot_api)
        assert texts[0].startswith("Welcome to the Arbitrage Bot!")
        assert texts[1] == MENU_TEXT
        assert bot_api.send_message.call_args_list[1].kwargs["reply_markup"] is not None
        assert asyncio.run(store.get(1)) is not None

    def test_start_welcomes_back(self, alert_bot, store, bot_api):
        asyncio.run(store.get_or_create(1))

        asyncio.run(alert_bot.cmd_start(command_update(1), None))

        assert sent_texts(bot_api)[0].startswith("Welcome back")

    def test_pause_and_resume(self, alert_bot, store, bot_api):
        asyncio.run(alert_bot.cmd_pause(command_update(1), None))
        assert asyncio.run(store.is_paused(1)) is True

        asyncio.run(alert_bot.cmd_resume(command_update(1), None))
        assert asyncio.run(store.is_paused(1)) is False

        assert sent_texts(bot_api) == [
            "Fetching data has been paused.",
            "Fetching data has been resumed.",
        ]

    def test_top_n_enable(self, alert_bot, store, bot_api):
        asyncio.run(alert_bot.cmd_top_enable(command_update(1), None))

        assert asyncio.run(store.get(1)).use_top_n is True
        assert sent_texts(bot_api) == ["Top 100 coins feature has been enabled."]


class TestButtons:
    """Test settings menu buttons and reply capture."""

    def test_min_profit_flow_refreshes_menu(self, alert_bot, store, bot_api):
        asyncio.run(alert_bot.button_callback(button_update(1, keyboards.SET_MIN_PROFIT, message_id=900), None))
        asyncio.run(alert_bot.handle_text(command_update(1, "3"), None))

        assert asyncio.run(store.get(1)).min_profit == 0.03
        assert sent_texts(bot_api)[-1] == "Minimum profit percentage set to 3%."
        edit = bot_api.edit_message_reply_markup.call_args.kwargs
        assert edit["message_id"] == 900
        assert "💸Set Min Profit: 3%" in button_labels(edit["reply_markup"])

    def test_watchlist_add_does_not_refresh_menu(self, alert_bot, store, bot_api):
        asyncio.run(alert_bot.button_callback(button_update(1, keyboards.ADD_WATCHLIST), None))
        asyncio.run(alert_bot.handle_text(command_update(1, "bitcoin"), None))

        assert sent_texts(bot_api)[-1] == "Coin ID bitcoin has been added to your whitelist."
        bot_api.edit_message_reply_markup.assert_not_awaited()

    def test_toggle_pause(self, alert_bot, store, bot_api):
        asyncio.run(alert_bot.button_callback(button_update(1, keyboards.TOGGLE_PAUSE), None))

        assert asyncio.run(store.is_paused(1)) is True
        assert sent_texts(bot_api) == ["Fetching data has been paused."]
        markup = bot_api.edit_message_reply_markup.call_args.kwargs["reply_markup"]
        assert "⏸️Paused" in button_labels(markup)

    def test_view_watchlist(self, alert_bot, store, bot_api):
        asyncio.run(store.add_to_watchlist(1, "bitcoin"))
        asyncio.run(store.add_to_watchlist(1, "ethereum"))

        asyncio.run(alert_bot.button_callback(button_update(1, keyboards.VIEW_WATCHLIST), None))

        assert sent_texts(bot_api) == ["Your whitelisted coin IDs: bitcoin, ethereum"]

    def test_view_empty_blacklist(self, alert_bot, bot_api):
        asyncio.run(alert_bot.button_callback(button_update(1, keyboards.VIEW_BLACKLIST), None))

        assert sent_texts(bot_api) == ["Your blacklist is empty."]

    def test_text_without_pending_edit_is_ignored(self, alert_bot, bot_api):
        asyncio.run(alert_bot.handle_text(command_update(1, "hello"), None))

        bot_api.send_message.assert_not_awaited()

    def test_callback_without_message_is_ignored(self, alert_bot, store, bot_api):
        update = button_update(1, keyboards.TOGGLE_PAUSE)
        update.callback_query.message = None

        asyncio.run(alert_bot.button_callback(update, None))

        bot_api.send_message.assert_not_awaited()
        assert asyncio.run(store.get(1)) is None

    def test_expired_callback_still_handled(self, alert_bot, bot_api):
        update = button_update(1, keyboards.SET_TARGET)
        update.callback_query.answer = AsyncMock(side_effect=TelegramError("Query is too old"))

        asyncio.run(alert_bot.button_callback(update, None))

        assert sent_texts(bot_api) == ["Please enter the target (e.g., USDT, BTC, ETH):"]


class TestSettingsKeyboard:
    """Test menu labels."""

    def test_labels_show_current_values(self):
        profile = UserProfile(user_id=1, use_top_n=True)
        markup = keyboards.settings_keyboard(profile, make_filters(min_profit=0.025, min_volume=5000, target="BTC"))

        labels = button_labels(markup)

        assert "💸Set Min Profit: 2.5%" in labels
        assert "🎯Set Target: BTC" in labels
        assert "🔉Set Min Volume: 5000" in labels
        assert "📈Top 100 Coins (Vol): ON" in labels
        assert "⏸️Active" in labels

    def test_callback_data(self):
        markup = keyboards.settings_keyboard(UserProfile(user_id=1), make_filters())

        data = [button.callback_data for row in markup.inline_keyboard for button in row]

        assert data == [
            "add_coin_id", "remove_coin_id",
            "add_blacklist_id", "remove_blacklist_id",
            "view_whitelist", "view_blacklist",
            "set_min_profit", "set_target",
            "set_min_volume",
            "toggle_top100",
            "toggle_fetching",
        ]


class TestNotifier:
    """Test message delivery."""

    def test_send_alert_uses_html(self, bot_api):
        notifier = TelegramNotifier(bot_api)
        payload = AlertPayload(
            "Arbitrage Opportunity Found:", "Bitcoin", "BTC/USDT", "1", "A", None, "1.05", "B", None,
            "$50,000", "5.00", "🟢",
        )

        assert asyncio.run(notifier.send_alert(1, payload)) is True
        kwargs = bot_api.send_message.call_args.kwargs
        assert kwargs["parse_mode"] == ParseMode.HTML
        assert kwargs["disable_web_page_preview"] is True

    def test_failure_notifies_user_once(self, bot_api):
        bot_api.send_message = AsyncMock(side_effect=TelegramError("Forbidden"))
        notifier = TelegramNotifier(bot_api)

        assert asyncio.run(notifier.send_message(1, "hello")) is None
        assert sent_texts(bot_api) == ["hello", DELIVERY_FAILURE_NOTICE]

    def test_empty_chat_id(self, bot_api):
        notifier = TelegramNotifier(bot_api)

        assert asyncio.run(notifier.send_message(0, "hello")) is None
        bot_api.send_message.assert_not_awaited()

    def test_delete_later(self, bot_api):
        async def run():
            notifier = TelegramNotifier(bot_api)
            task = notifier.delete_later(1, Mock(message_id=42), 0)
            await task

        asyncio.run(run())

        bot_api.delete_message.assert_awaited_once_with(chat_id=1, message_id=42)

    def test_delete_later_without_message(self, bot_api):
        assert TelegramNotifier(bot_api).delete_later(1, None, 0) is None

    def test_close_cancels_pending_deletions(self, bot_api):
        async def run():
            notifier = TelegramNotifier(bot_api)
            notifier.delete_later(1, Mock(message_id=42), 60)
            await notifier.close()

        asyncio.run(run())

        bot_api.delete_message.assert_not_awaited()
