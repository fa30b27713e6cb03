"""Telegram command, button and message handlers."""

from typing import Optional
from loguru import logger
from telegram import Update
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from .alerts import keyboards
from .alerts.telegram import TelegramNotifier
from .config import Config
from .core.conversation import ConversationStateMachine, PendingInput
from .storage.db import StorageError
from .storage.users import UserSettingsStore

PENDING_BUTTONS = {
    keyboards.SET_TARGET: PendingInput.TARGET,
    keyboards.ADD_WATCHLIST: PendingInput.WATCHLIST_ADD,
    keyboards.REMOVE_WATCHLIST: PendingInput.WATCHLIST_REMOVE,
    keyboards.ADD_BLACKLIST: PendingInput.BLACKLIST_ADD,
    keyboards.REMOVE_BLACKLIST: PendingInput.BLACKLIST_REMOVE,
    keyboards.SET_MIN_PROFIT: PendingInput.MIN_PROFIT,
    keyboards.SET_MIN_VOLUME: PendingInput.MIN_VOLUME,
}

# Prompts and confirmations for these edits are removed after a while
SHORT_LIVED = (PendingInput.TARGET, PendingInput.MIN_PROFIT, PendingInput.MIN_VOLUME)

TOGGLE_BUTTONS = {
    keyboards.TOGGLE_PAUSE: ("paused", "Fetching data has been {}.", ("paused", "resumed")),
    keyboards.TOGGLE_TOP_N: ("use_top_n", "Top 100 coins feature has been {}.", ("enabled", "disabled")),
}

MENU_TEXT = "Choose an option below:"
REQUEST_ERROR = "There was an error processing your request."


class ArbitrageAlertBot:
    """Chat front end: settings menu, slash commands and reply capture."""

    def __init__(self, config: Config, store: UserSettingsStore,
                 application: Optional[Application] = None):
        self.config = config
        self.store = store
        self.application = application or Application.builder().token(config.telegram.token).build()
        self.notifier = TelegramNotifier(self.application.bot)
        self.conversation = ConversationStateMachine(store)
        self._setup_handlers()

    def _setup_handlers(self):
        """Setup command, callback and message handlers."""
        self.application.add_handler(CommandHandler("start", self.cmd_start))
        self.application.add_handler(CommandHandler("options", self.cmd_options))
        self.application.add_handler(CommandHandler("pause", self.cmd_pause))
        self.application.add_handler(CommandHandler("resume", self.cmd_resume))
        self.application.add_handler(CommandHandler("top100enable", self.cmd_top_enable))
        self.application.add_handler(CommandHandler("top100disable", self.cmd_top_disable))

        self.application.add_handler(CallbackQueryHandler(self.button_callback))
        self.application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, self.handle_text))

    async def start(self):
        """Start polling for updates."""
        await self.application.initialize()
        await self.application.start()
        await self.application.updater.start_polling()
        logger.info("Telegram bot started")

    async def stop(self):
        """Stop polling and release the application."""
        await self.notifier.close()
        if self.application.updater and self.application.updater.running:
            await self.application.updater.stop()
        if self.application.running:
            await self.application.stop()
        await self.application.shutdown()
        logger.info("Telegram bot stopped")

    # ===== COMMAND HANDLERS =====

    async def cmd_start(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Register the user and show the settings menu."""
        chat = update.effective_chat
        if chat is None or not chat.id:
            return
        user_id = chat.id

        try:
            _, created = await self.store.get_or_create(user_id)
            if created:
                text = "Welcome to the Arbitrage Bot! You can start by adding trading pairs to your whitelist."
            else:
                text = "Welcome back to the Arbitrage Bot! You can check your coins ids."
            notice = await self.notifier.send_message(user_id, text)
            self.notifier.delete_later(user_id, notice, self.config.telegram.notice_ttl_s)

            await self.send_menu(user_id)
        except StorageError as e:
            logger.error(f"/start failed for {user_id}: {e}")
            await self.notifier.send_message(user_id, REQUEST_ERROR)

    async def cmd_options(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Show the settings menu."""
        user_id = update.effective_chat.id
        try:
            await self.send_menu(user_id)
        except StorageError as e:
            logger.error(f"/options failed for {user_id}: {e}")
            await self.notifier.send_message(user_id, REQUEST_ERROR)

    async def cmd_pause(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        await self._set_flag(update.effective_chat.id, "paused", True, "Fetching data has been paused.")

    async def cmd_resume(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        await self._set_flag(update.effective_chat.id, "paused", False, "Fetching data has been resumed.")

    async def cmd_top_enable(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        await self._set_flag(update.effective_chat.id, "use_top_n", True, "Top 100 coins feature has been enabled.")

    async def cmd_top_disable(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        await self._set_flag(update.effective_chat.id, "use_top_n", False, "Top 100 coins feature has been disabled.")

    async def _set_flag(self, user_id: int, field: str, value: bool, confirmation: str):
        try:
            if field == "paused":
                await self.store.set_paused(user_id, value)
            else:
                await self.store.set_use_top_n(user_id, value)
        except StorageError as e:
            logger.error(f"Failed to set {field}={value} for {user_id}: {e}")
            await self.notifier.send_message(user_id, REQUEST_ERROR)
            return
        await self.notifier.send_message(user_id, confirmation)

    # ===== CALLBACK HANDLERS =====

    async def button_callback(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle settings menu buttons."""
        query = update.callback_query

        try:
            await query.answer()
        except Exception as e:
            # If callback is too old, just log it and continue
            logger.warning(f"Callback query error (likely expired): {e}")

        data = query.data
        if query.message is None:
            logger.warning(f"Callback {data} has no accessible message, ignoring")
            return
        user_id = query.message.chat.id
        menu_message_id = query.message.message_id

        try:
            if data in PENDING_BUTTONS:
                await self._begin_input(user_id, PENDING_BUTTONS[data], menu_message_id)
            elif data in TOGGLE_BUTTONS:
                await self._toggle(user_id, data, menu_message_id)
            elif data == keyboards.VIEW_WATCHLIST:
                await self._show_watchlist(user_id)
            elif data == keyboards.VIEW_BLACKLIST:
                await self._show_blacklist(user_id)
            else:
                logger.warning(f"Unknown callback data from {user_id}: {data}")
        except StorageError as e:
            logger.error(f"Error handling button callback {data}: {e}")
            await self.notifier.send_message(user_id, REQUEST_ERROR)

    async def _begin_input(self, user_id: int, state: PendingInput, menu_message_id: int):
        prompt = self.conversation.begin(user_id, state, origin_message_id=menu_message_id)
        message = await self.notifier.send_message(user_id, prompt)
        if state in SHORT_LIVED:
            self.notifier.delete_later(user_id, message, self.config.telegram.confirmation_ttl_s)

    async def _toggle(self, user_id: int, data: str, menu_message_id: int):
        field, template, (on_word, off_word) = TOGGLE_BUTTONS[data]
        new_value = await self.store.toggle(user_id, field)
        await self.refresh_menu(user_id, menu_message_id)

        notice = await self.notifier.send_message(user_id, template.format(on_word if new_value else off_word))
        self.notifier.delete_later(user_id, notice, self.config.telegram.toggle_ttl_s)

    async def _show_watchlist(self, user_id: int):
        profile = await self.store.get(user_id)
        if profile is None:
            await self.notifier.send_message(user_id, "You have no whitelisted coin IDs yet.")
            return
        ids = ", ".join(profile.watchlist) if profile.watchlist else "No whitelisted coin IDs."
        await self.notifier.send_message(user_id, f"Your whitelisted coin IDs: {ids}")

    async def _show_blacklist(self, user_id: int):
        profile = await self.store.get(user_id)
        blacklist = profile.blacklist if profile else []
        if blacklist:
            text = f"Your blacklisted IDs: {', '.join(blacklist)}"
        else:
            text = "Your blacklist is empty."
        await self.notifier.send_message(user_id, text)

    # ===== MESSAGE HANDLERS =====

    async def handle_text(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Route free text to the pending settings edit, if any."""
        message = update.effective_message
        if message is None or message.text is None:
            return
        user_id = update.effective_chat.id

        reply = await self.conversation.handle_message(user_id, message.text)
        if reply is None:
            return

        sent = await self.notifier.send_message(user_id, reply.text)

        if reply.refresh_settings and reply.origin_message_id is not None:
            try:
                await self.refresh_menu(user_id, reply.origin_message_id)
            except StorageError as e:
                logger.error(f"Failed to refresh menu for {user_id}: {e}")

        if reply.state in SHORT_LIVED and reply.accepted:
            self.notifier.delete_later(user_id, sent, self.config.telegram.confirmation_ttl_s)

    # ===== UTILITY METHODS =====

    async def send_menu(self, user_id: int):
        """Send the settings menu."""
        profile, _ = await self.store.get_or_create(user_id)
        markup = keyboards.settings_keyboard(
            profile, self.store.effective_filters(profile), self.config.market_data.top_n
        )
        await self.notifier.send_message(user_id, MENU_TEXT, reply_markup=markup)

    async def refresh_menu(self, user_id: int, message_id: int):
        """Regenerate the settings menu in place."""
        profile, _ = await self.store.get_or_create(user_id)
        markup = keyboards.settings_keyboard(
            profile, self.store.effective_filters(profile), self.config.market_data.top_n
        )
        await self.notifier.edit_buttons(user_id, message_id, markup)
