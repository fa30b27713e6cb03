"""Telegram delivery for the arbitrage alert bot."""

import asyncio
from typing import Optional, Set
from loguru import logger
from telegram import Bot, InlineKeyboardMarkup, Message
from telegram.constants import ParseMode
from telegram.error import TelegramError

from ..core.formatter import AlertPayload

DELIVERY_FAILURE_NOTICE = "There was an error sending your message. Please try again later."


class DeliveryError(Exception):
    """Raised when Telegram rejects a message."""


class TelegramNotifier:
    """Sends, edits and deletes chat messages."""

    def __init__(self, bot: Bot):
        self.bot = bot
        self._delete_tasks: Set[asyncio.Task] = set()

    async def deliver(self, user_id: int, text: str, parse_mode: Optional[str] = None,
                      reply_markup: Optional[InlineKeyboardMarkup] = None) -> Message:
        """Send a message, raising DeliveryError on failure."""
        try:
            return await self.bot.send_message(
                chat_id=user_id,
                text=text,
                parse_mode=parse_mode,
                reply_markup=reply_markup,
                disable_web_page_preview=True,
            )
        except TelegramError as e:
            raise DeliveryError(f"Failed to send message to {user_id}: {e}") from e

    async def send_message(self, user_id: int, text: str, parse_mode: Optional[str] = None,
                           reply_markup: Optional[InlineKeyboardMarkup] = None) -> Optional[Message]:
        """Send a message; on failure tell the user once and return None."""
        if not user_id:
            logger.error(f"Cannot send message, empty chat id: {user_id!r}")
            return None

        try:
            return await self.deliver(user_id, text, parse_mode, reply_markup)
        except DeliveryError as e:
            logger.error(str(e))
            await self._notify_failure(user_id)
            return None

    async def _notify_failure(self, user_id: int):
        try:
            await self.deliver(user_id, DELIVERY_FAILURE_NOTICE)
        except DeliveryError as e:
            logger.error(f"Error notifying user {user_id} of message failure: {e}")

    async def send_alert(self, user_id: int, payload: AlertPayload) -> bool:
        """Send an arbitrage alert as HTML."""
        message = await self.send_message(user_id, payload.to_html(), parse_mode=ParseMode.HTML)
        return message is not None

    async def edit_buttons(self, user_id: int, message_id: int, reply_markup: InlineKeyboardMarkup) -> bool:
        """Replace the inline keyboard of an existing message."""
        try:
            await self.bot.edit_message_reply_markup(
                chat_id=user_id, message_id=message_id, reply_markup=reply_markup
            )
            return True
        except TelegramError as e:
            # "Message is not modified" lands here too
            logger.warning(f"Failed to edit buttons of message {message_id} for {user_id}: {e}")
            return False

    async def delete_message(self, user_id: int, message_id: int) -> bool:
        try:
            await self.bot.delete_message(chat_id=user_id, message_id=message_id)
            return True
        except TelegramError as e:
            logger.error(f"Failed to delete message: {e}")
            return False

    def delete_later(self, user_id: int, message: Optional[Message], delay_s: float) -> Optional[asyncio.Task]:
        """Schedule deletion of a sent message after delay_s seconds."""
        if message is None:
            return None

        async def _delete():
            await asyncio.sleep(delay_s)
            await self.delete_message(user_id, message.message_id)

        task = asyncio.create_task(_delete())
        self._delete_tasks.add(task)
        task.add_done_callback(self._delete_tasks.discard)
        return task

    async def close(self):
        """Cancel pending deletions."""
        for task in list(self._delete_tasks):
            task.cancel()
        if self._delete_tasks:
            await asyncio.gather(*self._delete_tasks, return_exceptions=True)
        self._delete_tasks.clear()
