# weather_bot/transports/telegram_bot.py
# -*- coding: utf-8 -*-
"""
Weather Telemetry Bot — Telegram transport
------------------------------------------
python-telegram-bot glue around the dispatcher:

- registers /start, /help and, for the envelope schema, /list and /info,
  plus the inline-button callback `choose_device_<name>`;
- implements the dispatcher's chat sink (plain text, button prompts).

The Application runs inside the service's event loop (started from the
FastAPI lifespan), so its handlers interleave with the MQTT handlers
instead of running in parallel with them.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
)

from weather_bot.core.config import PayloadSchema
from weather_bot.core.dispatcher import DEVICE_CALLBACK_PREFIX, Dispatcher
from weather_bot.core.types import ChoiceOption

logger = logging.getLogger(__name__)

# Telegram rejects callback_data longer than this (bytes).
MAX_CALLBACK_DATA_BYTES = 64

NO_SELECTABLE_DEVICES_TEXT = "None of these devices can be selected here: their names are too long."


def build_keyboard(options: Sequence[ChoiceOption]) -> Optional[InlineKeyboardMarkup]:
    """One button per row. Options whose callback data is too long are skipped."""
    rows: List[List[InlineKeyboardButton]] = []
    for option in options:
        if len(option.callback_data.encode("utf-8")) > MAX_CALLBACK_DATA_BYTES:
            logger.warning("Skipping device button %r: callback data too long", option.label)
            continue
        rows.append([InlineKeyboardButton(option.label, callback_data=option.callback_data)])
    if not rows:
        return None
    return InlineKeyboardMarkup(rows)


class TelegramBot:
    """Chat sink plus command routing for one bot token."""

    def __init__(self, token: str, *, schema: PayloadSchema = "envelope") -> None:
        self.schema = schema
        self.application: Application = Application.builder().token(token).build()
        self._dispatcher: Optional[Dispatcher] = None

    # ------------------------------------------------------------------
    # Wiring / lifecycle
    # ------------------------------------------------------------------

    def attach(self, dispatcher: Dispatcher) -> None:
        self._dispatcher = dispatcher
        app = self.application
        app.add_handler(CommandHandler("start", self._on_start))
        app.add_handler(CommandHandler("help", self._on_help))
        if self.schema == "envelope":
            app.add_handler(CommandHandler("list", self._on_list))
            app.add_handler(CommandHandler("info", self._on_info))
            app.add_handler(
                CallbackQueryHandler(self._on_device_selected, pattern=f"^{DEVICE_CALLBACK_PREFIX}")
            )

    async def start(self) -> None:
        await self.application.initialize()
        await self.application.start()
        await self.application.updater.start_polling(drop_pending_updates=False)
        logger.info("Telegram polling started")

    async def stop(self) -> None:
        if self.application.updater.running:
            await self.application.updater.stop()
        if self.application.running:
            await self.application.stop()
        await self.application.shutdown()
        logger.info("Telegram bot stopped")

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    @staticmethod
    def _chat_id(update: Update) -> Optional[int]:
        chat = update.effective_chat
        return chat.id if chat else None

    async def _on_start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        chat_id = self._chat_id(update)
        if chat_id is None or self._dispatcher is None:
            return
        user = update.effective_user
        logger.info("/start from chat %s (username=%s)", chat_id, user.username if user else None)
        await self._dispatcher.handle_start(chat_id)

    async def _on_help(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        chat_id = self._chat_id(update)
        if chat_id is None or self._dispatcher is None:
            return
        await self._dispatcher.handle_help(chat_id)

    async def _on_list(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        chat_id = self._chat_id(update)
        if chat_id is None or self._dispatcher is None:
            return
        logger.info("/list from chat %s", chat_id)
        await self._dispatcher.handle_list_command(chat_id)

    async def _on_info(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        chat_id = self._chat_id(update)
        if chat_id is None or self._dispatcher is None:
            return
        logger.info("/info from chat %s", chat_id)
        await self._dispatcher.handle_info_command(chat_id)

    async def _on_device_selected(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        query = update.callback_query
        chat_id = self._chat_id(update)
        if query is None or chat_id is None or self._dispatcher is None:
            return
        try:
            await query.answer()
        except TelegramError as exc:
            logger.warning("Failed to answer callback query: %s", exc)
        await self._dispatcher.handle_device_selected(chat_id, query.data)

    # ------------------------------------------------------------------
    # Chat sink
    # ------------------------------------------------------------------

    async def send_text(self, chat_id: int, text: str) -> bool:
        try:
            await self.application.bot.send_message(chat_id=chat_id, text=text)
        except TelegramError as exc:
            logger.warning("Failed to send message to %s: %s", chat_id, exc)
            return False
        return True

    async def send_choice_prompt(
        self,
        chat_id: int,
        text: str,
        options: Sequence[ChoiceOption],
    ) -> bool:
        keyboard = build_keyboard(options)
        if keyboard is None:
            return await self.send_text(chat_id, NO_SELECTABLE_DEVICES_TEXT)
        try:
            await self.application.bot.send_message(chat_id=chat_id, text=text, reply_markup=keyboard)
        except TelegramError as exc:
            logger.warning("Failed to send device prompt to %s: %s", chat_id, exc)
            return False
        return True


class OfflineChatSink:
    """Chat sink used when no bot token is configured: logs, delivers nothing."""

    async def send_text(self, chat_id: int, text: str) -> bool:
        logger.info("Telegram disabled; not sending to %s: %r", chat_id, text[:80])
        return False

    async def send_choice_prompt(
        self,
        chat_id: int,
        text: str,
        options: Sequence[ChoiceOption],
    ) -> bool:
        logger.info("Telegram disabled; not sending %d options to %s", len(options), chat_id)
        return False
