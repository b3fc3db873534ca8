"""Notify the administrator about unhandled handler errors."""

from __future__ import annotations

import traceback

from aiogram import Bot
from aiogram.dispatcher.event.bases import UNHANDLED
from aiogram.types import ErrorEvent, Update

from moviefinder.bot.utils.telegram import bot_send_with_retry
from moviefinder.config import MovieFinderSettings
from moviefinder.logging import logger

TELEGRAM_MESSAGE_LIMIT = 3900
TRACEBACK_CHAR_LIMIT = 1800


class ErrorMonitor:
    """Async callable plugged into aiogram's error observer."""

    def __init__(self, settings: MovieFinderSettings) -> None:
        self._settings = settings

    async def __call__(self, event: ErrorEvent, bot: Bot):
        return await self.handle_error(event, bot)

    async def handle_error(self, event: ErrorEvent, bot: Bot):
        update_id = getattr(event.update, "update_id", None)
        logger.error(
            "bot_error_captured",
            exception_type=event.exception.__class__.__name__,
            exception=str(event.exception),
            update_id=update_id,
        )

        admin_id = self._settings.admin_telegram_id
        if admin_id is None:
            return UNHANDLED

        try:
            await bot_send_with_retry(
                bot, chat_id=admin_id, text=self._build_message(event), parse_mode=None
            )
        except Exception:
            logger.exception("error_monitor_notification_failed", update_id=update_id)
        return UNHANDLED

    def _build_message(self, event: ErrorEvent) -> str:
        update = event.update
        exception = event.exception
        lines = [
            "MOVIEFINDER ERROR",
            f"Environment: {self._settings.environment}",
            f"Exception: {exception.__class__.__name__}: {exception}",
            f"Update ID: {getattr(update, 'update_id', 'unknown')}",
            f"Update Type: {self._update_type(update)}",
            f"Chat: {self._chat_id(update)}",
        ]
        trace = "".join(
            traceback.format_exception(exception.__class__, exception, exception.__traceback__)
        ).strip()
        if trace:
            lines.extend(["", "Traceback:", _truncate(trace, TRACEBACK_CHAR_LIMIT)])
        return _truncate("\n".join(lines), TELEGRAM_MESSAGE_LIMIT)

    @staticmethod
    def _update_type(update: Update | None) -> str:
        if update is None:
            return "unknown"
        try:
            return update.event_type
        except LookupError:
            return "unknown"

    @staticmethod
    def _chat_id(update: Update | None) -> str:
        if update is None:
            return "unknown"
        if update.message is not None:
            return str(update.message.chat.id)
        query = update.callback_query
        if query is not None and query.message is not None:
            return str(query.message.chat.id)
        return "unknown"


def _truncate(value: str, limit: int) -> str:
    value = value.strip()
    if len(value) <= limit:
        return value
    return f"{value[: limit - 15].rstrip()}\n...[truncated]"


__all__ = ["ErrorMonitor"]
