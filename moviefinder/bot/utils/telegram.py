"""Telegram sending helpers with retry support."""

from __future__ import annotations

from typing import Any

from aiogram import Bot
from aiogram.exceptions import TelegramNetworkError, TelegramRetryAfter
from aiogram.types import Message

from moviefinder.logging import logger
from moviefinder.utils.retry import retry_async

TELEGRAM_SEND_MAX_ATTEMPTS = 3
TELEGRAM_SEND_BASE_DELAY = 0.3
TRANSIENT_TELEGRAM_ERRORS: tuple[type[Exception], ...] = (TelegramNetworkError, TelegramRetryAfter)


def telegram_retry_delay(exc: BaseException) -> float | None:
    """Return the wait Telegram asked for on flood control, else None."""

    if isinstance(exc, TelegramRetryAfter):
        return float(exc.retry_after)
    return None


async def answer_with_retry(message: Message, text: str, **kwargs: Any) -> Any:
    """Reply to ``message``, retrying transient Telegram failures."""

    async def _send():
        return await message.answer(text, **kwargs)

    return await retry_async(
        _send,
        max_attempts=TELEGRAM_SEND_MAX_ATTEMPTS,
        base_delay=TELEGRAM_SEND_BASE_DELAY,
        retry_on=TRANSIENT_TELEGRAM_ERRORS,
        delay_for=telegram_retry_delay,
        logger=logger,
        operation_name="telegram_answer",
    )


async def bot_send_with_retry(bot: Bot, *, chat_id: int, text: str, **kwargs: Any) -> Any:
    """Send a message via Bot, retrying transient Telegram failures."""

    async def _send():
        return await bot.send_message(chat_id=chat_id, text=text, **kwargs)

    return await retry_async(
        _send,
        max_attempts=TELEGRAM_SEND_MAX_ATTEMPTS,
        base_delay=TELEGRAM_SEND_BASE_DELAY,
        retry_on=TRANSIENT_TELEGRAM_ERRORS,
        delay_for=telegram_retry_delay,
        logger=logger,
        operation_name="telegram_send_message",
    )


__all__ = [
    "answer_with_retry",
    "bot_send_with_retry",
    "telegram_retry_delay",
    "TRANSIENT_TELEGRAM_ERRORS",
]
