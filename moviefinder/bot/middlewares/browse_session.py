"""Attach the chat's browsing session to every update."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict

import structlog
from aiogram import BaseMiddleware
from aiogram.types import CallbackQuery, Message, TelegramObject

from moviefinder.bot.utils.messages import publish_result
from moviefinder.services.browse import BrowseSessionRegistry
from moviefinder.services.fetch_controller import ControllerState, LoadResult


class BrowseSessionMiddleware(BaseMiddleware):
    def __init__(self, registry: BrowseSessionRegistry, *, image_base_url: str) -> None:
        super().__init__()
        self.registry = registry
        self.image_base_url = image_base_url

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        chat_id = self._extract_chat_id(event)
        bot = data.get("bot")
        if chat_id is None or bot is None:
            return await handler(event, data)

        image_base_url = self.image_base_url

        async def present(result: LoadResult, state: ControllerState) -> None:
            await publish_result(bot, chat_id, result, state, image_base_url=image_base_url)

        data["browse"] = await self.registry.get(chat_id, present)
        with structlog.contextvars.bound_contextvars(chat_id=chat_id):
            return await handler(event, data)

    @staticmethod
    def _extract_chat_id(event: TelegramObject) -> int | None:
        if isinstance(event, Message):
            return event.chat.id
        if isinstance(event, CallbackQuery) and event.message is not None:
            return event.message.chat.id
        return None


__all__ = ["BrowseSessionMiddleware"]
