"""Telegram handlers for searching and browsing movies."""

from __future__ import annotations

from aiogram import F, Router
from aiogram.enums import ChatAction
from aiogram.filters import Command, CommandStart
from aiogram.types import CallbackQuery, Message

from moviefinder.bot.utils.messages import LOAD_MORE_CALLBACK, render_trending
from moviefinder.bot.utils.telegram import answer_with_retry
from moviefinder.logging import logger
from moviefinder.services.analytics import SearchAnalyticsStore
from moviefinder.services.browse import BrowseSession
from moviefinder.services.exceptions import AnalyticsFailure

router = Router()

DEFAULT_TRENDING_LIMIT = 5
GREETING = (
    "Find movies you'll enjoy without the hassle.\n\n"
    "Send a title to search, /popular for popular movies, /trending for what others search."
)
HELP_TEXT = (
    "/start - popular movies and trending searches\n"
    "/popular - popular movies\n"
    "/trending - most searched titles\n"
    "Any other text is searched as a movie title."
)


@router.message(CommandStart())
async def handle_start(
    message: Message,
    browse: BrowseSession | None = None,
    analytics: SearchAnalyticsStore | None = None,
    trending_limit: int = DEFAULT_TRENDING_LIMIT,
) -> None:
    await answer_with_retry(message, GREETING, parse_mode=None)
    if analytics is not None:
        entries = await _load_trending(analytics, trending_limit)
        if entries:
            await answer_with_retry(message, render_trending(entries), parse_mode=None)
    if browse is not None:
        await browse.show_popular()


@router.message(Command("help"))
async def handle_help(message: Message) -> None:
    await answer_with_retry(message, HELP_TEXT, parse_mode=None)


@router.message(Command("popular"))
async def handle_popular(message: Message, browse: BrowseSession | None = None) -> None:
    if browse is None:
        return
    await browse.show_popular()


@router.message(Command("trending"))
async def handle_trending(
    message: Message,
    analytics: SearchAnalyticsStore | None = None,
    trending_limit: int = DEFAULT_TRENDING_LIMIT,
) -> None:
    if analytics is None:
        return
    entries = await _load_trending(analytics, trending_limit)
    await answer_with_retry(message, render_trending(entries), parse_mode=None)


@router.message(F.text & ~F.text.startswith("/"))
async def handle_search_input(message: Message, browse: BrowseSession | None = None) -> None:
    if browse is None:
        return
    browse.submit(message.text or "")
    if message.bot is not None:
        await message.bot.send_chat_action(message.chat.id, ChatAction.TYPING)


@router.callback_query(F.data == LOAD_MORE_CALLBACK)
async def handle_load_more(callback: CallbackQuery, browse: BrowseSession | None = None) -> None:
    if browse is None:
        await callback.answer()
        return
    result = await browse.load_more()
    if result is None:
        controller = browse.controller
        notice = "Still loading…" if controller.state.is_loading else "No more movies to load."
        await callback.answer(notice)
        return
    await callback.answer()


async def _load_trending(analytics: SearchAnalyticsStore, limit: int):
    try:
        return await analytics.list_top_trending(limit)
    except AnalyticsFailure as exc:
        logger.error("trending_load_failed", error=str(exc))
        return []


__all__ = [
    "router",
    "handle_help",
    "handle_load_more",
    "handle_popular",
    "handle_search_input",
    "handle_start",
    "handle_trending",
]
