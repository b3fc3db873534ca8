"""Plain-text rendering of result batches and the trending panel."""

from __future__ import annotations

from typing import Iterable, Sequence

from aiogram import Bot
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from moviefinder.bot.utils.telegram import bot_send_with_retry
from moviefinder.domain.models import Movie, TrendingEntry
from moviefinder.services.fetch_controller import ControllerState, LoadResult

TELEGRAM_MESSAGE_LIMIT = 4000
LOAD_MORE_CALLBACK = "more"


def format_movie_line(position: int, movie: Movie, image_base_url: str) -> str:
    details = [movie.title or "Untitled"]
    if movie.year:
        details.append(f"({movie.year})")
    line = f"{position}. {' '.join(details)}"
    meta: list[str] = []
    if movie.vote_average:
        meta.append(f"★ {movie.vote_average:.1f}")
    if movie.original_language:
        meta.append(movie.original_language.upper())
    if meta:
        line = f"{line} · {' · '.join(meta)}"
    poster = movie.poster_url(image_base_url)
    if poster:
        line = f"{line}\n   {poster}"
    return line


def result_header(result: LoadResult) -> str:
    if result.replaced:
        if result.term:
            return f"Results for “{result.term}”"
        return "Popular movies"
    return f"Page {result.page} of {result.total_pages}"


def render_result(
    result: LoadResult,
    state: ControllerState,
    image_base_url: str,
) -> list[str]:
    if result.error:
        return [result.error]

    header = result_header(result)
    if not result.movies:
        empty = "No movies found." if result.replaced else "Nothing new on this page."
        return [f"{header}\n\n{empty}"]

    first_position = len(state.movies) - len(result.movies) + 1
    lines = [
        format_movie_line(position, movie, image_base_url)
        for position, movie in enumerate(result.movies, start=first_position)
    ]
    return chunk_lines([header, "", *lines])


def render_trending(entries: Sequence[TrendingEntry]) -> str:
    if not entries:
        return "Nothing is trending yet. Search for a movie to get things started."
    lines = ["Trending searches"]
    for entry in entries:
        label = entry.term
        if entry.title and entry.title.casefold() != entry.term:
            label = f"{label} → {entry.title}"
        searches = "search" if entry.hit_count == 1 else "searches"
        line = f"{entry.rank}. {label} ({entry.hit_count} {searches})"
        if entry.poster_url:
            line = f"{line}\n   {entry.poster_url}"
        lines.append(line)
    return "\n".join(lines)


def chunk_lines(lines: Iterable[str], limit: int = TELEGRAM_MESSAGE_LIMIT) -> list[str]:
    """Pack lines into messages no longer than ``limit`` characters."""

    chunks: list[str] = []
    buffer: list[str] = []
    size = 0
    for line in lines:
        if len(line) > limit:
            line = f"{line[: limit - 1]}…"
        added = len(line) + (1 if buffer else 0)
        if buffer and size + added > limit:
            chunks.append("\n".join(buffer))
            buffer, size = [], 0
            added = len(line)
        buffer.append(line)
        size += added
    if buffer:
        chunks.append("\n".join(buffer))
    return chunks


def load_more_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[[InlineKeyboardButton(text="Load more", callback_data=LOAD_MORE_CALLBACK)]]
    )


async def publish_result(
    bot: Bot,
    chat_id: int,
    result: LoadResult,
    state: ControllerState,
    *,
    image_base_url: str,
) -> None:
    chunks = render_result(result, state, image_base_url)
    # A failed "load more" keeps the previous page, so the button doubles as retry.
    more = state.page < state.total_pages
    for index, chunk in enumerate(chunks):
        is_last = index == len(chunks) - 1
        markup = load_more_keyboard() if is_last and more else None
        await bot_send_with_retry(
            bot,
            chat_id=chat_id,
            text=chunk,
            parse_mode=None,
            reply_markup=markup,
        )


__all__ = [
    "LOAD_MORE_CALLBACK",
    "chunk_lines",
    "format_movie_line",
    "load_more_keyboard",
    "publish_result",
    "render_result",
    "render_trending",
    "result_header",
]
