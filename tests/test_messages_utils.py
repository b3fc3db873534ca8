from __future__ import annotations

import pytest

from moviefinder.bot.utils.messages import (
    LOAD_MORE_CALLBACK,
    chunk_lines,
    format_movie_line,
    publish_result,
    render_result,
    render_trending,
)
from moviefinder.domain.models import Movie, TrendingEntry
from moviefinder.services.fetch_controller import ControllerState, LoadResult

IMAGE_BASE = "https://image.tmdb.org/t/p/w500"


def _movie(movie_id: int, title: str = "Heat") -> Movie:
    return Movie(
        id=movie_id,
        title=title,
        poster_path="/heat.jpg",
        genre_ids=[80],
        release_date="1995-12-15",
        vote_average=8.26,
        original_language="en",
    )


def test_format_movie_line_includes_details():
    line = format_movie_line(3, _movie(1), IMAGE_BASE)

    assert line.startswith("3. Heat (1995) · ★ 8.3 · EN")
    assert f"{IMAGE_BASE}/heat.jpg" in line


def test_render_result_numbers_appended_items_after_existing():
    existing = (_movie(1), _movie(2), _movie(3))
    state = ControllerState(term="heat", page=2, total_pages=3, movies=existing)
    result = LoadResult(term="heat", page=2, total_pages=3, movies=existing[2:], replaced=False)

    chunks = render_result(result, state, IMAGE_BASE)

    assert chunks[0].startswith("Page 2 of 3")
    assert "\n3. Heat" in chunks[0]


def test_render_result_headers_and_errors():
    state = ControllerState()
    popular = LoadResult(term="", page=1, total_pages=1, replaced=True)
    search = LoadResult(term="heat", page=1, total_pages=1, movies=(_movie(1),), replaced=True)
    failed = LoadResult(term="heat", page=0, total_pages=0, error="Invalid API key")

    assert render_result(popular, state, IMAGE_BASE) == ["Popular movies\n\nNo movies found."]
    assert render_result(search, ControllerState(movies=(_movie(1),)), IMAGE_BASE)[0].startswith(
        "Results for “heat”"
    )
    assert render_result(failed, state, IMAGE_BASE) == ["Invalid API key"]


def test_render_trending():
    entries = [
        TrendingEntry(term="batman", hit_count=3, poster_url="https://img/b.jpg", title="The Batman", rank=1),
        TrendingEntry(term="heat", hit_count=1, title="Heat", rank=2),
    ]

    text = render_trending(entries)

    assert text.splitlines()[0] == "Trending searches"
    assert "1. batman → The Batman (3 searches)" in text
    assert "2. heat (1 search)" in text
    assert "https://img/b.jpg" in text
    assert "Nothing is trending" in render_trending([])


def test_chunk_lines_respects_limit():
    lines = ["x" * 40 for _ in range(10)]

    chunks = chunk_lines(lines, limit=100)

    assert all(len(chunk) <= 100 for chunk in chunks)
    assert sum(chunk.count("x") for chunk in chunks) == 400


class DummyBot:
    def __init__(self) -> None:
        self.sent = []

    async def send_message(self, chat_id, text, **kwargs):
        self.sent.append({"chat_id": chat_id, "text": text, **kwargs})


@pytest.mark.asyncio
async def test_publish_result_attaches_load_more_when_pages_remain():
    bot = DummyBot()
    movies = (_movie(1),)
    state = ControllerState(term="heat", page=1, total_pages=2, movies=movies)
    result = LoadResult(term="heat", page=1, total_pages=2, movies=movies, replaced=True)

    await publish_result(bot, 42, result, state, image_base_url=IMAGE_BASE)

    assert len(bot.sent) == 1
    markup = bot.sent[0]["reply_markup"]
    assert markup.inline_keyboard[0][0].callback_data == LOAD_MORE_CALLBACK
    assert bot.sent[0]["chat_id"] == 42
    assert bot.sent[0]["parse_mode"] is None


@pytest.mark.asyncio
async def test_publish_result_without_more_pages():
    bot = DummyBot()
    movies = (_movie(1),)
    state = ControllerState(term="heat", page=2, total_pages=2, movies=movies)
    result = LoadResult(term="heat", page=2, total_pages=2, movies=movies)

    await publish_result(bot, 42, result, state, image_base_url=IMAGE_BASE)

    assert bot.sent[0]["reply_markup"] is None


@pytest.mark.asyncio
async def test_failed_load_more_offers_retry_button():
    bot = DummyBot()
    state = ControllerState(term="heat", page=1, total_pages=3, error_message="Failed")
    result = LoadResult(term="heat", page=1, total_pages=3, error="Failed")

    await publish_result(bot, 7, result, state, image_base_url=IMAGE_BASE)

    assert bot.sent[0]["text"] == "Failed"
    assert bot.sent[0]["reply_markup"] is not None
