"""Paginated fetch/merge controller behind the result list."""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass, field, replace
from typing import Iterable, Protocol

from moviefinder.config import DEFAULT_ALLOWED_GENRES
from moviefinder.domain.models import Movie, ResultPage
from moviefinder.logging import logger
from moviefinder.services.exceptions import (
    ApplicationFailure,
    ControllerBusy,
    FetchFailure,
    PageOutOfRange,
)

TRANSPORT_ERROR_MESSAGE = "Failed to fetch movies. Please try again later."
APPLICATION_ERROR_MESSAGE = "Failed to fetch movies"


class Catalog(Protocol):
    async def discover(self, page: int) -> ResultPage: ...

    async def search(self, term: str, page: int) -> ResultPage: ...


class SearchRecorder(Protocol):
    async def record_search(self, term: str, sample: Movie) -> object: ...


class Phase(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class ControllerState:
    term: str | None = None
    debounced_term: str | None = None
    page: int = 0
    total_pages: int = 0
    is_loading: bool = False
    error_message: str | None = None
    movies: tuple[Movie, ...] = ()


@dataclass(slots=True)
class LoadResult:
    term: str
    page: int
    total_pages: int
    movies: tuple[Movie, ...] = ()
    replaced: bool = False
    error: str | None = None
    stale: bool = False

    @property
    def has_more(self) -> bool:
        return self.error is None and not self.stale and self.page < self.total_pages


@dataclass(eq=False, slots=True)
class _Request:
    generation: int
    term: str
    page: int


def is_admissible(movie: Movie, allowed_genre_ids: Iterable[int] = DEFAULT_ALLOWED_GENRES) -> bool:
    if movie.is_adult:
        return False
    return not frozenset(allowed_genre_ids).isdisjoint(movie.genre_ids)


def filter_admissible(
    movies: Iterable[Movie], allowed_genre_ids: Iterable[int] = DEFAULT_ALLOWED_GENRES
) -> list[Movie]:
    allowed = frozenset(allowed_genre_ids)
    return [movie for movie in movies if is_admissible(movie, allowed)]


class FetchController:
    """Owns pagination state for one browsing session.

    ``load_page(term, 1)`` starts a new generation; any request issued for an
    older generation is discarded when it returns. At most one request per
    generation is in flight, and only that request releases the loading flag.
    """

    def __init__(
        self,
        catalog: Catalog,
        analytics: SearchRecorder | None = None,
        *,
        allowed_genre_ids: Iterable[int] = DEFAULT_ALLOWED_GENRES,
    ) -> None:
        self._catalog = catalog
        self._analytics = analytics
        self._allowed = frozenset(allowed_genre_ids)
        self._state = ControllerState()
        self._generation = 0
        self._in_flight: _Request | None = None
        self._background: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def phase(self) -> Phase:
        if self._in_flight is not None:
            return Phase.LOADING
        if self._state.error_message:
            return Phase.ERROR
        return Phase.IDLE

    @property
    def can_load_more(self) -> bool:
        return (
            self._state.term is not None
            and self._in_flight is None
            and self._state.page < self._state.total_pages
        )

    async def settle(self, term: str) -> LoadResult:
        """Apply a settled search term: full reset to page 1."""

        self._state = replace(self._state, debounced_term=term)
        return await self.load_page(term, 1)

    async def load_more(self) -> LoadResult | None:
        """Near-bottom signal: fetch the next page when one exists."""

        if not self.can_load_more:
            return None
        assert self._state.term is not None
        return await self.load_page(self._state.term, self._state.page + 1)

    async def load_page(self, term: str, page: int) -> LoadResult:
        if page < 1:
            raise ValueError("page must be >= 1")

        if page == 1:
            self._generation += 1
        else:
            if term != self._state.term:
                raise PageOutOfRange(f"page {page} requested before page 1 of {term!r}")
            if self._in_flight is not None:
                raise ControllerBusy("a request is already in flight")
            if page > self._state.total_pages:
                raise PageOutOfRange(
                    f"page {page} exceeds total pages {self._state.total_pages}"
                )

        request = _Request(generation=self._generation, term=term, page=page)
        self._in_flight = request
        self._state = replace(self._state, is_loading=True, error_message=None)

        try:
            return await self._run(request)
        finally:
            if self._in_flight is request:
                self._in_flight = None
                self._state = replace(self._state, is_loading=False)

    async def drain(self) -> None:
        """Wait for outstanding analytics tasks."""

        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def _run(self, request: _Request) -> LoadResult:
        term, page = request.term, request.page
        try:
            if term:
                result = await self._catalog.search(term, page)
            else:
                result = await self._catalog.discover(page)
        except FetchFailure as exc:
            if self._is_stale(request):
                return self._discard(request)
            logger.error("movie_fetch_failed", term=term, page=page, error=str(exc))
            if page == 1:
                # Shown results belong to the previous term; nothing of this one is pageable yet.
                self._state = replace(
                    self._state,
                    term=term,
                    page=0,
                    total_pages=0,
                    error_message=TRANSPORT_ERROR_MESSAGE,
                )
            else:
                self._state = replace(self._state, error_message=TRANSPORT_ERROR_MESSAGE)
            return LoadResult(
                term=term,
                page=self._state.page,
                total_pages=self._state.total_pages,
                error=TRANSPORT_ERROR_MESSAGE,
            )
        except ApplicationFailure as exc:
            if self._is_stale(request):
                return self._discard(request)
            message = exc.message or APPLICATION_ERROR_MESSAGE
            logger.warning("movie_fetch_rejected", term=term, page=page, error=message)
            self._state = replace(
                self._state,
                term=term,
                page=0,
                total_pages=0,
                movies=(),
                error_message=message,
            )
            return LoadResult(term=term, page=0, total_pages=0, replaced=True, error=message)

        if self._is_stale(request):
            return self._discard(request)

        admissible = tuple(filter_admissible(result.items, self._allowed))
        replaced = page == 1
        movies = admissible if replaced else self._state.movies + admissible
        self._state = replace(
            self._state,
            term=term,
            page=result.page,
            total_pages=result.total_pages,
            movies=movies,
        )
        logger.info(
            "movie_page_loaded",
            term=term,
            page=result.page,
            total_pages=result.total_pages,
            received=len(result.items),
            admitted=len(admissible),
        )

        if term and result.items:
            self._dispatch_analytics(term, result.items[0])

        return LoadResult(
            term=term,
            page=result.page,
            total_pages=result.total_pages,
            movies=admissible,
            replaced=replaced,
        )

    def _is_stale(self, request: _Request) -> bool:
        return request.generation != self._generation

    def _discard(self, request: _Request) -> LoadResult:
        logger.info(
            "stale_response_discarded",
            term=request.term,
            page=request.page,
            generation=request.generation,
            current_generation=self._generation,
        )
        return LoadResult(
            term=request.term,
            page=request.page,
            total_pages=self._state.total_pages,
            stale=True,
        )

    def _dispatch_analytics(self, term: str, sample: Movie) -> None:
        if self._analytics is None:
            return
        task = asyncio.create_task(self._record_search(term, sample))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _record_search(self, term: str, sample: Movie) -> None:
        assert self._analytics is not None
        try:
            await self._analytics.record_search(term, sample)
        except Exception as exc:
            logger.warning("search_analytics_failed", term=term, error=str(exc), exc_info=True)


__all__ = [
    "APPLICATION_ERROR_MESSAGE",
    "ControllerState",
    "FetchController",
    "LoadResult",
    "Phase",
    "TRANSPORT_ERROR_MESSAGE",
    "filter_admissible",
    "is_admissible",
]
