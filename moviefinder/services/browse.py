"""Per-chat browsing sessions: one debouncer and one fetch controller each."""

from __future__ import annotations

import time
from collections import OrderedDict
from typing import Awaitable, Callable

from moviefinder.config import BrowseSettings, CatalogSettings
from moviefinder.logging import logger
from moviefinder.services.debounce import Debouncer
from moviefinder.services.fetch_controller import (
    Catalog,
    ControllerState,
    FetchController,
    LoadResult,
    SearchRecorder,
)

Presenter = Callable[[LoadResult, ControllerState], Awaitable[None]]


class BrowseSession:
    def __init__(
        self,
        chat_id: int,
        controller: FetchController,
        *,
        presenter: Presenter,
        debounce_seconds: float = 0.5,
    ) -> None:
        self.chat_id = chat_id
        self.controller = controller
        self.presenter = presenter
        self.debouncer: Debouncer[str] = Debouncer(
            self._on_settled,
            delay=debounce_seconds,
            name=f"search-input-{chat_id}",
        )

    def submit(self, text: str) -> None:
        self.debouncer.push((text or "").strip())

    async def show_popular(self) -> LoadResult:
        self.debouncer.cancel()
        return await self._settle("")

    async def load_more(self) -> LoadResult | None:
        result = await self.controller.load_more()
        if result is None:
            return None
        await self._present(result)
        return result

    @property
    def busy(self) -> bool:
        """True while input is pending, being emitted or a page is loading."""

        return (
            self.debouncer.pending
            or self.debouncer.emitting
            or self.controller.state.is_loading
        )

    async def close(self) -> None:
        await self.debouncer.aclose()
        await self.controller.drain()

    async def _on_settled(self, term: str) -> None:
        await self._settle(term)

    async def _settle(self, term: str) -> LoadResult:
        logger.info("search_term_settled", chat_id=self.chat_id, term=term)
        result = await self.controller.settle(term)
        await self._present(result)
        return result

    async def _present(self, result: LoadResult) -> None:
        if result.stale:
            return
        await self.presenter(result, self.controller.state)


class BrowseSessionRegistry:
    """Lazily creates one :class:`BrowseSession` per chat.

    Sessions idle for longer than ``session_idle_seconds`` are closed and
    dropped on the next lookup, and the least recently used ones go once
    more than ``max_sessions`` are open. Busy sessions are never evicted.
    """

    def __init__(
        self,
        catalog: Catalog,
        analytics: SearchRecorder | None,
        *,
        browse_settings: BrowseSettings | None = None,
        catalog_settings: CatalogSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._catalog = catalog
        self._clock = clock
        self._analytics = analytics
        self._browse = browse_settings or BrowseSettings()
        self._allowed = (catalog_settings or CatalogSettings()).allowed_genre_ids
        self._sessions: OrderedDict[int, BrowseSession] = OrderedDict()
        self._last_used: dict[int, float] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, chat_id: object) -> bool:
        return chat_id in self._sessions

    async def get(self, chat_id: int, presenter: Presenter) -> BrowseSession:
        now = self._clock()
        session = self._sessions.get(chat_id)
        if session is None:
            controller = FetchController(
                self._catalog,
                self._analytics,
                allowed_genre_ids=self._allowed,
            )
            session = BrowseSession(
                chat_id,
                controller,
                presenter=presenter,
                debounce_seconds=self._browse.debounce_seconds,
            )
            self._sessions[chat_id] = session
            logger.info("browse_session_created", chat_id=chat_id)
        else:
            session.presenter = presenter
            self._sessions.move_to_end(chat_id)
        self._last_used[chat_id] = now
        await self._evict(now, keep=chat_id)
        return session

    async def close(self) -> None:
        for session in list(self._sessions.values()):
            await session.close()
        self._sessions.clear()
        self._last_used.clear()

    async def _evict(self, now: float, *, keep: int) -> None:
        idle_after = self._browse.session_idle_seconds
        expired = [
            chat_id
            for chat_id, session in self._sessions.items()
            if chat_id != keep
            and not session.busy
            and now - self._last_used[chat_id] > idle_after
        ]
        for chat_id in expired:
            await self._drop(chat_id, reason="idle")

        # Oldest first: the OrderedDict is kept in last-use order.
        overflow = len(self._sessions) - self._browse.max_sessions
        if overflow <= 0:
            return
        candidates = [
            chat_id
            for chat_id, session in self._sessions.items()
            if chat_id != keep and not session.busy
        ]
        for chat_id in candidates[:overflow]:
            await self._drop(chat_id, reason="capacity")

    async def _drop(self, chat_id: int, *, reason: str) -> None:
        session = self._sessions.pop(chat_id)
        self._last_used.pop(chat_id, None)
        logger.info("browse_session_evicted", chat_id=chat_id, reason=reason)
        await session.close()


__all__ = ["BrowseSession", "BrowseSessionRegistry", "Presenter"]
