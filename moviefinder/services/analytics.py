"""Search popularity counters backing the trending panel."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from moviefinder.db.base import utc_now
from moviefinder.db.models.core import SearchMetric
from moviefinder.db.session import Database
from moviefinder.domain.models import Movie, TrendingEntry
from moviefinder.logging import logger
from moviefinder.services.exceptions import AnalyticsFailure


def normalize_term(term: str) -> str:
    return " ".join((term or "").split()).casefold()


class SearchAnalyticsStore:
    """Per-term hit counters stored in ``search_metrics``.

    Each call runs in its own session so that recording a search never
    shares a transaction with the caller.
    """

    def __init__(self, database: Database, *, image_base_url: str) -> None:
        self._database = database
        self._image_base_url = image_base_url

    async def record_search(self, term: str, sample: Movie) -> TrendingEntry:
        normalized = normalize_term(term)
        if not normalized:
            raise AnalyticsFailure("Search term must not be empty.")

        try:
            try:
                return await self._increment(normalized, sample)
            except IntegrityError:
                # Another writer inserted the term first; its row is now lockable.
                logger.info("search_metric_insert_conflict", term=normalized)
                return await self._increment(normalized, sample)
        except SQLAlchemyError as exc:
            raise AnalyticsFailure(f"Failed to record search for {normalized!r}: {exc}") from exc

    async def _increment(self, normalized: str, sample: Movie) -> TrendingEntry:
        async with self._database.session() as session:
            stmt = (
                select(SearchMetric)
                .where(SearchMetric.search_term == normalized)
                .with_for_update()
            )
            result = await session.execute(stmt)
            metric = result.scalar_one_or_none()
            if metric is None:
                metric = SearchMetric(search_term=normalized, count=0)
                session.add(metric)

            metric.count += 1
            metric.movie_id = sample.id
            metric.title = sample.title or None
            metric.poster_url = sample.poster_url(self._image_base_url)
            metric.updated_at = utc_now()
            await session.flush()
            entry = _to_entry(metric)
            await session.commit()
        return entry

    async def list_top_trending(self, limit: int = 5) -> list[TrendingEntry]:
        if limit < 1:
            return []
        stmt = (
            select(SearchMetric)
            .order_by(
                SearchMetric.count.desc(),
                SearchMetric.updated_at.desc(),
                SearchMetric.id.asc(),
            )
            .limit(limit)
        )
        try:
            async with self._database.session() as session:
                result = await session.execute(stmt)
                metrics = list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise AnalyticsFailure(f"Failed to read trending searches: {exc}") from exc
        return [_to_entry(metric, rank=index) for index, metric in enumerate(metrics, start=1)]


def _to_entry(metric: SearchMetric, *, rank: int = 0) -> TrendingEntry:
    return TrendingEntry(
        term=metric.search_term,
        hit_count=metric.count,
        poster_url=metric.poster_url,
        title=metric.title,
        movie_id=metric.movie_id,
        rank=rank,
    )


__all__ = ["SearchAnalyticsStore", "normalize_term"]
