"""Pydantic models shared across service/bot layers."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Movie(BaseModel):
    """A catalog entry. Fields TMDB sends beyond these are kept as extras."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: int
    title: str = ""
    poster_path: str | None = None
    genre_ids: list[int] = Field(default_factory=list)
    is_adult: bool = Field(default=False, alias="adult")
    release_date: str | None = None
    vote_average: float | None = None
    original_language: str | None = None
    overview: str | None = None

    def poster_url(self, image_base_url: str) -> str | None:
        if not self.poster_path:
            return None
        return f"{image_base_url.rstrip('/')}/{self.poster_path.lstrip('/')}"

    @property
    def year(self) -> str | None:
        if not self.release_date:
            return None
        return self.release_date.split("-", 1)[0] or None


class ResultPage(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    items: list[Movie] = Field(default_factory=list, alias="results")
    page: int = Field(default=1, ge=1)
    total_pages: int = Field(default=1, ge=0)
    total_results: int = Field(default=0, ge=0)


class TrendingEntry(BaseModel):
    term: str
    hit_count: int
    poster_url: str | None = None
    title: str | None = None
    movie_id: int | None = None
    rank: int = 0


__all__ = [
    "Movie",
    "ResultPage",
    "TrendingEntry",
]
