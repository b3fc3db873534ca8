"""TMDB catalog client: popular listing and free-text search by page."""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import ValidationError

from moviefinder.config import CatalogSettings
from moviefinder.domain.models import ResultPage
from moviefinder.logging import logger
from moviefinder.services.exceptions import ApplicationFailure, FetchFailure


class MovieCatalogClient:
    """Read-only access to the movie catalog.

    Transport problems raise :class:`FetchFailure`; a payload that carries a
    failure sentinel raises :class:`ApplicationFailure`. Nothing is retried.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: CatalogSettings | None = None,
    ) -> None:
        self._client = http_client
        self._settings = settings or CatalogSettings()

    async def discover(self, page: int = 1) -> ResultPage:
        params = {"sort_by": self._settings.discover_sort_by, "page": page}
        return await self._fetch_page("/discover/movie", params)

    async def search(self, term: str, page: int = 1) -> ResultPage:
        params = {"query": term, "page": page}
        return await self._fetch_page("/search/movie", params)

    async def _fetch_page(self, path: str, params: dict[str, Any]) -> ResultPage:
        url = f"{str(self._settings.base_url).rstrip('/')}{path}"
        try:
            response = await self._client.get(
                url,
                params=params,
                headers=self._headers(),
                timeout=self._settings.request_timeout_seconds,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text[:500]
            raise FetchFailure(
                f"Catalog request failed ({exc.response.status_code}): {detail}"
            ) from exc
        except httpx.RequestError as exc:
            raise FetchFailure(f"Catalog request failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise FetchFailure("Catalog returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise FetchFailure("Catalog returned an unexpected payload")

        failure = _failure_message(data)
        if failure is not None:
            raise ApplicationFailure(failure or None)

        try:
            result = ResultPage.model_validate(data)
        except ValidationError as exc:
            raise FetchFailure(f"Catalog payload is malformed: {exc}") from exc

        logger.debug(
            "catalog_page_fetched",
            path=path,
            page=result.page,
            total_pages=result.total_pages,
            items=len(result.items),
        )
        return result

    def _headers(self) -> dict[str, str]:
        api_key = self._settings.api_key
        if api_key is None:
            raise FetchFailure("TMDB API key is not configured.")
        return {
            "Authorization": f"Bearer {api_key.get_secret_value()}",
            "accept": "application/json",
        }


def _failure_message(data: dict[str, Any]) -> str | None:
    """Return the sentinel message ("" when absent) or None for a clean payload."""

    if data.get("response") == "False":
        return str(data.get("error") or "")
    if data.get("success") is False:
        return str(data.get("status_message") or "")
    return None


__all__ = ["MovieCatalogClient"]
