"""Application entrypoint."""

from __future__ import annotations

import asyncio

import httpx
from aiogram import Bot, Dispatcher
from aiogram.client.session.aiohttp import AiohttpSession

from moviefinder.bot.middlewares import BrowseSessionMiddleware
from moviefinder.bot.routers import setup_routers
from moviefinder.config import get_settings
from moviefinder.db.session import Database
from moviefinder.logging import configure_logging, logger
from moviefinder.services.analytics import SearchAnalyticsStore
from moviefinder.services.browse import BrowseSessionRegistry
from moviefinder.services.catalog import MovieCatalogClient
from moviefinder.services.error_monitor import ErrorMonitor


async def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)

    session = (
        AiohttpSession(proxy=settings.telegram_proxy) if settings.telegram_proxy else None
    )
    bot = Bot(token=settings.telegram_token.get_secret_value(), session=session)
    dp = Dispatcher()
    dp.include_router(setup_routers())
    dp.errors.register(ErrorMonitor(settings=settings))

    database = Database(settings=settings.database)
    await database.create_schema()

    image_base_url = str(settings.catalog.image_base_url)
    http_client = httpx.AsyncClient()
    catalog = MovieCatalogClient(http_client, settings=settings.catalog)
    analytics = SearchAnalyticsStore(database, image_base_url=image_base_url)
    registry = BrowseSessionRegistry(
        catalog,
        analytics,
        browse_settings=settings.browse,
        catalog_settings=settings.catalog,
    )

    browse_middleware = BrowseSessionMiddleware(registry, image_base_url=image_base_url)
    dp.message.middleware(browse_middleware)
    dp.callback_query.middleware(browse_middleware)

    logger.info("bot_starting", environment=settings.environment)
    try:
        await dp.start_polling(
            bot,
            analytics=analytics,
            trending_limit=settings.browse.trending_limit,
        )
    finally:
        await registry.close()
        await http_client.aclose()
        await database.dispose()
        logger.info("bot_stopped")


if __name__ == "__main__":
    asyncio.run(main())
