"""Tests for logging configuration, settings and async main bootstrap."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
import structlog
from pydantic import SecretStr

from moviefinder import main as main_module
from moviefinder.config import (
    DEFAULT_ALLOWED_GENRES,
    BrowseSettings,
    CatalogSettings,
    DatabaseSettings,
    MovieFinderSettings,
)
from moviefinder.logging import configure_logging


def test_configure_logging_outputs_json(capsys):
    configure_logging("DEBUG")
    logger = structlog.get_logger()
    logger.info("unit-test", foo="bar")
    out = capsys.readouterr().out
    assert "unit-test" in out
    assert "foo" in out


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("MOVIEFINDER_TELEGRAM_TOKEN", "token")
    monkeypatch.setenv("MOVIEFINDER_CATALOG__API_KEY", "tmdb-key")
    monkeypatch.setenv("MOVIEFINDER_BROWSE__TRENDING_LIMIT", "7")

    settings = MovieFinderSettings(_env_file=None)

    assert settings.telegram_token.get_secret_value() == "token"
    assert settings.catalog.api_key.get_secret_value() == "tmdb-key"
    assert settings.browse.trending_limit == 7
    assert settings.browse.debounce_seconds == 0.5
    assert settings.catalog.allowed_genre_ids == DEFAULT_ALLOWED_GENRES


def test_blank_catalog_key_is_treated_as_missing():
    assert CatalogSettings(api_key="  ").api_key is None


class DummyDispatcher:
    def __init__(self) -> None:
        self.included = []
        self.message_middlewares = []
        self.callback_middlewares = []
        self.registered_error_handlers = []
        self.message = SimpleNamespace(middleware=self.message_middlewares.append)
        self.callback_query = SimpleNamespace(middleware=self.callback_middlewares.append)
        self.errors = SimpleNamespace(register=self.registered_error_handlers.append)
        self.started = False

    def include_router(self, router):
        self.included.append(router)

    async def start_polling(self, bot, **kwargs):
        self.started = True
        self.start_kwargs = kwargs


class DummyDatabase:
    def __init__(self, settings) -> None:
        self.settings = settings
        self.schema_created = False
        self.disposed = False

    async def create_schema(self):
        self.schema_created = True

    async def dispose(self):
        self.disposed = True


class DummyRegistry:
    instances: list["DummyRegistry"] = []

    def __init__(self, catalog, analytics, **kwargs) -> None:
        self.catalog = catalog
        self.analytics = analytics
        self.kwargs = kwargs
        self.closed = False
        DummyRegistry.instances.append(self)

    async def close(self):
        self.closed = True


@pytest.mark.asyncio
async def test_main_bootstrap(monkeypatch):
    settings = SimpleNamespace(
        log_level="INFO",
        telegram_proxy=None,
        telegram_token=SecretStr("token"),
        environment="test",
        admin_telegram_id=None,
        catalog=CatalogSettings(api_key=SecretStr("key")),
        database=DatabaseSettings(dsn="sqlite+aiosqlite://"),
        browse=BrowseSettings(trending_limit=4),
    )
    dispatcher = DummyDispatcher()
    database = DummyDatabase(settings.database)
    monitor = object()

    monkeypatch.setattr(main_module, "configure_logging", lambda level: None)
    monkeypatch.setattr(main_module, "get_settings", lambda: settings)
    monkeypatch.setattr(main_module, "Bot", lambda *args, **kwargs: SimpleNamespace())
    monkeypatch.setattr(main_module, "Dispatcher", lambda: dispatcher)
    monkeypatch.setattr(main_module, "Database", lambda settings: database)
    monkeypatch.setattr(main_module, "BrowseSessionRegistry", DummyRegistry)
    monkeypatch.setattr(main_module, "ErrorMonitor", lambda settings: monitor)
    monkeypatch.setattr(main_module, "setup_routers", lambda: "router")

    await main_module.main()

    registry = DummyRegistry.instances[-1]
    assert database.schema_created is True
    assert database.disposed is True
    assert dispatcher.started is True
    assert dispatcher.included == ["router"]
    assert dispatcher.registered_error_handlers == [monitor]
    assert len(dispatcher.message_middlewares) == 1
    assert dispatcher.message_middlewares == dispatcher.callback_middlewares
    assert dispatcher.start_kwargs["trending_limit"] == 4
    assert dispatcher.start_kwargs["analytics"] is registry.analytics
    assert registry.kwargs["browse_settings"] is settings.browse
    assert registry.closed is True
