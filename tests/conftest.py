"""Fixtures de teste: store em memória com TTL controlável e Telegram gravador."""
from __future__ import annotations
import pytest
from kink import di

from telegram_relay.api.app import create_app
from telegram_relay.bot.router import Router
from telegram_relay.core.di import bootstrap_di
from telegram_relay.core.settings import Settings

from helpers import FakeClock, FakeTelegram, InMemoryStore


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> InMemoryStore:
    return InMemoryStore(clock)


@pytest.fixture
def telegram() -> FakeTelegram:
    return FakeTelegram()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, telegram_bot_token="123:test", log_level="WARNING")


@pytest.fixture
def container(settings, store, telegram):
    bootstrap_di(settings, store=store, telegram=telegram)
    return di


@pytest.fixture
def router(container) -> Router:
    return container[Router]


@pytest.fixture
def client(container):
    app = create_app()
    app.config.update(TESTING=True)
    return app.test_client()

