from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

import cache
from cache.memory import MemoryCache
from handlers import router as handlers_router

ENV_VARS = [
    "ENABLE_REDIS",
    "ENABLE_REPLICA_QUERY",
    "FILES_PATH",
    "ICG_BOT_ROOT",
    "ICG_BOT_ERR_LOG",
    "REQUEST_TIMEOUT_S",
    "REDIS_KEY_PREFIX",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def memory_cache():
    backend = MemoryCache()
    cache.set_backend(backend)
    yield backend
    cache.set_backend(None)


@pytest.fixture(autouse=True)
def reset_handlers():
    yield
    for registry in (
        handlers_router.api_handlers,
        handlers_router.shortcut_handlers,
        handlers_router.reviewer_handlers,
    ):
        registry._handlers.clear()
        registry._loading.clear()


@pytest.fixture
def make_client(monkeypatch):
    """
    Build a fresh app after applying `env`; routes depending on settings
    (files, ICG-BOT) are decided at app creation.
    """
    import main

    def _make(**env: str) -> TestClient:
        for name, value in env.items():
            monkeypatch.setenv(name, value)
        return TestClient(main.create_app(), follow_redirects=False)

    return _make


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()
