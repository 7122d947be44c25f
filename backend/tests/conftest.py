import asyncio
import os
from collections.abc import AsyncIterator, Generator

import pytest
from sqlalchemy.ext import asyncio as sa_asyncio

# Keep pytest output high-signal by disabling outbound Sentry capture in tests.
os.environ["SENTRY_DSN"] = ""

from app.core import metrics
from app.db.base import Base
from app.main import app


_TRACKED_ENGINES: list[sa_asyncio.AsyncEngine] = []
_ORIGINAL_CREATE_ASYNC_ENGINE = sa_asyncio.create_async_engine


def _tracked_create_async_engine(*args, **kwargs):  # type: ignore[no-untyped-def]
    engine = _ORIGINAL_CREATE_ASYNC_ENGINE(*args, **kwargs)
    _TRACKED_ENGINES.append(engine)
    return engine


sa_asyncio.create_async_engine = _tracked_create_async_engine  # type: ignore[assignment]


@pytest.fixture(scope="module")
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def session_factory() -> AsyncIterator[sa_asyncio.async_sessionmaker]:
    engine = sa_asyncio.create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield sa_asyncio.async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def file_session_factory(tmp_path) -> AsyncIterator[sa_asyncio.async_sessionmaker]:
    # Separate connections per session, so two sessions can interleave like concurrent requests.
    engine = sa_asyncio.create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'prize_draws.db'}", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield sa_asyncio.async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture(autouse=True)
def _reset_metrics_and_overrides() -> Generator[None, None, None]:
    metrics.reset()
    yield
    metrics.reset()
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def _dispose_tracked_async_engines() -> Generator[None, None, None]:
    start_index = len(_TRACKED_ENGINES)
    yield
    pending = _TRACKED_ENGINES[start_index:]
    if not pending:
        return

    async def _dispose_all() -> None:
        for engine in pending:
            try:
                await engine.dispose()
            except Exception:
                continue

    try:
        asyncio.run(_dispose_all())
    except RuntimeError:
        loop = asyncio.new_event_loop()
        try:
            loop.run_until_complete(_dispose_all())
        finally:
            loop.close()

    del _TRACKED_ENGINES[start_index:]
