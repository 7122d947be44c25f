import asyncio
from datetime import timedelta

import pytest
from fastapi import FastAPI

from app.models.coupon import Coupon, CouponStatus
from app.services import coupon_expiration_scheduler as scheduler
from factories import create_coupon, create_fundraiser, utcnow


@pytest.mark.anyio
async def test_run_once_sweeps_with_app_sessions(session_factory, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(scheduler, "SessionLocal", session_factory)
    async with session_factory() as session:
        fundraiser = await create_fundraiser(session)
        coupon = await create_coupon(
            session, fundraiser_id=fundraiser.id, amount="5", expires_at=utcnow() - timedelta(seconds=5)
        )

    assert await scheduler._run_once() == 1
    async with session_factory() as session:
        assert (await session.get(Coupon, coupon.id)).status == CouponStatus.expired


@pytest.mark.anyio
async def test_start_is_noop_when_disabled(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(scheduler.settings, "coupon_expiry_sweep_enabled", False)
    app = FastAPI()
    scheduler.start(app)
    assert getattr(app.state, "coupon_expiration_scheduler_task", None) is None


@pytest.mark.anyio
async def test_loop_survives_failures_and_stops(monkeypatch: pytest.MonkeyPatch) -> None:
    runs: list[int] = []

    async def flaky_run_once() -> int:
        runs.append(1)
        if len(runs) == 1:
            raise RuntimeError("database unavailable")
        return 0

    monkeypatch.setattr(scheduler, "_run_once", flaky_run_once)
    monkeypatch.setattr(scheduler.settings, "coupon_expiry_sweep_enabled", True)
    app = FastAPI()
    scheduler.start(app)
    task = app.state.coupon_expiration_scheduler_task
    await asyncio.sleep(0.05)
    await scheduler.stop(app)

    assert task.done()
    assert len(runs) >= 1
    assert app.state.coupon_expiration_scheduler_task is None
