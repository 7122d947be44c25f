from __future__ import annotations

import asyncio
import logging
from contextlib import suppress

from fastapi import FastAPI

from app.core.config import settings
from app.db.session import SessionLocal
from app.services import coupons as coupons_service

logger = logging.getLogger(__name__)


async def _run_once() -> int:
    async with SessionLocal() as session:
        return await coupons_service.sweep_expired(session)


async def _loop(stop: asyncio.Event) -> None:
    interval = max(30, int(settings.coupon_expiry_sweep_interval_seconds or 3600))
    while not stop.is_set():
        try:
            await _run_once()
        except asyncio.CancelledError:
            break
        except Exception as exc:
            logger.warning("coupon_expiration_scheduler_failed", extra={"error": str(exc)})

        with suppress(asyncio.TimeoutError):
            await asyncio.wait_for(stop.wait(), timeout=interval)


def start(app: FastAPI) -> None:
    if not settings.coupon_expiry_sweep_enabled:
        return
    if getattr(app.state, "coupon_expiration_scheduler_task", None) is not None:
        return

    stop_event = asyncio.Event()
    app.state.coupon_expiration_scheduler_stop = stop_event
    app.state.coupon_expiration_scheduler_task = asyncio.create_task(_loop(stop_event))


async def stop(app: FastAPI) -> None:
    stop_event = getattr(app.state, "coupon_expiration_scheduler_stop", None)
    task = getattr(app.state, "coupon_expiration_scheduler_task", None)
    if stop_event:
        stop_event.set()
    if task:
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
    app.state.coupon_expiration_scheduler_stop = None
    app.state.coupon_expiration_scheduler_task = None
