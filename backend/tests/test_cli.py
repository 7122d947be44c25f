from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import select

from app import cli
from app.core.security import verify_password
from app.models.coupon import Coupon, CouponStatus
from app.models.user import User, UserRole
from factories import create_coupon, create_fundraiser, create_user, utcnow


@pytest.fixture
def cli_sessions(session_factory, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(cli, "SessionLocal", session_factory)
    return session_factory


@pytest.mark.anyio
async def test_sweep_coupons_command(cli_sessions, capsys: pytest.CaptureFixture[str]) -> None:
    async with cli_sessions() as session:
        fundraiser = await create_fundraiser(session)
        coupon = await create_coupon(
            session, fundraiser_id=fundraiser.id, amount="5", expires_at=utcnow() - timedelta(days=1)
        )

    assert await cli.sweep_coupons() == 1
    assert "Expired coupons: 1" in capsys.readouterr().out
    async with cli_sessions() as session:
        assert (await session.get(Coupon, coupon.id)).status == CouponStatus.expired


@pytest.mark.anyio
async def test_create_admin_creates_then_promotes(cli_sessions) -> None:
    created = await cli.create_admin(email="Boss@Example.com", password="s3cret-pass", name="Boss")
    assert created.email == "boss@example.com"
    assert created.role == UserRole.admin

    async with cli_sessions() as session:
        await create_user(session, email="member@example.com")

    promoted = await cli.create_admin(email="member@example.com", password="another-pass")
    async with cli_sessions() as session:
        stored = (await session.execute(select(User).where(User.email == "member@example.com"))).scalar_one()
    assert promoted.id == stored.id
    assert stored.role == UserRole.admin
    assert verify_password("another-pass", stored.hashed_password)


@pytest.mark.anyio
async def test_create_admin_validates_inputs(cli_sessions) -> None:
    with pytest.raises(SystemExit):
        await cli.create_admin(email="not-an-email", password="long-enough")
    with pytest.raises(SystemExit):
        await cli.create_admin(email="ok@example.com", password="short")


def test_main_dispatches_commands(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: dict[str, object] = {}

    async def _fake_sweep() -> int:
        await asyncio.sleep(0)
        calls["sweep"] = True
        return 0

    async def _fake_create_admin(**kwargs: object) -> None:
        await asyncio.sleep(0)
        calls["admin"] = kwargs

    monkeypatch.setattr(cli, "sweep_coupons", _fake_sweep)
    monkeypatch.setattr(cli, "create_admin", _fake_create_admin)

    cli.main(["sweep-coupons"])
    cli.main(["create-admin", "--email", "a@example.com", "--password", "password1"])

    assert calls["sweep"] is True
    assert calls["admin"] == {"email": "a@example.com", "password": "password1", "name": None}


def test_main_prints_help_when_command_missing(capsys: pytest.CaptureFixture[str]) -> None:
    cli.main([])
    assert "sweep-coupons" in capsys.readouterr().out
