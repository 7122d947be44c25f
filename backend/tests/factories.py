"""Seed helpers shared by the service and API tests."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.security import create_access_token
from app.db.base import Base
from app.db.session import get_session
from app.main import app
from app.models.coupon import Coupon, CouponStatus
from app.models.donation import Donation, DonationPaymentStatus
from app.models.fundraiser import Fundraiser
from app.models.user import User, UserRole


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def naive(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; compare everything as naive UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def make_test_client() -> tuple[TestClient, async_sessionmaker]:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    SessionLocal = async_sessionmaker(engine, expire_on_commit=False)

    async def init_models() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(init_models())

    async def override_get_session():
        async with SessionLocal() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    return TestClient(app), SessionLocal


async def create_user(
    session: AsyncSession, *, email: str, role: UserRole = UserRole.donor, name: str | None = "Test User"
) -> User:
    user = User(email=email, hashed_password="not-a-real-hash", name=name, role=role)
    session.add(user)
    await session.commit()
    return user


async def create_fundraiser(session: AsyncSession, *, title: str = "Clean Water", slug: str | None = None) -> Fundraiser:
    fundraiser = Fundraiser(title=title, slug=slug or f"fr-{uuid4().hex[:10]}", goal_amount=Decimal("1000.00"))
    session.add(fundraiser)
    await session.commit()
    return fundraiser


async def create_donation(
    session: AsyncSession,
    *,
    fundraiser_id: UUID,
    amount: Decimal | str,
    donor_id: UUID | None = None,
    donor_email: str | None = "donor@example.com",
    donor_name: str | None = "Dana Donor",
    payment_status: DonationPaymentStatus = DonationPaymentStatus.completed,
    currency: str | None = "EUR",
) -> Donation:
    donation = Donation(
        fundraiser_id=fundraiser_id,
        donor_id=donor_id,
        donor_email=donor_email,
        donor_name=donor_name,
        amount=Decimal(str(amount)),
        tip_amount=Decimal("0.00"),
        currency=currency,
        payment_status=payment_status,
    )
    session.add(donation)
    await session.commit()
    return donation


async def create_coupon(
    session: AsyncSession,
    *,
    fundraiser_id: UUID,
    amount: Decimal | str,
    code: str | None = None,
    status: CouponStatus = CouponStatus.active,
    expires_at: datetime | None = None,
    created_at: datetime | None = None,
    user_id: UUID | None = None,
    donor_email: str | None = None,
    donor_name: str = "Dana Donor",
) -> Coupon:
    donation = await create_donation(
        session, fundraiser_id=fundraiser_id, amount=amount, donor_id=user_id, donor_email=donor_email
    )
    coupon = Coupon(
        code=code or f"FU-{uuid4().hex[:8].upper()}",
        donation_id=donation.id,
        fundraiser_id=fundraiser_id,
        user_id=user_id,
        donor_email=donor_email or f"{uuid4().hex[:8]}@example.com",
        donor_name=donor_name,
        donation_amount=Decimal(str(amount)),
        currency="EUR",
        status=status,
        expires_at=expires_at or utcnow() + timedelta(days=365),
    )
    if created_at is not None:
        coupon.created_at = created_at
    session.add(coupon)
    await session.commit()
    return coupon


def seed(session_factory: async_sessionmaker, coro_fn, /, **kwargs):
    """Run one async factory against a fresh session from synchronous test code."""

    async def _run():
        async with session_factory() as session:
            return await coro_fn(session, **kwargs)

    return asyncio.run(_run())


def admin_token(session_factory: async_sessionmaker, *, email: str = "admin@example.com") -> tuple[str, UUID]:
    user = seed(session_factory, create_user, email=email, role=UserRole.admin, name="Admin")
    return create_access_token(str(user.id), role=user.role.value), user.id


def donor_token(session_factory: async_sessionmaker, *, email: str = "donor-user@example.com") -> tuple[str, UUID]:
    user = seed(session_factory, create_user, email=email, role=UserRole.donor)
    return create_access_token(str(user.id), role=user.role.value), user.id
