import uuid
from decimal import Decimal

import pytest
from sqlalchemy import select

from app.core.errors import InvalidStateError, NotFoundError
from app.models.coupon import Coupon
from app.models.donation import Donation, DonationPaymentStatus
from app.models.fundraiser import Fundraiser
from app.services import donations as donations_service
from factories import create_donation, create_fundraiser, create_user


@pytest.mark.anyio
async def test_complete_donation_issues_one_coupon_and_updates_totals(session_factory) -> None:
    async with session_factory() as session:
        fundraiser = await create_fundraiser(session)
        donation = await create_donation(
            session,
            fundraiser_id=fundraiser.id,
            amount="30.00",
            payment_status=DonationPaymentStatus.pending,
        )
        first = await donations_service.complete_donation(session, donation_id=donation.id)
        again = await donations_service.complete_donation(session, donation_id=donation.id)

    assert first is not None and first.created is True
    assert again is not None and again.created is False
    assert again.code == first.code

    async with session_factory() as session:
        stored_donation = await session.get(Donation, donation.id)
        stored_fundraiser = await session.get(Fundraiser, fundraiser.id)
        coupons = (await session.execute(select(Coupon))).scalars().all()
    assert stored_donation.payment_status == DonationPaymentStatus.completed
    assert stored_donation.completed_at is not None
    assert stored_fundraiser.current_amount == Decimal("30.00")
    assert stored_fundraiser.donation_count == 1
    assert len(coupons) == 1
    assert coupons[0].donation_amount == Decimal("30.00")


@pytest.mark.anyio
async def test_complete_donation_falls_back_to_account_details(session_factory) -> None:
    async with session_factory() as session:
        user = await create_user(session, email="member@example.com", name="Mia Member")
        fundraiser = await create_fundraiser(session)
        donation = await create_donation(
            session,
            fundraiser_id=fundraiser.id,
            amount="12.00",
            donor_id=user.id,
            donor_email=None,
            donor_name=None,
        )
        issued = await donations_service.complete_donation(session, donation_id=donation.id)
        coupon = (await session.execute(select(Coupon))).scalar_one()

    assert issued.donor_email == "member@example.com"
    assert coupon.donor_name == "Mia Member"
    assert coupon.user_id == user.id


@pytest.mark.anyio
async def test_complete_donation_without_email_issues_nothing(session_factory) -> None:
    async with session_factory() as session:
        fundraiser = await create_fundraiser(session)
        donation = await create_donation(session, fundraiser_id=fundraiser.id, amount="3.00", donor_email=None)
        assert await donations_service.complete_donation(session, donation_id=donation.id) is None
        assert (await session.execute(select(Coupon))).scalars().all() == []


@pytest.mark.anyio
async def test_complete_donation_rejects_failed_and_missing(session_factory) -> None:
    async with session_factory() as session:
        fundraiser = await create_fundraiser(session)
        donation = await create_donation(
            session, fundraiser_id=fundraiser.id, amount="3.00", payment_status=DonationPaymentStatus.failed
        )
        with pytest.raises(InvalidStateError):
            await donations_service.complete_donation(session, donation_id=donation.id)
        with pytest.raises(NotFoundError):
            await donations_service.complete_donation(session, donation_id=uuid.uuid4())
