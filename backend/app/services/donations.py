from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import InvalidStateError, NotFoundError
from app.models.donation import Donation, DonationPaymentStatus
from app.models.fundraiser import Fundraiser
from app.models.user import User
from app.services import coupons as coupons_service

logger = logging.getLogger(__name__)


def _donor_identity(donation: Donation, donor: User | None) -> tuple[str | None, str]:
    email = (donation.donor_email or (donor.email if donor else None) or "").strip() or None
    name = (donation.donor_name or (donor.name if donor else None) or "").strip()
    if donation.is_anonymous and not name:
        name = "Anonymous"
    return email, name or "Supporter"


async def complete_donation(
    session: AsyncSession,
    *,
    donation_id: UUID,
    policy: coupons_service.CouponPolicy | None = None,
    now: datetime | None = None,
) -> coupons_service.IssuedCoupon | None:
    """Mark a donation completed and issue its prize-draw coupon.

    Completing an already completed donation only re-runs the idempotent issuance.
    Returns None when the donation has no email address to send a coupon to.
    """
    donation = await session.get(Donation, donation_id)
    if not donation:
        raise NotFoundError("Donation not found")
    if donation.payment_status in {DonationPaymentStatus.failed, DonationPaymentStatus.refunded}:
        raise InvalidStateError(f"Donation is {donation.payment_status.value}")

    fundraiser = await session.get(Fundraiser, donation.fundraiser_id)
    donor = await session.get(User, donation.donor_id) if donation.donor_id else None

    if donation.payment_status != DonationPaymentStatus.completed:
        donation.payment_status = DonationPaymentStatus.completed
        donation.completed_at = now or datetime.now(timezone.utc)
        fundraiser.current_amount = Decimal(str(fundraiser.current_amount or 0)) + Decimal(str(donation.amount))
        fundraiser.donation_count = int(fundraiser.donation_count or 0) + 1
        session.add_all([donation, fundraiser])
        await session.commit()
        logger.info("donation_completed", extra={"donation_id": str(donation.id), "fundraiser_id": str(fundraiser.id)})

    email, name = _donor_identity(donation, donor)
    if not email:
        logger.warning("coupon_skipped_no_email", extra={"donation_id": str(donation.id)})
        return None

    return await coupons_service.issue_coupon(
        session,
        request=coupons_service.CouponIssueRequest(
            donation_id=donation.id,
            fundraiser_id=donation.fundraiser_id,
            user_id=donation.donor_id,
            donor_name=name,
            donor_email=email,
            donation_amount=Decimal(str(donation.amount)),
            currency=donation.currency,
            fundraiser_title=fundraiser.title,
        ),
        policy=policy,
        now=now,
    )
