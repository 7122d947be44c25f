from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import metrics
from app.core.errors import (
    DomainError,
    InvalidStateError,
    NoEligibleDonorsError,
    NotFoundError,
    TransactionFailureError,
)
from app.models.award import Award
from app.models.coupon import Coupon, CouponStatus
from app.models.fundraiser import Fundraiser
from app.schemas.admin_common import AdminPaginationMeta, clamp_page, page_meta
from app.services import coupons as coupons_service
from app.services import email as email_service

logger = logging.getLogger(__name__)

_rng = random.Random()

_HUNDRED = Decimal("100")
_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class WeightedDonor:
    coupon_id: UUID
    code: str
    donor_name: str
    donor_email: str
    donation_amount: Decimal
    currency: str
    probability: Decimal
    created_at: datetime


@dataclass(frozen=True)
class DonorPool:
    fundraiser: Fundraiser | None
    donors: list[WeightedDonor]
    total_amount: Decimal
    total_coupons: int


@dataclass(frozen=True)
class WeightedDraw:
    winner: WeightedDonor
    fundraiser: Fundraiser | None
    total_donors: int
    total_amount: Decimal


@dataclass(frozen=True)
class AwardFilters:
    fundraiser_id: UUID | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None
    search: str | None = None
    email_status: str | None = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def win_probability(amount: Decimal, total: Decimal) -> Decimal:
    """Share of the pool as a percentage, rounded half-up to two decimals."""
    if total <= 0:
        return Decimal("0.00")
    return (Decimal(amount) / Decimal(total) * _HUNDRED).quantize(_CENTS, rounding=ROUND_HALF_UP)


async def get_fundraiser_donor_pool(
    session: AsyncSession, *, fundraiser_id: UUID, now: datetime | None = None
) -> DonorPool:
    now = now or _now()
    coupons = (
        (
            await session.execute(
                select(Coupon)
                .where(
                    Coupon.fundraiser_id == fundraiser_id,
                    Coupon.status == CouponStatus.active,
                    Coupon.expires_at > now,
                )
                .order_by(Coupon.created_at, Coupon.id)
            )
        )
        .scalars()
        .all()
    )
    if not coupons:
        return DonorPool(fundraiser=None, donors=[], total_amount=Decimal("0"), total_coupons=0)

    fundraiser = await session.get(Fundraiser, fundraiser_id)
    total = sum((Decimal(str(c.donation_amount)) for c in coupons), start=Decimal("0"))
    donors = [
        WeightedDonor(
            coupon_id=c.id,
            code=c.code,
            donor_name=c.donor_name,
            donor_email=c.donor_email,
            donation_amount=Decimal(str(c.donation_amount)),
            currency=c.currency,
            probability=win_probability(Decimal(str(c.donation_amount)), total),
            created_at=c.created_at,
        )
        for c in coupons
    ]
    # sorted() is stable, so equal probabilities keep query order.
    donors = sorted(donors, key=lambda d: d.probability, reverse=True)
    return DonorPool(fundraiser=fundraiser, donors=donors, total_amount=total, total_coupons=len(donors))


def draw_weighted(donors: Sequence[WeightedDonor], total_amount: Decimal, rng: random.Random) -> WeightedDonor:
    """Walk the cumulative amounts and return the first donor whose running sum reaches the draw."""
    if not donors:
        raise NoEligibleDonorsError("No eligible donors")
    target = rng.random() * float(total_amount)
    cumulative = 0.0
    for donor in donors:
        cumulative += float(donor.donation_amount)
        if cumulative >= target:
            return donor
    # Float drift can leave the running sum just short of the target.
    return donors[-1]


async def select_weighted_winner(
    session: AsyncSession,
    *,
    fundraiser_id: UUID,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> WeightedDraw:
    """Advisory draw weighted by donation amount; nothing is written."""
    pool = await get_fundraiser_donor_pool(session, fundraiser_id=fundraiser_id, now=now)
    if not pool.donors:
        raise NoEligibleDonorsError("No eligible donors for this fundraiser")
    winner = draw_weighted(pool.donors, pool.total_amount, rng or _rng)
    metrics.record_winner_drawn()
    logger.info(
        "weighted_winner_selected",
        extra={
            "fundraiser_id": str(fundraiser_id),
            "coupon_code": winner.code,
            "probability": str(winner.probability),
            "pool_size": pool.total_coupons,
        },
    )
    return WeightedDraw(
        winner=winner,
        fundraiser=pool.fundraiser,
        total_donors=pool.total_coupons,
        total_amount=pool.total_amount,
    )


def _award_snapshot(
    coupon: Coupon,
    *,
    announced_by_id: UUID,
    selected_at: datetime,
    announced_at: datetime,
    notes: str | None,
) -> Award:
    return Award(
        coupon_id=coupon.id,
        donation_id=coupon.donation_id,
        fundraiser_id=coupon.fundraiser_id,
        donor_id=coupon.user_id,
        coupon_code=coupon.code,
        donor_name=coupon.donor_name,
        donor_email=coupon.donor_email,
        donation_amount=coupon.donation_amount,
        currency=coupon.currency,
        selected_at=selected_at,
        announced_at=announced_at,
        announced_by_id=announced_by_id,
        notes=(notes or "").strip() or None,
    )


async def _load_award(session: AsyncSession, award_id: UUID) -> Award | None:
    return (
        (await session.execute(select(Award).where(Award.id == award_id).execution_options(populate_existing=True)))
        .scalars()
        .first()
    )


async def announce_award(
    session: AsyncSession,
    *,
    coupon_id: UUID,
    announced_by_id: UUID,
    selected_at: datetime | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> Award:
    """Mark an active coupon used and record its award in one transaction, then notify the winner.

    The coupon update is conditional on the coupon still being active, so two concurrent
    announcements cannot both succeed. The email goes out after commit and never undoes it.
    """
    announced_at = now or _now()
    coupon = (
        (await session.execute(select(Coupon).where(Coupon.id == coupon_id).execution_options(populate_existing=True)))
        .scalars()
        .first()
    )
    if not coupon:
        raise NotFoundError("Coupon not found")
    if coupon.status != CouponStatus.active:
        raise InvalidStateError(f"Coupon is {coupon.status.value}; only active coupons can be announced")

    try:
        if not await coupons_service.claim_active_coupon(session, coupon.id):
            raise InvalidStateError("Coupon is no longer active")
        award = _award_snapshot(
            coupon,
            announced_by_id=announced_by_id,
            selected_at=selected_at or announced_at,
            announced_at=announced_at,
            notes=notes,
        )
        session.add(award)
        await session.commit()
    except DomainError:
        await session.rollback()
        raise
    except IntegrityError as exc:
        await session.rollback()
        duplicate = (
            await session.execute(select(func.count()).select_from(Award).where(Award.coupon_id == coupon_id))
        ).scalar_one()
        if int(duplicate):
            raise InvalidStateError("Coupon already has an award") from exc
        logger.exception("award_transaction_failed", extra={"coupon_id": str(coupon_id)})
        raise TransactionFailureError("Award announcement failed") from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("award_transaction_failed", extra={"coupon_id": str(coupon_id)})
        raise TransactionFailureError("Award announcement failed") from exc

    metrics.record_award_announced()
    logger.info(
        "award_announced",
        extra={"award_id": str(award.id), "coupon_code": award.coupon_code, "announced_by": str(announced_by_id)},
    )

    award = await _load_award(session, award.id) or award
    return await _notify_winner(session, award)


async def _notify_winner(session: AsyncSession, award: Award) -> Award:
    """Email the winner and stamp the award; failures are logged and never undo the announcement."""
    fundraiser = award.fundraiser
    try:
        sent = await email_service.send_award_announcement(
            award.donor_email,
            donor_name=award.donor_name,
            code=award.coupon_code,
            donation_amount=award.donation_amount,
            currency=award.currency,
            fundraiser_title=fundraiser.title if fundraiser else None,
            fundraiser_slug=fundraiser.slug if fundraiser else None,
            selected_at=award.selected_at,
            announced_at=award.announced_at,
            notes=award.notes,
        )
    except Exception as exc:
        metrics.record_email_failure()
        logger.warning("award_email_failed", extra={"award_id": str(award.id), "error": str(exc)})
        return award
    if not sent:
        logger.warning("award_email_not_sent", extra={"award_id": str(award.id)})
        return award

    award_id = award.id
    award.email_sent = True
    award.email_sent_at = _now()
    session.add(award)
    try:
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.warning("award_email_flag_not_saved", extra={"award_id": str(award_id), "error": str(exc)})
        return await _load_award(session, award_id) or award
    logger.info("award_email_sent", extra={"award_id": str(award_id)})
    return award


def _award_clauses(filters: AwardFilters) -> list:
    clauses = []
    if filters.fundraiser_id:
        clauses.append(Award.fundraiser_id == filters.fundraiser_id)
    if filters.from_date:
        clauses.append(Award.announced_at >= filters.from_date)
    if filters.to_date:
        clauses.append(Award.announced_at <= filters.to_date)
    if filters.search:
        needle = f"%{filters.search.strip().lower()}%"
        clauses.append(
            or_(
                func.lower(Award.coupon_code).like(needle),
                func.lower(Award.donor_name).like(needle),
                func.lower(Award.donor_email).like(needle),
            )
        )
    if filters.email_status == "sent":
        clauses.append(Award.email_sent.is_(True))
    elif filters.email_status == "pending":
        clauses.append(Award.email_sent.is_(False))
    return clauses


async def list_awards(
    session: AsyncSession, *, filters: AwardFilters | None = None, page: int = 1, limit: int = 20
) -> tuple[list[Award], AdminPaginationMeta]:
    page, limit = clamp_page(page, limit)
    clauses = _award_clauses(filters or AwardFilters())
    total = int((await session.execute(select(func.count()).select_from(Award).where(*clauses))).scalar_one())
    rows = (
        (
            await session.execute(
                select(Award)
                .where(*clauses)
                .order_by(Award.announced_at.desc(), Award.id)
                .offset((page - 1) * limit)
                .limit(limit)
            )
        )
        .scalars()
        .all()
    )
    return list(rows), page_meta(total, page=page, limit=limit)


async def get_award(session: AsyncSession, award_id: UUID) -> Award:
    award = await _load_award(session, award_id)
    if not award:
        raise NotFoundError("Award not found")
    return award


async def delete_award(session: AsyncSession, award_id: UUID) -> None:
    """Remove an award. The coupon stays `used`."""
    award = await get_award(session, award_id)
    await session.delete(award)
    await session.commit()
    logger.info("award_deleted", extra={"award_id": str(award_id), "coupon_code": award.coupon_code})


async def bulk_delete_awards(
    session: AsyncSession,
    *,
    award_ids: Sequence[UUID] | None = None,
    delete_all: bool = False,
    filters: AwardFilters | None = None,
) -> int:
    if award_ids:
        clauses = [Award.id.in_(list(award_ids))]
    elif delete_all:
        clauses = _award_clauses(filters or AwardFilters())
    else:
        return 0
    result = await session.execute(delete(Award).where(*clauses).execution_options(synchronize_session=False))
    await session.commit()
    count = int(result.rowcount or 0)
    logger.info("awards_bulk_deleted", extra={"deleted_count": count, "delete_all": delete_all})
    return count
