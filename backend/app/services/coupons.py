from __future__ import annotations

import logging
import random
import secrets
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import metrics
from app.core.config import Settings, settings
from app.core.errors import CodeGenerationExhaustedError, InvalidStateError, NotFoundError, TransactionFailureError
from app.models.award import Award
from app.models.coupon import Coupon, CouponStatus
from app.schemas.admin_common import AdminPaginationMeta, clamp_page, page_meta
from app.services import email as email_service

logger = logging.getLogger(__name__)

TokenBytes = Callable[[int], bytes]

_rng = random.Random()


@dataclass(frozen=True)
class CouponPolicy:
    prefix: str = "FU"
    expiration_days: int = 365
    default_currency: str = "EUR"
    max_code_attempts: int = 10

    @classmethod
    def from_settings(cls, cfg: Settings) -> CouponPolicy:
        return cls(
            prefix=(cfg.coupon_code_prefix or "FU").strip().upper(),
            expiration_days=int(cfg.coupon_expiration_days),
            default_currency=(cfg.coupon_default_currency or "EUR").strip().upper(),
            max_code_attempts=int(cfg.coupon_code_max_attempts),
        )


def get_coupon_policy() -> CouponPolicy:
    return CouponPolicy.from_settings(settings)


@dataclass(frozen=True)
class CouponIssueRequest:
    donation_id: UUID
    fundraiser_id: UUID
    donor_name: str
    donor_email: str
    donation_amount: Decimal
    fundraiser_title: str
    user_id: UUID | None = None
    currency: str | None = None


@dataclass(frozen=True)
class IssuedCoupon:
    coupon_id: UUID
    code: str
    donor_email: str
    email_sent: bool
    expires_at: datetime
    created: bool


@dataclass(frozen=True)
class CouponFilters:
    search: str | None = None
    status: CouponStatus | None = None
    fundraiser_id: UUID | None = None
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None


@dataclass(frozen=True)
class CouponStats:
    total_coupons: int
    active_coupons: int
    used_coupons: int
    expired_coupons: int
    emails_sent: int
    total_donation_amount: Decimal
    recent_coupons: list[Coupon]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def generate_coupon_code(prefix: str, token_bytes: TokenBytes = secrets.token_bytes) -> str:
    """Return `PREFIX-XXXXXXXX`: four random bytes rendered as uppercase hex."""
    return f"{prefix}-{token_bytes(4).hex().upper()}"


def _eligible_clause(now: datetime):
    return and_(Coupon.status == CouponStatus.active, Coupon.expires_at > now)


async def _coupon_for_donation(session: AsyncSession, donation_id: UUID) -> Coupon | None:
    return (await session.execute(select(Coupon).where(Coupon.donation_id == donation_id))).scalars().first()


async def _code_exists(session: AsyncSession, code: str) -> bool:
    count = (await session.execute(select(func.count()).select_from(Coupon).where(Coupon.code == code))).scalar_one()
    return int(count) > 0


async def claim_active_coupon(session: AsyncSession, coupon_id: UUID) -> bool:
    """Conditionally move an active coupon to `used`; False when another writer got there first. Does not commit."""
    result = await session.execute(
        update(Coupon)
        .where(Coupon.id == coupon_id, Coupon.status == CouponStatus.active)
        .values(status=CouponStatus.used)
        .execution_options(synchronize_session=False)
    )
    return int(result.rowcount or 0) == 1


def _issued(coupon: Coupon, *, created: bool) -> IssuedCoupon:
    return IssuedCoupon(
        coupon_id=coupon.id,
        code=coupon.code,
        donor_email=coupon.donor_email,
        email_sent=bool(coupon.email_sent),
        expires_at=coupon.expires_at,
        created=created,
    )


async def issue_coupon(
    session: AsyncSession,
    *,
    request: CouponIssueRequest,
    policy: CouponPolicy | None = None,
    token_bytes: TokenBytes = secrets.token_bytes,
    now: datetime | None = None,
) -> IssuedCoupon:
    """Create the prize-draw coupon for a completed donation and email it to the donor.

    Re-issuing for a donation that already has a coupon returns that coupon unchanged.
    """
    policy = policy or get_coupon_policy()
    existing = await _coupon_for_donation(session, request.donation_id)
    if existing:
        return _issued(existing, created=False)

    issued_at = now or _now()
    coupon: Coupon | None = None
    for _ in range(policy.max_code_attempts):
        candidate = generate_coupon_code(policy.prefix, token_bytes)
        if await _code_exists(session, candidate):
            continue
        coupon = Coupon(
            code=candidate,
            donation_id=request.donation_id,
            fundraiser_id=request.fundraiser_id,
            user_id=request.user_id,
            donor_email=request.donor_email,
            donor_name=request.donor_name,
            donation_amount=Decimal(str(request.donation_amount)),
            currency=(request.currency or policy.default_currency).upper(),
            status=CouponStatus.active,
            expires_at=issued_at + timedelta(days=policy.expiration_days),
        )
        session.add(coupon)
        try:
            await session.commit()
            break
        except IntegrityError as exc:
            await session.rollback()
            coupon = None
            # A concurrent issuance for the same donation won the insert.
            raced = await _coupon_for_donation(session, request.donation_id)
            if raced:
                return _issued(raced, created=False)
            if await _code_exists(session, candidate):
                continue
            logger.exception("coupon_insert_failed", extra={"donation_id": str(request.donation_id)})
            raise TransactionFailureError("Coupon could not be stored") from exc

    if coupon is None:
        logger.error(
            "coupon_code_generation_exhausted",
            extra={"donation_id": str(request.donation_id), "attempts": policy.max_code_attempts},
        )
        raise CodeGenerationExhaustedError("Failed to generate a unique coupon code")

    metrics.record_coupon_issued()
    logger.info(
        "coupon_issued",
        extra={"coupon_code": coupon.code, "donation_id": str(request.donation_id), "fundraiser_id": str(request.fundraiser_id)},
    )

    issued = _issued(coupon, created=True)
    if await _notify_donor(session, coupon, request):
        issued = replace(issued, email_sent=True)
    return issued


async def _notify_donor(session: AsyncSession, coupon: Coupon, request: CouponIssueRequest) -> bool:
    """Email the coupon and stamp it; returns whether the stamp was saved. Never raises."""
    try:
        sent = await email_service.send_coupon_issued(
            coupon.donor_email,
            donor_name=coupon.donor_name,
            code=coupon.code,
            donation_amount=coupon.donation_amount,
            currency=coupon.currency,
            fundraiser_title=request.fundraiser_title,
            expires_at=coupon.expires_at,
            has_account=request.user_id is not None,
        )
    except Exception as exc:
        metrics.record_email_failure()
        logger.warning("coupon_email_failed", extra={"coupon_code": coupon.code, "error": str(exc)})
        return False
    if not sent:
        logger.warning("coupon_email_not_sent", extra={"coupon_code": coupon.code})
        return False

    code = coupon.code
    coupon.email_sent = True
    coupon.email_sent_at = _now()
    session.add(coupon)
    try:
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.warning("coupon_email_flag_not_saved", extra={"coupon_code": code, "error": str(exc)})
        return False
    logger.info("coupon_email_sent", extra={"coupon_code": code})
    return True


async def sweep_expired(session: AsyncSession, *, now: datetime | None = None) -> int:
    """Move active coupons past their expiry to `expired`; returns how many moved."""
    now = now or _now()
    result = await session.execute(
        update(Coupon)
        .where(Coupon.status == CouponStatus.active, Coupon.expires_at < now)
        .values(status=CouponStatus.expired)
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    count = int(result.rowcount or 0)
    metrics.record_coupons_expired(count)
    logger.info("coupons_expired", extra={"expired_count": count})
    return count


async def select_random_winner(
    session: AsyncSession,
    *,
    fundraiser_id: UUID | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> Coupon | None:
    """Pick one eligible coupon uniformly at random and mark it used.

    Unlike the weighted draw this commits the status change immediately and creates no award.
    Returns None when no coupon qualifies.
    """
    rng = rng or _rng
    now = now or _now()
    clauses = [_eligible_clause(now)]
    if fundraiser_id:
        clauses.append(Coupon.fundraiser_id == fundraiser_id)
    if from_date:
        clauses.append(Coupon.created_at >= from_date)
    if to_date:
        clauses.append(Coupon.created_at <= to_date)

    total = int((await session.execute(select(func.count()).select_from(Coupon).where(*clauses))).scalar_one())
    if total == 0:
        return None

    index = rng.randrange(total)
    coupon = (
        (await session.execute(select(Coupon).where(*clauses).order_by(Coupon.created_at, Coupon.id).offset(index).limit(1)))
        .scalars()
        .first()
    )
    if coupon is None:
        return None

    claimed = await claim_active_coupon(session, coupon.id)
    await session.commit()
    if not claimed:
        logger.warning("random_winner_lost_race", extra={"coupon_code": coupon.code})
        return None
    coupon = (
        (await session.execute(select(Coupon).where(Coupon.id == coupon.id).execution_options(populate_existing=True)))
        .scalars()
        .one()
    )
    metrics.record_winner_drawn()
    logger.info(
        "random_winner_selected",
        extra={"coupon_code": coupon.code, "fundraiser_id": str(coupon.fundraiser_id), "eligible": total},
    )
    return coupon


async def list_user_coupons(
    session: AsyncSession, *, user_id: UUID, page: int = 1, limit: int = 10
) -> tuple[list[Coupon], AdminPaginationMeta]:
    page, limit = clamp_page(page, limit)
    total = int(
        (await session.execute(select(func.count()).select_from(Coupon).where(Coupon.user_id == user_id))).scalar_one()
    )
    rows = (
        (
            await session.execute(
                select(Coupon)
                .where(Coupon.user_id == user_id)
                .order_by(Coupon.created_at.desc(), Coupon.id)
                .offset((page - 1) * limit)
                .limit(limit)
            )
        )
        .scalars()
        .all()
    )
    return list(rows), page_meta(total, page=page, limit=limit)


async def get_coupon_by_code(session: AsyncSession, code: str) -> Coupon | None:
    normalized = normalize_code(code)
    if not normalized:
        return None
    return (await session.execute(select(Coupon).where(Coupon.code == normalized))).scalars().first()


async def get_coupon(session: AsyncSession, coupon_id: UUID) -> Coupon:
    coupon = await session.get(Coupon, coupon_id)
    if not coupon:
        raise NotFoundError("Coupon not found")
    return coupon


def _filter_clauses(filters: CouponFilters) -> list:
    clauses = []
    if filters.search:
        needle = f"%{filters.search.strip().lower()}%"
        clauses.append(
            or_(
                func.lower(Coupon.code).like(needle),
                func.lower(Coupon.donor_email).like(needle),
                func.lower(Coupon.donor_name).like(needle),
            )
        )
    if filters.status:
        clauses.append(Coupon.status == filters.status)
    if filters.fundraiser_id:
        clauses.append(Coupon.fundraiser_id == filters.fundraiser_id)
    if filters.min_amount is not None:
        clauses.append(Coupon.donation_amount >= filters.min_amount)
    if filters.max_amount is not None:
        clauses.append(Coupon.donation_amount <= filters.max_amount)
    if filters.from_date:
        clauses.append(Coupon.created_at >= filters.from_date)
    if filters.to_date:
        clauses.append(Coupon.created_at <= filters.to_date)
    return clauses


async def list_coupons(
    session: AsyncSession, *, filters: CouponFilters | None = None, page: int = 1, limit: int = 20
) -> tuple[list[Coupon], AdminPaginationMeta]:
    page, limit = clamp_page(page, limit)
    clauses = _filter_clauses(filters or CouponFilters())
    total = int((await session.execute(select(func.count()).select_from(Coupon).where(*clauses))).scalar_one())
    rows = (
        (
            await session.execute(
                select(Coupon)
                .where(*clauses)
                .order_by(Coupon.created_at.desc(), Coupon.id)
                .offset((page - 1) * limit)
                .limit(limit)
            )
        )
        .scalars()
        .all()
    )
    return list(rows), page_meta(total, page=page, limit=limit)


async def get_coupon_stats(session: AsyncSession, *, fundraiser_id: UUID | None = None) -> CouponStats:
    scope = [Coupon.fundraiser_id == fundraiser_id] if fundraiser_id else []
    by_status = {
        status: int(count)
        for status, count in (
            await session.execute(select(Coupon.status, func.count()).where(*scope).group_by(Coupon.status))
        ).all()
    }
    emails_sent = (
        await session.execute(select(func.count()).select_from(Coupon).where(*scope, Coupon.email_sent.is_(True)))
    ).scalar_one()
    amount = (
        await session.execute(select(func.coalesce(func.sum(Coupon.donation_amount), 0)).where(*scope))
    ).scalar_one()
    recent = (
        (await session.execute(select(Coupon).where(*scope).order_by(Coupon.created_at.desc(), Coupon.id).limit(10)))
        .scalars()
        .all()
    )
    return CouponStats(
        total_coupons=sum(by_status.values()),
        active_coupons=by_status.get(CouponStatus.active, 0),
        used_coupons=by_status.get(CouponStatus.used, 0),
        expired_coupons=by_status.get(CouponStatus.expired, 0),
        emails_sent=int(emails_sent),
        total_donation_amount=Decimal(str(amount)),
        recent_coupons=list(recent),
    )


async def delete_coupon(session: AsyncSession, coupon_id: UUID) -> None:
    coupon = await get_coupon(session, coupon_id)
    awarded = (
        await session.execute(select(func.count()).select_from(Award).where(Award.coupon_id == coupon.id))
    ).scalar_one()
    if int(awarded):
        raise InvalidStateError("Coupon has an announced award; delete the award first")
    await session.delete(coupon)
    await session.commit()
    logger.info("coupon_deleted", extra={"coupon_code": coupon.code})
