from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user, require_admin
from app.core.errors import NoEligibleCouponsError
from app.db.session import get_session
from app.models.coupon import CouponStatus
from app.models.user import User
from app.schemas.coupon import (
    CouponCleanupResponse,
    CouponListResponse,
    CouponPublicRead,
    CouponRead,
    CouponStatsResponse,
    CouponWinnerRequest,
)
from app.schemas.error import ERROR_RESPONSES
from app.services import coupons as coupons_service

router = APIRouter(prefix="/coupons", tags=["coupons"], responses=ERROR_RESPONSES)


@router.get("/mine", response_model=CouponListResponse)
async def my_coupons(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> CouponListResponse:
    rows, meta = await coupons_service.list_user_coupons(session, user_id=current_user.id, page=page, limit=limit)
    return CouponListResponse(items=[CouponRead.model_validate(c) for c in rows], meta=meta)


@router.get("/code/{code}", response_model=CouponPublicRead)
async def coupon_by_code(code: str, session: AsyncSession = Depends(get_session)) -> CouponPublicRead:
    coupon = await coupons_service.get_coupon_by_code(session, code)
    if not coupon:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Coupon not found")
    return CouponPublicRead.model_validate(coupon)


@router.get("/admin/stats", response_model=CouponStatsResponse)
async def admin_coupon_stats(
    fundraiser_id: UUID | None = Query(default=None),
    session: AsyncSession = Depends(get_session),
    _: User = Depends(require_admin),
) -> CouponStatsResponse:
    stats = await coupons_service.get_coupon_stats(session, fundraiser_id=fundraiser_id)
    return CouponStatsResponse(
        total_coupons=stats.total_coupons,
        active_coupons=stats.active_coupons,
        used_coupons=stats.used_coupons,
        expired_coupons=stats.expired_coupons,
        emails_sent=stats.emails_sent,
        total_donation_amount=stats.total_donation_amount,
        recent_coupons=[CouponRead.model_validate(c) for c in stats.recent_coupons],
    )


@router.get("/admin/all", response_model=CouponListResponse)
async def admin_list_coupons(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1),
    search: str | None = Query(default=None, max_length=120),
    status_filter: CouponStatus | None = Query(default=None, alias="status"),
    fundraiser_id: UUID | None = Query(default=None),
    min_amount: Decimal | None = Query(default=None, ge=0),
    max_amount: Decimal | None = Query(default=None, ge=0),
    from_date: datetime | None = Query(default=None),
    to_date: datetime | None = Query(default=None),
    session: AsyncSession = Depends(get_session),
    _: User = Depends(require_admin),
) -> CouponListResponse:
    filters = coupons_service.CouponFilters(
        search=search,
        status=status_filter,
        fundraiser_id=fundraiser_id,
        min_amount=min_amount,
        max_amount=max_amount,
        from_date=from_date,
        to_date=to_date,
    )
    rows, meta = await coupons_service.list_coupons(session, filters=filters, page=page, limit=limit)
    return CouponListResponse(items=[CouponRead.model_validate(c) for c in rows], meta=meta)


@router.post("/admin/cleanup", response_model=CouponCleanupResponse)
async def admin_cleanup_expired(
    session: AsyncSession = Depends(get_session),
    _: User = Depends(require_admin),
) -> CouponCleanupResponse:
    expired = await coupons_service.sweep_expired(session)
    return CouponCleanupResponse(expired_count=expired)


@router.post("/admin/select-winner", response_model=CouponRead)
async def admin_select_random_winner(
    payload: CouponWinnerRequest | None = None,
    session: AsyncSession = Depends(get_session),
    _: User = Depends(require_admin),
) -> CouponRead:
    payload = payload or CouponWinnerRequest()
    coupon = await coupons_service.select_random_winner(
        session,
        fundraiser_id=payload.fundraiser_id,
        from_date=payload.from_date,
        to_date=payload.to_date,
    )
    if coupon is None:
        raise NoEligibleCouponsError("No eligible coupons found")
    return CouponRead.model_validate(coupon)


@router.get("/admin/{coupon_id}", response_model=CouponRead)
async def admin_get_coupon(
    coupon_id: UUID,
    session: AsyncSession = Depends(get_session),
    _: User = Depends(require_admin),
) -> CouponRead:
    return CouponRead.model_validate(await coupons_service.get_coupon(session, coupon_id))


@router.delete("/admin/{coupon_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_delete_coupon(
    coupon_id: UUID,
    session: AsyncSession = Depends(get_session),
    _: User = Depends(require_admin),
) -> Response:
    await coupons_service.delete_coupon(session, coupon_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
