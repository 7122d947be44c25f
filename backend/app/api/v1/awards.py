from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import require_admin
from app.db.session import get_session
from app.models.user import User
from app.schemas.award import (
    AwardAnnounceRequest,
    AwardBulkDeleteRequest,
    AwardBulkDeleteResponse,
    AwardFundraiserSummary,
    AwardListResponse,
    AwardRead,
    DonorPoolResponse,
    WeightedDonorRead,
    WeightedWinnerResponse,
)
from app.schemas.error import ERROR_RESPONSES
from app.services import awards as awards_service

router = APIRouter(prefix="/awards", tags=["awards"], responses=ERROR_RESPONSES)


def _fundraiser_summary(fundraiser) -> AwardFundraiserSummary | None:
    return AwardFundraiserSummary.model_validate(fundraiser) if fundraiser is not None else None


@router.post("/admin/announce", response_model=AwardRead, status_code=status.HTTP_201_CREATED)
async def admin_announce_award(
    payload: AwardAnnounceRequest,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_admin),
) -> AwardRead:
    award = await awards_service.announce_award(
        session,
        coupon_id=payload.coupon_id,
        announced_by_id=admin.id,
        selected_at=payload.selected_at,
        notes=payload.notes,
    )
    return AwardRead.model_validate(award)


@router.get("/admin/history", response_model=AwardListResponse)
async def admin_award_history(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1),
    fundraiser_id: UUID | None = Query(default=None),
    from_date: datetime | None = Query(default=None),
    to_date: datetime | None = Query(default=None),
    search: str | None = Query(default=None, max_length=120),
    email_status: Literal["sent", "pending"] | None = Query(default=None),
    session: AsyncSession = Depends(get_session),
    _: User = Depends(require_admin),
) -> AwardListResponse:
    filters = awards_service.AwardFilters(
        fundraiser_id=fundraiser_id,
        from_date=from_date,
        to_date=to_date,
        search=search,
        email_status=email_status,
    )
    rows, meta = await awards_service.list_awards(session, filters=filters, page=page, limit=limit)
    return AwardListResponse(items=[AwardRead.model_validate(a) for a in rows], meta=meta)


@router.post("/admin/bulk-delete", response_model=AwardBulkDeleteResponse)
async def admin_bulk_delete_awards(
    payload: AwardBulkDeleteRequest,
    session: AsyncSession = Depends(get_session),
    _: User = Depends(require_admin),
) -> AwardBulkDeleteResponse:
    if not payload.award_ids and not payload.delete_all:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Provide award_ids or set delete_all",
        )
    deleted = await awards_service.bulk_delete_awards(
        session,
        award_ids=payload.award_ids,
        delete_all=payload.delete_all,
        filters=awards_service.AwardFilters(
            fundraiser_id=payload.fundraiser_id,
            from_date=payload.from_date,
            to_date=payload.to_date,
            search=payload.search,
            email_status=payload.email_status,
        ),
    )
    return AwardBulkDeleteResponse(deleted_count=deleted)


@router.get("/admin/fundraiser/{fundraiser_id}/donors", response_model=DonorPoolResponse)
async def admin_fundraiser_donor_pool(
    fundraiser_id: UUID,
    session: AsyncSession = Depends(get_session),
    _: User = Depends(require_admin),
) -> DonorPoolResponse:
    pool = await awards_service.get_fundraiser_donor_pool(session, fundraiser_id=fundraiser_id)
    return DonorPoolResponse(
        fundraiser=_fundraiser_summary(pool.fundraiser),
        donors=[WeightedDonorRead.model_validate(d) for d in pool.donors],
        total_amount=pool.total_amount,
        total_coupons=pool.total_coupons,
    )


@router.post("/admin/fundraiser/{fundraiser_id}/select-winner", response_model=WeightedWinnerResponse)
async def admin_select_weighted_winner(
    fundraiser_id: UUID,
    session: AsyncSession = Depends(get_session),
    _: User = Depends(require_admin),
) -> WeightedWinnerResponse:
    draw = await awards_service.select_weighted_winner(session, fundraiser_id=fundraiser_id)
    return WeightedWinnerResponse(
        winner=WeightedDonorRead.model_validate(draw.winner),
        fundraiser=_fundraiser_summary(draw.fundraiser),
        total_donors=draw.total_donors,
        total_amount=draw.total_amount,
    )


@router.get("/admin/{award_id}", response_model=AwardRead)
async def admin_get_award(
    award_id: UUID,
    session: AsyncSession = Depends(get_session),
    _: User = Depends(require_admin),
) -> AwardRead:
    return AwardRead.model_validate(await awards_service.get_award(session, award_id))


@router.delete("/admin/{award_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_delete_award(
    award_id: UUID,
    session: AsyncSession = Depends(get_session),
    _: User = Depends(require_admin),
) -> Response:
    await awards_service.delete_award(session, award_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
