from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import require_admin
from app.db.session import get_session
from app.models.user import User
from app.schemas.coupon import DonationCompleteResponse, IssuedCouponRead
from app.schemas.error import ERROR_RESPONSES
from app.services import coupons as coupons_service
from app.services import donations as donations_service

router = APIRouter(prefix="/donations", tags=["donations"], responses=ERROR_RESPONSES)


@router.post("/admin/{donation_id}/complete", response_model=DonationCompleteResponse)
async def admin_complete_donation(
    donation_id: UUID,
    session: AsyncSession = Depends(get_session),
    policy: coupons_service.CouponPolicy = Depends(coupons_service.get_coupon_policy),
    _: User = Depends(require_admin),
) -> DonationCompleteResponse:
    issued = await donations_service.complete_donation(session, donation_id=donation_id, policy=policy)
    return DonationCompleteResponse(
        donation_id=donation_id,
        coupon=IssuedCouponRead.model_validate(issued) if issued else None,
    )
