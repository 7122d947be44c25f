from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.coupon import CouponStatus
from app.schemas.admin_common import AdminPaginationMeta


class CouponFundraiserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    slug: str
    cover_image: str | None = None


class CouponRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    code: str
    donation_id: UUID
    fundraiser_id: UUID
    user_id: UUID | None = None
    donor_email: str
    donor_name: str
    donation_amount: Decimal
    currency: str
    status: CouponStatus
    expires_at: datetime
    email_sent: bool
    email_sent_at: datetime | None = None
    created_at: datetime
    fundraiser: CouponFundraiserSummary | None = None


class CouponPublicRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    code: str
    status: CouponStatus
    expires_at: datetime
    fundraiser: CouponFundraiserSummary | None = None


class CouponListResponse(BaseModel):
    items: list[CouponRead]
    meta: AdminPaginationMeta


class CouponStatsResponse(BaseModel):
    total_coupons: int
    active_coupons: int
    used_coupons: int
    expired_coupons: int
    emails_sent: int
    total_donation_amount: Decimal
    recent_coupons: list[CouponRead] = Field(default_factory=list)


class CouponCleanupResponse(BaseModel):
    expired_count: int


class CouponWinnerRequest(BaseModel):
    fundraiser_id: UUID | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None


class IssuedCouponRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    coupon_id: UUID
    code: str
    donor_email: str
    email_sent: bool
    expires_at: datetime
    created: bool


class DonationCompleteResponse(BaseModel):
    donation_id: UUID
    coupon: IssuedCouponRead | None = None
