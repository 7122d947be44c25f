from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.admin_common import AdminPaginationMeta


class AwardFundraiserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    slug: str
    cover_image: str | None = None


class AwardUserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str | None = None
    email: str


class AwardRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    coupon_id: UUID
    donation_id: UUID
    fundraiser_id: UUID
    donor_id: UUID | None = None
    coupon_code: str
    donor_name: str
    donor_email: str
    donation_amount: Decimal
    currency: str
    selected_at: datetime
    announced_at: datetime
    announced_by_id: UUID
    notes: str | None = None
    email_sent: bool
    email_sent_at: datetime | None = None
    created_at: datetime
    fundraiser: AwardFundraiserSummary | None = None
    donor: AwardUserSummary | None = None
    announced_by: AwardUserSummary | None = None


class AwardListResponse(BaseModel):
    items: list[AwardRead]
    meta: AdminPaginationMeta


class AwardAnnounceRequest(BaseModel):
    coupon_id: UUID
    selected_at: datetime | None = None
    notes: str | None = Field(default=None, max_length=500)


class AwardBulkDeleteRequest(BaseModel):
    award_ids: list[UUID] | None = None
    delete_all: bool = False
    fundraiser_id: UUID | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None
    search: str | None = None
    email_status: Literal["sent", "pending"] | None = None


class AwardBulkDeleteResponse(BaseModel):
    deleted_count: int


class WeightedDonorRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    coupon_id: UUID
    code: str
    donor_name: str
    donor_email: str
    donation_amount: Decimal
    currency: str
    probability: Decimal
    created_at: datetime


class DonorPoolResponse(BaseModel):
    fundraiser: AwardFundraiserSummary | None = None
    donors: list[WeightedDonorRead]
    total_amount: Decimal
    total_coupons: int


class WeightedWinnerResponse(BaseModel):
    winner: WeightedDonorRead
    fundraiser: AwardFundraiserSummary | None = None
    total_donors: int
    total_amount: Decimal
