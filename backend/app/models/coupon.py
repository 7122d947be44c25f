import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Numeric, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.donation import Donation
from app.models.fundraiser import Fundraiser
from app.models.user import User


class CouponStatus(str, enum.Enum):
    active = "active"
    used = "used"
    expired = "expired"


class Coupon(Base):
    """Prize-draw entry issued once per completed donation."""

    __tablename__ = "coupons"
    __table_args__ = (
        UniqueConstraint("donation_id", name="uq_coupons_donation"),
        Index("ix_coupons_status_expires_at", "status", "expires_at"),
        Index("ix_coupons_fundraiser_status", "fundraiser_id", "status"),
        Index("ix_coupons_user_created_at", "user_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(40), unique=True, nullable=False, index=True)
    donation_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("donations.id"), nullable=False)
    fundraiser_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("fundraisers.id"), nullable=False)
    # Anonymous donors have no account.
    user_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    donor_email: Mapped[str] = mapped_column(String(255), nullable=False)
    donor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    donation_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[CouponStatus] = mapped_column(
        Enum(CouponStatus, native_enum=False),
        nullable=False,
        default=CouponStatus.active,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    email_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    email_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    donation: Mapped[Donation] = relationship("Donation", lazy="selectin")
    fundraiser: Mapped[Fundraiser] = relationship("Fundraiser", lazy="selectin")
    user: Mapped[User | None] = relationship("User", lazy="selectin")
