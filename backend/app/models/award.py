import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Numeric, String, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.coupon import Coupon
from app.models.fundraiser import Fundraiser
from app.models.user import User


class Award(Base):
    """Announced prize winner; a snapshot of the winning coupon at announcement time."""

    __tablename__ = "awards"
    __table_args__ = (
        UniqueConstraint("coupon_id", name="uq_awards_coupon"),
        Index("ix_awards_fundraiser_announced_at", "fundraiser_id", "announced_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    coupon_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("coupons.id"), nullable=False)
    donation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("donations.id"), nullable=False, index=True
    )
    fundraiser_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("fundraisers.id"), nullable=False)
    donor_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    coupon_code: Mapped[str] = mapped_column(String(40), nullable=False)
    donor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    donor_email: Mapped[str] = mapped_column(String(255), nullable=False)
    donation_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    selected_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    announced_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    announced_by_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    email_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    email_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    coupon: Mapped[Coupon] = relationship("Coupon", lazy="selectin")
    fundraiser: Mapped[Fundraiser] = relationship("Fundraiser", lazy="selectin")
    donor: Mapped[User | None] = relationship("User", foreign_keys=[donor_id], lazy="selectin")
    announced_by: Mapped[User] = relationship("User", foreign_keys=[announced_by_id], lazy="selectin")
