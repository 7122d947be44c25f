"""fundraiser prize draws: users, fundraisers, donations, coupons, awards

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    user_role = sa.Enum("donor", "admin", name="userrole", native_enum=False)
    donation_payment_status = sa.Enum(
        "pending",
        "completed",
        "failed",
        "refunded",
        name="donationpaymentstatus",
        native_enum=False,
    )
    coupon_status = sa.Enum("active", "used", "expired", name="couponstatus", native_enum=False)

    op.create_table(
        "users",
        sa.Column("id", sa.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("profile_picture", sa.String(length=500), nullable=True),
        sa.Column("role", user_role, nullable=False, server_default="donor"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "fundraisers",
        sa.Column("id", sa.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("owner_id", sa.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("slug", sa.String(length=220), nullable=False),
        sa.Column("cover_image", sa.String(length=500), nullable=True),
        sa.Column("goal_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("current_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("donation_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(op.f("ix_fundraisers_slug"), "fundraisers", ["slug"], unique=True)

    op.create_table(
        "donations",
        sa.Column("id", sa.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("fundraiser_id", sa.UUID(as_uuid=True), sa.ForeignKey("fundraisers.id"), nullable=False),
        sa.Column("donor_id", sa.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("donor_name", sa.String(length=255), nullable=True),
        sa.Column("donor_email", sa.String(length=255), nullable=True),
        sa.Column("is_anonymous", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("tip_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(length=3), nullable=True),
        sa.Column("payment_status", donation_payment_status, nullable=False, server_default="pending"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(op.f("ix_donations_fundraiser_id"), "donations", ["fundraiser_id"], unique=False)
    op.create_index(op.f("ix_donations_donor_id"), "donations", ["donor_id"], unique=False)

    op.create_table(
        "coupons",
        sa.Column("id", sa.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=40), nullable=False),
        sa.Column("donation_id", sa.UUID(as_uuid=True), sa.ForeignKey("donations.id"), nullable=False),
        sa.Column("fundraiser_id", sa.UUID(as_uuid=True), sa.ForeignKey("fundraisers.id"), nullable=False),
        sa.Column("user_id", sa.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("donor_email", sa.String(length=255), nullable=False),
        sa.Column("donor_name", sa.String(length=255), nullable=False),
        sa.Column("donation_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("status", coupon_status, nullable=False, server_default="active"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("email_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("email_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("donation_id", name="uq_coupons_donation"),
    )
    op.create_index(op.f("ix_coupons_code"), "coupons", ["code"], unique=True)
    op.create_index("ix_coupons_status_expires_at", "coupons", ["status", "expires_at"], unique=False)
    op.create_index("ix_coupons_fundraiser_status", "coupons", ["fundraiser_id", "status"], unique=False)
    op.create_index("ix_coupons_user_created_at", "coupons", ["user_id", "created_at"], unique=False)

    op.create_table(
        "awards",
        sa.Column("id", sa.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("coupon_id", sa.UUID(as_uuid=True), sa.ForeignKey("coupons.id"), nullable=False),
        sa.Column("donation_id", sa.UUID(as_uuid=True), sa.ForeignKey("donations.id"), nullable=False),
        sa.Column("fundraiser_id", sa.UUID(as_uuid=True), sa.ForeignKey("fundraisers.id"), nullable=False),
        sa.Column("donor_id", sa.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("coupon_code", sa.String(length=40), nullable=False),
        sa.Column("donor_name", sa.String(length=255), nullable=False),
        sa.Column("donor_email", sa.String(length=255), nullable=False),
        sa.Column("donation_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("selected_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("announced_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("announced_by_id", sa.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("email_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("email_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("coupon_id", name="uq_awards_coupon"),
    )
    op.create_index(op.f("ix_awards_donation_id"), "awards", ["donation_id"], unique=False)
    op.create_index(op.f("ix_awards_announced_at"), "awards", ["announced_at"], unique=False)
    op.create_index(op.f("ix_awards_announced_by_id"), "awards", ["announced_by_id"], unique=False)
    op.create_index("ix_awards_fundraiser_announced_at", "awards", ["fundraiser_id", "announced_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_awards_fundraiser_announced_at", table_name="awards")
    op.drop_index(op.f("ix_awards_announced_by_id"), table_name="awards")
    op.drop_index(op.f("ix_awards_announced_at"), table_name="awards")
    op.drop_index(op.f("ix_awards_donation_id"), table_name="awards")
    op.drop_table("awards")

    op.drop_index("ix_coupons_user_created_at", table_name="coupons")
    op.drop_index("ix_coupons_fundraiser_status", table_name="coupons")
    op.drop_index("ix_coupons_status_expires_at", table_name="coupons")
    op.drop_index(op.f("ix_coupons_code"), table_name="coupons")
    op.drop_table("coupons")

    op.drop_index(op.f("ix_donations_donor_id"), table_name="donations")
    op.drop_index(op.f("ix_donations_fundraiser_id"), table_name="donations")
    op.drop_table("donations")

    op.drop_index(op.f("ix_fundraisers_slug"), table_name="fundraisers")
    op.drop_table("fundraisers")

    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
