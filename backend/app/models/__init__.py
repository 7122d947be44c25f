from app.db.base import Base  # noqa: F401
from app.models.user import User, UserRole  # noqa: F401
from app.models.fundraiser import Fundraiser  # noqa: F401
from app.models.donation import Donation, DonationPaymentStatus  # noqa: F401
from app.models.coupon import Coupon, CouponStatus  # noqa: F401
from app.models.award import Award  # noqa: F401

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Fundraiser",
    "Donation",
    "DonationPaymentStatus",
    "Coupon",
    "CouponStatus",
    "Award",
]
