from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error envelope returned by every prize-draw endpoint."""

    detail: Any
    code: str | None = Field(
        default=None,
        description="Machine-readable reason such as `invalid_state` or `no_eligible_donors`; null for plain HTTP errors.",
    )


# Shared OpenAPI documentation for the error statuses the admin routers can return.
ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Coupon is not in the required state (`invalid_state`)"},
    401: {"model": ErrorResponse, "description": "Missing or invalid bearer token"},
    403: {"model": ErrorResponse, "description": "Admin role required"},
    404: {
        "model": ErrorResponse,
        "description": "Unknown coupon, award or donation (`not_found`), or an empty draw "
        "(`no_eligible_donors`, `no_eligible_coupons`)",
    },
    500: {
        "model": ErrorResponse,
        "description": "Coupon code space exhausted (`code_generation_exhausted`) or a rolled back "
        "write (`transaction_failure`)",
    },
}
