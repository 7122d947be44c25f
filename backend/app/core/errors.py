from fastapi import HTTPException, status


class DomainError(HTTPException):
    """HTTP error carrying a machine-readable code for the error envelope."""

    status_code_default: int = status.HTTP_400_BAD_REQUEST
    code: str = "error"

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=self.status_code_default, detail=detail)


class NotFoundError(DomainError):
    status_code_default = status.HTTP_404_NOT_FOUND
    code = "not_found"


class InvalidStateError(DomainError):
    status_code_default = status.HTTP_400_BAD_REQUEST
    code = "invalid_state"


class NoEligibleDonorsError(DomainError):
    status_code_default = status.HTTP_404_NOT_FOUND
    code = "no_eligible_donors"


class CodeGenerationExhaustedError(DomainError):
    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "code_generation_exhausted"


class TransactionFailureError(DomainError):
    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "transaction_failure"


class NoEligibleCouponsError(DomainError):
    status_code_default = status.HTTP_404_NOT_FOUND
    code = "no_eligible_coupons"
