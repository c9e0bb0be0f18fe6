from decimal import Decimal
from typing import Any


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(AppException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} with id={identifier} not found"
        super().__init__(message=message, status_code=404)


class ValidationError(AppException):
    """Validation error."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message=message, status_code=422, details=details)


class AuthenticationError(AppException):
    """Authentication failed."""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message=message, status_code=401)


class AuthorizationError(AppException):
    """Not authorized to perform action."""

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message=message, status_code=403)


class DuplicateError(AppException):
    """Duplicate resource."""

    def __init__(self, resource: str, field: str, value: Any):
        message = f"{resource} with {field}={value} already exists"
        super().__init__(message=message, status_code=409, details={"field": field, "value": value})


class OverpaymentRejectedError(AppException):
    """Payment amount exceeds the fee record's balance due."""

    def __init__(self, fee_record_id: int, requested: Decimal, balance_due: Decimal):
        message = (
            f"Payment of {requested} exceeds balance due of {balance_due} "
            f"for fee record {fee_record_id}"
        )
        super().__init__(
            message=message,
            status_code=422,
            details={
                "field": "amount",
                "fee_record_id": fee_record_id,
                "requested": str(requested),
                "balance_due": str(balance_due),
            },
        )


class AlreadySettledError(AppException):
    """Fee record has no balance left to pay."""

    def __init__(self, fee_record_id: int):
        super().__init__(
            message=f"Fee record {fee_record_id} is already fully paid",
            status_code=409,
            details={"fee_record_id": fee_record_id},
        )


class InactiveStructureError(AppException):
    """Fee structure is deactivated and cannot be assigned."""

    def __init__(self, structure_id: int):
        super().__init__(
            message=f"Fee structure {structure_id} is inactive and cannot be assigned",
            status_code=409,
            details={"fee_structure_id": structure_id},
        )


class DocumentGenerationError(AppException):
    """Document layout failed (missing or malformed input data)."""

    def __init__(self, message: str = "Failed to generate PDF"):
        super().__init__(message=message, status_code=500)


class PdfGenerationUnavailableError(AppException):
    """WeasyPrint/system libraries not available (e.g. pango on macOS)."""

    def __init__(self, message: str | None = None):
        msg = message or (
            "PDF generation is not available on this system. "
            "On macOS install: brew install pango glib."
        )
        super().__init__(message=msg, status_code=503)
