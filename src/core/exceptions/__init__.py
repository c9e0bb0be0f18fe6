from src.core.exceptions.base import (
    AppException,
    NotFoundError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    DuplicateError,
    OverpaymentRejectedError,
    AlreadySettledError,
    InactiveStructureError,
    DocumentGenerationError,
    PdfGenerationUnavailableError,
)

__all__ = [
    "AppException",
    "NotFoundError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "DuplicateError",
    "OverpaymentRejectedError",
    "AlreadySettledError",
    "InactiveStructureError",
    "DocumentGenerationError",
    "PdfGenerationUnavailableError",
]
