from typing import Any, Dict, Optional
from fastapi import status


class StockLedgerError(Exception):
    """Base class for domain errors raised by the stock ledger services."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.error_code = error_code
        super().__init__(self.message)


class NotFoundError(StockLedgerError):
    """Unknown inventory line, order or reorder rule."""

    def __init__(self, message: str = "Resource not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details=details,
            error_code="not_found"
        )


class ValidationError(StockLedgerError):
    """Missing or invalid fields, non-positive amounts."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
            error_code="validation_error"
        )


class ConflictError(StockLedgerError):
    """Lost update detected by a compare-and-swap, or a uniqueness clash."""

    def __init__(self, message: str = "Resource conflict", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=details,
            error_code="conflict"
        )


class ExternalServiceError(StockLedgerError):
    """
    Forecasting collaborator failure. The forecast orchestrator always recovers
    from it locally, so it is not expected to reach an HTTP handler.
    """

    def __init__(self, message: str = "External service error", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details=details,
            error_code="external_service_error"
        )


class PersistenceError(StockLedgerError):
    """Store unavailable or write failed; the surrounding transaction was rolled back."""

    def __init__(self, message: str = "Database operation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
            error_code="persistence_error"
        )
