"""Custom exceptions and helpers for consistent error payloads."""

from typing import Any, Dict


class RatingError(Exception):
    """Base class for rating service errors."""

    def __init__(self, message: str, code: str = "rating_error"):
        super().__init__(message)
        self.code = code


class CustomerNotFoundError(RatingError):
    """Raised when the customer being rated does not exist."""

    def __init__(self, message: str = "Customer not found"):
        super().__init__(message, code="not_found")


class InvalidRatingDataError(RatingError):
    """Raised when stored records cannot be turned into a rating snapshot."""

    def __init__(self, message: str = "Invalid rating data"):
        super().__init__(message, code="invalid_data")


class RatingUnavailableError(RatingError):
    """Raised when no database is configured to load rating data from."""

    def __init__(self, message: str = "Rating data source unavailable"):
        super().__init__(message, code="unavailable")


def to_error_payload(error: Exception) -> Dict[str, Any]:
    """Convert an exception into a JSON-serializable dict for logs."""
    code = error.code if isinstance(error, RatingError) else "internal_error"
    return {"message": str(error), "code": code, "status": "error"}
