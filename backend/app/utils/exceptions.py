"""Custom exceptions and error handling utilities."""
from fastapi import HTTPException, status


class AppException(Exception):
    """Base exception for application errors."""
    pass


class StorageError(AppException):
    """Raised when the event log or another collection cannot be written."""
    pass


class DeliveryError(AppException):
    """Raised when the capture client cannot deliver an event to the API."""
    pass


def handle_database_error(error: Exception, operation: str) -> HTTPException:
    """
    Convert database errors to HTTP exceptions.

    Args:
        error: The database error
        operation: Description of the operation that failed

    Returns:
        HTTPException with appropriate status code
    """
    error_message = str(error).lower()

    if "duplicate" in error_message or "unique" in error_message:
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Resource already exists: {operation}",
        )

    # Storage details stay in the server log
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {operation}",
    )


def validation_error(message: str) -> HTTPException:
    """
    Create a standardized 400 validation error.

    Args:
        message: Validation error message

    Returns:
        HTTPException with 400 status
    """
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def authentication_error(message: str = "Invalid credentials") -> HTTPException:
    """
    Create a standardized 401 authentication error.

    Args:
        message: Authentication error message

    Returns:
        HTTPException with 401 status
    """
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=message)
