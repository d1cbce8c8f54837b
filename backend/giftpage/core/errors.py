"""Error taxonomy for the gift service.

Every error carries the HTTP status it maps to; ``giftpage.main`` installs a
single exception handler that turns them into ``{"detail": ...}`` responses.
"""

from fastapi import status


class GiftError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(GiftError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class NotFoundError(GiftError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Gift not found"


class ConflictError(GiftError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Slug already exists"


class UnauthenticatedError(GiftError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication required. Edit key missing."


class ForbiddenError(GiftError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Forbidden. Invalid edit key."


class InternalError(GiftError):
    pass


class RecordStoreError(InternalError):
    default_detail = "Gift storage is unavailable"


class BlobStoreError(InternalError):
    default_detail = "Image storage is unavailable"


class BlobCleanupError(InternalError):
    """Some image objects could not be deleted; the enclosing mutation is aborted."""

    def __init__(self, failures: dict[str, str]) -> None:
        self.failures = failures
        summary = ", ".join(f"{key}: {message}" for key, message in failures.items())
        super().__init__(f"Failed to remove images from storage: {summary}")


class TextAssistError(InternalError):
    default_detail = "An internal server error occurred while contacting the AI assistant."


class ServiceUnavailableError(GiftError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Server configuration error. The service is temporarily unavailable."
