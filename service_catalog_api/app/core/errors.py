"""
Error types shared by the storage layer, the auth gate and the handlers.

Every error carries the HTTP status it maps to and a message that is
safe to show to clients.  The application registers a single exception
handler for ``CatalogError`` which renders it through the response
envelope, so raising one of these from any layer ends the request.
"""

from fastapi import status


class CatalogError(Exception):
    """Base class for errors that end a request with an envelope."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, data=None) -> None:
        self.message = message or self.default_message
        # Optional payload returned alongside the error (partial success).
        self.data = data
        super().__init__(self.message)


class ValidationError(CatalogError):
    """Malformed id, body or missing required field."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class NotFoundError(CatalogError):
    """No row matches the requested identifier."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class AuthError(CatalogError):
    """The API key header is missing."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "API key is missing"


class ForbiddenError(CatalogError):
    """The API key is not registered."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Invalid API key"


class StorageError(CatalogError):
    """Any other persistence failure."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"
