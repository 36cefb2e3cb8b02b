"""
Error kinds raised by the core.

Each error carries the HTTP status the API layer answers with. Expiry is not an
error of its own: an expired room, message or blob is simply NotFound.
"""
from fastapi import status


class VanishError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFound(VanishError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class Forbidden(VanishError):
    """Invalid token, PIN mismatch, scope mismatch or full room."""
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Forbidden"


class PayloadTooLarge(VanishError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    default_detail = "Attachment too large"


class Unavailable(VanishError):
    """The backing cache could not be reached."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Storage unavailable"
