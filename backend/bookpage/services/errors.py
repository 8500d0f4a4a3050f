# backend/bookpage/services/errors.py
"""
Business errors of the booking flow.

Kinds are distinguished by class (and `code`), never by message text, so the
public flow can tell "re-fetch slots" (ConflictError) from "fix the form"
(ValidationFailedError).
"""


class BookingError(Exception):
    """Base class; rendered as {"error": code, "detail": detail}."""

    http_status = 400
    code = "booking_error"

    def __init__(self, code: str | None = None, detail: str | None = None):
        if code is not None:
            self.code = code
        self.detail = detail or self.code
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.detail}


class ValidationFailedError(BookingError):
    """Prospect or qualification input is missing or malformed."""

    http_status = 422
    code = "validation_failed"

    def __init__(self, fields: dict[str, str], detail: str | None = None):
        self.fields = fields
        super().__init__(detail=detail or "Invalid booking data")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "fields": self.fields}


class ConflictError(BookingError):
    """The slot is no longer offerable; the caller must re-fetch slots."""

    http_status = 409
    code = "slot_unavailable"


class NotFoundError(BookingError):
    """Unknown (page_not_found) or inactive (page_inactive) booking page."""

    http_status = 404
    code = "page_not_found"


class StorageError(BookingError):
    """The store could not be read or written."""

    http_status = 503
    code = "storage_error"
