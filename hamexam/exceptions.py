"""
Domain exceptions raised by the bookkeeping services

Each carries the HTTP status and error code used by the API exception handler.
"""
from typing import Optional


class HamExamError(Exception):
    """Base class for all service errors"""

    status_code = 500
    error_code = "internal_error"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(HamExamError):
    """Malformed input; nothing was written"""

    status_code = 400
    error_code = "validation_error"


class NotFoundError(HamExamError):
    status_code = 404
    error_code = "not_found"


class PermissionDenied(HamExamError):
    status_code = 403
    error_code = "forbidden"


class QuotaExceededError(HamExamError):
    """AI quota ceiling reached"""

    status_code = 403
    error_code = "quota_exceeded"

    def __init__(self, limit: int, used: int, requested: int):
        self.limit = limit
        self.used = used
        self.requested = requested
        available = max(limit - used, 0)
        super().__init__(
            f"AI quota exceeded. Limit: {limit}, used: {used}, "
            f"requested: {requested}, available: {available}"
        )


class InsufficientPointsError(HamExamError):
    status_code = 402
    error_code = "insufficient_points"


class ConflictError(HamExamError):
    """Unique-constraint violation on create or update"""

    status_code = 409
    error_code = "conflict"


class ConfigurationError(HamExamError):
    """A fixed design constant was exceeded"""

    status_code = 500
    error_code = "configuration_error"


class TransientStoreError(HamExamError):
    """Backing store unavailable"""

    status_code = 503
    error_code = "store_unavailable"
