# backend/safetywatch/errors.py
from typing import Optional


class SafetyWatchError(Exception):
    """Base for every error the services raise. Routes map it to an HTTP status."""

    status_code = 400
    code = "error"


class Unauthenticated(SafetyWatchError):
    status_code = 401
    code = "unauthenticated"


class AuthorizationError(SafetyWatchError):
    status_code = 403
    code = "forbidden"


class ValidationError(SafetyWatchError):
    status_code = 422
    code = "validation_error"


class NotFoundError(SafetyWatchError):
    status_code = 404
    code = "not_found"


class InvalidTransition(SafetyWatchError):
    status_code = 409
    code = "invalid_transition"


class DeleteNotPermitted(SafetyWatchError):
    status_code = 409
    code = "delete_not_permitted"


class StoreUnavailable(SafetyWatchError):
    status_code = 503
    code = "store_unavailable"

    def __init__(self, message: str, deleted_count: Optional[int] = None):
        super().__init__(message)
        # only set when a bulk delete was cut short
        self.deleted_count = deleted_count


class AuthUnavailable(SafetyWatchError):
    status_code = 503
    code = "auth_unavailable"
