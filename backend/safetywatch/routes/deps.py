from typing import Optional

from fastapi import Header, HTTPException

from safetywatch.errors import SafetyWatchError
from safetywatch.models.user import ActingUser
from safetywatch.services import auth as auth_service


def to_http(e: SafetyWatchError) -> HTTPException:
    detail = {"error": e.code, "message": str(e)}
    deleted_count = getattr(e, "deleted_count", None)
    if deleted_count is not None:
        detail["deleted_count"] = deleted_count
    return HTTPException(status_code=e.status_code, detail=detail)


def bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def acting_user(authorization: Optional[str] = Header(None)) -> Optional[ActingUser]:
    """Anonymous callers come through as None; the services decide what that allows."""
    try:
        return auth_service.current_user(bearer_token(authorization))
    except SafetyWatchError as e:
        raise to_http(e)
