# backend/safetywatch/services/users.py
"""
Admin user directory backed by the Cognito user pool.
"""
import logging
from typing import Any, Dict, List, Optional, Set

from botocore.exceptions import BotoCoreError, ClientError

from safetywatch import config
from safetywatch.errors import AuthorizationError, AuthUnavailable, NotFoundError
from safetywatch.models.user import ActingUser, UserRow
from safetywatch.services import auth
from safetywatch.services.auth import require_admin

log = logging.getLogger(__name__)


def _attrs(user: Dict[str, Any]) -> Dict[str, str]:
    return {a["Name"]: a["Value"] for a in user.get("Attributes", [])}


def _admin_usernames(pool_id: str) -> Set[str]:
    names: Set[str] = set()
    token: Optional[str] = None
    while True:
        kwargs = {"UserPoolId": pool_id, "GroupName": config.COGNITO_ADMIN_GROUP}
        if token:
            kwargs["NextToken"] = token
        resp = auth.cognito.list_users_in_group(**kwargs)
        names.update(u["Username"] for u in resp.get("Users", []))
        token = resp.get("NextToken")
        if not token:
            break
    return names


def _all_users(pool_id: str) -> List[Dict[str, Any]]:
    users: List[Dict[str, Any]] = []
    token: Optional[str] = None
    while True:
        kwargs = {"UserPoolId": pool_id}
        if token:
            kwargs["PaginationToken"] = token
        resp = auth.cognito.list_users(**kwargs)
        users.extend(resp.get("Users", []))
        token = resp.get("PaginationToken")
        if not token:
            break
    return users


def _find_by_sub(pool_id: str, user_id: str) -> Optional[Dict[str, Any]]:
    resp = auth.cognito.list_users(UserPoolId=pool_id, Filter=f'sub = "{user_id}"', Limit=1)
    users = resp.get("Users", [])
    return users[0] if users else None


def list_users(acting_user: Optional[ActingUser], *, search: Optional[str] = None) -> List[UserRow]:
    """Every user in the pool with its role, optionally filtered by email substring."""
    require_admin(acting_user)
    pool_id = config.require_user_pool_id()

    try:
        admins = _admin_usernames(pool_id)
        raw = _all_users(pool_id)
    except (ClientError, BotoCoreError) as e:
        log.exception("Cognito user listing failed")
        raise AuthUnavailable(str(e)) from e

    needle = (search or "").strip().lower()
    rows: List[UserRow] = []
    for u in raw:
        attrs = _attrs(u)
        email = attrs.get("email") or "Unknown"
        if needle and needle not in email.lower():
            continue
        rows.append(UserRow(
            id=attrs.get("sub", u["Username"]),
            email=email,
            role="admin" if u["Username"] in admins else "user",
        ))
    return rows


def remove_user(user_id: str, acting_user: Optional[ActingUser]) -> None:
    """Delete a non-admin account. Admin accounts are refused."""
    admin = require_admin(acting_user)
    pool_id = config.require_user_pool_id()

    # subs never contain these; they would break out of the list_users filter string
    if '"' in user_id or "\\" in user_id:
        raise NotFoundError(f"User {user_id} not found")

    try:
        found = _find_by_sub(pool_id, user_id)
        if found is None:
            raise NotFoundError(f"User {user_id} not found")
        username = found["Username"]
        if auth.is_admin_username(username):
            raise AuthorizationError("Admin accounts cannot be removed.")
        auth.cognito.admin_delete_user(UserPoolId=pool_id, Username=username)
    except (ClientError, BotoCoreError) as e:
        log.exception("Cognito user removal failed")
        raise AuthUnavailable(str(e)) from e

    log.info("User %s removed by %s", user_id, admin.id)
