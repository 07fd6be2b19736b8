# backend/safetywatch/services/auth.py
import logging
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from safetywatch import config
from safetywatch.errors import (
    AuthorizationError,
    AuthUnavailable,
    Unauthenticated,
    ValidationError,
)
from safetywatch.models.user import ActingUser, UserSignIn, UserSignUp, UserToken, _is_strong_password

log = logging.getLogger(__name__)

cognito = boto3.client("cognito-idp", region_name=config.AWS_REGION)

# Cognito answers these when the token itself is bad, not when Cognito is down
_REJECTED_TOKEN_CODES = {"NotAuthorizedException", "UserNotFoundException", "InvalidParameterException"}

# caller mistakes during sign-up, confirmation and code resend
_REJECTED_INPUT_CODES = {
    "UsernameExistsException",
    "AliasExistsException",
    "InvalidPasswordException",
    "InvalidParameterException",
    "CodeMismatchException",
    "ExpiredCodeException",
    "UserNotFoundException",
    "NotAuthorizedException",
}

# wrong or unusable credentials on sign-in
_REJECTED_CREDENTIAL_CODES = {
    "NotAuthorizedException",
    "UserNotFoundException",
    "UserNotConfirmedException",
    "PasswordResetRequiredException",
    "InvalidParameterException",
}


def _error_message(e: ClientError, default: str) -> str:
    return e.response.get("Error", {}).get("Message", default)


def _error_code(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Code", "")


def _provider_error(e: ClientError, rejected: set, error_cls, default: str):
    """Map a Cognito ClientError to the caller-facing error or to AuthUnavailable."""
    if _error_code(e) in rejected:
        return error_cls(_error_message(e, default))
    log.exception("Cognito %s failed", e.operation_name)
    return AuthUnavailable(_error_message(e, str(e)))


# ----------------------------
# Capability checks
# ----------------------------

def require_user(acting_user: Optional[ActingUser]) -> ActingUser:
    if acting_user is None:
        raise Unauthenticated("Sign in required.")
    return acting_user


def require_admin(acting_user: Optional[ActingUser]) -> ActingUser:
    user = require_user(acting_user)
    if not user.is_admin:
        raise AuthorizationError("Admin capability required.")
    return user


# ----------------------------
# Sign-up / sign-in flows
# ----------------------------

def sign_up(user: UserSignUp) -> str:
    """
    Register a user in Cognito using email as the username.
    The user will receive a verification code depending on pooled settings.
    """
    # Strength check (pydantic already enforces min length; we add stricter rules)
    err = _is_strong_password(user.password, user.email)
    if err:
        raise ValidationError(err)

    attributes = [
        {"Name": "email", "Value": user.email},
        {"Name": "name", "Value": user.full_name or ""},
    ]
    if user.phone:
        attributes.append({"Name": "phone_number", "Value": user.phone})

    try:
        resp = cognito.sign_up(
            ClientId=config.require_app_client_id(),
            Username=user.email,   # using email as the Cognito username
            Password=user.password,
            UserAttributes=attributes,
        )
    except ClientError as e:
        raise _provider_error(e, _REJECTED_INPUT_CODES, ValidationError, str(e)) from e
    except BotoCoreError as e:
        raise AuthUnavailable(str(e)) from e
    log.info("Registered user %s", user.email)
    return resp.get("UserSub", "")


def confirm_sign_up(email: str, code: str) -> None:
    """Confirm a newly registered user with the verification code."""
    try:
        cognito.confirm_sign_up(ClientId=config.require_app_client_id(), Username=email, ConfirmationCode=code)
    except ClientError as e:
        raise _provider_error(e, _REJECTED_INPUT_CODES, ValidationError, str(e)) from e
    except BotoCoreError as e:
        raise AuthUnavailable(str(e)) from e


def resend_confirmation_code(email: str) -> None:
    try:
        cognito.resend_confirmation_code(ClientId=config.require_app_client_id(), Username=email)
    except ClientError as e:
        raise _provider_error(e, _REJECTED_INPUT_CODES, ValidationError, str(e)) from e
    except BotoCoreError as e:
        raise AuthUnavailable(str(e)) from e


def sign_in(credentials: UserSignIn) -> UserToken:
    """
    USER_PASSWORD_AUTH flow (be sure your App Client enables this flow).
    """
    try:
        resp = cognito.initiate_auth(
            ClientId=config.require_app_client_id(),
            AuthFlow="USER_PASSWORD_AUTH",
            AuthParameters={
                "USERNAME": credentials.email,   # we use email as username
                "PASSWORD": credentials.password,
            },
        )
    except ClientError as e:
        raise _provider_error(e, _REJECTED_CREDENTIAL_CODES, Unauthenticated, "Authentication failed") from e
    except BotoCoreError as e:
        raise AuthUnavailable(str(e)) from e

    tokens = resp.get("AuthenticationResult", {})
    return UserToken(
        access_token=tokens.get("AccessToken", ""),
        refresh_token=tokens.get("RefreshToken", ""),
        id_token=tokens.get("IdToken", ""),
        expires_in=tokens.get("ExpiresIn", 3600),
    )


# ----------------------------
# Session
# ----------------------------

def is_admin_username(username: str) -> bool:
    """True when `username` belongs to the configured admin group."""
    resp = cognito.admin_list_groups_for_user(
        Username=username,
        UserPoolId=config.require_user_pool_id(),
    )
    return any(g.get("GroupName") == config.COGNITO_ADMIN_GROUP for g in resp.get("Groups", []))


def current_user(access_token: Optional[str]) -> Optional[ActingUser]:
    """
    Resolve an access token to the acting user. Returns None for a missing,
    expired or revoked token.
    """
    if not access_token:
        return None

    try:
        resp = cognito.get_user(AccessToken=access_token)
        attrs = {a["Name"]: a["Value"] for a in resp.get("UserAttributes", [])}
        username = resp["Username"]
        admin = is_admin_username(username)
    except ClientError as e:
        if _error_code(e) in _REJECTED_TOKEN_CODES:
            return None
        log.exception("Cognito get_user failed")
        raise AuthUnavailable(_error_message(e, str(e))) from e
    except BotoCoreError as e:
        log.exception("Cognito get_user failed")
        raise AuthUnavailable(str(e)) from e

    return ActingUser(id=attrs.get("sub", username), email=attrs.get("email"), is_admin=admin)


def sign_out(access_token: str) -> None:
    """Revoke every token issued to this user."""
    try:
        cognito.global_sign_out(AccessToken=access_token)
    except ClientError as e:
        if _error_code(e) in _REJECTED_TOKEN_CODES:
            raise Unauthenticated(_error_message(e, "Not signed in")) from e
        raise AuthUnavailable(_error_message(e, str(e))) from e
    except BotoCoreError as e:
        raise AuthUnavailable(str(e)) from e
