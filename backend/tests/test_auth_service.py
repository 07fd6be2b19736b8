import pytest

from conftest import client_error
from safetywatch import config
from safetywatch.errors import AuthUnavailable, Unauthenticated, ValidationError
from safetywatch.models.user import UserSignIn, UserSignUp, _is_strong_password
from safetywatch.services import auth


def test_current_user_resolves_admin(cognito):
    user = auth.current_user("admin-token")
    assert user.id == "admin-1"
    assert user.email == "admin@example.com"
    assert user.is_admin is True


def test_current_user_regular_member(cognito):
    user = auth.current_user("user-token")
    assert user.id == "u1" and user.is_admin is False


@pytest.mark.parametrize("token", [None, "", "expired-token"])
def test_current_user_without_valid_token_is_anonymous(cognito, token):
    assert auth.current_user(token) is None


def test_current_user_without_pool_fails_loudly(cognito, monkeypatch):
    monkeypatch.setattr(config, "COGNITO_USER_POOL_ID", None)
    with pytest.raises(RuntimeError):
        auth.current_user("admin-token")
    # a token that does not resolve never reaches the admin check
    assert auth.current_user("expired-token") is None


def test_current_user_provider_outage(cognito, monkeypatch):
    def down(**_kw):
        raise client_error("InternalErrorException", "GetUser")

    monkeypatch.setattr(cognito, "get_user", down)
    with pytest.raises(AuthUnavailable):
        auth.current_user("admin-token")


def test_sign_in_and_out(cognito):
    token = auth.sign_in(UserSignIn(email="u1@example.com", password="Correct-Horse-9"))
    assert auth.current_user(token.access_token).id == "u1"

    auth.sign_out(token.access_token)
    assert auth.current_user(token.access_token) is None

    with pytest.raises(Unauthenticated):
        auth.sign_out(token.access_token)


def test_sign_in_bad_password(cognito):
    with pytest.raises(Unauthenticated):
        auth.sign_in(UserSignIn(email="u1@example.com", password="wrong-password"))


@pytest.mark.parametrize("code", ["TooManyRequestsException", "InternalErrorException", "ResourceNotFoundException"])
def test_sign_in_provider_failure_is_unavailable(cognito, monkeypatch, code):
    def failing(**_kw):
        raise client_error(code, "InitiateAuth")

    monkeypatch.setattr(cognito, "initiate_auth", failing)
    with pytest.raises(AuthUnavailable):
        auth.sign_in(UserSignIn(email="u1@example.com", password="Correct-Horse-9"))


def test_sign_in_unconfirmed_user_is_rejected(cognito, monkeypatch):
    def unconfirmed(**_kw):
        raise client_error("UserNotConfirmedException", "InitiateAuth")

    monkeypatch.setattr(cognito, "initiate_auth", unconfirmed)
    with pytest.raises(Unauthenticated):
        auth.sign_in(UserSignIn(email="u1@example.com", password="Correct-Horse-9"))


def test_sign_up_enforces_password_policy(cognito):
    with pytest.raises(ValidationError):
        auth.sign_up(UserSignUp(email="new@example.com", password="shortpass1"))


def test_sign_up_registers(cognito):
    sub = auth.sign_up(UserSignUp(email="new@example.com", password="Str0ng&Secret!", phone="+15551234567"))
    assert sub
    with pytest.raises(ValidationError):
        auth.sign_up(UserSignUp(email="new@example.com", password="Str0ng&Secret!"))


def test_sign_up_provider_failure_is_unavailable(cognito, monkeypatch):
    def failing(**_kw):
        raise client_error("InternalErrorException", "SignUp")

    monkeypatch.setattr(cognito, "sign_up", failing)
    with pytest.raises(AuthUnavailable):
        auth.sign_up(UserSignUp(email="new@example.com", password="Str0ng&Secret!"))


@pytest.mark.parametrize("code, expected", [
    ("CodeMismatchException", ValidationError),
    ("ExpiredCodeException", ValidationError),
    ("TooManyRequestsException", AuthUnavailable),
])
def test_confirm_sign_up_error_mapping(cognito, monkeypatch, code, expected):
    def failing(**_kw):
        raise client_error(code, "ConfirmSignUp")

    monkeypatch.setattr(cognito, "confirm_sign_up", failing, raising=False)
    with pytest.raises(expected):
        auth.confirm_sign_up("u1@example.com", "123456")


def test_resend_code_throttled_is_unavailable(cognito, monkeypatch):
    def failing(**_kw):
        raise client_error("LimitExceededException", "ResendConfirmationCode")

    monkeypatch.setattr(cognito, "resend_confirmation_code", failing, raising=False)
    with pytest.raises(AuthUnavailable):
        auth.resend_confirmation_code("u1@example.com")


def test_sign_up_requires_client_id(cognito, monkeypatch):
    monkeypatch.setattr(config, "COGNITO_APP_CLIENT_ID", None)
    with pytest.raises(RuntimeError):
        auth.sign_up(UserSignUp(email="new@example.com", password="Str0ng&Secret!"))


@pytest.mark.parametrize("password, ok", [
    ("Str0ng&Secret!", True),
    ("short1!A", False),
    ("alllowercase1!x", False),
    ("Jane.Doe-2024!", False),
])
def test_password_policy(password, ok):
    assert (_is_strong_password(password, "jane.doe@example.com") is None) is ok
