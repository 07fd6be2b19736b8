from typing import Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, EmailStr

from safetywatch.errors import SafetyWatchError, Unauthenticated
from safetywatch.models.user import ActingUser, UserSignIn, UserSignUp, UserToken
from safetywatch.routes.deps import acting_user, bearer_token, to_http
from safetywatch.services import auth as auth_service

router = APIRouter(prefix="/user", tags=["user"])

class ConfirmBody(BaseModel):
    email: EmailStr
    code: str

@router.post("/confirm", status_code=204, summary="Confirm a newly registered user")
def confirm_user(body: ConfirmBody):
    try:
        auth_service.confirm_sign_up(body.email, body.code)
    except SafetyWatchError as e:
        raise to_http(e)
    return Response(status_code=204)

class ResendBody(BaseModel):
    email: EmailStr

@router.post("/resend-code", status_code=204, summary="Resend the confirmation code")
def resend_code(body: ResendBody):
    try:
        auth_service.resend_confirmation_code(body.email)
    except SafetyWatchError as e:
        raise to_http(e)
    return Response(status_code=204)


@router.post("/signup", status_code=201)
def register_user(user: UserSignUp):
    try:
        user_sub = auth_service.sign_up(user)
    except SafetyWatchError as e:
        raise to_http(e)
    return {
        "message": "User registered successfully - Check email for confirmation code",
        "user_sub": user_sub
    }

@router.post("/login", response_model=UserToken)
def login(credentials: UserSignIn):
    try:
        return auth_service.sign_in(credentials)
    except SafetyWatchError as e:
        raise to_http(e)


@router.get("/me", response_model=ActingUser)
def me(user: Optional[ActingUser] = Depends(acting_user)):
    if user is None:
        raise to_http(Unauthenticated("Sign in required."))
    return user


@router.post("/logout", status_code=204)
def logout(token: Optional[str] = Depends(bearer_token)):
    try:
        if not token:
            raise Unauthenticated("Sign in required.")
        auth_service.sign_out(token)
    except SafetyWatchError as e:
        raise to_http(e)
    return Response(status_code=204)
