"""
Admissions Portal - Auth API
admissions/api/auth.py

Registration, login/logout, profile and password reset.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from admissions.api.deps import get_current_principal, request_meta
from admissions.config import settings
from admissions.database import get_db
from admissions.schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    ResetPasswordRequest,
    UserResponse,
)
from admissions.schemas.common import success_response
from admissions.services.access import Principal
from admissions.services.accounts import AccountService
from admissions.services.audit import RequestMeta

router = APIRouter(prefix="/auth")


def _user_payload(user) -> dict:
    return UserResponse.model_validate(user).model_dump(mode="json")


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    data: RegisterRequest,
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    # Sync handlers here: password hashing and reset emails block
    user, token = AccountService(db, meta).register(data)
    return success_response({"token": token, "user": _user_payload(user)})


@router.post("/login")
def login(
    data: LoginRequest,
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    user, token = AccountService(db, meta).login(data.email, data.password)
    return success_response({"token": token, "user": _user_payload(user)})


@router.post("/logout")
async def logout(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    AccountService(db).logout(principal.token_hash)
    return success_response(message="Logged out successfully")


@router.get("/me")
async def me(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    user = AccountService(db).get_user(principal.user_id)
    return success_response(_user_payload(user))


@router.put("/profile")
async def update_profile(
    data: ProfileUpdate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    user = AccountService(db, meta).update_profile(principal.user_id, data)
    return success_response(_user_payload(user), message="Profile updated")


@router.post("/forgot-password")
def forgot_password(
    data: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    token = AccountService(db, meta).forgot_password(data.email)

    # Development convenience; production only sends the email
    if settings.debug:
        return success_response({"reset_token": token}, message="Password reset email sent")
    return success_response(message="Password reset email sent")


@router.post("/reset-password")
def reset_password(
    data: ResetPasswordRequest,
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    AccountService(db, meta).reset_password(data.token, data.password)
    return success_response(message="Password reset successful")
