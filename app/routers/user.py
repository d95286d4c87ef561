"""Account API endpoints."""

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import CurrentUser, clear_auth_cookie, get_current_user, set_auth_cookie
from app.rate_limit import limiter
from app.schemas.user import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    ResetPasswordRequest,
    SignupRequest,
    UpdateProfileRequest,
    UserEnvelope,
    UserResponse,
)
from app.services.account import get_account_service
from app.services.jwt import get_jwt_service

router = APIRouter(prefix="/api/v1/user", tags=["User"])


@router.post("/signup", response_model=UserEnvelope, status_code=201)
@limiter.limit("5/minute")
async def signup(
    request: Request,
    response: Response,
    name: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    avatar: UploadFile | None = File(None),
    db: Session = Depends(get_db),
) -> UserEnvelope:
    """Create an account and start a session."""
    service = get_account_service()
    user = await service.signup(db, SignupRequest(name=name, email=email, password=password), avatar)

    set_auth_cookie(response, get_jwt_service().create_token(user.id))
    return UserEnvelope(message="User created successfully", user=UserResponse.from_user(user))


@router.post("/login", response_model=UserEnvelope)
@limiter.limit("10/minute")
def login(request: Request, response: Response, body: LoginRequest, db: Session = Depends(get_db)) -> UserEnvelope:
    """Authenticate and receive a session cookie."""
    service = get_account_service()
    user = service.login(db, body)

    set_auth_cookie(response, get_jwt_service().create_token(user.id))
    return UserEnvelope(message=f"Welcome back {user.name}", user=UserResponse.from_user(user))


@router.get("/logout", response_model=MessageResponse)
def logout(response: Response) -> MessageResponse:
    """Expire the session cookie."""
    clear_auth_cookie(response)
    return MessageResponse(message="User logged out successfully")


@router.get("/myprofile", response_model=UserEnvelope)
def get_profile(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)) -> UserEnvelope:
    service = get_account_service()
    profile = service.get_profile(db, user.user_id)
    return UserEnvelope(message="User details", user=UserResponse.from_user(profile))


@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit("3/minute")
async def forgot_password(
    request: Request, body: ForgotPasswordRequest, db: Session = Depends(get_db)
) -> MessageResponse:
    """E-mail a password reset link."""
    service = get_account_service()
    user = await service.forgot_password(db, body)
    return MessageResponse(message=f"Reset password email has been sent to {user.email} successfully")


@router.post("/reset/{reset_token}", response_model=MessageResponse)
@limiter.limit("5/minute")
def reset_password(
    request: Request, reset_token: str, body: ResetPasswordRequest, db: Session = Depends(get_db)
) -> MessageResponse:
    """Set a new password using the token from the reset e-mail."""
    service = get_account_service()
    service.reset_password(db, reset_token, body)
    return MessageResponse(message="Password reset successfully")


@router.put("/change-password", response_model=MessageResponse)
def change_password(
    body: ChangePasswordRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MessageResponse:
    service = get_account_service()
    service.change_password(db, user.user_id, body)
    return MessageResponse(message="Password changed successfully")


@router.put("/update", response_model=UserEnvelope)
async def update_profile(
    name: str | None = Form(None),
    avatar: UploadFile | None = File(None),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> UserEnvelope:
    """Update display name and/or avatar."""
    service = get_account_service()
    profile = await service.update_profile(db, user.user_id, UpdateProfileRequest(name=name), avatar)
    return UserEnvelope(message="Profile updated successfully", user=UserResponse.from_user(profile))


@router.delete("/delete-profile", response_model=MessageResponse)
def delete_profile(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)) -> MessageResponse:
    service = get_account_service()
    service.delete_profile(db, user.user_id)
    return MessageResponse(message="Profile deleted successfully")
