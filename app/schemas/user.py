"""Pydantic schemas for account endpoints.

Request fields default to empty so that missing input reaches the service and
is reported as ``BadRequest`` rather than a framework validation error.
"""

import re
from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
NAME_MIN_LENGTH = 3
NAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_BYTES = 72  # bcrypt ignores anything longer


def name_errors(name: str) -> list[str]:
    name = name.strip()
    if len(name) < NAME_MIN_LENGTH:
        return [f"Name must be at least {NAME_MIN_LENGTH} characters"]
    if len(name) > NAME_MAX_LENGTH:
        return [f"Name must be at most {NAME_MAX_LENGTH} characters"]
    return []


def email_errors(email: str) -> list[str]:
    if not EMAIL_PATTERN.match(email.strip()):
        return ["Please enter a valid email address"]
    return []


def password_errors(password: str) -> list[str]:
    if len(password) < PASSWORD_MIN_LENGTH:
        return [f"Password must be at least {PASSWORD_MIN_LENGTH} characters"]
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        return [f"Password must be at most {PASSWORD_MAX_BYTES} bytes"]
    return []


class SignupRequest(BaseModel):
    name: str = ""
    email: str = ""
    password: str = ""

    def is_complete(self) -> bool:
        return bool(self.name.strip() and self.email.strip() and self.password)

    def validation_errors(self) -> list[str]:
        return name_errors(self.name) + email_errors(self.email) + password_errors(self.password)


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class ForgotPasswordRequest(BaseModel):
    email: str = ""


class ResetPasswordRequest(BaseModel):
    password: str = ""


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(default="", validation_alias=AliasChoices("old_password", "oldPassword"))
    new_password: str = Field(default="", validation_alias=AliasChoices("new_password", "newPassword"))


class UpdateProfileRequest(BaseModel):
    name: str | None = None


class AvatarResponse(BaseModel):
    asset_id: str | None
    url: str


class UserResponse(BaseModel):
    """Public projection of a user. Credentials and reset fields never appear here."""

    id: int
    name: str
    email: str
    avatar: AvatarResponse
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            avatar=AvatarResponse(asset_id=user.avatar_asset_id, url=user.avatar_url),
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class UserEnvelope(MessageResponse):
    user: UserResponse
