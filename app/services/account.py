"""Account lifecycle service.

Each operation is a request-scoped read-modify-write against the ``user``
table and commits before returning. Failures are raised as ``AccountError``
subclasses and never retried here.
"""

import logging
from datetime import datetime

from fastapi import UploadFile
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.config import get_settings
from app.errors import BadRequest, Conflict, InvalidOrExpiredToken, MailFailed, NotFound, Unauthorized, ValidationFailed
from app.models.user import User
from app.schemas.user import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    SignupRequest,
    UpdateProfileRequest,
    name_errors,
    password_errors,
)
from app.services.avatar import get_avatar_service
from app.services.mail import get_mail_service
from app.services.password import get_password_hasher
from app.services.reset_token import hash_reset_token, issue_reset_token

logger = logging.getLogger("lms_accounts")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def has_upload(upload: UploadFile | None) -> bool:
    """Browsers send an empty, unnamed part when the file input is left blank."""
    return upload is not None and bool(upload.filename)


class AccountService:
    """Signup, login, password management and profile maintenance."""

    def get_by_email(self, db: Session, email: str) -> User | None:
        return db.query(User).filter(User.email == normalize_email(email)).first()

    def get_by_id(self, db: Session, user_id: int) -> User | None:
        return db.query(User).filter(User.id == user_id).first()

    async def signup(self, db: Session, data: SignupRequest, avatar: UploadFile | None = None) -> User:
        """Create an account, optionally with an uploaded avatar."""
        if not data.is_complete():
            raise BadRequest()

        # Best-effort; the unique index on email is the real guarantee.
        if self.get_by_email(db, data.email):
            raise Conflict()

        errors = data.validation_errors()
        if errors:
            raise ValidationFailed(", ".join(errors))

        password_hash = await run_in_threadpool(get_password_hasher().hash, data.password)
        user = User(
            name=data.name.strip(),
            email=normalize_email(data.email),
            password_hash=password_hash,
            avatar_asset_id=None,
            avatar_url=get_settings().DEFAULT_AVATAR_URL,
        )

        avatars = get_avatar_service()
        new_asset_id = None
        if has_upload(avatar):
            stored = await avatars.upload(avatar)  # type: ignore[arg-type]
            new_asset_id = stored.asset_id
            user.avatar_asset_id = stored.asset_id
            user.avatar_url = stored.url

        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            avatars.release_quietly(new_asset_id)
            raise Conflict() from None
        except SQLAlchemyError:
            db.rollback()
            avatars.release_quietly(new_asset_id)
            raise
        db.refresh(user)

        logger.info("User %s signed up", user.id)
        return user

    def login(self, db: Session, data: LoginRequest) -> User:
        """Check credentials. Token issuance is left to the caller."""
        if not data.email.strip() or not data.password:
            raise BadRequest()

        user = self.get_by_email(db, data.email)
        if not user:
            raise NotFound()

        if not get_password_hasher().verify(data.password, user.password_hash):
            logger.info("Rejected login for user %s", user.id)
            raise Unauthorized("Invalid email or password")

        return user

    def get_profile(self, db: Session, user_id: int) -> User:
        user = self.get_by_id(db, user_id)
        if not user:
            raise NotFound()
        return user

    async def forgot_password(self, db: Session, data: ForgotPasswordRequest) -> User:
        """Persist a reset token and e-mail its plaintext.

        If the e-mail cannot be sent, the stored token is cleared again so no
        valid token exists that the user never received.
        """
        if not data.email.strip():
            raise BadRequest("Email is required")

        user = self.get_by_email(db, data.email)
        if not user:
            raise NotFound()

        token = issue_reset_token()
        user.reset_token_hash = token.token_hash
        user.reset_token_expires_at = token.expires_at
        db.commit()

        reset_url = f"{get_settings().FRONTEND_URL.rstrip('/')}/reset-password/{token.plaintext}"
        try:
            await get_mail_service().send_password_reset(user.email, user.name, reset_url)
        except MailFailed:
            user.clear_reset_token()
            db.commit()
            logger.warning("Rolled back reset token for user %s after mail failure", user.id)
            raise

        logger.info("Password reset e-mail sent to user %s", user.id)
        return user

    def reset_password(self, db: Session, reset_token: str, data: ResetPasswordRequest) -> User:
        """Consume a reset token and set a new password."""
        if not data.password:
            raise BadRequest("Password is required")

        errors = password_errors(data.password)
        if errors:
            raise ValidationFailed(", ".join(errors))

        user = (
            db.query(User)
            .filter(
                User.reset_token_hash == hash_reset_token(reset_token),
                User.reset_token_expires_at > datetime.utcnow(),
            )
            .first()
        )
        if not user:
            raise InvalidOrExpiredToken()

        user.password_hash = get_password_hasher().hash(data.password)
        user.clear_reset_token()
        db.commit()

        logger.info("Password reset completed for user %s", user.id)
        return user

    def change_password(self, db: Session, user_id: int, data: ChangePasswordRequest) -> User:
        if not data.old_password or not data.new_password:
            raise BadRequest("All fields are required")

        user = self.get_by_id(db, user_id)
        if not user:
            raise NotFound()

        hasher = get_password_hasher()
        if not hasher.verify(data.old_password, user.password_hash):
            raise Unauthorized("Invalid old password")

        errors = password_errors(data.new_password)
        if errors:
            raise ValidationFailed(", ".join(errors))

        user.password_hash = hasher.hash(data.new_password)
        db.commit()

        logger.info("Password changed for user %s", user.id)
        return user

    async def update_profile(
        self, db: Session, user_id: int, data: UpdateProfileRequest, avatar: UploadFile | None = None
    ) -> User:
        """Update name and/or avatar.

        A new avatar is uploaded first, the reference swapped and committed,
        and only then is the old asset destroyed. A failed upload leaves the
        current avatar untouched.
        """
        user = self.get_by_id(db, user_id)
        if not user:
            raise NotFound()

        new_name = data.name.strip() if data.name else ""
        if new_name:
            errors = name_errors(new_name)
            if errors:
                raise ValidationFailed(", ".join(errors))

        # Nothing on the user changes until the upload has succeeded.
        avatars = get_avatar_service()
        stored = await avatars.upload(avatar) if has_upload(avatar) else None  # type: ignore[arg-type]

        if new_name:
            user.name = new_name
        old_asset_id = new_asset_id = None
        if stored:
            old_asset_id = user.avatar_asset_id
            new_asset_id = stored.asset_id
            user.avatar_asset_id = stored.asset_id
            user.avatar_url = stored.url

        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            avatars.release_quietly(new_asset_id)
            raise
        db.refresh(user)

        if old_asset_id:
            avatars.release_quietly(old_asset_id)
            logger.info("Replaced avatar for user %s", user.id)
        return user

    def delete_profile(self, db: Session, user_id: int) -> None:
        """Delete the account and release its avatar asset."""
        user = self.get_by_id(db, user_id)
        if not user:
            raise BadRequest("User does not exist")

        asset_id = user.avatar_asset_id
        db.delete(user)
        db.commit()

        get_avatar_service().release_quietly(asset_id)
        logger.info("Deleted user %s", user_id)


_account_service: AccountService | None = None


def get_account_service() -> AccountService:
    """Get singleton account service instance."""
    global _account_service
    if _account_service is None:
        _account_service = AccountService()
    return _account_service
