"""User model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from app.database import Base


class User(Base):
    """Learner account: credentials, avatar reference and outstanding reset token."""

    __tablename__ = "user"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=False)
    # The unique index is what guarantees one account per e-mail, not the service's pre-check.
    email = Column(String(256), unique=True, nullable=False, index=True)
    password_hash = Column(String(256), nullable=False)
    avatar_asset_id = Column(String(256), nullable=True)
    avatar_url = Column(String(512), nullable=False)
    reset_token_hash = Column(String(64), nullable=True, index=True)
    reset_token_expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def clear_reset_token(self) -> None:
        """Drop the outstanding reset token; both fields always move together."""
        self.reset_token_hash = None
        self.reset_token_expires_at = None
