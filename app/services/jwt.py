"""Session token service."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from app.config import get_settings
from app.errors import Unauthorized


@dataclass(frozen=True)
class SessionIdentity:
    """Identity carried by a verified session token."""

    user_id: int
    issued_at: datetime


class JWTService:
    """Handles session token creation and validation."""

    def __init__(self) -> None:
        settings = get_settings()
        self.secret_key = settings.JWT_SECRET_KEY
        self.algorithm = settings.JWT_ALGORITHM
        self.expire_days = settings.JWT_EXPIRE_DAYS

    @property
    def max_age_seconds(self) -> int:
        return self.expire_days * 24 * 60 * 60

    def create_token(self, user_id: int) -> str:
        """Create a signed session token for the given user."""
        issued_at = datetime.utcnow()
        payload = {
            "sub": str(user_id),
            "iat": issued_at,
            "exp": issued_at + timedelta(days=self.expire_days),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def decode_token(self, token: str) -> dict[str, Any] | None:
        """Decode and validate a token. Returns None if the signature is bad or it has expired."""
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None

    def verify_session_token(self, token: str) -> SessionIdentity:
        """Verify a session token and return its identity. Raises Unauthorized."""
        payload = self.decode_token(token)
        if not payload:
            raise Unauthorized("Invalid or expired token")
        try:
            user_id = int(payload["sub"])
            issued_at = datetime.utcfromtimestamp(int(payload["iat"]))
        except (KeyError, TypeError, ValueError):
            raise Unauthorized("Invalid or expired token") from None
        return SessionIdentity(user_id=user_id, issued_at=issued_at)


_jwt_service: JWTService | None = None


def get_jwt_service() -> JWTService:
    """Get singleton JWT service instance."""
    global _jwt_service
    if _jwt_service is None:
        _jwt_service = JWTService()
    return _jwt_service
