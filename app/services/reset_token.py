"""Password reset token issuing."""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from app.config import get_settings

RESET_TOKEN_BYTES = 20


@dataclass(frozen=True)
class ResetToken:
    """A freshly issued reset token. Only ``token_hash`` is ever persisted."""

    plaintext: str
    token_hash: str
    expires_at: datetime


def hash_reset_token(plaintext: str) -> str:
    """Deterministic SHA-256 digest so a presented token can be looked up by value."""
    return hashlib.sha256(plaintext.encode("utf-8")).hexdigest()


def issue_reset_token(expire_minutes: int | None = None) -> ResetToken:
    """Generate a random reset token valid for ``expire_minutes`` (defaults to settings)."""
    if expire_minutes is None:
        expire_minutes = get_settings().RESET_TOKEN_EXPIRE_MINUTES
    plaintext = secrets.token_hex(RESET_TOKEN_BYTES)
    return ResetToken(
        plaintext=plaintext,
        token_hash=hash_reset_token(plaintext),
        expires_at=datetime.utcnow() + timedelta(minutes=expire_minutes),
    )
