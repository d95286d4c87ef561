"""Password hashing service."""

import bcrypt

from app.config import get_settings


class PasswordHasher:
    """Salted one-way hashing with a fixed bcrypt cost factor."""

    def __init__(self, rounds: int | None = None) -> None:
        self.rounds = rounds if rounds is not None else get_settings().BCRYPT_ROUNDS

    def hash(self, plaintext: str) -> str:
        """Hash a plaintext password. Each call uses a fresh salt."""
        return bcrypt.hashpw(plaintext.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plaintext: str, digest: str) -> bool:
        """Check a plaintext password against a stored digest.

        Malformed digests raise instead of reading as a mismatch.
        """
        return bcrypt.checkpw(plaintext.encode("utf-8"), digest.encode("utf-8"))


_password_hasher: PasswordHasher | None = None


def get_password_hasher() -> PasswordHasher:
    """Get singleton password hasher instance."""
    global _password_hasher
    if _password_hasher is None:
        _password_hasher = PasswordHasher()
    return _password_hasher
