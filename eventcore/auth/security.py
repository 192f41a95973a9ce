from typing import Optional
import logging

from passlib.context import CryptContext

from eventcore.config import settings
from eventcore.errors import HashFailure

logger = logging.getLogger(__name__)


class IdentityStore:
    """Salted, deliberately slow password hashing backed by bcrypt.

    The hash string carries its own salt and work factor, so ``verify`` needs
    nothing but the stored value. Plaintext is never logged or returned.
    """

    def __init__(self, rounds: Optional[int] = None) -> None:
        self.rounds = rounds if rounds is not None else settings.BCRYPT_ROUNDS
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=self.rounds,
            bcrypt__min_rounds=self.rounds,
        )

    def hash(self, password: str) -> str:
        try:
            return self._context.hash(password)
        except Exception as e:
            logger.error(f"Password hashing failed: {type(e).__name__}")
            raise HashFailure(f"password hashing failed ({type(e).__name__})") from e

    def verify(self, password: str, password_hash: str) -> bool:
        try:
            return self._context.verify(password, password_hash)
        except (ValueError, TypeError):
            # malformed or foreign hash
            return False

    def needs_rehash(self, password_hash: str) -> bool:
        return self._context.needs_update(password_hash)


identity_store = IdentityStore()
