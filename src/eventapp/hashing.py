"""Salted, cost-tunable password hashing backed by Argon2id."""

import logging

from argon2 import PasswordHasher as Argon2Hasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from argon2.exceptions import HashingError as Argon2HashingError

from .config import Settings
from .errors import HashingError

logger = logging.getLogger(__name__)


class PasswordHasher:
    """Hash and verify passwords.

    Each call to :meth:`hash` draws a fresh random salt, so hashing the
    same password twice yields two different strings that both verify.
    The comparison inside :meth:`verify` is done by libargon2 in
    constant time.
    """

    def __init__(self, time_cost: int = 3, memory_cost: int = 65536, parallelism: int = 4):
        self._hasher = Argon2Hasher(
            time_cost=time_cost, memory_cost=memory_cost, parallelism=parallelism
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "PasswordHasher":
        return cls(
            time_cost=settings.argon2_time_cost,
            memory_cost=settings.argon2_memory_cost,
            parallelism=settings.argon2_parallelism,
        )

    def hash(self, password: str) -> str:
        try:
            return self._hasher.hash(password)
        except (Argon2HashingError, ValueError, OverflowError) as exc:
            logger.error("password hashing failed: %s", type(exc).__name__)
            raise HashingError("Password hashing failed") from exc

    def verify(self, password: str, password_hash: str) -> bool:
        """Return True when ``password`` matches ``password_hash``.

        A wrong password is a plain ``False``. A stored hash that cannot be
        parsed raises :class:`HashingError`.
        """
        try:
            return self._hasher.verify(password_hash, password)
        except VerifyMismatchError:
            return False
        except (InvalidHashError, VerificationError) as exc:
            raise HashingError("Stored password hash is invalid") from exc

    def needs_rehash(self, password_hash: str) -> bool:
        try:
            return self._hasher.check_needs_rehash(password_hash)
        except (InvalidHashError, ValueError) as exc:
            raise HashingError("Stored password hash is invalid") from exc
