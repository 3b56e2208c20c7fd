"""Credential store: user registration, lookup and password authentication."""

import logging
from functools import cached_property

from prometheus_client import Counter
from sqlalchemy.exc import IntegrityError

from .database import Database
from .errors import DuplicateEmailError, InvalidCredentialsError, ValidationError
from .hashing import PasswordHasher
from .models.user import User

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
MIN_NAME_LENGTH = 2

USERS_REGISTERED_COUNTER = Counter("users_registered_total", "Total users registered")
LOGIN_FAILURE_COUNTER = Counter("login_failures_total", "Total rejected login attempts")


def normalize_email(email: str) -> str:
    return email.strip().lower()


class CredentialStore:
    """Owns user identities and their password hashes.

    Plaintext passwords only ever pass through :meth:`register` and
    :meth:`authenticate` on their way to the hasher.
    """

    def __init__(self, db: Database, hasher: PasswordHasher):
        self._db = db
        self._hasher = hasher

    @cached_property
    def _decoy_hash(self) -> str:
        # verified against when the email is unknown so both failure paths cost the same
        return self._hasher.hash("decoy-password-for-unknown-users")

    def register(self, email: str, name: str, password: str) -> User:
        email = normalize_email(email)
        name = name.strip()
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if len(name) < MIN_NAME_LENGTH:
            raise ValidationError(f"Name must be at least {MIN_NAME_LENGTH} characters")
        password_hash = self._hasher.hash(password)
        with self._db.session() as session:
            if session.query(User.id).filter(User.email == email).first():
                logger.warning("registration rejected, email already registered")
                raise DuplicateEmailError()
            user = User(email=email, name=name, password_hash=password_hash)
            session.add(user)
            try:
                session.commit()
            except IntegrityError as exc:
                # lost a race against a concurrent registration
                logger.warning("registration rejected by unique constraint on email")
                raise DuplicateEmailError() from exc
        USERS_REGISTERED_COUNTER.inc()
        logger.info("registered user id=%s", user.id)
        return user

    def authenticate(self, email: str, password: str) -> User:
        user = self.get_by_email(email)
        if user is None:
            self._hasher.verify(password, self._decoy_hash)
            LOGIN_FAILURE_COUNTER.inc()
            logger.info("login failed: unknown email")
            raise InvalidCredentialsError()
        if not self._hasher.verify(password, user.password_hash):
            LOGIN_FAILURE_COUNTER.inc()
            logger.info("login failed: wrong password for user id=%s", user.id)
            raise InvalidCredentialsError()
        if self._hasher.needs_rehash(user.password_hash):
            self._rehash(user, password)
        return user

    def _rehash(self, user: User, password: str) -> None:
        """Store a fresh hash for a user whose hash predates the current cost settings."""
        password_hash = self._hasher.hash(password)
        with self._db.session() as session:
            session.query(User).filter(User.id == user.id).update(
                {User.password_hash: password_hash}
            )
            session.commit()
        user.password_hash = password_hash
        logger.info("rehashed password for user id=%s", user.id)

    def get(self, user_id: int) -> User | None:
        with self._db.session() as session:
            return session.get(User, user_id)

    def get_by_email(self, email: str) -> User | None:
        with self._db.session() as session:
            return session.query(User).filter(User.email == normalize_email(email)).first()
