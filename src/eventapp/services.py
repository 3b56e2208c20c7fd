"""Service layer wiring: one instance of each component per application."""

import logging
from dataclasses import dataclass

from .attendance import AttendanceManager
from .config import Settings
from .credentials import CredentialStore
from .database import Database
from .events import EventRepository
from .hashing import PasswordHasher
from .policy import EventAccessPolicy, build_policy
from .tokens import TokenIssuer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Services:
    settings: Settings
    db: Database
    hasher: PasswordHasher
    tokens: TokenIssuer
    credentials: CredentialStore
    events: EventRepository
    attendance: AttendanceManager
    policy: EventAccessPolicy


def build_services(settings: Settings) -> Services:
    """Construct every component from a single settings object."""
    if settings.uses_default_secret:
        logger.warning("JWT_SECRET is not set; using the built-in development secret")

    db = Database(settings.database_url, timeout=settings.db_timeout_seconds)
    hasher = PasswordHasher.from_settings(settings)
    return Services(
        settings=settings,
        db=db,
        hasher=hasher,
        tokens=TokenIssuer.from_settings(settings),
        credentials=CredentialStore(db, hasher),
        events=EventRepository(db),
        attendance=AttendanceManager(db),
        policy=build_policy(settings.event_access_policy),
    )
