"""Attendance relation between users and events."""

import logging
from typing import List

from prometheus_client import Counter
from sqlalchemy.exc import IntegrityError

from .database import Database
from .errors import AlreadyExistsError, NotFoundError
from .models.attendee import Attendee
from .models.event import Event
from .models.user import User

logger = logging.getLogger(__name__)

ATTENDEE_COUNTER = Counter("attendees_added_total", "Total attendee registrations created")


class AttendanceManager:
    """Maintain the many-to-many ``attendees`` relation.

    A (event, user) pair is stored at most once. The existence check in
    :meth:`add_attendee` gives the precise error; the table's unique
    constraint settles concurrent inserts that both pass the check.
    """

    def __init__(self, db: Database):
        self._db = db

    def add_attendee(self, event_id: int, user_id: int) -> Attendee:
        with self._db.session() as session:
            if session.get(Event, event_id) is None:
                raise NotFoundError("Event not found")
            if session.get(User, user_id) is None:
                raise NotFoundError("User not found")
            existing = (
                session.query(Attendee.id)
                .filter(Attendee.event_id == event_id, Attendee.user_id == user_id)
                .first()
            )
            if existing:
                raise AlreadyExistsError()

            attendee = Attendee(event_id=event_id, user_id=user_id)
            session.add(attendee)
            try:
                session.commit()
            except IntegrityError as exc:
                logger.warning(
                    "attendee insert rejected by constraint event=%s user=%s", event_id, user_id
                )
                raise AlreadyExistsError() from exc
        ATTENDEE_COUNTER.inc()
        logger.info("added attendee event=%s user=%s", event_id, user_id)
        return attendee

    def list_attendees_for_event(self, event_id: int) -> List[User]:
        with self._db.session() as session:
            if session.get(Event, event_id) is None:
                raise NotFoundError("Event not found")
            return (
                session.query(User)
                .join(Attendee, Attendee.user_id == User.id)
                .filter(Attendee.event_id == event_id)
                .all()
            )

    def list_events_for_user(self, user_id: int) -> List[Event]:
        with self._db.session() as session:
            if session.get(User, user_id) is None:
                raise NotFoundError("User not found")
            return (
                session.query(Event)
                .join(Attendee, Attendee.event_id == Event.id)
                .filter(Attendee.user_id == user_id)
                .all()
            )

    def remove_attendee(self, user_id: int, event_id: int) -> None:
        """Delete the pair if present. Removing an absent pair is not an error."""
        with self._db.session() as session:
            removed = (
                session.query(Attendee)
                .filter(Attendee.event_id == event_id, Attendee.user_id == user_id)
                .delete()
            )
            session.commit()
        if removed:
            logger.info("removed attendee event=%s user=%s", event_id, user_id)
