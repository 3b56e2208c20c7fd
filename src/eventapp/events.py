"""Field-mapped persistence for events."""

import logging
import datetime
from typing import List

from .database import Database
from .errors import NotFoundError
from .models.event import Event

logger = logging.getLogger(__name__)


class EventRepository:
    def __init__(self, db: Database):
        self._db = db

    def create(self, owner_id: int, name: str, description: str, date: datetime.date, location: str) -> Event:
        with self._db.session() as session:
            event = Event(
                owner_id=owner_id,
                name=name,
                description=description,
                date=date,
                location=location,
            )
            session.add(event)
            session.commit()
        logger.info("created event id=%s owner=%s", event.id, owner_id)
        return event

    def list(self) -> List[Event]:
        with self._db.session() as session:
            return session.query(Event).order_by(Event.id).all()

    def get(self, event_id: int) -> Event | None:
        with self._db.session() as session:
            return session.get(Event, event_id)

    def require(self, event_id: int) -> Event:
        event = self.get(event_id)
        if event is None:
            raise NotFoundError("Event not found")
        return event

    def update(self, event_id: int, **fields) -> Event:
        """Overwrite the editable fields of an event; ``owner_id`` is kept."""
        with self._db.session() as session:
            event = session.get(Event, event_id)
            if event is None:
                raise NotFoundError("Event not found")
            for name in ("name", "description", "date", "location"):
                if name in fields:
                    setattr(event, name, fields[name])
            session.commit()
        logger.info("updated event id=%s", event_id)
        return event

    def delete(self, event_id: int) -> bool:
        with self._db.session() as session:
            deleted = session.query(Event).filter(Event.id == event_id).delete()
            session.commit()
        if deleted:
            logger.info("deleted event id=%s", event_id)
        return bool(deleted)
