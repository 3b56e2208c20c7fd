from sqlalchemy import Column, Date, ForeignKey, Integer, String, Text

from ..database import Base


class Event(Base):
    """SQLAlchemy model for an event owned by a user."""

    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    date = Column(Date, nullable=False)
    location = Column(String, nullable=False)
