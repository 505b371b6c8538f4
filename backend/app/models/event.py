"""Event model and the expirable-record mixin used by the retention sweep."""

from sqlalchemy import Column, String, Float, Text

from app.models.base import Base, StringIdMixin, TimestampMixin


class ExpirableMixin:
    """Rows removed by the retention sweep once their end time has passed.

    ``end_time`` is stored as text. Rows written by newer clients carry a
    UTC designator (``...Z`` or ``...+00:00``); older rows hold a naive local
    wall-clock string such as ``2025-12-21 14:40``.
    """

    end_time = Column(String(40), index=True)
    image_path = Column(String(500))


class Event(StringIdMixin, TimestampMixin, ExpirableMixin, Base):
    __tablename__ = "events"

    title = Column(Text, nullable=False)
    description = Column(Text)
    venue = Column(String(255))
    event_type = Column(String(50))
    link = Column(Text)
    lat = Column(Float)
    lng = Column(Float)
    start_time = Column(String(40))
