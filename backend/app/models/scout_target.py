"""Scout target model — a configured page the scraper can be pointed at."""

from sqlalchemy import Column, String, Integer, DateTime

from app.models.base import Base, StringIdMixin


class ScoutTarget(StringIdMixin, Base):
    __tablename__ = "scout_targets"

    name = Column(String(255), nullable=False)
    url = Column(String(1000), nullable=False)
    city = Column(String(100))
    selector = Column(String(500))

    # Last run statistics, reported by the scraper
    last_events_found = Column(Integer, default=0)
    last_scraped_at = Column(DateTime(timezone=True))
