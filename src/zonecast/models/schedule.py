"""Schedule model for recurring playlists."""

from sqlalchemy import Column, Integer, String, Time, Boolean, DateTime, ForeignKey
from .base import Base, utcnow

ALL_DAYS = "0,1,2,3,4,5,6"

class Schedule(Base):
    """Recurring day/time window during which a playlist plays in a zone."""

    __tablename__ = "schedules"

    id = Column(Integer, primary_key=True)
    zone_id = Column(Integer, ForeignKey("zones.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    playlist_uri = Column(String(500), nullable=False)
    playlist_name = Column(String(500))
    start_time = Column(Time, nullable=False)
    end_time = Column(Time)  # NULL means until end of day
    days_of_week = Column(String(20), default=ALL_DAYS)  # 0=Sunday, 6=Saturday
    enabled = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        end = self.end_time or "end of day"
        return f"<Schedule(name='{self.name}', {self.start_time}-{end})>"

    @property
    def days(self) -> list:
        """Days of the week as integers (0=Sunday, 6=Saturday)."""
        if not self.days_of_week:
            return []
        return [int(d) for d in self.days_of_week.split(",") if d.strip()]

    def is_active_on_day(self, day: int) -> bool:
        """Check if schedule is active on given day (0=Sunday, 6=Saturday)."""
        return day in self.days
