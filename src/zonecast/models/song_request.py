"""Visitor song request model."""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, text
from .base import Base, utcnow

PENDING = "pending"
PLAYING = "playing"
COMPLETED = "completed"
FAILED = "failed"

class SongRequest(Base):
    """A track a visitor asked to hear, queued FIFO per zone."""

    __tablename__ = "song_requests"
    __table_args__ = (
        # At most one playing request per zone
        Index(
            "uq_song_requests_one_playing",
            "zone_id",
            unique=True,
            sqlite_where=text("status = 'playing'"),
            postgresql_where=text("status = 'playing'"),
        ),
    )

    id = Column(Integer, primary_key=True)
    zone_id = Column(Integer, ForeignKey("zones.id"), nullable=False, index=True)
    track_uri = Column(String(500), nullable=False)
    track_name = Column(String(500))
    artist_name = Column(String(500))
    requested_by = Column(String(200))
    status = Column(String(20), nullable=False, default=PENDING)  # pending, playing, completed, failed
    created_at = Column(DateTime, default=utcnow)
    played_at = Column(DateTime)

    def __repr__(self):
        return f"<SongRequest(track='{self.track_name or self.track_uri}', status={self.status})>"
