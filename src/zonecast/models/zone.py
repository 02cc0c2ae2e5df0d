"""Zone model."""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from .base import Base, utcnow

DEFAULT_GROUP_CACHE_TTL_MINUTES = 30

class Zone(Base):
    """A named playback target made of one or more Sonos players."""

    __tablename__ = "zones"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    environment_id = Column(Integer, ForeignKey("environments.id"))
    # Player ids that define the zone; the source of truth for membership
    device_player_ids = Column(JSON, nullable=False, default=list)
    # Last resolved group id, only a hint
    sonos_group_id = Column(String(200))
    group_id_cached_at = Column(DateTime)
    group_id_cache_ttl_minutes = Column(Integer, default=DEFAULT_GROUP_CACHE_TTL_MINUTES)
    created_at = Column(DateTime, default=utcnow)

    environment = relationship("Environment", back_populates="zones")

    def __repr__(self):
        return f"<Zone(name='{self.name}', players={len(self.device_player_ids or [])})>"
