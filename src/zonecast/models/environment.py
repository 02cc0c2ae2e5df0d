"""Environment model."""

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from .base import Base, utcnow

class Environment(Base):
    """A physical installation: one time zone, one Sonos household."""

    __tablename__ = "environments"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    timezone = Column(String(64), nullable=False, default="UTC")  # IANA name
    household_id = Column(String(200))
    created_at = Column(DateTime, default=utcnow)

    zones = relationship("Zone", back_populates="environment")

    def __repr__(self):
        return f"<Environment(name='{self.name}', timezone={self.timezone})>"
