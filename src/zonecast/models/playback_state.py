"""Per-zone playback state and the activity it represents."""

from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy import Column, Integer, String, DateTime, BigInteger, ForeignKey
from sqlalchemy.orm import Session
from .base import Base, utcnow

IDLE = "idle"
SCHEDULED = "scheduled"
VISITOR_REQUEST = "visitor_request"


@dataclass(frozen=True)
class Idle:
    """Nothing of ours is playing."""


@dataclass(frozen=True)
class Scheduled:
    """A schedule's playlist is running."""
    schedule_id: int


@dataclass(frozen=True)
class VisitorRequest:
    """Visitor tracks have priority; resume_schedule_id is what to go back to."""
    resume_schedule_id: Optional[int] = None


Activity = Union[Idle, Scheduled, VisitorRequest]


class PlaybackState(Base):
    """What the orchestrator last did in a zone.

    The ``interrupted_schedule_id`` column holds the running schedule while
    scheduled and the schedule to resume while serving visitor requests. Use
    :attr:`activity` rather than the raw columns.
    """

    __tablename__ = "playback_state"

    zone_id = Column(Integer, ForeignKey("zones.id"), primary_key=True)
    current_activity = Column(String(20), nullable=False, default=IDLE)
    interrupted_schedule_id = Column(Integer, ForeignKey("schedules.id", ondelete="SET NULL"))
    interrupted_at = Column(DateTime)
    interrupted_track = Column(String(500))
    interrupted_position_ms = Column(BigInteger)  # never restored on resume
    last_updated = Column(DateTime, default=utcnow)

    def __repr__(self):
        return f"<PlaybackState(zone_id={self.zone_id}, activity={self.activity})>"

    @classmethod
    def for_zone(cls, session: Session, zone_id: int) -> "PlaybackState":
        """Load the zone's state row, creating it idle if missing."""
        state = session.get(cls, zone_id)
        if state is None:
            state = cls(zone_id=zone_id, current_activity=IDLE, last_updated=utcnow())
            session.add(state)
        return state

    @property
    def activity(self) -> Activity:
        if self.current_activity == SCHEDULED and self.interrupted_schedule_id is not None:
            return Scheduled(self.interrupted_schedule_id)
        if self.current_activity == VISITOR_REQUEST:
            return VisitorRequest(self.interrupted_schedule_id)
        return Idle()

    @activity.setter
    def activity(self, value: Activity):
        if isinstance(value, Scheduled):
            self.current_activity = SCHEDULED
            self.interrupted_schedule_id = value.schedule_id
            self._clear_interruption()
        elif isinstance(value, VisitorRequest):
            self.current_activity = VISITOR_REQUEST
            self.interrupted_schedule_id = value.resume_schedule_id
        elif isinstance(value, Idle):
            self.current_activity = IDLE
            self.interrupted_schedule_id = None
            self._clear_interruption()
        else:
            raise TypeError(f"Unknown activity: {value!r}")
        self.last_updated = utcnow()

    def record_interruption(self, track: Optional[str], position_ms: Optional[int] = None):
        """Snapshot what the device was playing when a visitor took over."""
        self.interrupted_at = utcnow()
        self.interrupted_track = track
        self.interrupted_position_ms = position_ms

    def touch(self):
        self.last_updated = utcnow()

    def _clear_interruption(self):
        self.interrupted_at = None
        self.interrupted_track = None
        self.interrupted_position_ms = None
