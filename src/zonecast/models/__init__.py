"""Database models for zonecast."""

from .base import Base, get_session, init_db, utcnow
from .environment import Environment
from .zone import Zone
from .schedule import Schedule
from .song_request import SongRequest
from .playback_state import PlaybackState, Activity, Idle, Scheduled, VisitorRequest

__all__ = [
    "Base", "get_session", "init_db", "utcnow",
    "Environment", "Zone", "Schedule", "SongRequest",
    "PlaybackState", "Activity", "Idle", "Scheduled", "VisitorRequest",
]
