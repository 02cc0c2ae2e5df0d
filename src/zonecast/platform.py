"""Device platform interface used by the orchestrator."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class DevicePlatformError(Exception):
    """A call to the audio platform failed (network, timeout or non-2xx)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_rejection(self) -> bool:
        """True when the platform refused the content itself rather than failing."""
        return self.status_code in (400, 404)


class TransportState(Enum):
    IDLE = "IDLE"
    PAUSED = "PAUSED"
    PLAYING = "PLAYING"
    BUFFERING = "BUFFERING"

    @classmethod
    def parse(cls, value: Optional[str]) -> "TransportState":
        """Accept both ``PLAYING`` and Sonos' ``PLAYBACK_STATE_PLAYING``."""
        if not value:
            return cls.IDLE
        name = value.upper()
        if name.startswith("PLAYBACK_STATE_"):
            name = name[len("PLAYBACK_STATE_"):]
        try:
            return cls[name]
        except KeyError:
            return cls.IDLE


@dataclass
class Group:
    """A live group of players that play in sync."""

    id: str
    player_ids: List[str] = field(default_factory=list)
    coordinator_id: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Group":
        return cls(
            id=data["id"],
            player_ids=list(data.get("playerIds") or []),
            coordinator_id=data.get("coordinatorId"),
            name=data.get("name"),
        )


@dataclass
class PlaybackStatus:
    state: TransportState
    item_id: Optional[str] = None
    position_ms: Optional[int] = None

    @property
    def is_playing(self) -> bool:
        # A track that was just loaded reports BUFFERING before PLAYING
        return self.state in (TransportState.PLAYING, TransportState.BUFFERING)

    @classmethod
    def from_dict(cls, data: dict) -> "PlaybackStatus":
        return cls(
            state=TransportState.parse(data.get("playbackState")),
            item_id=data.get("itemId"),
            position_ms=data.get("positionMillis"),
        )


class DevicePlatform(ABC):
    """Group discovery, group creation and playback control for a household."""

    @abstractmethod
    def get_groups(self, household_id: str) -> List[Group]:
        ...

    @abstractmethod
    def create_group(self, household_id: str, player_ids: List[str]) -> Group:
        ...

    @abstractmethod
    def get_playback_status(self, group_id: str) -> PlaybackStatus:
        ...

    @abstractmethod
    def load_track(self, group_id: str, track_uri: str, play_on_completion: bool = True):
        ...

    @abstractmethod
    def load_playlist(self, group_id: str, playlist_uri: str, play_on_completion: bool = True):
        ...

    @abstractmethod
    def play(self, group_id: str):
        ...

    @abstractmethod
    def pause(self, group_id: str):
        ...

    @abstractmethod
    def subscribe(self, group_id: str, namespace: str):
        """Ask the platform to push events for one namespace of a group."""
