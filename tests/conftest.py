"""Shared fixtures: in-memory database and a recording fake Sonos platform."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from contextlib import contextmanager
from datetime import datetime, time, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from zonecast.models import Base, Environment, Zone, Schedule, SongRequest
from zonecast.models.song_request import PENDING
from zonecast.platform import DevicePlatform, Group, PlaybackStatus, TransportState

# Wednesday 2026-10-14 14:30 UTC
NOW = datetime(2026, 10, 14, 14, 30, 0, tzinfo=timezone.utc)
NOW_NAIVE = NOW.replace(tzinfo=None)

CONTROL_CALLS = ("create_group", "load_track", "load_playlist", "play", "pause")


class FakePlatform(DevicePlatform):
    """In-memory household that records every call."""

    def __init__(self, groups=None, state=TransportState.IDLE, item_id=None):
        self.groups = [Group(g.id, list(g.player_ids)) for g in (groups or [])]
        self.status = PlaybackStatus(state, item_id)
        self.calls = []
        self.errors = {}
        self._created = 0

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.errors:
            raise self.errors[name]

    def control_calls(self):
        return [c for c in self.calls if c[0] in CONTROL_CALLS]

    def get_groups(self, household_id):
        self._record("get_groups", household_id)
        return [Group(g.id, list(g.player_ids)) for g in self.groups]

    def create_group(self, household_id, player_ids):
        self._record("create_group", household_id, list(player_ids))
        self._created += 1
        for g in self.groups:
            g.player_ids = [p for p in g.player_ids if p not in player_ids]
        self.groups = [g for g in self.groups if g.player_ids]
        group = Group(f"group-new-{self._created}", list(player_ids))
        self.groups.append(group)
        return Group(group.id, list(group.player_ids))

    def get_playback_status(self, group_id):
        self._record("get_playback_status", group_id)
        return self.status

    def load_track(self, group_id, track_uri, play_on_completion=True):
        self._record("load_track", group_id, track_uri)

    def load_playlist(self, group_id, playlist_uri, play_on_completion=True):
        self._record("load_playlist", group_id, playlist_uri)

    def play(self, group_id):
        self._record("play", group_id)

    def pause(self, group_id):
        self._record("pause", group_id)

    def subscribe(self, group_id, namespace):
        self._record("subscribe", group_id, namespace)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    session = Session(engine, autoflush=False)
    yield session
    session.close()


@pytest.fixture
def session_factory(engine):
    """Same commit/rollback behaviour as zonecast.models.get_session."""
    factory = sessionmaker(bind=engine, autoflush=False)

    @contextmanager
    def get_session():
        session = factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return get_session


@pytest.fixture
def environment(session):
    env = Environment(name="Museum", timezone="UTC", household_id="hh-1")
    session.add(env)
    session.commit()
    return env


@pytest.fixture
def zone(session, environment):
    zone = Zone(name="Lobby", environment=environment, device_player_ids=["p1", "p2"])
    session.add(zone)
    session.commit()
    return zone


@pytest.fixture
def platform():
    return FakePlatform(groups=[Group("g-lobby", ["p1", "p2"]), Group("g-cafe", ["p3"])])


@pytest.fixture
def add_schedule(session, zone):
    def _add(start, end=None, days="0,1,2,3,4,5,6", enabled=True, name=None, zone_id=None, playlist_uri=None):
        schedule = Schedule(
            zone_id=zone_id or zone.id,
            name=name or f"{start}",
            playlist_uri=playlist_uri or f"spotify:playlist:{start.strftime('%H%M')}",
            start_time=start,
            end_time=end,
            days_of_week=days,
            enabled=enabled,
        )
        session.add(schedule)
        session.commit()
        return schedule

    return _add


@pytest.fixture
def add_request(session, zone):
    counter = {"n": 0}

    def _add(track_uri, status=PENDING, zone_id=None):
        counter["n"] += 1
        request = SongRequest(
            zone_id=zone_id or zone.id,
            track_uri=track_uri,
            track_name=track_uri.rsplit(":", 1)[-1],
            status=status,
            created_at=NOW_NAIVE - timedelta(minutes=60 - counter["n"]),
        )
        session.add(request)
        session.commit()
        return request

    return _add


def t(hhmm):
    hours, minutes = hhmm.split(":")
    return time(int(hours), int(minutes))
