"""Per-zone playback orchestration.

Each tick reconciles what should be playing in a zone (visitor requests
first, then the active schedule) with what the group reports. Nothing here
catches platform errors: a failed call aborts the zone's tick, the caller
rolls the session back and the next tick starts again from persisted state.
"""

import logging
import time
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from .config import config
from .group_resolver import GroupResolver, ResolutionError
from .models import (
    PlaybackState, Schedule, SongRequest, Zone, Idle, Scheduled, VisitorRequest, utcnow,
)
from .models.song_request import PENDING, PLAYING, COMPLETED, FAILED
from .platform import DevicePlatform, DevicePlatformError, PlaybackStatus
from .schedule_evaluator import active_schedule

logger = logging.getLogger(__name__)


class QueueProcessor:
    """Visitor queue and schedule state machine, invoked once per zone per tick."""

    def __init__(
        self,
        platform: DevicePlatform,
        resolver: Optional[GroupResolver] = None,
        settle_seconds: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.platform = platform
        self.resolver = resolver or GroupResolver(platform)
        self.settle_seconds = config.PAUSE_SETTLE_SECONDS if settle_seconds is None else settle_seconds
        self.sleep = sleep
        # Wall-clock for schedule evaluation; None means "now"
        self.clock = clock

    # Queue tick

    def process_zone(self, session: Session, zone: Zone, household_id: str):
        try:
            group_id = self.resolver.resolve(session, zone, household_id).group_id
        except ResolutionError as e:
            logger.error(f"Zone {zone.name}: {e}")
            return

        pending = self._oldest_pending(session, zone.id)
        playing = self._playing(session, zone.id)
        status = self.platform.get_playback_status(group_id)

        if status.is_playing and pending is None and playing is None:
            # Not ours to interrupt
            logger.debug(f"Zone {zone.name}: device busy with content we did not start, leaving it alone")
            return

        state = PlaybackState.for_zone(session, zone.id)

        if pending is not None and playing is None:
            self._interrupt_for_request(session, zone, group_id, state, pending, status)
            return

        if playing is not None and not status.is_playing:
            self._advance_queue(session, zone, group_id, state, playing)
            return

        if pending is None and playing is None and not status.is_playing:
            self._cold_start(session, zone, group_id, state)

    def _interrupt_for_request(self, session, zone, group_id, state, request, status: PlaybackStatus):
        if not self._claim(session, request):
            logger.info(f"Zone {zone.name}: request {request.id} was already claimed, skipping")
            return

        activity = state.activity
        if isinstance(activity, Scheduled):
            logger.info(f"Zone {zone.name}: interrupting schedule {activity.schedule_id} for a visitor request")
            state.record_interruption(status.item_id, status.position_ms)
            state.activity = VisitorRequest(resume_schedule_id=activity.schedule_id)
        elif isinstance(activity, Idle):
            state.activity = VisitorRequest()
        else:
            state.touch()

        # Idle or paused groups are not paused again; load_track replaces their content
        if status.is_playing:
            self.platform.pause(group_id)
            self.sleep(self.settle_seconds)

        self._load_request(session, zone, group_id, request)

    def _advance_queue(self, session, zone, group_id, state, finished):
        logger.info(f"Zone {zone.name}: '{finished.track_name or finished.track_uri}' finished")
        updated = (
            session.query(SongRequest)
            .filter(SongRequest.id == finished.id, SongRequest.status == PLAYING)
            .update({SongRequest.status: COMPLETED}, synchronize_session="evaluate")
        )
        if not updated:
            return

        next_request = self._oldest_pending(session, zone.id)
        if next_request is not None:
            if self._claim(session, next_request):
                state.touch()
                self._load_request(session, zone, group_id, next_request)
            return

        activity = state.activity
        resume_id = activity.resume_schedule_id if isinstance(activity, VisitorRequest) else None
        if resume_id is not None:
            schedule = active_schedule(session, zone.id, self._now())
            if schedule is not None and schedule.id == resume_id:
                if not self._claim_state(session, state):
                    logger.info(f"Zone {zone.name}: state changed under this tick, not resuming")
                    return
                logger.info(f"Zone {zone.name}: resuming schedule '{schedule.name}'")
                self.platform.load_playlist(group_id, schedule.playlist_uri, True)
                state.activity = Scheduled(schedule.id)
                return
            logger.info(f"Zone {zone.name}: interrupted schedule {resume_id} is no longer active")

        self._cold_start(session, zone, group_id, state)

    def _cold_start(self, session, zone, group_id, state):
        activity = state.activity
        schedule = active_schedule(session, zone.id, self._now())

        if schedule is None:
            if not isinstance(activity, Idle):
                logger.info(f"Zone {zone.name}: nothing scheduled, marking idle")
                state.activity = Idle()
            return

        if isinstance(activity, Scheduled):
            # Switching between schedules is left to the promotion tick
            return

        self._start_schedule(session, zone, group_id, state, schedule)

    # Schedule promotion tick

    def promote_schedule(self, session: Session, zone: Zone, household_id: str):
        """Start, switch or end scheduled playback without touching the visitor queue."""
        state = PlaybackState.for_zone(session, zone.id)
        activity = state.activity
        schedule = active_schedule(session, zone.id, self._now())

        if schedule is None:
            if isinstance(activity, Scheduled):
                if self._has_visitor_requests(session, zone.id):
                    logger.info(f"Zone {zone.name}: schedule ended but visitor requests are queued, leaving state")
                else:
                    logger.info(f"Zone {zone.name}: schedule ended, marking idle")
                    state.activity = Idle()
            return

        if isinstance(activity, VisitorRequest):
            logger.debug(f"Zone {zone.name}: visitor request in progress, not starting '{schedule.name}'")
            return

        if isinstance(activity, Scheduled) and activity.schedule_id == schedule.id:
            logger.debug(f"Zone {zone.name}: schedule '{schedule.name}' already playing")
            return

        try:
            group_id = self.resolver.resolve(session, zone, household_id).group_id
        except ResolutionError as e:
            logger.error(f"Zone {zone.name}: {e}")
            return

        self._start_schedule(session, zone, group_id, state, schedule)

    # Helpers

    def _start_schedule(self, session: Session, zone: Zone, group_id: str, state: PlaybackState, schedule: Schedule):
        if not self._claim_state(session, state):
            logger.info(f"Zone {zone.name}: state changed under this tick, not starting '{schedule.name}'")
            return
        logger.info(f"Zone {zone.name}: starting schedule '{schedule.name}'")
        self.platform.load_playlist(group_id, schedule.playlist_uri, True)
        state.activity = Scheduled(schedule.id)

    def _load_request(self, session, zone, group_id, request: SongRequest):
        try:
            self.platform.load_track(group_id, request.track_uri, True)
        except DevicePlatformError as e:
            if not e.is_rejection:
                raise
            logger.error(f"Zone {zone.name}: platform rejected '{request.track_uri}', marking request failed: {e}")
            session.query(SongRequest).filter(SongRequest.id == request.id).update(
                {SongRequest.status: FAILED}, synchronize_session="evaluate"
            )
            return
        logger.info(f"Zone {zone.name}: playing '{request.track_name or request.track_uri}'")

    def _claim(self, session: Session, request: SongRequest) -> bool:
        """Move a request from pending to playing; False if someone else did."""
        updated = (
            session.query(SongRequest)
            .filter(SongRequest.id == request.id, SongRequest.status == PENDING)
            .update(
                {SongRequest.status: PLAYING, SongRequest.played_at: utcnow()},
                synchronize_session="evaluate",
            )
        )
        return updated == 1

    def _claim_state(self, session: Session, state: PlaybackState) -> bool:
        """Stamp the zone's state row only if it still holds what this tick read.

        Schedule loads have no request row to claim, so two overlapping ticks
        race on the state row instead. The loser matches no row and must not
        touch the device.
        """
        session.flush()
        updated = (
            session.query(PlaybackState)
            .filter(
                PlaybackState.zone_id == state.zone_id,
                PlaybackState.current_activity == state.current_activity,
                PlaybackState.last_updated == state.last_updated,
            )
            .update({PlaybackState.last_updated: utcnow()}, synchronize_session=False)
        )
        return updated == 1

    @staticmethod
    def _oldest_pending(session: Session, zone_id: int) -> Optional[SongRequest]:
        return (
            session.query(SongRequest)
            .filter(SongRequest.zone_id == zone_id, SongRequest.status == PENDING)
            .order_by(SongRequest.created_at.asc(), SongRequest.id.asc())
            .first()
        )

    @staticmethod
    def _playing(session: Session, zone_id: int) -> Optional[SongRequest]:
        return (
            session.query(SongRequest)
            .filter(SongRequest.zone_id == zone_id, SongRequest.status == PLAYING)
            .first()
        )

    @staticmethod
    def _has_visitor_requests(session: Session, zone_id: int) -> bool:
        count = (
            session.query(SongRequest)
            .filter(SongRequest.zone_id == zone_id, SongRequest.status.in_((PENDING, PLAYING)))
            .count()
        )
        return count > 0

    def _now(self) -> Optional[datetime]:
        return self.clock() if self.clock else None
