"""Decide which schedule should be playing in a zone right now."""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.orm import Session

from .models import Environment, Schedule, Zone

logger = logging.getLogger(__name__)


def local_now(tz_name: str, now: Optional[datetime] = None) -> datetime:
    """Current time in ``tz_name``. A naive ``now`` is taken as UTC."""
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown time zone '{tz_name}', falling back to UTC")
        tz = timezone.utc
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(tz)


def day_of_week(moment: datetime) -> int:
    """0=Sunday, 6=Saturday."""
    return moment.isoweekday() % 7


def schedule_matches(schedule: Schedule, moment: datetime) -> bool:
    """Check if the schedule's window covers ``moment`` (already zone-local)."""
    if not schedule.is_active_on_day(day_of_week(moment)):
        return False
    current_time = moment.time().replace(microsecond=0)
    if current_time < schedule.start_time:
        return False
    if schedule.end_time is not None and current_time >= schedule.end_time:
        return False
    return True


def active_schedule(session: Session, zone_id: int, now: Optional[datetime] = None) -> Optional[Schedule]:
    """Return the schedule that should be active for a zone, if any.

    Enabled schedules are scanned in ascending start time and the first match
    wins, so when two windows overlap the one that starts earlier is chosen.
    """
    rows = (
        session.query(Schedule, Environment.timezone)
        .join(Zone, Schedule.zone_id == Zone.id)
        .join(Environment, Zone.environment_id == Environment.id)
        .filter(Schedule.zone_id == zone_id, Schedule.enabled.is_(True))
        .order_by(Schedule.start_time.asc(), Schedule.id.asc())
        .all()
    )

    if not rows:
        logger.debug(f"Zone {zone_id}: no enabled schedules")
        return None

    moment = local_now(rows[0][1], now)
    logger.debug(f"Zone {zone_id}: local time {moment:%Y-%m-%d %H:%M:%S} (day {day_of_week(moment)}), {len(rows)} enabled schedules")

    for schedule, _ in rows:
        if schedule_matches(schedule, moment):
            logger.debug(f"Zone {zone_id}: schedule '{schedule.name}' matches")
            return schedule

    return None


def evaluate_all_schedules(session: Session, now: Optional[datetime] = None) -> List[Tuple[Zone, Optional[Schedule]]]:
    """Active schedule for every zone, ordered by zone name."""
    zones = session.query(Zone).order_by(Zone.name.asc()).all()
    return [(zone, active_schedule(session, zone.id, now)) for zone in zones]
