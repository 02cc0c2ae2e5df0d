"""Resolve a zone's configured players to a live Sonos group.

Group ids on the platform are ephemeral: a group disappears whenever players
are regrouped from the Sonos app. A zone therefore stores the players that
define it and only caches the last group id it resolved to. Resolution tries,
in order:

1. legacy zones with no players configured use the cached id as-is,
2. the cached id, while its TTL holds and its members still match,
3. any live group whose members match exactly,
4. a new group made of whichever configured players are online.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Iterable, List

from sqlalchemy.orm import Session

from .platform import DevicePlatform, DevicePlatformError, Group
from .models import Zone, utcnow
from .models.zone import DEFAULT_GROUP_CACHE_TTL_MINUTES

logger = logging.getLogger(__name__)


class ResolutionError(Exception):
    """No usable group could be found or created for a zone."""


@dataclass
class GroupResolution:
    group_id: str
    was_created: bool = False
    player_ids: List[str] = field(default_factory=list)
    is_partial_group: bool = False


def group_matches_devices(group: Group, player_ids: Iterable[str]) -> bool:
    """Exact membership match, ignoring order."""
    player_ids = list(player_ids)
    if len(group.player_ids) != len(player_ids):
        return False
    return set(group.player_ids) == set(player_ids)


class GroupResolver:
    """Maps zones to group ids, caching the result on the zone row."""

    def __init__(self, platform: DevicePlatform, clock: Callable[[], datetime] = utcnow):
        self.platform = platform
        self.clock = clock

    def resolve(self, session: Session, zone: Zone, household_id: str) -> GroupResolution:
        player_ids = list(zone.device_player_ids or [])

        if not player_ids:
            if zone.sonos_group_id:
                logger.warning(f"Zone {zone.name} has no players configured, using legacy group id {zone.sonos_group_id}")
                return GroupResolution(group_id=zone.sonos_group_id)
            raise ResolutionError(f"Zone {zone.name} has no players configured and no cached group id")

        groups = self.platform.get_groups(household_id)

        if zone.sonos_group_id and self.is_cache_valid(zone):
            cached = next((g for g in groups if g.id == zone.sonos_group_id), None)
            if cached and group_matches_devices(cached, player_ids):
                logger.debug(f"Zone {zone.name}: using cached group {cached.id}")
                return GroupResolution(group_id=cached.id, player_ids=list(cached.player_ids))
            logger.info(f"Zone {zone.name}: cached group {zone.sonos_group_id} is gone or no longer matches, re-resolving")

        match = next((g for g in groups if group_matches_devices(g, player_ids)), None)
        if match:
            logger.info(f"Zone {zone.name}: found matching group {match.id}")
            self._update_cache(session, zone, match.id)
            return GroupResolution(group_id=match.id, player_ids=list(match.player_ids))

        online = self._online_player_ids(groups, player_ids)
        if not online:
            raise ResolutionError(f"No players online for zone {zone.name}, cannot create group")

        is_partial = len(online) < len(player_ids)
        if is_partial:
            logger.warning(f"Zone {zone.name}: using partial group ({len(online)}/{len(player_ids)} players online)")

        logger.info(f"Zone {zone.name}: creating group with players {online}")
        try:
            group = self.platform.create_group(household_id, online)
        except DevicePlatformError as e:
            raise ResolutionError(f"Failed to create group for zone {zone.name}: {e}") from e

        self._update_cache(session, zone, group.id)
        return GroupResolution(
            group_id=group.id,
            was_created=True,
            player_ids=list(group.player_ids) or online,
            is_partial_group=is_partial,
        )

    def is_cache_valid(self, zone: Zone) -> bool:
        if not zone.group_id_cached_at:
            return False
        ttl = zone.group_id_cache_ttl_minutes or DEFAULT_GROUP_CACHE_TTL_MINUTES
        return self.clock() - zone.group_id_cached_at < timedelta(minutes=ttl)

    def _update_cache(self, session: Session, zone: Zone, group_id: str):
        zone.sonos_group_id = group_id
        zone.group_id_cached_at = self.clock()
        session.add(zone)

    @staticmethod
    def _online_player_ids(groups: List[Group], requested: List[str]) -> List[str]:
        # A player that is in no group is offline
        visible = {pid for g in groups for pid in g.player_ids}
        online = [pid for pid in requested if pid in visible]
        offline = [pid for pid in requested if pid not in visible]
        if offline:
            logger.warning(f"Offline players detected: {offline}")
        return online
