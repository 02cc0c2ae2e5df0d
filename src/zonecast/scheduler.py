"""Periodic ticks that drive every zone."""

import logging
import schedule
import threading
import time
from typing import Callable, List, Optional, Tuple

from .config import config
from .models import get_session, Zone
from .platform import DevicePlatform
from .queue_processor import QueueProcessor
from .sonos import SonosClient, SUBSCRIPTION_NAMESPACES

logger = logging.getLogger(__name__)

class ZoneScheduler:
    """Runs the queue tick and the schedule promotion tick over all zones.

    Zones are handled one after another so two zones of the same household
    never race on group creation. Every zone gets its own session; an error
    in one zone rolls back that zone only and the loop moves on.
    """

    def __init__(
        self,
        platform: Optional[DevicePlatform] = None,
        processor: Optional[QueueProcessor] = None,
        session_factory: Callable = get_session,
        on_tick: Optional[Callable[[str, dict], None]] = None,
    ):
        self.platform = platform or SonosClient()
        self.processor = processor or QueueProcessor(self.platform)
        self.session_factory = session_factory
        self.on_tick = on_tick
        self.last_results = {}
        # Held for the duration of a tick; the schedule loop and the cron routes share it
        self._tick_lock = threading.Lock()

    def setup_schedule(self):
        """Register both ticks with the schedule library."""
        schedule.clear()
        schedule.every(config.QUEUE_INTERVAL_SECONDS).seconds.do(self.process_queue)
        schedule.every(config.SCHEDULE_INTERVAL_SECONDS).seconds.do(self.check_schedules)
        logger.info(
            f"Queue tick every {config.QUEUE_INTERVAL_SECONDS}s, "
            f"schedule check every {config.SCHEDULE_INTERVAL_SECONDS}s"
        )

    def process_queue(self) -> Optional[dict]:
        """Queue tick: process_zone for every zone."""
        return self._for_each_zone("process-queue", self.processor.process_zone)

    def check_schedules(self) -> Optional[dict]:
        """Promotion tick: start or end schedules without touching the queue."""
        return self._for_each_zone("check-schedules", self.processor.promote_schedule)

    def subscribe_all_zones(self) -> dict:
        """Subscribe to playback events for every zone's cached group."""
        subscribed, failed = 0, 0
        with self.session_factory() as session:
            groups = [(z.name, z.sonos_group_id) for z in session.query(Zone).all() if z.sonos_group_id]

        for zone_name, group_id in groups:
            try:
                for namespace in SUBSCRIPTION_NAMESPACES:
                    self.platform.subscribe(group_id, namespace)
                subscribed += 1
            except Exception as e:
                logger.error(f"Failed to subscribe zone {zone_name}: {e}")
                failed += 1

        return {"subscribed": subscribed, "failed": failed}

    def _zone_targets(self) -> List[Tuple[int, str]]:
        with self.session_factory() as session:
            return [(z.id, z.name) for z in session.query(Zone).order_by(Zone.id).all()]

    def _for_each_zone(self, tick: str, action: Callable) -> Optional[dict]:
        """Run one tick over all zones, or return None if another tick is running."""
        if not self._tick_lock.acquire(blocking=False):
            logger.warning(f"[{tick}] another tick is still running, skipping")
            return None
        try:
            return self._run_tick(tick, action)
        finally:
            self._tick_lock.release()

    def _run_tick(self, tick: str, action: Callable) -> dict:
        logger.info(f"[{tick}] starting")
        try:
            targets = self._zone_targets()
        except Exception as e:
            logger.error(f"[{tick}] could not load zones: {e}")
            return {"zones": 0, "ok": 0, "failed": 0, "skipped": 0}

        results = {"zones": len(targets), "ok": 0, "failed": 0, "skipped": 0}

        for zone_id, zone_name in targets:
            try:
                with self.session_factory() as session:
                    zone = session.get(Zone, zone_id)
                    household_id = self._household_for(zone)
                    if household_id is None:
                        results["skipped"] += 1
                        continue
                    action(session, zone, household_id)
                results["ok"] += 1
            except Exception as e:
                logger.error(f"[{tick}] error processing zone {zone_name}: {e}")
                results["failed"] += 1

        logger.info(f"[{tick}] completed: {results}")
        self.last_results[tick] = results
        if self.on_tick:
            self.on_tick(tick, results)
        return results

    @staticmethod
    def _household_for(zone: Optional[Zone]) -> Optional[str]:
        if zone is None:
            return None
        if zone.environment is None:
            logger.error(f"Zone {zone.name} has no environment, skipping")
            return None
        household_id = zone.environment.household_id or config.SONOS_HOUSEHOLD_ID
        if not household_id:
            logger.error(f"Zone {zone.name}: environment '{zone.environment.name}' has no household id, skipping")
            return None
        return household_id

    def run(self):
        """Run the scheduler."""
        logger.info("Zone scheduler started")

        # Run once right away instead of waiting a full interval
        self.check_schedules()
        self.process_queue()

        while True:
            try:
                schedule.run_pending()
                time.sleep(1)

            except KeyboardInterrupt:
                logger.info("Scheduler interrupted")
                break
            except Exception as e:
                logger.error(f"Scheduler error: {e}")
                time.sleep(30)  # Wait before retrying
