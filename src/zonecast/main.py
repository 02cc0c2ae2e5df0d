"""Headless entry point: run the zone ticks without the web server."""

import logging
import sys

from .app import setup_logging, check_settings
from .models import init_db
from .scheduler import ZoneScheduler
from .sonos import SonosClient

def main():
    setup_logging()
    logger = logging.getLogger(__name__)
    logger.info("Starting zonecast ticks (headless)")

    init_db()
    check_settings()

    scheduler = ZoneScheduler(platform=SonosClient())
    if "--subscribe" in sys.argv[1:]:
        results = scheduler.subscribe_all_zones()
        logger.info(f"Subscriptions: {results['subscribed']} ok, {results['failed']} failed")

    scheduler.setup_schedule()
    try:
        scheduler.run()
    except KeyboardInterrupt:
        logger.info("zonecast stopped by user")
    except Exception as e:
        logger.error(f"zonecast error: {e}")
        sys.exit(1)

if __name__ == "__main__":
    main()
