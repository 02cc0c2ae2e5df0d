"""Single application entry point that runs both the zone ticks and the web interface."""

import logging
import sys
import threading

from .config import config
from .models import init_db, get_session, Zone, Schedule
from .scheduler import ZoneScheduler
from .sonos import SonosClient
from .web import app, socketio, set_scheduler, broadcast_tick

logger = logging.getLogger(__name__)

def setup_logging():
    """Setup logging configuration."""
    config.ensure_directories()
    config.LOG_FILE.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(config.LOG_FILE),
            logging.StreamHandler(sys.stdout)
        ]
    )

def check_settings():
    """Warn about settings that leave parts of the system disabled."""
    if not config.SONOS_ACCESS_TOKEN:
        logger.warning("SONOS_ACCESS_TOKEN is not set; every Sonos call will fail")
    if not (config.SONOS_CLIENT_ID and config.SONOS_CLIENT_SECRET):
        logger.warning("Sonos client credentials are not set; webhook events will be rejected")
    if not config.CRON_SECRET:
        logger.warning("CRON_SECRET is not set; the cron endpoints are open")

    with get_session() as session:
        zones = session.query(Zone).count()
        schedules = session.query(Schedule).filter(Schedule.enabled.is_(True)).count()
    if zones == 0:
        logger.warning("No zones configured; ticks will have nothing to do")
    else:
        logger.info(f"Managing {zones} zones with {schedules} enabled schedules")

class ZonecastApp:
    """Runs the zone scheduler in a thread next to the Flask-SocketIO server."""

    def __init__(self):
        self.scheduler = None
        self.scheduler_thread = None

    def setup(self):
        setup_logging()
        logger.info("Starting zonecast")

        init_db()
        check_settings()

        self.scheduler = ZoneScheduler(platform=SonosClient(), on_tick=broadcast_tick)
        set_scheduler(self.scheduler)

    def run_scheduler(self):
        try:
            self.scheduler.setup_schedule()
            self.scheduler.run()
        except Exception as e:
            logger.error(f"Scheduler thread died: {e}")

    def start_scheduler_thread(self):
        self.scheduler_thread = threading.Thread(target=self.run_scheduler, name="zone-ticks", daemon=True)
        self.scheduler_thread.start()

    def run(self):
        """Set up, start ticking and serve until interrupted."""
        try:
            self.setup()
            self.start_scheduler_thread()

            logger.info(f"Starting web server on {config.FLASK_HOST}:{config.FLASK_PORT}")
            socketio.run(
                app,
                host=config.FLASK_HOST,
                port=config.FLASK_PORT,
                debug=config.DEBUG,
                use_reloader=False,
                allow_unsafe_werkzeug=True
            )

        except KeyboardInterrupt:
            logger.info("zonecast stopped by user")
        except Exception as e:
            logger.error(f"zonecast error: {e}")
            sys.exit(1)

def main():
    ZonecastApp().run()

if __name__ == "__main__":
    main()
