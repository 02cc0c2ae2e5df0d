"""Flask web interface for zonecast: tick triggers, Sonos webhook and status."""

import logging
from datetime import datetime
from flask import Flask, request, jsonify
from flask_cors import CORS
from flask_socketio import SocketIO, emit

from .config import config
from .models import get_session, init_db, Zone, PlaybackState, SongRequest
from .models.song_request import PENDING, PLAYING
from .webhook import SonosEvent, verify_signature, handle_event

# Initialize Flask app
app = Flask(__name__)
app.config['SECRET_KEY'] = config.SECRET_KEY
CORS(app)
socketio = SocketIO(app, cors_allowed_origins="*")

# Global reference to scheduler (set by app.py)
_scheduler = None

def set_scheduler(scheduler):
    """Set the scheduler the trigger endpoints run ticks on."""
    global _scheduler
    _scheduler = scheduler

logger = logging.getLogger(__name__)

def get_status_data():
    """Get per-zone status for the dashboard."""
    zones = []
    with get_session() as session:
        for zone in session.query(Zone).order_by(Zone.name).all():
            state = session.get(PlaybackState, zone.id)
            playing = (
                session.query(SongRequest)
                .filter(SongRequest.zone_id == zone.id, SongRequest.status == PLAYING)
                .first()
            )
            pending = (
                session.query(SongRequest)
                .filter(SongRequest.zone_id == zone.id, SongRequest.status == PENDING)
                .count()
            )
            zones.append({
                'id': zone.id,
                'name': zone.name,
                'group_id': zone.sonos_group_id,
                'activity': state.current_activity if state else 'idle',
                'schedule_id': state.interrupted_schedule_id if state else None,
                'last_updated': state.last_updated.isoformat() if state and state.last_updated else None,
                'now_playing': {
                    'track_name': playing.track_name,
                    'artist_name': playing.artist_name,
                    'requested_by': playing.requested_by,
                } if playing else None,
                'pending_requests': pending,
            })

    return {
        'zones': zones,
        'last_ticks': _scheduler.last_results if _scheduler else {},
        'time': datetime.now().isoformat(),
    }

def broadcast_tick(tick, results):
    """Push tick results and fresh status to connected clients."""
    try:
        socketio.emit('tick_completed', {'tick': tick, 'results': results})
        socketio.emit('status_update', get_status_data())
    except Exception as e:
        logger.error(f"Error broadcasting status: {e}")

def _authorized():
    if not config.CRON_SECRET:
        return True
    return request.headers.get('Authorization') == f"Bearer {config.CRON_SECRET}"

@app.route('/api/status')
def get_status():
    """Get current system status."""
    return jsonify(get_status_data())

# Tick triggers
@app.route('/api/cron/process-queue', methods=['GET', 'POST'])
def process_queue():
    """Process the visitor queue of every zone."""
    if not _authorized():
        return jsonify({'error': 'Unauthorized'}), 401
    if not _scheduler:
        return jsonify({'success': False, 'error': 'Scheduler not running'}), 503

    try:
        results = _scheduler.process_queue()
        if results is None:
            return jsonify({'success': False, 'error': 'A tick is already running'}), 409
        return jsonify({'success': True, 'message': f"Processed {results['zones']} zones", 'results': results})
    except Exception as e:
        logger.error(f"process-queue error: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500

@app.route('/api/cron/check-schedules', methods=['GET', 'POST'])
def check_schedules():
    """Start or end scheduled playlists in every zone."""
    if not _authorized():
        return jsonify({'error': 'Unauthorized'}), 401
    if not _scheduler:
        return jsonify({'success': False, 'error': 'Scheduler not running'}), 503

    try:
        results = _scheduler.check_schedules()
        if results is None:
            return jsonify({'success': False, 'error': 'A tick is already running'}), 409
        return jsonify({'success': True, 'message': f"Evaluated {results['zones']} zones", 'results': results})
    except Exception as e:
        logger.error(f"check-schedules error: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500

@app.route('/api/subscriptions/subscribe-all', methods=['POST'])
def subscribe_all():
    """Subscribe to Sonos playback events for every zone."""
    if not _authorized():
        return jsonify({'error': 'Unauthorized'}), 401
    if not _scheduler:
        return jsonify({'success': False, 'error': 'Scheduler not running'}), 503
    return jsonify({'success': True, 'results': _scheduler.subscribe_all_zones()})

# Sonos webhook
@app.route('/api/sonos/webhook', methods=['POST'])
def sonos_webhook():
    """Receive a Sonos event. Always answers 200 so Sonos does not retry."""
    try:
        event = SonosEvent.from_headers(request.headers)

        if not verify_signature(event):
            logger.warning("Invalid Sonos webhook signature")
            return jsonify({'success': False, 'error': 'Invalid signature'}), 200

        logger.debug(f"Sonos event {event.namespace}/{event.type} for {event.target_type} {event.target_value}")
        with get_session() as session:
            handle_event(session, event)

        return jsonify({'success': True}), 200
    except Exception as e:
        logger.error(f"Webhook error: {e}")
        return jsonify({'success': True}), 200

@app.route('/api/sonos/webhook', methods=['GET'])
def sonos_webhook_ready():
    """Endpoint probe from Sonos."""
    return jsonify({'success': True, 'message': 'Sonos webhook endpoint ready'})

# WebSocket events
@socketio.on('connect')
def handle_connect():
    """Handle client connection."""
    logger.info("Client connected")
    emit('connected', {'message': 'Connected to zonecast'})

@socketio.on('request_status')
def handle_status_request():
    """Handle status request."""
    emit('status_update', get_status_data())

def run_server():
    """Run the Flask server."""
    config.ensure_directories()
    init_db()

    logger.info(f"Starting web server on {config.FLASK_HOST}:{config.FLASK_PORT}")
    socketio.run(app, host=config.FLASK_HOST, port=config.FLASK_PORT, debug=config.DEBUG)

if __name__ == '__main__':
    run_server()
