"""Sonos event webhook handling.

Sonos expects a 200 within about a second and retries otherwise, so callers
acknowledge every event regardless of what happens here. Events only refresh
the zone's ``last_updated`` timestamp; queue advancement stays with the
periodic tick.
"""

import base64
import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from sqlalchemy.orm import Session

from .config import config
from .models import PlaybackState, Zone

logger = logging.getLogger(__name__)

TRACKED_NAMESPACES = ("playbackStatus", "playback")


@dataclass
class SonosEvent:
    seq_id: str = ""
    namespace: str = ""
    type: str = ""
    target_type: str = ""
    target_value: str = ""
    signature: str = ""
    household_id: str = ""

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "SonosEvent":
        return cls(
            seq_id=headers.get("X-Sonos-Event-Seq-Id", ""),
            namespace=headers.get("X-Sonos-Namespace", ""),
            type=headers.get("X-Sonos-Type", ""),
            target_type=headers.get("X-Sonos-Target-Type", ""),
            target_value=headers.get("X-Sonos-Target-Value", ""),
            signature=headers.get("X-Sonos-Event-Signature", ""),
            household_id=headers.get("X-Sonos-Household-Id", ""),
        )


def compute_signature(event: SonosEvent, client_id: str, client_secret: str) -> str:
    """URL-safe, unpadded base64 of the SHA-256 over the event headers and our credentials."""
    message = (
        event.seq_id + event.namespace + event.type + event.target_type
        + event.target_value + client_id + client_secret
    )
    digest = hashlib.sha256(message.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def verify_signature(event: SonosEvent, client_id: Optional[str] = None, client_secret: Optional[str] = None) -> bool:
    if not event.signature:
        return False
    expected = compute_signature(
        event,
        config.SONOS_CLIENT_ID if client_id is None else client_id,
        config.SONOS_CLIENT_SECRET if client_secret is None else client_secret,
    )
    return hmac.compare_digest(expected, event.signature)


def handle_event(session: Session, event: SonosEvent) -> bool:
    """Apply a verified event. Returns True if a zone's state was touched."""
    if event.namespace not in TRACKED_NAMESPACES:
        logger.debug(f"Ignoring {event.namespace or 'unknown'} event")
        return False

    zone = session.query(Zone).filter(Zone.sonos_group_id == event.target_value).first()
    if zone is None:
        logger.warning(f"No zone found for group {event.target_value}")
        return False

    PlaybackState.for_zone(session, zone.id).touch()
    logger.info(f"{event.namespace} event for zone {zone.name}")
    return True
