"""Sonos Control API client."""

import logging
from typing import Callable, List, Optional

import requests

from .config import config
from .platform import DevicePlatform, DevicePlatformError, Group, PlaybackStatus

logger = logging.getLogger(__name__)

SUBSCRIPTION_NAMESPACES = ("playbackMetadata", "playback")

class SonosClient(DevicePlatform):
    """Talks to the Sonos cloud control API with a bearer token.

    The token itself is managed elsewhere; pass a fixed ``access_token`` or a
    ``token_provider`` callable that returns a fresh one for every request.
    """

    def __init__(
        self,
        access_token: Optional[str] = None,
        token_provider: Optional[Callable[[], str]] = None,
        api_base: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.access_token = access_token if access_token is not None else config.SONOS_ACCESS_TOKEN
        self.token_provider = token_provider
        self.api_base = (api_base or config.SONOS_API_BASE).rstrip("/")
        self.timeout = timeout if timeout is not None else config.SONOS_TIMEOUT
        self.session = session or requests.Session()

    def _token(self) -> str:
        token = self.token_provider() if self.token_provider else self.access_token
        if not token:
            raise DevicePlatformError("Not authenticated with Sonos: no access token configured")
        return token

    def _request(self, method: str, path: str, json: Optional[dict] = None) -> dict:
        url = f"{self.api_base}{path}"
        headers = {"Authorization": f"Bearer {self._token()}"}
        try:
            response = self.session.request(method, url, headers=headers, json=json, timeout=self.timeout)
        except requests.RequestException as e:
            raise DevicePlatformError(f"{method} {path} failed: {e}") from e

        if not response.ok:
            raise DevicePlatformError(
                f"{method} {path} returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {}

    # Groups

    def get_groups(self, household_id: str) -> List[Group]:
        data = self._request("GET", f"/households/{household_id}/groups")
        return [Group.from_dict(g) for g in data.get("groups", [])]

    def create_group(self, household_id: str, player_ids: List[str]) -> Group:
        data = self._request(
            "POST",
            f"/households/{household_id}/groups/createGroup",
            json={"playerIds": list(player_ids)},
        )
        group = Group.from_dict(data.get("group", data))
        logger.info(f"Created group {group.id} with players {group.player_ids}")
        return group

    # Playback

    def get_playback_status(self, group_id: str) -> PlaybackStatus:
        return PlaybackStatus.from_dict(self._request("GET", f"/groups/{group_id}/playback"))

    def load_track(self, group_id: str, track_uri: str, play_on_completion: bool = True):
        track_id = _catalog_id(track_uri)
        self._request(
            "POST",
            f"/groups/{group_id}/playback/track/spotify:track:{track_id}",
            json={"playOnCompletion": play_on_completion},
        )

    def load_playlist(self, group_id: str, playlist_uri: str, play_on_completion: bool = True):
        playlist_id = _catalog_id(playlist_uri)
        self._request(
            "POST",
            f"/groups/{group_id}/playback/playlist/spotify:playlist:{playlist_id}",
            json={
                "playOnCompletion": play_on_completion,
                "playModes": {"shuffle": False, "repeat": False},
            },
        )

    def play(self, group_id: str):
        self._request("POST", f"/groups/{group_id}/playback/play")

    def pause(self, group_id: str):
        self._request("POST", f"/groups/{group_id}/playback/pause")

    # Event subscriptions

    def subscribe(self, group_id: str, namespace: str):
        """Ask Sonos to push events for one namespace of a group to our webhook."""
        self._request("POST", f"/groups/{group_id}/{namespace}/subscription")
        logger.info(f"Subscribed to {namespace} for group {group_id}")


def _catalog_id(uri: str) -> str:
    """``spotify:track:abc`` -> ``abc``; bare ids pass through."""
    return uri.rsplit(":", 1)[-1]
