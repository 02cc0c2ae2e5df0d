"""Tests for the Sonos HTTP client."""

from unittest.mock import Mock

import pytest
import requests

from zonecast.platform import DevicePlatformError, PlaybackStatus, TransportState
from zonecast.sonos import SonosClient

API = "https://sonos.test/v1"


def make_response(status=200, payload=None):
    response = Mock()
    response.ok = 200 <= status < 300
    response.status_code = status
    response.content = b"{}" if payload is not None else b""
    response.json.return_value = payload
    response.text = str(payload)
    return response


@pytest.fixture
def http():
    return Mock(spec=requests.Session)


@pytest.fixture
def client(http):
    return SonosClient(access_token="token-1", api_base=API, timeout=3, session=http)


def test_get_groups(client, http):
    http.request.return_value = make_response(payload={
        "groups": [
            {"id": "g1", "name": "Lobby", "coordinatorId": "p1", "playerIds": ["p1", "p2"]},
            {"id": "g2", "name": "Cafe", "coordinatorId": "p3", "playerIds": ["p3"]},
        ]
    })

    groups = client.get_groups("hh-1")

    assert [(g.id, g.player_ids, g.coordinator_id) for g in groups] == [
        ("g1", ["p1", "p2"], "p1"),
        ("g2", ["p3"], "p3"),
    ]
    http.request.assert_called_once_with(
        "GET", f"{API}/households/hh-1/groups",
        headers={"Authorization": "Bearer token-1"}, json=None, timeout=3,
    )


def test_create_group(client, http):
    http.request.return_value = make_response(payload={"group": {"id": "g9", "playerIds": ["p1", "p2"]}})

    group = client.create_group("hh-1", ["p1", "p2"])

    assert group.id == "g9"
    assert group.player_ids == ["p1", "p2"]
    args, kwargs = http.request.call_args
    assert args == ("POST", f"{API}/households/hh-1/groups/createGroup")
    assert kwargs["json"] == {"playerIds": ["p1", "p2"]}


def test_playback_status(client, http):
    http.request.return_value = make_response(payload={
        "playbackState": "PLAYBACK_STATE_PLAYING", "itemId": "item-7", "positionMillis": 1200,
    })

    status = client.get_playback_status("g1")

    assert status.state is TransportState.PLAYING
    assert status.is_playing
    assert status.item_id == "item-7"


def test_load_track_and_playlist_urls(client, http):
    http.request.return_value = make_response()

    client.load_track("g1", "spotify:track:abc", True)
    client.load_playlist("g1", "spotify:playlist:xyz", False)

    track_call, playlist_call = http.request.call_args_list
    assert track_call.args[1] == f"{API}/groups/g1/playback/track/spotify:track:abc"
    assert track_call.kwargs["json"] == {"playOnCompletion": True}
    assert playlist_call.args[1] == f"{API}/groups/g1/playback/playlist/spotify:playlist:xyz"
    assert playlist_call.kwargs["json"]["playOnCompletion"] is False


def test_error_status_raises(client, http):
    http.request.return_value = make_response(status=404, payload={"errorCode": "ERROR_RESOURCE_GONE"})

    with pytest.raises(DevicePlatformError) as exc_info:
        client.pause("g-gone")

    assert exc_info.value.status_code == 404
    assert exc_info.value.is_rejection


def test_timeout_raises_platform_error(client, http):
    http.request.side_effect = requests.Timeout("read timed out")

    with pytest.raises(DevicePlatformError) as exc_info:
        client.play("g1")

    assert exc_info.value.status_code is None
    assert not exc_info.value.is_rejection


def test_missing_token_raises(http):
    client = SonosClient(access_token="", api_base=API, session=http)

    with pytest.raises(DevicePlatformError):
        client.get_groups("hh-1")
    http.request.assert_not_called()


def test_token_provider_is_called_per_request(http):
    tokens = iter(["t1", "t2"])
    client = SonosClient(token_provider=lambda: next(tokens), api_base=API, session=http)
    http.request.return_value = make_response()

    client.play("g1")
    client.pause("g1")

    assert [c.kwargs["headers"]["Authorization"] for c in http.request.call_args_list] == ["Bearer t1", "Bearer t2"]


@pytest.mark.parametrize("raw, expected, playing", [
    ("PLAYBACK_STATE_PAUSED", TransportState.PAUSED, False),
    ("PLAYBACK_STATE_IDLE", TransportState.IDLE, False),
    ("PLAYBACK_STATE_BUFFERING", TransportState.BUFFERING, True),
    ("PLAYING", TransportState.PLAYING, True),
    (None, TransportState.IDLE, False),
    ("SOMETHING_NEW", TransportState.IDLE, False),
])
def test_transport_state_parsing(raw, expected, playing):
    status = PlaybackStatus.from_dict({"playbackState": raw})
    assert status.state is expected
    assert status.is_playing is playing
