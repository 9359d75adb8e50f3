"""Test the Spotify client and catalog fetcher"""

from unittest.mock import Mock, patch

import pytest
import spotipy

from spot_sync.core.exceptions import SpotifyError, TrackRecordError
from spot_sync.spotify.client import SpotifyClient
from spot_sync.spotify.fetcher import (
    SpotifyFetcher,
    deduplicate_records,
    fetch_track_records,
)
from spot_sync.spotify.models import build_track_record

from tests.conftest import make_spotify_track


def item(track):
    return {"added_at": "2024-01-01T00:00:00Z", "track": track}


@pytest.fixture
def spotipy_mock():
    """Initialize the SpotifyClient singleton over a mocked spotipy.Spotify"""
    with patch("spot_sync.spotify.client.SpotifyOAuth"), \
         patch("spot_sync.spotify.client.spotipy.Spotify") as spotify_cls:
        instance = Mock()
        instance.current_user.return_value = {"id": "someone"}
        spotify_cls.return_value = instance
        SpotifyClient.init("id", "secret", user_auth=True)
        yield instance


class TestSpotifyClient:
    """Test the singleton and paginated reads"""

    def test_not_initialized(self):
        with pytest.raises(SpotifyError) as exc_info:
            SpotifyClient()
        assert exc_info.value.is_auth_error

    def test_singleton(self, spotipy_mock):
        assert SpotifyClient() is SpotifyClient()
        assert SpotifyClient.is_initialized()

    def test_double_init(self, spotipy_mock):
        with pytest.raises(SpotifyError):
            SpotifyClient.init("id", "secret")

    def test_failed_authentication(self):
        with patch("spot_sync.spotify.client.SpotifyOAuth"), \
             patch("spot_sync.spotify.client.spotipy.Spotify") as spotify_cls:
            spotify_cls.return_value.current_user.side_effect = spotipy.SpotifyException(
                401, -1, "invalid client"
            )
            with pytest.raises(SpotifyError) as exc_info:
                SpotifyClient.init("id", "bad")

        assert exc_info.value.is_auth_error
        assert not SpotifyClient.is_initialized()

    def test_saved_tracks_pagination(self, spotipy_mock):
        spotipy_mock.current_user_saved_tracks.side_effect = [
            {"items": [item(make_spotify_track(track_id="a"))], "next": "page2"},
            {"items": [item(make_spotify_track(track_id="b"))], "next": None},
        ]

        items = SpotifyClient().current_user_all_saved_tracks()

        assert [i["track"]["id"] for i in items] == ["a", "b"]
        offsets = [c.kwargs["offset"] for c in spotipy_mock.current_user_saved_tracks.call_args_list]
        assert offsets == [0, 50]

    def test_playlist_pagination(self, spotipy_mock):
        spotipy_mock.playlist_items.side_effect = [
            {"items": [item(make_spotify_track(track_id="a"))], "next": "page2"},
            {"items": [], "next": None},
        ]

        items = SpotifyClient().playlist_all_items("37i9dQZF1DXcBWIGoYBM5M")

        assert len(items) == 1
        offsets = [c.kwargs["offset"] for c in spotipy_mock.playlist_items.call_args_list]
        assert offsets == [0, 100]

    @pytest.mark.parametrize("status, flag", [
        (429, "is_rate_limit"),
        (401, "is_auth_error"),
    ])
    def test_api_errors(self, spotipy_mock, status, flag):
        spotipy_mock.playlist_items.side_effect = spotipy.SpotifyException(status, -1, "error")

        with pytest.raises(SpotifyError) as exc_info:
            SpotifyClient().playlist_items("37i9dQZF1DXcBWIGoYBM5M")

        assert getattr(exc_info.value, flag)
        assert exc_info.value.details["http_status"] == status

    def test_not_found(self, spotipy_mock):
        spotipy_mock.playlist_items.side_effect = spotipy.SpotifyException(404, -1, "missing")

        with pytest.raises(SpotifyError) as exc_info:
            SpotifyClient().playlist_items("nope")

        assert "Not found" in exc_info.value.message


class TestSpotifyFetcher:
    """Test record building from library and playlist items"""

    def test_invalid_items_are_skipped(self, in_temp_dir):
        client = Mock()
        client.current_user_all_saved_tracks.return_value = [
            item(make_spotify_track(name="Aerodynamic", track_id="1")),
            None,
            {"track": None},
            item({**make_spotify_track(name="Local", track_id="2"), "is_local": True}),
            item({**make_spotify_track(name="Episode", track_id="3"), "type": "episode"}),
            item({**make_spotify_track(name="No Id"), "id": None}),
            item(make_spotify_track(name="Voyager", track_id="4")),
        ]

        records = SpotifyFetcher(client).fetch_library()

        assert [r.title for r in records] == ["Aerodynamic", "Voyager"]

    def test_playlist_reference_forms(self, in_temp_dir):
        client = Mock()
        client.playlist_all_items.return_value = []
        fetcher = SpotifyFetcher(client)

        for ref in [
            "spotify:user:someone:playlist:37i9dQZF1DXcBWIGoYBM5M",
            "spotify:playlist:37i9dQZF1DXcBWIGoYBM5M",
            "https://open.spotify.com/playlist/37i9dQZF1DXcBWIGoYBM5M?si=abc",
            "37i9dQZF1DXcBWIGoYBM5M",
        ]:
            fetcher.fetch_playlist(ref)

        ids = {c.args[0] for c in client.playlist_all_items.call_args_list}
        assert ids == {"37i9dQZF1DXcBWIGoYBM5M"}

    def test_remote_order_and_local_state(self, in_temp_dir):
        (in_temp_dir / "Daft Punk - Voyager.mp3").write_bytes(b"audio")
        client = Mock()
        client.playlist_all_items.return_value = [
            item(make_spotify_track(name=name, track_id=str(i)))
            for i, name in enumerate(["Voyager", "Aerodynamic"])
        ]

        records = SpotifyFetcher(client, ".mp3", in_temp_dir).fetch_playlist("x")

        assert [r.title for r in records] == ["Voyager", "Aerodynamic"]
        assert [r.is_local for r in records] == [True, False]

    def test_track_without_artist(self, in_temp_dir):
        client = Mock()
        client.current_user_all_saved_tracks.return_value = [
            item(make_spotify_track(artists=(), track_id="1")),
        ]

        with pytest.raises(TrackRecordError):
            SpotifyFetcher(client).fetch_library()

    def test_duplicates_keep_first(self, in_temp_dir):
        records = [
            build_track_record(make_spotify_track(name="Voyager", track_id="1")),
            build_track_record(make_spotify_track(name="VOYAGER", track_id="2")),
            build_track_record(make_spotify_track(name="Aerodynamic", track_id="3")),
        ]

        unique = deduplicate_records(records)

        assert [r.spotify_id for r in unique] == ["1", "3"]

    def test_colliding_temporary_names_get_a_digest(self, in_temp_dir):
        records = [
            build_track_record(make_spotify_track(name="Oh Yeah", track_id="1")),
            build_track_record(make_spotify_track(name="Oh, Yeah!", track_id="2")),
        ]
        assert records[0].temp_base_name == records[1].temp_base_name

        first, second = deduplicate_records(records)

        assert first.temp_base_name == ".daft-punk-oh-yeah"
        assert second.temp_base_name.startswith(".daft-punk-oh-yeah-")
        assert len(second.temp_base_name) == len(".daft-punk-oh-yeah-") + 12
        assert second.filename_final == "Daft Punk - Oh, Yeah!.mp3"
        assert second.search_pattern == "daft punk oh yeah"

    def test_fetch_track_records_uses_singleton(self, spotipy_mock, in_temp_dir):
        spotipy_mock.current_user_saved_tracks.return_value = {
            "items": [item(make_spotify_track())],
            "next": None,
        }

        records = fetch_track_records(None, ".mp3", in_temp_dir)

        assert [r.display_name for r in records] == ["Daft Punk - One More Time"]
