"""Test configuration and fixtures"""

import pytest
import tempfile
from pathlib import Path

from spot_sync.spotify.client import SpotifyClient
from spot_sync.spotify.models import build_track_record


def make_spotify_track(
    name="One More Time",
    artists=("Daft Punk",),
    album="Discovery",
    track_id="0DiWol3AO6WpXZgp0goxAV",
    duration_ms=320357,
    images=None
):
    """Build a Spotify full-track dict shaped like the Web API response."""
    if images is None:
        images = [
            {"url": "https://i.scdn.co/image/small", "width": 64, "height": 64},
            {"url": "https://i.scdn.co/image/large", "width": 640, "height": 640},
        ]
    return {
        "id": track_id,
        "name": name,
        "type": "track",
        "is_local": False,
        "artists": [{"id": f"artist_{i}", "name": a} for i, a in enumerate(artists)],
        "album": {"id": "album_1", "name": album, "images": images},
        "duration_ms": duration_ms,
        "external_urls": {"spotify": f"https://open.spotify.com/track/{track_id}"},
    }


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def in_temp_dir(tmp_path, monkeypatch):
    """Run the test with a fresh temporary directory as working directory"""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def sample_spotify_track():
    """Sample Spotify track data for testing"""
    return make_spotify_track()


@pytest.fixture
def sample_record(sample_spotify_track, in_temp_dir):
    """TrackRecord for "Daft Punk - One More Time", not present locally"""
    return build_track_record(sample_spotify_track)


@pytest.fixture(autouse=True)
def reset_spotify_client():
    """Keep the SpotifyClient singleton from leaking between tests"""
    SpotifyClient.reset()
    yield
    SpotifyClient.reset()
