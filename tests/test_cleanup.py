"""Test interrupt handling and temporary file cleanup"""

import os
import signal
from unittest.mock import patch

import pytest

from spot_sync.core.config import SyncOptions
from spot_sync.spotify.models import build_track_records
from spot_sync.sync.cleanup import InterruptHandler, remove_temp_files, restore_local_files
from spot_sync.sync.session import SyncSession

from tests.conftest import make_spotify_track


@pytest.fixture
def session(in_temp_dir):
    tracks = [
        make_spotify_track(name=name, track_id=str(i))
        for i, name in enumerate(["Aerodynamic", "Digital Love", "Voyager"])
    ]
    return SyncSession(build_track_records(tracks), SyncOptions())


class TestRemoveTempFiles:
    """Test best-effort artifact removal"""

    def test_removes_every_known_artifact(self, session, in_temp_dir):
        names = [
            ".daft-punk-aerodynamic.mp3",
            ".daft-punk-aerodynamic.jpg",
            ".daft-punk-aerodynamic.norm.mp3",
            ".daft-punk-aerodynamic.webm.part",
            ".daft-punk-aerodynamic.part-Frag12",
            ".daft-punk-aerodynamic.ytdl",
        ]
        for name in names:
            (in_temp_dir / name).write_bytes(b"x")

        removed = remove_temp_files(session.snapshot())

        assert sorted(removed) == sorted(names)
        assert list(in_temp_dir.iterdir()) == []

    def test_final_files_are_kept(self, session, in_temp_dir):
        final = in_temp_dir / "Daft Punk - Aerodynamic.mp3"
        final.write_bytes(b"audio")

        assert remove_temp_files(session.snapshot()) == []
        assert final.exists()

    def test_unrelated_hidden_files_are_kept(self, session, in_temp_dir):
        other = in_temp_dir / ".daft-punk-around-the-world.mp3"
        other.write_bytes(b"x")

        remove_temp_files(session.snapshot())

        assert other.exists()

    def test_removal_errors_are_ignored(self, session, in_temp_dir):
        (in_temp_dir / ".daft-punk-voyager.mp3").write_bytes(b"x")

        with patch("spot_sync.sync.cleanup.os.remove", side_effect=PermissionError("locked")):
            assert remove_temp_files(session.snapshot()) == []

    def test_committed_file_survives_in_flight_artifacts(self, session, in_temp_dir):
        # Track 1 committed, track 2 in flight, track 3 untouched
        (in_temp_dir / "Daft Punk - Aerodynamic.mp3").write_bytes(b"audio")
        (in_temp_dir / ".daft-punk-digital-love.mp3").write_bytes(b"half")
        (in_temp_dir / ".daft-punk-digital-love.jpg").write_bytes(b"cover")

        remove_temp_files(session.snapshot())

        assert sorted(p.name for p in in_temp_dir.iterdir()) == ["Daft Punk - Aerodynamic.mp3"]


@pytest.fixture
def local_session(in_temp_dir):
    for name in ["Aerodynamic", "Voyager"]:
        (in_temp_dir / f"Daft Punk - {name}.mp3").write_bytes(name.encode())
    tracks = [
        make_spotify_track(name=name, track_id=str(i))
        for i, name in enumerate(["Aerodynamic", "Voyager"])
    ]
    return SyncSession(build_track_records(tracks), SyncOptions(flush_metadata=True))


class TestRestoreLocalFiles:
    """Test that moved-aside local files get their name back"""

    def test_moved_local_file_is_restored(self, local_session, in_temp_dir):
        os.replace("Daft Punk - Voyager.mp3", ".daft-punk-voyager.mp3")

        restored = restore_local_files(local_session.snapshot())

        assert restored == ["Daft Punk - Voyager.mp3"]
        assert sorted(p.name for p in in_temp_dir.iterdir()) == [
            "Daft Punk - Aerodynamic.mp3",
            "Daft Punk - Voyager.mp3",
        ]
        assert (in_temp_dir / "Daft Punk - Voyager.mp3").read_bytes() == b"Voyager"

    def test_present_final_file_is_not_overwritten(self, local_session, in_temp_dir):
        (in_temp_dir / ".daft-punk-voyager.mp3").write_bytes(b"stale")

        assert restore_local_files(local_session.snapshot()) == []
        assert (in_temp_dir / "Daft Punk - Voyager.mp3").read_bytes() == b"Voyager"

    def test_fresh_download_is_not_restored(self, session, in_temp_dir):
        (in_temp_dir / ".daft-punk-voyager.mp3").write_bytes(b"download")

        assert restore_local_files(session.snapshot()) == []
        assert not (in_temp_dir / "Daft Punk - Voyager.mp3").exists()

    def test_handle_restores_before_removing(self, local_session, in_temp_dir):
        os.replace("Daft Punk - Aerodynamic.mp3", ".daft-punk-aerodynamic.mp3")
        (in_temp_dir / ".daft-punk-aerodynamic.jpg").write_bytes(b"cover")

        with pytest.raises(SystemExit):
            InterruptHandler(local_session).handle(signal.SIGINT, None)

        assert sorted(p.name for p in in_temp_dir.iterdir()) == [
            "Daft Punk - Aerodynamic.mp3",
            "Daft Punk - Voyager.mp3",
        ]


class TestInterruptHandler:
    """Test signal registration and the exit path"""

    def test_install_and_uninstall(self, session):
        previous = signal.getsignal(signal.SIGINT)
        handler = InterruptHandler(session)

        handler.install()
        try:
            assert signal.getsignal(signal.SIGINT) == handler.handle
            if hasattr(signal, "SIGTERM"):
                assert signal.getsignal(signal.SIGTERM) == handler.handle
        finally:
            handler.uninstall()

        assert signal.getsignal(signal.SIGINT) == previous

    def test_handle_cleans_up_and_exits(self, session, in_temp_dir, caplog):
        (in_temp_dir / ".daft-punk-voyager.mp3").write_bytes(b"half")
        handler = InterruptHandler(session)

        with pytest.raises(SystemExit) as exc_info:
            handler.handle(signal.SIGINT, None)

        assert exc_info.value.code == 130
        assert not (in_temp_dir / ".daft-punk-voyager.mp3").exists()
        assert "Signal captured: cleaning up temporary files." in caplog.text
        assert "Explicit closure request by the user. Exiting." in caplog.text

    def test_handle_uses_session_snapshot(self, session):
        handler = InterruptHandler(session)

        with patch("spot_sync.sync.cleanup.remove_temp_files", return_value=[]) as remove:
            with pytest.raises(SystemExit):
                handler.handle(signal.SIGINT, None)

        remove.assert_called_once_with(session.snapshot())
