"""Test the sync session"""

import logging
import threading

from spot_sync.core.config import SyncOptions
from spot_sync.spotify.models import build_track_record
from spot_sync.sync.session import SyncSession

from tests.conftest import make_spotify_track


def make_records(names):
    return [
        build_track_record(make_spotify_track(name=name, track_id=str(i)))
        for i, name in enumerate(names)
    ]


class TestSyncSession:
    """Test session state and counters"""

    def test_tracks_are_an_ordered_tuple(self, in_temp_dir):
        records = make_records(["Aerodynamic", "Digital Love", "Voyager"])
        session = SyncSession(records)

        assert isinstance(session.tracks, tuple)
        assert [t.title for t in session.tracks] == ["Aerodynamic", "Digital Love", "Voyager"]
        assert session.total == 3

    def test_default_options(self, in_temp_dir):
        session = SyncSession([])
        assert session.options == SyncOptions()

    def test_snapshot_is_immutable(self, in_temp_dir):
        records = make_records(["Aerodynamic"])
        session = SyncSession(records)
        records.append(make_records(["Voyager"])[0])

        snapshot = session.snapshot()

        assert isinstance(snapshot, tuple)
        assert len(snapshot) == 1

    def test_failures_keep_order(self, in_temp_dir):
        records = make_records(["Aerodynamic", "Digital Love", "Voyager"])
        session = SyncSession(records)

        session.record_failure(records[2], "search", "no acceptable candidate")
        session.record_failure(records[0], "download", "Video unavailable")

        assert session.failed_names() == [
            "Daft Punk - Voyager",
            "Daft Punk - Aerodynamic",
        ]
        failures = session.failed_tracks()
        assert failures[0].stage == "search"
        assert failures[1].reason == "Video unavailable"

    def test_failure_is_logged_with_report_extras(self, in_temp_dir, caplog):
        record = make_records(["Aerodynamic"])[0]
        session = SyncSession([record])

        with caplog.at_level(logging.WARNING):
            session.record_failure(record, "download", "HTTP Error 403")

        assert caplog.records[-1].sync_failed_track_name == "Daft Punk - Aerodynamic"
        assert caplog.records[-1].sync_failed_stage == "download"

    def test_counters(self, in_temp_dir):
        records = make_records(["Aerodynamic", "Digital Love"])
        session = SyncSession(records)

        session.record_skipped(records[0])
        session.record_fetched(records[1])
        session.record_committed(records[1])

        assert session.skipped == 1
        assert session.fetched == 1
        assert session.committed == 1

    def test_count_local_and_missing(self, in_temp_dir):
        (in_temp_dir / "Daft Punk - Voyager.mp3").write_bytes(b"audio")
        records = make_records(["Aerodynamic", "Digital Love", "Voyager"])
        session = SyncSession(records)

        assert session.count_local() == 1
        assert session.count_missing() == 2

    def test_concurrent_failures_are_all_recorded(self, in_temp_dir):
        record = make_records(["Aerodynamic"])[0]
        session = SyncSession([record])

        def fail_many():
            for _ in range(50):
                session.record_failure(record, "commit", "boom")
                session.record_committed(record)

        threads = [threading.Thread(target=fail_many) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(session.failed_tracks()) == 400
        assert session.committed == 400
