"""Test logging setup and the failure report"""

import logging

import pytest

from spot_sync.core.logger import (
    ErrorOnlyFilter,
    SyncFailedTrackHandler,
    log_sync_failure,
    setup_logging,
    shutdown_logging,
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    shutdown_logging()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestFailureReport:
    """Test the sync_failures report handler"""

    def test_only_failures_are_written(self, temp_dir):
        handler = SyncFailedTrackHandler(temp_dir / "report.log")
        handler.open()
        logger = logging.getLogger("spot_sync.tests.report")
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)
        try:
            logger.warning("An ordinary warning")
            log_sync_failure(logger, "Daft Punk - One More Time", "download", "Video unavailable")
        finally:
            logger.removeHandler(handler)
            handler.close()

        content = (temp_dir / "report.log").read_text(encoding="utf-8")
        assert content == "Daft Punk - One More Time\ndownload: Video unavailable\n\n"

    def test_close_twice(self, temp_dir):
        handler = SyncFailedTrackHandler(temp_dir / "report.log")
        handler.open()
        handler.close()
        handler.close()


def test_error_only_filter():
    error_filter = ErrorOnlyFilter()

    def record(level):
        return logging.LogRecord("x", level, __file__, 1, "msg", None, None)

    assert not error_filter.filter(record(logging.WARNING))
    assert error_filter.filter(record(logging.ERROR))
    assert error_filter.filter(record(logging.CRITICAL))


class TestSetupLogging:
    """Test handler installation"""

    def test_console_only(self, temp_dir, restore_root_logger):
        assert setup_logging(temp_dir) is None
        assert len(logging.getLogger().handlers) == 1
        assert not (temp_dir / "logs").exists()

    def test_log_files(self, temp_dir, restore_root_logger):
        logs_dir = setup_logging(temp_dir, log_to_file=True)

        assert logs_dir == temp_dir / "logs"
        names = sorted(p.name.split("_2")[0] for p in logs_dir.iterdir())
        assert names == ["log_errors", "log_full", "sync_failures"]
        assert len(logging.getLogger().handlers) == 4

    def test_repeated_setup_does_not_duplicate(self, temp_dir, restore_root_logger):
        setup_logging(temp_dir)
        setup_logging(temp_dir, debug=True)

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert handlers[0].level == logging.DEBUG
