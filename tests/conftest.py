import io

import pytest

from folder_sync import SyncLog


@pytest.fixture
def trees(tmp_path):
    """Empty source directory and a not-yet-created replica path"""
    source = tmp_path / "source"
    replica = tmp_path / "replica"
    source.mkdir()
    return source, replica


@pytest.fixture
def sync_log(tmp_path):
    """Open run log writing to tmp_path/logs/sync.log and an in-memory console"""
    log = SyncLog(tmp_path / "logs" / "sync.log", stream=io.StringIO())
    log.open()
    yield log
    log.close()


@pytest.fixture
def read_log(sync_log):
    """Return the log file content written so far"""
    def _read():
        for handler in sync_log._logger.handlers:
            handler.flush()
        return sync_log.log_path.read_text(encoding="utf-8")
    return _read
