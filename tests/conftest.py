"""
pytest configuration and fixtures.
"""

import threading
from collections.abc import Generator
from pathlib import Path

import pytest

from twserver.core.config import ServerConfig, StaticMount
from twserver.services.backup import BackupResult
from twserver.web.main import create_app


class BackupRecorder:
    """Completion hook that lets tests wait for detached backup runs."""

    def __init__(self) -> None:
        self.results: list[BackupResult] = []
        self._cond = threading.Condition()

    def __call__(self, result: BackupResult) -> None:
        with self._cond:
            self.results.append(result)
            self._cond.notify_all()

    def wait_for(self, count: int = 1, timeout: float = 5.0) -> list[BackupResult]:
        with self._cond:
            if not self._cond.wait_for(lambda: len(self.results) >= count, timeout=timeout):
                raise AssertionError(f"Only {len(self.results)} of {count} backups completed")
            return list(self.results)


@pytest.fixture
def www_dir(tmp_path: Path) -> Path:
    """Document root holding an initial ``index.html``."""
    root = tmp_path / "www"
    root.mkdir()
    (root / "index.html").write_bytes(b"v1")
    return root


@pytest.fixture
def assets_dir(tmp_path: Path) -> Path:
    """Directory tree exposed through a static mount."""
    root = tmp_path / "assets"
    (root / "img").mkdir(parents=True)
    (root / "app.css").write_text("body {}")
    (root / "img" / "logo.txt").write_text("logo")
    return root


@pytest.fixture
def config(tmp_path: Path, www_dir: Path, assets_dir: Path) -> ServerConfig:
    """Test server configuration rooted in a temporary directory."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        document_root_dir=str(www_dir),
        index_file="index.html",
        backup_dir=str(tmp_path / "backup"),
        serve_dirs=(StaticMount(url="/files/", path=str(assets_dir)),),
        log_file_name=str(tmp_path / "logs" / "twserver.log"),
    )


@pytest.fixture
def recorder() -> BackupRecorder:
    return BackupRecorder()


@pytest.fixture
def app(config: ServerConfig, recorder: BackupRecorder) -> Generator:
    """Flask app with a running backup service, stopped after the test."""
    flask_app = create_app(config, on_backup_complete=recorder)
    flask_app.config["TESTING"] = True
    yield flask_app
    flask_app.backup_service.stop(wait=True)


@pytest.fixture
def client(app):
    return app.test_client()
