"""Tests for logging setup and the command line entry point."""

import json
import logging

import pytest

from twserver.core.config import ServerConfig
from twserver.utils.log_handler import ArchivingRotatingFileHandler
from twserver.version import __version__
from twserver.web import main as main_module


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_setup_logging_creates_log_directory(tmp_path, restore_root_logger):
    config = ServerConfig(log_file_name=str(tmp_path / "logs" / "twserver.log"), log_max_size=2, log_max_backups=3)
    main_module.setup_logging(config)

    file_handlers = [h for h in restore_root_logger.handlers if isinstance(h, ArchivingRotatingFileHandler)]
    assert len(file_handlers) == 1
    assert file_handlers[0].maxBytes == 2 * 1024 * 1024
    assert file_handlers[0].backupCount == 3
    assert (tmp_path / "logs").is_dir()

    logging.getLogger("twserver.test").info("hello from the test")
    file_handlers[0].flush()
    assert "hello from the test" in (tmp_path / "logs" / "twserver.log").read_text()


def test_setup_logging_falls_back_to_console(tmp_path, restore_root_logger, capsys):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    main_module.setup_logging(ServerConfig(log_file_name=str(blocker / "twserver.log")))

    assert not any(isinstance(h, ArchivingRotatingFileHandler) for h in restore_root_logger.handlers)
    assert "Unable to initialize the log file" in capsys.readouterr().err


def test_create_app_warns_on_template_without_tokens(config, caplog):
    from dataclasses import replace

    app = main_module.create_app(replace(config, backup_file_format="latest.html"))
    try:
        assert "has neither :name: nor :date:" in caplog.text
    finally:
        app.backup_service.stop()


def test_main_strict_config_error_exits_with_failure(tmp_path):
    bad = tmp_path / "twserver.json"
    bad.write_text("{not json")
    assert main_module.main(["--config", str(bad), "--strict-config"]) == 1


def test_main_serves_loaded_config(tmp_path, monkeypatch, restore_root_logger):
    cfg_file = tmp_path / "twserver.json"
    cfg_file.write_text(
        json.dumps(
            {
                "Port": 0,
                "DocumentRootDir": str(tmp_path / "www"),
                "BackupDir": str(tmp_path / "backup"),
                "LogFileName": str(tmp_path / "logs" / "twserver.log"),
            }
        )
    )
    served = {}

    def fake_serve(app, config):
        served["config"] = config
        app.backup_service.stop()

    monkeypatch.setattr(main_module, "serve", fake_serve)
    assert main_module.main(["--config", str(cfg_file)]) == 0
    assert served["config"].backup_dir == str(tmp_path / "backup")
    assert (tmp_path / "backup").is_dir()


def test_main_fails_when_backup_directory_cannot_be_created(tmp_path, monkeypatch, restore_root_logger):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    cfg_file = tmp_path / "twserver.json"
    cfg_file.write_text(
        json.dumps({"BackupDir": str(blocker / "backup"), "LogFileName": str(tmp_path / "logs" / "twserver.log")})
    )
    monkeypatch.setattr(main_module, "serve", lambda app, config: pytest.fail("server should not start"))
    assert main_module.main(["--config", str(cfg_file)]) == 1


def test_backup_status_command_reports_version_and_paths(app, config):
    result = app.test_cli_runner().invoke(args=["backup-status"])
    assert result.exit_code == 0
    assert f"twserver {__version__}" in result.output
    assert config.index_path in result.output
    assert config.backup_path in result.output
