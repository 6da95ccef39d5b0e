"""Main entry point for the Flask web application."""

import argparse
import logging
import os
import sys
from collections.abc import Callable
from logging import Formatter

from flask import Flask
from werkzeug.serving import make_server

from twserver.api.routes.static_bp import register_static_mounts
from twserver.api.routes.wiki_bp import wiki_bp
from twserver.core.config import ServerConfig, load_config
from twserver.core.errors import ConfigError
from twserver.services.backup import BackupResult, BackupService
from twserver.utils.log_handler import ArchivingRotatingFileHandler
from twserver.version import __version__

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s %(filename)s:%(lineno)d"


def setup_logging(config: ServerConfig) -> None:
    """
    Configure root logger with console and rotating file handlers.
    """
    log_formatter = Formatter(LOG_FORMAT)
    root = logging.getLogger()
    env = os.getenv("TWSERVER_ENV", "production").lower()
    root.setLevel(logging.DEBUG if env == "development" else logging.INFO)

    console = logging.StreamHandler()
    console.setFormatter(log_formatter)
    root.addHandler(console)

    log_dir = os.path.dirname(os.path.abspath(config.log_file_name))
    try:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = ArchivingRotatingFileHandler(
            config.log_file_name,
            max_size_mb=config.log_max_size,
            backup_count=config.log_max_backups,
            max_age_days=config.log_max_age,
            compress=config.log_compress,
        )
    except OSError as e:
        print(f"Unable to initialize the log file '{config.log_file_name}': {e}", file=sys.stderr)
        return
    file_handler.setFormatter(log_formatter)
    root.addHandler(file_handler)


def create_app(
    server_config: ServerConfig | None = None,
    backup_service: BackupService | None = None,
    on_backup_complete: Callable[[BackupResult], None] | None = None,
) -> Flask:
    """Factory function to create and configure the Flask app.

    Args:
        server_config: Configuration to serve with; defaults apply when omitted.
        backup_service: Pre-built backup service, mainly for tests.
        on_backup_complete: Hook called after every detached backup run.

    Returns:
        The configured app with its backup service started.
    """
    config = server_config or ServerConfig()
    try:
        config.validate()
    except ConfigError as err:
        logger.error("Configuration validation failed: %s", err)
        raise

    if not config.template_has_tokens():
        logger.warning(
            "Backup file name template '%s' has neither :name: nor :date:, every save overwrites the same backup",
            config.backup_file_format,
        )

    flask_app = Flask(__name__, static_folder=None)
    flask_app.config["TWSERVER_VERSION"] = __version__

    service = backup_service or BackupService(config, on_complete=on_backup_complete)
    service.start()

    # Attach to app context
    flask_app.server_config = config  # type: ignore[attr-defined]
    flask_app.backup_service = service  # type: ignore[attr-defined]

    # Register blueprints
    register_static_mounts(flask_app, config.serve_dirs)
    flask_app.register_blueprint(wiki_bp)

    # CLI commands
    @flask_app.cli.command("backup-status")
    def backup_status() -> None:
        """Show where the live document and its backups are kept."""
        print(f"twserver {flask_app.config['TWSERVER_VERSION']}")
        print(f"Live document: {config.index_path}")
        print(f"Backup directory: {config.backup_path}")

    flask_app.logger.info("Application initialized successfully")
    return flask_app


def serve(app: Flask, config: ServerConfig) -> None:
    """Serve ``app`` until interrupted, then wait for pending backups."""
    srv = make_server(config.host, config.port, app, threaded=True)
    logger.info("HTTP Server started")
    print(f"TW HTTP Server Listening on {config.address}")
    try:
        srv.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        logger.info("HTTP Server stopped")
        srv.server_close()
        # Let in-flight backups finish
        app.backup_service.stop(wait=True)


def main(argv: list[str] | None = None) -> int:
    """Command line entry point."""
    parser = argparse.ArgumentParser(prog="twserver", description="Single-document wiki server with backups on save.")
    parser.add_argument("-c", "--config", help="configuration file (default: <executable>.json)")
    parser.add_argument("--strict-config", action="store_true", help="abort if the configuration file is invalid")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config, strict=args.strict_config)
    except ConfigError as err:
        print(f"Unable to read the configuration file: {err}", file=sys.stderr)
        return 1

    setup_logging(config)

    try:
        app = create_app(config)
    except (ConfigError, OSError) as err:
        logger.critical("Unable to start the server: %s", err)
        return 1

    try:
        serve(app, config)
    except OSError as err:
        logger.critical("Unable to start the HTTP Server: %s", err)
        app.backup_service.stop(wait=True)
        return 1
    return 0
