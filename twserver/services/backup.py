"""Service that saves new wiki content and keeps a compressed backup of it.

Every accepted PUT body goes through the same sequence:

1. Render the backup file name from the configured template
2. Write the body to the backup file
3. Copy the backup file over the live document
4. Compress the backup file into ``<backup>.zip``
5. Delete the uncompressed backup file

Each step runs only if the previous one succeeded. Failures are logged and
abort the remaining steps; nothing is rolled back or retried. The live
document is only ever replaced by content already written elsewhere.

Runs are detached from the HTTP request that triggered them and execute on a
background scheduler. A per-document lock serializes runs so that concurrent
saves never interleave on the live document or the backup file.
"""

import logging
import os
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from apscheduler.schedulers.background import BackgroundScheduler

from twserver.core.config import ServerConfig
from twserver.core.errors import ArchiveError
from twserver.utils.archive import compress_file, copy_file, delete_file, write_file
from twserver.utils.naming import render_backup_name

logger = logging.getLogger(__name__)


class BackupStep(str, Enum):
    """Pipeline steps, in execution order."""

    NONE = "none"
    WRITE = "write"
    PROMOTE = "promote"
    COMPRESS = "compress"
    CLEANUP = "cleanup"


@dataclass
class BackupResult:
    """Outcome of one pipeline run, handed to the completion hook."""

    index_path: str
    backup_path: str
    archive_path: str
    completed: BackupStep = BackupStep.NONE
    error: Exception | None = None

    @property
    def document_saved(self) -> bool:
        """True once the live document holds the new content."""
        return self.completed in (BackupStep.PROMOTE, BackupStep.COMPRESS, BackupStep.CLEANUP)

    @property
    def ok(self) -> bool:
        return self.completed is BackupStep.CLEANUP and self.error is None


class BackupService:
    """Runs the save-and-backup pipeline for the live document."""

    SCHEDULER_NAME = "backup_service"

    def __init__(
        self,
        config: ServerConfig,
        clock: Callable[[], float] | None = None,
        on_complete: Callable[[BackupResult], None] | None = None,
    ) -> None:
        self.config = config
        self._clock = clock or time.time
        self._on_complete = on_complete

        # Single writer per document
        self._lock = threading.Lock()
        self.scheduler = BackgroundScheduler(daemon=True)

    def start(self) -> None:
        """Create the backup directory and start the background scheduler.

        Raises:
            OSError: If the backup directory cannot be created.
        """
        backup_dir = self.config.backup_path
        if not os.path.isdir(backup_dir):
            try:
                os.makedirs(backup_dir, exist_ok=True)
            except OSError as e:
                logger.critical("Unable to create the backup directory '%s': %s", backup_dir, e)
                raise
            logger.info("Created backup directory %s", backup_dir)

        if self.scheduler.running:
            logger.warning("Backup service is already running")
            return
        self.scheduler.start()
        logger.info("Backup service started")

    def stop(self, wait: bool = True) -> None:
        """Stop the scheduler, by default after in-flight backups finish."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
        logger.info("Backup service stopped")

    def submit(self, data: bytes) -> None:
        """Schedule a detached pipeline run for ``data``.

        The caller gets no result; the outcome is visible only through the
        filesystem, the logs and the ``on_complete`` hook.
        """
        if not self.scheduler.running:
            logger.warning("Backup service is not running, save queued until it starts")
        self.scheduler.add_job(
            self._backup_job,
            args=[data],
            name=self.SCHEDULER_NAME,
            # Never drop a save because the pool was busy
            misfire_grace_time=None,
        )
        logger.debug("Backup scheduled (%d bytes)", len(data))

    def _backup_job(self, data: bytes) -> None:
        """Scheduled job wrapping ``run`` with the completion hook."""
        result = self.run(data)
        if self._on_complete is None:
            return
        try:
            self._on_complete(result)
        except Exception:  # pylint:disable=broad-except
            logger.exception("Backup completion hook failed")

    def run(self, data: bytes) -> BackupResult:
        """Run the pipeline synchronously and return its outcome."""
        with self._lock:
            return self._run_locked(data)

    def _run_locked(self, data: bytes) -> BackupResult:
        config = self.config
        backup_name = render_backup_name(config.backup_file_format, config.index_file, self._clock())
        backup_path = os.path.join(config.backup_path, backup_name)
        result = BackupResult(
            index_path=config.index_path,
            backup_path=backup_path,
            archive_path=backup_path + ".zip",
        )

        steps = (
            (BackupStep.WRITE, lambda: write_file(result.backup_path, data)),
            (BackupStep.PROMOTE, lambda: copy_file(result.backup_path, result.index_path)),
            (BackupStep.COMPRESS, lambda: compress_file(result.backup_path, result.archive_path)),
            (BackupStep.CLEANUP, lambda: delete_file(result.backup_path)),
        )
        for step, action in steps:
            try:
                action()
            except (OSError, ArchiveError) as e:
                result.error = e
                logger.error("Backup aborted at step '%s' for %s: %s", step.value, backup_path, e)
                return result
            result.completed = step

        logger.info("Document saved, backup archived to %s", result.archive_path)
        return result
