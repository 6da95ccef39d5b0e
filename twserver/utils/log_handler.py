"""Size-rotated log file handler with optional gzip and age-based pruning."""

import glob
import gzip
import os
import shutil
import time
from logging.handlers import RotatingFileHandler

SECONDS_PER_DAY = 24 * 60 * 60


class ArchivingRotatingFileHandler(RotatingFileHandler):
    """``RotatingFileHandler`` that can gzip rotated files and drop old ones.

    Args:
        filename: Active log file path.
        max_size_mb: Rotate once the file would exceed this size.
        backup_count: Number of rotated files to keep.
        max_age_days: Delete rotated files older than this; 0 keeps them.
        compress: Gzip rotated files (``<name>.N.gz``).
    """

    def __init__(
        self,
        filename: str,
        max_size_mb: int = 4,
        backup_count: int = 16,
        max_age_days: int = 28,
        compress: bool = True,
        encoding: str | None = "utf-8",
    ) -> None:
        super().__init__(
            filename,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding=encoding,
        )
        self.max_age_days = max_age_days
        if compress:
            self.namer = self._gzip_namer
            self.rotator = self._gzip_rotator

    @staticmethod
    def _gzip_namer(name: str) -> str:
        return name + ".gz"

    @staticmethod
    def _gzip_rotator(source: str, dest: str) -> None:
        with open(source, "rb") as f_in, gzip.open(dest, "wb") as f_out:
            shutil.copyfileobj(f_in, f_out)
        os.remove(source)

    def doRollover(self) -> None:
        super().doRollover()
        self.prune_expired()

    def rotated_files(self) -> list[str]:
        """Rotated siblings of the active log file."""
        return [p for p in glob.glob(glob.escape(self.baseFilename) + ".*") if p != self.baseFilename]

    def prune_expired(self, now: float | None = None) -> int:
        """Delete rotated files older than ``max_age_days``; return how many."""
        if self.max_age_days <= 0:
            return 0
        cutoff = (now if now is not None else time.time()) - self.max_age_days * SECONDS_PER_DAY
        removed = 0
        for path in self.rotated_files():
            try:
                if os.path.getmtime(path) < cutoff:
                    os.remove(path)
                    removed += 1
            except OSError:
                # Rotated away or removed concurrently
                continue
        return removed
