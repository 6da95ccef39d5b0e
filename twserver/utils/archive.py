"""File write, copy, compress and delete helpers used by the backup pipeline.

Every helper logs its own failure before re-raising, so callers only need to
decide whether to abort.
"""

import logging
import os
import shutil
import zipfile
import zlib

from twserver.core.errors import ArchiveError

logger = logging.getLogger(__name__)

FILE_MODE = 0o644


def write_file(path: str, data: bytes) -> None:
    """Create or truncate ``path`` and write ``data`` in full.

    Raises:
        OSError: On any filesystem error.
    """
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_MODE)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
    except OSError as e:
        logger.error("Unable to write the file '%s': %s", path, e)
        raise


def copy_file(src: str, dst: str) -> None:
    """Read ``src`` into memory and write it to ``dst``.

    Raises:
        OSError: If ``src`` cannot be read or ``dst`` cannot be written.
    """
    try:
        with open(src, "rb") as f:
            content = f.read()
    except OSError as e:
        logger.error("Unable to copy the file '%s' to '%s': %s", src, dst, e)
        raise
    write_file(dst, content)


def compress_file(src: str, dst: str) -> None:
    """Create a single-entry deflate ZIP archive at ``dst`` holding ``src``.

    The entry is stored under the base name of ``src`` with its modification
    time. A partial archive may be left at ``dst`` on failure.

    Raises:
        OSError: If either path is inaccessible.
        ArchiveError: If encoding fails midway.
    """
    try:
        info = zipfile.ZipInfo.from_file(src, arcname=os.path.basename(src), strict_timestamps=False)
        info.compress_type = zipfile.ZIP_DEFLATED
        with zipfile.ZipFile(dst, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            with open(src, "rb") as source, archive.open(info, "w") as entry:
                shutil.copyfileobj(source, entry)
    except OSError as e:
        logger.error("Unable to compress the file '%s' into '%s': %s", src, dst, e)
        raise
    except (zlib.error, zipfile.LargeZipFile, ValueError, RuntimeError) as e:
        logger.error("Unable to encode the archive '%s': %s", dst, e)
        raise ArchiveError(f"Archive encoding failed for '{dst}': {e}") from e


def delete_file(path: str) -> None:
    """Remove the file at ``path``.

    Raises:
        OSError: If the file is missing or cannot be removed.
    """
    try:
        os.remove(path)
    except OSError as e:
        logger.error("Unable to delete the file '%s': %s", path, e)
        raise
