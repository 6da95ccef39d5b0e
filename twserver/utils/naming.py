"""Backup file name templating."""

import os
import re
import time

from twserver.core.config import DATE_TOKEN, NAME_TOKEN

_TOKEN_RE = re.compile(f"{re.escape(NAME_TOKEN)}|{re.escape(DATE_TOKEN)}")


def index_base_name(index_file: str) -> str:
    """Return the base name of ``index_file`` with its extension removed."""
    base = os.path.basename(index_file)
    stem, _ = os.path.splitext(base)
    return stem


def render_backup_name(template: str, index_file: str, timestamp: float | None = None) -> str:
    """Render a backup file name from ``template``.

    ``:name:`` is replaced with the index file name without extension and
    ``:date:`` with the Unix timestamp in seconds. Every occurrence is
    replaced in a single pass, so substituted text is never rescanned.
    A template with neither token renders to itself.
    """
    if timestamp is None:
        timestamp = time.time()
    replacements = {
        NAME_TOKEN: index_base_name(index_file),
        DATE_TOKEN: str(int(timestamp)),
    }
    return _TOKEN_RE.sub(lambda m: replacements[m.group(0)], template)
