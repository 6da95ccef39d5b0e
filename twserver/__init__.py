"""Single-document wiki server with compressed backups on save."""

# Lazy import of the Flask factory so that ``twserver.__version__`` can be
# read without pulling in Flask and the scheduler.
from .version import __version__  # re-export for ``twserver.__version__``

__all__ = ["create_app", "__version__"]


def create_app(*args, **kwargs):
    """Factory function wrapper for the Flask application."""
    from .web.main import (
        create_app as _create_app,  # pylint:disable=import-outside-toplevel
    )

    return _create_app(*args, **kwargs)
