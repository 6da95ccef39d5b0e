"""Read-only directory trees served under configured URL prefixes."""

import html
import logging
import os
from collections.abc import Iterable
from urllib.parse import quote

from flask import Blueprint, Flask, Response, redirect, request, send_from_directory
from werkzeug.exceptions import NotFound
from werkzeug.security import safe_join

from twserver.core.config import StaticMount

logger = logging.getLogger(__name__)

DIRECTORY_INDEX = "index.html"


def _render_listing(directory: str) -> Response:
    """Render a plain HTML link list of the entries in ``directory``."""
    lines = ["<pre>"]
    for entry in sorted(os.scandir(directory), key=lambda e: e.name):
        name = entry.name + ("/" if entry.is_dir() else "")
        lines.append(f'<a href="{quote(name)}">{html.escape(name)}</a>')
    lines.append("</pre>")
    return Response("\n".join(lines) + "\n", mimetype="text/html")


def create_mount_blueprint(mount: StaticMount, name: str) -> Blueprint:
    """Build a blueprint serving ``mount.path`` under ``mount.url``."""
    root = os.path.abspath(mount.path)
    bp = Blueprint(name, __name__, url_prefix="/" + mount.url.strip("/"))

    @bp.route("/", defaults={"filename": ""})
    @bp.route("/<path:filename>")
    def serve(filename: str) -> Response:
        target = safe_join(root, filename) if filename else root
        if target is None:
            logger.warning("Rejected unsafe path '%s' under %s", filename, mount.url)
            raise NotFound()

        if os.path.isdir(target):
            if filename and not filename.endswith("/"):
                return redirect(request.path + "/", code=301)
            if os.path.isfile(os.path.join(target, DIRECTORY_INDEX)):
                return send_from_directory(root, os.path.join(filename, DIRECTORY_INDEX))
            return _render_listing(target)

        return send_from_directory(root, filename)

    return bp


def register_static_mounts(app: Flask, mounts: Iterable[StaticMount]) -> None:
    """Register one read-only file server per configured mount."""
    for i, mount in enumerate(mounts):
        app.register_blueprint(create_mount_blueprint(mount, f"static_mount_{i}"))
        logger.info("Serving %s under %s", os.path.abspath(mount.path), mount.url)
