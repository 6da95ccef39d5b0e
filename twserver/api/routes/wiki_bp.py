"""Wiki blueprint: serves the live document and accepts saves via PUT."""

import logging

from flask import Blueprint, Response, current_app, request, send_file
from werkzeug.exceptions import ClientDisconnected, MethodNotAllowed

# Blueprint for the live document
wiki_bp = Blueprint("wiki_bp", __name__)
logger = logging.getLogger(__name__)

ALLOWED_METHODS = "HEAD, OPTIONS, GET, PUT"
# TiddlyWiki's PUT saver looks for a ``dav`` response header
DAV_CAPABILITY = "tw5/put"

# Methods routed to the handler. Any other method is a logged no-op, see unsupported_method.
_ROUTED_METHODS = ["GET", "HEAD", "OPTIONS", "PUT", "POST", "DELETE", "PATCH"]


# --- Helper Functions ---


def _empty_response() -> Response:
    return Response(b"", status=200)


def _invalid_url(path: str) -> Response:
    logger.warning("Requested resource '%s' not found | method=%s", path, request.method)
    return Response(f"Invalid URL: {path}", status=404, mimetype="text/plain")


def _ignore_method() -> Response:
    logger.warning("Unsupported HTTP request method %s. Only GET/PUT methods are supported.", request.method)
    return _empty_response()


def _serve_document() -> Response:
    """Send the live document, or 404 if it is missing."""
    index_path = current_app.server_config.index_path
    try:
        return send_file(index_path, conditional=True)
    except FileNotFoundError:
        logger.error("Live document '%s' not found", index_path)
        return Response(f"Document not found: {request.path}", status=404, mimetype="text/plain")


def _accept_save() -> Response:
    """Read the full body and hand it to the backup service."""
    try:
        body = request.get_data(cache=False)
    except (ClientDisconnected, OSError) as e:
        logger.error("Unable to read the request body content: %s | ip=%s", e, request.remote_addr)
        return _empty_response()

    current_app.backup_service.submit(body)
    logger.info("Save accepted (%d bytes) | ip=%s", len(body), request.remote_addr)
    return _empty_response()


@wiki_bp.after_request
def add_capability_headers(response: Response) -> Response:
    """Advertise the allowed methods and PUT support on every response."""
    response.headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
    response.headers["DAV"] = DAV_CAPABILITY
    return response


# --- Routes ---


@wiki_bp.route("/", methods=_ROUTED_METHODS)
def document() -> Response:
    """Dispatch requests on the live document by method."""
    method = request.method
    if method in ("HEAD", "OPTIONS"):
        return _empty_response()
    if method == "GET":
        return _serve_document()
    if method == "PUT":
        return _accept_save()
    return _ignore_method()


@wiki_bp.route("/<path:path>", methods=_ROUTED_METHODS)
def not_found(path: str) -> Response:
    """Reject every path other than the document root."""
    return _invalid_url("/" + path)


@wiki_bp.app_errorhandler(MethodNotAllowed)
def unsupported_method(error: MethodNotAllowed) -> Response:
    """Treat methods outside the routed set like the other unsupported ones."""
    response = _ignore_method() if request.path == "/" else _invalid_url(request.path)
    # Routing failed, so the blueprint after_request hook does not run
    return add_capability_headers(response)
