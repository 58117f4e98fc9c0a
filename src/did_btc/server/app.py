"""HTTP resolver for did-btc on top of the stdlib ``http.server``.

Endpoints
---------
``POST /resolve``
    Resolve a DID from the transactions in the request body.
``GET /identifiers/{did}``
    Decode a ``did:btc`` identifier, with its document if it was resolved.
``GET /health``
    Liveness probe.

Run it with::

    python -m did_btc.server.app --host 127.0.0.1 --port 9000 --log-level DEBUG

Each request is answered from :mod:`did_btc.server.routes`; this module
only parses paths and bodies and writes JSON back.
"""
from __future__ import annotations

import argparse
import json
import logging
import urllib.parse
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Callable

from did_btc.server import routes

logger = logging.getLogger(__name__)

#: Request bodies above this size are refused with 413.
MAX_BODY_BYTES: int = 4 * 1024 * 1024

_IDENTIFIERS_PREFIX = "/identifiers/"

RouteResult = tuple[int, dict[str, object]]

_POST_ROUTES: dict[str, Callable[[dict[str, object]], RouteResult]] = {
    "/resolve": routes.handle_resolve,
}


def _error(status: HTTPStatus, detail: str) -> RouteResult:
    return int(status), {"error": status.phrase, "detail": detail}


class DidBtcHandler(BaseHTTPRequestHandler):
    """Request handler of the resolver. Bodies and responses are JSON."""

    server_version = "did-btc"

    def log_message(self, format: str, *args: object) -> None:
        logger.debug("%s %s", self.address_string(), format % args)

    def do_GET(self) -> None:
        path = self._path()
        if path == "/health":
            self._respond(routes.handle_health())
        elif path.startswith(_IDENTIFIERS_PREFIX) and "/" not in path[len(_IDENTIFIERS_PREFIX):]:
            did_id = urllib.parse.unquote(path[len(_IDENTIFIERS_PREFIX):])
            self._respond(routes.handle_get_identifier(did_id))
        else:
            self._respond(_error(HTTPStatus.NOT_FOUND, f"No route for GET {path}"))

    def do_POST(self) -> None:
        path = self._path()
        handler = _POST_ROUTES.get(path)
        if handler is None:
            self._respond(_error(HTTPStatus.NOT_FOUND, f"No route for POST {path}"))
            return
        body = self._json_body()
        if isinstance(body, dict):
            self._respond(handler(body))
        else:
            self._respond(body)

    def do_PUT(self) -> None:
        self._respond(_error(HTTPStatus.METHOD_NOT_ALLOWED, "The resolver is read-only."))

    do_DELETE = do_PUT

    def _path(self) -> str:
        return urllib.parse.urlparse(self.path).path.rstrip("/") or "/"

    def _respond(self, result: RouteResult) -> None:
        status, data = result
        payload = json.dumps(data, default=str).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def _json_body(self) -> dict[str, object] | RouteResult:
        """Return the request body as a JSON object, or the error to send."""
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            return _error(HTTPStatus.BAD_REQUEST, "Invalid Content-Length header.")
        if length > MAX_BODY_BYTES:
            return _error(
                HTTPStatus.REQUEST_ENTITY_TOO_LARGE,
                f"Request body exceeds {MAX_BODY_BYTES} bytes.",
            )
        if length <= 0:
            return {}

        try:
            parsed = json.loads(self.rfile.read(length).decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            return int(HTTPStatus.BAD_REQUEST), {"error": "Invalid JSON", "detail": str(exc)}
        if not isinstance(parsed, dict):
            return int(HTTPStatus.BAD_REQUEST), {
                "error": "Invalid JSON",
                "detail": "Expected a JSON object.",
            }
        return parsed


def create_server(host: str = "0.0.0.0", port: int = 8080) -> HTTPServer:
    """Bind the resolver without starting it.

    Parameters
    ----------
    host:
        Address to bind; all interfaces by default.
    port:
        TCP port. ``0`` picks a free one, readable from ``server.server_port``.
    """
    server = HTTPServer((host, port), DidBtcHandler)
    logger.info("did-btc resolver bound to http://%s:%d", host, server.server_port)
    return server


def run_server(host: str = "0.0.0.0", port: int = 8080) -> None:
    """Serve until interrupted."""
    with create_server(host=host, port=port) as server:
        logger.info("Serving did-btc resolver; press Ctrl-C to stop")
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            logger.info("Stopping did-btc resolver")


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m did_btc.server.app",
        description="Resolve did:btc DIDs over HTTP.",
    )
    parser.add_argument("--host", default="0.0.0.0", help="bind address (default: %(default)s)")
    parser.add_argument("--port", type=int, default=8080, help="TCP port (default: %(default)s)")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="logging level (default: %(default)s)",
    )
    return parser


if __name__ == "__main__":
    args = _build_arg_parser().parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    run_server(host=args.host, port=args.port)
