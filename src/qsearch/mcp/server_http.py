from __future__ import annotations

from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
import json
import logging
from typing import Any

from qsearch.mcp.protocol import MCPProtocol
from qsearch.service import QuickSearchService

logger = logging.getLogger(__name__)


class _Handler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"
    server_version = "qsearch-mcp"

    @property
    def _protocol(self) -> MCPProtocol:
        return self.server.protocol  # type: ignore[attr-defined]

    def do_GET(self) -> None:  # noqa: N802
        if self.path == "/health":
            self._write_json(200, {"ok": True})
            return
        if self.path == "/status":
            self._write_json(200, self._protocol.handle({"tool": "qsearch_status"}))
            return
        self._write_json(404, {"ok": False, "error": "not found"})

    def do_POST(self) -> None:  # noqa: N802
        if self.path != "/mcp":
            self._write_json(404, {"ok": False, "error": "not found"})
            return

        try:
            length = int(self.headers.get("Content-Length", "0"))
        except ValueError:
            self._write_json(411, {"ok": False, "error": "invalid content length"})
            return
        raw = self.rfile.read(length)
        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            self._write_json(400, {"ok": False, "error": "invalid json"})
            return
        if not isinstance(payload, dict):
            self._write_json(400, {"ok": False, "error": "request must be a json object"})
            return

        self._write_json(200, self._protocol.handle(payload))

    def log_message(self, fmt: str, *args: Any) -> None:
        logger.debug("%s " + fmt, self.address_string(), *args)

    def _write_json(self, status: int, payload: Any) -> None:
        body = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


def make_http_server(service: QuickSearchService, host: str = "127.0.0.1", port: int = 8181) -> ThreadingHTTPServer:
    server = ThreadingHTTPServer((host, port), _Handler)
    server.protocol = MCPProtocol(service)  # type: ignore[attr-defined]
    return server


def run_http_server(service: QuickSearchService, host: str = "127.0.0.1", port: int = 8181) -> int:
    server = make_http_server(service, host=host, port=port)
    logger.info("serving on http://%s:%s", host, server.server_address[1])
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
    return 0
