from __future__ import annotations

import json
import threading
import time
from collections import Counter
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Iterator
from urllib.parse import urlsplit

import pytest

SLOW_SECONDS = 0.3


@dataclass
class LocalServer:
    base_url: str
    hits: Counter = field(default_factory=Counter)


@pytest.fixture
def local_server() -> Iterator[LocalServer]:
    hits: Counter = Counter()

    class Handler(BaseHTTPRequestHandler):
        def _reply(self, status: int, body: bytes = b"", headers: Any = ()) -> None:
            self.send_response(status)
            for name, value in headers:
                self.send_header(name, value)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            if self.command != "HEAD":
                self.wfile.write(body)

        def _handle(self) -> None:
            path = urlsplit(self.path).path
            hits[path] += 1
            length = int(self.headers.get("Content-Length") or 0)
            body = self.rfile.read(length) if length else b""

            if path.startswith("/status/"):
                code = int(path.rsplit("/", 1)[1])
                self._reply(code, f"status {code}".encode("utf-8"))
                return
            if path == "/slow":
                time.sleep(SLOW_SECONDS)
                self._reply(200, b"slow-ok")
                return
            if path.startswith("/redirect/"):
                code = int(path.rsplit("/", 1)[1])
                self._reply(code, headers=[("Location", "/echo")])
                return
            if path == "/login":
                self._reply(200, b"ok", headers=[("Set-Cookie", "sid=abc; Path=/")])
                return
            if path == "/echo":
                payload = {
                    "method": self.command,
                    "path": path,
                    "body": body.decode("utf-8"),
                    "authorization": self.headers.get("Authorization"),
                    "cookie": self.headers.get("Cookie"),
                    "content_type": self.headers.get("Content-Type"),
                }
                self._reply(200, json.dumps(payload).encode("utf-8"), headers=[("Content-Type", "application/json")])
                return
            self._reply(404, b"not found")

        do_GET = do_POST = do_PUT = do_PATCH = do_DELETE = _handle  # noqa: N815

        def log_message(self, format: str, *args: Any) -> None:  # noqa: A003
            return

    server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        host, port = server.server_address[:2]
        yield LocalServer(f"http://{host}:{port}", hits)
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=1)
