"""Local HTTP server that writes its response body slowly."""

import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import List


class _SlowBodyHandler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"

    def do_GET(self) -> None:
        chunks = self.server.chunks
        self.send_response(200)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(sum(len(chunk) for chunk in chunks)))
        self.end_headers()
        try:
            for index, chunk in enumerate(chunks):
                if index:
                    time.sleep(self.server.interval)
                self.wfile.write(chunk)
                self.wfile.flush()
        except (BrokenPipeError, ConnectionResetError):
            # Client gave up
            pass

    def log_message(self, format, *args) -> None:
        pass


class SlowBodyServer:
    """Serve one fixed body, pausing `interval` seconds between chunks.

    Example:
        >>> with SlowBodyServer.trickle(body, size=8, interval=0.1) as server:
        ...     adapter = ViaCEPAdapter(base_url=server.url)
    """

    def __init__(self, chunks: List[bytes], interval: float) -> None:
        self._server = ThreadingHTTPServer(("127.0.0.1", 0), _SlowBodyHandler)
        self._server.daemon_threads = True
        self._server.chunks = chunks
        self._server.interval = interval
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)

    @classmethod
    def trickle(cls, body: bytes, size: int, interval: float) -> "SlowBodyServer":
        return cls([body[i:i + size] for i in range(0, len(body), size)], interval)

    @property
    def url(self) -> str:
        host, port = self._server.server_address[:2]
        return f"http://{host}:{port}"

    def __enter__(self) -> "SlowBodyServer":
        self._thread.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self._server.shutdown()
        self._server.server_close()
        self._thread.join()
