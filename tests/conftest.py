"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Generator, List, Optional

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from simplewebserver import WebServer, ServerConfig


@pytest.fixture
def web_root(tmp_path: Path) -> Path:
    """
    A small served directory:

        index.html          "hi"
        about.html          "about"
        notes.txt           "plain notes"
        secret.txt          "top secret"
        docs/guide.html     "guide"
        docs/readme.txt     "readme"
        empty/              (no index)
    """
    root = tmp_path / "www"
    root.mkdir()
    (root / "index.html").write_text("hi")
    (root / "about.html").write_text("about")
    (root / "notes.txt").write_text("plain notes")
    (root / "secret.txt").write_text("top secret")
    (root / "docs").mkdir()
    (root / "docs" / "guide.html").write_text("guide")
    (root / "docs" / "readme.txt").write_text("readme")
    (root / "empty").mkdir()
    return root


@pytest.fixture
def outside_file(tmp_path: Path) -> Path:
    """A file next to the web root, never servable."""
    path = tmp_path / "outside.txt"
    path.write_text("outside")
    return path


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class FakeConnection:
    """Stands in for core.Connection: records everything written to it."""

    def __init__(self, client_ip: str = "127.0.0.1"):
        self.address = (client_ip, 40000)
        self.client_ip = client_ip
        self.id = "test"
        self.chunks: List[bytes] = []

    def send_response(self, data: bytes) -> bool:
        self.chunks.append(data)
        return True

    def send_file(self, f) -> bool:
        self.chunks.append(f.read())
        return True

    @property
    def sent(self) -> bytes:
        return b"".join(self.chunks)


@pytest.fixture
def fake_conn() -> FakeConnection:
    return FakeConnection()


class RunningServer:
    """Server helper that runs in a background thread."""

    def __init__(self, server: WebServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"configure_logs": False},
            daemon=True,
        )
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def connect(self) -> socket.socket:
        sock = socket.create_connection(("127.0.0.1", self.port), timeout=5.0)
        return sock

    def request(self, raw: bytes) -> bytes:
        """Send raw bytes and read until the server closes the connection."""
        with self.connect() as sock:
            sock.sendall(raw)
            return read_all(sock)

    def get(self, path: str) -> bytes:
        return self.request(f"GET {path} HTTP/1.0\r\n\r\n".encode())


def read_all(sock: socket.socket) -> bytes:
    chunks = []
    while True:
        data = sock.recv(4096)
        if not data:
            break
        chunks.append(data)
    return b"".join(chunks)


@pytest.fixture
def read_response():
    """Read from a socket until the server closes it."""
    return read_all


@pytest.fixture
def make_server(web_root: Path) -> Generator:
    """
    Factory for running servers on an OS-assigned port.

        srv = make_server(ratelimit=0)
        srv.get("/")
    """
    started: List[RunningServer] = []

    def factory(**overrides) -> RunningServer:
        options = dict(host="127.0.0.1", port=0, root=str(web_root), ratelimit=0)
        options.update(overrides)
        running = RunningServer(WebServer(ServerConfig(**options)))
        running.start()
        started.append(running)
        return running

    yield factory

    for running in started:
        running.stop()


@pytest.fixture
def test_server(make_server) -> RunningServer:
    """A running server with rate limiting disabled."""
    return make_server()
