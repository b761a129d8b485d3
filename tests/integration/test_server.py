"""
End-to-end tests: a real server on a real socket.
"""

import os
import socket
import subprocess
import sys
import time
from pathlib import Path

import pytest


class TestServing:
    """Files, listings and errors over the wire."""

    def test_index(self, test_server):
        assert test_server.get("/") == b"HTTP/1.1 200 OK\n\nhi"

    def test_missing(self, test_server):
        assert test_server.get("/missing") == b"HTTP/1.1 404 Not Found\n\n404"

    def test_html_fallback(self, test_server):
        assert test_server.get("/about") == b"HTTP/1.1 200 OK\n\nabout"

    def test_query_string_ignored(self, test_server):
        assert test_server.get("/notes.txt?v=2") == b"HTTP/1.1 200 OK\n\nplain notes"

    def test_large_file(self, make_server, web_root: Path):
        """Test that a file bigger than one chunk arrives intact."""
        payload = os.urandom(300_000)
        (web_root / "big.bin").write_bytes(payload)
        server = make_server()

        assert server.get("/big.bin") == b"HTTP/1.1 200 OK\n\n" + payload

    def test_listing(self, test_server):
        response = test_server.get("/docs/")

        assert response.startswith(b"HTTP/1.1 200 OK\n\n")
        assert b'href="/docs/guide.html"' in response

    @pytest.mark.parametrize("raw", [
        b"POST / HTTP/1.0\r\n\r\n",
        b"GET index.html HTTP/1.0\r\n\r\n",
        b"hello\r\n",
    ])
    def test_bad_request(self, test_server, raw: bytes):
        assert test_server.request(raw) == b"HTTP/1.1 400 Bad Request\n\n400\n"

    def test_unexpected_error_is_500(self, test_server, monkeypatch):
        """Test that a handler failure becomes a 500 and the server keeps going."""
        def boom(target, conn):
            raise RuntimeError("handler fault")

        monkeypatch.setattr(test_server.server._handler, "handle", boom)

        assert test_server.get("/") == b"HTTP/1.1 500 Internal Server Error\n\n500\n"
        assert test_server.get("/") == b"HTTP/1.1 500 Internal Server Error\n\n500\n"

    def test_client_closes_without_sending(self, test_server, read_response):
        """Test that an empty connection doesn't disturb the server."""
        with test_server.connect() as sock:
            sock.shutdown(socket.SHUT_WR)
            read_response(sock)

        assert test_server.get("/") == b"HTTP/1.1 200 OK\n\nhi"


class TestSecurity:
    """Traversal and blacklist."""

    @pytest.mark.parametrize("path", [
        "/../outside.txt",
        "/docs/../../outside.txt",
        "/%2e%2e/outside.txt",
        "/..%2foutside.txt",
    ])
    def test_traversal(self, test_server, outside_file, path: str):
        assert test_server.get(path) == b"HTTP/1.1 404 Not Found\n\n404"

    def test_blacklisted_file(self, make_server):
        server = make_server(blacklist=["secret.txt"])

        assert server.get("/secret.txt") == b"HTTP/1.1 404 Not Found\n\n404"
        assert server.get("/notes.txt") == b"HTTP/1.1 200 OK\n\nplain notes"

    def test_log_files_blacklisted_by_default(self, make_server, web_root: Path):
        (web_root / "index.html").unlink()
        (web_root / "simplewebserver.log").write_text("log")
        server = make_server()

        assert server.get("/simplewebserver.log") == b"HTTP/1.1 404 Not Found\n\n404"
        listing = server.get("/")
        assert b"notes.txt" in listing
        assert b"simplewebserver.log" not in listing

    def test_empty_blacklist_serves_log_files(self, make_server, web_root: Path):
        (web_root / "simplewebserver.log").write_text("log")
        server = make_server(blacklist=[""])

        assert server.get("/simplewebserver.log") == b"HTTP/1.1 200 OK\n\nlog"

    def test_overlong_name(self, test_server):
        assert test_server.get("/" + "a" * 300) == b"HTTP/1.1 404 Not Found\n\n404"

    def test_fifo(self, make_server, web_root: Path):
        """Test that a named pipe gets a 404 instead of a stuck worker."""
        if not hasattr(os, "mkfifo"):
            pytest.skip("named pipes not available")
        os.mkfifo(web_root / "pipe.txt")
        server = make_server()

        assert server.get("/pipe.txt") == b"HTTP/1.1 404 Not Found\n\n404"


class TestRateLimiting:
    """Admission control over the wire."""

    def test_limit_then_penalty(self, make_server):
        server = make_server(ratelimit=2, timeout=30)

        # A minute boundary between two requests resets the counter, so
        # keep going until the limit trips.
        responses = []
        for _ in range(5):
            responses.append(server.get("/"))
            if responses[-1].startswith(b"HTTP/1.1 429"):
                break

        assert responses[0] == b"HTTP/1.1 200 OK\n\nhi"
        assert responses[-1] == b"HTTP/1.1 429 Too Many Requests\nRetry-After: 30\n\n429\n"

        follow_up = server.get("/")
        assert follow_up.startswith(b"HTTP/1.1 429 Too Many Requests\nRetry-After: ")
        retry_after = int(follow_up.split(b"\n")[1].split(b": ")[1])
        assert 0 < retry_after <= 30

    def test_disabled(self, make_server):
        server = make_server(ratelimit=0)

        for _ in range(20):
            assert server.get("/") == b"HTTP/1.1 200 OK\n\nhi"


class TestConcurrency:
    """Connections never wait for each other."""

    def test_idle_connection_does_not_block_others(self, test_server):
        idle = test_server.connect()
        try:
            started = time.time()
            assert test_server.get("/") == b"HTTP/1.1 200 OK\n\nhi"
            assert time.time() - started < 2.0
        finally:
            idle.close()

    def test_many_idle_connections(self, make_server):
        server = make_server(max_connections=16)
        idle = [server.connect() for _ in range(8)]
        try:
            assert server.get("/") == b"HTTP/1.1 200 OK\n\nhi"
        finally:
            for sock in idle:
                sock.close()


class TestProcess:
    """The CLI in a child process."""

    def start(self, web_root: Path, port: int, *extra: str, command=None) -> subprocess.Popen:
        env = dict(os.environ)
        src = str(Path(__file__).resolve().parents[2] / "src")
        env["PYTHONPATH"] = src + os.pathsep + env.get("PYTHONPATH", "")
        command = command or [sys.executable, "-m", "simplewebserver"]
        proc = subprocess.Popen(
            [*command, "127.0.0.1", str(port), "-D", str(web_root), "-q", *extra],
            env=env,
        )
        deadline = time.time() + 10.0
        while time.time() < deadline:
            try:
                socket.create_connection(("127.0.0.1", port), timeout=0.5).close()
                return proc
            except OSError:
                time.sleep(0.1)
        proc.kill()
        pytest.fail("server process did not start")

    def test_exit_route(self, web_root: Path, free_port: int):
        proc = self.start(web_root, free_port, "--enable-exit-route", "-r", "0")
        try:
            with socket.create_connection(("127.0.0.1", free_port), timeout=5.0) as sock:
                sock.sendall(b"GET /exit HTTP/1.0\r\n\r\n")
            assert proc.wait(timeout=10.0) == 0
        finally:
            if proc.poll() is None:
                proc.kill()

    def test_exit_route_disabled_by_default(self, web_root: Path, free_port: int, read_response):
        proc = self.start(web_root, free_port, "-r", "0")
        try:
            with socket.create_connection(("127.0.0.1", free_port), timeout=5.0) as sock:
                sock.sendall(b"GET /exit HTTP/1.0\r\n\r\n")
                assert read_response(sock) == b"HTTP/1.1 404 Not Found\n\n404"
            assert proc.poll() is None
        finally:
            proc.terminate()
            proc.wait(timeout=10.0)

    def test_worker_fault_in_test_mode_exits(self, web_root: Path, free_port: int, read_response):
        """Test that --test-mode ends the process with status 1 on a worker fault."""
        failing_server = (
            "import sys\n"
            "from simplewebserver.handlers import StaticFileHandler\n"
            "def handle(self, target, conn):\n"
            "    raise RuntimeError('handler fault')\n"
            "StaticFileHandler.handle = handle\n"
            "from simplewebserver.__main__ import main\n"
            "main(sys.argv[1:])\n"
        )
        proc = self.start(
            web_root, free_port, "--test-mode", "-r", "0",
            command=[sys.executable, "-c", failing_server],
        )
        try:
            with socket.create_connection(("127.0.0.1", free_port), timeout=5.0) as sock:
                sock.sendall(b"GET / HTTP/1.0\r\n\r\n")
                assert read_response(sock) == b"HTTP/1.1 500 Internal Server Error\n\n500\n"
            assert proc.wait(timeout=10.0) == 1
        finally:
            if proc.poll() is None:
                proc.kill()

    def test_bad_root_exits_nonzero(self, tmp_path: Path):
        env = dict(os.environ)
        env["PYTHONPATH"] = str(Path(__file__).resolve().parents[2] / "src")
        result = subprocess.run(
            [sys.executable, "-m", "simplewebserver", "-D", str(tmp_path / "nope")],
            env=env, capture_output=True, timeout=30,
        )

        assert result.returncode == 1
        assert b"Error:" in result.stderr
