"""
=============================================================================
HTTP REQUEST LINE PARSING
=============================================================================

This module turns the raw bytes read from a connection into a validated
request target, or rejects them.

=============================================================================
WHAT WE ACCEPT
=============================================================================

Only the first line of the request matters. It must look like:

    GET /docs/guide?lang=en HTTP/1.1\r\n
    ─┬─ ─────┬──── ───┬─── ────┬────
     │       │        │        │
     │       │        │        └── Version: "HTTP/" then anything, ignored
     │       │        └─────────── Query string: discarded
     │       └──────────────────── Path: MUST start with "/"
     └──────────────────────────── Method: the literal "GET"

Everything after the first line (headers, body) is ignored. The path runs
up to the FIRST " HTTP/" on the line, so a path may itself contain spaces.

    ┌─────────────────────────────────────────┬──────────────────────────┐
    │ Request line                            │ Result                   │
    ├─────────────────────────────────────────┼──────────────────────────┤
    │ GET / HTTP/1.0                          │ path "/"                 │
    │ GET /a%20b.txt?x=1 HTTP/1.1             │ path "/a b.txt"          │
    │ GET /my file.txt HTTP/1.1               │ path "/my file.txt"      │
    │ POST / HTTP/1.0                         │ 400                      │
    │ GET index.html HTTP/1.0                 │ 400 (no leading slash)   │
    │ GET /                                   │ 400 (no version token)   │
    │ (empty read)                            │ 400                      │
    └─────────────────────────────────────────┴──────────────────────────┘

=============================================================================
BOUNDED READ
=============================================================================

The connection performs exactly ONE recv() of at most 4096 bytes. A longer
request line is not reassembled. This is a static file server, not a
general HTTP reader, and the single bounded read keeps per-connection
memory fixed.

=============================================================================
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote


MAX_REQUEST_SIZE = 4096

METHOD = "GET"
VERSION_MARKER = " HTTP/"


class HTTPParseError(Exception):
    """
    Raised when the request line is not acceptable.

    Carries the HTTP status code that should be returned to the client.
    For this server that is always 400 Bad Request.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class RequestTarget:
    """
    The validated target of a GET request.

    Attributes:
        path:     Percent-decoded path without the query string ("/a b.txt").
                  This is what the resolver and the directory listing use.
        raw_path: Path exactly as sent, query string removed ("/a%20b.txt").
        query:    Query string without the "?" (discarded by the server,
                  kept for logging).
        version:  Everything after "HTTP/" on the request line, stripped.
    """

    path: str
    raw_path: str
    query: str = ""
    version: str = ""


class RequestParser:
    """
    Validates a request line and extracts its target.

    This is a small dedicated validator that checks the method token, the
    leading slash of the path and the version marker. It does not use a
    general-purpose pattern-matching engine.

    Usage:
        parser = RequestParser()
        target = parser.parse(b"GET /index.html HTTP/1.0\\r\\n\\r\\n")
        target.path  # "/index.html"
    """

    def __init__(self, max_request_size: int = MAX_REQUEST_SIZE):
        self.max_request_size = max_request_size

    def parse(self, raw: Optional[bytes]) -> RequestTarget:
        """
        Parse raw request bytes.

        Args:
            raw: Bytes from the single read on the connection. None or b""
                 means the socket could not be read.

        Returns:
            The validated RequestTarget.

        Raises:
            HTTPParseError: If the request line is not acceptable.
        """
        if not raw:
            raise HTTPParseError("Empty request")

        # Lossy decoding: invalid UTF-8 becomes U+FFFD rather than an error
        text = raw[:self.max_request_size].decode("utf-8", errors="replace")
        request_line = text.split("\n", 1)[0]

        method, sep, rest = request_line.partition(" ")
        if not sep or method != METHOD:
            raise HTTPParseError(f"Unsupported request line: {request_line[:80]!r}")

        if not rest.startswith("/"):
            raise HTTPParseError("Request path must start with '/'")

        marker = rest.find(VERSION_MARKER)
        if marker < 0:
            raise HTTPParseError("Missing HTTP version")

        target = rest[:marker]
        version = rest[marker + len(VERSION_MARKER):].strip()

        raw_path, _, query = target.partition("?")

        return RequestTarget(
            path=unquote(raw_path),
            raw_path=raw_path,
            query=query,
            version=version,
        )


def parse_request(raw: Optional[bytes]) -> RequestTarget:
    """
    Parse raw request bytes with a default parser.

    Convenience function for simple use cases.
    """
    return RequestParser().parse(raw)
