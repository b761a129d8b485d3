"""
=============================================================================
HTTP RESPONSE BUILDING
=============================================================================

This module turns status codes and bodies into the exact bytes the server
writes to a socket.

=============================================================================
WIRE FORMAT
=============================================================================

The server speaks a deliberately tiny dialect of HTTP/1.1. Lines end in a
bare LF, there is no Content-Length and no Content-Type: the client detects
the end of the body by the connection closing.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      RESPONSE STRUCTURE                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HTTP/1.1 429 Too Many Requests\n      ← Status line               │
    │   Retry-After: 12\n                     ← Optional headers          │
    │   \n                                    ← Blank line (separator)    │
    │   429\n                                 ← Body                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Error bodies are the numeric code as plain text. The exact forms are:

    400   HTTP/1.1 400 Bad Request\n\n400\n
    404   HTTP/1.1 404 Not Found\n\n404
    429   HTTP/1.1 429 Too Many Requests\nRetry-After: <n>\n\n429\n
    500   HTTP/1.1 500 Internal Server Error\n\n500\n

A 200 for a regular file is written in two steps (head, then the streamed
file contents), so HTTPResponse can serialize its head separately.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Union

from .status_codes import HTTPStatus


LINE_END = "\n"


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    =========================================================================
    RESPONSE LIFECYCLE
    =========================================================================

        Handler returns          to_bytes()              Connection sends
        HTTPResponse    ─────►   serializes    ─────►    raw bytes
            │                       │                        │
        HTTPResponse(            b"HTTP/1.1 404 ...\n     conn.send_response(
          status=404,              \n                        response_bytes
          body=b"404"              404"                  )
        )

    =========================================================================
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """Status line, e.g. "HTTP/1.1 200 OK"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a response header. Returns self for chaining."""
        self.headers[name] = value
        return self

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        """Set the body, encoding strings as UTF-8. Returns self for chaining."""
        if isinstance(body, str):
            self.body = body.encode("utf-8")
        else:
            self.body = body
        return self

    def head(self) -> bytes:
        """
        Serialize the status line and headers, including the blank line.

        Nothing is added automatically: no Date, no Server, no
        Content-Length. Clients rely on the connection close.
        """
        lines = [self.status_line]
        for name, value in self.headers.items():
            lines.append(f"{name}: {value}")
        return (LINE_END.join(lines) + LINE_END + LINE_END).encode("utf-8")

    def to_bytes(self) -> bytes:
        """Serialize the complete response (head + body)."""
        return self.head() + self.body


class ResponseBuilder:
    """
    Fluent builder for constructing HTTP responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .html("<h1>/docs</h1>")
            .build())
    """

    def __init__(self):
        self._response = HTTPResponse()

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        """Set the response status code."""
        self._response.status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        """Add a header."""
        self._response.set_header(name, value)
        return self

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set the raw body."""
        self._response.set_body(body)
        return self

    def text(self, text: str) -> "ResponseBuilder":
        """Set a plain text body."""
        return self.body(text)

    def html(self, html: str) -> "ResponseBuilder":
        """Set an HTML body. No Content-Type header is written."""
        return self.body(html)

    def build(self) -> HTTPResponse:
        """Return the constructed response."""
        return self._response

    def to_bytes(self) -> bytes:
        """Build and serialize in one step."""
        return self._response.to_bytes()


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
# One function per response the server can produce. Handlers never build
# error responses by hand, so the wire format lives in exactly one place.


def ok(body: Union[str, bytes] = b"") -> HTTPResponse:
    """200 OK with the given body."""
    return ResponseBuilder().status(HTTPStatus.OK).body(body).build()


def ok_head() -> bytes:
    """Head of a streamed 200 response: b"HTTP/1.1 200 OK\\n\\n"."""
    return HTTPResponse(status=HTTPStatus.OK).head()


def bad_request() -> HTTPResponse:
    """400 Bad Request. Sent when the request line cannot be parsed."""
    return ResponseBuilder().status(HTTPStatus.BAD_REQUEST).text("400\n").build()


def not_found() -> HTTPResponse:
    """
    404 Not Found.

    Used for missing files, blocked traversal, blacklist hits and vanished
    files alike. The body carries no trailing newline.
    """
    return ResponseBuilder().status(HTTPStatus.NOT_FOUND).text("404").build()


def too_many_requests(retry_after: int) -> HTTPResponse:
    """429 Too Many Requests with a Retry-After hint in whole seconds."""
    return (ResponseBuilder()
        .status(HTTPStatus.TOO_MANY_REQUESTS)
        .header("Retry-After", str(int(retry_after)))
        .text("429\n")
        .build())


def internal_error() -> HTTPResponse:
    """500 Internal Server Error."""
    return ResponseBuilder().status(HTTPStatus.INTERNAL_SERVER_ERROR).text("500\n").build()


def error_response(status: HTTPStatus) -> HTTPResponse:
    """Map a status code to its canonical error response (429 excluded)."""
    factories = {
        HTTPStatus.BAD_REQUEST: bad_request,
        HTTPStatus.NOT_FOUND: not_found,
        HTTPStatus.INTERNAL_SERVER_ERROR: internal_error,
    }
    try:
        return factories[status]()
    except KeyError:
        raise ValueError(f"No canonical error response for {int(status)}") from None
