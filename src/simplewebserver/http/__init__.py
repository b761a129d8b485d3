"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

The small slice of HTTP this server speaks: one request line in, one
status line (plus optional Retry-After) and a body out.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST PARSER (request.py)                                         │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Input:   b"GET /docs?x=1 HTTP/1.1\r\nHost: ...\r\n\r\n"             │
    │ Output:  RequestTarget(path="/docs", query="x=1", ...)              │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ RESPONSE BUILDER (response.py)                                      │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Input:   HTTPResponse(status=404, body=b"404")                      │
    │ Output:  b"HTTP/1.1 404 Not Found\n\n404"                           │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import (
    RequestTarget,
    RequestParser,
    HTTPParseError,
    parse_request,
    MAX_REQUEST_SIZE,
)
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,
    ok_head,
    bad_request,
    not_found,
    too_many_requests,
    internal_error,
    error_response,
)
from .status_codes import HTTPStatus

__all__ = [
    # Request parsing
    "RequestTarget",
    "RequestParser",
    "HTTPParseError",
    "parse_request",
    "MAX_REQUEST_SIZE",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "ok_head",
    "bad_request",
    "not_found",
    "too_many_requests",
    "internal_error",
    "error_response",

    # Status codes
    "HTTPStatus",
]
