"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The server only ever answers with a handful of status codes. Each one maps
to exactly one failure class of the request pipeline:

    ┌──────┬───────────────────────┬─────────────────────────────────────┐
    │ Code │ Reason phrase         │ Produced by                         │
    ├──────┼───────────────────────┼─────────────────────────────────────┤
    │ 200  │ OK                    │ File streamed / directory listed    │
    │ 400  │ Bad Request           │ Request line rejected by the parser │
    │ 404  │ Not Found             │ Missing file, traversal, blacklist, │
    │      │                       │ vanished-file race                  │
    │ 429  │ Too Many Requests     │ Rate limiter denied admission       │
    │ 500  │ Internal Server Error │ Directory enumeration failure or    │
    │      │                       │ any other unexpected fault          │
    └──────┴───────────────────────┴─────────────────────────────────────┘

A 404 looks the same on the wire whatever its cause. The distinguishing
cause only ever reaches the log stream, so a client probing for files
outside the root cannot tell "blocked" from "absent".

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes used by the server.

    This enum extends IntEnum, so status codes can be used as integers:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200                            # File or listing served
    BAD_REQUEST = 400                   # Malformed request line
    NOT_FOUND = 404                     # Any resource-level refusal
    TOO_MANY_REQUESTS = 429             # Rate limited
    INTERNAL_SERVER_ERROR = 500         # Unexpected server fault

    @property
    def phrase(self) -> str:
        """
        Get the reason phrase for this status code.

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │      │
                      │      └── Reason phrase
                      └───────── Status code
        """
        return _STATUS_PHRASES[self]

    @property
    def is_success(self) -> bool:
        """Check if this is a 2xx status code."""
        return 200 <= self < 300

    @property
    def is_client_error(self) -> bool:
        """Check if this is a 4xx status code."""
        return 400 <= self < 500

    @property
    def is_server_error(self) -> bool:
        """Check if this is a 5xx status code."""
        return 500 <= self < 600


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.TOO_MANY_REQUESTS: "Too Many Requests",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
