"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Serves files and directory listings from the root directory.

=============================================================================
FLOW
=============================================================================

    RequestTarget("/docs/guide")
          │
          ▼
    PathResolver.resolve()          → ResolvedPath or None ─────────► 404
          │
          ▼
    exists?                         → no ───────────────────────────► 404
          │
          ▼
    AccessGuard.authorize()         → AccessDenied ─────────────────► 404
          │                           (traversal, blacklist, vanished)
          ▼
    serve(canonical)
          │
          ├── directory ──► DirectoryListing.render() ──────► 200 / 500
          │
          └── file ───────► os.open(O_NONBLOCK) ─── fails ──────────► 404
                               │
                               └── fstat: regular? ── no ──────────► 404
                                      │
                                      └── stream through the fd ──► 200

=============================================================================
STREAMING
=============================================================================

A 200 for a file is just the status line, a blank line and the raw bytes:

    HTTP/1.1 200 OK\n
    \n
    <file contents>

There is no Content-Length. The file is copied in chunks from the
descriptor opened right after the guard ran, and the connection is closed
afterwards so the client sees the end of the body.

An open() failure here is a 404, never a 500: the guard confirmed the file
existed microseconds earlier, so a failure means it was removed in between.
That is a benign race, not a server fault.

=============================================================================
"""

import logging
import os
import stat
from pathlib import Path
from typing import Optional, Union

from .blacklist import Blacklist
from .guard import AccessGuard, AccessDenied
from .listing import DirectoryListing
from .paths import PathResolver
from ..core.connection import Connection
from ..http.request import RequestTarget
from ..http.response import HTTPStatus, not_found, ok_head
from ..log import trace


logger = logging.getLogger(__name__)


# Read-only, binary on Windows, and never follow a symlink swapped in at
# the final component after canonicalization. O_NONBLOCK keeps a FIFO from
# blocking the open; it is cleared again once the fd is known to be a
# regular file.
O_NONBLOCK = getattr(os, "O_NONBLOCK", 0)
OPEN_FLAGS = (
    os.O_RDONLY
    | getattr(os, "O_BINARY", 0)
    | getattr(os, "O_NOFOLLOW", 0)
    | O_NONBLOCK
)


class StaticFileHandler:
    """
    Handler for serving static files.

    =========================================================================
    FEATURES
    =========================================================================

    - "/" serves index.html, or a listing of the root when there is none
    - Extension fallback: "/about" serves about.html
    - Path traversal protection via canonicalization
    - Blacklisted files are neither served nor listed
    - Optional external symlinks

    =========================================================================
    USAGE
    =========================================================================

        handler = StaticFileHandler("/srv/www", blacklist=Blacklist())
        status = handler.handle(target, conn)

    =========================================================================
    """

    def __init__(
        self,
        root: Union[str, Path],
        blacklist: Optional[Blacklist] = None,
        allow_external_symlinks: bool = False,
    ):
        """
        Initialize static file handler.

        Args:
            root: Directory to serve. Must exist.
            blacklist: Paths never served or listed. Defaults to empty.
            allow_external_symlinks: Allow symlinks inside root to point
                                     outside of it.
        """
        self.root = Path(root).resolve(strict=True)
        if not self.root.is_dir():
            raise ValueError(f"Root is not a directory: {root}")

        self.blacklist = blacklist if blacklist is not None else Blacklist()

        # The resolver joins onto the canonical root so that a symlink
        # location and the root compare in the same namespace.
        self.resolver = PathResolver(self.root)
        self.guard = AccessGuard(self.root, self.blacklist, allow_external_symlinks)
        self.listing = DirectoryListing(self.blacklist)

    def handle(self, target: RequestTarget, conn: Connection) -> HTTPStatus:
        """
        Handle one request: resolve, authorize and serve.

        Args:
            target: The parsed request target.
            conn: Connection to write the response to.

        Returns:
            The status code that was sent, for the access log.
        """
        resolved = self.resolver.resolve(target.path)

        if resolved is None or not resolved.exists():
            logger.debug(f"Not found: {target.path}")
            return self._not_found(conn)

        try:
            canonical = self.guard.authorize(resolved)
        except AccessDenied as e:
            logger.info(f"Denied {target.path}: {e.reason.value}")
            return self._not_found(conn)

        return self.serve(canonical, target.path, conn)

    def serve(self, canonical: Path, request_path: str, conn: Connection) -> HTTPStatus:
        """
        Serve an authorized canonical path.

        Args:
            canonical: Path returned by the Access Guard.
            request_path: Decoded request path (for listing headings/links).
            conn: Connection to write to.
        """
        if canonical.is_dir():
            response = self.listing.render(canonical, request_path)
            conn.send_response(response.to_bytes())
            return response.status

        try:
            fd = os.open(canonical, OPEN_FLAGS)
        except OSError as e:
            logger.error(f"!!! TOCTOU prevented: {canonical} could not be opened ({e}) !!!")
            return self._not_found(conn)

        with os.fdopen(fd, "rb") as f:
            if not stat.S_ISREG(os.fstat(f.fileno()).st_mode):
                logger.error(f"Refusing {canonical}: not a regular file")
                return self._not_found(conn)

            if O_NONBLOCK:
                os.set_blocking(f.fileno(), True)

            trace(logger, "Streaming %s", canonical)
            if conn.send_response(ok_head()):
                conn.send_file(f)

        return HTTPStatus.OK

    def _not_found(self, conn: Connection) -> HTTPStatus:
        conn.send_response(not_found().to_bytes())
        return HTTPStatus.NOT_FOUND
