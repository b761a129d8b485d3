"""
=============================================================================
SIMPLEWEBSERVER - Minimal Static File Server
=============================================================================

Serves a directory over plain GET requests using raw Python sockets, while
defending against path traversal and time-of-check/time-of-use races,
rate limiting each client address, keeping blacklisted files (its own log
files by default) out of reach, and rendering directory listings.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    simplewebserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m simplewebserver)
    ├── server.py            # WebServer orchestrator
    ├── config.py            # ServerConfig dataclass
    ├── log.py               # Logging setup, TRACE level, access log
    ├── core/                # Transport
    │   ├── socket_server.py # Listening socket and accept loop
    │   ├── connection.py    # Connection wrapper
    │   ├── thread_pool.py   # Semaphore-gated thread spawner
    │   └── rate_limit.py    # Per-address admission control
    ├── http/                # Wire format
    │   ├── request.py       # Request line validation
    │   ├── response.py      # Response serialization
    │   └── status_codes.py  # The five status codes in use
    └── handlers/            # Serving
        ├── paths.py         # Request target → candidate path
        ├── guard.py         # Canonicalization and containment
        ├── blacklist.py     # Never-served paths
        ├── listing.py       # Directory listings
        └── static.py        # Files and listings on the wire

=============================================================================
QUICK START
=============================================================================

    from simplewebserver import WebServer, ServerConfig

    server = WebServer(ServerConfig(root="public", port=8000, ratelimit=60))
    server.run()

Or from the shell:

    simplewebserver 0.0.0.0 8000 --directory public --ratelimit 60

=============================================================================
"""

__version__ = "1.0.0"

from .server import WebServer, create_app
from .config import ServerConfig

__all__ = ["WebServer", "ServerConfig", "create_app", "__version__"]
