"""
=============================================================================
MAIN WEB SERVER
=============================================================================

The orchestrator that ties the components together into the static file
server.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    WEB SERVER ARCHITECTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │    WebServer    │                          │
    │                        │  (Orchestrator) │                          │
    │                        └────────┬────────┘                          │
    │                                 │                                    │
    │            ┌────────────────────┼────────────────────┐              │
    │            │                    │                    │              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐        │
    │    │SocketServer  │    │ RateLimiter  │    │  ThreadPool  │        │
    │    │ (Networking) │    │ (Admission)  │    │ (Concurrency)│        │
    │    └──────┬───────┘    └──────────────┘    └──────┬───────┘        │
    │           │                                       │                 │
    │           ▼                                       ▼                 │
    │    ┌──────────────┐                      ┌──────────────────┐      │
    │    │  Connection  │                      │StaticFileHandler │      │
    │    │ (TCP Conn.)  │                      │ resolve → guard  │      │
    │    └──────────────┘                      │ → file / listing │      │
    │                                          └──────────────────┘      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. CLIENT CONNECTS
       └── SocketServer accepts the TCP connection

    2. ADMISSION (accept loop)
       └── RateLimiter.admit(ip): denied → 429 + Retry-After, close

    3. SPAWN
       └── ThreadPool starts a thread for the connection

    4. READ + PARSE (worker thread)
       └── One recv(); anything but "GET /..." → 400

    5. RESOLVE, GUARD, SERVE
       └── StaticFileHandler: 200 file / 200 listing / 404 / 500

    6. LOG + CLOSE
       └── One access log line, then both directions of the socket closed

=============================================================================
"""

import logging
import os
from typing import Optional

from . import __version__
from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool, RateLimiter
from .handlers import Blacklist, StaticFileHandler
from .http import (
    RequestParser, HTTPParseError, HTTPStatus,
    bad_request, too_many_requests, internal_error,
)
from .log import configure_logging, log_access


logger = logging.getLogger(__name__)


EXIT_ROUTE = "/exit"


class WebServer:
    """
    Static file server.

    =========================================================================
    FEATURES
    =========================================================================

    - One thread per connection, capped by max_connections
    - Per-address rate limiting decided on the accept loop
    - Path traversal and TOCTOU protection
    - Blacklisted files (the log files by default)
    - Directory listings
    - Graceful shutdown

    =========================================================================
    USAGE
    =========================================================================

        server = WebServer(ServerConfig(root="/srv/www", port=8000))
        server.run()  # Blocks until Ctrl+C

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Initialize the web server.

        Args:
            config: Server configuration. Uses defaults if not provided.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        # ─────────────────────────────────────────────────────────────────
        # CORE COMPONENTS
        # ─────────────────────────────────────────────────────────────────

        self._socket_server = SocketServer(self.config)

        self._rate_limiter = RateLimiter(
            ratelimit=self.config.ratelimit,
            timeout=self.config.timeout,
        )

        self._thread_pool = ThreadPool(
            max_workers=self.config.max_connections,
            on_error=self._on_worker_error,
        )

        self._parser = RequestParser(max_request_size=self.config.buffer_size)

        # ─────────────────────────────────────────────────────────────────
        # CONTENT
        # ─────────────────────────────────────────────────────────────────

        self.blacklist = Blacklist.from_names(self.config.root, self.config.blacklist_names)
        self._handler = StaticFileHandler(
            self.config.root,
            blacklist=self.blacklist,
            allow_external_symlinks=self.config.allow_external_symlinks,
        )

        self._running = False

    @property
    def root(self):
        """Canonical served directory."""
        return self._handler.root

    @property
    def address(self):
        """Bound (host, port); the real port once the server is listening."""
        return self._socket_server.address

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self, configure_logs: bool = True):
        """
        Start the server (blocking).

        Args:
            configure_logs: Install the log handlers described by the
                            config. Tests that capture logs pass False.
        """
        if configure_logs:
            configure_logging(self.config)

        self._running = True

        logger.info(f"simplewebserver {__version__}")
        logger.info(f"Serving directory: {self.root}")
        if self._rate_limiter.enabled:
            logger.info(
                f"Rate limit: {self.config.ratelimit} requests per minute, "
                f"{self.config.timeout}s penalty"
            )
        else:
            logger.info("Rate limiting disabled")
        if self.blacklist:
            logger.info(f"Blacklisted: {', '.join(str(p) for p in sorted(self.blacklist.paths))}")
        if self.config.enable_exit_route:
            logger.warning(f"Exit route {EXIT_ROUTE} is enabled")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket is bound."""
        return self._socket_server.wait_until_ready(timeout)

    def shutdown(self):
        """Ask the accept loop to stop. run() returns shortly after."""
        self._socket_server.shutdown()

    def _shutdown(self):
        """
        Graceful shutdown.

        The accept loop has already stopped. In-flight connections get a
        bounded amount of time to finish.
        """
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=5.0)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Admit or refuse a connection (runs on the accept loop).

        Refusals are written right here. Admitted connections are handed to
        a worker thread.
        """
        try:
            admission = self._rate_limiter.admit(conn.client_ip)
        except Exception as e:
            logger.exception(f"[{conn.id}] Admission failed for {conn.client_ip}: {e}")
            conn.close()
            return

        if not admission.allowed:
            conn.send_response(too_many_requests(admission.retry_after).to_bytes())
            conn.close()
            return

        self._thread_pool.submit(self._process_connection, args=(conn,))

    def _process_connection(self, conn: Connection):
        """
        Serve one request on an admitted connection (runs in a worker).

        =====================================================================
        ONE REQUEST PER CONNECTION
        =====================================================================

        1. Read once from the socket
        2. Parse the request line (400 on failure)
        3. Hand the target to the static file handler
        4. Write the access log line
        5. Close

        =====================================================================
        """
        with conn:
            try:
                raw_request = conn.read_request()

                try:
                    target = self._parser.parse(raw_request)
                except HTTPParseError as e:
                    logger.info(f"[{conn.id}] Bad request from {conn.client_ip}: {e}")
                    conn.send_response(bad_request().to_bytes())
                    log_access(conn.client_ip, "-", HTTPStatus.BAD_REQUEST)
                    return

                if self.config.enable_exit_route and target.path == EXIT_ROUTE:
                    logger.warning(f"Exit requested by {conn.client_ip}")
                    logging.shutdown()
                    os._exit(0)

                status = self._handler.handle(target, conn)
                log_access(conn.client_ip, target.path, status)

            except Exception as e:
                logger.exception(f"[{conn.id}] Unexpected error: {e}")
                conn.send_response(internal_error().to_bytes())
                log_access(conn.client_ip, "-", HTTPStatus.INTERNAL_SERVER_ERROR)
                if self.config.test_mode:
                    raise

    def _on_worker_error(self, error: BaseException):
        """Exit the process on a worker fault when running in test mode."""
        if self.config.test_mode:
            logger.critical(f"Worker fault in test mode, exiting: {error!r}")
            logging.shutdown()
            os._exit(1)


def create_app(config: Optional[ServerConfig] = None) -> WebServer:
    """
    Create a web server.

    Example:
        app = create_app(ServerConfig(root="public", port=3000))
        app.run()
    """
    return WebServer(config)
