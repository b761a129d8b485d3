"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration management for the static file server.

Configuration is a plain dataclass. The CLI (``__main__.py``) and the
environment (``ServerConfig.from_env``) both produce one, and every
component receives the values it needs from it. Nothing reads argv or the
environment anywhere else.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── simplewebserver 0.0.0.0 8000 --ratelimit 60               │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── SWS_PORT=8000 simplewebserver                             │
    │                                                                      │
    │   3. Defaults (this file)                                           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
THE BLACKLIST OPTION
=============================================================================

    blacklist=None        → default: the two log file names
    blacklist=["a.txt"]   → only a.txt (log files are then servable!)
    blacklist=[""]        → explicitly NO blacklist at all

A single empty-string entry is the documented way to switch the default
blacklist off. It is never treated as a filename.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import List, Optional


DEFAULT_INFO_LOG = "simplewebserver.log"
DEFAULT_TRACE_LOG = "simplewebserver.trace.log"


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ServerConfig:
    """
    Configuration for the static file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, read_timeout

    SERVING
    - root, blacklist, allow_external_symlinks

    RATE LIMITING
    - ratelimit, timeout

    CONCURRENCY
    - max_connections

    LOGGING
    - quiet, verbose, log_file, info_log_name, trace_log_name

    TESTING ONLY
    - test_mode, enable_exit_route

    =========================================================================
    """

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only (default)
    - "0.0.0.0" - All IPv4 interfaces
    - "::" - All IPv6 interfaces
    """

    port: int = 8080
    """The port number to listen on. 0 lets the OS pick a free port."""

    root: str = "."
    """Directory to serve. Every served path must canonicalize inside it."""

    backlog: int = 128
    """Maximum number of queued connections in the kernel accept queue."""

    buffer_size: int = 4096
    """
    Size of the single read performed on each connection.
    A request line longer than this is not reassembled.
    """

    read_timeout: Optional[float] = None
    """
    Socket timeout for client connections, in seconds.

    None (the default) means a slow client can hold its worker thread
    indefinitely. This is a known exposure; set a value to opt in to a
    timeout.
    """

    ratelimit: int = 120
    """
    Requests per minute window before an address is penalized.
    0 disables rate limiting entirely.
    """

    timeout: int = 180
    """Penalty length in seconds after an address trips the rate limit."""

    blacklist: Optional[List[str]] = None
    """
    File names, relative to root, that are never served or listed.
    None selects the default (the log files); [""] disables the blacklist.
    """

    allow_external_symlinks: bool = False
    """
    Allow a symlink located inside root to point outside of it.
    Off by default. Has no effect on platforms without symlinks.
    """

    max_connections: int = 256
    """Maximum number of connections handled concurrently."""

    quiet: bool = False
    """Disable all logging output."""

    verbose: bool = False
    """Log at TRACE level to the console (every served request)."""

    log_file: bool = False
    """Also write an info log and a trace log in append mode."""

    info_log_name: str = DEFAULT_INFO_LOG
    """File name (relative to root) of the info-and-above log."""

    trace_log_name: str = DEFAULT_TRACE_LOG
    """File name (relative to root) of the trace-and-above log."""

    test_mode: bool = False
    """Exit the process with a nonzero status on an unexpected worker fault."""

    enable_exit_route: bool = False
    """
    Serve the diagnostic /exit route, which terminates the process.
    Test-only. Never enable in production.
    """

    @property
    def blacklist_names(self) -> List[str]:
        """
        Effective list of blacklisted names.

        Applies the default and the single-empty-string override.
        """
        if self.blacklist is None:
            return [self.info_log_name, self.trace_log_name]
        if self.blacklist == [""]:
            return []
        return [name for name in self.blacklist if name]

    @property
    def log_file_paths(self) -> List[str]:
        """Paths of the two log files inside root."""
        return [
            os.path.join(self.root, self.info_log_name),
            os.path.join(self.root, self.trace_log_name),
        ]

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        SWS_HOST        Bind address (default: 127.0.0.1)
        SWS_PORT        Bind port (default: 8080)
        SWS_ROOT        Served directory (default: .)
        SWS_RATELIMIT   Requests per minute, 0 disables (default: 120)
        SWS_TIMEOUT     Penalty seconds (default: 180)
        SWS_BLACKLIST   Comma separated names; "" disables the default
        SWS_VERBOSE     1/true to enable TRACE console output
        SWS_QUIET       1/true to disable logging
        SWS_LOG_FILE    1/true to write log files

        =====================================================================
        """
        blacklist = os.getenv("SWS_BLACKLIST")
        return cls(
            host=os.getenv("SWS_HOST", "127.0.0.1"),
            port=int(os.getenv("SWS_PORT", "8080")),
            root=os.getenv("SWS_ROOT", "."),
            ratelimit=int(os.getenv("SWS_RATELIMIT", "120")),
            timeout=int(os.getenv("SWS_TIMEOUT", "180")),
            blacklist=None if blacklist is None else blacklist.split(","),
            verbose=_env_flag("SWS_VERBOSE"),
            quiet=_env_flag("SWS_QUIET"),
            log_file=_env_flag("SWS_LOG_FILE"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once at server construction so a bad value fails at startup,
        not on the first request.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.ratelimit < 0:
            raise ValueError("ratelimit must be >= 0 (0 disables rate limiting)")

        if self.timeout < 0:
            raise ValueError("timeout must be >= 0")

        if self.max_connections < 1:
            raise ValueError("max_connections must be >= 1")

        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        if self.read_timeout is not None and self.read_timeout <= 0:
            raise ValueError("read_timeout must be > 0 or None")

        if self.quiet and self.verbose:
            raise ValueError("quiet and verbose are mutually exclusive")

        if not os.path.isdir(self.root):
            raise ValueError(f"Root directory does not exist: {self.root}")
