"""
=============================================================================
LOGGING
=============================================================================

Logging setup and the structured access log.

=============================================================================
SEVERITY POLICY
=============================================================================

    ┌─────────┬───────────────────────────────────────────────────────────┐
    │ Level   │ Used for                                                  │
    ├─────────┼───────────────────────────────────────────────────────────┤
    │ TRACE   │ Normal successful requests (one line per 200)            │
    │ DEBUG   │ Connection plumbing, rate-limit window resets            │
    │ INFO    │ Startup, 400/404 responses, rejections during a penalty  │
    │ WARNING │ Rate-limited addresses, blocked traversal, blacklist hits│
    │ ERROR   │ TOCTOU races, directory enumeration failures             │
    └─────────┴───────────────────────────────────────────────────────────┘

TRACE is a custom level (5) below DEBUG, registered with the logging
module so it prints as "TRACE".

=============================================================================
OUTPUTS
=============================================================================

    quiet       → nothing at all
    (default)   → console, INFO and above
    verbose     → console, TRACE and above
    log_file    → additionally two append-mode files in the served root:
                    simplewebserver.log        INFO and above
                    simplewebserver.trace.log  TRACE and above

Both log files are in the default blacklist, so the server never serves
its own logs unless the operator overrides the blacklist.

=============================================================================
"""

import logging
from dataclasses import dataclass
from typing import List

from .config import ServerConfig


TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

PACKAGE_LOGGER = "simplewebserver"

access_logger = logging.getLogger("simplewebserver.access")


def trace(logger: logging.Logger, message: str, *args) -> None:
    """Log at TRACE level."""
    if logger.isEnabledFor(TRACE):
        logger.log(TRACE, message, *args)


def configure_logging(config: ServerConfig) -> List[logging.Handler]:
    """
    Configure the package logger from the server configuration.

    Handlers installed by a previous call are removed first, so this is
    safe to call more than once in the same process (tests do).

    Args:
        config: Server configuration.

    Returns:
        The handlers that were installed.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)

    for handler in list(logger.handlers):
        if getattr(handler, "_simplewebserver", False):
            logger.removeHandler(handler)
            handler.close()

    if config.quiet:
        logger.setLevel(logging.CRITICAL + 1)
        return []

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler()
    console.setLevel(TRACE if config.verbose else logging.INFO)
    handlers: List[logging.Handler] = [console]

    if config.log_file:
        info_path, trace_path = config.log_file_paths

        info_file = logging.FileHandler(info_path, mode="a", encoding="utf-8")
        info_file.setLevel(logging.INFO)

        trace_file = logging.FileHandler(trace_path, mode="a", encoding="utf-8")
        trace_file.setLevel(TRACE)

        handlers.extend([info_file, trace_file])

    for handler in handlers:
        handler.setFormatter(formatter)
        handler._simplewebserver = True
        logger.addHandler(handler)

    logger.setLevel(TRACE)
    return handlers


@dataclass
class AccessLog:
    """
    One access log entry.

        127.0.0.1: GET /index.html - 200

    The level is derived from the status code: TRACE for success,
    WARNING for rate limiting, INFO for every other refusal.
    """

    client_ip: str
    path: str
    status_code: int

    def to_text(self) -> str:
        return f"{self.client_ip}: GET {self.path} - {self.status_code}"

    @property
    def level(self) -> int:
        if self.status_code < 400:
            return TRACE
        if self.status_code == 429:
            return logging.WARNING
        return logging.INFO

    def emit(self) -> None:
        if access_logger.isEnabledFor(self.level):
            access_logger.log(self.level, self.to_text())


def log_access(client_ip: str, path: str, status_code: int) -> None:
    """Emit one access log line."""
    AccessLog(client_ip, path, int(status_code)).emit()
