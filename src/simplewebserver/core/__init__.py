"""
=============================================================================
CORE NETWORKING COMPONENTS
=============================================================================

The transport layer of the server: sockets, connections, worker threads
and admission control.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   SocketServer          accept loop (single thread, sequential)     │
    │        │                                                             │
    │        ├──► RateLimiter.admit()     decided on the accept loop      │
    │        │                                                             │
    │        └──► ThreadPool.submit()     one thread per connection,      │
    │                  │                  capped by a semaphore            │
    │                  ▼                                                   │
    │             Connection              one read, one response, close   │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool
from .rate_limit import RateLimiter, Admission, RateState

__all__ = [
    "SocketServer",     # Listening socket and accept loop
    "Connection",       # Wrapper for a client socket
    "ConnectionState",  # Enum for connection lifecycle states
    "ThreadPool",       # Semaphore-gated thread spawner
    "RateLimiter",      # Per-address admission control
    "Admission",        # Result of an admission decision
    "RateState",        # Per-address limiter snapshot
]
