"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

This module wraps one accepted client socket with the small API the request
pipeline needs: one bounded read, a few writes and a full close.

=============================================================================
ONE READ, ONE RESPONSE, CLOSE
=============================================================================

There is no keep-alive. Every connection goes through exactly one cycle:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     Connection Lifecycle                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   NEW ──► READING ──► WRITING ──► CLOSING ──► CLOSED                │
    │              │                       ▲                               │
    │              └── read failed ────────┘  (400 is written first)      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

READING is a single recv() of at most ``buffer_size`` bytes (4096 by
default). TCP is a byte stream, so in principle a request line could arrive
split over several segments. In practice a short GET line arrives in one
segment, and a request line that does not fit the buffer is rejected rather
than reassembled. This keeps per-connection memory bounded.

=============================================================================
CLOSING BOTH DIRECTIONS
=============================================================================

The response body has no Content-Length. The client detects its end by the
connection closing, so close() shuts down BOTH directions before releasing
the descriptor:

    shutdown(SHUT_RDWR)   → FIN to the client, further reads return EOF
    close()               → descriptor released

=============================================================================
"""

import socket
import time
import logging
import shutil
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import BinaryIO, Optional


logger = logging.getLogger(__name__)


COPY_CHUNK_SIZE = 64 * 1024


class ConnectionState(Enum):
    """Connection lifecycle states, used for logging and debugging."""

    NEW = "new"              # Just accepted, nothing read yet
    READING = "reading"      # Waiting for the request line
    WRITING = "writing"      # Sending the response
    CLOSING = "closing"      # Shutdown sequence in progress
    CLOSED = "closed"        # Socket released


class _SocketWriter:
    """File-like adapter so shutil.copyfileobj can write to a socket."""

    def __init__(self, sock: socket.socket):
        self._sock = sock
        self.written = 0

    def write(self, data: bytes) -> int:
        self._sock.sendall(data)
        self.written += len(data)
        return len(data)


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client address tuple as returned by accept().
        id: Short unique identifier for log correlation.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
        bytes_sent: Total bytes written to the client.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    bytes_sent: int = 0

    buffer_size: int = 4096
    timeout: Optional[float] = None    # None: no read/write timeout

    def __post_init__(self):
        """
        Configure the socket after initialization.

        The listening socket has an accept timeout; accepted sockets must
        not inherit it, so they are put back into blocking mode first.
        """
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        """Get the client IP address (the rate-limiter key)."""
        return self.address[0]

    @property
    def client_port(self) -> int:
        """Get the client port."""
        return self.address[1]

    @property
    def age(self) -> float:
        """Get connection age in seconds."""
        return time.time() - self.created_at

    def read_request(self) -> Optional[bytes]:
        """
        Read the request with a single bounded recv().

        Returns:
            Up to ``buffer_size`` bytes, or None if nothing could be read
            (client closed, reset, or the read timed out).
        """
        self.state = ConnectionState.READING
        try:
            data = self.socket.recv(self.buffer_size)
        except (socket.timeout, OSError) as e:
            logger.debug(f"[{self.id}] Read failed: {e}")
            return None
        return data or None

    def send_response(self, data: bytes) -> bool:
        """
        Send bytes to the client.

        Uses sendall() so the whole buffer is written.

        Returns:
            True if the send succeeded, False if the connection was lost.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.debug(f"[{self.id}] Send failed: {e}")
            return False
        self.bytes_sent += len(data)
        return True

    def send_file(self, f: BinaryIO) -> bool:
        """
        Stream an open binary file to the client in chunks.

        Returns:
            True if the whole file was sent, False if the connection was lost.
        """
        self.state = ConnectionState.WRITING
        writer = _SocketWriter(self.socket)
        try:
            shutil.copyfileobj(f, writer, COPY_CHUNK_SIZE)
        except OSError as e:
            logger.debug(f"[{self.id}] Send failed while streaming: {e}")
            return False
        finally:
            self.bytes_sent += writer.written
        return True

    def close(self):
        """
        Flush and close the connection in both directions.

        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # Client already gone

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        """
        Context manager entry.

            with conn:
                data = conn.read_request()
                conn.send_response(response)
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - ensure the connection is closed."""
        self.close()
        return False
