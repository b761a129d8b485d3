"""
=============================================================================
RATE LIMITING
=============================================================================

Per-client admission control. Every accepted connection is checked here,
on the accept loop, before any other work is done for it.

=============================================================================
ALGORITHM: GLOBAL FIXED WINDOW + PENALTY
=============================================================================

Each client address has a request counter. All counters share ONE window:
the current wall-clock minute. When the minute changes, every counter is
cleared at once.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                  admit(address, now)                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   penalty live (until > now)? ──── yes ──► DENY(until - now)        │
    │          │ no                                                        │
    │          ▼                                                           │
    │   penalty expired? ──── yes ──► forget it                           │
    │          │                                                           │
    │          ▼                                                           │
    │   minute changed? ──── yes ──► clear ALL counters, advance marker   │
    │          │                                                           │
    │          ▼                                                           │
    │   count += 1                                                         │
    │          │                                                           │
    │   count >= ratelimit? ─ yes ─► penalty = now + timeout,             │
    │          │                     drop counter, DENY(timeout)          │
    │          ▼                                                           │
    │        ALLOW                                                         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The ratelimit-th request inside one window is the first one refused.
A ratelimit of 0 disables the limiter.

=============================================================================
KNOWN CHARACTERISTIC: THE WINDOW BOUNDARY
=============================================================================

Because the window is global and aligned to minute boundaries, a client can
send (ratelimit - 1) requests at hh:mm:59 and another (ratelimit - 1) at
hh:mm+1:00. That is almost twice the limit in under a second. This is the
documented behavior of a fixed window and is kept as is.

=============================================================================
THREAD SAFETY
=============================================================================

The server only calls admit() from the accept loop, so there is exactly one
decision-maker. The state is still guarded by a lock so that admission stays
serialized, in call order, if it is ever invoked from several threads.

=============================================================================
"""

import logging
import math
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional


logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def minute_of(moment: datetime) -> datetime:
    """The window marker for ``moment``: the time truncated to the minute."""
    return moment.replace(second=0, microsecond=0)


@dataclass(frozen=True)
class Admission:
    """
    Result of an admission decision.

    Attributes:
        allowed: Whether the connection may proceed.
        retry_after: Whole seconds until the client may retry (denials only).
    """

    allowed: bool
    retry_after: int = 0

    @classmethod
    def allow(cls) -> "Admission":
        return cls(allowed=True)

    @classmethod
    def deny(cls, retry_after: int) -> "Admission":
        return cls(allowed=False, retry_after=max(0, retry_after))


@dataclass(frozen=True)
class RateState:
    """Snapshot of one address's limiter state (for inspection and tests)."""

    count: int = 0
    penalty_until: Optional[datetime] = None


class RateLimiter:
    """
    Per-address rate limiter with a global minute window and penalties.

    =========================================================================
    USAGE
    =========================================================================

        limiter = RateLimiter(ratelimit=120, timeout=180)

        admission = limiter.admit("192.168.1.5")
        if not admission.allowed:
            send_429(retry_after=admission.retry_after)

    =========================================================================
    """

    def __init__(
        self,
        ratelimit: int,
        timeout: int,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the rate limiter.

        Args:
            ratelimit: Requests per window that trip the penalty. 0 disables.
            timeout: Penalty length in seconds.
            clock: Source of the current time (timezone-aware datetimes).
        """
        self.ratelimit = ratelimit
        self.timeout = timeout
        self.clock = clock

        self._requests: Dict[str, int] = {}
        self._penalties: Dict[str, datetime] = {}
        self._window: datetime = minute_of(clock())

        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.ratelimit > 0

    def admit(self, address: str, now: Optional[datetime] = None) -> Admission:
        """
        Decide whether a connection from ``address`` may proceed.

        Args:
            address: Client IP (no port).
            now: Decision time. Defaults to the limiter's clock.

        Returns:
            Admission.allow() or Admission.deny(retry_after).
        """
        if not self.enabled:
            return Admission.allow()

        if now is None:
            now = self.clock()

        with self._lock:
            # ─────────────────────────────────────────────────────────────
            # 1-2. PENALTY CHECK
            # ─────────────────────────────────────────────────────────────
            penalty_until = self._penalties.get(address)
            if penalty_until is not None:
                if penalty_until > now:
                    left = math.ceil((penalty_until - now).total_seconds())
                    logger.info(
                        f"Rejecting request from rate-limited ip: {address}. "
                        f"{left} secs left on ratelimit."
                    )
                    return Admission.deny(left)
                del self._penalties[address]

            # ─────────────────────────────────────────────────────────────
            # 3. GLOBAL WINDOW RESET
            # ─────────────────────────────────────────────────────────────
            window = minute_of(now)
            if window != self._window:
                self._window = window
                self._requests.clear()
                logger.debug("Request count reset.")

            # ─────────────────────────────────────────────────────────────
            # 4-5. COUNT
            # ─────────────────────────────────────────────────────────────
            count = self._requests.get(address, 0) + 1
            if count >= self.ratelimit:
                logger.warning(f"Rate limiting {address} after {count} requests in a minute.")
                self._penalties[address] = now + timedelta(seconds=self.timeout)
                self._requests.pop(address, None)
                return Admission.deny(self.timeout)

            self._requests[address] = count
            return Admission.allow()

    def state_of(self, address: str) -> RateState:
        """Snapshot of the state held for ``address``."""
        with self._lock:
            return RateState(
                count=self._requests.get(address, 0),
                penalty_until=self._penalties.get(address),
            )

    def reset(self, address: Optional[str] = None):
        """
        Reset limiter state.

        Args:
            address: Specific address to reset, or None to reset all.
        """
        with self._lock:
            if address is None:
                self._requests.clear()
                self._penalties.clear()
            else:
                self._requests.pop(address, None)
                self._penalties.pop(address, None)
