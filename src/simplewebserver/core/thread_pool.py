"""
=============================================================================
BOUNDED THREAD SPAWNER
=============================================================================

Each admitted connection gets its own thread. The number of live threads
is capped by a counting semaphore.

=============================================================================
WHY NOT A QUEUE-BASED POOL?
=============================================================================

A classic pool has N workers pulling tasks off a queue. With blocking
connection handlers that is a trap for this server: N slow clients occupy
all N workers and connection N+1 waits in the queue behind them, so two
connections CAN block each other.

A semaphore-gated spawn keeps the property "connections never wait for
each other" up to the cap, and still bounds resource use:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        submit(func, args)                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   accept loop                                                        │
    │       │                                                              │
    │       ├──► semaphore.acquire()   (blocks only when the cap is hit)   │
    │       │                                                              │
    │       └──► Worker(thread).start()                                    │
    │                 │                                                    │
    │                 ├──► func(*args)                                     │
    │                 │                                                    │
    │                 └──► finally: semaphore.release()                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import threading
import time
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Set


logger = logging.getLogger(__name__)


@dataclass
class Task:
    """
    A deferred function call.

    Attributes:
        func: The function to execute.
        args: Positional arguments for the function.
        submitted_at: Time the task was submitted.
    """

    func: Callable[..., Any]
    args: tuple = ()
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """
    Thread that runs exactly one task and then releases its slot.

    Exceptions escaping the task are logged here so a failing connection
    never takes anything else down. They are also passed to ``on_error``
    when one is configured.
    """

    def __init__(
        self,
        task: Task,
        worker_id: int,
        on_done: Callable[["Worker"], None],
        on_error: Optional[Callable[[BaseException], None]] = None,
    ):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task = task
        self.worker_id = worker_id
        self._on_done = on_done
        self._on_error = on_error

    def run(self):
        start_time = time.time()
        try:
            self.task.func(*self.task.args)
        except Exception as e:
            elapsed = time.time() - start_time
            logger.exception(f"Worker {self.worker_id} task failed after {elapsed:.3f}s: {e}")
            if self._on_error is not None:
                self._on_error(e)
        finally:
            self._on_done(self)


class ThreadPool:
    """
    Spawns one thread per task, at most ``max_workers`` at a time.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      ThreadPool Usage                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   pool = ThreadPool(max_workers=256)                                 │
    │   pool.submit(handle_connection, args=(conn,))                      │
    │   pool.active_count  # threads currently running                    │
    │   pool.shutdown(wait=True, timeout=5.0)                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(
        self,
        max_workers: int = 256,
        on_error: Optional[Callable[[BaseException], None]] = None,
    ):
        """
        Initialize the spawner.

        Args:
            max_workers: Maximum number of concurrently running tasks.
            on_error: Called (in the worker thread) with any exception a
                      task raised, after it was logged.
        """
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")

        self.max_workers = max_workers
        self.on_error = on_error

        self._slots = threading.BoundedSemaphore(max_workers)
        self._workers: Set[Worker] = set()
        self._lock = threading.Lock()  # Protects _workers
        self._next_worker_id = 0
        self._shutdown = False

        self.tasks_started = 0

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._workers)

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        timeout: Optional[float] = None,
    ) -> bool:
        """
        Run ``func(*args)`` in a new thread once a slot is free.

        Args:
            func: Function to run.
            args: Positional arguments.
            timeout: Maximum seconds to wait for a free slot. None waits
                     as long as it takes.

        Returns:
            True if the task was started, False if no slot became free in
            time or the pool is shut down.
        """
        if self._shutdown:
            return False

        acquired = self._slots.acquire(timeout=timeout) if timeout is not None else self._slots.acquire()
        if not acquired:
            logger.warning("No free worker slot, task rejected")
            return False

        with self._lock:
            worker = Worker(
                task=Task(func=func, args=args),
                worker_id=self._next_worker_id,
                on_done=self._release,
                on_error=self.on_error,
            )
            self._next_worker_id += 1
            self._workers.add(worker)
            self.tasks_started += 1

        try:
            worker.start()
        except RuntimeError:
            # Could not start a new thread (resource limit)
            self._release(worker)
            raise
        return True

    def _release(self, worker: Worker):
        with self._lock:
            self._workers.discard(worker)
        self._slots.release()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop accepting tasks and optionally wait for running ones.

        Args:
            wait: Join running workers.
            timeout: Overall time budget for joining, in seconds.
        """
        self._shutdown = True
        if not wait:
            return

        deadline = None if timeout is None else time.time() + timeout
        with self._lock:
            workers = list(self._workers)

        for worker in workers:
            remaining = None if deadline is None else max(0.0, deadline - time.time())
            worker.join(remaining)

        if self.active_count:
            logger.warning(f"{self.active_count} workers still running after shutdown")
