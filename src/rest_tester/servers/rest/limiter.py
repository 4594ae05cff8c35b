"""Admission gate: rate limiting and concurrency bound for outbound requests."""

import asyncio
import contextlib
import logging
import time
from collections import deque
from collections.abc import AsyncIterator, Callable

logger = logging.getLogger(__name__)

DEFAULT_CLIENT_ID = "default"


class AdmissionError(Exception):
    """A request was not admitted; the caller may retry later."""

    code = "ADMISSION_REJECTED"


class RateLimitedError(AdmissionError):
    """Too many requests inside the sliding window."""

    code = "RATE_LIMITED"


class BusyError(AdmissionError):
    """No concurrency slot freed up in time."""

    code = "BUSY"


class AdmissionGate:
    """Sliding-window rate limiter combined with a concurrency limit.

    Every successful acquire() must be paired with exactly one release(),
    whatever happens to the request in between; slot() does the pairing.
    """

    def __init__(
        self,
        max_concurrent: int = 10,
        max_requests: int = 100,
        window_seconds: float = 60.0,
        poll_interval: float = 0.05,
        max_wait_attempts: int = 10,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the gate.

        Args:
            max_concurrent: Requests allowed in flight at once
            max_requests: Requests allowed per client inside the window
            window_seconds: Length of the sliding window
            poll_interval: Seconds between checks for a free slot
            max_wait_attempts: Checks before giving up with BusyError
            clock: Monotonic time source in seconds
        """
        self._max_concurrent = max_concurrent
        self._max_requests = max_requests
        self._window = window_seconds
        self._poll_interval = poll_interval
        self._max_wait_attempts = max_wait_attempts
        self._clock = clock

        self._active = 0
        self._history: dict[str, deque[float]] = {}
        self._sweeper: asyncio.Task[None] | None = None

    @property
    def active(self) -> int:
        """Requests currently holding a slot."""
        return self._active

    def recent_requests(self, client_id: str = DEFAULT_CLIENT_ID) -> int:
        """Requests recorded for client_id inside the current window."""
        history = self._history.get(client_id)
        if not history:
            return 0
        self._purge(history, self._clock())
        return len(history)

    async def acquire(self, client_id: str = DEFAULT_CLIENT_ID) -> None:
        """Wait for admission.

        Raises:
            RateLimitedError: If client_id already used its window allowance
            BusyError: If no slot frees up within the bounded wait
        """
        attempts = 0
        while True:
            # Checked on every poll so waiters cannot overrun the window
            if self.recent_requests(client_id) >= self._max_requests:
                logger.warning(f"Rate limit exceeded for client {client_id}")
                raise RateLimitedError(
                    f"Rate limit exceeded: {self._max_requests} requests per "
                    f"{self._window:g}s. Try again later."
                )
            if self._active < self._max_concurrent:
                break

            attempts += 1
            if attempts > self._max_wait_attempts:
                logger.warning(
                    f"No request slot available after {self._max_wait_attempts} attempts"
                )
                raise BusyError(
                    f"Server busy: {self._max_concurrent} requests already in flight. "
                    "Try again later."
                )
            await asyncio.sleep(self._poll_interval)

        self._active += 1
        self._history.setdefault(client_id, deque()).append(self._clock())

    def release(self) -> None:
        """Give back a slot taken by acquire()."""
        self._active = max(0, self._active - 1)

    @contextlib.asynccontextmanager
    async def slot(self, client_id: str = DEFAULT_CLIENT_ID) -> AsyncIterator[None]:
        """Hold a slot for the duration of the block."""
        await self.acquire(client_id)
        try:
            yield
        finally:
            self.release()

    def sweep(self) -> None:
        """Drop window entries that have aged out, and empty histories."""
        now = self._clock()
        for client_id in list(self._history):
            history = self._history[client_id]
            self._purge(history, now)
            if not history:
                del self._history[client_id]

    def _purge(self, history: deque[float], now: float) -> None:
        cutoff = now - self._window
        while history and history[0] <= cutoff:
            history.popleft()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._window)
            self.sweep()

    def start(self) -> None:
        """Start the periodic background sweep on the running loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(self._sweep_loop())

    async def close(self) -> None:
        """Stop the background sweep."""
        if self._sweeper is not None:
            self._sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper
            self._sweeper = None
