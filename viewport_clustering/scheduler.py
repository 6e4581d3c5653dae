"""Rate limiting for viewport-driven recomputation.

Continuous "viewport changing" signals are throttled on the leading edge,
and terminal "viewport settled" signals are debounced. The scheduler owns
its timer state and cancels it on close().
"""

import logging
import time
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_THROTTLE_MS = 200
DEFAULT_SETTLE_MS = 100


class Throttle:
    """Call ``fn`` at most once per ``min_interval_ms``; extra calls are dropped.

    Args:
        fn: Zero-argument callable.
        min_interval_ms: Minimum spacing between calls in milliseconds.
        clock: Monotonic clock returning seconds.
    """

    def __init__(
        self,
        fn: Callable[[], Any],
        min_interval_ms: float = DEFAULT_THROTTLE_MS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if min_interval_ms < 0:
            raise ValueError(f"min_interval_ms must be >= 0, got {min_interval_ms}")
        self.fn = fn
        self.min_interval_ms = min_interval_ms
        self.clock = clock
        self._last: Optional[float] = None

    def __call__(self) -> bool:
        """Invoke ``fn`` if the interval has elapsed.

        Returns:
            True if ``fn`` ran.
        """
        now = self.clock()
        if self._last is not None and (now - self._last) * 1000.0 < self.min_interval_ms:
            return False
        self._last = now
        self.fn()
        return True

    def reset(self) -> None:
        self._last = None


class Debounce:
    """Call ``fn`` once, ``wait_ms`` after the last signal.

    Args:
        fn: Zero-argument callable.
        wait_ms: Quiet period in milliseconds.
        call_later: ``call_later(delay_seconds, callback)`` returning a
            handle with ``cancel()`` (e.g. ``asyncio.loop.call_later``).
    """

    def __init__(
        self,
        fn: Callable[[], Any],
        wait_ms: float,
        call_later: Callable[[float, Callable[[], Any]], Any],
    ):
        if wait_ms < 0:
            raise ValueError(f"wait_ms must be >= 0, got {wait_ms}")
        self.fn = fn
        self.wait_ms = wait_ms
        self.call_later = call_later
        self._pending = None

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def __call__(self) -> None:
        self.cancel()
        self._pending = self.call_later(self.wait_ms / 1000.0, self._fire)

    def cancel(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _fire(self) -> None:
        self._pending = None
        self.fn()


class ViewportScheduler:
    """Wire host viewport triggers to a compute callback.

    - Changing signals with ``user_initiated=False`` (programmatic camera
      moves) are ignored; the settled signal covers them.
    - Changing signals are throttled to ``throttle_ms``.
    - Settled signals are debounced by ``settle_ms``.

    Args:
        compute: Zero-argument recomputation callback.
        host: Map host providing trigger registration and ``call_later``.
        throttle_ms: Minimum interval between throttled recomputations.
        settle_ms: Quiet period after the last settled signal.
        clock: Monotonic clock returning seconds.
    """

    def __init__(
        self,
        compute: Callable[[], Any],
        host,
        throttle_ms: float = DEFAULT_THROTTLE_MS,
        settle_ms: float = DEFAULT_SETTLE_MS,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.host = host
        self._throttle = Throttle(compute, throttle_ms, clock or host.now)
        self._debounce = Debounce(compute, settle_ms, host.call_later)
        self._unregister: List[Callable[[], Any]] = []
        self.closed = False

    def start(self) -> "ViewportScheduler":
        """Register trigger callbacks on the host."""
        if self.closed:
            raise RuntimeError("Scheduler already closed")
        self._unregister.append(self.host.on_viewport_changing(self.on_changing))
        self._unregister.append(self.host.on_viewport_settled(self.on_settled))
        return self

    def on_changing(self, user_initiated: bool = True) -> None:
        if self.closed or not user_initiated:
            return
        self._throttle()

    def on_settled(self) -> None:
        if self.closed:
            return
        self._debounce()

    @property
    def pending(self) -> bool:
        return self._debounce.pending

    def close(self) -> None:
        """Unregister triggers and cancel any pending debounced call."""
        if self.closed:
            return
        self.closed = True
        self._debounce.cancel()
        for unregister in self._unregister:
            unregister()
        self._unregister = []
        logger.debug("Viewport scheduler closed")
