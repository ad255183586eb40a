"""
Single-flight coordination for cache loads.

When several callers need the same load at the same time (the whole
collection, or one id), only one store call is made and every caller
shares its outcome.
"""
import threading
import time
import logging
from typing import Dict, Hashable, Optional, Callable, Any
from dataclasses import dataclass, field

logger = logging.getLogger("cache.coalescer")


@dataclass
class InFlightRequest:
    """Tracks an in-progress load."""
    event: threading.Event = field(default_factory=threading.Event)
    result: Optional[Any] = None
    error: Optional[BaseException] = None
    started_at: float = field(default_factory=time.monotonic)
    waiter_count: int = 0


class RequestCoalescer:
    """
    Ensures concurrent loads for the same scope share one store call.

    Pattern:
    - First caller for a scope registers an InFlightRequest and runs the load
    - Later callers for the same scope wait on its Event
    - The registry entry is removed before the Event is set, so a caller
      arriving after completion always starts a fresh load
    - Waiters get the initiator's result, or re-raise its exception

    Usage:
        coalescer = RequestCoalescer()
        snapshot = coalescer.get_or_fetch(WHOLE_COLLECTION, self._refresh)
    """

    def __init__(self, timeout: Optional[float] = None):
        """
        Args:
            timeout: Max seconds a waiter blocks on someone else's load.
                None waits until the load finishes.
        """
        self._in_flight: Dict[Hashable, InFlightRequest] = {}
        self._lock = threading.Lock()
        self._timeout = timeout

    def get_or_fetch(
        self,
        scope: Hashable,
        fetch_fn: Callable[[], Any],
    ) -> Any:
        """
        Either join an existing in-flight load or initiate a new one.

        Args:
            scope: Key identifying what is being loaded
            fetch_fn: Load to run if nothing is in flight for scope

        Returns:
            The load result (shared among all concurrent callers)

        Raises:
            TimeoutError: If a timeout is set and the wait exceeds it
            Exception: Any error from fetch_fn, raised to every caller
        """
        with self._lock:
            in_flight = self._in_flight.get(scope)
            if in_flight is not None:
                in_flight.waiter_count += 1
                logger.debug(
                    f"Coalescing load for {scope!r} "
                    f"(waiters: {in_flight.waiter_count})"
                )
                is_initiator = False
            else:
                in_flight = InFlightRequest()
                self._in_flight[scope] = in_flight
                is_initiator = True
                logger.debug(f"Initiating load for {scope!r}")

        if is_initiator:
            try:
                in_flight.result = fetch_fn()
            except BaseException as e:
                in_flight.error = e
                logger.debug(f"Load failed for {scope!r}: {e}")
            finally:
                with self._lock:
                    if self._in_flight.get(scope) is in_flight:
                        del self._in_flight[scope]
                in_flight.event.set()

            if in_flight.error is not None:
                raise in_flight.error
            return in_flight.result

        completed = in_flight.event.wait(timeout=self._timeout)

        if not completed:
            logger.error(f"Timeout waiting for coalesced load: {scope!r}")
            raise TimeoutError(f"Load for {scope!r} timed out after {self._timeout}s")

        if in_flight.error is not None:
            raise in_flight.error

        return in_flight.result

    def is_in_flight(self, scope: Hashable) -> bool:
        with self._lock:
            return scope in self._in_flight

    def waiter_count(self, scope: Hashable) -> int:
        """Number of callers currently attached to the load for scope."""
        with self._lock:
            in_flight = self._in_flight.get(scope)
            return in_flight.waiter_count if in_flight else 0

    @property
    def active_requests(self) -> int:
        """Number of currently in-flight loads."""
        with self._lock:
            return len(self._in_flight)

    def get_stats(self) -> Dict[str, Any]:
        """Get coalescer statistics."""
        with self._lock:
            return {
                "active_requests": len(self._in_flight),
                "active_keys": [repr(k) for k in self._in_flight.keys()],
            }
