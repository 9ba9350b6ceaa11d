"""Remote-service availability: state store and prober.

States::

    checking ──► online | offline | error        (terminal for a probe cycle)
        │
        └──► starting ──(retry delay)──► checking

``starting`` means the probe timed out, which is what a sleeping host looks
like while it boots.  The prober re-probes after a fixed delay, up to
``max_retries`` times, and stops early when the caller's cancellation event
is set.  ``online``/``offline``/``error`` end the cycle; a fresh ``probe()``
call starts a new one.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable

import httpx

logger = logging.getLogger("healthsync.sync.availability")


class AvailabilityStatus(str, Enum):
    CHECKING = "checking"
    ONLINE = "online"
    STARTING = "starting"
    OFFLINE = "offline"
    ERROR = "error"


_MESSAGES: dict[AvailabilityStatus, str] = {
    AvailabilityStatus.CHECKING: "Checking server status...",
    AvailabilityStatus.ONLINE: "Server is ready",
    AvailabilityStatus.STARTING: "Server is starting...",
    AvailabilityStatus.OFFLINE: "Server connection failed",
    AvailabilityStatus.ERROR: "Server status check failed",
}


@dataclass(frozen=True)
class ServiceAvailability:
    """One observed availability state with a human-readable message."""

    status: AvailabilityStatus
    message: str
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Listener = Callable[[ServiceAvailability], None]


class AvailabilityStore:
    """Single-value container for the current availability, with listeners.

    Owned by the caller and injected into the prober.  Listeners are called
    synchronously on every change, in subscription order.
    """

    def __init__(self, initial: ServiceAvailability | None = None) -> None:
        self._current = initial or ServiceAvailability(
            AvailabilityStatus.CHECKING, _MESSAGES[AvailabilityStatus.CHECKING]
        )
        self._listeners: list[Listener] = []

    @property
    def current(self) -> ServiceAvailability:
        return self._current

    def set(self, status: AvailabilityStatus, message: str | None = None) -> ServiceAvailability:
        """Replace the current value and notify listeners."""
        self._current = ServiceAvailability(status, message or _MESSAGES[status])
        for listener in list(self._listeners):
            try:
                listener(self._current)
            except Exception:
                logger.exception("Availability listener %r failed", listener)
        return self._current

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a function that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe


class AvailabilityProber:
    """Probe the remote service and publish the outcome to an AvailabilityStore.

    Usage::

        store = AvailabilityStore()
        prober = AvailabilityProber(store, ping=client.ping)
        await prober.probe()
        store.current.status   # AvailabilityStatus.ONLINE
    """

    def __init__(
        self,
        store: AvailabilityStore,
        ping: Callable[[], Awaitable[Any]],
        timeout: float = 60.0,
        retry_delay: float = 5.0,
        max_retries: int = 12,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize the prober.

        Args:
            store:       Where every state change is published.
            ping:        Async callable issuing the probe request.
            timeout:     Budget in seconds after which the probe counts as ``starting``.
            retry_delay: Seconds to wait before re-probing a ``starting`` service.
            max_retries: Re-probes allowed in one cycle after the first attempt.
            sleep:       Awaitable delay function; replaced by a fake clock in tests.
        """
        self._store = store
        self._ping = ping
        self._timeout = timeout
        self._retry_delay = retry_delay
        self._max_retries = max_retries
        self._sleep = sleep
        self._task: asyncio.Task | None = None

    @property
    def store(self) -> AvailabilityStore:
        return self._store

    async def probe(self, cancel: asyncio.Event | None = None) -> ServiceAvailability:
        """Run one probe cycle, re-probing while the service is ``starting``.

        Args:
            cancel: Set this event to stop any further retries.

        Returns:
            The availability the cycle ended on (also left in the store).
        """
        retries = 0
        while True:
            availability = await self._probe_once()
            if availability.status is not AvailabilityStatus.STARTING:
                return availability

            if cancel is not None and cancel.is_set():
                logger.info("Availability probe cancelled while server is starting")
                return availability
            if retries >= self._max_retries:
                logger.warning(
                    "Server still starting after %d retries; giving up", retries
                )
                return self._store.set(
                    AvailabilityStatus.STARTING,
                    f"Server is still starting after {retries} retries",
                )

            retries += 1
            logger.warning(
                "Server starting... retrying in %.0fs (%d/%d)",
                self._retry_delay, retries, self._max_retries,
            )
            if not await self._wait(cancel):
                logger.info("Availability probe cancelled during retry delay")
                return self._store.current

    def start(self, cancel: asyncio.Event | None = None) -> asyncio.Task:
        """Run ``probe()`` in the background; reuses a cycle already in flight."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.probe(cancel))
        return self._task

    async def _probe_once(self) -> ServiceAvailability:
        self._store.set(AvailabilityStatus.CHECKING)
        logger.info("Checking server status")
        try:
            await asyncio.wait_for(self._ping(), timeout=self._timeout)
        except (httpx.TimeoutException, asyncio.TimeoutError):
            status = AvailabilityStatus.STARTING
        except (httpx.TransportError, httpx.HTTPStatusError) as exc:
            logger.warning("Server unreachable: %r", exc)
            status = AvailabilityStatus.OFFLINE
        except Exception as exc:
            logger.error("Server status check failed: %s", exc, exc_info=True)
            return self._store.set(
                AvailabilityStatus.ERROR, f"{_MESSAGES[AvailabilityStatus.ERROR]}: {exc}"
            )
        else:
            status = AvailabilityStatus.ONLINE

        availability = self._store.set(status)
        logger.info("Server status: %s", availability.message)
        return availability

    async def _wait(self, cancel: asyncio.Event | None) -> bool:
        """Sleep for the retry delay.  Returns False if cancelled meanwhile."""
        if cancel is None:
            await self._sleep(self._retry_delay)
            return True

        sleeper = asyncio.ensure_future(self._sleep(self._retry_delay))
        watcher = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait({sleeper, watcher}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, watcher):
                task.cancel()
            await asyncio.gather(sleeper, watcher, return_exceptions=True)
        return not cancel.is_set()
