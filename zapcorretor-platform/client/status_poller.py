"""
Instance status poller.

Keeps the latest instance status for a view:
- start() fetches once immediately, then once per interval (no backoff)
- every fetch goes through loading before settling on data or an error
- fetches are never skipped or coalesced; when they overlap, the last one
  to resolve wins
- stop() cancels the interval timer only; fetches still in flight run to
  completion but their results are discarded
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from api.models import InstanceStatusResponse
from client.api_client import AuthenticationRequiredError, describe_error

logger = logging.getLogger(__name__)

POLLING_INTERVAL_SECONDS: float = 60.0

DEFAULT_ERROR_MESSAGE: str = "Failed to load instance status."


class PollState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


Listener = Callable[["StatusPoller"], None]

_UNSET = object()


class StatusPoller:
    """Polls the Connection Manager status operation on a fixed interval."""

    def __init__(
        self,
        fetch_status: Callable[[], Awaitable[InstanceStatusResponse]],
        interval: float = POLLING_INTERVAL_SECONDS,
        on_unauthorized: Optional[Callable[[], None]] = None,
    ) -> None:
        self._fetch_status = fetch_status
        self.interval = interval
        self._on_unauthorized = on_unauthorized

        self.status_data: Optional[InstanceStatusResponse] = None
        self.is_loading: bool = False
        self.error: Optional[str] = None

        self._mounted = False
        self._timer: Optional[asyncio.Task] = None
        self._in_flight: set[asyncio.Task] = set()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> PollState:
        if self.is_loading:
            return PollState.LOADING
        if self.error is not None:
            return PollState.ERROR
        if self.status_data is not None:
            return PollState.LOADED
        return PollState.IDLE

    @property
    def is_running(self) -> bool:
        return self._mounted

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns the matching unsubscribe."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def start(self) -> None:
        """Mount: fetch now, then every `interval` seconds. Needs a running loop."""
        if self._mounted:
            return
        self._mounted = True
        self.refresh()
        self._timer = asyncio.get_running_loop().create_task(self._tick())

    def stop(self) -> None:
        """Unmount: stop the timer and ignore whatever is still in flight."""
        self._mounted = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def __aenter__(self) -> "StatusPoller":
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.stop()

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            logger.debug("Polling instance status")
            self.refresh()

    def refresh(self) -> asyncio.Task:
        """Start one fetch in the background and return its task."""
        task = asyncio.get_running_loop().create_task(self.refetch())
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    async def refetch(self) -> None:
        """Fetch the status once and apply the outcome (if still mounted)."""
        self._apply(is_loading=True, error=None)
        try:
            data = await self._fetch_status()
        except AuthenticationRequiredError as e:
            logger.warning("Status poll rejected, session expired: %s", e)
            self._apply(error="Session expired. Please sign in again.", status_data=None)
            if self._mounted and self._on_unauthorized is not None:
                self._on_unauthorized()
        except Exception as e:
            logger.error("Error fetching instance status: %s", e)
            self._apply(error=describe_error(e, DEFAULT_ERROR_MESSAGE), status_data=None)
        else:
            self._apply(status_data=data)
        finally:
            self._apply(is_loading=False)

    def _apply(self, *, is_loading=_UNSET, error=_UNSET, status_data=_UNSET) -> None:
        if not self._mounted:
            return
        if is_loading is not _UNSET:
            self.is_loading = is_loading
        if error is not _UNSET:
            self.error = error
        if status_data is not _UNSET:
            self.status_data = status_data
        for listener in list(self._listeners):
            listener(self)


__all__ = ["POLLING_INTERVAL_SECONDS", "PollState", "StatusPoller"]
