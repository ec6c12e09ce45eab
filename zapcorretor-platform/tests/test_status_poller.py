"""
Tests for `client/status_poller.py`.

Covers contract rules:
- start() fetches immediately, then once per interval.
- Every fetch goes through loading before settling on data or an error.
- Overlapping fetches are not coalesced; the last one to resolve wins.
- After stop(), in-flight results are discarded and the timer is gone.
- A 401 becomes the session-expired message and the sign-in hook fires.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from api.models import InstanceStatusResponse
from client.api_client import AuthenticationRequiredError, ConnectionManagerError
from client.status_poller import POLLING_INTERVAL_SECONDS, PollState, StatusPoller
from domain.instance import InstanceStatus

CONNECTED = InstanceStatusResponse(has_instance=True, status=InstanceStatus.CONNECTED)
WAITING = InstanceStatusResponse(has_instance=True, status=InstanceStatus.WAITING_QR)
NO_INSTANCE = InstanceStatusResponse(has_instance=False, status=InstanceStatus.NO_INSTANCE)


class ControlledFetch:
    """Fetch whose calls stay pending until the test resolves them."""

    def __init__(self) -> None:
        self.pending: list[asyncio.Future] = []

    async def __call__(self) -> InstanceStatusResponse:
        future = asyncio.get_running_loop().create_future()
        self.pending.append(future)
        return await future


async def settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


def test_default_interval_is_one_minute() -> None:
    assert POLLING_INTERVAL_SECONDS == 60.0
    assert StatusPoller(AsyncMock()).interval == 60.0


@pytest.mark.asyncio
async def test_start_fetches_immediately() -> None:
    fetch = AsyncMock(return_value=CONNECTED)
    poller = StatusPoller(fetch, interval=3600)

    poller.start()
    await settle()

    assert fetch.await_count == 1
    assert poller.status_data == CONNECTED
    assert poller.state is PollState.LOADED
    poller.stop()


@pytest.mark.asyncio
async def test_polls_on_interval() -> None:
    fetch = AsyncMock(return_value=CONNECTED)
    poller = StatusPoller(fetch, interval=0.01)

    poller.start()
    await asyncio.sleep(0.1)
    poller.stop()

    assert fetch.await_count >= 3


@pytest.mark.asyncio
async def test_stop_cancels_timer() -> None:
    fetch = AsyncMock(return_value=CONNECTED)
    poller = StatusPoller(fetch, interval=0.01)

    poller.start()
    await settle()
    poller.stop()
    calls = fetch.await_count
    await asyncio.sleep(0.05)

    assert fetch.await_count == calls
    assert poller.is_running is False


@pytest.mark.asyncio
async def test_every_fetch_passes_through_loading() -> None:
    fetch = AsyncMock(return_value=CONNECTED)
    poller = StatusPoller(fetch, interval=3600)
    states: list[PollState] = []
    poller.subscribe(lambda p: states.append(p.state))

    poller.start()
    await settle()
    await poller.refetch()

    assert states == [PollState.LOADING, PollState.LOADING, PollState.LOADED] * 2
    poller.stop()


@pytest.mark.asyncio
async def test_last_resolved_fetch_wins() -> None:
    fetch = ControlledFetch()
    poller = StatusPoller(fetch, interval=3600)

    poller.start()
    poller.refresh()
    await settle()
    assert len(fetch.pending) == 2

    fetch.pending[1].set_result(WAITING)
    await settle()
    assert poller.status_data == WAITING

    fetch.pending[0].set_result(CONNECTED)
    await settle()
    assert poller.status_data == CONNECTED
    poller.stop()


@pytest.mark.asyncio
async def test_results_after_stop_are_discarded() -> None:
    fetch = ControlledFetch()
    poller = StatusPoller(fetch, interval=3600)
    notified: list[PollState] = []
    poller.subscribe(lambda p: notified.append(p.state))

    poller.start()
    await settle()
    poller.stop()
    notified.clear()

    fetch.pending[0].set_result(CONNECTED)
    await settle()

    assert poller.status_data is None
    assert notified == []


@pytest.mark.asyncio
async def test_error_clears_data_and_unwraps_message() -> None:
    fetch = AsyncMock(side_effect=[CONNECTED, ConnectionManagerError('{"error": "Uazapi API failed with status 500"}')])
    poller = StatusPoller(fetch, interval=3600)

    poller.start()
    await settle()
    await poller.refetch()

    assert poller.status_data is None
    assert poller.error == "Uazapi API failed with status 500"
    assert poller.state is PollState.ERROR
    assert poller.is_loading is False
    poller.stop()


@pytest.mark.asyncio
async def test_next_success_clears_error() -> None:
    fetch = AsyncMock(side_effect=[ConnectionManagerError("boom"), NO_INSTANCE])
    poller = StatusPoller(fetch, interval=3600)

    poller.start()
    await settle()
    assert poller.error == "boom"

    await poller.refetch()

    assert poller.error is None
    assert poller.status_data == NO_INSTANCE
    poller.stop()


@pytest.mark.asyncio
async def test_unauthorized_triggers_sign_in() -> None:
    on_unauthorized = []
    fetch = AsyncMock(side_effect=AuthenticationRequiredError("Unauthorized", status_code=401))
    poller = StatusPoller(fetch, interval=3600, on_unauthorized=lambda: on_unauthorized.append(True))

    poller.start()
    await settle()

    assert poller.error == "Session expired. Please sign in again."
    assert on_unauthorized == [True]
    poller.stop()


@pytest.mark.asyncio
async def test_unsubscribe() -> None:
    poller = StatusPoller(AsyncMock(return_value=CONNECTED), interval=3600)
    seen: list[PollState] = []
    unsubscribe = poller.subscribe(lambda p: seen.append(p.state))
    unsubscribe()

    async with poller:
        await settle()

    assert seen == []
    assert poller.status_data == CONNECTED
