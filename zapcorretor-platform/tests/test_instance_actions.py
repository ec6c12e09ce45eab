"""
Tests for `client/instance_actions.py`.

Covers contract rules:
- Each action holds its own busy flag while in flight and always releases it.
- Failures never escape: they become an error notification.
- Success triggers a status refetch; failure does not.
- connect returns the gateway payload, or None when it failed.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from api.models import CreateInstanceResponse, InstanceActionResponse
from client.api_client import AuthenticationRequiredError, ConnectionManagerError
from client.instance_actions import InstanceActions
from tests.fakes import RecordingNotifier


@pytest.fixture
def api() -> MagicMock:
    api = MagicMock()
    api.create_instance = AsyncMock(
        return_value=CreateInstanceResponse(
            message="Instance created successfully", instance_id="inst-1", instance_name="zapcrojoao2345"
        )
    )
    api.connect_instance = AsyncMock(return_value={"qrcode_base64": "iVBORw0KGgo="})
    api.disconnect_instance = AsyncMock(return_value=InstanceActionResponse(message="Disconnected successfully"))
    return api


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def refetch() -> MagicMock:
    return MagicMock()


@pytest.fixture
def actions(api: MagicMock, refetch: MagicMock, notifier: RecordingNotifier) -> InstanceActions:
    return InstanceActions(api, refetch_status=refetch, notifier=notifier)


@pytest.mark.asyncio
async def test_create_success(actions: InstanceActions, refetch: MagicMock, notifier: RecordingNotifier) -> None:
    await actions.create_instance()

    refetch.assert_called_once_with()
    assert notifier.messages("success") == ["Instance created. Connect your WhatsApp."]
    assert notifier.active == set()
    assert actions.is_creating is False


@pytest.mark.asyncio
async def test_create_failure_is_notified(
    actions: InstanceActions, api: MagicMock, refetch: MagicMock, notifier: RecordingNotifier
) -> None:
    api.create_instance.side_effect = ConnectionManagerError('{"error": "Instance already exists"}', status_code=409)

    await actions.create_instance()

    assert notifier.messages("error") == ["Instance already exists"]
    refetch.assert_not_called()
    assert notifier.active == set()
    assert actions.is_creating is False


@pytest.mark.asyncio
async def test_busy_flag_held_while_in_flight(actions: InstanceActions, api: MagicMock) -> None:
    seen: dict[str, bool] = {}

    async def slow_create() -> None:
        seen.update(creating=actions.is_creating, busy=actions.is_busy, connecting=actions.is_connecting)

    api.create_instance.side_effect = slow_create

    await actions.create_instance()

    assert seen == {"creating": True, "busy": True, "connecting": False}
    assert actions.is_busy is False


@pytest.mark.asyncio
async def test_flags_are_independent(actions: InstanceActions, api: MagicMock) -> None:
    release = asyncio.Event()

    async def slow_connect(phone):
        await release.wait()
        return {"qrcode_base64": "iVBORw0KGgo="}

    api.connect_instance.side_effect = slow_connect

    connecting = asyncio.create_task(actions.connect_instance())
    await asyncio.sleep(0)
    assert actions.is_connecting is True
    assert actions.is_disconnecting is False

    await actions.disconnect_instance()
    assert actions.is_connecting is True

    release.set()
    await connecting
    assert actions.is_busy is False


@pytest.mark.asyncio
async def test_connect_qr_flow(actions: InstanceActions, api: MagicMock, notifier: RecordingNotifier) -> None:
    response = await actions.connect_instance()

    api.connect_instance.assert_awaited_once_with(None)
    assert response == {"qrcode_base64": "iVBORw0KGgo="}
    assert notifier.messages("success") == ["QR code generated. Scan it to connect."]


@pytest.mark.asyncio
async def test_connect_pairing_flow(actions: InstanceActions, api: MagicMock, notifier: RecordingNotifier) -> None:
    api.connect_instance.return_value = {"pairingCode": "WZ4K-81QX"}

    response = await actions.connect_instance("5511999998888")

    api.connect_instance.assert_awaited_once_with("5511999998888")
    assert response == {"pairingCode": "WZ4K-81QX"}
    assert notifier.messages("success") == ["Pairing code generated. Use the code to connect."]


@pytest.mark.asyncio
async def test_connect_failure_returns_none(
    actions: InstanceActions, api: MagicMock, refetch: MagicMock, notifier: RecordingNotifier
) -> None:
    api.connect_instance.side_effect = ConnectionManagerError(
        '{"error": "Instance not found. Please initialize first."}', status_code=404
    )

    assert await actions.connect_instance() is None
    assert notifier.messages("error") == ["Instance not found. Please initialize first."]
    refetch.assert_not_called()
    assert actions.is_connecting is False


@pytest.mark.asyncio
async def test_disconnect_success(actions: InstanceActions, refetch: MagicMock, notifier: RecordingNotifier) -> None:
    await actions.disconnect_instance()

    refetch.assert_called_once_with()
    assert notifier.messages("success") == ["WhatsApp disconnected."]


@pytest.mark.asyncio
async def test_unexpected_error_uses_message(actions: InstanceActions, api: MagicMock, notifier: RecordingNotifier) -> None:
    api.disconnect_instance.side_effect = RuntimeError("")

    await actions.disconnect_instance()

    assert notifier.messages("error") == ["Failed to disconnect."]
    assert actions.is_disconnecting is False


@pytest.mark.asyncio
async def test_unauthorized_triggers_sign_in(api: MagicMock, refetch: MagicMock, notifier: RecordingNotifier) -> None:
    signed_out = MagicMock()
    actions = InstanceActions(api, refetch_status=refetch, notifier=notifier, on_unauthorized=signed_out)
    api.create_instance.side_effect = AuthenticationRequiredError('{"error": "Unauthorized"}', status_code=401)

    await actions.create_instance()

    signed_out.assert_called_once_with()
    assert notifier.messages("error") == ["Unauthorized"]


@pytest.mark.asyncio
async def test_flag_released_when_loading_notification_fails(api: MagicMock, refetch: MagicMock) -> None:
    notifier = RecordingNotifier()
    notifier.loading = MagicMock(side_effect=RuntimeError("toast container gone"))
    actions = InstanceActions(api, refetch_status=refetch, notifier=notifier)

    with pytest.raises(RuntimeError):
        await actions.create_instance()

    assert actions.is_creating is False
    assert actions.is_busy is False
    api.create_instance.assert_not_awaited()
