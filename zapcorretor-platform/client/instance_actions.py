"""
Instance action dispatcher.

Issues create / connect / disconnect through the Connection Manager on
behalf of a view. Each action has its own busy flag, so a slow connect never
disables the disconnect button. Failures never escape: they become an error
notification and the action resolves normally.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

from client.api_client import AuthenticationRequiredError, ConnectionManagerClient, describe_error
from client.notifications import Notifier

logger = logging.getLogger(__name__)

CREATING = "creating"
CONNECTING = "connecting"
DISCONNECTING = "disconnecting"


class InstanceActions:
    """Busy-flagged wrappers around the instance commands."""

    def __init__(
        self,
        api: ConnectionManagerClient,
        refetch_status: Callable[[], Any],
        notifier: Notifier,
        on_unauthorized: Optional[Callable[[], None]] = None,
    ) -> None:
        self._api = api
        self._refetch_status = refetch_status
        self._notifier = notifier
        self._on_unauthorized = on_unauthorized
        self._busy_flags: dict[str, bool] = {CREATING: False, CONNECTING: False, DISCONNECTING: False}

    @property
    def is_creating(self) -> bool:
        return self._busy_flags[CREATING]

    @property
    def is_connecting(self) -> bool:
        return self._busy_flags[CONNECTING]

    @property
    def is_disconnecting(self) -> bool:
        return self._busy_flags[DISCONNECTING]

    @property
    def is_busy(self) -> bool:
        return any(self._busy_flags.values())

    @contextmanager
    def _busy(self, action: str, loading_message: str) -> Iterator[None]:
        """Hold the action's busy flag and loading notification until the block exits."""
        notification_id: Optional[int] = None
        try:
            self._busy_flags[action] = True
            notification_id = self._notifier.loading(loading_message)
            yield
        finally:
            self._busy_flags[action] = False
            if notification_id is not None:
                self._notifier.dismiss(notification_id)

    def _fail(self, action: str, error: Exception, fallback: str) -> None:
        logger.error("%s instance failed: %s", action.capitalize(), error)
        self._notifier.error(describe_error(error, fallback))
        if isinstance(error, AuthenticationRequiredError) and self._on_unauthorized is not None:
            self._on_unauthorized()

    async def create_instance(self) -> None:
        with self._busy(CREATING, "Creating WhatsApp instance..."):
            try:
                await self._api.create_instance()
            except Exception as e:
                self._fail(CREATING, e, "Failed to create the instance.")
                return
            self._notifier.success("Instance created. Connect your WhatsApp.")
            self._refetch_status()

    async def connect_instance(self, phone: Optional[str] = None) -> Optional[dict[str, Any]]:
        """
        Start a connection.

        Returns:
            The gateway payload (QR code or pairing code), or None when the
            call failed. Callers must check for None.
        """
        with self._busy(CONNECTING, "Starting connection..."):
            try:
                response = await self._api.connect_instance(phone)
            except Exception as e:
                self._fail(CONNECTING, e, "Failed to start the connection.")
                return None

            if response.get("qrcode_base64"):
                self._notifier.success("QR code generated. Scan it to connect.")
            elif response.get("pairingCode"):
                self._notifier.success("Pairing code generated. Use the code to connect.")
            else:
                self._notifier.success("Connection started. Check the status in a moment.")

            self._refetch_status()
            return response

    async def disconnect_instance(self) -> None:
        with self._busy(DISCONNECTING, "Disconnecting WhatsApp..."):
            try:
                await self._api.disconnect_instance()
            except Exception as e:
                self._fail(DISCONNECTING, e, "Failed to disconnect.")
                return
            self._notifier.success("WhatsApp disconnected.")
            self._refetch_status()


__all__ = ["InstanceActions"]
