"""
Presentation glue for the WhatsApp connection card.

Pure helpers (status badge, which buttons apply) plus ConnectionCard, which
wires a StatusPoller and an InstanceActions together and keeps the QR or
pairing code returned by the last connect.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import FrozenSet, Optional

from api.models import InstanceStatusResponse
from client.instance_actions import InstanceActions
from client.status_poller import StatusPoller
from domain.instance import InstanceStatus


class CardAction(str, Enum):
    CREATE = "create"
    CONNECT = "connect"
    DISCONNECT = "disconnect"
    REFRESH = "refresh"


@dataclass(frozen=True, slots=True)
class StatusBadge:
    text: str
    variant: str  # default, secondary, destructive, success, warning
    tooltip: str


_WAITING = StatusBadge("Waiting for connection", "warning", "Waiting for the QR code or pairing code to be used.")

_BADGES: dict[str, StatusBadge] = {
    InstanceStatus.CONNECTED.value: StatusBadge("Connected", "success", "WhatsApp connected and active."),
    InstanceStatus.DISCONNECTED.value: StatusBadge(
        "Disconnected", "destructive", "WhatsApp disconnected. Reconnection required."
    ),
    InstanceStatus.WAITING_QR.value: _WAITING,
    InstanceStatus.WAITING_PAIR.value: _WAITING,
    InstanceStatus.CREATED.value: StatusBadge(
        "Instance created", "default", "Instance created but not yet connected to WhatsApp."
    ),
    InstanceStatus.NO_INSTANCE.value: StatusBadge(
        "No instance", "secondary", "No WhatsApp instance has been created for this profile."
    ),
    "error": StatusBadge("Error", "destructive", "The WhatsApp instance reported an error."),
}

_UNKNOWN = StatusBadge("Unknown status", "secondary", "Checking WhatsApp status.")

_CONNECTABLE = frozenset(
    {
        InstanceStatus.DISCONNECTED,
        InstanceStatus.CREATED,
        InstanceStatus.WAITING_QR,
        InstanceStatus.WAITING_PAIR,
    }
)


def badge_for(status: Optional[str]) -> StatusBadge:
    """Badge for an internal status value; unknown or missing values get a neutral badge."""
    if status is None:
        return _UNKNOWN
    return _BADGES.get(getattr(status, "value", status), _UNKNOWN)


def available_actions(snapshot: Optional[InstanceStatusResponse]) -> FrozenSet[CardAction]:
    """Buttons the card offers for a status snapshot (nothing until the first load)."""
    if snapshot is None:
        return frozenset()

    actions = {CardAction.REFRESH}
    if snapshot.status is InstanceStatus.NO_INSTANCE:
        actions.add(CardAction.CREATE)
    if snapshot.has_instance and snapshot.status in _CONNECTABLE:
        actions.add(CardAction.CONNECT)
    if snapshot.status is InstanceStatus.CONNECTED:
        actions.add(CardAction.DISCONNECT)
    return frozenset(actions)


def describe_age(moment: datetime, now: Optional[datetime] = None) -> str:
    """Rough 'x ago' text for the last update line."""
    now = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    seconds = max(0, int((now - moment).total_seconds()))
    if seconds < 60:
        return "less than a minute ago"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    days = hours // 24
    return f"{days} day{'s' if days != 1 else ''} ago"


class ConnectionCard:
    """
    WhatsApp connection card for one signed-in user.

    Mount with `start()`, unmount with `stop()`. The QR/pairing code is only
    kept until the next connect or disconnect.
    """

    def __init__(self, poller: StatusPoller, actions: InstanceActions, is_agent: bool = True) -> None:
        self.poller = poller
        self.actions = actions
        self.title = "My WhatsApp" if is_agent else "Central WhatsApp"
        self.qr_code: Optional[str] = None
        self.pairing_code: Optional[str] = None

    def start(self) -> None:
        self.poller.start()

    def stop(self) -> None:
        self.poller.stop()

    @property
    def badge(self) -> StatusBadge:
        data = self.poller.status_data
        return badge_for(data.status if data else None)

    @property
    def actions_available(self) -> FrozenSet[CardAction]:
        return available_actions(self.poller.status_data)

    @property
    def is_action_loading(self) -> bool:
        return self.actions.is_busy

    @property
    def qr_code_data_uri(self) -> Optional[str]:
        if not self.qr_code:
            return None
        if self.qr_code.startswith("data:image"):
            return self.qr_code
        return f"data:image/png;base64,{self.qr_code}"

    async def handle_create(self) -> None:
        await self.actions.create_instance()

    async def handle_connect(self, phone: Optional[str] = None) -> None:
        self.qr_code = None
        self.pairing_code = None
        response = await self.actions.connect_instance(phone)
        if response is None:
            return
        if response.get("qrcode_base64"):
            self.qr_code = response["qrcode_base64"]
        elif response.get("pairingCode"):
            self.pairing_code = response["pairingCode"]

    async def handle_disconnect(self) -> None:
        await self.actions.disconnect_instance()
        self.qr_code = None
        self.pairing_code = None

    def render(self, now: Optional[datetime] = None) -> str:
        """Plain-text rendering of the card."""
        lines = [f"{self.title}: [{self.badge.text}]"]

        if self.poller.is_loading:
            lines.append("Loading status...")
        if self.poller.error:
            lines.append(f"Error: {self.poller.error}")

        data = self.poller.status_data
        if data is not None:
            if data.updated_at is not None:
                lines.append(f"Last update: {describe_age(data.updated_at, now)}")
            if self.qr_code:
                lines.append("Scan the QR code to connect.")
            elif self.pairing_code:
                lines.append(f"Use the pairing code: {self.pairing_code}")
            if self.qr_code or self.pairing_code:
                lines.append("Keep this screen open. The status refreshes automatically.")

            actions = sorted(action.value for action in self.actions_available)
            lines.append(f"Actions: {', '.join(actions)}")

        return "\n".join(lines)


__all__ = [
    "CardAction",
    "StatusBadge",
    "badge_for",
    "available_actions",
    "describe_age",
    "ConnectionCard",
]
