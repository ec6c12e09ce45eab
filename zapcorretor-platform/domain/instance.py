"""
Domain: WhatsApp instance records and status vocabulary.

An instance is one WhatsApp connection session held by the gateway provider.
Each profile owns at most one. The provider speaks its own status vocabulary;
this module owns the translation into the internal one.

Contract excerpts relevant here:
- instance_id and instance_token are both present or both absent.
- instance_name is generated once and survives a disconnect; only a delete
  clears it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from .time import require_utc_timestamp

INSTANCE_NAME_PREFIX: str = "zapcro"

# Number of trailing timestamp digits appended to the generated name.
_NAME_SUFFIX_DIGITS: int = 4

_NON_ALNUM = re.compile(r"[^a-z0-9]")


class InstanceStatus(str, Enum):
    """Internal connection status exposed to callers."""

    NO_INSTANCE = "no_instance"
    CREATED = "created"
    WAITING_QR = "waiting_qr"
    WAITING_PAIR = "waiting_pair"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


_PROVIDER_STATUS_MAP: dict[str, InstanceStatus] = {
    "connected": InstanceStatus.CONNECTED,
    "disconnected": InstanceStatus.DISCONNECTED,
    "qrcode": InstanceStatus.WAITING_QR,
    "pairing": InstanceStatus.WAITING_PAIR,
}


def map_provider_status(provider_status: Any) -> InstanceStatus:
    """
    Translate a gateway status value into the internal vocabulary.

    Anything the mapping does not know (absent, empty, new provider states)
    falls back to CREATED: the instance exists but is not usable yet.
    """

    if not isinstance(provider_status, str):
        return InstanceStatus.CREATED
    return _PROVIDER_STATUS_MAP.get(provider_status, InstanceStatus.CREATED)


def generate_instance_name(email: Optional[str], timestamp_ms: int) -> str:
    """
    Build a human-traceable instance name.

    Format: prefix + email local-part (lower-cased, non-alphanumerics
    stripped) + the last four digits of the millisecond timestamp.

    Example:
        generate_instance_name("Joao.Silva@imob.com", 1718000012345)
        # "zapcrojoaosilva2345"
    """

    local_part = (email or "unknown").split("@")[0].lower()
    suffix = str(timestamp_ms)[-_NAME_SUFFIX_DIGITS:]
    return f"{INSTANCE_NAME_PREFIX}{_NON_ALNUM.sub('', local_part)}{suffix}"


@dataclass(frozen=True, slots=True)
class InstanceRecord:
    """
    Instance columns of a profile row.

    The record always exists once the profile exists; "no instance" is the
    state where instance_id and instance_token are both None.

    stale_credentials marks a stored row holding only one of id/token. Such a
    row has no usable instance, but its slot is still taken.
    """

    profile_id: UUID
    instance_id: Optional[str] = None
    instance_token: Optional[str] = None
    instance_name: Optional[str] = None
    updated_at: Optional[datetime] = None
    stale_credentials: bool = False

    def __post_init__(self) -> None:
        if (self.instance_id is None) != (self.instance_token is None):
            raise ValueError("instance_id and instance_token must be both present or both absent")
        if self.updated_at is not None:
            require_utc_timestamp("updated_at", self.updated_at)

    @property
    def has_instance(self) -> bool:
        return self.instance_id is not None

    @property
    def is_occupied(self) -> bool:
        """True when a create must be refused (full or partial credentials stored)."""
        return self.has_instance or self.stale_credentials


__all__ = [
    "INSTANCE_NAME_PREFIX",
    "InstanceStatus",
    "InstanceRecord",
    "map_provider_status",
    "generate_instance_name",
]
