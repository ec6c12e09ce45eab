"""
WhatsApp instance lifecycle (Connection Manager).

Sole authority over the caller's instance record:
- enforces one instance per profile
- translates gateway statuses into the internal vocabulary
- writes the record only after the gateway call succeeded, so a failed call
  never leaves a half-applied local change

Every operation takes the caller explicitly and only touches that caller's
own record. Gateway failures propagate as UpstreamFailureError; nothing is
retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from supabase import Client

from domain.errors import (
    InstanceAlreadyExistsError,
    InstanceNotFoundError,
    UnauthorizedError,
    UpstreamFailureError,
)
from domain.instance import (
    InstanceRecord,
    InstanceStatus,
    generate_instance_name,
    map_provider_status,
)
from domain.profile import Profile
from domain.time import utc_now
from repositories.instance_repository import (
    claim_instance,
    clear_instance,
    get_instance_record,
    touch_instance,
)
from repositories.settings_repository import N8N_WEBHOOK_URL_KEY, get_global_setting
from services.uazapi_client import UazapiClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CreateInstanceResult:
    instance_id: str
    instance_name: str


@dataclass(frozen=True, slots=True)
class InstanceStatusResult:
    """
    Status snapshot of the caller's instance.

    has_instance=False always comes with status NO_INSTANCE and no raw payload.
    """

    has_instance: bool
    status: InstanceStatus
    raw: Optional[dict[str, Any]] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class InstanceActionResult:
    message: str
    raw: dict[str, Any]


class InstanceManager:
    """Instance lifecycle operations for authenticated callers."""

    def __init__(
        self,
        db: Client,
        gateway: UazapiClient,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._db = db
        self._gateway = gateway
        self._clock = clock

    def _record(self, caller: Profile) -> Optional[InstanceRecord]:
        return get_instance_record(self._db, caller.profile_id)

    def _require_instance(self, caller: Profile, message: str) -> InstanceRecord:
        record = self._record(caller)
        if record is None or not record.has_instance:
            raise InstanceNotFoundError(message)
        return record

    def create(self, caller: Profile) -> CreateInstanceResult:
        """
        Create the caller's instance.

        A name already stored (the instance was disconnected, not deleted) is
        reused; otherwise a new one is generated.

        Raises:
            InstanceAlreadyExistsError: the caller already owns an instance
            UpstreamFailureError: the gateway failed or returned no id/token
        """

        record = self._record(caller)
        if record is None:
            raise UnauthorizedError("User profile not found.")
        if record.is_occupied:
            raise InstanceAlreadyExistsError(record.instance_id)

        now = self._clock()
        instance_name = record.instance_name or generate_instance_name(
            caller.email, int(now.timestamp() * 1000)
        )

        response = self._gateway.init_instance(instance_name)
        instance_id = response.get("instanceId")
        instance_token = response.get("token")
        if not instance_id or not instance_token:
            raise UpstreamFailureError(
                "Uazapi did not return instance ID or token.",
                body=str(response),
            )

        claimed = claim_instance(
            self._db,
            caller.profile_id,
            instance_id=str(instance_id),
            instance_token=str(instance_token),
            instance_name=instance_name,
            updated_at=now,
        )
        if not claimed:
            # A concurrent create stored its instance first; drop ours upstream.
            logger.warning(
                "Lost instance creation race, deleting orphan instance",
                extra={"profile_id": str(caller.profile_id), "instance_id": str(instance_id)},
            )
            try:
                self._gateway.delete(str(instance_token))
            except UpstreamFailureError:
                logger.error(
                    "Failed to delete orphan instance %s",
                    instance_id,
                    extra={"profile_id": str(caller.profile_id)},
                )
            current = self._record(caller)
            raise InstanceAlreadyExistsError(current.instance_id if current else None)

        logger.info(
            "Instance created",
            extra={
                "profile_id": str(caller.profile_id),
                "instance_id": str(instance_id),
                "instance_name": instance_name,
            },
        )

        if caller.belongs_to_tenant():
            self._configure_tenant_webhook(caller, str(instance_id), str(instance_token))

        return CreateInstanceResult(instance_id=str(instance_id), instance_name=instance_name)

    def _configure_tenant_webhook(self, caller: Profile, instance_id: str, instance_token: str) -> None:
        """
        Route a tenant instance's inbound messages to the automation webhook.

        The instance is already stored at this point, so failures here are
        logged and the create still succeeds.
        """

        try:
            webhook_url = get_global_setting(self._db, N8N_WEBHOOK_URL_KEY)
        except Exception as e:
            logger.warning(
                "Could not read %s, webhook not configured: %s",
                N8N_WEBHOOK_URL_KEY,
                e,
                extra={"profile_id": str(caller.profile_id), "instance_id": instance_id},
            )
            return

        if not webhook_url:
            logger.warning(
                "%s not found in global_settings, webhook not configured",
                N8N_WEBHOOK_URL_KEY,
                extra={"instance_id": instance_id},
            )
            return

        try:
            self._gateway.configure_webhook(instance_token, webhook_url)
        except UpstreamFailureError as e:
            logger.warning(
                "Webhook configuration failed for instance %s: %s",
                instance_id,
                e.message,
                extra={"profile_id": str(caller.profile_id), "upstream_status": e.upstream_status},
            )
            return

        logger.info("Webhook configured", extra={"instance_id": instance_id, "webhook_url": webhook_url})

    def status(self, caller: Profile) -> InstanceStatusResult:
        """
        Report the caller's instance status.

        Works for callers without an instance. When the gateway call fails the
        operation fails; the status is never inferred locally.
        """

        record = self._record(caller)
        if record is None or not record.has_instance:
            return InstanceStatusResult(has_instance=False, status=InstanceStatus.NO_INSTANCE)

        raw = self._gateway.get_status(record.instance_token)
        return InstanceStatusResult(
            has_instance=True,
            status=map_provider_status(raw.get("status")),
            raw=raw,
            updated_at=record.updated_at,
        )

    def connect(self, caller: Profile, phone: Optional[str] = None) -> dict[str, Any]:
        """
        Start a QR-code (no phone) or pairing-code (phone) connection.

        Returns:
            The gateway payload, unmodified.
        """

        record = self._require_instance(caller, "Instance not found. Please initialize first.")
        return self._gateway.connect(record.instance_token, phone or None)

    def disconnect(self, caller: Profile) -> InstanceActionResult:
        """Disconnect upstream, then drop the local id/token (the name stays)."""

        record = self._require_instance(caller, "Instance not found.")
        raw = self._gateway.disconnect(record.instance_token)
        clear_instance(self._db, caller.profile_id, updated_at=self._clock())

        logger.info("Instance disconnected", extra={"profile_id": str(caller.profile_id)})
        return InstanceActionResult(message="Disconnected successfully", raw=raw)

    def pause(self, caller: Profile) -> InstanceActionResult:
        """Pause upstream; the local record keeps its identifiers."""

        record = self._require_instance(caller, "Instance not found.")
        raw = self._gateway.pause(record.instance_token)
        touch_instance(self._db, caller.profile_id, updated_at=self._clock())

        logger.info("Instance paused", extra={"profile_id": str(caller.profile_id)})
        return InstanceActionResult(message="Instance paused successfully", raw=raw)

    def delete(self, caller: Profile) -> InstanceActionResult:
        """Delete upstream, then reset the record to its pre-creation state."""

        record = self._require_instance(caller, "Instance not found.")
        raw = self._gateway.delete(record.instance_token)
        clear_instance(self._db, caller.profile_id, updated_at=self._clock(), clear_name=True)

        logger.info("Instance deleted", extra={"profile_id": str(caller.profile_id)})
        return InstanceActionResult(message="Instance deleted successfully", raw=raw)


__all__ = [
    "CreateInstanceResult",
    "InstanceStatusResult",
    "InstanceActionResult",
    "InstanceManager",
]
