"""
Instance repository (persistence).

The instance record lives in the `instance_*` columns of the caller's
`profiles` row. This module only reads and writes those columns; the
lifecycle rules (ordering against the gateway, what each operation clears)
belong to the instance manager.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional
from uuid import UUID

from supabase import Client

from domain.instance import InstanceRecord
from domain.time import parse_utc_datetime, to_iso_utc

_PROFILES_TABLE: str = "profiles"

_INSTANCE_COLUMNS: str = "id, instance_id, instance_token, instance_name, updated_at"


def _row_to_record(row: Mapping[str, Any]) -> InstanceRecord:
    """
    Convert a Supabase row into an InstanceRecord.

    A row holding only one of id/token is treated as having no usable
    instance (the domain model refuses partial records) and is flagged with
    stale_credentials.
    """

    instance_id = row.get("instance_id") or None
    instance_token = row.get("instance_token") or None
    stale_credentials = (instance_id is None) != (instance_token is None)
    if stale_credentials:
        instance_id = instance_token = None

    return InstanceRecord(
        profile_id=UUID(str(row["id"])),
        instance_id=instance_id,
        instance_token=instance_token,
        instance_name=row.get("instance_name") or None,
        updated_at=parse_utc_datetime(row["updated_at"]) if row.get("updated_at") else None,
        stale_credentials=stale_credentials,
    )


def _check(response: Any, action: str) -> list[dict[str, Any]]:
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to {action}: {error}")
    return getattr(response, "data", None) or []


def get_instance_record(db: Client, profile_id: UUID) -> Optional[InstanceRecord]:
    """
    Fetch the instance record of a profile.

    Returns:
        InstanceRecord (possibly without instance) or None if the profile row
        does not exist.
    """

    response = (
        db.table(_PROFILES_TABLE)
        .select(_INSTANCE_COLUMNS)
        .eq("id", str(profile_id))
        .limit(1)
        .execute()
    )
    rows = _check(response, "fetch instance record")
    if not rows:
        return None
    return _row_to_record(rows[0])


def claim_instance(
    db: Client,
    profile_id: UUID,
    *,
    instance_id: str,
    instance_token: str,
    instance_name: str,
    updated_at: datetime,
) -> bool:
    """
    Store a freshly created instance, only if the profile has none.

    The `instance_id IS NULL` / `instance_token IS NULL` filters make the
    check-and-write a single statement, so two concurrent creates cannot
    both claim the row.

    Returns:
        True if this call stored the instance, False if another instance was
        stored first.
    """

    response = (
        db.table(_PROFILES_TABLE)
        .update(
            {
                "instance_id": instance_id,
                "instance_token": instance_token,
                "instance_name": instance_name,
                "updated_at": to_iso_utc(updated_at, name="updated_at"),
            }
        )
        .eq("id", str(profile_id))
        .is_("instance_id", "null")
        .is_("instance_token", "null")
        .execute()
    )
    rows = _check(response, "store instance")
    return len(rows) > 0


def clear_instance(
    db: Client,
    profile_id: UUID,
    *,
    updated_at: datetime,
    clear_name: bool = False,
) -> None:
    """
    Drop the instance credentials of a profile.

    Args:
        clear_name: also drop instance_name (full reset, used by delete)
    """

    payload: dict[str, Any] = {
        "instance_id": None,
        "instance_token": None,
        "updated_at": to_iso_utc(updated_at, name="updated_at"),
    }
    if clear_name:
        payload["instance_name"] = None

    response = db.table(_PROFILES_TABLE).update(payload).eq("id", str(profile_id)).execute()
    _check(response, "clear instance")


def touch_instance(db: Client, profile_id: UUID, *, updated_at: datetime) -> None:
    """Advance updated_at without touching the instance columns."""

    response = (
        db.table(_PROFILES_TABLE)
        .update({"updated_at": to_iso_utc(updated_at, name="updated_at")})
        .eq("id", str(profile_id))
        .execute()
    )
    _check(response, "update instance timestamp")


__all__ = [
    "get_instance_record",
    "claim_instance",
    "clear_instance",
    "touch_instance",
]
