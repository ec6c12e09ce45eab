"""
Profile repository.

Loads the profile row an authenticated user maps to. Profiles are created by
the tenant/user management flows, never here.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional
from uuid import UUID

from supabase import Client

from domain.errors import ForbiddenError
from domain.profile import Profile, Role

_PROFILES_TABLE: str = "profiles"

_PROFILE_COLUMNS: str = "id, email, full_name, role, tenant_id, is_active"


def _row_to_profile(row: Mapping[str, Any]) -> Profile:
    """
    Convert a Supabase row into a Profile.

    Raises:
        ForbiddenError: the row has no role, or one outside the known set
    """

    try:
        role = Role(str(row.get("role")))
    except ValueError:
        raise ForbiddenError(f"Profile role {row.get('role')!r} is not recognized.")

    tenant_id = row.get("tenant_id")
    return Profile(
        profile_id=UUID(str(row["id"])),
        role=role,
        email=row.get("email"),
        full_name=row.get("full_name"),
        tenant_id=UUID(str(tenant_id)) if tenant_id else None,
        is_active=bool(row.get("is_active", True)),
    )


def get_profile_by_id(db: Client, profile_id: UUID) -> Optional[Profile]:
    """
    Get a profile by its ID (same as the auth user ID).

    Args:
        db: Supabase client
        profile_id: UUID of the profile

    Returns:
        Profile domain model or None if not found
    """
    response = (
        db.table(_PROFILES_TABLE)
        .select(_PROFILE_COLUMNS)
        .eq("id", str(profile_id))
        .limit(1)
        .execute()
    )

    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to fetch profile: {error}")

    rows = getattr(response, "data", None) or []
    if not rows:
        return None

    return _row_to_profile(rows[0])


__all__ = ["get_profile_by_id"]
