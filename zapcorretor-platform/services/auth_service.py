"""
Caller resolution.

Turns the credentials of an incoming request into the Profile every instance
operation runs as. Two credential forms are accepted:
- `Authorization: Bearer <user access token>` (browser sessions)
- `Authorization: Bearer <service role key>` plus `x-user-id`, for internal
  calls made by other backend functions on behalf of a user
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import replace
from typing import Any, Optional
from uuid import UUID

from supabase import AuthError, Client

from domain.errors import ForbiddenError, UnauthorizedError
from domain.profile import Capability, Profile
from repositories.profile_repository import get_profile_by_id

logger = logging.getLogger(__name__)


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _lookup_user(db: Client, token: str, user_id: Optional[str], service_role_key: Optional[str]) -> Any:
    """Return the auth user behind the credential, or None."""

    try:
        if user_id and service_role_key and hmac.compare_digest(token, service_role_key):
            response = db.auth.admin.get_user_by_id(user_id)
        else:
            response = db.auth.get_user(token)
    except AuthError as e:
        logger.info("Rejected caller credential: %s", e)
        return None

    return getattr(response, "user", None) if response is not None else None


def resolve_caller(
    db: Client,
    authorization: Optional[str],
    *,
    user_id: Optional[str] = None,
    service_role_key: Optional[str] = None,
) -> Profile:
    """
    Resolve request credentials to a Profile.

    Raises:
        UnauthorizedError: missing or invalid credential, or no profile row
    """

    token = _bearer_token(authorization)
    if token is None:
        raise UnauthorizedError("Unauthorized")

    user = _lookup_user(db, token, user_id, service_role_key)
    if user is None:
        raise UnauthorizedError("Unauthorized")

    try:
        profile_id = UUID(str(user.id))
    except ValueError:
        raise UnauthorizedError("Unauthorized")

    profile = get_profile_by_id(db, profile_id)
    if profile is None:
        raise UnauthorizedError("User profile not found.")

    if profile.email is None and getattr(user, "email", None):
        profile = replace(profile, email=user.email)

    return profile


def require_capability(profile: Profile, capability: Capability) -> Profile:
    """
    Check that the caller may use a capability.

    Raises:
        ForbiddenError: inactive account or role without the capability
    """

    if not profile.is_active:
        raise ForbiddenError("Account is inactive.")
    if not profile.role.can(capability):
        raise ForbiddenError(f"Permission denied. Role {profile.role.value} cannot {capability.value}.")
    return profile


__all__ = ["resolve_caller", "require_capability"]
