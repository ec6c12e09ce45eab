"""
Domain: user profiles and role capabilities.

A profile is the identity every instance operation runs as. Roles form a
closed set; each maps to exactly one capability set, checked once at the
routing boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional
from uuid import UUID


class Capability(str, Enum):
    MANAGE_WHATSAPP = "manage_whatsapp"
    MANAGE_TENANTS = "manage_tenants"


class Role(str, Enum):
    """Role tiers of the platform."""

    SUPERADMIN = "SUPERADMIN"
    ADMIN_TENANT = "ADMIN_TENANT"
    AGENT = "AGENT"

    @property
    def capabilities(self) -> FrozenSet[Capability]:
        return _ROLE_CAPABILITIES[self]

    def can(self, capability: Capability) -> bool:
        return capability in _ROLE_CAPABILITIES[self]


_ROLE_CAPABILITIES: dict[Role, FrozenSet[Capability]] = {
    Role.SUPERADMIN: frozenset({Capability.MANAGE_TENANTS}),
    # Tenant admins own the central number, agents their personal one.
    Role.ADMIN_TENANT: frozenset({Capability.MANAGE_WHATSAPP}),
    Role.AGENT: frozenset({Capability.MANAGE_WHATSAPP}),
}


@dataclass(frozen=True, slots=True)
class Profile:
    """
    Authenticated caller, resolved from a bearer credential.

    Passed explicitly to every instance operation.
    """

    profile_id: UUID
    role: Role
    email: Optional[str] = None
    full_name: Optional[str] = None
    tenant_id: Optional[UUID] = None
    is_active: bool = True

    def belongs_to_tenant(self) -> bool:
        return self.tenant_id is not None


__all__ = ["Capability", "Role", "Profile"]
