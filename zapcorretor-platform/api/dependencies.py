"""
FastAPI dependencies.

Builds the shared clients and resolves the caller once per request. Role
capabilities are enforced here, at the routing boundary, and nowhere else.
"""

from functools import lru_cache
from typing import Callable, Optional

from fastapi import Depends, Header
from supabase import Client

from domain.profile import Capability, Profile
from repositories.client import get_service_role_key, get_supabase
from services.auth_service import require_capability, resolve_caller
from services.instance_manager import InstanceManager
from services.uazapi_client import UazapiClient


def get_db() -> Client:
    return get_supabase()


@lru_cache(maxsize=1)
def get_gateway() -> UazapiClient:
    return UazapiClient.from_env()


def get_instance_manager(
    db: Client = Depends(get_db),
    gateway: UazapiClient = Depends(get_gateway),
) -> InstanceManager:
    return InstanceManager(db, gateway)


def get_caller(
    authorization: Optional[str] = Header(None),
    x_user_id: Optional[str] = Header(None),
    db: Client = Depends(get_db),
) -> Profile:
    """Resolve the request's bearer credential to a profile (401 otherwise)."""
    return resolve_caller(
        db,
        authorization,
        user_id=x_user_id,
        service_role_key=get_service_role_key(),
    )


def require(capability: Capability) -> Callable[..., Profile]:
    """Dependency factory: the caller, if its role grants `capability` (403 otherwise)."""

    def _dependency(caller: Profile = Depends(get_caller)) -> Profile:
        return require_capability(caller, capability)

    return _dependency


whatsapp_caller = require(Capability.MANAGE_WHATSAPP)
