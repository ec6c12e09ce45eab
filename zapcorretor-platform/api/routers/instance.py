"""
WhatsApp Instance API Endpoints.

Lifecycle of the caller's own WhatsApp instance: create, status, connect,
disconnect, pause and delete. Every endpoint requires a bearer credential of
a role allowed to manage WhatsApp; failures are rendered by the instance
error handler registered in `api.main`.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_instance_manager, whatsapp_caller
from api.models import (
    ConnectRequest,
    CreateInstanceResponse,
    ErrorResponse,
    InstanceActionResponse,
    InstanceStatusResponse,
)
from domain.profile import Profile
from services.instance_manager import InstanceManager

router = APIRouter(prefix="/whatsapp/instance")

_ERRORS = {
    401: {"model": ErrorResponse, "description": "Missing or invalid credential"},
    403: {"model": ErrorResponse, "description": "Role cannot manage WhatsApp"},
    502: {"model": ErrorResponse, "description": "WhatsApp gateway failure"},
}

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Caller has no instance"}}


@router.post(
    "/init",
    status_code=201,
    response_model=CreateInstanceResponse,
    responses={**_ERRORS, 409: {"model": ErrorResponse, "description": "Instance already exists"}},
    summary="Create Instance",
    description="Create the caller's WhatsApp instance. Each profile owns at most one."
)
def create_instance(
    caller: Profile = Depends(whatsapp_caller),
    manager: InstanceManager = Depends(get_instance_manager),
):
    """
    Create a WhatsApp instance for the caller.

    The instance name is derived from the caller's email plus a timestamp
    suffix. Tenant instances get their inbound webhook configured right away.

    **Success response:**
    ```json
    {
      "message": "Instance created successfully",
      "instance_id": "r3f1b2c4d5",
      "instance_name": "zapcrojoaosilva2345"
    }
    ```
    """
    result = manager.create(caller)
    return CreateInstanceResponse(
        message="Instance created successfully",
        instance_id=result.instance_id,
        instance_name=result.instance_name,
    )


@router.get(
    "/status",
    response_model=InstanceStatusResponse,
    responses=_ERRORS,
    summary="Instance Status",
    description="Current connection status of the caller's instance."
)
def get_instance_status(
    caller: Profile = Depends(whatsapp_caller),
    manager: InstanceManager = Depends(get_instance_manager),
):
    """
    Report the instance status.

    Callers without an instance get exactly
    `{"hasInstance": false, "status": "no_instance"}`. With an instance, `raw`
    and `updated_at` are always present (`updated_at` may be null).
    Gateway statuses are mapped: connected, disconnected, qrcode → waiting_qr,
    pairing → waiting_pair, anything else → created.
    """
    result = manager.status(caller)
    response = InstanceStatusResponse(
        has_instance=result.has_instance,
        status=result.status,
        raw=result.raw,
        updated_at=result.updated_at,
    )
    if result.has_instance:
        return response
    return JSONResponse(response.model_dump(mode="json", by_alias=True, exclude_none=True))


@router.post(
    "/connect",
    response_model=Dict[str, Any],
    responses={**_ERRORS, **_NOT_FOUND},
    summary="Connect Instance",
    description="Start a QR-code connection, or a pairing-code connection when a phone is given."
)
def connect_instance(
    request: Optional[ConnectRequest] = None,
    caller: Profile = Depends(whatsapp_caller),
    manager: InstanceManager = Depends(get_instance_manager),
):
    """
    Start connecting the instance to WhatsApp.

    Returns the gateway payload unmodified: `qrcode_base64` for the QR flow,
    `pairingCode` for the pairing flow.
    """
    phone = request.phone if request is not None else None
    return manager.connect(caller, phone)


@router.post(
    "/disconnect",
    response_model=InstanceActionResponse,
    responses={**_ERRORS, **_NOT_FOUND},
    summary="Disconnect Instance",
)
def disconnect_instance(
    caller: Profile = Depends(whatsapp_caller),
    manager: InstanceManager = Depends(get_instance_manager),
):
    """Disconnect the instance and drop its stored credentials (the name is kept)."""
    result = manager.disconnect(caller)
    return InstanceActionResponse(message=result.message, raw=result.raw)


@router.post(
    "/pause",
    response_model=InstanceActionResponse,
    responses={**_ERRORS, **_NOT_FOUND},
    summary="Pause Instance",
)
def pause_instance(
    caller: Profile = Depends(whatsapp_caller),
    manager: InstanceManager = Depends(get_instance_manager),
):
    """Pause the instance. Stored identifiers are kept."""
    result = manager.pause(caller)
    return InstanceActionResponse(message=result.message, raw=result.raw)


@router.delete(
    "",
    response_model=InstanceActionResponse,
    responses={**_ERRORS, **_NOT_FOUND},
    summary="Delete Instance",
)
def delete_instance(
    caller: Profile = Depends(whatsapp_caller),
    manager: InstanceManager = Depends(get_instance_manager),
):
    """Delete the instance and reset the caller's record, name included."""
    result = manager.delete(caller)
    return InstanceActionResponse(message=result.message, raw=result.raw)
