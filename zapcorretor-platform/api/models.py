"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses. The
same models are used by the client package to parse responses, so field
aliases follow the wire format (`hasInstance`).
"""

import re
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from domain.instance import InstanceStatus

_PHONE_SEPARATORS = re.compile(r"[\s\-().]")
_PHONE_DIGITS = re.compile(r"^\+?\d{8,15}$")


# ============================================================================
# Instance Models
# ============================================================================

class ConnectRequest(BaseModel):
    """Request to start a connection. A phone selects the pairing-code flow."""
    phone: Optional[str] = Field(
        None,
        description="Phone number with country code, e.g. 5511999998888. Omit for the QR-code flow."
    )

    @field_validator("phone")
    @classmethod
    def normalize_phone(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        text = _PHONE_SEPARATORS.sub("", value)
        if not text:
            return None
        if not _PHONE_DIGITS.match(text):
            raise ValueError("phone must contain 8 to 15 digits, including the country code")
        return text.lstrip("+")

    class Config:
        json_schema_extra = {
            "example": {
                "phone": "5511999998888"
            }
        }


class CreateInstanceResponse(BaseModel):
    """Response after creating an instance."""
    message: str
    instance_id: str
    instance_name: str

    class Config:
        json_schema_extra = {
            "example": {
                "message": "Instance created successfully",
                "instance_id": "r3f1b2c4d5",
                "instance_name": "zapcrojoaosilva2345"
            }
        }


class InstanceStatusResponse(BaseModel):
    """Status of the caller's instance."""
    has_instance: bool = Field(..., alias="hasInstance")
    status: InstanceStatus
    raw: Optional[Dict[str, Any]] = None
    updated_at: Optional[datetime] = None

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "hasInstance": True,
                "status": "waiting_qr",
                "raw": {"status": "qrcode"},
                "updated_at": "2025-01-01T12:00:00Z"
            }
        }


class InstanceActionResponse(BaseModel):
    """Response for disconnect, pause and delete."""
    message: str
    raw: Dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    upstream_status: Optional[int] = None
    upstream_body: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Instance not found. Please initialize first."
            }
        }
