"""
Domain: instance lifecycle failures.

Every failure the Connection Manager can surface is one of these kinds. Each
carries the HTTP status the API layer answers with, so routers never have to
translate errors themselves.
"""

from __future__ import annotations

from typing import Optional


class InstanceError(Exception):
    """Base class for failures surfaced by the instance lifecycle."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnauthorizedError(InstanceError):
    """Missing or invalid caller credential, or no profile behind it."""

    status_code = 401


class ForbiddenError(InstanceError):
    """Caller is authenticated but its role or account state forbids the action."""

    status_code = 403


class InstanceAlreadyExistsError(InstanceError):
    """A create was attempted while the caller already owns an instance."""

    status_code = 409

    def __init__(self, instance_id: Optional[str] = None) -> None:
        super().__init__("Instance already exists")
        self.instance_id = instance_id


class InstanceNotFoundError(InstanceError):
    """An instance-level operation was attempted without an instance."""

    status_code = 404


class InvalidRequestError(InstanceError):
    """Malformed input, rejected before any upstream call."""

    status_code = 422


class UpstreamFailureError(InstanceError):
    """
    The WhatsApp gateway call failed.

    upstream_status is the provider's HTTP status, or None when the request
    never got a response (connection error, timeout).
    """

    status_code = 502

    def __init__(self, message: str, *, upstream_status: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.upstream_status = upstream_status
        self.body = body


__all__ = [
    "InstanceError",
    "UnauthorizedError",
    "ForbiddenError",
    "InstanceAlreadyExistsError",
    "InstanceNotFoundError",
    "InvalidRequestError",
    "UpstreamFailureError",
]
