"""
Connection Manager API client.

Async wrapper around the `/api/v1/whatsapp/instance` endpoints, used by the
status poller and the action dispatcher. Every request carries the caller's
bearer token; non-2xx replies raise ConnectionManagerError with the status
code and the response body text.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx

from api.models import CreateInstanceResponse, InstanceActionResponse, InstanceStatusResponse

logger = logging.getLogger(__name__)

_INSTANCE_PATH: str = "/api/v1/whatsapp/instance"


class ConnectionManagerError(Exception):
    """A Connection Manager call failed (non-2xx reply or transport error)."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class AuthenticationRequiredError(ConnectionManagerError):
    """The session is missing or expired; the user has to sign in again."""


def describe_error(error: BaseException, fallback: str) -> str:
    """
    User-facing message for a failed call.

    JSON error bodies are unwrapped: `error` first, then the gateway's
    `response` field; anything else is shown as-is.
    """

    text = str(error)
    if not text:
        return fallback
    try:
        body = json.loads(text)
    except ValueError:
        return text
    if isinstance(body, dict):
        for key in ("error", "response"):
            if body.get(key):
                return str(body[key])
    return text


class ConnectionManagerClient:
    """Client for the caller's own WhatsApp instance."""

    def __init__(
        self,
        base_url: str,
        access_token: str,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._access_token = access_token
        self._http = http_client or httpx.AsyncClient()

    def set_access_token(self, access_token: str) -> None:
        """Swap the bearer token after a session refresh."""
        self._access_token = access_token

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "ConnectionManagerClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, body: Optional[dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{_INSTANCE_PATH}{path}"
        logger.debug("Connection Manager %s %s", method, path or "/")
        headers = {"Authorization": f"Bearer {self._access_token}"}

        try:
            if body is None:
                response = await self._http.request(method, url, headers=headers)
            else:
                response = await self._http.request(method, url, headers=headers, json=body)
        except httpx.HTTPError as e:
            raise ConnectionManagerError(f"Connection Manager unreachable: {e}") from e

        if response.status_code == 401:
            raise AuthenticationRequiredError(
                response.text or "Unauthorized",
                status_code=401,
                body=response.text,
            )
        if response.is_error:
            raise ConnectionManagerError(
                response.text or f"Request failed with status {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        return response.json()

    async def get_instance_status(self) -> InstanceStatusResponse:
        data = await self._request("GET", "/status")
        return InstanceStatusResponse.model_validate(data)

    async def create_instance(self) -> CreateInstanceResponse:
        data = await self._request("POST", "/init")
        return CreateInstanceResponse.model_validate(data)

    async def connect_instance(self, phone: Optional[str] = None) -> dict[str, Any]:
        """
        Start a connection.

        Returns:
            Raw gateway payload (`qrcode_base64` or `pairingCode`).
        """
        return await self._request("POST", "/connect", body={"phone": phone} if phone else None)

    async def disconnect_instance(self) -> InstanceActionResponse:
        data = await self._request("POST", "/disconnect")
        return InstanceActionResponse.model_validate(data)

    async def pause_instance(self) -> InstanceActionResponse:
        data = await self._request("POST", "/pause")
        return InstanceActionResponse.model_validate(data)

    async def delete_instance(self) -> InstanceActionResponse:
        data = await self._request("DELETE", "")
        return InstanceActionResponse.model_validate(data)


__all__ = [
    "ConnectionManagerError",
    "AuthenticationRequiredError",
    "ConnectionManagerClient",
    "describe_error",
]
