"""
Uazapi gateway client.

Thin HTTP wrapper around the WhatsApp gateway. Every call carries exactly one
credential:
- the platform admin token (header `admintoken`), only to create instances
- the instance token (header `token`), for everything else

Any non-2xx reply or transport failure surfaces as UpstreamFailureError with
the provider status and body text. Nothing is retried here.

Environment variables:
- UAZAPI_BASE_URL: gateway base URL (default https://infinitegear.uazapi.com)
- UAZAPI_ADMIN_TOKEN: admin token, required only for instance creation
- UAZAPI_SYSTEM_NAME: system tag attached to created instances (default zapcorretor)
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Any, Optional

import httpx

from domain.errors import UpstreamFailureError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL: str = "https://infinitegear.uazapi.com"
DEFAULT_SYSTEM_NAME: str = "zapcorretor"

WEBHOOK_EVENTS: list[str] = ["messages"]
WEBHOOK_IGNORE: list[str] = ["wasSentByApi", "isGroupYes"]


class TokenType(str, Enum):
    ADMIN = "admin"
    INSTANCE = "instance"


class UazapiClient:
    """Client for the Uazapi instance endpoints."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        admin_token: Optional[str] = None,
        system_name: str = DEFAULT_SYSTEM_NAME,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.admin_token = admin_token
        self.system_name = system_name
        self._http = http_client or httpx.Client()

    @classmethod
    def from_env(cls) -> "UazapiClient":
        return cls(
            base_url=os.getenv("UAZAPI_BASE_URL") or DEFAULT_BASE_URL,
            admin_token=os.getenv("UAZAPI_ADMIN_TOKEN"),
            system_name=os.getenv("UAZAPI_SYSTEM_NAME") or DEFAULT_SYSTEM_NAME,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "UazapiClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _headers(self, token_type: TokenType, instance_token: Optional[str]) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if token_type is TokenType.ADMIN:
            if not self.admin_token:
                raise RuntimeError(
                    "Missing environment variable: UAZAPI_ADMIN_TOKEN. "
                    "It is required to create WhatsApp instances."
                )
            headers["admintoken"] = self.admin_token
        else:
            if not instance_token:
                raise ValueError("Instance token missing.")
            headers["token"] = instance_token
        return headers

    def _call(
        self,
        method: str,
        endpoint: str,
        token_type: TokenType,
        *,
        body: Optional[dict[str, Any]] = None,
        instance_token: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Perform one gateway call and return the decoded JSON body.

        The body is sent only when given; an omitted body means no payload at
        all, not an empty object.
        """

        url = f"{self.base_url}{endpoint}"
        headers = self._headers(token_type, instance_token)

        logger.info("Calling Uazapi %s %s", method, endpoint, extra={"token_type": token_type.value})

        try:
            if body is None:
                response = self._http.request(method, url, headers=headers)
            else:
                response = self._http.request(method, url, headers=headers, json=body)
        except httpx.HTTPError as e:
            logger.error("Uazapi request %s %s failed: %s", method, endpoint, e)
            raise UpstreamFailureError(
                f"Uazapi API request failed: {e}",
                upstream_status=None,
                body=str(e),
            ) from e

        if response.is_error:
            logger.error(
                "Uazapi error (%s) on %s %s",
                response.status_code,
                method,
                endpoint,
                extra={"upstream_status": response.status_code, "upstream_body": response.text[:500]},
            )
            raise UpstreamFailureError(
                f"Uazapi API failed with status {response.status_code}: {response.text}",
                upstream_status=response.status_code,
                body=response.text,
            )

        if not response.content:
            return {}

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamFailureError(
                "Uazapi API returned a non-JSON response",
                upstream_status=response.status_code,
                body=response.text,
            ) from e

        if not isinstance(payload, dict):
            return {"response": payload}
        return payload

    def init_instance(self, name: str) -> dict[str, Any]:
        """
        Create a new instance (admin credential).

        Returns:
            Gateway payload; `instanceId` and `token` identify the new instance.
        """
        return self._call(
            "POST",
            "/instance/init",
            TokenType.ADMIN,
            body={"name": name, "systemName": self.system_name},
        )

    def get_status(self, instance_token: str) -> dict[str, Any]:
        return self._call("GET", "/instance/status", TokenType.INSTANCE, instance_token=instance_token)

    def connect(self, instance_token: str, phone: Optional[str] = None) -> dict[str, Any]:
        """
        Start a connection attempt.

        Without phone the gateway answers with a QR code (`qrcode_base64`);
        with phone it answers with a pairing code (`pairingCode`).
        """
        return self._call(
            "POST",
            "/instance/connect",
            TokenType.INSTANCE,
            body={"phone": phone} if phone else None,
            instance_token=instance_token,
        )

    def disconnect(self, instance_token: str) -> dict[str, Any]:
        return self._call("POST", "/instance/disconnect", TokenType.INSTANCE, instance_token=instance_token)

    def pause(self, instance_token: str) -> dict[str, Any]:
        return self._call("POST", "/instance/pause", TokenType.INSTANCE, instance_token=instance_token)

    def delete(self, instance_token: str) -> dict[str, Any]:
        return self._call("DELETE", "/instance/delete", TokenType.INSTANCE, instance_token=instance_token)

    def configure_webhook(self, instance_token: str, webhook_url: str) -> dict[str, Any]:
        """Point the instance's inbound message events at webhook_url."""
        return self._call(
            "POST",
            "/instance/webhook",
            TokenType.INSTANCE,
            body={
                "webhookUrl": webhook_url,
                "events": WEBHOOK_EVENTS,
                "ignore": WEBHOOK_IGNORE,
            },
            instance_token=instance_token,
        )


__all__ = ["TokenType", "UazapiClient"]
