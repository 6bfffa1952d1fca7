"""
HTTP client for the named functions endpoint.

Every call resolves to the response envelope, never raises:

    {"success": True, "data": {...}}
    {"success": False, "error": {"code", "message", "details"}}

Timeouts become ``deadline-exceeded`` and connection failures
``unavailable``. Calls are not retried.

Usage:
    client = FunctionsClient("http://localhost:8000", token=access_token)
    result = await client.call("createDepartment", {"business_id": bid, "department": {"name": "Sales"}})
"""

import logging
from typing import Any, Dict, Optional

import httpx

from perfeval.core.config import settings
from perfeval.core.errors import DeadlineExceeded, ErrorCode, error_payload

logger = logging.getLogger(__name__)


class FunctionsClient:
    """Calls POST {base_url}{API_V1_STR}/functions/{name}."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _url(self, name: str) -> str:
        return f"{self.base_url}{settings.API_V1_STR}/functions/{name}"

    async def call(
        self,
        name: str,
        payload: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Invoke a named function.

        Args:
            name: Function name, e.g. "createUser"
            payload: JSON arguments
            timeout: Seconds before giving up (default DEFAULT_CALL_TIMEOUT_SECONDS)

        Returns:
            The success or error envelope
        """
        if timeout is None:
            timeout = settings.DEFAULT_CALL_TIMEOUT_SECONDS

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=timeout) as client:
                response = await client.post(self._url(name), json=payload or {}, headers=self._headers())
        except httpx.TimeoutException as e:
            logger.warning(f"Function {name} timed out after {timeout}s")
            return DeadlineExceeded(str(e) or "Request timed out", {"timeout": timeout}).to_dict()
        except httpx.TransportError as e:
            logger.error(f"Function {name} could not be reached: {e}")
            return error_payload(ErrorCode.UNAVAILABLE, str(e) or "Service unreachable")

        try:
            body = response.json()
        except ValueError:
            logger.error(f"Function {name} returned a non-JSON body (status {response.status_code})")
            return error_payload(ErrorCode.INTERNAL, f"Unexpected response with status {response.status_code}")

        if isinstance(body, dict) and body.get("success") is True:
            return {"success": True, "data": body.get("data")}
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            return {"success": False, "error": body["error"]}
        return error_payload(ErrorCode.INTERNAL, f"Unexpected response with status {response.status_code}")

    async def call_bulk(self, name: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Same as call() with the longer BULK_CALL_TIMEOUT_SECONDS budget."""
        return await self.call(name, payload, timeout=settings.BULK_CALL_TIMEOUT_SECONDS)
