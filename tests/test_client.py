"""
Tests for the functions HTTP client.

Requests are answered by httpx.MockTransport, so nothing leaves the process.
"""

import asyncio
import json

import httpx

from perfeval.client import FunctionsClient
from perfeval.core.config import settings


def _run(coro):
    return asyncio.run(coro)


def test_success_envelope():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "data": {"user_id": "u1"}})

    client = FunctionsClient("http://api.test/", token="tok", transport=httpx.MockTransport(handler))
    result = _run(client.call("createUser", {"business_id": "b1"}))

    assert result == {"success": True, "data": {"user_id": "u1"}}
    assert seen["url"] == "http://api.test/api/v1/functions/createUser"
    assert seen["auth"] == "Bearer tok"
    assert seen["body"] == {"business_id": "b1"}


def test_error_envelope_is_passed_through():
    error = {"code": "failed-precondition", "message": "Function precondition failed.", "details": {"reason": "x"}}

    def handler(request):
        return httpx.Response(412, json={"success": False, "error": error})

    client = FunctionsClient("http://api.test", transport=httpx.MockTransport(handler))
    assert _run(client.call("deleteDepartment", {})) == {"success": False, "error": error}


def test_timeout_maps_to_deadline_exceeded():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ReadTimeout("timed out", request=request)

    client = FunctionsClient("http://api.test", transport=httpx.MockTransport(handler))
    result = _run(client.call("createUser", {}, timeout=0.5))

    assert result["success"] is False
    assert result["error"]["code"] == "deadline-exceeded"
    assert result["error"]["message"] == "Function execution timed out."
    assert result["error"]["details"]["timeout"] == 0.5
    # no retry
    assert len(calls) == 1


def test_bulk_call_uses_longer_timeout():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    client = FunctionsClient("http://api.test", transport=httpx.MockTransport(handler))
    result = _run(client.call_bulk("createUser", {}))

    assert result["error"]["details"]["timeout"] == settings.BULK_CALL_TIMEOUT_SECONDS


def test_connection_error_maps_to_unavailable():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = FunctionsClient("http://api.test", transport=httpx.MockTransport(handler))
    assert _run(client.call("createUser", {}))["error"]["code"] == "unavailable"


def test_non_json_body():
    def handler(request):
        return httpx.Response(502, text="Bad Gateway")

    client = FunctionsClient("http://api.test", transport=httpx.MockTransport(handler))
    result = _run(client.call("createUser", {}))

    assert result["success"] is False
    assert result["error"]["code"] == "internal"
