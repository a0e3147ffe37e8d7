"""Unit tests for the advice service client"""

import json

import httpx
import pytest

from agriloan_gateway.domain.exceptions import AdviceServiceError, ExternalServiceError
from agriloan_gateway.infrastructure.clients.advice import SYSTEM_INSTRUCTION, AdviceClient


def _client(handler) -> AdviceClient:
    return AdviceClient(base_url="http://advice.test", timeout=2.0, transport=httpx.MockTransport(handler))


async def test_returns_trimmed_advice():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"advice": "  Apply neem extract this week.  "})

    advice = await _client(handler).get_advice("Armyworm spotted")

    assert advice == "Apply neem extract this week."
    assert seen["url"] == "http://advice.test/advice"
    assert seen["body"] == {"prompt": "Armyworm spotted", "system_instruction": SYSTEM_INSTRUCTION}


async def test_http_error_raises():
    client = _client(lambda request: httpx.Response(502, json={"detail": "bad gateway"}))

    with pytest.raises(AdviceServiceError, match="502"):
        await client.get_advice("prompt")


async def test_timeout_raises():
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    with pytest.raises(AdviceServiceError, match="timeout"):
        await _client(handler).get_advice("prompt")


async def test_unreachable_raises():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ExternalServiceError, match="unreachable"):
        await _client(handler).get_advice("prompt")


@pytest.mark.parametrize(
    "body",
    [
        {"error": "quota exceeded"},
        {"advice": "   "},
        {"text": "wrong key"},
    ],
)
async def test_malformed_answers_raise(body):
    with pytest.raises(AdviceServiceError):
        await _client(lambda request: httpx.Response(200, json=body)).get_advice("prompt")


async def test_non_json_body_raises():
    client = _client(lambda request: httpx.Response(200, text="<html>oops</html>"))

    with pytest.raises(AdviceServiceError, match="Invalid response"):
        await client.get_advice("prompt")
