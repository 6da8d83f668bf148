import json

import httpx
import pytest

from live_translate.adapters.openai_chat import OpenAIChatCompletion
from live_translate.domain.errors import UpstreamContractError, UpstreamTransportError


def completion(content: str | None) -> dict:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 0,
        "model": "gpt-4.1-mini",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
    }


def make_chat(handler) -> OpenAIChatCompletion:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OpenAIChatCompletion("sk-test", base_url="https://openai.test/v1", http_client=http_client)


MESSAGES = [{"role": "system", "content": "sys"}, {"role": "user", "content": "hi"}]


class TestOpenAIChatCompletion:
    @pytest.mark.asyncio
    async def test_requests_json_object_output(self):
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1/chat/completions"
            assert request.headers["authorization"] == "Bearer sk-test"
            seen.append(json.loads(request.content))
            return httpx.Response(200, json=completion('{"translation": "hello"}'))

        content = await make_chat(handler).complete_json("gpt-4.1-mini", 0.2, MESSAGES)

        assert content == '{"translation": "hello"}'
        assert seen[0]["model"] == "gpt-4.1-mini"
        assert seen[0]["temperature"] == 0.2
        assert seen[0]["response_format"] == {"type": "json_object"}
        assert seen[0]["messages"] == MESSAGES

    @pytest.mark.asyncio
    async def test_http_error_becomes_transport_error(self):
        def handler(request):
            return httpx.Response(500, json={"error": {"message": "overloaded"}})

        with pytest.raises(UpstreamTransportError) as exc_info:
            await make_chat(handler).complete_json("m", 0.1, MESSAGES)

        assert str(exc_info.value) == "Translation request failed."
        assert exc_info.value.status == 500
        assert "overloaded" in exc_info.value.details

    @pytest.mark.asyncio
    async def test_connection_error_becomes_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("no route", request=request)

        with pytest.raises(UpstreamTransportError) as exc_info:
            await make_chat(handler).complete_json("m", 0.1, MESSAGES)
        assert exc_info.value.status is None

    @pytest.mark.asyncio
    async def test_empty_content_is_contract_error(self):
        def handler(request):
            return httpx.Response(200, json=completion(None))

        with pytest.raises(UpstreamContractError, match="missing content"):
            await make_chat(handler).complete_json("m", 0.1, MESSAGES)
