"""Tests for mood_inference.llm_client against a mocked gateway."""
import asyncio
import json

import httpx
import pytest

from mood_engine.errors import (
    ExternalCapabilityUnavailable,
    MalformedResponseError,
    UpstreamError,
    UpstreamPaymentRequiredError,
    UpstreamRateLimitedError,
)
from mood_inference.llm_client import LLMClient, extract_json, parse_sse_line


def _client(handler, **kwargs):
    kwargs.setdefault("api_key", "test-key")
    return LLMClient(api_url="https://llm.test/v1", model="test-model", transport=httpx.MockTransport(handler), **kwargs)


def _completion(content):
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


def _chunk(text):
    return "data: " + json.dumps({"choices": [{"delta": {"content": text}}]})


async def _collect(agen):
    return [x async for x in agen]


class TestExtractJson:
    def test_fenced_block(self):
        assert extract_json('Here you go:\n```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_plain(self):
        assert extract_json('  {"a": 1} ') == '{"a": 1}'


class TestGenerateJson:
    def test_request_shape_and_parse(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return _completion('```json\n{"analysis": "ok"}\n```')

        result = asyncio.run(_client(handler).generate_json("sys", "usr", temperature=0.8))
        assert result == {"analysis": "ok"}
        assert seen["url"] == "https://llm.test/v1/chat/completions"
        assert seen["auth"] == "Bearer test-key"
        assert seen["body"]["temperature"] == 0.8
        assert seen["body"]["response_format"] == {"type": "json_object"}
        assert [m["role"] for m in seen["body"]["messages"]] == ["system", "user"]

    @pytest.mark.parametrize("status,exc", [
        (429, UpstreamRateLimitedError),
        (402, UpstreamPaymentRequiredError),
        (500, UpstreamError),
    ])
    def test_status_mapping(self, status, exc):
        client = _client(lambda request: httpx.Response(status, text="nope"))
        with pytest.raises(exc) as info:
            asyncio.run(client.generate_json("s", "u"))
        assert info.value.status_code == status

    def test_unreadable_content(self):
        client = _client(lambda request: _completion("not json at all"))
        with pytest.raises(MalformedResponseError):
            asyncio.run(client.generate_json("s", "u"))

    def test_missing_key(self):
        client = _client(lambda request: _completion("{}"), api_key="")
        with pytest.raises(ExternalCapabilityUnavailable):
            asyncio.run(client.generate_json("s", "u"))

    def test_connect_error_becomes_upstream_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(UpstreamError):
            asyncio.run(_client(handler).generate_json("s", "u"))


class TestStreamChat:
    def test_parses_deltas_until_done(self):
        body = "\n".join([
            ": keep-alive",
            "",
            _chunk("Hel"),
            "",
            _chunk("lo"),
            "data: [DONE]",
            _chunk("ignored"),
            "",
        ])
        client = _client(lambda request: httpx.Response(200, text=body))
        out = asyncio.run(_collect(client.stream_chat([{"role": "user", "content": "hi"}], system="be kind")))
        assert out == ["Hel", "lo"]

    def test_trailing_line_without_newline(self):
        body = _chunk("a") + "\n" + _chunk("b")
        client = _client(lambda request: httpx.Response(200, text=body))
        assert asyncio.run(_collect(client.stream_chat([], system="s"))) == ["a", "b"]

    def test_rate_limited_before_first_chunk(self):
        client = _client(lambda request: httpx.Response(429, text="slow down"))
        with pytest.raises(UpstreamRateLimitedError):
            asyncio.run(_collect(client.stream_chat([], system="s")))

    def test_connect_error_becomes_upstream_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(UpstreamError):
            asyncio.run(_collect(_client(handler).stream_chat([], system="s")))


class TestParseSseLine:
    @pytest.mark.parametrize("line", ["", ": comment", "event: ping", "data: {broken"])
    def test_ignored(self, line):
        assert parse_sse_line(line) is None

    def test_done(self):
        assert parse_sse_line("data: [DONE]\r") == "[DONE]"
