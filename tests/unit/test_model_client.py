"""
HTTP model client tests via httpx.MockTransport.
"""

import asyncio
import json

import httpx
import pytest

from exceptions import PermanentExternalError, ThrottledError, TransientExternalError
from infrastructure.model_client import (
    HttpEmbeddingGenerator,
    HttpModerationClassifier,
    build_moderation_prompt,
    strip_code_fence,
)

CLASSIFIER_URL = "http://model.test/v1/moderate"
EMBEDDING_URL = "http://model.test/v1/embed"


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _classify(handler, title="Title", body="Body"):
    async def scenario():
        async with _client(handler) as client:
            classifier = HttpModerationClassifier(CLASSIFIER_URL, "key", 5.0, client=client)
            return await classifier.classify(title, body)
    return asyncio.run(scenario())


def _embed(handler, text="some text", dimensions=3):
    async def scenario():
        async with _client(handler) as client:
            embedder = HttpEmbeddingGenerator(EMBEDDING_URL, None, 5.0, dimensions, client=client)
            return await embedder.embed(text)
    return asyncio.run(scenario())


class TestFenceAndPrompt:

    @pytest.mark.parametrize("text", [
        '{"approved": true}',
        '```json\n{"approved": true}\n```',
        '```\n{"approved": true}\n```',
        '  ```JSON {"approved": true} ```  ',
    ])
    def test_strip_code_fence(self, text):
        assert strip_code_fence(text) == '{"approved": true}'

    def test_prompt_carries_title_and_body(self):
        prompt = build_moderation_prompt("My Title", "My excerpt")
        assert "Title: My Title" in prompt
        assert "Body excerpt: My excerpt" in prompt
        assert '{"approved": true' in prompt


class TestClassifier:

    def test_parses_fenced_text_reply(self):
        seen = {}

        def handler(request):
            seen["payload"] = json.loads(request.content)
            reply = '```json\n{"approved": false, "keywords": [], "reason": "spam"}\n```'
            return httpx.Response(200, json={"text": reply})

        result = _classify(handler, title="Buy now")
        assert result.approved is False
        assert result.reason == "spam"
        assert "Buy now" in seen["payload"]["prompt"]

    def test_accepts_structured_reply(self):
        result = _classify(lambda r: httpx.Response(200, json={"approved": True, "keywords": ["a", "b"]}))
        assert result.approved is True
        assert result.keywords == ["a", "b"]

    def test_non_json_text_is_transient(self):
        with pytest.raises(TransientExternalError):
            _classify(lambda r: httpx.Response(200, json={"text": "I think it is fine"}))

    def test_wrong_shape_is_transient(self):
        with pytest.raises(TransientExternalError):
            _classify(lambda r: httpx.Response(200, json={"text": '{"verdict": "ok"}'}))

    @pytest.mark.parametrize("status,error", [
        (429, ThrottledError),
        (500, TransientExternalError),
        (503, TransientExternalError),
        (400, PermanentExternalError),
        (401, PermanentExternalError),
    ])
    def test_status_mapping(self, status, error):
        with pytest.raises(error):
            _classify(lambda r: httpx.Response(status, text="nope"))

    def test_network_error_is_transient(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TransientExternalError):
            _classify(handler)

    def test_timeout_is_transient(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(TransientExternalError):
            _classify(handler)


class TestEmbedder:

    def test_returns_vector(self):
        seen = {}

        def handler(request):
            seen["payload"] = json.loads(request.content)
            return httpx.Response(200, json={"embedding": [1, 2.5, 3]})

        assert _embed(handler, text="hello") == [1.0, 2.5, 3.0]
        assert seen["payload"] == {"input": "hello", "dimensions": 3}

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_blank_text_is_permanent_without_calling_endpoint(self, text):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"embedding": [0.0, 0.0, 0.0]})

        with pytest.raises(PermanentExternalError):
            _embed(handler, text=text)
        assert calls == []

    def test_wrong_dimensions_is_permanent(self):
        with pytest.raises(PermanentExternalError):
            _embed(lambda r: httpx.Response(200, json={"embedding": [1.0, 2.0]}))

    def test_missing_embedding_is_transient(self):
        with pytest.raises(TransientExternalError):
            _embed(lambda r: httpx.Response(200, json={"data": []}))

    def test_non_json_body_is_transient(self):
        with pytest.raises(TransientExternalError):
            _embed(lambda r: httpx.Response(200, text="<html>"))
