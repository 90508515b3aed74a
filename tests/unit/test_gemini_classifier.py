import json

import httpx
import pytest

from bankbot.classifier.gemini import GeminiClassifier
from bankbot.core.errors import ClassificationError


def gemini_reply(payload) -> dict:
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def make_classifier(handler) -> GeminiClassifier:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeminiClassifier("test-key", model="gemini-test", base_url="https://example.test/v1beta", client=client)


@pytest.mark.asyncio
async def test_classify_parses_model_json():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("x-goog-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json=gemini_reply(
                {
                    "intent": "loan_application",
                    "confidence": 0.93,
                    "entities": {"loan_type": "home", "amount": None},
                    "clarificationNeeded": False,
                    "clarificationQuestion": None,
                }
            ),
        )

    result = await make_classifier(handler).classify("I want a home loan", ["user: hi"])

    assert seen["url"] == "https://example.test/v1beta/models/gemini-test:generateContent"
    assert seen["key"] == "test-key"
    prompt = seen["body"]["contents"][0]["parts"][0]["text"]
    assert "I want a home loan" in prompt
    assert "user: hi" in prompt
    assert seen["body"]["generationConfig"]["responseMimeType"] == "application/json"
    assert result.intent == "loan_application"
    assert result.confidence == pytest.approx(0.93)
    assert result.entities == {"loan_type": "home"}
    assert not result.clarification_needed


@pytest.mark.asyncio
async def test_classify_tolerates_fenced_json_and_clamps_confidence():
    def handler(request: httpx.Request) -> httpx.Response:
        text = '```json\n{"intent": "transfer", "confidence": 7, "clarificationNeeded": true, ' \
            '"clarificationQuestion": "To whom?"}\n```'
        return httpx.Response(200, json=gemini_reply(text))

    result = await make_classifier(handler).classify("send money", [])

    assert result.confidence == 1.0
    assert result.clarification_needed
    assert result.clarification_question == "To whom?"


@pytest.mark.asyncio
async def test_http_error_raises_classification_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"error": {"message": "overloaded"}})

    with pytest.raises(ClassificationError):
        await make_classifier(handler).classify("hi", [])


@pytest.mark.asyncio
async def test_non_json_text_raises_classification_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=gemini_reply("I think it's a loan."))

    with pytest.raises(ClassificationError):
        await make_classifier(handler).classify("loan", [])


@pytest.mark.asyncio
async def test_extract_fields_keeps_only_requested_fields():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=gemini_reply({"amount": 25000, "tenure": "", "colour": "blue"}))

    found = await make_classifier(handler).extract_fields("loan_application", "25 grand", ["amount", "tenure"])

    assert found == {"amount": 25000}


@pytest.mark.asyncio
async def test_extract_fields_without_fields_skips_the_call():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    assert await make_classifier(handler).extract_fields("balance_inquiry", "hi", []) == {}
