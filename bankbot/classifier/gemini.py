"""Intent classification backed by the Gemini generative-language REST API."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Sequence

import httpx

from bankbot.classifier.base import Classifier, IntentClassification
from bankbot.core.errors import ClassificationError

INTENT_LABELS = (
    "loan_application",
    "card_block",
    "transfer",
    "balance_inquiry",
    "mini_statement",
    "complaint",
    "information_lookup",
    "general_inquiry",
)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class GeminiClassifier(Classifier):
    """Ask a generative model for a JSON intent classification."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gemini-2.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        temperature: float = 0.3,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._temperature = temperature
        self._timeout = timeout
        self._client = client
        self._logger = logging.getLogger("bankbot.classifier")

    def describe(self) -> str:
        return f"Gemini classifier ({self._model})"

    async def classify(self, utterance: str, history_tail: Sequence[str]) -> IntentClassification:
        payload = await self._generate(self._classification_prompt(utterance, history_tail))

        try:
            confidence = float(payload.get("confidence", 0.0))
        except (TypeError, ValueError):
            confidence = 0.0
        entities = payload.get("entities") or {}
        if not isinstance(entities, dict):
            entities = {}

        return IntentClassification(
            intent=str(payload.get("intent") or "unknown"),
            confidence=max(0.0, min(confidence, 1.0)),
            entities={str(key): value for key, value in entities.items() if value not in (None, "")},
            clarification_needed=bool(payload.get("clarificationNeeded", False)),
            clarification_question=payload.get("clarificationQuestion") or None,
        )

    async def extract_fields(
        self,
        task: str,
        utterance: str,
        fields: Sequence[str],
    ) -> dict[str, Any]:
        if not fields:
            return {}
        prompt = (
            "You extract structured values for a banking assistant.\n"
            f"Task: {task}\n"
            f"Fields to extract: {', '.join(fields)}\n"
            f'User message: "{utterance}"\n\n'
            "Respond with a single JSON object mapping each field you can find to its value. "
            "Use plain numbers for amounts and months. Omit fields that are not present."
        )
        payload = await self._generate(prompt)
        return {key: value for key, value in payload.items() if key in fields and value not in (None, "")}

    def _classification_prompt(self, utterance: str, history_tail: Sequence[str]) -> str:
        context = ""
        if history_tail:
            context = "Previous conversation:\n" + "\n".join(history_tail) + "\n\n"

        labels = "\n".join(f"- {label}" for label in INTENT_LABELS)
        return (
            f"{context}You are a banking assistant intent classifier. "
            "Classify the user's message into exactly one of these intents:\n"
            f"{labels}\n\n"
            f'User message: "{utterance}"\n\n'
            "Extract any entities (loan_type, amount, tenure, card_id, reason, to_account, "
            "description, subject, category) and decide whether clarification is needed.\n\n"
            "Respond in JSON format:\n"
            '{"intent": "intent_name", "confidence": 0.0, "entities": {}, '
            '"clarificationNeeded": false, "clarificationQuestion": null}'
        )

    async def _generate(self, prompt: str) -> dict[str, Any]:
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self._temperature,
                "topP": 0.8,
                "topK": 40,
                "maxOutputTokens": 1024,
                "responseMimeType": "application/json",
            },
        }
        url = f"{self._base_url}/models/{self._model}:generateContent"
        headers = {"x-goog-api-key": self._api_key, "Content-Type": "application/json"}

        try:
            if self._client is not None:
                response = await self._client.post(url, headers=headers, json=body)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(url, headers=headers, json=body)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            self._logger.warning("Classifier request failed: %s", exc)
            raise ClassificationError(str(exc)) from exc

        text = _response_text(data)
        match = _JSON_OBJECT.search(text)
        if not match:
            raise ClassificationError("No JSON object in model response")
        try:
            payload = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            raise ClassificationError(f"Invalid JSON from model: {exc}") from exc
        if not isinstance(payload, dict):
            raise ClassificationError("Model response is not a JSON object")
        return payload


def _response_text(data: dict[str, Any]) -> str:
    candidates = data.get("candidates") or [{}]
    parts = candidates[0].get("content", {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict))
