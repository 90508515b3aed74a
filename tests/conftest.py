from __future__ import annotations

from typing import Any, Sequence

import pytest

from bankbot.classifier.base import Classifier, IntentClassification
from bankbot.core.metrics import MetricsCollector
from bankbot.dialogue.catalog import TaskCatalog
from bankbot.dialogue.extractor import SlotExtractor
from bankbot.dialogue.orchestrator import DialogueOrchestrator
from bankbot.dialogue.router import IntentRouter
from bankbot.dialogue.store import InMemorySessionStore
from bankbot.dialogue.vocabulary import match_task
from bankbot.operations.executor import OperationExecutor
from bankbot.operations.mock import MockBankingBackend


class StubClassifier(Classifier):
    """Keyword classifier with optional scripted answers, for deterministic tests."""

    def __init__(
        self,
        answers: dict[str, IntentClassification] | None = None,
        *,
        error: Exception | None = None,
        fields: dict[str, dict[str, Any]] | None = None,
    ) -> None:
        self.answers = answers or {}
        self.error = error
        self.fields = fields or {}
        self.calls: list[tuple[str, list[str]]] = []

    def describe(self) -> str:
        return "stub"

    async def classify(self, utterance: str, history_tail: Sequence[str]) -> IntentClassification:
        self.calls.append((utterance, list(history_tail)))
        if self.error is not None:
            raise self.error
        if utterance in self.answers:
            return self.answers[utterance]
        task = match_task(utterance)
        if task is None:
            return IntentClassification(intent="unknown", confidence=0.0)
        return IntentClassification(intent=task.value, confidence=0.95)

    async def extract_fields(self, task: str, utterance: str, fields: Sequence[str]) -> dict[str, Any]:
        return {name: value for name, value in self.fields.get(utterance, {}).items() if name in fields}


@pytest.fixture()
def catalog() -> TaskCatalog:
    return TaskCatalog()


@pytest.fixture()
def make_classifier():
    return StubClassifier


@pytest.fixture()
def classifier() -> StubClassifier:
    return StubClassifier()


@pytest.fixture()
def backend() -> MockBankingBackend:
    return MockBankingBackend()


@pytest.fixture()
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture()
def metrics() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture()
def make_orchestrator(catalog, classifier, backend, store, metrics):
    def factory(
        *,
        classifier: Classifier = classifier,
        backend=backend,
        max_field_attempts: int = 3,
        operation_timeout: float = 1.0,
    ) -> DialogueOrchestrator:
        return DialogueOrchestrator(
            store,
            catalog,
            IntentRouter(classifier, confidence_threshold=0.6, timeout=1.0),
            SlotExtractor(catalog, classifier, timeout=1.0),
            OperationExecutor(backend, timeout=operation_timeout),
            metrics=metrics,
            max_field_attempts=max_field_attempts,
        )

    return factory


@pytest.fixture()
def orchestrator(make_orchestrator) -> DialogueOrchestrator:
    return make_orchestrator()


@pytest.fixture()
def converse(orchestrator):
    """Feed utterances to one conversation and return every turn result."""

    async def run(utterances: Sequence[str], conversation_id: str = "conv-1", auth_token: str | None = None):
        results = []
        for text in utterances:
            results.append(await orchestrator.process_message(conversation_id, "user-1", text, auth_token))
        return results

    return run
