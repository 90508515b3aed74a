"""Classifier abstract base class and result type."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Sequence


@dataclass(slots=True)
class IntentClassification:
    """What the classification service made of an utterance."""

    intent: str
    confidence: float
    entities: dict[str, Any] = field(default_factory=dict)
    clarification_needed: bool = False
    clarification_question: str | None = None


class Classifier(ABC):
    """Labels utterances with a banking intent and pulls out entities."""

    @abstractmethod
    async def classify(self, utterance: str, history_tail: Sequence[str]) -> IntentClassification:
        """Return the intent classification for an utterance.

        Implementations raise ``ClassificationError`` on transport or parse
        failures.
        """

    async def extract_fields(
        self,
        task: str,
        utterance: str,
        fields: Sequence[str],
    ) -> dict[str, Any]:
        """Return free-form values for ``fields`` found in the utterance."""

        return {}

    @abstractmethod
    def describe(self) -> str:
        """Human-readable summary of classifier strategy."""
