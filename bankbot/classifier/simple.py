"""Baseline rule-based classifier used when no generative service is configured."""

from __future__ import annotations

from typing import Sequence

from bankbot.classifier.base import Classifier, IntentClassification
from bankbot.dialogue.vocabulary import match_task


class RuleBasedClassifier(Classifier):
    """Keyword classifier sharing the router's task vocabulary."""

    def describe(self) -> str:
        return "Rule-based keyword classifier"

    async def classify(self, utterance: str, history_tail: Sequence[str]) -> IntentClassification:
        task = match_task(utterance)
        if task is None:
            return IntentClassification(intent="unknown", confidence=0.0)
        return IntentClassification(intent=task.value, confidence=0.9)
