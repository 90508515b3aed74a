"""Decide which banking task an utterance is about."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

from bankbot.classifier.base import Classifier

from .models import TaskType
from .vocabulary import match_task, normalize

logger = logging.getLogger("bankbot.router")

# Labels a generative classifier is likely to produce for our tasks.
LABEL_ALIASES: dict[str, TaskType] = {
    "apply_loan": TaskType.LOAN_APPLICATION,
    "loan": TaskType.LOAN_APPLICATION,
    "card_blocking": TaskType.CARD_BLOCK,
    "block_card": TaskType.CARD_BLOCK,
    "send_money": TaskType.TRANSFER,
    "transfer_money": TaskType.TRANSFER,
    "money_transfer": TaskType.TRANSFER,
    "check_balance": TaskType.BALANCE_INQUIRY,
    "balance": TaskType.BALANCE_INQUIRY,
    "account_statement": TaskType.MINI_STATEMENT,
    "transaction_history": TaskType.MINI_STATEMENT,
    "get_mini_statement": TaskType.MINI_STATEMENT,
    "raise_complaint": TaskType.COMPLAINT,
    "file_complaint": TaskType.COMPLAINT,
    "interest_rate_inquiry": TaskType.INFORMATION_LOOKUP,
    "search_banking_context": TaskType.INFORMATION_LOOKUP,
    "information": TaskType.INFORMATION_LOOKUP,
}


def label_to_task(label: str | None) -> TaskType:
    """Map a classifier label onto a known task, defaulting to general inquiry."""

    if not label:
        return TaskType.GENERAL_INQUIRY
    key = normalize(label).replace(" ", "_").replace("-", "_")
    try:
        return TaskType(key)
    except ValueError:
        return LABEL_ALIASES.get(key, TaskType.GENERAL_INQUIRY)


@dataclass(slots=True)
class IntentDecision:
    """Router output.

    ``task`` is None when nothing usable was recognised; ``failed`` marks a
    classifier error or timeout, as opposed to an honest "don't know".
    """

    task: TaskType | None
    confidence: float
    needs_clarification: bool = False
    clarification_question: str | None = None
    entities: dict[str, Any] = field(default_factory=dict)
    failed: bool = False


class IntentRouter:
    def __init__(
        self,
        classifier: Classifier,
        *,
        confidence_threshold: float = 0.6,
        timeout: float = 10.0,
    ) -> None:
        self._classifier = classifier
        self._threshold = confidence_threshold
        self._timeout = timeout

    async def detect_intent(self, utterance: str, history_tail: Sequence[str] = ()) -> IntentDecision:
        """Cold-start detection through the classification service."""

        try:
            result = await asyncio.wait_for(
                self._classifier.classify(utterance, list(history_tail)),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Classifier timed out after %.1fs", self._timeout)
            return IntentDecision(task=None, confidence=0.0, needs_clarification=True, failed=True)
        except Exception:  # noqa: BLE001
            logger.warning("Classifier failed", exc_info=True)
            return IntentDecision(task=None, confidence=0.0, needs_clarification=True, failed=True)

        if result.clarification_needed and result.clarification_question:
            return IntentDecision(
                task=None,
                confidence=result.confidence,
                needs_clarification=True,
                clarification_question=result.clarification_question,
            )

        task = label_to_task(result.intent)
        if result.confidence < self._threshold:
            task = TaskType.GENERAL_INQUIRY

        if task is TaskType.GENERAL_INQUIRY:
            return IntentDecision(task=None, confidence=result.confidence, needs_clarification=True)

        return IntentDecision(task=task, confidence=result.confidence, entities=dict(result.entities))

    def detect_interruption(self, utterance: str, current: TaskType | None) -> TaskType | None:
        """Cheap keyword check for a redirect to a different task mid-flow."""

        task = match_task(utterance)
        if task is None or task is current:
            return None
        return task
