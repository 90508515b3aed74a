"""Keyword vocabularies for task detection and conversational cues.

Text is normalised (lowercase, accents stripped, whitespace collapsed) before
matching. Every pattern is a regular expression searched with word
boundaries, so "this" never counts as "hi".
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import Iterable, Sequence

from .models import TaskType


def normalize(text: str) -> str:
    stripped = "".join(
        char for char in unicodedata.normalize("NFD", text) if unicodedata.category(char) != "Mn"
    )
    return " ".join(stripped.lower().split())


def _compile(patterns: Iterable[str]) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(pattern) for pattern in patterns)


def _any(patterns: Sequence[re.Pattern[str]], text: str) -> bool:
    return any(pattern.search(text) for pattern in patterns)


@dataclass(frozen=True)
class VocabularyRule:
    """A task matches when every group has at least one hit."""

    task: TaskType
    groups: tuple[tuple[re.Pattern[str], ...], ...]

    def matches(self, text: str) -> bool:
        return all(_any(group, text) for group in self.groups)


def rule(task: TaskType, *groups: Sequence[str]) -> VocabularyRule:
    return VocabularyRule(task=task, groups=tuple(_compile(group) for group in groups))


# Evaluated top to bottom; the first matching rule wins.
TASK_VOCABULARY: tuple[VocabularyRule, ...] = (
    rule(
        TaskType.CARD_BLOCK,
        [r"\bblock\w*", r"\b(?:lock|freeze|deactivate|stop)\b", r"\b(?:lost|stolen)\b"],
        [r"\bcards?\b", r"\bdebit\b", r"\bcredit\b"],
    ),
    rule(
        TaskType.LOAN_APPLICATION,
        [r"\bloans?\b", r"\bapply\b", r"\bborrow\w*", r"\bmortgage\b"],
    ),
    rule(
        TaskType.TRANSFER,
        [r"\btransfer\w*", r"\bsend\b", r"\bpay\b", r"\bwire\b", r"\bremit\w*"],
    ),
    rule(
        TaskType.BALANCE_INQUIRY,
        [r"\bbalance\b", r"\bhow much money\b", r"\bavailable funds\b", r"\bcheck (?:my )?account\b"],
    ),
    rule(
        TaskType.MINI_STATEMENT,
        [r"\bstatements?\b", r"\btransaction history\b", r"\brecent transactions\b", r"\bhistory\b"],
    ),
    rule(
        TaskType.COMPLAINT,
        [r"\bcomplaints?\b", r"\bcomplain\b", r"\bissue\b", r"\bproblem\b"],
    ),
    rule(
        TaskType.INFORMATION_LOOKUP,
        [
            r"^(?:what|how|which|when|why|where|who)\b",
            r"\binformation\b",
            r"\binfo\b",
            r"\brules\b",
            r"\bregulations?\b",
            r"\bpolic(?:y|ies)\b",
            r"\beligib\w*",
            r"\bcriteria\b",
            r"\brequirements?\b",
            r"\binterest rates?\b",
            r"\btell me\b",
            r"\bexplain\b",
        ],
    ),
)

GREETING = _compile([
    r"^(?:hi|hello|hey|hiya|greetings|good (?:morning|afternoon|evening))\b",
])
AFFIRMATIVE = _compile([
    r"\byes\b",
    r"^y$",
    r"\byeah\b",
    r"\byep\b",
    r"\bsure\b",
    r"\bok(?:ay)?\b",
    r"\bconfirm\w*",
    r"\bproceed\b",
    r"\bgo ahead\b",
    r"\bdo it\b",
    r"\bcorrect\b",
])
NEGATIVE = _compile([
    r"\bno\b",
    r"^n$",
    r"\bnope\b",
    r"\bnot\b",
    r"\bdon'?t\b",
    r"\bcancel\b",
    r"\bwrong\b",
    r"\bchange\b",
])
CANCEL = _compile([
    r"^(?:cancel|stop|abort|quit|never ?mind|forget (?:it|that|about it))(?: (?:it|this|that|please))?[.! ]*$",
])
CLOSING = _compile([
    r"^(?:no|nope|nothing)\b",
    r"\bthat'?s all\b",
    r"\bthanks?\b",
    r"\bthank you\b",
    r"\bbye\b",
    r"\bgoodbye\b",
])
ANOTHER_NEED = _compile([
    r"\banother\b",
    r"\bsomething else\b",
    r"\bone more\b",
    r"\balso\b",
    r"\bhelp\b",
    r"\bi (?:want|need|would like)\b",
])


def match_task(text: str) -> TaskType | None:
    """Return the first task whose vocabulary appears in ``text``."""

    normalized = normalize(text)
    for vocabulary in TASK_VOCABULARY:
        if vocabulary.matches(normalized):
            return vocabulary.task
    return None


def is_greeting(text: str) -> bool:
    return _any(GREETING, normalize(text))


def is_affirmative(text: str) -> bool:
    return _any(AFFIRMATIVE, normalize(text))


def is_negative(text: str) -> bool:
    return _any(NEGATIVE, normalize(text))


def is_cancel(text: str) -> bool:
    return _any(CANCEL, normalize(text))


def is_closing(text: str) -> bool:
    return _any(CLOSING, normalize(text))


def signals_another_need(text: str) -> bool:
    return _any(ANOTHER_NEED, normalize(text))
