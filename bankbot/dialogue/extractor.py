"""Pull structured field values out of free text.

Deterministic rules run first. A rule is either anchored, carrying its own cue
("36 months", "50k", "card ending 1234"), and may fill any missing field; or
bare (a plain number, the whole reply) and may only fill the field the
assistant is currently asking for. When the rules find nothing for that
field, the classification service gets a chance to fill it.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from bankbot.classifier.base import Classifier
from bankbot.core.errors import ClassificationError

from .catalog import TaskCatalog
from .models import TaskType
from .vocabulary import normalize

logger = logging.getLogger("bankbot.extractor")

SCALES = {
    "k": 1_000,
    "thousand": 1_000,
    "lakh": 100_000,
    "lakhs": 100_000,
    "lac": 100_000,
    "lacs": 100_000,
    "m": 1_000_000,
    "mn": 1_000_000,
    "million": 1_000_000,
}

_NUMBER = r"-?\d[\d,]*(?:\.\d+)?"
_SCALE = r"(?P<scale>k|thousand|lakhs?|lacs?|mn|m|million)"


@dataclass(frozen=True)
class ExtractionRule:
    field: str
    pattern: re.Pattern[str]
    convert: Callable[[re.Match[str]], Any]
    anchored: bool = True


def _number(text: str) -> int | float:
    value = float(text.replace(",", ""))
    return int(value) if value.is_integer() else value


def _amount(match: re.Match[str]) -> int | float:
    value = _number(match.group("number"))
    scale = (match.groupdict().get("scale") or "").lower()
    if scale:
        value = _number(str(round(value * SCALES[scale], 2)))
    return value


def _months(match: re.Match[str]) -> int | float:
    return _number(match.group("number"))


def _years(match: re.Match[str]) -> int | float:
    return _number(str(round(_number(match.group("number")) * 12, 6)))


def _group(match: re.Match[str]) -> str:
    return match.group("value").strip()


def _lower(match: re.Match[str]) -> str:
    return match.group("value").strip().lower()


def _upper(match: re.Match[str]) -> str:
    return match.group("value").strip().upper()


def _choice(match: re.Match[str]) -> str:
    return match.group("value").strip().lower().replace(" ", "_")


def _suspicious(match: re.Match[str]) -> str:
    return "suspicious_activity"


def _rule(field: str, pattern: str, convert: Callable[[re.Match[str]], Any], *, anchored: bool = True) -> ExtractionRule:
    return ExtractionRule(field=field, pattern=re.compile(pattern, re.IGNORECASE), convert=convert, anchored=anchored)


def _amount_rules() -> tuple[ExtractionRule, ...]:
    return (
        _rule("amount", rf"(?<![\w.])(?P<number>{_NUMBER})\s*{_SCALE}\b", _amount),
        _rule("amount", rf"(?:\$|usd|rs\.?|inr|£|€)\s*(?P<number>{_NUMBER})", _amount),
        _rule("amount", rf"\b(?:send|transfer|pay|wire|loan of|loan for|amount(?: is| of)?)\s+(?P<number>{_NUMBER})\b(?!\s*(?:months?|years?|yrs?))", _amount),
        _rule("amount", rf"(?<![\w.])(?P<number>{_NUMBER})(?![\w.])(?!\s*(?:months?|mos?|years?|yrs?)\b)", _amount, anchored=False),
    )


# Vocabulary-style choice lists. A single short reply becomes a candidate so
# the validator can explain the allowed values.
_SHORT_REPLY = r"^\s*(?P<value>[a-z][a-z _-]{1,30}?)\s*[.!]*\s*$"

RULES: Mapping[TaskType, tuple[ExtractionRule, ...]] = {
    TaskType.LOAN_APPLICATION: (
        _rule("loan_type", r"\b(?P<value>personal|home|car|education)\b", _lower),
        _rule("loan_type", _SHORT_REPLY, _choice, anchored=False),
        *_amount_rules(),
        _rule("tenure", r"(?<![\w.])(?P<number>-?\d+(?:\.\d+)?)\s*(?:months?|mos?)\b", _months),
        _rule("tenure", r"(?<![\w.])(?P<number>-?\d+(?:\.\d+)?)\s*(?:years?|yrs?)\b", _years),
        _rule("tenure", r"(?<![\w.])(?P<number>-?\d+(?:\.\d+)?)(?![\w.])", _months, anchored=False),
    ),
    TaskType.CARD_BLOCK: (
        _rule("card_id", r"\b(?P<value>card[_-]\d+)\b", _lower),
        _rule("card_id", r"\b(?:card|ending|ends|last four|last 4)(?:\s+(?:number|digits|in|with|is))*\s+(?P<value>\d{4})\b", _group),
        _rule("card_id", r"(?<![\w.])(?P<value>\d+)(?![\w.])", _group, anchored=False),
        _rule("card_id", r"^\s*(?P<value>\S+)\s*$", _group, anchored=False),
        _rule("reason", r"\b(?P<value>lost|stolen|damaged)\b", _lower),
        _rule("reason", r"\b(?P<value>suspicious|fraud\w*|unauthori[sz]ed)\b", _suspicious),
        _rule("reason", _SHORT_REPLY, _choice, anchored=False),
    ),
    TaskType.TRANSFER: (
        _rule("to_account", r"\b(?P<value>[a-z]{3}\d{3,})\b", _upper),
        _rule("to_account", r"(?<![\w.])(?P<value>\d{8,})(?![\w.])", _group),
        _rule("to_account", r"^\s*(?P<value>\S+)\s*$", _group, anchored=False),
        *_amount_rules(),
        _rule("description", r"\b(?:for|description:?|note:?|memo:?)\s+(?P<value>[a-z][^\d]{2,})$", _group),
        _rule("description", r"^\s*(?P<value>.+?)\s*$", _group, anchored=False),
    ),
    TaskType.COMPLAINT: (
        _rule("subject", r"^\s*(?P<value>.+?)\s*$", _group, anchored=False),
        _rule("description", r"^\s*(?P<value>.+?)\s*$", _group, anchored=False),
        _rule("category", r"\b(?P<value>transaction|card|loan|account|general)s?\b", _lower, anchored=False),
        _rule("category", _SHORT_REPLY, _choice, anchored=False),
    ),
}


class SlotExtractor:
    """Turn an utterance into candidate field values for a task."""

    def __init__(
        self,
        catalog: TaskCatalog,
        classifier: Classifier | None = None,
        *,
        timeout: float = 10.0,
    ) -> None:
        self._catalog = catalog
        self._classifier = classifier
        self._timeout = timeout

    def extract_deterministic(
        self,
        task: TaskType | str | None,
        utterance: str,
        *,
        awaited: str | None = None,
        wanted: Sequence[str] | None = None,
    ) -> dict[str, Any]:
        definition = self._catalog.get_task_definition(task)
        rules = RULES.get(definition.task, ())
        fields = [spec.name for spec in definition.fields]
        if wanted is not None:
            fields = [name for name in fields if name in wanted]

        text = utterance.strip()
        found: dict[str, Any] = {}
        for name in fields:
            for extraction in rules:
                if extraction.field != name:
                    continue
                if not extraction.anchored and name != awaited:
                    continue
                match = extraction.pattern.search(text)
                if match:
                    found[name] = extraction.convert(match)
                    break
        return found

    async def extract(
        self,
        task: TaskType | str | None,
        utterance: str,
        *,
        awaited: str | None = None,
        wanted: Sequence[str] | None = None,
    ) -> dict[str, Any]:
        """Return candidate values, in catalog order, without validating them.

        The classification service is consulted only when the rules produced
        no usable value for the awaited field. A rejected rule candidate is
        kept when the service has nothing better, so the caller can explain
        what was wrong with it.
        """

        found = self.extract_deterministic(task, utterance, awaited=awaited, wanted=wanted)
        if awaited is None or self._classifier is None:
            return found
        if awaited in found and self._catalog.validate_field(task, awaited, found[awaited]).valid:
            return found

        definition = self._catalog.get_task_definition(task)
        still_missing = [
            spec.name
            for spec in definition.fields
            if (spec.name not in found or spec.name == awaited) and (wanted is None or spec.name in wanted)
        ]
        try:
            suggested = await asyncio.wait_for(
                self._classifier.extract_fields(definition.task.value, utterance, still_missing),
                timeout=self._timeout,
            )
        except (ClassificationError, asyncio.TimeoutError) as exc:
            logger.info("Collaborator extraction unavailable for %s: %s", definition.task.value, exc)
            return found

        for name in still_missing:
            if name in suggested:
                found[name] = self.normalise(definition.task, name, suggested[name])
        return {spec.name: found[spec.name] for spec in definition.fields if spec.name in found}

    def normalise(self, task: TaskType | str | None, name: str, value: Any) -> Any:
        """Coerce a free-form value (e.g. "50k", "Personal") into the field's canonical form."""

        if not isinstance(value, str):
            return value
        parsed = self.extract_deterministic(task, value, awaited=name, wanted=[name])
        return parsed.get(name, normalize(value) if name in {"loan_type", "reason", "category"} else value)
