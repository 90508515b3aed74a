"""Lightweight in-memory metrics collector."""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass
from typing import Dict


@dataclass
class MetricSnapshot:
    total_turns: int
    intents: Dict[str, int]
    phases: Dict[str, int]
    operations: Dict[str, int]


class MetricsCollector:
    """Thread-safe counter storage for basic dialogue metrics."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total_turns = 0
        self._intents: Counter[str] = Counter()
        self._phases: Counter[str] = Counter()
        self._operations: Counter[str] = Counter()

    def record_turn(self, phase: str) -> None:
        with self._lock:
            self._total_turns += 1
            self._phases[phase] += 1

    def record_intent(self, intent: str) -> None:
        with self._lock:
            self._intents[intent] += 1

    def record_operation(self, task: str, success: bool) -> None:
        with self._lock:
            self._operations[f"{task}:{'success' if success else 'failure'}"] += 1

    def snapshot(self) -> MetricSnapshot:
        with self._lock:
            return MetricSnapshot(
                total_turns=self._total_turns,
                intents=dict(self._intents),
                phases=dict(self._phases),
                operations=dict(self._operations),
            )
