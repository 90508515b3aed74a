"""Dataclasses representing conversation turns and dialogue state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Phase(str, Enum):
    """Phases of the per-conversation dialogue state machine."""

    GREETING = "greeting"
    INTENT_DETECTION = "intent_detection"
    SLOT_FILLING = "slot_filling"
    CONFIRMATION = "confirmation"
    EXECUTION = "execution"
    COMPLETION = "completion"


class TaskType(str, Enum):
    """Banking goals the assistant can carry out."""

    BALANCE_INQUIRY = "balance_inquiry"
    MINI_STATEMENT = "mini_statement"
    TRANSFER = "transfer"
    CARD_BLOCK = "card_block"
    LOAN_APPLICATION = "loan_application"
    COMPLAINT = "complaint"
    INFORMATION_LOOKUP = "information_lookup"
    GENERAL_INQUIRY = "general_inquiry"


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(slots=True)
class Message:
    """Single conversational turn."""

    role: Role
    text: str
    timestamp: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class TaskProgress:
    """Scratch state for the task in flight."""

    step: int = 0
    total_steps: int = 0
    completed: bool = False
    failed: bool = False
    data: dict[str, Any] = field(default_factory=dict)
    attempts: dict[str, int] = field(default_factory=dict)


@dataclass(slots=True)
class ConversationContext:
    """Everything the orchestrator knows about one conversation."""

    id: str
    user_id: str
    phase: Phase = Phase.GREETING
    current_task: TaskType | None = None
    required_fields: list[str] = field(default_factory=list)
    collected_fields: dict[str, Any] = field(default_factory=dict)
    entities: dict[str, Any] = field(default_factory=dict)
    task_progress: TaskProgress = field(default_factory=TaskProgress)
    messages: list[Message] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def known_fields(self) -> dict[str, Any]:
        """Union of task scratch data, classifier entities and collected fields.

        Collected values win over entities, which win over scratch data.
        """

        merged: dict[str, Any] = dict(self.task_progress.data)
        merged.update(self.entities)
        merged.update(self.collected_fields)
        return merged

    def history_tail(self, size: int) -> list[str]:
        if size <= 0:
            return []
        return [f"{message.role.value}: {message.text}" for message in self.messages[-size:]]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "phase": self.phase.value,
            "current_task": self.current_task.value if self.current_task else None,
            "required_fields": list(self.required_fields),
            "collected_fields": dict(self.collected_fields),
            "entities": dict(self.entities),
            "task_progress": {
                "step": self.task_progress.step,
                "total_steps": self.task_progress.total_steps,
                "completed": self.task_progress.completed,
                "failed": self.task_progress.failed,
            },
            "messages": [
                {
                    "role": message.role.value,
                    "text": message.text,
                    "timestamp": message.timestamp.isoformat(),
                }
                for message in self.messages
            ],
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
