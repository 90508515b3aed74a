"""Session store abstractions and in-memory implementation."""

from __future__ import annotations

import asyncio
import copy
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable

from .models import ConversationContext


class SessionStore(ABC):
    """Abstract interface for reading and writing conversation contexts.

    Callers hold ``lock(conversation_id)`` around a get/put pair so that two
    turns for the same conversation never interleave.
    """

    @abstractmethod
    async def get(self, conversation_id: str) -> ConversationContext | None:
        """Return a private copy of the stored context, if any."""

    @abstractmethod
    async def put(self, context: ConversationContext) -> None:
        """Persist a context under its own id."""

    @abstractmethod
    async def delete(self, conversation_id: str) -> None:
        """Forget a conversation. Unknown ids are ignored."""

    @abstractmethod
    def iter_conversations(self) -> Iterable[str]:
        """Iterate over known conversation identifiers."""

    @abstractmethod
    def lock(self, conversation_id: str):
        """Async context manager serializing access to one conversation."""


class InMemorySessionStore(SessionStore):
    """Process-local store with one asyncio lock per conversation id."""

    def __init__(self) -> None:
        self._contexts: dict[str, ConversationContext] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    async def get(self, conversation_id: str) -> ConversationContext | None:
        context = self._contexts.get(conversation_id)
        return copy.deepcopy(context) if context is not None else None

    async def put(self, context: ConversationContext) -> None:
        self._contexts[context.id] = copy.deepcopy(context)

    async def delete(self, conversation_id: str) -> None:
        self._contexts.pop(conversation_id, None)

    def iter_conversations(self) -> Iterable[str]:
        return sorted(self._contexts)

    @asynccontextmanager
    async def lock(self, conversation_id: str) -> AsyncIterator[None]:
        # Entries live only while some turn holds or awaits the lock.
        key_lock = self._locks.setdefault(conversation_id, asyncio.Lock())
        self._lock_users[conversation_id] = self._lock_users.get(conversation_id, 0) + 1
        try:
            async with key_lock:
                yield
        finally:
            remaining = self._lock_users[conversation_id] - 1
            if remaining:
                self._lock_users[conversation_id] = remaining
            else:
                del self._lock_users[conversation_id]
                del self._locks[conversation_id]
