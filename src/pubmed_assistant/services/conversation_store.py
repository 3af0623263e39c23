"""Conversation history storage.

Histories are lists of message dicts in the LLM provider's format, keyed by
conversation id.  Appends only; stale conversations and overlong histories
are evicted by the store.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any

logger = logging.getLogger(__name__)

Message = dict[str, Any]


class ConversationStore(ABC):
    """Interface for conversation history backends."""

    @abstractmethod
    def get(self, conversation_id: str) -> list[Message]:
        """Return a copy of the history, empty for an unknown id."""
        ...

    @abstractmethod
    def append(self, conversation_id: str, *messages: Message) -> None:
        ...

    @abstractmethod
    def evict(self, conversation_id: str) -> None:
        ...

    @abstractmethod
    def evict_expired(self) -> int:
        """Drop every expired conversation; return how many were dropped."""
        ...

    @abstractmethod
    def lock(self, conversation_id: str) -> asyncio.Lock:
        """Lock that serializes chat turns for one conversation."""
        ...


class InMemoryConversationStore(ConversationStore):
    """
    Dict-backed store with idle-time expiry and a per-conversation cap.

    A conversation untouched for longer than `ttl_seconds` is dropped the
    next time it (or `evict_expired`) is accessed.  When a history grows past
    `max_messages`, the oldest exchanges are dropped; trimming always stops
    at a plain user message so the history never opens on a tool result.
    """

    def __init__(self, ttl_seconds: float = 3600, max_messages: int = 100):
        self.ttl = ttl_seconds
        self.max_messages = max_messages
        self._histories: dict[str, list[Message]] = {}
        self._touched: dict[str, float] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._histories)

    def __contains__(self, conversation_id: str) -> bool:
        return conversation_id in self._histories

    def _expired(self, conversation_id: str, now: float) -> bool:
        touched = self._touched.get(conversation_id)
        return touched is not None and now - touched > self.ttl

    def get(self, conversation_id: str) -> list[Message]:
        if self._expired(conversation_id, time.monotonic()):
            self.evict(conversation_id)
        return list(self._histories.get(conversation_id, []))

    def append(self, conversation_id: str, *messages: Message) -> None:
        now = time.monotonic()
        if self._expired(conversation_id, now):
            self.evict(conversation_id)
        history = self._histories.setdefault(conversation_id, [])
        history.extend(messages)
        self._touched[conversation_id] = now
        if len(history) > self.max_messages:
            self._trim(conversation_id, history)

    def _trim(self, conversation_id: str, history: list[Message]) -> None:
        start = len(history) - self.max_messages
        while start < len(history) and not _is_user_text(history[start]):
            start += 1
        if start >= len(history):
            # no clean cut point inside the window; keep the latest turn intact
            return
        del history[:start]
        logger.debug("Trimmed %d messages from conversation %s", start, conversation_id)

    def evict(self, conversation_id: str) -> None:
        if self._histories.pop(conversation_id, None) is not None:
            logger.info("Evicted conversation %s", conversation_id)
        self._touched.pop(conversation_id, None)
        lock = self._locks.get(conversation_id)
        if lock is not None and not lock.locked():
            del self._locks[conversation_id]

    def evict_expired(self) -> int:
        now = time.monotonic()
        expired = [cid for cid in list(self._touched) if self._expired(cid, now)]
        for cid in expired:
            self.evict(cid)
        return len(expired)

    def lock(self, conversation_id: str) -> asyncio.Lock:
        return self._locks.setdefault(conversation_id, asyncio.Lock())


def _is_user_text(message: Message) -> bool:
    return message.get("role") == "user" and isinstance(message.get("content"), str)
