"""In-memory conversation store keyed by contact id.

Two lock levels: a structural lock guards the contact -> thread mapping and
is only held while a new thread is created or the mapping is snapshotted;
each thread carries its own lock for appends and snapshot reads. Nothing is
persisted; the store lives as long as the process that created it.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from src.models import ChatMessage, ConversationSummary


def _ordered(messages: list[ChatMessage]) -> list[ChatMessage]:
    # sorted() is stable, so equal timestamps keep insertion order
    return sorted(messages, key=lambda m: m.ts)


@dataclass
class _Thread:
    messages: list[ChatMessage] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock)

    def append(self, message: ChatMessage) -> None:
        with self.lock:
            self.messages.append(message)

    def snapshot(self) -> list[ChatMessage]:
        with self.lock:
            return list(self.messages)


class ConversationStore:
    """Append-only message history per contact."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._threads: dict[str, _Thread] = {}

    def _thread_for(self, contact_id: str) -> _Thread:
        thread = self._threads.get(contact_id)
        if thread is not None:
            return thread
        with self._lock:
            return self._threads.setdefault(contact_id, _Thread())

    def append(self, contact_id: str, message: ChatMessage) -> None:
        self._thread_for(contact_id).append(message)

    def get(self, contact_id: str) -> list[ChatMessage] | None:
        """Return the contact's messages in timestamp order, or None if unknown."""
        thread = self._threads.get(contact_id)
        if thread is None:
            return None
        return _ordered(thread.snapshot())

    def list_conversations(self) -> list[ConversationSummary]:
        """One summary per known contact, in no particular order."""
        with self._lock:
            threads = list(self._threads.items())

        summaries: list[ConversationSummary] = []
        for contact_id, thread in threads:
            messages = thread.snapshot()
            if not messages:
                summaries.append(ConversationSummary(wa_id=contact_id))
                continue
            last = _ordered(messages)[-1]
            summaries.append(ConversationSummary(
                wa_id=contact_id,
                last_body=last.body or "",
                last_ts=last.ts,
            ))
        return summaries

    def contact_ids(self) -> list[str]:
        with self._lock:
            return list(self._threads)

    def __contains__(self, contact_id: object) -> bool:
        return contact_id in self._threads

    def __len__(self) -> int:
        return len(self._threads)
