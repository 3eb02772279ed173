"""Chat transcript: an ordered, observable log of ``ChatMessage`` entries.

At most one transient placeholder ("Thinking...", "Searching for: ...")
exists at a time, and only as the last entry.  It is never edited: it is
swapped for its successor in a single mutation via
:meth:`Transcript.replace_transient`, so subscribers never observe the
intermediate state where the placeholder is gone but nothing replaced it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from placefinder.places.models import Place

from .observable import Observable


class MessageKind(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatMessage:
    kind: MessageKind
    text: str
    attached_places: tuple[Place, ...] = field(default_factory=tuple)
    transient: bool = False

    def to_dict(self, is_highlighted: Optional[Callable[[str], bool]] = None) -> dict:
        cards = []
        for place in self.attached_places:
            card = place.to_card()
            card["highlighted"] = bool(is_highlighted and is_highlighted(place.id))
            cards.append(card)
        return {
            "kind": self.kind.value,
            "text": self.text,
            "transient": self.transient,
            "places": cards,
        }


class Transcript(Observable):
    """Append-only message log with a single trailing transient slot."""

    def __init__(self) -> None:
        super().__init__()
        self._messages: list[ChatMessage] = []

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    @property
    def has_pending_transient(self) -> bool:
        return bool(self._messages) and self._messages[-1].transient

    def __len__(self) -> int:
        return len(self._messages)

    def append(self, message: ChatMessage) -> None:
        """Append a permanent message.

        Raises:
            ValueError: *message* is transient (use :meth:`append_transient`).
            RuntimeError: A transient placeholder is still pending.
        """
        if message.transient:
            raise ValueError("use append_transient() for transient messages")
        self._require_no_pending()
        self._messages.append(message)
        self._notify()

    def append_transient(self, message: ChatMessage) -> None:
        """Append a transient placeholder as the new last entry."""
        if not message.transient:
            raise ValueError("append_transient() needs a transient message")
        self._require_no_pending()
        self._messages.append(message)
        self._notify()

    def replace_transient(self, message: ChatMessage) -> None:
        """Atomically remove the trailing placeholder and append *message*.

        *message* may itself be transient (e.g. "Thinking..." → "Searching...").
        """
        if not self.has_pending_transient:
            raise RuntimeError("no transient message to replace")
        self._messages[-1] = message
        self._notify()

    def discard_transient(self) -> bool:
        """Drop a dangling placeholder, if any. Returns True if one was dropped."""
        if not self.has_pending_transient:
            return False
        self._messages.pop()
        self._notify()
        return True

    def _require_no_pending(self) -> None:
        if self.has_pending_transient:
            raise RuntimeError("a transient message is still pending")
