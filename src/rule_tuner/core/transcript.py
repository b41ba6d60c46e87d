"""Conversation transcripts and the judgeable-turn index.

A conversation is flattened into the BOT turns that the judge scores, each
paired with a short window of preceding messages.

Public API:
    Sender: Who authored a message
    Message: One utterance in a conversation
    Conversation: Ordered messages with an id
    JudgeableTurn: A BOT message plus its context window
    context_window: Messages ending at a given index
    index_turns: All judgeable turns across a conversation collection
    render_context: Format a context window as "SENDER: content" lines
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..errors import DataFormatError

CONTEXT_SIZE = 4  # The judged turn plus up to three messages before it


class Sender(str, Enum):
    CUSTOMER = "CUSTOMER"
    BOT = "BOT"


@dataclass(frozen=True)
class Message:
    """A single utterance. Immutable once loaded."""

    type: str
    origin: str
    sender: Sender
    content: str
    media_url: str | None = None
    created_at: str = ""

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Message:
        """Build a Message from its stored shape.

        Stored messages use camelCase keys (``mediaUrl``, ``createdAt``).
        """
        if not isinstance(raw, dict):
            raise DataFormatError(f"Message must be an object, got {type(raw).__name__}")
        try:
            sender = Sender(str(raw.get("sender", "")).upper())
        except ValueError:
            raise DataFormatError(f"Unknown message sender: {raw.get('sender')!r}") from None

        media_url = raw.get("mediaUrl")
        return cls(
            type=str(raw.get("type", "")),
            origin=str(raw.get("origin", "")),
            sender=sender,
            content=str(raw.get("content") or ""),
            media_url=str(media_url) if media_url is not None else None,
            created_at=str(raw.get("createdAt", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "origin": self.origin,
            "sender": self.sender.value,
            "content": self.content,
            "mediaUrl": self.media_url,
            "createdAt": self.created_at,
        }


@dataclass
class Conversation:
    """A conversation: id plus chronologically ordered messages."""

    conversation_id: str
    messages: list[Message] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Conversation:
        if not isinstance(raw, dict):
            raise DataFormatError(f"Conversation must be an object, got {type(raw).__name__}")
        if "conversation_id" not in raw:
            raise DataFormatError("Conversation is missing 'conversation_id'")
        messages = raw.get("messages", [])
        if not isinstance(messages, list):
            raise DataFormatError(
                f"Conversation {raw['conversation_id']}: messages must be a list"
            )
        return cls(
            conversation_id=str(raw["conversation_id"]),
            messages=[Message.from_dict(m) for m in messages],
        )


@dataclass(frozen=True)
class JudgeableTurn:
    """One BOT message, addressed by (conversation_id, message_index)."""

    conversation_id: str
    message_index: int
    bot_message: str
    context: tuple[Message, ...]


def context_window(messages: list[Message], index: int) -> list[Message]:
    """Return messages[max(0, index - 3) .. index] inclusive."""
    start = max(0, index - (CONTEXT_SIZE - 1))
    return messages[start : index + 1]


def index_turns(conversations: list[Conversation]) -> list[JudgeableTurn]:
    """Flatten conversations into judgeable BOT turns.

    Conversation order and message order are preserved. CUSTOMER messages
    never produce a turn.
    """
    turns: list[JudgeableTurn] = []
    for conv in conversations:
        for i, msg in enumerate(conv.messages):
            if msg.sender is not Sender.BOT:
                continue
            turns.append(
                JudgeableTurn(
                    conversation_id=conv.conversation_id,
                    message_index=i,
                    bot_message=msg.content,
                    context=tuple(context_window(conv.messages, i)),
                )
            )
    return turns


def render_context(context: list[Message] | tuple[Message, ...]) -> str:
    return "\n".join(f"{m.sender.value}: {m.content}" for m in context)


__all__ = [
    "Sender",
    "Message",
    "Conversation",
    "JudgeableTurn",
    "context_window",
    "index_turns",
    "render_context",
]
