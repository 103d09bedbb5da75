"""Conversation entries shown by the assistant widget.

Only :class:`UserTurn` and :class:`AssistantTurn` are real turns; they make up
the persisted history. :class:`SystemSuggestion` is a page-context nudge that
is rendered but never stored, so it is deliberately not part of ``Turn``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, TypedDict, Union


class Message(TypedDict):
    """Wire/persisted shape of a single turn."""

    role: str            # "user" | "assistant"
    content: str         # message text


@dataclass(frozen=True)
class UserTurn:
    content: str
    role: str = "user"


@dataclass(frozen=True)
class AssistantTurn:
    content: str
    role: str = "assistant"


@dataclass(frozen=True)
class SystemSuggestion:
    content: str
    page: str = "general"


Turn = Union[UserTurn, AssistantTurn]


def to_message(turn: Turn) -> Message:
    return {"role": turn.role, "content": turn.content}


def from_message(item: Any) -> Optional[Turn]:
    """Parse one stored/wire message; ``None`` when it is not well formed."""
    if not isinstance(item, dict):
        return None
    content = item.get("content")
    if not isinstance(content, str):
        return None
    role = item.get("role")
    if role == "user":
        return UserTurn(content)
    if role == "assistant":
        return AssistantTurn(content)
    return None


def to_messages(turns: List[Turn]) -> List[Message]:
    return [to_message(t) for t in turns]


def from_messages(items: Any) -> Optional[List[Turn]]:
    """Parse a stored list; ``None`` if the list or any entry is malformed."""
    if not isinstance(items, list):
        return None
    out: List[Turn] = []
    for item in items:
        turn = from_message(item)
        if turn is None:
            return None
        out.append(turn)
    return out

