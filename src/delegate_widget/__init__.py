"""Conversation core of the Delegate website assistant."""

from .history import FileHistoryStore, MemoryHistoryStore
from .messages import AssistantTurn, SystemSuggestion, UserTurn
from .page_context import PageTag, detect
from .session import ChatRequestError, ConversationSession
from .widget import ChatWidget, WidgetConfig

__all__ = [
    "AssistantTurn",
    "ChatRequestError",
    "ChatWidget",
    "ConversationSession",
    "FileHistoryStore",
    "MemoryHistoryStore",
    "PageTag",
    "SystemSuggestion",
    "UserTurn",
    "WidgetConfig",
    "detect",
]
