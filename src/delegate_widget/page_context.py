"""Map the visitor's current path to a coarse page topic."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


class PageTag(str, Enum):
    home = "home"
    pricing = "pricing"
    features = "features"
    contact = "contact"
    general = "general"


SUGGESTIONS: Dict[PageTag, str] = {
    PageTag.home: "Welcome! You're on our home page. I can help you learn about our platform. What would you like to know?",
    PageTag.pricing: "You're on our pricing page. I can help explain our plans and answer billing questions.",
    PageTag.features: "You're checking out our features! Want me to explain any specific feature in detail?",
    PageTag.contact: "You're on the contact page. I can help guide you to the right team or answer common questions.",
    PageTag.general: "I'm here to help! What can I assist you with?",
}


def detect(path: str) -> PageTag:
    """Return the tag for ``path``; first matching rule wins."""
    if path in ("/", "/index.html"):
        return PageTag.home
    if "pricing" in path:
        return PageTag.pricing
    if "features" in path:
        return PageTag.features
    if "contact" in path:
        return PageTag.contact
    return PageTag.general


def suggestion_for(tag: PageTag) -> str:
    return SUGGESTIONS.get(tag, SUGGESTIONS[PageTag.general])


def context_note(tag: PageTag) -> str:
    """Annotation appended to the outbound user message."""
    return f"[User is currently on the {PageTag(tag).value} page]"


class PageContextMonitor:
    """Tracks the page tag across navigation events (hash change, history pop)."""

    def __init__(self, path: str = "/", on_change: Optional[Callable[[PageTag], None]] = None) -> None:
        self.current = detect(path)
        self._on_change = on_change

    def navigate(self, path: str) -> PageTag:
        tag = detect(path)
        if tag != self.current:
            logger.debug("page changed %s -> %s", self.current.value, tag.value)
            self.current = tag
            if self._on_change is not None:
                self._on_change(tag)
        return tag
