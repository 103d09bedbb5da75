"""Headless assistant widget: instance state plus the user-facing flows.

Rendering is delegated to a ``Renderer`` callable so the same controller can
drive a terminal front-end (``scripts/chat_cli.py``) or tests.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

import httpx

from .history import FileHistoryStore, HistoryStore
from .messages import AssistantTurn
from .page_context import PageContextMonitor, PageTag
from .session import ChatRequestError, ConversationSession
from .voice import RecognitionEngine, SpeechEngine, VoiceIO, select_voice

logger = logging.getLogger(__name__)

DEFAULT_SERVER_URL = "http://localhost:3000"
DEFAULT_GREETING = "Hi! 👋 How can I help you today?"
ERROR_MESSAGE = "Sorry, I encountered an error. Please try again."
CLEARED_MESSAGE = "Conversation cleared. How can I help you?"
MOBILE_MAX_WIDTH = 640

# render(kind, text); kind is one of "user", "bot", "suggestion", "status"
Renderer = Callable[[str, str], None]


@dataclass
class WidgetConfig:
    api_url: str = f"{DEFAULT_SERVER_URL}/api/chat"
    server_url: str = DEFAULT_SERVER_URL
    position: str = "bottom-right"
    theme: str = "light"
    enable_voice: bool = True
    initial_message: str = DEFAULT_GREETING
    history_path: Path = field(default_factory=lambda: Path(".delegate"))

    @classmethod
    def from_script_src(cls, src: Optional[str], **kwargs) -> "WidgetConfig":
        """Derive the proxy URL from the embed script's own URL."""
        server_url = DEFAULT_SERVER_URL
        if src and "embed.js" in src:
            server_url = src.split("/embed.js")[0]
        return cls(api_url=f"{server_url}/api/chat", server_url=server_url, **kwargs)


@dataclass
class SessionState:
    is_open: bool = False
    is_minimized: bool = False
    is_listening: bool = False
    is_speaking: bool = False
    page: PageTag = PageTag.general
    input_text: str = ""
    placeholder: str = "Ask me anything..."


class ChatWidget:
    def __init__(
        self,
        config: Optional[WidgetConfig] = None,
        render: Optional[Renderer] = None,
        *,
        path: str = "/",
        store: Optional[HistoryStore] = None,
        client: Optional[httpx.AsyncClient] = None,
        recognizer: Optional[RecognitionEngine] = None,
        synthesizer: Optional[SpeechEngine] = None,
    ) -> None:
        self.config = config or WidgetConfig()
        self.render: Renderer = render or (lambda kind, text: None)
        self.state = SessionState()

        self.monitor = PageContextMonitor(path, on_change=self._page_changed)
        self.state.page = self.monitor.current
        self.session = ConversationSession(
            self.config.api_url,
            store if store is not None else FileHistoryStore(self.config.history_path),
            page=self.state.page,
            client=client,
        )
        self.voice: VoiceIO = select_voice(self.config.enable_voice, self, recognizer, synthesizer)
        self.render("bot", self.config.initial_message)

    @property
    def voice_enabled(self) -> bool:
        return self.config.enable_voice and self.voice.available

    # --------- window ----------
    def open(self) -> None:
        self.state.is_open = True
        self.state.is_minimized = False

    def close(self) -> None:
        self.state.is_open = False

    def toggle(self) -> None:
        if self.state.is_open:
            self.close()
        else:
            self.open()

    def minimize(self) -> None:
        self.state.is_minimized = not self.state.is_minimized

    def show_initial_greeting(self, viewport_width: int) -> None:
        # Auto-open on desktop only.
        if viewport_width > MOBILE_MAX_WIDTH:
            self.open()

    # --------- conversation ----------
    async def send(self, text: Optional[str] = None) -> Optional[AssistantTurn]:
        message = (self.state.input_text if text is None else text).strip()
        if not message:
            return None
        self.state.input_text = ""
        self.render("user", message)
        try:
            reply = await self.session.submit(message)
        except ChatRequestError as e:
            logger.error("Chat error: %s", e)
            self.render("bot", ERROR_MESSAGE)
            return None
        if reply is None:
            return None
        self.render("bot", reply.content)
        if self.voice_enabled:
            self.voice.speak(reply.content)
        return reply

    def clear_conversation(self) -> None:
        self.session.clear()
        self.render("status", CLEARED_MESSAGE)

    # --------- navigation ----------
    def navigate(self, path: str) -> PageTag:
        return self.monitor.navigate(path)

    def _page_changed(self, tag: PageTag) -> None:
        self.state.page = tag
        suggestion = self.session.page_changed(tag)
        if suggestion is not None:
            self.render("suggestion", suggestion.content)

    # --------- voice ----------
    def toggle_listening(self) -> None:
        if not self.voice_enabled:
            return
        if self.voice.is_listening:
            self.voice.stop_capture()
        else:
            self.state.input_text = ""
            self.voice.start_capture()

    def on_interim(self, transcript: str) -> None:
        self.state.placeholder = f'Listening: "{transcript}"...'

    def on_final(self, transcript: str) -> None:
        self.state.input_text = transcript

    def on_listening(self, listening: bool) -> None:
        self.state.is_listening = listening
        if not listening:
            self.state.placeholder = "Type or use voice..."

    def on_speaking(self, speaking: bool) -> None:
        self.state.is_speaking = speaking

    def on_error(self, message: str) -> None:
        self.render("bot", message)
