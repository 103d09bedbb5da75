"""Conversation session: owns the history and talks to the chat proxy."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from .history import HistoryStore
from .messages import AssistantTurn, SystemSuggestion, Turn, UserTurn, to_messages
from .page_context import PageTag, context_note, suggestion_for

logger = logging.getLogger(__name__)


class ChatRequestError(RuntimeError):
    """The proxy could not be reached or returned an unusable reply."""


class ConversationSession:
    """Request/response life cycle for the turns of one widget instance.

    History is read from ``store`` once, here, and written back after every
    append. Calls to :meth:`submit` are not serialised: two overlapping calls
    issue two requests and append their replies in completion order.
    """

    def __init__(
        self,
        api_url: str,
        store: HistoryStore,
        *,
        page: PageTag = PageTag.general,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_url = api_url
        self.store = store
        self.page = PageTag(page)
        self._client = client
        self._history: List[Turn] = list(store.load())

    @property
    def history(self) -> List[Turn]:
        return list(self._history)

    # --------- history ----------
    def _append(self, turn: Turn) -> None:
        self._history.append(turn)
        self.store.save(self._history)

    def clear(self) -> None:
        self._history = []
        self.store.save(self._history)

    # --------- page context ----------
    def page_changed(self, tag: PageTag) -> Optional[SystemSuggestion]:
        """Record the new page; offer a nudge only before any real exchange."""
        self.page = PageTag(tag)
        if len(self._history) <= 1:
            return SystemSuggestion(suggestion_for(self.page), page=self.page.value)
        return None

    # --------- requests ----------
    def build_payload(self, text: str) -> Dict[str, Any]:
        """Current history plus ``text`` annotated with the page the visitor is on."""
        messages = to_messages(self._history)
        messages.append({"role": "user", "content": f"{text} {context_note(self.page)}"})
        return {"messages": messages}

    async def submit(self, text: str) -> Optional[AssistantTurn]:
        """Send one user turn; returns the reply, or ``None`` for blank input.

        Raises :class:`ChatRequestError` on any failure, leaving only the user
        turn in history.
        """
        text = (text or "").strip()
        if not text:
            return None

        self._append(UserTurn(text))
        payload = self.build_payload(text)

        content = await self._post(payload)
        reply = AssistantTurn(content)
        self._append(reply)
        return reply

    async def _post(self, payload: Dict[str, Any]) -> str:
        try:
            if self._client is not None:
                resp = await self._client.post(self.api_url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=None) as client:
                    resp = await client.post(self.api_url, json=payload)
        except httpx.HTTPError as e:
            logger.error("chat request failed: %s", e)
            raise ChatRequestError(f"network error: {e}") from e

        if not resp.is_success:
            raise ChatRequestError(f"API error: {resp.status_code} {resp.reason_phrase}")
        try:
            data = resp.json()
        except ValueError as e:
            raise ChatRequestError("malformed response body") from e

        content = data.get("content") if isinstance(data, dict) else None
        if not isinstance(content, str):
            raise ChatRequestError("response has no content field")
        return content
