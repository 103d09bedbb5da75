from __future__ import annotations

import asyncio
import json
from pathlib import Path

import httpx
import pytest

from delegate_widget.history import FileHistoryStore, MemoryHistoryStore
from delegate_widget.messages import AssistantTurn, SystemSuggestion, UserTurn
from delegate_widget.page_context import SUGGESTIONS, PageTag
from delegate_widget.session import ChatRequestError, ConversationSession

API_URL = "http://proxy.test/api/chat"


def _reply(content: str = "Hello there!"):
    def responder(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"content": content, "usage": {}})

    return responder


def _session(store, transport, page=PageTag.general) -> ConversationSession:
    client = httpx.AsyncClient(transport=transport)
    return ConversationSession(API_URL, store, page=page, client=client)


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_blank_input_is_a_no_op(text, recording_transport):
    rec = recording_transport(_reply())
    store = MemoryHistoryStore()
    session = _session(store, rec.transport())

    assert asyncio.run(session.submit(text)) is None
    assert session.history == []
    assert store.saves == 0
    assert rec.requests == []


def test_successful_submit_appends_pair_and_persists(tmp_path: Path, recording_transport):
    rec = recording_transport(_reply("Hi! How can I help?"))
    store = FileHistoryStore(tmp_path)
    session = _session(store, rec.transport())

    reply = asyncio.run(session.submit("  hello  "))
    assert reply == AssistantTurn("Hi! How can I help?")
    expected = [UserTurn("hello"), AssistantTurn("Hi! How can I help?")]
    assert session.history == expected
    assert store.load() == expected


def test_payload_carries_history_then_annotated_copy(recording_transport):
    rec = recording_transport(_reply("sure"))
    store = MemoryHistoryStore([UserTurn("earlier"), AssistantTurn("answer")])
    session = _session(store, rec.transport(), page=PageTag.pricing)

    asyncio.run(session.submit("how much?"))

    assert rec.requests[0].method == "POST"
    assert str(rec.requests[0].url) == API_URL
    assert rec.bodies[0] == {
        "messages": [
            {"role": "user", "content": "earlier"},
            {"role": "assistant", "content": "answer"},
            {"role": "user", "content": "how much?"},
            {"role": "user", "content": "how much? [User is currently on the pricing page]"},
        ]
    }
    # persisted/displayed text is the raw trimmed input
    assert session.history[-2] == UserTurn("how much?")
    assert store.load()[-2] == UserTurn("how much?")


def test_user_turn_persisted_before_request(recording_transport):
    store = MemoryHistoryStore()

    def responder(request: httpx.Request) -> httpx.Response:
        assert store.load() == [UserTurn("hello")]
        return httpx.Response(200, json={"content": "ok"})

    session = _session(store, httpx.MockTransport(responder))
    asyncio.run(session.submit("hello"))
    assert store.load() == [UserTurn("hello"), AssistantTurn("ok")]


@pytest.mark.parametrize(
    "responder",
    [
        lambda request: httpx.Response(500, json={"error": "Internal server error"}),
        lambda request: httpx.Response(200, text="<html>not json</html>"),
        lambda request: httpx.Response(200, json={"usage": {}}),
        lambda request: httpx.Response(200, json=["content"]),
    ],
    ids=["non-2xx", "not-json", "no-content", "not-an-object"],
)
def test_failed_submit_keeps_only_user_turn(responder, recording_transport):
    rec = recording_transport(responder)
    store = MemoryHistoryStore()
    session = _session(store, rec.transport())

    with pytest.raises(ChatRequestError):
        asyncio.run(session.submit("hello"))
    assert session.history == [UserTurn("hello")]
    assert store.load() == [UserTurn("hello")]
    assert len(rec.requests) == 1


def test_network_error_keeps_only_user_turn():
    def boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    store = MemoryHistoryStore()
    session = _session(store, httpx.MockTransport(boom))

    with pytest.raises(ChatRequestError):
        asyncio.run(session.submit("hello"))
    assert session.history == [UserTurn("hello")]


def test_overlapping_submits_keep_both_pairs():
    async def responder(request: httpx.Request) -> httpx.Response:
        text = json.loads(request.content)["messages"][-1]["content"]
        # the first call answers last
        await asyncio.sleep(0.05 if text.startswith("first") else 0)
        return httpx.Response(200, json={"content": f"re: {text.split(' [')[0]}"})

    store = MemoryHistoryStore()
    session = _session(store, httpx.MockTransport(responder))

    async def both():
        return await asyncio.gather(session.submit("first"), session.submit("second"))

    replies = asyncio.run(both())
    assert replies == [AssistantTurn("re: first"), AssistantTurn("re: second")]

    history = session.history
    assert len(history) == 4
    assert history[:2] == [UserTurn("first"), UserTurn("second")]
    # assistant replies land in completion order
    assert history[2:] == [AssistantTurn("re: second"), AssistantTurn("re: first")]
    assert store.load() == history


def test_page_change_suggestion_only_before_exchange(tmp_path: Path, recording_transport):
    rec = recording_transport(_reply())
    store = FileHistoryStore(tmp_path)
    session = _session(store, rec.transport())

    suggestion = session.page_changed(PageTag.pricing)
    assert suggestion == SystemSuggestion(SUGGESTIONS[PageTag.pricing], page="pricing")
    assert session.page == PageTag.pricing
    # never persisted
    assert store.load() == []
    assert session.history == []

    asyncio.run(session.submit("hello"))
    assert session.page_changed(PageTag.contact) is None
    assert all(not isinstance(t, SystemSuggestion) for t in store.load())


def test_page_change_suggestion_with_single_turn(recording_transport):
    store = MemoryHistoryStore([UserTurn("hi")])
    session = _session(store, recording_transport(_reply()).transport())

    suggestion = session.page_changed(PageTag.contact)
    assert suggestion == SystemSuggestion(SUGGESTIONS[PageTag.contact], page="contact")
    assert store.load() == [UserTurn("hi")]
    assert session.history == [UserTurn("hi")]


def test_history_loaded_once_at_construction(recording_transport):
    store = MemoryHistoryStore([UserTurn("old")])
    session = _session(store, recording_transport(_reply()).transport())
    store.save([])
    assert session.history == [UserTurn("old")]


def test_clear_empties_and_persists(recording_transport):
    store = MemoryHistoryStore([UserTurn("a"), AssistantTurn("b")])
    session = _session(store, recording_transport(_reply()).transport())
    session.clear()
    assert session.history == []
    assert store.load() == []
