import pytest

from app.auth.session import LocalSessionProvider
from app.services.chat_session import ChatSession, DisplayMessage, TurnState, derive_title
from app.services.conversation_store import SqlConversationStore
from app.services.errors import PersistenceError, TurnRejected
from app.services.relay_client import RelayClient
from fakes import DONE, FakeResponse, FakeSession, frame

HELLO = [frame("he"), frame("llo"), DONE]


class FailingStore(SqlConversationStore):
    def add_message(self, conversation_id, role, content):
        raise PersistenceError("Could not save message")


@pytest.fixture
def auth():
    provider = LocalSessionProvider()
    provider.sign_up("npc@example.com", "gyatt123")
    return provider


def make_chat(auth, *responses, store=None, on_update=None):
    relay_session = FakeSession(*(responses or [FakeResponse(200, HELLO)]))
    chat = ChatSession(
        store or SqlConversationStore(),
        RelayClient(url="http://relay.test/functions/v1/mememind-chat", session=relay_session),
        auth,
        public_origin="https://mememind.test",
        on_update=on_update,
    )
    chat.create_conversation()
    return chat, relay_session


def test_turn_streams_and_persists_reply(auth):
    updates = []
    chat, relay = make_chat(auth, on_update=lambda m: updates.append((m.role, m.content)))

    turn = chat.send_message("  hi  ")

    assert turn.state is TurnState.FINALIZED
    assert turn.assistant_text == "hello"
    assert [(m.role, m.content) for m in chat.messages] == [("user", "hi"), ("assistant", "hello")]
    assert not any(m.is_temp for m in chat.messages)
    assert ("assistant", "he") in updates and ("assistant", "hello") in updates

    stored = chat.store.list_messages(chat.current_conversation)
    assert [(m.role, m.content) for m in stored] == [("user", "hi"), ("assistant", "hello")]
    assert relay.calls[0]["json"] == {"messages": [{"role": "user", "content": "hi"}]}


def test_reply_replaces_its_own_placeholder(auth):
    chat, _ = make_chat(auth)
    stale = DisplayMessage("temp-assistant-stale", "assistant", "old")
    chat.messages.append(stale)

    turn = chat.send_message("hi")

    assert turn.state is TurnState.FINALIZED
    assert stale in chat.messages and stale.content == "old"
    last = chat.messages[-1]
    assert not last.is_temp
    assert (last.role, last.content) == ("assistant", "hello")


def test_history_is_sent_oldest_first(auth):
    chat, relay = make_chat(auth, FakeResponse(200, HELLO), FakeResponse(200, [frame("again"), DONE]))
    chat.send_message("hi")
    chat.send_message("say it again")

    assert relay.calls[1]["json"]["messages"] == [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "hello"},
        {"role": "user", "content": "say it again"},
    ]


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_blank_input_is_rejected_without_side_effects(auth, text):
    chat, relay = make_chat(auth)

    with pytest.raises(TurnRejected):
        chat.send_message(text)

    assert relay.calls == []
    assert chat.messages == []
    assert chat.store.list_messages(chat.current_conversation) == []


def test_second_send_while_streaming_is_rejected(auth):
    rejected = []

    def on_update(msg):
        if msg.role == "assistant" and not rejected:
            with pytest.raises(TurnRejected) as exc:
                chat.send_message("double tap")
            rejected.append(exc.value)

    chat, relay = make_chat(auth, on_update=on_update)
    assert not chat.is_streaming()

    turn = chat.send_message("hi")

    assert rejected
    assert len(relay.calls) == 1
    assert turn.state is TurnState.FINALIZED
    assert not chat.is_streaming()
    assert [m.content for m in chat.messages] == ["hi", "hello"]


def test_rate_limited_turn_fails_cleanly(auth):
    chat, relay = make_chat(auth, FakeResponse(429))

    turn = chat.send_message("hi")

    assert turn.state is TurnState.FAILED
    assert turn.error == "Rate limit exceeded. Please try again later."
    assert chat.notices[-1].variant == "destructive"
    assert chat.notices[-1].description == "Rate limit exceeded. Please try again later."
    assert not any(m.is_temp for m in chat.messages)
    assert [m.role for m in chat.store.list_messages(chat.current_conversation)] == ["user"]


@pytest.mark.parametrize(
    "status, message",
    [
        (402, "AI credits depleted. Please try again later."),
        (500, "Failed to get AI response"),
    ],
)
def test_other_relay_failures(auth, status, message):
    chat, _ = make_chat(auth, FakeResponse(status))
    turn = chat.send_message("hi")
    assert turn.state is TurnState.FAILED
    assert turn.error == message


def test_truncated_stream_persists_nothing_for_assistant(auth):
    chat, _ = make_chat(auth, FakeResponse(200, [frame("par"), b'data: {"choices":[{"de']))

    turn = chat.send_message("hi")

    assert turn.state is TurnState.FAILED
    assert [m.role for m in chat.messages] == ["user"]
    assert [m.role for m in chat.store.list_messages(chat.current_conversation)] == ["user"]


def test_first_turn_derives_title_from_long_message(auth):
    chat, _ = make_chat(auth)
    text = "explain the grimace shake lore in detail pls!"
    assert len(text) == 45

    chat.send_message(text)

    conv = chat.store.get_conversation(chat.current_conversation)
    assert conv.title == text[:30] + "..."
    assert chat.conversations[0].title == conv.title


def test_title_only_set_on_first_turn(auth):
    chat, _ = make_chat(auth, FakeResponse(200, HELLO), FakeResponse(200, HELLO))
    chat.send_message("short")
    chat.send_message("this one is long enough to be truncated for sure")
    assert chat.store.get_conversation(chat.current_conversation).title == "short"


def test_derive_title():
    assert derive_title("a" * 30) == "a" * 30
    assert derive_title("a" * 31) == "a" * 30 + "..."


def test_empty_reply_leaves_no_placeholder(auth):
    chat, _ = make_chat(auth, FakeResponse(200, [b": hb\n\n", DONE]))

    turn = chat.send_message("hi")

    assert turn.state is TurnState.FINALIZED
    assert [m.role for m in chat.messages] == ["user"]
    # no assistant reply, so the title stays put
    assert chat.store.get_conversation(chat.current_conversation).title == "New Chat"


def test_user_message_persistence_failure_rolls_back(auth):
    chat, relay = make_chat(auth, store=FailingStore())

    turn = chat.send_message("hi")

    assert turn.state is TurnState.FAILED
    assert chat.messages == []
    assert relay.calls == []
    assert chat.notices[-1].description == "Could not save message"


def test_close_mid_stream_stops_decoding(auth):
    def on_update(msg):
        if msg.role == "assistant":
            chat.close()

    chat, relay = make_chat(
        auth, FakeResponse(200, [frame("a"), frame("b"), DONE]), on_update=on_update
    )
    turn = chat.send_message("hi")

    assert turn.state is TurnState.FAILED
    assert turn.assistant_text == "a"
    assert [m.role for m in chat.store.list_messages(chat.current_conversation)] == ["user"]


def test_conversation_management(auth):
    chat, _ = make_chat(auth)
    first = chat.current_conversation
    second = chat.create_conversation()

    assert [c.id for c in chat.conversations] == [second.id, first]
    assert chat.current_conversation == second.id

    chat.delete_conversation(second.id)
    assert [c.id for c in chat.conversations] == [first]
    assert chat.current_conversation == first
    assert chat.messages == []


def test_toggle_share_returns_link_when_made_public(auth):
    chat, _ = make_chat(auth)
    conv = chat.conversations[0]

    url = chat.toggle_share(conv)

    assert url == f"https://mememind.test/share/{conv.share_id}"
    assert chat.conversations[0].is_public
    assert chat.notices[-1].title.startswith("Link copied")

    assert chat.toggle_share(chat.conversations[0]) is None
    assert not chat.conversations[0].is_public


def test_sign_out_clears_and_sign_in_reloads(auth):
    chat, _ = make_chat(auth)
    chat.send_message("hi")
    conv_id = chat.current_conversation

    auth.sign_out()
    assert chat.user is None
    assert chat.conversations == [] and chat.messages == []
    assert chat.current_conversation is None

    auth.sign_in("npc@example.com", "gyatt123")
    assert chat.current_conversation == conv_id
    assert [m.content for m in chat.messages] == ["hi", "hello"]


def test_no_conversation_selected_is_rejected(auth):
    chat, relay = make_chat(auth)
    chat.delete_conversation(chat.current_conversation)
    with pytest.raises(TurnRejected):
        chat.send_message("hi")
    assert relay.calls == []
