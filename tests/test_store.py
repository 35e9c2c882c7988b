import threading
from datetime import timedelta

import pytest
from django.db import OperationalError, connection
from django.utils import timezone

from chat import store as store_module
from chat.models import Conversation, Message
from chat.store import (
    ConversationNotFound,
    ConversationStore,
    InvalidInput,
    MessageNotFound,
    StorageUnavailable,
)


@pytest.fixture
def store(db):
    return ConversationStore()


@pytest.fixture
def conv(store):
    return store.create_conversation("openai", "gpt-4")


def _live_count(conversation_id):
    return Message.objects.filter(conversation_id=conversation_id).count()


def test_create_conversation_defaults(store):
    conv = store.create_conversation("anthropic", "claude-3-haiku-20240307")

    assert conv.title == "New Conversation"
    assert conv.provider == "anthropic"
    assert conv.model == "claude-3-haiku-20240307"
    assert conv.message_count == 0
    assert conv.created_at == conv.updated_at
    assert store.get_conversation(conv.id) == conv


def test_create_conversation_rejects_unknown_provider(store):
    with pytest.raises(ValueError):
        store.create_conversation("mistral", "large")
    assert Conversation.objects.count() == 0


def test_add_message_increments_count_and_touches_conversation(store, conv):
    before = store.get_conversation(conv.id).updated_at

    msg = store.add_message(conv.id, "user", "  Hello  ")

    refreshed = store.get_conversation(conv.id)
    assert msg.content == "Hello"
    assert msg.provider is None
    assert refreshed.message_count == 1
    assert refreshed.updated_at >= before
    assert refreshed.updated_at == msg.timestamp


def test_assistant_message_records_provider(store, conv):
    msg = store.add_message(conv.id, "assistant", "Hi", provider="openai")
    assert msg.provider == "openai"


def test_add_message_to_missing_conversation_leaves_no_orphan(store):
    import uuid

    missing = uuid.uuid4()
    with pytest.raises(ConversationNotFound):
        store.add_message(missing, "user", "Hello")
    assert Message.objects.count() == 0


def test_add_message_validates_content(store, conv):
    with pytest.raises(ValueError):
        store.add_message(conv.id, "user", "   ")
    long_msg = store.add_message(conv.id, "user", "x" * 12000)

    assert len(long_msg.content) == 10000
    assert store.get_conversation(conv.id).message_count == 1


def test_assistant_content_is_stored_verbatim(store, conv):
    reply = "  " + "y" * 12000 + "\n\n"

    msg = store.add_message(conv.id, "assistant", reply, provider="anthropic")

    assert msg.content == reply
    assert store.get_messages(conv.id)[0].content == reply
    with pytest.raises(InvalidInput):
        store.add_message(conv.id, "assistant", " \n")
    assert store.get_conversation(conv.id).message_count == 1


def test_messages_with_equal_timestamps_keep_insertion_order(store, conv, monkeypatch):
    frozen = timezone.now()
    monkeypatch.setattr(store_module.timezone, "now", lambda: frozen)

    ids = [store.add_message(conv.id, "user", f"m{i}").id for i in range(4)]

    messages = store.get_messages(conv.id)
    assert [m.id for m in messages] == ids
    assert store.get_messages(conv.id) == messages


def test_timestamps_never_go_backwards(store, conv, monkeypatch):
    start = timezone.now()
    clock = iter([start, start - timedelta(seconds=5), start + timedelta(seconds=1)])
    monkeypatch.setattr(store_module.timezone, "now", lambda: next(clock))

    store.add_message(conv.id, "user", "one")
    store.add_message(conv.id, "assistant", "two")
    store.add_message(conv.id, "user", "three")

    stamps = [m.timestamp for m in store.get_messages(conv.id)]
    assert stamps == sorted(stamps)
    assert [m.content for m in store.get_messages(conv.id)] == ["one", "two", "three"]


def test_message_count_tracks_live_messages(store, conv):
    other = store.create_conversation("gemini", "gemini-1.5-flash-latest")
    first = store.add_message(conv.id, "user", "a")
    store.add_message(conv.id, "assistant", "b")
    store.add_message(other.id, "user", "c")
    store.delete_message(first.id)
    store.add_message(conv.id, "user", "d")

    for c in (conv, other):
        assert store.get_conversation(c.id).message_count == _live_count(c.id)

    store.clear_conversation_messages(conv.id)
    assert store.get_conversation(conv.id).message_count == _live_count(conv.id) == 0
    assert store.get_conversation(other.id).message_count == 1


def test_clear_keeps_conversation(store, conv):
    for i in range(5):
        store.add_message(conv.id, "user" if i % 2 == 0 else "assistant", f"message {i}")

    store.clear_conversation_messages(conv.id)

    assert store.get_conversation(conv.id).message_count == 0
    assert store.get_messages(conv.id) == []


def test_delete_conversation_removes_messages(store, conv):
    store.add_message(conv.id, "user", "Hello")
    store.add_message(conv.id, "assistant", "Hi")

    store.delete_conversation(conv.id)

    assert _live_count(conv.id) == 0
    with pytest.raises(ConversationNotFound):
        store.get_conversation(conv.id)
    with pytest.raises(ConversationNotFound):
        store.get_messages(conv.id)


def test_delete_message_missing(store):
    with pytest.raises(MessageNotFound):
        store.delete_message(999)


def test_update_title_bumps_updated_at(store, conv):
    updated = store.update_conversation_title(conv.id, "Trip planning")

    assert updated.title == "Trip planning"
    assert updated.updated_at >= conv.updated_at
    assert store.get_conversation(conv.id).title == "Trip planning"


def test_update_title_unknown_id(store):
    with pytest.raises(ConversationNotFound):
        store.update_conversation_title("not-a-uuid", "x")


def test_list_conversations_most_recent_first(store):
    older = store.create_conversation("openai", "gpt-4")
    newer = store.create_conversation("gemini", "gemini-1.5-pro-latest")
    assert [c.id for c in store.list_conversations()][0] == newer.id

    store.add_message(older.id, "user", "bump")

    assert [c.id for c in store.list_conversations()] == [older.id, newer.id]


def test_database_failure_is_storage_unavailable(store, monkeypatch):
    def broken():
        raise OperationalError("database is locked")

    monkeypatch.setattr(store, "_conversations", broken)

    with pytest.raises(StorageUnavailable):
        store.list_conversations()


def test_get_store_uses_configured_class(settings):
    settings.CHAT_STORE_CLASS = "chat.store.ConversationStore"
    assert isinstance(store_module.get_store(), ConversationStore)


@pytest.mark.django_db(transaction=True)
def test_concurrent_appends_keep_count_in_step():
    store = ConversationStore()
    conv = store.create_conversation("openai", "gpt-4")
    workers, per_worker = 6, 5
    barrier = threading.Barrier(workers)
    errors = []

    def append(n):
        try:
            barrier.wait()
            for i in range(per_worker):
                role = "user" if i % 2 == 0 else "assistant"
                store.add_message(conv.id, role, f"w{n}-{i}", provider="openai")
        except Exception as e:
            errors.append(e)
        finally:
            connection.close()

    threads = [threading.Thread(target=append, args=(n,)) for n in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    total = workers * per_worker
    assert store.get_conversation(conv.id).message_count == _live_count(conv.id) == total
    messages = store.get_messages(conv.id)
    assert len({m.id for m in messages}) == total
    assert [(m.timestamp, m.id) for m in messages] == sorted((m.timestamp, m.id) for m in messages)
