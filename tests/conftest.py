import itertools
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import pytest
from django.utils import timezone

from chat.store import (
    ConversationNotFound,
    InvalidInput,
    MessageNotFound,
    StorageUnavailable,
    validate_message,
)


@dataclass
class FakeConversation:
    provider: str
    model: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    title: str = "New Conversation"
    created_at: datetime = field(default_factory=timezone.now)
    updated_at: datetime = field(default_factory=timezone.now)
    message_count: int = 0

    @property
    def pk(self):
        return self.id


@dataclass
class FakeMessage:
    id: int
    conversation_id: uuid.UUID
    role: str
    content: str
    timestamp: datetime
    provider: Optional[str] = None

    @property
    def pk(self):
        return self.id


class InMemoryConversationStore:
    """Same contract as chat.store.ConversationStore, kept in dicts."""

    def __init__(self):
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self.conversations = {}
        self.messages = {}
        self.fail_title_updates = False

    def _get(self, conversation_id):
        try:
            return self.conversations[uuid.UUID(str(conversation_id))]
        except (KeyError, ValueError):
            raise ConversationNotFound(conversation_id)

    def create_conversation(self, provider, model):
        conv = FakeConversation(provider=provider, model=model)
        self.conversations[conv.id] = conv
        return conv

    def update_conversation_title(self, conversation_id, title):
        if self.fail_title_updates:
            raise StorageUnavailable("Storage unavailable: quota exceeded")
        with self._lock:
            conv = self._get(conversation_id)
            conv.title = title
            conv.updated_at = timezone.now()
            return conv

    def list_conversations(self):
        return sorted(self.conversations.values(), key=lambda c: c.updated_at, reverse=True)

    def get_conversation(self, conversation_id):
        return self._get(conversation_id)

    def delete_conversation(self, conversation_id):
        with self._lock:
            conv = self._get(conversation_id)
            for mid in [m.id for m in self.messages.values() if m.conversation_id == conv.id]:
                del self.messages[mid]
            del self.conversations[conv.id]

    def add_message(self, conversation_id, role, content, provider=None):
        if role == "user":
            text = validate_message(content)
        elif not content or not content.strip():
            raise InvalidInput("Message cannot be empty")
        else:
            text = content
        with self._lock:
            conv = self._get(conversation_id)
            msg = FakeMessage(
                id=next(self._ids),
                conversation_id=conv.id,
                role=role,
                content=text,
                timestamp=timezone.now(),
                provider=provider if role == "assistant" else None,
            )
            self.messages[msg.id] = msg
            conv.message_count += 1
            conv.updated_at = msg.timestamp
            return msg

    def get_messages(self, conversation_id):
        conv = self._get(conversation_id)
        rows = [m for m in self.messages.values() if m.conversation_id == conv.id]
        return sorted(rows, key=lambda m: (m.timestamp, m.id))

    def delete_message(self, message_id):
        with self._lock:
            msg = self.messages.pop(message_id, None)
            if msg is None:
                raise MessageNotFound(message_id)
            self.conversations[msg.conversation_id].message_count -= 1

    def clear_conversation_messages(self, conversation_id):
        with self._lock:
            conv = self._get(conversation_id)
            for mid in [m.id for m in self.messages.values() if m.conversation_id == conv.id]:
                del self.messages[mid]
            conv.message_count = 0


class FakeVendorResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeVendor:
    """Stands in for requests.post; records every outbound call."""

    def __init__(self):
        self.calls = []
        self.response = FakeVendorResponse(200, {})
        self.error = None

    def respond(self, payload=None, status_code=200):
        self.response = FakeVendorResponse(status_code, payload)

    def __call__(self, url, headers=None, params=None, json=None, **kwargs):
        self.calls.append({"url": url, "headers": headers, "params": params, "json": json})
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def vendor(monkeypatch):
    from chat.services import relay

    fake = FakeVendor()
    monkeypatch.setattr(relay.requests, "post", fake)
    return fake


@pytest.fixture
def api_keys(settings):
    settings.LLM_API_KEYS = {"openai": "sk-test", "anthropic": "sk-ant-test", "gemini": "gm-test"}
    return settings.LLM_API_KEYS


@pytest.fixture
def memory_store(monkeypatch):
    from chat import views

    store = InMemoryConversationStore()
    monkeypatch.setattr(views, "get_store", lambda: store)
    return store
