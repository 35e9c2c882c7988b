"""
Conversation store: Conversations + Messages with a denormalized message count.

Every write that touches both tables (append, delete, clear) runs in one
transaction with the parent conversation row locked, so readers never see a
message without the matching count.
Database failures surface as StorageUnavailable; unknown ids as NotFound.
"""
from __future__ import annotations

import functools
import logging
from typing import Optional

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.db.models import F
from django.utils import timezone
from django.utils.module_loading import import_string

from .models import Conversation, Message, Provider

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 10000
TITLE_MAX_LENGTH = 50


class StoreError(Exception):
    pass


class NotFound(StoreError):
    pass


class ConversationNotFound(NotFound):
    def __init__(self, conversation_id):
        self.conversation_id = conversation_id
        super().__init__(f"Conversation {conversation_id} not found")


class MessageNotFound(NotFound):
    def __init__(self, message_id):
        self.message_id = message_id
        super().__init__(f"Message {message_id} not found")


class StorageUnavailable(StoreError):
    pass


class InvalidInput(StoreError, ValueError):
    pass


def sanitize_message(content: str) -> str:
    return (content or "").strip()[:MAX_MESSAGE_LENGTH]


def validate_message(content: str) -> str:
    """Return the sanitized content or raise InvalidInput when nothing is left."""
    text = sanitize_message(content)
    if not text:
        raise InvalidInput("Message cannot be empty")
    return text


def title_from_message(content: str) -> str:
    if len(content) > TITLE_MAX_LENGTH:
        return content[:TITLE_MAX_LENGTH] + "..."
    return content


def _storage_guard(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DatabaseError as e:
            logger.error("Storage failure in %s: %s", func.__name__, e)
            raise StorageUnavailable(f"Storage unavailable: {e}") from e
    return wrapper


class ConversationStore:
    def __init__(self, using: str = "default"):
        self.using = using

    def _conversations(self):
        return Conversation.objects.using(self.using)

    def _messages(self):
        return Message.objects.using(self.using)

    def _locked(self, conversation_id) -> Conversation:
        try:
            return self._conversations().select_for_update().get(pk=conversation_id)
        except (Conversation.DoesNotExist, ValidationError, ValueError):
            raise ConversationNotFound(conversation_id)

    @_storage_guard
    def create_conversation(self, provider: str, model: str) -> Conversation:
        if provider not in Provider.values:
            raise InvalidInput(f"Unsupported provider: {provider}")
        if not (model or "").strip():
            raise InvalidInput("Model is required")
        now = timezone.now()
        conv = self._conversations().create(
            provider=provider,
            model=model.strip(),
            created_at=now,
            updated_at=now,
        )
        logger.info("Created conversation %s (%s/%s)", conv.pk, provider, conv.model)
        return conv

    @_storage_guard
    def update_conversation_title(self, conversation_id, title: str) -> Conversation:
        with transaction.atomic(using=self.using):
            conv = self._locked(conversation_id)
            conv.title = title
            conv.updated_at = timezone.now()
            conv.save(using=self.using, update_fields=["title", "updated_at"])
        return conv

    @_storage_guard
    def list_conversations(self) -> list[Conversation]:
        return list(self._conversations().order_by("-updated_at", "-created_at"))

    @_storage_guard
    def get_conversation(self, conversation_id) -> Conversation:
        try:
            return self._conversations().get(pk=conversation_id)
        except (Conversation.DoesNotExist, ValidationError, ValueError):
            raise ConversationNotFound(conversation_id)

    @_storage_guard
    def delete_conversation(self, conversation_id) -> None:
        with transaction.atomic(using=self.using):
            conv = self._locked(conversation_id)
            deleted, _ = self._messages().filter(conversation_id=conv.pk).delete()
            conv.delete(using=self.using)
        logger.info("Deleted conversation %s with %d messages", conversation_id, deleted)

    @_storage_guard
    def add_message(
        self,
        conversation_id,
        role: str,
        content: str,
        provider: Optional[str] = None,
    ) -> Message:
        if role not in (Message.ROLE_USER, Message.ROLE_ASSISTANT):
            raise InvalidInput(f"Unsupported role: {role}")
        if provider is not None and provider not in Provider.values:
            raise InvalidInput(f"Unsupported provider: {provider}")
        if role == Message.ROLE_USER:
            text = validate_message(content)
        elif not content or not content.strip():
            raise InvalidInput("Message cannot be empty")
        else:
            # replies are stored verbatim, whatever their length
            text = content

        with transaction.atomic(using=self.using):
            conv = self._locked(conversation_id)
            now = timezone.now()
            last = (
                self._messages()
                .filter(conversation_id=conv.pk)
                .order_by("-timestamp", "-id")
                .values_list("timestamp", flat=True)
                .first()
            )
            # Keep timestamps non-decreasing even if the clock steps back
            timestamp = max(now, last) if last is not None else now
            msg = self._messages().create(
                conversation=conv,
                role=role,
                content=text,
                timestamp=timestamp,
                provider=provider if role == Message.ROLE_ASSISTANT else None,
            )
            self._conversations().filter(pk=conv.pk).update(
                message_count=F("message_count") + 1,
                updated_at=timestamp,
            )
        return msg

    @_storage_guard
    def get_messages(self, conversation_id) -> list[Message]:
        conv = self.get_conversation(conversation_id)
        return list(self._messages().filter(conversation_id=conv.pk).order_by("timestamp", "id"))

    @_storage_guard
    def delete_message(self, message_id: int) -> None:
        with transaction.atomic(using=self.using):
            try:
                conversation_id = self._messages().values_list("conversation_id", flat=True).get(pk=message_id)
            except (Message.DoesNotExist, ValueError):
                raise MessageNotFound(message_id)
            conv = self._locked(conversation_id)
            deleted, _ = self._messages().filter(pk=message_id).delete()
            if not deleted:
                raise MessageNotFound(message_id)
            self._conversations().filter(pk=conv.pk, message_count__gt=0).update(
                message_count=F("message_count") - 1,
            )

    @_storage_guard
    def clear_conversation_messages(self, conversation_id) -> None:
        with transaction.atomic(using=self.using):
            conv = self._locked(conversation_id)
            self._messages().filter(conversation_id=conv.pk).delete()
            self._conversations().filter(pk=conv.pk).update(message_count=0)


@functools.lru_cache
def _store_class(path: str):
    return import_string(path)


def get_store() -> ConversationStore:
    """Build the store configured by CHAT_STORE_CLASS."""
    return _store_class(settings.CHAT_STORE_CLASS)()
