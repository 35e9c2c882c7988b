from __future__ import annotations

import logging
from dataclasses import dataclass

from ..models import Conversation, Message
from ..store import ConversationStore, StoreError, title_from_message
from . import relay

logger = logging.getLogger(__name__)


@dataclass
class Turn:
    user_message: Message
    assistant_message: Message
    reply: relay.ChatReply


def _maybe_set_title(store: ConversationStore, conversation: Conversation, user_message: Message) -> None:
    # Best-effort: a failed title update never fails the turn
    try:
        store.update_conversation_title(conversation.pk, title_from_message(user_message.content))
    except StoreError as e:
        logger.warning("Title update for conversation %s failed: %s", conversation.pk, e)


def send_user_message(store: ConversationStore, conversation_id, text: str) -> Turn:
    """
    Persist the user message, relay the whole history and persist the reply.
    On relay failure the user message stays stored and the RelayError propagates.
    """
    conversation = store.get_conversation(conversation_id)
    user_message = store.add_message(conversation.pk, Message.ROLE_USER, text)

    history = [
        {"role": m.role, "content": m.content}
        for m in store.get_messages(conversation.pk)
    ]
    if len(history) == 1:
        _maybe_set_title(store, conversation, user_message)

    reply = relay.send_message(conversation.provider, conversation.model, history)

    assistant_message = store.add_message(
        conversation.pk,
        Message.ROLE_ASSISTANT,
        reply.content,
        provider=conversation.provider,
    )
    return Turn(user_message=user_message, assistant_message=assistant_message, reply=reply)
