from __future__ import annotations

import uuid

from django.db import models
from django.utils import timezone


class Provider(models.TextChoices):
    OPENAI = "openai", "OpenAI GPT"
    ANTHROPIC = "anthropic", "Anthropic Claude"
    GEMINI = "gemini", "Google Gemini"


class Conversation(models.Model):
    DEFAULT_TITLE = "New Conversation"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=200, default=DEFAULT_TITLE)
    provider = models.CharField(max_length=16, choices=Provider.choices)
    model = models.CharField(max_length=100)
    created_at = models.DateTimeField(default=timezone.now, editable=False)
    updated_at = models.DateTimeField(default=timezone.now)
    message_count = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["-updated_at"]
        indexes = [
            models.Index(fields=["updated_at"], name="chat_conv_updated_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.title} ({self.provider}/{self.model})"


class Message(models.Model):
    ROLE_USER = "user"
    ROLE_ASSISTANT = "assistant"
    ROLE_CHOICES = (
        (ROLE_USER, "User"),
        (ROLE_ASSISTANT, "Assistant"),
    )

    conversation = models.ForeignKey(Conversation, related_name="messages", on_delete=models.CASCADE)
    role = models.CharField(max_length=10, choices=ROLE_CHOICES)
    content = models.TextField()
    timestamp = models.DateTimeField(default=timezone.now, editable=False)
    provider = models.CharField(max_length=16, choices=Provider.choices, null=True, blank=True)

    class Meta:
        # id is auto-increment, so it breaks timestamp ties in insertion order
        ordering = ["timestamp", "id"]
        indexes = [
            models.Index(fields=["conversation", "timestamp"], name="chat_msg_conv_ts_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.conversation_id}#{self.pk}:{self.role}"
