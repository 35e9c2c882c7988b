from rest_framework import serializers

from .models import Conversation, Message, Provider
from .store import validate_message


class ConversationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Conversation
        fields = ["id", "title", "provider", "model", "created_at", "updated_at", "message_count"]
        read_only_fields = fields


class MessageSerializer(serializers.ModelSerializer):
    conversation = serializers.UUIDField(source="conversation_id", read_only=True)

    class Meta:
        model = Message
        fields = ["id", "conversation", "role", "content", "timestamp", "provider"]
        read_only_fields = fields


class CreateConversationSerializer(serializers.Serializer):
    provider = serializers.ChoiceField(choices=Provider.choices)
    model = serializers.CharField(max_length=100, trim_whitespace=True)


class UpdateConversationSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200, allow_blank=False, trim_whitespace=True)


class CreateMessageSerializer(serializers.Serializer):
    # Oversized input is truncated rather than rejected
    content = serializers.CharField(allow_blank=True, trim_whitespace=False)

    def validate_content(self, value: str) -> str:
        try:
            return validate_message(value)
        except ValueError as e:
            raise serializers.ValidationError(str(e))


class ChatMessageSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=[Message.ROLE_USER, Message.ROLE_ASSISTANT])
    content = serializers.CharField(allow_blank=False, trim_whitespace=False)


class RelayRequestSerializer(serializers.Serializer):
    # provider is checked by the relay itself so the 400 names the rejected value
    provider = serializers.CharField()
    model = serializers.CharField(trim_whitespace=True)
    messages = ChatMessageSerializer(many=True, allow_empty=False)
