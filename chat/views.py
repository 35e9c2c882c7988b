from __future__ import annotations

from django.conf import settings
from django.utils.crypto import constant_time_compare
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    ConversationSerializer,
    MessageSerializer,
    CreateConversationSerializer,
    UpdateConversationSerializer,
    CreateMessageSerializer,
    RelayRequestSerializer,
)
from .services import chat, relay
from .services.providers import PROVIDERS, is_configured
from .store import get_store


class ChatRelayView(APIView):
    """Same-origin relay: the browser never sees provider credentials."""

    def post(self, request: Request) -> Response:
        serializer = RelayRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payload = serializer.validated_data
        reply = relay.send_message(
            payload["provider"],
            payload["model"],
            [dict(m) for m in payload["messages"]],
        )
        return Response(reply.as_dict())


class ProviderListView(APIView):
    def get(self, request: Request) -> Response:
        keys = getattr(settings, "LLM_API_KEYS", {})
        data = [
            {
                "id": p.id,
                "name": p.name,
                "configured": is_configured(p.id, keys),
                "models": [{"id": m.id, "name": m.name, "description": m.description} for m in p.models],
            }
            for p in PROVIDERS.values()
        ]
        return Response({"results": data})


class ConversationListCreateView(APIView):
    def get(self, request: Request) -> Response:
        items = get_store().list_conversations()
        return Response({"results": ConversationSerializer(items, many=True).data, "count": len(items)})

    def post(self, request: Request) -> Response:
        serializer = CreateConversationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        conv = get_store().create_conversation(**serializer.validated_data)
        return Response(ConversationSerializer(conv).data, status=status.HTTP_201_CREATED)


class ConversationDetailView(APIView):
    def get(self, request: Request, pk) -> Response:
        conv = get_store().get_conversation(pk)
        return Response(ConversationSerializer(conv).data)

    def patch(self, request: Request, pk) -> Response:
        serializer = UpdateConversationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        conv = get_store().update_conversation_title(pk, serializer.validated_data["title"])
        return Response(ConversationSerializer(conv).data)

    def delete(self, request: Request, pk) -> Response:
        get_store().delete_conversation(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class MessageListCreateView(APIView):
    def get(self, request: Request, pk) -> Response:
        messages = get_store().get_messages(pk)
        return Response({"results": MessageSerializer(messages, many=True).data})

    def post(self, request: Request, pk) -> Response:
        serializer = CreateMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        store = get_store()
        turn = chat.send_user_message(store, pk, serializer.validated_data["content"])
        return Response({
            "user_message": MessageSerializer(turn.user_message).data,
            "assistant_message": MessageSerializer(turn.assistant_message).data,
            "usage": turn.reply.usage,
            "conversation": ConversationSerializer(store.get_conversation(pk)).data,
        }, status=status.HTTP_201_CREATED)

    def delete(self, request: Request, pk) -> Response:
        get_store().clear_conversation_messages(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class MessageDetailView(APIView):
    def delete(self, request: Request, pk, message_id: int) -> Response:
        store = get_store()
        # scope the message to the conversation in the URL
        if not any(m.pk == message_id for m in store.get_messages(pk)):
            return Response({"error": f"Message {message_id} not found"}, status=status.HTTP_404_NOT_FOUND)
        store.delete_message(message_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class AuthView(APIView):
    def post(self, request: Request) -> Response:
        password = (request.data or {}).get("password")
        if not settings.ACCESS_PASSWORD:
            return Response({"error": "Access password not configured"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        if not isinstance(password, str) or not constant_time_compare(password, settings.ACCESS_PASSWORD):
            return Response({"error": "Invalid password"}, status=status.HTTP_401_UNAUTHORIZED)

        response = Response({"success": True})
        response.set_cookie(
            settings.AUTH_COOKIE_NAME,
            settings.AUTH_SECRET,
            max_age=settings.AUTH_COOKIE_MAX_AGE,
            httponly=True,
            secure=not settings.DEBUG,
            samesite="Lax",
            path="/",
        )
        return response


class DebugEnvView(APIView):
    def get(self, request: Request) -> Response:
        # presence and lengths only, never the values
        return Response({
            "hasAccessPassword": bool(settings.ACCESS_PASSWORD),
            "hasAuthSecret": bool(settings.AUTH_SECRET),
            "debug": settings.DEBUG,
            "passwordLength": len(settings.ACCESS_PASSWORD or ""),
            "secretLength": len(settings.AUTH_SECRET or ""),
        })
