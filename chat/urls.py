from django.urls import path

from . import views


urlpatterns = [
    path("chat/", views.ChatRelayView.as_view(), name="chat-relay"),
    path("providers/", views.ProviderListView.as_view(), name="provider-list"),
    path("conversations/", views.ConversationListCreateView.as_view(), name="conversation-list-create"),
    path("conversations/<uuid:pk>/", views.ConversationDetailView.as_view(), name="conversation-detail"),
    path("conversations/<uuid:pk>/messages/", views.MessageListCreateView.as_view(), name="message-list-create"),
    path(
        "conversations/<uuid:pk>/messages/<int:message_id>/",
        views.MessageDetailView.as_view(),
        name="message-detail",
    ),
    path("auth/", views.AuthView.as_view(), name="auth"),
    path("debug-env/", views.DebugEnvView.as_view(), name="debug-env"),
]
