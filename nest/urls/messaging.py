"""Messaging URL patterns."""

from django.urls import path

from ..api import views

urlpatterns = [
    path("api/conversations/", views.ConversationListView.as_view(), name="conversation_list"),
    path(
        "api/conversations/<int:user_id>/messages/",
        views.ConversationMessagesView.as_view(),
        name="conversation_messages",
    ),
]
