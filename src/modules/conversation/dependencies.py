"""Dependency accessors for objects built in the application lifespan."""

from fastapi import Request

from src.modules.conversation.service import ConversationService


def get_conversation_service(request: Request) -> ConversationService:
    return request.app.state.conversations
