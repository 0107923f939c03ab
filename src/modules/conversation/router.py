"""Conversation, message and idea API routers."""

import uuid

from fastapi import APIRouter, Depends, Query, Request, Response
from slowapi import Limiter
from slowapi.util import get_remote_address

from src.models.enums import IdeaCategory
from src.modules.conversation.dependencies import get_conversation_service
from src.modules.conversation.schemas import (
    ConversationCreate,
    ConversationPage,
    ConversationResponse,
    IdeaPage,
    MessageCreate,
    MessageCursorPage,
    MessagePage,
    MessageResponse,
)
from src.modules.conversation.service import ConversationService
from src.modules.pagination.dependencies import pagination_params
from src.modules.pagination.schemas import PaginationParams
from src.modules.users.auth import AuthenticatedUser
from src.modules.users.dependencies import get_active_user

router = APIRouter(prefix="/conversations", tags=["conversations"])
ideas_router = APIRouter(prefix="/ideas", tags=["ideas"])

limiter = Limiter(key_func=get_remote_address)


# ---------------------------------------------------------------------------
# Conversations
# ---------------------------------------------------------------------------


@router.post("", response_model=ConversationResponse, status_code=201)
@limiter.limit("20/minute")
async def create_conversation(
    request: Request,
    body: ConversationCreate,
    user: AuthenticatedUser = Depends(get_active_user),
    service: ConversationService = Depends(get_conversation_service),
):
    return await service.create_conversation(user.id, body.message, title=body.title)


@router.get("", response_model=ConversationPage)
async def list_conversations(
    params: PaginationParams = Depends(pagination_params),
    user: AuthenticatedUser = Depends(get_active_user),
    service: ConversationService = Depends(get_conversation_service),
):
    page = await service.list_conversations(user.id, params)
    return ConversationPage.model_validate(page)


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_active_user),
    service: ConversationService = Depends(get_conversation_service),
):
    return await service.get_conversation(conversation_id, user.id)


@router.delete("/{conversation_id}", status_code=204)
async def delete_conversation(
    conversation_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_active_user),
    service: ConversationService = Depends(get_conversation_service),
):
    await service.delete_conversation(conversation_id, user.id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


@router.post("/{conversation_id}/messages", response_model=MessageResponse, status_code=201)
@limiter.limit("30/minute")
async def send_message(
    request: Request,
    conversation_id: uuid.UUID,
    body: MessageCreate,
    user: AuthenticatedUser = Depends(get_active_user),
    service: ConversationService = Depends(get_conversation_service),
):
    return await service.send_message(conversation_id, user.id, body.content)


@router.get("/{conversation_id}/messages", response_model=MessagePage)
async def list_messages(
    conversation_id: uuid.UUID,
    params: PaginationParams = Depends(pagination_params),
    user: AuthenticatedUser = Depends(get_active_user),
    service: ConversationService = Depends(get_conversation_service),
):
    page = await service.list_messages(conversation_id, user.id, params)
    return MessagePage.model_validate(page)


@router.get("/{conversation_id}/messages/cursor", response_model=MessageCursorPage)
async def list_messages_cursor(
    conversation_id: uuid.UUID,
    params: PaginationParams = Depends(pagination_params),
    user: AuthenticatedUser = Depends(get_active_user),
    service: ConversationService = Depends(get_conversation_service),
):
    page = await service.list_messages_cursor(conversation_id, user.id, params)
    return MessageCursorPage.model_validate(page)


# ---------------------------------------------------------------------------
# Ideas
# ---------------------------------------------------------------------------


@ideas_router.get("", response_model=IdeaPage)
async def list_ideas(
    category: IdeaCategory | None = Query(None),
    params: PaginationParams = Depends(pagination_params),
    user: AuthenticatedUser = Depends(get_active_user),
    service: ConversationService = Depends(get_conversation_service),
):
    page = await service.list_ideas(user.id, params, category)
    return IdeaPage.model_validate(page)
