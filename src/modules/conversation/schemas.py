"""Pydantic v2 schemas for conversation, message and idea endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from pydantic.alias_generators import to_camel

from src.models.enums import IdeaCategory, IdeaIcon, Sender
from src.modules.pagination.schemas import PageMetaSchema

# Blank or whitespace-only text is rejected
MessageText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=10000)]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ConversationCreate(_CamelModel):
    """Request body for POST /conversations."""

    title: str | None = Field(None, max_length=255)
    message: MessageText


class MessageCreate(_CamelModel):
    """Request body for POST /conversations/{conversation_id}/messages."""

    content: MessageText


class IdeaResponse(_CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    conversation_id: uuid.UUID
    message_id: uuid.UUID
    title: str
    summary: str
    category: IdeaCategory
    icon: IdeaIcon
    problem_solved: str
    target_audience: str
    core_features: list[str] = Field(default_factory=list)
    benefits: list[str] = Field(default_factory=list)
    tech_stack: list[str] = Field(default_factory=list)
    monetization: list[str] = Field(default_factory=list)
    challenges: list[str] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class MessageResponse(_CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    conversation_id: uuid.UUID
    content: str
    sender: Sender
    contains_idea: bool
    idea_id: uuid.UUID | None = None
    idea: IdeaResponse | None = None
    created_at: datetime
    updated_at: datetime


class ConversationResponse(_CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    last_message_at: datetime
    created_at: datetime
    updated_at: datetime


class ConversationPage(_CamelModel):
    data: list[ConversationResponse]
    meta: PageMetaSchema


class MessagePage(_CamelModel):
    data: list[MessageResponse]
    meta: PageMetaSchema


class MessageCursorPage(_CamelModel):
    data: list[MessageResponse]
    has_next_page: bool
    next_cursor: str | None = None


class IdeaPage(_CamelModel):
    data: list[IdeaResponse]
    meta: PageMetaSchema
