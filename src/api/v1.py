"""Centralized v1 API router: all module routers are included here."""

from fastapi import APIRouter

from src.modules.conversation.router import ideas_router
from src.modules.conversation.router import router as conversation_router
from src.modules.notifications.router import jobs_router
from src.modules.notifications.router import router as connections_router

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(conversation_router)
v1_router.include_router(ideas_router)
v1_router.include_router(connections_router)
v1_router.include_router(jobs_router)
