"""FastAPI dependencies that make sure the caller has a local user row."""

from fastapi import Depends, Request

from src.modules.users.auth import AuthenticatedUser, get_current_user
from src.modules.users.service import UserService


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


async def get_active_user(
    user: AuthenticatedUser = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
) -> AuthenticatedUser:
    """Authenticated caller whose row exists, so quota and ownership can apply."""
    await users.ensure_user(user.id, user.email, user.role)
    return user
