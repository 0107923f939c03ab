"""Connection registry and operator endpoints for notifications."""

from fastapi import APIRouter, Depends, Query, Request, Response
from pydantic import BaseModel, Field

from src.modules.notifications.gateway import RedisNotificationGateway
from src.modules.notifications.queue import FailedJobLog
from src.modules.users.auth import AuthenticatedUser, get_current_user, require_admin

router = APIRouter(prefix="/connections", tags=["notifications"])
jobs_router = APIRouter(prefix="/admin/jobs", tags=["admin"])


class ConnectionRegister(BaseModel):
    handle: str = Field(..., min_length=1, max_length=255)


def get_gateway(request: Request) -> RedisNotificationGateway:
    return request.app.state.gateway


def get_failed_job_log(request: Request) -> FailedJobLog:
    return request.app.state.failed_jobs


@router.put("", status_code=204)
async def register_connection(
    body: ConnectionRegister,
    user: AuthenticatedUser = Depends(get_current_user),
    gateway: RedisNotificationGateway = Depends(get_gateway),
):
    """Called by the realtime transport when a client connects."""
    await gateway.register_connection(user.id, body.handle)
    return Response(status_code=204)


@router.delete("", status_code=204)
async def clear_connection(
    user: AuthenticatedUser = Depends(get_current_user),
    gateway: RedisNotificationGateway = Depends(get_gateway),
):
    await gateway.clear_connection(user.id)
    return Response(status_code=204)


@jobs_router.get("/failed")
def list_failed_jobs(
    limit: int = Query(50, ge=1, le=200),
    _admin: AuthenticatedUser = Depends(require_admin),
    failed_jobs: FailedJobLog = Depends(get_failed_job_log),
) -> dict:
    """Jobs that exhausted their retries, most recent first."""
    return {"data": failed_jobs.list_failed_jobs(limit)}
