"""System Log API Endpoints (super-admin only)."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.rbac import SuperAdminSession
from ....db.session import get_db
from ....repositories.system_log_repository import SystemLogRepository
from ....schemas.system_log import SystemLogListResponse, SystemLogResponse

router = APIRouter(prefix="/admin/system-logs")


@router.get(
    "",
    response_model=SystemLogListResponse,
    summary="List system logs",
    description="Audit entries, newest first, with optional filtering by action or actor.",
)
async def list_system_logs(
    admin: SuperAdminSession,
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(50, ge=1, le=200, description="Number of records to return"),
    action: str | None = Query(None, description="Filter by action"),
    user_id: str | None = Query(None, description="Filter by acting user"),
) -> SystemLogListResponse:
    repo = SystemLogRepository(db)
    logs = await repo.get_recent(skip=skip, limit=limit, action=action, user_id=user_id)
    total = await repo.count(action=action, user_id=user_id)

    return SystemLogListResponse(
        logs=[SystemLogResponse.model_validate(entry) for entry in logs],
        total=total,
        skip=skip,
        limit=limit,
    )
