from datetime import datetime

from fastapi import APIRouter, Depends, Query

from marketplace.routers.deps import Identity, resolve_identity
from marketplace.schemas.activity_log import LogMethod
from marketplace.services.activity_log_service import ActivityLogService, get_activity_log_service

router = APIRouter(prefix="/logs", tags=["Logs"])


@router.get("")
async def get_logs(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=100),
    method: LogMethod | None = Query(default=None),
    status_code: int | None = Query(default=None, alias="statusCode"),
    route: str | None = Query(default=None),
    start_date: datetime | None = Query(default=None, alias="startDate"),
    end_date: datetime | None = Query(default=None, alias="endDate"),
    identity: Identity = Depends(resolve_identity),
    service: ActivityLogService = Depends(get_activity_log_service),
):
    """Activity logs for the caller's organization, newest first."""
    result = await service.get_logs(
        page=page,
        limit=limit,
        organization_id=identity.organization_id,
        method=method,
        status_code=status_code,
        route=route,
        start_date=start_date,
        end_date=end_date,
    )
    return {"success": True, "data": result}


@router.get("/stats")
async def get_log_stats(
    identity: Identity = Depends(resolve_identity),
    service: ActivityLogService = Depends(get_activity_log_service),
):
    """Request, error and search counts for the caller's organization."""
    stats = await service.get_log_stats(identity.organization_id)
    return {"success": True, "data": stats}
