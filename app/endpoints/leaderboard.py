from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.schemas.response import APIResponse
from app.schemas.leaderboard import (
    AdminRefreshResponse, AdminResetResponse, AttemptValidationSummary,
    DepartmentLeaderboardResponse, LeaderboardPage, LeaderboardStatus
)
from app.services.leaderboard import leaderboard_service
from app.utils import deps

router = APIRouter()


@router.get("/departments/{department_id}", response_model=APIResponse[LeaderboardPage])
async def get_department_leaderboard(
    *,
    request: Request,
    db: Session = Depends(deps.get_db),
    caller_id: Optional[str] = Depends(deps.get_current_caller_id),
    department_id: str,
    force_refresh: bool = Query(False),
    limit: Optional[int] = Query(None),
    offset: int = Query(0)
):
    page = await leaderboard_service.get_department_leaderboard(
        db, caller_id, department_id, force_refresh=force_refresh, limit=limit, offset=offset
    )
    request.state.department_id = department_id
    request.state.cache_status = "HIT" if page.from_cache else "MISS"
    return APIResponse(message="Leaderboard retrieved successfully", data=page)


@router.get("/departments", response_model=APIResponse[DepartmentLeaderboardResponse])
async def get_global_department_leaderboard(
    db: Session = Depends(deps.get_db),
    caller_id: Optional[str] = Depends(deps.get_current_caller_id)
):
    rankings = await leaderboard_service.get_global_department_leaderboard(db, caller_id)
    return APIResponse(message="Department leaderboard retrieved successfully", data=rankings)


@router.post("/admin/cache/refresh", response_model=APIResponse[AdminRefreshResponse])
async def admin_refresh_cache(
    db: Session = Depends(deps.get_db),
    caller_id: Optional[str] = Depends(deps.get_current_caller_id),
    department_id: Optional[str] = Query(None)
):
    result = await leaderboard_service.admin_refresh_cache(db, caller_id, department_id=department_id)
    return APIResponse(message=result.message, data=result)


@router.post("/admin/rankings/recalculate", response_model=APIResponse[AdminRefreshResponse])
async def admin_recalculate_rankings(
    db: Session = Depends(deps.get_db),
    caller_id: Optional[str] = Depends(deps.get_current_caller_id)
):
    result = await leaderboard_service.admin_recalculate_rankings(db, caller_id)
    return APIResponse(message=result.message, data=result)


@router.delete("/admin/cache/{department_id}", response_model=APIResponse[AdminResetResponse])
async def admin_reset_cache(
    department_id: str,
    db: Session = Depends(deps.get_db),
    caller_id: Optional[str] = Depends(deps.get_current_caller_id)
):
    result = await leaderboard_service.admin_reset_cache(db, caller_id, department_id)
    return APIResponse(message=result.message, data=result)


@router.get("/admin/status", response_model=APIResponse[LeaderboardStatus])
async def admin_get_cache_status(
    db: Session = Depends(deps.get_db),
    caller_id: Optional[str] = Depends(deps.get_current_caller_id)
):
    status = await leaderboard_service.admin_get_cache_status(db, caller_id)
    return APIResponse(message="Leaderboard status retrieved successfully", data=status)


@router.get("/admin/departments/{department_id}/diagnostics", response_model=APIResponse[AttemptValidationSummary])
async def admin_get_attempt_diagnostics(
    department_id: str,
    db: Session = Depends(deps.get_db),
    caller_id: Optional[str] = Depends(deps.get_current_caller_id)
):
    summary = await leaderboard_service.admin_get_attempt_diagnostics(db, caller_id, department_id)
    return APIResponse(message="Attempt diagnostics retrieved successfully", data=summary)
