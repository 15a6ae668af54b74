import logging
from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from core.deps import get_engine, require_manager_role
from models.user import UserProfile
from services.attendance_engine import AttendanceEngine
from services.attendance_report import AttendanceHistory, TeamSummary

logger = logging.getLogger(__name__)

# --- Router Definition ---
router = APIRouter()


# Who is in today, optionally for one branch
@router.get("/today", response_model=TeamSummary)
async def get_today_summary(
    engine: Annotated[AttendanceEngine, Depends(get_engine)],
    manager: Annotated[UserProfile, Depends(require_manager_role)],
    branch_id: Optional[str] = None,
):
    return await engine.today_summary(branch_id)


# A user's attendance over an inclusive date range
@router.get("/users/{uid}", response_model=AttendanceHistory)
async def get_user_history(
    uid: str,
    engine: Annotated[AttendanceEngine, Depends(get_engine)],
    manager: Annotated[UserProfile, Depends(require_manager_role)],
    start: Annotated[date, Query(description="First day, YYYY-MM-DD")],
    end: Annotated[date, Query(description="Last day, YYYY-MM-DD")],
):
    try:
        return await engine.history(uid, start, end)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


# Monday..Sunday around a given day (today when omitted)
@router.get("/users/{uid}/week", response_model=AttendanceHistory)
async def get_user_week(
    uid: str,
    engine: Annotated[AttendanceEngine, Depends(get_engine)],
    manager: Annotated[UserProfile, Depends(require_manager_role)],
    day: Optional[date] = None,
):
    return await engine.week_history(uid, day)


@router.get("/users/{uid}/month", response_model=AttendanceHistory)
async def get_user_month(
    uid: str,
    engine: Annotated[AttendanceEngine, Depends(get_engine)],
    manager: Annotated[UserProfile, Depends(require_manager_role)],
):
    return await engine.month_history(uid)


# Drop a cached branch after it was edited
@router.post("/branches/{branch_id}/invalidate-cache")
async def invalidate_branch_cache(
    branch_id: str,
    engine: Annotated[AttendanceEngine, Depends(get_engine)],
    manager: Annotated[UserProfile, Depends(require_manager_role)],
):
    engine.invalidate_branch(branch_id)
    logger.info("Manager %s invalidated cached branch %s", manager.uid, branch_id)
    return {"status": "success", "message": f"Branch '{branch_id}' cache cleared."}
