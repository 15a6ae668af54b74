from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from core.deps import get_current_user, get_engine
from models.attendance import AttendanceRecord, AttendanceState
from models.location import LocationReport
from models.user import UserProfile
from services.attendance_engine import AttendanceEngine, AttendanceOutcome
from services.attendance_report import AttendanceHistory
from services.location_gate import GeolocationGate, ReportedLocationPlatform

# --- Pydantic Models for Responses ---


class AttendanceActionResponse(BaseModel):
    status: str = "success"
    message: str
    branch_id: str
    branch_name: str
    distance_meters: float
    data: AttendanceRecord


class TodayResponse(BaseModel):
    status: str = "success"
    date: str
    state: AttendanceState
    status_label: str
    data: Optional[AttendanceRecord] = None


def _action_response(outcome: AttendanceOutcome, message: str) -> AttendanceActionResponse:
    return AttendanceActionResponse(
        message=message,
        branch_id=outcome.branch.id,
        branch_name=outcome.branch.name,
        distance_meters=round(outcome.distance_meters, 1),
        data=outcome.record,
    )


# Defines API Endpoints
router = APIRouter()


# Check In Endpoint
@router.post("/check-in", response_model=AttendanceActionResponse)
async def check_in(
    data: LocationReport,
    engine: Annotated[AttendanceEngine, Depends(get_engine)],
    user: Annotated[UserProfile, Depends(get_current_user)],
):
    gate = GeolocationGate(ReportedLocationPlatform(data))
    outcome = await engine.check_in(user.uid, gate)
    return _action_response(outcome, "Checked in — welcome!")


# Check Out Endpoint
@router.post("/check-out", response_model=AttendanceActionResponse)
async def check_out(
    data: LocationReport,
    engine: Annotated[AttendanceEngine, Depends(get_engine)],
    user: Annotated[UserProfile, Depends(get_current_user)],
):
    gate = GeolocationGate(ReportedLocationPlatform(data))
    outcome = await engine.check_out(user.uid, gate)
    return _action_response(outcome, "Checked out — good work!")


# Get Today's Record
@router.get("/today", response_model=TodayResponse)
async def get_today(
    engine: Annotated[AttendanceEngine, Depends(get_engine)],
    user: Annotated[UserProfile, Depends(get_current_user)],
):
    today = await engine.today(user.uid)
    return TodayResponse(
        date=today.date,
        state=today.state,
        status_label=today.state.label,
        data=today.record,
    )


# Own History; defaults to the current week
@router.get("/history", response_model=AttendanceHistory)
async def get_history(
    engine: Annotated[AttendanceEngine, Depends(get_engine)],
    user: Annotated[UserProfile, Depends(get_current_user)],
    start: Optional[date] = None,
    end: Optional[date] = None,
):
    if start is None and end is None:
        return await engine.week_history(user.uid)

    try:
        return await engine.history(user.uid, start or end, end or start)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
