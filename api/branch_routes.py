from typing import Annotated, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from core.deps import get_current_user, get_engine
from models.user import UserProfile
from services.attendance_engine import AttendanceEngine

router = APIRouter()

# --- Pydantic Models for Response ---


class BranchGeofenceResponse(BaseModel):
    branch_id: str
    name: str
    address: Optional[str] = None
    center_lat: float
    center_lng: float
    radius_meters: float


# --- API Endpoints ---


@router.get("/mine/geofence", response_model=BranchGeofenceResponse)
async def get_my_branch_geofence(
    engine: Annotated[AttendanceEngine, Depends(get_engine)],
    user: Annotated[UserProfile, Depends(get_current_user)],
):
    """
    Geofence (center and radius) of the branch the signed-in user is assigned to.

    Served from the engine's branch cache; check-in/out re-read the branch anyway.
    """
    branch = await engine.branch_geofence(user.uid)

    return BranchGeofenceResponse(
        branch_id=branch.id,
        name=branch.name,
        address=branch.address,
        center_lat=branch.latitude,
        center_lng=branch.longitude,
        radius_meters=branch.effective_radius,
    )
