import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from core import config
from core.firebase import verify_id_token
from db.session import get_store
from models.user import UserProfile
from services.attendance_engine import AttendanceEngine

logger = logging.getLogger(__name__)

# Standard credentials exception
CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)


@lru_cache(maxsize=1)
def get_engine() -> AttendanceEngine:
    store = get_store()
    return AttendanceEngine(identity=store, branches=store, ledger=store)


def _uid_from_token(token: str) -> str:
    # Local development against the in-memory store: the bearer token is the uid
    if config.STORAGE_BACKEND == "memory":
        return token

    try:
        decoded = verify_id_token(token)
    except Exception:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token"
        )
    uid = decoded.get("uid")
    if not uid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Token did not contain uid"
        )
    return uid


# Checks Firebase Auth Token and Loads the User Profile
async def get_current_user(
    request: Request,
    engine: Annotated[AttendanceEngine, Depends(get_engine)],
) -> UserProfile:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise CREDENTIALS_EXCEPTION

    token = auth_header.split(" ", 1)[1].strip()
    if not token:
        raise CREDENTIALS_EXCEPTION

    # Missing profile surfaces as UserProfileNotFound through the error handler
    return await engine.get_profile(_uid_from_token(token))


# Manager/Admin Role Check Dependency
async def require_manager_role(
    current_user: Annotated[UserProfile, Depends(get_current_user)],
) -> UserProfile:
    if not current_user.is_manager:
        logger.info("User %s with role %s denied manager access", current_user.uid, current_user.role.value)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User doesn't have sufficient privileges for this action",
        )
    return current_user
