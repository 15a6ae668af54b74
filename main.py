import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.admin_attendance_routes import router as admin_attendance_router
from api.attendance_routes import router as attendance_router
from api.branch_routes import router as branch_router
from core import config
from core.deps import get_engine
from core.errors import AttendanceError

# Configure logging
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logging.getLogger("google").setLevel(logging.WARNING)
logging.getLogger("urllib3").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

# This file is the control center of the whole application

# Construct the list of allowed origins, always including both dev and production
allowed_origins_list = [
    config.DEV_DOMAIN,
    config.PRODUCTION_DOMAIN,
    "http://localhost:3000",
    "http://127.0.0.1:5173",
]
allowed_origins_list = list(set([origin for origin in allowed_origins_list if origin]))

logger.info("CORS: Allowing origins: %s", allowed_origins_list)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Attendance service starting with %s storage", config.STORAGE_BACKEND)
    yield
    # Let check-ins/outs whose clients disconnected finish before exit
    await get_engine().wait_for_pending()


# Starts Fast API Up; Init
app = FastAPI(title="DOR Attendance API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AttendanceError)
async def attendance_error_handler(request: Request, exc: AttendanceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "An internal error occurred.", "code": "internal_error", "retryable": True},
    )


app.include_router(attendance_router, prefix="/attendance", tags=["Attendance"])
app.include_router(branch_router, prefix="/branches", tags=["Branches", "Geofence"])
app.include_router(admin_attendance_router, prefix="/admin/attendance", tags=["Admin", "Attendance"])


@app.get("/health", tags=["Health"])
def health_check():
    return {"status": "ok", "storage": config.STORAGE_BACKEND}
