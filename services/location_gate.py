import asyncio
import logging
from typing import Optional, Protocol

from core import config
from core.errors import LocationUnavailable, PermissionDenied, PermissionDeniedForever
from models.location import LocationReport, PermissionStatus, Position

logger = logging.getLogger(__name__)


class LocationPlatform(Protocol):
    """What the gate needs from the device's location subsystem."""

    async def is_service_enabled(self) -> bool: ...

    async def check_permission(self) -> PermissionStatus: ...

    async def request_permission(self) -> PermissionStatus: ...

    async def get_current_position(self, high_accuracy: bool = True) -> Position: ...


class GeolocationGate:
    """
    Yields the current device position or the reason there is none.

    Every call goes back to the platform; fixes are never reused. Calls are
    serialized so at most one permission prompt is pending per gate.
    """

    def __init__(self, platform: LocationPlatform, timeout_seconds: Optional[float] = None):
        self._platform = platform
        self._timeout = config.LOCATION_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
        self._lock = asyncio.Lock()

    async def current_position(self) -> Position:
        async with self._lock:
            if not await self._platform.is_service_enabled():
                raise LocationUnavailable()

            permission = await self._platform.check_permission()
            if permission == PermissionStatus.DENIED:
                permission = await self._platform.request_permission()
                if permission == PermissionStatus.DENIED:
                    raise PermissionDenied()
            if permission == PermissionStatus.DENIED_FOREVER:
                raise PermissionDeniedForever()

            try:
                return await asyncio.wait_for(
                    self._platform.get_current_position(high_accuracy=True),
                    timeout=self._timeout,
                )
            except asyncio.TimeoutError:
                logger.warning("Location fix timed out after %.1fs", self._timeout)
                raise LocationUnavailable(
                    "Could not get a location fix in time. Please try again."
                )


class ReportedLocationPlatform:
    """
    Platform backed by the location report a mobile client sends with a request.

    The server cannot show a permission dialog, so ``request_permission`` hands
    back whatever the device already reported.
    """

    def __init__(self, report: LocationReport):
        self._report = report

    async def is_service_enabled(self) -> bool:
        return self._report.service_enabled

    async def check_permission(self) -> PermissionStatus:
        return self._report.permission

    async def request_permission(self) -> PermissionStatus:
        return self._report.permission

    async def get_current_position(self, high_accuracy: bool = True) -> Position:
        if self._report.latitude is None or self._report.longitude is None:
            raise LocationUnavailable(
                "Location (latitude and longitude) is required to check in/out."
            )
        return Position(
            latitude=self._report.latitude,
            longitude=self._report.longitude,
            accuracy_meters=self._report.accuracy,
        )
