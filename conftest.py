"""
Shared fixtures: an in-memory store seeded with branches and users, a fixed
clock, and fake location platforms. Nothing here talks to Firebase.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from db.memory_store import InMemoryStore
from models.location import PermissionStatus, Position
from services.attendance_engine import AttendanceEngine
from services.location_gate import GeolocationGate

BRANCH_LAT = 12.9716
BRANCH_LNG = 77.5946

# 04:30 UTC is 10:00 in Asia/Kolkata
DEFAULT_NOW = datetime(2026, 3, 10, 4, 30, tzinfo=timezone.utc)
TODAY_KEY = "2026-03-10"


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakePlatform:
    """Scriptable stand-in for a device location subsystem."""

    def __init__(
        self,
        position: Position | None = None,
        *,
        service_enabled: bool = True,
        permission: PermissionStatus = PermissionStatus.GRANTED,
        prompt_result: PermissionStatus | None = None,
        delay: float = 0,
    ):
        self.position = position
        self.service_enabled = service_enabled
        self.permission = permission
        self.prompt_result = prompt_result
        self.delay = delay
        self.prompts = 0
        self.fixes = 0

    async def is_service_enabled(self) -> bool:
        return self.service_enabled

    async def check_permission(self) -> PermissionStatus:
        return self.permission

    async def request_permission(self) -> PermissionStatus:
        self.prompts += 1
        if self.prompt_result is not None:
            self.permission = self.prompt_result
        return self.permission

    async def get_current_position(self, high_accuracy: bool = True) -> Position:
        self.fixes += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.position


@pytest.fixture
def clock():
    return FixedClock(DEFAULT_NOW)


@pytest.fixture
def store_clock():
    # Storage has its own clock so tests can tell server time from device time
    return FixedClock(DEFAULT_NOW + timedelta(seconds=7))


@pytest.fixture
def store(store_clock):
    s = InMemoryStore(clock=store_clock)
    s.add_branch(
        "MG-ROAD", name="MG Road", lat=BRANCH_LAT, lng=BRANCH_LNG, radiusMeters=1000
    )
    s.add_branch("WHITEFIELD", name="Whitefield", lat=12.9698, lng=77.7500)
    s.add_branch("TINY", name="Kiosk", lat=BRANCH_LAT, lng=BRANCH_LNG, radiusMeters=50)

    s.add_user(
        "u1", name="Asha", email="asha@example.com", role="staff",
        branchId="MG-ROAD", branchName="MG Road", timezone="Asia/Kolkata",
    )
    s.add_user("u2", name="Bala", role="staff", branchId="MG-ROAD", branchName="MG Road")
    s.add_user("u-white", name="Chitra", role="staff", branchId="WHITEFIELD", branchName="Whitefield")
    s.add_user("u-tiny", name="Dev", role="staff", branchId="TINY", branchName="Kiosk")
    s.add_user("u-unassigned", name="Esha", role="staff")
    s.add_user("u-gone", name="Farid", role="staff", branchId="CLOSED", branchName="Closed")
    s.add_user("mgr", name="Gita", role="manager", branchId="MG-ROAD", branchName="MG Road")
    return s


@pytest.fixture
def engine(store, clock):
    return AttendanceEngine(identity=store, branches=store, ledger=store, clock=clock)


@pytest.fixture
def platform_at():
    def make(lat: float, lng: float, **kwargs) -> FakePlatform:
        return FakePlatform(Position(latitude=lat, longitude=lng, accuracy_meters=5), **kwargs)

    return make


@pytest.fixture
def gate_at(platform_at):
    def make(lat: float, lng: float, **kwargs) -> GeolocationGate:
        return GeolocationGate(platform_at(lat, lng, **kwargs), timeout_seconds=1)

    return make
