import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Awaitable, Callable, List, Optional, Protocol, Set

from core.errors import OutsideGeofence, UserProfileNotFound
from models.attendance import AttendanceRecord, AttendanceState, BranchSnapshot, state_of
from models.branch import Branch
from models.user import UserProfile
from services.attendance_report import (
    AttendanceHistory,
    TeamSummary,
    build_history,
    build_team_summary,
    check_history_range,
)
from services.distance_evaluator import BranchCache, BranchDirectory, DistanceEvaluator
from services.ledger import LedgerStorage, LedgerWriter
from services.location_gate import GeolocationGate
from utils.timezone_helpers import (
    date_key,
    date_key_for_day,
    from_utc_to_local,
    get_month_range,
    get_week_range,
    resolve_timezone,
)

logger = logging.getLogger(__name__)


class IdentityDirectory(Protocol):
    async def get_user_profile(self, uid: str) -> Optional[UserProfile]: ...

    async def list_users(self, branch_id: Optional[str] = None) -> List[UserProfile]: ...


@dataclass(frozen=True)
class AttendanceOutcome:
    record: AttendanceRecord
    branch: Branch
    distance_meters: float


@dataclass(frozen=True)
class TodayStatus:
    date: str
    state: AttendanceState
    record: Optional[AttendanceRecord]


LedgerAction = Callable[[str, str, BranchSnapshot], Awaitable[AttendanceRecord]]


class AttendanceEngine:
    """
    Check-in/check-out for staff and the attendance views managers read.

    An action is: load profile -> load branch from storage -> get a fresh
    position -> measure the geofence -> run the ledger transaction. Nothing
    is written unless every step before the transaction passed.
    """

    def __init__(
        self,
        identity: IdentityDirectory,
        branches: BranchDirectory,
        ledger: LedgerStorage,
        *,
        cache: Optional[BranchCache] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._identity = identity
        self._storage = ledger
        self._ledger = LedgerWriter(ledger)
        self.evaluator = DistanceEvaluator(branches, cache)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._in_flight: Set[asyncio.Task] = set()

    # --- Profile / branch ---

    async def get_profile(self, uid: str) -> UserProfile:
        profile = await self._identity.get_user_profile(uid)
        if profile is None:
            raise UserProfileNotFound()
        return profile

    async def branch_geofence(self, uid: str) -> Branch:
        profile = await self.get_profile(uid)
        return await self.evaluator.resolve_branch(profile)

    def invalidate_branch(self, branch_id: str) -> None:
        self.evaluator.cache.invalidate(branch_id)

    def today_key(self, profile: UserProfile) -> str:
        return date_key(self._clock(), resolve_timezone(profile.timezone))

    def local_today(self, profile: UserProfile) -> date:
        return from_utc_to_local(self._clock(), resolve_timezone(profile.timezone)).date()

    # --- Attendance actions ---

    async def check_in(self, uid: str, gate: GeolocationGate) -> AttendanceOutcome:
        return await self._perform(uid, gate, "check-in", self._ledger.check_in)

    async def check_out(self, uid: str, gate: GeolocationGate) -> AttendanceOutcome:
        return await self._perform(uid, gate, "check-out", self._ledger.check_out)

    async def _perform(
        self, uid: str, gate: GeolocationGate, action: str, write: LedgerAction
    ) -> AttendanceOutcome:
        profile = await self.get_profile(uid)
        branch = await self.evaluator.resolve_branch(profile, fresh=True)

        # Measured here, right before the write, never reused from an earlier screen
        position = await gate.current_position()
        distance, inside = self.evaluator.within_radius(position, branch)
        if not inside:
            logger.info(
                "Rejected %s for %s: %.0f m from %s (limit %.0f m)",
                action, uid, distance, branch.id, branch.effective_radius,
            )
            raise OutsideGeofence(distance, branch.effective_radius, branch.name)

        snapshot = BranchSnapshot(
            branch_id=branch.id,
            branch_name=branch.name,
            latitude=branch.latitude,
            longitude=branch.longitude,
            distance_meters=distance,
        )
        key = self.today_key(profile)
        record = await self._complete(write(uid, key, snapshot), action, uid)
        return AttendanceOutcome(record=record, branch=branch, distance_meters=distance)

    async def _complete(self, write: Awaitable[AttendanceRecord], action: str, uid: str) -> AttendanceRecord:
        """Run the ledger write so that a caller who stops waiting does not cancel it."""
        task = asyncio.ensure_future(write)
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            logger.warning("Caller left during %s for %s; letting the write finish", action, uid)
            task.add_done_callback(lambda t: self._log_abandoned(t, action, uid))
            raise

    @staticmethod
    def _log_abandoned(task: asyncio.Task, action: str, uid: str) -> None:
        if task.cancelled():
            logger.warning("Abandoned %s for %s was cancelled", action, uid)
        elif task.exception() is not None:
            logger.warning("Abandoned %s for %s failed: %s", action, uid, task.exception())
        else:
            logger.info("Abandoned %s for %s completed", action, uid)

    async def wait_for_pending(self) -> None:
        """Wait for ledger writes whose callers went away (used on shutdown)."""
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    # --- Views ---

    async def today(self, uid: str) -> TodayStatus:
        profile = await self.get_profile(uid)
        key = self.today_key(profile)
        record = await self._storage.read_record(uid, key)
        return TodayStatus(date=key, state=state_of(record), record=record)

    async def history(self, uid: str, start: date, end: date) -> AttendanceHistory:
        start, end = check_history_range(start, end)
        await self.get_profile(uid)
        records = await self._storage.list_records(uid, date_key_for_day(start), date_key_for_day(end))
        return build_history(uid, start, end, records)

    async def week_history(self, uid: str, day: Optional[date] = None) -> AttendanceHistory:
        if day is None:
            day = self.local_today(await self.get_profile(uid))
        start, end = get_week_range(day)
        return await self.history(uid, start, end)

    async def month_history(self, uid: str) -> AttendanceHistory:
        start, end = get_month_range(self.local_today(await self.get_profile(uid)))
        return await self.history(uid, start, end)

    async def today_summary(self, branch_id: Optional[str] = None) -> TeamSummary:
        profiles = await self._identity.list_users(branch_id)
        keys = {p.uid: self.today_key(p) for p in profiles}

        records = await asyncio.gather(
            *(self._storage.read_record(p.uid, keys[p.uid]) for p in profiles)
        )
        by_uid = {p.uid: record for p, record in zip(profiles, records)}

        summary_key = date_key(self._clock(), resolve_timezone(None))
        return build_team_summary(summary_key, profiles, by_uid, branch_id=branch_id)
