"""
Attendance ledger: the per-user, per-day record and its state machine.

    NO_RECORD --check_in--> CHECKED_IN --check_out--> CHECKED_OUT

Mutations are pure functions of the record read inside the transaction.
A storage backend may call them more than once if its transaction retries,
and any AttendanceError they raise aborts the transaction without a write.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol

from core.errors import AlreadyCheckedIn, AlreadyCheckedOut, NoCheckInFound, NotCheckedInYet
from models.attendance import AttendanceRecord, BranchSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerWrite:
    # True: write a whole new document. False: merge into the existing one.
    create: bool
    fields: dict = field(default_factory=dict)
    # Fields the storage backend stamps with its own clock at commit
    server_timestamp_fields: tuple = ()


Mutation = Callable[[Optional[AttendanceRecord]], LedgerWrite]


class LedgerStorage(Protocol):
    async def read_record(self, uid: str, date_key: str) -> Optional[AttendanceRecord]: ...

    async def list_records(
        self, uid: str, start_key: str, end_key: str
    ) -> List[AttendanceRecord]: ...

    async def transact(self, uid: str, date_key: str, mutation: Mutation) -> AttendanceRecord: ...


def check_in_mutation(date_key: str, snapshot: BranchSnapshot) -> Mutation:
    def mutate(current: Optional[AttendanceRecord]) -> LedgerWrite:
        if current is not None and current.check_in is not None:
            raise AlreadyCheckedIn()

        fields = {
            "branchId": snapshot.branch_id,
            "branchName": snapshot.branch_name,
            "branchLat": snapshot.latitude,
            "branchLng": snapshot.longitude,
            "branchDistanceMeters": snapshot.distance_meters,
        }
        if current is None:
            fields["date"] = date_key
            fields["checkOut"] = None

        return LedgerWrite(
            create=current is None,
            fields=fields,
            server_timestamp_fields=("checkIn",),
        )

    return mutate


def check_out_mutation(snapshot: BranchSnapshot) -> Mutation:
    def mutate(current: Optional[AttendanceRecord]) -> LedgerWrite:
        if current is None:
            raise NoCheckInFound()
        if current.check_in is None:
            raise NotCheckedInYet()
        if current.check_out is not None:
            raise AlreadyCheckedOut()

        return LedgerWrite(
            create=False,
            fields={
                "checkoutBranchId": snapshot.branch_id,
                "checkoutBranchName": snapshot.branch_name,
                "checkoutBranchDistanceMeters": snapshot.distance_meters,
            },
            server_timestamp_fields=("checkOut",),
        )

    return mutate


class LedgerWriter:

    def __init__(self, storage: LedgerStorage):
        self._storage = storage

    async def check_in(self, uid: str, date_key: str, snapshot: BranchSnapshot) -> AttendanceRecord:
        record = await self._storage.transact(uid, date_key, check_in_mutation(date_key, snapshot))
        logger.info("Check-in recorded for %s on %s at branch %s", uid, date_key, snapshot.branch_id)
        return record

    async def check_out(self, uid: str, date_key: str, snapshot: BranchSnapshot) -> AttendanceRecord:
        record = await self._storage.transact(uid, date_key, check_out_mutation(snapshot))
        logger.info("Check-out recorded for %s on %s at branch %s", uid, date_key, snapshot.branch_id)
        return record
