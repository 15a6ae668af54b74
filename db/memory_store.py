import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from core.errors import MalformedDocument, NoCheckInFound
from models.attendance import AttendanceRecord
from models.branch import Branch
from models.user import UserProfile
from services.ledger import Mutation

logger = logging.getLogger(__name__)


class InMemoryStore:
    """
    Process-local stand-in for Firestore: users, branches and attendance.

    ``transact`` holds a per-(uid, date) lock for the whole read-check-write,
    which gives the same isolation a Firestore transaction gives. Timestamps
    come from the store's clock at commit, never from the caller.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._users: Dict[str, dict] = {}
        self._branches: Dict[str, dict] = {}
        self._attendance: Dict[Tuple[str, str], dict] = {}
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}
        # Transactions holding or waiting on each lock; the lock goes at zero
        self._lock_users: Dict[Tuple[str, str], int] = {}

    # --- Seeding ---

    def add_user(self, uid: str, **data) -> None:
        self._users[uid] = data

    def add_branch(self, branch_id: str, **data) -> None:
        self._branches[branch_id] = data

    def remove_branch(self, branch_id: str) -> None:
        self._branches.pop(branch_id, None)

    def raw_record(self, uid: str, date_key: str) -> Optional[dict]:
        doc = self._attendance.get((uid, date_key))
        return dict(doc) if doc is not None else None

    def record_count(self, uid: str) -> int:
        return sum(1 for owner, _ in self._attendance if owner == uid)

    # --- Identity ---

    async def get_user_profile(self, uid: str) -> Optional[UserProfile]:
        data = self._users.get(uid)
        if data is None:
            return None
        return UserProfile.from_document(uid, data)

    async def list_users(self, branch_id: Optional[str] = None) -> List[UserProfile]:
        profiles = []
        for uid, data in self._users.items():
            try:
                profiles.append(UserProfile.from_document(uid, data))
            except MalformedDocument as e:
                logger.warning("Skipping user %s in listing: %s", uid, e)
        if branch_id:
            profiles = [p for p in profiles if p.branch_id == branch_id]
        return sorted(profiles, key=lambda p: p.name)

    # --- Branch directory ---

    async def get_branch(self, branch_id: str) -> Optional[Branch]:
        data = self._branches.get(branch_id)
        if data is None:
            return None
        return Branch.from_document(branch_id, data)

    # --- Ledger ---

    async def read_record(self, uid: str, date_key: str) -> Optional[AttendanceRecord]:
        doc = self._attendance.get((uid, date_key))
        if doc is None:
            return None
        return AttendanceRecord.from_document(date_key, doc)

    async def list_records(self, uid: str, start_key: str, end_key: str) -> List[AttendanceRecord]:
        records = [
            AttendanceRecord.from_document(key, doc)
            for (owner, key), doc in self._attendance.items()
            if owner == uid and start_key <= key <= end_key
        ]
        return sorted(records, key=lambda r: r.date, reverse=True)

    async def transact(self, uid: str, date_key: str, mutation: Mutation) -> AttendanceRecord:
        key = (uid, date_key)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1

        try:
            async with lock:
                return await self._commit(key, mutation)
        finally:
            self._lock_users[key] -= 1
            if self._lock_users[key] == 0:
                del self._lock_users[key]
                del self._locks[key]

    async def _commit(self, key: Tuple[str, str], mutation: Mutation) -> AttendanceRecord:
        uid, date_key = key
        current = await self.read_record(uid, date_key)
        # Round-trip between the read and the commit
        await asyncio.sleep(0)

        write = mutation(current)
        if write.create:
            doc = {}
        else:
            existing = self._attendance.get(key)
            if existing is None:
                raise NoCheckInFound()
            doc = dict(existing)

        doc.update(write.fields)
        now = self._clock()
        for name in write.server_timestamp_fields:
            doc[name] = now

        self._attendance[key] = doc
        return AttendanceRecord.from_document(date_key, doc)

    def open_lock_count(self) -> int:
        return len(self._locks)
