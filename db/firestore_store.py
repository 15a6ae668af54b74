import asyncio
import logging
from typing import Callable, List, Optional, TypeVar

from firebase_admin import firestore
from google.api_core.exceptions import GoogleAPICallError, RetryError
from google.cloud.firestore_v1.base_query import FieldFilter

from core.errors import MalformedDocument, StorageUnavailable
from core.firebase import get_firestore_client
from models.attendance import AttendanceRecord
from models.branch import Branch
from models.user import UserProfile
from services.ledger import Mutation

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FirestoreStore:
    """
    Firestore-backed identity, branch directory and ledger.

    Layout:
        users/{uid}
        users/{uid}/attendance/{YYYY-MM-DD}
        branches/{branchId}

    The Admin SDK client is synchronous, so every call runs off the event loop.
    """

    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = get_firestore_client()
        return self._client

    def _user_ref(self, uid: str):
        return self.client.collection("users").document(uid)

    def _attendance_ref(self, uid: str, date_key: str):
        return self._user_ref(uid).collection("attendance").document(date_key)

    async def _call(self, fn: Callable[[], T]) -> T:
        try:
            return await asyncio.to_thread(fn)
        except (GoogleAPICallError, RetryError) as e:
            logger.error("Firestore call failed: %s", e, exc_info=True)
            raise StorageUnavailable() from e

    # --- Identity ---

    async def get_user_profile(self, uid: str) -> Optional[UserProfile]:
        snapshot = await self._call(lambda: self._user_ref(uid).get())
        if not snapshot.exists:
            return None
        return UserProfile.from_document(uid, snapshot.to_dict() or {})

    async def list_users(self, branch_id: Optional[str] = None) -> List[UserProfile]:
        query = self.client.collection("users")
        if branch_id:
            query = query.where(filter=FieldFilter("branchId", "==", branch_id))

        docs = await self._call(lambda: list(query.stream()))
        profiles = []
        for doc in docs:
            try:
                profiles.append(UserProfile.from_document(doc.id, doc.to_dict() or {}))
            except MalformedDocument as e:
                logger.warning("Skipping user %s in listing: %s", doc.id, e)
        return sorted(profiles, key=lambda p: p.name)

    # --- Branch directory ---

    async def get_branch(self, branch_id: str) -> Optional[Branch]:
        snapshot = await self._call(
            lambda: self.client.collection("branches").document(branch_id).get()
        )
        if not snapshot.exists:
            return None
        return Branch.from_document(snapshot.id, snapshot.to_dict() or {})

    # --- Ledger ---

    async def read_record(self, uid: str, date_key: str) -> Optional[AttendanceRecord]:
        snapshot = await self._call(lambda: self._attendance_ref(uid, date_key).get())
        if not snapshot.exists:
            return None
        return AttendanceRecord.from_document(date_key, snapshot.to_dict() or {})

    async def list_records(self, uid: str, start_key: str, end_key: str) -> List[AttendanceRecord]:
        query = (
            self._user_ref(uid)
            .collection("attendance")
            .where(filter=FieldFilter("date", ">=", start_key))
            .where(filter=FieldFilter("date", "<=", end_key))
            .order_by("date", direction=firestore.Query.DESCENDING)
        )
        docs = await self._call(lambda: list(query.stream()))
        return [AttendanceRecord.from_document(doc.id, doc.to_dict() or {}) for doc in docs]

    async def transact(self, uid: str, date_key: str, mutation: Mutation) -> AttendanceRecord:
        doc_ref = self._attendance_ref(uid, date_key)

        def run():
            apply = firestore.transactional(apply_mutation)
            apply(self.client.transaction(), doc_ref, date_key, mutation)
            # Read back so server timestamps come back resolved
            return doc_ref.get()

        snapshot = await self._call(run)
        return AttendanceRecord.from_document(date_key, snapshot.to_dict() or {})


def apply_mutation(transaction, doc_ref, date_key: str, mutation: Mutation) -> None:
    """
    Transaction body: read the day's document, let the ledger decide, stage the write.

    Runs under ``firestore.transactional``, which may call it again on contention.
    An AttendanceError from ``mutation`` propagates before anything is staged.
    """
    snapshot = doc_ref.get(transaction=transaction)
    current = None
    if snapshot.exists:
        current = AttendanceRecord.from_document(date_key, snapshot.to_dict() or {})

    write = mutation(current)
    data = dict(write.fields)
    for name in write.server_timestamp_fields:
        data[name] = firestore.SERVER_TIMESTAMP

    if write.create:
        transaction.set(doc_ref, data)
    else:
        transaction.update(doc_ref, data)
