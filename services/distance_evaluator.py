import logging
from typing import Dict, Optional, Protocol

from core.errors import BranchNotAssigned, BranchNotFound
from models.branch import Branch
from models.location import Position
from models.user import UserProfile
from utils.geofence import measure

logger = logging.getLogger(__name__)


class BranchDirectory(Protocol):
    async def get_branch(self, branch_id: str) -> Optional[Branch]: ...


class BranchCache:
    """Branches by id. Entries stay until invalidated explicitly."""

    def __init__(self):
        self._entries: Dict[str, Branch] = {}

    def get(self, branch_id: str) -> Optional[Branch]:
        return self._entries.get(branch_id)

    def put(self, branch: Branch) -> None:
        self._entries[branch.id] = branch

    def invalidate(self, branch_id: str) -> None:
        self._entries.pop(branch_id, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class DistanceEvaluator:

    def __init__(self, branches: BranchDirectory, cache: Optional[BranchCache] = None):
        self._branches = branches
        self.cache = cache if cache is not None else BranchCache()

    async def resolve_branch(self, profile: UserProfile, *, fresh: bool = False) -> Branch:
        """
        Load the branch a user is assigned to.

        ``fresh`` skips the cache; attendance actions always pass it so the
        geofence comes from storage. Whatever is loaded refreshes the cache.
        """
        if not profile.branch_id:
            raise BranchNotAssigned()

        if not fresh:
            cached = self.cache.get(profile.branch_id)
            if cached is not None:
                return cached

        branch = await self._branches.get_branch(profile.branch_id)
        if branch is None:
            self.cache.invalidate(profile.branch_id)
            raise BranchNotFound()

        self.cache.put(branch)
        return branch

    @staticmethod
    def within_radius(position: Position, branch: Branch) -> tuple[float, bool]:
        return measure(
            position.latitude,
            position.longitude,
            branch.latitude,
            branch.longitude,
            branch.effective_radius,
        )
