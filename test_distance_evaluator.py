import asyncio

import pytest

from core import config
from core.errors import BranchNotAssigned, BranchNotFound
from models.branch import Branch
from models.location import Position
from services.distance_evaluator import BranchCache, DistanceEvaluator


class CountingDirectory:
    def __init__(self, store):
        self._store = store
        self.calls = 0

    async def get_branch(self, branch_id):
        self.calls += 1
        return await self._store.get_branch(branch_id)


def test_accepts_inside_and_rejects_outside():
    branch = Branch(id="B", name="B", latitude=12.9716, longitude=77.5946, radius_meters=1000)

    distance, inside = DistanceEvaluator.within_radius(
        Position(latitude=12.9716, longitude=77.5946), branch
    )
    assert (distance, inside) == (0, True)

    distance, inside = DistanceEvaluator.within_radius(
        Position(latitude=12.9800, longitude=77.6050), branch
    )
    assert inside is False
    assert distance > 1000


def test_default_radius_when_branch_has_none():
    branch = Branch(id="B", name="B", latitude=0, longitude=0)
    assert branch.effective_radius == config.DEFAULT_RADIUS_METERS == 1000

    # ~0.0085 degrees of latitude is ~945 m
    _, inside = DistanceEvaluator.within_radius(Position(latitude=0.0085, longitude=0), branch)
    assert inside is True
    _, inside = DistanceEvaluator.within_radius(Position(latitude=0.0095, longitude=0), branch)
    assert inside is False


def test_unassigned_user(store):
    evaluator = DistanceEvaluator(store)
    profile = asyncio.run(store.get_user_profile("u-unassigned"))

    with pytest.raises(BranchNotAssigned, match="Contact admin"):
        asyncio.run(evaluator.resolve_branch(profile))


def test_branch_missing_from_storage(store):
    evaluator = DistanceEvaluator(store)
    profile = asyncio.run(store.get_user_profile("u-gone"))

    with pytest.raises(BranchNotFound, match="not found"):
        asyncio.run(evaluator.resolve_branch(profile))


def test_cache_is_used_until_invalidated(store):
    directory = CountingDirectory(store)
    evaluator = DistanceEvaluator(directory)
    profile = asyncio.run(store.get_user_profile("u1"))

    asyncio.run(evaluator.resolve_branch(profile))
    asyncio.run(evaluator.resolve_branch(profile))
    assert directory.calls == 1

    evaluator.cache.invalidate("MG-ROAD")
    asyncio.run(evaluator.resolve_branch(profile))
    assert directory.calls == 2


def test_fresh_lookup_bypasses_cache_and_sees_edits(store):
    directory = CountingDirectory(store)
    evaluator = DistanceEvaluator(directory)
    profile = asyncio.run(store.get_user_profile("u1"))

    asyncio.run(evaluator.resolve_branch(profile))
    store.add_branch("MG-ROAD", name="MG Road", lat=12.9716, lng=77.5946, radiusMeters=250)

    branch = asyncio.run(evaluator.resolve_branch(profile, fresh=True))
    assert branch.radius_meters == 250
    assert directory.calls == 2
    # The fresh read replaced the cached copy
    assert evaluator.cache.get("MG-ROAD").radius_meters == 250


def test_deleted_branch_is_dropped_from_cache(store):
    cache = BranchCache()
    evaluator = DistanceEvaluator(store, cache)
    profile = asyncio.run(store.get_user_profile("u1"))

    asyncio.run(evaluator.resolve_branch(profile))
    assert len(cache) == 1

    store.remove_branch("MG-ROAD")
    with pytest.raises(BranchNotFound):
        asyncio.run(evaluator.resolve_branch(profile, fresh=True))
    assert cache.get("MG-ROAD") is None
