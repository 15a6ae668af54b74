# Insert sample branches and users for local development
import logging

from db.memory_store import InMemoryStore

logger = logging.getLogger(__name__)

SAMPLE_BRANCHES = {
    "MG-ROAD": {
        "name": "MG Road",
        "address": "MG Road, Bengaluru",
        "lat": 12.9716,
        "lng": 77.5946,
        "radiusMeters": 1000,
    },
    # No radiusMeters: falls back to DEFAULT_RADIUS_METERS
    "WHITEFIELD": {
        "name": "Whitefield",
        "address": "ITPL Main Rd, Whitefield, Bengaluru",
        "lat": 12.9698,
        "lng": 77.7500,
    },
}

SAMPLE_USERS = {
    "staff-demo": {
        "name": "Demo Staff",
        "email": "staff@example.com",
        "role": "staff",
        "branchId": "MG-ROAD",
        "branchName": "MG Road",
    },
    "manager-demo": {
        "name": "Demo Manager",
        "email": "manager@example.com",
        "role": "manager",
        "branchId": "MG-ROAD",
        "branchName": "MG Road",
    },
}


def seed_store(store: InMemoryStore) -> None:
    for branch_id, data in SAMPLE_BRANCHES.items():
        store.add_branch(branch_id, **data)
        logger.info("Added branch %s", branch_id)

    for uid, data in SAMPLE_USERS.items():
        store.add_user(uid, **data)
        logger.info("Added user %s", uid)
