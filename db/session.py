from functools import lru_cache

from core import config

# Picks the storage the app talks to.
# "firestore" for deployments, "memory" for local development without credentials.


@lru_cache(maxsize=1)
def get_store():
    if config.STORAGE_BACKEND == "memory":
        from db.memory_store import InMemoryStore
        from db.seed import seed_store

        store = InMemoryStore()
        seed_store(store)
        return store

    if config.STORAGE_BACKEND != "firestore":
        raise ValueError(
            f"Unknown STORAGE_BACKEND '{config.STORAGE_BACKEND}'. Use 'firestore' or 'memory'."
        )

    from db.firestore_store import FirestoreStore

    return FirestoreStore()
