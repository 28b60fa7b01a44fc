"""
Shared FastAPI dependencies.
"""

import threading
from functools import lru_cache

from rallylog.config import settings
from rallylog.storage import MatchStore, create_store

_match_locks: dict[str, threading.Lock] = {}
_match_locks_guard = threading.Lock()


@lru_cache(maxsize=1)
def get_store() -> MatchStore:
    """Process-wide store built from ``DATABASE_URL``; tests override this dependency."""
    return create_store(settings.DATABASE_URL)


def match_lock(match_id: str) -> threading.Lock:
    """
    The lock serializing writes to one match.

    Handlers run in the threadpool, so a load-score-save cycle must hold
    this lock or two requests could both extend the same snapshot.
    """
    with _match_locks_guard:
        lock = _match_locks.get(match_id)
        if lock is None:
            lock = _match_locks[match_id] = threading.Lock()
        return lock
