"""RallyLog storage — match and player persistence plus export/import."""

from rallylog.storage.base import MatchStore
from rallylog.storage.memory import InMemoryMatchStore
from rallylog.storage.sql import SqlMatchStore


def create_store(database_url: str) -> MatchStore:
    """Build the store for ``database_url``; ``memory://`` keeps everything in process."""
    if database_url.startswith("memory://"):
        return InMemoryMatchStore()
    return SqlMatchStore(database_url)
