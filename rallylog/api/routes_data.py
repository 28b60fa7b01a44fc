"""
Data routes — full export and recency-merged import.
"""

from __future__ import annotations
from typing import Any

from fastapi import APIRouter, Body, Depends

from rallylog.storage import MatchStore
from rallylog.storage.transfer import ImportReport, export_data, import_data
from rallylog.api.deps import get_store, match_lock

router = APIRouter()


@router.get("/export")
def export_all(store: MatchStore = Depends(get_store)):
    return export_data(store)


@router.post("/import", response_model=ImportReport)
def import_all(data: dict[str, Any] = Body(...), store: MatchStore = Depends(get_store)):
    """Merge an export; existing records are replaced only by strictly newer copies."""
    return import_data(store, data, lock_for=match_lock)
