"""
Domain exceptions raised by the scoring engine, replay and stores.
"""

from __future__ import annotations

from typing import Any, Optional


class RallyLogError(Exception):
    """Base class for every RallyLog error."""

    status_code = 500
    code = "rallylog_error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class PointValidationError(RallyLogError, ValueError):
    """Point input is malformed or contradicts the match state."""

    status_code = 422
    code = "invalid_point"


class MatchCompletedError(RallyLogError):
    """A point was recorded against a match that is already over."""

    status_code = 409
    code = "match_completed"


class DataIntegrityError(RallyLogError):
    """Replaying a stored log does not reproduce the stored points."""

    status_code = 500
    code = "data_integrity"

    def __init__(self, detail: str, sequence_number: Optional[int] = None):
        super().__init__(detail)
        self.sequence_number = sequence_number


class MatchNotFoundError(RallyLogError, LookupError):
    status_code = 404
    code = "match_not_found"


class PlayerNotFoundError(RallyLogError, LookupError):
    status_code = 404
    code = "player_not_found"


class PersistenceError(RallyLogError):
    """The store failed. ``match`` holds the snapshot that was not saved."""

    status_code = 503
    code = "persistence_failed"

    def __init__(self, detail: str, match: Any = None):
        super().__init__(detail)
        self.match = match
