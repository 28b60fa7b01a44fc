"""
Player data models — profiles referenced by match settings.
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from rallylog.models.match import utcnow

NAME_PATTERN = re.compile(r"^[a-zA-Z\s\-]+$")


class Handedness(str, Enum):
    RIGHT = "righty"
    LEFT = "lefty"


class Backhand(str, Enum):
    SINGLE_HAND = "single_hand"
    DOUBLE_HAND = "double_hand"


class Player(BaseModel):
    """Player profile."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(min_length=1, max_length=80)
    handedness: Handedness = Handedness.RIGHT
    backhand: Backhand = Backhand.DOUBLE_HAND
    utr_rating: Optional[float] = Field(default=None, ge=0.0, le=16.0)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("name")
    @classmethod
    def _valid_name(cls, v: str) -> str:
        v = v.strip()
        if not v or not NAME_PATTERN.match(v):
            raise ValueError("name may only contain letters, spaces and hyphens")
        return v

    @field_validator("utr_rating")
    @classmethod
    def _two_decimals(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and round(v, 2) != v:
            raise ValueError("utr_rating allows at most two decimal places")
        return v
