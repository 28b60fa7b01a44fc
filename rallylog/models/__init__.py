"""RallyLog data models — Pydantic schemas for matches, players and statistics."""

from rallylog.models.match import *
from rallylog.models.player import *
from rallylog.models.stats import *
