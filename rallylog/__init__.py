"""
RallyLog — point-by-point tennis match recorder.

Records live matches, derives the scoreboard from the point log, and
computes serve, return and break-point statistics.
"""

__version__ = "1.0.0"
__app_name__ = "RallyLog"
