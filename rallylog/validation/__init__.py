"""Cross-validation harness: simulator plus independent score and statistics checks."""

from rallylog.validation.runner import TEST_SCENARIOS, run_validation, summarize
from rallylog.validation.score_validator import ScoreValidator
from rallylog.validation.simulator import MatchSimulator, SimulationProbabilities
from rallylog.validation.stats_validator import StatisticsValidator
