"""Convenience exports for the league odds simulator."""

from .calibration import estimate_goal_weights
from .league import (
    ConfigurationError,
    InvariantViolation,
    LeagueTable,
    Match,
    Team,
    find_final_rank,
)
from .simulator import (
    AWAY_WEIGHTS,
    DEFAULT_JOBS,
    DEFAULT_RUNS,
    HOME_WEIGHTS,
    ScoreSampler,
    calculate_results,
    finish_distribution,
    run_simulation,
)

__all__ = [
    "Team",
    "Match",
    "LeagueTable",
    "find_final_rank",
    "ConfigurationError",
    "InvariantViolation",
    "ScoreSampler",
    "run_simulation",
    "calculate_results",
    "finish_distribution",
    "estimate_goal_weights",
    "HOME_WEIGHTS",
    "AWAY_WEIGHTS",
    "DEFAULT_RUNS",
    "DEFAULT_JOBS",
]
