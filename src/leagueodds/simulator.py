"""Monte Carlo completion of a league season.

Each run clones the current table, samples a score for every remaining
fixture and ranks the finished table.  :func:`calculate_results` spreads
many such runs over a pool of workers and folds the partial counts back
together.
"""

from __future__ import annotations

import logging
import os
from typing import Iterable, NamedTuple, Sequence

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from tqdm import tqdm

from .league import (
    ConfigurationError,
    InvariantViolation,
    LeagueTable,
    Match,
    find_final_rank,
)

LOGGER = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Default simulation parameters
# ---------------------------------------------------------------------------

# Possible goal counts for one side of a match.
GOALS = np.arange(8)

# Percentage frequency of 0..7 goals for home and away sides in English
# league football (FiveThirtyEight, "In 126 years, English football has seen
# 13,475 nil-nil draws").
HOME_WEIGHTS = (18.8, 30.3, 24.8, 14.3, 7.0, 3.1, 1.2, 0.5)
AWAY_WEIGHTS = (33.8, 36.2, 19.3, 7.4, 2.3, 0.7, 0.2, 0.1)

# Default number of simulated seasons.
DEFAULT_RUNS = 16000

# Default number of parallel jobs. Use all available cores.
DEFAULT_JOBS = os.cpu_count() or 1


# ---------------------------------------------------------------------------
# Score sampling
# ---------------------------------------------------------------------------


def _cdf(weights: Iterable[float], side: str) -> np.ndarray:
    arr = np.asarray(list(weights), dtype=float)
    if arr.shape != GOALS.shape:
        raise ValueError(f"{side} weights must have {len(GOALS)} entries")
    if (arr < 0).any():
        raise ValueError(f"{side} weights must be non-negative")
    total = arr.sum()
    if total <= 0:
        raise ValueError(f"{side} weights must not sum to zero")
    cdf = np.cumsum(arr / total)
    cdf[-1] = 1.0
    return cdf


class ScoreSampler:
    """Weighted goal generator with separate home and away distributions.

    Goals are drawn by inverting the cumulative weights with uniforms taken
    from the ``numpy.random.Generator`` passed in.  The sampler holds no
    random state of its own, so a seeded generator gives a repeatable
    sequence of scores.
    """

    def __init__(
        self,
        home_weights: Sequence[float] = HOME_WEIGHTS,
        away_weights: Sequence[float] = AWAY_WEIGHTS,
    ) -> None:
        self.home_cdf = _cdf(home_weights, "home")
        self.away_cdf = _cdf(away_weights, "away")

    def sample(self, side: str, rng: np.random.Generator) -> int:
        if side == "home":
            cdf = self.home_cdf
        elif side == "away":
            cdf = self.away_cdf
        else:
            raise ValueError("side must be 'home' or 'away'")
        return int(np.searchsorted(cdf, rng.random(), side="right"))

    def sample_fixtures(
        self, rng: np.random.Generator, n: int
    ) -> tuple[np.ndarray, np.ndarray]:
        """Draw ``n`` home scores, then ``n`` away scores."""
        home = np.searchsorted(self.home_cdf, rng.random(n), side="right")
        away = np.searchsorted(self.away_cdf, rng.random(n), side="right")
        return home, away


_DEFAULT_SAMPLER = ScoreSampler()


# ---------------------------------------------------------------------------
# Single run
# ---------------------------------------------------------------------------


def run_simulation(
    target_team: str,
    current_table: LeagueTable,
    fixtures: Sequence[Match],
    rng: np.random.Generator | None = None,
    sampler: ScoreSampler | None = None,
) -> tuple[int, int]:
    """Play out ``fixtures`` on a copy of ``current_table``.

    Returns the final ``(rank, wins)`` of ``target_team``.  ``current_table``
    is left untouched.
    """

    if rng is None:
        rng = np.random.default_rng()
    if sampler is None:
        sampler = _DEFAULT_SAMPLER

    table = current_table.copy()
    home_goals, away_goals = sampler.sample_fixtures(rng, len(fixtures))
    for match, hg, ag in zip(fixtures, home_goals, away_goals):
        table.update(match, int(hg), int(ag))
    return find_final_rank(table, target_team)


# ---------------------------------------------------------------------------
# Worker batches
# ---------------------------------------------------------------------------


def _run_generator(seed) -> np.random.Generator:
    return np.random.default_rng(seed)


class WorkerResult(NamedTuple):
    runs: int
    successes: int
    win_sum: int


def _run_batch(
    seeds: Sequence,
    target_team: str,
    target_rank: int,
    table: LeagueTable,
    fixtures: Sequence[Match],
    sampler: ScoreSampler,
) -> WorkerResult:
    successes = 0
    win_sum = 0
    for seed in seeds:
        rank, wins = run_simulation(
            target_team, table, fixtures, _run_generator(seed), sampler
        )
        if rank <= target_rank:
            successes += 1
            win_sum += wins
    return WorkerResult(len(seeds), successes, win_sum)


class RankCounts(NamedTuple):
    runs: int
    counts: np.ndarray


def _rank_counts_batch(
    seeds: Sequence,
    target_team: str,
    table: LeagueTable,
    fixtures: Sequence[Match],
    sampler: ScoreSampler,
) -> RankCounts:
    counts = np.zeros(len(table) + 1, dtype=np.int64)
    for seed in seeds:
        rank, _ = run_simulation(
            target_team, table, fixtures, _run_generator(seed), sampler
        )
        counts[rank] += 1
    return RankCounts(len(seeds), counts)


def _validate(
    target_team: str,
    standings: LeagueTable,
    fixtures: Sequence[Match],
    num_runs: int,
    num_workers: int,
) -> None:
    if num_workers <= 0:
        raise ValueError("num_workers must be greater than 0")

    if num_runs <= 0:
        raise ValueError("num_runs must be greater than 0")

    if target_team not in standings:
        raise ConfigurationError(f"Team {target_team!r} is not in the standings")

    for match in fixtures:
        for name in (match.home, match.away):
            if name not in standings:
                raise InvariantViolation(
                    f"Fixture {match.home} vs {match.away} references unknown team {name!r}"
                )


def _iterate_partials(
    batch_fn,
    seeds: list,
    num_workers: int,
    args: tuple,
    *,
    desc: str,
    progress: bool,
):
    """Yield one partial result per worker batch.

    ``seeds`` are split evenly over ``num_workers`` batches and empty batches
    are dropped, so the pool never holds more workers than batches.  A single
    batch runs inline; otherwise the batches go to a joblib pool and partials
    are yielded in completion order.
    """

    batches = [
        seeds[idx[0] : idx[-1] + 1]
        for idx in np.array_split(np.arange(len(seeds)), num_workers)
        if len(idx)
    ]
    LOGGER.debug(
        "%s: %d batches of sizes %s", desc, len(batches), [len(b) for b in batches]
    )

    if len(batches) == 1:
        results = iter([batch_fn(batches[0], *args)])
    else:
        results = Parallel(n_jobs=len(batches), return_as="generator_unordered")(
            delayed(batch_fn)(batch, *args) for batch in batches
        )

    pbar = None
    if progress:
        pbar = tqdm(total=len(seeds), desc=desc, unit="sim")
    for partial in results:
        if pbar is not None:
            pbar.update(partial.runs)
        yield partial
    if pbar is not None:
        pbar.close()


def _draw_seeds(
    rng: np.random.Generator | None,
    num_runs: int,
    seeds: Sequence | None = None,
) -> list:
    """Return one seed per run.

    Explicit ``seeds`` are used as given.  Otherwise the runs get distinct
    child streams of a seed sequence whose entropy is drawn from ``rng``.
    """

    if seeds is not None:
        seeds = list(seeds)
        if len(seeds) != num_runs:
            raise ValueError("seeds must provide exactly one seed per run")
        return seeds
    if rng is None:
        rng = np.random.default_rng()
    entropy = [int(x) for x in rng.integers(0, 2**32 - 1, size=4)]
    return np.random.SeedSequence(entropy).spawn(num_runs)


# ---------------------------------------------------------------------------
# Public simulation API
# ---------------------------------------------------------------------------


def calculate_results(
    target_team: str,
    target_rank: int,
    standings: LeagueTable,
    fixtures: Sequence[Match],
    num_runs: int = DEFAULT_RUNS,
    num_workers: int = DEFAULT_JOBS,
    *,
    rng: np.random.Generator | None = None,
    sampler: ScoreSampler | None = None,
    seeds: Sequence | None = None,
    progress: bool = False,
) -> tuple[float, float]:
    """Return the chance ``target_team`` finishes at ``target_rank`` or better.

    The result is ``(success_percentage, average_wins_on_success)``.  The
    average only covers successful runs and is ``0.0`` when there are none.
    Runs are seeded individually from ``rng`` (or from ``seeds``, one per
    run, when given), so the outcome does not depend on ``num_workers``.
    """

    if target_rank <= 0:
        raise ValueError("target_rank must be greater than 0")
    _validate(target_team, standings, fixtures, num_runs, num_workers)

    if sampler is None:
        sampler = _DEFAULT_SAMPLER
    seeds = _draw_seeds(rng, num_runs, seeds)

    successes = 0
    win_sum = 0
    for partial in _iterate_partials(
        _run_batch,
        seeds,
        num_workers,
        (target_team, target_rank, standings, list(fixtures), sampler),
        desc=target_team,
        progress=progress,
    ):
        LOGGER.debug(
            "batch of %d runs: %d successes, %d wins",
            partial.runs,
            partial.successes,
            partial.win_sum,
        )
        successes += partial.successes
        win_sum += partial.win_sum

    percentage = 100.0 * successes / num_runs
    average_wins = win_sum / successes if successes > 0 else 0.0
    LOGGER.info(
        "%s finishes at rank %d or better in %.2f%% of %d runs (%.2f wins on average)",
        target_team,
        target_rank,
        percentage,
        num_runs,
        average_wins,
    )
    return percentage, average_wins


def finish_distribution(
    target_team: str,
    standings: LeagueTable,
    fixtures: Sequence[Match],
    num_runs: int = DEFAULT_RUNS,
    num_workers: int = DEFAULT_JOBS,
    *,
    rng: np.random.Generator | None = None,
    sampler: ScoreSampler | None = None,
    seeds: Sequence | None = None,
    progress: bool = False,
) -> pd.Series:
    """Return the probability of ``target_team`` finishing at each rank."""

    _validate(target_team, standings, fixtures, num_runs, num_workers)

    if sampler is None:
        sampler = _DEFAULT_SAMPLER
    seeds = _draw_seeds(rng, num_runs, seeds)

    totals = np.zeros(len(standings) + 1, dtype=np.int64)
    for partial in _iterate_partials(
        _rank_counts_batch,
        seeds,
        num_workers,
        (target_team, standings, list(fixtures), sampler),
        desc=target_team,
        progress=progress,
    ):
        totals += partial.counts

    LOGGER.info(
        "Simulated %d runs for %s over %d workers", num_runs, target_team, num_workers
    )
    return pd.Series(
        totals[1:] / num_runs,
        index=pd.RangeIndex(1, len(standings) + 1, name="rank"),
        name="probability",
    )
