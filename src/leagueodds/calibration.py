"""Derive goal-count weights for :class:`~leagueodds.simulator.ScoreSampler`."""

from __future__ import annotations

import logging
from typing import List

import numpy as np
import pandas as pd

from .simulator import GOALS

LOGGER = logging.getLogger(__name__)


def estimate_goal_weights(
    results: List[pd.DataFrame], decay: float | None = None
) -> tuple[tuple[float, ...], tuple[float, ...]]:
    """Estimate how often home and away sides score 0 to 7 goals.

    Parameters
    ----------
    results:
        One DataFrame per season with ``home_score`` and ``away_score``
        columns.  Unplayed fixtures (``NaN`` scores) are ignored.  Seasons
        should be ordered from most recent to oldest when using ``decay``.
    decay:
        Optional exponential decay factor applied to older seasons. Games from
        the ``n``th season in ``results`` are weighted by ``decay**n``. Use
        ``None`` to give all seasons equal weight.

    Returns
    -------
    tuple[tuple[float, ...], tuple[float, ...]]
        The ``(home_weights, away_weights)`` as percentages.  Scores above the
        largest goal count are counted in its bucket.
    """

    top = int(GOALS[-1])
    home_counts = np.zeros(len(GOALS))
    away_counts = np.zeros(len(GOALS))

    for n, df in enumerate(results):
        weight = 1.0 if decay is None else decay**n
        if weight == 0:
            LOGGER.debug("Skipping season %d with zero weight", n)
            continue
        played = df.dropna(subset=["home_score", "away_score"])
        hs = played["home_score"].astype(int).clip(upper=top)
        as_ = played["away_score"].astype(int).clip(upper=top)
        home_counts += np.bincount(hs, minlength=len(GOALS)) * weight
        away_counts += np.bincount(as_, minlength=len(GOALS)) * weight

    total = home_counts.sum()
    if total == 0:
        raise ValueError("No played games found in provided results")

    home_weights = tuple(float(x) for x in 100.0 * home_counts / total)
    away_weights = tuple(float(x) for x in 100.0 * away_counts / total)
    return home_weights, away_weights
