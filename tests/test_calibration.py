import sys, os; sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

import numpy as np
import pandas as pd
import pytest

from leagueodds import ScoreSampler, estimate_goal_weights


def _season(scores):
    return pd.DataFrame(
        [
            {"home_team": "A", "away_team": "B", "home_score": hs, "away_score": as_}
            for hs, as_ in scores
        ]
    )


def test_estimate_goal_weights_repeatable():
    season = _season([(2, 0), (1, 1), (0, 3), (2, 1)])
    home, away = estimate_goal_weights([season])
    assert home == (25.0, 25.0, 50.0, 0.0, 0.0, 0.0, 0.0, 0.0)
    assert away == (25.0, 50.0, 0.0, 25.0, 0.0, 0.0, 0.0, 0.0)


def test_estimate_goal_weights_clips_large_scores():
    home, away = estimate_goal_weights([_season([(9, 0), (7, 8)])])
    assert home[7] == 100.0
    assert away[0] == 50.0
    assert away[7] == 50.0


def test_estimate_goal_weights_ignores_unplayed():
    season = _season([(1, 0), (np.nan, np.nan)])
    home, away = estimate_goal_weights([season])
    assert home[1] == 100.0
    assert away[0] == 100.0


def test_estimate_goal_weights_decay_zero_matches_latest_only():
    latest = _season([(3, 1), (0, 0)])
    older = _season([(5, 5), (6, 2)])
    assert estimate_goal_weights([latest]) == estimate_goal_weights(
        [latest, older], decay=0.0
    )


def test_estimate_goal_weights_decay_weights_older_seasons():
    latest = _season([(1, 0)])
    older = _season([(0, 1)])
    home, away = estimate_goal_weights([latest, older], decay=0.5)
    assert home[1] == pytest.approx(100.0 * 1.0 / 1.5)
    assert home[0] == pytest.approx(100.0 * 0.5 / 1.5)
    assert sum(away) == pytest.approx(100.0)


def test_estimate_goal_weights_no_games():
    with pytest.raises(ValueError):
        estimate_goal_weights([_season([(np.nan, np.nan)])])


def test_estimated_weights_feed_sampler():
    home, away = estimate_goal_weights([_season([(2, 0), (2, 0)])])
    sampler = ScoreSampler(home, away)
    rng = np.random.default_rng(0)
    assert sampler.sample("home", rng) == 2
    assert sampler.sample("away", rng) == 0
