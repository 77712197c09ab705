"""League table model used by the Monte Carlo simulator.

The table is a plain mapping from team name to :class:`Team`.  Simulations
never touch the authoritative snapshot: each run works on a clone obtained
through :meth:`LeagueTable.copy` and throws it away afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Iterable, Iterator, Mapping

import pandas as pd


class ConfigurationError(ValueError):
    """Raised when the caller asks about a team missing from the standings."""


class InvariantViolation(ValueError):
    """Raised when a fixture references a team missing from the table."""


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


@dataclass
class Team:
    name: str
    points: int = 0
    goal_diff: int = 0
    wins: int = 0

    def __setattr__(self, key: str, value) -> None:
        # The table is keyed on the name, so it is fixed once set.
        if key == "name" and "name" in self.__dict__:
            raise AttributeError("Team name cannot be changed")
        super().__setattr__(key, value)

    def update(self, match_goal_diff: int) -> None:
        """Apply a single result seen from this team's side."""
        self.goal_diff += match_goal_diff
        if match_goal_diff > 0:
            self.points += 3
            self.wins += 1
        elif match_goal_diff == 0:
            self.points += 1


@dataclass(frozen=True)
class Match:
    home: str
    away: str


# ---------------------------------------------------------------------------
# Table
# ---------------------------------------------------------------------------


class LeagueTable:
    """Standings snapshot keyed by team name."""

    def __init__(self, teams: Iterable[Team] = ()) -> None:
        self._teams: Dict[str, Team] = {}
        for team in teams:
            self._teams[team.name] = team

    @classmethod
    def from_records(cls, records: Iterable[Mapping]) -> "LeagueTable":
        """Build a table from ``name``/``points``/``goal_diff``/``wins`` rows."""
        table = cls()
        for rec in records:
            name = rec["name"]
            if name in table:
                raise ConfigurationError(f"Duplicate team in standings: {name!r}")
            table.add_team(
                name,
                int(rec["points"]),
                int(rec["goal_diff"]),
                int(rec.get("wins", 0)),
            )
        return table

    @classmethod
    def from_results(cls, matches: pd.DataFrame) -> "LeagueTable":
        """Compute standings from a DataFrame of played matches.

        Every team appearing in ``matches`` gets an entry, including teams
        whose fixtures are all still unplayed (``NaN`` scores).
        """
        teams = pd.unique(matches[["home_team", "away_team"]].values.ravel())
        table = cls(Team(str(t)) for t in teams)
        played = matches.dropna(subset=["home_score", "away_score"])
        for row in played.itertuples(index=False):
            table.update(
                Match(row.home_team, row.away_team),
                int(row.home_score),
                int(row.away_score),
            )
        return table

    def add_team(self, name: str, points: int = 0, goal_diff: int = 0, wins: int = 0) -> None:
        self._teams[name] = Team(name, points, goal_diff, wins)

    def copy(self) -> "LeagueTable":
        return LeagueTable(replace(team) for team in self._teams.values())

    def __contains__(self, name: object) -> bool:
        return name in self._teams

    def __getitem__(self, name: str) -> Team:
        return self._teams[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._teams)

    def __len__(self) -> int:
        return len(self._teams)

    def __repr__(self) -> str:
        return f"LeagueTable({list(self._teams.values())!r})"

    def update(self, match: Match, home_goals: int, away_goals: int) -> None:
        """Record ``match`` finishing ``home_goals``-``away_goals``."""
        for name in (match.home, match.away):
            if name not in self._teams:
                raise InvariantViolation(
                    f"Fixture {match.home} vs {match.away} references unknown team {name!r}"
                )
        goal_diff = home_goals - away_goals
        self._teams[match.home].update(goal_diff)
        self._teams[match.away].update(-goal_diff)

    def ranked(self) -> list[Team]:
        """Return teams ordered by points, then goal difference.

        Teams level on both are listed by name so the order is repeatable.
        """
        return sorted(
            self._teams.values(),
            key=lambda t: (-t.points, -t.goal_diff, t.name),
        )

    def standings(self) -> pd.DataFrame:
        rows = [
            {
                "position": pos,
                "team": team.name,
                "points": team.points,
                "goal_diff": team.goal_diff,
                "wins": team.wins,
            }
            for pos, team in enumerate(self.ranked(), start=1)
        ]
        return pd.DataFrame(
            rows, columns=["position", "team", "points", "goal_diff", "wins"]
        )


def find_final_rank(table: LeagueTable, team: str) -> tuple[int, int]:
    """Return ``(rank, wins)`` for ``team`` in ``table``."""
    if team not in table:
        raise ConfigurationError(f"Team {team!r} is not in the standings")
    ordered = table.ranked()
    idx = [t.name for t in ordered].index(team)
    return idx + 1, ordered[idx].wins
