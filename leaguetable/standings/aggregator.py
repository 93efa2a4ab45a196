"""Aggregator: folds match records into one statistics row per team.

Also used by head-to-head recomputation, which rebuilds a sub-table from
the matches played strictly between its members.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Union

from leaguetable.errors import IngestionError, UnknownTeamError
from leaguetable.models import INTERNAL_STATS, Stat

logger = logging.getLogger(__name__)

_STAT_TAGS = {stat.value for stat in Stat}


# ═══════════════════════════════════════════════════════════════════════════
# RECORDS
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Match:
    """An ingested match result. Immutable once created."""

    match_id: Any
    matchday: int
    home: str
    away: str
    home_goals: int
    away_goals: int

    @classmethod
    def from_tuple(cls, item: Any) -> "Match":
        """Build from [match_id, matchday, home, away, home_goals, away_goals]."""
        if not isinstance(item, (list, tuple)) or len(item) != 6:
            raise IngestionError(
                f"Match entries must be [id, matchday, home, away, home_goals, away_goals], got {item!r}.",
                match_id=item[0] if isinstance(item, (list, tuple)) and item else None,
            )
        match_id, matchday, home, away, home_goals, away_goals = item
        for label, number in (("matchday", matchday), ("home_goals", home_goals), ("away_goals", away_goals)):
            if isinstance(number, bool) or not isinstance(number, int) or number < 0:
                raise IngestionError(
                    f"Match {match_id!r}: {label} must be a non-negative integer, got {number!r}.",
                    match_id=match_id,
                )
        if home == away:
            raise IngestionError(f"Match {match_id!r}: a team cannot play itself ({home!r}).", match_id=match_id)
        return cls(match_id, matchday, home, away, home_goals, away_goals)

    @property
    def is_draw(self) -> bool:
        return self.home_goals == self.away_goals

    def between(self, team_ids: Union[set, frozenset]) -> bool:
        """True when both sides belong to team_ids."""
        return self.home in team_ids and self.away in team_ids

    def pairing(self) -> frozenset:
        return frozenset((self.home, self.away))


@dataclass
class TeamRow:
    """Statistics row of one team, keyed by Stat tags plus named flags."""

    id: str
    stats: dict = field(default_factory=lambda: {stat: 0 for stat in Stat})
    flags: dict = field(default_factory=dict)

    def value_of(self, tag: str) -> int:
        """Value of a statistic or flag by name."""
        if tag in _STAT_TAGS:
            return self.stats[Stat(tag)]
        if tag in self.flags:
            return self.flags[tag]
        raise KeyError(f"Unknown criterion '{tag}' for team {self.id!r}")

    def clone(self) -> "TeamRow":
        """Value copy; snapshots never alias a live row."""
        return TeamRow(self.id, dict(self.stats), dict(self.flags))

    def reset(self) -> None:
        """Zero every statistic. Flags are not match-derived and are kept."""
        for stat in Stat:
            self.stats[stat] = 0

    def as_dict(self, include_internal: bool = True) -> dict:
        row = {"id": self.id}
        for stat in Stat:
            if include_internal or stat not in INTERNAL_STATS:
                row[stat.value] = self.stats[stat]
        row.update(self.flags)
        return row


def new_rows(team_ids: Iterable[str], flags: Callable[[str], dict]) -> list[TeamRow]:
    """Empty rows in team order, flags taken from the given lookup."""
    return [TeamRow(team_id, flags=dict(flags(team_id))) for team_id in team_ids]


# ═══════════════════════════════════════════════════════════════════════════
# POINTS RULES
# ═══════════════════════════════════════════════════════════════════════════


class PointsRule(ABC):
    """Derives points from won/drawn/lost."""

    name: str

    @abstractmethod
    def points(self, won: int, drawn: int, lost: int) -> int:
        pass


class FixedPointsRule(PointsRule):
    """Fixed value per win and per draw; losses score nothing."""

    def __init__(self, name: str, per_win: int, per_draw: int):
        self.name = name
        self.per_win = per_win
        self.per_draw = per_draw

    def points(self, won: int, drawn: int, lost: int) -> int:
        return self.per_win * won + self.per_draw * drawn

    def __repr__(self):
        return f"FixedPointsRule({self.name}: {self.per_win}/{self.per_draw}/0)"


class CustomPointsRule(PointsRule):
    """User function (won, drawn, lost) -> points, truncated to int."""

    name = "custom"

    def __init__(self, fn: Callable[[int, int, int], Any]):
        self.fn = fn

    def points(self, won: int, drawn: int, lost: int) -> int:
        return int(self.fn(won, drawn, lost))

    def __repr__(self):
        return f"CustomPointsRule({getattr(self.fn, '__name__', self.fn)!r})"


STANDARD_POINTS = FixedPointsRule("standard", 3, 1)
OLD_POINTS = FixedPointsRule("old", 2, 1)

POINTS_RULES: dict[str, PointsRule] = {
    STANDARD_POINTS.name: STANDARD_POINTS,
    OLD_POINTS.name: OLD_POINTS,
}


def points_rule_for(spec: Union[str, Callable]) -> PointsRule:
    """Resolve the configured points value into a PointsRule."""
    if callable(spec):
        return CustomPointsRule(spec)
    return POINTS_RULES[spec]


# ═══════════════════════════════════════════════════════════════════════════
# FOLDING
# ═══════════════════════════════════════════════════════════════════════════


def apply_match(rows: dict[str, TeamRow], match: Match, rule: PointsRule) -> None:
    """Accumulate one match into the rows of both sides (in place)."""
    home = rows.get(match.home)
    if home is None:
        raise UnknownTeamError(match.home, match_id=match.match_id, side="home")
    away = rows.get(match.away)
    if away is None:
        raise UnknownTeamError(match.away, match_id=match.match_id, side="away")

    h, a = home.stats, away.stats
    h[Stat.PLAYED] += 1
    a[Stat.PLAYED] += 1

    h[Stat.FOR] += match.home_goals
    h[Stat.AGAINST] += match.away_goals
    a[Stat.FOR] += match.away_goals
    a[Stat.AGAINST] += match.home_goals
    a[Stat.AWAY_FOR] += match.away_goals
    h[Stat.DIFF] = h[Stat.FOR] - h[Stat.AGAINST]
    a[Stat.DIFF] = a[Stat.FOR] - a[Stat.AGAINST]

    if match.home_goals > match.away_goals:
        h[Stat.WON] += 1
        a[Stat.LOST] += 1
    elif match.home_goals < match.away_goals:
        h[Stat.LOST] += 1
        a[Stat.WON] += 1
        a[Stat.AWAY_WON] += 1
    else:
        h[Stat.DRAWN] += 1
        a[Stat.DRAWN] += 1

    for stats in (h, a):
        stats[Stat.POINTS] = rule.points(stats[Stat.WON], stats[Stat.DRAWN], stats[Stat.LOST])


def aggregate(rows: list[TeamRow], matches: Iterable[Match], rule: PointsRule) -> list[TeamRow]:
    """
    Fold matches into rows (in place) and return the rows.

    Args:
        rows: Rows to accumulate into; callers reset them first when
            rebuilding a sub-table.
        matches: Matches to fold, in ingestion order.
        rule: Points rule applied after every match.

    Returns:
        The same list, for chaining.

    Raises:
        UnknownTeamError: If a match references a team without a row.
    """
    index = {row.id: row for row in rows}
    folded = 0
    for match in matches:
        apply_match(index, match, rule)
        folded += 1
    logger.debug(f"[AGGREGATE] Folded {folded} match(es) into {len(rows)} row(s) via {rule!r}")
    return rows
