"""
Tiebreak Engine: recursive resolution of tied groups.

Each call applies one criterion of the active regime to one sub-table,
appends a Cycle to the history log, re-sorts the timeline for the teams of
that sub-table only, then recurses into every group still tied.

Regimes (iteration types), in cascade order:
    overall     points + base criteria on whole-competition statistics
    h2h         points + base criteria on the sub-table of mutual matches
    additional  extra overall statistics once the base cascade is exhausted
    shootout    penalty shootout of two teams level after a drawn last match
    flags       federation-defined per-team values (fair play, coefficients)
    final       drawing of lots or alphabetical order; always resolves

Transition rules:
    - index 0 with h2h "before"                → h2h
    - overall exhausted, h2h "after"            → h2h
    - overall exhausted, h2h "before"           → fall through
    - h2h, span "single", group shrank in pass  → h2h restarted (special)
    - h2h exhausted, group shrank, span "all"   → new h2h pass on the remainder
    - h2h exhausted otherwise, h2h "before"     → overall
    - h2h exhausted otherwise, h2h "after"      → fall through
    - additional / shootout exhausted           → fall through
    - flags exhausted                           → final
"fall through" = first applicable of additional, shootout, flags, final.

Overall, additional and flags values are always read from the latest
timeline entry, so head-to-head recomputation never leaks into overall
comparisons.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Optional

from leaguetable.errors import RecursionDepthExceeded
from leaguetable.models import Regime, SortingConfig, Stat
from leaguetable.standings.aggregator import Match, PointsRule, TeamRow, aggregate
from leaguetable.standings.history import Cycle, HistoryLog, Timeline

logger = logging.getLogger(__name__)

PROVISIONAL = "provisional"
SHOOTOUT = "shootout"

# Regimes reachable by falling through, in order; final always applies last
_FALL_THROUGH = (Regime.ADDITIONAL, Regime.SHOOTOUT, Regime.FLAGS)


@dataclass(frozen=True)
class ShootoutResult:
    """Penalty shootout between two teams, looked up by unordered pair."""

    home: str
    away: str
    home_goals: int
    away_goals: int

    @property
    def pair(self) -> frozenset:
        return frozenset((self.home, self.away))

    def goals_of(self, team_id: str) -> int:
        if team_id == self.home:
            return self.home_goals
        if team_id == self.away:
            return self.away_goals
        raise KeyError(team_id)


@dataclass(frozen=True)
class Iteration:
    """Recursion state handed from a cycle to its children."""

    index: int
    type: Regime
    run: int = 0
    # Teams on which the current regime pass started
    pass_ids: frozenset = frozenset()
    # Criteria restarted mid-cascade (h2h span "single")
    special: bool = False

    def advance(self) -> "Iteration":
        return Iteration(self.index + 1, self.type, self.run + 1, self.pass_ids)

    def switch(self, regime: Regime, team_ids: frozenset, special: bool = False) -> "Iteration":
        return Iteration(self.index + 1, regime, 0, team_ids, special)


@dataclass
class EngineResult:
    """History, timeline and unresolved shootout pairs of one computation."""

    history: HistoryLog = field(default_factory=HistoryLog)
    timeline: Timeline = field(default_factory=Timeline)
    pending_shootouts: list[tuple[str, str]] = field(default_factory=list)

    @property
    def standings(self) -> list[TeamRow]:
        return self.timeline.latest


@dataclass
class _RunState:
    result: EngineResult
    played: dict[str, int]
    max_played: int
    last_matchday: Optional[int]


class TiebreakEngine:
    """
    Resolves a statistics table into a strict order.

    The engine holds only configuration; every computation gets a fresh
    history log and timeline, so one engine may be reused.
    """

    def __init__(
        self,
        sorting: SortingConfig,
        matches: list[Match],
        rule: PointsRule,
        shootouts: Optional[dict[frozenset, ShootoutResult]] = None,
        rng: Optional[random.Random] = None,
        max_depth: int = 75,
    ):
        self.sorting = sorting
        self.matches = list(matches)
        self.rule = rule
        self.shootouts = dict(shootouts or {})
        self.rng = rng or random.Random()
        self.max_depth = max_depth

    def resolve(self, rows: list[TeamRow]) -> EngineResult:
        """
        Sort aggregated rows through the configured cascade.

        Args:
            rows: One aggregated row per team, in construction order.

        Returns:
            EngineResult whose timeline ends with the final standings.

        Raises:
            RecursionDepthExceeded: If the cascade runs deeper than max_depth.
        """
        played = {row.id: row.stats[Stat.PLAYED] for row in rows}
        state = _RunState(
            result=EngineResult(),
            played=played,
            max_played=max(played.values(), default=0),
            last_matchday=max((m.matchday for m in self.matches), default=None),
        )
        table = [row.clone() for row in rows]
        root = Iteration(0, Regime.OVERALL, 0, frozenset(row.id for row in table))
        self._step(table, root, state)

        result = state.result
        logger.debug(
            f"[TIEBREAK] Resolved {len(rows)} team(s) in {len(result.history)} cycle(s); "
            f"pending shootouts: {result.pending_shootouts or 'none'}"
        )
        return result

    # ─── one cycle ───────────────────────────────────────────────────────

    def _step(self, table: list[TeamRow], it: Iteration, state: _RunState) -> None:
        team_ids = [row.id for row in table]
        if it.index >= self.max_depth:
            raise RecursionDepthExceeded(it.index, team_ids)

        history = state.result.history
        timeline = state.result.timeline

        criteria = self._criteria(it.type)
        run = it.run % len(criteria)
        criterion = criteria[run]
        history.append(
            Cycle(it.type, criterion, it.special, [row.clone() for row in table], it.index)
        )

        if it.type is Regime.SHOOTOUT:
            self._shootout(team_ids, state)
            return
        if it.type is Regime.FINAL:
            self._final(team_ids, state)
            return

        if it.type is Regime.H2H:
            if self.sorting.h2h.span == "single" or run == 0:
                table = self._head_to_head(table)
                history.rewrite_current(snapshot=[row.clone() for row in table])
            compared = table
        elif it.index == 0:
            compared = table
        else:
            compared = timeline.rows_for(team_ids)
            history.rewrite_current(snapshot=[row.clone() for row in compared])

        values = {row.id: row.value_of(criterion) for row in compared}
        ascending = it.type is Regime.FLAGS and self.sorting.flag_order(criterion) == "asc"
        order = self._current_order(team_ids, timeline)
        groups = _partition(order, values, ascending)
        history.rewrite_current(partition=groups, values=values)

        ranked = [team_id for group in groups for team_id in group]
        if len(timeline) == 0:
            by_id = {row.id: row for row in table}
            timeline.push([by_id[team_id] for team_id in ranked])
        else:
            timeline.push_reordered(ranked)

        logger.debug(
            f"[TIEBREAK] #{it.index} {it.type.value}/{criterion} (run {run}"
            f"{', restarted' if it.special else ''}) on {order} -> {groups}"
        )

        rows_by_id = {row.id: row for row in compared}
        for group in groups:
            if len(group) < 2:
                continue
            child = self._next(it, run, len(criteria), frozenset(group), state)
            logger.debug(
                f"[TIEBREAK] {group} continue as {child.type.value} run {child.run}"
                f"{' (restart)' if child.special else ''}"
            )
            self._step([rows_by_id[team_id].clone() for team_id in group], child, state)

    def _criteria(self, regime: Regime) -> tuple:
        if regime in (Regime.OVERALL, Regime.H2H):
            return self.sorting.base_criteria
        if regime is Regime.ADDITIONAL:
            return tuple(stat.value for stat in self.sorting.additional)
        if regime is Regime.FLAGS:
            return self.sorting.flag_names
        if regime is Regime.SHOOTOUT:
            return (SHOOTOUT,)
        return (self.sorting.final,)

    @staticmethod
    def _current_order(team_ids: list[str], timeline: Timeline) -> list[str]:
        """team_ids in their current standings order (table order at the root)."""
        if len(timeline) == 0:
            return list(team_ids)
        wanted = set(team_ids)
        return [row.id for row in timeline.latest if row.id in wanted]

    def _head_to_head(self, table: list[TeamRow]) -> list[TeamRow]:
        """Rebuild rows from the matches played strictly between table members."""
        members = frozenset(row.id for row in table)
        rebuilt = []
        for row in table:
            fresh = row.clone()
            fresh.reset()
            rebuilt.append(fresh)
        return aggregate(rebuilt, (m for m in self.matches if m.between(members)), self.rule)

    # ─── transitions ─────────────────────────────────────────────────────

    def _next(self, it: Iteration, run: int, length: int, group: frozenset, state: _RunState) -> Iteration:
        h2h = self.sorting.h2h
        exhausted = run == length - 1

        if it.index == 0 and h2h.when == "before":
            return it.switch(Regime.H2H, group)

        if it.type is Regime.OVERALL:
            if not exhausted:
                return it.advance()
            if h2h.when == "after":
                return it.switch(Regime.H2H, group)
            return self._fall_through(it, Regime.OVERALL, group, state)

        if it.type is Regime.H2H:
            shrunk = group < it.pass_ids
            if shrunk and h2h.span == "single":
                return it.switch(Regime.H2H, group, special=True)
            if not exhausted:
                return it.advance()
            if shrunk and h2h.span == "all":
                return it.switch(Regime.H2H, group)
            if h2h.when == "before":
                return it.switch(Regime.OVERALL, group)
            return self._fall_through(it, Regime.H2H, group, state)

        if it.type is Regime.FLAGS:
            if not exhausted:
                return it.advance()
            return it.switch(Regime.FINAL, group)

        # additional (shootout and final never leave a tied group behind)
        if not exhausted:
            return it.advance()
        return self._fall_through(it, it.type, group, state)

    def _fall_through(self, it: Iteration, after: Regime, group: frozenset, state: _RunState) -> Iteration:
        start = _FALL_THROUGH.index(after) + 1 if after in _FALL_THROUGH else 0
        for regime in _FALL_THROUGH[start:]:
            if regime is Regime.ADDITIONAL and not self.sorting.additional:
                continue
            if regime is Regime.SHOOTOUT and not self._shootout_eligible(group, state):
                continue
            if regime is Regime.FLAGS and not self.sorting.flags:
                continue
            return it.switch(regime, group)
        return it.switch(Regime.FINAL, group)

    # ─── terminal regimes ────────────────────────────────────────────────

    def _shootout_eligible(self, group: frozenset, state: _RunState) -> bool:
        """Two teams, both on the maximum of matches, drawn meeting on the last matchday."""
        if not self.sorting.shootout or len(group) != 2:
            return False
        if any(state.played[team_id] != state.max_played for team_id in group):
            return False
        return any(
            match.between(group) and match.matchday == state.last_matchday and match.is_draw
            for match in self.matches
        )

    def _shootout(self, team_ids: list[str], state: _RunState) -> None:
        result = state.result
        order = self._current_order(team_ids, result.timeline)
        record = self.shootouts.get(frozenset(order))

        if record is not None:
            values = {team_id: record.goals_of(team_id) for team_id in order}
            ranked = sorted(order, key=lambda team_id: -values[team_id])
            logger.debug(f"[SHOOTOUT] {ranked[0]} beat {ranked[1]} on penalties {values}")
        else:
            values = {}
            ranked = list(order)
            self.rng.shuffle(ranked)
            result.history.rewrite_current(criterion=PROVISIONAL)
            result.pending_shootouts.append(tuple(sorted(order)))
            logger.info(
                f"[SHOOTOUT] Shootout result required for {order}; provisionally sorted as {ranked}"
            )

        result.history.rewrite_current(partition=[[team_id] for team_id in ranked], values=values)
        result.timeline.push_reordered(ranked)

    def _final(self, team_ids: list[str], state: _RunState) -> None:
        result = state.result
        ranked = self._current_order(team_ids, result.timeline)
        if self.sorting.final == "lots":
            self.rng.shuffle(ranked)
        else:
            ranked.sort()
        result.history.rewrite_current(partition=[[team_id] for team_id in ranked])
        result.timeline.push_reordered(ranked)
        logger.info(f"[TIEBREAK] {sorted(team_ids)} sorted on {self.sorting.final}: {ranked}")


def _partition(order: list[str], values: dict[str, int], ascending: bool = False) -> list[list[str]]:
    """Group ids of equal value, best group first, keeping order within groups."""
    grouped: dict[int, list[str]] = {}
    for team_id in order:
        grouped.setdefault(values[team_id], []).append(team_id)
    return [grouped[value] for value in sorted(grouped, reverse=not ascending)]
