"""History log and timeline produced by the tiebreak engine.

Both are append-only and hold value snapshots (cloned TeamRows), never
aliases of the engine's working table. The only mutation allowed after an
append is rewriting the currently open cycle, which the engine does when it
recomputes a head-to-head sub-table or collapses a group at the final step.
"""

from dataclasses import dataclass, field
from typing import Iterator, Optional

from leaguetable.models import Regime
from leaguetable.standings.aggregator import TeamRow

_REWRITABLE = frozenset({"type", "criterion", "snapshot", "partition", "values"})


@dataclass
class Cycle:
    """One step of the engine: one criterion applied to one sub-table."""

    type: Regime
    criterion: Optional[str]
    special: bool
    snapshot: list[TeamRow]
    index: int = 0
    # Resulting groups of team ids, best first
    partition: list[list[str]] = field(default_factory=list)
    # Value each team was compared on (empty for the final step)
    values: dict[str, int] = field(default_factory=dict)

    @property
    def team_ids(self) -> frozenset:
        return frozenset(row.id for row in self.snapshot)

    @property
    def is_split(self) -> bool:
        return len(self.partition) > 1

    def value_of(self, team_id: str) -> int:
        return self.values[team_id]

    def as_dict(self) -> dict:
        return {
            "type": self.type.value,
            "criterion": self.criterion,
            "special": self.special,
            "index": self.index,
            "snapshot": [row.as_dict() for row in self.snapshot],
            "partition": [list(group) for group in self.partition],
            "values": dict(self.values),
        }


class HistoryLog:
    """Append-only sequence of cycles; position encodes recursion order."""

    def __init__(self):
        self._cycles: list[Cycle] = []

    def append(self, cycle: Cycle) -> Cycle:
        self._cycles.append(cycle)
        return cycle

    @property
    def current(self) -> Cycle:
        """The open (most recently appended) cycle."""
        if not self._cycles:
            raise IndexError("history log is empty")
        return self._cycles[-1]

    def rewrite_current(self, **changes) -> Cycle:
        unknown = set(changes) - _REWRITABLE
        if unknown:
            raise AttributeError(f"cycle fields {sorted(unknown)} cannot be rewritten")
        cycle = self.current
        for name, value in changes.items():
            setattr(cycle, name, value)
        return cycle

    def __len__(self) -> int:
        return len(self._cycles)

    def __iter__(self) -> Iterator[Cycle]:
        return iter(self._cycles)

    def __getitem__(self, position: int) -> Cycle:
        return self._cycles[position]

    def as_dicts(self) -> list[dict]:
        return [cycle.as_dict() for cycle in self._cycles]


class Timeline:
    """Whole-league orderings, one per cycle; the last is the final table."""

    def __init__(self):
        self._entries: list[list[TeamRow]] = []

    def push(self, rows: list[TeamRow]) -> list[TeamRow]:
        entry = [row.clone() for row in rows]
        self._entries.append(entry)
        return entry

    def push_reordered(self, ranked_ids: list[str]) -> list[TeamRow]:
        """
        Append a copy of the latest entry where only the teams in ranked_ids
        move, taking the slots they already occupied, in the given order.
        """
        entry = [row.clone() for row in self.latest]
        moving = set(ranked_ids)
        slots = [position for position, row in enumerate(entry) if row.id in moving]
        by_id = {row.id: row for row in entry}
        for slot, team_id in zip(slots, ranked_ids):
            entry[slot] = by_id[team_id]
        self._entries.append(entry)
        return entry

    @property
    def latest(self) -> list[TeamRow]:
        if not self._entries:
            raise IndexError("timeline is empty")
        return self._entries[-1]

    def rows_for(self, team_ids) -> list[TeamRow]:
        """Value copies of the latest rows of team_ids, in timeline order."""
        wanted = set(team_ids)
        return [row.clone() for row in self.latest if row.id in wanted]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[list[TeamRow]]:
        return iter(self._entries)

    def __getitem__(self, position: int) -> list[TeamRow]:
        return self._entries[position]
