"""
Narrative Generator: human-readable explanation of every points tie.

For each group of teams level on points in the final standings, replays the
history log cycles that involved only members of that group and turns every
cycle that changed something into one sentence.

Example output for a four-team group decided on lots:
    France, Italy, San Marino and Spain are tied on points (3).
    France, Italy, San Marino and Spain are sorted on drawing of random lots.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from leaguetable.models import Regime, Stat
from leaguetable.standings.aggregator import TeamRow
from leaguetable.standings.engine import PROVISIONAL, EngineResult
from leaguetable.standings.history import Cycle

logger = logging.getLogger(__name__)

# Display names of statistic criteria; overridable per competition
CRITERION_NAMES: dict[str, str] = {
    Stat.POINTS.value: "points",
    Stat.FOR.value: "goals scored",
    Stat.AGAINST.value: "goals conceded",
    Stat.DIFF.value: "goal difference",
    Stat.WON.value: "number of games won",
    Stat.DRAWN.value: "number of games drawn",
    Stat.LOST.value: "number of games lost",
    Stat.AWAY_FOR.value: "goals scored away from home",
    Stat.AWAY_WON.value: "number of games won away from home",
    Stat.PLAYED.value: "number of games played",
}

SHOOTOUT_REQUEST = "shootout"


@dataclass
class TieExplanation:
    """Messages explaining how one points-tied group was ordered."""

    group: list[str]
    messages: list[str] = field(default_factory=list)
    # "shootout" while a penalty shootout result is awaited
    requests: Optional[str] = None

    def as_dict(self) -> dict:
        return {"group": list(self.group), "messages": list(self.messages), "requests": self.requests}


def format_names(team_ids) -> str:
    """Alphabetical, human-joined list: "A", "A and B", "A, B and C"."""
    names = sorted(team_ids)
    if len(names) < 2:
        return "".join(names)
    return f"{', '.join(names[:-1])} and {names[-1]}"


class NarrativeGenerator:
    """Builds TieExplanations from an engine result."""

    def __init__(self, names: Optional[dict[str, str]] = None):
        self.names = {**CRITERION_NAMES, **(names or {})}

    def explain(self, result: EngineResult) -> list[TieExplanation]:
        """
        Explain every points tie of the final standings.

        Args:
            result: Output of TiebreakEngine.resolve().

        Returns:
            One TieExplanation per tied group, in standings order. A new
            list is built on every call.
        """
        explanations = []
        for cluster in _points_clusters(result.standings):
            members = frozenset(row.id for row in cluster)
            explanation = TieExplanation(group=[row.id for row in cluster])
            explanation.messages.append(
                f"{format_names(members)} are tied on points ({cluster[0].stats[Stat.POINTS]})."
            )
            for cycle in result.history:
                if not cycle.team_ids <= members:
                    continue
                message = self._describe(cycle)
                if message is None:
                    continue
                explanation.messages.append(message)
                if cycle.type is Regime.SHOOTOUT and cycle.criterion == PROVISIONAL:
                    explanation.requests = SHOOTOUT_REQUEST
            explanations.append(explanation)

        logger.debug(f"[TIES] {len(explanations)} tied group(s) explained")
        return explanations

    def _describe(self, cycle: Cycle) -> Optional[str]:
        names = format_names(cycle.team_ids)

        if cycle.type is Regime.FINAL:
            if cycle.criterion == "alphabetical":
                return f"{names} are sorted on the alphabetical order of their names."
            return f"{names} are sorted on drawing of random lots."

        if cycle.type is Regime.SHOOTOUT:
            if cycle.criterion == PROVISIONAL:
                return (
                    f"{names} are provisionally sorted at random while waiting for "
                    f"the results of their penalty shootout."
                )
            return f"{names} are sorted on the result of their penalty shootout ({_values(cycle)})."

        if not cycle.is_split:
            return None
        label = self.names.get(cycle.criterion, cycle.criterion)
        if cycle.type is Regime.H2H:
            label = f"head-to-head {label}"
        return f"{names} are sorted on {label} ({_values(cycle)})."


def _values(cycle: Cycle) -> str:
    """Render "<id>: <v>; ..." in ranked order."""
    ranked = [team_id for group in cycle.partition for team_id in group]
    return "; ".join(f"{team_id}: {cycle.value_of(team_id)}" for team_id in ranked)


def _points_clusters(standings: list[TeamRow]) -> list[list[TeamRow]]:
    """Runs of consecutive rows sharing points, keeping only those of 2+ teams."""
    clusters: list[list[TeamRow]] = []
    for row in standings:
        if clusters and clusters[-1][0].stats[Stat.POINTS] == row.stats[Stat.POINTS]:
            clusters[-1].append(row)
        else:
            clusters.append([row])
    return [cluster for cluster in clusters if len(cluster) > 1]


def explain_ties(result: EngineResult, names: Optional[dict[str, str]] = None) -> list[TieExplanation]:
    """Shorthand for NarrativeGenerator(names).explain(result)."""
    return NarrativeGenerator(names).explain(result)
