"""
Standings computation: aggregation, tiebreak cascade and tie narrative.

Pipeline:
- aggregator.py: matches -> one statistics row per team
- engine.py: recursive tiebreak resolution (history log + timeline)
- narrative.py: explanation of every points tie from the history log
"""

from leaguetable.standings.aggregator import Match, TeamRow, aggregate, points_rule_for
from leaguetable.standings.engine import EngineResult, ShootoutResult, TiebreakEngine
from leaguetable.standings.history import Cycle, HistoryLog, Timeline
from leaguetable.standings.narrative import TieExplanation, explain_ties, format_names

__all__ = [
    "Match",
    "TeamRow",
    "aggregate",
    "points_rule_for",
    "EngineResult",
    "ShootoutResult",
    "TiebreakEngine",
    "Cycle",
    "HistoryLog",
    "Timeline",
    "TieExplanation",
    "explain_ties",
    "format_names",
]
