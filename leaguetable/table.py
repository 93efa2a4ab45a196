"""
LeagueTable: one competition with its configuration, matches, standings and ties.

Usage:
    table = LeagueTable({
        "teams": ["France", "Italy", "Spain", "San Marino"],
        "format": "round-robin",
        "sorting": "UEFA Euro",
    })
    table.add_matches([[1, 1, "France", "San Marino", 3, 0], ...])
    table.standings()   # public rows, best first
    table.ties()        # explanation of every points tie

Instances are independent; all public methods of one instance are
serialised by a per-instance lock.
"""

import logging
import random
import threading
from collections import Counter, defaultdict
from typing import Any, Iterable, Optional, Union

from leaguetable.config import LeagueTableSettings, get_settings
from leaguetable.errors import (
    ConfigurationError,
    EmptyCompetitionError,
    IngestionError,
    IntegrityError,
    UnknownTeamError,
)
from leaguetable.models import CompetitionConfig, parse_competition
from leaguetable.standings.aggregator import Match, aggregate, new_rows, points_rule_for
from leaguetable.standings.engine import EngineResult, ShootoutResult, TiebreakEngine
from leaguetable.standings.narrative import NarrativeGenerator

logger = logging.getLogger(__name__)

# Maximum meetings of one pairing per format
MEETINGS_PER_PAIRING = {
    "round-robin": 1,
    "home-and-away": 2,
}


class LeagueTable:
    """Standings and tiebreak narrative for a single competition."""

    def __init__(
        self,
        data: Union[dict, CompetitionConfig],
        rng: Optional[random.Random] = None,
        settings: Optional[LeagueTableSettings] = None,
    ):
        self.config = parse_competition(data)
        self.rule = points_rule_for(self.config.points)
        self.rng = rng or random.Random()
        self.settings = settings or get_settings()

        self._lock = threading.RLock()
        self._matches: list[Match] = []
        self._match_ids: set = set()
        self._flags = {team_id: self.config.initial_flags(team_id) for team_id in self.config.team_ids}
        self._shootouts: dict[frozenset, ShootoutResult] = {}
        self._warned: set[str] = set()
        self._result: Optional[EngineResult] = None

        logger.debug(
            f"[INGEST] LeagueTable with {len(self.config.teams)} teams, format={self.config.format}, "
            f"points={self.rule!r}"
        )

    @property
    def matches(self) -> list[Match]:
        with self._lock:
            return list(self._matches)

    # ═══════════════════════════════════════════════════════════════════════
    # INGESTION
    # ═══════════════════════════════════════════════════════════════════════

    def add_matches(self, items: Iterable[Any]) -> list[Match]:
        """
        Ingest match results.

        The batch is validated as a whole; on any error nothing is added.

        Args:
            items: [match_id, matchday, home, away, home_goals, away_goals]
                entries.

        Returns:
            The ingested Match records.

        Raises:
            IngestionError: Malformed entry or match id already used.
            UnknownTeamError: Entry naming a team not given at construction.
            IntegrityError: A team plays twice on one matchday while the
                shootout tiebreaker is enabled.
        """
        with self._lock:
            known = set(self.config.team_ids)
            seen = set(self._match_ids)
            batch = []
            for item in items:
                match = Match.from_tuple(item)
                if match.match_id in seen:
                    raise IngestionError(
                        f"Match ids must be unique (first repeated at match id {match.match_id!r}).",
                        match_id=match.match_id,
                    )
                for side, team_id in (("home", match.home), ("away", match.away)):
                    if team_id not in known:
                        raise UnknownTeamError(team_id, match_id=match.match_id, side=side)
                seen.add(match.match_id)
                batch.append(match)

            candidate = self._matches + batch
            self._check_integrity(candidate)

            self._matches = candidate
            self._match_ids = seen
            self._result = None
            logger.info(f"[INGEST] Added {len(batch)} match(es); {len(self._matches)} in total")
            return batch

    def _check_integrity(self, matches: list[Match]) -> None:
        """Format and matchday consistency; warnings unless shootouts depend on it."""
        allowed = MEETINGS_PER_PAIRING[self.config.format]
        meetings = Counter(match.pairing() for match in matches)
        crowded = [sorted(pair) for pair, count in meetings.items() if count > allowed]
        if crowded:
            self._warn_once(
                "pairing",
                f"[INGEST] {self.config.format} format allows only {allowed} match(es) between "
                f"given teams; found more for {crowded}",
            )

        appearances = defaultdict(Counter)
        for match in matches:
            appearances[match.matchday][match.home] += 1
            appearances[match.matchday][match.away] += 1
        for matchday, counts in sorted(appearances.items()):
            repeated = sorted(team_id for team_id, count in counts.items() if count > 1)
            if not repeated:
                continue
            if self.config.sorting.shootout:
                raise IntegrityError(
                    f"Teams {repeated} play more than once on matchday {matchday}; shootout "
                    f"eligibility requires one match per team per matchday.",
                    team_id=repeated[0],
                    matchday=matchday,
                )
            self._warn_once("matchday", f"[INGEST] Teams {repeated} play more than once on matchday {matchday}")

    def _warn_once(self, kind: str, message: str) -> None:
        if kind in self._warned:
            return
        self._warned.add(kind)
        logger.warning(message)

    # ═══════════════════════════════════════════════════════════════════════
    # MUTATION HELPERS
    # ═══════════════════════════════════════════════════════════════════════

    def update_flags(self, team_id: str, flag_name: str, value: int) -> None:
        """Set one flag value of one team (e.g. fair play points after a match)."""
        with self._lock:
            if team_id not in self._flags:
                raise UnknownTeamError(team_id)
            if flag_name not in self.config.sorting.flag_names:
                raise ConfigurationError(
                    "flag_name", flag_name, f"unknown flag (configured: {list(self.config.sorting.flag_names)})"
                )
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError("value", value, "flag values must be integers")
            self._flags[team_id][flag_name] = value
            self._result = None
            logger.debug(f"[INGEST] Flag '{flag_name}' of {team_id} set to {value}")

    def add_shootout(self, home: str, away: str, home_goals: int, away_goals: int) -> ShootoutResult:
        """
        Record a penalty shootout result, replacing any earlier one of the pair.

        Raises:
            UnknownTeamError: home or away was not given at construction.
            IngestionError: Goals are not non-negative integers, are equal,
                or both sides are the same team.
        """
        with self._lock:
            for side, team_id in (("home", home), ("away", away)):
                if team_id not in self._flags:
                    raise UnknownTeamError(team_id, side=side)
            if home == away:
                raise IngestionError(f"A shootout needs two different teams (got {home!r} twice).")
            for number in (home_goals, away_goals):
                if isinstance(number, bool) or not isinstance(number, int) or number < 0:
                    raise IngestionError(f"Shootout goals must be non-negative integers, got {number!r}.")
            if home_goals == away_goals:
                raise IngestionError(
                    f"A shootout cannot end level ({home} {home_goals}-{away_goals} {away})."
                )

            record = ShootoutResult(home, away, home_goals, away_goals)
            if record.pair in self._shootouts:
                logger.info(f"[SHOOTOUT] Replacing earlier shootout result of {sorted(record.pair)}")
            self._shootouts[record.pair] = record
            self._result = None
            logger.info(f"[SHOOTOUT] Recorded {home} {home_goals}-{away_goals} {away}")
            return record

    # ═══════════════════════════════════════════════════════════════════════
    # STANDINGS & TIES
    # ═══════════════════════════════════════════════════════════════════════

    def _compute(self) -> EngineResult:
        if not self._matches:
            raise EmptyCompetitionError()
        rows = new_rows(self.config.team_ids, self._flags.__getitem__)
        aggregate(rows, self._matches, self.rule)
        engine = TiebreakEngine(
            self.config.sorting,
            self._matches,
            self.rule,
            shootouts=self._shootouts,
            rng=self.rng,
            max_depth=self.settings.MAX_DEPTH,
        )
        self._result = engine.resolve(rows)
        return self._result

    def standings(self, options: Optional[str] = None) -> list[dict]:
        """
        Compute the ranked table.

        Args:
            options: None for public rows; "all" to keep the internal
                away_for / away_won statistics.

        Returns:
            One dict per team, best first.

        Raises:
            EmptyCompetitionError: No match has been added yet.
        """
        if options not in (None, "all"):
            raise ConfigurationError("options", options, 'expected None or "all"')
        with self._lock:
            result = self._compute()
            return [row.as_dict(include_internal=options == "all") for row in result.standings]

    def ties(self, options: Optional[str] = None) -> list[dict]:
        """
        Explain every group of teams tied on points.

        Args:
            options: None for explanations ({group, messages, requests});
                "raw" for the engine history log.

        Raises:
            EmptyCompetitionError: No match has been added yet.
        """
        if options not in (None, "raw"):
            raise ConfigurationError("options", options, 'expected None or "raw"')
        with self._lock:
            result = self._result or self._compute()
            if options == "raw":
                return result.history.as_dicts()

            explanations = NarrativeGenerator(self.config.names).explain(result)
            if self.settings.LOG_TIES:
                for explanation in explanations:
                    for message in explanation.messages:
                        logger.info(f"[TIES] {message}")
            return [explanation.as_dict() for explanation in explanations]

    @property
    def pending_shootouts(self) -> list[tuple[str, str]]:
        """Pairs provisionally ordered at the last computation."""
        with self._lock:
            result = self._result or self._compute()
            return list(result.pending_shootouts)
