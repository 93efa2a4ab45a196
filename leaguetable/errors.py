"""Exception taxonomy for league table computation.

Configuration errors are fatal at construction, ingestion errors at
add_matches(), engine faults at standings(). Integrity problems that do not
affect correctness are logged instead of raised (see table.py).
"""

from typing import Any, Optional


class LeagueTableError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(LeagueTableError, ValueError):
    """Raised when the construction object is malformed."""

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid configuration at '{field}' ({value!r}): {reason}")


class IngestionError(LeagueTableError, ValueError):
    """Raised when a match cannot be ingested."""

    def __init__(self, message: str, match_id: Any = None):
        self.match_id = match_id
        super().__init__(message)


class UnknownTeamError(IngestionError, LookupError):
    """Raised when a team id was not given at construction time."""

    def __init__(self, team_id: Any, match_id: Any = None, side: Optional[str] = None):
        self.team_id = team_id
        self.side = side
        if match_id is None:
            message = f"No team of id {team_id!r} has been given at construction time."
        else:
            where = f"the {side} team of " if side else ""
            message = (
                f"No team of id {team_id!r} has been given at construction time "
                f"(first thrown at {where}match with match id {match_id!r})."
            )
        super().__init__(message, match_id=match_id)


class IntegrityError(LeagueTableError):
    """Raised when match data is too inconsistent to decide a shootout."""

    def __init__(self, message: str, team_id: Any = None, matchday: Optional[int] = None):
        self.team_id = team_id
        self.matchday = matchday
        super().__init__(message)


class EmptyCompetitionError(LeagueTableError, RuntimeError):
    """Raised when standings are requested before any match was added."""

    def __init__(self):
        super().__init__(
            "No matches have been provided for this competition (call add_matches() first)."
        )


class RecursionDepthExceeded(LeagueTableError, RuntimeError):
    """Raised when the tiebreak cascade never discriminates the teams."""

    def __init__(self, depth: int, team_ids: list):
        self.depth = depth
        self.team_ids = team_ids
        super().__init__(
            f"Maximum recursion depth exceeded ({depth}) while sorting {team_ids}."
        )
