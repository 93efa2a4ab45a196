"""League table standings with configurable, regulation-grade tiebreakers."""

from leaguetable.config import LeagueTableSettings, get_settings
from leaguetable.errors import (
    ConfigurationError,
    EmptyCompetitionError,
    IngestionError,
    IntegrityError,
    LeagueTableError,
    RecursionDepthExceeded,
    UnknownTeamError,
)
from leaguetable.presets import PRESET_NAMES
from leaguetable.table import LeagueTable

__all__ = [
    "LeagueTable",
    "LeagueTableSettings",
    "get_settings",
    "PRESET_NAMES",
    "LeagueTableError",
    "ConfigurationError",
    "IngestionError",
    "UnknownTeamError",
    "IntegrityError",
    "EmptyCompetitionError",
    "RecursionDepthExceeded",
]
