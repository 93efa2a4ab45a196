"""Competition configuration models (Pydantic).

The construction object handed to LeagueTable is validated once here and is
immutable afterwards. Validation failures surface as ConfigurationError
naming the offending field, never as a raw pydantic ValidationError.
"""

import inspect
import logging
from enum import Enum
from typing import Any, Callable, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from leaguetable.errors import ConfigurationError
from leaguetable.presets import PRESETS

logger = logging.getLogger(__name__)


class Stat(str, Enum):
    """Statistic tags of a team row.

    | Tag       | Meaning                               |
    |-----------|---------------------------------------|
    | POINTS    | Points from the configured rule       |
    | FOR       | Goals scored                          |
    | AGAINST   | Goals conceded                        |
    | DIFF      | Goal difference (for - against)       |
    | WON       | Matches won                           |
    | DRAWN     | Matches drawn                         |
    | LOST      | Matches lost                          |
    | AWAY_FOR  | Goals scored away from home           |
    | AWAY_WON  | Matches won away from home            |
    | PLAYED    | Matches played                        |
    """

    POINTS = "points"
    FOR = "for"
    AGAINST = "against"
    DIFF = "diff"
    WON = "won"
    DRAWN = "drawn"
    LOST = "lost"
    AWAY_FOR = "away_for"
    AWAY_WON = "away_won"
    PLAYED = "played"


# Internal away-split fields are dropped from the public standings
INTERNAL_STATS = (Stat.AWAY_FOR, Stat.AWAY_WON)


class Regime(str, Enum):
    """Iteration type of a tiebreak cycle."""

    OVERALL = "overall"
    H2H = "h2h"
    ADDITIONAL = "additional"
    SHOOTOUT = "shootout"
    FLAGS = "flags"
    FINAL = "final"


class H2HConfig(BaseModel):
    """When head-to-head applies and how often it is recomputed."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    when: Literal["before", "after"]
    span: Literal["all", "single", "none"]


class FlagConfig(BaseModel):
    """A federation-defined per-team attribute used as a late tiebreaker."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1)
    order: Literal["asc", "desc"]


class SortingConfig(BaseModel):
    """Tiebreak cascade. "points" is implicitly the first base criterion."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    criteria: tuple[Stat, ...]
    h2h: H2HConfig
    additional: tuple[Stat, ...] = ()
    shootout: bool = False
    flags: tuple[FlagConfig, ...] = ()
    final: Literal["lots", "alphabetical"] = "lots"

    @field_validator("criteria", "additional")
    @classmethod
    def no_repeated_criteria(cls, value: tuple[Stat, ...]) -> tuple[Stat, ...]:
        if len(set(value)) != len(value):
            raise ValueError("criteria must not repeat")
        return value

    @field_validator("flags")
    @classmethod
    def unique_flag_names(cls, value: tuple[FlagConfig, ...]) -> tuple[FlagConfig, ...]:
        names = [flag.name for flag in value]
        if len(set(names)) != len(names):
            raise ValueError("flag names must be unique")
        stat_names = {stat.value for stat in Stat}
        clashing = [name for name in names if name in stat_names]
        if clashing:
            raise ValueError(f"flag names clash with statistic names: {clashing}")
        return value

    @property
    def base_criteria(self) -> tuple[str, ...]:
        """Criteria of the overall and head-to-head regimes."""
        return (Stat.POINTS.value,) + tuple(
            stat.value for stat in self.criteria if stat is not Stat.POINTS
        )

    @property
    def flag_names(self) -> tuple[str, ...]:
        return tuple(flag.name for flag in self.flags)

    def flag_order(self, name: str) -> str:
        for flag in self.flags:
            if flag.name == name:
                return flag.order
        raise KeyError(name)


class TeamEntry(BaseModel):
    """One participating team (a non-empty string id) with its flag values, in configured flag order."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    team: str = Field(min_length=1)
    flags: tuple[int, ...] = ()


PointsSpec = Union[Literal["standard", "old"], Callable[..., Any]]


class CompetitionConfig(BaseModel):
    """Validated construction object of a LeagueTable."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    teams: tuple[TeamEntry, ...] = Field(min_length=2)
    format: Literal["round-robin", "home-and-away"]
    points: PointsSpec = "standard"
    sorting: SortingConfig
    names: dict[str, str] = Field(default_factory=dict)

    @field_validator("teams", mode="before")
    @classmethod
    def wrap_plain_team_ids(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return [{"team": item} if isinstance(item, str) else item for item in value]
        return value

    @field_validator("sorting", mode="before")
    @classmethod
    def expand_preset(cls, value: Any) -> Any:
        if isinstance(value, str):
            if value not in PRESETS:
                raise ConfigurationError(
                    "sorting", value, f"unknown preset (available: {sorted(PRESETS)})"
                )
            logger.debug(f"[CONFIG] Expanding sorting preset '{value}'")
            return PRESETS[value]
        return value

    @field_validator("points")
    @classmethod
    def points_function_arity(cls, value: PointsSpec) -> PointsSpec:
        if callable(value) and not _accepts_three_positional(value):
            raise ConfigurationError(
                "points",
                value,
                "a points function must accept three parameters (won, drawn, lost)",
            )
        return value

    @model_validator(mode="after")
    def check_teams_against_flags(self) -> "CompetitionConfig":
        seen = set()
        for position, entry in enumerate(self.teams):
            if entry.team in seen:
                raise ConfigurationError(
                    f"teams.{position}.team", entry.team, "team ids must be unique"
                )
            seen.add(entry.team)

            expected = len(self.sorting.flags)
            if entry.flags and len(entry.flags) != expected:
                raise ConfigurationError(
                    f"teams.{position}.flags",
                    list(entry.flags),
                    f"expected {expected} flag value(s), one per sorting.flags entry",
                )
        return self

    @property
    def team_ids(self) -> list[str]:
        return [entry.team for entry in self.teams]

    def initial_flags(self, team_id: str) -> dict[str, int]:
        """Flag values of a team keyed by flag name (zeros when not given)."""
        names = self.sorting.flag_names
        for entry in self.teams:
            if entry.team == team_id:
                values = entry.flags or (0,) * len(names)
                return dict(zip(names, values))
        raise KeyError(team_id)


def _accepts_three_positional(fn: Callable) -> bool:
    try:
        params = inspect.signature(fn).parameters.values()
    except (TypeError, ValueError):
        # Builtins without introspectable signatures are trusted
        return True
    positional = 0
    for param in params:
        if param.kind == inspect.Parameter.VAR_POSITIONAL:
            return True
        if param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            positional += 1
    return positional >= 3


def parse_competition(data: Any) -> CompetitionConfig:
    """
    Validate a raw construction object.

    Args:
        data: Mapping with keys teams, format, sorting and optionally
            points and names. sorting may be a preset name.

    Returns:
        Frozen CompetitionConfig.

    Raises:
        ConfigurationError: On the first offending field.
    """
    if isinstance(data, CompetitionConfig):
        return data
    if not isinstance(data, dict):
        raise ConfigurationError(
            "<root>", data, "expected an object with keys: teams, format, sorting"
        )
    try:
        return CompetitionConfig.model_validate(data)
    except ValidationError as exc:
        raise _to_configuration_error(exc) from exc


def _to_configuration_error(exc: ValidationError) -> ConfigurationError:
    first = exc.errors()[0]
    raised = (first.get("ctx") or {}).get("error")
    if isinstance(raised, ConfigurationError):
        return raised
    field = ".".join(str(part) for part in first["loc"]) or "<root>"
    value = None if first["type"] == "missing" else first.get("input")
    return ConfigurationError(field, value, first["msg"])
