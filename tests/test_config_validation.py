"""
Tests for construction-object validation, presets and engine settings.

Every invalid shape must surface as ConfigurationError naming the field.
"""

import pytest

from leaguetable.config import LeagueTableSettings
from leaguetable.errors import ConfigurationError
from leaguetable.models import CompetitionConfig, Stat, parse_competition
from leaguetable.presets import PRESET_NAMES, PRESETS


def _data(**overrides):
    data = {
        "teams": ["Italy", "Spain", "France"],
        "format": "round-robin",
        "sorting": {
            "criteria": ["diff", "for"],
            "h2h": {"when": "after", "span": "none"},
            "additional": [],
            "shootout": False,
            "flags": [],
            "final": "lots",
        },
    }
    data.update(overrides)
    return data


def _sorting(**overrides):
    sorting = dict(_data()["sorting"])
    sorting.update(overrides)
    return sorting


# ═══════════════════════════════════════════════════════════════════
# Valid construction objects
# ═══════════════════════════════════════════════════════════════════


class TestValidConfiguration:
    """Normalisation of accepted shapes."""

    def test_plain_team_ids_are_wrapped(self):
        config = parse_competition(_data())

        assert config.team_ids == ["Italy", "Spain", "France"]
        assert config.points == "standard"
        assert config.initial_flags("Italy") == {}

    def test_team_objects_with_flags(self):
        flags = [{"name": "fair play points", "order": "asc"}]
        config = parse_competition(_data(
            teams=[{"team": "Italy", "flags": [3]}, {"team": "Spain", "flags": [1]}],
            sorting=_sorting(flags=flags),
        ))

        assert config.initial_flags("Italy") == {"fair play points": 3}
        assert config.sorting.flag_order("fair play points") == "asc"

    def test_missing_flags_default_to_zero(self):
        flags = [{"name": "coefficient", "order": "desc"}]
        config = parse_competition(_data(sorting=_sorting(flags=flags)))
        assert config.initial_flags("Spain") == {"coefficient": 0}

    def test_points_prepended_to_base_criteria(self):
        config = parse_competition(_data(sorting=_sorting(criteria=["for", "diff"])))
        assert config.sorting.base_criteria == ("points", "for", "diff")

    def test_explicit_points_criterion_not_duplicated(self):
        config = parse_competition(_data(sorting=_sorting(criteria=["points", "diff"])))
        assert config.sorting.base_criteria == ("points", "diff")

    def test_custom_points_function(self):
        config = parse_competition(_data(points=lambda won, drawn, lost: won))
        assert callable(config.points)

    def test_config_is_frozen(self):
        config = parse_competition(_data())
        with pytest.raises(Exception):
            config.format = "home-and-away"

    def test_already_parsed_config_passes_through(self):
        config = parse_competition(_data())
        assert parse_competition(config) is config


class TestPresets:
    """Preset names expand to full sorting objects."""

    @pytest.mark.parametrize("name", PRESET_NAMES)
    def test_every_preset_validates(self, name):
        config = parse_competition(_data(sorting=name))
        assert config.sorting.final == "lots"
        assert len(config.sorting.flags) == len(PRESETS[name]["flags"])

    def test_euro_enables_shootout(self):
        sorting = parse_competition(_data(sorting="UEFA Euro")).sorting

        assert sorting.shootout is True
        assert sorting.h2h.when == "before"
        assert sorting.h2h.span == "all"

    def test_pre_2021_champions_league_uses_away_goals(self):
        sorting = parse_competition(_data(sorting="pre-2021 UEFA Champions League")).sorting

        assert Stat.AWAY_FOR in sorting.criteria
        assert sorting.additional == (Stat.WON, Stat.AWAY_WON)
        assert sorting.flag_order("club coefficient") == "desc"

    def test_unknown_preset(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_competition(_data(sorting="Copa America"))

        assert exc_info.value.field == "sorting"
        assert exc_info.value.value == "Copa America"


# ═══════════════════════════════════════════════════════════════════
# Invalid construction objects
# ═══════════════════════════════════════════════════════════════════


class TestInvalidConfiguration:
    """ConfigurationError carries the offending field."""

    def test_root_must_be_an_object(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_competition(["Italy", "Spain"])
        assert exc_info.value.field == "<root>"

    def test_missing_format(self):
        data = _data()
        del data["format"]

        with pytest.raises(ConfigurationError) as exc_info:
            parse_competition(data)

        assert exc_info.value.field == "format"
        assert exc_info.value.value is None

    def test_invalid_format(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_competition(_data(format="knockout"))
        assert exc_info.value.field == "format"

    def test_invalid_h2h_when(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_competition(_data(sorting=_sorting(h2h={"when": "during", "span": "all"})))
        assert exc_info.value.field == "sorting.h2h.when"

    def test_unknown_statistic(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_competition(_data(sorting=_sorting(criteria=["goals"])))
        assert exc_info.value.field == "sorting.criteria.0"

    def test_repeated_criteria(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_competition(_data(sorting=_sorting(criteria=["diff", "diff"])))
        assert exc_info.value.field.startswith("sorting.criteria")

    def test_flag_name_clashing_with_statistic(self):
        with pytest.raises(ConfigurationError):
            parse_competition(_data(sorting=_sorting(flags=[{"name": "won", "order": "asc"}])))

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_competition(_data(colour="blue"))
        assert exc_info.value.field == "colour"

    def test_too_few_teams(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_competition(_data(teams=["Italy"]))
        assert exc_info.value.field == "teams"

    def test_team_ids_must_be_strings(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_competition(_data(teams=[7, "Spain", "France"]))
        assert exc_info.value.field.startswith("teams.0")

    def test_empty_team_id(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_competition(_data(teams=["", "Spain"]))
        assert exc_info.value.field == "teams.0.team"

    def test_duplicate_team_ids(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_competition(_data(teams=["Italy", "Spain", "Italy"]))

        assert exc_info.value.field == "teams.2.team"
        assert exc_info.value.value == "Italy"

    def test_flag_count_mismatch(self):
        flags = [{"name": "fair play points", "order": "asc"}]
        with pytest.raises(ConfigurationError) as exc_info:
            parse_competition(_data(
                teams=[{"team": "Italy", "flags": [1, 2]}, "Spain"],
                sorting=_sorting(flags=flags),
            ))
        assert exc_info.value.field == "teams.0.flags"

    def test_points_function_with_wrong_arity(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_competition(_data(points=lambda won, drawn: won))
        assert exc_info.value.field == "points"

    def test_unknown_points_rule(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_competition(_data(points="modern"))
        assert exc_info.value.field.startswith("points")

    def test_error_is_a_value_error(self):
        """Callers catching ValueError keep working."""
        with pytest.raises(ValueError):
            parse_competition(_data(format="knockout"))

    def test_direct_model_validation_still_available(self):
        config = CompetitionConfig.model_validate(_data())
        assert config.format == "round-robin"


# ═══════════════════════════════════════════════════════════════════
# Settings
# ═══════════════════════════════════════════════════════════════════


class TestSettings:
    """Engine settings from the environment."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("LEAGUE_TABLE_MAX_DEPTH", raising=False)
        monkeypatch.delenv("LEAGUE_TABLE_LOG_TIES", raising=False)
        settings = LeagueTableSettings()

        assert settings.MAX_DEPTH == 75
        assert settings.LOG_TIES is False

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("LEAGUE_TABLE_MAX_DEPTH", "12")
        monkeypatch.setenv("LEAGUE_TABLE_LOG_TIES", "true")
        settings = LeagueTableSettings()

        assert settings.MAX_DEPTH == 12
        assert settings.LOG_TIES is True

    def test_settings_ignore_dotenv_in_working_directory(self, monkeypatch, tmp_path):
        """Only the process environment is read; a host's .env file is not."""
        monkeypatch.delenv("LEAGUE_TABLE_MAX_DEPTH", raising=False)
        (tmp_path / ".env").write_text("LEAGUE_TABLE_MAX_DEPTH=5\n")
        monkeypatch.chdir(tmp_path)

        assert LeagueTableSettings().MAX_DEPTH == 75
