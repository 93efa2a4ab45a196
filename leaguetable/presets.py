"""Sorting presets for common competitions.

Each preset is a plain sorting object, validated like a user-supplied one
when a LeagueTable is constructed with sorting="<preset name>".
"""

# FIFA World Cup (2022): overall goal difference and goals scored first,
# then the head-to-head sub-table, then fair play points, then lots.
FIFA_WORLD_CUP = {
    "criteria": ["diff", "for"],
    "h2h": {"when": "after", "span": "none"},
    "additional": [],
    "shootout": False,
    "flags": [{"name": "fair play points", "order": "asc"}],
    "final": "lots",
}

# UEFA Euro (2024): head-to-head first (reapplied to the teams still level),
# then overall goal difference and goals scored, then a penalty shootout for
# two teams level after meeting on the last matchday.
UEFA_EURO = {
    "criteria": ["diff", "for"],
    "h2h": {"when": "before", "span": "all"},
    "additional": [],
    "shootout": True,
    "flags": [
        {"name": "disciplinary points", "order": "asc"},
        {"name": "qualifying ranking", "order": "asc"},
    ],
    "final": "lots",
}

# UEFA Champions League group stage up to 2020-21 (away goals rule)
UEFA_CHAMPIONS_LEAGUE_PRE_2021 = {
    "criteria": ["diff", "for", "away_for"],
    "h2h": {"when": "before", "span": "all"},
    "additional": ["won", "away_won"],
    "shootout": False,
    "flags": [
        {"name": "disciplinary points", "order": "asc"},
        {"name": "club coefficient", "order": "desc"},
    ],
    "final": "lots",
}

# UEFA Champions League group stage 2021-22 to 2023-24 (away goals only
# count as an overall criterion)
UEFA_CHAMPIONS_LEAGUE_2021_2024 = {
    "criteria": ["diff", "for"],
    "h2h": {"when": "before", "span": "all"},
    "additional": ["away_for", "won", "away_won"],
    "shootout": False,
    "flags": [
        {"name": "disciplinary points", "order": "asc"},
        {"name": "club coefficient", "order": "desc"},
    ],
    "final": "lots",
}

PRESETS: dict[str, dict] = {
    "FIFA World Cup": FIFA_WORLD_CUP,
    "UEFA Euro": UEFA_EURO,
    "pre-2021 UEFA Champions League": UEFA_CHAMPIONS_LEAGUE_PRE_2021,
    "2021-2024 UEFA Champions League": UEFA_CHAMPIONS_LEAGUE_2021_2024,
}

PRESET_NAMES = list(PRESETS.keys())
