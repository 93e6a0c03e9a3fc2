"""Validation utilities for Team Builder.

These checks belong to the caller side of the pipeline: run them before
generation, since the generator assumes well-formed input.
"""

from typing import Iterable, List

import pandas as pd

from .config import LeagueConfig
from .models import GENDERS, Player

MAX_PLAYER_NAME_LENGTH = 50

REQUIRED_ROSTER_COLUMNS = ("name", "gender", "skill")


def validate_player_names(players: Iterable[Player]) -> None:
    """Validate roster names.

    Args:
        players: Players to validate

    Raises:
        ValueError: If a name is empty or too long, or the roster is empty
    """
    players = list(players)
    if not players:
        raise ValueError("No players found in roster")

    for player in players:
        if not player.name or not player.name.strip():
            raise ValueError("Player names cannot be empty or whitespace-only")
        if len(player.name) > MAX_PLAYER_NAME_LENGTH:
            raise ValueError(
                f"Player name too long (max {MAX_PLAYER_NAME_LENGTH} chars): '{player.name[:30]}...'"
            )


def validate_unique_ids(players: Iterable[Player]) -> None:
    """Ensure no two players share an id."""
    seen = set()
    duplicates = set()
    for player in players:
        if player.id in seen:
            duplicates.add(player.id)
        seen.add(player.id)
    if duplicates:
        raise ValueError(f"Duplicate player ids: {sorted(duplicates)}")


def validate_league_config(config: LeagueConfig) -> None:
    """Validate that generation is feasible under the league configuration.

    Raises:
        ValueError: If the configuration cannot produce valid teams
    """
    errors = config.validate()
    if errors:
        raise ValueError("Invalid league configuration: " + "; ".join(errors))


def validate_roster_frame(df: pd.DataFrame) -> List[str]:
    """Validate a roster table before turning rows into players.

    Args:
        df: Roster with one row per player

    Returns:
        Non-fatal warnings (unknown genders that will be read as "Other")

    Raises:
        ValueError: If required columns are missing or values are invalid
    """
    if df.shape[0] == 0:
        raise ValueError("Roster must contain at least 1 player")

    missing = [column for column in REQUIRED_ROSTER_COLUMNS if column not in df.columns]
    if missing:
        raise ValueError(f"Roster is missing required columns: {missing}")

    if df['name'].isna().any() or (df['name'].astype(str).str.strip() == '').any():
        raise ValueError("Column 'name' contains missing values")

    skills = pd.to_numeric(df['skill'], errors='coerce')
    if skills.isna().any():
        raise ValueError("Column 'skill' contains non-numeric values")
    if ((skills < 0) | (skills > 10)).any():
        raise ValueError("Column 'skill' contains ratings outside 0-10")

    if 'exec_skill' in df.columns:
        exec_skills = pd.to_numeric(df['exec_skill'], errors='coerce')
        if (df['exec_skill'].notna() & exec_skills.isna()).any():
            raise ValueError("Column 'exec_skill' contains non-numeric values")

    if 'id' in df.columns and df['id'].astype(str).duplicated().any():
        raise ValueError("Column 'id' contains duplicate ids")

    warnings = []
    for name, gender in zip(df['name'], df['gender']):
        if pd.isna(gender) or str(gender).strip() not in GENDERS:
            warnings.append(f"Player '{name}' has unknown gender {gender!r}; using 'Other'")
    return warnings
