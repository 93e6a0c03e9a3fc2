"""Roster input and result output for the command line tool.

The generation core works on Player objects only. This module is the
caller-side adapter: it reads one fixed CSV layout into players and writes
a generation result back out as YAML.
"""

import logging
from pathlib import Path
from typing import List, Tuple

import pandas as pd
import yaml

from .assigner import GenerationResult
from .exceptions import RosterError
from .models import GENDERS, Player
from .stats import get_team_summary
from .validators import validate_roster_frame

logger = logging.getLogger("team_builder.roster")

REQUEST_SEPARATOR = ";"

_TRUE_VALUES = {"1", "true", "yes", "y", "x"}


def split_requests(value) -> Tuple[str, ...]:
    """Split a request cell ("Alice; Bob") into names, keeping their order."""
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ()
    return tuple(name.strip() for name in str(value).split(REQUEST_SEPARATOR) if name.strip())


def load_roster_csv(roster_file: Path) -> List[Player]:
    """Load players from a roster CSV file.

    Expected columns: name, gender, skill and optionally id, exec_skill,
    teammate_requests, avoid_requests and is_handler. Request columns hold
    names separated by semicolons; the first teammate request is the
    must-have one.

    Args:
        roster_file: Path to the CSV file

    Returns:
        Players in file order

    Raises:
        FileNotFoundError: If the file doesn't exist
        RosterError: If the file is empty or malformed
    """
    if not roster_file.exists():
        raise FileNotFoundError(f"Roster file not found: {roster_file}")

    try:
        df = pd.read_csv(roster_file, dtype=str)
    except pd.errors.EmptyDataError:
        raise RosterError("Roster CSV file is empty")

    df.columns = [str(column).strip().lower() for column in df.columns]
    try:
        warnings = validate_roster_frame(df)
    except ValueError as e:
        raise RosterError(str(e)) from e

    for warning in warnings:
        logger.warning(warning)

    players = []
    for position, row in enumerate(df.to_dict('records')):
        gender = str(row['gender']).strip() if not pd.isna(row['gender']) else "Other"
        exec_skill = row.get('exec_skill')
        player_id = row.get('id')
        players.append(Player(
            id=str(player_id) if player_id is not None and not pd.isna(player_id) else f"player-{position + 1}",
            name=str(row['name']).strip(),
            gender=gender if gender in GENDERS else "Other",
            skill_rating=float(row['skill']),
            exec_skill_rating=None if exec_skill is None or pd.isna(exec_skill) else float(exec_skill),
            teammate_requests=split_requests(row.get('teammate_requests')),
            avoid_requests=split_requests(row.get('avoid_requests')),
            is_handler=str(row.get('is_handler', '')).strip().lower() in _TRUE_VALUES,
        ))

    logger.debug("Loaded %d players from %s", len(players), roster_file)
    return players


def result_to_dict(result: GenerationResult) -> dict:
    """Plain-data view of a generation result."""
    return {
        'mode': result.mode,
        'teams': [
            {
                'id': team.id,
                'name': team.name,
                'average_skill': round(team.average_skill, 2),
                'gender_breakdown': team.gender_breakdown,
                'handlers': team.handler_count,
                'players': [p.name for p in team.players],
            }
            for team in result.teams
        ],
        'unassigned': [p.name for p in result.unassigned],
        'groups': {group.label: [p.name for p in group.players] for group in result.groups},
        'summary': get_team_summary(result.teams),
        'stats': result.stats.to_dict(),
    }


def save_result_yaml(result: GenerationResult, output_path: Path) -> None:
    """Save a generation result to YAML.

    Args:
        result: Result to save
        output_path: Path where to save the YAML file
    """
    with open(output_path, 'w', encoding='utf-8') as f:
        yaml.dump(result_to_dict(result), f, default_flow_style=False, sort_keys=False)
