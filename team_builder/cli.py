"""Command line interface for Team Builder."""

import logging
import random
import sys
from pathlib import Path

import click
import yaml

from team_builder.assigner import MODES, TeamAssigner
from team_builder.config import LeagueConfig
from team_builder.grouping import group_color, group_label, process_mutual_requests, validate_groups_for_generation
from team_builder.logger import setup_logging
from team_builder.models import PlayerGroup
from team_builder.name_matcher import FuzzyNameMatcher
from team_builder.roster import load_roster_csv, save_result_yaml
from team_builder.stats import teams_to_dataframe
from team_builder.validators import validate_player_names, validate_unique_ids


def load_config(config_file: Path) -> LeagueConfig:
  """Load and validate the league config, exiting on errors."""
  config = LeagueConfig()
  if config_file is not None:
    try:
      config.load_from_file(config_file)
    except (ValueError, yaml.YAMLError) as e:
      click.secho(f"Error: Invalid config file {config_file}: {e}", fg="red")
      sys.exit(1)

  errors = config.validate()
  if errors:
    for error in errors:
      click.secho(f"Error: {error}", fg="red")
    sys.exit(1)
  return config

def load_players(roster_file: Path):
  try:
    players = load_roster_csv(roster_file)
    validate_player_names(players)
    validate_unique_ids(players)
  except ValueError as e:
    click.secho(f"Error: {e}", fg="red")
    sys.exit(1)
  return players

def build_custom_groups(group_specs, players, matcher: FuzzyNameMatcher, threshold: float) -> list[PlayerGroup]:
  """Turn "Alice,Bob" style options into custom groups."""
  names = [p.name for p in players]
  groups = []
  for index, spec in enumerate(group_specs):
    player_ids = []
    for name in (n.strip() for n in spec.split(",") if n.strip()):
      resolution = matcher.resolve(name, names, threshold)
      if not resolution.is_usable:
        click.secho(f"Error: {resolution.message}", fg="red")
        sys.exit(1)
      if resolution.status == "verify":
        click.secho(f"Warning: {resolution.message}", fg="yellow")
      player_ids.append(players[resolution.index].id)
    groups.append(PlayerGroup(
      id=f"custom-{index}",
      label=f"Custom {group_label(index)}",
      color=group_color(index),
      player_ids=player_ids,
    ))
  return groups

@click.group()
def cli():
  """Team Builder CLI for splitting a roster into balanced teams."""
  pass

@cli.command("init-config")
@click.argument("config_file", type=click.Path(path_type=Path))
def init_config(config_file: Path):
  """Write a config file with the default settings."""
  if config_file.exists() and not click.confirm(f"{config_file} exists; overwrite?", default=False):
    click.secho(f"Skipping {config_file}", fg="green")
    return

  LeagueConfig().save_to_file(config_file)
  click.secho(f"Wrote default config to {config_file}", fg="green")

@cli.command()
@click.argument("roster_file", type=click.Path(exists=True, path_type=Path))
@click.option("--config", "config_file", type=click.Path(exists=True, path_type=Path), help="League config YAML")
def check(roster_file: Path, config_file: Path):
  """Report request diagnostics and group problems before generating."""
  setup_logging(logging.WARNING)
  config = load_config(config_file)
  players = load_players(roster_file)
  names = {p.id: p.name for p in players}

  grouping = process_mutual_requests(players, FuzzyNameMatcher(), config.match_threshold)

  for group in grouping.groups:
    click.secho(f"Group {group.label}: {', '.join(p.name for p in group.players)}", fg="blue")
  for near_miss in grouping.near_misses:
    left_out = ", ".join(names[pid] for pid in near_miss.excluded_ids)
    click.secho(f"Near miss ({near_miss.reason}): left out {left_out}", fg="yellow")
  for conflict in grouping.conflicts:
    click.secho(f"{conflict.kind}: {names[conflict.requester_id]} -> {names[conflict.target_id]}", fg="yellow")
  for warning in grouping.warnings:
    click.secho(warning, fg="yellow")

  validation = validate_groups_for_generation(grouping.groups, config.max_team_size)
  for warning in validation.warnings:
    click.secho(f"Warning: {warning}", fg="yellow")
  for error in validation.errors:
    click.secho(f"Error: {error}", fg="red")

  if not validation.is_valid:
    sys.exit(1)
  click.secho(f"Checked {len(players)} players: {len(grouping.groups)} groups", fg="green")

@cli.command()
@click.argument("roster_file", type=click.Path(exists=True, path_type=Path))
@click.option("--config", "config_file", type=click.Path(exists=True, path_type=Path), help="League config YAML")
@click.option("--mode", type=click.Choice(MODES), default="balanced", show_default=True)
@click.option("--seed", type=int, default=None, help="Seed for reproducible shuffles and tie-breaks")
@click.option("--group", "group_specs", multiple=True, help="Comma-separated names that must play together")
@click.option("--output", type=click.Path(path_type=Path), help="Write the result to this YAML file")
@click.option("-v", "--verbose", count=True, help="Increase log output (-v info, -vv debug)")
def generate(roster_file: Path, config_file: Path, mode: str, seed: int, group_specs: tuple,
             output: Path, verbose: int):
  """Generate teams from a roster CSV."""
  setup_logging({0: logging.WARNING, 1: logging.INFO}.get(verbose, logging.DEBUG))
  config = load_config(config_file)
  players = load_players(roster_file)

  matcher = FuzzyNameMatcher()
  custom_groups = build_custom_groups(group_specs, players, matcher, config.match_threshold)

  grouping = process_mutual_requests(players, matcher, config.match_threshold)
  validation = validate_groups_for_generation(custom_groups + grouping.groups, config.max_team_size)
  for warning in validation.warnings:
    click.secho(f"Warning: {warning}", fg="yellow")
  if not validation.is_valid:
    for error in validation.errors:
      click.secho(f"Error: {error}", fg="red")
    sys.exit(1)

  assigner = TeamAssigner(config, matcher=matcher, rng=random.Random(seed))
  result = assigner.generate(players, custom_groups, mode)

  if result.teams:
    click.echo(teams_to_dataframe(result.teams).to_string(index=False))
  for team in result.teams:
    click.secho(f"{team.name}: {', '.join(p.name for p in team.players) or '-'}", fg="blue")
  if result.unassigned:
    click.secho(f"Unassigned: {', '.join(p.name for p in result.unassigned)}", fg="yellow")

  stats = result.stats
  click.secho(
    f"Requests honored: {stats.must_have_honored} must-have, {stats.nice_to_have_honored} nice-to-have; "
    f"broken: {stats.must_have_broken} must-have, {stats.nice_to_have_broken} nice-to-have",
    fg="blue",
  )
  if stats.avoid_violations:
    click.secho(f"Avoid violations: {stats.avoid_violations}", fg="red")

  if output is not None:
    save_result_yaml(result, output)
    click.secho(f"Wrote result to {output}", fg="green")

  click.secho(
    f"Assigned {stats.assigned_players} of {stats.total_players} players to {len(result.teams)} teams "
    f"in {stats.generation_time_ms:.0f} ms",
    fg="green",
  )

if __name__ == "__main__":
  cli()
