"""Configuration management for Team Builder."""

from pathlib import Path
from typing import List, Optional, Set, Tuple

import yaml

from .exceptions import ConfigError

MAX_TEAM_SIZE_LIMIT = 50


class LeagueConfig:
    """League settings plus the tuning knobs of the generation pipeline."""

    def __init__(
        self,
        max_team_size: int = 12,
        min_females: int = 0,
        min_males: int = 0,
        target_teams: Optional[int] = None,
        allow_mixed_gender: bool = True,
        name: str = "Default League"
    ):
        """Initialize configuration with default values."""
        self.name: str = name
        self.max_team_size: int = max_team_size
        self.min_females: int = min_females
        self.min_males: int = min_males
        self.target_teams: Optional[int] = target_teams
        self.allow_mixed_gender: bool = allow_mixed_gender
        self.exclusions: List[Set[str]] = []

        # Name matching
        self.match_threshold: float = 0.6

        # Skill balancer
        self.balance_max_passes: int = 10
        self.balance_spread_threshold: float = 0.5
        self.balance_min_improvement: float = 0.01
        self.balance_sample_size: int = 4
        self.balance_role_weight: float = 0.5
        self.handler_target: Optional[float] = None

    def load_from_file(self, config_path: Path) -> None:
        """Load configuration from a YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Raises:
            FileNotFoundError: If the config file doesn't exist
            yaml.YAMLError: If the YAML file is invalid
            ConfigError: If the configuration structure is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f)

        if not isinstance(config_data, dict):
            raise ConfigError("Configuration file must contain a YAML dictionary")

        self.load_from_dict(config_data)

    def load_from_dict(self, config_data: dict) -> None:
        """Apply the ``league``, ``matching`` and ``balancer`` sections."""
        league = _section(config_data, 'league')

        if 'name' in league:
            self.name = str(league['name'])

        for key in ('max_team_size', 'min_females', 'min_males'):
            if key in league:
                value = league[key]
                if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                    raise ConfigError(f"league.{key} must be a non-negative integer")
                setattr(self, key, value)

        if 'target_teams' in league:
            target = league['target_teams']
            if target is not None and (not isinstance(target, int) or target < 0):
                raise ConfigError("league.target_teams must be a non-negative integer or null")
            self.target_teams = target

        if 'allow_mixed_gender' in league:
            self.allow_mixed_gender = bool(league['allow_mixed_gender'])

        if 'exclusions' in league:
            self.exclusions = _parse_exclusions(league['exclusions'])

        matching = _section(config_data, 'matching')
        if 'threshold' in matching:
            self.match_threshold = _fraction(matching['threshold'], 'matching.threshold')

        balancer = _section(config_data, 'balancer')
        if 'max_passes' in balancer:
            self.balance_max_passes = _positive_int(balancer['max_passes'], 'balancer.max_passes')
        if 'sample_size' in balancer:
            self.balance_sample_size = _positive_int(balancer['sample_size'], 'balancer.sample_size')
        if 'spread_threshold' in balancer:
            self.balance_spread_threshold = _non_negative(balancer['spread_threshold'], 'balancer.spread_threshold')
        if 'min_improvement' in balancer:
            self.balance_min_improvement = _non_negative(balancer['min_improvement'], 'balancer.min_improvement')
        if 'role_weight' in balancer:
            self.balance_role_weight = _non_negative(balancer['role_weight'], 'balancer.role_weight')
        if 'handler_target' in balancer:
            target = balancer['handler_target']
            self.handler_target = None if target is None else _non_negative(target, 'balancer.handler_target')

    def validate(self) -> List[str]:
        """List problems that make this configuration unusable.

        Returns:
            Human-readable error messages; empty when the config is valid
        """
        errors = []

        if not self.name or not self.name.strip():
            errors.append("Config name is required")
        if self.max_team_size < 1:
            errors.append("Max team size must be at least 1")
        if self.max_team_size > MAX_TEAM_SIZE_LIMIT:
            errors.append(f"Max team size cannot exceed {MAX_TEAM_SIZE_LIMIT}")
        if self.min_females < 0:
            errors.append("Minimum females cannot be negative")
        if self.min_males < 0:
            errors.append("Minimum males cannot be negative")
        if self.min_females + self.min_males > self.max_team_size:
            errors.append("Minimum gender requirements exceed max team size")
        if self.target_teams is not None and self.target_teams < 0:
            errors.append("Target teams cannot be negative")

        return errors

    def get_excluded_pairs(self) -> List[Tuple[str, str]]:
        """Get all pairs of names that cannot be on the same team."""
        excluded_pairs = []

        for exclusion_group in self.exclusions:
            people_list = sorted(exclusion_group)
            for i, person1 in enumerate(people_list):
                for person2 in people_list[i + 1:]:
                    excluded_pairs.append((person1, person2))

        return excluded_pairs

    def to_dict(self) -> dict:
        """Convert configuration to dictionary format.

        Returns:
            Dictionary representation of the configuration
        """
        config_dict = {
            'league': {
                'name': self.name,
                'max_team_size': self.max_team_size,
                'min_females': self.min_females,
                'min_males': self.min_males,
                'target_teams': self.target_teams,
                'allow_mixed_gender': self.allow_mixed_gender,
            },
            'matching': {
                'threshold': self.match_threshold,
            },
            'balancer': {
                'max_passes': self.balance_max_passes,
                'spread_threshold': self.balance_spread_threshold,
                'min_improvement': self.balance_min_improvement,
                'sample_size': self.balance_sample_size,
                'role_weight': self.balance_role_weight,
                'handler_target': self.handler_target,
            },
        }

        if self.exclusions:
            config_dict['league']['exclusions'] = [
                ','.join(sorted(exclusion_group))
                for exclusion_group in self.exclusions
            ]

        return config_dict

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration to a YAML file.

        Args:
            config_path: Path where to save the configuration
        """
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=True)


def _section(config_data: dict, key: str) -> dict:
    section = config_data.get(key) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{key}' section must be a dictionary")
    return section


def _parse_exclusions(exclusions) -> List[Set[str]]:
    if not isinstance(exclusions, list):
        raise ConfigError("league.exclusions must be a list")

    parsed = []
    for exclusion_group in exclusions:
        if isinstance(exclusion_group, str):
            names = {name.strip() for name in exclusion_group.split(',')}
        elif isinstance(exclusion_group, list):
            names = {str(name).strip() for name in exclusion_group}
        else:
            raise ConfigError("Each exclusion group must be a comma-separated string or list")

        names.discard('')
        if len(names) < 2:
            raise ConfigError("Each exclusion group must contain at least 2 people")
        parsed.append(names)
    return parsed


def _positive_int(value, key: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < 1:
        raise ConfigError(f"{key} must be a positive integer")
    return value


def _non_negative(value, key: str) -> float:
    if not isinstance(value, (int, float)) or isinstance(value, bool) or value < 0:
        raise ConfigError(f"{key} must be a non-negative number")
    return float(value)


def _fraction(value, key: str) -> float:
    value = _non_negative(value, key)
    if value > 1:
        raise ConfigError(f"{key} must be between 0 and 1")
    return value
