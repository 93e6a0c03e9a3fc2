"""Custom exceptions for Team Builder.

The generation pipeline itself raises nothing for well-formed input. These
exceptions cover the edges around it: configuration files, roster loading and
manual moves that would break a hard constraint.
"""


class TeamBuilderError(Exception):
    """Base exception for all Team Builder errors."""

    pass


class ConfigError(TeamBuilderError, ValueError):
    """Raised when a league configuration is malformed."""

    pass


class RosterError(TeamBuilderError, ValueError):
    """Raised when a roster file cannot be turned into players."""

    pass


class MoveRejectedError(TeamBuilderError):
    """Raised when a manual move would break a team constraint."""

    def __init__(self, reason: str, player_id: str):
        super().__init__(f"Cannot move player {player_id}: {reason}")
        self.reason = reason
        self.player_id = player_id
