"""Shared types for the bracket engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class BracketFormat(str, Enum):
    """Supported bracket formats."""

    SINGLE_ELIMINATION = "single_elimination"
    DOUBLE_ELIMINATION = "double_elimination"
    ROUND_ROBIN = "round_robin"
    SWISS = "swiss"

    @property
    def is_elimination(self) -> bool:
        return self in (BracketFormat.SINGLE_ELIMINATION, BracketFormat.DOUBLE_ELIMINATION)


class MatchStatus(str, Enum):
    """Lifecycle of a match. Later members never revert to earlier ones."""

    PENDING = "pending"
    READY = "ready"
    IN_PROGRESS = "in_progress"
    FINAL = "final"


class BracketSide(str, Enum):
    """Which part of an elimination tree a match belongs to."""

    WINNERS = "winners"
    LOSERS = "losers"
    GRAND_FINAL = "grand_final"


@dataclass(frozen=True)
class GameParticipant:
    """One user who played a game for a team."""

    user_id: int
    team_id: int


@dataclass(frozen=True)
class GameResult:
    """Outcome of a single game inside a set."""

    winner_id: int
    mode: str = "SZ"
    stage_id: int = 0
    participants: tuple[GameParticipant, ...] = ()

    def user_ids_for(self, team_id: int) -> tuple[int, ...]:
        return tuple(
            participant.user_id
            for participant in self.participants
            if participant.team_id == team_id
        )


@dataclass(frozen=True)
class SlotRef:
    """Forward link from a match outcome to an opponent slot of another match."""

    match_id: int
    slot: int


@dataclass
class Team:
    """A tournament team.

    Everything except the drop-out fields is fixed once a bracket starts.
    ``dropped_out_bracket_idx`` and ``dropped_out_round`` record where the team
    withdrew so earlier brackets keep crediting its results.
    """

    id: int
    name: str = ""
    member_user_ids: tuple[int, ...] = ()
    seed: int | None = None
    starting_bracket_idx: int = 0
    dropped_out: bool = False
    dropped_out_bracket_idx: int | None = None
    dropped_out_round: int | None = None

    def dropped_out_before(self, bracket_idx: int, last_round: int | None = None) -> bool:
        """Whether the team withdrew before ``bracket_idx`` concluded.

        ``dropped_out_round`` counts the rounds the team completed before it
        withdrew. ``last_round`` is the final round number of the group being
        evaluated; a team that completed that round still counts as a finisher.
        """
        if not self.dropped_out:
            return False
        if self.dropped_out_bracket_idx is not None and self.dropped_out_bracket_idx > bracket_idx:
            return False
        if (
            self.dropped_out_bracket_idx == bracket_idx
            and last_round is not None
            and self.dropped_out_round is not None
            and self.dropped_out_round >= last_round
        ):
            return False
        return True


__all__ = [
    "BracketFormat",
    "BracketSide",
    "GameParticipant",
    "GameResult",
    "MatchStatus",
    "SlotRef",
    "Team",
]
