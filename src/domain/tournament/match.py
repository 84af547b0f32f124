"""Best-of-N set between two opponents."""

from __future__ import annotations

import copy
import logging
from collections.abc import Sequence

from domain.tournament.common import BracketSide, GameResult, MatchStatus, SlotRef
from domain.tournament.errors import InvalidResultError, InvalidStateError

logger = logging.getLogger(__name__)


class Match:
    """One set inside a bracket.

    Slots are numbered 1 and 2. A slot is either filled with a team id, still
    waiting on an earlier match (``None``), or marked as a bye that will never
    be filled. Elimination matches carry forward links so progression is a
    plain slot write on the target match.
    """

    def __init__(
        self,
        *,
        match_id: int,
        round_number: int,
        number: int,
        best_of: int,
        group_id: int | None = None,
        side: BracketSide | None = None,
        team1_id: int | None = None,
        team2_id: int | None = None,
        winner_to: SlotRef | None = None,
        loser_to: SlotRef | None = None,
    ) -> None:
        if best_of < 1 or best_of % 2 == 0:
            raise InvalidResultError(f"best_of must be a positive odd number, got {best_of}")
        self.id = match_id
        self.round_number = round_number
        self.number = number
        self.best_of = best_of
        self.group_id = group_id
        self.side = side
        self.team1_id = team1_id
        self.team2_id = team2_id
        self.winner_to = winner_to
        self.loser_to = loser_to
        self.bye_slots: frozenset[int] = frozenset()
        self.games: tuple[GameResult, ...] = ()
        self.winner_id: int | None = None

    def __repr__(self) -> str:
        return (
            f"Match(id={self.id}, round={self.round_number}, side={self.side}, "
            f"team1={self.team1_id}, team2={self.team2_id}, status={self.status.value})"
        )

    @property
    def wins_needed(self) -> int:
        return self.best_of // 2 + 1

    @property
    def is_bye(self) -> bool:
        """Resolved without play because one slot can never be filled."""
        return bool(self.bye_slots)

    @property
    def status(self) -> MatchStatus:
        if self.winner_id is not None or len(self.bye_slots) == 2:
            return MatchStatus.FINAL
        if self.team1_id is None or self.team2_id is None:
            return MatchStatus.PENDING
        if not self.games:
            return MatchStatus.READY
        return MatchStatus.IN_PROGRESS

    @property
    def team_ids(self) -> tuple[int, ...]:
        return tuple(team_id for team_id in (self.team1_id, self.team2_id) if team_id is not None)

    @property
    def loser_id(self) -> int | None:
        if self.winner_id is None or self.is_bye:
            return None
        return self.team2_id if self.winner_id == self.team1_id else self.team1_id

    def team_in_slot(self, slot: int) -> int | None:
        return self.team1_id if slot == 1 else self.team2_id

    def opponent_of(self, team_id: int) -> int | None:
        if team_id == self.team1_id:
            return self.team2_id
        if team_id == self.team2_id:
            return self.team1_id
        raise KeyError(f"team_id={team_id} is not in match_id={self.id}")

    def games_won(self, team_id: int) -> int:
        return sum(1 for game in self.games if game.winner_id == team_id)

    def has_played(self, team_id: int) -> bool:
        return team_id in self.team_ids and not self.is_bye and bool(self.games)

    def report_result(self, game_results: Sequence[GameResult]) -> MatchStatus:
        """Append game outcomes and settle the set once a side has a majority.

        Games past the deciding one are ignored.
        """
        status = self.status
        if status is MatchStatus.FINAL:
            raise InvalidStateError(f"match_id={self.id} is already final")
        if self.team1_id is None or self.team2_id is None:
            raise InvalidStateError(f"match_id={self.id} does not have both opponents yet")
        if not game_results:
            raise InvalidResultError(f"match_id={self.id} received an empty result list")

        for game in game_results:
            if game.winner_id not in (self.team1_id, self.team2_id):
                raise InvalidResultError(
                    f"winner_id={game.winner_id} does not belong to match teams "
                    f"{self.team1_id}/{self.team2_id} for match_id={self.id}"
                )
            stray = [p for p in game.participants if p.team_id not in (self.team1_id, self.team2_id)]
            if stray:
                raise InvalidResultError(
                    f"match_id={self.id} has participants from foreign teams: {stray}"
                )

        games = list(self.games)
        winner_id: int | None = None
        for game in game_results:
            games.append(game)
            if sum(1 for played in games if played.winner_id == game.winner_id) >= self.wins_needed:
                winner_id = game.winner_id
                break

        self.games = tuple(games)
        self.winner_id = winner_id
        logger.debug(
            "match_id=%s games=%s winner_id=%s status=%s",
            self.id,
            len(self.games),
            self.winner_id,
            self.status.value,
        )
        return self.status

    def undo_result(self) -> None:
        """Drop every reported game and return to ``ready``."""
        if self.is_bye:
            raise InvalidStateError(f"match_id={self.id} is a bye and has no result to undo")
        if not self.games:
            raise InvalidStateError(f"match_id={self.id} has no reported result")
        self.games = ()
        self.winner_id = None

    def fill_slot(self, slot: int, team_id: int) -> None:
        if slot == 1:
            self.team1_id = team_id
        else:
            self.team2_id = team_id

    def clear_slot(self, slot: int) -> None:
        if slot == 1:
            self.team1_id = None
        else:
            self.team2_id = None

    def mark_bye(self, slot: int) -> None:
        """Mark a slot as permanently empty and settle the match if possible."""
        self.bye_slots = self.bye_slots | {slot}
        present = self.team_in_slot(2 if slot == 1 else 1)
        if len(self.bye_slots) == 1 and present is not None:
            self.winner_id = present

    def settle_bye_if_ready(self) -> None:
        """Award the walkover once the team facing a bye slot is known."""
        if len(self.bye_slots) == 1 and self.winner_id is None:
            (bye_slot,) = self.bye_slots
            present = self.team_in_slot(2 if bye_slot == 1 else 1)
            if present is not None:
                self.winner_id = present

    def snapshot(self) -> Match:
        """Shallow copy safe to read while the original keeps mutating."""
        return copy.copy(self)


__all__ = ["Match"]
