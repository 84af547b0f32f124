"""Tournament: ordered brackets, team movement between them and finalize."""

from __future__ import annotations

import contextlib
import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from domain.tournament.bracket import Bracket
from domain.tournament.common import BracketFormat, GameResult, Team
from domain.tournament.errors import (
    InvalidStateError,
    SourceBracketNotFinishedError,
    TournamentConfigError,
    TournamentNotFinishedError,
)
from domain.tournament.match import Match
from domain.tournament.standings import Standing
from domain.tournament.summarizer import Summarizer, TournamentSummary

logger = logging.getLogger(__name__)

Selector = Callable[[Standing], bool]


@dataclass(frozen=True)
class StoredResult:
    """A previously reported set, replayed to rebuild state."""

    bracket_idx: int
    match_id: int
    games: tuple[GameResult, ...]


@dataclass(frozen=True)
class DropOut:
    """A withdrawal; ``round_number`` is how many rounds of the bracket the team completed."""

    team_id: int
    bracket_idx: int
    round_number: int | None = None


def placements_in(placements: Iterable[int]) -> Selector:
    wanted = frozenset(placements)
    return lambda standing: standing.placement in wanted


def top_placements(count: int) -> Selector:
    return lambda standing: standing.placement <= count


class Tournament:
    def __init__(
        self,
        tournament_id: int,
        teams: Sequence[Team],
        brackets: Sequence[Bracket],
        *,
        name: str = "",
        summarizer: Summarizer | None = None,
    ) -> None:
        if not brackets:
            raise TournamentConfigError(f"tournament {tournament_id} has no brackets")
        for position, bracket in enumerate(brackets):
            if bracket.idx != position:
                raise TournamentConfigError(f"bracket at position {position} has idx {bracket.idx}")
            for source in bracket.sources:
                if not 0 <= source.bracket_idx < position:
                    raise TournamentConfigError(
                        f"bracket {position} sources teams from bracket {source.bracket_idx}, "
                        "which is not an earlier bracket"
                    )
        team_ids = [team.id for team in teams]
        if len(team_ids) != len(set(team_ids)):
            raise TournamentConfigError(f"tournament {tournament_id} has duplicate team ids: {team_ids}")

        self.id = tournament_id
        self.name = name
        self.brackets = list(brackets)
        self.summarizer = summarizer
        self._teams = {team.id: team for team in teams}
        self._lock = threading.RLock()
        self._advanced: set[tuple[int, int]] = set()
        self._summary: TournamentSummary | None = None
        self._start_initial_brackets()

    def _start_initial_brackets(self) -> None:
        for bracket in self.brackets:
            if bracket.sources:
                continue
            if bracket.team_ids is not None:
                teams = [self.team(team_id) for team_id in bracket.team_ids]
            else:
                teams = sorted(
                    (team for team in self._teams.values() if team.starting_bracket_idx == bracket.idx),
                    key=lambda team: (team.seed is None, team.seed or 0, team.id),
                )
            if not teams:
                raise TournamentConfigError(f"bracket {bracket.idx} has neither teams nor sources")
            bracket.start(teams)

    # ========== Queries ==========

    @property
    def teams(self) -> list[Team]:
        return list(self._teams.values())

    def team(self, team_id: int) -> Team:
        try:
            return self._teams[team_id]
        except KeyError as exc:
            raise KeyError(f"tournament {self.id} has no team_id={team_id}") from exc

    def bracket_by_idx(self, idx: int) -> Bracket:
        if not 0 <= idx < len(self.brackets):
            raise KeyError(f"tournament {self.id} has no bracket idx={idx}")
        return self.brackets[idx]

    def current_standings(self, bracket_idx: int, include_in_progress: bool = False) -> list[Standing]:
        return self.bracket_by_idx(bracket_idx).current_standings(include_in_progress)

    def is_finished(self) -> bool:
        return all(bracket.is_finished() for bracket in self.brackets)

    def final_placements(self) -> list[tuple[Team, int]]:
        """Placement of every ranked team, taken from the last bracket it played in.

        Teams that reached a later bracket rank above everyone eliminated
        earlier; inside one bracket the bracket standings decide.
        """
        if not self.is_finished():
            raise TournamentNotFinishedError(f"tournament {self.id} has unfinished brackets")

        placed: list[tuple[Team, int]] = []
        seen: set[int] = set()
        for bracket in reversed(self.brackets):
            remaining = [
                standing for standing in bracket.current_standings(False) if standing.team.id not in seen
            ]
            offset = len(placed)
            previous: int | None = None
            placement = 0
            for index, standing in enumerate(remaining):
                if standing.placement != previous:
                    placement = offset + index + 1
                    previous = standing.placement
                placed.append((self.team(standing.team.id), placement))
                seen.add(standing.team.id)
        return placed

    # ========== Mutations ==========

    def report_match_result(self, bracket_idx: int, match_id: int, game_results: Sequence[GameResult]) -> Match:
        return self.bracket_by_idx(bracket_idx).report_match_result(match_id, game_results)

    def undo_result(self, bracket_idx: int, match_id: int) -> Match:
        return self.bracket_by_idx(bracket_idx).undo_result(match_id)

    def next_round(self, bracket_idx: int) -> list[Match]:
        return self.bracket_by_idx(bracket_idx).next_round()

    def advance_teams(self, from_bracket_idx: int, to_bracket_idx: int, selector: Selector) -> list[Team]:
        """Seed the teams picked by ``selector`` into a later bracket.

        Teams keep the order of the source standings, which becomes their seed
        order (and snake group order for round robin) in the destination.
        """
        with self._lock:
            source = self.bracket_by_idx(from_bracket_idx)
            destination = self.bracket_by_idx(to_bracket_idx)
            if to_bracket_idx <= from_bracket_idx:
                raise TournamentConfigError("teams can only advance into a later bracket")
            if not source.is_finished():
                raise SourceBracketNotFinishedError(f"bracket {from_bracket_idx} is not finished")
            if (from_bracket_idx, to_bracket_idx) in self._advanced:
                raise InvalidStateError(
                    f"teams were already advanced from bracket {from_bracket_idx} to {to_bracket_idx}"
                )
            if destination.has_results():
                raise InvalidStateError(f"bracket {to_bracket_idx} already has reported results")

            moving = [
                self.team(standing.team.id)
                for standing in source.current_standings(False)
                if selector(standing) and not self.team(standing.team.id).dropped_out
            ]
            pool = destination.teams if destination.is_started else []
            taken = {team.id for team in pool}
            duplicates = [team.id for team in moving if team.id in taken]
            if duplicates:
                raise TournamentConfigError(f"teams {duplicates} are already in bracket {to_bracket_idx}")

            destination.start(pool + moving)
            self._advanced.add((from_bracket_idx, to_bracket_idx))
            logger.info(
                "teams advanced from_bracket=%s to_bracket=%s team_ids=%s",
                from_bracket_idx,
                to_bracket_idx,
                [team.id for team in moving],
            )
            return moving

    def drop_out_team(self, team_id: int, bracket_idx: int | None = None, round_number: int | None = None) -> None:
        """Withdraw a team; it keeps its history but gets no further pairings or tie-break credit."""
        with self._lock:
            team = self.team(team_id)
            if team.dropped_out:
                raise InvalidStateError(f"team_id={team_id} already dropped out")
            if bracket_idx is None:
                containing = [b.idx for b in self.brackets if any(t.id == team_id for t in b.teams)]
                bracket_idx = containing[-1] if containing else team.starting_bracket_idx
            bracket = self.bracket_by_idx(bracket_idx)
            if round_number is None:
                round_number = bracket.rounds_completed

            # Brackets share Team objects and snapshot them under their own lock.
            with contextlib.ExitStack() as stack:
                for each in self.brackets:
                    stack.enter_context(each.editing_teams())
                team.dropped_out = True
                team.dropped_out_bracket_idx = bracket_idx
                team.dropped_out_round = round_number
            logger.info("team dropped out team_id=%s bracket_idx=%s round=%s", team_id, bracket_idx, round_number)

    def replay(self, results: Iterable[StoredResult], drop_outs: Iterable[DropOut] = ()) -> None:
        """Reapply stored results in order.

        Swiss rounds are paired and sourced brackets are filled on demand when a
        stored result refers to a match that does not exist yet.
        """
        pending = sorted(drop_outs, key=lambda drop: (drop.bracket_idx, drop.round_number or 0))
        replayed = 0
        for result in results:
            bracket = self._prepare(result.bracket_idx, pending)
            while not bracket.has_match(result.match_id):
                if bracket.format is not BracketFormat.SWISS:
                    raise KeyError(f"bracket {bracket.idx} has no match_id={result.match_id}")
                self._apply_drop_outs(pending, bracket.idx, up_to_round=bracket.rounds_completed)
                bracket.next_round()
            bracket.report_match_result(result.match_id, result.games)
            replayed += 1

        for bracket in self.brackets:
            if bracket.sources and all(self.bracket_by_idx(s.bracket_idx).is_finished() for s in bracket.sources):
                self._prepare(bracket.idx, pending)
        for drop in list(pending):
            self._apply_drop_outs(pending, drop.bracket_idx)
        logger.info("tournament replayed id=%s results=%s", self.id, replayed)

    def _prepare(self, bracket_idx: int, pending: list[DropOut]) -> Bracket:
        bracket = self.bracket_by_idx(bracket_idx)
        for source in bracket.sources:
            if (source.bracket_idx, bracket_idx) in self._advanced:
                continue
            self._apply_drop_outs(pending, source.bracket_idx)
            self.advance_teams(source.bracket_idx, bracket_idx, placements_in(source.placements))
        return bracket

    def _apply_drop_outs(self, pending: list[DropOut], bracket_idx: int, up_to_round: int | None = None) -> None:
        for drop in list(pending):
            if drop.bracket_idx != bracket_idx:
                continue
            if up_to_round is not None and drop.round_number is not None and drop.round_number > up_to_round:
                continue
            pending.remove(drop)
            self.drop_out_team(drop.team_id, drop.bracket_idx, drop.round_number)

    def finalize(self, summarizer: Summarizer | None = None) -> TournamentSummary:
        """Summarize once; later calls return the same summary."""
        with self._lock:
            if self._summary is not None:
                return self._summary
            if not self.is_finished():
                raise TournamentNotFinishedError(f"tournament {self.id} has unfinished brackets")
            summarizer = summarizer or self.summarizer or Summarizer()
            self._summary = summarizer.summarize(self)
            logger.info("tournament finalized id=%s", self.id)
            return self._summary


__all__ = [
    "DropOut",
    "Selector",
    "StoredResult",
    "Tournament",
    "placements_in",
    "top_placements",
]
