"""A single bracket: match arena, progression and standings."""

from __future__ import annotations

import contextlib
import dataclasses
import itertools
import logging
import math
import threading
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass

from domain.tournament.common import BracketFormat, GameResult, MatchStatus, Team
from domain.tournament.errors import (
    BracketClosedError,
    InvalidStateError,
    PropagationLockedError,
    TournamentConfigError,
)
from domain.tournament.formats import BracketFormatStrategy, strategy_for
from domain.tournament.match import Match
from domain.tournament.standings import BracketSnapshot, Standing, StandingsCalculator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BracketSource:
    """Teams of ``bracket_idx`` finishing at one of ``placements`` feed this bracket."""

    bracket_idx: int
    placements: tuple[int, ...]


class Bracket:
    """One stage of a tournament.

    All writes are serialized by a per-bracket lock. Readers work on a
    :class:`BracketSnapshot` copied under the same lock, so they observe
    either the state before a write or after it.
    """

    def __init__(
        self,
        idx: int,
        bracket_format: BracketFormat,
        *,
        name: str = "",
        best_of: int = 3,
        swiss_round_count: int | None = None,
        group_count: int = 1,
        groups: Mapping[int, int] | None = None,
        team_ids: Sequence[int] | None = None,
        sources: Sequence[BracketSource] = (),
        calculator: StandingsCalculator | None = None,
    ) -> None:
        if best_of < 1 or best_of % 2 == 0:
            raise TournamentConfigError(f"bracket {idx}: best_of must be a positive odd number, got {best_of}")
        if group_count < 1:
            raise TournamentConfigError(f"bracket {idx}: group_count must be >= 1")
        if swiss_round_count is not None and swiss_round_count < 1:
            raise TournamentConfigError(f"bracket {idx}: swiss_round_count must be >= 1")

        self.idx = idx
        self.format = bracket_format
        self.name = name or f"Bracket {idx}"
        self.best_of = best_of
        self.swiss_round_count = swiss_round_count
        self.group_count = group_count
        self.explicit_groups = dict(groups or {})
        self.team_ids = tuple(team_ids) if team_ids is not None else None
        self.sources = tuple(sources)
        self.strategy: BracketFormatStrategy = strategy_for(bracket_format)
        self.calculator = calculator or StandingsCalculator()

        self._lock = threading.RLock()
        self._matches: dict[int, Match] = {}
        self._teams: dict[int, Team] = {}
        self._team_order: list[int] = []
        self._groups: dict[int, int] = {}
        self._id_counter = itertools.count(1)
        self._version = 0
        self._standings_cache: dict[tuple[int, bool], list[Standing]] = {}
        self._finished = False
        self.rounds_completed = 0

    def __repr__(self) -> str:
        return f"Bracket(idx={self.idx}, format={self.format.value}, teams={len(self._teams)})"

    # ========== Setup ==========

    @property
    def is_started(self) -> bool:
        return bool(self._matches)

    @property
    def teams(self) -> list[Team]:
        with self._lock:
            return [self._teams[team_id] for team_id in self._team_order]

    def has_results(self) -> bool:
        with self._lock:
            return any(match.games for match in self._matches.values())

    def start(self, teams: Sequence[Team]) -> None:
        """Generate the bracket structure for ``teams`` in seeding order.

        A started bracket can be regenerated as long as no game was reported.
        """
        with self._lock:
            if self.has_results():
                raise InvalidStateError(f"bracket {self.idx} already has reported results")
            if len(teams) < 2:
                raise TournamentConfigError(f"bracket {self.idx} needs at least two teams, got {len(teams)}")
            team_ids = [team.id for team in teams]
            if len(set(team_ids)) != len(team_ids):
                raise TournamentConfigError(f"bracket {self.idx} has duplicate teams: {team_ids}")

            self._id_counter = itertools.count(1)
            layout = self.strategy.build(
                team_ids,
                best_of=self.best_of,
                next_id=self._next_id,
                group_count=self.group_count,
                groups=self.explicit_groups,
            )
            if self.format is BracketFormat.SWISS and self.swiss_round_count is None:
                self.swiss_round_count = max(1, math.ceil(math.log2(len(teams))))

            self._teams = {team.id: team for team in teams}
            self._team_order = team_ids
            self._groups = layout.groups
            self._matches = {match.id: match for match in layout.matches}

            for match, slot in layout.byes:
                match.mark_bye(slot)
            for match, _ in layout.byes:
                if match.status is MatchStatus.FINAL:
                    self.strategy.propagate(match, self._matches)

            self._finished = False
            self._touch()
            logger.info(
                "bracket started idx=%s format=%s teams=%s matches=%s byes=%s",
                self.idx,
                self.format.value,
                len(teams),
                len(self._matches),
                len(layout.byes),
            )

    # ========== Queries ==========

    def match(self, match_id: int) -> Match:
        """Point-in-time copy of one match."""
        with self._lock:
            return self._get(match_id).snapshot()

    def matches(self) -> list[Match]:
        with self._lock:
            return [match.snapshot() for match in self._matches.values()]

    def has_match(self, match_id: int) -> bool:
        with self._lock:
            return match_id in self._matches

    def snapshot(self) -> BracketSnapshot:
        with self._lock:
            return self._snapshot()

    def current_standings(self, include_in_progress: bool = False) -> list[Standing]:
        with self._lock:
            key = (self._version, include_in_progress)
            cached = self._standings_cache.get(key)
            if cached is not None:
                return list(cached)
            snapshot = self._snapshot()

        standings = self.calculator.compute_standings(snapshot, include_in_progress)

        with self._lock:
            if self._version == key[0]:
                self._standings_cache[key] = standings
        return list(standings)

    def is_finished(self) -> bool:
        with self._lock:
            return self._finished

    # ========== Mutations ==========

    def report_match_result(self, match_id: int, game_results: Sequence[GameResult]) -> Match:
        with self._lock:
            self._ensure_open()
            match = self._get(match_id)
            if match.is_bye:
                raise InvalidStateError(f"match_id={match_id} is a bye and takes no results")

            status = match.report_result(game_results)
            if status is MatchStatus.FINAL:
                self.strategy.propagate(match, self._matches)
            self._touch()
            return match.snapshot()

    def undo_result(self, match_id: int) -> Match:
        """Reset a match to ``ready``, clearing whatever it propagated."""
        with self._lock:
            self._ensure_open()
            match = self._get(match_id)
            if match.is_bye:
                raise InvalidStateError(f"match_id={match_id} is a bye and has no result to undo")

            if match.status is MatchStatus.FINAL:
                blocking = self.strategy.blocking_matches(match, self._matches)
                if blocking:
                    raise PropagationLockedError(
                        f"match_id={match_id} already feeds match ids {sorted(m.id for m in blocking)}"
                    )
                self.strategy.retract(match, self._matches)
            match.undo_result()
            self._touch()
            logger.debug("match_id=%s result undone bracket_idx=%s", match_id, self.idx)
            return match.snapshot()

    def next_round(self) -> list[Match]:
        """Generate the next lazily paired round (swiss only)."""
        with self._lock:
            if not self.is_started:
                raise InvalidStateError(f"bracket {self.idx} has not started")
            if self._finished:
                raise BracketClosedError(f"bracket {self.idx} already played all of its rounds")
            snapshot = self._snapshot()
            standings = self.calculator.compute_standings(snapshot, False)
            created = self.strategy.next_step(
                snapshot,
                standings,
                best_of=self.best_of,
                next_id=self._next_id,
            )
            for match in created:
                self._matches[match.id] = match
            self._touch()
            return [match.snapshot() for match in created]

    @contextlib.contextmanager
    def editing_teams(self) -> Iterator[None]:
        """Hold the bracket lock while shared team state changes, then drop cached standings."""
        with self._lock:
            yield
            self._touch()

    # ========== Internals ==========

    def _next_id(self) -> int:
        return next(self._id_counter)

    def _get(self, match_id: int) -> Match:
        try:
            return self._matches[match_id]
        except KeyError as exc:
            raise KeyError(f"bracket {self.idx} has no match_id={match_id}") from exc

    def _ensure_open(self) -> None:
        if not self.is_started:
            raise InvalidStateError(f"bracket {self.idx} has not started")
        if self._finished:
            raise BracketClosedError(f"bracket {self.idx} is finished and closed to edits")

    def _snapshot(self) -> BracketSnapshot:
        return BracketSnapshot(
            bracket_idx=self.idx,
            format=self.format,
            matches=tuple(match.snapshot() for match in self._matches.values()),
            teams={team_id: dataclasses.replace(team) for team_id, team in self._teams.items()},
            team_order=tuple(self._team_order),
            groups=dict(self._groups),
            swiss_round_count=self.swiss_round_count,
        )

    def _touch(self) -> None:
        self._version += 1
        self._standings_cache.clear()
        self.rounds_completed = self._count_completed_rounds()
        if not self._matches:
            self._finished = False
            return
        finished = self.strategy.is_finished(
            list(self._matches.values()),
            rounds_completed=self.rounds_completed,
            round_count=self.swiss_round_count,
        )
        if finished and not self._finished:
            logger.info("bracket finished idx=%s format=%s", self.idx, self.format.value)
        self._finished = finished

    def _count_completed_rounds(self) -> int:
        by_round: dict[int, list[Match]] = {}
        for match in self._matches.values():
            by_round.setdefault(match.round_number, []).append(match)
        completed = 0
        for round_number in sorted(by_round):
            if round_number != completed + 1:
                break
            if not all(match.status is MatchStatus.FINAL for match in by_round[round_number]):
                break
            completed += 1
        return completed


__all__ = ["Bracket", "BracketSource"]
