"""Per-format bracket behaviour behind a single protocol."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from domain.tournament.common import BracketFormat, BracketSide, MatchStatus
from domain.tournament.errors import InvalidStateError, TournamentConfigError
from domain.tournament.match import Match
from domain.tournament.standings import BracketSnapshot, Standing
from domain.tournament.structure import (
    build_double_elimination,
    build_single_elimination,
    fold_pairings,
    round_robin_schedule,
    snake_groups,
)
from domain.tournament.swiss import SwissPairingEngine, bye_match

logger = logging.getLogger(__name__)

IdAllocator = Callable[[], int]


@dataclass
class BracketLayout:
    """Matches generated when a bracket starts."""

    matches: list[Match]
    byes: list[tuple[Match, int]] = field(default_factory=list)
    groups: dict[int, int] = field(default_factory=dict)


@runtime_checkable
class BracketFormatStrategy(Protocol):
    """Capabilities every bracket format provides."""

    format: BracketFormat

    def build(
        self,
        team_ids: Sequence[int],
        *,
        best_of: int,
        next_id: IdAllocator,
        group_count: int,
        groups: Mapping[int, int],
    ) -> BracketLayout: ...

    def propagate(self, match: Match, matches: Mapping[int, Match]) -> list[Match]: ...

    def blocking_matches(self, match: Match, matches: Mapping[int, Match]) -> list[Match]: ...

    def retract(self, match: Match, matches: Mapping[int, Match]) -> None: ...

    def is_finished(self, matches: Sequence[Match], *, rounds_completed: int, round_count: int | None) -> bool: ...

    def next_step(
        self,
        snapshot: BracketSnapshot,
        standings: Sequence[Standing],
        *,
        best_of: int,
        next_id: IdAllocator,
    ) -> list[Match]: ...


class _LinkedStrategy:
    """Shared progression for formats whose matches carry forward links."""

    format: BracketFormat

    def propagate(self, match: Match, matches: Mapping[int, Match]) -> list[Match]:
        """Write the outcome of ``match`` into its targets.

        Byes cascade: a target that settles as a walkover is propagated in
        turn. Returns every match settled along the way, ``match`` excluded.
        """
        settled: list[Match] = []
        queue = [match]
        while queue:
            current = queue.pop(0)
            outcomes = (
                (current.winner_to, current.winner_id),
                (current.loser_to, current.loser_id),
            )
            for ref, team_id in outcomes:
                if ref is None:
                    continue
                target = matches[ref.match_id]
                if team_id is None:
                    target.mark_bye(ref.slot)
                else:
                    target.fill_slot(ref.slot, team_id)
                    target.settle_bye_if_ready()
                    logger.debug("match_id=%s slot=%s filled team_id=%s", target.id, ref.slot, team_id)
                if target.status is MatchStatus.FINAL and target.is_bye:
                    logger.debug("match_id=%s resolved as bye winner_id=%s", target.id, target.winner_id)
                    settled.append(target)
                    queue.append(target)
        return settled

    def blocking_matches(self, match: Match, matches: Mapping[int, Match]) -> list[Match]:
        """Downstream matches that already have games built on this result."""
        blocking: list[Match] = []
        for target in self._targets(match, matches):
            if target.games:
                blocking.append(target)
            elif target.is_bye and target.winner_id is not None:
                blocking.extend(self.blocking_matches(target, matches))
        return blocking

    def retract(self, match: Match, matches: Mapping[int, Match]) -> None:
        for ref in (match.winner_to, match.loser_to):
            if ref is None:
                continue
            target = matches[ref.match_id]
            if target.is_bye and target.winner_id is not None:
                self.retract(target, matches)
                target.winner_id = None
            target.clear_slot(ref.slot)

    def next_step(
        self,
        snapshot: BracketSnapshot,
        standings: Sequence[Standing],
        *,
        best_of: int,
        next_id: IdAllocator,
    ) -> list[Match]:
        raise InvalidStateError(f"{self.format.value} brackets are generated up front and have no next round")

    def _targets(self, match: Match, matches: Mapping[int, Match]) -> list[Match]:
        return [matches[ref.match_id] for ref in (match.winner_to, match.loser_to) if ref is not None]


class SingleEliminationStrategy(_LinkedStrategy):
    format = BracketFormat.SINGLE_ELIMINATION

    def build(
        self,
        team_ids: Sequence[int],
        *,
        best_of: int,
        next_id: IdAllocator,
        group_count: int,
        groups: Mapping[int, int],
    ) -> BracketLayout:
        matches, byes = build_single_elimination(team_ids, best_of=best_of, next_id=next_id)
        return BracketLayout(matches=matches, byes=byes)

    def is_finished(self, matches: Sequence[Match], *, rounds_completed: int, round_count: int | None) -> bool:
        final = max(matches, key=lambda match: (match.round_number, match.number))
        return final.status is MatchStatus.FINAL


class DoubleEliminationStrategy(_LinkedStrategy):
    format = BracketFormat.DOUBLE_ELIMINATION

    def build(
        self,
        team_ids: Sequence[int],
        *,
        best_of: int,
        next_id: IdAllocator,
        group_count: int,
        groups: Mapping[int, int],
    ) -> BracketLayout:
        matches, byes = build_double_elimination(team_ids, best_of=best_of, next_id=next_id)
        return BracketLayout(matches=matches, byes=byes)

    def is_finished(self, matches: Sequence[Match], *, rounds_completed: int, round_count: int | None) -> bool:
        grand_final = next(match for match in matches if match.side is BracketSide.GRAND_FINAL)
        return grand_final.status is MatchStatus.FINAL


class RoundRobinStrategy:
    format = BracketFormat.ROUND_ROBIN

    def build(
        self,
        team_ids: Sequence[int],
        *,
        best_of: int,
        next_id: IdAllocator,
        group_count: int,
        groups: Mapping[int, int],
    ) -> BracketLayout:
        if groups:
            missing = [team_id for team_id in team_ids if team_id not in groups]
            if missing:
                raise TournamentConfigError(f"teams without a round robin group: {missing}")
            members: dict[int, list[int]] = {}
            for team_id in team_ids:
                members.setdefault(groups[team_id], []).append(team_id)
        else:
            members = {
                group_id: group
                for group_id, group in enumerate(snake_groups(team_ids, group_count), start=1)
                if group
            }

        matches: list[Match] = []
        assignment: dict[int, int] = {}
        for group_id in sorted(members):
            if len(members[group_id]) < 2:
                raise TournamentConfigError(f"round robin group {group_id} needs at least two teams")
            for team_id in members[group_id]:
                assignment[team_id] = group_id
            for round_number, pairs in enumerate(round_robin_schedule(members[group_id]), start=1):
                for number, (team1_id, team2_id) in enumerate(pairs, start=1):
                    matches.append(
                        Match(
                            match_id=next_id(),
                            round_number=round_number,
                            number=number,
                            best_of=best_of,
                            group_id=group_id,
                            team1_id=team1_id,
                            team2_id=team2_id,
                        )
                    )
        return BracketLayout(matches=matches, groups=assignment)

    def propagate(self, match: Match, matches: Mapping[int, Match]) -> list[Match]:
        return []

    def blocking_matches(self, match: Match, matches: Mapping[int, Match]) -> list[Match]:
        return []

    def retract(self, match: Match, matches: Mapping[int, Match]) -> None:
        return None

    def is_finished(self, matches: Sequence[Match], *, rounds_completed: int, round_count: int | None) -> bool:
        return all(match.status is MatchStatus.FINAL for match in matches)

    def next_step(
        self,
        snapshot: BracketSnapshot,
        standings: Sequence[Standing],
        *,
        best_of: int,
        next_id: IdAllocator,
    ) -> list[Match]:
        raise InvalidStateError("round robin schedules are generated up front and have no next round")


class SwissStrategy:
    format = BracketFormat.SWISS

    def __init__(self, engine: SwissPairingEngine | None = None) -> None:
        self.engine = engine or SwissPairingEngine()

    def build(
        self,
        team_ids: Sequence[int],
        *,
        best_of: int,
        next_id: IdAllocator,
        group_count: int,
        groups: Mapping[int, int],
    ) -> BracketLayout:
        pairs, bye_team_id = fold_pairings(team_ids)
        matches = [
            Match(
                match_id=next_id(),
                round_number=1,
                number=number,
                best_of=best_of,
                team1_id=team1_id,
                team2_id=team2_id,
            )
            for number, (team1_id, team2_id) in enumerate(pairs, start=1)
        ]
        if bye_team_id is not None:
            matches.append(bye_match(bye_team_id, 1, len(matches) + 1, best_of, next_id))
        return BracketLayout(matches=matches)

    def propagate(self, match: Match, matches: Mapping[int, Match]) -> list[Match]:
        return []

    def blocking_matches(self, match: Match, matches: Mapping[int, Match]) -> list[Match]:
        # Once a later round is paired, earlier results are baked into it.
        return [other for other in matches.values() if other.round_number > match.round_number]

    def retract(self, match: Match, matches: Mapping[int, Match]) -> None:
        return None

    def is_finished(self, matches: Sequence[Match], *, rounds_completed: int, round_count: int | None) -> bool:
        return round_count is not None and rounds_completed >= round_count

    def next_step(
        self,
        snapshot: BracketSnapshot,
        standings: Sequence[Standing],
        *,
        best_of: int,
        next_id: IdAllocator,
    ) -> list[Match]:
        return self.engine.next_round(snapshot, standings, best_of=best_of, next_id=next_id)


_STRATEGIES: dict[BracketFormat, Callable[[], BracketFormatStrategy]] = {
    BracketFormat.SINGLE_ELIMINATION: SingleEliminationStrategy,
    BracketFormat.DOUBLE_ELIMINATION: DoubleEliminationStrategy,
    BracketFormat.ROUND_ROBIN: RoundRobinStrategy,
    BracketFormat.SWISS: SwissStrategy,
}


def strategy_for(bracket_format: BracketFormat) -> BracketFormatStrategy:
    """Create the strategy object for one bracket format."""
    try:
        factory = _STRATEGIES[bracket_format]
    except KeyError as exc:
        available = ", ".join(sorted(item.value for item in _STRATEGIES))
        raise KeyError(f"No bracket strategy registered for {bracket_format}. Available: {available}") from exc
    return factory()


__all__ = [
    "BracketFormatStrategy",
    "BracketLayout",
    "DoubleEliminationStrategy",
    "RoundRobinStrategy",
    "SingleEliminationStrategy",
    "SwissStrategy",
    "strategy_for",
]
