"""Standings and tie-break resolution.

Standings are always derived from match state and never stored. Every ranking
ends with the team id so the order is total and repeatable.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field

from domain.tournament.common import BracketFormat, BracketSide, MatchStatus, Team
from domain.tournament.match import Match

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BracketSnapshot:
    """Consistent read-only view of one bracket at one point in time."""

    bracket_idx: int
    format: BracketFormat
    matches: tuple[Match, ...]
    teams: Mapping[int, Team]
    team_order: tuple[int, ...]
    groups: Mapping[int, int] = field(default_factory=dict)
    swiss_round_count: int | None = None


@dataclass(frozen=True)
class StandingStats:
    set_wins: int = 0
    set_losses: int = 0
    map_wins: int = 0
    map_losses: int = 0
    wins_against_tied: int = 0
    losses_against_tied: int = 0
    buchholz: int | None = None

    @property
    def map_win_percentage(self) -> float:
        played = self.map_wins + self.map_losses
        if played == 0:
            return 0.0
        return self.map_wins / played


@dataclass(frozen=True)
class Standing:
    """Computed position of one team inside one bracket."""

    team: Team
    placement: int
    group_id: int | None
    stats: StandingStats
    dropped_out: bool = False


@dataclass
class _Record:
    team_id: int
    set_wins: int = 0
    set_losses: int = 0
    map_wins: int = 0
    map_losses: int = 0
    byes: int = 0
    opponents: list[int] = field(default_factory=list)
    beaten_by: list[int] = field(default_factory=list)
    beaten: list[int] = field(default_factory=list)


Ranker = Callable[[BracketSnapshot, bool], list[Standing]]


class StandingsCalculator:
    """Format-aware standings computation over a :class:`BracketSnapshot`."""

    def __init__(self) -> None:
        self._rankers: dict[BracketFormat, Ranker] = {
            BracketFormat.ROUND_ROBIN: self._round_robin,
            BracketFormat.SWISS: self._swiss,
            BracketFormat.SINGLE_ELIMINATION: self._single_elimination,
            BracketFormat.DOUBLE_ELIMINATION: self._double_elimination,
        }

    def compute_standings(self, snapshot: BracketSnapshot, include_in_progress: bool) -> list[Standing]:
        standings = self._rankers[snapshot.format](snapshot, include_in_progress)
        logger.debug(
            "bracket_idx=%s format=%s include_in_progress=%s standings=%s",
            snapshot.bracket_idx,
            snapshot.format.value,
            include_in_progress,
            len(standings),
        )
        return standings

    # ========== Round robin ==========

    def _round_robin(self, snapshot: BracketSnapshot, include_in_progress: bool) -> list[Standing]:
        members: dict[int, list[int]] = defaultdict(list)
        for team_id in snapshot.team_order:
            group_id = snapshot.groups.get(team_id)
            if group_id is not None:
                members[group_id].append(team_id)

        ranked: list[tuple[int, int, int, Standing]] = []
        for group_id in sorted(members):
            group_matches = [match for match in snapshot.matches if match.group_id == group_id]
            last_round = max((match.round_number for match in group_matches), default=None)
            records = _collect_records(group_matches, members[group_id], include_in_progress)
            dropped = _dropped_team_ids(snapshot, members[group_id], last_round)
            team_ids = _visible_team_ids(members[group_id], records, dropped)

            tied = _tied_results(records, team_ids, dropped)

            def sort_key(team_id: int) -> tuple:
                record = records[team_id]
                wins_against, losses_against = tied[team_id]
                return (
                    -record.set_wins,
                    team_id in dropped,
                    -wins_against,
                    -_percentage(record.map_wins, record.map_losses),
                    losses_against,
                )

            ordered = sorted(team_ids, key=lambda team_id: (sort_key(team_id), team_id))
            for position, (team_id, placement) in enumerate(_placements(ordered, sort_key)):
                standing = _standing(snapshot, records[team_id], tied[team_id], placement, group_id, dropped)
                ranked.append((placement, group_id, position, standing))

        ranked.sort(key=lambda item: (item[0], item[1], item[2]))
        return [standing for *_, standing in ranked]

    # ========== Swiss ==========

    def _swiss(self, snapshot: BracketSnapshot, include_in_progress: bool) -> list[Standing]:
        records = _collect_records(snapshot.matches, snapshot.team_order, include_in_progress)
        dropped = _dropped_team_ids(snapshot, snapshot.team_order, snapshot.swiss_round_count)
        team_ids = _visible_team_ids(snapshot.team_order, records, dropped)
        tied = _tied_results(records, team_ids, dropped)

        buchholz = {
            team_id: sum(
                records[opponent].set_wins
                for opponent in records[team_id].opponents
                if opponent in records and opponent not in dropped
            )
            for team_id in team_ids
        }

        def sort_key(team_id: int) -> tuple:
            record = records[team_id]
            return (
                -record.set_wins,
                team_id in dropped,
                -buchholz[team_id],
                -_percentage(record.map_wins, record.map_losses),
            )

        ordered = sorted(team_ids, key=lambda team_id: (sort_key(team_id), team_id))
        return [
            _standing(
                snapshot,
                records[team_id],
                tied[team_id],
                placement,
                None,
                dropped,
                buchholz=buchholz[team_id],
            )
            for team_id, placement in _placements(ordered, sort_key)
        ]

    # ========== Elimination ==========

    def _single_elimination(self, snapshot: BracketSnapshot, include_in_progress: bool) -> list[Standing]:
        records = _collect_records(snapshot.matches, snapshot.team_order, include_in_progress)
        dropped = _dropped_team_ids(snapshot, snapshot.team_order, None)
        team_ids = _visible_team_ids(snapshot.team_order, records, dropped)
        total_rounds = max((match.round_number for match in snapshot.matches), default=0)

        eliminated_in: dict[int, int] = {}
        for match in snapshot.matches:
            if match.status is MatchStatus.FINAL and match.loser_id is not None:
                eliminated_in[match.loser_id] = match.round_number

        def sort_key(team_id: int) -> tuple:
            return (-eliminated_in.get(team_id, total_rounds + 1), team_id in dropped)

        return self._rank_elimination(snapshot, records, team_ids, dropped, sort_key)

    def _double_elimination(self, snapshot: BracketSnapshot, include_in_progress: bool) -> list[Standing]:
        records = _collect_records(snapshot.matches, snapshot.team_order, include_in_progress)
        dropped = _dropped_team_ids(snapshot, snapshot.team_order, None)
        team_ids = _visible_team_ids(snapshot.team_order, records, dropped)
        losers_rounds = max(
            (match.round_number for match in snapshot.matches if match.side is BracketSide.LOSERS),
            default=0,
        )

        # Stage of elimination: losers round number, then the grand final.
        eliminated_at: dict[int, int] = {}
        losers_run: dict[int, int] = defaultdict(int)
        for match in snapshot.matches:
            if match.status is not MatchStatus.FINAL or match.is_bye:
                continue
            if match.side is BracketSide.LOSERS:
                eliminated_at[match.loser_id] = match.round_number
                losers_run[match.winner_id] += 1
            elif match.side is BracketSide.GRAND_FINAL:
                eliminated_at[match.loser_id] = losers_rounds + 1

        def sort_key(team_id: int) -> tuple:
            return (
                -eliminated_at.get(team_id, losers_rounds + 2),
                team_id in dropped,
                -losers_run[team_id],
            )

        return self._rank_elimination(snapshot, records, team_ids, dropped, sort_key)

    def _rank_elimination(
        self,
        snapshot: BracketSnapshot,
        records: Mapping[int, _Record],
        team_ids: list[int],
        dropped: set[int],
        sort_key: Callable[[int], tuple],
    ) -> list[Standing]:
        ordered = sorted(team_ids, key=lambda team_id: (sort_key(team_id), team_id))
        no_tied = (0, 0)
        return [
            _standing(snapshot, records[team_id], no_tied, placement, None, dropped)
            for team_id, placement in _placements(ordered, sort_key)
        ]


def _collect_records(
    matches: Iterable[Match], team_ids: Iterable[int], include_in_progress: bool
) -> dict[int, _Record]:
    records = {team_id: _Record(team_id=team_id) for team_id in team_ids}
    for match in matches:
        status = match.status
        if status is MatchStatus.FINAL:
            pass
        elif status is MatchStatus.IN_PROGRESS and include_in_progress:
            pass
        else:
            continue

        if match.is_bye:
            if match.winner_id in records:
                records[match.winner_id].set_wins += 1
                records[match.winner_id].byes += 1
            continue

        for team_id in match.team_ids:
            if team_id not in records:
                continue
            record = records[team_id]
            opponent = match.opponent_of(team_id)
            record.opponents.append(opponent)
            record.map_wins += match.games_won(team_id)
            record.map_losses += match.games_won(opponent)
            if match.winner_id == team_id:
                record.set_wins += 1
                record.beaten.append(opponent)
            elif match.winner_id == opponent:
                record.set_losses += 1
                record.beaten_by.append(opponent)
    return records


def _dropped_team_ids(snapshot: BracketSnapshot, team_ids: Iterable[int], last_round: int | None) -> set[int]:
    return {
        team_id
        for team_id in team_ids
        if snapshot.teams[team_id].dropped_out_before(snapshot.bracket_idx, last_round)
    }


def _visible_team_ids(team_ids: Iterable[int], records: Mapping[int, _Record], dropped: set[int]) -> list[int]:
    """Drop teams that withdrew without playing a single set."""
    return [
        team_id
        for team_id in team_ids
        if team_id not in dropped or records[team_id].opponents
    ]


def _tied_results(
    records: Mapping[int, _Record], team_ids: Iterable[int], dropped: set[int]
) -> dict[int, tuple[int, int]]:
    """Wins and losses against teams sharing the same set win count.

    Results against withdrawn teams never count, so a loss to a team that
    later dropped out is not held against anyone.
    """
    visible = set(team_ids)
    results: dict[int, tuple[int, int]] = {}
    for team_id in visible:
        record = records[team_id]

        def is_tied(opponent: int) -> bool:
            return (
                opponent in visible
                and opponent not in dropped
                and records[opponent].set_wins == record.set_wins
            )

        results[team_id] = (
            sum(1 for opponent in record.beaten if is_tied(opponent)),
            sum(1 for opponent in record.beaten_by if is_tied(opponent)),
        )
    return results


def _placements(ordered: list[int], sort_key: Callable[[int], tuple]) -> list[tuple[int, int]]:
    """Competition ranking: equal keys share a placement, the next one skips."""
    placed: list[tuple[int, int]] = []
    previous_key: tuple | None = None
    placement = 0
    for index, team_id in enumerate(ordered):
        key = sort_key(team_id)
        if key != previous_key:
            placement = index + 1
            previous_key = key
        placed.append((team_id, placement))
    return placed


def _percentage(wins: int, losses: int) -> float:
    played = wins + losses
    return wins / played if played else 0.0


def _standing(
    snapshot: BracketSnapshot,
    record: _Record,
    tied: tuple[int, int],
    placement: int,
    group_id: int | None,
    dropped: set[int],
    *,
    buchholz: int | None = None,
) -> Standing:
    return Standing(
        team=snapshot.teams[record.team_id],
        placement=placement,
        group_id=group_id,
        stats=StandingStats(
            set_wins=record.set_wins,
            set_losses=record.set_losses,
            map_wins=record.map_wins,
            map_losses=record.map_losses,
            wins_against_tied=tied[0],
            losses_against_tied=tied[1],
            buchholz=buchholz,
        ),
        dropped_out=record.team_id in dropped,
    )


__all__ = ["BracketSnapshot", "Standing", "StandingStats", "StandingsCalculator"]
