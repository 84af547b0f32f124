"""Tests for multi-bracket tournaments."""

from __future__ import annotations

import threading

import pytest

from domain.tournament.bracket import Bracket, BracketSource
from domain.tournament.common import BracketFormat, GameResult, MatchStatus, Team
from domain.tournament.errors import (
    InvalidStateError,
    SourceBracketNotFinishedError,
    TournamentConfigError,
    TournamentNotFinishedError,
)
from domain.tournament.tournament import (
    DropOut,
    StoredResult,
    Tournament,
    placements_in,
    top_placements,
)


def _teams(count: int) -> list[Team]:
    return [
        Team(id=team_id, name=f"Team {team_id}", member_user_ids=(team_id * 10 + 1, team_id * 10 + 2))
        for team_id in range(1, count + 1)
    ]


def _groups_then_final(team_count: int = 4) -> Tournament:
    brackets = [
        Bracket(0, BracketFormat.ROUND_ROBIN, name="Groups", best_of=1),
        Bracket(
            1,
            BracketFormat.SINGLE_ELIMINATION,
            name="Final",
            best_of=1,
            sources=[BracketSource(bracket_idx=0, placements=(1, 2))],
        ),
    ]
    return Tournament(7, _teams(team_count), brackets, name="Cup")


def _finish_groups(tournament: Tournament) -> None:
    """Lower team id wins every group match."""
    bracket = tournament.bracket_by_idx(0)
    for match in bracket.matches():
        if match.status is MatchStatus.READY:
            bracket.report_match_result(match.id, [GameResult(winner_id=min(match.team_ids))])


def test_initial_bracket_starts_with_seeded_teams() -> None:
    teams = [Team(id=1, seed=3), Team(id=2), Team(id=3, seed=1), Team(id=4, seed=2)]
    tournament = Tournament(1, teams, [Bracket(0, BracketFormat.SINGLE_ELIMINATION)])

    assert [team.id for team in tournament.bracket_by_idx(0).teams] == [3, 4, 1, 2]
    assert tournament.bracket_by_idx(0).match(1).team_ids == (3, 2)


def test_sourced_bracket_waits_for_advance() -> None:
    tournament = _groups_then_final()

    assert tournament.bracket_by_idx(0).is_started
    assert not tournament.bracket_by_idx(1).is_started
    with pytest.raises(SourceBracketNotFinishedError):
        tournament.advance_teams(0, 1, placements_in([1, 2]))


def test_advance_moves_selected_teams_in_standings_order() -> None:
    tournament = _groups_then_final()
    _finish_groups(tournament)

    moved = tournament.advance_teams(0, 1, placements_in([1, 2]))

    assert [team.id for team in moved] == [1, 2]
    final = tournament.bracket_by_idx(1)
    assert final.match(1).team_ids == (1, 2)

    with pytest.raises(InvalidStateError, match="already advanced"):
        tournament.advance_teams(0, 1, placements_in([3]))
    with pytest.raises(TournamentConfigError, match="later bracket"):
        tournament.advance_teams(1, 0, placements_in([1]))


def test_advance_into_round_robin_snakes_the_groups() -> None:
    brackets = [
        Bracket(0, BracketFormat.ROUND_ROBIN, best_of=1),
        Bracket(1, BracketFormat.ROUND_ROBIN, best_of=1, group_count=2, sources=[BracketSource(0, (1, 2, 3, 4))]),
    ]
    tournament = Tournament(1, _teams(4), brackets)
    _finish_groups(tournament)

    tournament.advance_teams(0, 1, top_placements(4))

    standings = tournament.current_standings(1)
    assert {standing.team.id: standing.group_id for standing in standings} == {1: 1, 4: 1, 2: 2, 3: 2}


def test_withdrawn_teams_do_not_advance() -> None:
    tournament = _groups_then_final()
    _finish_groups(tournament)
    tournament.drop_out_team(2)

    moved = tournament.advance_teams(0, 1, top_placements(3))

    assert [team.id for team in moved] == [1, 3]
    assert tournament.team(2).dropped_out_bracket_idx == 0
    assert tournament.team(2).dropped_out_round == 3


def test_dropping_out_after_the_groups_keeps_their_standings() -> None:
    tournament = _groups_then_final()
    bracket = tournament.bracket_by_idx(0)
    # Circle schedule for [1, 2, 3, 4]: 1v4, 2v3, 1v3, 4v2, 1v2, 3v4.
    for match_id, winner_id in ((1, 1), (2, 2), (3, 3), (4, 4), (5, 1), (6, 3)):
        bracket.report_match_result(match_id, [GameResult(winner_id=winner_id)])
    before = [(standing.team.id, standing.placement) for standing in tournament.current_standings(0)]

    tournament.drop_out_team(3)

    standings = tournament.current_standings(0)
    assert before == [(3, 1), (1, 2), (4, 3), (2, 4)]
    assert [(standing.team.id, standing.placement) for standing in standings] == before
    assert not any(standing.dropped_out for standing in standings)
    assert tournament.team(3).dropped_out_round == bracket.rounds_completed == 3


def test_drop_out_waits_for_bracket_readers() -> None:
    tournament = _groups_then_final()
    bracket = tournament.bracket_by_idx(0)
    worker = threading.Thread(target=tournament.drop_out_team, args=(2,))

    with bracket.editing_teams():
        worker.start()
        worker.join(timeout=0.2)
        assert worker.is_alive()
        assert not tournament.team(2).dropped_out

    worker.join(timeout=5)
    assert not worker.is_alive()
    assert tournament.team(2).dropped_out
    assert tournament.team(2).dropped_out_bracket_idx == 0


def test_dropping_out_twice_is_rejected() -> None:
    tournament = _groups_then_final()
    tournament.drop_out_team(4, bracket_idx=0, round_number=1)

    with pytest.raises(InvalidStateError, match="already dropped out"):
        tournament.drop_out_team(4)


def test_final_placements_rank_later_brackets_first() -> None:
    tournament = _groups_then_final()
    _finish_groups(tournament)
    tournament.advance_teams(0, 1, placements_in([1, 2]))

    with pytest.raises(TournamentNotFinishedError):
        tournament.final_placements()

    tournament.report_match_result(1, 1, [GameResult(winner_id=2)])

    assert tournament.is_finished()
    assert [(team.id, placement) for team, placement in tournament.final_placements()] == [
        (2, 1),
        (1, 2),
        (3, 3),
        (4, 4),
    ]


def test_finalize_requires_finished_tournament_and_runs_once() -> None:
    tournament = _groups_then_final()
    with pytest.raises(TournamentNotFinishedError):
        tournament.finalize()

    _finish_groups(tournament)
    tournament.advance_teams(0, 1, placements_in([1, 2]))
    tournament.report_match_result(1, 1, [GameResult(winner_id=1)])

    summary = tournament.finalize()
    assert tournament.finalize() is summary
    assert {result.team_id for result in summary.tournament_results} == {1, 2, 3, 4}


def test_finalize_counts_every_set_once_across_brackets() -> None:
    tournament = _groups_then_final()
    _finish_groups(tournament)
    tournament.advance_teams(0, 1, placements_in([1, 2]))
    tournament.report_match_result(1, 1, [GameResult(winner_id=2)])

    summary = tournament.finalize()

    sets_played = {1: 4, 2: 4, 3: 3, 4: 3}
    user_counts = {delta.user_id: delta.matches_count for delta in summary.skills if delta.user_id is not None}
    assert user_counts == {
        team_id * 10 + offset: count for team_id, count in sets_played.items() for offset in (1, 2)
    }
    team_counts = {delta.identifier: delta.matches_count for delta in summary.skills if delta.identifier is not None}
    assert team_counts == {f"{team_id * 10 + 1}-{team_id * 10 + 2}": count for team_id, count in sets_played.items()}

    games_won = sum(
        match.games_won(match.winner_id)
        for bracket in tournament.brackets
        for match in bracket.matches()
        if not match.is_bye
    )
    assert games_won == 7
    assert sum(delta.wins for delta in summary.map_result_deltas) == games_won * 2
    assert sum(delta.losses for delta in summary.map_result_deltas) == games_won * 2


def test_replay_fills_sourced_brackets_on_demand() -> None:
    tournament = _groups_then_final()
    # Circle schedule for [1, 2, 3, 4]: 1v4, 2v3, 1v3, 4v2, 1v2, 3v4.
    winners = {1: 1, 2: 2, 3: 1, 4: 2, 5: 1, 6: 3}
    results = [
        StoredResult(bracket_idx=0, match_id=match_id, games=(GameResult(winner_id=winner_id),))
        for match_id, winner_id in winners.items()
    ]
    results.append(StoredResult(bracket_idx=1, match_id=1, games=(GameResult(winner_id=2),)))

    tournament.replay(results)

    assert tournament.is_finished()
    assert tournament.bracket_by_idx(1).match(1).winner_id == 2


def test_replay_pairs_swiss_rounds_and_applies_drop_outs() -> None:
    tournament = Tournament(1, _teams(4), [Bracket(0, BracketFormat.SWISS, best_of=1)])
    results = [
        StoredResult(0, 1, (GameResult(winner_id=1),)),
        StoredResult(0, 2, (GameResult(winner_id=4),)),
        StoredResult(0, 3, (GameResult(winner_id=2),)),
    ]

    tournament.replay(results, drop_outs=[DropOut(team_id=4, bracket_idx=0, round_number=1)])

    bracket = tournament.bracket_by_idx(0)
    assert tournament.team(4).dropped_out
    assert bracket.match(3).team_ids == (1, 2)
    assert bracket.match(4).is_bye
    assert bracket.is_finished()


def test_bracket_indexes_must_match_positions() -> None:
    with pytest.raises(TournamentConfigError, match="has idx"):
        Tournament(1, _teams(2), [Bracket(1, BracketFormat.SINGLE_ELIMINATION)])

    with pytest.raises(TournamentConfigError, match="not an earlier bracket"):
        Tournament(
            1,
            _teams(2),
            [Bracket(0, BracketFormat.SINGLE_ELIMINATION, sources=[BracketSource(0, (1,))])],
        )
