"""Tests for swiss pairing and swiss standings."""

from __future__ import annotations

import itertools

import pytest

from domain.tournament.bracket import Bracket
from domain.tournament.common import BracketFormat, GameResult, MatchStatus, Team
from domain.tournament.errors import (
    BracketClosedError,
    IncompleteRoundError,
    PropagationLockedError,
    UnpairableError,
)
from domain.tournament.standings import Standing, StandingStats
from domain.tournament.swiss import SwissPairingEngine
from domain.tournament.tournament import Tournament


def _ranked(*set_wins: int) -> list[Standing]:
    """Standings for teams 1..n in the given order with the given set wins."""
    return [
        Standing(team=Team(id=index), placement=index, group_id=None, stats=StandingStats(set_wins=wins))
        for index, wins in enumerate(set_wins, start=1)
    ]


def _swiss(team_count: int) -> Bracket:
    bracket = Bracket(0, BracketFormat.SWISS, best_of=1)
    bracket.start([Team(id=team_id) for team_id in range(1, team_count + 1)])
    return bracket


def _play_round(bracket: Bracket) -> None:
    """Lower team id wins every open match."""
    for match in bracket.matches():
        if match.status is MatchStatus.READY:
            bracket.report_match_result(match.id, [GameResult(winner_id=min(match.team_ids))])


def test_first_round_folds_seeds_and_gives_last_seed_the_bye() -> None:
    bracket = _swiss(5)

    pairs = [match.team_ids for match in bracket.matches() if not match.is_bye]
    assert pairs == [(1, 3), (2, 4)]
    (bye,) = [match for match in bracket.matches() if match.is_bye]
    assert bye.winner_id == 5
    assert bye.status is MatchStatus.FINAL
    assert bracket.swiss_round_count == 3


def test_pairs_adjacent_teams_inside_score_groups() -> None:
    engine = SwissPairingEngine()
    pairs, bye = engine.pair(_ranked(2, 2, 1, 1), played=set(), had_bye=set())

    assert pairs == [(1, 2), (3, 4)]
    assert bye is None


def test_rematches_are_avoided() -> None:
    engine = SwissPairingEngine()
    pairs, _ = engine.pair(_ranked(2, 2, 1, 1), played={frozenset((1, 2))}, had_bye=set())

    assert pairs == [(1, 3), (2, 4)]


def test_odd_group_folds_down_and_bottom_team_gets_the_bye() -> None:
    engine = SwissPairingEngine()
    pairs, bye = engine.pair(_ranked(2, 1, 1, 1, 0), played=set(), had_bye=set())

    assert pairs == [(1, 2), (3, 4)]
    assert bye == 5


def test_bye_skips_teams_that_already_had_one() -> None:
    engine = SwissPairingEngine()
    pairs, bye = engine.pair(_ranked(2, 1, 1, 1, 0), played=set(), had_bye={5})

    assert bye == 4
    assert pairs == [(1, 2), (3, 5)]


def test_second_bye_is_given_when_everyone_had_one() -> None:
    engine = SwissPairingEngine()
    _, bye = engine.pair(_ranked(1, 1, 1), played=set(), had_bye={1, 2, 3})

    assert bye == 3


def test_impossible_pairing_raises() -> None:
    engine = SwissPairingEngine()
    with pytest.raises(UnpairableError):
        engine.pair(_ranked(1, 0), played={frozenset((1, 2))}, had_bye=set())


def test_teams_locked_into_odd_groups_raise_without_searching() -> None:
    engine = SwissPairingEngine()
    top, bottom = range(1, 12), range(12, 23)
    played = {frozenset(pair) for pair in itertools.product(top, bottom)}

    with pytest.raises(UnpairableError):
        engine.pair(_ranked(*([1] * 22)), played=played, had_bye=set())


def test_bye_comes_from_the_only_odd_group() -> None:
    engine = SwissPairingEngine()
    played = {frozenset(pair) for pair in itertools.product((1, 2, 3), (4, 5))}

    pairs, bye = engine.pair(_ranked(2, 2, 1, 1, 0), played=played, had_bye=set())

    assert bye == 3
    assert pairs == [(1, 2), (4, 5)]


def test_next_round_requires_a_finished_round() -> None:
    bracket = _swiss(4)
    with pytest.raises(IncompleteRoundError, match="unfinished"):
        bracket.next_round()


def test_full_swiss_never_repeats_a_pairing() -> None:
    bracket = _swiss(8)
    for _ in range(3):
        _play_round(bracket)
        if not bracket.is_finished():
            bracket.next_round()

    assert bracket.is_finished()
    assert bracket.rounds_completed == 3
    pairs = [frozenset(match.team_ids) for match in bracket.matches() if not match.is_bye]
    assert len(pairs) == 12
    assert len(set(pairs)) == 12

    standings = bracket.current_standings()
    assert [(standing.team.id, standing.placement) for standing in standings] == [
        (1, 1),
        (2, 2),
        (3, 2),
        (5, 2),
        (4, 5),
        (6, 5),
        (7, 5),
        (8, 8),
    ]
    assert standings[0].stats.set_wins == 3
    assert {standing.stats.buchholz for standing in standings[1:4]} == {5}

    with pytest.raises(BracketClosedError):
        bracket.next_round()


def test_paired_round_locks_earlier_results() -> None:
    bracket = _swiss(4)
    _play_round(bracket)
    bracket.next_round()

    with pytest.raises(PropagationLockedError):
        bracket.undo_result(1)


def test_withdrawn_team_is_not_paired_and_gives_no_tie_break_credit() -> None:
    teams = [Team(id=team_id) for team_id in range(1, 5)]
    tournament = Tournament(1, teams, [Bracket(0, BracketFormat.SWISS, best_of=1)])

    # Round one folds to 1v3 and 2v4.
    tournament.report_match_result(0, 1, [GameResult(winner_id=1)])
    tournament.report_match_result(0, 2, [GameResult(winner_id=4)])
    tournament.drop_out_team(4, bracket_idx=0, round_number=1)

    created = tournament.next_round(0)
    assert [match.team_ids for match in created if not match.is_bye] == [(1, 2)]
    (bye,) = [match for match in created if match.is_bye]
    assert bye.winner_id == 3

    tournament.report_match_result(0, created[0].id, [GameResult(winner_id=2)])
    assert tournament.is_finished()

    standings = tournament.current_standings(0)
    assert [(standing.team.id, standing.placement) for standing in standings] == [(1, 1), (2, 2), (3, 3), (4, 4)]

    by_team = {standing.team.id: standing for standing in standings}
    assert all(standing.stats.set_wins == 1 for standing in standings)
    assert by_team[2].stats.losses_against_tied == 0
    assert by_team[1].stats.losses_against_tied == 1
    assert by_team[1].stats.buchholz == 2
    assert by_team[2].stats.buchholz == 1
    assert by_team[4].dropped_out
