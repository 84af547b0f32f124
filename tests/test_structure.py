"""Tests for bracket structure generators."""

from __future__ import annotations

import itertools
from collections import Counter

from domain.tournament.common import BracketSide
from domain.tournament.structure import (
    bracket_size,
    build_double_elimination,
    build_single_elimination,
    fold_pairings,
    round_robin_schedule,
    seeded_bracket_order,
    snake_groups,
)


def test_bracket_size_is_next_power_of_two() -> None:
    assert bracket_size(2) == 2
    assert bracket_size(5) == 8
    assert bracket_size(8) == 8
    assert bracket_size(9) == 16


def test_seeded_bracket_order_keeps_top_seeds_apart() -> None:
    assert seeded_bracket_order(2) == [1, 2]
    assert seeded_bracket_order(4) == [1, 4, 2, 3]
    assert seeded_bracket_order(8) == [1, 8, 4, 5, 2, 7, 3, 6]


def test_snake_groups_alternate_direction() -> None:
    assert snake_groups([1, 2, 3, 4, 5, 6], 2) == [[1, 4, 5], [2, 3, 6]]
    assert snake_groups([1, 2, 3, 4, 5, 6], 3) == [[1, 6], [2, 5], [3, 4]]


def test_round_robin_schedule_pairs_every_team_once() -> None:
    rounds = round_robin_schedule([1, 2, 3, 4, 5])

    assert len(rounds) == 5
    pairs = [frozenset(pair) for round_pairs in rounds for pair in round_pairs]
    assert len(pairs) == 10
    assert set(pairs) == {frozenset(pair) for pair in itertools.combinations([1, 2, 3, 4, 5], 2)}
    for round_pairs in rounds:
        playing = [team_id for pair in round_pairs for team_id in pair]
        assert len(playing) == len(set(playing))


def test_fold_pairings_gives_bye_to_last_team() -> None:
    assert fold_pairings([1, 2, 3, 4]) == ([(1, 3), (2, 4)], None)
    assert fold_pairings([1, 2, 3, 4, 5]) == ([(1, 3), (2, 4)], 5)


def test_single_elimination_links_and_byes() -> None:
    counter = itertools.count(1)
    matches, byes = build_single_elimination([10, 20, 30, 40, 50], best_of=3, next_id=lambda: next(counter))

    assert len(matches) == 7
    first_round = [match for match in matches if match.round_number == 1]
    assert [(match.team1_id, match.team2_id) for match in first_round] == [
        (10, None),
        (40, 50),
        (20, None),
        (30, None),
    ]
    assert [(match.id, slot) for match, slot in byes] == [(1, 2), (3, 2), (4, 2)]

    by_id = {match.id: match for match in matches}
    final = by_id[7]
    assert final.winner_to is None
    assert [match.winner_to.match_id for match in first_round] == [5, 5, 6, 6]
    assert by_id[5].winner_to.match_id == 7


def test_double_elimination_shape() -> None:
    counter = itertools.count(1)
    matches, byes = build_double_elimination(list(range(1, 9)), best_of=3, next_id=lambda: next(counter))

    sides = Counter(match.side for match in matches)
    assert sides[BracketSide.WINNERS] == 7
    assert sides[BracketSide.LOSERS] == 6
    assert sides[BracketSide.GRAND_FINAL] == 1
    assert byes == []

    losers_rounds = Counter(match.round_number for match in matches if match.side is BracketSide.LOSERS)
    assert losers_rounds == {1: 2, 2: 2, 3: 1, 4: 1}

    by_id = {match.id: match for match in matches}
    grand_final = next(match for match in matches if match.side is BracketSide.GRAND_FINAL)
    feeders = sorted(
        (match.side, ref.slot)
        for match in matches
        for ref in (match.winner_to,)
        if ref is not None and ref.match_id == grand_final.id
    )
    assert feeders == [(BracketSide.LOSERS, 2), (BracketSide.WINNERS, 1)]

    for match in matches:
        if match.side is BracketSide.WINNERS and match.round_number < 3:
            assert match.loser_to is not None
            assert by_id[match.loser_to.match_id].side is BracketSide.LOSERS


def test_double_elimination_with_two_teams_sends_loser_to_grand_final() -> None:
    counter = itertools.count(1)
    matches, _ = build_double_elimination([1, 2], best_of=1, next_id=lambda: next(counter))

    assert len(matches) == 2
    winners_final, grand_final = matches
    assert winners_final.winner_to.match_id == grand_final.id
    assert winners_final.loser_to.match_id == grand_final.id
    assert winners_final.loser_to.slot == 2
