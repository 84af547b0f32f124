"""Pure generators for bracket structures.

Elimination trees are built as flat lists of matches with forward links
(``winner_to`` / ``loser_to``) instead of nested nodes. Every generator takes
an id allocator so match ids stay unique inside one bracket.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence

from domain.tournament.common import BracketSide, SlotRef
from domain.tournament.match import Match

IdAllocator = Callable[[], int]


def bracket_size(team_count: int) -> int:
    """Smallest power of two that fits ``team_count`` teams."""
    if team_count <= 1:
        return 2
    return 2 ** math.ceil(math.log2(team_count))


def seeded_bracket_order(size: int) -> list[int]:
    """Standard seed order so that top seeds meet as late as possible.

    For 8 slots this is ``[1, 8, 4, 5, 2, 7, 3, 6]``.
    """
    order = [1, 2]
    while len(order) < size:
        span = len(order) * 2 + 1
        order = [seed for top in order for seed in (top, span - top)]
    return order


def snake_groups(team_ids: Sequence[int], group_count: int) -> list[list[int]]:
    """Distribute teams ordered by strength across groups A, B, C, C, B, A, ..."""
    if group_count < 1:
        raise ValueError("group_count must be >= 1")
    groups: list[list[int]] = [[] for _ in range(group_count)]
    for index, team_id in enumerate(team_ids):
        row, column = divmod(index, group_count)
        if row % 2 == 1:
            column = group_count - 1 - column
        groups[column].append(team_id)
    return groups


def round_robin_schedule(team_ids: Sequence[int]) -> list[list[tuple[int, int]]]:
    """Circle-method schedule. Teams sitting out a round are simply not paired."""
    rotation: list[int | None] = list(team_ids)
    if len(rotation) % 2 == 1:
        rotation.append(None)
    size = len(rotation)

    rounds: list[list[tuple[int, int]]] = []
    for _ in range(size - 1):
        pairs: list[tuple[int, int]] = []
        for index in range(size // 2):
            home = rotation[index]
            away = rotation[size - 1 - index]
            if home is not None and away is not None:
                pairs.append((home, away))
        rounds.append(pairs)
        rotation = [rotation[0], rotation[-1], *rotation[1:-1]]
    return rounds


def fold_pairings(team_ids: Sequence[int]) -> tuple[list[tuple[int, int]], int | None]:
    """Pair the top half against the bottom half; the last team gets a bye if odd."""
    ordered = list(team_ids)
    bye_team_id = ordered.pop() if len(ordered) % 2 == 1 else None
    half = len(ordered) // 2
    pairs = [(ordered[index], ordered[index + half]) for index in range(half)]
    return pairs, bye_team_id


def build_single_elimination(
    team_ids: Sequence[int],
    *,
    best_of: int,
    next_id: IdAllocator,
) -> tuple[list[Match], list[tuple[Match, int]]]:
    """Create the full winners tree.

    Returns the matches in round order and the first-round ``(match, slot)``
    pairs that are byes. The caller settles those byes so progression runs
    through the same code path as reported results.
    """
    size = bracket_size(len(team_ids))
    rounds = int(math.log2(size))
    matches_by_round = _winners_rounds(rounds, size, best_of=best_of, next_id=next_id)
    byes = _seed_first_round(matches_by_round[0], team_ids, size)
    _link_winners(matches_by_round)
    return [match for round_matches in matches_by_round for match in round_matches], byes


def build_double_elimination(
    team_ids: Sequence[int],
    *,
    best_of: int,
    next_id: IdAllocator,
) -> tuple[list[Match], list[tuple[Match, int]]]:
    """Create winners rounds, ``2 * (k - 1)`` losers rounds and a grand final."""
    size = bracket_size(len(team_ids))
    winners_rounds = int(math.log2(size))
    winners = _winners_rounds(winners_rounds, size, best_of=best_of, next_id=next_id)
    byes = _seed_first_round(winners[0], team_ids, size)
    _link_winners(winners)

    losers: list[list[Match]] = []
    for losers_round in range(1, 2 * (winners_rounds - 1) + 1):
        if losers_round == 1:
            count = size // 4
        elif losers_round % 2 == 0:
            count = size // 2 ** (losers_round // 2 + 1)
        else:
            count = size // 2 ** ((losers_round - 1) // 2 + 2)
        losers.append(
            [
                Match(
                    match_id=next_id(),
                    round_number=losers_round,
                    number=number,
                    best_of=best_of,
                    side=BracketSide.LOSERS,
                )
                for number in range(1, count + 1)
            ]
        )

    grand_final = Match(
        match_id=next_id(),
        round_number=1,
        number=1,
        best_of=best_of,
        side=BracketSide.GRAND_FINAL,
    )
    winners[-1][0].winner_to = SlotRef(grand_final.id, 1)

    if not losers:
        winners[-1][0].loser_to = SlotRef(grand_final.id, 2)
        return [*winners[0], grand_final], byes

    for index, match in enumerate(winners[0]):
        target = losers[0][index // 2]
        match.loser_to = SlotRef(target.id, 1 if index % 2 == 0 else 2)

    for position, round_matches in enumerate(losers):
        losers_round = position + 1
        if losers_round % 2 == 0:
            dropping = winners[losers_round // 2]
            for index, match in enumerate(reversed(dropping)):
                match.loser_to = SlotRef(round_matches[index].id, 2)
        if position + 1 == len(losers):
            round_matches[0].winner_to = SlotRef(grand_final.id, 2)
            continue
        following = losers[position + 1]
        for index, match in enumerate(round_matches):
            if (losers_round + 1) % 2 == 0:
                match.winner_to = SlotRef(following[index].id, 1)
            else:
                match.winner_to = SlotRef(following[index // 2].id, 1 if index % 2 == 0 else 2)

    ordered = [match for round_matches in winners for match in round_matches]
    ordered.extend(match for round_matches in losers for match in round_matches)
    ordered.append(grand_final)
    return ordered, byes


def _winners_rounds(rounds: int, size: int, *, best_of: int, next_id: IdAllocator) -> list[list[Match]]:
    return [
        [
            Match(
                match_id=next_id(),
                round_number=round_number,
                number=number,
                best_of=best_of,
                side=BracketSide.WINNERS,
            )
            for number in range(1, size // 2**round_number + 1)
        ]
        for round_number in range(1, rounds + 1)
    ]


def _seed_first_round(
    first_round: list[Match], team_ids: Sequence[int], size: int
) -> list[tuple[Match, int]]:
    order = seeded_bracket_order(size)
    byes: list[tuple[Match, int]] = []
    for index, match in enumerate(first_round):
        for slot, seed in ((1, order[index * 2]), (2, order[index * 2 + 1])):
            if seed <= len(team_ids):
                match.fill_slot(slot, team_ids[seed - 1])
            else:
                byes.append((match, slot))
    return byes


def _link_winners(rounds: list[list[Match]]) -> None:
    for current, following in zip(rounds, rounds[1:]):
        for index, match in enumerate(current):
            match.winner_to = SlotRef(following[index // 2].id, 1 if index % 2 == 0 else 2)


__all__ = [
    "bracket_size",
    "build_double_elimination",
    "build_single_elimination",
    "fold_pairings",
    "round_robin_schedule",
    "seeded_bracket_order",
    "snake_groups",
]
