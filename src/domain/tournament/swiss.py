"""Swiss round generation by score groups with rematch avoidance."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from domain.tournament.common import MatchStatus
from domain.tournament.errors import IncompleteRoundError, UnpairableError
from domain.tournament.match import Match
from domain.tournament.standings import BracketSnapshot, Standing

logger = logging.getLogger(__name__)

Pairing = tuple[int, int]


class SwissPairingEngine:
    """Pairs the next swiss round from the current locked-in standings.

    Teams are grouped by set wins. Inside a group, the highest ranked unpaired
    team takes the closest ranked opponent it has not met yet. An odd group
    folds its lowest pairable team into the next group down; the bye goes to
    the lowest ranked team that has not had one.
    """

    def next_round(
        self,
        snapshot: BracketSnapshot,
        standings: Sequence[Standing],
        *,
        best_of: int,
        next_id: Callable[[], int],
    ) -> list[Match]:
        current_round = max((match.round_number for match in snapshot.matches), default=0)
        unfinished = [
            match.id
            for match in snapshot.matches
            if match.round_number == current_round and match.status is not MatchStatus.FINAL
        ]
        if unfinished:
            raise IncompleteRoundError(
                f"bracket_idx={snapshot.bracket_idx} round={current_round} has unfinished matches {unfinished}"
            )

        active = [
            standing
            for standing in standings
            if not snapshot.teams[standing.team.id].dropped_out
        ]
        pairs, bye_team_id = self.pair(
            active,
            played=played_pairs(snapshot.matches),
            had_bye=bye_recipients(snapshot.matches),
        )

        round_number = current_round + 1
        matches: list[Match] = []
        for number, (team1_id, team2_id) in enumerate(pairs, start=1):
            matches.append(
                Match(
                    match_id=next_id(),
                    round_number=round_number,
                    number=number,
                    best_of=best_of,
                    team1_id=team1_id,
                    team2_id=team2_id,
                )
            )
        if bye_team_id is not None:
            matches.append(bye_match(bye_team_id, round_number, len(matches) + 1, best_of, next_id))

        logger.info(
            "swiss round created bracket_idx=%s round=%s matches=%s bye_team_id=%s",
            snapshot.bracket_idx,
            round_number,
            len(pairs),
            bye_team_id,
        )
        return matches

    def pair(
        self,
        standings: Sequence[Standing],
        *,
        played: set[frozenset[int]],
        had_bye: set[int],
    ) -> tuple[list[Pairing], int | None]:
        """Pair ranked teams; returns the pairings and the bye team, if any.

        Standings come ordered by set wins first, so trying opponents in rank
        order keeps pairs inside their score group and only floats a team down
        when its own group cannot absorb it.
        """
        ranked = [standing.team.id for standing in standings]
        odd = _odd_components(ranked, played)
        if len(odd) > len(ranked) % 2:
            raise UnpairableError(f"no rematch-free pairing for teams {ranked}")
        if len(ranked) % 2 == 0:
            pairings = _pair_group(ranked, played)
            if pairings is None:
                raise UnpairableError(f"no rematch-free pairing for teams {ranked}")
            return pairings, None

        # Only a team of the single odd component can sit out.
        bottom_up = [team_id for team_id in reversed(ranked) if team_id in odd[0]]
        candidates = [team_id for team_id in bottom_up if team_id not in had_bye]
        candidates += [team_id for team_id in bottom_up if team_id in had_bye]
        for bye_team_id in candidates:
            pairings = _pair_group([team_id for team_id in ranked if team_id != bye_team_id], played)
            if pairings is None:
                continue
            if bye_team_id in had_bye:
                logger.warning("team_id=%s receives a second swiss bye", bye_team_id)
            return pairings, bye_team_id
        raise UnpairableError(f"no rematch-free pairing for teams {ranked}")


def _odd_components(pool: Sequence[int], played: set[frozenset[int]]) -> list[set[int]]:
    """Groups of teams that can only meet each other, keeping those of odd size.

    Every such group leaves one team unpaired, so more odd groups than byes
    means no pairing exists.
    """
    remaining = set(pool)
    odd: list[set[int]] = []
    while remaining:
        start = remaining.pop()
        component = {start}
        frontier = [start]
        while frontier:
            team_id = frontier.pop()
            reachable = {other for other in remaining if frozenset((team_id, other)) not in played}
            remaining -= reachable
            component |= reachable
            frontier.extend(reachable)
        if len(component) % 2:
            odd.append(component)
    return odd


def _pair_group(pool: list[int], played: set[frozenset[int]]) -> list[Pairing] | None:
    """Backtracking pairing that prefers opponents adjacent in rank."""
    return _pair_from(pool, played, set())


def _pair_from(pool: list[int], played: set[frozenset[int]], dead_ends: set[frozenset[int]]) -> list[Pairing] | None:
    if not pool:
        return []
    key = frozenset(pool)
    if key in dead_ends:
        return None
    first, rest = pool[0], pool[1:]
    for index, opponent in enumerate(rest):
        if frozenset((first, opponent)) in played:
            continue
        tail = _pair_from(rest[:index] + rest[index + 1 :], played, dead_ends)
        if tail is not None:
            return [(first, opponent), *tail]
    dead_ends.add(key)
    return None


def played_pairs(matches: Sequence[Match]) -> set[frozenset[int]]:
    return {
        frozenset((match.team1_id, match.team2_id))
        for match in matches
        if not match.is_bye and match.team1_id is not None and match.team2_id is not None
    }


def bye_recipients(matches: Sequence[Match]) -> set[int]:
    return {match.winner_id for match in matches if match.is_bye and match.winner_id is not None}


def bye_match(team_id: int, round_number: int, number: int, best_of: int, next_id: Callable[[], int]) -> Match:
    match = Match(
        match_id=next_id(),
        round_number=round_number,
        number=number,
        best_of=best_of,
        team1_id=team_id,
    )
    match.mark_bye(2)
    return match


__all__ = ["SwissPairingEngine", "bye_match", "bye_recipients", "played_pairs"]
