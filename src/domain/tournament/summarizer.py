"""Turn a finished tournament into rating and result deltas.

Each final match is visited exactly once. Ratings are updated once per set:
individually for every user who played and once for each side as a team,
keyed by the ``-`` joined sorted user ids of that side.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from domain.ratings.openskill.calculator import OpenSkillRatingUpdater, SkillRating
from domain.tournament.common import GameResult, MatchStatus, Team
from domain.tournament.errors import TournamentNotFinishedError
from domain.tournament.match import Match

if TYPE_CHECKING:
    from domain.tournament.tournament import Tournament

logger = logging.getLogger(__name__)

MATE = "MATE"
ENEMY = "ENEMY"


class RatingUpdater(Protocol):
    def initial_rating(self) -> SkillRating: ...

    def ordinal(self, rating: SkillRating) -> float: ...

    def rate(
        self, winners: Sequence[SkillRating], losers: Sequence[SkillRating]
    ) -> tuple[list[SkillRating], list[SkillRating]]: ...


@dataclass(frozen=True)
class SkillDelta:
    """New rating of a user or a user combination.

    ``matches_count`` is how many sets were rated in this tournament; the
    persistence layer adds it to the stored running total.
    """

    mu: float
    sigma: float
    ordinal: float
    matches_count: int
    user_id: int | None = None
    identifier: str | None = None


@dataclass(frozen=True)
class MapResultDelta:
    mode: str
    stage_id: int
    user_id: int
    wins: int
    losses: int


@dataclass(frozen=True)
class PlayerResultDelta:
    owner_user_id: int
    other_user_id: int
    map_wins: int
    map_losses: int
    set_wins: int
    set_losses: int
    type: str


@dataclass(frozen=True)
class TournamentResult:
    user_id: int
    placement: int
    participant_count: int
    team_id: int


@dataclass(frozen=True)
class TournamentSummary:
    skills: tuple[SkillDelta, ...]
    map_result_deltas: tuple[MapResultDelta, ...]
    player_result_deltas: tuple[PlayerResultDelta, ...]
    tournament_results: tuple[TournamentResult, ...]


def team_identifier(user_ids: Iterable[int]) -> str:
    return "-".join(str(user_id) for user_id in sorted(user_ids))


def identifier_user_ids(identifier: str) -> list[int]:
    return [int(part) for part in identifier.split("-") if part]


class Summarizer:
    """Accumulates every delta a finished tournament produces."""

    def __init__(
        self,
        rating_updater: RatingUpdater | None = None,
        *,
        user_skills: Mapping[int, SkillRating] | None = None,
        team_skills: Mapping[str, SkillRating] | None = None,
    ) -> None:
        self.rating_updater = rating_updater or OpenSkillRatingUpdater()
        self.user_skills = dict(user_skills or {})
        self.team_skills = dict(team_skills or {})

    def summarize(self, tournament: Tournament) -> TournamentSummary:
        if not tournament.is_finished():
            raise TournamentNotFinishedError(f"tournament {tournament.id} has unfinished brackets")

        user_ratings: dict[int, SkillRating] = {}
        team_ratings: dict[str, SkillRating] = {}
        user_sets: dict[int, int] = defaultdict(int)
        team_sets: dict[str, int] = defaultdict(int)
        map_counts: dict[tuple[str, int, int], list[int]] = defaultdict(lambda: [0, 0])
        pair_counts: dict[tuple[int, int, str], list[int]] = defaultdict(lambda: [0, 0, 0, 0])
        played_for: dict[int, list[int]] = defaultdict(list)

        visited: set[tuple[int, int]] = set()
        for bracket in tournament.brackets:
            for match in bracket.matches():
                key = (bracket.idx, match.id)
                if key in visited or not _is_rated(match):
                    continue
                visited.add(key)

                winner_team = tournament.team(match.winner_id)
                loser_team = tournament.team(match.loser_id)
                winners = _set_users(match.games, winner_team)
                losers = _set_users(match.games, loser_team)
                for team, users in ((winner_team, winners), (loser_team, losers)):
                    for user_id in users:
                        if user_id not in played_for[team.id]:
                            played_for[team.id].append(user_id)

                if winners and losers:
                    self._rate_users(winners, losers, user_ratings, user_sets)
                    self._rate_teams(winners, losers, team_ratings, team_sets)
                _count_maps(match.games, winner_team, loser_team, map_counts)
                _count_pairs(match, winner_team, loser_team, winners, losers, pair_counts)

        skills = [
            SkillDelta(
                mu=rating.mu,
                sigma=rating.sigma,
                ordinal=self.rating_updater.ordinal(rating),
                matches_count=user_sets[user_id],
                user_id=user_id,
            )
            for user_id, rating in sorted(user_ratings.items())
        ]
        skills.extend(
            SkillDelta(
                mu=rating.mu,
                sigma=rating.sigma,
                ordinal=self.rating_updater.ordinal(rating),
                matches_count=team_sets[identifier],
                identifier=identifier,
            )
            for identifier, rating in sorted(team_ratings.items())
        )

        map_result_deltas = [
            MapResultDelta(mode=mode, stage_id=stage_id, user_id=user_id, wins=wins, losses=losses)
            for (mode, stage_id, user_id), (wins, losses) in sorted(map_counts.items())
        ]
        player_result_deltas = [
            PlayerResultDelta(
                owner_user_id=owner,
                other_user_id=other,
                map_wins=counts[0],
                map_losses=counts[1],
                set_wins=counts[2],
                set_losses=counts[3],
                type=relation,
            )
            for (owner, other, relation), counts in sorted(pair_counts.items())
        ]

        placements = tournament.final_placements()
        tournament_results = [
            TournamentResult(
                user_id=user_id,
                placement=placement,
                participant_count=len(placements),
                team_id=team.id,
            )
            for team, placement in placements
            for user_id in (played_for.get(team.id) or team.member_user_ids)
        ]

        logger.info(
            "tournament summarized id=%s sets=%s skills=%s map_deltas=%s player_deltas=%s results=%s",
            tournament.id,
            len(visited),
            len(skills),
            len(map_result_deltas),
            len(player_result_deltas),
            len(tournament_results),
        )
        return TournamentSummary(
            skills=tuple(skills),
            map_result_deltas=tuple(map_result_deltas),
            player_result_deltas=tuple(player_result_deltas),
            tournament_results=tuple(tournament_results),
        )

    def _rate_users(
        self,
        winners: list[int],
        losers: list[int],
        ratings: dict[int, SkillRating],
        set_counts: dict[int, int],
    ) -> None:
        def current(user_id: int) -> SkillRating:
            if user_id in ratings:
                return ratings[user_id]
            return self.user_skills.get(user_id) or self.rating_updater.initial_rating()

        new_winners, new_losers = self.rating_updater.rate(
            [current(user_id) for user_id in winners],
            [current(user_id) for user_id in losers],
        )
        for user_id, rating in zip(winners + losers, new_winners + new_losers):
            ratings[user_id] = rating
            set_counts[user_id] += 1

    def _rate_teams(
        self,
        winners: list[int],
        losers: list[int],
        ratings: dict[str, SkillRating],
        set_counts: dict[str, int],
    ) -> None:
        def current(identifier: str) -> SkillRating:
            if identifier in ratings:
                return ratings[identifier]
            return self.team_skills.get(identifier) or self.rating_updater.initial_rating()

        winner_key = team_identifier(winners)
        loser_key = team_identifier(losers)
        (new_winner,), (new_loser,) = self.rating_updater.rate([current(winner_key)], [current(loser_key)])
        ratings[winner_key] = new_winner
        ratings[loser_key] = new_loser
        set_counts[winner_key] += 1
        set_counts[loser_key] += 1


def _is_rated(match: Match) -> bool:
    return (
        match.status is MatchStatus.FINAL
        and not match.is_bye
        and bool(match.games)
        and match.winner_id is not None
    )


def _game_users(game: GameResult, team: Team) -> tuple[int, ...]:
    return game.user_ids_for(team.id) or team.member_user_ids


def _set_users(games: Sequence[GameResult], team: Team) -> list[int]:
    users: list[int] = []
    for game in games:
        for user_id in _game_users(game, team):
            if user_id not in users:
                users.append(user_id)
    return users


def _count_maps(
    games: Sequence[GameResult],
    winner_team: Team,
    loser_team: Team,
    counts: dict[tuple[str, int, int], list[int]],
) -> None:
    for game in games:
        for team in (winner_team, loser_team):
            won = game.winner_id == team.id
            for user_id in _game_users(game, team):
                counts[(game.mode, game.stage_id, user_id)][0 if won else 1] += 1


def _count_pairs(
    match: Match,
    winner_team: Team,
    loser_team: Team,
    winners: list[int],
    losers: list[int],
    counts: dict[tuple[int, int, str], list[int]],
) -> None:
    def record(side: Sequence[int], other_side: Sequence[int], won: bool, offset: int) -> None:
        for owner in side:
            for mate in side:
                if mate != owner:
                    counts[(owner, mate, MATE)][offset + (0 if won else 1)] += 1
            for enemy in other_side:
                counts[(owner, enemy, ENEMY)][offset + (0 if won else 1)] += 1

    for game in match.games:
        winning = _game_users(game, winner_team)
        losing = _game_users(game, loser_team)
        if game.winner_id != winner_team.id:
            winning, losing = losing, winning
        record(winning, losing, True, 0)
        record(losing, winning, False, 0)

    record(winners, losers, True, 2)
    record(losers, winners, False, 2)


__all__ = [
    "ENEMY",
    "MATE",
    "MapResultDelta",
    "PlayerResultDelta",
    "RatingUpdater",
    "SkillDelta",
    "Summarizer",
    "TournamentResult",
    "TournamentSummary",
    "identifier_user_ids",
    "team_identifier",
]
