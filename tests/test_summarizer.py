from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

import pytest

from domain.ratings.openskill.calculator import OpenSkillRatingUpdater, SkillRating
from domain.tournament.bracket import Bracket
from domain.tournament.common import BracketFormat, GameParticipant, GameResult, MatchStatus, Team
from domain.tournament.errors import TournamentNotFinishedError
from domain.tournament.summarizer import ENEMY, MATE, Summarizer, identifier_user_ids, team_identifier
from domain.tournament.tournament import Tournament


def _game(winner_id: int, mode: str, stage_id: int, **users: tuple[int, ...]) -> GameResult:
    participants = tuple(
        GameParticipant(user_id=user_id, team_id=int(team_key.removeprefix("team")))
        for team_key, user_ids in users.items()
        for user_id in user_ids
    )
    return GameResult(winner_id=winner_id, mode=mode, stage_id=stage_id, participants=participants)


def _final(best_of: int = 3, members: tuple[tuple[int, ...], tuple[int, ...]] = ((11, 12), (21, 22))) -> Tournament:
    teams = [
        Team(id=1, name="Alpha", member_user_ids=members[0]),
        Team(id=2, name="Bravo", member_user_ids=members[1]),
    ]
    return Tournament(3, teams, [Bracket(0, BracketFormat.SINGLE_ELIMINATION, best_of=best_of)])


@dataclass
class _RecordingUpdater:
    """Rating updater that shifts mu by one and records every call."""

    calls: list[tuple[int, int]] = field(default_factory=list)

    def initial_rating(self) -> SkillRating:
        return SkillRating(mu=25.0, sigma=8.0)

    def ordinal(self, rating: SkillRating) -> float:
        return rating.mu - 3 * rating.sigma

    def rate(
        self, winners: Sequence[SkillRating], losers: Sequence[SkillRating]
    ) -> tuple[list[SkillRating], list[SkillRating]]:
        self.calls.append((len(winners), len(losers)))
        return (
            [SkillRating(mu=rating.mu + 1, sigma=rating.sigma) for rating in winners],
            [SkillRating(mu=rating.mu - 1, sigma=rating.sigma) for rating in losers],
        )


def test_team_identifier_sorts_user_ids() -> None:
    assert team_identifier([22, 3, 11]) == "3-11-22"
    assert identifier_user_ids("3-11-22") == [3, 11, 22]


def test_summarize_requires_a_finished_tournament() -> None:
    with pytest.raises(TournamentNotFinishedError):
        Summarizer().summarize(_final())


def test_map_wins_match_games_won_with_one_user_per_side() -> None:
    tournament = _final(members=((11,), (21,)))
    match = tournament.report_match_result(
        0,
        1,
        [_game(1, "SZ", 1), _game(2, "TC", 2), _game(1, "SZ", 3)],
    )
    assert match.status is MatchStatus.FINAL

    summary = Summarizer().summarize(tournament)

    wins = {user_id: 0 for user_id in (11, 21)}
    losses = {user_id: 0 for user_id in (11, 21)}
    for delta in summary.map_result_deltas:
        wins[delta.user_id] += delta.wins
        losses[delta.user_id] += delta.losses
    assert wins == {11: match.games_won(1), 21: match.games_won(2)}
    assert losses == {11: match.games_won(2), 21: match.games_won(1)}
    assert {(delta.mode, delta.stage_id) for delta in summary.map_result_deltas} == {("SZ", 1), ("TC", 2), ("SZ", 3)}


def test_pair_results_count_maps_per_game_and_sets_once() -> None:
    tournament = _final()
    tournament.report_match_result(
        0,
        1,
        [
            _game(1, "SZ", 1, team1=(11, 12), team2=(21, 22)),
            _game(2, "TC", 2, team1=(11, 12), team2=(21, 22)),
            _game(1, "RM", 3, team1=(11, 12), team2=(21, 22)),
        ],
    )

    summary = Summarizer().summarize(tournament)
    pairs = {
        (delta.owner_user_id, delta.other_user_id, delta.type): (
            delta.map_wins,
            delta.map_losses,
            delta.set_wins,
            delta.set_losses,
        )
        for delta in summary.player_result_deltas
    }

    assert pairs[(11, 12, MATE)] == (2, 1, 1, 0)
    assert pairs[(11, 21, ENEMY)] == (2, 1, 1, 0)
    assert pairs[(21, 11, ENEMY)] == (1, 2, 0, 1)
    assert pairs[(22, 21, MATE)] == (1, 2, 0, 1)
    assert (11, 11, MATE) not in pairs
    assert len(pairs) == 4 * 3


def test_substitutes_are_taken_from_game_participants() -> None:
    tournament = _final()
    tournament.report_match_result(
        0,
        1,
        [
            _game(1, "SZ", 1, team1=(11, 13), team2=(21, 22)),
            _game(1, "TC", 2, team1=(11, 13), team2=(21, 22)),
        ],
    )

    summary = Summarizer().summarize(tournament)

    user_skill_ids = {delta.user_id for delta in summary.skills if delta.user_id is not None}
    assert user_skill_ids == {11, 13, 21, 22}
    identifiers = {delta.identifier for delta in summary.skills if delta.identifier is not None}
    assert identifiers == {"11-13", "21-22"}

    results = {(result.user_id, result.placement, result.team_id) for result in summary.tournament_results}
    assert results == {(11, 1, 1), (13, 1, 1), (21, 2, 2), (22, 2, 2)}
    assert all(result.participant_count == 2 for result in summary.tournament_results)


def test_skills_start_from_known_ratings_and_count_sets() -> None:
    updater = _RecordingUpdater()
    tournament = _final(best_of=1)
    tournament.report_match_result(0, 1, [GameResult(winner_id=2)])

    summary = Summarizer(
        updater,
        user_skills={21: SkillRating(mu=30.0, sigma=5.0)},
        team_skills={"11-12": SkillRating(mu=20.0, sigma=4.0)},
    ).summarize(tournament)

    assert updater.calls == [(2, 2), (1, 1)]
    by_user = {delta.user_id: delta for delta in summary.skills if delta.user_id is not None}
    by_identifier = {delta.identifier: delta for delta in summary.skills if delta.identifier is not None}
    assert by_user[21].mu == 31.0
    assert by_user[21].ordinal == 31.0 - 15.0
    assert by_user[11].mu == 24.0
    assert by_identifier["11-12"].mu == 19.0
    assert by_identifier["21-22"].mu == 26.0
    assert all(delta.matches_count == 1 for delta in summary.skills)


def test_byes_and_repeat_visits_are_not_rated() -> None:
    updater = _RecordingUpdater()
    teams = [Team(id=team_id, member_user_ids=(team_id * 10,)) for team_id in (1, 2, 3)]
    tournament = Tournament(4, teams, [Bracket(0, BracketFormat.SINGLE_ELIMINATION, best_of=1)])
    tournament.report_match_result(0, 2, [GameResult(winner_id=2)])
    tournament.report_match_result(0, 3, [GameResult(winner_id=1)])

    summary = tournament.finalize(Summarizer(updater))

    assert len(updater.calls) == 2 * 2
    counts = {delta.user_id: delta.matches_count for delta in summary.skills if delta.user_id is not None}
    assert counts == {10: 1, 20: 2, 30: 1}
    assert tournament.finalize() is summary


def test_openskill_updates_favour_the_winner() -> None:
    tournament = _final(best_of=1)
    tournament.report_match_result(0, 1, [GameResult(winner_id=1)])

    summary = Summarizer(OpenSkillRatingUpdater()).summarize(tournament)

    by_user = {delta.user_id: delta for delta in summary.skills if delta.user_id is not None}
    assert by_user[11].mu > 25.0 > by_user[21].mu
    assert by_user[11].sigma < 25.0 / 3.0
