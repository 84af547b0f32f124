"""Tests for the OpenSkill rating updater."""

from __future__ import annotations

import pytest

from domain.ratings.openskill.calculator import OpenSkillParameters, OpenSkillRatingUpdater, SkillRating


def test_initial_rating_and_ordinal_follow_parameters() -> None:
    updater = OpenSkillRatingUpdater(OpenSkillParameters(initial_mu=30.0, initial_sigma=5.0, ordinal_z=2.0))

    rating = updater.initial_rating()
    assert rating == SkillRating(mu=30.0, sigma=5.0)
    assert updater.ordinal(rating) == pytest.approx(20.0)
    assert rating.ordinal() == pytest.approx(15.0)


def test_rate_moves_winners_up_and_losers_down() -> None:
    updater = OpenSkillRatingUpdater()
    start = updater.initial_rating()

    winners, losers = updater.rate([start, start], [start, start])

    assert len(winners) == 2
    assert len(losers) == 2
    assert all(rating.mu > start.mu for rating in winners)
    assert all(rating.mu < start.mu for rating in losers)
    assert winners[0].mu == pytest.approx(winners[1].mu)


def test_upset_moves_ratings_further() -> None:
    updater = OpenSkillRatingUpdater()
    strong = SkillRating(mu=35.0, sigma=4.0)
    weak = SkillRating(mu=20.0, sigma=4.0)

    (expected_winner,), _ = updater.rate([strong], [weak])
    (upset_winner,), _ = updater.rate([weak], [strong])

    assert upset_winner.mu - weak.mu > expected_winner.mu - strong.mu


def test_rate_requires_both_sides() -> None:
    with pytest.raises(ValueError, match="both sides"):
        OpenSkillRatingUpdater().rate([], [SkillRating(mu=25.0, sigma=8.0)])
