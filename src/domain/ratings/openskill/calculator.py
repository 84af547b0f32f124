"""OpenSkill rating updates (Plackett-Luce model) for finished sets."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from openskill.models import PlackettLuce


@dataclass(frozen=True)
class OpenSkillParameters:
    initial_mu: float = 25.0
    initial_sigma: float = 25.0 / 3.0
    beta: float = 25.0 / 6.0
    kappa: float = 0.0001
    tau: float = 25.0 / 300.0
    limit_sigma: bool = False
    balance: bool = False
    ordinal_z: float = 3.0


@dataclass(frozen=True)
class SkillRating:
    mu: float
    sigma: float

    def ordinal(self, z: float = 3.0) -> float:
        return self.mu - z * self.sigma


class OpenSkillRatingUpdater:
    """Stateless wrapper around the OpenSkill model.

    Callers own the ratings; every call takes prior ratings and returns new
    ones, so the same updater can be shared between tournaments.
    """

    def __init__(self, params: OpenSkillParameters | None = None) -> None:
        self.params = params or OpenSkillParameters()
        self._model = PlackettLuce(
            mu=self.params.initial_mu,
            sigma=self.params.initial_sigma,
            beta=self.params.beta,
            kappa=self.params.kappa,
            tau=self.params.tau,
            limit_sigma=self.params.limit_sigma,
            balance=self.params.balance,
        )

    def initial_rating(self) -> SkillRating:
        return SkillRating(mu=self.params.initial_mu, sigma=self.params.initial_sigma)

    def ordinal(self, rating: SkillRating) -> float:
        return rating.ordinal(self.params.ordinal_z)

    def rate(
        self,
        winners: Sequence[SkillRating],
        losers: Sequence[SkillRating],
    ) -> tuple[list[SkillRating], list[SkillRating]]:
        """Return updated ratings for one decided set, in input order."""
        if not winners or not losers:
            raise ValueError("both sides need at least one rating")

        updated = self._model.rate(
            [self._to_model(winners), self._to_model(losers)],
            ranks=[1, 2],
        )
        return (
            [SkillRating(mu=float(rating.mu), sigma=float(rating.sigma)) for rating in updated[0]],
            [SkillRating(mu=float(rating.mu), sigma=float(rating.sigma)) for rating in updated[1]],
        )

    def _to_model(self, ratings: Sequence[SkillRating]) -> list:
        return [self._model.rating(mu=rating.mu, sigma=rating.sigma) for rating in ratings]


__all__ = ["OpenSkillParameters", "OpenSkillRatingUpdater", "SkillRating"]
