"""Persistence of tournament summaries.

``add_summary`` only stages rows on the session; the caller owns the
transaction so a whole summary is committed or rolled back together.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from domain.ratings.openskill.calculator import SkillRating
from domain.tournament.summarizer import TournamentSummary, identifier_user_ids
from models import MapResult, PlayerResult, Skill, SkillTeamUser, TournamentResult

logger = logging.getLogger(__name__)

_TABLES = (Skill, SkillTeamUser, MapResult, PlayerResult, TournamentResult)


def ensure_summary_schema(engine: Engine) -> None:
    """Create summary tables when missing."""
    with engine.begin() as connection:
        for model in _TABLES:
            getattr(model, "__table__").create(bind=connection, checkfirst=True)


def _same_season(column, season: int | None):
    return column.is_(None) if season is None else column == season


def add_summary(
    session: Session,
    *,
    tournament_id: int,
    summary: TournamentSummary,
    season: int | None = None,
) -> None:
    """Stage every row of one summary.

    Skill rows carry the matches counter forward from the highest stored count
    of the same user or identifier in the same season. Map and player results
    are incremented in place.
    """
    for skill in summary.skills:
        if skill.user_id is not None:
            owner_clause = Skill.user_id == skill.user_id
        else:
            owner_clause = Skill.identifier == skill.identifier
        previous = session.scalar(
            select(func.max(Skill.matches_count)).where(owner_clause, _same_season(Skill.season, season))
        )

        row = Skill(
            tournament_id=tournament_id,
            user_id=skill.user_id,
            identifier=skill.identifier,
            mu=skill.mu,
            sigma=skill.sigma,
            ordinal=skill.ordinal,
            matches_count=skill.matches_count + int(previous or 0),
            season=season,
        )
        session.add(row)
        session.flush()

        if skill.identifier:
            for user_id in sorted(set(identifier_user_ids(skill.identifier))):
                session.add(SkillTeamUser(skill_id=row.id, user_id=user_id))

    for delta in summary.map_result_deltas:
        existing = session.execute(
            select(MapResult).where(
                MapResult.user_id == delta.user_id,
                MapResult.stage_id == delta.stage_id,
                MapResult.mode == delta.mode,
                _same_season(MapResult.season, season),
            )
        ).scalar_one_or_none()
        if existing is None:
            session.add(
                MapResult(
                    mode=delta.mode,
                    stage_id=delta.stage_id,
                    user_id=delta.user_id,
                    wins=delta.wins,
                    losses=delta.losses,
                    season=season,
                )
            )
        else:
            existing.wins += delta.wins
            existing.losses += delta.losses
        session.flush()

    for delta in summary.player_result_deltas:
        existing = session.execute(
            select(PlayerResult).where(
                PlayerResult.owner_user_id == delta.owner_user_id,
                PlayerResult.other_user_id == delta.other_user_id,
                PlayerResult.type == delta.type,
                _same_season(PlayerResult.season, season),
            )
        ).scalar_one_or_none()
        if existing is None:
            session.add(
                PlayerResult(
                    owner_user_id=delta.owner_user_id,
                    other_user_id=delta.other_user_id,
                    map_wins=delta.map_wins,
                    map_losses=delta.map_losses,
                    set_wins=delta.set_wins,
                    set_losses=delta.set_losses,
                    type=delta.type,
                    season=season,
                )
            )
        else:
            existing.map_wins += delta.map_wins
            existing.map_losses += delta.map_losses
            existing.set_wins += delta.set_wins
            existing.set_losses += delta.set_losses
        session.flush()

    session.add_all(
        TournamentResult(
            tournament_id=tournament_id,
            user_id=result.user_id,
            placement=result.placement,
            participant_count=result.participant_count,
            tournament_team_id=result.team_id,
        )
        for result in summary.tournament_results
    )
    session.flush()
    logger.info(
        "summary staged tournament_id=%s season=%s skills=%s map_deltas=%s player_deltas=%s results=%s",
        tournament_id,
        season,
        len(summary.skills),
        len(summary.map_result_deltas),
        len(summary.player_result_deltas),
        len(summary.tournament_results),
    )


def fetch_current_skills(
    session: Session,
    *,
    season: int | None = None,
) -> tuple[dict[int, SkillRating], dict[str, SkillRating]]:
    """Latest stored rating per user and per identifier within ``season``.

    ``season=None`` reads the unseasoned rows, the same ones ``add_summary``
    carries counters forward from.
    """
    statement = select(Skill).where(_same_season(Skill.season, season)).order_by(Skill.id)

    user_skills: dict[int, SkillRating] = {}
    team_skills: dict[str, SkillRating] = {}
    for row in session.execute(statement).scalars():
        rating = SkillRating(mu=row.mu, sigma=row.sigma)
        if row.user_id is not None:
            user_skills[row.user_id] = rating
        elif row.identifier is not None:
            team_skills[row.identifier] = rating
    return user_skills, team_skills


__all__ = ["add_summary", "ensure_summary_schema", "fetch_current_skills"]
