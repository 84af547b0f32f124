"""skills and skill_team_users table models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Float, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class Skill(Base):
    """One rating snapshot per user (``user_id``) or user combination (``identifier``)."""

    __tablename__ = "skills"
    __table_args__ = (
        CheckConstraint(
            "(user_id IS NULL) <> (identifier IS NULL)",
            name="ck_skills_user_or_identifier",
        ),
        CheckConstraint("sigma > 0.0", name="ck_skills_sigma"),
        CheckConstraint("matches_count >= 0", name="ck_skills_matches_count"),
        Index("idx_skills_user", "user_id", "season"),
        Index("idx_skills_identifier", "identifier", "season"),
        Index("idx_skills_tournament", "tournament_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    tournament_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    identifier: Mapped[str | None] = mapped_column(String(256), nullable=True)
    mu: Mapped[float] = mapped_column(Float, nullable=False)
    sigma: Mapped[float] = mapped_column(Float, nullable=False)
    ordinal: Mapped[float] = mapped_column(Float, nullable=False)
    matches_count: Mapped[int] = mapped_column(Integer, nullable=False)
    season: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )


class SkillTeamUser(Base):
    """Users that make up a team skill identifier."""

    __tablename__ = "skill_team_users"

    skill_id: Mapped[int] = mapped_column(ForeignKey("skills.id"), primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, primary_key=True)
