"""tournament_results table model."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class TournamentResult(Base):
    """Final placement of one user in one tournament."""

    __tablename__ = "tournament_results"
    __table_args__ = (
        CheckConstraint("placement >= 1", name="ck_tournament_results_placement"),
        CheckConstraint("participant_count >= placement", name="ck_tournament_results_participants"),
        Index("idx_tournament_results_tournament", "tournament_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    tournament_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    placement: Mapped[int] = mapped_column(Integer, nullable=False)
    participant_count: Mapped[int] = mapped_column(Integer, nullable=False)
    tournament_team_id: Mapped[int] = mapped_column(Integer, nullable=False)
