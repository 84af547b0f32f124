"""map_results table model."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class MapResult(Base):
    """Running win/loss counters per user on one mode and stage."""

    __tablename__ = "map_results"
    __table_args__ = (
        UniqueConstraint("user_id", "stage_id", "mode", "season", name="uq_map_results_user_stage_mode_season"),
        CheckConstraint("wins >= 0 AND losses >= 0", name="ck_map_results_counts"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    mode: Mapped[str] = mapped_column(String(16), nullable=False)
    stage_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    losses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    season: Mapped[int | None] = mapped_column(Integer, nullable=True)
