"""player_results table model."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class PlayerResult(Base):
    """Running counters of one user with or against another user."""

    __tablename__ = "player_results"
    __table_args__ = (
        UniqueConstraint(
            "owner_user_id",
            "other_user_id",
            "type",
            "season",
            name="uq_player_results_owner_other_type_season",
        ),
        CheckConstraint("type IN ('MATE', 'ENEMY')", name="ck_player_results_type"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    owner_user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    other_user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    map_wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    map_losses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    set_wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    set_losses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    type: Mapped[str] = mapped_column(String(8), nullable=False)
    season: Mapped[int | None] = mapped_column(Integer, nullable=True)
