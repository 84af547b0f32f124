"""ORM models."""

from models.base import Base
from models.map_result import MapResult
from models.player_result import PlayerResult
from models.skill import Skill, SkillTeamUser
from models.tournament_result import TournamentResult

__all__ = [
    "Base",
    "MapResult",
    "PlayerResult",
    "Skill",
    "SkillTeamUser",
    "TournamentResult",
]
