"""OpenSkill rating modules."""

from domain.ratings.openskill.calculator import OpenSkillParameters, OpenSkillRatingUpdater, SkillRating
from domain.ratings.openskill.config import OpenSkillSystemConfig, load_openskill_system_config

__all__ = [
    "OpenSkillParameters",
    "OpenSkillRatingUpdater",
    "OpenSkillSystemConfig",
    "SkillRating",
    "load_openskill_system_config",
]
