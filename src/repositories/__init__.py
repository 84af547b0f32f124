"""Database repository helpers."""

from repositories.summary import add_summary, ensure_summary_schema, fetch_current_skills

__all__ = [
    "add_summary",
    "ensure_summary_schema",
    "fetch_current_skills",
]
