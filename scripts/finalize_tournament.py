#!/usr/bin/env python3
"""Finalize a finished tournament and persist its summary."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Annotated

import typer

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from db import create_db_engine, create_session_factory, summary_transaction
from domain.ratings.openskill.calculator import OpenSkillRatingUpdater
from domain.ratings.openskill.config import load_openskill_system_config
from domain.tournament.config import load_tournament_config
from domain.tournament.summarizer import Summarizer
from repositories.summary import add_summary, ensure_summary_schema, fetch_current_skills

DEFAULT_RATING_CONFIG = ROOT_DIR / "configs" / "ratings" / "openskill" / "default.toml"

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Tournament finalize jobs.",
)


@app.command()
def finalize_tournament(
    tournament_file: Annotated[
        Path,
        typer.Argument(help="Tournament TOML file with teams, brackets and stored results."),
    ],
    db_url: Annotated[
        str | None,
        typer.Option(
            "--db-url",
            help="Database URL. Falls back to TOURNAMENTS_DATABASE_URL, DATABASE_URL, then a local SQLite file.",
        ),
    ] = None,
    rating_config: Annotated[
        Path,
        typer.Option("--rating-config", help="OpenSkill parameter TOML file."),
    ] = DEFAULT_RATING_CONFIG,
    season: Annotated[
        int | None,
        typer.Option("--season", help="Season stored with skills and aggregate rows."),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Summarize without writing to the database."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log engine activity to stderr."),
    ] = False,
) -> None:
    """Replay results, summarize the tournament and store the summary in one transaction."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO)
    if season is not None and season < 0:
        raise typer.BadParameter("--season must be >= 0")

    system_config = load_openskill_system_config(rating_config)
    tournament_config = load_tournament_config(tournament_file)
    tournament = tournament_config.build()
    if not tournament.is_finished():
        unfinished = [bracket.idx for bracket in tournament.brackets if not bracket.is_finished()]
        typer.echo(f"not_finished tournament_id={tournament.id} unfinished_brackets={unfinished}", err=True)
        raise typer.Exit(code=1)

    engine = create_db_engine(db_url)
    ensure_summary_schema(engine)
    session_factory = create_session_factory(engine)

    with summary_transaction(session_factory) as session:
        user_skills, team_skills = fetch_current_skills(session, season=season)
        summarizer = Summarizer(
            OpenSkillRatingUpdater(system_config.parameters),
            user_skills=user_skills,
            team_skills=team_skills,
        )
        summary = tournament.finalize(summarizer)

        if dry_run:
            typer.echo(
                f"[dry-run] tournament_id={tournament.id} rating_system={system_config.name} "
                f"skills={len(summary.skills)} map_deltas={len(summary.map_result_deltas)} "
                f"player_deltas={len(summary.player_result_deltas)} "
                f"results={len(summary.tournament_results)}"
            )
            return

        add_summary(session, tournament_id=tournament.id, summary=summary, season=season)

    typer.echo(
        "completed "
        f"tournament_id={tournament.id} "
        f"rating_system={system_config.name} "
        f"skills={len(summary.skills)} "
        f"map_deltas={len(summary.map_result_deltas)} "
        f"player_deltas={len(summary.player_result_deltas)} "
        f"results={len(summary.tournament_results)}"
    )


if __name__ == "__main__":
    app()
